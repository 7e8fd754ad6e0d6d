"""YAML 文件读写

清单、配置与产物映射都经由这里读写：utf-8、顶层必须是映射、
大小受限，写入走同目录临时文件再 os.replace。
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# 清单/配置文件最大 10MB
MAX_YAML_SIZE = 10 * 1024 * 1024


def atomic_write(path: Path, content: str) -> None:
    """写入 path；中途失败时目标文件保持原样，临时文件被删除"""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def _read_text(p: Path) -> str:
    size = p.stat().st_size
    if size > MAX_YAML_SIZE:
        raise ValueError(f"YAML 文件过大: {p} ({size} 字节), 超过限制 {MAX_YAML_SIZE} 字节")
    return p.read_text(encoding="utf-8")


def load_yaml(path: str | Path) -> dict[str, Any]:
    """读取 YAML 映射

    返回:
        dict: 文件不存在、为空或顶层不是映射时返回空字典

    异常:
        ValueError: 文件超过 MAX_YAML_SIZE
        yaml.YAMLError: YAML 格式错误
    """
    p = Path(path)
    if not p.is_file():
        return {}

    try:
        data = yaml.safe_load(_read_text(p))
    except yaml.YAMLError as e:
        logger.error("解析 YAML 文件失败: %s, 错误: %s", p, e)
        raise

    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning("%s 顶层不是映射 (%s)，按空处理", p, type(data).__name__)
        return {}
    return data


def save_yaml(path: str | Path, data: dict[str, Any]) -> None:
    """原子写入 YAML（保持键顺序，允许 Unicode）"""
    text = yaml.safe_dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False)
    atomic_write(Path(path), text)
