"""产物解析器

把拉取根目录映射为 {产物名: 绝对路径}:
- 声明了 artifacts: 逐个按相对路径解析，不存在的条目告警后省略
  （strict 模式下抛出 ArtifactMissingError，使该来源失败并触发回退）
  路径解析后必须位于根目录内，否则该来源失败
- 未声明: 列出根目录下的顶层非隐藏条目（不递归），
  以去掉最后一个扩展名的文件名为产物名；重名时后列出的覆盖先列出的
"""

from __future__ import annotations

import logging
from pathlib import Path

from devenv.core.exceptions import ArtifactMissingError

logger = logging.getLogger(__name__)


class ArtifactResolver:
    """产物解析器 - 仅做本地查找"""

    def __init__(self, strict: bool = False) -> None:
        self.strict = strict

    def resolve(self, artifacts: dict[str, str] | None, root: Path) -> dict[str, Path]:
        root = root.resolve()
        if artifacts is None:
            return self.discover(root)
        return self.resolve_declared(artifacts, root)

    def resolve_declared(self, artifacts: dict[str, str], root: Path) -> dict[str, Path]:
        output: dict[str, Path] = {}
        for name, rel_path in artifacts.items():
            target = (root / rel_path).resolve()
            if not target.is_relative_to(root):
                raise ArtifactMissingError(f"产物 '{name}' 的路径超出拉取根目录: {rel_path}")
            if not target.exists():
                if self.strict:
                    raise ArtifactMissingError(f"声明的产物 '{name}' 不存在: {target}")
                logger.warning("声明的产物 '%s' 不存在，已省略: %s", name, target)
                continue
            output[name] = target
        return output

    @staticmethod
    def discover(root: Path) -> dict[str, Path]:
        """列出根目录顶层的非隐藏条目

        目录遍历顺序与文件系统有关，这里按名称排序后再映射，
        重名（如 tool.tar 与 tool.zip）时排序靠后的条目胜出。
        """
        if not root.is_dir():
            raise ArtifactMissingError(f"拉取根目录不存在: {root}")
        output: dict[str, Path] = {}
        for entry in sorted(root.iterdir(), key=lambda p: p.name):
            if entry.name.startswith("."):
                continue
            output[entry.stem] = entry
        return output
