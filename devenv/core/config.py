"""集中配置

配置来源按优先级从低到高: 字段默认值 → YAML 配置文件 → 环境变量
DEVENV_PLATFORM → 命令行选项（由 CLI 层通过 dataclasses.replace 覆盖）。
"""

from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from typing import Any

from devenv.core.exceptions import ConfigError
from devenv.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

PLATFORM_ENV_VAR = "DEVENV_PLATFORM"
DEFAULT_CONFIG_PATH = ".devenv/config.yml"


@dataclass
class Config:
    """全局配置"""

    # 文件与目录
    manifest: str = "devenv.yml"
    deps_dir: str = ".devenv/deps"
    artifacts_file: str = ".devenv/artifacts.yml"

    # 执行
    max_workers: int = 8
    fetch_timeout: float = 300.0   # 单个来源下载的总时限（秒）
    socket_timeout: float = 30.0   # 单次网络读写超时（秒）
    chunk_size: int = 64 * 1024

    # 声明的产物缺失时是否判定该来源失败（触发回退）
    strict_artifacts: bool = False

    # 主机平台三元组，空则自动探测
    platform: str = ""

    # 未识别的配置项原样保留
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_file(cls, path: str = DEFAULT_CONFIG_PATH) -> Config:
        """从 YAML 文件加载，文件不存在时使用默认值

        Raises:
            ConfigError: 已知字段的取值类型不对
        """
        data = load_yaml(path)
        defaults = cls._defaults()
        values: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in data.items():
            if key in defaults:
                values[key] = _coerce(path, key, value, defaults[key])
            else:
                extra[key] = value

        cfg = cls(**values, extra=extra)
        env_platform = os.getenv(PLATFORM_ENV_VAR, "")
        if env_platform:
            cfg.platform = env_platform
        return cfg

    @classmethod
    def _defaults(cls) -> dict[str, Any]:
        return {f.name: f.default for f in dataclasses.fields(cls) if f.name != "extra"}

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


def _coerce(path: str, key: str, value: Any, default: Any) -> Any:
    """按默认值的类型转换配置项"""
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ConfigError(f"{path}: {key} 应为布尔值，实际为 {value!r}")
        return value
    try:
        return type(default)(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{path}: {key} 的取值无效: {value!r}") from e


_current: Config | None = None


def get_config() -> Config:
    """当前配置，未初始化时为默认值"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = DEFAULT_CONFIG_PATH) -> Config:
    """从文件加载并替换全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.debug("配置已加载: %s", path)
    return _current
