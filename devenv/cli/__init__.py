"""devenv 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
日志级别与格式由环境变量 DEVENV_LOG_LEVEL / DEVENV_LOG_JSON=1 控制。
"""

import os

import click
import yaml

from devenv import __version__
from devenv.core.config import DEFAULT_CONFIG_PATH, init_config
from devenv.core.exceptions import DevenvError
from devenv.utils.logger import setup_logging


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config", "-c", "config_path", default=DEFAULT_CONFIG_PATH,
    help="配置文件路径（不存在时使用默认配置）",
)
def main(config_path: str) -> None:
    """devenv - 按平台解析并拉取开发依赖"""
    setup_logging(
        level=os.getenv("DEVENV_LOG_LEVEL", "INFO"),
        json_output=os.getenv("DEVENV_LOG_JSON", "") == "1",
    )
    try:
        init_config(config_path)
    except (DevenvError, ValueError, yaml.YAMLError) as e:
        raise click.ClickException(f"配置加载失败: {e}") from e


# 注册各领域子命令
from devenv.cli.cmd_deps import register as _reg_deps  # noqa: E402

_reg_deps(main)
