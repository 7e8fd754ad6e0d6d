"""依赖解析相关的 CLI 命令"""

from __future__ import annotations

import dataclasses
from pathlib import Path

import click
import yaml

from devenv.core.config import Config, get_config
from devenv.core.dep_manager import DepManager, resolve_host, write_artifact_map
from devenv.core.exceptions import DevenvError


def register(group: click.Group) -> None:
    group.add_command(setup)
    group.add_command(setup, name="deps")
    group.add_command(show_platform)
    group.add_command(show_sources)
    group.add_command(list_deps)


def _effective_config(**overrides: object) -> Config:
    """命令行选项覆盖全局配置（None 表示未指定）"""
    given = {k: v for k, v in overrides.items() if v is not None}
    return dataclasses.replace(get_config(), **given)


def _manager(cfg: Config) -> DepManager:
    try:
        return DepManager(config=cfg)
    except DevenvError as e:
        raise click.ClickException(str(e)) from e
    except (yaml.YAMLError, ValueError) as e:
        raise click.ClickException(f"清单加载失败: {cfg.manifest} - {e}") from e


_manifest_option = click.option("--manifest", default=None, help="依赖清单路径")
_platform_option = click.option(
    "--platform", "platform_", default=None,
    help="以指定的平台三元组代替本机平台，如 arm-apple-darwin",
)


@click.command()
@_manifest_option
@_platform_option
@click.option("--deps-dir", default=None, help="依赖下载目录")
@click.option("--parallel", "-p", type=int, default=None, help="并行解析的依赖数")
@click.option("--name", "names", multiple=True, help="只解析指定依赖（可多次指定）")
@click.option("--no-write", is_flag=True, help="不写出产物映射文件")
def setup(
    manifest: str | None, platform_: str | None, deps_dir: str | None,
    parallel: int | None, names: tuple[str, ...], no_write: bool,
) -> None:
    """解析并拉取依赖，输出产物路径"""
    cfg = _effective_config(
        manifest=manifest, platform=platform_, deps_dir=deps_dir, max_workers=parallel,
    )
    dm = _manager(cfg)
    try:
        report = dm.fetch_all(list(names) or None)
    except DevenvError as e:
        raise click.ClickException(str(e)) from e

    for name in sorted(report.outcomes):
        outcome = report.outcomes[name]
        if outcome.resolved:
            click.echo(f"{name}: {outcome.source.describe() if outcome.source else ''}")
            for art, path in sorted(outcome.artifacts.items()):
                click.echo(f"  {art} -> {path}")
        else:
            click.echo(f"{name}: [FAILED] {outcome.message}")

    if not no_write:
        write_artifact_map(report, Path(cfg.artifacts_file))

    if not report.success:
        raise SystemExit(1)


@click.command(name="platform")
@_platform_option
def show_platform(platform_: str | None) -> None:
    """显示当前主机的平台三元组"""
    cfg = _effective_config(platform=platform_)
    try:
        click.echo(str(resolve_host(cfg)))
    except DevenvError as e:
        raise click.ClickException(str(e)) from e


@click.command(name="sources")
@click.argument("name")
@_manifest_option
@_platform_option
def show_sources(name: str, manifest: str | None, platform_: str | None) -> None:
    """按尝试顺序列出依赖在当前平台下的候选来源"""
    dm = _manager(_effective_config(manifest=manifest, platform=platform_))
    try:
        ranked = dm.candidates(name)
    except DevenvError as e:
        raise click.ClickException(str(e)) from e
    if not ranked:
        click.echo(f"没有来源适用于 {dm.host}: {name}")
        raise SystemExit(1)
    for i, src in enumerate(ranked, 1):
        platforms = ", ".join(str(p) for p in src.platforms) or "*"
        click.echo(f"  {i}. {src.describe()}  [{platforms}]")


@click.command(name="list")
@_manifest_option
def list_deps(manifest: str | None) -> None:
    """列出清单中声明的依赖及其来源"""
    dm = _manager(_effective_config(manifest=manifest))
    entries = dm.list_dependencies()
    if not entries:
        click.echo("没有已声明的依赖。")
        return
    for e in entries:
        click.echo(f"  {e['name']:20s} [{e['kind']:6s}] {e['source']}  ({e['platforms']})")
