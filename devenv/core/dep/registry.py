"""依赖清单加载

从 YAML 清单的 deps 段加载依赖声明，直接按 type 字段解析为对应的来源类型:

    deps:
      ripgrep:
        sources:
          - type: url
            url: https://example.com/rg-x86_64-apple-darwin.tar.gz
            sha: 9f2c...
            platforms: ["x86_64-apple-darwin"]
            artifacts:
              rg: rg-x86_64-apple-darwin.tar.gz
          - type: brew
            name: ripgrep

platforms 缺省为 ["*-*-*-*"]；无法解析的单个平台条目告警后跳过，
不影响同一来源的其他平台。
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from devenv.core.dep.models import (
    PACKAGE_MANAGERS,
    DependencyDeclaration,
    DependencyHooks,
    DependencySource,
    GitSource,
    PackageManagerSource,
    SourceKind,
    UrlSource,
)
from devenv.core.exceptions import ConfigError
from devenv.core.triple import Triple, parse_platforms
from devenv.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)


def parse_source_kind(dep_name: str, entry: dict[str, Any]) -> SourceKind:
    """按 type 字段构造来源类型"""
    kind = str(entry.get("type", "")).lower()
    if kind == "url":
        url = entry.get("url")
        if not url:
            raise ConfigError(f"依赖 '{dep_name}' 的 url 来源缺少 url 字段")
        return UrlSource(url=str(url), sha=str(entry.get("sha") or ""))
    if kind == "git":
        url = entry.get("url")
        if not url:
            raise ConfigError(f"依赖 '{dep_name}' 的 git 来源缺少 url 字段")
        return GitSource(url=str(url), rev=str(entry.get("rev") or "main"))
    if kind in PACKAGE_MANAGERS:
        name = entry.get("name")
        if not name:
            raise ConfigError(f"依赖 '{dep_name}' 的 {kind} 来源缺少 name 字段")
        return PackageManagerSource(
            manager=kind, name=str(name), version=str(entry.get("version") or ""),
        )
    raise ConfigError(f"依赖 '{dep_name}' 使用了未知的来源类型: '{kind}'")


def parse_source(dep_name: str, entry: dict[str, Any]) -> DependencySource | None:
    """解析单个来源条目

    platforms 非空但全部无法解析时返回 None（该来源被丢弃），
    避免它退化成适用于任意平台的来源。
    """
    if not isinstance(entry, dict):
        raise ConfigError(f"依赖 '{dep_name}' 的来源条目必须是映射: {entry!r}")

    kind = parse_source_kind(dep_name, entry)

    raw_platforms = entry.get("platforms")
    if raw_platforms is None:
        platforms: list[Triple] = [Triple.universal()]
    else:
        if not isinstance(raw_platforms, list):
            raise ConfigError(f"依赖 '{dep_name}' 的 platforms 必须是列表")
        platforms, errors = parse_platforms([str(p) for p in raw_platforms])
        for err in errors:
            logger.warning("依赖 '%s' 跳过无效平台: %s", dep_name, err)
        if raw_platforms and not platforms:
            logger.warning("依赖 '%s' 的来源 %s 没有可用平台，已丢弃", dep_name, kind.describe())
            return None

    artifacts = entry.get("artifacts")
    if artifacts is not None:
        if not isinstance(artifacts, dict):
            raise ConfigError(f"依赖 '{dep_name}' 的 artifacts 必须是映射")
        artifacts = {str(k): str(v) for k, v in artifacts.items()}

    return DependencySource(kind=kind, artifacts=artifacts, platforms=tuple(platforms))


def parse_declaration(name: str, info: dict[str, Any]) -> DependencyDeclaration:
    raw_sources = info.get("sources") or []
    if not isinstance(raw_sources, list):
        raise ConfigError(f"依赖 '{name}' 的 sources 必须是列表")

    sources = [
        src for src in (parse_source(name, s) for s in raw_sources) if src is not None
    ]
    unsupported = [s.describe() for s in sources if not isinstance(s.kind, UrlSource)]
    if unsupported:
        logger.warning(
            "依赖 '%s' 声明了暂不支持拉取的来源，将在回退时跳过: %s",
            name, ", ".join(unsupported),
        )

    hooks = None
    raw_hooks = info.get("hooks")
    if isinstance(raw_hooks, dict):
        hooks = DependencyHooks(
            before_install=str(raw_hooks.get("before_install", "")),
            after_install=str(raw_hooks.get("after_install", "")),
        )

    return DependencyDeclaration(
        name=name, sources=sources, hooks=hooks, verify=bool(info.get("verify", False)),
    )


class DependencyRegistry:
    """依赖清单 - 从 YAML 文件加载依赖声明"""

    def __init__(self, manifest_path: Path) -> None:
        self.manifest_path = manifest_path

    def load(self) -> dict[str, DependencyDeclaration]:
        """加载全部依赖声明，保持清单中的顺序"""
        if not self.manifest_path.exists():
            logger.warning("清单文件不存在: %s", self.manifest_path)
            return {}

        data = load_yaml(self.manifest_path)
        deps = data.get("deps") or {}
        if not isinstance(deps, dict):
            raise ConfigError(f"{self.manifest_path}: deps 段必须是映射")

        declarations: dict[str, DependencyDeclaration] = {}
        for name, info in deps.items():
            if info is None:
                continue
            if not isinstance(info, dict):
                raise ConfigError(f"依赖 '{name}' 的定义必须是映射")
            declarations[str(name)] = parse_declaration(str(name), info)

        logger.info("已加载 %d 个依赖", len(declarations))
        return declarations
