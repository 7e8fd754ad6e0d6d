"""依赖解析模块

- models.py: 来源类型与解析状态
- registry.py: 清单加载
- selector.py: 按主机平台筛选、排序来源
- fetcher.py: 校验和 + 原子落地的下载
- resolver.py: 产物发现与解析
"""

from devenv.core.dep.fetcher import SourceFetcher
from devenv.core.dep.models import (
    DependencyDeclaration,
    DependencyOutcome,
    DependencySource,
    DependencyState,
)
from devenv.core.dep.registry import DependencyRegistry
from devenv.core.dep.resolver import ArtifactResolver
from devenv.core.dep.selector import rank_sources, select_sources

__all__ = [
    "ArtifactResolver",
    "DependencyDeclaration",
    "DependencyOutcome",
    "DependencyRegistry",
    "DependencySource",
    "DependencyState",
    "SourceFetcher",
    "rank_sources",
    "select_sources",
]
