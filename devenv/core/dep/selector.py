"""来源筛选与排序

1. 过滤: platforms 为空，或至少一个平台匹配主机
2. 排名: 取该来源所有平台相对主机的最大具体程度（空平台为最低）
3. 按排名降序稳定排序，同等具体程度保持声明顺序
"""

from __future__ import annotations

import logging

from devenv.core.dep.models import DependencySource
from devenv.core.exceptions import NoEligibleSourceError
from devenv.core.triple import LEAST_SPECIFIC, Triple, TripleScope

logger = logging.getLogger(__name__)


def is_eligible(host: Triple, source: DependencySource) -> bool:
    if not source.platforms:
        return True
    return any(host.matches(p) for p in source.platforms)


def source_rank(host: Triple, source: DependencySource) -> TripleScope:
    """来源的排名: 其全部平台中相对主机最具体的那一个"""
    return max((p.scope(host) for p in source.platforms), default=LEAST_SPECIFIC)


def rank_sources(host: Triple, sources: list[DependencySource]) -> list[DependencySource]:
    """返回适用于主机的来源，按具体程度从高到低排列（可能为空）"""
    eligible = [s for s in sources if is_eligible(host, s)]
    return sorted(eligible, key=lambda s: source_rank(host, s), reverse=True)


def select_sources(
    name: str, host: Triple, sources: list[DependencySource],
) -> list[DependencySource]:
    """同 rank_sources，但没有任何候选时抛出 NoEligibleSourceError"""
    ranked = rank_sources(host, sources)
    if not ranked:
        raise NoEligibleSourceError(name, f"没有来源适用于当前平台 {host}")
    logger.debug(
        "依赖 '%s' 候选来源 (%s): %s",
        name, host, ", ".join(s.describe() for s in ranked),
    )
    return ranked
