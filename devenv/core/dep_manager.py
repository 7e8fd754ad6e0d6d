"""依赖解析编排器

对每个依赖执行: 筛选来源 → 按排名依次拉取 → 解析产物。

单个依赖的状态机:

  pending → selecting ─┬─ 无候选 ─────────────→ failed(no_match)
                       └→ fetching(i) ─┬─ 成功 → resolved
                                       └─ 失败 → fetching(i+1)
                                                  └─ 耗尽 → failed(all_sources_failed)

所有依赖并发解析（每个依赖一个任务，同时提交、统一等待），
同一依赖的来源严格按排名串行尝试。一个依赖失败不影响其他依赖。

用法:
    from devenv.core.dep_manager import DepManager

    dm = DepManager()
    report = dm.fetch_all()
    report.artifact_map   # {依赖名: {产物名: 绝对路径}}

    # 模拟其他主机
    dm = DepManager(host=Triple.parse("arm-unknown-linux-gnu"))
"""

from __future__ import annotations

import hashlib
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from devenv.core.config import Config, get_config
from devenv.core.dep.fetcher import SourceFetcher
from devenv.core.dep.models import (
    DependencyDeclaration,
    DependencyOutcome,
    DependencySource,
    DependencyState,
    FailureReason,
    SourceAttempt,
)
from devenv.core.dep.registry import DependencyRegistry
from devenv.core.dep.resolver import ArtifactResolver
from devenv.core.dep.selector import rank_sources, select_sources
from devenv.core.exceptions import (
    AllSourcesExhaustedError,
    ArtifactMissingError,
    ConfigError,
    DependencyError,
    FetchCancelledError,
    NoEligibleSourceError,
    SourceFetchError,
    ValidationError,
)
from devenv.core.triple import Triple
from devenv.utils.cancellation import CancellationToken
from devenv.utils.yaml_io import save_yaml

logger = logging.getLogger(__name__)


def resolve_host(config: Config) -> Triple:
    """配置了 platform 则解析之（格式错误直接抛出），否则自动探测"""
    if config.platform:
        return Triple.parse(config.platform)
    return Triple.host()


@dataclass
class ResolutionReport:
    """一次解析运行的汇总，所有任务结束后只读"""

    host: Triple
    outcomes: dict[str, DependencyOutcome] = field(default_factory=dict)

    @property
    def artifact_map(self) -> dict[str, dict[str, Path]]:
        return {
            name: dict(o.artifacts)
            for name, o in self.outcomes.items() if o.resolved
        }

    @property
    def failed(self) -> dict[str, DependencyOutcome]:
        return {name: o for name, o in self.outcomes.items() if not o.resolved}

    @property
    def success(self) -> bool:
        return not self.failed


class DepManager:
    """依赖解析编排器

    host / fetcher / resolver 均可注入，便于针对任意主机平台测试。
    """

    def __init__(
        self,
        declarations: dict[str, DependencyDeclaration] | None = None,
        *,
        config: Config | None = None,
        host: Triple | None = None,
        fetcher: SourceFetcher | None = None,
        resolver: ArtifactResolver | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        cfg = config or get_config()
        if declarations is None:
            declarations = DependencyRegistry(Path(cfg.manifest)).load()
        self.declarations = declarations
        self.deps_dir = Path(cfg.deps_dir)
        self.max_workers = max(1, cfg.max_workers)
        self.host = host or resolve_host(cfg)
        self.token = token or CancellationToken()
        self.fetcher = fetcher or SourceFetcher(
            socket_timeout=cfg.socket_timeout,
            fetch_timeout=cfg.fetch_timeout,
            chunk_size=cfg.chunk_size,
            token=self.token,
        )
        self.resolver = resolver or ArtifactResolver(strict=cfg.strict_artifacts)
        self._lock = threading.Lock()
        self._outcomes: dict[str, DependencyOutcome] = {}

    def _declaration(self, name: str) -> DependencyDeclaration:
        decl = self.declarations.get(name)
        if decl is None:
            raise ConfigError(
                f"依赖 '{name}' 不在清单中。"
                f"可用: {list(self.declarations.keys())}"
            )
        return decl

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    def candidates(self, name: str) -> list[DependencySource]:
        """当前主机下该依赖的候选来源（按尝试顺序）"""
        return rank_sources(self.host, self._declaration(name).sources)

    def list_dependencies(self) -> list[dict[str, str]]:
        results = []
        for decl in self.declarations.values():
            for src in decl.sources:
                results.append({
                    "name": decl.name,
                    "kind": src.kind.kind,
                    "source": src.describe(),
                    "platforms": ", ".join(str(p) for p in src.platforms) or "*",
                })
        return results

    # ------------------------------------------------------------------
    # 单个依赖
    # ------------------------------------------------------------------

    def resolve_one(self, name: str) -> DependencyOutcome:
        """执行单个依赖的状态机，失败记录在返回结果中而不抛出"""
        decl = self._declaration(name)
        outcome = DependencyOutcome(name=name, state=DependencyState.SELECTING)
        try:
            candidates = select_sources(name, self.host, decl.sources)
            outcome.state = DependencyState.FETCHING
            self._try_sources(outcome, candidates)
        except NoEligibleSourceError as e:
            logger.error("%s", e)
            outcome.state = DependencyState.FAILED
            outcome.reason = FailureReason.NO_MATCH
            outcome.error = e
        except AllSourcesExhaustedError as e:
            logger.error("%s", e)
            outcome.state = DependencyState.FAILED
            outcome.reason = FailureReason.ALL_SOURCES_FAILED
            outcome.error = e

        with self._lock:
            self._outcomes[name] = outcome
        return outcome

    def source_dir(self, name: str, source: DependencySource) -> Path:
        """每个来源独立的拉取目录: deps_dir/<依赖名>/<来源摘要>

        回退时后一个来源看不到前一个来源留下的文件。
        """
        digest = hashlib.sha256(source.describe().encode("utf-8")).hexdigest()[:12]
        return self.deps_dir / name / digest

    def _try_sources(self, outcome: DependencyOutcome, candidates: list[DependencySource]) -> None:
        """按排名依次尝试，第一个成功的来源被采用"""
        for source in candidates:
            label = source.describe()
            try:
                location = self.fetcher.fetch(source, self.source_dir(outcome.name, source))
                artifacts = self.resolver.resolve(source.artifacts, location.parent)
                if not artifacts:
                    raise ArtifactMissingError(f"来源没有产生任何产物: {location.parent}")
            except FetchCancelledError as e:
                outcome.attempts.append(SourceAttempt(label, str(e)))
                outcome.state = DependencyState.FAILED
                outcome.reason = FailureReason.CANCELLED
                outcome.error = DependencyError(outcome.name, "解析已取消")
                return
            except (SourceFetchError, ValidationError, OSError) as e:
                logger.warning("依赖 '%s' 来源失败，尝试下一个: %s (%s)", outcome.name, label, e)
                outcome.attempts.append(SourceAttempt(label, str(e)))
                continue

            outcome.attempts.append(SourceAttempt(label))
            outcome.state = DependencyState.RESOLVED
            outcome.source = source
            outcome.artifacts = artifacts
            logger.info(
                "依赖 '%s' 就绪: %s (%d 个产物)", outcome.name, label, len(artifacts),
            )
            return

        raise AllSourcesExhaustedError(
            outcome.name, [(a.source, a.error) for a in outcome.attempts],
        )

    def fetch(self, name: str) -> dict[str, Path]:
        """解析单个依赖，返回产物映射；失败时抛出对应的 DependencyError"""
        outcome = self.resolve_one(name)
        if outcome.error is not None:
            raise outcome.error
        return outcome.artifacts

    # ------------------------------------------------------------------
    # 全部依赖
    # ------------------------------------------------------------------

    def fetch_all(self, names: list[str] | None = None) -> ResolutionReport:
        """并发解析全部（或指定）依赖

        Ctrl-C 时取消令牌，进行中的下载在下一个数据块处停止并清理临时文件，
        等待所有任务退出后再抛出 KeyboardInterrupt。
        """
        targets = list(names) if names else list(self.declarations)
        for name in targets:
            self._declaration(name)

        with self._lock:
            self._outcomes = {}
        if not targets:
            logger.info("没有需要解析的依赖")
            return ResolutionReport(host=self.host)

        logger.info("开始解析 %d 个依赖 (平台 %s)", len(targets), self.host)
        workers = min(self.max_workers, len(targets))
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="dep")
        try:
            futures = [executor.submit(self.resolve_one, name) for name in targets]
            for future in futures:
                outcome = future.result()
                logger.info("完成: %s -> %s", outcome.name, outcome.state.value)
        except KeyboardInterrupt:
            logger.warning("收到中断，正在取消进行中的下载")
            self.token.cancel()
            raise
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

        with self._lock:
            report = ResolutionReport(host=self.host, outcomes=dict(self._outcomes))
        if report.failed:
            logger.warning(
                "解析汇总: %d 成功, %d 失败 (%s)",
                len(report.outcomes) - len(report.failed),
                len(report.failed),
                ", ".join(report.failed),
            )
        return report


def write_artifact_map(report: ResolutionReport, path: Path) -> None:
    """将产物映射持久化为 YAML，供激活层读取"""
    data = {
        "platform": str(report.host),
        "deps": {
            name: {art: str(p) for art, p in sorted(artifacts.items())}
            for name, artifacts in report.artifact_map.items()
        },
    }
    save_yaml(path, data)
    logger.info("产物映射已写入: %s", path)
