"""依赖数据模型

来源类型按 type 字段区分，每种类型一个数据类，只携带自己的字段:
- UrlSource: 直接 URL 下载（唯一可执行的类型）
- GitSource: Git 仓库（已识别，暂不支持拉取）
- PackageManagerSource: brew / apt / winget / choco（已识别，暂不支持拉取）
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Union

from devenv.core.exceptions import DependencyError
from devenv.core.triple import Triple

PACKAGE_MANAGERS = ("brew", "apt", "winget", "choco")


@dataclass(frozen=True)
class UrlSource:
    url: str
    sha: str = ""  # 文件内容的 sha256（十六进制）

    kind = "url"

    def describe(self) -> str:
        return f"url:{self.url}"


@dataclass(frozen=True)
class GitSource:
    url: str
    rev: str = "main"

    kind = "git"

    def describe(self) -> str:
        return f"git:{self.url}@{self.rev}"


@dataclass(frozen=True)
class PackageManagerSource:
    manager: str  # brew | apt | winget | choco
    name: str
    version: str = ""

    @property
    def kind(self) -> str:
        return self.manager

    def describe(self) -> str:
        ver = f"@{self.version}" if self.version else ""
        return f"{self.manager}:{self.name}{ver}"


SourceKind = Union[UrlSource, GitSource, PackageManagerSource]


@dataclass(frozen=True)
class DependencySource:
    """单个可拉取的依赖定义

    artifacts 为 None 时，拉取后自动发现根目录下的顶层条目；
    platforms 为空表示适用于任意平台（排名最低）。
    """

    kind: SourceKind
    artifacts: dict[str, str] | None = None
    platforms: tuple[Triple, ...] = ()

    def describe(self) -> str:
        return self.kind.describe()


@dataclass
class DependencyHooks:
    """安装前后的钩子命令（仅记录，不执行）"""

    before_install: str = ""
    after_install: str = ""


@dataclass
class DependencyDeclaration:
    """一个依赖及其按声明顺序排列的来源"""

    name: str
    sources: list[DependencySource] = field(default_factory=list)
    hooks: DependencyHooks | None = None
    verify: bool = False


# =========================================================================
# 解析状态
# =========================================================================


class DependencyState(str, Enum):
    """单个依赖的解析状态

    pending → selecting → fetching → (resolved | failed)
    """

    PENDING = "pending"
    SELECTING = "selecting"
    FETCHING = "fetching"
    RESOLVED = "resolved"
    FAILED = "failed"


class FailureReason(str, Enum):
    NO_MATCH = "no_match"
    ALL_SOURCES_FAILED = "all_sources_failed"
    CANCELLED = "cancelled"


@dataclass
class SourceAttempt:
    """一次来源尝试的记录"""

    source: str
    error: str = ""

    @property
    def ok(self) -> bool:
        return not self.error


@dataclass
class DependencyOutcome:
    """单个依赖的解析结果"""

    name: str
    state: DependencyState = DependencyState.PENDING
    reason: FailureReason | None = None
    source: DependencySource | None = None   # 最终采用的来源
    artifacts: dict[str, Path] = field(default_factory=dict)
    attempts: list[SourceAttempt] = field(default_factory=list)
    error: DependencyError | None = None

    @property
    def resolved(self) -> bool:
        return self.state == DependencyState.RESOLVED

    @property
    def message(self) -> str:
        return str(self.error) if self.error else ""
