"""统一异常体系

所有业务异常继承 DevenvError，替代散落的 ValueError / RuntimeError。
CLI 层可据此输出友好提示，编排器可据此区分“单个来源失败”与“依赖失败”。
"""

from __future__ import annotations


class DevenvError(Exception):
    """框架基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(DevenvError):
    """配置文件或依赖清单内容无效"""

    code = "CONFIG_ERROR"


class ValidationError(DevenvError):
    """输入数据校验失败"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class IdentifierParseError(DevenvError):
    """平台三元组字符串为空或格式错误"""

    code = "PARSE_ERROR"

    def __init__(self, value: str, reason: str) -> None:
        super().__init__(f"无法解析平台标识 '{value}': {reason}")
        self.value = value


# =========================================================================
# 依赖解析
# =========================================================================


class DependencyError(DevenvError):
    """单个依赖解析失败（只影响该依赖）"""

    code = "DEPENDENCY_ERROR"

    def __init__(self, name: str, message: str) -> None:
        super().__init__(f"依赖 '{name}': {message}")
        self.name = name


class NoEligibleSourceError(DependencyError):
    """没有任何来源适用于当前平台"""

    code = "NO_ELIGIBLE_SOURCE"


class AllSourcesExhaustedError(DependencyError):
    """所有候选来源均尝试失败"""

    code = "SOURCES_EXHAUSTED"

    def __init__(self, name: str, attempts: list[tuple[str, str]]) -> None:
        detail = "; ".join(f"{label}: {err}" for label, err in attempts)
        super().__init__(name, f"全部 {len(attempts)} 个来源均失败 ({detail})")
        self.attempts = attempts


# =========================================================================
# 单个来源（触发回退，不直接致命）
# =========================================================================


class SourceFetchError(DevenvError):
    """单个来源拉取失败（网络错误、超时等）"""

    code = "FETCH_ERROR"


class ChecksumMismatchError(SourceFetchError):
    """下载内容与声明的 sha256 不一致"""

    code = "CHECKSUM_MISMATCH"

    def __init__(self, url: str, expected: str, actual: str) -> None:
        super().__init__(f"校验和不匹配 {url}: 期望 {expected}, 实际 {actual}")
        self.expected = expected
        self.actual = actual


class FetchCancelledError(SourceFetchError):
    """下载被取消（用户中断或整体运行取消）"""

    code = "FETCH_CANCELLED"


class UnsupportedSourceKindError(SourceFetchError):
    """来源类型已识别但不支持拉取（git / brew / apt ...）"""

    code = "UNSUPPORTED_SOURCE"


class ArtifactMissingError(SourceFetchError):
    """声明的产物路径在拉取后不存在（仅 strict_artifacts 模式抛出）"""

    code = "ARTIFACT_MISSING"
