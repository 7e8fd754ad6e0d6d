"""平台三元组（target triple）

格式: <architecture>-<vendor>-<os>-<abi>，例如 x86_64-apple-darwin-gnu。
每个轴可以是已知枚举值、原样保留的未知字符串，或通配符 "*"。

解析规则（按 "-" 切分，空段忽略）:
  - 4 段: arch-vendor-os-abi
  - 3 段: arch-vendor-os，abi 为通配
  - 1 段: 仅操作系统，其余轴为通配
  - 其他段数或空串: IdentifierParseError

匹配是有方向的: 声明方（候选）可以带通配符，主机三元组总是具体值。
"""

from __future__ import annotations

import platform
from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple, Union

from devenv.core.exceptions import IdentifierParseError

WILDCARD = "*"


class Architecture(str, Enum):
    ANY = WILDCARD
    AMD64 = "amd64"
    ARM = "arm"
    ARMV7 = "armv7"
    AARCH64 = "aarch64"
    I386 = "i386"
    RISCV32 = "riscv32"
    RISCV64 = "riscv64"
    X86 = "x86"
    X86_64 = "x86_64"


class Vendor(str, Enum):
    ANY = WILDCARD
    APPLE = "apple"
    PC = "pc"
    NVIDIA = "nvidia"
    IBM = "ibm"
    UNKNOWN = "unknown"


class OS(str, Enum):
    ANY = WILDCARD
    LINUX = "linux"
    DARWIN = "darwin"
    WINDOWS = "windows"
    FREEBSD = "freebsd"
    NETBSD = "netbsd"
    OPENBSD = "openbsd"
    ANDROID = "android"
    NONE = "none"


class ABI(str, Enum):
    ANY = WILDCARD
    GNU = "gnu"
    GNUEABIHF = "gnueabihf"
    MUSL = "musl"
    EABI = "eabi"
    MSVC = "msvc"
    ANDROID = "android"
    NONE = "none"


# 未知取值原样保存为 str
AxisValue = Union[Architecture, Vendor, OS, ABI, str]

_ALIASES: dict[type[Enum], dict[str, Enum]] = {
    Architecture: {"arm64": Architecture.ARM},
    Vendor: {},
    OS: {"macos": OS.DARWIN, "macosx": OS.DARWIN},
    ABI: {},
}


def _parse_axis(axis: type[Enum], raw: str) -> AxisValue:
    """解析单个轴: 已知值（大小写不敏感）或原样保留的字符串"""
    key = raw.lower()
    alias = _ALIASES[axis].get(key)
    if alias is not None:
        return alias
    try:
        return axis(key)
    except ValueError:
        return raw


def _render(value: AxisValue) -> str:
    return value.value if isinstance(value, Enum) else value


def is_wildcard(value: AxisValue) -> bool:
    return _render(value) == WILDCARD


class TripleScope(NamedTuple):
    """候选三元组相对主机的具体程度

    每个轴为 True 表示候选在该轴上给出了具体值且与主机一致。
    元组按 arch > vendor > os > abi 逐位比较，True 优先。
    """

    arch: bool = False
    vendor: bool = False
    os: bool = False
    abi: bool = False


LEAST_SPECIFIC = TripleScope()


@dataclass(frozen=True)
class Triple:
    """四轴平台标识，不可变"""

    arch: AxisValue = Architecture.ANY
    vendor: AxisValue = Vendor.ANY
    os: AxisValue = OS.ANY
    abi: AxisValue = ABI.ANY

    @classmethod
    def parse(cls, value: str) -> Triple:
        if not value or not value.strip():
            raise IdentifierParseError(value, "空字符串")
        parts = [p for p in value.strip().split("-") if p]
        if len(parts) == 4:
            return cls(
                arch=_parse_axis(Architecture, parts[0]),
                vendor=_parse_axis(Vendor, parts[1]),
                os=_parse_axis(OS, parts[2]),
                abi=_parse_axis(ABI, parts[3]),
            )
        if len(parts) == 3:
            return cls(
                arch=_parse_axis(Architecture, parts[0]),
                vendor=_parse_axis(Vendor, parts[1]),
                os=_parse_axis(OS, parts[2]),
            )
        if len(parts) == 1:
            return cls(os=_parse_axis(OS, parts[0]))
        raise IdentifierParseError(value, f"段数为 {len(parts)}，仅支持 1/3/4 段")

    @classmethod
    def universal(cls) -> Triple:
        """全通配三元组 *-*-*-*，适用于任意主机"""
        return cls()

    @classmethod
    def host(cls) -> Triple:
        """探测当前主机的三元组（各轴均为具体值）"""
        system = platform.system().lower()
        if system == "darwin":
            os_value: AxisValue = OS.DARWIN
            vendor: AxisValue = Vendor.APPLE
            abi: AxisValue = ABI.NONE
        elif system == "linux":
            os_value = OS.LINUX
            vendor = Vendor.UNKNOWN
            libc, _ = platform.libc_ver()
            abi = ABI.GNU if libc == "glibc" else ABI.MUSL
        elif system == "windows":
            os_value = OS.WINDOWS
            vendor = Vendor.PC
            abi = ABI.MSVC
        else:
            os_value = _parse_axis(OS, system or "unknown")
            vendor = Vendor.UNKNOWN
            abi = ABI.NONE
        return cls(arch=_host_arch(platform.machine()), vendor=vendor, os=os_value, abi=abi)

    def axes(self) -> tuple[AxisValue, AxisValue, AxisValue, AxisValue]:
        return (self.arch, self.vendor, self.os, self.abi)

    def matches(self, candidate: Triple) -> bool:
        """self 为主机，判断候选三元组是否适用"""
        return matches(self, candidate)

    def scope(self, host: Triple) -> TripleScope:
        """self 为候选，计算相对主机的具体程度"""
        return specificity(self, host)

    def __str__(self) -> str:
        return "-".join(_render(v) for v in self.axes())


def _host_arch(machine: str) -> AxisValue:
    m = machine.lower()
    if m in ("x86_64", "amd64"):
        return Architecture.X86_64
    if m in ("arm64", "aarch64"):
        return Architecture.ARM
    if m.startswith("armv7"):
        return Architecture.ARMV7
    if m in ("i386", "i686", "x86"):
        return Architecture.I386
    return _parse_axis(Architecture, m or "unknown")


def matches(host: Triple, candidate: Triple) -> bool:
    """候选每个轴为通配或与主机相同即匹配"""
    return all(
        is_wildcard(c) or c == h
        for h, c in zip(host.axes(), candidate.axes())
    )


def specificity(candidate: Triple, host: Triple) -> TripleScope:
    return TripleScope(*(
        not is_wildcard(c) and c == h
        for c, h in zip(candidate.axes(), host.axes())
    ))


def parse_platforms(values: list[str]) -> tuple[list[Triple], list[IdentifierParseError]]:
    """批量解析平台列表，返回 (成功解析的三元组, 解析错误)"""
    triples: list[Triple] = []
    errors: list[IdentifierParseError] = []
    for value in values:
        try:
            triples.append(Triple.parse(value))
        except IdentifierParseError as e:
            errors.append(e)
    return triples, errors
