"""清单扩展属性（additionalData）中受支持的已知键"""

from __future__ import annotations

from dataclasses import dataclass

HEADERS_ONLY = "headersOnly"
RELEASE_SO_LINK = "soLink"
DEBUG_SO_LINK = "debugSoLink"
OVERRIDE_SO_NAME = "overrideSoName"
USE_RELEASE = "useRelease"
BRANCH_NAME = "branchName"


@dataclass(frozen=True)
class SupportedProperty:
    """一个已知扩展属性"""

    key: str
    target: str   # "package" 或 "dependency"
    shape: str    # "bool" 或 "string"
    description: str


SUPPORTED_PROPERTIES: tuple[SupportedProperty, ...] = (
    SupportedProperty(
        HEADERS_ONLY, "package", "bool",
        "仅包含头文件，不提供二进制产物",
    ),
    SupportedProperty(
        RELEASE_SO_LINK, "package", "string",
        "release 版本 .so 的下载链接",
    ),
    SupportedProperty(
        DEBUG_SO_LINK, "package", "string",
        "debug 版本 .so 的下载链接（默认优先使用）",
    ),
    SupportedProperty(
        OVERRIDE_SO_NAME, "package", "string",
        "覆盖默认的 .so 文件名",
    ),
    SupportedProperty(
        BRANCH_NAME, "package", "string",
        "源码分支名（仅作说明）",
    ),
    SupportedProperty(
        USE_RELEASE, "dependency", "bool",
        "引用该依赖时使用 release 版本 .so",
    ),
)
