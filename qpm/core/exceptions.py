"""统一异常体系

所有业务异常继承 QPMError。CLI 入口据此输出友好提示并以非零状态退出，
同步器据此区分 "单个派生文件失败"（记录后跳过）与 "解析失败"（整体中止）。
"""

from __future__ import annotations


class QPMError(Exception):
    """包管理器基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(QPMError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class ValidationError(QPMError):
    """输入数据校验失败（清单、版本号、扩展属性、URL 等）"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class RegistryError(QPMError):
    """远程包仓库返回非成功响应、响应体无效或传输失败（含超时）"""

    code = "REGISTRY_ERROR"


class NotFoundError(RegistryError):
    """仓库中不存在匹配的 id / 版本"""

    code = "NOT_FOUND"


class DependencyConflictError(QPMError):
    """同一依赖被多个请求方以互不相容的版本范围请求"""

    code = "DEPENDENCY_CONFLICT"

    def __init__(
        self, dependency_id: str, requests: list[tuple[str, str]],
    ) -> None:
        desc = ", ".join(f"{who} 要求 {rng}" for who, rng in requests)
        super().__init__(
            f"依赖冲突: '{dependency_id}' 不存在同时满足以下范围的已发布版本: {desc}"
        )
        self.dependency_id = dependency_id
        self.requests = list(requests)


class MissingArtifactLinkError(QPMError):
    """非 headersOnly 依赖既没有 debug 也没有 release 二进制链接"""

    code = "MISSING_ARTIFACT_LINK"


class ArtifactWriteError(QPMError):
    """放置二进制或重写派生文件时发生文件系统错误"""

    code = "ARTIFACT_WRITE_ERROR"


class ArtifactFormatError(QPMError):
    """已存在的派生文件内容无法解析"""

    code = "ARTIFACT_FORMAT_ERROR"
