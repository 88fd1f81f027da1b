"""仓库与下载链接的地址检查

仓库地址 (registry_url) 和清单中的 soLink / debugSoLink 都来自用户或远程数据，
发起请求前统一在这里检查：只接受带主机名的 http/https 地址。
"""

from __future__ import annotations

from urllib.parse import urlparse

from qpm.core.exceptions import ValidationError

WEB_SCHEMES = ("http", "https")


def require_web_url(url: str, *, what: str = "") -> str:
    """返回去掉首尾空白的 URL；协议不是 http/https 或缺少主机名时报错

    what 描述地址用途（如 "仓库地址"、"二进制下载 libfoo.so"），会写进错误信息。
    """
    url = url.strip()
    parsed = urlparse(url)
    label = f"{what}: " if what else ""
    if parsed.scheme not in WEB_SCHEMES:
        raise ValidationError(
            f"{label}不允许的 URL 协议 '{parsed.scheme}'，只接受 http/https 地址 ({url})"
        )
    if not parsed.hostname:
        raise ValidationError(f"{label}URL 缺少主机名 ({url})")
    return url
