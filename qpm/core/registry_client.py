"""远程包仓库客户端

无状态 HTTP 访问器，对应仓库的四个端点:
  GET  /{id}/?req=*&limit={n}   -> [{id, version}, ...]
  GET  /{id}?req={range}        -> {id, version}
  GET  /{id}/{version}          -> 清单 JSON
  POST /{id}/{version}          -> 发布清单（带 Authorization 头）

所有调用同步、单次尝试、不重试；传输失败与超时一律视为 RegistryError，
404 视为 NotFoundError。
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Any

from qpm.core.exceptions import (
    ConfigError,
    NotFoundError,
    RegistryError,
    ValidationError,
)
from qpm.core.models import PackageManifest
from qpm.core.versioning import ANY_RANGE, normalize_range
from qpm.utils.net import require_web_url

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModPair:
    """仓库返回的 (id, version) 摘要"""

    id: str
    version: str

    @classmethod
    def from_payload(cls, payload: Any) -> ModPair:
        if not isinstance(payload, dict) or not payload.get("id") or not payload.get("version"):
            raise RegistryError(f"仓库返回的版本摘要无效: {payload!r}")
        return cls(id=str(payload["id"]), version=str(payload["version"]))


class RegistryClient:
    """包仓库 HTTP 客户端"""

    def __init__(
        self,
        base_url: str = "https://qpackages.com",
        *,
        token: str = "",
        timeout: float = 30.0,
        list_limit: int = 0,
    ) -> None:
        base_url = require_web_url(base_url, what="仓库地址 registry_url")
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.list_limit = list_limit

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    def list_versions(self, package_id: str, limit: int | None = None) -> list[ModPair]:
        """列出包的全部已发布版本"""
        self._require_id(package_id)
        lim = self.list_limit if limit is None else limit
        payload = self._get_json(
            f"/{self._quote(package_id)}/?req=*&limit={lim}", package_id,
        )
        if not payload:
            raise NotFoundError(f"仓库中不存在包: {package_id}")
        if not isinstance(payload, list):
            raise RegistryError(f"版本列表格式无效: {package_id}")
        return [ModPair.from_payload(p) for p in payload]

    def latest(self, package_id: str, version_range: str | None = None) -> ModPair:
        """获取满足范围的最新版本，未指定范围时匹配任意版本"""
        self._require_id(package_id)
        expr = normalize_range(version_range or ANY_RANGE)
        payload = self._get_json(
            f"/{self._quote(package_id)}?req={urllib.parse.quote(expr, safe='')}",
            package_id,
        )
        if not payload:
            raise NotFoundError(
                f"仓库中不存在满足范围的版本: {package_id} ({expr})"
            )
        return ModPair.from_payload(payload)

    def fetch_manifest(self, package_id: str, version: str) -> PackageManifest:
        """获取指定版本的完整清单"""
        self._require_id(package_id)
        if not version:
            raise ValidationError(f"获取清单需要版本号: {package_id}")
        payload = self._get_json(
            f"/{self._quote(package_id)}/{self._quote(version)}",
            f"{package_id}@{version}",
        )
        if not payload:
            raise NotFoundError(f"仓库中不存在: {package_id}@{version}")
        try:
            return PackageManifest.from_dict(payload)
        except ValidationError as e:
            raise RegistryError(f"仓库返回的清单无效: {package_id}@{version} - {e}") from e

    # ------------------------------------------------------------------
    # 发布
    # ------------------------------------------------------------------

    def publish(self, manifest: PackageManifest) -> None:
        """按 (id, version) 上传完整清单，不做任何客户端校验"""
        if not self.token:
            raise ConfigError("发布需要配置 registry_token（或环境变量 QPM_TOKEN）")
        body = json.dumps(manifest.to_dict(), ensure_ascii=False).encode("utf-8")
        path = f"/{self._quote(manifest.id)}/{self._quote(manifest.version)}"
        self._request(
            "POST", path, f"{manifest.id}@{manifest.version}",
            data=body,
            headers={
                "Authorization": self.token,
                "Content-Type": "application/json",
            },
        )
        logger.info("已发布: %s@%s", manifest.id, manifest.version)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    @staticmethod
    def _require_id(package_id: str) -> None:
        if not package_id or not package_id.strip():
            raise ValidationError("包 id 不能为空")

    @staticmethod
    def _quote(part: str) -> str:
        return urllib.parse.quote(part, safe="")

    def _get_json(self, path: str, what: str) -> Any:
        raw = self._request("GET", path, what)
        if not raw.strip():
            return None
        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise RegistryError(f"仓库响应不是合法 JSON: {what} - {e}") from e

    def _request(
        self,
        method: str,
        path: str,
        what: str,
        *,
        data: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> bytes:
        url = f"{self.base_url}{path}"
        req = urllib.request.Request(url, data=data, method=method, headers=headers or {})
        logger.debug("%s %s", method, url)
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:  # nosec B310
                return resp.read()
        except urllib.error.HTTPError as e:
            if e.code == 404:
                raise NotFoundError(f"仓库中不存在: {what}") from e
            raise RegistryError(f"仓库请求失败: {what} - HTTP {e.code}") from e
        except (urllib.error.URLError, OSError) as e:
            # 超时（TimeoutError / socket.timeout）同样落在此分支
            raise RegistryError(f"仓库请求失败: {what} - {e}") from e
