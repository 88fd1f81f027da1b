"""发布服务 — 将工程清单发布到远程仓库"""

from __future__ import annotations

import logging

from qpm.core.exceptions import ValidationError
from qpm.core.manifest_store import ManifestStore
from qpm.core.models import PackageManifest
from qpm.core.registry_client import RegistryClient

logger = logging.getLogger(__name__)


class PublishService:
    def __init__(self, store: ManifestStore, registry: RegistryClient) -> None:
        self.store = store
        self.registry = registry

    def publish(self) -> PackageManifest:
        """发布前要求所有依赖都已解析（存在于锁文件中）"""
        manifest = self.store.load_manifest()
        lock = self.store.load_lock()
        missing = [d.id for d in manifest.dependencies if lock.get(d.id) is None]
        if missing:
            raise ValidationError(
                f"以下依赖尚未解析，请先执行 qpm restore: {', '.join(missing)}",
                details=missing,
            )
        self.registry.publish(manifest)
        return manifest
