"""包信息服务 — 新建包、修改 id / 版本 / 显示名

每次修改先写回清单，再分发对应的生命周期事件；
值没有变化时不写文件也不分发事件。
"""

from __future__ import annotations

import logging

from qpm.core.events import (
    EventDispatcher,
    IdChanged,
    NameChanged,
    PackageCreated,
    VersionChanged,
)
from qpm.core.exceptions import ValidationError
from qpm.core.manifest_store import ManifestStore
from qpm.core.models import PackageManifest
from qpm.core.versioning import parse_version

logger = logging.getLogger(__name__)


class PackageService:
    """包信息管理"""

    def __init__(self, store: ManifestStore, dispatcher: EventDispatcher) -> None:
        self.store = store
        self.dispatcher = dispatcher

    def create(
        self,
        package_id: str,
        version: str,
        *,
        name: str = "",
        shared_dir: str = "shared",
        dependencies_dir: str = "extern",
    ) -> PackageManifest:
        """新建清单并分发 PackageCreated；清单已存在时报错"""
        if self.store.has_manifest():
            raise ValidationError(f"清单已存在: {self.store.package_path}")
        manifest = PackageManifest(
            id=package_id,
            version=version,
            name=name or package_id,
            shared_dir=shared_dir,
            dependencies_dir=dependencies_dir,
        )
        self.store.save_manifest(manifest)
        logger.info("已创建包: %s@%s", manifest.id, manifest.version)
        self.dispatcher.dispatch(PackageCreated(
            id=manifest.id,
            version=manifest.version,
            name=manifest.name,
            shared_dir=manifest.shared_dir,
            dependencies_dir=manifest.dependencies_dir,
        ))
        return manifest

    def set_id(self, new_id: str) -> bool:
        if not new_id or not new_id.strip():
            raise ValidationError("包 id 不能为空")
        manifest = self.store.load_manifest()
        if manifest.id == new_id:
            return False
        old = manifest.id
        manifest.id = new_id
        self.store.save_manifest(manifest)
        logger.info("包 id 已修改: %s -> %s", old, new_id)
        self.dispatcher.dispatch(IdChanged(new_id))
        return True

    def set_version(self, new_version: str) -> bool:
        parse_version(new_version)
        manifest = self.store.load_manifest()
        if manifest.version == new_version:
            return False
        old = manifest.version
        manifest.version = new_version
        self.store.save_manifest(manifest)
        logger.info("包版本已修改: %s -> %s", old, new_version)
        self.dispatcher.dispatch(VersionChanged(new_version))
        return True

    def set_name(self, new_name: str) -> bool:
        manifest = self.store.load_manifest()
        if manifest.name == new_name:
            return False
        manifest.name = new_name
        self.store.save_manifest(manifest)
        logger.info("包名称已修改: %s", new_name)
        self.dispatcher.dispatch(NameChanged(new_name))
        return True
