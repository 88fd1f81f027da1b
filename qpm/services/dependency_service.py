"""依赖声明服务 — 在清单中增删依赖"""

from __future__ import annotations

import logging
from typing import Any

from qpm.core.dep.resolver import DependencyResolver
from qpm.core.manifest_store import ManifestStore
from qpm.core.models import DependencySpec, ExtensionData
from qpm.core.versioning import normalize_range, parse_range

logger = logging.getLogger(__name__)


class DependencyService:
    """依赖声明管理"""

    def __init__(self, store: ManifestStore, resolver: DependencyResolver) -> None:
        self.store = store
        self.resolver = resolver

    def add(
        self,
        dependency_id: str,
        version_range: str | None = None,
        additional_data: dict[str, Any] | None = None,
    ) -> DependencySpec:
        """追加依赖声明；同 id（大小写不敏感）已存在时原位更新范围与扩展属性"""
        expr = normalize_range(version_range)
        parse_range(expr)
        extra = ExtensionData.from_raw(additional_data, owner=f"依赖 '{dependency_id}'")

        manifest = self.store.load_manifest()
        spec = manifest.find_dependency(dependency_id)
        if spec is None:
            spec = DependencySpec(id=dependency_id, version_range=expr, additional_data=extra)
            manifest.dependencies.append(spec)
            logger.info("已添加依赖: %s (%s)", dependency_id, expr)
        else:
            spec.version_range = expr
            spec.additional_data.update(extra)
            logger.info("已更新依赖: %s (%s)", spec.id, expr)
        self.store.save_manifest(manifest)
        return spec

    def remove(self, dependency_id: str) -> bool:
        """删除依赖声明，并清理锁文件与派生文件中的对应内容

        返回清单中是否确实存在该声明。
        """
        manifest = self.store.load_manifest()
        spec = manifest.find_dependency(dependency_id)
        if spec is not None:
            manifest.dependencies.remove(spec)
            self.store.save_manifest(manifest)
            logger.info("已删除依赖声明: %s", spec.id)
        else:
            logger.warning("清单中没有该依赖: %s", dependency_id)
        self.resolver.remove(dependency_id)
        return spec is not None
