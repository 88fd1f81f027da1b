"""服务容器 — 统一装配，CLI 通过 get_container() 获取服务

依赖关系图（→ 表示依赖）:
  resolver      → registry, store, dispatcher
  dispatcher    → synchronizer
  synchronizer  → installer, 三个派生文件 provider
  packages      → store, dispatcher
  dependencies  → store, resolver
  publisher     → store, registry

事件处理函数列表在这里一次性固定，运行期不再注册。

用法:
    container = ServiceContainer()
    container.resolver.resolve()

    cfg = Config.from_file("my_qpm.yml")
    container = ServiceContainer(config=cfg)
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from qpm.artifacts.android_mk import AndroidMkProvider
    from qpm.artifacts.bmbfmod import BmbfModProvider
    from qpm.artifacts.cpp_properties import CppPropertiesProvider
    from qpm.core.config import Config
    from qpm.core.dep.installer import BinaryInstaller
    from qpm.core.dep.resolver import DependencyResolver
    from qpm.core.events import EventDispatcher
    from qpm.core.manifest_store import ManifestStore
    from qpm.core.registry_client import RegistryClient
    from qpm.services.dependency_service import DependencyService
    from qpm.services.package_service import PackageService
    from qpm.services.publish_service import PublishService
    from qpm.services.synchronizer import ArtifactSynchronizer

logger = logging.getLogger(__name__)


class ServiceContainer:
    """懒加载服务容器 — 同一容器内的实例共享"""

    def __init__(self, config: Config | None = None) -> None:
        self._instances: dict[str, object] = {}
        if config is None:
            from qpm.core.config import get_config
            config = get_config()
        self._config = config

    @property
    def config(self) -> Config:
        return self._config

    # ---- 基础设施 ----

    @property
    def registry(self) -> RegistryClient:
        if "registry" not in self._instances:
            from qpm.core.registry_client import RegistryClient
            self._instances["registry"] = RegistryClient(
                self._config.registry_url,
                token=self._config.registry_token,
                timeout=self._config.request_timeout,
                list_limit=self._config.list_limit,
            )
        return self._instances["registry"]  # type: ignore[return-value]

    @property
    def store(self) -> ManifestStore:
        if "store" not in self._instances:
            from qpm.core.manifest_store import ManifestStore
            self._instances["store"] = ManifestStore(
                self._config.project_path(self._config.package_file),
                self._config.project_path(self._config.lock_file),
            )
        return self._instances["store"]  # type: ignore[return-value]

    @property
    def installer(self) -> BinaryInstaller:
        if "installer" not in self._instances:
            from qpm.core.dep.installer import BinaryInstaller
            self._instances["installer"] = BinaryInstaller(
                self._config.project_dir,
                self._config.resolved_cache_dir(),
                timeout=self._config.request_timeout,
            )
        return self._instances["installer"]  # type: ignore[return-value]

    # ---- 派生文件 ----

    @property
    def android_mk(self) -> AndroidMkProvider:
        if "android_mk" not in self._instances:
            from qpm.artifacts.android_mk import AndroidMkProvider
            self._instances["android_mk"] = AndroidMkProvider(
                self._config.project_path(self._config.android_mk),
            )
        return self._instances["android_mk"]  # type: ignore[return-value]

    @property
    def cpp_properties(self) -> CppPropertiesProvider:
        if "cpp_properties" not in self._instances:
            from qpm.artifacts.cpp_properties import CppPropertiesProvider
            self._instances["cpp_properties"] = CppPropertiesProvider(
                self._config.project_path(self._config.cpp_properties),
            )
        return self._instances["cpp_properties"]  # type: ignore[return-value]

    @property
    def bmbfmod(self) -> BmbfModProvider:
        if "bmbfmod" not in self._instances:
            from qpm.artifacts.bmbfmod import BmbfModProvider
            self._instances["bmbfmod"] = BmbfModProvider(
                self._config.project_path(self._config.bmbfmod),
            )
        return self._instances["bmbfmod"]  # type: ignore[return-value]

    # ---- 事件 ----

    @property
    def synchronizer(self) -> ArtifactSynchronizer:
        if "synchronizer" not in self._instances:
            from qpm.services.synchronizer import ArtifactSynchronizer
            self._instances["synchronizer"] = ArtifactSynchronizer(
                self._config.project_dir,
                self.installer,
                android_mk=self.android_mk,
                cpp_properties=self.cpp_properties,
                bmbfmod=self.bmbfmod,
            )
        return self._instances["synchronizer"]  # type: ignore[return-value]

    @property
    def dispatcher(self) -> EventDispatcher:
        if "dispatcher" not in self._instances:
            from qpm.core.events import EventDispatcher
            self._instances["dispatcher"] = EventDispatcher([
                self.synchronizer.handle,
            ])
        return self._instances["dispatcher"]  # type: ignore[return-value]

    # ---- 服务层 ----

    @property
    def resolver(self) -> DependencyResolver:
        if "resolver" not in self._instances:
            from qpm.core.dep.resolver import DependencyResolver
            self._instances["resolver"] = DependencyResolver(
                self.registry, self.store, self.dispatcher,
            )
        return self._instances["resolver"]  # type: ignore[return-value]

    @property
    def packages(self) -> PackageService:
        if "packages" not in self._instances:
            from qpm.services.package_service import PackageService
            self._instances["packages"] = PackageService(self.store, self.dispatcher)
        return self._instances["packages"]  # type: ignore[return-value]

    @property
    def dependencies(self) -> DependencyService:
        if "dependencies" not in self._instances:
            from qpm.services.dependency_service import DependencyService
            self._instances["dependencies"] = DependencyService(self.store, self.resolver)
        return self._instances["dependencies"]  # type: ignore[return-value]

    @property
    def publisher(self) -> PublishService:
        if "publisher" not in self._instances:
            from qpm.services.publish_service import PublishService
            self._instances["publisher"] = PublishService(self.store, self.registry)
        return self._instances["publisher"]  # type: ignore[return-value]


# ---- 全局单例 ----

_global: ServiceContainer | None = None
_global_lock = threading.Lock()


def get_container() -> ServiceContainer:
    """获取全局 ServiceContainer 单例"""
    global _global  # noqa: PLW0603
    if _global is not None:
        return _global
    with _global_lock:
        if _global is None:
            _global = ServiceContainer()
        return _global


def reset_container() -> None:
    """重置全局容器（配置重新加载后或测试中使用）"""
    global _global  # noqa: PLW0603
    with _global_lock:
        _global = None
