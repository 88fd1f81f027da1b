"""派生文件同步器

订阅六种生命周期事件，对每个存在的派生文件执行固定的幂等修改:

  事件                 c_cpp_properties.json   bmbfmod.json    Android.mk (primary)
  IdChanged            ID 宏                   id              ID define
  VersionChanged       VERSION 宏              version         VERSION define
  NameChanged          -                       name            -
  PackageCreated       include 路径 + 宏       id, version     defines + include 路径
  DependencyResolved   -                       -               依赖模块 + 共享库链接
  DependencyRemoved    -                       -               删除依赖模块 + 链接

文件不存在时静默跳过；单个文件解析或写入失败只记录告警，不影响其他文件。
二进制放置失败（下载失败、缺少链接）则向上传播，中止整个解析。
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path, PurePosixPath
from typing import Any

from qpm.artifacts.android_mk import (
    CLEAR_VARS_LINE,
    PREBUILT_SHARED_LINE,
    AndroidMk,
    AndroidMkProvider,
    Module,
)
from qpm.artifacts.bmbfmod import BmbfModProvider
from qpm.artifacts.cpp_properties import WORKSPACE_PREFIX, CppPropertiesProvider
from qpm.core.dep.installer import BinaryInstaller
from qpm.core.events import (
    DependencyRemoved,
    DependencyResolved,
    Event,
    IdChanged,
    NameChanged,
    PackageCreated,
    VersionChanged,
)
from qpm.core.exceptions import ArtifactFormatError, ArtifactWriteError

logger = logging.getLogger(__name__)


class ArtifactSynchronizer:
    """事件 -> 派生文件修改"""

    def __init__(
        self,
        project_dir: str | Path,
        installer: BinaryInstaller,
        *,
        android_mk: AndroidMkProvider,
        cpp_properties: CppPropertiesProvider,
        bmbfmod: BmbfModProvider,
    ) -> None:
        self.project_dir = Path(project_dir)
        self.installer = installer
        self.android_mk = android_mk
        self.cpp_properties = cpp_properties
        self.bmbfmod = bmbfmod
        self._routes: dict[type, Callable[[Any], None]] = {
            IdChanged: self._on_id_changed,
            VersionChanged: self._on_version_changed,
            NameChanged: self._on_name_changed,
            PackageCreated: self._on_package_created,
            DependencyResolved: self._on_dependency_resolved,
            DependencyRemoved: self._on_dependency_removed,
        }

    def handle(self, event: Event) -> None:
        route = self._routes.get(type(event))
        if route is None:
            logger.debug("忽略未知事件: %s", type(event).__name__)
            return
        route(event)

    # ------------------------------------------------------------------
    # 事件处理
    # ------------------------------------------------------------------

    def _on_id_changed(self, event: IdChanged) -> None:
        self._edit(self.cpp_properties, lambda p: p.update_id(event.new_id))
        self._edit(self.bmbfmod, lambda m: m.update_id(event.new_id))
        self._edit_primary(lambda main: main.add_define("ID", event.new_id))

    def _on_version_changed(self, event: VersionChanged) -> None:
        self._edit(self.cpp_properties, lambda p: p.update_version(event.new_version))
        self._edit(self.bmbfmod, lambda m: m.update_version(event.new_version))
        self._edit_primary(lambda main: main.add_define("VERSION", event.new_version))

    def _on_name_changed(self, event: NameChanged) -> None:
        self._edit(self.bmbfmod, lambda m: m.update_name(event.new_name))

    def _on_package_created(self, event: PackageCreated) -> None:
        dirs = [d for d in (event.shared_dir, event.dependencies_dir) if d]
        for d in dirs:
            target = self.project_dir / d
            try:
                target.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise ArtifactWriteError(f"无法创建目录: {target} - {e}") from e

        def edit_props(props: Any) -> None:
            props.update_version(event.version)
            props.update_id(event.id)
            for d in dirs:
                props.add_include_path(WORKSPACE_PREFIX + d)

        def edit_mod(mod: Any) -> None:
            mod.update_version(event.version)
            mod.update_id(event.id)

        def edit_main(main: Module) -> None:
            main.add_define("ID", event.id)
            main.add_define("VERSION", event.version)
            for d in dirs:
                main.add_include_path("./" + d)

        self._edit(self.cpp_properties, edit_props)
        self._edit(self.bmbfmod, edit_mod)
        self._edit_primary(edit_main)

    def _on_dependency_resolved(self, event: DependencyResolved) -> None:
        placed = self.installer.place(event.project, event.resolved, event.spec)
        if placed is None:
            return
        resolved = event.resolved
        deps_dir = PurePosixPath(event.project.dependencies_dir.replace("\\", "/"))
        module = Module(
            id=resolved.id,
            prefix_lines=[
                f"# Creating prebuilt for dependency: {resolved.id} - version: {resolved.version}",
                CLEAR_VARS_LINE,
            ],
            sources=[str(deps_dir / placed.name)],
            export_includes=[str(deps_dir / resolved.id)],
            build_line=PREBUILT_SHARED_LINE,
        )
        self._edit(self.android_mk, lambda mk: mk.upsert_dependency(module))

    def _on_dependency_removed(self, event: DependencyRemoved) -> None:
        self._edit(self.android_mk, lambda mk: mk.remove_dependency(event.dependency_id))

    # ------------------------------------------------------------------
    # 单文件读-改-写
    # ------------------------------------------------------------------

    def _edit(self, provider: Any, mutate: Callable[[Any], Any]) -> None:
        """读取 -> 修改 -> 写回；mutate 返回 False 表示无需写回"""
        try:
            model = provider.get()
            if model is None:
                logger.debug("文件不存在，跳过: %s", provider.path)
                return
            if mutate(model) is False:
                return
            provider.save(model)
        except (ArtifactFormatError, ArtifactWriteError) as e:
            logger.warning("同步失败，已跳过 %s: %s", provider.path, e)

    def _edit_primary(self, mutate: Callable[[Module], None]) -> None:
        def apply(mk: AndroidMk) -> bool:
            main = mk.primary
            if main is None:
                logger.warning("Android.mk 中没有模块，跳过: %s", self.android_mk.path)
                return False
            mutate(main)
            return True

        self._edit(self.android_mk, apply)
