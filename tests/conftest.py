"""测试共享 fixture — 内存仓库 + 假下载 + 工程目录"""

from __future__ import annotations

import copy
import io
import json
from pathlib import Path
from typing import Any

import pytest

from qpm.core.config import Config
from qpm.core.exceptions import NotFoundError
from qpm.core.models import DependencySpec, ExtensionData, PackageManifest
from qpm.core.registry_client import ModPair
from qpm.core.versioning import select_highest
from qpm.services.container import ServiceContainer


class FakeRegistry:
    """内存仓库，记录每次调用，用于断言 "零网络调用" 等性质"""

    def __init__(self) -> None:
        self.packages: dict[str, dict[str, PackageManifest]] = {}
        self.calls: list[tuple[str, ...]] = []
        self.published: list[PackageManifest] = []

    def add(
        self,
        package_id: str,
        version: str,
        deps: list[tuple[str, str]] | None = None,
        **additional_data: Any,
    ) -> PackageManifest:
        if not additional_data:
            additional_data = {"soLink": f"https://cdn.test/{package_id}/{version}/release.so"}
        manifest = PackageManifest(
            id=package_id,
            version=version,
            name=package_id,
            dependencies=[DependencySpec(d, r) for d, r in (deps or [])],
            additional_data=ExtensionData(additional_data),
        )
        self.packages.setdefault(package_id.lower(), {})[version] = manifest
        return manifest

    def list_versions(self, package_id: str, limit: int | None = None) -> list[ModPair]:
        self.calls.append(("list", package_id))
        versions = self.packages.get(package_id.lower())
        if not versions:
            raise NotFoundError(f"仓库中不存在包: {package_id}")
        return [ModPair(package_id, v) for v in versions]

    def latest(self, package_id: str, version_range: str | None = None) -> ModPair:
        self.calls.append(("latest", package_id, version_range or "*"))
        versions = self.packages.get(package_id.lower(), {})
        best = select_highest(versions, [version_range])
        if best is None:
            raise NotFoundError(f"仓库中不存在满足范围的版本: {package_id}")
        return ModPair(versions[best].id, best)

    def fetch_manifest(self, package_id: str, version: str) -> PackageManifest:
        self.calls.append(("fetch", package_id, version))
        try:
            return copy.deepcopy(self.packages[package_id.lower()][version])
        except KeyError:
            raise NotFoundError(f"仓库中不存在: {package_id}@{version}") from None

    def publish(self, manifest: PackageManifest) -> None:
        self.calls.append(("publish", manifest.id, manifest.version))
        self.published.append(manifest)

    def fetch_count(self, package_id: str) -> int:
        return sum(1 for c in self.calls if c[0] == "fetch" and c[1] == package_id)


@pytest.fixture()
def registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture()
def downloads(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    """替换二进制下载，返回被请求的 URL 列表"""
    urls: list[str] = []

    def fake_urlopen(url: str, timeout: float = 0) -> io.BytesIO:
        urls.append(url)
        return io.BytesIO(f"binary from {url}".encode())

    monkeypatch.setattr("qpm.core.dep.installer.urllib.request.urlopen", fake_urlopen)
    return urls


ANDROID_MK = """\
LOCAL_PATH := $(call my-dir)
TARGET_ARCH_ABI := $(APP_ABI)

# Build the mod
include $(CLEAR_VARS)
LOCAL_MODULE := mymod
LOCAL_SRC_FILES += $(call rwildcard,src/,*.cpp)
LOCAL_LDLIBS += -llog
LOCAL_CFLAGS += -D'ID="mymod"' -D'VERSION="0.1.0"' -Wall
LOCAL_CPP_FEATURES += exceptions
include $(BUILD_SHARED_LIBRARY)
"""


def write_project(
    root: Path,
    deps: list[tuple[str, str]] | None = None,
    *,
    package_id: str = "mymod",
    version: str = "0.1.0",
    with_artifacts: bool = True,
) -> None:
    """在 root 下写入 qpm.json 以及（可选）三个派生文件"""
    manifest = PackageManifest(
        id=package_id,
        version=version,
        name="My Mod",
        dependencies=[DependencySpec(d, r) for d, r in (deps or [])],
    )
    (root / "qpm.json").write_text(json.dumps(manifest.to_dict(), indent=4) + "\n", encoding="utf-8")
    if not with_artifacts:
        return
    (root / "Android.mk").write_text(ANDROID_MK, encoding="utf-8")
    (root / ".vscode").mkdir(exist_ok=True)
    (root / ".vscode" / "c_cpp_properties.json").write_text(json.dumps({
        "configurations": [{
            "name": "Quest",
            "includePath": ["${workspaceFolder}/include"],
            "defines": ['ID="mymod"', 'VERSION="0.1.0"', "__GNUC__"],
        }],
        "version": 4,
    }, indent=4) + "\n", encoding="utf-8")
    (root / "bmbfmod.json").write_text(json.dumps({
        "id": "mymod", "name": "My Mod", "version": "0.1.0", "gameVersion": "1.11.0",
    }, indent=4) + "\n", encoding="utf-8")


def make_container(root: Path, registry: FakeRegistry) -> ServiceContainer:
    cfg = Config(project_dir=str(root), cache_dir=str(root.parent / "cache"))
    container = ServiceContainer(config=cfg)
    container._instances["registry"] = registry
    return container


@pytest.fixture()
def project_dir(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture()
def make_project(project_dir: Path, registry: FakeRegistry):
    """写入工程文件并返回接入 FakeRegistry 的 ServiceContainer"""

    def _make(
        deps: list[tuple[str, str]] | None = None,
        *,
        root: Path | None = None,
        **kwargs: Any,
    ) -> ServiceContainer:
        root = root or project_dir
        root.mkdir(parents=True, exist_ok=True)
        write_project(root, deps, **kwargs)
        return make_container(root, registry)

    return _make


@pytest.fixture()
def new_container(project_dir: Path, registry: FakeRegistry):
    """返回在 project_dir 上新建容器的工厂（不写任何文件）"""
    return lambda: make_container(project_dir, registry)
