"""核心数据模型

PackageManifest / DependencySpec 描述工程清单（qpm.json），
ResolvedDependency / LockFile 描述锁文件（qpm.lock.json）。
id 比较一律大小写不敏感。
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from qpm.core import properties
from qpm.core.exceptions import ValidationError
from qpm.core.versioning import ANY_RANGE, normalize_range, parse_range, parse_version

_SCALAR_TYPES = (str, bool, int, float, type(None))


def same_id(a: str, b: str) -> bool:
    """包 id 比较（大小写不敏感）"""
    return a.lower() == b.lower()


def _check_value(key: str, value: Any) -> None:
    if isinstance(value, _SCALAR_TYPES):
        return
    if isinstance(value, list):
        for item in value:
            _check_value(key, item)
        return
    if isinstance(value, dict):
        for k, v in value.items():
            if not isinstance(k, str):
                raise ValidationError(f"扩展属性 '{key}' 含非字符串键: {k!r}")
            _check_value(key, v)
        return
    raise ValidationError(
        f"扩展属性 '{key}' 的值类型不受支持: {type(value).__name__}"
    )


class ExtensionData(dict):
    """扩展属性（additionalData）

    有序的 str -> JSON 值映射。已知键提供类型化访问器，
    键存在但类型不符时抛出 ValidationError。
    """

    @classmethod
    def from_raw(cls, raw: Any, *, owner: str = "") -> ExtensionData:
        if raw is None:
            return cls()
        if not isinstance(raw, dict):
            raise ValidationError(f"{owner} additionalData 必须是对象")
        for k, v in raw.items():
            if not isinstance(k, str):
                raise ValidationError(f"{owner} additionalData 含非字符串键: {k!r}")
            _check_value(k, v)
        return cls(raw)

    def get_bool(self, key: str, default: bool = False) -> bool:
        if key not in self:
            return default
        value = self[key]
        if not isinstance(value, bool):
            raise ValidationError(
                f"扩展属性 '{key}' 应为布尔值，实际为 {type(value).__name__}: {value!r}"
            )
        return value

    def get_str(self, key: str) -> str | None:
        if key not in self or self[key] is None:
            return None
        value = self[key]
        if not isinstance(value, str):
            raise ValidationError(
                f"扩展属性 '{key}' 应为字符串，实际为 {type(value).__name__}: {value!r}"
            )
        return value

    @property
    def headers_only(self) -> bool:
        return self.get_bool(properties.HEADERS_ONLY)

    @property
    def release_so_link(self) -> str | None:
        return self.get_str(properties.RELEASE_SO_LINK)

    @property
    def debug_so_link(self) -> str | None:
        return self.get_str(properties.DEBUG_SO_LINK)

    @property
    def override_so_name(self) -> str | None:
        return self.get_str(properties.OVERRIDE_SO_NAME)

    @property
    def use_release(self) -> bool:
        return self.get_bool(properties.USE_RELEASE)


@dataclass
class DependencySpec:
    """清单中声明的一个依赖"""

    id: str
    version_range: str = ANY_RANGE
    additional_data: ExtensionData = field(default_factory=ExtensionData)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "versionRange": self.version_range,
            "additionalData": dict(self.additional_data),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DependencySpec:
        if not isinstance(data, dict):
            raise ValidationError(f"依赖条目必须是对象: {data!r}")
        dep_id = str(data.get("id") or "")
        return cls(
            id=dep_id,
            version_range=normalize_range(data.get("versionRange")),
            additional_data=ExtensionData.from_raw(
                data.get("additionalData"), owner=f"依赖 '{dep_id}'",
            ),
        )


@dataclass
class PackageManifest:
    """包清单：身份、版本、依赖列表与扩展属性"""

    id: str
    version: str
    name: str = ""
    url: str | None = None
    shared_dir: str = "shared"
    dependencies_dir: str = "extern"
    dependencies: list[DependencySpec] = field(default_factory=list)
    additional_data: ExtensionData = field(default_factory=ExtensionData)
    # 未识别的顶层键原样保留
    extra: dict[str, Any] = field(default_factory=dict)

    def validate(self) -> None:
        """校验 id 非空、版本合法、依赖 id 唯一且范围合法"""
        if not self.id or not self.id.strip():
            raise ValidationError("包 id 不能为空")
        parse_version(self.version)
        seen: set[str] = set()
        for dep in self.dependencies:
            if not dep.id:
                raise ValidationError(f"包 '{self.id}' 存在空 id 的依赖")
            key = dep.id.lower()
            if key in seen:
                raise ValidationError(f"包 '{self.id}' 的依赖 id 重复: {dep.id}")
            seen.add(key)
            parse_range(dep.version_range)

    def find_dependency(self, dep_id: str) -> DependencySpec | None:
        for dep in self.dependencies:
            if same_id(dep.id, dep_id):
                return dep
        return None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "sharedDir": self.shared_dir,
            "dependenciesDir": self.dependencies_dir,
            "info": {
                "name": self.name,
                "id": self.id,
                "version": self.version,
                "url": self.url,
                "additionalData": dict(self.additional_data),
            },
            "dependencies": [d.to_dict() for d in self.dependencies],
        }
        for k, v in self.extra.items():
            data.setdefault(k, v)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PackageManifest:
        if not isinstance(data, dict):
            raise ValidationError("清单内容必须是 JSON 对象")
        info = data.get("info") or {}
        if not isinstance(info, dict):
            raise ValidationError("清单 info 字段必须是对象")
        deps_raw = data.get("dependencies") or []
        if not isinstance(deps_raw, list):
            raise ValidationError("清单 dependencies 字段必须是数组")
        pkg_id = str(info.get("id") or "")
        known = {"sharedDir", "dependenciesDir", "info", "dependencies"}
        return cls(
            id=pkg_id,
            version=str(info.get("version") or ""),
            name=str(info.get("name") or ""),
            url=info.get("url"),
            shared_dir=str(data.get("sharedDir") or "shared"),
            dependencies_dir=str(data.get("dependenciesDir") or "extern"),
            dependencies=[DependencySpec.from_dict(d) for d in deps_raw],
            additional_data=ExtensionData.from_raw(
                info.get("additionalData"), owner=f"包 '{pkg_id}'",
            ),
            extra={k: v for k, v in data.items() if k not in known},
        )


def binary_file_name(manifest: PackageManifest) -> str:
    """依赖二进制文件名：overrideSoName 优先，否则 lib{id}_{version}.so

    id 与版本中的非字母数字字符（连续的视为一个）统一替换为下划线。
    """
    override = manifest.additional_data.override_so_name
    if override:
        return override
    stem = re.sub(r"[^0-9A-Za-z]+", "_", f"{manifest.id}_{manifest.version}")
    return f"lib{stem}.so"


@dataclass
class ResolvedDependency:
    """锁文件条目：依赖绑定到的具体版本及其当时的完整清单"""

    id: str
    version: str
    manifest: PackageManifest

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "version": self.version,
            "config": self.manifest.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResolvedDependency:
        if not isinstance(data, dict) or "config" not in data:
            raise ValidationError(f"锁文件条目无效: {data!r}")
        manifest = PackageManifest.from_dict(data["config"])
        return cls(
            id=str(data.get("id") or manifest.id),
            version=str(data.get("version") or manifest.version),
            manifest=manifest,
        )


@dataclass
class LockFile:
    """已解析依赖闭包，按解析顺序保存"""

    entries: list[ResolvedDependency] = field(default_factory=list)

    def get(self, dep_id: str) -> ResolvedDependency | None:
        for entry in self.entries:
            if same_id(entry.id, dep_id):
                return entry
        return None

    def put(self, entry: ResolvedDependency) -> None:
        """写入条目，同 id 的旧条目被原位替换"""
        for i, existing in enumerate(self.entries):
            if same_id(existing.id, entry.id):
                self.entries[i] = entry
                return
        self.entries.append(entry)

    def remove(self, dep_id: str) -> ResolvedDependency | None:
        for i, entry in enumerate(self.entries):
            if same_id(entry.id, dep_id):
                return self.entries.pop(i)
        return None

    def to_dict(self) -> dict[str, Any]:
        return {"includedDependencies": [e.to_dict() for e in self.entries]}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> LockFile:
        if not data:
            return cls()
        if not isinstance(data, dict):
            raise ValidationError("锁文件内容必须是 JSON 对象")
        raw = data.get("includedDependencies") or []
        return cls(entries=[ResolvedDependency.from_dict(d) for d in raw])
