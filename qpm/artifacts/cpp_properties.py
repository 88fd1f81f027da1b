"""VSCode c_cpp_properties.json（IDE 头文件路径描述）

每个 configurations 条目包含 includePath 列表与 defines 列表；
包 id / 版本以 ``ID="..."`` / ``VERSION="..."`` 宏的形式写入 defines。
其余键原样保留。
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from qpm.core.exceptions import ArtifactFormatError, ArtifactWriteError
from qpm.utils.json_io import load_json, save_json

logger = logging.getLogger(__name__)

WORKSPACE_PREFIX = "${workspaceFolder}/"


class CppProperties:
    """c_cpp_properties.json 文件模型"""

    def __init__(self, data: dict[str, Any]) -> None:
        if not isinstance(data, dict):
            raise ArtifactFormatError("c_cpp_properties.json 顶层必须是对象")
        configs = data.get("configurations")
        if not isinstance(configs, list) or not all(isinstance(c, dict) for c in configs):
            raise ArtifactFormatError("c_cpp_properties.json 缺少有效的 configurations 数组")
        self.data = data

    @property
    def configurations(self) -> list[dict[str, Any]]:
        return self.data["configurations"]

    def include_paths(self) -> list[str]:
        """合并全部配置的 includePath（去重，保持顺序）"""
        seen: list[str] = []
        for cfg in self.configurations:
            for p in cfg.get("includePath") or []:
                if p not in seen:
                    seen.append(p)
        return seen

    def add_include_path(self, path: str) -> None:
        for cfg in self.configurations:
            paths = cfg.setdefault("includePath", [])
            if path not in paths:
                paths.append(path)

    def _set_macro(self, name: str, value: str) -> None:
        entry = f'{name}="{value}"'
        for cfg in self.configurations:
            defines = cfg.setdefault("defines", [])
            for i, d in enumerate(defines):
                if isinstance(d, str) and d.split("=", 1)[0] == name:
                    defines[i] = entry
                    break
            else:
                defines.append(entry)

    def update_id(self, package_id: str) -> None:
        self._set_macro("ID", package_id)

    def update_version(self, version: str) -> None:
        self._set_macro("VERSION", version)


class CppPropertiesProvider:
    """c_cpp_properties.json 存取；文件不存在时 get() 返回 None"""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def get(self) -> CppProperties | None:
        try:
            data = load_json(self.path)
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            raise ArtifactFormatError(f"无法解析 {self.path}: {e}") from e
        if data is None:
            return None
        return CppProperties(data)

    def save(self, props: CppProperties) -> bool:
        try:
            written = save_json(self.path, props.data)
        except OSError as e:
            raise ArtifactWriteError(f"写入失败: {self.path} - {e}") from e
        if written:
            logger.info("已更新 %s", self.path)
        return written
