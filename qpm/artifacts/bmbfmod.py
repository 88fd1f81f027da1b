"""bmbfmod.json（打包元数据）

只维护 id / name / version 三个字段，其余键原样保留。
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from qpm.core.exceptions import ArtifactFormatError, ArtifactWriteError
from qpm.utils.json_io import load_json, save_json

logger = logging.getLogger(__name__)


class BmbfMod:
    def __init__(self, data: dict[str, Any]) -> None:
        if not isinstance(data, dict):
            raise ArtifactFormatError("bmbfmod.json 顶层必须是对象")
        self.data = data

    def update_id(self, package_id: str) -> None:
        self.data["id"] = package_id

    def update_version(self, version: str) -> None:
        self.data["version"] = version

    def update_name(self, name: str) -> None:
        self.data["name"] = name


class BmbfModProvider:
    """bmbfmod.json 存取；文件不存在时 get() 返回 None"""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def get(self) -> BmbfMod | None:
        try:
            data = load_json(self.path)
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            raise ArtifactFormatError(f"无法解析 {self.path}: {e}") from e
        if data is None:
            return None
        return BmbfMod(data)

    def save(self, mod: BmbfMod) -> bool:
        try:
            written = save_json(self.path, mod.data)
        except OSError as e:
            raise ArtifactWriteError(f"写入失败: {self.path} - {e}") from e
        if written:
            logger.info("已更新 %s", self.path)
        return written
