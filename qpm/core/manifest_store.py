"""工程清单与锁文件的读写

职责:
- 读取/写入 qpm.json（PackageManifest）
- 读取/写入 qpm.lock.json（LockFile）
- JSON 格式错误统一转换为 ValidationError，写入失败转换为 ArtifactWriteError
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from qpm.core.exceptions import ArtifactWriteError, ValidationError
from qpm.core.models import LockFile, PackageManifest
from qpm.utils.json_io import load_json, save_json

logger = logging.getLogger(__name__)


class ManifestStore:
    """清单 / 锁文件存取"""

    def __init__(self, package_path: str | Path, lock_path: str | Path) -> None:
        self.package_path = Path(package_path)
        self.lock_path = Path(lock_path)

    def has_manifest(self) -> bool:
        return self.package_path.exists()

    def load_manifest(self) -> PackageManifest:
        """读取并校验工程清单，不存在时报错"""
        data = self._read(self.package_path)
        if data is None:
            raise ValidationError(
                f"清单文件不存在: {self.package_path}，请先执行 qpm package create"
            )
        manifest = PackageManifest.from_dict(data)
        manifest.validate()
        return manifest

    def save_manifest(self, manifest: PackageManifest) -> None:
        manifest.validate()
        self._write(self.package_path, manifest.to_dict())

    def load_lock(self) -> LockFile:
        """读取锁文件，不存在时返回空锁"""
        return LockFile.from_dict(self._read(self.lock_path))

    def save_lock(self, lock: LockFile) -> bool:
        written = self._write(self.lock_path, lock.to_dict())
        if written:
            logger.info("锁文件已更新: %s (%d 个依赖)", self.lock_path, len(lock.entries))
        return written

    @staticmethod
    def _read(path: Path) -> dict | None:
        try:
            return load_json(path)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ValidationError(f"JSON 格式错误: {path} - {e}") from e

    @staticmethod
    def _write(path: Path, data: dict) -> bool:
        try:
            return save_json(path, data)
        except OSError as e:
            raise ArtifactWriteError(f"写入失败: {path} - {e}") from e
