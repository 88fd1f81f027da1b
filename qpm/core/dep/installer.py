"""依赖二进制放置器

职责:
- 选择下载链接（debug 优先，依赖声明 useRelease 时用 release）
- 计算目标文件名（overrideSoName 或 lib{id}_{version}.so）
- 两级缓存放置: 目标已存在 → 不动；共享临时缓存命中 → 复制；否则下载到缓存再复制

共享缓存目录跨工程复用，同一依赖版本在一台机器上只下载一次。
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import urllib.error
import urllib.request
from pathlib import Path

from qpm.core.exceptions import ArtifactWriteError, MissingArtifactLinkError, RegistryError
from qpm.core.models import DependencySpec, PackageManifest, binary_file_name
from qpm.utils.net import require_web_url

logger = logging.getLogger(__name__)


def select_download_link(resolved: PackageManifest, spec: DependencySpec) -> str:
    """选择二进制下载链接

    链接取自依赖自身清单，useRelease 标志取自本工程的依赖声明。
    """
    ext = resolved.additional_data
    debug_link = ext.debug_so_link
    if debug_link and not spec.additional_data.use_release:
        return debug_link
    release_link = ext.release_so_link
    if not release_link:
        raise MissingArtifactLinkError(
            f"依赖 '{resolved.id}' 没有 'soLink' 属性，无法下载要链接的二进制"
        )
    return release_link


class BinaryInstaller:
    """依赖二进制放置器"""

    def __init__(
        self,
        project_dir: str | Path,
        cache_dir: str | Path,
        *,
        timeout: float = 30.0,
    ) -> None:
        self.project_dir = Path(project_dir)
        self.cache_dir = Path(cache_dir)
        self.timeout = timeout

    def destination(self, project: PackageManifest, resolved: PackageManifest) -> Path:
        return self.project_dir / project.dependencies_dir / binary_file_name(resolved)

    def place(
        self,
        project: PackageManifest,
        resolved: PackageManifest,
        spec: DependencySpec,
    ) -> Path | None:
        """放置依赖二进制，返回目标路径；headersOnly 依赖返回 None"""
        if resolved.additional_data.headers_only:
            logger.info("仅头文件依赖，跳过二进制: %s@%s", resolved.id, resolved.version)
            return None

        link = select_download_link(resolved, spec)
        name = binary_file_name(resolved)
        dest = self.destination(project, resolved)
        if dest.exists():
            logger.info("二进制已存在: %s", dest)
            return dest

        cached = self.cache_dir / name
        if cached.exists():
            logger.info("共享缓存命中: %s", cached)
        else:
            self._download(link, cached)

        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(cached, dest)
        except OSError as e:
            raise ArtifactWriteError(f"复制二进制失败: {cached} -> {dest} - {e}") from e
        logger.info("已放置: %s@%s -> %s", resolved.id, resolved.version, dest)
        return dest

    def _download(self, url: str, target: Path) -> None:
        """流式下载到临时文件，完成后原子替换为缓存文件"""
        url = require_web_url(url, what=f"二进制下载 {target.name}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=str(target.parent), suffix=".part")
        except OSError as e:
            raise ArtifactWriteError(f"无法创建缓存文件: {target} - {e}") from e

        logger.info("下载二进制: %s", url)
        try:
            with os.fdopen(fd, "wb") as out, \
                    urllib.request.urlopen(url, timeout=self.timeout) as resp:  # nosec B310
                shutil.copyfileobj(resp, out)
            os.replace(tmp, str(target))
        except urllib.error.URLError as e:
            Path(tmp).unlink(missing_ok=True)
            raise RegistryError(f"下载失败: {url} - {e}") from e
        except OSError as e:
            Path(tmp).unlink(missing_ok=True)
            # 超时与连接中断属于传输失败
            if isinstance(e, (TimeoutError, ConnectionError)):
                raise RegistryError(f"下载中断: {url} - {e}") from e
            raise ArtifactWriteError(f"写入缓存失败: {target} - {e}") from e
        logger.info("已缓存: %s", target)
