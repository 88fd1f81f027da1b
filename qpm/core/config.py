"""集中配置管理

项目文件名、远程仓库地址、网络超时、下载缓存目录等统一在此定义。
支持从 YAML 文件加载 + 编程式覆盖。
"""

from __future__ import annotations

import logging
import tempfile
from dataclasses import asdict, dataclass, field
from pathlib import Path

import yaml

from qpm.core.exceptions import ConfigError
from qpm.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "qpm.yml"


@dataclass
class Config:
    """包管理器全局配置"""

    # 工程文件（相对 project_dir）
    project_dir: str = "."
    package_file: str = "qpm.json"
    lock_file: str = "qpm.lock.json"
    android_mk: str = "Android.mk"
    cpp_properties: str = ".vscode/c_cpp_properties.json"
    bmbfmod: str = "bmbfmod.json"

    # 远程仓库
    registry_url: str = "https://qpackages.com"
    registry_token: str = ""
    request_timeout: float = 30.0  # 秒，注册表查询与二进制下载共用
    list_limit: int = 0            # 0 表示不限制

    # 共享下载缓存目录，空串表示 <系统临时目录>/qpm_temp
    cache_dir: str = ""

    # 自定义扩展 (放不到字段里的配置项)
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_file(cls, path: str = DEFAULT_CONFIG_FILE) -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        try:
            data = load_yaml(path)
        except (yaml.YAMLError, ValueError, OSError) as e:
            raise ConfigError(f"配置文件无效: {path} - {e}") from e
        if not data:
            return cls()
        known = {f for f in cls.__dataclass_fields__ if f != "extra"}
        matched = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        try:
            cfg = cls(**matched)
        except TypeError as e:
            raise ConfigError(f"配置项无效: {path} - {e}") from e
        try:
            if cfg.request_timeout is not None:
                cfg.request_timeout = float(cfg.request_timeout)
            cfg.list_limit = int(cfg.list_limit or 0)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"配置项类型错误: {path} - {e}") from e
        if cfg.request_timeout is not None and cfg.request_timeout <= 0:
            raise ConfigError(f"request_timeout 必须为正数: {cfg.request_timeout}")
        cfg.extra = extra
        return cfg

    def project_path(self, relative: str) -> Path:
        """将工程内相对路径解析到 project_dir 下"""
        return Path(self.project_dir) / relative

    def resolved_cache_dir(self) -> Path:
        if self.cache_dir:
            return Path(self.cache_dir)
        return Path(tempfile.gettempdir()) / "qpm_temp"

    def to_dict(self) -> dict:
        return asdict(self)


# 全局单例，首次 import 时不加载文件；由 CLI 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = DEFAULT_CONFIG_FILE) -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.debug("配置已加载: %s", path)
    return _current
