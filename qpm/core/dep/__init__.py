"""依赖解析模块

拆分说明:
- resolver.py: 依赖闭包解析、冲突检测、锁文件维护
- installer.py: 依赖二进制下载与放置（两级缓存）
"""

from qpm.core.dep.installer import BinaryInstaller
from qpm.core.dep.resolver import DependencyResolver, ResolveResult

__all__ = [
    "BinaryInstaller",
    "DependencyResolver",
    "ResolveResult",
]
