"""qpm - 原生构建工程的包管理器"""

__version__ = "0.4.0"
