"""派生构建文件模型

拆分说明:
- android_mk.py: Android.mk 模块描述（BuildModule）
- cpp_properties.py: .vscode/c_cpp_properties.json（IncludePathSet）
- bmbfmod.py: bmbfmod.json（PackagingMetadata）

三个文件都是可选的：文件不存在时 provider.get() 返回 None。
"""

from qpm.artifacts.android_mk import AndroidMk, AndroidMkProvider, Module
from qpm.artifacts.bmbfmod import BmbfMod, BmbfModProvider
from qpm.artifacts.cpp_properties import CppProperties, CppPropertiesProvider

__all__ = [
    "AndroidMk",
    "AndroidMkProvider",
    "Module",
    "BmbfMod",
    "BmbfModProvider",
    "CppProperties",
    "CppPropertiesProvider",
]
