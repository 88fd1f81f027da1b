"""Android.mk 模块描述

文件结构:
  header      第一个模块之前的内容（如 LOCAL_PATH := $(call my-dir)）
  modules     若干模块，每个模块:
                prefix_lines   紧邻的注释块 + include $(CLEAR_VARS)
                LOCAL_MODULE := <id>
                LOCAL_SRC_FILES / LOCAL_EXPORT_C_INCLUDES
                其他行（原样保留，保持相对顺序）
                LOCAL_C_INCLUDES / LOCAL_CFLAGS -D'NAME="value"' / LOCAL_SHARED_LIBRARIES
                include $(BUILD_...) 或 include $(PREBUILT_...)
  footer      最后一个构建指令之后的内容

序列化是规范化的：parse(serialize(mk)) == mk，因此同一修改重复执行
得到的文件内容不变。最后一个解析出的模块标记为 primary（工程自身产物），
新增的依赖模块总是插入到 primary 之前。
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from qpm.core.exceptions import ArtifactFormatError, ArtifactWriteError
from qpm.core.models import same_id
from qpm.utils.json_io import write_if_changed

logger = logging.getLogger(__name__)

ROLE_PRIMARY = "primary"
ROLE_DEPENDENCY = "dependency"

CLEAR_VARS_LINE = "include $(CLEAR_VARS)"
PREBUILT_SHARED_LINE = "include $(PREBUILT_SHARED_LIBRARY)"

_CLEAR_RE = re.compile(r"^\s*include\s+\$\(CLEAR_VARS\)\s*$")
_BUILD_RE = re.compile(r"^\s*include\s+\$\((?:BUILD|PREBUILT)_[A-Z_]+\)\s*$")
_ASSIGN_RE = re.compile(r"^\s*(LOCAL_[A-Z_]+)\s*(:=|\+=|=)\s*(.*?)\s*$")
_DEFINE_RE = re.compile(r"""-D'([A-Za-z_][A-Za-z0-9_]*)="([^"]*)"'""")


@dataclass
class Module:
    """单个构建模块"""

    id: str
    prefix_lines: list[str] = field(default_factory=list)
    sources: list[str] = field(default_factory=list)
    export_includes: list[str] = field(default_factory=list)
    include_paths: list[str] = field(default_factory=list)
    defines: dict[str, str] = field(default_factory=dict)
    shared_libs: list[str] = field(default_factory=list)
    extra_lines: list[str] = field(default_factory=list)
    build_line: str = "include $(BUILD_SHARED_LIBRARY)"
    role: str = ROLE_DEPENDENCY

    def add_define(self, name: str, value: str) -> None:
        self.defines[name] = value

    def add_include_path(self, path: str) -> None:
        if path not in self.include_paths:
            self.include_paths.append(path)

    def has_shared_library(self, lib: str) -> bool:
        return any(same_id(s, lib) for s in self.shared_libs)

    def add_shared_library(self, lib: str) -> None:
        if not self.has_shared_library(lib):
            self.shared_libs.append(lib)

    def remove_shared_library(self, lib: str) -> None:
        self.shared_libs = [s for s in self.shared_libs if not same_id(s, lib)]

    def to_lines(self) -> list[str]:
        lines = list(self.prefix_lines)
        lines.append(f"LOCAL_MODULE := {self.id}")
        if self.sources:
            lines.append(f"LOCAL_SRC_FILES := {' '.join(self.sources)}")
        if self.export_includes:
            lines.append(f"LOCAL_EXPORT_C_INCLUDES := {' '.join(self.export_includes)}")
        lines.extend(self.extra_lines)
        lines.extend(f"LOCAL_C_INCLUDES += {p}" for p in self.include_paths)
        lines.extend(
            f"LOCAL_CFLAGS += -D'{name}=\"{value}\"'"
            for name, value in self.defines.items()
        )
        lines.extend(f"LOCAL_SHARED_LIBRARIES += {lib}" for lib in self.shared_libs)
        lines.append(self.build_line)
        return lines


@dataclass
class AndroidMk:
    """Android.mk 文件模型"""

    header_lines: list[str] = field(default_factory=list)
    modules: list[Module] = field(default_factory=list)
    footer_lines: list[str] = field(default_factory=list)

    @property
    def primary(self) -> Module | None:
        for m in self.modules:
            if m.role == ROLE_PRIMARY:
                return m
        return self.modules[-1] if self.modules else None

    def find(self, module_id: str) -> Module | None:
        for m in self.modules:
            if same_id(m.id, module_id):
                return m
        return None

    def upsert_dependency(self, module: Module) -> bool:
        """新增或更新依赖模块，并在 primary 中链接该依赖

        已存在同 id 模块时只更新 sources / export_includes。
        没有 primary 或依赖 id 与 primary 相同时不做修改，返回 False。
        """
        main = self.primary
        if main is None:
            logger.warning("Android.mk 中没有主模块，跳过依赖: %s", module.id)
            return False
        if same_id(main.id, module.id):
            logger.warning("依赖 id 与主模块相同，跳过: %s", module.id)
            return False

        existing = self.find(module.id)
        if existing is None:
            module.role = ROLE_DEPENDENCY
            self.modules.insert(self.modules.index(main), module)
        else:
            existing.sources = list(module.sources)
            existing.export_includes = list(module.export_includes)

        main.add_shared_library(module.id)
        return True

    def remove_dependency(self, module_id: str) -> bool:
        """删除依赖模块及 primary 中对它的链接，返回是否有改动"""
        main = self.primary
        kept = [
            m for m in self.modules
            if m is main or not same_id(m.id, module_id)
        ]
        changed = len(kept) != len(self.modules)
        self.modules = kept
        if main is not None and main.has_shared_library(module_id):
            main.remove_shared_library(module_id)
            changed = True
        return changed

    def serialize(self) -> str:
        lines = list(self.header_lines)
        for m in self.modules:
            lines.extend(m.to_lines())
        lines.extend(self.footer_lines)
        return "\n".join(lines) + "\n"

    @classmethod
    def parse(cls, text: str) -> AndroidMk:
        """解析 Android.mk 文本，容忍模块之外的无关内容"""
        mk = cls()
        pending: list[str] = []
        current: Module | None = None

        for line in _logical_lines(text):
            assign = _ASSIGN_RE.match(line)
            if current is None:
                if assign and assign.group(1) == "LOCAL_MODULE":
                    if not mk.modules:
                        mk.header_lines, prefix = _split_header(pending)
                    else:
                        prefix = pending
                    current = Module(id=assign.group(3), prefix_lines=prefix)
                    pending = []
                else:
                    pending.append(line)
                continue

            if _BUILD_RE.match(line):
                current.build_line = line.strip()
                mk.modules.append(current)
                current = None
            elif assign:
                _apply_assignment(current, line, *assign.groups())
            else:
                current.extra_lines.append(line)

        if current is not None:
            raise ArtifactFormatError(
                f"Android.mk 模块 '{current.id}' 缺少 include $(BUILD_...) 构建指令"
            )
        if mk.modules:
            mk.modules[-1].role = ROLE_PRIMARY
            mk.footer_lines = pending
        else:
            mk.header_lines = pending
        return mk


def _logical_lines(text: str) -> list[str]:
    """按行读取，并把以反斜杠结尾的续行拼接成一行

    续行片段去掉首尾空白后以单个空格连接，序列化时写成单行。
    """
    lines: list[str] = []
    pieces: list[str] = []
    for raw in text.splitlines():
        stripped = raw.rstrip()
        if stripped.endswith("\\"):
            piece = stripped[:-1].rstrip()
            pieces.append(piece if not pieces else piece.strip())
            continue
        if not pieces:
            lines.append(raw)
            continue
        pieces.append(stripped.strip())
        lines.append(" ".join(p for p in pieces if p))
        pieces = []
    if pieces:
        lines.append(" ".join(p for p in pieces if p))
    return lines


def _split_header(lines: list[str]) -> tuple[list[str], list[str]]:
    """把第一个模块之前的内容拆成 (文件头, 模块前缀)"""
    clear_idx = None
    for i in range(len(lines) - 1, -1, -1):
        if _CLEAR_RE.match(lines[i]):
            clear_idx = i
            break
    if clear_idx is None:
        return list(lines), []
    start = clear_idx
    while start > 0 and lines[start - 1].lstrip().startswith("#"):
        start -= 1
    return lines[:start], lines[start:]


def _apply_assignment(module: Module, line: str, name: str, op: str, value: str) -> None:
    values = value.split()
    if name == "LOCAL_MODULE":
        module.id = value
    elif name == "LOCAL_SRC_FILES":
        module.sources = values if op != "+=" else module.sources + values
    elif name == "LOCAL_EXPORT_C_INCLUDES":
        module.export_includes = values if op != "+=" else module.export_includes + values
    elif name == "LOCAL_C_INCLUDES":
        for v in values:
            module.add_include_path(v)
    elif name == "LOCAL_SHARED_LIBRARIES":
        for v in values:
            module.add_shared_library(v)
    elif name == "LOCAL_CFLAGS":
        for define, define_value in _DEFINE_RE.findall(value):
            module.defines[define] = define_value
        rest = _DEFINE_RE.sub("", value).strip()
        if rest:
            module.extra_lines.append(f"LOCAL_CFLAGS {op} {' '.join(rest.split())}")
    else:
        module.extra_lines.append(line)


class AndroidMkProvider:
    """Android.mk 文件存取；文件不存在时 get() 返回 None"""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def get(self) -> AndroidMk | None:
        if not self.path.exists():
            return None
        try:
            text = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ArtifactFormatError(f"无法读取 {self.path}: {e}") from e
        return AndroidMk.parse(text)

    def save(self, mk: AndroidMk) -> bool:
        try:
            written = write_if_changed(self.path, mk.serialize())
        except OSError as e:
            raise ArtifactWriteError(f"写入失败: {self.path} - {e}") from e
        if written:
            logger.info("已更新 %s", self.path)
        return written
