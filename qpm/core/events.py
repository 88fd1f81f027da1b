"""生命周期事件

每种生命周期变化对应一个不可变事件类型，由 EventDispatcher 同步地、
按固定顺序分发给处理函数。处理函数列表在构造时确定，运行期不再注册。
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Union

from qpm.core.models import DependencySpec, PackageManifest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdChanged:
    new_id: str


@dataclass(frozen=True)
class VersionChanged:
    new_version: str


@dataclass(frozen=True)
class NameChanged:
    new_name: str


@dataclass(frozen=True)
class PackageCreated:
    """新建包；shared_dir / dependencies_dir 取自刚写入的清单"""

    id: str
    version: str
    name: str = ""
    shared_dir: str = ""
    dependencies_dir: str = ""


@dataclass(frozen=True)
class DependencyResolved:
    """一个依赖被解析到具体版本

    project: 本工程清单
    resolved: 依赖自身的完整清单
    spec: 触发解析的依赖声明（useRelease 等标志从这里读取）
    """

    project: PackageManifest
    resolved: PackageManifest
    spec: DependencySpec


@dataclass(frozen=True)
class DependencyRemoved:
    dependency_id: str


Event = Union[
    IdChanged, VersionChanged, NameChanged,
    PackageCreated, DependencyResolved, DependencyRemoved,
]
EventHandler = Callable[[Event], None]


class EventDispatcher:
    """同步事件分发器 — 依次调用固定的处理函数列表

    处理函数抛出的异常直接向上传播，由触发方决定是否中止。
    """

    def __init__(self, handlers: Sequence[EventHandler] = ()) -> None:
        self._handlers: tuple[EventHandler, ...] = tuple(handlers)

    @property
    def handlers(self) -> tuple[EventHandler, ...]:
        return self._handlers

    def dispatch(self, event: Event) -> None:
        logger.debug("分发事件: %s", type(event).__name__)
        for handler in self._handlers:
            handler(event)
