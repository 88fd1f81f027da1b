"""依赖解析器

职责:
- 按声明顺序解析工程清单中的每个依赖，并递归解析传递依赖
- 锁文件中已满足范围的依赖直接复用，不访问网络
- 同一 id 被不相容范围请求时重选版本并重走，仍无解则报冲突（不做完整回溯搜索）
- 解析成功后分发 "dependency resolved" / "dependency removed" 事件并写锁文件

解析分两阶段进行:
  1. 只读阶段：对照远程仓库求出完整闭包，不产生任何文件副作用
  2. 提交阶段：依次分发事件（二进制放置、Android.mk 同步），最后写锁文件
任一阶段失败都不会提交锁文件，整个解析是全有或全无的。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from qpm.core.events import DependencyRemoved, DependencyResolved, EventDispatcher
from qpm.core.exceptions import DependencyConflictError
from qpm.core.models import (
    DependencySpec,
    LockFile,
    PackageManifest,
    ResolvedDependency,
    same_id,
)
from qpm.core.versioning import satisfies, select_highest

if TYPE_CHECKING:
    from qpm.core.manifest_store import ManifestStore
    from qpm.core.registry_client import ModPair, RegistryClient

logger = logging.getLogger(__name__)


@dataclass
class ResolveResult:
    """一次解析的汇总（id@version 形式）"""

    resolved: list[str] = field(default_factory=list)   # 本次新解析
    satisfied: list[str] = field(default_factory=list)  # 锁文件中已满足
    pruned: list[str] = field(default_factory=list)     # 从锁文件中移除

    @property
    def changed(self) -> bool:
        return bool(self.resolved or self.pruned)


class _RestartPass(Exception):
    """某个 id 的版本被重新钉住，需要从头遍历"""


class _ResolutionPass:
    """一次解析遍历的状态（只读阶段）

    已选版本不满足后来的范围时，选出同时满足全部请求的最高版本并钉住，
    然后丢弃本轮结果从头重走。旧版本带进来的传递依赖和范围请求随之消失。
    仓库查询结果在重走之间缓存，不会重复访问网络。
    """

    def __init__(
        self,
        registry: RegistryClient,
        project: PackageManifest,
        lock: LockFile,
    ) -> None:
        self.registry = registry
        self.project = project
        self.lock = lock
        # 以下字典均以小写 id 为键，插入顺序即解析顺序
        self.chosen: dict[str, ResolvedDependency] = {}
        self.specs: dict[str, DependencySpec] = {}
        self.requests: dict[str, list[tuple[str, str]]] = {}
        self.fresh: set[str] = set()
        # 跨重走保留
        self.pins: dict[str, str] = {}
        self._tried: set[tuple[str, str]] = set()
        self._latest: dict[tuple[str, str], ModPair] = {}
        self._manifests: dict[tuple[str, str], PackageManifest] = {}
        self._versions: dict[str, list[str]] = {}

    def run(self) -> None:
        while True:
            self.chosen = {}
            self.specs = {}
            self.requests = {}
            self.fresh = set()
            try:
                self._walk(self.project.id, self.project.dependencies)
                return
            except _RestartPass:
                logger.debug("版本钉住已变化，重新遍历: %s", self.pins)

    def _walk(self, requester: str, specs: list[DependencySpec]) -> None:
        for spec in specs:
            self._visit(requester, spec)

    def _visit(self, requester: str, spec: DependencySpec) -> None:
        if same_id(spec.id, self.project.id):
            logger.warning("%s 依赖了本工程自身 (%s)，已忽略", requester, spec.id)
            return

        key = spec.id.lower()
        self.requests.setdefault(key, []).append((requester, spec.version_range))
        if requester == self.project.id or key not in self.specs:
            # 工程自身的依赖声明优先（useRelease 等标志以它为准）
            self.specs[key] = spec

        chosen = self.chosen.get(key)
        if chosen is not None:
            if not satisfies(chosen.version, spec.version_range):
                self._repin(key, spec.id)
            return

        pin = self.pins.get(key)
        if pin is not None and not satisfies(pin, spec.version_range):
            self._repin(key, spec.id)

        locked = self.lock.get(spec.id)
        if (
            locked is not None
            and satisfies(locked.version, spec.version_range)
            and pin in (None, locked.version)
        ):
            logger.debug("已满足: %s@%s", locked.id, locked.version)
            self.chosen[key] = locked
            self._walk(locked.id, locked.manifest.dependencies)
            return

        if pin is None:
            pair = self._query_latest(key, spec)
            dep_id, version = pair.id, pair.version
        else:
            dep_id, version = spec.id, pin
        manifest = self._fetch(key, dep_id, version)
        logger.info("已解析: %s@%s (%s)", dep_id, version, spec.version_range)
        self._record(key, ResolvedDependency(manifest.id or dep_id, version, manifest))

    def _repin(self, key: str, dep_id: str) -> None:
        """钉住同时满足全部请求范围的最高版本并重走；无解或已试过则冲突"""
        requests = self.requests[key]
        if key not in self._versions:
            self._versions[key] = [p.version for p in self.registry.list_versions(dep_id)]
        best = select_highest(self._versions[key], [rng for _, rng in requests])
        if best is None or (key, best) in self._tried:
            raise DependencyConflictError(dep_id, requests)
        self._tried.add((key, best))
        self.pins[key] = best
        logger.info("版本重选: %s -> %s（满足 %d 个请求）", dep_id, best, len(requests))
        raise _RestartPass()

    def _query_latest(self, key: str, spec: DependencySpec) -> ModPair:
        cache_key = (key, spec.version_range)
        if cache_key not in self._latest:
            self._latest[cache_key] = self.registry.latest(spec.id, spec.version_range)
        return self._latest[cache_key]

    def _fetch(self, key: str, dep_id: str, version: str) -> PackageManifest:
        cache_key = (key, version)
        if cache_key not in self._manifests:
            self._manifests[cache_key] = self.registry.fetch_manifest(dep_id, version)
        return self._manifests[cache_key]

    def _record(self, key: str, entry: ResolvedDependency) -> None:
        # 先记录再递归，菱形依赖与环都只会解析一次
        self.chosen[key] = entry
        self.fresh.add(key)
        self._walk(entry.id, entry.manifest.dependencies)


class DependencyResolver:
    """依赖解析器 — 远程仓库 + 锁文件 + 事件分发"""

    def __init__(
        self,
        registry: RegistryClient,
        store: ManifestStore,
        dispatcher: EventDispatcher | None = None,
    ) -> None:
        self.registry = registry
        self.store = store
        self.dispatcher = dispatcher or EventDispatcher()

    def resolve(self, *, refresh: bool = False) -> ResolveResult:
        """解析工程清单的依赖闭包并更新锁文件

        refresh=True 时，锁文件中已满足的依赖也会重新分发
        "dependency resolved"（从缓存重新放置二进制，不访问仓库）。
        """
        project = self.store.load_manifest()
        lock = self.store.load_lock()

        walk = _ResolutionPass(self.registry, project, lock)
        walk.run()

        new_lock = LockFile(entries=list(walk.chosen.values()))
        pruned = [e for e in lock.entries if new_lock.get(e.id) is None]
        result = ResolveResult()

        for key, entry in walk.chosen.items():
            label = f"{entry.id}@{entry.version}"
            if key in walk.fresh:
                result.resolved.append(label)
            else:
                result.satisfied.append(label)
            if key in walk.fresh or refresh:
                self.dispatcher.dispatch(
                    DependencyResolved(project, entry.manifest, walk.specs[key]),
                )

        for entry in pruned:
            result.pruned.append(f"{entry.id}@{entry.version}")
            logger.info("依赖不再需要，移除: %s@%s", entry.id, entry.version)
            self.dispatcher.dispatch(DependencyRemoved(entry.id))

        if result.changed:
            self.store.save_lock(new_lock)
        else:
            logger.info("所有依赖均已满足 (%d 个)", len(result.satisfied))
        return result

    def remove(self, dependency_id: str) -> bool:
        """从锁文件移除已解析依赖并分发 "dependency removed"

        依赖未解析时什么也不做，返回 False。
        """
        lock = self.store.load_lock()
        entry = lock.remove(dependency_id)
        if entry is None:
            logger.info("依赖未解析，无需移除: %s", dependency_id)
            return False
        self.dispatcher.dispatch(DependencyRemoved(entry.id))
        self.store.save_lock(lock)
        logger.info("已移除依赖: %s@%s", entry.id, entry.version)
        return True
