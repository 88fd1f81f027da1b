"""依赖解析器测试 - 锁文件复用、冲突检测、事件分发与全有或全无提交"""

from __future__ import annotations

from pathlib import Path

import pytest

from qpm.core.dep.resolver import DependencyResolver
from qpm.core.events import DependencyRemoved, DependencyResolved, EventDispatcher
from qpm.core.exceptions import DependencyConflictError, MissingArtifactLinkError, NotFoundError
from qpm.core.models import DependencySpec, ExtensionData


def _snapshot(root: Path) -> dict[str, bytes]:
    return {
        str(p.relative_to(root)): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file() and "cache" not in p.parts
    }


class TestFreshResolve:
    def test_resolves_highest_matching(self, make_project, registry, downloads, project_dir: Path) -> None:
        for v in ("1.0.0", "1.2.0", "2.0.0"):
            registry.add("hook", v)
        c = make_project([("hook", "^1.0.0")])

        result = c.resolver.resolve()

        assert result.resolved == ["hook@1.2.0"]
        lock = c.store.load_lock()
        assert [(e.id, e.version) for e in lock.entries] == [("hook", "1.2.0")]
        binary = project_dir / "extern" / "libhook_1_2_0.so"
        assert binary.read_bytes() == b"binary from https://cdn.test/hook/1.2.0/release.so"
        mk = c.android_mk.get()
        assert [m.id for m in mk.modules] == ["hook", "mymod"]
        assert mk.find("hook").sources == ["extern/libhook_1_2_0.so"]
        assert mk.find("hook").export_includes == ["extern/hook"]
        assert mk.primary.shared_libs == ["hook"]

    def test_any_range_picks_numeric_highest(self, make_project, registry, downloads) -> None:
        for v in ("1.2.0", "1.10.0", "1.9.0"):
            registry.add("hook", v)
        c = make_project([("hook", "any")])
        assert c.resolver.resolve().resolved == ["hook@1.10.0"]

    def test_transitive_dependencies(self, make_project, registry, downloads) -> None:
        registry.add("a", "1.0.0", [("c", "^1.0.0")])
        registry.add("c", "1.1.0")
        c = make_project([("a", "*")])

        result = c.resolver.resolve()

        assert result.resolved == ["a@1.0.0", "c@1.1.0"]
        mk = c.android_mk.get()
        assert [m.id for m in mk.modules] == ["a", "c", "mymod"]
        assert mk.primary.shared_libs == ["a", "c"]

    def test_diamond_fetched_once(self, make_project, registry, downloads) -> None:
        registry.add("a", "1.0.0", [("c", "^1.0.0")])
        registry.add("b", "1.0.0", [("c", "^1.0.0")])
        registry.add("c", "1.0.0")
        c = make_project([("a", "*"), ("b", "*")])

        c.resolver.resolve()

        assert registry.fetch_count("c") == 1
        assert [e.id for e in c.store.load_lock().entries] == ["a", "c", "b"]
        assert [m.id for m in c.android_mk.get().modules] == ["a", "c", "b", "mymod"]

    def test_dependency_cycle_terminates(self, make_project, registry, downloads) -> None:
        registry.add("a", "1.0.0", [("b", "*")])
        registry.add("b", "1.0.0", [("a", "*")])
        c = make_project([("a", "*")])
        assert c.resolver.resolve().resolved == ["a@1.0.0", "b@1.0.0"]

    def test_self_dependency_ignored(self, make_project, registry, downloads) -> None:
        registry.add("a", "1.0.0", [("MyMod", "*")])
        c = make_project([("a", "*")])
        assert c.resolver.resolve().resolved == ["a@1.0.0"]
        assert registry.fetch_count("MyMod") == 0

    def test_headers_only(self, make_project, registry, downloads, project_dir: Path) -> None:
        registry.add("hdr", "1.0.0", headersOnly=True)
        c = make_project([("hdr", "*")])
        before = (project_dir / "Android.mk").read_bytes()

        c.resolver.resolve()

        assert downloads == []
        assert not (project_dir / "extern").exists()
        assert (project_dir / "Android.mk").read_bytes() == before
        assert c.store.load_lock().get("hdr") is not None

    def test_use_release_from_project_declaration(self, make_project, registry, downloads) -> None:
        registry.add(
            "hook", "1.0.0",
            soLink="https://cdn.test/release.so", debugSoLink="https://cdn.test/debug.so",
        )
        c = make_project()
        m = c.store.load_manifest()
        m.dependencies.append(DependencySpec("hook", "*", ExtensionData({"useRelease": True})))
        c.store.save_manifest(m)

        c.resolver.resolve()

        assert downloads == ["https://cdn.test/release.so"]

    def test_debug_link_by_default(self, make_project, registry, downloads) -> None:
        registry.add(
            "hook", "1.0.0",
            soLink="https://cdn.test/release.so", debugSoLink="https://cdn.test/debug.so",
        )
        c = make_project([("hook", "*")])
        c.resolver.resolve()
        assert downloads == ["https://cdn.test/debug.so"]


    def test_shared_cache_across_projects(self, make_project, registry, downloads, tmp_path: Path) -> None:
        registry.add("hook", "1.0.0")
        make_project([("hook", "*")]).resolver.resolve()
        other = make_project([("hook", "*")], root=tmp_path / "other")

        other.resolver.resolve()

        assert len(downloads) == 1
        assert (tmp_path / "other" / "extern" / "libhook_1_0_0.so").exists()

    def test_without_derived_files(self, make_project, registry, downloads, project_dir: Path) -> None:
        registry.add("hook", "1.0.0")
        c = make_project([("hook", "*")], with_artifacts=False)
        c.resolver.resolve()
        assert (project_dir / "extern" / "libhook_1_0_0.so").exists()
        assert not (project_dir / "Android.mk").exists()


class TestLockReuse:
    def test_second_resolve_is_noop(self, make_project, registry, downloads, project_dir: Path) -> None:
        registry.add("a", "1.0.0", [("c", "^1.0.0")])
        registry.add("c", "1.0.0")
        c = make_project([("a", "*")])
        c.resolver.resolve()
        before = _snapshot(project_dir)
        calls = len(registry.calls)

        result = c.resolver.resolve()

        assert len(registry.calls) == calls
        assert result.resolved == []
        assert result.satisfied == ["a@1.0.0", "c@1.0.0"]
        assert result.changed is False
        assert _snapshot(project_dir) == before

    def test_locked_version_kept_when_newer_published(self, make_project, registry, downloads) -> None:
        registry.add("hook", "1.0.0")
        c = make_project([("hook", "^1.0.0")])
        c.resolver.resolve()
        registry.add("hook", "1.5.0")

        c.resolver.resolve()

        assert c.store.load_lock().get("hook").version == "1.0.0"

    def test_range_change_triggers_resolution(self, make_project, registry, downloads) -> None:
        registry.add("hook", "1.0.0")
        registry.add("hook", "2.0.0")
        c = make_project([("hook", "^1.0.0")])
        c.resolver.resolve()
        m = c.store.load_manifest()
        m.dependencies[0].version_range = "^2.0.0"
        c.store.save_manifest(m)

        result = c.resolver.resolve()

        assert result.resolved == ["hook@2.0.0"]
        assert c.store.load_lock().get("hook").version == "2.0.0"
        assert c.android_mk.get().find("hook").sources == ["extern/libhook_2_0_0.so"]

    def test_refresh_replaces_binaries_without_registry(
        self, make_project, registry, downloads, project_dir: Path,
    ) -> None:
        registry.add("hook", "1.0.0")
        c = make_project([("hook", "*")])
        c.resolver.resolve()
        binary = project_dir / "extern" / "libhook_1_0_0.so"
        binary.unlink()
        mk_before = (project_dir / "Android.mk").read_bytes()
        calls = len(registry.calls)

        result = c.resolver.resolve(refresh=True)

        assert binary.exists()
        assert len(registry.calls) == calls
        assert len(downloads) == 1
        assert result.satisfied == ["hook@1.0.0"]
        assert (project_dir / "Android.mk").read_bytes() == mk_before

    def test_unreachable_entries_pruned(self, make_project, registry, downloads) -> None:
        registry.add("a", "1.0.0")
        registry.add("b", "1.0.0")
        c = make_project([("a", "*"), ("b", "*")])
        c.resolver.resolve()
        m = c.store.load_manifest()
        m.dependencies = [d for d in m.dependencies if d.id != "b"]
        c.store.save_manifest(m)

        result = c.resolver.resolve()

        assert result.pruned == ["b@1.0.0"]
        assert [e.id for e in c.store.load_lock().entries] == ["a"]
        mk = c.android_mk.get()
        assert mk.find("b") is None
        assert mk.primary.shared_libs == ["a"]


class TestConflicts:
    def test_reselects_highest_satisfying_all(self, make_project, registry, downloads) -> None:
        registry.add("a", "1.0.0", [("c", "^1.0.0")])
        registry.add("b", "1.0.0", [("c", "<1.10.0")])
        for v in ("1.2.0", "1.9.0", "1.10.0", "2.0.0"):
            registry.add("c", v)
        c = make_project([("a", "*"), ("b", "*")])

        c.resolver.resolve()

        assert c.store.load_lock().get("c").version == "1.9.0"
        assert c.android_mk.get().find("c").sources == ["extern/libc_1_9_0.so"]

    def test_reselect_drops_old_version_ranges(self, make_project, registry, downloads) -> None:
        """d 从 2.0.0 重选为 1.0.0 后，d@2 对 e 的 ^2 请求不再参与"""
        registry.add("d", "2.0.0", [("e", "^2.0.0")])
        registry.add("d", "1.0.0", [("e", "^1.0.0")])
        registry.add("e", "1.0.0")
        registry.add("e", "2.0.0")
        registry.add("c", "1.0.0", [("d", "^1.0.0")])
        c = make_project([("d", "*"), ("c", "*")])

        result = c.resolver.resolve()

        lock = c.store.load_lock()
        assert [(e.id, e.version) for e in lock.entries] == [
            ("d", "1.0.0"), ("e", "1.0.0"), ("c", "1.0.0"),
        ]
        assert result.resolved == ["d@1.0.0", "e@1.0.0", "c@1.0.0"]
        assert not any("/2.0.0/" in url for url in downloads)

    def test_reselect_drops_old_version_dependencies(self, make_project, registry, downloads) -> None:
        """只有 d@2 需要的 x 不会进入锁文件，也不会被下载"""
        registry.add("d", "2.0.0", [("x", "*")])
        registry.add("d", "1.0.0")
        registry.add("x", "1.0.0")
        registry.add("c", "1.0.0", [("d", "^1.0.0")])
        c = make_project([("d", "*"), ("c", "*")])

        c.resolver.resolve()

        lock = c.store.load_lock()
        assert [(e.id, e.version) for e in lock.entries] == [("d", "1.0.0"), ("c", "1.0.0")]
        assert not any("/x/" in url for url in downloads)
        mk = c.android_mk.get()
        assert [m.id for m in mk.modules] == ["d", "c", "mymod"]
        assert mk.primary.shared_libs == ["d", "c"]

    def test_reselect_reuses_registry_answers(self, make_project, registry, downloads) -> None:
        registry.add("a", "1.0.0", [("c", "^1.0.0")])
        registry.add("b", "1.0.0", [("c", "<1.10.0")])
        for v in ("1.9.0", "1.10.0"):
            registry.add("c", v)
        c = make_project([("a", "*"), ("b", "*")])

        c.resolver.resolve()

        assert registry.fetch_count("a") == 1
        assert registry.fetch_count("b") == 1
        assert registry.calls.count(("latest", "a", "*")) == 1

    def test_conflict_leaves_files_unchanged(
        self, make_project, registry, downloads, project_dir: Path,
    ) -> None:
        registry.add("a", "1.0.0", [("c", "~1.2.0")])
        registry.add("b", "1.0.0", [("c", ">=1.9.0")])
        for v in ("1.2.0", "1.9.0"):
            registry.add("c", v)
        c = make_project([("a", "*"), ("b", "*")])
        before = _snapshot(project_dir)

        with pytest.raises(DependencyConflictError) as exc:
            c.resolver.resolve()

        assert exc.value.dependency_id == "c"
        assert exc.value.requests == [("a", "~1.2.0"), ("b", ">=1.9.0")]
        assert "依赖冲突" in str(exc.value)
        assert downloads == []
        assert _snapshot(project_dir) == before

    def test_conflict_keeps_previous_lock(self, make_project, registry, downloads, project_dir: Path) -> None:
        registry.add("c", "1.2.0")
        registry.add("c", "1.9.0")
        c = make_project([("c", "~1.2.0")])
        c.resolver.resolve()
        lock_before = (project_dir / "qpm.lock.json").read_bytes()
        registry.add("b", "1.0.0", [("c", ">=1.9.0")])
        m = c.store.load_manifest()
        m.dependencies.append(DependencySpec("b", "*"))
        c.store.save_manifest(m)

        with pytest.raises(DependencyConflictError):
            c.resolver.resolve()

        assert (project_dir / "qpm.lock.json").read_bytes() == lock_before

    def test_missing_package(self, make_project, registry, downloads, project_dir: Path) -> None:
        c = make_project([("ghost", "*")])
        with pytest.raises(NotFoundError):
            c.resolver.resolve()
        assert not (project_dir / "qpm.lock.json").exists()

    def test_missing_link_aborts_before_lock(
        self, make_project, registry, downloads, project_dir: Path,
    ) -> None:
        registry.add("nolink", "1.0.0", url="https://example.com")
        c = make_project([("nolink", "*")])
        with pytest.raises(MissingArtifactLinkError):
            c.resolver.resolve()
        assert not (project_dir / "qpm.lock.json").exists()


class TestRemove:
    def test_remove_locked(self, make_project, registry, downloads, project_dir: Path) -> None:
        registry.add("hook", "1.0.0")
        c = make_project([("hook", "*")])
        c.resolver.resolve()

        assert c.resolver.remove("HOOK") is True

        assert c.store.load_lock().entries == []
        mk = c.android_mk.get()
        assert mk.find("hook") is None
        assert mk.primary.shared_libs == []
        # 二进制保留在依赖目录中
        assert (project_dir / "extern" / "libhook_1_0_0.so").exists()

    def test_remove_unknown_is_noop(self, make_project, registry, downloads, project_dir: Path) -> None:
        registry.add("hook", "1.0.0")
        c = make_project([("hook", "*")])
        c.resolver.resolve()
        before = _snapshot(project_dir)

        assert c.resolver.remove("ghost") is False
        assert _snapshot(project_dir) == before


class TestDispatch:
    def test_events_in_resolution_order(self, make_project, registry, downloads) -> None:
        registry.add("a", "1.0.0", [("c", "*")])
        registry.add("c", "1.0.0")
        c = make_project([("a", "*")])
        seen: list = []
        resolver = DependencyResolver(registry, c.store, EventDispatcher([seen.append]))

        resolver.resolve()
        resolver.remove("c")

        assert [type(e) for e in seen] == [DependencyResolved, DependencyResolved, DependencyRemoved]
        assert [e.resolved.id for e in seen[:2]] == ["a", "c"]
        assert seen[0].project.id == "mymod"
        assert seen[2].dependency_id == "c"

    def test_handler_failure_prevents_lock(self, make_project, registry, project_dir: Path) -> None:
        registry.add("hook", "1.0.0")
        c = make_project([("hook", "*")])

        def fail(event):
            raise RuntimeError("handler failed")

        resolver = DependencyResolver(registry, c.store, EventDispatcher([fail]))
        with pytest.raises(RuntimeError):
            resolver.resolve()
        assert not (project_dir / "qpm.lock.json").exists()


class TestMajorVersionConflict:
    def test_disjoint_major_ranges(self, make_project, registry, downloads, project_dir: Path) -> None:
        registry.add("b", "1.0.0", [("d", "1.x")])
        registry.add("c", "1.0.0", [("d", "2.x")])
        registry.add("d", "1.4.0")
        registry.add("d", "2.1.0")
        c = make_project([("b", "*"), ("c", "*")])

        with pytest.raises(DependencyConflictError) as exc:
            c.resolver.resolve()

        assert exc.value.requests == [("b", "1.x"), ("c", "2.x")]
        assert not (project_dir / "qpm.lock.json").exists()
