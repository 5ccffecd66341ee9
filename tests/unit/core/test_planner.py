"""Unit tests for removal planning.

Covers the removal set invariants (no protected or owned member,
completeness, idempotence) and the reset scenarios end to end with a
fake package database.
"""

from dataclasses import replace
from pathlib import Path

import pytest
from cielreset.core.planner import RemovalPlan, build_plan, compute_removal_set
from cielreset.errors import EnumerationError, PackageQueryError
from cielreset.filesystem.enumerator import enumerate_paths
from cielreset.filesystem.models import normalize_path
from cielreset.filesystem.operator import BulkRemover
from cielreset.filesystem.protected import is_protected_path

INSTANCE_ENTRIES = [
    "usr/bin/ls",
    "usr/bin/cat",
    "usr/bin/stray-binary",
    "usr/share/doc/coreutils/README",
    "usr/lib/locale/locale-archive",
    "etc/myconf",
    "etc/passwd",
    "tmp/orphan.txt",
    "tmp/cache/deep/file",
    "var/log/journal/abc/system.journal",
    "var/log/messages",
    "var/lib/dpkg/status",
    "root/.bashrc",
    "opt/vendor/tool",
]

PACKAGES = {
    "coreutils": [
        "/.",
        "/usr",
        "/usr/bin",
        "/usr/bin/ls",
        "/usr/bin/cat",
        "/usr/share",
        "/usr/share/doc",
        "/usr/share/doc/coreutils",
        "/usr/share/doc/coreutils/README",
    ],
    "base-files": ["/etc", "/etc/passwd", "/var", "/var/log", "/var/lib", "/usr/lib"],
    "glibc": ["/usr/lib/locale"],
}


@pytest.fixture
def instance(make_instance) -> Path:
    return make_instance(INSTANCE_ENTRIES)


class TestComputeRemovalSet:
    """Tests for the pure difference engine."""

    def test_subtracts_protected_and_owned(self) -> None:
        all_paths = {"/tmp/orphan.txt", "/etc/myconf", "/usr/bin/ls"}

        result = compute_removal_set(all_paths, {"/usr/bin/ls"})

        assert result == {"/tmp/orphan.txt"}

    def test_protected_and_owned_path_excluded(self) -> None:
        """Protection and ownership are each sufficient on their own."""
        result = compute_removal_set({"/etc/passwd"}, {"/etc/passwd"})

        assert result == set()

    @pytest.mark.parametrize(
        ("enumerated", "owned"),
        [
            ("/usr/bin/foo", "/usr/bin/foo/"),
            ("usr/bin/foo", "/usr/bin/foo"),
            ("/usr/bin/foo/", "//usr/bin/foo"),
            ("./usr/bin/foo", "/usr/./bin/foo"),
        ],
    )
    def test_normalization_makes_forms_subtract(self, enumerated: str, owned: str) -> None:
        assert compute_removal_set({enumerated}, {owned}) == set()

    def test_no_prefix_semantics(self) -> None:
        """Owning a directory does not own its contents."""
        result = compute_removal_set({"/usr/lib/foo", "/usr/lib/foo/bar"}, {"/usr/lib/foo"})

        assert result == {"/usr/lib/foo/bar"}

    def test_explicit_protected_set(self) -> None:
        result = compute_removal_set(
            {"/srv/a", "/srv/b"}, set(), protected_paths={"/srv/a"}
        )

        assert result == {"/srv/b"}


class TestBuildPlan:
    """Tests for build_plan against a fake instance."""

    @pytest.mark.parametrize("parallel", [True, False])
    def test_removal_set(self, instance: Path, fake_database, parallel: bool) -> None:
        plan = build_plan(instance, fake_database(PACKAGES), parallel=parallel)

        assert plan.removal_set == {
            "/usr/bin/stray-binary",
            "/tmp/orphan.txt",
            "/tmp/cache",
            "/tmp/cache/deep",
            "/tmp/cache/deep/file",
            "/var/log/messages",
        }

    def test_parallel_and_sequential_agree(self, instance: Path, fake_database) -> None:
        parallel = build_plan(instance, fake_database(PACKAGES), parallel=True)
        sequential = build_plan(instance, fake_database(PACKAGES), parallel=False)

        assert parallel.removal_set == sequential.removal_set
        assert parallel.protected_paths == sequential.protected_paths

    def test_set_invariant(self, instance: Path, fake_database) -> None:
        """No member of the removal set is protected or owned."""
        plan = build_plan(instance, fake_database(PACKAGES))
        owned = {p for files in PACKAGES.values() for p in files}

        for path in plan.removal_set:
            assert not is_protected_path(path)
            assert path not in owned

    def test_completeness(self, instance: Path, fake_database) -> None:
        """Every unprotected, unowned path at depth >= 2 is planned for removal."""
        plan = build_plan(instance, fake_database(PACKAGES))
        owned = {p for files in PACKAGES.values() for p in files}

        for path in enumerate_paths(instance):
            if not is_protected_path(path) and path not in owned:
                assert path in plan.removal_set

    def test_counts(self, instance: Path, fake_database) -> None:
        plan = build_plan(instance, fake_database(PACKAGES))

        assert plan.total_paths == len(set(enumerate_paths(instance)))
        assert plan.package_count == len(PACKAGES)
        assert plan.owned_count == len({normalize_path(p) for f in PACKAGES.values() for p in f})
        assert "/etc/myconf" in plan.protected_paths

    def test_idempotence(self, instance: Path, fake_database) -> None:
        """A second run after removal finds nothing left to remove."""
        first = build_plan(instance, fake_database(PACKAGES))
        remover = BulkRemover(instance, keep=first.kept_paths)
        results = list(remover.remove(first.sorted_paths()))
        assert all(r.success for r in results)

        second = build_plan(instance, fake_database(PACKAGES))

        assert second.is_empty

    def test_scenario_orphan_removed(self, instance: Path, fake_database) -> None:
        plan = build_plan(instance, fake_database(PACKAGES))
        list(BulkRemover(instance).remove(plan.sorted_paths()))

        assert "/tmp/orphan.txt" in plan.removal_set
        assert not (instance / "tmp" / "orphan.txt").exists()

    def test_scenario_protected_config_survives(self, instance: Path, fake_database) -> None:
        plan = build_plan(instance, fake_database(PACKAGES))
        list(BulkRemover(instance).remove(plan.sorted_paths()))

        assert "/etc/myconf" not in plan.removal_set
        assert (instance / "etc" / "myconf").exists()

    def test_scenario_owned_binary_survives(self, make_instance, fake_database) -> None:
        """Ownership alone keeps a path, without any protection pattern."""
        root = make_instance(["srv/bin/ls"])
        plan = build_plan(root, fake_database({"coreutils": ["/srv/bin", "/srv/bin/ls"]}))

        assert not is_protected_path("/srv/bin/ls")
        assert plan.is_empty

    def test_scenario_broken_package_files_become_unowned(
        self, instance: Path, fake_database
    ) -> None:
        packages = {**PACKAGES, "broken-pkg": ["/usr/bin/stray-binary"]}
        database = fake_database(packages, broken=frozenset({"broken-pkg"}))

        plan = build_plan(instance, database)

        assert plan.failed_packages == ("broken-pkg",)
        assert "/usr/bin/stray-binary" in plan.removal_set

    def test_strict_broken_package_aborts(self, instance: Path, fake_database) -> None:
        packages = {**PACKAGES, "broken-pkg": []}
        database = fake_database(packages, broken=frozenset({"broken-pkg"}))

        with pytest.raises(PackageQueryError):
            build_plan(instance, database, strict=True)

    @pytest.mark.parametrize("parallel", [True, False])
    def test_package_listing_failure_aborts(
        self, instance: Path, fake_database, parallel: bool
    ) -> None:
        with pytest.raises(PackageQueryError):
            build_plan(instance, fake_database(PACKAGES, fail_listing=True), parallel=parallel)

    @pytest.mark.parametrize("parallel", [True, False])
    def test_missing_root_aborts(self, tmp_path: Path, fake_database, parallel: bool) -> None:
        with pytest.raises(EnumerationError):
            build_plan(tmp_path / "missing", fake_database(PACKAGES), parallel=parallel)


class TestRemovalPlan:
    """Tests for RemovalPlan."""

    def _plan(self, removal: set[str]) -> RemovalPlan:
        return RemovalPlan(
            root=Path("/var/lib/ciel/main"),
            total_paths=10,
            protected_paths=frozenset({"/etc/a"}),
            owned_count=4,
            package_count=2,
            removal_set=frozenset(removal),
            failed_packages=("broken-pkg",),
        )

    def test_sorted_paths_parents_first(self) -> None:
        plan = self._plan({"/tmp/a/b", "/tmp/a", "/srv/z"})

        assert plan.sorted_paths() == ["/srv/z", "/tmp/a", "/tmp/a/b"]

    def test_is_empty(self) -> None:
        assert self._plan(set()).is_empty is True
        assert self._plan({"/tmp/a"}).is_empty is False

    def test_retained_paths_are_not_deleted(self) -> None:
        plan = replace(
            self._plan({"/tmp/a", "/tmp/a/b"}), retained_paths=frozenset({"/tmp/a"})
        )

        assert plan.sorted_paths() == ["/tmp/a/b"]
        assert plan.is_empty is False
        assert replace(plan, removal_set=frozenset({"/tmp/a"})).is_empty is True

    def test_to_dict(self) -> None:
        data = self._plan({"/tmp/b", "/tmp/a"}).to_dict()

        assert data == {
            "root": "/var/lib/ciel/main",
            "total_paths": 10,
            "protected_count": 1,
            "owned_count": 4,
            "package_count": 2,
            "failed_packages": ["broken-pkg"],
            "removal_set": ["/tmp/a", "/tmp/b"],
            "retained": [],
        }


class TestKeptPaths:
    """Tests for directories that hold paths which must survive."""

    def test_kept_paths_complement_removal_set(self, instance: Path, fake_database) -> None:
        plan = build_plan(instance, fake_database(PACKAGES))

        assert plan.kept_paths | plan.removal_set == set(enumerate_paths(instance))
        assert not plan.kept_paths & plan.removal_set

    def test_unowned_directory_with_protected_child(self, make_instance, fake_database) -> None:
        """The directory is planned but its protected child survives removal."""
        root = make_instance(["usr/lib/locale/locale-archive", "usr/lib/locale/stale"])
        plan = build_plan(root, fake_database({"base-files": ["/usr/lib"]}))

        assert plan.removal_set == {"/usr/lib/locale", "/usr/lib/locale/stale"}
        assert plan.retained_paths == {"/usr/lib/locale"}
        assert plan.sorted_paths() == ["/usr/lib/locale/stale"]

        results = list(BulkRemover(root, keep=plan.kept_paths).remove(plan.sorted_paths()))

        assert [r.success for r in results] == [True]
        assert (root / "usr" / "lib" / "locale" / "locale-archive").exists()
        assert not (root / "usr" / "lib" / "locale" / "stale").exists()

    def test_retained_directory_does_not_block_convergence(
        self, make_instance, fake_database
    ) -> None:
        """After one reset the next plan is empty even with a retained directory."""
        root = make_instance(["usr/lib/locale/locale-archive", "usr/lib/locale/stale"])
        database = fake_database({"base-files": ["/usr/lib"]})
        first = build_plan(root, database)
        list(BulkRemover(root, keep=first.kept_paths).remove(first.sorted_paths()))

        second = build_plan(root, database)

        assert second.retained_paths == {"/usr/lib/locale"}
        assert second.is_empty
        assert second.sorted_paths() == []

    def test_full_removal_set_reports_retained_not_failed(
        self, make_instance, fake_database
    ) -> None:
        root = make_instance(["usr/lib/locale/locale-archive", "usr/lib/locale/stale"])
        plan = build_plan(root, fake_database({"base-files": ["/usr/lib"]}))

        results = list(
            BulkRemover(root, keep=plan.kept_paths).remove(sorted(plan.removal_set))
        )

        assert not any(r.failed for r in results)
        assert [r.path for r in results if r.retained] == ["/usr/lib/locale"]
