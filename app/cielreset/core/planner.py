"""Removal planning for an instance reset.

Planning is a pure computation from (filesystem, package database) to a
RemovalPlan. Nothing here mutates the instance; deletion is a separate
step driven by BulkRemover.
"""

import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from cielreset.filesystem.enumerator import enumerate_paths
from cielreset.filesystem.models import ancestors_of, normalize_path
from cielreset.filesystem.protected import filter_protected
from cielreset.packages.base import PackageDatabase
from cielreset.packages.resolver import OwnershipResult, resolve_owned_paths

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RemovalPlan:
    """Everything a reset decided, before anything is deleted.

    Attributes:
        root: Instance root the paths are relative to.
        total_paths: Number of enumerated paths (depth >= 2).
        protected_paths: Enumerated paths matching a protection pattern.
        owned_count: Number of distinct package-owned paths.
        package_count: Number of installed packages queried.
        removal_set: Enumerated paths that are neither protected nor owned.
        failed_packages: Packages whose file list could not be read.
        kept_paths: Enumerated paths that stay (protected or package-owned).
        retained_paths: Members of removal_set that are directories holding
            kept paths. They are not deleted.
    """

    root: Path
    total_paths: int
    protected_paths: frozenset[str]
    owned_count: int
    package_count: int
    removal_set: frozenset[str]
    failed_packages: tuple[str, ...] = ()
    kept_paths: frozenset[str] = frozenset()
    retained_paths: frozenset[str] = frozenset()

    @property
    def is_empty(self) -> bool:
        """Check if there is nothing to remove."""
        return not self.removal_set - self.retained_paths

    def sorted_paths(self) -> list[str]:
        """Return the paths to delete in path order (parents before children).

        Retained directories are left out.
        """
        return sorted(self.removal_set - self.retained_paths)

    def to_dict(self) -> dict[str, object]:
        """Serialize the plan for JSON export."""
        return {
            "root": str(self.root),
            "total_paths": self.total_paths,
            "protected_count": len(self.protected_paths),
            "owned_count": self.owned_count,
            "package_count": self.package_count,
            "failed_packages": list(self.failed_packages),
            "removal_set": sorted(self.removal_set),
            "retained": sorted(self.retained_paths),
        }


def compute_removal_set(
    all_paths: Iterable[str],
    owned_paths: Iterable[str],
    protected_paths: Iterable[str] | None = None,
) -> set[str]:
    """Compute AllPaths - ProtectedPaths - OwnedPaths.

    Both inputs are normalized first; the subtraction itself is exact
    string equality with no prefix or wildcard semantics.

    Args:
        all_paths: Enumerated paths.
        owned_paths: Package-owned paths.
        protected_paths: Precomputed protected subset of all_paths. When
            None it is derived with filter_protected.

    Returns:
        Paths to remove.
    """
    candidates = {normalize_path(p) for p in all_paths}
    if protected_paths is None:
        protected = filter_protected(candidates)
    else:
        protected = {normalize_path(p) for p in protected_paths}
    owned = {normalize_path(p) for p in owned_paths}
    return candidates - protected - owned


def build_plan(
    root: Path,
    database: PackageDatabase,
    *,
    parallel: bool = True,
    strict: bool = False,
) -> RemovalPlan:
    """Enumerate the instance, resolve ownership and compute the removal set.

    Enumeration and ownership resolution read disjoint inputs, so with
    parallel=True they run in two worker threads. The result is identical
    either way.

    Args:
        root: Instance root.
        database: Package database of the instance.
        parallel: Run enumeration and resolution concurrently.
        strict: Treat per-package listing failures as fatal.

    Returns:
        RemovalPlan for the instance.

    Raises:
        EnumerationError: If the root cannot be walked.
        PackageQueryError: If packages cannot be listed (or, when strict,
            a single package's files cannot).
    """
    if parallel:
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="plan") as executor:
            paths_future = executor.submit(_collect_paths, root)
            owned_future = executor.submit(resolve_owned_paths, database, strict=strict)
            all_paths = paths_future.result()
            ownership = owned_future.result()
    else:
        all_paths = _collect_paths(root)
        ownership = resolve_owned_paths(database, strict=strict)

    return _make_plan(root, all_paths, ownership)


def _collect_paths(root: Path) -> set[str]:
    paths = set(enumerate_paths(root))
    logger.debug("Enumerated %d paths below %s", len(paths), root)
    return paths


def _make_plan(root: Path, all_paths: set[str], ownership: OwnershipResult) -> RemovalPlan:
    protected = filter_protected(all_paths)
    removal = compute_removal_set(all_paths, ownership.paths, protected)
    kept = all_paths - removal
    retained = removal & ancestors_of(kept)
    logger.info(
        "Plan for %s: %d paths, %d protected, %d to remove, %d retained",
        root,
        len(all_paths),
        len(protected),
        len(removal) - len(retained),
        len(retained),
    )
    return RemovalPlan(
        root=root,
        total_paths=len(all_paths),
        protected_paths=frozenset(protected),
        owned_count=len(ownership.paths),
        package_count=ownership.package_count,
        removal_set=frozenset(removal),
        failed_packages=ownership.failed_packages,
        kept_paths=frozenset(kept),
        retained_paths=frozenset(retained),
    )
