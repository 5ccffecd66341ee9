"""Package ownership resolution.

Unions the file lists of every installed package into the set of
package-owned paths.
"""

import logging
from dataclasses import dataclass

from cielreset.errors import PackageFileQueryError, PackageQueryError
from cielreset.filesystem.models import normalize_path
from cielreset.packages.base import PackageDatabase

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class OwnershipResult:
    """Package-owned paths of an instance.

    Attributes:
        paths: Normalized paths owned by at least one package.
        package_count: Number of installed packages queried.
        failed_packages: Packages whose file list could not be read.
    """

    paths: frozenset[str]
    package_count: int
    failed_packages: tuple[str, ...] = ()

    @property
    def complete(self) -> bool:
        """Check if every package contributed its file list."""
        return not self.failed_packages


def resolve_owned_paths(database: PackageDatabase, *, strict: bool = False) -> OwnershipResult:
    """Collect the paths owned by all installed packages.

    A package whose file list cannot be read contributes nothing, so the
    files only it owns become candidates for removal. With strict=True
    such a failure aborts instead.

    Args:
        database: Package database to query.
        strict: Escalate per-package failures to PackageQueryError.

    Returns:
        OwnershipResult with the union of owned paths.

    Raises:
        PackageQueryError: If the package list cannot be obtained, or a
            single package fails while strict is set.
    """
    packages = database.list_installed_packages()

    owned: set[str] = set()
    failed: list[str] = []
    for package in packages:
        try:
            files = database.list_owned_files(package)
        except PackageFileQueryError as e:
            if strict:
                msg = f"Cannot list files of package {package}: {e}"
                raise PackageQueryError(msg) from e
            logger.warning("Treating files of %s as unowned: %s", package, e)
            failed.append(package)
            continue
        owned.update(normalize_path(path) for path in files if path)

    logger.debug("%d packages own %d paths", len(packages), len(owned))
    return OwnershipResult(
        paths=frozenset(owned),
        package_count=len(packages),
        failed_packages=tuple(failed),
    )
