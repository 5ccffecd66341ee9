"""Abstract base class for package databases.

A package database answers two questions about an instance: which
packages are installed, and which paths each of them owns.
"""

from abc import ABC, abstractmethod


class PackageDatabase(ABC):
    """Abstract base class for all package databases.

    Example:
        >>> database = DpkgDatabase(Path("/var/lib/ciel/main"))
        >>> if database.is_available():
        ...     for name in database.list_installed_packages():
        ...         print(name, len(database.list_owned_files(name)))
    """

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this package database can be queried.

        Returns:
            True if the database can be used, False otherwise.
        """

    @abstractmethod
    def list_installed_packages(self) -> list[str]:
        """Return the names of all installed packages.

        Raises:
            PackageQueryError: If the package list cannot be obtained.
        """

    @abstractmethod
    def list_owned_files(self, package: str) -> list[str]:
        """Return the paths owned by a single package, as recorded.

        Args:
            package: Package name as returned by list_installed_packages.

        Raises:
            PackageFileQueryError: If the file list cannot be obtained.
        """
