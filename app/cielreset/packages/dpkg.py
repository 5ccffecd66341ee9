"""dpkg package database implementation.

Queries the dpkg database that lives inside an instance root using
``dpkg-query --admindir``, so the host's own database is never touched.
"""

import logging
from pathlib import Path

from cielreset.errors import PackageFileQueryError, PackageQueryError
from cielreset.packages.base import PackageDatabase
from cielreset.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)

# Relative to the instance root
DPKG_ADMINDIR = "var/lib/dpkg"

# Desired/status abbreviation, then the arch-qualified name when ambiguous
_DPKG_FORMAT = "${db:Status-Abbrev}\\t${binary:Package}\\n"

# Second letter of db:Status-Abbrev: package is not installed at all
_NOT_INSTALLED = "n"

# Diversion records printed by dpkg-query -L
_DIVERSION_MARKER = " to: "


class DpkgDatabase(PackageDatabase):
    """Package database backed by dpkg-query.

    Args:
        root: Instance root containing var/lib/dpkg.
        command: dpkg-query executable.
    """

    def __init__(self, root: Path, *, command: str = "dpkg-query") -> None:
        self._root = root
        self._command = command

    @property
    def admindir(self) -> Path:
        """dpkg administrative directory of the instance."""
        return self._root / DPKG_ADMINDIR

    def is_available(self) -> bool:
        """Check if dpkg-query exists and the instance has a dpkg database."""
        return command_exists(self._command) and self.admindir.is_dir()

    def list_installed_packages(self) -> list[str]:
        """List installed packages of the instance.

        Returns:
            Package names, arch-qualified where dpkg needs it.

        Raises:
            PackageQueryError: If dpkg-query is unavailable or fails.
        """
        if not self.is_available():
            msg = f"dpkg database is not available at {self.admindir}"
            raise PackageQueryError(msg)

        try:
            result = run_command(
                [self._command, f"--admindir={self.admindir}", "-W", "-f", _DPKG_FORMAT],
                timeout=None,
            )
        except OSError as e:
            msg = f"Cannot run {self._command}: {e}"
            raise PackageQueryError(msg) from e

        if not result.success:
            msg = f"dpkg-query failed to list packages: {result.error_text()}"
            raise PackageQueryError(msg)

        packages: list[str] = []
        for line in result.lines():
            name = self._parse_package_line(line)
            if name is not None:
                packages.append(name)
        logger.debug("dpkg reports %d installed packages", len(packages))
        return packages

    def list_owned_files(self, package: str) -> list[str]:
        """List the paths recorded for one package.

        Args:
            package: Package name.

        Returns:
            Raw paths as printed by dpkg-query -L, including diversion targets.

        Raises:
            PackageFileQueryError: If dpkg-query fails for this package.
        """
        try:
            result = run_command(
                [self._command, f"--admindir={self.admindir}", "-L", package],
                timeout=None,
            )
        except OSError as e:
            raise PackageFileQueryError(package, f"Cannot run {self._command}: {e}") from e

        if not result.success:
            msg = f"dpkg-query -L {package} failed: {result.error_text()}"
            raise PackageFileQueryError(package, msg)

        return [path for line in result.lines() if (path := self._parse_file_line(line))]

    @staticmethod
    def _parse_package_line(line: str) -> str | None:
        """Parse a line of dpkg-query -W output.

        Args:
            line: "<status abbrev>\\t<package>" line.

        Returns:
            Package name, or None for malformed or not-installed entries.
        """
        parts = line.split("\t")
        if len(parts) != 2:
            logger.debug("Skipping malformed dpkg line: %r", line[:100])
            return None

        status, name = parts[0].strip(), parts[1].strip()
        if not name:
            return None
        if len(status) >= 2 and status[1] == _NOT_INSTALLED:
            logger.debug("Skipping not-installed package %s (%s)", name, status)
            return None
        return name

    @staticmethod
    def _parse_file_line(line: str) -> str | None:
        """Parse a line of dpkg-query -L output.

        Handles plain paths and diversion records such as
        "diverted by foo to: /usr/bin/bar.real".

        Returns:
            The recorded path, or None for informational lines.
        """
        if line.startswith("/"):
            return line
        if _DIVERSION_MARKER in line:
            target = line.split(_DIVERSION_MARKER, 1)[1]
            if target.startswith("/"):
                return target
        return None
