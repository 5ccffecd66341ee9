"""Package databases and ownership resolution.

This module exports the database classes for querying package-owned paths.
"""

from cielreset.packages.base import PackageDatabase
from cielreset.packages.dpkg import DpkgDatabase
from cielreset.packages.resolver import OwnershipResult, resolve_owned_paths

__all__ = ["DpkgDatabase", "OwnershipResult", "PackageDatabase", "resolve_owned_paths"]
