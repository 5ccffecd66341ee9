"""Filesystem side of a reset.

Enumerates instance paths, applies protection patterns and removes
untracked paths.
"""

from cielreset.filesystem.enumerator import enumerate_paths
from cielreset.filesystem.models import RemovalResult, ancestors_of, normalize_path, path_depth
from cielreset.filesystem.operator import BulkRemover, batched
from cielreset.filesystem.protected import (
    PROTECTION_PATTERNS,
    filter_protected,
    is_protected_path,
)

__all__ = [
    "PROTECTION_PATTERNS",
    "BulkRemover",
    "RemovalResult",
    "ancestors_of",
    "batched",
    "enumerate_paths",
    "filter_protected",
    "is_protected_path",
    "normalize_path",
    "path_depth",
]
