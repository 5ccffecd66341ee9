"""Filesystem domain models for instance resets.

Paths are instance-relative absolute strings ("/usr/bin/ls" means
<instance root>/usr/bin/ls). Every producer normalizes through
normalize_path so set subtraction compares identical spellings.
"""

import posixpath
from collections.abc import Iterable
from dataclasses import dataclass


def normalize_path(raw: str) -> str:
    """Normalize a raw path string to its canonical absolute form.

    Enforces a single leading slash, drops trailing and duplicate slashes
    and "." segments. Symlinks are never resolved; this is a pure string
    operation.

    Args:
        raw: Path as produced by a walk or by the package database,
            e.g. "./usr/bin/", "usr//bin/ls" or "/usr/bin/ls".

    Returns:
        Canonical path such as "/usr/bin/ls".

    Raises:
        ValueError: If raw is empty.
    """
    if not raw:
        msg = "Path cannot be empty"
        raise ValueError(msg)
    # lstrip first: normpath keeps a leading "//" as-is
    return posixpath.normpath("/" + raw.lstrip("/"))


def path_depth(path: str) -> int:
    """Return the depth of a normalized path ("/" is 0, "/tmp" is 1)."""
    if path == "/":
        return 0
    return path.count("/")


@dataclass(frozen=True, slots=True)
class RemovalResult:
    """Outcome of one removal attempt.

    Attributes:
        path: Instance-relative path that was operated on.
        success: Whether the path is gone (or would be, in dry-run), or was
            deliberately retained.
        error: Error message if the removal failed, None otherwise.
        dry_run: Whether this was a dry-run (no actual deletion).
        already_absent: The path was already gone when its turn came.
        retained: The directory was kept because it holds paths that must
            survive; not a failure.
    """

    path: str
    success: bool
    error: str | None = None
    dry_run: bool = False
    already_absent: bool = False
    retained: bool = False

    @property
    def failed(self) -> bool:
        """Check if the removal failed."""
        return not self.success


def ancestors_of(paths: Iterable[str]) -> set[str]:
    """Return every proper ancestor at depth >= 1 of the given paths.

    Args:
        paths: Normalized paths.

    Returns:
        Set of ancestor directories, e.g. {"/usr", "/usr/lib"} for
        "/usr/lib/locale-archive".
    """
    ancestors: set[str] = set()
    for path in paths:
        parent = posixpath.dirname(path)
        while parent != "/" and parent not in ancestors:
            ancestors.add(parent)
            parent = posixpath.dirname(parent)
    return ancestors
