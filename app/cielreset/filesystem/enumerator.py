"""Filesystem enumeration of an instance root.

Walks the whole tree below the root and yields every entry at depth two
or more. Nothing is filtered here: protection and ownership are applied
downstream so the enumerated set is complete.
"""

import logging
import os
from collections.abc import Iterator
from pathlib import Path

from cielreset.errors import EnumerationError
from cielreset.filesystem.models import normalize_path

logger = logging.getLogger(__name__)

# "/" is depth 0 and "/usr" is depth 1; neither is emitted
MIN_DEPTH = 2


def enumerate_paths(root: Path) -> Iterator[str]:
    """Lazily yield every path below root at depth >= MIN_DEPTH.

    Symbolic links are yielded as themselves and never followed.
    Subdirectories that cannot be read are logged and skipped; their
    contents are simply not enumerated (and therefore never deleted).

    Args:
        root: Instance root directory.

    Yields:
        Normalized instance-relative paths such as "/usr/bin/ls".

    Raises:
        EnumerationError: If root does not exist, is not a directory or
            cannot be listed.
    """
    _check_root(root)
    root_str = os.fspath(root)

    def _on_error(error: OSError) -> None:
        logger.warning("Cannot read directory %s: %s", error.filename, error.strerror)

    for dirpath, dirnames, filenames in os.walk(root_str, onerror=_on_error, followlinks=False):
        rel_dir = os.path.relpath(dirpath, root_str)
        # rel_dir is "." for the root itself, which has depth 0
        depth = 0 if rel_dir == "." else rel_dir.count(os.sep) + 1
        if depth + 1 < MIN_DEPTH:
            continue
        # os.walk lists symlinks to directories under dirnames without descending
        for name in (*dirnames, *filenames):
            yield normalize_path(f"{rel_dir}/{name}")


def _check_root(root: Path) -> None:
    """Fail fast when the instance root is unusable.

    Raises:
        EnumerationError: If root is missing, not a directory or unreadable.
    """
    if not root.exists():
        msg = f"Instance root does not exist: {root}"
        raise EnumerationError(msg)
    if not root.is_dir():
        msg = f"Instance root is not a directory: {root}"
        raise EnumerationError(msg)
    try:
        with os.scandir(root):
            pass
    except OSError as e:
        msg = f"Cannot enumerate instance root {root}: {e.strerror or e}"
        raise EnumerationError(msg) from e
