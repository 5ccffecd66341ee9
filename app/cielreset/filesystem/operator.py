"""Bulk removal of untracked instance paths.

Deletes a removal set recursively and forcibly, in fixed-size batches,
yielding one result per path. Individual failures never stop the pass.
"""

import logging
import os
import shutil
from collections.abc import Iterable, Iterator
from itertools import islice
from pathlib import Path

from cielreset.filesystem.models import (
    RemovalResult,
    ancestors_of,
    normalize_path,
    path_depth,
)
from cielreset.filesystem.protected import is_protected_path

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1000


def batched(paths: Iterable[str], size: int) -> Iterator[list[str]]:
    """Split paths into lists of at most size elements.

    Raises:
        ValueError: If size is not positive.
    """
    if size <= 0:
        msg = f"Batch size must be positive, got {size}"
        raise ValueError(msg)
    iterator = iter(paths)
    while batch := list(islice(iterator, size)):
        yield batch


class BulkRemover:
    """Removes instance-relative paths below an instance root.

    Attributes:
        _root: Instance root every path is resolved against.
        _batch_size: Number of paths processed per batch.
        _dry_run: If True, report what would be deleted without deleting.
        _guarded: Directories holding paths that must survive. They are
            reported as retained and never removed recursively.
    """

    def __init__(
        self,
        root: Path,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        dry_run: bool = False,
        keep: Iterable[str] = (),
    ) -> None:
        if batch_size <= 0:
            msg = f"Batch size must be positive, got {batch_size}"
            raise ValueError(msg)
        self._root = root
        self._batch_size = batch_size
        self._dry_run = dry_run
        self._guarded = ancestors_of(keep)

    def remove(self, paths: Iterable[str]) -> Iterator[RemovalResult]:
        """Remove every path and yield one result per path.

        Paths are consumed in batches of batch_size. A path that vanished
        together with an earlier parent is reported as already absent.

        Args:
            paths: Instance-relative paths to delete.

        Yields:
            RemovalResult for each input path, in input order.
        """
        for number, batch in enumerate(batched(paths, self._batch_size), start=1):
            logger.debug("Removing batch %d (%d paths)", number, len(batch))
            for path in batch:
                yield self._remove_single(path)

    def _remove_single(self, path: str) -> RemovalResult:
        """Delete a single path.

        - Directories (not symlinks): shutil.rmtree
        - Files, symlinks, dead symlinks, device nodes: os.unlink

        Args:
            path: Instance-relative path to delete.

        Returns:
            RemovalResult indicating success or failure.
        """
        try:
            normalized = normalize_path(path)
        except ValueError as e:
            return RemovalResult(path=path, success=False, error=str(e))

        if path_depth(normalized) < 2:
            return RemovalResult(
                path=path,
                success=False,
                error=f"Refusing to remove top-level path: {normalized}",
            )

        if is_protected_path(normalized):
            return RemovalResult(
                path=path,
                success=False,
                error=f"Protected path cannot be deleted: {normalized}",
            )

        if normalized in self._guarded:
            logger.debug("Keeping %s: it holds protected or package-owned paths", normalized)
            return RemovalResult(path=path, success=True, retained=True)

        target = self._root / normalized.lstrip("/")

        if self._dry_run:
            logger.info("Dry-run: would delete %s", target)
            return RemovalResult(path=path, success=True, dry_run=True)

        try:
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            else:
                os.unlink(target)
        except FileNotFoundError:
            return RemovalResult(path=path, success=True, already_absent=True)
        except OSError as e:
            logger.warning("Failed to remove %s: %s", target, e)
            return RemovalResult(path=path, success=False, error=str(e))

        logger.debug("Removed %s", target)
        return RemovalResult(path=path, success=True)
