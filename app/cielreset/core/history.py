"""Audit history of completed resets.

Each reset that deleted anything appends one JSON line to
~/.local/state/cielreset/history.jsonl. Successfully removed paths are
counted, failures are kept in full.
"""

import json
import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from cielreset.core.paths import ensure_state_dir, get_state_dir
from cielreset.filesystem.models import RemovalResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ResetRecord:
    """Record of one reset run.

    Attributes:
        id: Unique identifier (12-character hex string from UUID).
        timestamp: When the reset finished (ISO 8601 with timezone).
        instance: Name of the reset instance.
        root: Instance root that was reset.
        removed: Number of paths deleted.
        already_absent: Number of paths that were gone before their turn.
        failures: (path, error) pairs for paths that could not be deleted.
        failed_packages: Packages whose files were treated as unowned.
    """

    id: str
    timestamp: str
    instance: str
    root: str
    removed: int
    already_absent: int = 0
    failures: tuple[tuple[str, str], ...] = ()
    failed_packages: tuple[str, ...] = ()

    @property
    def success(self) -> bool:
        """Check if every planned path is gone."""
        return not self.failures

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "instance": self.instance,
            "root": self.root,
            "removed": self.removed,
            "already_absent": self.already_absent,
            "failures": [{"path": path, "error": error} for path, error in self.failures],
            "failed_packages": list(self.failed_packages),
            "success": self.success,
        }

    def to_json_line(self) -> str:
        """Serialize to a single JSON line (no trailing newline)."""
        return json.dumps(self.to_dict(), separators=(",", ":"))


def create_reset_record(
    instance: str,
    root: Path,
    results: Iterable[RemovalResult],
    failed_packages: Iterable[str] = (),
) -> ResetRecord:
    """Build a ResetRecord from removal results.

    Dry-run and retained results are ignored.

    Args:
        instance: Instance name.
        root: Instance root.
        results: Results yielded by BulkRemover.remove.
        failed_packages: Packages whose file list could not be read.

    Returns:
        New ResetRecord with auto-generated ID and timestamp.
    """
    removed = 0
    absent = 0
    failures: list[tuple[str, str]] = []
    for result in results:
        if result.dry_run or result.retained:
            continue
        if result.failed:
            failures.append((result.path, result.error or "unknown error"))
        elif result.already_absent:
            absent += 1
        else:
            removed += 1

    return ResetRecord(
        id=uuid.uuid4().hex[:12],
        timestamp=datetime.now(UTC).isoformat(),
        instance=instance,
        root=str(root),
        removed=removed,
        already_absent=absent,
        failures=tuple(failures),
        failed_packages=tuple(failed_packages),
    )


class ResetHistory:
    """Append-only JSONL log of reset runs.

    Storage location: ~/.local/state/cielreset/history.jsonl
    """

    HISTORY_FILENAME = "history.jsonl"

    def __init__(self, state_dir: Path | None = None) -> None:
        self._state_dir = state_dir if state_dir is not None else get_state_dir()

    @property
    def history_path(self) -> Path:
        """Path to history.jsonl file."""
        return self._state_dir / self.HISTORY_FILENAME

    def record(self, entry: ResetRecord) -> None:
        """Append a reset record to the history file.

        Args:
            entry: The record to append.

        Raises:
            RuntimeError: If the state directory cannot be created.
            OSError: If the file cannot be written.
        """
        if self._state_dir == get_state_dir():
            ensure_state_dir()
        else:
            self._state_dir.mkdir(parents=True, exist_ok=True)

        with self.history_path.open(mode="a", encoding="utf-8") as f:
            f.write(entry.to_json_line() + "\n")
            f.flush()
        logger.debug("Recorded reset %s to %s", entry.id, self.history_path)
