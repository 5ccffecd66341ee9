"""ciel instance controller.

Drives the ``ciel`` container manager: an instance is stopped with
``ciel down``, its overlay is assembled with ``ciel mount`` and then
appears as <workspace>/<instance>.
"""

import logging
import subprocess
from pathlib import Path

from cielreset.core.config import DEFAULT_BIND_MOUNTS
from cielreset.errors import MountError
from cielreset.instance.base import InstanceController
from cielreset.utils.shell import CommandResult, command_exists, run_command

logger = logging.getLogger(__name__)

# Marker directory of a ciel workspace
WORKSPACE_MARKER = ".ciel"


def is_ciel_workspace(directory: Path) -> bool:
    """Check if directory is a ciel workspace."""
    return (directory / WORKSPACE_MARKER).is_dir()


class CielController(InstanceController):
    """Instance controller backed by the ciel CLI.

    Args:
        workspace: ciel workspace directory.
        command: ciel executable.
        bind_mounts: Instance-relative mount points released after
            mounting so they are neither walked nor deleted.
    """

    # ciel down may have to wait for systemd-nspawn to stop
    _CIEL_TIMEOUT: float = 300.0

    def __init__(
        self,
        workspace: Path,
        *,
        command: str = "ciel",
        bind_mounts: tuple[str, ...] | list[str] = DEFAULT_BIND_MOUNTS,
    ) -> None:
        self._workspace = workspace
        self._command = command
        self._bind_mounts = tuple(bind_mounts)

    def instance_root(self, instance: str) -> Path:
        """Return where ciel mounts the root of instance."""
        return self._workspace / instance

    def mount_instance_root(self, instance: str) -> Path:
        """Stop the instance, mount its root and release stale bind mounts.

        Raises:
            MountError: If ciel is missing, a ciel step fails or the
                mounted root is not a directory.
        """
        if not command_exists(self._command):
            msg = f"{self._command} is not available on this system"
            raise MountError(msg)

        self._run_ciel("down", instance)
        self._run_ciel("mount", instance)

        root = self.instance_root(instance)
        if not root.is_dir():
            msg = f"Instance root {root} is not available after mounting"
            raise MountError(msg)

        self._release_bind_mounts(root)
        return root

    def unmount_instance_root(self, instance: str) -> None:
        """Bring the instance down again, ignoring failures."""
        try:
            result = self._ciel(["down", "-i", instance])
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning("Cannot run %s down for %s: %s", self._command, instance, e)
            return
        if not result.success:
            logger.warning(
                "%s down -i %s failed: %s", self._command, instance, result.error_text()
            )

    def _run_ciel(self, action: str, instance: str) -> None:
        """Run ``ciel <action> -i <instance>``.

        Raises:
            MountError: If the command cannot run or exits non-zero.
        """
        try:
            result = self._ciel([action, "-i", instance])
        except (OSError, subprocess.TimeoutExpired) as e:
            msg = f"Cannot run {self._command} {action}: {e}"
            raise MountError(msg) from e
        if not result.success:
            msg = f"{self._command} {action} -i {instance} failed: {result.error_text()}"
            raise MountError(msg)

    def _ciel(self, args: list[str]) -> CommandResult:
        return run_command(
            [self._command, *args],
            timeout=self._CIEL_TIMEOUT,
            cwd=str(self._workspace),
        )

    def _release_bind_mounts(self, root: Path) -> None:
        """Unmount pre-existing bind mounts below root.

        Nothing may be mounted there, so failures are expected and only
        logged at debug level.
        """
        for name in self._bind_mounts:
            target = root / name
            try:
                result = run_command(["umount", "-R", str(target)], timeout=60.0)
            except (OSError, subprocess.TimeoutExpired) as e:
                logger.debug("Cannot run umount for %s: %s", target, e)
                continue
            if result.success:
                logger.info("Released bind mount %s", target)
            else:
                logger.debug("umount %s: %s", target, result.error_text())
