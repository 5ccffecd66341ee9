"""Abstract base class for instance access controllers.

A controller takes an instance out of its running state, exposes its
root filesystem and later releases it again.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path


class InstanceController(ABC):
    """Abstract base class for all instance controllers.

    Example:
        >>> controller = CielController(Path("/var/lib/ciel"))
        >>> with controller.mounted("main") as root:
        ...     plan = build_plan(root, DpkgDatabase(root))
    """

    @abstractmethod
    def mount_instance_root(self, instance: str) -> Path:
        """Stop the instance and make its root filesystem available.

        Args:
            instance: Instance name.

        Returns:
            Path of the mounted instance root.

        Raises:
            MountError: If the root cannot be made available.
        """

    @abstractmethod
    def unmount_instance_root(self, instance: str) -> None:
        """Release the instance root. Failures are logged, never raised.

        Args:
            instance: Instance name.
        """

    @contextmanager
    def mounted(self, instance: str) -> Iterator[Path]:
        """Mount the instance root for the duration of a with-block.

        The root is released even if the block raises.

        Yields:
            Path of the mounted instance root.

        Raises:
            MountError: If the root cannot be made available.
        """
        root = self.mount_instance_root(instance)
        try:
            yield root
        finally:
            self.unmount_instance_root(instance)
