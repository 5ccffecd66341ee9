"""Exception hierarchy for cielreset.

Fatal errors abort the reset before any deletion happens. Per-package
and per-path failures are reported through results instead of raised.
"""


class ResetError(RuntimeError):
    """Base class for all fatal reset errors."""


class ConfigError(ResetError):
    """Configuration file could not be read or validated."""


class MountError(ResetError):
    """Instance root could not be made available."""


class EnumerationError(ResetError):
    """Instance root filesystem could not be walked."""


class PackageQueryError(ResetError):
    """Installed package list could not be obtained."""


class PackageFileQueryError(ResetError):
    """File list of a single package could not be obtained.

    Attributes:
        package: Name of the package whose listing failed.
    """

    def __init__(self, package: str, message: str) -> None:
        super().__init__(message)
        self.package = package
