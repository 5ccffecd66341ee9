"""Protected instance paths that survive every reset.

Patterns are anchored regular expressions matched against
instance-relative absolute paths. Directory patterns end in "(/|$)" so
that "^/etc(/|$)" covers "/etc" and "/etc/passwd" but not "/etcetera".
Order does not affect the result: a path matching any pattern is
protected.
"""

import re
from collections.abc import Iterable

PROTECTION_PATTERNS: list[str] = [
    # Build staging bind mounts (OUTPUT and abbs tree)
    r"^/debs(/|$)",
    r"^/tree(/|$)",
    # Device nodes
    r"^/dev(/|$)",
    # Boot and EFI partitions
    r"^/boot(/|$)",
    r"^/efi(/|$)",
    # Configuration
    r"^/etc(/|$)",
    # Runtime state
    r"^/run(/|$)",
    r"^/var/run(/|$)",
    # Software installed outside the package manager
    r"^/opt(/|$)",
    r"^/usr/local(/|$)",
    # Package manager metadata and cache
    r"^/var/lib/apt(/|$)",
    r"^/var/lib/dpkg(/|$)",
    r"^/var/cache/apt(/|$)",
    # Kernel module registration
    r"^/var/lib/dkms(/|$)",
    r"^/usr/lib/modules/[^/]+/modules\.[^/]+$",
    # Persisted logs
    r"^/var/log/journal(/|$)",
    # Locale archive generated by localedef
    r"^/usr/lib/locale/locale-archive$",
    # Superuser and user homes
    r"^/root(/|$)",
    r"^/home(/|$)",
    # Kernel virtual filesystems
    r"^/proc(/|$)",
    r"^/sys(/|$)",
    # Markers left by a successful update
    r"\.updated$",
]

# Single alternation used for batch filtering
_COMBINED_PATTERN: re.Pattern[str] = re.compile(
    "|".join(f"(?:{p})" for p in PROTECTION_PATTERNS)
)


def is_protected_path(path: str) -> bool:
    """Check if an instance path is protected and must not be deleted.

    Args:
        path: Normalized instance-relative absolute path.

    Returns:
        True if the path matches any protection pattern.
    """
    return _COMBINED_PATTERN.search(path) is not None


def filter_protected(paths: Iterable[str]) -> set[str]:
    """Return the subset of paths matching at least one protection pattern.

    Runs once over the whole batch with a single compiled expression.

    Args:
        paths: Normalized instance-relative paths.

    Returns:
        Set of protected paths.
    """
    search = _COMBINED_PATTERN.search
    return {path for path in paths if search(path) is not None}
