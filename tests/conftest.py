"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

from collections.abc import Callable
from pathlib import Path

import pytest
from cielreset.errors import PackageFileQueryError, PackageQueryError
from cielreset.packages.base import PackageDatabase


class FakePackageDatabase(PackageDatabase):
    """In-memory package database returning canned file lists."""

    def __init__(
        self,
        packages: dict[str, list[str]],
        *,
        broken: frozenset[str] = frozenset(),
        fail_listing: bool = False,
    ) -> None:
        self.packages = packages
        self.broken = broken
        self.fail_listing = fail_listing
        self.queried: list[str] = []

    def is_available(self) -> bool:
        return True

    def list_installed_packages(self) -> list[str]:
        if self.fail_listing:
            msg = "dpkg-query failed to list packages: database locked"
            raise PackageQueryError(msg)
        return list(self.packages)

    def list_owned_files(self, package: str) -> list[str]:
        self.queried.append(package)
        if package in self.broken:
            raise PackageFileQueryError(package, f"dpkg-query -L {package} failed")
        return list(self.packages[package])


@pytest.fixture
def fake_database() -> Callable[..., FakePackageDatabase]:
    """Factory for FakePackageDatabase instances."""
    return FakePackageDatabase


@pytest.fixture
def make_instance(tmp_path: Path) -> Callable[[list[str]], Path]:
    """Factory that builds a fake instance root.

    Entries ending in "/" become directories, everything else a file
    (parents are created as needed).
    """

    def _make(entries: list[str]) -> Path:
        root = tmp_path / "instance"
        root.mkdir(exist_ok=True)
        for entry in entries:
            target = root / entry.strip("/")
            if entry.endswith("/"):
                target.mkdir(parents=True, exist_ok=True)
            else:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(entry)
        return root

    return _make


@pytest.fixture
def mock_dpkg_packages_output() -> str:
    """Sample dpkg-query -W output with db:Status-Abbrev."""
    return (
        "ii \tcoreutils\n"
        "ii \tbash\n"
        "rc \told-package\n"
        "un \tghost\n"
        "ii \tlibc6:amd64\n"
    )


@pytest.fixture
def mock_dpkg_files_output() -> str:
    """Sample dpkg-query -L output including a diversion record."""
    return """/.
/usr
/usr/bin
/usr/bin/ls
/usr/bin/cat
diverted by dash to: /usr/bin/cat.real
/usr/share/doc/coreutils/"""
