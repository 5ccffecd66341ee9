"""Reset configuration and settings.

Configuration is read from ~/.config/cielreset/config.toml. A missing
file means defaults; a malformed one aborts the reset. Protection
patterns are deliberately absent: they are fixed domain constants.
"""

import logging
import tomllib
from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cielreset.core.paths import get_config_path
from cielreset.errors import ConfigError

logger = logging.getLogger(__name__)

# Bind mounts ciel may have left on the instance root
DEFAULT_BIND_MOUNTS: tuple[str, ...] = ("debs", "tree", "dev", "proc", "sys", "run")


class ResetConfig(BaseModel):
    """Settings for a factory reset run.

    Attributes:
        batch_size: Number of paths handed to the remover per batch.
        ciel_command: Executable used to stop and mount instances.
        dpkg_query_command: Executable used to query the package database.
        strict_packages: Abort when a single package's file list cannot be read.
        parallel: Enumerate the filesystem and query packages concurrently.
        bind_mounts: Instance-relative mount points to unmount before scanning.
    """

    model_config = ConfigDict(extra="forbid")

    batch_size: Annotated[
        int,
        Field(gt=0, description="Paths per removal batch"),
    ] = 1000
    ciel_command: Annotated[
        str,
        Field(min_length=1, description="ciel executable"),
    ] = "ciel"
    dpkg_query_command: Annotated[
        str,
        Field(min_length=1, description="dpkg-query executable"),
    ] = "dpkg-query"
    strict_packages: Annotated[
        bool,
        Field(description="Treat per-package listing failures as fatal"),
    ] = False
    parallel: Annotated[
        bool,
        Field(description="Run enumeration and package resolution concurrently"),
    ] = True
    bind_mounts: Annotated[
        list[str],
        Field(description="Mount points (relative to the instance root) to release"),
    ] = list(DEFAULT_BIND_MOUNTS)


def load_config(path: Path | None = None) -> ResetConfig:
    """Load reset configuration from a TOML file.

    Args:
        path: Path to the config file. If None, uses the default config path.

    Returns:
        Validated ResetConfig; defaults when the file does not exist.

    Raises:
        ConfigError: If the file cannot be read, parsed or validated.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        logger.debug("No config file at %s, using defaults", config_path)
        return ResetConfig()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML syntax in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config {config_path}: {e}") from e

    try:
        return ResetConfig.model_validate(data)
    except (ValueError, ValidationError) as e:
        raise ConfigError(f"Invalid config content in {config_path}: {e}") from e
