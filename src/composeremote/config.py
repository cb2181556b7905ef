"""Configuration utilities for composeremote.

Settings come from the environment, the way the docker compose CLI reads
them. Every function takes an optional mapping so callers and tests can
inject their own environment instead of reading os.environ.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

from composeremote.core.exceptions import ConfigurationError
from composeremote.core.formatting import parse_size


if TYPE_CHECKING:
    from collections.abc import Mapping


OCI_REMOTE_ENV = "COMPOSE_EXPERIMENTAL_OCI_REMOTE"
CACHE_MAX_SIZE_ENV = "COMPOSE_REMOTE_CACHE_MAX_SIZE"

_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


def parse_bool(value: str) -> bool:
    """Parse a boolean the way the docker CLI does.

    Raises:
        ValueError: If value is not one of 1, t, T, TRUE, true, True,
            0, f, F, FALSE, false, False.
    """
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"invalid boolean value {value!r}")


def oci_remote_loader_enabled(environ: Mapping[str, str] | None = None) -> bool:
    """Read the activation gate of the OCI remote loader.

    Args:
        environ: Environment mapping. Defaults to os.environ.

    Returns:
        True if COMPOSE_EXPERIMENTAL_OCI_REMOTE is set to a true value.
        Unset or empty means disabled.

    Raises:
        ConfigurationError: If the variable holds a non-boolean value.
    """
    env = os.environ if environ is None else environ
    value = env.get(OCI_REMOTE_ENV, "")
    if not value:
        return False
    try:
        return parse_bool(value)
    except ValueError as e:
        raise ConfigurationError(
            f"{OCI_REMOTE_ENV} environment variable expects boolean value: {e}",
            variable=OCI_REMOTE_ENV,
        ) from e


def default_cache_root(environ: Mapping[str, str] | None = None) -> Path:
    """Per-user cache root shared by all remote loaders.

    Uses $XDG_CACHE_HOME/docker-compose, falling back to
    ~/.cache/docker-compose.
    """
    env = os.environ if environ is None else environ
    base = env.get("XDG_CACHE_HOME", "")
    if not base or not Path(base).is_absolute():
        return Path.home() / ".cache" / "docker-compose"
    return Path(base) / "docker-compose"


def default_cache_dir(environ: Mapping[str, str] | None = None) -> Path:
    """Cache directory of the OCI loader (<cache-root>/oci).

    Example:
        >>> from composeremote.config import default_cache_dir
        >>> default_cache_dir({"XDG_CACHE_HOME": "/tmp/cache"})
        PosixPath('/tmp/cache/docker-compose/oci')
    """
    return default_cache_root(environ) / "oci"


def cache_max_bytes(environ: Mapping[str, str] | None = None) -> int | None:
    """Read the optional cache size bound.

    Returns:
        Size in bytes, or None when COMPOSE_REMOTE_CACHE_MAX_SIZE is unset.

    Raises:
        ConfigurationError: If the value is not a valid size.
    """
    env = os.environ if environ is None else environ
    value = env.get(CACHE_MAX_SIZE_ENV, "")
    if not value:
        return None
    try:
        return parse_size(value)
    except ValueError as e:
        raise ConfigurationError(
            f"{CACHE_MAX_SIZE_ENV} environment variable expects a size: {e}",
            variable=CACHE_MAX_SIZE_ENV,
        ) from e
