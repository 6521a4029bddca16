"""
geco/config.py - Central settings

Defaults live in the frozen ``settings`` instance. Environment variables
override them at call time through the ``get_*`` helpers, and CLI options
override both.

Environment:
    GECO_CACHE_DIR      cache directory (default: ~/.cache/geco)
    GECO_MAX_PARALLEL   admission limit for concurrent API calls (default: 10)
    GECO_MAX_WORKERS    worker thread pool size (default: 20)
    GECO_CACHE_TTL      seconds before a cache snapshot is considered stale
    GECO_RETRY_COUNT    retries per page call for retryable errors
    LOG_LEVEL / LOG_FORMAT / DEBUG
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from geco import __version__

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}


@dataclass(frozen=True)
class Settings:
    """Application defaults (immutable)"""

    CACHE_DIR: str = "~/.cache/geco"
    MAX_PARALLEL_API_CALLS: int = 10
    MAX_WORKERS: int = 20
    CACHE_TTL_SECONDS: int = 24 * 60 * 60
    API_RETRY_COUNT: int = 3
    FILE_LOCK_TIMEOUT: int = 10

    # Read-only scopes requested from Application Default Credentials
    API_SCOPES: tuple[str, ...] = field(
        default=(
            "https://www.googleapis.com/auth/cloud-platform.read-only",
            "https://www.googleapis.com/auth/compute.readonly",
        )
    )


settings = Settings()


def get_version() -> str:
    """Package version string"""
    return __version__


def get_env_bool(name: str, default: bool = False) -> bool:
    """Read a boolean environment variable

    Unrecognized values fall back to ``default``.
    """
    value = os.environ.get(name)
    if value is None:
        return default

    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    return default


def get_env_int(name: str, default: int) -> int:
    """Read an integer environment variable, ``default`` if missing or invalid"""
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Ignoring invalid integer for %s: %r", name, value)
        return default


def get_cache_dir() -> Path:
    """Cache directory (``GECO_CACHE_DIR`` or the default), user-expanded"""
    return Path(os.environ.get("GECO_CACHE_DIR") or settings.CACHE_DIR).expanduser()


def get_max_parallel() -> int:
    return get_env_int("GECO_MAX_PARALLEL", settings.MAX_PARALLEL_API_CALLS)


def get_max_workers() -> int:
    return get_env_int("GECO_MAX_WORKERS", settings.MAX_WORKERS)


def get_cache_ttl() -> int:
    return get_env_int("GECO_CACHE_TTL", settings.CACHE_TTL_SECONDS)


def get_retry_count() -> int:
    return get_env_int("GECO_RETRY_COUNT", settings.API_RETRY_COUNT)


@dataclass
class LogConfig:
    """Logging configuration"""

    level: str = "INFO"
    format: str = "%(asctime)s - %(levelname)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"

    @classmethod
    def from_env(cls) -> LogConfig:
        """Build from ``LOG_LEVEL`` / ``LOG_FORMAT``

        A true ``DEBUG`` variable ("1", "true", "yes", "on") forces DEBUG level.
        """
        config = cls(
            level=os.environ.get("LOG_LEVEL", cls.level).upper(),
            format=os.environ.get("LOG_FORMAT", cls.format),
        )
        if get_env_bool("DEBUG"):
            config.level = "DEBUG"
        return config
