"""
geco/data/inventory/cache.py - Local inventory cache

Persists an Inventory as independent JSON array documents:

    {cache_dir}/projects.json
    {cache_dir}/instances.json
    {cache_dir}/instance_groups.json

Reads tolerate any subset being absent; a missing document means "no data
of that kind". Each document is written to a temporary file in the same
directory and moved into place, so a single document is never half-written.
The three writes are not one transaction.

Concurrency:
    - writes: ``filelock`` on ``inventory.lock`` for the duration of ``save``
    - reads: no lock

Usage:
    from geco.data.inventory.cache import InventoryCache

    cache = InventoryCache()
    inventory = cache.load()
    if cache.is_stale():
        ...
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from filelock import FileLock, Timeout

from geco.config import get_cache_dir, get_cache_ttl, settings
from geco.exceptions import CacheCorruptionError, CacheWriteError

from .types import Instance, InstanceGroup, Inventory, Project

logger = logging.getLogger(__name__)

DIR_MODE = 0o700
FILE_MODE = 0o600
LOCK_FILE = "inventory.lock"

# Inventory attribute -> (document file name, entry parser)
DOCUMENTS: dict[str, tuple[str, Callable[[dict[str, Any]], Any]]] = {
    "projects": ("projects.json", Project.from_api),
    "instances": ("instances.json", Instance.from_api),
    "instance_groups": ("instance_groups.json", InstanceGroup.from_api),
}


class InventoryCache:
    """File-backed inventory store

    Attributes:
        cache_dir: Directory holding the documents
        ttl_seconds: Age after which the snapshot is considered stale
    """

    def __init__(self, cache_dir: Path | str | None = None, ttl_seconds: int | None = None):
        self.cache_dir = Path(cache_dir).expanduser() if cache_dir else get_cache_dir()
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else get_cache_ttl()

    def document_path(self, attribute: str) -> Path:
        return self.cache_dir / DOCUMENTS[attribute][0]

    def ensure_dir(self) -> None:
        self.cache_dir.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)

    # =========================================================================
    # Read
    # =========================================================================

    def load(self) -> Inventory:
        """Read whichever documents exist

        Raises:
            CacheCorruptionError: a document is not a JSON array of valid entries
        """
        self.ensure_dir()
        inventory = Inventory(cache_dir=self.cache_dir)

        for attribute in DOCUMENTS:
            setattr(inventory, attribute, self._load_document(attribute))

        logger.debug(
            "loaded cache from %s: %s",
            self.cache_dir,
            ", ".join(f"{k}={v}" for k, v in inventory.counts.items()),
        )
        return inventory

    def _load_document(self, attribute: str) -> list[Any]:
        name, parse = DOCUMENTS[attribute]
        path = self.cache_dir / name

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.debug("no %s in cache", name)
            return []
        except json.JSONDecodeError as e:
            raise CacheCorruptionError(str(path), "invalid JSON", cause=e) from e
        except (OSError, UnicodeDecodeError) as e:
            raise CacheCorruptionError(str(path), "unreadable", cause=e) from e

        if not isinstance(data, list):
            raise CacheCorruptionError(str(path), f"expected a JSON array, got {type(data).__name__}")

        entries = []
        for index, item in enumerate(data):
            try:
                entries.append(parse(item))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                raise CacheCorruptionError(str(path), f"invalid entry at index {index}", cause=e) from e
        return entries

    # =========================================================================
    # Write
    # =========================================================================

    def save(self, inventory: Inventory) -> None:
        """Write every collection to its own document

        Raises:
            CacheWriteError: the lock could not be taken or a write failed
        """
        lock_path = self.cache_dir / LOCK_FILE
        try:
            self.ensure_dir()
            with FileLock(lock_path, timeout=settings.FILE_LOCK_TIMEOUT):
                for attribute in DOCUMENTS:
                    items = getattr(inventory, attribute)
                    self._write_document(self.document_path(attribute), [item.to_dict() for item in items])
        except Timeout as e:
            raise CacheWriteError(str(lock_path), "timed out waiting for the cache lock", cause=e) from e
        except OSError as e:
            raise CacheWriteError(str(self.cache_dir), e.strerror or str(e), cause=e) from e

        inventory.cache_dir = self.cache_dir
        logger.info("saved inventory to %s", self.cache_dir)

    def _write_document(self, path: Path, data: list[dict[str, Any]]) -> None:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=self.cache_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.chmod(tmp_name, FILE_MODE)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("wrote %d entries to %s", len(data), path)

    # =========================================================================
    # Status
    # =========================================================================

    def age(self) -> float | None:
        """Seconds since ``projects.json`` was written, None if absent"""
        try:
            mtime = self.document_path("projects").stat().st_mtime
        except FileNotFoundError:
            return None
        return max(0.0, time.time() - mtime)

    def is_stale(self) -> bool:
        """True when there is no snapshot or it is older than the TTL"""
        age = self.age()
        return age is None or age > self.ttl_seconds

    def get_info(self) -> dict[str, Any]:
        """Cache location, age and per-document presence

        Returns:
            ``{"cache_dir", "ttl_seconds", "age_seconds", "stale", "documents": [...]}``
            where each document is ``{"name", "exists", "size_bytes"}``
        """
        documents = []
        for attribute in DOCUMENTS:
            path = self.document_path(attribute)
            exists = path.exists()
            documents.append(
                {
                    "name": path.name,
                    "exists": exists,
                    "size_bytes": path.stat().st_size if exists else 0,
                }
            )

        age = self.age()
        return {
            "cache_dir": str(self.cache_dir),
            "ttl_seconds": self.ttl_seconds,
            "age_seconds": round(age) if age is not None else None,
            "stale": self.is_stale(),
            "documents": documents,
        }
