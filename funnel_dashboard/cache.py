from __future__ import annotations

import json
import logging
import os
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Protocol

from funnel_dashboard.config import DashboardConfig
from funnel_dashboard.models import ProductDataset


logger = logging.getLogger(__name__)

CACHE_VERSION = 1
DEFAULT_TTL_SEC = 5 * 60


class CacheStore(Protocol):
    kind: str

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryCacheStore:
    kind = "memory"

    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        self._items[key] = value

    def delete(self, key: str) -> None:
        self._items.pop(key, None)


class FileCacheStore:
    kind = "file"

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Cache file %s unreadable: %s", path, exc)
            return None

    def set(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp_path = path.parent / f"{path.name}.{uuid.uuid4().hex}.tmp"
        try:
            tmp_path.write_text(value, encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            return


def probe_directory(directory: str | Path) -> bool:
    path = Path(directory)
    marker = path / f".probe_{uuid.uuid4().hex}"
    try:
        path.mkdir(parents=True, exist_ok=True)
        marker.write_text("ok", encoding="utf-8")
        marker.unlink()
    except OSError:
        return False
    return True


def select_cache_store(config: DashboardConfig) -> CacheStore:
    """Pick the cache backend once per process."""
    if config.cache_enabled and probe_directory(config.cache_dir):
        return FileCacheStore(config.cache_dir)
    if config.cache_enabled:
        logger.warning("Cache dir %s not writable, using in-memory cache.", config.cache_dir)
    return MemoryCacheStore()


def cache_key(month_id: str) -> str:
    return f"dashboard_cache_{month_id}"


@dataclass(frozen=True)
class CacheEntry:
    month_id: str
    timestamp: float
    data: list[ProductDataset]


def encode_entry(entry: CacheEntry) -> str:
    return json.dumps(
        {
            "version": CACHE_VERSION,
            "month": entry.month_id,
            "timestamp": entry.timestamp,
            "data": [product.to_dict() for product in entry.data],
        },
        ensure_ascii=False,
    )


def decode_entry(raw: str, month_id: str) -> CacheEntry | None:
    try:
        payload = json.loads(raw)
        if not isinstance(payload, dict):
            raise TypeError("Cache payload is not an object.")
        if payload.get("version") != CACHE_VERSION:
            raise ValueError(f"Unsupported cache version: {payload.get('version')!r}")
        timestamp = payload["timestamp"]
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            raise TypeError("Cache timestamp is not numeric.")
        rows = payload["data"]
        if not isinstance(rows, list):
            raise TypeError("Cache data is not a list.")
        data = [ProductDataset.from_dict(row) for row in rows]
    except (ValueError, TypeError, KeyError) as exc:
        logger.warning("Ignoring corrupt cache entry for %s: %s", month_id, exc)
        return None
    return CacheEntry(month_id=month_id, timestamp=float(timestamp), data=data)


class MonthCache:
    """Time-boxed memo of fetched months.

    Entries younger than `ttl_sec` are served as-is; anything else goes to
    the fetcher and overwrites the entry. A failed fetch leaves the stored
    entry alone; entries that no longer decode are dropped when read.
    Concurrent fetches of the same month are not coalesced.
    """

    def __init__(
        self,
        store: CacheStore,
        fetcher: Callable[[str], list[ProductDataset]],
        ttl_sec: float = DEFAULT_TTL_SEC,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.fetcher = fetcher
        self.ttl_sec = ttl_sec
        self.clock = clock

    def load(self, month_id: str) -> CacheEntry | None:
        raw = self.store.get(cache_key(month_id))
        if raw is None:
            return None
        entry = decode_entry(raw, month_id)
        if entry is None:
            try:
                self.invalidate(month_id)
            except OSError as exc:
                logger.warning("Could not drop corrupt cache for %s: %s", month_id, exc)
        return entry

    def age_seconds(self, month_id: str) -> float | None:
        entry = self.load(month_id)
        if entry is None:
            return None
        return self.clock() - entry.timestamp

    def is_fresh(self, entry: CacheEntry) -> bool:
        return self.clock() - entry.timestamp < self.ttl_sec

    def get_or_fetch(self, month_id: str, force_refresh: bool = False) -> list[ProductDataset]:
        if not force_refresh:
            entry = self.load(month_id)
            if entry is not None and self.is_fresh(entry):
                logger.debug(
                    "Cache hit for %s (age %.0fs)", month_id, self.clock() - entry.timestamp
                )
                return entry.data
            logger.debug("Cache miss for %s", month_id)

        data = self.fetcher(month_id)
        entry = CacheEntry(month_id=month_id, timestamp=self.clock(), data=list(data))
        try:
            self.store.set(cache_key(month_id), encode_entry(entry))
        except OSError as exc:
            logger.warning("Could not persist cache for %s: %s", month_id, exc)
        return entry.data

    def invalidate(self, month_id: str) -> None:
        self.store.delete(cache_key(month_id))
