"""
Stat cache for remote object metadata.

Sits in front of every HEAD request. An entry is either a serialized
StatRecord (long TTL) or the ABSENT marker (short TTL) recorded after the
remote store confirmed an object does not exist. The marker bounds the cost
of repeated existence probes without permanently hiding an object that
appears shortly afterwards.

Entries are keyed by a hash of the virtual path and live in an injected
KeyValueStore shared between backend instances.
"""
from __future__ import annotations

import hashlib
import logging
import threading
import time
from typing import Any, Callable, Optional, Union

from cachetools import TLRUCache

from .base import KeyValueStore, StatRecord

__all__ = ["ABSENT", "StatCache", "InMemoryKeyValueStore"]

logger = logging.getLogger(__name__)

# Stored value for a confirmed-missing object
_ABSENT_MARKER = "NOT_FOUND"


class _Absent:
    """Sentinel returned by StatCache.get for a cached not-found result."""

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT = _Absent()


class InMemoryKeyValueStore(KeyValueStore):
    """
    Process-local KeyValueStore with per-entry TTL.

    Suitable for a single process or for tests; deployments sharing the
    cache between processes plug in their own KeyValueStore. Every call
    holds a lock, so each get/set/delete is atomic.
    """

    def __init__(self, maxsize: int = 100_000, timer: Callable[[], float] = time.monotonic) -> None:
        self._cache: TLRUCache = TLRUCache(
            maxsize=maxsize,
            ttu=lambda _key, entry, now: now + entry[1],
            timer=timer,
        )
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._cache.get(key)
        return None if entry is None else entry[0]

    def set(self, key: str, value: Any, ttl: float) -> None:
        with self._lock:
            self._cache[key] = (value, ttl)

    def delete(self, key: str) -> None:
        with self._lock:
            self._cache.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            self._cache.expire()
            return len(self._cache)


class StatCache:
    """Typed stat-record cache over a KeyValueStore."""

    def __init__(self, store: KeyValueStore, *, namespace: str = "s3-stat") -> None:
        self._store = store
        self._namespace = namespace

    def key_for(self, path: str) -> str:
        digest = hashlib.md5(path.encode("utf-8")).hexdigest()
        return f"{self._namespace}:{digest}"

    def get(self, path: str) -> Union[StatRecord, _Absent, None]:
        """
        Look up a path.

        Returns:
            StatRecord on a positive hit, ABSENT on a cached not-found,
            None on a miss
        """
        value = self._store.get(self.key_for(path))
        if value is None:
            return None
        if value == _ABSENT_MARKER:
            return ABSENT
        if isinstance(value, dict):
            try:
                return StatRecord.from_dict(value)
            except (KeyError, TypeError, ValueError):
                logger.warning(f"Discarding malformed stat cache entry for {path}")
                self.invalidate(path)
                return None
        logger.warning(f"Discarding unexpected stat cache value for {path}")
        self.invalidate(path)
        return None

    def put(self, path: str, record: StatRecord, ttl: float) -> None:
        self._store.set(self.key_for(path), record.to_dict(), ttl)

    def put_absent(self, path: str, ttl: float) -> None:
        self._store.set(self.key_for(path), _ABSENT_MARKER, ttl)

    def invalidate(self, path: str) -> None:
        self._store.delete(self.key_for(path))
