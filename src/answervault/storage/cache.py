# SPDX-FileCopyrightText: 2025 OmniNode.ai Inc.
# SPDX-License-Identifier: MIT

"""Process-wide TTL cache of remote repository reads.

The cache maps ``(repository, path)`` keys to file contents or directory
listings. It is a latency optimization only: entries may disappear at any
time (TTL expiry, size eviction, explicit invalidation) without affecting
correctness, since the remote repository is the only system of record.

Thread Safety:
    All access goes through ``get``/``put``/``invalidate``/``clear``, which
    hold one internal lock. The underlying ``cachetools.TTLCache`` applies
    the TTL at insertion time; ``get`` evicts expired entries before the lookup.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from functools import lru_cache

import cachetools

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300
DEFAULT_MAX_ENTRIES = 4096

CachedValue = str | tuple[str, ...]


def file_key(repository: str, path: str) -> str:
    """Cache key of a file's content."""
    return f"{repository}:{path}"


def listing_key(repository: str, path: str) -> str:
    """Cache key of a directory listing."""
    return f"dir:{repository}:{path}"


class RemoteFileCache:
    """Lock-guarded TTL map from composite string keys to cached reads.

    Example:
        >>> cache = RemoteFileCache(ttl_seconds=300)
        >>> cache.put(file_key("acme/vault", "answers/ans-001.yml"), "id: ans-001\\n")
        >>> cache.get(file_key("acme/vault", "answers/ans-001.yml"))
        'id: ans-001\\n'
        >>> cache.invalidate("acme/vault:answers/")
        1
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._lock = threading.Lock()
        self._data: cachetools.TTLCache[str, CachedValue] = cachetools.TTLCache(
            maxsize=max_entries, ttl=ttl_seconds, timer=timer
        )

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    def get(self, key: str) -> CachedValue | None:
        """Return the cached value, or None on a miss or an expired entry.

        Expired entries are evicted on the way.
        """
        with self._lock:
            self._data.expire()
            value = self._data.get(key)
        logger.debug("cache %s", "hit" if value is not None else "miss", extra={"key": key})
        return value

    def put(self, key: str, value: CachedValue) -> None:
        with self._lock:
            self._data[key] = value

    def invalidate(self, prefix: str) -> int:
        """Drop every key starting with ``prefix``.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            doomed = [key for key in list(self._data.keys()) if key.startswith(prefix)]
            for key in doomed:
                self._data.pop(key, None)
        if doomed:
            logger.debug(
                "cache invalidated", extra={"prefix": prefix, "removed": len(doomed)}
            )
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            self._data.expire()
            return len(self._data)


@lru_cache(maxsize=1)
def get_shared_cache() -> RemoteFileCache:
    """Return the cache shared by every client in this process."""
    from answervault.config import get_settings

    settings = get_settings()
    return RemoteFileCache(
        ttl_seconds=settings.cache_ttl_seconds,
        max_entries=settings.cache_max_entries,
    )


__all__ = [
    "CachedValue",
    "DEFAULT_MAX_ENTRIES",
    "DEFAULT_TTL_SECONDS",
    "RemoteFileCache",
    "file_key",
    "get_shared_cache",
    "listing_key",
]
