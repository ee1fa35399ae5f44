"""Bounded, age-limited cache store.

This module provides a thin, typed wrapper over :class:`cachetools.LRUCache`
that adds per-entry insertion timestamps and lazy expiry. Capacity eviction is
left to ``cachetools``; expiry is only checked when a key is looked up, there
is no background sweeping.

Two read modes are supported:

- ``peek`` (the default) reads without refreshing the entry's recency, so a
  hot key still ages out of the eviction order and ``max_age`` is honored.
- ``get`` refreshes recency on every read, as a plain LRU would.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from cachetools import Cache, LRUCache  # type: ignore[import-untyped]


class _Missing:
    """Sentinel type for an absent or expired entry."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


@dataclass(frozen=True)
class CacheEntry:
    """A stored value and the time it was written.

    ``value`` may be ``None``, which records a tombstone for an upstream call
    that produced no result.
    """

    key: str
    value: Any
    inserted_at: float


class CacheStore:
    """LRU cache with lazy per-entry expiry.

    Parameters
    ----------
    max_size: int
        Maximum number of entries to retain.
        When the cache is full, the least-recently-used entry is discarded.
    max_age: float
        Seconds after insertion at which an entry expires. ``0`` disables
        expiry.
    stale: bool
        Return an expired entry once (and drop it) instead of reporting a miss.
    peek: bool
        Read without refreshing recency.
    timer: Callable[[], float]
        Clock used to stamp and age entries. Defaults to ``time.monotonic``.
    """

    def __init__(
        self,
        max_size: int = 10000,
        max_age: float = 60.0,
        *,
        stale: bool = False,
        peek: bool = True,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        if max_age < 0:
            raise ValueError("max_age must not be negative")
        self.max_size = max_size
        self.max_age = max_age
        self.stale = stale
        self.peek = peek
        self._timer = timer
        self._cache: LRUCache[str, CacheEntry] = LRUCache(maxsize=max_size)

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    def _is_expired(self, entry: CacheEntry) -> bool:
        if not self.max_age:
            return False
        return self._timer() - entry.inserted_at > self.max_age

    def _read(self, key: str) -> CacheEntry:
        if self.peek:
            # Cache.__getitem__ skips LRUCache's recency update.
            return Cache.__getitem__(self._cache, key)
        return self._cache[key]

    def has(self, key: str) -> bool:
        """Return True if `key` is present and not expired.

        Never refreshes recency, whatever the read mode.
        """
        if key not in self._cache:
            return False
        entry = Cache.__getitem__(self._cache, key)
        return not self._is_expired(entry)

    def lookup(self, key: str) -> Any:
        """Return the value for `key`, or ``MISSING`` if absent or expired.

        Expired entries are removed on the way out. With ``stale`` enabled the
        expired value is handed back one last time.
        """
        if key not in self._cache:
            return MISSING
        entry = self._read(key)
        if not self._is_expired(entry):
            return entry.value
        del self._cache[key]
        if self.stale:
            return entry.value
        return MISSING

    def set(self, key: str, value: Any) -> None:
        """Insert or update `key` with `value`, evicting the LRU entry if full."""
        self._cache[key] = CacheEntry(key=key, value=value, inserted_at=self._timer())

    def entry(self, key: str) -> Optional[CacheEntry]:
        """Return the raw entry for `key` without expiry checks or recency update."""
        if key not in self._cache:
            return None
        return Cache.__getitem__(self._cache, key)

    def keys(self) -> list[str]:
        """Return resident keys, expired ones included."""
        return list(self._cache.keys())

    def clear(self) -> None:
        """Drop every entry."""
        self._cache.clear()
