"""
LRU cache with per-entry TTL.

Entries live in a dict for O(1) lookup and in a doubly linked list for
O(1) recency ordering: head is the most recently used entry, tail the
least. Inserting past capacity evicts the tail regardless of its TTL.

Expiry is checked on read. Expired entries stay in place (peek() still
sees them) until they are evicted, replaced or dropped by cleanup().

Invariants:
    - len(cache) <= max_size after every set()
    - get() never returns an expired value
    - peek() never changes recency order or drops entries

Not thread-safe: callers serialise access (the schema cache only
touches it from the event loop thread).
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Generic, Iterator, Optional, TypeVar

T = TypeVar("T")


@dataclass(eq=False)
class CacheEntry(Generic[T]):
    """Cached value with its expiry and list linkage."""

    key: str
    value: T
    expires_at: float
    prev: Optional[CacheEntry[T]] = None
    next: Optional[CacheEntry[T]] = None

    def expired(self, now: float) -> bool:
        return now > self.expires_at


class LRUCache(Generic[T]):
    """Fixed-capacity LRU cache with a time-to-live per entry.

    Attributes:
        max_size: Maximum number of entries
        ttl: Seconds an entry stays fresh after set() or touch()

    Example:
        >>> cache = LRUCache[str](max_size=2, ttl=60)
        >>> cache.set("a", "1")
        >>> cache.get("a")
        '1'
    """

    def __init__(
        self,
        max_size: int,
        ttl: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize cache.

        Args:
            max_size: Maximum number of entries (>= 1)
            ttl: Entry lifetime in seconds
            clock: Monotonic time source, injectable for tests
        """
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")
        self.max_size = max_size
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry[T]] = {}
        self._head: Optional[CacheEntry[T]] = None
        self._tail: Optional[CacheEntry[T]] = None

    def get(self, key: str) -> Optional[T]:
        """Get a fresh value and mark it most recently used.

        Expired entries are left in place and reported as missing.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None

        if entry.expired(self._clock()):
            return None

        self._move_to_head(entry)
        return entry.value

    def peek(self, key: str) -> Optional[CacheEntry[T]]:
        """Get the entry even if expired, without touching recency."""
        return self._entries.get(key)

    def set(self, key: str, value: T) -> None:
        """Insert or replace a value; evicts the LRU entry past capacity."""
        expires_at = self._clock() + self.ttl

        entry = self._entries.get(key)
        if entry is not None:
            entry.value = value
            entry.expires_at = expires_at
            self._move_to_head(entry)
            return

        entry = CacheEntry(key=key, value=value, expires_at=expires_at)
        self._entries[key] = entry
        self._add_to_head(entry)

        if len(self._entries) > self.max_size:
            self._evict_lru()

    def touch(self, key: str) -> bool:
        """Refresh an entry's expiry and mark it most recently used."""
        entry = self._entries.get(key)
        if entry is None:
            return False
        entry.expires_at = self._clock() + self.ttl
        self._move_to_head(entry)
        return True

    def delete(self, key: str) -> bool:
        """Remove an entry. Returns whether it existed."""
        entry = self._entries.pop(key, None)
        if entry is None:
            return False
        self._unlink(entry)
        return True

    def clear(self) -> None:
        """Remove all entries."""
        self._entries.clear()
        self._head = None
        self._tail = None

    def cleanup(self) -> int:
        """Drop expired entries. Returns the number dropped."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.expired(now)]
        for key in expired:
            self.delete(key)
        return len(expired)

    def keys(self) -> list[str]:
        """Keys from most to least recently used."""
        return [entry.key for entry in self._iter_entries()]

    def __contains__(self, key: object) -> bool:
        entry = self._entries.get(key)  # type: ignore[arg-type]
        return entry is not None and not entry.expired(self._clock())

    def __len__(self) -> int:
        return len(self._entries)

    def _iter_entries(self) -> Iterator[CacheEntry[T]]:
        entry = self._head
        while entry is not None:
            yield entry
            entry = entry.next

    def _add_to_head(self, entry: CacheEntry[T]) -> None:
        entry.prev = None
        entry.next = self._head
        if self._head is not None:
            self._head.prev = entry
        self._head = entry
        if self._tail is None:
            self._tail = entry

    def _unlink(self, entry: CacheEntry[T]) -> None:
        if entry.prev is not None:
            entry.prev.next = entry.next
        else:
            self._head = entry.next

        if entry.next is not None:
            entry.next.prev = entry.prev
        else:
            self._tail = entry.prev

        entry.prev = None
        entry.next = None

    def _move_to_head(self, entry: CacheEntry[T]) -> None:
        if entry is self._head:
            return
        self._unlink(entry)
        self._add_to_head(entry)

    def _evict_lru(self) -> None:
        if self._tail is not None:
            self.delete(self._tail.key)
