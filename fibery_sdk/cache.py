"""
Schema cache for the Fibery SDK.

SchemaCache hands out the Schema of a workspace, fetching it from the
backend only when needed:

- Warm: a fresh cached entry is returned without any network call
- Cold: no entry, or the entry's TTL ran out. The schema is fetched
  conditionally with the last known etag (kept even after expiry), so
  an unchanged schema costs one 304 round trip and no rebuild
- Fetching: a fetch for the workspace is already running. Callers join
  it and all observe the same Schema or the same exception

Invariants:
    - At most one fetch per workspace is in flight at any time
    - The in-flight registration is cleared as soon as the fetch settles,
      whatever the outcome, so the next call starts fresh
    - A failed revalidation never falls back to the stale schema
    - "Not modified" keeps the cached Schema object (identity preserved)

Thread safety:
    All state is owned by the event loop the cache is used from; there
    are no suspension points between reading and updating it.

Example:
    >>> async with FiberyTransport("acme", token) as transport:
    ...     cache = SchemaCache(transport)
    ...     schema = await cache.get_schema("acme")
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Protocol, Union

from .builder import build_schema
from .config import Settings, get_settings
from .errors import TransportError
from .lru import LRUCache
from .schema import Schema

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotModified:
    """Backend confirmed the schema for the sent etag is unchanged."""


@dataclass(frozen=True)
class SchemaPayload:
    """Fresh schema body and the etag it was served with."""

    payload: Any
    etag: Optional[str] = None


FetchResult = Union[NotModified, SchemaPayload]


class SchemaFetcher(Protocol):
    """Source of raw schemas (implemented by FiberyTransport)."""

    async def fetch_raw_schema(self, workspace: str, etag: Optional[str] = None) -> FetchResult:
        """Fetch the schema; may answer NotModified only when etag is given."""
        ...


@dataclass(frozen=True)
class CachedSchema:
    """Value stored per workspace."""

    schema: Schema
    etag: Optional[str]


@dataclass
class CacheStats:
    """Counters for observability."""

    hits: int = 0
    misses: int = 0
    joins: int = 0
    not_modified: int = 0
    rebuilds: int = 0
    fetch_errors: int = 0


class SchemaCache:
    """LRU + TTL cache of workspace schemas with single-flight fetching.

    Attributes:
        stats: Hit/miss/fetch counters
    """

    def __init__(
        self,
        fetcher: SchemaFetcher,
        max_size: int = 100,
        ttl: float = 600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize schema cache.

        Args:
            fetcher: Object providing fetch_raw_schema()
            max_size: Maximum number of cached workspaces
            ttl: Seconds a schema is served without revalidation
            clock: Monotonic time source, injectable for tests
        """
        self._fetcher = fetcher
        self._cache: LRUCache[CachedSchema] = LRUCache(max_size=max_size, ttl=ttl, clock=clock)
        self._in_flight: Dict[str, asyncio.Task[Schema]] = {}
        self.stats = CacheStats()

    @classmethod
    def from_settings(
        cls,
        fetcher: SchemaFetcher,
        settings: Optional[Settings] = None,
    ) -> SchemaCache:
        """Create a cache sized from Settings."""
        settings = settings or get_settings()
        return cls(
            fetcher,
            max_size=settings.schema_cache_size,
            ttl=settings.schema_cache_ttl,
        )

    async def get_schema(self, workspace: str) -> Schema:
        """Get the schema of a workspace.

        Args:
            workspace: Workspace identifier (cache key)

        Returns:
            Schema, shared with every other caller of the same fetch

        Raises:
            TransportError: If fetching failed
            SchemaIntegrityError: If the fetched schema is inconsistent
        """
        cached = self._cache.get(workspace)
        if cached is not None:
            self.stats.hits += 1
            return cached.schema

        task = self._in_flight.get(workspace)
        if task is None:
            self.stats.misses += 1
            task = asyncio.ensure_future(self._revalidate(workspace))
            self._in_flight[workspace] = task
            task.add_done_callback(lambda t: self._on_done(workspace, t))
        else:
            self.stats.joins += 1
            logger.debug("Joining in-flight schema fetch for workspace %s", workspace)

        # shield: a cancelled caller must not cancel the fetch other callers share
        return await asyncio.shield(task)

    def in_flight(self, workspace: str) -> bool:
        """Whether a fetch for the workspace is running."""
        return workspace in self._in_flight

    def invalidate(self, workspace: str) -> bool:
        """Drop a workspace's cached schema and etag."""
        return self._cache.delete(workspace)

    def clear(self) -> None:
        """Drop all cached schemas."""
        self._cache.clear()

    def cleanup(self) -> int:
        """Drop expired entries. Returns the number dropped."""
        dropped = self._cache.cleanup()
        if dropped:
            logger.debug("Dropped %d expired schemas", dropped)
        return dropped

    def __contains__(self, workspace: object) -> bool:
        return workspace in self._cache

    def __len__(self) -> int:
        return len(self._cache)

    async def _revalidate(self, workspace: str) -> Schema:
        try:
            return await self._fetch_and_store(workspace)
        finally:
            self._settle(workspace, asyncio.current_task())

    async def _fetch_and_store(self, workspace: str) -> Schema:
        previous_entry = self._cache.peek(workspace)
        previous = previous_entry.value if previous_entry is not None else None
        etag = previous.etag if previous is not None else None

        try:
            result = await self._fetcher.fetch_raw_schema(workspace, etag)
        except Exception as e:
            self.stats.fetch_errors += 1
            logger.warning("Schema fetch failed for workspace %s: %s", workspace, e)
            raise

        if isinstance(result, NotModified):
            if previous is None:
                raise TransportError(
                    "Backend answered 'not modified' but no schema is cached",
                    workspace=workspace,
                )
            self.stats.not_modified += 1
            if not self._cache.touch(workspace):
                # evicted while the request was running
                self._cache.set(workspace, previous)
            logger.debug("Schema for workspace %s not modified", workspace)
            return previous.schema

        schema = build_schema(result.payload, etag=result.etag)
        self._cache.set(workspace, CachedSchema(schema=schema, etag=result.etag))
        self.stats.rebuilds += 1
        logger.info(
            "Loaded schema for workspace %s (version=%s, %d types)",
            workspace,
            schema.version,
            len(schema),
        )
        return schema

    def _settle(self, workspace: str, task: Optional[asyncio.Task]) -> None:
        if task is not None and self._in_flight.get(workspace) is task:
            del self._in_flight[workspace]

    def _on_done(self, workspace: str, task: asyncio.Task[Schema]) -> None:
        self._settle(workspace, task)
        # mark the exception retrieved when every waiter was cancelled
        if not task.cancelled():
            task.exception()
