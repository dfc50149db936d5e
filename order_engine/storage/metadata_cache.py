"""Metadata cache — market id → outcome token ids, with a 24h TTL.

The cache is an explicit object built from a storage handle and a fetch
collaborator; there is no module-level state.  Entries are stored as
plain JSON, one row per market id.

Usage::

    store = SQLiteMetadataStore("data/metadata_cache.db")
    await store.open()
    cache = MetadataCache(store=store, fetcher=rest_client)
    info = await cache.resolve("42")
    await store.close()

Concurrent ``resolve()`` calls for the same market may both fetch; the
last write wins.  Metadata does not change within a day, so either
result is correct.
"""

from __future__ import annotations

import asyncio
import os
import sqlite3
import time
from typing import Any, Callable, Mapping, Optional, Protocol, Union

import structlog
from pydantic import ValidationError

from order_engine.core.errors import MetadataUnavailableError
from order_engine.models.market import ResolvedMarketInfo

logger = structlog.get_logger("storage.metadata_cache")

__all__ = [
    "DEFAULT_TTL_SECONDS",
    "MetadataCache",
    "MetadataFetcher",
    "MetadataStore",
    "SQLiteMetadataStore",
]

DEFAULT_TTL_SECONDS = 24 * 60 * 60

MarketId = Union[str, int]


class MetadataFetcher(Protocol):
    """External collaborator: ``fetch(market_id) -> {yesTokenId, noTokenId}``."""

    async def fetch(self, market_id: str) -> Mapping[str, Any]: ...


class MetadataStore(Protocol):
    """Async key-value persistence for serialized entries."""

    async def get(self, key: str) -> Optional[str]: ...

    async def put(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def clear(self) -> None: ...

    async def keys(self) -> set[str]: ...


# ── SQLite backend ───────────────────────────────────────────────────


class SQLiteMetadataStore:
    """SQLite-backed :class:`MetadataStore`.

    Parameters
    ----------
    path:
        Database file, or ``":memory:"``.  Parent directories are created.
    """

    _TABLE = "market_metadata"

    def __init__(self, path: str = "data/metadata_cache.db") -> None:
        self._path = path
        self._conn: sqlite3.Connection | None = None

    # ── Lifecycle ────────────────────────────────────────────────

    async def open(self) -> None:
        """Open the connection and create the table.  Idempotent."""
        if self._conn is not None:
            return
        if self._path != ":memory:":
            os.makedirs(os.path.dirname(self._path) or ".", exist_ok=True)

        def _connect() -> sqlite3.Connection:
            conn = sqlite3.connect(self._path, check_same_thread=False)
            conn.execute(
                f"CREATE TABLE IF NOT EXISTS {self._TABLE} "
                "(market_id TEXT PRIMARY KEY, payload TEXT NOT NULL)"
            )
            conn.commit()
            return conn

        self._conn = await self._run(_connect)
        logger.info("metadata_store.opened", path=self._path)

    async def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("metadata_store.closed", path=self._path)

    async def __aenter__(self) -> SQLiteMetadataStore:
        await self.open()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    # ── Key-value API ────────────────────────────────────────────

    async def get(self, key: str) -> Optional[str]:
        conn = self._require()
        row = await self._run(
            lambda: conn.execute(
                f"SELECT payload FROM {self._TABLE} WHERE market_id = ?", (key,)
            ).fetchone()
        )
        return row[0] if row else None

    async def put(self, key: str, value: str) -> None:
        conn = self._require()

        def _upsert() -> None:
            conn.execute(
                f"INSERT INTO {self._TABLE} (market_id, payload) VALUES (?, ?) "
                "ON CONFLICT(market_id) DO UPDATE SET payload = excluded.payload",
                (key, value),
            )
            conn.commit()

        await self._run(_upsert)

    async def delete(self, key: str) -> None:
        conn = self._require()

        def _delete() -> None:
            conn.execute(f"DELETE FROM {self._TABLE} WHERE market_id = ?", (key,))
            conn.commit()

        await self._run(_delete)

    async def clear(self) -> None:
        conn = self._require()

        def _clear() -> None:
            conn.execute(f"DELETE FROM {self._TABLE}")
            conn.commit()

        await self._run(_clear)

    async def keys(self) -> set[str]:
        conn = self._require()
        rows = await self._run(
            lambda: conn.execute(f"SELECT market_id FROM {self._TABLE}").fetchall()
        )
        return {r[0] for r in rows}

    # ── Internals ────────────────────────────────────────────────

    def _require(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("SQLiteMetadataStore not opened — call open() first")
        return self._conn

    @staticmethod
    async def _run(fn: Callable[[], Any]) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, fn)


# ── Cache ────────────────────────────────────────────────────────────


class MetadataCache:
    """TTL cache of :class:`ResolvedMarketInfo` keyed by market id.

    Parameters
    ----------
    store:
        Persistence handle.
    fetcher:
        Collaborator resolving a market id to its token ids.
    ttl_seconds:
        Entry lifetime; stale entries are refetched.
    clock:
        Unix seconds.  Injectable for tests.
    """

    def __init__(
        self,
        store: MetadataStore,
        fetcher: MetadataFetcher,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._ttl = ttl_seconds
        self._clock = clock

        # Stats
        self._hits = 0
        self._misses = 0
        self._fetches = 0

    async def resolve(self, market_id: MarketId, force_refresh: bool = False) -> ResolvedMarketInfo:
        """Return the cached entry for *market_id*, fetching when absent or stale.

        Raises
        ------
        MetadataUnavailableError
            The fetch failed or returned an unusable payload.  The stored
            entry (if any) is left untouched.
        """
        key = str(market_id)
        now = self._clock()

        if not force_refresh:
            cached = await self._load(key)
            if cached is not None and cached.is_fresh(now, self._ttl):
                self._hits += 1
                logger.debug("metadata_cache.hit", market_id=key)
                return cached
            logger.debug(
                "metadata_cache.miss",
                market_id=key,
                stale=cached is not None,
            )
        self._misses += 1

        info = await self._fetch(key)
        await self._store.put(key, info.model_dump_json())
        logger.info(
            "metadata_cache.refreshed",
            market_id=key,
            yes_token_id=info.yes_token_id,
            no_token_id=info.no_token_id,
        )
        return info

    async def invalidate(self, market_id: MarketId) -> None:
        await self._store.delete(str(market_id))
        logger.info("metadata_cache.invalidated", market_id=str(market_id))

    async def invalidate_all(self) -> None:
        await self._store.clear()
        logger.info("metadata_cache.cleared")

    async def list_keys(self) -> set[str]:
        """Cached market ids, stale ones included.  Never fetches."""
        return await self._store.keys()

    @property
    def stats(self) -> dict[str, int]:
        return {"hits": self._hits, "misses": self._misses, "fetches": self._fetches}

    # ── Internals ────────────────────────────────────────────────

    async def _load(self, key: str) -> Optional[ResolvedMarketInfo]:
        raw = await self._store.get(key)
        if raw is None:
            return None
        try:
            info = ResolvedMarketInfo.model_validate_json(raw)
        except ValidationError:
            logger.warning("metadata_cache.corrupt_entry", market_id=key)
            return None
        if info.market_id != key:
            logger.warning("metadata_cache.corrupt_entry", market_id=key, stored=info.market_id)
            return None
        return info

    async def _fetch(self, key: str) -> ResolvedMarketInfo:
        self._fetches += 1
        try:
            data = await self._fetcher.fetch(key)
        except Exception as exc:
            logger.warning("metadata_cache.fetch_failed", market_id=key, error=str(exc))
            raise MetadataUnavailableError(key, str(exc)) from exc

        try:
            return ResolvedMarketInfo(
                market_id=key,
                yes_token_id=str(data["yesTokenId"]),
                no_token_id=str(data["noTokenId"]),
                resolved_at=self._clock(),
            )
        except (KeyError, TypeError, ValidationError) as exc:
            logger.warning("metadata_cache.bad_payload", market_id=key)
            raise MetadataUnavailableError(key, "malformed metadata payload") from exc
