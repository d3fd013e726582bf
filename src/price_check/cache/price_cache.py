import json
import logging
import re
from collections.abc import Callable
from datetime import datetime, timedelta

from ..models.analysis import PriceAnalysis
from ..models.cache import CacheStats, PriceCacheEntry, SavedQuery
from ..models.result import Result
from ..storage.base import KeyValueStorage
from ..timeutil import utcnow

logger = logging.getLogger(__name__)

CACHE_PREFIX = "price_cache_"
HISTORY_KEY = "price_search_history"
SAVED_QUERIES_KEY = "saved_price_queries"

DEFAULT_TTL = timedelta(hours=1)
DEFAULT_MAX_ENTRIES = 100
DEFAULT_HISTORY_LIMIT = 20

Clock = Callable[[], datetime]


def cache_key(query: str) -> str:
    """Storage key for a query: lower-cased, non-alphanumerics as underscores."""
    return CACHE_PREFIX + re.sub(r"[^a-z0-9]", "_", query.lower())


class PriceCacheStore:
    """TTL cache of price analyses keyed by normalized query text.

    Expired entries are evicted lazily when read. Every method is
    best-effort: storage failures are logged and reported through the
    returned Result, never raised.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        ttl: timedelta = DEFAULT_TTL,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Clock = utcnow,
    ):
        self.storage = storage
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock

    async def get(self, query: str) -> Result[PriceAnalysis]:
        key = cache_key(query)
        try:
            raw = await self.storage.get(key)
            if raw is None:
                logger.debug(f"Cache miss for '{query}'")
                return Result.success(None)

            entry = PriceCacheEntry.from_dict(json.loads(raw))
            if entry.is_expired(self._clock()):
                logger.debug(f"Cache entry for '{query}' expired at {entry.expires_at}")
                await self.storage.remove(key)
                return Result.success(None)

            entry.hit_count += 1
            await self.storage.set(key, json.dumps(entry.to_dict()))
            logger.info(f"Cache hit for '{query}' (hits: {entry.hit_count})")
            return Result.success(entry.analysis)
        except Exception as e:
            logger.error(f"Error getting cached analysis for '{query}': {e}")
            return Result.failure(str(e))

    async def set(
        self, query: str, analysis: PriceAnalysis, ttl: timedelta | None = None
    ) -> Result[None]:
        key = cache_key(query)
        now = self._clock()
        entry = PriceCacheEntry(
            id=key,
            query=query,
            analysis=analysis,
            created_at=now,
            expires_at=now + (ttl if ttl is not None else self.ttl),
            hit_count=0,
        )
        try:
            await self.storage.set(key, json.dumps(entry.to_dict()))
        except Exception as e:
            logger.error(f"Error caching analysis for '{query}': {e}")
            return Result.failure(str(e))

        await self.cleanup()
        return Result.success(None)

    async def remove(self, query: str) -> Result[None]:
        try:
            await self.storage.remove(cache_key(query))
            return Result.success(None)
        except Exception as e:
            logger.error(f"Error removing cached analysis for '{query}': {e}")
            return Result.failure(str(e))

    async def stats(self) -> Result[CacheStats]:
        try:
            entries = [entry for _, entry in await self._entries()]
        except Exception as e:
            logger.error(f"Error getting cache stats: {e}")
            return Result.failure(str(e), CacheStats())

        if not entries:
            return Result.success(CacheStats())

        created = [entry.created_at for entry in entries]
        total_hits = sum(entry.hit_count for entry in entries)
        return Result.success(
            CacheStats(
                total_entries=len(entries),
                # Mean hits per entry
                hit_rate=total_hits / len(entries),
                oldest_entry=min(created),
                newest_entry=max(created),
            )
        )

    async def clear_all(self) -> Result[int]:
        try:
            keys = await self._cache_keys()
            await self.storage.remove_many(keys)
            logger.info(f"Cleared {len(keys)} cache entries")
            return Result.success(len(keys))
        except Exception as e:
            logger.error(f"Error clearing cache: {e}")
            return Result.failure(str(e), 0)

    async def cleanup(self) -> Result[int]:
        """Drop expired entries, then the oldest ones beyond ``max_entries``."""
        try:
            now = self._clock()
            expired = []
            live = []
            for key, entry in await self._entries():
                if entry.is_expired(now):
                    expired.append(key)
                else:
                    live.append((key, entry))

            overflow = []
            if len(live) > self.max_entries:
                live.sort(key=lambda pair: pair[1].created_at)
                overflow = [key for key, _ in live[: len(live) - self.max_entries]]

            removed = expired + overflow
            if removed:
                await self.storage.remove_many(removed)
                logger.debug(
                    f"Cache cleanup removed {len(expired)} expired and "
                    f"{len(overflow)} overflow entries"
                )
            return Result.success(len(removed))
        except Exception as e:
            logger.error(f"Error cleaning up cache: {e}")
            return Result.failure(str(e), 0)

    async def _cache_keys(self) -> list[str]:
        keys = await self.storage.get_all_keys()
        return [key for key in keys if key.startswith(CACHE_PREFIX)]

    async def _entries(self) -> list[tuple[str, PriceCacheEntry]]:
        entries = []
        for key in await self._cache_keys():
            raw = await self.storage.get(key)
            if raw is None:
                continue
            try:
                entries.append((key, PriceCacheEntry.from_dict(json.loads(raw))))
            except (ValueError, KeyError, TypeError) as e:
                logger.warning(f"Skipping unreadable cache entry {key}: {e}")
        return entries


class SearchHistory:
    """Most-recent-first list of distinct queries, capped at ``limit``."""

    def __init__(self, storage: KeyValueStorage, limit: int = DEFAULT_HISTORY_LIMIT):
        self.storage = storage
        self.limit = limit

    async def get(self) -> Result[list[str]]:
        try:
            raw = await self.storage.get(HISTORY_KEY)
            return Result.success(json.loads(raw) if raw else [])
        except Exception as e:
            logger.error(f"Error getting search history: {e}")
            return Result.failure(str(e), [])

    async def add(self, query: str) -> Result[list[str]]:
        trimmed = query.strip()
        current = await self.get()
        if not current.ok:
            return current
        if not trimmed:
            return current

        history = [item for item in current.value if item != trimmed]
        history.insert(0, trimmed)
        history = history[: self.limit]
        try:
            await self.storage.set(HISTORY_KEY, json.dumps(history))
            return Result.success(history)
        except Exception as e:
            logger.error(f"Error adding to search history: {e}")
            return Result.failure(str(e), current.value)

    async def clear(self) -> Result[None]:
        try:
            await self.storage.remove(HISTORY_KEY)
            return Result.success(None)
        except Exception as e:
            logger.error(f"Error clearing search history: {e}")
            return Result.failure(str(e))


class SavedQueries:
    """User-named queries with usage tracking."""

    def __init__(self, storage: KeyValueStorage, clock: Clock = utcnow):
        self.storage = storage
        self._clock = clock

    async def get_all(self) -> Result[list[SavedQuery]]:
        try:
            raw = await self.storage.get(SAVED_QUERIES_KEY)
            records = json.loads(raw) if raw else []
            return Result.success([SavedQuery.from_dict(r) for r in records])
        except Exception as e:
            logger.error(f"Error getting saved queries: {e}")
            return Result.failure(str(e), [])

    async def save(self, query: str, name: str) -> Result[SavedQuery]:
        now = self._clock()
        current = await self.get_all()
        existing = current.value or []

        # Millisecond timestamp ids, bumped on collision
        new_id = int(now.timestamp() * 1000)
        taken = {q.id for q in existing}
        while str(new_id) in taken:
            new_id += 1

        saved = SavedQuery(
            id=str(new_id),
            query=query.strip(),
            name=name.strip(),
            created_at=now,
            last_used=now,
            use_count=0,
        )
        if not current.ok:
            return Result.failure(current.error, saved)

        result = await self._write([*existing, saved])
        if not result.ok:
            return Result.failure(result.error, saved)
        return Result.success(saved)

    async def mark_used(self, query_id: str) -> Result[SavedQuery]:
        """Bump use count and last-used time. Unknown ids are a no-op."""
        current = await self.get_all()
        if not current.ok:
            return Result.failure(current.error)

        queries = current.value
        match = next((q for q in queries if q.id == query_id), None)
        if match is not None:
            match.use_count += 1
            match.last_used = self._clock()
        else:
            logger.debug(f"No saved query with id {query_id}")

        result = await self._write(queries)
        if not result.ok:
            return Result.failure(result.error, match)
        return Result.success(match)

    async def delete(self, query_id: str) -> Result[None]:
        current = await self.get_all()
        if not current.ok:
            return Result.failure(current.error)
        return await self._write([q for q in current.value if q.id != query_id])

    async def _write(self, queries: list[SavedQuery]) -> Result[None]:
        try:
            await self.storage.set(
                SAVED_QUERIES_KEY, json.dumps([q.to_dict() for q in queries])
            )
            return Result.success(None)
        except Exception as e:
            logger.error(f"Error writing saved queries: {e}")
            return Result.failure(str(e))
