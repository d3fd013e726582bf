import json
import logging
import statistics
from collections import Counter
from collections.abc import Callable
from datetime import datetime

from ..analysis.price_analyzer import round_money
from ..models.analytics import (
    AnalyticsSummary,
    ClickThrough,
    PriceCheckAnalytics,
    QueryCount,
)
from ..models.result import Result
from ..storage.base import KeyValueStorage
from ..timeutil import parse_iso, utcnow

logger = logging.getLogger(__name__)

ANALYTICS_KEY = "price_check_analytics"
DEFAULT_MAX_ENTRIES = 1000
TOP_QUERY_COUNT = 10


class AnalyticsTracker:
    """Append-only log of price checks and their click-throughs.

    The log keeps at most ``max_entries`` records, dropping the oldest by
    timestamp. Storage failures degrade to empty or default results.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.storage = storage
        self.max_entries = max_entries
        self._clock = clock

    async def get_all(self) -> Result[list[PriceCheckAnalytics]]:
        try:
            raw = await self.storage.get(ANALYTICS_KEY)
            records = json.loads(raw) if raw else []
            return Result.success([PriceCheckAnalytics.from_dict(r) for r in records])
        except Exception as e:
            logger.error(f"Error getting analytics: {e}")
            return Result.failure(str(e), [])

    async def track(self, record: PriceCheckAnalytics) -> Result[None]:
        current = await self.get_all()
        if not current.ok:
            return Result.failure(current.error)

        records = current.value
        record.timestamp = parse_iso(record.timestamp) or self._clock()
        records.append(record)
        if len(records) > self.max_entries:
            records.sort(key=lambda r: r.timestamp, reverse=True)
            del records[self.max_entries:]
        return await self._write(records)

    async def track_click_through(
        self, query_id: str, click_type: str, target: str
    ) -> Result[None]:
        current = await self.get_all()
        if not current.ok:
            return Result.failure(current.error)

        records = current.value
        record = next((r for r in records if r.query_id == query_id), None)
        if record is None:
            logger.debug(f"No analytics record for query {query_id}")
            return Result.success(None)

        record.click_throughs.append(
            ClickThrough(type=click_type, target=target, timestamp=self._clock())
        )
        return await self._write(records)

    async def summarize(self) -> Result[AnalyticsSummary]:
        current = await self.get_all()
        records = current.value or []
        if not records:
            now = self._clock()
            summary = AnalyticsSummary(time_range_start=now, time_range_end=now)
            return Result.success(summary) if current.ok else Result.failure(current.error, summary)

        total = len(records)
        cache_hits = sum(1 for r in records if r.cache_hit)
        clicks = sum(len(r.click_throughs) for r in records)
        # most_common keeps first-seen order among equal counts
        top = Counter(r.query for r in records).most_common(TOP_QUERY_COUNT)
        timestamps = [r.timestamp for r in records]

        return Result.success(
            AnalyticsSummary(
                total_queries=total,
                average_processing_time=round_money(
                    statistics.fmean(r.processing_time for r in records)
                ),
                cache_hit_rate=round_money(cache_hits / total),
                most_searched_items=[QueryCount(query=q, count=c) for q, c in top],
                click_through_rate=round_money(clicks / total),
                time_range_start=min(timestamps),
                time_range_end=max(timestamps),
            )
        )

    async def clear(self) -> Result[None]:
        try:
            await self.storage.remove(ANALYTICS_KEY)
            return Result.success(None)
        except Exception as e:
            logger.error(f"Error clearing analytics: {e}")
            return Result.failure(str(e))

    async def export(self) -> str:
        """Pretty-printed JSON of every stored record, or "[]" on failure."""
        current = await self.get_all()
        if not current.ok:
            return "[]"
        return json.dumps([r.to_dict() for r in current.value], indent=2)

    async def _write(self, records: list[PriceCheckAnalytics]) -> Result[None]:
        try:
            await self.storage.set(
                ANALYTICS_KEY, json.dumps([r.to_dict() for r in records])
            )
            return Result.success(None)
        except Exception as e:
            logger.error(f"Error writing analytics: {e}")
            return Result.failure(str(e))
