import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from datetime import timedelta

from .analysis.price_analyzer import PriceAnalyzer
from .analytics.tracker import AnalyticsTracker
from .cache.price_cache import PriceCacheStore, SavedQueries, SearchHistory
from .config import Settings
from .models.analysis import PriceAnalysis
from .models.analytics import AnalyticsSummary, PriceCheckAnalytics
from .models.cache import CacheStats, SavedQuery
from .models.search import SearchRequest, SearchResult
from .search.ebay import EbayPriceClient
from .search.validation import validate_search_input
from .storage.base import KeyValueStorage
from .storage.json_file import JsonFileStorage
from .timeutil import utcnow

logger = logging.getLogger(__name__)


class PriceCheckError(Exception):
    """A price check could not produce an analysis. The message is user-facing."""


@dataclass
class PriceCheckOutcome:
    analysis: PriceAnalysis
    cache_hit: bool
    query_id: str


class PriceCheckService:
    """Entry point tying together search, analysis, caching and analytics.

    Build one per process with ``from_settings`` (or pass collaborators in
    directly for tests) and close it when done.
    """

    def __init__(
        self,
        client: EbayPriceClient,
        cache: PriceCacheStore,
        history: SearchHistory,
        saved_queries: SavedQueries,
        analytics: AnalyticsTracker,
        user_id: str = "local",
        max_results: int = 50,
        request_timeout: float | None = None,
    ):
        self.client = client
        self.cache = cache
        self.history = history
        self.saved_queries = saved_queries
        self.analytics = analytics
        self.user_id = user_id
        self.max_results = max_results
        self.request_timeout = request_timeout

    @classmethod
    def from_settings(
        cls, settings: Settings, storage: KeyValueStorage | None = None
    ) -> "PriceCheckService":
        storage = storage or JsonFileStorage(settings.storage_path)
        client = EbayPriceClient(
            app_id=settings.ebay_app_id,
            sandbox=settings.sandbox,
            timeout=settings.request_timeout_seconds,
            user_agent=settings.user_agent,
        )
        return cls(
            client=client,
            cache=PriceCacheStore(
                storage,
                ttl=timedelta(hours=settings.cache_ttl_hours),
                max_entries=settings.max_cache_size,
            ),
            history=SearchHistory(storage, limit=settings.history_limit),
            saved_queries=SavedQueries(storage),
            analytics=AnalyticsTracker(storage, max_entries=settings.analytics_max_entries),
            user_id=settings.user_id,
            max_results=settings.max_results,
            request_timeout=settings.request_timeout_seconds,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def close(self):
        await self.client.close()

    async def check_price(self, query: str, **options) -> PriceAnalysis:
        """Return a price analysis for ``query``, from cache when possible.

        Accepts the same options as ``check``. Raises PriceCheckError when
        the input is rejected or neither marketplace search succeeds.
        """
        outcome = await self.check(query, **options)
        return outcome.analysis

    async def check(
        self,
        query: str,
        *,
        condition: str | None = None,
        category_id: str | None = None,
        listing_type: str | None = None,
        max_results: int | None = None,
        force_refresh: bool = False,
        query_id: str | None = None,
    ) -> PriceCheckOutcome:
        """Run a price check and report how it was served.

        The returned ``query_id`` identifies the analytics record, for
        ``track_click_through``.
        """
        validation = validate_search_input(query)
        if not validation.is_valid:
            raise PriceCheckError(validation.error)

        query = query.strip()
        query_id = query_id or str(uuid.uuid4())
        started = time.perf_counter()

        if not force_refresh:
            cached = await self.get_cached_analysis(query)
            if cached is not None:
                await self._record(query, query_id, started, cached, cache_hit=True)
                return PriceCheckOutcome(cached, cache_hit=True, query_id=query_id)

        request = SearchRequest(
            query=query,
            item_id=query if validation.type == "item_id" else None,
            upc=query if validation.type == "upc" else None,
            category_id=category_id,
            condition=condition,
            listing_type=listing_type,
            max_results=max_results or self.max_results,
        )
        active, sold = await asyncio.gather(
            self.client.search_active(request, timeout=self.request_timeout),
            self.client.search_sold(request, timeout=self.request_timeout),
        )
        if not active.success and not sold.success:
            raise PriceCheckError(active.error or sold.error or "Price check failed")

        analysis = PriceAnalyzer.analyze(_items(active), _items(sold), query)
        if active.success and sold.success:
            await self.cache.set(query, analysis)
        else:
            logger.warning(f"Partial results for '{query}' were not cached")
        await self._record(query, query_id, started, analysis, cache_hit=False)
        return PriceCheckOutcome(analysis, cache_hit=False, query_id=query_id)

    async def _record(
        self,
        query: str,
        query_id: str,
        started: float,
        analysis: PriceAnalysis,
        cache_hit: bool,
    ):
        elapsed_ms = (time.perf_counter() - started) * 1000
        record = PriceCheckAnalytics(
            query_id=query_id,
            user_id=self.user_id,
            query=query,
            timestamp=utcnow(),
            results_count=analysis.active_listings.count + analysis.sold_listings.count,
            processing_time=round(elapsed_ms, 2),
            cache_hit=cache_hit,
        )
        # History and analytics writes do not depend on each other
        await asyncio.gather(
            self.history.add(query),
            self.analytics.track(record),
        )

    async def get_cached_analysis(self, query: str) -> PriceAnalysis | None:
        return (await self.cache.get(query)).value

    async def cache_analysis(
        self, query: str, analysis: PriceAnalysis, ttl: timedelta | None = None
    ) -> None:
        await self.cache.set(query, analysis, ttl)

    async def remove_cached_analysis(self, query: str) -> None:
        await self.cache.remove(query)

    async def get_cache_stats(self) -> CacheStats:
        return (await self.cache.stats()).value

    async def clear_all_cache(self) -> None:
        await self.cache.clear_all()

    async def get_search_history(self) -> list[str]:
        return (await self.history.get()).value

    async def add_to_search_history(self, query: str) -> None:
        await self.history.add(query)

    async def clear_search_history(self) -> None:
        await self.history.clear()

    async def get_saved_queries(self) -> list[SavedQuery]:
        return (await self.saved_queries.get_all()).value

    async def save_query(self, query: str, name: str) -> SavedQuery:
        return (await self.saved_queries.save(query, name)).value

    async def update_query_usage(self, query_id: str) -> None:
        await self.saved_queries.mark_used(query_id)

    async def delete_saved_query(self, query_id: str) -> None:
        await self.saved_queries.delete(query_id)

    async def track_price_check(self, record: PriceCheckAnalytics) -> None:
        await self.analytics.track(record)

    async def track_click_through(self, query_id: str, click_type: str, target: str) -> None:
        await self.analytics.track_click_through(query_id, click_type, target)

    async def get_analytics(self) -> list[PriceCheckAnalytics]:
        return (await self.analytics.get_all()).value

    async def get_analytics_summary(self) -> AnalyticsSummary:
        return (await self.analytics.summarize()).value

    async def export_analytics(self) -> str:
        return await self.analytics.export()

    async def clear_analytics(self) -> None:
        await self.analytics.clear()


def _items(result: SearchResult) -> list:
    if result.success and result.data:
        return result.data.items
    return []
