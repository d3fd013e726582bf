"""Tests for the analytics tracker."""
import json
from datetime import datetime, timedelta, timezone

from price_check.analytics.tracker import ANALYTICS_KEY, AnalyticsTracker
from price_check.models.analytics import PriceCheckAnalytics, QueryCount


def make_record(clock, query_id, query="camera", **overrides):
    defaults = {
        "query_id": query_id,
        "user_id": "user-1",
        "query": query,
        "timestamp": clock(),
        "results_count": 10,
        "processing_time": 100.0,
        "cache_hit": False,
    }
    defaults.update(overrides)
    return PriceCheckAnalytics(**defaults)


class TestTrack:
    async def test_appends(self, storage, clock):
        tracker = AnalyticsTracker(storage, clock=clock)
        await tracker.track(make_record(clock, "q1"))
        await tracker.track(make_record(clock, "q2"))

        records = (await tracker.get_all()).value
        assert [r.query_id for r in records] == ["q1", "q2"]

    async def test_keeps_newest_beyond_limit(self, storage, clock):
        tracker = AnalyticsTracker(storage, max_entries=3, clock=clock)
        for i in range(5):
            await tracker.track(make_record(clock, f"q{i}"))
            clock.advance(minutes=1)

        records = (await tracker.get_all()).value
        assert len(records) == 3
        assert {r.query_id for r in records} == {"q2", "q3", "q4"}

    async def test_naive_timestamp_is_treated_as_utc(self, storage, clock):
        tracker = AnalyticsTracker(storage, max_entries=1, clock=clock)
        await tracker.track(make_record(clock, "q1"))

        result = await tracker.track(
            make_record(clock, "q2", timestamp=datetime(2024, 3, 2))
        )

        assert result.ok
        [record] = (await tracker.get_all()).value
        assert record.query_id == "q2"
        assert record.timestamp == datetime(2024, 3, 2, tzinfo=timezone.utc)

    async def test_stored_format(self, storage, clock):
        tracker = AnalyticsTracker(storage, clock=clock)
        await tracker.track(make_record(clock, "q1", cache_hit=True))

        [stored] = json.loads(await storage.get(ANALYTICS_KEY))
        assert stored["queryId"] == "q1"
        assert stored["userId"] == "user-1"
        assert stored["cacheHit"] is True
        assert stored["clickThroughs"] == []

    async def test_failing_storage(self, failing_storage, clock):
        tracker = AnalyticsTracker(failing_storage, clock=clock)
        result = await tracker.track(make_record(clock, "q1"))
        assert not result.ok
        assert (await tracker.get_all()).value == []


class TestClickThrough:
    async def test_attaches_to_matching_record(self, storage, clock):
        tracker = AnalyticsTracker(storage, clock=clock)
        await tracker.track(make_record(clock, "q1"))
        await tracker.track(make_record(clock, "q2"))

        clock.advance(seconds=30)
        await tracker.track_click_through("q2", "ebay_item", "110552736282")

        first, second = (await tracker.get_all()).value
        assert first.click_throughs == []
        assert len(second.click_throughs) == 1
        click = second.click_throughs[0]
        assert click.type == "ebay_item"
        assert click.target == "110552736282"
        assert click.timestamp == clock()

    async def test_unknown_query_is_ignored(self, storage, clock):
        tracker = AnalyticsTracker(storage, clock=clock)
        await tracker.track(make_record(clock, "q1"))

        result = await tracker.track_click_through("missing", "ebay_search", "camera")

        assert result.ok
        [record] = (await tracker.get_all()).value
        assert record.click_throughs == []


class TestSummarize:
    async def test_empty(self, storage, clock):
        summary = (await AnalyticsTracker(storage, clock=clock).summarize()).value
        assert summary.total_queries == 0
        assert summary.average_processing_time == 0
        assert summary.cache_hit_rate == 0
        assert summary.most_searched_items == []
        assert summary.click_through_rate == 0
        assert summary.time_range_start == clock()
        assert summary.time_range_end == clock()

    async def test_populated(self, storage, clock):
        tracker = AnalyticsTracker(storage, clock=clock)
        start = clock()
        await tracker.track(make_record(clock, "q1", "camera", processing_time=100.0, cache_hit=True))
        clock.advance(minutes=1)
        await tracker.track(make_record(clock, "q2", "lens", processing_time=200.0))
        clock.advance(minutes=1)
        await tracker.track(make_record(clock, "q3", "camera", processing_time=50.0, cache_hit=True))
        await tracker.track_click_through("q1", "ebay_item", "1")
        await tracker.track_click_through("q1", "ebay_search", "camera")

        summary = (await tracker.summarize()).value

        assert summary.total_queries == 3
        assert summary.average_processing_time == 116.67
        assert summary.cache_hit_rate == 0.67
        assert summary.click_through_rate == 0.67
        assert summary.most_searched_items == [
            QueryCount(query="camera", count=2),
            QueryCount(query="lens", count=1),
        ]
        assert summary.time_range_start == start
        assert summary.time_range_end == start + timedelta(minutes=2)

    async def test_top_queries_capped_at_ten(self, storage, clock):
        tracker = AnalyticsTracker(storage, clock=clock)
        for i in range(12):
            await tracker.track(make_record(clock, f"q{i}", f"query {i}"))

        summary = (await tracker.summarize()).value
        assert len(summary.most_searched_items) == 10

    async def test_failing_storage_returns_defaults(self, failing_storage, clock):
        result = await AnalyticsTracker(failing_storage, clock=clock).summarize()
        assert not result.ok
        assert result.value.total_queries == 0


class TestExportAndClear:
    async def test_export(self, storage, clock):
        tracker = AnalyticsTracker(storage, clock=clock)
        await tracker.track(make_record(clock, "q1"))

        exported = await tracker.export()
        assert "\n  " in exported
        assert json.loads(exported)[0]["queryId"] == "q1"

    async def test_export_empty(self, storage):
        assert json.loads(await AnalyticsTracker(storage).export()) == []

    async def test_export_failure(self, failing_storage):
        assert await AnalyticsTracker(failing_storage).export() == "[]"

    async def test_clear(self, storage, clock):
        tracker = AnalyticsTracker(storage, clock=clock)
        await tracker.track(make_record(clock, "q1"))
        await tracker.clear()

        assert (await tracker.get_all()).value == []
        assert await storage.get(ANALYTICS_KEY) is None
