from dataclasses import dataclass, field
from datetime import datetime

from ..timeutil import parse_iso, to_iso, utcnow

CLICK_THROUGH_TYPES = ("ebay_item", "ebay_search", "save_query")


@dataclass
class ClickThrough:
    type: str
    target: str
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "target": self.target,
            "timestamp": to_iso(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ClickThrough":
        return cls(
            type=data.get("type", ""),
            target=data.get("target", ""),
            timestamp=parse_iso(data.get("timestamp")) or utcnow(),
        )


@dataclass
class PriceCheckAnalytics:
    """One price-check invocation, plus the click-throughs made from it."""
    query_id: str
    user_id: str
    query: str
    timestamp: datetime
    results_count: int = 0
    processing_time: float = 0.0  # milliseconds
    cache_hit: bool = False
    click_throughs: list[ClickThrough] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "queryId": self.query_id,
            "userId": self.user_id,
            "query": self.query,
            "timestamp": to_iso(self.timestamp),
            "resultsCount": self.results_count,
            "processingTime": self.processing_time,
            "cacheHit": self.cache_hit,
            "clickThroughs": [c.to_dict() for c in self.click_throughs],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PriceCheckAnalytics":
        return cls(
            query_id=data.get("queryId", ""),
            user_id=data.get("userId", ""),
            query=data.get("query", ""),
            timestamp=parse_iso(data.get("timestamp")) or utcnow(),
            results_count=data.get("resultsCount", 0),
            processing_time=data.get("processingTime", 0.0),
            cache_hit=bool(data.get("cacheHit", False)),
            click_throughs=[
                ClickThrough.from_dict(c) for c in data.get("clickThroughs", [])
            ],
        )


@dataclass
class QueryCount:
    query: str
    count: int


@dataclass
class AnalyticsSummary:
    total_queries: int = 0
    average_processing_time: float = 0.0
    cache_hit_rate: float = 0.0
    most_searched_items: list[QueryCount] = field(default_factory=list)
    click_through_rate: float = 0.0
    time_range_start: datetime = field(default_factory=utcnow)
    time_range_end: datetime = field(default_factory=utcnow)
