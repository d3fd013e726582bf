from dataclasses import dataclass, field
from datetime import datetime

from ..timeutil import parse_iso, to_iso, utcnow


@dataclass(frozen=True)
class PriceRange:
    low: float = 0.0
    high: float = 0.0


@dataclass(frozen=True)
class ListingMetrics:
    """Aggregate price statistics over one population of listings."""
    count: int = 0
    average_price: float = 0.0
    median_price: float = 0.0
    min_price: float = 0.0
    max_price: float = 0.0
    standard_deviation: float = 0.0
    price_range: PriceRange = field(default_factory=PriceRange)

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "averagePrice": self.average_price,
            "medianPrice": self.median_price,
            "minPrice": self.min_price,
            "maxPrice": self.max_price,
            "standardDeviation": self.standard_deviation,
            "priceRange": {"low": self.price_range.low, "high": self.price_range.high},
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ListingMetrics":
        price_range = data.get("priceRange") or {}
        return cls(
            count=data.get("count", 0),
            average_price=data.get("averagePrice", 0.0),
            median_price=data.get("medianPrice", 0.0),
            min_price=data.get("minPrice", 0.0),
            max_price=data.get("maxPrice", 0.0),
            standard_deviation=data.get("standardDeviation", 0.0),
            price_range=PriceRange(
                low=price_range.get("low", 0.0),
                high=price_range.get("high", 0.0),
            ),
        )


@dataclass(frozen=True)
class PriceBucket:
    """One histogram bin. The lower bound is inclusive, the upper exclusive
    except for the last bucket."""
    label: str
    min: float
    max: float
    count: int
    percentage: int

    def to_dict(self) -> dict:
        return {
            "range": self.label,
            "min": self.min,
            "max": self.max,
            "count": self.count,
            "percentage": self.percentage,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PriceBucket":
        return cls(
            label=data.get("range", ""),
            min=data.get("min", 0.0),
            max=data.get("max", 0.0),
            count=data.get("count", 0),
            percentage=data.get("percentage", 0),
        )


@dataclass(frozen=True)
class PriceTrendPoint:
    date: str  # YYYY-MM-DD
    average_price: float
    median_price: float
    count: int

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "averagePrice": self.average_price,
            "medianPrice": self.median_price,
            "count": self.count,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PriceTrendPoint":
        return cls(
            date=data.get("date", ""),
            average_price=data.get("averagePrice", 0.0),
            median_price=data.get("medianPrice", 0.0),
            count=data.get("count", 0),
        )


@dataclass(frozen=True)
class PriceOutlier:
    item_id: str
    title: str
    price: float
    reason: str  # "high" or "low"
    deviation: float  # multiples of the standard deviation

    def to_dict(self) -> dict:
        return {
            "itemId": self.item_id,
            "title": self.title,
            "price": self.price,
            "reason": self.reason,
            "deviation": self.deviation,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PriceOutlier":
        return cls(
            item_id=data.get("itemId", ""),
            title=data.get("title", ""),
            price=data.get("price", 0.0),
            reason=data.get("reason", "high"),
            deviation=data.get("deviation", 0.0),
        )


@dataclass(frozen=True)
class PriceRecommendation:
    type: str  # competitive, premium or budget
    price: float
    reasoning: str
    confidence: float

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "price": self.price,
            "reasoning": self.reasoning,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PriceRecommendation":
        return cls(
            type=data.get("type", ""),
            price=data.get("price", 0.0),
            reasoning=data.get("reasoning", ""),
            confidence=data.get("confidence", 0.0),
        )


@dataclass(frozen=True)
class PriceAnalysis:
    """Full market analysis for one search query. This is the cached unit."""
    query: str
    timestamp: datetime = field(default_factory=utcnow)
    active_listings: ListingMetrics = field(default_factory=ListingMetrics)
    sold_listings: ListingMetrics = field(default_factory=ListingMetrics)
    price_distribution: list[PriceBucket] = field(default_factory=list)
    price_trends: list[PriceTrendPoint] = field(default_factory=list)
    outliers: list[PriceOutlier] = field(default_factory=list)
    recommendations: list[PriceRecommendation] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "query": self.query,
            "timestamp": to_iso(self.timestamp),
            "activeListings": self.active_listings.to_dict(),
            "soldListings": self.sold_listings.to_dict(),
            "priceDistribution": [b.to_dict() for b in self.price_distribution],
            "priceTrends": [t.to_dict() for t in self.price_trends],
            "outliers": [o.to_dict() for o in self.outliers],
            "recommendations": [r.to_dict() for r in self.recommendations],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PriceAnalysis":
        return cls(
            query=data.get("query", ""),
            timestamp=parse_iso(data.get("timestamp")) or utcnow(),
            active_listings=ListingMetrics.from_dict(data.get("activeListings") or {}),
            sold_listings=ListingMetrics.from_dict(data.get("soldListings") or {}),
            price_distribution=[
                PriceBucket.from_dict(b) for b in data.get("priceDistribution", [])
            ],
            price_trends=[
                PriceTrendPoint.from_dict(t) for t in data.get("priceTrends", [])
            ],
            outliers=[PriceOutlier.from_dict(o) for o in data.get("outliers", [])],
            recommendations=[
                PriceRecommendation.from_dict(r) for r in data.get("recommendations", [])
            ],
        )
