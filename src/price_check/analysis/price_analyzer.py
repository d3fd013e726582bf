import logging
import math
import statistics
from collections import defaultdict
from decimal import Decimal, ROUND_HALF_UP

from ..models.analysis import (
    ListingMetrics,
    PriceAnalysis,
    PriceBucket,
    PriceOutlier,
    PriceRange,
    PriceRecommendation,
    PriceTrendPoint,
)
from ..models.item import Item
from ..timeutil import parse_iso, utcnow

logger = logging.getLogger(__name__)

MIN_BUCKETS = 5
MAX_BUCKETS = 10
MIN_OUTLIER_POPULATION = 3
OUTLIER_SIGMAS = 2

COMPETITIVE_REASONING = "Priced competitively between active listings and recent sales"
PREMIUM_REASONING = "Premium pricing for high-quality or unique items"
BUDGET_REASONING = "Budget pricing for quick sale"


def round_money(value: float) -> float:
    """Round to cents, halves away from zero."""
    return float(Decimal(repr(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def round_percent(value: float) -> int:
    return int(Decimal(repr(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PriceAnalyzer:
    """Compute price statistics from active and sold marketplace listings."""

    @staticmethod
    def analyze(
        active_items: list[Item], sold_items: list[Item], query: str
    ) -> PriceAnalysis:
        active_metrics = PriceAnalyzer.listing_metrics(active_items)
        sold_metrics = PriceAnalyzer.listing_metrics(sold_items)
        combined = [*active_items, *sold_items]

        return PriceAnalysis(
            query=query,
            timestamp=utcnow(),
            active_listings=active_metrics,
            sold_listings=sold_metrics,
            price_distribution=PriceAnalyzer.price_distribution(combined),
            price_trends=PriceAnalyzer.price_trends(sold_items),
            outliers=PriceAnalyzer.identify_outliers(combined),
            recommendations=PriceAnalyzer.recommendations(active_metrics, sold_metrics),
        )

    @staticmethod
    def listing_metrics(items: list[Item]) -> ListingMetrics:
        if not items:
            return ListingMetrics()

        prices = sorted(item.price_value for item in items)
        average = statistics.fmean(prices)
        median = statistics.median(prices)
        # Population standard deviation, not the sample one
        stdev = statistics.pstdev(prices, mu=average)

        return ListingMetrics(
            count=len(prices),
            average_price=round_money(average),
            median_price=round_money(median),
            min_price=round_money(prices[0]),
            max_price=round_money(prices[-1]),
            standard_deviation=round_money(stdev),
            price_range=PriceRange(
                low=round_money(average - stdev),
                high=round_money(average + stdev),
            ),
        )

    @staticmethod
    def price_distribution(items: list[Item]) -> list[PriceBucket]:
        """Bucket prices into a histogram of between 5 and 10 bins."""
        if not items:
            return []

        prices = [item.price_value for item in items]
        low = min(prices)
        high = max(prices)
        bucket_count = min(MAX_BUCKETS, max(MIN_BUCKETS, math.ceil(math.sqrt(len(prices)))))
        width = (high - low) / bucket_count

        buckets = []
        for i in range(bucket_count):
            last = i == bucket_count - 1
            bucket_min = low + i * width
            bucket_max = high if last else low + (i + 1) * width
            count = sum(
                1
                for p in prices
                if p >= bucket_min and (p <= bucket_max if last else p < bucket_max)
            )
            buckets.append(
                PriceBucket(
                    label=f"${bucket_min:.2f} - ${bucket_max:.2f}",
                    min=bucket_min,
                    max=bucket_max,
                    count=count,
                    percentage=round_percent(count / len(prices) * 100),
                )
            )
        return buckets

    @staticmethod
    def price_trends(sold_items: list[Item]) -> list[PriceTrendPoint]:
        """Group sold listings by the UTC day they ended."""
        groups: dict[str, list[float]] = defaultdict(list)
        for item in sold_items:
            try:
                ended = parse_iso(item.end_time)
            except ValueError:
                ended = None
            if ended is None:
                logger.debug(f"Skipping item {item.item_id} without a usable end time")
                continue
            groups[ended.date().isoformat()].append(item.price_value)

        points = []
        for date, prices in groups.items():
            points.append(
                PriceTrendPoint(
                    date=date,
                    average_price=round_money(statistics.fmean(prices)),
                    median_price=round_money(statistics.median(prices)),
                    count=len(prices),
                )
            )
        return sorted(points, key=lambda p: p.date)

    @staticmethod
    def identify_outliers(items: list[Item]) -> list[PriceOutlier]:
        """Flag listings more than two standard deviations from the mean."""
        if len(items) < MIN_OUTLIER_POPULATION:
            return []

        prices = [item.price_value for item in items]
        mean = statistics.fmean(prices)
        stdev = statistics.pstdev(prices, mu=mean)
        threshold = OUTLIER_SIGMAS * stdev

        outliers = []
        for item in items:
            deviation = abs(item.price_value - mean)
            if deviation > threshold:
                outliers.append(
                    PriceOutlier(
                        item_id=item.item_id,
                        title=item.title,
                        price=item.price_value,
                        reason="high" if item.price_value > mean else "low",
                        deviation=round_money(deviation / stdev),
                    )
                )
        return outliers

    @staticmethod
    def recommendations(
        active: ListingMetrics, sold: ListingMetrics
    ) -> list[PriceRecommendation]:
        if active.count == 0 or sold.count == 0:
            return []

        return [
            PriceRecommendation(
                type="competitive",
                price=round_money((active.median_price + sold.average_price) / 2),
                reasoning=COMPETITIVE_REASONING,
                confidence=0.8,
            ),
            PriceRecommendation(
                type="premium",
                price=round_money(active.average_price * 1.1),
                reasoning=PREMIUM_REASONING,
                confidence=0.6,
            ),
            PriceRecommendation(
                type="budget",
                price=round_money(sold.median_price * 0.9),
                reasoning=BUDGET_REASONING,
                confidence=0.7,
            ),
        ]

