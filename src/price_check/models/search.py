from dataclasses import dataclass, field
from datetime import datetime

from .item import Item

CONDITIONS = ("New", "Used", "Refurbished", "ForPartsOrNotWorking")
LISTING_TYPES = ("Auction", "FixedPrice", "All")
SORT_ORDERS = (
    "BestMatch",
    "CurrentPriceHighest",
    "CurrentPriceLowest",
    "EndTimeSoonest",
    "PricePlusShippingHighest",
    "PricePlusShippingLowest",
    "StartTimeNewest",
)


@dataclass
class SearchRequest:
    query: str
    item_id: str | None = None
    upc: str | None = None
    category_id: str | None = None
    condition: str | None = None
    listing_type: str | None = None
    sort_order: str | None = None
    max_results: int = 50
    page_number: int = 1


@dataclass
class SearchResponse:
    items: list[Item] = field(default_factory=list)
    total_results: int = 0
    page_number: int = 1
    total_pages: int = 1
    has_more_pages: bool = False


@dataclass
class RateLimitInfo:
    remaining: int
    reset_time: datetime


@dataclass
class SearchResult:
    """Typed outcome of a marketplace call. Never raised, always returned."""
    success: bool
    data: SearchResponse | None = None
    error: str | None = None
    rate_limit: RateLimitInfo | None = None

    @classmethod
    def failed(cls, error: str) -> "SearchResult":
        return cls(success=False, error=error)


@dataclass
class InputValidation:
    is_valid: bool
    type: str  # empty, too_short, too_long, item_id, upc, sku or text
    error: str | None = None
