"""Map Finding API JSON into canonical models.

The provider serializes XML into JSON, so every scalar arrives wrapped in a
single-element list and attributes appear as ``@name`` keys alongside a
``__value__``. Each accessor here walks such a path and falls back to an
explicit default instead of raising.
"""
import logging
import math
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from ..models.item import Amount, Item, LISTING_STATUSES
from ..models.search import RateLimitInfo, SearchResponse
from ..timeutil import parse_iso, utcnow

logger = logging.getLogger(__name__)

UNKNOWN_API_ERROR = "Unknown eBay API error"


def _unwrap(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def pluck(data: Any, *path: str) -> Any:
    """Follow ``path`` through nested dicts, taking the first element of every list."""
    current = _unwrap(data)
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = _unwrap(current.get(key))
    return current


def pluck_list(data: Any, *path: str) -> list:
    """Like pluck, but return the list found at the final key untouched."""
    if not path:
        return data if isinstance(data, list) else []
    parent = pluck(data, *path[:-1])
    if not isinstance(parent, Mapping):
        return []
    value = parent.get(path[-1])
    if isinstance(value, list):
        return value
    return [] if value is None else [value]


def text_field(data: Any, *path: str, default: str = "") -> str:
    value = pluck(data, *path)
    if value is None or isinstance(value, (Mapping, list)):
        return default
    return str(value)


def int_field(data: Any, *path: str, default: int = 0) -> int:
    value = text_field(data, *path)
    try:
        return int(value)
    except ValueError:
        try:
            return int(float(value))
        except (ValueError, OverflowError):
            return default


def float_field(data: Any, *path: str, default: float = 0.0) -> float:
    try:
        value = float(text_field(data, *path))
    except ValueError:
        return default
    # "NaN" and "Infinity" parse but are not prices
    return value if math.isfinite(value) else default


def bool_field(data: Any, *path: str) -> bool:
    return text_field(data, *path).lower() == "true"


def amount_field(data: Any, *path: str) -> Amount | None:
    node = pluck(data, *path)
    if not isinstance(node, Mapping):
        return None
    return Amount(
        value=float_field(node, "__value__"),
        currency=text_field(node, "@currencyId", default="USD") or "USD",
    )


def _listing_status(raw: dict) -> str:
    status = text_field(raw, "sellingStatus", "listingStatus").lower()
    if status in LISTING_STATUSES:
        return status
    # Completed searches usually only report the selling state
    state = text_field(raw, "sellingStatus", "sellingState").lower()
    if state.startswith("ended") or state == "canceled":
        return "ended"
    return "active"


def map_item(raw: dict) -> Item:
    """Normalize one provider item into an Item."""
    watch_count = int_field(raw, "sellingStatus", "watchCount") or int_field(
        raw, "listingInfo", "watchCount"
    )
    return Item(
        item_id=text_field(raw, "itemId"),
        title=text_field(raw, "title"),
        price=amount_field(raw, "sellingStatus", "currentPrice") or Amount(),
        category_id=text_field(raw, "primaryCategory", "categoryId"),
        category_name=text_field(raw, "primaryCategory", "categoryName"),
        condition=text_field(raw, "condition", "conditionDisplayName"),
        condition_id=text_field(raw, "condition", "conditionId"),
        listing_status=_listing_status(raw),
        start_time=text_field(raw, "listingInfo", "startTime"),
        end_time=text_field(raw, "listingInfo", "endTime"),
        shipping_cost=amount_field(raw, "shippingInfo", "shippingServiceCost"),
        watch_count=watch_count,
        bid_count=int_field(raw, "sellingStatus", "bidCount"),
        subtitle=text_field(raw, "subtitle"),
        global_id=text_field(raw, "globalId"),
        view_url=text_field(raw, "viewItemURL"),
        gallery_url=text_field(raw, "galleryURL"),
        location=text_field(raw, "location"),
        country=text_field(raw, "country"),
        listing_type=text_field(raw, "listingInfo", "listingType"),
        buy_it_now=bool_field(raw, "listingInfo", "buyItNowAvailable"),
        product_id_type=text_field(raw, "productId", "@type"),
        product_id=text_field(raw, "productId", "__value__"),
    )


def map_search_response(payload: dict, operation: str) -> SearchResponse:
    root = pluck(payload, f"{operation}Response")
    items = []
    for raw in pluck_list(root, "searchResult", "item"):
        if isinstance(raw, Mapping):
            items.append(map_item(raw))
        else:
            logger.debug(f"Ignoring malformed item entry: {raw!r}")

    page_number = int_field(root, "paginationOutput", "pageNumber", default=1)
    total_pages = int_field(root, "paginationOutput", "totalPages", default=1)
    return SearchResponse(
        items=items,
        total_results=int_field(root, "paginationOutput", "totalEntries"),
        page_number=page_number,
        total_pages=total_pages,
        has_more_pages=total_pages > page_number,
    )


def extract_error(payload: Any, operation: str) -> str | None:
    """Return the provider error message embedded in a 200 response, if any."""
    root = pluck(payload, f"{operation}Response")
    if not isinstance(root, Mapping):
        return None

    error_node = pluck(root, "errorMessage")
    if error_node is not None:
        return (
            text_field(error_node, "error", "message")
            or text_field(error_node, "message")
            or UNKNOWN_API_ERROR
        )
    if text_field(root, "ack") == "Failure":
        return UNKNOWN_API_ERROR
    return None


def parse_rate_limit(headers: Mapping[str, str]) -> RateLimitInfo | None:
    remaining = headers.get("X-RateLimit-Remaining")
    reset = headers.get("X-RateLimit-Reset")
    if remaining is None and reset is None:
        return None

    try:
        remaining_count = int(remaining) if remaining is not None else 0
    except ValueError:
        remaining_count = 0
    return RateLimitInfo(remaining=remaining_count, reset_time=_parse_reset(reset))


def _parse_reset(value: str | None) -> datetime:
    if not value:
        return utcnow()
    try:
        epoch = float(value)
    except ValueError:
        try:
            return parse_iso(value) or utcnow()
        except ValueError:
            logger.debug(f"Unparseable rate limit reset header: {value}")
            return utcnow()
    # Millisecond epochs are common on this header
    if epoch > 1e12:
        epoch /= 1000
    return datetime.fromtimestamp(epoch, tz=timezone.utc)
