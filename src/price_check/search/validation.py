import re

from ..models.search import InputValidation

MIN_QUERY_LENGTH = 2
MAX_QUERY_LENGTH = 100
MAX_SKU_LENGTH = 20

_ITEM_ID_RE = re.compile(r"^[0-9]{12}$")
_UPC_RE = re.compile(r"^([0-9]{12}|[0-9]{8})$")
_SKU_RE = re.compile(r"^[A-Za-z0-9\-_]+$")


def validate_search_input(raw: str) -> InputValidation:
    """Classify a raw search string.

    The checks run in order, so a 12-digit number is always reported as an
    ``item_id`` even though it also matches the UPC pattern.
    """
    trimmed = raw.strip()

    if not trimmed:
        return InputValidation(False, "empty", "Please enter a search term")
    if len(trimmed) < MIN_QUERY_LENGTH:
        return InputValidation(
            False, "too_short", "Search term must be at least 2 characters"
        )
    if len(trimmed) > MAX_QUERY_LENGTH:
        return InputValidation(
            False, "too_long", "Search term must be less than 100 characters"
        )

    if _ITEM_ID_RE.match(trimmed):
        return InputValidation(True, "item_id")
    if _UPC_RE.match(trimmed):
        return InputValidation(True, "upc")
    if _SKU_RE.match(trimmed) and len(trimmed) <= MAX_SKU_LENGTH:
        return InputValidation(True, "sku")
    return InputValidation(True, "text")
