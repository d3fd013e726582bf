"""Tests for Finding API response mapping."""
from datetime import datetime, timezone

import pytest

from price_check.models.item import Amount
from price_check.search.mapping import (
    UNKNOWN_API_ERROR,
    amount_field,
    bool_field,
    extract_error,
    float_field,
    int_field,
    map_item,
    map_search_response,
    parse_rate_limit,
    pluck,
    pluck_list,
    text_field,
)

RAW_ITEM = {
    "itemId": ["110552736282"],
    "title": ["Canon AE-1 Program 35mm Film Camera"],
    "globalId": ["EBAY-US"],
    "primaryCategory": [{"categoryId": ["15230"], "categoryName": ["Film Cameras"]}],
    "galleryURL": ["https://i.ebayimg.com/thumbs/1.jpg"],
    "viewItemURL": ["https://www.ebay.com/itm/110552736282"],
    "location": ["Portland,OR,USA"],
    "country": ["US"],
    "shippingInfo": [{
        "shippingServiceCost": [{"@currencyId": "USD", "__value__": "12.5"}],
        "shippingType": ["Flat"],
    }],
    "sellingStatus": [{
        "currentPrice": [{"@currencyId": "USD", "__value__": "149.99"}],
        "bidCount": ["3"],
        "sellingState": ["Active"],
        "listingStatus": ["Active"],
    }],
    "listingInfo": [{
        "buyItNowAvailable": ["true"],
        "startTime": ["2024-02-20T10:00:00.000Z"],
        "endTime": ["2024-03-01T10:00:00.000Z"],
        "listingType": ["Auction"],
        "watchCount": ["17"],
    }],
    "condition": [{"conditionId": ["3000"], "conditionDisplayName": ["Used"]}],
    "productId": [{"@type": "UPC", "__value__": "013803123456"}],
}


def search_payload(operation, items, page=1, total_pages=1, total_entries=None):
    return {
        f"{operation}Response": [{
            "ack": ["Success"],
            "searchResult": [{"@count": str(len(items)), "item": items}],
            "paginationOutput": [{
                "pageNumber": [str(page)],
                "totalPages": [str(total_pages)],
                "totalEntries": [str(total_entries if total_entries is not None else len(items))],
            }],
        }]
    }


class TestAccessors:
    def test_pluck_unwraps_single_element_lists(self):
        assert pluck(RAW_ITEM, "sellingStatus", "bidCount") == "3"

    def test_pluck_missing_path(self):
        assert pluck(RAW_ITEM, "sellingStatus", "nope", "deeper") is None
        assert pluck(None, "anything") is None
        assert pluck({"a": []}, "a") is None

    def test_pluck_list_keeps_every_element(self):
        data = {"result": [{"item": [{"id": 1}, {"id": 2}]}]}
        assert pluck_list(data, "result", "item") == [{"id": 1}, {"id": 2}]
        assert pluck_list(data, "result", "missing") == []

    def test_text_field_default(self):
        assert text_field(RAW_ITEM, "subtitle") == ""
        assert text_field(RAW_ITEM, "subtitle", default="n/a") == "n/a"

    def test_text_field_ignores_nested_objects(self):
        assert text_field(RAW_ITEM, "sellingStatus") == ""

    def test_int_field(self):
        assert int_field(RAW_ITEM, "sellingStatus", "bidCount") == 3
        assert int_field({"n": ["7.0"]}, "n") == 7
        assert int_field({"n": ["lots"]}, "n") == 0
        assert int_field({}, "n", default=1) == 1

    def test_bool_field(self):
        assert bool_field(RAW_ITEM, "listingInfo", "buyItNowAvailable") is True
        assert bool_field(RAW_ITEM, "listingInfo", "gift") is False

    def test_amount_field(self):
        amount = amount_field(RAW_ITEM, "sellingStatus", "currentPrice")
        assert amount == Amount(value=149.99, currency="USD")
        assert amount_field(RAW_ITEM, "sellingStatus", "minimumToBid") is None

    def test_amount_defaults_currency(self):
        assert amount_field({"p": [{"__value__": "5"}]}, "p") == Amount(5.0, "USD")

    @pytest.mark.parametrize("raw", ["NaN", "Infinity", "-inf"])
    def test_non_finite_prices_default(self, raw):
        assert float_field({"p": [raw]}, "p") == 0.0
        item = map_item({"sellingStatus": [{"currentPrice": [{"__value__": raw}]}]})
        assert item.price_value == 0.0


class TestMapItem:
    def test_full_item(self):
        item = map_item(RAW_ITEM)
        assert item.item_id == "110552736282"
        assert item.title == "Canon AE-1 Program 35mm Film Camera"
        assert item.price_value == 149.99
        assert item.category_id == "15230"
        assert item.category_name == "Film Cameras"
        assert item.condition == "Used"
        assert item.condition_id == "3000"
        assert item.listing_status == "active"
        assert item.end_time == "2024-03-01T10:00:00.000Z"
        assert item.shipping_cost == Amount(12.5, "USD")
        assert item.total_price == pytest.approx(162.49)
        assert item.watch_count == 17
        assert item.bid_count == 3
        assert item.buy_it_now is True
        assert item.product_id_type == "UPC"
        assert item.product_id == "013803123456"

    def test_empty_item_defaults(self):
        item = map_item({})
        assert item.item_id == ""
        assert item.title == ""
        assert item.price == Amount(0.0, "USD")
        assert item.shipping_cost is None
        assert item.listing_status == "active"
        assert item.watch_count == 0
        assert item.buy_it_now is False

    def test_completed_status(self):
        item = map_item({"sellingStatus": [{"sellingState": ["EndedWithSales"]}]})
        assert item.listing_status == "ended"
        item = map_item({"sellingStatus": [{"listingStatus": ["Completed"]}]})
        assert item.listing_status == "completed"


class TestMapSearchResponse:
    def test_items_and_pagination(self):
        payload = search_payload(
            "findItemsAdvanced", [RAW_ITEM, RAW_ITEM], page=1, total_pages=4, total_entries=180
        )
        response = map_search_response(payload, "findItemsAdvanced")

        assert len(response.items) == 2
        assert response.total_results == 180
        assert response.page_number == 1
        assert response.total_pages == 4
        assert response.has_more_pages is True

    def test_last_page(self):
        payload = search_payload("findCompletedItems", [RAW_ITEM], page=3, total_pages=3)
        response = map_search_response(payload, "findCompletedItems")
        assert response.has_more_pages is False

    def test_missing_everything(self):
        response = map_search_response({}, "findItemsAdvanced")
        assert response.items == []
        assert response.total_results == 0
        assert response.page_number == 1
        assert response.total_pages == 1
        assert response.has_more_pages is False

    def test_wrong_operation_root(self):
        payload = search_payload("findItemsAdvanced", [RAW_ITEM])
        assert map_search_response(payload, "findCompletedItems").items == []


class TestExtractError:
    def test_no_error(self):
        payload = search_payload("findItemsAdvanced", [])
        assert extract_error(payload, "findItemsAdvanced") is None

    def test_nested_error_message(self):
        payload = {"findItemsAdvancedResponse": [{
            "ack": ["Failure"],
            "errorMessage": [{"error": [{"message": ["Invalid application id"]}]}],
        }]}
        assert extract_error(payload, "findItemsAdvanced") == "Invalid application id"

    def test_flat_error_message(self):
        payload = {"findItemsAdvancedResponse": [{"errorMessage": [{"message": ["Bad keywords"]}]}]}
        assert extract_error(payload, "findItemsAdvanced") == "Bad keywords"

    def test_error_without_message(self):
        payload = {"findCompletedItemsResponse": [{"errorMessage": [{}]}]}
        assert extract_error(payload, "findCompletedItems") == UNKNOWN_API_ERROR

    def test_failure_ack(self):
        payload = {"findCompletedItemsResponse": [{"ack": ["Failure"]}]}
        assert extract_error(payload, "findCompletedItems") == UNKNOWN_API_ERROR


class TestParseRateLimit:
    def test_absent(self):
        assert parse_rate_limit({}) is None

    def test_epoch_seconds(self):
        info = parse_rate_limit({"X-RateLimit-Remaining": "42", "X-RateLimit-Reset": "1709294400"})
        assert info.remaining == 42
        assert info.reset_time == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

    def test_epoch_milliseconds(self):
        info = parse_rate_limit({"X-RateLimit-Reset": "1709294400000"})
        assert info.remaining == 0
        assert info.reset_time == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

    def test_iso_reset(self):
        info = parse_rate_limit({"X-RateLimit-Remaining": "5", "X-RateLimit-Reset": "2024-03-01T12:00:00Z"})
        assert info.reset_time == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
