import logging

import aiohttp

from .base import BaseSearchClient, TransportError
from .mapping import extract_error, map_search_response, parse_rate_limit
from ..models.search import SearchRequest, SearchResult

logger = logging.getLogger(__name__)

PRODUCTION_URL = "https://api.ebay.com"
SANDBOX_URL = "https://api.sandbox.ebay.com"
FINDING_PATH = "/services/search/FindingService/v1"

ACTIVE_OPERATION = "findItemsAdvanced"
SOLD_OPERATION = "findCompletedItems"


class EbayPriceClient(BaseSearchClient):
    """Fetches active and sold listings from the eBay Finding API.

    Failures never raise out of the search methods; they come back as a
    SearchResult with ``success=False``. Rate limit headers are reported
    but retrying is left to the caller.
    """

    def __init__(
        self,
        app_id: str,
        sandbox: bool = False,
        timeout: float = 15.0,
        user_agent: str | None = None,
        base_url: str | None = None,
        session: aiohttp.ClientSession | None = None,
    ):
        super().__init__(
            base_url or (SANDBOX_URL if sandbox else PRODUCTION_URL),
            timeout=timeout,
            user_agent=user_agent,
            session=session,
        )
        self.app_id = app_id
        self.sandbox = sandbox

    async def search_active(
        self, request: SearchRequest, timeout: float | None = None
    ) -> SearchResult:
        params = self.build_params(request, ACTIVE_OPERATION)
        return await self._search(ACTIVE_OPERATION, params, timeout)

    async def search_sold(
        self, request: SearchRequest, timeout: float | None = None
    ) -> SearchResult:
        params = self.build_params(request, SOLD_OPERATION)
        return await self._search(SOLD_OPERATION, params, timeout)

    def build_params(self, request: SearchRequest, operation: str) -> dict[str, str]:
        """Translate a SearchRequest into Finding API query parameters."""
        params = {
            "OPERATION-NAME": operation,
            "SERVICE-VERSION": "1.0.0",
            "SECURITY-APPNAME": self.app_id,
            "RESPONSE-DATA-FORMAT": "JSON",
            "REST-PAYLOAD": "true",
            "keywords": request.query,
            "paginationInput.entriesPerPage": str(request.max_results or 50),
            "paginationInput.pageNumber": str(request.page_number or 1),
        }
        if operation == SOLD_OPERATION:
            params["sortOrder"] = "EndTimeSoonest"
        else:
            params["sortOrder"] = request.sort_order or "BestMatch"

        if request.item_id:
            params["itemId"] = request.item_id
        if request.upc:
            params["productId.@type"] = "UPC"
            params["productId.#"] = request.upc
        if request.category_id:
            params["categoryId"] = request.category_id

        filters: list[tuple[str, str]] = []
        if request.condition:
            filters.append(("Condition", request.condition))
        if operation == SOLD_OPERATION:
            filters.append(("SoldItemsOnly", "true"))
        else:
            if request.listing_type:
                filters.append(("ListingType", request.listing_type))
            filters.append(("ListingStatus", "Active"))

        for index, (name, value) in enumerate(filters):
            params[f"itemFilter({index}).name"] = name
            params[f"itemFilter({index}).value"] = value
        return params

    async def _search(
        self, operation: str, params: dict[str, str], timeout: float | None
    ) -> SearchResult:
        try:
            response = await self._get_json(FINDING_PATH, params, timeout=timeout)
        except TransportError as e:
            logger.warning(f"{operation} request failed for '{params['keywords']}': {e}")
            return SearchResult.failed(str(e))

        error = extract_error(response.body, operation)
        if error:
            logger.warning(f"{operation} returned an API error: {error}")
            return SearchResult.failed(error)

        data = map_search_response(response.body, operation)
        logger.info(
            f"{operation}: {len(data.items)} items (page {data.page_number}/"
            f"{data.total_pages}) for '{params['keywords']}'"
        )
        return SearchResult(
            success=True,
            data=data,
            rate_limit=parse_rate_limit(response.headers),
        )
