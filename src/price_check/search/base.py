import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import aiohttp

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Network failure, timeout, non-2xx status or an unreadable body."""


@dataclass
class JsonResponse:
    status: int
    headers: Mapping[str, str]
    body: Any


class BaseSearchClient:
    """Base class providing aiohttp session management and request timeouts.

    Usable as an async context manager; outside one the session is created
    lazily on the first request and released by ``close()``.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 15.0,
        user_agent: str | None = None,
        session: aiohttp.ClientSession | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.user_agent = user_agent or "OmniLister-PriceChecker/1.0"
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self):
        self._ensure_session()
        return self

    async def __aexit__(self, *args):
        await self.close()

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={
                    "Accept": "application/json",
                    "User-Agent": self.user_agent,
                }
            )
            self._owns_session = True
        return self._session

    async def close(self):
        if self._session and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _get_json(
        self,
        path: str,
        params: Mapping[str, str],
        timeout: float | None = None,
    ) -> JsonResponse:
        """GET ``path`` and decode the JSON body.

        Raises TransportError for anything that keeps us from getting a
        decoded 2xx body back.
        """
        session = self._ensure_session()
        url = f"{self.base_url}{path}"
        limit = timeout if timeout is not None else self.timeout

        try:
            async with session.get(
                url,
                params=params,
                timeout=aiohttp.ClientTimeout(total=limit),
            ) as resp:
                if resp.status < 200 or resp.status >= 300:
                    raise TransportError(f"eBay API Error: {resp.status} - {resp.reason}")
                body = await resp.json(content_type=None)
                return JsonResponse(status=resp.status, headers=resp.headers, body=body)
        except asyncio.TimeoutError:
            raise TransportError(f"Request timed out after {limit:g}s") from None
        except aiohttp.ClientError as e:
            raise TransportError(str(e) or e.__class__.__name__) from e
        except ValueError as e:
            raise TransportError(f"Invalid JSON response: {e}") from e
