"""Thin async client for the Stackpulse API.

Every request is ``base_url + path``.  Any error status, network failure
or unparseable body surfaces as one ``ApiError``; callers are not told
which kind of failure occurred.

All methods use httpx.AsyncClient.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

import httpx

from app.config import get_settings
from app.core.exceptions import ApiError

logger = logging.getLogger(__name__)

_JSON_HEADERS: dict[str, str] = {"Content-Type": "application/json"}


class ApiClient:
    """Async API client bound to one base URL.

    ``transport`` lets tests substitute ``httpx.MockTransport``.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport

    async def base_fetch(
        self,
        path: str,
        *,
        method: str = "GET",
        headers: httpx.Headers | dict[str, str] | None = None,
        **options: Any,
    ) -> httpx.Response:
        """Perform a request and reject any non-success response."""
        url = f"{self.base_url}{path}"

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                response = await client.request(method, url, headers=headers, **options)
        except httpx.HTTPError as exc:
            logger.debug("API request failed", extra={"url": url, "error": str(exc)})
            raise ApiError() from exc

        if response.is_error:
            logger.debug(
                "API request returned error status",
                extra={"url": url, "status_code": response.status_code},
            )
            raise ApiError(status_code=response.status_code)

        return response

    async def api_fetch(
        self,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        **options: Any,
    ) -> Any:
        """Fetch and decode a JSON body.

        A JSON content-type header is sent unless the caller overrides it.
        """
        merged = httpx.Headers(_JSON_HEADERS)
        merged.update(headers or {})
        response = await self.base_fetch(path, headers=merged, **options)
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(status_code=response.status_code) from exc

    async def api_fetch_text(self, path: str, **options: Any) -> str:
        """Fetch a body as plain text (e.g. ``/health``)."""
        response = await self.base_fetch(path, **options)
        return response.text


@lru_cache(maxsize=1)
def get_default_client() -> ApiClient:
    """Return the client configured from ``VITE_API_BASE_URL``."""
    settings = get_settings()
    return ApiClient(settings.api_base_url, timeout=settings.client_timeout)


async def base_fetch(path: str, **options: Any) -> httpx.Response:
    return await get_default_client().base_fetch(path, **options)


async def api_fetch(path: str, **options: Any) -> Any:
    return await get_default_client().api_fetch(path, **options)


async def api_fetch_text(path: str, **options: Any) -> str:
    return await get_default_client().api_fetch_text(path, **options)
