"""Fetching watched endpoints.

One GET per job, no retries. Redirects are followed; anything but a final
``200 OK`` is a :class:`FetchError` whose message is the response body, and
transport failures (DNS, refused connection, timeout, bad URL) are a
:class:`FetchError` chaining the httpx exception.
"""

from __future__ import annotations

import httpx

from apiwatch.core.errors import FetchError
from apiwatch.core.logging import get_logger
from apiwatch.models import CapturedResponse

logger = get_logger(__name__)

SUCCESS_STATUS = 200


class HttpFetcher:
    """Fetches endpoints through a shared :class:`httpx.AsyncClient`.

    All jobs of a run share one client so connections to the same host are
    pooled; the orchestrator owns and closes it.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def __call__(self, url: str) -> CapturedResponse:
        try:
            response = await self._client.get(url, follow_redirects=True)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(f"GET {url}: {str(e) or type(e).__name__}", cause=e).with_context(url=url)

        body = response.content
        logger.debug("fetch.response", url=url, status=response.status_code, size=len(body))
        if response.status_code != SUCCESS_STATUS:
            raise FetchError(
                body.decode("utf-8", errors="replace")
            ).with_context(url=url, http_status=response.status_code)
        return CapturedResponse(raw_bytes=body, http_status=response.status_code)
