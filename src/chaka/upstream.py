"""Forward the (possibly rewritten) ADX message to the upstream service."""

from __future__ import annotations

import logging

import httpx

from chaka.errors import UpstreamTransportError

logger = logging.getLogger(__name__)


class UpstreamClient:
    def __init__(self, http: httpx.AsyncClient, base_url: str) -> None:
        self._http = http
        self.base_url = base_url.rstrip("/")

    async def forward(self, method: str, path: str, adx: bytes) -> httpx.Response:
        """Send ``adx`` with the inbound method to the inbound path upstream.

        ``path`` includes any query string. Raises UpstreamTransportError
        when the upstream cannot be reached.
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        logger.info("Making upstream request: %s %s", method, url)
        try:
            return await self._http.request(
                method,
                url,
                content=adx,
                headers={"Content-Type": "application/xml"},
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.error("Error connecting to upstream server: %s", exc)
            raise UpstreamTransportError(str(exc) or type(exc).__name__) from exc
