from __future__ import annotations

import asyncio
import logging
import time

import httpx

from .config import CONNECT_TIMEOUT, REQUEST_TIMEOUT
from .errors import TransportError
from .models import TRANSPORT_FAILURE

logger = logging.getLogger("trafficgen.transport")


class HttpxTransport:
    """Performs one GET per call and reports ``(status, elapsed_ms)``.

    Keep-alive is disabled so every request opens its own connection.
    Failures that produce no HTTP status come back as ``(0, 0)``.
    """

    def __init__(
        self,
        connect_timeout: float = CONNECT_TIMEOUT,
        overall_timeout: float = REQUEST_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.connect_timeout = float(connect_timeout)
        self.overall_timeout = float(overall_timeout)
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.overall_timeout, connect=self.connect_timeout),
            limits=httpx.Limits(max_keepalive_connections=0),
            follow_redirects=False,
            transport=transport,
        )

    async def _get(self, url: str, headers: dict[str, str]) -> int:
        try:
            r = await asyncio.wait_for(
                self._client.get(url, headers={**headers, "Connection": "close"}),
                timeout=self.overall_timeout,
            )
        except (httpx.HTTPError, httpx.InvalidURL, asyncio.TimeoutError) as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e
        return r.status_code

    async def perform(self, url: str, headers: dict[str, str]) -> tuple[int, int]:
        start = time.perf_counter()
        try:
            status = await self._get(url, headers)
        except TransportError as e:
            logger.debug("request to %s failed: %s", url, e)
            return TRANSPORT_FAILURE, 0
        # Whole milliseconds, truncated.
        return status, int((time.perf_counter() - start) * 1000)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpxTransport":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()
