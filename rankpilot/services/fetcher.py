"""
Single-page fetcher for audits.

Retrieves one HTML document under a hard deadline and reports the latency the
page-speed heuristic is derived from. No retries happen here; the job queue
owns retry policy.
"""

import asyncio
import logging
import time
from dataclasses import dataclass

import httpx

from rankpilot.config import settings
from rankpilot.core.exceptions import FetchTimeout, NetworkError, UpstreamHTTPError

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    url: str
    final_url: str
    status_code: int
    html: str
    elapsed_ms: int


class PageFetcher:
    """Async HTTP GET with a total deadline and an identifying user agent."""

    def __init__(
        self,
        timeout_seconds: float | None = None,
        user_agent: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout_seconds = timeout_seconds or settings.FETCH_TIMEOUT_SECONDS
        self.user_agent = user_agent or settings.FETCH_USER_AGENT
        self.transport = transport

    async def fetch(self, url: str) -> FetchResult:
        """Fetch ``url`` and return its HTML with the elapsed time in ms.

        Raises:
            FetchTimeout: the deadline elapsed before the body was read.
            NetworkError: DNS, connection or protocol failure.
            UpstreamHTTPError: the server answered with a non-2xx status.
        """
        logger.debug(f"Fetching {url} (timeout={self.timeout_seconds}s)")
        start_time = time.monotonic()

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                follow_redirects=True,
                headers={"User-Agent": self.user_agent},
                transport=self.transport,
            ) as client:
                # httpx timeouts are per operation; wait_for bounds the whole request
                response = await asyncio.wait_for(client.get(url), timeout=self.timeout_seconds)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning(f"Timeout fetching {url}")
            raise FetchTimeout(url, self.timeout_seconds) from None
        except httpx.InvalidURL as e:
            raise NetworkError(url, f"invalid URL ({e})") from e
        except httpx.RequestError as e:
            logger.warning(f"Network error fetching {url}: {type(e).__name__}: {e}")
            raise NetworkError(url, f"{type(e).__name__}: {e}") from e

        elapsed_ms = int((time.monotonic() - start_time) * 1000)

        if not response.is_success:
            logger.warning(f"Upstream returned {response.status_code} for {url}")
            raise UpstreamHTTPError(url, response.status_code, response.reason_phrase)

        logger.info(f"Fetched {url}: status={response.status_code}, elapsed={elapsed_ms}ms")
        return FetchResult(
            url=url,
            final_url=str(response.url),
            status_code=response.status_code,
            html=response.text,
            elapsed_ms=elapsed_ms,
        )
