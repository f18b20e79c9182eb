import asyncio
from contextlib import asynccontextmanager
from typing import Protocol

import httpx
import structlog

from ..logging.setup import get_correlation_id

logger = structlog.get_logger(__name__)


class Fetcher(Protocol):
    """Anything that can GET a URL and hand back the response"""

    async def fetch(self, url: str, headers: dict[str, str] | None = None) -> httpx.Response: ...


class HttpClient:
    """httpx-backed fetcher with correlation headers and optional retries

    Retries are off by default; callers of ``verify`` decide whether a
    failed key-set fetch is worth another attempt.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        max_retries: int = 0,
        retry_backoff: float = 0.5,
        default_headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff
        self.default_headers = {"Accept": "application/json", **(default_headers or {})}
        self.transport = transport

    @asynccontextmanager
    async def _client(self):
        headers = self.default_headers.copy()

        correlation_id = get_correlation_id()
        if correlation_id:
            headers["X-Correlation-ID"] = correlation_id

        client_kwargs = {"timeout": self.timeout, "headers": headers}
        if self.transport is not None:
            client_kwargs["transport"] = self.transport

        async with httpx.AsyncClient(**client_kwargs) as client:
            yield client

    async def fetch(self, url: str, headers: dict[str, str] | None = None) -> httpx.Response:
        """GET ``url``; raises httpx.HTTPStatusError on 4xx/5xx"""
        last_exception: httpx.HTTPError | None = None

        for attempt in range(self.max_retries + 1):
            try:
                async with self._client() as client:
                    logger.debug("Making HTTP request", url=url, attempt=attempt + 1)

                    response = await client.get(url, headers=headers)

                    logger.debug(
                        "HTTP response received",
                        url=url,
                        status_code=response.status_code,
                        response_time_ms=response.elapsed.total_seconds() * 1000,
                    )

                    # 304 and other 3xx are handed back to the cache layer
                    if response.status_code >= 400:
                        response.raise_for_status()

                    return response

            except httpx.HTTPStatusError as e:
                # Client errors are final
                if e.response.status_code < 500:
                    raise
                last_exception = e
            except httpx.RequestError as e:
                last_exception = e

            if attempt < self.max_retries:
                backoff_time = self.retry_backoff * (2**attempt)
                logger.warning(
                    "HTTP request failed, retrying",
                    url=url,
                    attempt=attempt + 1,
                    max_attempts=self.max_retries + 1,
                    error=str(last_exception),
                    backoff_seconds=backoff_time,
                )
                await asyncio.sleep(backoff_time)

        logger.error(
            "HTTP request failed",
            url=url,
            attempts=self.max_retries + 1,
            error=str(last_exception),
        )
        raise last_exception
