"""Transport layer for HTTP operations."""

from __future__ import annotations

import abc
import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, cast

import httpx

from ..errors import DataverseError, DataverseThrottledError, map_dataverse_error
from .config import ClientConfig

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None] | None]

RETRYABLE_STATUS = frozenset({429, 502, 503, 504})


def backoff_delay(attempt: int) -> float:
    return min(2**attempt * 0.1, 2.0)


def _should_retry(status_code: int, idempotent: bool) -> bool:
    if status_code == 429:
        return True
    return idempotent and status_code in RETRYABLE_STATUS


class BaseTransport(abc.ABC):
    """Abstract transport with an async interface.

    ``send`` resolves the bearer token, retries throttled and transient
    failures and raises the mapped ``DataverseRequestError`` for anything
    that is still not a 2xx response.
    """

    def __init__(self, config: ClientConfig, *, sleep_fn: SleepFn) -> None:
        self.config = config
        self._sleep_fn = sleep_fn

    @abc.abstractmethod
    async def _resolve_token(self) -> str: ...

    @abc.abstractmethod
    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None,
        json: Any | None,
        headers: dict[str, str],
    ) -> httpx.Response: ...

    @abc.abstractmethod
    async def close(self) -> None: ...

    async def _sleep(self, seconds: float) -> None:
        result = self._sleep_fn(seconds)
        if inspect.isawaitable(result):
            await cast(Awaitable[None], result)

    async def send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any | None = None,
        headers: dict[str, str] | None = None,
        operation: str | None = None,
        idempotent: bool = True,
    ) -> httpx.Response:
        """Send one request, retrying what can safely be repeated.

        Throttled requests (429) are always retried: the service refuses them
        before doing any work. Network errors and 502/503/504 are retried only
        when ``idempotent`` is true, since the first attempt may have landed.
        """
        url = self.config.build_url(path)
        retries = max(self.config.max_retries, 0)

        for attempt in range(retries + 1):
            request_headers = self.config.get_headers(await self._resolve_token())
            if headers:
                request_headers.update(headers)

            try:
                response = await self._request(
                    method, url, params=params, json=json, headers=request_headers
                )
            except httpx.TransportError as exc:
                if idempotent and attempt < retries:
                    logger.debug("Retrying %s %s after network error: %s", method, path, exc)
                    await self._sleep(backoff_delay(attempt))
                    continue
                raise

            if 200 <= response.status_code < 300:
                return response

            error = map_dataverse_error(response, operation)
            if _should_retry(response.status_code, idempotent) and attempt < retries:
                delay = backoff_delay(attempt)
                if isinstance(error, DataverseThrottledError) and error.retry_after is not None:
                    delay = error.retry_after
                logger.debug(
                    "Retrying %s %s in %.2fs (status %s)", method, path, delay, response.status_code
                )
                await self._sleep(delay)
                continue
            raise error

        raise DataverseError(f"Request {method} {path} did not complete")


class BlockingTransport(BaseTransport):
    """Sync I/O transport. Methods are async def but don't suspend."""

    def __init__(
        self,
        config: ClientConfig,
        *,
        client: httpx.Client | None = None,
        sleep_fn: SleepFn = time.sleep,
    ) -> None:
        super().__init__(config, sleep_fn=sleep_fn)
        self._client = client

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=httpx.Timeout(self.config.timeout))
        return self._client

    async def _resolve_token(self) -> str:
        return self.config.resolve_token()

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None,
        json: Any | None,
        headers: dict[str, str],
    ) -> httpx.Response:
        return self._get_client().request(method, url, params=params, json=json, headers=headers)

    async def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None


class AsyncTransport(BaseTransport):
    """Async I/O transport using httpx.AsyncClient."""

    def __init__(
        self,
        config: ClientConfig,
        *,
        client: httpx.AsyncClient | None = None,
        sleep_fn: SleepFn = asyncio.sleep,
    ) -> None:
        super().__init__(config, sleep_fn=sleep_fn)
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.config.timeout))
        return self._client

    async def _resolve_token(self) -> str:
        return await self.config.aresolve_token()

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None,
        json: Any | None,
        headers: dict[str, str],
    ) -> httpx.Response:
        return await self._get_client().request(
            method, url, params=params, json=json, headers=headers
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


__all__ = ["BaseTransport", "BlockingTransport", "AsyncTransport", "SleepFn", "backoff_delay"]
