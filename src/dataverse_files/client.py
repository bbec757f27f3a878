"""Dataverse clients with namespaced sub-clients."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx

from ._http.config import DEFAULT_API_VERSION, DEFAULT_MAX_RETRIES, DEFAULT_TIMEOUT, ClientConfig
from ._http.iter_coroutine import iter_coroutine
from ._http.transport import AsyncTransport, BlockingTransport
from .columns import AsyncColumnsClient, ColumnsClient
from .files import AsyncFilesClient, FilesClient
from .records import AsyncRecordsClient, RecordsClient

if TYPE_CHECKING:
    from .auth import TokenProvider
    from .settings import Settings


def _build_config(
    url: str | None,
    access_token: str | None,
    token_provider: TokenProvider | None,
    api_version: str | None,
    timeout: float | None,
    max_retries: int | None,
) -> ClientConfig:
    return ClientConfig(
        url=url or "",
        api_version=api_version or DEFAULT_API_VERSION,
        timeout=timeout or DEFAULT_TIMEOUT,
        max_retries=DEFAULT_MAX_RETRIES if max_retries is None else max_retries,
        access_token=access_token,
        token_provider=token_provider,
    )


class DataverseClient:
    """Synchronous Dataverse client.

    Example:
        >>> with DataverseClient(url="https://contoso.crm.dynamics.com") as client:
        ...     account_id = client.records.create("accounts", {"name": "Contoso"})
        ...     ref = client.records.reference("account", account_id)
        ...     client.files.upload_file(ref, "sample_filecolumn", "report.pdf")
    """

    def __init__(
        self,
        *,
        url: str | None = None,
        access_token: str | None = None,
        token_provider: TokenProvider | None = None,
        api_version: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        http_client: httpx.Client | None = None,
    ):
        self._config = _build_config(
            url, access_token, token_provider, api_version, timeout, max_retries
        )
        self._transport = BlockingTransport(self._config, client=http_client)
        self.records = RecordsClient(self._transport)
        self.columns = ColumnsClient(self._transport)
        self.files = FilesClient(self._transport)

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> DataverseClient:
        return cls(
            url=settings.url,
            token_provider=settings.token_provider(),
            api_version=settings.api_version,
            timeout=settings.timeout,
            **kwargs,
        )

    @property
    def url(self) -> str:
        return self._config.url

    def close(self) -> None:
        iter_coroutine(self._transport.close())

    def __enter__(self) -> DataverseClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


class AsyncDataverseClient:
    """Asynchronous Dataverse client."""

    def __init__(
        self,
        *,
        url: str | None = None,
        access_token: str | None = None,
        token_provider: TokenProvider | None = None,
        api_version: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._config = _build_config(
            url, access_token, token_provider, api_version, timeout, max_retries
        )
        self._transport = AsyncTransport(self._config, client=http_client)
        self.records = AsyncRecordsClient(self._transport)
        self.columns = AsyncColumnsClient(self._transport)
        self.files = AsyncFilesClient(self._transport)

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> AsyncDataverseClient:
        return cls(
            url=settings.url,
            token_provider=settings.token_provider(),
            api_version=settings.api_version,
            timeout=settings.timeout,
            **kwargs,
        )

    @property
    def url(self) -> str:
        return self._config.url

    async def close(self) -> None:
        await self._transport.close()

    async def __aenter__(self) -> AsyncDataverseClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


__all__ = ["DataverseClient", "AsyncDataverseClient"]
