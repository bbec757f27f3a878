"""Client configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from ..auth import TokenProvider
from ..errors import DataverseAuthError, DataverseConfigError

DEFAULT_API_VERSION = "9.2"
DEFAULT_TIMEOUT = 120.0
DEFAULT_MAX_RETRIES = 3


@dataclass
class ClientConfig:
    """Connection settings shared by every sub-client."""

    url: str = ""
    api_version: str = DEFAULT_API_VERSION
    timeout: float = DEFAULT_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES
    access_token: str | None = None
    token_provider: TokenProvider | None = None
    headers: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.url:
            self.url = os.getenv("DATAVERSE_URL", "")
        if not self.url:
            raise DataverseConfigError(
                "Missing Dataverse organization url. Pass url=... or set DATAVERSE_URL."
            )
        self.url = self.url.rstrip("/")

    @property
    def api_root(self) -> str:
        return f"{self.url}/api/data/v{self.api_version}"

    def build_url(self, path: str) -> str:
        return self.api_root + "/" + path.lstrip("/")

    def _static_token(self) -> str | None:
        return self.access_token or os.getenv("DATAVERSE_TOKEN") or None

    def resolve_token(self) -> str:
        if self.token_provider is not None:
            return self.token_provider.get_token()
        token = self._static_token()
        if not token:
            raise DataverseAuthError(
                "Missing Dataverse access token. Pass access_token=... or set DATAVERSE_TOKEN."
            )
        return token

    async def aresolve_token(self) -> str:
        if self.token_provider is not None:
            return await self.token_provider.aget_token()
        return self.resolve_token()

    def get_headers(self, bearer: str) -> dict[str, str]:
        return {
            "authorization": f"Bearer {bearer}",
            "accept": "application/json",
            "content-type": "application/json; charset=utf-8",
            "odata-maxversion": "4.0",
            "odata-version": "4.0",
            **self.headers,
        }


__all__ = ["ClientConfig", "DEFAULT_API_VERSION", "DEFAULT_TIMEOUT", "DEFAULT_MAX_RETRIES"]
