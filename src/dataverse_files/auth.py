"""Bearer token providers for the Dataverse Web API."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import httpx

from .errors import DataverseAuthError

logger = logging.getLogger(__name__)

AUTHORITY_URL = "https://login.microsoftonline.com"
# Refresh this many seconds before the token actually expires.
EXPIRY_SKEW = 60.0


@runtime_checkable
class TokenProvider(Protocol):
    def get_token(self) -> str: ...

    async def aget_token(self) -> str: ...


class StaticTokenProvider:
    """Hands out a token obtained elsewhere (e.g. ``az account get-access-token``)."""

    def __init__(self, token: str) -> None:
        if not token:
            raise DataverseAuthError("token must be a non-empty string")
        self._token = token

    def get_token(self) -> str:
        return self._token

    async def aget_token(self) -> str:
        return self._token


@dataclass
class _CachedToken:
    value: str
    expires_at: float

    def is_fresh(self, now: float) -> bool:
        return now < self.expires_at - EXPIRY_SKEW


class ClientCredentialsTokenProvider:
    """OAuth2 client credentials flow against Microsoft Entra ID.

    The token is cached until shortly before it expires. ``resource`` is the
    organization URL, e.g. ``https://contoso.crm.dynamics.com``.
    """

    def __init__(
        self,
        *,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        resource: str,
        authority: str = AUTHORITY_URL,
        timeout: float = 30.0,
        clock=time.monotonic,
    ) -> None:
        missing = [
            name
            for name, value in (
                ("tenant_id", tenant_id),
                ("client_id", client_id),
                ("client_secret", client_secret),
                ("resource", resource),
            )
            if not value
        ]
        if missing:
            raise DataverseAuthError(f"Missing client credentials: {', '.join(missing)}")
        self._tenant_id = tenant_id
        self._client_id = client_id
        self._client_secret = client_secret
        self._resource = resource.rstrip("/")
        self._authority = authority.rstrip("/")
        self._timeout = timeout
        self._clock = clock
        self._cached: _CachedToken | None = None

    @property
    def token_url(self) -> str:
        return f"{self._authority}/{self._tenant_id}/oauth2/v2.0/token"

    def _form(self) -> dict[str, str]:
        return {
            "grant_type": "client_credentials",
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "scope": f"{self._resource}/.default",
        }

    def _store(self, response: httpx.Response) -> str:
        if response.status_code != 200:
            try:
                data: Any = response.json()
            except Exception:
                data = {"error_description": response.text}
            description = data.get("error_description") or data.get("error") or ""
            raise DataverseAuthError(
                f"Token request failed: {response.status_code} {description}".rstrip()
            )
        payload = response.json()
        token = payload.get("access_token")
        if not token:
            raise DataverseAuthError("Token response did not contain an access_token")
        expires_in = float(payload.get("expires_in") or 0)
        self._cached = _CachedToken(value=token, expires_at=self._clock() + expires_in)
        logger.debug("Acquired access token for %s (expires in %ss)", self._resource, expires_in)
        return token

    def get_token(self) -> str:
        if self._cached is not None and self._cached.is_fresh(self._clock()):
            return self._cached.value
        with httpx.Client(timeout=httpx.Timeout(self._timeout)) as client:
            response = client.post(self.token_url, data=self._form())
        return self._store(response)

    async def aget_token(self) -> str:
        if self._cached is not None and self._cached.is_fresh(self._clock()):
            return self._cached.value
        async with httpx.AsyncClient(timeout=httpx.Timeout(self._timeout)) as client:
            response = await client.post(self.token_url, data=self._form())
        return self._store(response)


__all__ = [
    "TokenProvider",
    "StaticTokenProvider",
    "ClientCredentialsTokenProvider",
    "AUTHORITY_URL",
]
