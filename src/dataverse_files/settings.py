"""Application settings.

Settings come from an ``appsettings.json`` file holding a connection string
under ``ConnectionStrings.default``::

    {
      "ConnectionStrings": {
        "default": "AuthType=OAuth;Url=https://contoso.crm.dynamics.com;Username=me@contoso.com"
      }
    }

The file path is taken from ``DATAVERSE_APPSETTINGS`` and defaults to
``appsettings.json`` in the working directory. ``DATAVERSE_URL``,
``DATAVERSE_TOKEN``, ``DATAVERSE_API_VERSION`` and ``DATAVERSE_TIMEOUT``
override what the file says; a ``.env`` file is honoured too.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from dotenv import load_dotenv

from ._http.config import DEFAULT_API_VERSION, DEFAULT_TIMEOUT
from .auth import ClientCredentialsTokenProvider, StaticTokenProvider, TokenProvider
from .errors import DataverseConfigError

DEFAULT_SETTINGS_FILE = "appsettings.json"
DEFAULT_CONNECTION_NAME = "default"

# Connection string keys accepted for the same setting.
_KEY_ALIASES = {
    "serviceuri": "url",
    "service uri": "url",
    "server": "url",
    "appid": "clientid",
    "secret": "clientsecret",
    "tenant": "tenantid",
}


def parse_connection_string(value: str) -> dict[str, str]:
    """Split ``Key=Value;Key2='va;lue'`` into a dict with lower-cased keys."""
    result: dict[str, str] = {}
    for part in _split_unquoted(value, ";"):
        if not part.strip():
            continue
        key, sep, raw = part.partition("=")
        if not sep:
            raise DataverseConfigError(f"Malformed connection string segment: {part.strip()!r}")
        key = key.strip().lower()
        key = _KEY_ALIASES.get(key, key)
        raw = raw.strip()
        if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in "'\"":
            raw = raw[1:-1]
        result[key] = raw
    return result


def _split_unquoted(value: str, separator: str) -> list[str]:
    parts: list[str] = []
    current: list[str] = []
    quote: str | None = None
    for ch in value:
        if quote:
            if ch == quote:
                quote = None
            current.append(ch)
        elif ch in "'\"":
            quote = ch
            current.append(ch)
        elif ch == separator:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    if quote:
        raise DataverseConfigError("Unterminated quote in connection string")
    parts.append("".join(current))
    return parts


def _tenant_from_authority(authority: str | None) -> str | None:
    if not authority:
        return None
    segment = authority.rstrip("/").rsplit("/", 1)[-1]
    return segment or None


@dataclass
class Settings:
    url: str
    auth_type: str = "OAuth"
    username: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    tenant_id: str | None = None
    access_token: str | None = None
    api_version: str = DEFAULT_API_VERSION
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_connection_string(cls, value: str, **overrides: Any) -> Settings:
        fields = parse_connection_string(value)
        url = fields.get("url")
        if not url:
            raise DataverseConfigError("Connection string has no Url")
        settings = cls(
            url=url.rstrip("/"),
            auth_type=fields.get("authtype", "OAuth"),
            username=fields.get("username"),
            client_id=fields.get("clientid"),
            client_secret=fields.get("clientsecret"),
            tenant_id=fields.get("tenantid") or _tenant_from_authority(fields.get("authority")),
        )
        for name, override in overrides.items():
            if override is not None:
                setattr(settings, name, override)
        return settings

    def token_provider(self) -> TokenProvider | None:
        """Build a provider for the configured auth type.

        ``AuthType=ClientSecret`` uses the client credentials flow. Every
        other auth type relies on an access token handed in from outside.
        """
        if self.access_token:
            return StaticTokenProvider(self.access_token)
        if self.auth_type.lower() == "clientsecret":
            return ClientCredentialsTokenProvider(
                tenant_id=self.tenant_id or "",
                client_id=self.client_id or "",
                client_secret=self.client_secret or "",
                resource=self.url,
            )
        return None


def _read_connection_string(path: str, name: str) -> str:
    try:
        with open(path, "r", encoding="utf-8-sig") as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise DataverseConfigError(f"{path} is not valid JSON: {exc}") from exc

    sections = {k.lower(): v for k, v in data.items()} if isinstance(data, dict) else {}
    strings = sections.get("connectionstrings")
    if not isinstance(strings, dict):
        raise DataverseConfigError(f"{path} has no ConnectionStrings section")
    by_name = {k.lower(): v for k, v in strings.items()}
    value = by_name.get(name.lower())
    if not isinstance(value, str) or not value.strip():
        raise DataverseConfigError(f"{path} has no '{name}' connection string")
    return value


def _timeout_from(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return float(value)
    except ValueError as exc:
        raise DataverseConfigError(f"DATAVERSE_TIMEOUT must be a number, got {value!r}") from exc


def load_settings(
    path: str | os.PathLike | None = None,
    *,
    connection_name: str = DEFAULT_CONNECTION_NAME,
    env: Mapping[str, str] | None = None,
    use_dotenv: bool = True,
) -> Settings:
    """Load settings from the appsettings file and the environment."""
    if env is None:
        if use_dotenv:
            load_dotenv(override=False)
        env = os.environ

    overrides: dict[str, Any] = {
        "access_token": env.get("DATAVERSE_TOKEN") or None,
        "api_version": env.get("DATAVERSE_API_VERSION") or None,
        "timeout": _timeout_from(env.get("DATAVERSE_TIMEOUT")),
    }
    env_url = (env.get("DATAVERSE_URL") or "").rstrip("/") or None

    if path:
        settings_path = os.fspath(path)
    else:
        settings_path = env.get("DATAVERSE_APPSETTINGS") or DEFAULT_SETTINGS_FILE
    if os.path.exists(settings_path):
        value = _read_connection_string(settings_path, connection_name)
        return Settings.from_connection_string(value, url=env_url, **overrides)

    if env_url:
        settings = Settings(url=env_url)
        for name, override in overrides.items():
            if override is not None:
                setattr(settings, name, override)
        return settings

    raise DataverseConfigError(
        f"Settings file {settings_path} not found. "
        "Create it, point DATAVERSE_APPSETTINGS at it or set DATAVERSE_URL."
    )


__all__ = [
    "Settings",
    "load_settings",
    "parse_connection_string",
    "DEFAULT_SETTINGS_FILE",
]
