"""Exceptions raised by the Dataverse file column client."""

from __future__ import annotations

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

import httpx


class DataverseError(Exception):
    """Base class for every error raised by this package."""


class DataverseConfigError(DataverseError):
    """Settings are missing or malformed."""


class DataverseAuthError(DataverseError):
    """No bearer token could be resolved or the token endpoint refused us."""


class DataverseFileError(DataverseError):
    """A local file could not be used for a transfer."""


class DataverseRequestError(DataverseError):
    """The Web API answered with a non-success status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        code: str | None = None,
        operation: str | None = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.code = code
        self.operation = operation
        prefix = f"Failed to {operation}: " if operation else ""
        detail = f" [{code}]" if code else ""
        super().__init__(f"{prefix}{status_code}{detail} {message}".rstrip())


class DataverseNotFoundError(DataverseRequestError):
    pass


class DataversePermissionError(DataverseRequestError):
    pass


class DataverseThrottledError(DataverseRequestError):
    """Service protection limits were hit (HTTP 429)."""

    def __init__(self, message: str, *, retry_after: float | None = None, **kwargs) -> None:
        self.retry_after = retry_after
        super().__init__(message, **kwargs)


class DataverseServiceUnavailableError(DataverseRequestError):
    pass


def parse_retry_after(value: str | None) -> float | None:
    """Parse a ``Retry-After`` header given either as seconds or as an HTTP date."""
    if not value:
        return None
    value = value.strip()
    try:
        return max(float(value), 0.0)
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max((when - datetime.now(timezone.utc)).total_seconds(), 0.0)


def _error_payload(response: httpx.Response) -> tuple[str | None, str]:
    try:
        data = response.json()
    except Exception:
        return None, response.text.strip()

    error = data.get("error") if isinstance(data, dict) else None
    if not isinstance(error, dict):
        return None, response.text.strip()
    return error.get("code"), error.get("message") or ""


def map_dataverse_error(
    response: httpx.Response, operation: str | None = None
) -> DataverseRequestError:
    """Translate an OData error response into the matching exception."""
    code, message = _error_payload(response)
    status = response.status_code
    message = message or response.reason_phrase
    kwargs = {"status_code": status, "code": code, "operation": operation}

    if status == 404:
        return DataverseNotFoundError(message, **kwargs)
    if status in (401, 403):
        return DataversePermissionError(message, **kwargs)
    if status == 429:
        retry_after = parse_retry_after(response.headers.get("retry-after"))
        return DataverseThrottledError(message, retry_after=retry_after, **kwargs)
    if status >= 500:
        return DataverseServiceUnavailableError(message, **kwargs)
    return DataverseRequestError(message, **kwargs)


__all__ = [
    "DataverseError",
    "DataverseConfigError",
    "DataverseAuthError",
    "DataverseFileError",
    "DataverseRequestError",
    "DataverseNotFoundError",
    "DataversePermissionError",
    "DataverseThrottledError",
    "DataverseServiceUnavailableError",
    "map_dataverse_error",
    "parse_retry_after",
]
