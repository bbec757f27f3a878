"""Chunked upload, download and deletion of Dataverse file column content."""

from ._blocks import DEFAULT_BLOCK_SIZE, MAX_BLOCK_SIZE, make_block_id
from .auth import ClientCredentialsTokenProvider, StaticTokenProvider, TokenProvider
from .client import AsyncDataverseClient, DataverseClient
from .columns import DEFAULT_MAX_SIZE_IN_KB
from .errors import (
    DataverseAuthError,
    DataverseConfigError,
    DataverseError,
    DataverseFileError,
    DataverseNotFoundError,
    DataversePermissionError,
    DataverseRequestError,
    DataverseServiceUnavailableError,
    DataverseThrottledError,
)
from .settings import Settings, load_settings
from .types import DownloadSession, EntityReference, UploadResult

__version__ = "0.1.0"

__all__ = [
    "DataverseClient",
    "AsyncDataverseClient",
    "Settings",
    "load_settings",
    "TokenProvider",
    "StaticTokenProvider",
    "ClientCredentialsTokenProvider",
    "EntityReference",
    "UploadResult",
    "DownloadSession",
    "DEFAULT_BLOCK_SIZE",
    "MAX_BLOCK_SIZE",
    "DEFAULT_MAX_SIZE_IN_KB",
    "make_block_id",
    "DataverseError",
    "DataverseConfigError",
    "DataverseAuthError",
    "DataverseFileError",
    "DataverseRequestError",
    "DataverseNotFoundError",
    "DataversePermissionError",
    "DataverseThrottledError",
    "DataverseServiceUnavailableError",
]
