"""Shared fixtures for all tests."""

import os
import uuid
from collections.abc import Generator

import pytest

from dataverse_files import EntityReference

ORG_URL = "https://contoso.crm.dynamics.com"
API_ROOT = f"{ORG_URL}/api/data/v9.2"


@pytest.fixture
def mock_env_clear(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Clear Dataverse environment variables so tests never pick up real credentials."""
    for var in [
        "DATAVERSE_URL",
        "DATAVERSE_TOKEN",
        "DATAVERSE_API_VERSION",
        "DATAVERSE_TIMEOUT",
        "DATAVERSE_APPSETTINGS",
        "DEBUG",
    ]:
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture
def org_url() -> str:
    return ORG_URL


@pytest.fixture
def mock_token() -> str:
    return "test_token_123456789"


@pytest.fixture
def account_ref() -> EntityReference:
    return EntityReference("account", uuid.UUID("9f5c1a7e-2b3d-4c8e-a1f0-6d7e8f9a0b1c"))


@pytest.fixture
def payload_file(tmp_path) -> str:
    """A 10 000 byte file with non-repeating content."""
    path = tmp_path / "report.pdf"
    path.write_bytes(bytes(i % 251 for i in range(10_000)))
    return os.fspath(path)


@pytest.fixture
def empty_file(tmp_path) -> str:
    path = tmp_path / "empty.txt"
    path.write_bytes(b"")
    return os.fspath(path)
