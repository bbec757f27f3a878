from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class EntityReference:
    """Points at one row of a table, e.g. ``EntityReference("account", id)``."""

    logical_name: str
    id: uuid.UUID
    primary_id_attribute: str | None = None

    @property
    def primary_id(self) -> str:
        return self.primary_id_attribute or f"{self.logical_name}id"

    def to_target(self) -> dict[str, Any]:
        return {
            "@odata.type": f"Microsoft.Dynamics.CRM.{self.logical_name}",
            self.primary_id: str(self.id),
        }


@dataclass(slots=True)
class UploadResult:
    file_id: uuid.UUID
    file_name: str
    mime_type: str
    file_size_in_bytes: int
    block_count: int


@dataclass(slots=True)
class DownloadSession:
    continuation_token: str
    file_size_in_bytes: int
    file_name: str | None = None
    is_chunking_supported: bool = True


ProgressCallback = Callable[[int, int], None] | Callable[[int, int], Awaitable[None]]


__all__ = [
    "EntityReference",
    "UploadResult",
    "DownloadSession",
    "ProgressCallback",
]
