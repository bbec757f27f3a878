"""Table rows (create / delete) through the Web API entity sets."""

from __future__ import annotations

import logging
import re
import uuid
from typing import TYPE_CHECKING, Any

import httpx

from ._http.iter_coroutine import iter_coroutine
from .errors import DataverseError
from .types import EntityReference

if TYPE_CHECKING:
    from ._http.transport import BaseTransport

logger = logging.getLogger(__name__)

_ENTITY_ID_RE = re.compile(r"\(([0-9a-fA-F-]{36})\)\s*$")


def entity_id_from_response(response: httpx.Response) -> uuid.UUID:
    """Read the new row id from the ``OData-EntityId`` header of a 204 create."""
    header = response.headers.get("odata-entityid") or response.headers.get("location") or ""
    match = _ENTITY_ID_RE.search(header)
    if match is None:
        raise DataverseError(f"Response carried no entity id (OData-EntityId: {header!r})")
    return uuid.UUID(match.group(1))


def _row_path(entity_set_name: str, record_id: uuid.UUID | str) -> str:
    return f"{entity_set_name}({uuid.UUID(str(record_id))})"


class BaseRecordsClient:
    def __init__(self, transport: BaseTransport) -> None:
        self._transport = transport

    async def _create(self, entity_set_name: str, attributes: dict[str, Any]) -> uuid.UUID:
        if not isinstance(attributes, dict):
            raise ValueError("attributes must be a dict")
        response = await self._transport.send(
            "POST",
            entity_set_name,
            json=attributes,
            operation=f"create {entity_set_name} row",
            idempotent=False,
        )
        record_id = entity_id_from_response(response)
        logger.info("Created %s row %s", entity_set_name, record_id)
        return record_id

    async def _delete(self, entity_set_name: str, record_id: uuid.UUID | str) -> None:
        await self._transport.send(
            "DELETE",
            _row_path(entity_set_name, record_id),
            operation=f"delete {entity_set_name} row",
        )
        logger.info("Deleted %s row %s", entity_set_name, record_id)

    @staticmethod
    def reference(logical_name: str, record_id: uuid.UUID | str) -> EntityReference:
        return EntityReference(logical_name, uuid.UUID(str(record_id)))


class RecordsClient(BaseRecordsClient):
    def create(self, entity_set_name: str, attributes: dict[str, Any]) -> uuid.UUID:
        return iter_coroutine(self._create(entity_set_name, attributes))

    def delete(self, entity_set_name: str, record_id: uuid.UUID | str) -> None:
        return iter_coroutine(self._delete(entity_set_name, record_id))


class AsyncRecordsClient(BaseRecordsClient):
    async def create(self, entity_set_name: str, attributes: dict[str, Any]) -> uuid.UUID:
        return await self._create(entity_set_name, attributes)

    async def delete(self, entity_set_name: str, record_id: uuid.UUID | str) -> None:
        return await self._delete(entity_set_name, record_id)


__all__ = ["RecordsClient", "AsyncRecordsClient", "entity_id_from_response"]
