"""File column provisioning through the metadata endpoints."""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Any

from ._http.iter_coroutine import iter_coroutine
from .errors import DataverseNotFoundError
from .records import entity_id_from_response

if TYPE_CHECKING:
    from ._http.transport import BaseTransport

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE_IN_KB = 30 * 1024
DEFAULT_LANGUAGE_CODE = 1033


def _label(text: str, language_code: int = DEFAULT_LANGUAGE_CODE) -> dict[str, Any]:
    return {
        "@odata.type": "Microsoft.Dynamics.CRM.Label",
        "LocalizedLabels": [
            {
                "@odata.type": "Microsoft.Dynamics.CRM.LocalizedLabel",
                "Label": text,
                "LanguageCode": language_code,
            }
        ],
    }


def _quote_key(value: str) -> str:
    return value.replace("'", "''")


def _attributes_path(entity_logical_name: str) -> str:
    return f"EntityDefinitions(LogicalName='{_quote_key(entity_logical_name)}')/Attributes"


def _attribute_path(entity_logical_name: str, logical_name: str) -> str:
    return (
        f"{_attributes_path(entity_logical_name)}"
        f"(LogicalName='{_quote_key(logical_name.lower())}')"
    )


def build_file_column(
    schema_name: str,
    *,
    display_name: str | None = None,
    description: str | None = None,
    max_size_in_kb: int = DEFAULT_MAX_SIZE_IN_KB,
    language_code: int = DEFAULT_LANGUAGE_CODE,
) -> dict[str, Any]:
    if not schema_name:
        raise ValueError("schema_name is required")
    if max_size_in_kb < 1:
        raise ValueError("max_size_in_kb must be positive")
    return {
        "@odata.type": "Microsoft.Dynamics.CRM.FileAttributeMetadata",
        "SchemaName": schema_name,
        "DisplayName": _label(display_name or schema_name, language_code),
        "Description": _label(description or f"File column {schema_name}", language_code),
        "RequiredLevel": {
            "Value": "None",
            "CanBeChanged": True,
            "ManagedPropertyLogicalName": "canmodifyrequirementlevelsettings",
        },
        "MaxSizeInKB": max_size_in_kb,
    }


class BaseColumnsClient:
    def __init__(self, transport: BaseTransport) -> None:
        self._transport = transport

    async def _create_file_column(
        self,
        entity_logical_name: str,
        schema_name: str,
        *,
        display_name: str | None = None,
        description: str | None = None,
        max_size_in_kb: int = DEFAULT_MAX_SIZE_IN_KB,
    ) -> uuid.UUID:
        body = build_file_column(
            schema_name,
            display_name=display_name,
            description=description,
            max_size_in_kb=max_size_in_kb,
        )
        response = await self._transport.send(
            "POST",
            _attributes_path(entity_logical_name),
            json=body,
            operation="create file column",
            idempotent=False,
        )
        metadata_id = entity_id_from_response(response)
        logger.info("Created file column %s on %s", schema_name, entity_logical_name)
        return metadata_id

    async def _column_exists(self, entity_logical_name: str, logical_name: str) -> bool:
        try:
            await self._transport.send(
                "GET",
                _attribute_path(entity_logical_name, logical_name),
                params={"$select": "LogicalName"},
                operation="retrieve column",
            )
        except DataverseNotFoundError:
            return False
        return True

    async def _delete_column(self, entity_logical_name: str, logical_name: str) -> None:
        await self._transport.send(
            "DELETE",
            _attribute_path(entity_logical_name, logical_name),
            operation="delete column",
        )
        logger.info("Deleted column %s from %s", logical_name, entity_logical_name)


class ColumnsClient(BaseColumnsClient):
    def create_file_column(
        self,
        entity_logical_name: str,
        schema_name: str,
        *,
        display_name: str | None = None,
        description: str | None = None,
        max_size_in_kb: int = DEFAULT_MAX_SIZE_IN_KB,
    ) -> uuid.UUID:
        return iter_coroutine(
            self._create_file_column(
                entity_logical_name,
                schema_name,
                display_name=display_name,
                description=description,
                max_size_in_kb=max_size_in_kb,
            )
        )

    def column_exists(self, entity_logical_name: str, logical_name: str) -> bool:
        return iter_coroutine(self._column_exists(entity_logical_name, logical_name))

    def delete_column(self, entity_logical_name: str, logical_name: str) -> None:
        return iter_coroutine(self._delete_column(entity_logical_name, logical_name))


class AsyncColumnsClient(BaseColumnsClient):
    async def create_file_column(
        self,
        entity_logical_name: str,
        schema_name: str,
        *,
        display_name: str | None = None,
        description: str | None = None,
        max_size_in_kb: int = DEFAULT_MAX_SIZE_IN_KB,
    ) -> uuid.UUID:
        return await self._create_file_column(
            entity_logical_name,
            schema_name,
            display_name=display_name,
            description=description,
            max_size_in_kb=max_size_in_kb,
        )

    async def column_exists(self, entity_logical_name: str, logical_name: str) -> bool:
        return await self._column_exists(entity_logical_name, logical_name)

    async def delete_column(self, entity_logical_name: str, logical_name: str) -> None:
        return await self._delete_column(entity_logical_name, logical_name)


__all__ = [
    "ColumnsClient",
    "AsyncColumnsClient",
    "build_file_column",
    "DEFAULT_MAX_SIZE_IN_KB",
]
