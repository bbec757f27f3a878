"""Chunked block transfer of file column content.

Uploads follow InitializeFileBlocksUpload, one UploadBlock per block and
CommitFileBlocksUpload. Downloads follow InitializeFileBlocksDownload and
DownloadBlock calls that walk an offset cursor over the file. All of the
business logic lives in ``BaseFilesClient`` as coroutines; ``FilesClient``
runs them on a blocking transport and ``AsyncFilesClient`` awaits them.
"""

from __future__ import annotations

import inspect
import io
import logging
import os
import uuid
from collections.abc import Awaitable
from typing import TYPE_CHECKING, Any, BinaryIO, cast

from ._blocks import (
    DEFAULT_BLOCK_SIZE,
    decode_block,
    encode_block,
    guess_mime_type,
    iter_blocks,
    iter_download_ranges,
    validate_block_size,
)
from ._http.iter_coroutine import iter_coroutine
from .errors import DataverseError, DataverseFileError
from .types import DownloadSession, EntityReference, ProgressCallback, UploadResult

if TYPE_CHECKING:
    from ._http.transport import BaseTransport

logger = logging.getLogger(__name__)


def _stream_size(stream: BinaryIO) -> int:
    try:
        position = stream.tell()
        end = stream.seek(0, os.SEEK_END)
        stream.seek(position)
    except (AttributeError, OSError, ValueError):
        return 0
    return max(end - position, 0)


def _require_file(path: str | os.PathLike) -> str:
    source = os.fspath(path)
    if not source:
        raise DataverseFileError("path is required")
    if not os.path.exists(source):
        raise DataverseFileError(f"{source} does not exist")
    if not os.path.isfile(source):
        raise DataverseFileError(f"{source} is not a file")
    return source


class BaseFilesClient:
    """Shared async business logic for file column transfers."""

    _await_progress_callback = True

    def __init__(self, transport: BaseTransport) -> None:
        self._transport = transport

    async def _emit_progress(
        self, callback: ProgressCallback | None, transferred: int, total: int
    ) -> None:
        if callback is None:
            return
        result = callback(transferred, total)
        if self._await_progress_callback and inspect.isawaitable(result):
            await cast(Awaitable[None], result)
        elif inspect.iscoroutine(result):
            # the sync client cannot await it
            result.close()

    async def _action(
        self,
        name: str,
        body: dict[str, Any],
        operation: str,
        *,
        idempotent: bool = True,
    ) -> dict[str, Any]:
        response = await self._transport.send(
            "POST", name, json=body, operation=operation, idempotent=idempotent
        )
        if response.status_code == 204 or not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise DataverseError(f"{name} returned a non-JSON body") from exc

    # -- upload ------------------------------------------------------------

    async def _initialize_upload(
        self, target: EntityReference, file_attribute_name: str, file_name: str
    ) -> str:
        data = await self._action(
            "InitializeFileBlocksUpload",
            {
                "Target": target.to_target(),
                "FileAttributeName": file_attribute_name,
                "FileName": file_name,
            },
            "initialize file upload",
        )
        token = data.get("FileContinuationToken")
        if not token:
            raise DataverseError("InitializeFileBlocksUpload returned no FileContinuationToken")
        return token

    async def _upload_block(self, continuation_token: str, block_id: str, data: bytes) -> None:
        await self._action(
            "UploadBlock",
            {
                "BlockId": block_id,
                "BlockData": encode_block(data),
                "FileContinuationToken": continuation_token,
            },
            "upload block",
        )

    async def _commit_upload(
        self,
        continuation_token: str,
        block_ids: list[str],
        file_name: str,
        mime_type: str,
    ) -> dict[str, Any]:
        return await self._action(
            "CommitFileBlocksUpload",
            {
                "FileName": file_name,
                "MimeType": mime_type,
                "BlockList": list(block_ids),
                "FileContinuationToken": continuation_token,
            },
            "commit file upload",
            idempotent=False,
        )

    async def _upload_stream(
        self,
        target: EntityReference,
        file_attribute_name: str,
        stream: BinaryIO,
        *,
        file_name: str,
        mime_type: str | None,
        block_size: int,
        on_progress: ProgressCallback | None,
    ) -> UploadResult:
        block_size = validate_block_size(block_size)
        if not file_name:
            raise DataverseFileError("file_name is required")
        total = _stream_size(stream)

        token = await self._initialize_upload(target, file_attribute_name, file_name)

        block_ids: list[str] = []
        transferred = 0
        for block_id, data in iter_blocks(stream, block_size):
            await self._upload_block(token, block_id, data)
            block_ids.append(block_id)
            transferred += len(data)
            logger.debug("Uploaded block %d (%d bytes)", len(block_ids), len(data))
            await self._emit_progress(on_progress, transferred, total or transferred)

        resolved_mime_type = mime_type or guess_mime_type(file_name)
        committed = await self._commit_upload(token, block_ids, file_name, resolved_mime_type)
        file_id = committed.get("FileId")
        if not file_id:
            raise DataverseError("CommitFileBlocksUpload returned no FileId")

        logger.info(
            "Committed %s (%d bytes in %d blocks) to %s.%s",
            file_name,
            transferred,
            len(block_ids),
            target.logical_name,
            file_attribute_name,
        )
        return UploadResult(
            file_id=uuid.UUID(str(file_id)),
            file_name=file_name,
            mime_type=resolved_mime_type,
            file_size_in_bytes=int(committed.get("FileSizeInBytes") or transferred),
            block_count=len(block_ids),
        )

    async def _upload_file(
        self,
        target: EntityReference,
        file_attribute_name: str,
        path: str | os.PathLike,
        *,
        mime_type: str | None = None,
        file_name: str | None = None,
        block_size: int = DEFAULT_BLOCK_SIZE,
        on_progress: ProgressCallback | None = None,
    ) -> UploadResult:
        source = _require_file(path)
        with open(source, "rb") as stream:
            return await self._upload_stream(
                target,
                file_attribute_name,
                stream,
                file_name=file_name or os.path.basename(source),
                mime_type=mime_type,
                block_size=block_size,
                on_progress=on_progress,
            )

    async def _upload_bytes(
        self,
        target: EntityReference,
        file_attribute_name: str,
        data: bytes | bytearray | memoryview | BinaryIO,
        file_name: str,
        *,
        mime_type: str | None = None,
        block_size: int = DEFAULT_BLOCK_SIZE,
        on_progress: ProgressCallback | None = None,
    ) -> UploadResult:
        if isinstance(data, (bytes, bytearray, memoryview)):
            stream: BinaryIO = io.BytesIO(bytes(data))
        elif hasattr(data, "read"):
            stream = data
        else:
            raise DataverseFileError("data must be bytes or a binary file object")
        return await self._upload_stream(
            target,
            file_attribute_name,
            stream,
            file_name=file_name,
            mime_type=mime_type,
            block_size=block_size,
            on_progress=on_progress,
        )

    # -- download ----------------------------------------------------------

    async def _initialize_download(
        self, target: EntityReference, file_attribute_name: str
    ) -> DownloadSession:
        data = await self._action(
            "InitializeFileBlocksDownload",
            {"Target": target.to_target(), "FileAttributeName": file_attribute_name},
            "initialize file download",
        )
        token = data.get("FileContinuationToken")
        if not token:
            raise DataverseError("InitializeFileBlocksDownload returned no FileContinuationToken")
        return DownloadSession(
            continuation_token=token,
            file_size_in_bytes=int(data.get("FileSizeInBytes") or 0),
            file_name=data.get("FileName"),
            is_chunking_supported=bool(data.get("IsChunkingSupported", True)),
        )

    async def _download_block(self, continuation_token: str, offset: int, length: int) -> bytes:
        data = await self._action(
            "DownloadBlock",
            {
                "Offset": offset,
                "BlockLength": length,
                "FileContinuationToken": continuation_token,
            },
            "download block",
        )
        return decode_block(data.get("Data"))

    async def _download_file(
        self,
        target: EntityReference,
        file_attribute_name: str,
        *,
        block_size: int = DEFAULT_BLOCK_SIZE,
        on_progress: ProgressCallback | None = None,
    ) -> bytes:
        block_size = validate_block_size(block_size)
        session = await self._initialize_download(target, file_attribute_name)
        total = session.file_size_in_bytes
        if not session.is_chunking_supported:
            # the whole file has to come back in a single DownloadBlock
            block_size = max(total, 1)

        content = bytearray()
        for offset, length in iter_download_ranges(total, block_size):
            block = await self._download_block(session.continuation_token, offset, length)
            content.extend(block)
            logger.debug("Downloaded %d bytes at offset %d", len(block), offset)
            await self._emit_progress(on_progress, len(content), total)

        if len(content) != total:
            raise DataverseError(
                f"Downloaded {len(content)} bytes but the service reported {total}"
            )
        return bytes(content)

    async def _download_to_path(
        self,
        target: EntityReference,
        file_attribute_name: str,
        destination: str | os.PathLike,
        *,
        overwrite: bool = False,
        create_parents: bool = True,
        block_size: int = DEFAULT_BLOCK_SIZE,
        on_progress: ProgressCallback | None = None,
    ) -> str:
        dst = os.fspath(destination)
        if not overwrite and os.path.exists(dst):
            raise DataverseFileError(f"{dst} exists; pass overwrite=True to replace it")

        content = await self._download_file(
            target, file_attribute_name, block_size=block_size, on_progress=on_progress
        )

        if create_parents:
            os.makedirs(os.path.dirname(dst) or ".", exist_ok=True)
        tmp = dst + ".part"
        try:
            with open(tmp, "wb") as f:
                f.write(content)
            os.replace(tmp, dst)
        except Exception:
            if os.path.exists(tmp):
                os.remove(tmp)
            raise
        return dst

    # -- delete ------------------------------------------------------------

    async def _delete_file(self, file_id: uuid.UUID | str) -> None:
        await self._action("DeleteFile", {"FileId": str(file_id)}, "delete file")
        logger.info("Deleted file %s", file_id)


class FilesClient(BaseFilesClient):
    _await_progress_callback = False

    def initialize_upload(
        self, target: EntityReference, file_attribute_name: str, file_name: str
    ) -> str:
        return iter_coroutine(self._initialize_upload(target, file_attribute_name, file_name))

    def upload_block(self, continuation_token: str, block_id: str, data: bytes) -> None:
        return iter_coroutine(self._upload_block(continuation_token, block_id, data))

    def commit_upload(
        self,
        continuation_token: str,
        block_ids: list[str],
        file_name: str,
        mime_type: str,
    ) -> dict[str, Any]:
        return iter_coroutine(
            self._commit_upload(continuation_token, block_ids, file_name, mime_type)
        )

    def upload_file(
        self,
        target: EntityReference,
        file_attribute_name: str,
        path: str | os.PathLike,
        *,
        mime_type: str | None = None,
        file_name: str | None = None,
        block_size: int = DEFAULT_BLOCK_SIZE,
        on_progress: ProgressCallback | None = None,
    ) -> UploadResult:
        return iter_coroutine(
            self._upload_file(
                target,
                file_attribute_name,
                path,
                mime_type=mime_type,
                file_name=file_name,
                block_size=block_size,
                on_progress=on_progress,
            )
        )

    def upload_bytes(
        self,
        target: EntityReference,
        file_attribute_name: str,
        data: bytes | bytearray | memoryview | BinaryIO,
        file_name: str,
        *,
        mime_type: str | None = None,
        block_size: int = DEFAULT_BLOCK_SIZE,
        on_progress: ProgressCallback | None = None,
    ) -> UploadResult:
        return iter_coroutine(
            self._upload_bytes(
                target,
                file_attribute_name,
                data,
                file_name,
                mime_type=mime_type,
                block_size=block_size,
                on_progress=on_progress,
            )
        )

    def initialize_download(
        self, target: EntityReference, file_attribute_name: str
    ) -> DownloadSession:
        return iter_coroutine(self._initialize_download(target, file_attribute_name))

    def download_block(self, continuation_token: str, offset: int, length: int) -> bytes:
        return iter_coroutine(self._download_block(continuation_token, offset, length))

    def download_file(
        self,
        target: EntityReference,
        file_attribute_name: str,
        *,
        block_size: int = DEFAULT_BLOCK_SIZE,
        on_progress: ProgressCallback | None = None,
    ) -> bytes:
        return iter_coroutine(
            self._download_file(
                target, file_attribute_name, block_size=block_size, on_progress=on_progress
            )
        )

    def download_to_path(
        self,
        target: EntityReference,
        file_attribute_name: str,
        destination: str | os.PathLike,
        *,
        overwrite: bool = False,
        create_parents: bool = True,
        block_size: int = DEFAULT_BLOCK_SIZE,
        on_progress: ProgressCallback | None = None,
    ) -> str:
        return iter_coroutine(
            self._download_to_path(
                target,
                file_attribute_name,
                destination,
                overwrite=overwrite,
                create_parents=create_parents,
                block_size=block_size,
                on_progress=on_progress,
            )
        )

    def delete_file(self, file_id: uuid.UUID | str) -> None:
        return iter_coroutine(self._delete_file(file_id))


class AsyncFilesClient(BaseFilesClient):
    async def initialize_upload(
        self, target: EntityReference, file_attribute_name: str, file_name: str
    ) -> str:
        return await self._initialize_upload(target, file_attribute_name, file_name)

    async def upload_block(self, continuation_token: str, block_id: str, data: bytes) -> None:
        return await self._upload_block(continuation_token, block_id, data)

    async def commit_upload(
        self,
        continuation_token: str,
        block_ids: list[str],
        file_name: str,
        mime_type: str,
    ) -> dict[str, Any]:
        return await self._commit_upload(continuation_token, block_ids, file_name, mime_type)

    async def upload_file(
        self,
        target: EntityReference,
        file_attribute_name: str,
        path: str | os.PathLike,
        *,
        mime_type: str | None = None,
        file_name: str | None = None,
        block_size: int = DEFAULT_BLOCK_SIZE,
        on_progress: ProgressCallback | None = None,
    ) -> UploadResult:
        return await self._upload_file(
            target,
            file_attribute_name,
            path,
            mime_type=mime_type,
            file_name=file_name,
            block_size=block_size,
            on_progress=on_progress,
        )

    async def upload_bytes(
        self,
        target: EntityReference,
        file_attribute_name: str,
        data: bytes | bytearray | memoryview | BinaryIO,
        file_name: str,
        *,
        mime_type: str | None = None,
        block_size: int = DEFAULT_BLOCK_SIZE,
        on_progress: ProgressCallback | None = None,
    ) -> UploadResult:
        return await self._upload_bytes(
            target,
            file_attribute_name,
            data,
            file_name,
            mime_type=mime_type,
            block_size=block_size,
            on_progress=on_progress,
        )

    async def initialize_download(
        self, target: EntityReference, file_attribute_name: str
    ) -> DownloadSession:
        return await self._initialize_download(target, file_attribute_name)

    async def download_block(self, continuation_token: str, offset: int, length: int) -> bytes:
        return await self._download_block(continuation_token, offset, length)

    async def download_file(
        self,
        target: EntityReference,
        file_attribute_name: str,
        *,
        block_size: int = DEFAULT_BLOCK_SIZE,
        on_progress: ProgressCallback | None = None,
    ) -> bytes:
        return await self._download_file(
            target, file_attribute_name, block_size=block_size, on_progress=on_progress
        )

    async def download_to_path(
        self,
        target: EntityReference,
        file_attribute_name: str,
        destination: str | os.PathLike,
        *,
        overwrite: bool = False,
        create_parents: bool = True,
        block_size: int = DEFAULT_BLOCK_SIZE,
        on_progress: ProgressCallback | None = None,
    ) -> str:
        return await self._download_to_path(
            target,
            file_attribute_name,
            destination,
            overwrite=overwrite,
            create_parents=create_parents,
            block_size=block_size,
            on_progress=on_progress,
        )

    async def delete_file(self, file_id: uuid.UUID | str) -> None:
        return await self._delete_file(file_id)


__all__ = ["BaseFilesClient", "FilesClient", "AsyncFilesClient"]
