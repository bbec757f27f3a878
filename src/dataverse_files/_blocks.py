from __future__ import annotations

import base64
import mimetypes
from collections.abc import Iterator
from typing import BinaryIO

DEFAULT_BLOCK_SIZE = 4 * 1024 * 1024  # 4 MiB
MAX_BLOCK_SIZE = 4 * 1024 * 1024  # service limit per UploadBlock / DownloadBlock
BLOCK_ID_WIDTH = 16
DEFAULT_MIME_TYPE = "application/octet-stream"


def validate_block_size(block_size: int) -> int:
    if isinstance(block_size, bool) or not isinstance(block_size, int):
        raise ValueError("block_size must be an integer")
    if block_size < 1 or block_size > MAX_BLOCK_SIZE:
        raise ValueError(f"block_size must be between 1 and {MAX_BLOCK_SIZE} bytes")
    return block_size


def make_block_id(block_number: int) -> str:
    """Base64 of the zero-padded decimal block number.

    Every id has the same length, which the service requires within one upload.
    """
    if block_number < 1:
        raise ValueError("block numbers start at 1")
    raw = str(block_number).zfill(BLOCK_ID_WIDTH).encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


def iter_blocks(stream: BinaryIO, block_size: int) -> Iterator[tuple[str, bytes]]:
    """Yield ``(block_id, data)`` pairs until the stream is exhausted.

    The last block may be shorter than ``block_size``.
    """
    block_number = 0
    while True:
        data = stream.read(block_size)
        if not data:
            return
        block_number += 1
        yield make_block_id(block_number), bytes(data)


def iter_download_ranges(file_size: int, block_size: int) -> Iterator[tuple[int, int]]:
    """Yield ``(offset, length)`` cursors covering ``file_size`` bytes."""
    offset = 0
    while offset < file_size:
        length = min(block_size, file_size - offset)
        yield offset, length
        offset += length


def guess_mime_type(file_name: str) -> str:
    mime_type, _ = mimetypes.guess_type(file_name, strict=False)
    return mime_type or DEFAULT_MIME_TYPE


def encode_block(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def decode_block(data: str | None) -> bytes:
    if not data:
        return b""
    return base64.b64decode(data)
