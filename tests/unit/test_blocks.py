"""Unit tests for block ids, block iteration and download cursors."""

import base64
import io

import pytest

from dataverse_files._blocks import (
    DEFAULT_BLOCK_SIZE,
    MAX_BLOCK_SIZE,
    decode_block,
    encode_block,
    guess_mime_type,
    iter_blocks,
    iter_download_ranges,
    make_block_id,
    validate_block_size,
)


class TestBlockIds:
    def test_first_block_id(self):
        assert make_block_id(1) == base64.b64encode(b"0000000000000001").decode("ascii")

    def test_ids_share_one_length(self):
        ids = {make_block_id(n) for n in (1, 9, 10, 999, 123456)}
        assert len({len(i) for i in ids}) == 1
        assert len(ids) == 5

    def test_ids_decode_to_padded_numbers(self):
        assert base64.b64decode(make_block_id(42)) == b"0000000000000042"

    def test_zero_is_rejected(self):
        with pytest.raises(ValueError, match="start at 1"):
            make_block_id(0)


class TestValidateBlockSize:
    def test_default_is_four_mebibytes(self):
        assert DEFAULT_BLOCK_SIZE == 4 * 1024 * 1024
        assert validate_block_size(DEFAULT_BLOCK_SIZE) == DEFAULT_BLOCK_SIZE

    @pytest.mark.parametrize("value", [0, -1, MAX_BLOCK_SIZE + 1])
    def test_out_of_range(self, value):
        with pytest.raises(ValueError, match="between 1 and"):
            validate_block_size(value)

    @pytest.mark.parametrize("value", [True, 1.5, "1024", None])
    def test_non_integers(self, value):
        with pytest.raises(ValueError, match="must be an integer"):
            validate_block_size(value)


class TestIterBlocks:
    def test_splits_with_short_last_block(self):
        blocks = list(iter_blocks(io.BytesIO(b"abcdefghij"), 4))

        assert [data for _, data in blocks] == [b"abcd", b"efgh", b"ij"]
        assert [block_id for block_id, _ in blocks] == [
            make_block_id(1),
            make_block_id(2),
            make_block_id(3),
        ]

    def test_exact_multiple(self):
        blocks = list(iter_blocks(io.BytesIO(b"abcdefgh"), 4))
        assert [data for _, data in blocks] == [b"abcd", b"efgh"]

    def test_empty_stream_yields_nothing(self):
        assert list(iter_blocks(io.BytesIO(b""), 4)) == []


class TestIterDownloadRanges:
    def test_cursor_walks_the_file(self):
        assert list(iter_download_ranges(10, 4)) == [(0, 4), (4, 4), (8, 2)]

    def test_single_block(self):
        assert list(iter_download_ranges(3, 4)) == [(0, 3)]

    def test_zero_bytes(self):
        assert list(iter_download_ranges(0, 4)) == []


class TestEncoding:
    def test_encode_decode(self):
        assert encode_block(b"hello") == "aGVsbG8="
        assert decode_block("aGVsbG8=") == b"hello"

    @pytest.mark.parametrize("value", [None, ""])
    def test_missing_data_decodes_to_empty(self, value):
        assert decode_block(value) == b""


class TestGuessMimeType:
    def test_known_extension(self):
        assert guess_mime_type("report.pdf") == "application/pdf"

    def test_unknown_extension(self):
        assert guess_mime_type("data.unknownext") == "application/octet-stream"
