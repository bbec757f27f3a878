"""Fixtures for integration tests using respx mocking."""

import base64
import json
import uuid
from dataclasses import dataclass, field

import httpx
import pytest
import respx

ORG_URL = "https://contoso.crm.dynamics.com"
API_BASE = f"{ORG_URL}/api/data/v9.2"


def odata_error(status: int, code: str, message: str) -> httpx.Response:
    return httpx.Response(status, json={"error": {"code": code, "message": message}})


@dataclass
class StoredFile:
    file_id: str
    file_name: str
    mime_type: str
    content: bytes


@dataclass
class PendingUpload:
    key: tuple[str, str, str]
    file_name: str
    blocks: dict[str, bytes] = field(default_factory=dict)


class FakeFileService:
    """In-memory stand-in for the file column actions of the Web API.

    Every request is recorded in ``actions`` as ``(name, body)`` so tests can
    assert on the exact sequence and payloads that went over the wire.
    """

    def __init__(self) -> None:
        self.files: dict[tuple[str, str, str], StoredFile] = {}
        self.uploads: dict[str, PendingUpload] = {}
        self.downloads: dict[str, tuple[str, str, str]] = {}
        self.actions: list[tuple[str, dict]] = []
        self.is_chunking_supported = True
        self.router: respx.MockRouter | None = None
        self.reported_size: int | None = None
        self.failures: dict[str, httpx.Response] = {}
        self._counter = 0

    def _next_token(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}-token-{self._counter}"

    @staticmethod
    def _key(target: dict, attribute: str) -> tuple[str, str, str]:
        logical_name = target["@odata.type"].rsplit(".", 1)[-1]
        return logical_name, target[f"{logical_name}id"], attribute

    def _record(self, name: str, request: httpx.Request) -> dict:
        body = json.loads(request.content)
        self.actions.append((name, body))
        return body

    def action_names(self) -> list[str]:
        return [name for name, _ in self.actions]

    def bodies(self, name: str) -> list[dict]:
        return [body for action, body in self.actions if action == name]

    def put_file(self, target: dict, attribute: str, content: bytes, file_name: str) -> StoredFile:
        stored = StoredFile(str(uuid.uuid4()), file_name, "application/octet-stream", content)
        self.files[self._key(target, attribute)] = stored
        return stored

    # -- handlers ----------------------------------------------------------

    def initialize_upload(self, request: httpx.Request) -> httpx.Response:
        body = self._record("InitializeFileBlocksUpload", request)
        token = self._next_token("upload")
        self.uploads[token] = PendingUpload(
            key=self._key(body["Target"], body["FileAttributeName"]),
            file_name=body["FileName"],
        )
        return httpx.Response(200, json={"FileContinuationToken": token})

    def upload_block(self, request: httpx.Request) -> httpx.Response:
        body = self._record("UploadBlock", request)
        pending = self.uploads.get(body["FileContinuationToken"])
        if pending is None:
            return odata_error(400, "0x80090001", "Invalid FileContinuationToken")
        pending.blocks[body["BlockId"]] = base64.b64decode(body["BlockData"])
        return httpx.Response(204)

    def commit_upload(self, request: httpx.Request) -> httpx.Response:
        body = self._record("CommitFileBlocksUpload", request)
        pending = self.uploads.pop(body["FileContinuationToken"], None)
        if pending is None:
            return odata_error(400, "0x80090001", "Invalid FileContinuationToken")
        content = b"".join(pending.blocks[block_id] for block_id in body["BlockList"])
        stored = StoredFile(str(uuid.uuid4()), body["FileName"], body["MimeType"], content)
        self.files[pending.key] = stored
        return httpx.Response(
            200, json={"FileId": stored.file_id, "FileSizeInBytes": len(content)}
        )

    def initialize_download(self, request: httpx.Request) -> httpx.Response:
        body = self._record("InitializeFileBlocksDownload", request)
        key = self._key(body["Target"], body["FileAttributeName"])
        stored = self.files.get(key)
        if stored is None:
            return odata_error(404, "0x80060891", "No file attachment found for attribute")
        token = self._next_token("download")
        self.downloads[token] = key
        return httpx.Response(
            200,
            json={
                "FileContinuationToken": token,
                "FileSizeInBytes": (
                    len(stored.content) if self.reported_size is None else self.reported_size
                ),
                "FileName": stored.file_name,
                "IsChunkingSupported": self.is_chunking_supported,
            },
        )

    def download_block(self, request: httpx.Request) -> httpx.Response:
        body = self._record("DownloadBlock", request)
        key = self.downloads.get(body["FileContinuationToken"])
        if key is None:
            return odata_error(400, "0x80090001", "Invalid FileContinuationToken")
        content = self.files[key].content
        start = body["Offset"]
        chunk = content[start : start + body["BlockLength"]]
        return httpx.Response(200, json={"Data": base64.b64encode(chunk).decode("ascii")})

    def delete_file(self, request: httpx.Request) -> httpx.Response:
        body = self._record("DeleteFile", request)
        for key, stored in list(self.files.items()):
            if stored.file_id == body["FileId"]:
                del self.files[key]
                return httpx.Response(204)
        return odata_error(404, "0x80040217", f"File With Id = {body['FileId']} Does Not Exist")

    def _side_effect(self, name: str, handler):
        """Answer with ``failures[name]`` when set, otherwise run ``handler``."""

        def side_effect(request: httpx.Request) -> httpx.Response:
            failure = self.failures.get(name)
            if failure is None:
                return handler(request)
            self._record(name, request)
            return httpx.Response(
                failure.status_code, headers=failure.headers, content=failure.content
            )

        return side_effect

    def install(self, router: respx.MockRouter) -> None:
        handlers = {
            "InitializeFileBlocksUpload": self.initialize_upload,
            "UploadBlock": self.upload_block,
            "CommitFileBlocksUpload": self.commit_upload,
            "InitializeFileBlocksDownload": self.initialize_download,
            "DownloadBlock": self.download_block,
            "DeleteFile": self.delete_file,
        }
        for name, handler in handlers.items():
            router.post(f"{API_BASE}/{name}").mock(side_effect=self._side_effect(name, handler))


@pytest.fixture
def file_service(mock_env_clear):
    """Fake file column service mounted on a respx router."""
    service = FakeFileService()
    with respx.mock(assert_all_called=False) as router:
        service.install(router)
        service.router = router
        yield service
