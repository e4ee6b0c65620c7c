"""Pytest configuration and shared fakes for AuditMatch backend tests."""
import asyncio
import json
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

import pytest

# Ensure the backend package is importable
backend_root = Path(__file__).resolve().parent.parent
if str(backend_root) not in sys.path:
    sys.path.insert(0, str(backend_root))

from auditmatch.exceptions import NotFoundError  # noqa: E402
from auditmatch.llm_gateway.dispatcher import RequestDispatcher  # noqa: E402
from auditmatch.llm_gateway.gateway import LLMGateway  # noqa: E402
from auditmatch.llm_gateway.providers.base import BaseLLMProvider  # noqa: E402
from auditmatch.schemas.store import FileEntry, FileMetadata, FolderEntry  # noqa: E402
from auditmatch.services.content_service import ContentService  # noqa: E402
from auditmatch.storage.base import BaseDocumentStore  # noqa: E402

Reply = Union[str, Exception]


class FakeProvider(BaseLLMProvider):
    """Provider answering from a handler ``prompt -> str | Exception``."""

    def __init__(self, handler: Callable[[str], Reply], delay: float = 0.0):
        super().__init__(api_key="test", model="fake-model")
        self.handler = handler
        self.delay = delay
        self.prompts: List[str] = []
        self.active = 0
        self.max_active = 0

    async def chat(self, messages, temperature=None, max_tokens=None):
        prompt = messages[-1]["content"]
        self.prompts.append(prompt)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            reply = self.handler(prompt)
        finally:
            self.active -= 1
        if isinstance(reply, Exception):
            raise reply
        return {"content": reply, "usage": {"total_tokens": 1}, "model": self.model, "finish_reason": "stop"}

    def get_provider_name(self) -> str:
        return "fake"


class FakeDocumentStore(BaseDocumentStore):
    """In-memory store: ``{subfolder: {file name: bytes}}``; ids are ``subfolder/name``."""

    def __init__(self, folders: Dict[str, Dict[str, bytes]], delay: float = 0.0):
        self.folders = folders
        self.delay = delay
        self.reachable = True
        self.failing_ids = set()
        self.calls: Dict[str, int] = {"list_folders": 0, "list_files": 0, "get_bytes": 0, "get_metadata": 0}
        self.downloaded: List[str] = []
        self.active_downloads = 0
        self.max_active_downloads = 0

    async def list_folders(self, parent_id: str) -> List[FolderEntry]:
        self.calls["list_folders"] += 1
        if not self.reachable:
            raise ConnectionError("store unreachable")
        return [FolderEntry(id=name, name=name) for name in sorted(self.folders)]

    async def list_files(self, folder_id: str) -> List[FileEntry]:
        self.calls["list_files"] += 1
        if folder_id not in self.folders:
            raise NotFoundError(f"Folder not found: {folder_id}")
        return [
            FileEntry(id=f"{folder_id}/{name}", name=name, size=len(data))
            for name, data in sorted(self.folders[folder_id].items())
        ]

    def _lookup(self, file_id: str) -> bytes:
        folder, _, name = file_id.partition("/")
        try:
            return self.folders[folder][name]
        except KeyError:
            raise NotFoundError(f"File not found: {file_id}") from None

    async def get_bytes(self, file_id: str) -> bytes:
        self.calls["get_bytes"] += 1
        self.active_downloads += 1
        self.max_active_downloads = max(self.max_active_downloads, self.active_downloads)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if file_id in self.failing_ids:
                raise ConnectionError(f"download failed: {file_id}")
            data = self._lookup(file_id)
        finally:
            self.active_downloads -= 1
        self.downloaded.append(file_id)
        return data

    async def get_metadata(self, file_id: str) -> FileMetadata:
        self.calls["get_metadata"] += 1
        data = self._lookup(file_id)
        return FileMetadata(id=file_id, name=file_id.rsplit("/", 1)[-1], size=len(data), mime_type="application/pdf")

    def get_store_name(self) -> str:
        return "fake"


async def decode_text(data: bytes) -> str:
    return data.decode("utf-8")


def make_dispatcher(handler: Callable[[str], Reply], delay: float = 0.0, **kwargs) -> RequestDispatcher:
    """Dispatcher over a fake provider with zero backoff unless overridden."""
    kwargs.setdefault("base_delay_ms", 0)
    return RequestDispatcher(LLMGateway(FakeProvider(handler, delay=delay)), **kwargs)


def make_content_service(store: BaseDocumentStore, **kwargs) -> ContentService:
    kwargs.setdefault("existence_pause_ms", 0)
    kwargs.setdefault("text_extractor", decode_text)
    return ContentService(store, **kwargs)


def judgment_json(
    has_answer: bool = True,
    confidence: str = "high",
    answer: str = "yes",
    evidence: str = "Policy text",
    page_reference: Optional[str] = None,
) -> str:
    return json.dumps(
        {
            "hasAnswer": has_answer,
            "confidence": confidence,
            "answer": answer,
            "evidence": evidence,
            "pageReference": page_reference,
            "explanation": "Because the policy says so",
        }
    )


@pytest.fixture
def fake_store():
    return FakeDocumentStore(
        {
            "Privacy": {
                "HIPAA Privacy Policy.pdf": b"Members' protected health information is encrypted at rest.",
                "Breach Notification.pdf": b"Breaches are reported within 60 days of discovery.",
            },
            "Claims": {
                "Claims Appeals.pdf": b"Appeals are resolved within 30 calendar days.",
            },
        }
    )


@pytest.fixture
def content_service(fake_store):
    return make_content_service(fake_store)
