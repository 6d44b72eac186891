"""Shared test fixtures."""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import pytest

from mnemochat.chat.models import Attachment, Turn
from mnemochat.memory.models import MemoryEntry, MemoryMetadata, MemoryType


class FakeMemoryService:
    """In-memory stand-in for the Mem0 store.

    Records every call in ``events`` so tests can assert ordering.
    """

    def __init__(self, memories: list[MemoryEntry] | None = None, available: bool = True) -> None:
        self.memories = list(memories or [])
        self.is_available = available
        self.added: list[MemoryEntry] = []
        self.deleted: list[str] = []
        self.events: list[tuple[str, Any]] = []

    def available(self) -> bool:
        return self.is_available

    async def search(
        self,
        query: str,
        user_id: str,
        *,
        limit: int | None = None,
        categories: list[MemoryType] | None = None,
        min_relevance: float | None = None,
    ) -> list[MemoryEntry]:
        self.events.append(("search", query))
        return list(self.memories)

    async def add(self, entry: MemoryEntry) -> str | None:
        self.events.append(("add", entry.content))
        self.added.append(entry)
        return f"mem_{len(self.added)}"

    async def get_all(self, user_id: str, limit: int = 100) -> list[MemoryEntry]:
        return list(self.memories)

    async def delete(self, memory_id: str) -> bool:
        self.deleted.append(memory_id)
        return True


@pytest.fixture
def memory_service() -> FakeMemoryService:
    return FakeMemoryService()


@pytest.fixture
def make_turn() -> Callable[..., Turn]:
    """Factory for turns with sequential ids."""
    counter = 0

    def _make(
        content: str = "",
        role: str = "user",
        attachments: list[Attachment] | None = None,
    ) -> Turn:
        nonlocal counter
        counter += 1
        return Turn(
            id=f"turn_{counter}",
            role=role,
            content=content,
            timestamp=datetime(2024, 1, 1, tzinfo=UTC),
            attachments=attachments or [],
        )

    return _make


@pytest.fixture
def make_memory() -> Callable[..., MemoryEntry]:
    counter = 0

    def _make(
        content: str,
        memory_type: MemoryType = MemoryType.USER_PREFERENCE,
        score: float = 1.0,
        chat_id: str | None = None,
        **metadata: Any,
    ) -> MemoryEntry:
        nonlocal counter
        counter += 1
        return MemoryEntry(
            id=f"mem_{counter}",
            content=content,
            user_id="user_123",
            relevance_score=score,
            metadata=MemoryMetadata(type=memory_type, chat_id=chat_id, **metadata),
        )

    return _make


def image(url: str = "https://x/y.png", name: str = "y.png") -> Attachment:
    return Attachment(id=f"att_{name}", name=name, size=1024, mime_type="image/png", url=url, type="image")


def document(name: str = "report.pdf") -> Attachment:
    return Attachment(
        id=f"att_{name}",
        name=name,
        size=2048,
        mime_type="application/pdf",
        url=f"https://files/{name}",
        type="file",
    )


@pytest.fixture
def image_attachment() -> Callable[..., Attachment]:
    return image


@pytest.fixture
def file_attachment() -> Callable[..., Attachment]:
    return document
