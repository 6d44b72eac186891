"""Long-term memory store backed by Mem0.

The store is usable with or without a Mem0 account:
- Hosted: ``mem0_api_key`` is set. Calls go to Mem0's cloud platform.
- Disabled: no key. ``available()`` is False, searches return empty
  results and writes are no-ops. Chat keeps working without memories.

Every Mem0 call is best-effort. Failures are logged and turned into empty
or falsy results; nothing raises out of this module.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from mnemochat.memory.models import MemoryEntry, MemoryMetadata, MemoryType

if TYPE_CHECKING:
    from mnemochat.config import Settings

logger = logging.getLogger(__name__)


@runtime_checkable
class MemoryService(Protocol):
    """Capability the context assembler needs from a memory backend."""

    def available(self) -> bool:
        """Whether calls are currently worth attempting."""
        ...

    async def search(
        self,
        query: str,
        user_id: str,
        *,
        limit: int | None = None,
        categories: list[MemoryType] | None = None,
        min_relevance: float | None = None,
    ) -> list[MemoryEntry]:
        """Return memories relevant to ``query``, most relevant first."""
        ...

    async def add(self, entry: MemoryEntry) -> str | None:
        """Store a memory. Returns its id, or None on failure."""
        ...

    async def get_all(self, user_id: str, limit: int = 100) -> list[MemoryEntry]:
        """Return every memory for a user."""
        ...

    async def delete(self, memory_id: str) -> bool:
        """Delete a memory. Returns True on success."""
        ...


@dataclass
class MemoryConfig:
    """Explicit configuration for :class:`MemoryStore`."""

    api_key: str = ""
    default_limit: int = 10
    retry_after_seconds: float = 60.0

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> MemoryConfig:
        if settings is None:
            from mnemochat.config import settings
        return cls(
            api_key=settings.mem0_api_key,
            default_limit=settings.memory_max_context_memories,
            retry_after_seconds=settings.memory_retry_seconds,
        )


def simplify_user_id(user_id: str) -> str:
    """Shorten an auth-provider user id to the form stored in Mem0."""
    return f"user_{user_id[-8:]}"


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif not value:
        return datetime.now(UTC)
    else:
        try:
            parsed = datetime.fromisoformat(str(value))
        except ValueError:
            logger.warning("Invalid timestamp %r, using current time", value)
            return datetime.now(UTC)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _serialize_metadata(meta: MemoryMetadata) -> dict[str, Any]:
    return {
        "type": meta.type.value,
        "chat_id": meta.chat_id,
        "timestamp": meta.timestamp.isoformat(),
        "confidence": meta.confidence,
        "source": meta.source,
        "tags": ",".join(meta.tags),
        "expires_at": meta.expires_at.isoformat() if meta.expires_at else None,
    }


def _parse_type(value: Any) -> MemoryType:
    try:
        return MemoryType(value)
    except ValueError:
        return MemoryType.CONVERSATION_CONTEXT


class MemoryStore:
    """Mem0-backed implementation of :class:`MemoryService`."""

    def __init__(self, config: MemoryConfig | None = None, client: Any = None) -> None:
        self.config = config or MemoryConfig()
        self._client: Any = client
        self._reachable = True
        self._retry_at = 0.0
        if self._client is None:
            self._init_backend()

    def _init_backend(self) -> None:
        if not self.config.api_key:
            logger.warning("Memory store disabled: set MEM0_API_KEY to enable")
            return
        try:
            from mem0 import AsyncMemoryClient

            self._client = AsyncMemoryClient(api_key=self.config.api_key)
            logger.info("Memory store: hosted mode (Mem0 cloud)")
        except Exception:
            logger.exception("Failed to init Mem0 client")

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> MemoryStore:
        return cls(MemoryConfig.from_settings(settings))

    # -- Availability --------------------------------------------------------

    def available(self) -> bool:
        if self._client is None:
            return False
        return self._reachable or time.monotonic() >= self._retry_at

    def _mark_reachable(self) -> None:
        if not self._reachable:
            logger.info("Memory store reachable again")
        self._reachable = True

    def _mark_unreachable(self) -> None:
        self._reachable = False
        self._retry_at = time.monotonic() + self.config.retry_after_seconds

    # -- Write ---------------------------------------------------------------

    async def add(self, entry: MemoryEntry) -> str | None:
        """Store a memory and return the id Mem0 assigned, or None."""
        if not self.available():
            return None

        meta = entry.metadata
        try:
            result = await self._client.add(
                [{"role": "user", "content": entry.content}],
                user_id=simplify_user_id(entry.user_id),
                metadata=_serialize_metadata(meta),
            )
        except Exception:
            logger.exception("Failed to store memory")
            self._mark_unreachable()
            return None

        self._mark_reachable()
        items = self._items(result)
        memory_id = items[0].get("id") if items and isinstance(items[0], dict) else None
        logger.debug("Stored memory %s [%s]: %s", memory_id, meta.type, entry.content[:80])
        return memory_id

    # -- Read ----------------------------------------------------------------

    async def search(
        self,
        query: str,
        user_id: str,
        *,
        limit: int | None = None,
        categories: list[MemoryType] | None = None,
        min_relevance: float | None = None,
    ) -> list[MemoryEntry]:
        """Search for memories relevant to ``query``.

        Args:
            query: Natural-language search query.
            user_id: Owner of the memories.
            limit: Max results (defaults to ``default_limit``).
            categories: Restrict to these memory types.
            min_relevance: Drop results scoring below this.

        Returns:
            MemoryEntry list in the order Mem0 ranked them.
        """
        if not self.available():
            return []

        simple_id = simplify_user_id(user_id)
        filters: dict[str, Any] = {"user_id": simple_id}
        if categories:
            filters["categories"] = {"in": [c.value for c in categories]}

        try:
            raw = await self._client.search(
                query,
                user_id=simple_id,
                limit=limit or self.config.default_limit,
                filters=filters,
            )
        except Exception:
            logger.exception("Memory search failed")
            self._mark_unreachable()
            return []

        self._mark_reachable()
        entries = self._normalize(raw, user_id)
        if min_relevance is not None:
            entries = [e for e in entries if e.relevance_score >= min_relevance]
        return entries

    async def get_all(self, user_id: str, limit: int = 100) -> list[MemoryEntry]:
        """Retrieve all memories for a user (for stats and cleanup)."""
        if not self.available():
            return []

        try:
            raw = await self._client.get_all(user_id=simplify_user_id(user_id), limit=limit)
        except Exception:
            logger.exception("Failed to fetch all memories")
            self._mark_unreachable()
            return []

        self._mark_reachable()
        return self._normalize(raw, user_id)

    # -- Update / Delete -----------------------------------------------------

    async def update(
        self,
        memory_id: str,
        content: str,
        metadata: MemoryMetadata | None = None,
    ) -> bool:
        """Replace a memory's text, and its metadata when given. Returns True on success."""
        if not self.available():
            return False

        try:
            await self._client.update(
                memory_id,
                text=content,
                metadata=_serialize_metadata(metadata) if metadata else None,
            )
        except Exception:
            logger.exception("Failed to update memory %s", memory_id)
            self._mark_unreachable()
            return False

        self._mark_reachable()
        logger.info("Updated memory: %s", memory_id)
        return True

    async def delete(self, memory_id: str) -> bool:
        """Delete a memory by ID. Returns True if successful."""
        if not self.available():
            return False

        try:
            await self._client.delete(memory_id)
        except Exception:
            logger.exception("Failed to delete memory %s", memory_id)
            self._mark_unreachable()
            return False

        self._mark_reachable()
        logger.info("Deleted memory: %s", memory_id)
        return True

    # -- Helpers -------------------------------------------------------------

    @staticmethod
    def _items(raw: Any) -> list[Any]:
        if isinstance(raw, dict):
            raw = raw.get("results")
        return raw if isinstance(raw, list) else []

    @classmethod
    def _normalize(cls, raw: Any, user_id: str) -> list[MemoryEntry]:
        """Normalize Mem0 results (hosted dict or plain list) into MemoryEntry list.

        Items that cannot be read as a memory are logged and skipped.
        """
        entries = []
        for item in cls._items(raw):
            try:
                entries.append(cls._to_entry(item, user_id))
            except (AttributeError, TypeError, ValueError):
                logger.warning("Skipping malformed memory item: %r", item)
        return entries

    @staticmethod
    def _to_entry(item: dict[str, Any], user_id: str) -> MemoryEntry:
        meta = item.get("metadata") or {}
        categories = item.get("categories") or []
        content = item.get("memory") or (item.get("data") or {}).get("memory") or ""
        score = item.get("score")
        confidence = meta.get("confidence")
        expires_at = meta.get("expires_at")
        return MemoryEntry(
            id=item.get("id"),
            content=content,
            user_id=user_id,
            relevance_score=float(score) if score is not None else 1.0,
            metadata=MemoryMetadata(
                type=_parse_type(meta.get("type") or (categories[0] if categories else "")),
                chat_id=meta.get("chat_id"),
                timestamp=_parse_timestamp(item.get("created_at") or meta.get("timestamp")),
                confidence=float(confidence) if confidence is not None else 0.8,
                source=meta.get("source") or "mem0",
                tags=list(categories),
                expires_at=_parse_timestamp(expires_at) if expires_at else None,
            ),
        )
