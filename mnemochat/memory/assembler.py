"""Blend long-term memories into the conversation context.

For each request the assembler fits the conversation to the token budget,
looks up memories relevant to the latest turn, and injects them as a
system message if (and only if) the whole memory block still fits.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from mnemochat.chat.models import Turn
from mnemochat.context.formatter import format_window, insert_system_message
from mnemochat.context.tokens import calculate_total_tokens, estimate_tokens
from mnemochat.context.window import ContextOptions, fit
from mnemochat.memory.models import MEMORY_TYPE_LABELS, MemoryEntry, MemoryType
from mnemochat.memory.patterns import extract_memories_from_message
from mnemochat.memory.store import MemoryService

if TYPE_CHECKING:
    from mnemochat.config import Settings

logger = logging.getLogger(__name__)

MEMORY_PREFIX = "Relevant memories and context: "
DEFAULT_MEMORY_LABEL = "General Memory"


@dataclass
class EnhancedContextOptions(ContextOptions):
    """Context budget plus memory-augmentation switches."""

    include_memories: bool = True
    max_memories: int = 10
    min_relevance: float | None = 0.7
    memory_weight: float = 0.3

    @classmethod
    def from_settings(cls, settings: Settings, **overrides) -> EnhancedContextOptions:
        values = {
            "include_memories": settings.memory_enhance_context,
            "max_memories": settings.memory_max_context_memories,
            "min_relevance": settings.memory_min_relevance,
            "memory_weight": settings.memory_context_weight,
            **overrides,
        }
        return super().from_settings(settings, **values)


@dataclass
class EnhancedContextWindow:
    messages: list[Turn] = field(default_factory=list)
    memories: list[MemoryEntry] = field(default_factory=list)
    total_tokens: int = 0
    memory_tokens: int = 0
    summary: str | None = None
    memory_context: str | None = None


@dataclass
class MemoryStats:
    total_memories: int = 0
    memories_by_type: dict[MemoryType, int] = field(default_factory=dict)
    oldest_memory: datetime | None = None
    newest_memory: datetime | None = None


def build_memory_context(memories: list[MemoryEntry]) -> str:
    """Render memories as one line per category, most relevant first.

    Categories appear in the order they are first seen.
    """
    if not memories:
        return ""

    groups: dict[MemoryType, list[MemoryEntry]] = {}
    for memory in memories:
        groups.setdefault(memory.metadata.type, []).append(memory)

    lines = []
    for memory_type, entries in groups.items():
        label = MEMORY_TYPE_LABELS.get(memory_type, DEFAULT_MEMORY_LABEL)
        ranked = sorted(entries, key=lambda m: m.relevance_score, reverse=True)
        lines.append(f"{label}: {'; '.join(m.content for m in ranked)}")
    return "\n".join(lines)


class ContextAssembler:
    """Builds memory-aware model payloads on top of a :class:`MemoryService`.

    Usage:
        assembler = ContextAssembler(MemoryStore.from_settings())
        messages = await assembler.prepare_with_memory(
            turns, system_prompt, user_id="user_123", chat_id="chat_1"
        )
    """

    def __init__(
        self,
        store: MemoryService,
        options: EnhancedContextOptions | None = None,
        *,
        memory_timeout: float | None = None,
        extraction_enabled: bool = True,
        min_extraction_length: int = 20,
        auto_cleanup: bool = True,
    ) -> None:
        self.store = store
        self.options = options or EnhancedContextOptions()
        self.memory_timeout = memory_timeout
        self.extraction_enabled = extraction_enabled
        self.min_extraction_length = min_extraction_length
        self.auto_cleanup = auto_cleanup

    @classmethod
    def from_settings(cls, store: MemoryService, settings: Settings | None = None) -> ContextAssembler:
        if settings is None:
            from mnemochat.config import settings
        return cls(
            store,
            EnhancedContextOptions.from_settings(settings),
            memory_timeout=settings.memory_timeout_seconds,
            extraction_enabled=settings.memory_extraction_enabled,
            min_extraction_length=settings.memory_min_message_length,
            auto_cleanup=settings.memory_auto_cleanup,
        )

    def is_memory_available(self) -> bool:
        try:
            return bool(self.store.available())
        except Exception:
            logger.exception("Memory availability check failed")
            return False

    # -- Context assembly ----------------------------------------------------

    async def _fetch_memories(
        self,
        query: str,
        user_id: str,
        chat_id: str | None,
        opts: EnhancedContextOptions,
    ) -> list[MemoryEntry]:
        """Search the store, putting memories from the same chat first."""
        try:
            async with asyncio.timeout(self.memory_timeout):
                memories = await self.store.search(
                    query,
                    user_id,
                    limit=opts.max_memories,
                    min_relevance=opts.min_relevance,
                )
        except TimeoutError:
            logger.warning("Memory search timed out after %ss", self.memory_timeout)
            return []
        except Exception:
            logger.exception("Memory search failed")
            return []

        memories = list(memories)
        if chat_id:
            memories.sort(key=lambda m: (m.metadata.chat_id != chat_id, -m.relevance_score))
        return memories

    async def assemble(
        self,
        turns: list[Turn],
        user_id: str,
        chat_id: str | None = None,
        options: EnhancedContextOptions | None = None,
    ) -> EnhancedContextWindow:
        """Compute the memory block for ``turns`` and whether it fits.

        The memory block is all-or-nothing: if base tokens plus memory
        tokens exceed ``max_tokens - reserve_tokens_for_response`` no
        memories are attached.
        """
        opts = options or self.options
        base_tokens = calculate_total_tokens(turns)
        window = EnhancedContextWindow(messages=list(turns), total_tokens=base_tokens)

        if not opts.include_memories or not turns or not self.is_memory_available():
            return window

        query = turns[-1].content
        memories = await self._fetch_memories(query, user_id, chat_id, opts)
        memories = memories[: opts.max_memories]
        if not memories:
            return window

        memory_context = build_memory_context(memories)
        memory_tokens = estimate_tokens(memory_context)
        if base_tokens + memory_tokens > opts.available_tokens:
            logger.info(
                "Dropping %d memories (%d tokens): base %d tokens leaves no room in %d",
                len(memories),
                memory_tokens,
                base_tokens,
                opts.available_tokens,
            )
            return window

        window.memories = memories
        window.memory_context = memory_context
        window.memory_tokens = memory_tokens
        window.total_tokens = base_tokens + memory_tokens
        return window

    async def prepare_with_memory(
        self,
        turns: list[Turn],
        system_prompt: str | None = None,
        options: EnhancedContextOptions | None = None,
        *,
        user_id: str,
        chat_id: str | None = None,
    ) -> list[dict[str, Any]]:
        """Fit, format, and memory-augment ``turns`` for the model endpoint."""
        opts = options or self.options
        window = fit(turns, opts)
        enhanced = await self.assemble(turns, user_id, chat_id, opts)

        messages = format_window(window, system_prompt)
        if enhanced.memory_context:
            insert_system_message(messages, f"{MEMORY_PREFIX}{enhanced.memory_context}")
        return messages

    to_api_messages = prepare_with_memory

    # -- Extraction ----------------------------------------------------------

    async def process_new_message(
        self,
        turn: Turn,
        user_id: str,
        chat_id: str | None = None,
    ) -> list[MemoryEntry]:
        """Extract memories from a freshly persisted turn and store them.

        Returns the memories that were stored. Never raises.
        """
        try:
            if not self.is_memory_available():
                return []

            candidates = extract_memories_from_message(
                turn,
                user_id,
                chat_id,
                min_length=self.min_extraction_length,
                enabled=self.extraction_enabled,
            )
            added = []
            for candidate in candidates:
                memory_id = await self.store.add(candidate)
                if memory_id:
                    added.append(candidate.model_copy(update={"id": memory_id}))
            if added:
                logger.info("Extracted %d memories from turn %s", len(added), turn.id)
            return added
        except Exception:
            logger.exception("Memory extraction failed (non-fatal)")
            return []

    # -- Management ----------------------------------------------------------

    async def memory_stats(self, user_id: str) -> MemoryStats:
        if not self.is_memory_available():
            return MemoryStats()

        memories = await self.store.get_all(user_id)
        by_type: dict[MemoryType, int] = {}
        for memory in memories:
            by_type[memory.metadata.type] = by_type.get(memory.metadata.type, 0) + 1
        timestamps = sorted(m.metadata.timestamp for m in memories)
        return MemoryStats(
            total_memories=len(memories),
            memories_by_type=by_type,
            oldest_memory=timestamps[0] if timestamps else None,
            newest_memory=timestamps[-1] if timestamps else None,
        )

    async def cleanup_user_memories(self, user_id: str, now: datetime | None = None) -> int:
        """Delete memories whose retention period has passed."""
        if not self.auto_cleanup or not self.is_memory_available():
            return 0

        now = now or datetime.now(UTC)
        deleted = 0
        for memory in await self.store.get_all(user_id):
            expires_at = memory.metadata.expires_at
            if memory.id and expires_at and expires_at < now:
                if await self.store.delete(memory.id):
                    deleted += 1
        if deleted:
            logger.info("Cleaned up %d expired memories", deleted)
        return deleted

    async def search_user_memories(
        self,
        query: str,
        user_id: str,
        *,
        limit: int | None = None,
        categories: list[MemoryType] | None = None,
        min_relevance: float | None = None,
    ) -> list[MemoryEntry]:
        if not self.is_memory_available():
            return []
        return await self.store.search(
            query,
            user_id,
            limit=limit,
            categories=categories,
            min_relevance=min_relevance,
        )
