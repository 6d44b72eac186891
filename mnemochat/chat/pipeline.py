"""Per-request chat flow: remember, recall, format, reply.

Memory work is sequenced before formatting so that a fact extracted from
the incoming turn is never searched for while answering that same turn.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from mnemochat.chat.models import Turn
from mnemochat.llm.client import stream_reply

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from mnemochat.memory.assembler import ContextAssembler, EnhancedContextOptions

    ReplyFn = Callable[..., Awaitable[str]]

logger = logging.getLogger(__name__)


class ChatPipeline:
    """Answers one user turn at a time on top of a :class:`ContextAssembler`."""

    def __init__(self, assembler: ContextAssembler, reply_fn: ReplyFn | None = None) -> None:
        self.assembler = assembler
        self._reply_fn = reply_fn or stream_reply
        self._background: set[asyncio.Task[Any]] = set()

    def _remember(self, turn: Turn, user_id: str, chat_id: str | None) -> asyncio.Task[Any]:
        task = asyncio.create_task(self.assembler.process_new_message(turn, user_id, chat_id))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def build_messages(
        self,
        history: list[Turn],
        new_turn: Turn,
        user_id: str,
        chat_id: str | None = None,
        system_prompt: str | None = None,
        options: EnhancedContextOptions | None = None,
    ) -> list[dict[str, Any]]:
        """Store memories from ``new_turn``, then assemble the request payload.

        If the caller is cancelled while extraction is in flight, the write
        keeps running in the background.
        """
        await asyncio.shield(self._remember(new_turn, user_id, chat_id))
        return await self.assembler.prepare_with_memory(
            [*history, new_turn],
            system_prompt,
            options,
            user_id=user_id,
            chat_id=chat_id,
        )

    async def respond(
        self,
        history: list[Turn],
        new_turn: Turn,
        user_id: str,
        chat_id: str | None = None,
        system_prompt: str | None = None,
        on_text_delta: Callable[[str], Awaitable[None]] | None = None,
        options: EnhancedContextOptions | None = None,
    ) -> str:
        """Generate the assistant reply to ``new_turn``.

        Memory failures only shrink the context; model errors propagate.
        """
        messages = await self.build_messages(
            history, new_turn, user_id, chat_id, system_prompt, options
        )
        logger.info(
            "Sending %d messages for chat %s (%d history turns)",
            len(messages),
            chat_id,
            len(history),
        )
        return await self._reply_fn(messages, on_text_delta)

    async def drain(self) -> None:
        """Wait for background memory writes to finish (for shutdown)."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
