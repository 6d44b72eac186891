"""Async Claude API client for sending assembled context to the model."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import anthropic

from mnemochat.config import settings

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

_client: anthropic.AsyncAnthropic | None = None


def _get_client() -> anthropic.AsyncAnthropic:
    """Lazily initialize the Anthropic client."""
    global _client  # noqa: PLW0603
    if _client is None:
        _client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
    return _client


def _convert_part(part: dict[str, Any]) -> dict[str, Any]:
    if part.get("type") == "image":
        return {"type": "image", "source": {"type": "url", "url": str(part["image"])}}
    return {"type": "text", "text": part.get("text", "")}


def to_anthropic_messages(
    api_messages: list[dict[str, Any]],
) -> tuple[str, list[dict[str, Any]]]:
    """Split assembled messages into Claude's ``system`` and ``messages``.

    Claude takes system text as a separate parameter, so every system
    message (prompt, summary, memories) is joined into one string in order.
    Image parts become URL image sources.
    """
    system_parts: list[str] = []
    messages: list[dict[str, Any]] = []
    for msg in api_messages:
        content = msg["content"]
        if msg["role"] == "system":
            if isinstance(content, str):
                system_parts.append(content)
            else:
                system_parts.extend(p.get("text", "") for p in content if p.get("type") == "text")
            continue

        if isinstance(content, list):
            content = [_convert_part(p) for p in content]
        messages.append({"role": msg["role"], "content": content})
    return "\n\n".join(p for p in system_parts if p), messages


async def stream_reply(
    api_messages: list[dict[str, Any]],
    on_text_delta: Callable[[str], Awaitable[None]] | None = None,
    *,
    model: str | None = None,
    max_tokens: int | None = None,
) -> str:
    """Stream a reply for the assembled messages.

    Args:
        api_messages: Output of the context formatter or assembler.
        on_text_delta: Async callback receiving each text chunk.
        model: Override for the configured chat model.
        max_tokens: Override for the configured reply budget.

    Returns:
        The complete reply text.
    """
    client = _get_client()
    system, messages = to_anthropic_messages(api_messages)
    kwargs: dict[str, Any] = {
        "model": model or settings.chat_model,
        "max_tokens": max_tokens or settings.chat_max_tokens,
        "messages": messages,
    }
    if system:
        kwargs["system"] = system

    full_text = ""
    async with client.messages.stream(**kwargs) as stream:
        async for text in stream.text_stream:
            full_text += text
            if on_text_delta:
                await on_text_delta(text)

    logger.debug("Reply: %d chars from %s", len(full_text), kwargs["model"])
    return full_text
