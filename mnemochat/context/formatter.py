"""Convert fitted turns into the message shape a multimodal endpoint expects."""

from typing import Any

from mnemochat.chat.models import Turn
from mnemochat.context.window import ContextOptions, ContextWindow, fit

SUMMARY_PREFIX = "Context from earlier in the conversation: "


def _file_references(turn: Turn) -> str:
    return " ".join(f"[File: {a.name}]" for a in turn.file_attachments)


def format_turn(turn: Turn) -> dict[str, Any]:
    """Encode one turn.

    Turns with images become a list of content parts (text first, then one
    image part per image, in attachment order). Everything else is a plain
    string, with non-image files appended as ``[File: name]`` references.
    """
    images = turn.image_attachments
    files = _file_references(turn)

    if images:
        parts: list[dict[str, Any]] = []
        if turn.content.strip():
            parts.append({"type": "text", "text": turn.content})
        for image in images:
            parts.append({"type": "image", "image": image.url})
        if files:
            parts.append({"type": "text", "text": files})
        return {"role": turn.role, "content": parts}

    if files:
        content = f"{turn.content} {files}" if turn.content else files
        return {"role": turn.role, "content": content}

    return {"role": turn.role, "content": turn.content}


def format_window(
    window: ContextWindow,
    system_prompt: str | None = None,
) -> list[dict[str, Any]]:
    """Build the ordered message list for a fitted window."""
    messages: list[dict[str, Any]] = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    if window.summary:
        messages.append({"role": "system", "content": f"{SUMMARY_PREFIX}{window.summary}"})
    messages.extend(format_turn(t) for t in window.messages)
    return messages


def to_api_messages(
    turns: list[Turn],
    system_prompt: str | None = None,
    options: ContextOptions | None = None,
) -> list[dict[str, Any]]:
    """Fit ``turns`` to the budget and format the result."""
    return format_window(fit(turns, options), system_prompt)


def insert_system_message(messages: list[dict[str, Any]], content: str) -> list[dict[str, Any]]:
    """Insert a system message after the leading run of system messages."""
    index = 0
    while index < len(messages) and messages[index]["role"] == "system":
        index += 1
    messages.insert(index, {"role": "system", "content": content})
    return messages
