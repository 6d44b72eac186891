"""Heuristic token estimation for turns and raw text."""

import math
from collections.abc import Iterable

from mnemochat.chat.models import Turn

CHARS_PER_TOKEN = 4
TURN_OVERHEAD_TOKENS = 10
IMAGE_TOKENS = 85
FILE_REFERENCE_TOKENS = 20


def estimate_tokens(text: str) -> int:
    """Rough token estimate: ~4 characters per token for English text."""
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def estimate_turn_tokens(turn: Turn) -> int:
    """Estimate tokens for a turn including role overhead and attachments.

    Images cost a flat vision budget regardless of resolution. Other files
    are sent as a textual reference, so only their name is counted.
    """
    tokens = estimate_tokens(turn.content) + TURN_OVERHEAD_TOKENS
    for attachment in turn.attachments:
        if attachment.is_image:
            tokens += IMAGE_TOKENS
        else:
            tokens += estimate_tokens(attachment.name) + FILE_REFERENCE_TOKENS
    return tokens


def calculate_total_tokens(turns: Iterable[Turn]) -> int:
    return sum(estimate_turn_tokens(t) for t in turns)
