"""Pattern-based extraction of candidate memories from user turns.

Matchers are checked in order and the first one that fires classifies the
message, so a message yields at most one memory.
"""

import logging
import re
from dataclasses import dataclass

from mnemochat.chat.models import Turn
from mnemochat.memory.models import MemoryEntry, MemoryMetadata, MemoryType, expiry_for

logger = logging.getLogger(__name__)

EXTRACTION_SOURCE = "pattern_extraction"
MIN_MESSAGE_LENGTH = 20


@dataclass(frozen=True)
class MemoryMatcher:
    """A memory category and the triggers that select it."""

    type: MemoryType
    confidence: float
    patterns: tuple[re.Pattern[str], ...]

    def matches(self, content: str) -> bool:
        return any(p.search(content) for p in self.patterns)


def _compile(*patterns: str) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


MEMORY_MATCHERS: tuple[MemoryMatcher, ...] = (
    MemoryMatcher(
        type=MemoryType.USER_PREFERENCE,
        confidence=0.8,
        patterns=_compile(
            r"I (like|love|prefer|enjoy|hate|dislike|really like)",
            r"My favorite .* is",
            r"I usually",
            r"I always",
            r"I never",
            r"remember this",
            r"please remember",
        ),
    ),
    MemoryMatcher(
        type=MemoryType.PERSONAL_INFO,
        confidence=0.9,
        patterns=_compile(
            r"My name is",
            r"I am .* years old",
            r"I work (as|at)",
            r"I am a .* (engineer|developer|designer|manager|student|teacher)",
            r"I am an? (engineer|developer|designer|manager|student|teacher)",
            r"I live in",
            r"I study",
        ),
    ),
    MemoryMatcher(
        type=MemoryType.FACTUAL_KNOWLEDGE,
        confidence=0.7,
        patterns=_compile(
            r"Did you know",
            r"The fact is",
            r"According to",
            r"Research shows",
            r"Studies indicate",
        ),
    ),
    MemoryMatcher(
        type=MemoryType.BEHAVIORAL_PATTERN,
        confidence=0.75,
        patterns=_compile(
            r"I tend to",
            r"I often",
            r"I typically",
            r"My habit is",
            r"I have a tendency",
        ),
    ),
)


def classify_message(
    content: str,
    matchers: tuple[MemoryMatcher, ...] = MEMORY_MATCHERS,
) -> MemoryMatcher | None:
    """Return the first matcher that fires on ``content``, if any."""
    for matcher in matchers:
        if matcher.matches(content):
            return matcher
    return None


def extract_memories_from_message(
    turn: Turn,
    user_id: str,
    chat_id: str | None = None,
    *,
    min_length: int = MIN_MESSAGE_LENGTH,
    enabled: bool = True,
    matchers: tuple[MemoryMatcher, ...] = MEMORY_MATCHERS,
) -> list[MemoryEntry]:
    """Extract at most one candidate memory from a user turn.

    Non-user turns and turns shorter than ``min_length`` are never scanned.
    """
    if not enabled or turn.role != "user" or len(turn.content) < min_length:
        return []

    matcher = classify_message(turn.content, matchers)
    if matcher is None:
        return []

    logger.debug("Turn %s classified as %s", turn.id, matcher.type)
    return [
        MemoryEntry(
            content=turn.content,
            user_id=user_id,
            metadata=MemoryMetadata(
                type=matcher.type,
                chat_id=chat_id,
                timestamp=turn.timestamp,
                confidence=matcher.confidence,
                source=EXTRACTION_SOURCE,
                expires_at=expiry_for(matcher.type, turn.timestamp),
            ),
        )
    ]
