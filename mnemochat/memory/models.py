"""Data models for long-term memory records."""

from datetime import UTC, datetime, timedelta
from enum import StrEnum

from pydantic import BaseModel, Field


class MemoryType(StrEnum):
    USER_PREFERENCE = "user_preference"
    CONVERSATION_CONTEXT = "conversation_context"
    FACTUAL_KNOWLEDGE = "factual_knowledge"
    BEHAVIORAL_PATTERN = "behavioral_pattern"
    TOPIC_EXPERTISE = "topic_expertise"
    PERSONAL_INFO = "personal_info"


# Days a memory of each type is kept before cleanup may delete it.
RETENTION_DAYS: dict[MemoryType, int] = {
    MemoryType.USER_PREFERENCE: 365,
    MemoryType.CONVERSATION_CONTEXT: 30,
    MemoryType.FACTUAL_KNOWLEDGE: 180,
    MemoryType.BEHAVIORAL_PATTERN: 90,
    MemoryType.TOPIC_EXPERTISE: 180,
    MemoryType.PERSONAL_INFO: 365,
}

MEMORY_TYPE_LABELS: dict[MemoryType, str] = {
    MemoryType.USER_PREFERENCE: "User Preferences",
    MemoryType.CONVERSATION_CONTEXT: "Previous Context",
    MemoryType.FACTUAL_KNOWLEDGE: "Known Facts",
    MemoryType.BEHAVIORAL_PATTERN: "Behavioral Patterns",
    MemoryType.TOPIC_EXPERTISE: "Topic Expertise",
    MemoryType.PERSONAL_INFO: "Personal Information",
}


def expiry_for(memory_type: MemoryType, created: datetime) -> datetime:
    """Return when a memory of ``memory_type`` created at ``created`` expires."""
    return created + timedelta(days=RETENTION_DAYS[memory_type])


class MemoryMetadata(BaseModel):
    """Category and provenance of a memory."""

    type: MemoryType = MemoryType.CONVERSATION_CONTEXT
    chat_id: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    confidence: float = 0.8
    source: str = "mem0"
    tags: list[str] = Field(default_factory=list)
    expires_at: datetime | None = None


class MemoryEntry(BaseModel):
    """A memory retrieved from, or about to be written to, the store."""

    id: str | None = None
    content: str
    user_id: str
    relevance_score: float = 1.0
    metadata: MemoryMetadata = Field(default_factory=MemoryMetadata)
