"""Data models for conversation turns and their attachments."""

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field


class Attachment(BaseModel):
    """A file or image uploaded alongside a turn."""

    id: str
    name: str
    size: int = 0
    mime_type: str = ""
    url: str
    type: Literal["image", "file"] = "file"

    @property
    def is_image(self) -> bool:
        return self.type == "image"


class Turn(BaseModel):
    """A single conversation message.

    Order within a conversation is the only recency signal; ``timestamp``
    is informational.
    """

    id: str
    role: Literal["user", "assistant", "system"]
    content: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    attachments: list[Attachment] = Field(default_factory=list)

    @property
    def image_attachments(self) -> list[Attachment]:
        return [a for a in self.attachments if a.is_image]

    @property
    def file_attachments(self) -> list[Attachment]:
        return [a for a in self.attachments if not a.is_image]
