"""Fit an unbounded conversation history into a bounded token budget.

The most recent turns are kept verbatim; anything older that does not fit
is replaced by a short summary placeholder which the formatter sends as a
system message.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from mnemochat.chat.models import Turn
from mnemochat.context.tokens import (
    calculate_total_tokens,
    estimate_tokens,
    estimate_turn_tokens,
)

if TYPE_CHECKING:
    from mnemochat.config import Settings

logger = logging.getLogger(__name__)


@dataclass
class ContextOptions:
    """Token budget for a single model request.

    Attributes:
        max_tokens: Overall request budget.
        reserve_tokens_for_response: Tokens held back for the model's reply.
        summary_token_budget: Cap on the summary placeholder length.
        model: Model label, passed through untouched.
    """

    max_tokens: int = 4000
    reserve_tokens_for_response: int = 1000
    summary_token_budget: int = 500
    model: str = "gpt-4o"

    def __post_init__(self) -> None:
        for name in ("max_tokens", "reserve_tokens_for_response", "summary_token_budget"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")

    @property
    def available_tokens(self) -> int:
        return self.max_tokens - self.reserve_tokens_for_response

    @classmethod
    def from_settings(cls, settings: Settings, **overrides) -> ContextOptions:
        values = {
            "max_tokens": settings.context_max_tokens,
            "reserve_tokens_for_response": settings.context_reserve_tokens,
            "summary_token_budget": settings.context_summary_tokens,
            "model": settings.chat_model,
            **overrides,
        }
        return cls(**values)


@dataclass
class ContextWindow:
    """The turns selected for a request plus their estimated cost."""

    messages: list[Turn] = field(default_factory=list)
    total_tokens: int = 0
    summary: str | None = None


@dataclass
class ContextStats:
    message_count: int
    total_tokens: int
    average_tokens_per_message: int
    has_attachments: bool


def summarize_turns(turns: list[Turn], max_summary_tokens: int = 500) -> str:
    """Build the placeholder that stands in for dropped turns."""
    if not turns:
        return ""

    user_count = sum(1 for t in turns if t.role == "user")
    assistant_count = sum(1 for t in turns if t.role == "assistant")
    attachment_count = sum(len(t.attachments) for t in turns)

    details = f"{user_count} from the user, {assistant_count} from the assistant"
    if attachment_count:
        details += f", {attachment_count} attachment(s)"

    summary = (
        f"Previous conversation summary ({len(turns)} messages; {details}): "
        "The conversation covered various topics including user questions and "
        "assistant responses. Key context has been preserved for continuity."
    )
    return summary[: max_summary_tokens * 4]


def fit(turns: list[Turn], options: ContextOptions | None = None) -> ContextWindow:
    """Select the longest suffix of ``turns`` that fits the budget.

    The last turn is always kept, even when it alone exceeds the budget.
    Older turns are added newest-first while ``kept + candidate + summary``
    stays within ``max_tokens - reserve_tokens_for_response``; the first
    turn that does not fit ends the walk and it, along with everything
    before it, is summarized. If the summary then pushes the total over
    budget, the oldest kept turns move into the summarized prefix until it
    fits again.
    """
    opts = options or ContextOptions()
    available = opts.available_tokens

    if not turns:
        return ContextWindow()

    total = calculate_total_tokens(turns)
    if total <= available:
        logger.debug(
            "All %d turns fit in budget (%d/%d tokens), no trimming needed",
            len(turns),
            total,
            available,
        )
        return ContextWindow(messages=list(turns), total_tokens=total)

    last = turns[-1]
    kept: list[Turn] = [last]
    kept_tokens = estimate_turn_tokens(last)
    summary_tokens = 0
    summary: str | None = None

    for i in range(len(turns) - 2, -1, -1):
        turn_tokens = estimate_turn_tokens(turns[i])
        if kept_tokens + turn_tokens + summary_tokens <= available:
            kept.append(turns[i])
            kept_tokens += turn_tokens
            continue

        summary = summarize_turns(turns[: i + 1], opts.summary_token_budget)
        summary_tokens = estimate_tokens(summary)
        break

    kept.reverse()

    # The summary cost is only known once the walk has stopped. Give up the
    # oldest kept turns until the summary fits too; the last turn stays.
    while summary and len(kept) > 1 and kept_tokens + summary_tokens > available:
        kept_tokens -= estimate_turn_tokens(kept.pop(0))
        dropped = len(turns) - len(kept)
        summary = summarize_turns(turns[:dropped], opts.summary_token_budget)
        summary_tokens = estimate_tokens(summary)

    logger.info(
        "Trimmed context: kept %d of %d turns (%d tokens + %d summary tokens, budget %d)",
        len(kept),
        len(turns),
        kept_tokens,
        summary_tokens,
        available,
    )
    return ContextWindow(
        messages=kept,
        total_tokens=kept_tokens + summary_tokens,
        summary=summary or None,
    )


def context_stats(turns: list[Turn]) -> ContextStats:
    """Diagnostic summary of a turn list."""
    total = calculate_total_tokens(turns)
    count = len(turns)
    return ContextStats(
        message_count=count,
        total_tokens=total,
        average_tokens_per_message=math.floor(total / count + 0.5) if count else 0,
        has_attachments=any(t.attachments for t in turns),
    )
