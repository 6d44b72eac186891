"""Context window management: token estimation, fitting, and formatting."""

from mnemochat.context.formatter import format_turn, format_window, to_api_messages
from mnemochat.context.tokens import (
    calculate_total_tokens,
    estimate_tokens,
    estimate_turn_tokens,
)
from mnemochat.context.window import (
    ContextOptions,
    ContextStats,
    ContextWindow,
    context_stats,
    fit,
    summarize_turns,
)

__all__ = [
    "ContextOptions",
    "ContextStats",
    "ContextWindow",
    "calculate_total_tokens",
    "context_stats",
    "estimate_tokens",
    "estimate_turn_tokens",
    "fit",
    "format_turn",
    "format_window",
    "summarize_turns",
    "to_api_messages",
]
