"""Tests for fitting conversations into a token budget."""

import pytest

from mnemochat.context.tokens import calculate_total_tokens, estimate_tokens
from mnemochat.context.window import (
    ContextOptions,
    context_stats,
    fit,
    summarize_turns,
)


def _conversation(make_turn, count: int, content_chars: int = 48) -> list:
    """Alternating user/assistant turns of equal size."""
    turns = []
    for i in range(count):
        role = "user" if i % 2 == 0 else "assistant"
        turns.append(make_turn(f"{i:04d}".ljust(content_chars, "x"), role=role))
    return turns


# -- options -----------------------------------------------------------------


def test_options_defaults() -> None:
    opts = ContextOptions()
    assert opts.max_tokens == 4000
    assert opts.reserve_tokens_for_response == 1000
    assert opts.summary_token_budget == 500
    assert opts.available_tokens == 3000


@pytest.mark.parametrize(
    "field", ["max_tokens", "reserve_tokens_for_response", "summary_token_budget"]
)
def test_options_reject_negative_values(field: str) -> None:
    with pytest.raises(ValueError, match=field):
        ContextOptions(**{field: -1})


# -- fit: no truncation ------------------------------------------------------


def test_fit_empty() -> None:
    window = fit([])
    assert window.messages == []
    assert window.total_tokens == 0
    assert window.summary is None


def test_fit_short_conversation_unchanged(make_turn) -> None:
    turns = [
        make_turn("Hi there"),
        make_turn("Hello! How can I help?", role="assistant"),
        make_turn("What's the capital of France?"),
    ]
    window = fit(turns, ContextOptions(max_tokens=4000))
    assert window.messages == turns
    assert window.total_tokens == calculate_total_tokens(turns)
    assert window.summary is None


def test_fit_exact_budget_is_not_truncated(make_turn) -> None:
    turns = [make_turn("abcdefgh"), make_turn("abcdefgh", role="assistant")]
    window = fit(turns, ContextOptions(max_tokens=24, reserve_tokens_for_response=0))
    assert len(window.messages) == 2
    assert window.summary is None


# -- fit: truncation ---------------------------------------------------------


def test_fit_long_conversation_is_summarized(make_turn) -> None:
    """50 turns of ~12 content tokens against an 800-token budget."""
    turns = _conversation(make_turn, 50)
    window = fit(turns, ContextOptions(max_tokens=1000, reserve_tokens_for_response=200))

    assert len(window.messages) < 50
    assert window.total_tokens <= 800
    assert isinstance(window.summary, str)
    assert window.summary


def test_fit_keeps_contiguous_suffix_in_order(make_turn) -> None:
    turns = _conversation(make_turn, 30)
    window = fit(turns, ContextOptions(max_tokens=400, reserve_tokens_for_response=0))

    kept = len(window.messages)
    assert window.messages == turns[-kept:]
    assert len({t.id for t in window.messages}) == kept


def test_fit_summary_names_dropped_turns(make_turn) -> None:
    turns = _conversation(make_turn, 30)
    window = fit(turns, ContextOptions(max_tokens=400, reserve_tokens_for_response=0))

    dropped = len(turns) - len(window.messages)
    assert f"({dropped} messages" in window.summary
    assert window.total_tokens == (
        calculate_total_tokens(window.messages) + estimate_tokens(window.summary)
    )


def test_fit_keeps_turn_that_fits_exactly(make_turn) -> None:
    """Inclusion is decided with <=, so a turn landing on the boundary stays."""
    turns = _conversation(make_turn, 3, content_chars=400)  # 110 tokens each
    summary_cost = estimate_tokens(summarize_turns(turns[:1]))
    budget = 220 + summary_cost

    window = fit(turns, ContextOptions(max_tokens=budget, reserve_tokens_for_response=0))

    assert window.messages == turns[1:]
    assert window.total_tokens == budget


def test_fit_drops_more_turns_when_summary_overflows(make_turn) -> None:
    turns = _conversation(make_turn, 3, content_chars=400)
    window = fit(turns, ContextOptions(max_tokens=220, reserve_tokens_for_response=0))

    assert window.messages == [turns[-1]]
    assert "(2 messages" in window.summary
    assert window.total_tokens <= 220


@pytest.mark.parametrize("max_tokens", [0, 1, 15])
def test_fit_always_keeps_latest_turn(make_turn, max_tokens: int) -> None:
    turns = _conversation(make_turn, 10)
    window = fit(turns, ContextOptions(max_tokens=max_tokens, reserve_tokens_for_response=0))
    assert window.messages[-1] is turns[-1]


def test_fit_oversized_single_turn_is_kept(make_turn) -> None:
    big = make_turn("x" * 4000)
    window = fit([big], ContextOptions(max_tokens=100, reserve_tokens_for_response=0))
    assert window.messages == [big]
    assert window.summary is None
    assert window.total_tokens == 1010


def test_fit_budget_is_monotonic(make_turn) -> None:
    turns = _conversation(make_turn, 40)
    previous = 0
    for max_tokens in range(0, 1200, 25):
        window = fit(turns, ContextOptions(max_tokens=max_tokens, reserve_tokens_for_response=0))
        assert len(window.messages) >= previous
        previous = len(window.messages)
    assert previous == 40


def test_fit_does_not_mutate_input(make_turn) -> None:
    turns = _conversation(make_turn, 20)
    snapshot = list(turns)
    fit(turns, ContextOptions(max_tokens=200, reserve_tokens_for_response=0))
    assert turns == snapshot


# -- summarize_turns ---------------------------------------------------------


def test_summarize_empty() -> None:
    assert summarize_turns([]) == ""


def test_summarize_counts_roles_and_attachments(make_turn, file_attachment) -> None:
    turns = [
        make_turn("question", attachments=[file_attachment()]),
        make_turn("answer", role="assistant"),
        make_turn("follow-up"),
    ]
    summary = summarize_turns(turns)
    assert "(3 messages; 2 from the user, 1 from the assistant, 1 attachment(s))" in summary


def test_summarize_respects_token_budget(make_turn) -> None:
    summary = summarize_turns([make_turn("hello")], max_summary_tokens=5)
    assert len(summary) == 20


# -- context_stats -----------------------------------------------------------


def test_stats_empty() -> None:
    stats = context_stats([])
    assert stats.message_count == 0
    assert stats.total_tokens == 0
    assert stats.average_tokens_per_message == 0
    assert stats.has_attachments is False


def test_stats_rounds_average_half_up(make_turn) -> None:
    turns = [make_turn("abcdefgh"), make_turn("abcdefghi", role="assistant")]  # 12 + 13
    stats = context_stats(turns)
    assert stats.message_count == 2
    assert stats.total_tokens == 25
    assert stats.average_tokens_per_message == 13


def test_stats_detects_attachments(make_turn, image_attachment) -> None:
    turns = [make_turn("look"), make_turn("at this", attachments=[image_attachment()])]
    assert context_stats(turns).has_attachments is True
