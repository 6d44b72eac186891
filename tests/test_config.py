"""Tests for Settings and the option objects built from it."""

from mnemochat.config import Settings
from mnemochat.context.window import ContextOptions
from mnemochat.memory.assembler import EnhancedContextOptions


class TestDefaults:
    def test_context_budget(self):
        s = Settings()
        assert s.context_max_tokens == 4000
        assert s.context_reserve_tokens == 1000
        assert s.context_summary_tokens == 500

    def test_memory(self):
        s = Settings()
        assert s.mem0_api_key == ""
        assert s.memory_enhance_context is True
        assert s.memory_max_context_memories == 10
        assert s.memory_min_relevance == 0.7
        assert s.memory_min_message_length == 20
        assert s.memory_auto_cleanup is True


class TestContextOptionsFromSettings:
    def test_reads_budget(self):
        s = Settings(context_max_tokens=8000, context_reserve_tokens=2000, chat_model="m")
        opts = ContextOptions.from_settings(s)
        assert opts.max_tokens == 8000
        assert opts.available_tokens == 6000
        assert opts.model == "m"

    def test_overrides_win(self):
        opts = ContextOptions.from_settings(Settings(), max_tokens=100)
        assert opts.max_tokens == 100


class TestEnhancedContextOptionsFromSettings:
    def test_reads_memory_switches(self):
        s = Settings(
            context_summary_tokens=250,
            memory_enhance_context=False,
            memory_max_context_memories=4,
            memory_min_relevance=0.5,
            memory_context_weight=0.6,
        )
        opts = EnhancedContextOptions.from_settings(s)
        assert isinstance(opts, EnhancedContextOptions)
        assert opts.summary_token_budget == 250
        assert opts.include_memories is False
        assert opts.max_memories == 4
        assert opts.min_relevance == 0.5
        assert opts.memory_weight == 0.6

    def test_overrides_win(self):
        opts = EnhancedContextOptions.from_settings(Settings(), max_memories=1)
        assert opts.max_memories == 1
