"""Prompt detection tests."""

from __future__ import annotations

import pytest

from shell_runner.prompt import PromptBuffer, split_on_prompt


class TestSplitOnPrompt:
    """Test split_on_prompt."""

    def test_single_occurrence_yields_preceding_text(self):
        assert split_on_prompt("hello\n> ", "> ") == ("hello\n", "")

    def test_no_occurrence(self):
        assert split_on_prompt("hello\n", "> ") is None

    def test_splits_at_first_occurrence(self):
        assert split_on_prompt("a> b> ", "> ") == ("a", "b> ")

    def test_prompt_only(self):
        assert split_on_prompt("> ", "> ") == ("", "")

    def test_multichar_prompt(self):
        assert split_on_prompt("out\napp$ ", "app$ ") == ("out\n", "")


class TestPromptBuffer:
    """Test PromptBuffer accumulation."""

    def test_accumulates_until_prompt(self):
        buffer = PromptBuffer("> ")
        buffer.feed("line1\n")
        assert buffer.pop_until_prompt() is None
        buffer.feed("line2\n> ")
        assert buffer.pop_until_prompt() == "line1\nline2\n"
        assert len(buffer) == 0

    def test_prompt_split_across_chunks(self):
        buffer = PromptBuffer("> ")
        buffer.feed("hello\n>")
        assert buffer.pop_until_prompt() is None
        buffer.feed(" ")
        assert buffer.pop_until_prompt() == "hello\n"

    def test_text_after_prompt_dropped(self):
        buffer = PromptBuffer("> ")
        buffer.feed("{\"ps1\": \"> \", \"ps2\": \"> \"}\n> ")
        assert buffer.pop_until_prompt() == "{\"ps1\": \""
        assert buffer.text == ""
        assert buffer.pop_until_prompt() is None

    def test_no_prompt_leaves_buffer(self):
        buffer = PromptBuffer("> ")
        buffer.feed("partial")
        assert buffer.pop_until_prompt() is None
        assert buffer.text == "partial"

    def test_drain(self):
        buffer = PromptBuffer("> ")
        buffer.feed("partial")
        assert buffer.drain() == "partial"
        assert buffer.text == ""

    def test_overflow(self):
        buffer = PromptBuffer("> ", max_size=4)
        buffer.feed("1234")
        assert buffer.overflowed() is False
        buffer.feed("5")
        assert buffer.overflowed() is True

    def test_no_overflow_when_prompt_present(self):
        buffer = PromptBuffer("> ", max_size=4)
        buffer.feed("12345> ")
        assert buffer.overflowed() is False
        assert buffer.pop_until_prompt() == "12345"

    def test_overflow_stops_growth(self):
        buffer = PromptBuffer("> ", max_size=64)
        for _ in range(1000):
            buffer.feed("x" * 100)
        assert buffer.overflowed() is True
        assert len(buffer) == 64
        # A prompt arriving after the overflow is not accepted
        buffer.feed("> ")
        assert buffer.pop_until_prompt() is None

    def test_text_past_prompt_trimmed_at_limit(self):
        buffer = PromptBuffer("> ", max_size=8)
        buffer.feed("ab> " + "y" * 100)
        assert buffer.overflowed() is False
        assert buffer.text == "ab> "

    def test_drain_clears_overflow(self):
        buffer = PromptBuffer("> ", max_size=4)
        buffer.feed("123456")
        assert buffer.drain() == "1234"
        assert buffer.overflowed() is False
        buffer.feed("ok> ")
        assert buffer.pop_until_prompt() == "ok"

    def test_unbounded(self):
        buffer = PromptBuffer("> ")
        buffer.feed("x" * 10_000)
        assert buffer.overflowed() is False

    def test_empty_prompt_rejected(self):
        with pytest.raises(ValueError):
            PromptBuffer("")
