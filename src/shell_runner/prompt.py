"""Prompt detection over the shell's stdout stream."""

from __future__ import annotations

__all__ = ["split_on_prompt", "PromptBuffer"]


def split_on_prompt(text: str, prompt: str) -> tuple[str, str] | None:
    """Split text at the first occurrence of the prompt.

    Args:
        text: Accumulated stdout text
        prompt: Prompt marker

    Returns:
        (before, after) with the prompt itself removed, or None if the prompt
        does not occur in text
    """
    pieces = text.split(prompt, 1)
    if len(pieces) == 1:
        return None
    return pieces[0], pieces[1]


class PromptBuffer:
    """Accumulates stdout chunks until the prompt marker shows up.

    The prompt is searched in the whole buffer rather than chunk by chunk, so
    a marker split across two reads is still found. Text after the marker is
    discarded: a reply ends at its prompt.

    The buffer never holds more than max_size characters without a prompt.
    Once that limit is hit it stops accepting text and reports overflowed()
    until drained.

    Example:
        buffer = PromptBuffer("> ")
        buffer.feed("hello\\n>")
        buffer.pop_until_prompt()   # None
        buffer.feed(" ")
        buffer.pop_until_prompt()   # "hello\\n"
    """

    def __init__(self, prompt: str, max_size: int | None = None) -> None:
        if not prompt:
            raise ValueError("prompt must be a non-empty string")
        self.prompt = prompt
        self.max_size = max_size
        self._text = ""
        self._overflowed = False

    def __len__(self) -> int:
        return len(self._text)

    @property
    def text(self) -> str:
        return self._text

    def feed(self, chunk: str) -> None:
        if self._overflowed:
            return
        text = self._text + chunk
        if self.max_size is not None and len(text) > self.max_size:
            end = text.find(self.prompt)
            if end < 0:
                self._overflowed = True
                text = text[:self.max_size]
            else:
                # Anything past the first prompt is dropped by pop_until_prompt
                text = text[:end + len(self.prompt)]
        self._text = text

    def overflowed(self) -> bool:
        """True once more than max_size characters arrived without a prompt."""
        return self._overflowed

    def pop_until_prompt(self) -> str | None:
        """Return the text before the first prompt and empty the buffer.

        Returns None, leaving the buffer untouched, if no prompt is buffered.
        """
        if self._overflowed:
            return None
        split = split_on_prompt(self._text, self.prompt)
        if split is None:
            return None
        self._text = ""
        return split[0]

    def drain(self) -> str:
        """Remove and return everything buffered, clearing any overflow."""
        text, self._text = self._text, ""
        self._overflowed = False
        return text
