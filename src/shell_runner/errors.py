"""Exception types raised by the shell runner.

shell-runner v0.1.0
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .runner import CloseEvent

__all__ = [
    "ShellRunnerError",
    "RunnerConfigError",
    "RunnerStateError",
    "PromptTimeoutError",
    "ProcessClosedError",
    "BufferOverflowError",
]


class ShellRunnerError(Exception):
    """Base exception for the shell runner."""
    pass


class RunnerConfigError(ShellRunnerError):
    """Invalid runner configuration (e.g. no shell program to launch)."""
    pass


class RunnerStateError(ShellRunnerError):
    """Operation not allowed in the runner's current lifecycle state."""
    pass


class PromptTimeoutError(ShellRunnerError):
    """The prompt did not appear within the allowed time.

    Attributes:
        timeout: Seconds waited
        stdout: Stdout text accumulated before giving up
        stderr: Stderr text accumulated before giving up
    """

    def __init__(self, timeout: float, stdout: str = "", stderr: str = "") -> None:
        self.timeout = timeout
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(f"Prompt not seen after {timeout:g}s (stdout so far: {stdout[-200:]!r})")


class ProcessClosedError(ShellRunnerError):
    """The shell process exited while a prompt was awaited.

    Attributes:
        close_event: Exit code / signal of the process
        stdout: Stdout text accumulated before the exit
        stderr: Stderr text accumulated before the exit
    """

    def __init__(self, close_event: "CloseEvent", stdout: str = "", stderr: str = "") -> None:
        self.close_event = close_event
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(
            f"Shell process closed before prompt "
            f"(code={close_event.code}, signal={close_event.signal})"
        )


class BufferOverflowError(ShellRunnerError):
    """Stdout grew past the configured limit without a prompt."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f"Stdout exceeded {limit} bytes without a prompt")
