"""Environment-variable configuration for the shell runner.

Environment variables:
    SHELL_RUNNER_VERBOSE: trace spawn argv, stdin, stdout and stderr
        - true/1/yes/on = enabled (debug logging to stderr)
        - false/0/no/off = disabled (default)

    SHELL_RUNNER_PROGRAM: argv prefix that starts the shell under test
        - shell-quoted, e.g. "python tests/fixtures/fake_shell.py"
        - used when RunnerOptions.program is not given

    SHELL_RUNNER_PROMPT_TIMEOUT: seconds to wait for each prompt
        - default 10.0, clamped to 0.1-600
        - 0/none/off = wait forever

    SHELL_RUNNER_TERM_TIMEOUT: seconds between SIGTERM and SIGKILL on close
        - default 2.0, clamped to 0.1-60

    SHELL_RUNNER_ENCODING: encoding of the shell's stdin/stdout/stderr
        - default utf-8
"""

from __future__ import annotations

import codecs
import os
import shlex
from dataclasses import dataclass, field

__all__ = ["Config", "load_config", "get_config", "reload_config"]

DEFAULT_PROMPT_TIMEOUT = 10.0
DEFAULT_TERM_TIMEOUT = 2.0
DEFAULT_ENCODING = "utf-8"


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse a boolean environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_seconds(
    value: str | None,
    default: float,
    low: float,
    high: float,
) -> float:
    """Parse a duration, clamped to [low, high]. Invalid values give the default."""
    if not value:
        return default
    try:
        seconds = float(value)
        return max(low, min(seconds, high))
    except ValueError:
        return default


def _parse_prompt_timeout(value: str | None) -> float | None:
    """Parse the prompt timeout; 0/none/off disables it."""
    if value is not None and value.strip().lower() in ("0", "none", "off"):
        return None
    return _parse_seconds(value, DEFAULT_PROMPT_TIMEOUT, 0.1, 600.0)


def _parse_program(value: str | None) -> list[str]:
    if not value or not value.strip():
        return []
    return shlex.split(value)


def _parse_encoding(value: str | None) -> str:
    if not value or not value.strip():
        return DEFAULT_ENCODING
    try:
        return codecs.lookup(value.strip()).name
    except LookupError:
        return DEFAULT_ENCODING


@dataclass
class Config:
    """Shell runner configuration.

    Attributes:
        verbose: Trace process I/O through debug logging
        program: Default argv prefix of the shell under test (empty = unset)
        prompt_timeout: Seconds to wait for each prompt (None = forever)
        term_timeout: Seconds between SIGTERM and SIGKILL on close
        encoding: Stream encoding
    """

    verbose: bool = False
    program: list[str] = field(default_factory=list)
    prompt_timeout: float | None = DEFAULT_PROMPT_TIMEOUT
    term_timeout: float = DEFAULT_TERM_TIMEOUT
    encoding: str = DEFAULT_ENCODING

    def __repr__(self) -> str:
        program_str = shlex.join(self.program) or "unset"
        return (
            f"Config(verbose={self.verbose}, "
            f"program={program_str}, "
            f"prompt_timeout={self.prompt_timeout}, "
            f"term_timeout={self.term_timeout}, "
            f"encoding={self.encoding})"
        )


def load_config() -> Config:
    """Load configuration from environment variables."""
    return Config(
        verbose=_parse_bool(os.environ.get("SHELL_RUNNER_VERBOSE"), default=False),
        program=_parse_program(os.environ.get("SHELL_RUNNER_PROGRAM")),
        prompt_timeout=_parse_prompt_timeout(os.environ.get("SHELL_RUNNER_PROMPT_TIMEOUT")),
        term_timeout=_parse_seconds(
            os.environ.get("SHELL_RUNNER_TERM_TIMEOUT"), DEFAULT_TERM_TIMEOUT, 0.1, 60.0
        ),
        encoding=_parse_encoding(os.environ.get("SHELL_RUNNER_ENCODING")),
    )


# Global instance, loaded lazily
_config: Config | None = None


def get_config() -> Config:
    """Return the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """Reload configuration from the environment (used by tests)."""
    global _config
    _config = load_config()
    return _config
