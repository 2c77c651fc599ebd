"""Runner options and the shell's command-line arguments."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from .config import get_config
from .errors import RunnerConfigError

__all__ = ["RunnerOptions", "build_argv", "DEFAULT_ENV"]

# Prompts the shell prints when waiting for a new line / a continuation line
DEFAULT_ENV: dict[str, str] = {"ps1": "> ", "ps2": "> "}


@dataclass
class RunnerOptions:
    """Configuration of one shell session.

    Attributes:
        env: Session environment; merged over DEFAULT_ENV so ps1/ps2 always exist
        commands: Path of the command definition file to load
        disabled: Command names to disable
        contexts: Context name -> command names available in that context
        program: argv prefix starting the shell (default: SHELL_RUNNER_PROGRAM)
        cwd: Working directory of the shell process
        prompt_timeout: Per-wait timeout override (default: config value, 0 = wait forever)
        max_buffer_size: Max characters of stdout buffered without a prompt (None = unbounded)
    """

    env: Mapping[str, str] = field(default_factory=dict)
    commands: str | None = None
    disabled: Sequence[str] | None = None
    contexts: Mapping[str, Sequence[str]] | None = None
    program: Sequence[str] | None = None
    cwd: str | None = None
    prompt_timeout: float | None = None
    max_buffer_size: int | None = 1024 * 1024

    def __post_init__(self) -> None:
        self.env = {**DEFAULT_ENV, **self.env}

    @property
    def prompt(self) -> str:
        """Primary prompt marker (ps1)."""
        return self.env["ps1"]

    def resolve_program(self) -> list[str]:
        """argv prefix of the shell, falling back to the configured default."""
        program = list(self.program) if self.program else get_config().program
        if not program:
            raise RunnerConfigError(
                "No shell program configured: pass RunnerOptions.program "
                "or set SHELL_RUNNER_PROGRAM"
            )
        return program


def build_argv(options: RunnerOptions) -> list[str]:
    """Build the full argv that launches the shell for these options.

    Layout:
        <program...> --env <json> [--commands <path>] [--disabled <a,b>]
        [--contexts.<name> <a,b>]...
    """
    argv = options.resolve_program()

    argv += ["--env", json.dumps(dict(options.env))]

    if options.commands:
        argv += ["--commands", str(options.commands)]

    if options.disabled:
        argv += ["--disabled", ",".join(options.disabled)]

    if options.contexts:
        for context_name, command_names in options.contexts.items():
            argv += [f"--contexts.{context_name}", ",".join(command_names)]

    return argv
