"""shell-runner - drive an interactive shell from integration tests.

Environment variables:
    SHELL_RUNNER_PROGRAM: default argv prefix of the shell under test
    SHELL_RUNNER_PROMPT_TIMEOUT: seconds to wait for each prompt (default 10)
    SHELL_RUNNER_VERBOSE: trace process I/O (default false)

Usage:
    async with ShellRunner(RunnerOptions(program=["my-shell"])) as runner:
        result = await runner.exec("help")
"""

__version__ = "0.1.0"

from .errors import (
    BufferOverflowError,
    ProcessClosedError,
    PromptTimeoutError,
    RunnerConfigError,
    RunnerStateError,
    ShellRunnerError,
)
from .options import RunnerOptions, build_argv
from .runner import CloseEvent, ExecResult, ShellRunner

__all__ = [
    "__version__",
    "ShellRunner",
    "RunnerOptions",
    "ExecResult",
    "CloseEvent",
    "build_argv",
    "ShellRunnerError",
    "RunnerConfigError",
    "RunnerStateError",
    "PromptTimeoutError",
    "ProcessClosedError",
    "BufferOverflowError",
]
