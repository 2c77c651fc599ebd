"""pytest plugin: a factory fixture for shell runners.

Registered through the ``pytest11`` entry point, so installing the package
makes the ``shell_runner`` fixture available:

    @pytest.mark.asyncio
    async def test_help(shell_runner):
        runner = await shell_runner(disabled=["exit"])
        result = await runner.exec("help")
        assert "exit" not in result.stdout

Every runner created through the fixture is closed at teardown.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

import pytest
import pytest_asyncio

from .config import get_config
from .log import setup_logging
from .options import RunnerOptions
from .runner import ShellRunner

RunnerFactory = Callable[..., Awaitable[ShellRunner]]


def pytest_configure(config: pytest.Config) -> None:
    if get_config().verbose:
        setup_logging()


@pytest_asyncio.fixture
async def shell_runner() -> AsyncIterator[RunnerFactory]:
    """Start shell runners on demand; close all of them at teardown.

    The factory accepts RunnerOptions fields as keyword arguments, or a
    ready-made RunnerOptions as its single positional argument.
    """
    runners: list[ShellRunner] = []

    async def factory(options: RunnerOptions | None = None, **kwargs: Any) -> ShellRunner:
        if options is None:
            options = RunnerOptions(**kwargs)
        runner = ShellRunner(options)
        runners.append(runner)
        await runner.start()
        return runner

    yield factory

    for runner in reversed(runners):
        await runner.close()
