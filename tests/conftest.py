"""Pytest configuration and fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Project root
PROJECT_ROOT = Path(__file__).parent.parent

# Add src to the Python path (development checkout)
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from shell_runner.config import reload_config  # noqa: E402
from shell_runner.options import RunnerOptions  # noqa: E402
from shell_runner.pytest_plugin import shell_runner  # noqa: E402,F401

FIXTURES_DIR = PROJECT_ROOT / "tests" / "fixtures"
FAKE_SHELL_PATH = FIXTURES_DIR / "fake_shell.py"


@pytest.fixture(autouse=True)
def fresh_config():
    """Reload the global config so environment patches in one test do not leak."""
    reload_config()
    yield
    reload_config()


@pytest.fixture
def fake_shell_program() -> list[str]:
    """argv prefix launching the fake shell."""
    return [sys.executable, str(FAKE_SHELL_PATH)]


@pytest.fixture
def make_options(fake_shell_program: list[str]):
    """Build RunnerOptions pointed at the fake shell, with short timeouts."""

    def factory(**kwargs) -> RunnerOptions:
        kwargs.setdefault("program", fake_shell_program)
        kwargs.setdefault("prompt_timeout", 5.0)
        return RunnerOptions(**kwargs)

    return factory
