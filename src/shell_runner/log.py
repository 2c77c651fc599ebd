"""Logging setup for verbose shell runner sessions."""

from __future__ import annotations

import logging
import sys

from .config import Config, get_config

__all__ = ["setup_logging", "LOGGER_NAME"]

LOGGER_NAME = "shell_runner"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Handler installed by setup_logging, replaced on repeated calls
_handler: logging.Handler | None = None


def setup_logging(config: Config | None = None) -> logging.Logger:
    """Attach a stderr handler to the shell_runner logger namespace.

    Verbose mode logs at DEBUG (process I/O tracing), otherwise INFO.
    Calling it again swaps the previous handler instead of stacking a new one.

    Args:
        config: Configuration to read verbosity from (default: global config)

    Returns:
        The shell_runner namespace logger
    """
    global _handler
    config = config or get_config()

    logger = logging.getLogger(LOGGER_NAME)
    if _handler is not None:
        logger.removeHandler(_handler)

    _handler = logging.StreamHandler(sys.stderr)
    _handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(_handler)
    logger.setLevel(logging.DEBUG if config.verbose else logging.INFO)
    return logger
