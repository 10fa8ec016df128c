from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from pathlib import Path

_LOGGING_CONFIGURED = False
_HANDLER: logging.Handler | None = None


def _make_handler(filename: str | Path | None) -> logging.Handler:
    if filename:
        return logging.FileHandler(str(filename), encoding="utf-8")
    return logging.StreamHandler(sys.stderr)


def setup_logging(filename: str | Path | None = None) -> structlog.BoundLogger:
    """Set up structured logging for the repo_snapshot package.

    Calling it again with a filename after the first configuration redirects
    the output to that file.

    Args:
        filename: Optional path to a log file. If None, logs are written to stderr.

    Returns:
        A structlog logger instance configured for the repo_snapshot package.
    """
    global _LOGGING_CONFIGURED, _HANDLER  # noqa: PLW0603
    if not _LOGGING_CONFIGURED:
        _HANDLER = _make_handler(filename)
        logging.basicConfig(
            level=logging.INFO,
            handlers=[_HANDLER],
            format="%(message)s",
        )
        structlog.configure(
            processors=[
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_CONFIGURED = True
    elif filename:
        root = logging.getLogger()
        if _HANDLER is not None:
            root.removeHandler(_HANDLER)
            _HANDLER.close()
        _HANDLER = _make_handler(filename)
        _HANDLER.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(_HANDLER)

    return structlog.get_logger("repo_snapshot")


logger = setup_logging()
