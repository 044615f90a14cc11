"""Logging configuration and process-level fault handling."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from typing import Any

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=LOG_FORMAT)
    root.setLevel(level.upper())


def handle_unhandled_loop_exception(
    loop: asyncio.AbstractEventLoop,
    context: dict[str, Any],
    *,
    terminate: bool,
) -> None:
    """Log an exception nobody awaited and optionally stop the process."""
    exception = context.get("exception")
    logger.critical(
        "Unhandled exception in event loop: %s",
        context.get("message", "no message"),
        exc_info=exception,
    )
    if terminate:
        # Unknown state after an unobserved fault; let the server shut down.
        os.kill(os.getpid(), signal.SIGTERM)


def install_fail_fast_handler(loop: asyncio.AbstractEventLoop, *, terminate: bool) -> None:
    loop.set_exception_handler(
        lambda current_loop, context: handle_unhandled_loop_exception(
            current_loop,
            context,
            terminate=terminate,
        )
    )
