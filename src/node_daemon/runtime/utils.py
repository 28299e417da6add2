from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from typing import Any

from loguru import logger


class InterceptHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1
        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def bridge_uvicorn_logs(*, access_log: bool = False) -> None:
    logging.getLogger().handlers = [InterceptHandler()]
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        lg.handlers = [InterceptHandler()]
        lg.propagate = False
        if name == "uvicorn.access" and not access_log:
            lg.setLevel(logging.CRITICAL)
        else:
            lg.setLevel(logging.DEBUG)


def install_global_handlers() -> None:
    def _excepthook(exc_type, value, tb):
        if exc_type is None or issubclass(exc_type, KeyboardInterrupt):
            return
        logger.opt(exception=(exc_type, value, tb)).error("Uncaught exception: {}", value)

    sys.excepthook = _excepthook


def run_guarded(callback: Callable[[], Any], what: str) -> bool:
    """Call ``callback`` and log, rather than raise, anything it throws."""
    try:
        callback()
    except Exception as err:
        logger.exception("{} failed: {}", what, err)
        return False
    return True
