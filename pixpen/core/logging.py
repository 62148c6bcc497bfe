from __future__ import annotations

import logging
import sys
import time
from contextlib import contextmanager
from typing import Iterator

from loguru import logger

from pixpen.core.config import Settings


class InterceptHandler(logging.Handler):
    """Route stdlib records (uvicorn, httpx) into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def configure_logging(settings: Settings) -> None:
    logger.remove()
    logger.add(
        sys.stdout,
        level=settings.log_level.upper(),
        backtrace=False,
        diagnose=False,
        enqueue=True,
    )
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "httpx"):
        std_logger = logging.getLogger(name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False


@contextmanager
def timed(label: str, level: str = "INFO") -> Iterator[None]:
    """Log how long the wrapped block took, in milliseconds."""
    t0 = time.perf_counter()
    try:
        yield
    finally:
        logger.log(level, "{} took {:.2f}ms", label, (time.perf_counter() - t0) * 1000)
