"""loguru setup shared by the API server and the reporter.

Everything goes to stderr: the reporter keeps stdout for its dry-run JSON.
Records from stdlib loggers (uvicorn, httpx, sqlalchemy, alembic) are
forwarded into loguru so both processes emit one format.

The server uses a detailed format with the call site; the reporter runs
from cron and uses a compact one.
"""

from __future__ import annotations

import logging
import sys

from loguru import logger

SERVER_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

REPORTER_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} pawprint-reporter {level}: {message}"

QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "sqlalchemy.engine")


class _StdlibToLoguru(logging.Handler):
    """Re-emit stdlib ``LogRecord``s through loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip logging's own frames so loguru reports the caller.
        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = "INFO", *, compact: bool = False) -> None:
    """Make loguru the only log sink.

    Call once at process start.  ``compact=True`` selects the reporter format.
    """
    level = level.upper()
    logger.remove()
    logger.add(sys.stderr, level=level, format=REPORTER_FORMAT if compact else SERVER_FORMAT)

    logging.basicConfig(handlers=[_StdlibToLoguru()], level=0, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
