"""Loguru setup for the service.

Usage:
    from satisfaction_svc.logging_config import configure_logging
    configure_logging('INFO')
"""

import logging
import sys

from loguru import logger

_STDLIB_LOGGERS = ('uvicorn', 'uvicorn.error', 'uvicorn.access', 'fastapi')


class InterceptHandler(logging.Handler):
    """Forward stdlib logging records (uvicorn, fastapi) into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Walk back to the frame that issued the logging call
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def configure_logging(level: str = 'INFO', json: bool = False) -> None:
    logger.remove()
    if json:
        logger.add(sys.stderr, level=level.upper(), serialize=True)
    else:
        logger.add(
            sys.stderr,
            level=level.upper(),
            format='{time:YYYY-MM-DD HH:mm:ss} {level:<8} {name} - {message}',
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in _STDLIB_LOGGERS:
        std_logger = logging.getLogger(name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False
