import logging
import os
import sys

from loguru import logger

# Third-party loggers that go through stdlib logging
_NOISY_LOGGERS = ("httpx", "httpcore", "redis")


class _InterceptHandler(logging.Handler):
    """Forward stdlib logging records (httpx, redis) into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(depth=6, exception=record.exc_info).log(level, record.getMessage())


def setup_logger(*, json_logs: bool = False, level: str = "INFO") -> None:
    """Configure loguru for the scanner.

    Console level controlled by LOG_LEVEL env (default: INFO).
    File always captures DEBUG: every degraded lookup (404, 429, timeout)
    is logged there even when the console only shows INFO.
    """
    console_level = os.getenv("LOG_LEVEL", level).upper()
    logger.remove()

    if json_logs:
        logger.add(sys.stdout, serialize=True, level=console_level)
    else:
        logger.add(
            sys.stdout,
            format=(
                "<green>{time:HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
                "<level>{message}</level>"
            ),
            level=console_level,
            colorize=True,
        )

    logger.add(
        "logs/rugscope_{time:YYYY-MM-DD}.log",
        rotation="50 MB",
        retention="3 days",
        compression="gz",
        level="DEBUG",
        serialize=json_logs,
    )

    logging.basicConfig(handlers=[_InterceptHandler()], level=logging.WARNING, force=True)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
