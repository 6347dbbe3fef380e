# app/core/logger.py
import sys

from loguru import logger

from app.core.config import settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def setup_logging(level: str = settings.LOG_LEVEL) -> None:
    """
    Route every log record to stdout at the given level.

    Tracebacks are only expanded outside production, where variable values
    in them could leak provider keys.
    """
    # Remove default handler added by loguru
    logger.remove()

    verbose_tracebacks = settings.ENVIRONMENT != "production"
    logger.add(
        sys.stdout,
        level=level.upper(),
        format=LOG_FORMAT,
        backtrace=verbose_tracebacks,
        diagnose=verbose_tracebacks,
    )


setup_logging()

__all__ = ["logger", "setup_logging"]
