"""
Logging configuration
"""
import sys

from loguru import logger

from kawa.config import get_settings

settings = get_settings()


def setup_logger():
    """Configure logger with console and daily file sinks"""
    logger.remove()  # Remove default handler

    # Console logging
    logger.add(
        sys.stderr,
        colorize=True,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        level=settings.log_level,
    )

    # File logging
    logger.add(
        str(settings.data_dir / "logs" / "kawa_{time:YYYY-MM-DD}.log"),
        rotation="00:00",
        retention="30 days",
        level="INFO",
    )

    return logger


# Initialize logger
log = setup_logger()
