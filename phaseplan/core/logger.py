"""Logger configuration for phaseplan.

The API app factory and the CLI call configure_from_settings(); tests leave
loguru's default sink in place.
"""

import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
# File lines keep the structured context passed via extra= (e.g. PHASE_GRAPH_FAILED details)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} - {message} | {extra}"


def setup_logger(level: str = "INFO", log_file: str | None = None) -> None:
    """Replace loguru's sinks with a stderr sink and, if log_file is set, a rotating file.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path of the log file
    """
    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, colorize=True)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(log_path, format=FILE_FORMAT, level=level, rotation="10 MB", retention="7 days")

    logger.debug(f"Logging to stderr{f' and {log_file}' if log_file else ''} at {level}")


def configure_from_settings() -> None:
    """Configure logging from LOG_LEVEL / LOG_FILE settings."""
    from phaseplan.config.settings import settings

    setup_logger(level=settings.log_level, log_file=settings.log_file)
