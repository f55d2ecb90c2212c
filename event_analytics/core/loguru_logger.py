import sys
import logging
from pathlib import Path
from loguru import logger

from event_analytics.core.config import settings

# Formatters
CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level:<8}</level> | "
    "<cyan>{file}:{function}:{line}</cyan> | "
    "<level>{message}</level>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss} | {level:<8} | "
    "{file}:{function}:{line} | {message}"
)

# External loggers routed through loguru
EXTERNAL_LOGGERS = [
    "asyncpg",
    "aiosqlite",
    "sqlalchemy",
    "sqlalchemy.engine",
]


# Intercept standard logging → loguru
class InterceptHandler(logging.Handler):
    def emit(self, record):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(depth=6, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logger(level: str | None = None, log_file: Path | None = None) -> None:
    """
    Replace loguru's default handler with a console sink and, when a log file
    is configured, a rotating file sink. Stdlib logging from the database
    drivers is redirected into loguru.
    """
    level = level or settings.log.level
    log_file = log_file if log_file is not None else settings.log.file

    logger.remove()

    logger.add(
        sys.stdout,
        level=level,
        format=CONSOLE_FORMAT,
        colorize=True,
    )

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_file),
            level=level,
            rotation="5 MB",
            retention=10,
            compression="zip",
            encoding="utf-8",
            format=FILE_FORMAT,
            backtrace=True,
            diagnose=False,
            enqueue=True,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    for name in EXTERNAL_LOGGERS:
        ext_logger = logging.getLogger(name)
        ext_logger.handlers.clear()
        ext_logger.addHandler(InterceptHandler())
        ext_logger.setLevel(level)
        ext_logger.propagate = False
