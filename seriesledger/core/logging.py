"""
Loguru logging setup.

Standard library loggers (ours, uvicorn's, the torrent client libraries') are
routed through Loguru. Besides the console there are two rotating files under
the log directory: ``seriesledger.log`` with everything, and ``activity.log``
with only the download decisions made by the services layer.
"""

import logging
import sys
from pathlib import Path

from loguru import logger

from seriesledger.config import settings

# Client libraries log every HTTP/RPC round trip at DEBUG
QUIET_LOGGERS = ("qbittorrentapi", "urllib3", "transmission_rpc", "aiosqlite")

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


class InterceptHandler(logging.Handler):
    """Forward stdlib records to Loguru, keeping the original caller location."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _is_activity(record) -> bool:
    return (record["name"] or "").startswith("seriesledger.services")


def setup_logging(log_dir: str | None = None, debug: bool | None = None) -> None:
    """Install the intercept handler and the Loguru sinks."""
    debug = settings.debug if debug is None else debug

    logging.root.handlers = [InterceptHandler()]
    logging.root.setLevel(logging.DEBUG if debug else logging.INFO)
    for name in list(logging.root.manager.loggerDict):
        existing = logging.getLogger(name)
        existing.handlers = []
        existing.propagate = True
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if debug else "INFO", format=CONSOLE_FORMAT)

    directory = Path(log_dir or settings.log_dir)
    directory.mkdir(parents=True, exist_ok=True)

    file_options = dict(
        rotation="10 MB",
        retention="1 week",
        compression="zip",
        format=FILE_FORMAT,
        enqueue=True,
    )
    logger.add(str(directory / "seriesledger.log"), level="DEBUG", backtrace=True, **file_options)
    logger.add(str(directory / "activity.log"), level="INFO", filter=_is_activity, **file_options)

    logger.info(f"Logging to {directory}")
