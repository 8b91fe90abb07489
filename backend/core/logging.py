import logging

from .config import Settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Chatty third-party loggers and the level they are held at outside DEBUG.
_NOISY_LOGGERS = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "aiosqlite": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
}


def setup_logging(settings: Settings) -> None:
    """Configure root logging once from ``settings.log_level``.

    uvicorn's loggers follow the application level so access and error lines
    share one format and threshold.
    """
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(level=level, format=LOG_FORMAT)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(level)

    for name, quiet_level in _NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(level if level <= logging.DEBUG else quiet_level)
