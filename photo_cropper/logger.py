import logging
import os
import sys

BASE_NAME = "photo_cropper"
LEVEL_ENV = "PHOTO_CROPPER_LOG_LEVEL"
CATS_ENV = "PHOTO_CROPPER_LOG_CATS"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


class _CategoryFilter(logging.Filter):
    """Pass only records whose last logger-name segment is allow-listed."""

    def __init__(self, allowed: set[str]) -> None:
        super().__init__()
        self.allowed = allowed

    def filter(self, record: logging.LogRecord) -> bool:
        # photo_cropper.engine -> "engine"
        return record.name.rsplit(".", 1)[-1] in self.allowed


def _level_from_env(default: int) -> int:
    return _LEVELS.get((os.getenv(LEVEL_ENV) or "").strip().lower(), default)


def _categories_from_env() -> set[str]:
    raw = os.getenv(CATS_ENV) or ""
    return {c.strip() for c in raw.split(",") if c.strip()}


def _stderr_handler(logger: logging.Logger) -> logging.StreamHandler:
    for h in logger.handlers:
        if isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is sys.stderr:
            return h
    handler = logging.StreamHandler(stream=sys.stderr)
    logger.addHandler(handler)
    return handler


def setup_logger(level: int = logging.INFO, name: str = BASE_NAME) -> logging.Logger:
    """Create or refresh the package logger.

    Env overrides are re-read on every call so a host application can change
    them after import. The logger keeps exactly one stderr handler whose
    formatter and category filter are replaced in place.
    """
    logger = logging.getLogger(name)
    logger.setLevel(_level_from_env(level))

    handler = _stderr_handler(logger)
    handler.setFormatter(logging.Formatter("[%(asctime)s] %(levelname)s %(name)s: %(message)s", datefmt="%H:%M:%S"))
    handler.filters.clear()
    cats = _categories_from_env()
    if cats:
        handler.addFilter(_CategoryFilter(cats))

    logger.propagate = False
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    base = setup_logger()
    return base.getChild(name) if name else base
