"""Logging setup with the signed-in user stamped on every record."""
import logging
import sys
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from typing import Optional

ROOT_LOGGER_NAME = "finance_tracker"

# One value per thread or asyncio task
_current_user: ContextVar[Optional[str]] = ContextVar("current_user", default=None)


class UserContextFilter(logging.Filter):
    """Add the current user id to log records."""

    def filter(self, record):
        record.user_id = _current_user.get() or "anonymous"
        return True


_user_filter = UserContextFilter()


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """Attach console (and optionally rotating file) handlers to the app logger.

    Safe to call more than once; existing handlers are replaced.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.handlers.clear()

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] [user:%(user_id)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(
            RotatingFileHandler(log_file, maxBytes=5 * 1024 * 1024, backupCount=5, encoding="utf-8")
        )

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(_user_filter)
        logger.addHandler(handler)

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the app logger or one of its children."""
    if not name or name == ROOT_LOGGER_NAME:
        return logging.getLogger(ROOT_LOGGER_NAME)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def set_user_context(user_id: Optional[str]):
    """Set (or clear) the user id shown on subsequent log lines of this context."""
    _current_user.set(user_id)


def current_user_id() -> Optional[str]:
    return _current_user.get()
