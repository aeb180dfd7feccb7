"""Core infrastructure modules."""

from .security import get_current_user
from .exceptions import FeedBackendException, FeedTimeoutError, NotFoundError
from .logging import setup_logging, get_logger

__all__ = [
    "get_current_user",
    "FeedBackendException",
    "FeedTimeoutError",
    "NotFoundError",
    "setup_logging",
    "get_logger",
]
