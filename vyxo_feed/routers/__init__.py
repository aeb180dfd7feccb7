"""API Routers."""

from .feed import router as feed_router
from .videos import router as videos_router
from .scheduler import router as scheduler_router

__all__ = [
    "feed_router",
    "videos_router",
    "scheduler_router",
]
