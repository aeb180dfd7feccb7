"""Services for feed composition, trending and hydration."""

from .repository import VideoRepository
from .deduplication import CursorKey, Page, dedupe_by_id, encode_cursor, decode_cursor, paginate
from .composer import FeedComposer, FeedSource
from .hydrator import Hydrator
from .trending import TrendingScorer, compute_trending_score
from .cache_service import (
    TrendingCache,
    InMemoryTrendingCache,
    RedisTrendingCache,
    build_trending_cache,
    get_redis_client,
)
from .scheduler import SchedulerService

__all__ = [
    "VideoRepository",
    "CursorKey",
    "Page",
    "dedupe_by_id",
    "encode_cursor",
    "decode_cursor",
    "paginate",
    "FeedComposer",
    "FeedSource",
    "Hydrator",
    "TrendingScorer",
    "compute_trending_score",
    "TrendingCache",
    "InMemoryTrendingCache",
    "RedisTrendingCache",
    "build_trending_cache",
    "get_redis_client",
    "SchedulerService",
]
