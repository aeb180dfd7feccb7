"""
Trending Scorer

Ranks every ready video by recent engagement:

    score = views_24h * 0.4 + likes_24h * 0.3 + shares * 0.2 + comments * 0.1

The ranked list is computed for all viewers at once and kept in the
trending cache for `ttl` seconds. Recomputes are single-flight: tasks
that find the snapshot stale while another task is recomputing wait
for that result instead of running the aggregation again.
"""

import asyncio
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Tuple

from ..config import Settings, get_settings
from ..core.logging import get_logger
from ..models.video_card import TrendingEntry, TrendingSnapshot, VideoRow
from .cache_service import TrendingCache
from .deduplication import CursorKey, Page, paginate
from .repository import VideoRepository

logger = get_logger(__name__)

VIEWS_WEIGHT = 0.4
LIKES_WEIGHT = 0.3
SHARES_WEIGHT = 0.2
COMMENTS_WEIGHT = 0.1

# Scores are compared and cached at fixed precision
SCORE_PRECISION = 6


def compute_trending_score(views_24h: int, likes_24h: int, shares: int, comments: int) -> float:
    """Weighted engagement score, rounded to SCORE_PRECISION places."""
    score = (
        views_24h * VIEWS_WEIGHT
        + likes_24h * LIKES_WEIGHT
        + shares * SHARES_WEIGHT
        + comments * COMMENTS_WEIGHT
    )
    return round(score, SCORE_PRECISION)


def rank_entries(entries: List[TrendingEntry]) -> List[TrendingEntry]:
    """Score entries and sort them best first (ties broken by id)."""
    scored = [
        entry.model_copy(
            update={
                "score": compute_trending_score(
                    entry.views_24h, entry.likes_24h, entry.shares, entry.comments
                )
            }
        )
        for entry in entries
    ]
    scored.sort(key=lambda e: (-e.score, e.video.id))
    return scored


class TrendingScorer:
    """
    Serves paginated slices of the cached trending ranking.

    Cache states:
    - valid: snapshot younger than cache.ttl, reused as-is
    - stale: expired or missing, rebuilt on the next request
    """

    def __init__(
        self,
        repository: VideoRepository,
        cache: TrendingCache,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings or get_settings()
        self.repository = repository
        self.cache = cache
        self.clock = clock
        self._recompute_lock = asyncio.Lock()

    def _is_valid(self, snapshot: Optional[TrendingSnapshot]) -> bool:
        if snapshot is None:
            return False
        return (self.clock() - snapshot.computed_at) < self.cache.ttl

    async def recompute(self) -> TrendingSnapshot:
        """
        Rebuild the ranking from the source tables and cache it.

        Scores are also written back to videos.score_trending, which the
        For You trending source orders by.
        """
        now = self.clock()
        since = datetime.fromtimestamp(now, timezone.utc) - timedelta(
            hours=self.settings.trending_window_hours
        )

        entries = await self.repository.trending_metrics(since)
        snapshot = TrendingSnapshot(entries=rank_entries(entries), computed_at=now)
        await self.cache.set(snapshot)
        updated = await self.repository.update_trending_scores(
            {e.video.id: e.score for e in snapshot.entries}
        )

        logger.info(
            "trending_recomputed",
            videos=len(snapshot.entries),
            scores_persisted=updated,
            top_score=snapshot.entries[0].score if snapshot.entries else 0.0,
        )
        return snapshot

    async def get_snapshot(self) -> Tuple[TrendingSnapshot, bool]:
        """
        Current ranking.

        Returns:
            Tuple of (snapshot, served_from_cache)
        """
        snapshot = await self.cache.get()
        if self._is_valid(snapshot):
            logger.debug("trending_cache_hit", age_seconds=round(self.clock() - snapshot.computed_at, 1))
            return snapshot, True

        async with self._recompute_lock:
            # Another task may have rebuilt it while we waited
            snapshot = await self.cache.get()
            if self._is_valid(snapshot):
                return snapshot, True

            try:
                return await self.recompute(), False
            except Exception as e:
                if self.settings.trending_serve_stale_on_error and snapshot is not None:
                    logger.warning(
                        "trending_recompute_failed_serving_stale",
                        error=str(e),
                        age_seconds=round(self.clock() - snapshot.computed_at, 1),
                    )
                    return snapshot, True
                raise

    async def get_page(self, cursor: Optional[str], limit: int) -> Tuple[Page[VideoRow], bool]:
        """
        One page of the ranking.

        Returns:
            Tuple of (page of rows, served_from_cache)
        """
        snapshot, cache_hit = await self.get_snapshot()
        keyed = [
            (CursorKey(tier=0, value=entry.score, id=entry.video.id), entry.video)
            for entry in snapshot.entries
        ]
        return paginate(keyed, cursor, limit), cache_hit

    async def refresh(self) -> TrendingSnapshot:
        """Force a recompute regardless of cache age. Used by the scheduler."""
        async with self._recompute_lock:
            return await self.recompute()
