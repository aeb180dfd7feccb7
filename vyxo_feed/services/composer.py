"""
Feed Composer

The "Mixer" behind the For You feed. Blends four weighted sources:
- 50% Followed: newest videos from people the viewer follows
- 20% Trending: last-24h videos by stored trending score
- 10% Recent: last-24h videos, newest first
- 20% Popular: random sample of videos past the view threshold

Returns rows only (viewer-independent) - hydration happens separately.
"""

import asyncio
import math
import random
import time
from datetime import datetime, timedelta, timezone
from enum import IntEnum
from typing import Callable, Dict, List, Optional, Tuple

from ..config import Settings, get_settings
from ..core.exceptions import FeedTimeoutError
from ..core.logging import get_logger
from ..models.video_card import VideoRow
from ..models.viewer import ViewerContext
from .deduplication import CursorKey, Page, dedupe_by_id, paginate
from .repository import VideoRepository

logger = get_logger(__name__)


class FeedSource(IntEnum):
    """Sources in precedence order; the value is the cursor tier."""
    FOLLOWED = 0
    TRENDING = 1
    RECENT = 2
    POPULAR = 3


class FeedComposer:
    """
    Composes a page of the For You feed.

    Each source is queried for ceil(weight * (limit + 1)) rows; the extra
    row is lookahead for hasMore. Sources are merged in precedence order,
    deduplicated keeping the first occurrence, and ordered by
    (source tier, source sort value desc, id) so cursors stay stable
    across requests.
    """

    def __init__(
        self,
        repository: VideoRepository,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings or get_settings()
        self.repository = repository
        self.rng = rng or random.Random(self.settings.popular_random_seed)
        self.clock = clock

    def _weights(self) -> Dict[FeedSource, float]:
        return {
            FeedSource.FOLLOWED: self.settings.followed_weight,
            FeedSource.TRENDING: self.settings.trending_weight,
            FeedSource.RECENT: self.settings.recent_weight,
            FeedSource.POPULAR: self.settings.popular_weight,
        }

    def _calculate_bucket_sizes(self, limit: int) -> Dict[FeedSource, int]:
        """
        Row budget per source.

        Rounded up, so the blend may overfetch by a few rows.
        """
        search_limit = limit + 1
        return {
            source: math.ceil(round(weight * search_limit, 9))
            for source, weight in self._weights().items()
        }

    @staticmethod
    def _sort_value(source: FeedSource, row: VideoRow) -> float:
        """The value each source orders by (descending)."""
        if source == FeedSource.TRENDING:
            return row.score_trending
        if source == FeedSource.POPULAR:
            return float(row.views_count)
        return row.created_at.timestamp()

    async def _fetch_sources(
        self,
        viewer: ViewerContext,
        budgets: Dict[FeedSource, int],
    ) -> Tuple[List[VideoRow], List[VideoRow], List[VideoRow], List[VideoRow]]:
        """Run the four source queries concurrently under the request timeout."""
        now = datetime.fromtimestamp(self.clock(), timezone.utc)
        since = now - timedelta(hours=self.settings.recent_window_hours)

        fan_out = asyncio.gather(
            self.repository.followed_videos(viewer, budgets[FeedSource.FOLLOWED]),
            self.repository.trending_videos(viewer, since, budgets[FeedSource.TRENDING]),
            self.repository.recent_videos(viewer, since, budgets[FeedSource.RECENT]),
            self.repository.popular_videos(
                viewer,
                self.settings.popular_min_views,
                budgets[FeedSource.POPULAR],
                self.rng,
                pool_size=self.settings.popular_pool_size,
            ),
        )

        timeout = self.settings.feed_query_timeout_seconds
        try:
            return await asyncio.wait_for(fan_out, timeout=timeout)
        except asyncio.TimeoutError:
            logger.error("foryou_sources_timeout", uid=viewer.uid, timeout=timeout)
            raise FeedTimeoutError("foryou", timeout)

    async def compose(
        self,
        viewer: ViewerContext,
        cursor: Optional[str] = None,
        limit: int = 20,
    ) -> Page[VideoRow]:
        """
        Build one page of the For You feed for a viewer.

        Blocked authors and viewed videos are excluded inside each source
        query. Any source failure fails the whole page.
        """
        budgets = self._calculate_bucket_sizes(limit)
        followed, trending, recent, popular = await self._fetch_sources(viewer, budgets)

        tagged = (
            [(FeedSource.FOLLOWED, row) for row in followed]
            + [(FeedSource.TRENDING, row) for row in trending]
            + [(FeedSource.RECENT, row) for row in recent]
            + [(FeedSource.POPULAR, row) for row in popular]
        )
        unique = dedupe_by_id(tagged, key=lambda pair: pair[1].id)

        keyed = [
            (CursorKey(tier=int(source), value=self._sort_value(source, row), id=row.id), row)
            for source, row in unique
        ]
        keyed.sort(key=lambda pair: pair[0].sort_key())

        page = paginate(keyed, cursor, limit)

        logger.info(
            "foryou_composed",
            uid=viewer.uid,
            followed=len(followed),
            trending=len(trending),
            recent=len(recent),
            popular=len(popular),
            unique=len(unique),
            returned=len(page.items),
            has_more=page.has_more,
            cold_start=viewer.is_cold_start,
        )
        return page
