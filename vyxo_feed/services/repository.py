"""
Video Repository

Typed SQLAlchemy queries over the video, social-graph and engagement
tables. Every method opens its own session so the composer can run
source queries concurrently.
"""

import random
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy import Select, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.exceptions import NotFoundError
from ..core.logging import get_logger
from ..db.session import get_session_factory
from ..db.tables import (
    Block,
    Comment,
    Follow,
    Like,
    Sound,
    User,
    Video,
    VideoStatus,
    VideoView,
)
from ..models.video_card import TrendingEntry, VideoRow
from ..models.viewer import ViewerContext

logger = get_logger(__name__)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; everything is stored as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_row(video: Video, author_name, author_image, sound_title, sound_artist) -> VideoRow:
    return VideoRow(
        id=video.id,
        user_id=video.user_id,
        caption=video.caption,
        video_url=video.video_url,
        thumbnail_url=video.thumbnail_url,
        master_playlist_url=video.master_playlist_url,
        mux_thumbnail_url=video.mux_thumbnail_url,
        gif_url=video.gif_url,
        duration=video.duration,
        views_count=video.views_count or 0,
        likes_count=video.likes_count or 0,
        comments_count=video.comments_count or 0,
        shares_count=video.shares_count or 0,
        status=video.status,
        score_trending=video.score_trending or 0.0,
        created_at=as_utc(video.created_at),
        author_name=author_name,
        author_image=author_image,
        sound_id=video.sound_id,
        sound_title=sound_title,
        sound_artist_name=sound_artist,
    )


class VideoRepository:
    """Read and write access to videos for the feed services."""

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        self._session_factory = session_factory or get_session_factory()

    # =========================================================================
    # VIEWER CONTEXT
    # =========================================================================

    async def load_viewer_context(self, uid: str) -> ViewerContext:
        """Resolve followed authors, blocked authors and viewed videos."""
        async with self._session_factory() as session:
            followed = await session.scalars(
                select(Follow.following_id).where(Follow.follower_id == uid)
            )
            blocked = await session.scalars(
                select(Block.blocked_id).where(Block.blocker_id == uid)
            )
            viewed = await session.scalars(
                select(VideoView.video_id).where(VideoView.user_id == uid)
            )
            return ViewerContext(
                uid=uid,
                followed_ids=list(followed),
                blocked_ids=list(blocked),
                viewed_ids=list(viewed),
            )

    async def liked_video_ids(self, uid: str, video_ids: Iterable[str]) -> Set[str]:
        """Subset of video_ids the viewer has liked."""
        ids = list(video_ids)
        if not ids:
            return set()
        async with self._session_factory() as session:
            liked = await session.scalars(
                select(Like.video_id).where(Like.user_id == uid, Like.video_id.in_(ids))
            )
            return set(liked)

    # =========================================================================
    # FEED SOURCES
    # =========================================================================

    def _card_select(self) -> Select:
        return (
            select(Video, User.name, User.image, Sound.title, Sound.artist_name)
            .outerjoin(User, Video.user_id == User.id)
            .outerjoin(Sound, Video.sound_id == Sound.id)
        )

    def _ready_for(self, viewer: ViewerContext) -> list:
        """Ready-only filter plus the viewer's block and view exclusions."""
        conditions = [Video.status == VideoStatus.READY]
        if viewer.blocked_ids:
            conditions.append(Video.user_id.not_in(viewer.blocked_ids))
        if viewer.viewed_ids:
            conditions.append(Video.id.not_in(viewer.viewed_ids))
        return conditions

    async def _fetch_rows(self, stmt: Select) -> List[VideoRow]:
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [_to_row(*row) for row in result.all()]

    async def followed_videos(self, viewer: ViewerContext, limit: int) -> List[VideoRow]:
        """Newest videos from authors the viewer follows."""
        if not viewer.followed_ids or limit <= 0:
            return []
        stmt = (
            self._card_select()
            .where(*self._ready_for(viewer), Video.user_id.in_(viewer.followed_ids))
            .order_by(Video.created_at.desc(), Video.id)
            .limit(limit)
        )
        return await self._fetch_rows(stmt)

    async def trending_videos(
        self, viewer: ViewerContext, since: datetime, limit: int
    ) -> List[VideoRow]:
        """Videos created since `since`, by stored trending score."""
        if limit <= 0:
            return []
        stmt = (
            self._card_select()
            .where(*self._ready_for(viewer), Video.created_at >= since)
            .order_by(Video.score_trending.desc(), Video.id)
            .limit(limit)
        )
        return await self._fetch_rows(stmt)

    async def recent_videos(
        self, viewer: ViewerContext, since: datetime, limit: int
    ) -> List[VideoRow]:
        """Videos created since `since`, newest first."""
        if limit <= 0:
            return []
        stmt = (
            self._card_select()
            .where(*self._ready_for(viewer), Video.created_at >= since)
            .order_by(Video.created_at.desc(), Video.id)
            .limit(limit)
        )
        return await self._fetch_rows(stmt)

    async def popular_videos(
        self,
        viewer: ViewerContext,
        min_views: int,
        limit: int,
        rng: random.Random,
        pool_size: int = 500,
    ) -> List[VideoRow]:
        """
        Random sample of videos with more than `min_views` views.

        Samples from the `pool_size` most viewed candidates using the
        injected rng, so a seeded rng gives a reproducible sample.
        """
        if limit <= 0:
            return []
        async with self._session_factory() as session:
            pool = list(
                await session.scalars(
                    select(Video.id)
                    .where(*self._ready_for(viewer), Video.views_count > min_views)
                    .order_by(Video.views_count.desc(), Video.id)
                    .limit(pool_size)
                )
            )
            if not pool:
                return []
            sample = rng.sample(pool, min(limit, len(pool)))
            result = await session.execute(
                self._card_select().where(Video.id.in_(sample))
            )
            by_id = {row[0].id: _to_row(*row) for row in result.all()}
        return [by_id[video_id] for video_id in sample if video_id in by_id]

    # =========================================================================
    # TRENDING
    # =========================================================================

    async def trending_metrics(self, since: datetime) -> List[TrendingEntry]:
        """
        Engagement counts for every ready video.

        Views and likes are windowed to `since`; shares use the running
        counter and comments are all-time. Scores are left at zero.
        """
        views_24h = (
            select(func.count(VideoView.id))
            .where(VideoView.video_id == Video.id, VideoView.viewed_at >= since)
            .correlate(Video)
            .scalar_subquery()
        )
        likes_24h = (
            select(func.count(Like.id))
            .where(Like.video_id == Video.id, Like.created_at >= since)
            .correlate(Video)
            .scalar_subquery()
        )
        comments = (
            select(func.count(Comment.id))
            .where(Comment.video_id == Video.id)
            .correlate(Video)
            .scalar_subquery()
        )
        stmt = (
            self._card_select()
            .add_columns(
                views_24h.label("views_24h"),
                likes_24h.label("likes_24h"),
                comments.label("comments"),
            )
            .where(Video.status == VideoStatus.READY)
        )

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            entries = []
            for video, name, image, title, artist, views, likes, comment_count in result.all():
                entries.append(
                    TrendingEntry(
                        video=_to_row(video, name, image, title, artist),
                        views_24h=views or 0,
                        likes_24h=likes or 0,
                        shares=video.shares_count or 0,
                        comments=comment_count or 0,
                    )
                )
            return entries

    async def update_trending_scores(self, scores: Dict[str, float]) -> int:
        """Persist scores into videos.score_trending. Returns rows touched."""
        if not scores:
            return 0
        async with self._session_factory() as session:
            async with session.begin():
                # ORM bulk update by primary key
                await session.execute(
                    update(Video),
                    [{"id": video_id, "score_trending": score} for video_id, score in scores.items()],
                )
        return len(scores)

    # =========================================================================
    # VIEWS
    # =========================================================================

    async def record_view(self, video_id: str, uid: str) -> Tuple[bool, int]:
        """
        Record that `uid` watched `video_id`.

        Only the first view per (video, viewer) increments views_count.

        Returns:
            Tuple of (is_new_view, views_count)

        Raises:
            NotFoundError if the video does not exist
        """
        async with self._session_factory() as session:
            exists = await session.scalar(select(Video.id).where(Video.id == video_id))
            if exists is None:
                raise NotFoundError("Video", video_id)

            already = await session.scalar(
                select(VideoView.id).where(
                    VideoView.video_id == video_id, VideoView.user_id == uid
                )
            )
            is_new = False
            if already is None:
                session.add(VideoView(video_id=video_id, user_id=uid))
                try:
                    await session.flush()
                    is_new = True
                except IntegrityError:
                    # A concurrent request recorded the same view first
                    await session.rollback()

            if is_new:
                await session.execute(
                    update(Video)
                    .where(Video.id == video_id)
                    .values(views_count=Video.views_count + 1)
                )
                await session.commit()

            views = await session.scalar(select(Video.views_count).where(Video.id == video_id))
            return is_new, views or 0
