"""
For You Composer Tests

Bucket budgets, precedence dedup, exclusions and cursor traversal.
"""

import asyncio
import random
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from vyxo_feed.core.exceptions import FeedTimeoutError
from vyxo_feed.db import VideoStatus
from vyxo_feed.models.viewer import ViewerContext
from vyxo_feed.services.composer import FeedComposer, FeedSource

from .conftest import make_row


@pytest.fixture
def mock_repository():
    """Repository whose four sources return nothing by default."""
    repo = AsyncMock()
    repo.followed_videos.return_value = []
    repo.trending_videos.return_value = []
    repo.recent_videos.return_value = []
    repo.popular_videos.return_value = []
    return repo


class TestBucketSizes:
    def test_default_limit(self, mock_repository, test_settings):
        composer = FeedComposer(mock_repository, settings=test_settings)
        sizes = composer._calculate_bucket_sizes(20)
        
        # ceil(weight * 21)
        assert sizes == {
            FeedSource.FOLLOWED: 11,
            FeedSource.TRENDING: 5,
            FeedSource.RECENT: 3,
            FeedSource.POPULAR: 5,
        }
    
    def test_whole_products_are_not_rounded_up(self, mock_repository, test_settings):
        composer = FeedComposer(mock_repository, settings=test_settings)
        sizes = composer._calculate_bucket_sizes(9)
        
        assert sizes == {
            FeedSource.FOLLOWED: 5,
            FeedSource.TRENDING: 2,
            FeedSource.RECENT: 1,
            FeedSource.POPULAR: 2,
        }
    
    @pytest.mark.asyncio
    async def test_budgets_passed_to_sources(self, mock_repository, test_settings):
        composer = FeedComposer(mock_repository, settings=test_settings)
        viewer = ViewerContext(uid="viewer_1", followed_ids=["author_1"])
        
        await composer.compose(viewer, limit=20)
        
        assert mock_repository.followed_videos.call_args.args[1] == 11
        assert mock_repository.trending_videos.call_args.args[2] == 5
        assert mock_repository.recent_videos.call_args.args[2] == 3
        assert mock_repository.popular_videos.call_args.args[2] == 5
        assert mock_repository.popular_videos.call_args.kwargs["pool_size"] == test_settings.popular_pool_size


class TestMerge:
    @pytest.mark.asyncio
    async def test_duplicate_claimed_by_earliest_source(self, mock_repository, test_settings):
        now = datetime.now(timezone.utc)
        shared = make_row("shared", created_at=now - timedelta(hours=30), score_trending=50.0, views_count=900)
        mock_repository.followed_videos.return_value = [make_row("f1", created_at=now), shared]
        mock_repository.trending_videos.return_value = [shared, make_row("t1", score_trending=10.0)]
        mock_repository.popular_videos.return_value = [shared]
        
        composer = FeedComposer(mock_repository, settings=test_settings)
        page = await composer.compose(ViewerContext(uid="viewer_1"), limit=10)
        
        ids = [row.id for row in page.items]
        assert ids == ["f1", "shared", "t1"]
        assert page.has_more is False
    
    @pytest.mark.asyncio
    async def test_sources_kept_in_precedence_order(self, mock_repository, test_settings):
        mock_repository.popular_videos.return_value = [
            make_row("p_low", views_count=20),
            make_row("p_high", views_count=5000),
        ]
        mock_repository.recent_videos.return_value = [make_row("r1")]
        mock_repository.trending_videos.return_value = [make_row("t1", score_trending=3.0)]
        
        composer = FeedComposer(mock_repository, settings=test_settings)
        page = await composer.compose(ViewerContext(uid="viewer_1"), limit=10)
        
        # Popular sample is ordered by views within its tier
        assert [row.id for row in page.items] == ["t1", "r1", "p_high", "p_low"]
    
    @pytest.mark.asyncio
    async def test_empty_sources_give_empty_page(self, mock_repository, test_settings):
        composer = FeedComposer(mock_repository, settings=test_settings)
        page = await composer.compose(ViewerContext(uid="viewer_1"))
        
        assert page.items == []
        assert page.has_more is False
        assert page.next_cursor is None
    
    @pytest.mark.asyncio
    async def test_source_failure_fails_the_page(self, mock_repository, test_settings):
        mock_repository.trending_videos.side_effect = RuntimeError("db down")
        composer = FeedComposer(mock_repository, settings=test_settings)
        
        with pytest.raises(RuntimeError):
            await composer.compose(ViewerContext(uid="viewer_1"))
    
    @pytest.mark.asyncio
    async def test_slow_sources_time_out(self, mock_repository, test_settings):
        async def slow(*args, **kwargs):
            await asyncio.sleep(1)
            return []
        
        mock_repository.recent_videos.side_effect = slow
        test_settings.feed_query_timeout_seconds = 0.05
        composer = FeedComposer(mock_repository, settings=test_settings)
        
        with pytest.raises(FeedTimeoutError) as exc_info:
            await composer.compose(ViewerContext(uid="viewer_1"))
        assert exc_info.value.status_code == 504


class TestAgainstDatabase:
    """Composer over real queries (SQLite)."""
    
    @pytest.fixture
    def composer(self, repository, test_settings):
        return FeedComposer(repository, settings=test_settings, rng=random.Random(7))
    
    @pytest.mark.asyncio
    async def test_only_ready_videos(self, composer, repository, seed):
        await seed.user("viewer_1")
        await seed.user("author_1")
        await seed.follow("viewer_1", "author_1")
        await seed.video("ready_1", "author_1", views=50)
        for status in (VideoStatus.UPLOADING, VideoStatus.PROCESSING, VideoStatus.ERROR):
            await seed.video(f"{status}_1", "author_1", status=status, views=50)
        
        viewer = await repository.load_viewer_context("viewer_1")
        page = await composer.compose(viewer, limit=20)
        
        assert [row.id for row in page.items] == ["ready_1"]
    
    @pytest.mark.asyncio
    async def test_blocked_authors_and_viewed_videos_excluded(self, composer, repository, seed):
        await seed.user("viewer_1")
        await seed.user("author_1")
        await seed.user("blocked_author")
        await seed.follow("viewer_1", "author_1")
        await seed.follow("viewer_1", "blocked_author")
        await seed.block("viewer_1", "blocked_author")
        await seed.video("keep", "author_1", views=500)
        await seed.video("seen", "author_1", views=500)
        await seed.video("from_blocked", "blocked_author", views=500)
        await seed.view("seen", "viewer_1")
        
        viewer = await repository.load_viewer_context("viewer_1")
        page = await composer.compose(viewer, limit=20)
        
        assert [row.id for row in page.items] == ["keep"]
    
    @pytest.mark.asyncio
    async def test_cold_start_viewer_gets_a_feed(self, composer, repository, seed):
        await seed.user("newcomer")
        await seed.user("author_1")
        await seed.video("fresh", "author_1", hours_ago=2)
        await seed.video("classic", "author_1", hours_ago=24 * 30, views=1000)
        
        viewer = await repository.load_viewer_context("newcomer")
        assert viewer.is_cold_start
        
        page = await composer.compose(viewer, limit=20)
        
        assert {row.id for row in page.items} == {"fresh", "classic"}
    
    @pytest.mark.asyncio
    async def test_cursor_traversal_terminates_without_repeats(self, composer, repository, seed):
        await seed.user("viewer_1")
        await seed.user("author_1")
        await seed.user("author_2")
        await seed.follow("viewer_1", "author_1")
        for i in range(12):
            await seed.video(f"f{i:02d}", "author_1", hours_ago=i + 0.5, views=20 + i, score=float(i))
        for i in range(12):
            await seed.video(f"o{i:02d}", "author_2", hours_ago=i + 0.5, views=100 * i, score=float(i * 2))
        
        viewer = await repository.load_viewer_context("viewer_1")
        served = []
        cursor = None
        for _ in range(50):
            page = await composer.compose(viewer, cursor=cursor, limit=4)
            served.extend(row.id for row in page.items)
            if not page.has_more:
                break
            cursor = page.next_cursor
        
        assert page.has_more is False
        assert page.next_cursor is None
        assert len(served) == len(set(served))
