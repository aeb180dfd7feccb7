"""
Pytest Fixtures

Shared database, seeding and auth fixtures.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from unittest.mock import patch

import pytest
import pytest_asyncio
from firebase_admin import auth as firebase_auth
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from vyxo_feed.config import Settings
from vyxo_feed.db import Base, Block, Comment, Follow, Like, Sound, User, Video, VideoStatus, VideoView
from vyxo_feed.models.video_card import VideoRow
from vyxo_feed.services.repository import VideoRepository


def make_row(video_id: str, **overrides) -> VideoRow:
    """Build a ready VideoRow with sensible defaults."""
    fields = {
        "id": video_id,
        "user_id": "author_1",
        "video_url": f"https://cdn.vyxo.app/{video_id}.mp4",
        "status": VideoStatus.READY,
        "created_at": datetime.now(timezone.utc),
        "author_name": "Author One",
    }
    fields.update(overrides)
    return VideoRow(**fields)


@pytest.fixture
def test_settings() -> Settings:
    """Settings with a fixed popular seed."""
    return Settings(popular_random_seed=42, feed_query_timeout_seconds=5.0)


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """File-backed SQLite database with all tables created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'feed.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    yield async_sessionmaker(engine, expire_on_commit=False)
    
    await engine.dispose()


@pytest.fixture
def repository(session_factory) -> VideoRepository:
    return VideoRepository(session_factory)


class Seeder:
    """Inserts rows for tests. Timestamps are relative to now (UTC)."""
    
    def __init__(self, session_factory):
        self.session_factory = session_factory
        self.now = datetime.now(timezone.utc)
    
    async def _add(self, *objects):
        async with self.session_factory() as session:
            session.add_all(objects)
            await session.commit()
    
    async def user(self, user_id: str, name: Optional[str] = None, image: Optional[str] = None):
        await self._add(User(id=user_id, name=name or user_id, image=image))
    
    async def sound(self, sound_id: str, title: str, artist_name: Optional[str] = None):
        await self._add(Sound(id=sound_id, title=title, artist_name=artist_name))
    
    async def video(
        self,
        video_id: str,
        user_id: str,
        hours_ago: float = 1,
        status: str = VideoStatus.READY,
        views: int = 0,
        shares: int = 0,
        score: float = 0.0,
        sound_id: Optional[str] = None,
        master_playlist_url: Optional[str] = None,
    ):
        await self._add(
            Video(
                id=video_id,
                user_id=user_id,
                video_url=f"https://cdn.vyxo.app/{video_id}.mp4",
                status=status,
                views_count=views,
                shares_count=shares,
                score_trending=score,
                sound_id=sound_id,
                master_playlist_url=master_playlist_url,
                created_at=self.now - timedelta(hours=hours_ago),
            )
        )
    
    async def follow(self, follower_id: str, following_id: str):
        await self._add(Follow(follower_id=follower_id, following_id=following_id))
    
    async def block(self, blocker_id: str, blocked_id: str):
        await self._add(Block(blocker_id=blocker_id, blocked_id=blocked_id))
    
    async def view(self, video_id: str, user_id: str, hours_ago: float = 0):
        await self._add(
            VideoView(
                video_id=video_id,
                user_id=user_id,
                viewed_at=self.now - timedelta(hours=hours_ago),
            )
        )
    
    async def like(self, user_id: str, video_id: str, hours_ago: float = 0):
        await self._add(
            Like(user_id=user_id, video_id=video_id, created_at=self.now - timedelta(hours=hours_ago))
        )
    
    async def comment(self, video_id: str, user_id: str, content: str = "nice"):
        await self._add(Comment(video_id=video_id, user_id=user_id, content=content))


@pytest.fixture
def seed(session_factory) -> Seeder:
    return Seeder(session_factory)


@pytest.fixture
def mock_firebase():
    """Mock Firebase token verification."""
    with patch("vyxo_feed.core.security.initialize_firebase"), \
         patch("vyxo_feed.core.security.auth") as mock_auth:
        mock_auth.ExpiredIdTokenError = firebase_auth.ExpiredIdTokenError
        mock_auth.InvalidIdTokenError = firebase_auth.InvalidIdTokenError
        mock_auth.verify_id_token.return_value = {
            "uid": "viewer_1",
            "email": "viewer@example.com",
            "name": "Viewer One",
        }
        yield mock_auth


@pytest.fixture
def auth_headers():
    """Auth headers with a mock token."""
    return {"Authorization": "Bearer mock_firebase_token"}
