"""
Video Card Models

The hydrated video payload returned by both feeds, plus the
viewer-agnostic trending entry held in the trending cache.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict


class Author(BaseModel):
    """Public author info embedded in a card."""
    id: Optional[str] = None
    username: Optional[str] = None
    avatar: Optional[str] = None


class SoundInfo(BaseModel):
    """Sound attached to a video."""
    id: str
    title: Optional[str] = None
    artist_name: Optional[str] = Field(None, alias="artistName")
    
    model_config = ConfigDict(populate_by_name=True)


class VideoRow(BaseModel):
    """
    A ready video joined with its author and sound.
    
    This is what the repository hands to the composer and scorer;
    it carries no viewer-specific state so it can be cached.
    """
    id: str
    user_id: str
    caption: Optional[str] = None
    video_url: str
    thumbnail_url: Optional[str] = None
    master_playlist_url: Optional[str] = None
    mux_thumbnail_url: Optional[str] = None
    gif_url: Optional[str] = None
    duration: Optional[int] = None
    views_count: int = 0
    likes_count: int = 0
    comments_count: int = 0
    shares_count: int = 0
    status: str
    score_trending: float = 0.0
    created_at: datetime
    author_name: Optional[str] = None
    author_image: Optional[str] = None
    sound_id: Optional[str] = None
    sound_title: Optional[str] = None
    sound_artist_name: Optional[str] = None


class VideoCard(BaseModel):
    """Video as rendered by the mobile client."""
    id: str
    user_id: str = Field(alias="userId")
    caption: Optional[str] = None
    video_url: str = Field(alias="videoUrl")
    thumbnail_url: Optional[str] = Field(None, alias="thumbnailUrl")
    master_playlist_url: Optional[str] = Field(None, alias="masterPlaylistUrl")
    mux_thumbnail_url: Optional[str] = Field(None, alias="muxThumbnailUrl")
    gif_url: Optional[str] = Field(None, alias="gifUrl")
    duration: Optional[int] = None
    views_count: int = Field(0, alias="viewsCount")
    likes_count: int = Field(0, alias="likesCount")
    comments_count: int = Field(0, alias="commentsCount")
    shares_count: int = Field(0, alias="sharesCount")
    status: str
    is_liked: bool = Field(False, alias="isLiked")
    author: Author
    sound: Optional[SoundInfo] = None
    
    model_config = ConfigDict(populate_by_name=True)


class TrendingVideoCard(VideoCard):
    """Trending card with its rank (1-based on the first page, -1 after)."""
    rank: int


class TrendingEntry(BaseModel):
    """A scored video inside a trending snapshot."""
    video: VideoRow
    views_24h: int = 0
    likes_24h: int = 0
    shares: int = 0
    comments: int = 0
    score: float = 0.0


class TrendingSnapshot(BaseModel):
    """Ranked trending entries and the moment they were computed (epoch seconds)."""
    entries: list[TrendingEntry] = Field(default_factory=list)
    computed_at: float
