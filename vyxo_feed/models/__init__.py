"""Pydantic models for the VYXO feed service."""

from .video_card import (
    Author,
    SoundInfo,
    VideoRow,
    VideoCard,
    TrendingVideoCard,
    TrendingEntry,
    TrendingSnapshot,
)
from .viewer import ViewerContext
from .response import FeedPage, TrendingPage, ViewRecorded

__all__ = [
    "Author",
    "SoundInfo",
    "VideoRow",
    "VideoCard",
    "TrendingVideoCard",
    "TrendingEntry",
    "TrendingSnapshot",
    "ViewerContext",
    "FeedPage",
    "TrendingPage",
    "ViewRecorded",
]
