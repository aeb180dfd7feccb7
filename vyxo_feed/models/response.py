"""
API Response Models

Standardized response structures for feed endpoints.
"""

from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict

from .video_card import TrendingVideoCard, VideoCard


class FeedPage(BaseModel):
    """One page of the For You feed."""
    results: List[VideoCard] = Field(default_factory=list)
    next_cursor: Optional[str] = Field(None, alias="nextCursor")
    has_more: bool = Field(False, alias="hasMore")
    
    model_config = ConfigDict(populate_by_name=True)


class TrendingPage(BaseModel):
    """One page of the trending feed."""
    results: List[TrendingVideoCard] = Field(default_factory=list)
    next_cursor: Optional[str] = Field(None, alias="nextCursor")
    has_more: bool = Field(False, alias="hasMore")
    
    model_config = ConfigDict(populate_by_name=True)


class ViewRecorded(BaseModel):
    """Result of recording a view."""
    success: bool = True
    is_new_view: bool = Field(alias="isNewView")
    views_count: int = Field(alias="viewsCount")
    
    model_config = ConfigDict(populate_by_name=True)

