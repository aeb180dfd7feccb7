"""
Viewer Models

Per-viewer sets used to shape the For You feed.
"""

from typing import List
from pydantic import BaseModel, Field


class ViewerContext(BaseModel):
    """
    Everything the composer needs to know about the viewer.
    
    Loaded fresh for every request; never cached.
    """
    uid: str
    followed_ids: List[str] = Field(
        default_factory=list,
        description="Authors the viewer follows"
    )
    blocked_ids: List[str] = Field(
        default_factory=list,
        description="Authors the viewer has blocked"
    )
    viewed_ids: List[str] = Field(
        default_factory=list,
        description="Videos the viewer has already seen"
    )
    
    @property
    def is_cold_start(self) -> bool:
        """Viewer has no graph and no history."""
        return not (self.followed_ids or self.blocked_ids or self.viewed_ids)
