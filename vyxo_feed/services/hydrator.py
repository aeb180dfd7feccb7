"""
Hydrator Service

Turns repository rows into client-facing video cards and stamps the
viewer's like state on them.
"""

from typing import List, Optional, Set

from ..core.logging import get_logger
from ..models.video_card import (
    Author,
    SoundInfo,
    TrendingVideoCard,
    VideoCard,
    VideoRow,
)
from .repository import VideoRepository

logger = get_logger(__name__)

# Rank reported on pages fetched with a cursor
RANK_UNKNOWN = -1


def card_fields(row: VideoRow, is_liked: bool) -> dict:
    """Card payload for a row (field names, not aliases)."""
    sound: Optional[SoundInfo] = None
    if row.sound_id:
        sound = SoundInfo(
            id=row.sound_id,
            title=row.sound_title,
            artist_name=row.sound_artist_name,
        )
    
    return {
        "id": row.id,
        "user_id": row.user_id,
        "caption": row.caption,
        "video_url": row.video_url,
        "thumbnail_url": row.thumbnail_url,
        "master_playlist_url": row.master_playlist_url or row.video_url,
        "mux_thumbnail_url": row.mux_thumbnail_url,
        "gif_url": row.gif_url,
        "duration": row.duration,
        "views_count": row.views_count,
        "likes_count": row.likes_count,
        "comments_count": row.comments_count,
        "shares_count": row.shares_count,
        "status": row.status,
        "is_liked": is_liked,
        "author": Author(id=row.user_id, username=row.author_name, avatar=row.author_image),
        "sound": sound,
    }


class Hydrator:
    """
    Enriches selected rows with per-viewer state.
    
    Only the rows that made it onto the page are looked up,
    never the full candidate pool.
    """
    
    def __init__(self, repository: VideoRepository):
        self.repository = repository
    
    async def _liked(self, uid: str, rows: List[VideoRow]) -> Set[str]:
        return await self.repository.liked_video_ids(uid, [row.id for row in rows])
    
    async def hydrate(self, uid: str, rows: List[VideoRow]) -> List[VideoCard]:
        """Build For You cards."""
        if not rows:
            return []
        
        liked = await self._liked(uid, rows)
        return [VideoCard(**card_fields(row, row.id in liked)) for row in rows]
    
    async def hydrate_trending(
        self,
        uid: str,
        rows: List[VideoRow],
        first_page: bool,
    ) -> List[TrendingVideoCard]:
        """
        Build trending cards.
        
        Rank is the 1-based position on the first page. Pages behind a cursor
        don't know their absolute offset, so they report RANK_UNKNOWN.
        """
        if not rows:
            return []
        
        liked = await self._liked(uid, rows)
        return [
            TrendingVideoCard(
                **card_fields(row, row.id in liked),
                rank=index + 1 if first_page else RANK_UNKNOWN,
            )
            for index, row in enumerate(rows)
        ]
