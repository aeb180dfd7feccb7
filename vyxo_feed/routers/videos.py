"""
Videos API Router

View tracking. Views feed the For You exclusion set and the
trending view window.
"""

from fastapi import APIRouter, Depends

from ..core.logging import get_logger
from ..core.security import get_current_user
from ..models.response import ViewRecorded
from .feed import get_services

logger = get_logger(__name__)

router = APIRouter(prefix="/api/videos", tags=["videos"])


@router.post("/{video_id}/view", response_model=ViewRecorded)
async def record_view(
    video_id: str,
    current_user: dict = Depends(get_current_user)
):
    """
    Record a unique view of a video by the current user.
    
    Idempotent: repeat views return isNewView=false and leave
    viewsCount unchanged.
    """
    uid = current_user["uid"]
    repository, _, _, _ = get_services()
    
    is_new, views_count = await repository.record_view(video_id, uid)
    
    logger.info("view_recorded", uid=uid, video_id=video_id, is_new_view=is_new)
    return ViewRecorded(is_new_view=is_new, views_count=views_count)
