"""
Feed API Router

For You and trending feeds, cursor-paginated.
"""

import time
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from ..config import get_settings
from ..core.logging import get_logger
from ..core.security import get_current_user
from ..models.response import FeedPage, TrendingPage
from ..services.cache_service import build_trending_cache
from ..services.composer import FeedComposer
from ..services.hydrator import Hydrator
from ..services.repository import VideoRepository
from ..services.trending import TrendingScorer

logger = get_logger(__name__)
settings = get_settings()

# Rate limiter
limiter = Limiter(key_func=get_remote_address)

router = APIRouter(prefix="/api/feed", tags=["feed"])

# Singleton instances (initialized on first request)
_repository: Optional[VideoRepository] = None
_composer: Optional[FeedComposer] = None
_scorer: Optional[TrendingScorer] = None
_hydrator: Optional[Hydrator] = None


def get_services() -> Tuple[VideoRepository, FeedComposer, TrendingScorer, Hydrator]:
    """Get or initialize service singletons."""
    global _repository, _composer, _scorer, _hydrator
    
    if _repository is None:
        _repository = VideoRepository()
        _composer = FeedComposer(_repository)
        _scorer = TrendingScorer(_repository, build_trending_cache())
        _hydrator = Hydrator(_repository)
    
    return _repository, _composer, _scorer, _hydrator


def reset_services():
    """Drop service singletons (engine swap in tests, shutdown)."""
    global _repository, _composer, _scorer, _hydrator
    _repository = _composer = _scorer = _hydrator = None


@router.get("/foryou", response_model=FeedPage)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def get_for_you_feed(
    request: Request,
    cursor: Optional[str] = Query(None, description="Pagination cursor"),
    limit: int = Query(
        settings.feed_default_limit, ge=1, le=settings.feed_max_limit, description="Page size"
    ),
    current_user: dict = Depends(get_current_user)
):
    """
    Personalized For You feed.
    
    Flow:
    1. Load viewer context (follows, blocks, view history)
    2. Composer: blend followed/trending/recent/popular sources
    3. Dedup + cursor pagination
    4. Hydrator: author, sound and isLiked per card
    """
    start_time = time.time()
    uid = current_user["uid"]
    repository, composer, _, hydrator = get_services()
    
    logger.info("foryou_request", uid=uid, limit=limit, has_cursor=cursor is not None)
    
    try:
        viewer = await repository.load_viewer_context(uid)
        page = await composer.compose(viewer, cursor=cursor, limit=limit)
        cards = await hydrator.hydrate(uid, page.items)
    except Exception as e:
        logger.error("foryou_feed_failed", uid=uid, error=str(e))
        raise
    
    logger.info(
        "foryou_feed_fetched",
        uid=uid,
        items=len(cards),
        has_more=page.has_more,
        latency_ms=int((time.time() - start_time) * 1000),
    )
    
    return FeedPage(results=cards, next_cursor=page.next_cursor, has_more=page.has_more)


@router.get("/trending", response_model=TrendingPage)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def get_trending_feed(
    request: Request,
    cursor: Optional[str] = Query(None, description="Pagination cursor"),
    limit: int = Query(
        settings.feed_default_limit, ge=1, le=settings.feed_max_limit, description="Page size"
    ),
    current_user: dict = Depends(get_current_user)
):
    """
    Videos ranked by engagement over the trending window.
    
    The ranking is shared by all viewers and cached for the trending TTL;
    only isLiked is computed per request.
    """
    start_time = time.time()
    uid = current_user["uid"]
    _, _, scorer, hydrator = get_services()
    
    logger.info("trending_request", uid=uid, limit=limit, has_cursor=cursor is not None)
    
    try:
        page, cache_hit = await scorer.get_page(cursor, limit)
        cards = await hydrator.hydrate_trending(uid, page.items, first_page=not cursor)
    except Exception as e:
        logger.error("trending_feed_failed", uid=uid, error=str(e))
        raise
    
    logger.info(
        "trending_feed_fetched",
        uid=uid,
        items=len(cards),
        has_more=page.has_more,
        cache_used=cache_hit,
        latency_ms=int((time.time() - start_time) * 1000),
    )
    
    return TrendingPage(results=cards, next_cursor=page.next_cursor, has_more=page.has_more)
