"""
Scheduler API Router

Endpoints for monitoring and manually triggering background jobs.
Accepts Firebase auth or the admin API key.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException

from ..config import get_settings
from ..core.logging import get_logger
from ..core.security import get_current_user_optional
from ..services.scheduler import SchedulerService
from .feed import get_services

logger = get_logger(__name__)

router = APIRouter(prefix="/scheduler", tags=["scheduler"])

_scheduler_service: Optional[SchedulerService] = None


def get_scheduler_service() -> SchedulerService:
    """Get singleton SchedulerService instance."""
    global _scheduler_service
    if _scheduler_service is None:
        _, _, scorer, _ = get_services()
        _scheduler_service = SchedulerService(scorer)
    return _scheduler_service


async def verify_admin_access(
    current_user: Optional[dict] = Depends(get_current_user_optional),
    x_api_key: Optional[str] = Header(None),
):
    """
    Verify admin access via Firebase auth OR API key.
    
    Accepts:
    - Firebase auth token: Authorization: Bearer <token>
    - API key: X-API-Key: <admin_key> (only when ADMIN_API_KEY is set)
    """
    if current_user is not None:
        logger.info("admin_access_firebase", uid=current_user.get("uid"))
        return {"method": "firebase", "uid": current_user.get("uid")}
    
    admin_key = get_settings().admin_api_key
    if admin_key and x_api_key == admin_key:
        logger.info("admin_access_api_key")
        return {"method": "api_key", "uid": "admin"}
    
    raise HTTPException(
        status_code=401,
        detail="Missing or invalid authentication. Use Firebase token or X-API-Key header."
    )


@router.get("/status")
async def get_scheduler_status(admin: dict = Depends(verify_admin_access)):
    """Current scheduler state and job information."""
    return get_scheduler_service().get_job_status()


@router.post("/trigger/trending")
async def trigger_trending_refresh(admin: dict = Depends(verify_admin_access)):
    """
    Recompute trending now and persist scores.
    
    Runs inline so the caller sees the outcome.
    """
    service = get_scheduler_service()
    await service.trigger_trending_refresh_now()
    
    status = service.get_job_status()
    return {
        "success": service.last_error is None,
        "triggered_by": admin["method"],
        "last_run": status["last_run"],
        "error": service.last_error,
    }
