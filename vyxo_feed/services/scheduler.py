"""
Background Job Scheduler

Manages scheduled background tasks using APScheduler.
- Trending refresh: recomputes the trending ranking and writes
  scores back to videos.score_trending
"""

from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..config import get_settings
from ..core.logging import get_logger
from .trending import TrendingScorer

logger = get_logger(__name__)


class SchedulerService:
    """
    Manages background job scheduling.
    
    Jobs:
    1. Trending Refresh (every `trending_refresh_minutes`)
       - Recomputes engagement scores for all ready videos
       - Refreshes the trending cache
       - Persists scores for the For You trending source
    """
    
    TRENDING_JOB_ID = "trending_refresh"
    
    def __init__(self, scorer: TrendingScorer, scheduler: Optional[AsyncIOScheduler] = None):
        self.settings = get_settings()
        self.scorer = scorer
        self.scheduler = scheduler or AsyncIOScheduler(timezone="UTC")
        self.last_run: Optional[datetime] = None
        self.last_error: Optional[str] = None
    
    async def _run_trending_refresh(self):
        """Execute the trending refresh job."""
        logger.info("scheduler_job_started", job=self.TRENDING_JOB_ID)
        try:
            snapshot = await self.scorer.refresh()
            self.last_error = None
            logger.info(
                "scheduler_job_completed",
                job=self.TRENDING_JOB_ID,
                videos=len(snapshot.entries),
            )
        except Exception as e:
            # Keep the scheduler alive; the next run retries
            self.last_error = str(e)
            logger.error("scheduler_job_failed", job=self.TRENDING_JOB_ID, error=str(e))
        finally:
            self.last_run = datetime.now(timezone.utc)
    
    def setup_jobs(self):
        """Configure and add all scheduled jobs."""
        minutes = self.settings.trending_refresh_minutes
        self.scheduler.add_job(
            self._run_trending_refresh,
            trigger=IntervalTrigger(minutes=minutes),
            id=self.TRENDING_JOB_ID,
            name="Trending Refresh",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info("scheduler_jobs_configured", trending_refresh_minutes=minutes)
    
    def start(self):
        """Start the scheduler."""
        if not self.scheduler.running:
            self.setup_jobs()
            self.scheduler.start()
            logger.info("scheduler_started")
    
    def stop(self):
        """Stop the scheduler gracefully."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("scheduler_stopped")
    
    def get_job_status(self) -> dict:
        """Get status of all scheduled jobs."""
        jobs = []
        for job in self.scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run": next_run.isoformat() if next_run else None,
            })
        
        return {
            "running": self.scheduler.running,
            "jobs": jobs,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "last_error": self.last_error,
            "current_time": datetime.now(timezone.utc).isoformat(),
        }
    
    async def trigger_trending_refresh_now(self):
        """Manually trigger the trending refresh."""
        logger.info("manual_trigger", job=self.TRENDING_JOB_ID)
        await self._run_trending_refresh()
