"""
Background Jobs Service
Keeps the in-process caches healthy between requests

Features:
- Scheduled jobs using APScheduler (runs on the application's event loop)
- Configurable timezone
- Job monitoring and statistics for the admin routes
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from motor.motor_asyncio import AsyncIOMotorDatabase
from datetime import datetime
from typing import Callable, Dict
from pytz import timezone
import logging
import os

from moviehub.services.monthly_service import MonthlyService
from moviehub.utils.cache import AppCaches

logger = logging.getLogger(__name__)


def background_jobs_enabled() -> bool:
    return os.getenv("ENABLE_BACKGROUND_JOBS", "true").lower() == "true"


class BackgroundJobService:
    """
    Manages scheduled background jobs

    Jobs:
    - Purge expired cache entries (every 15 minutes)
    - Refresh the monthly leaderboard (every 5 minutes)

    Usage:
        jobs = BackgroundJobService(caches, get_db)
        jobs.start()     # Start all scheduled jobs
        jobs.shutdown()  # Stop all jobs
    """

    def __init__(self, caches: AppCaches, db_provider: Callable[[], AsyncIOMotorDatabase]):
        tz_name = os.getenv("TIMEZONE", "UTC")
        self.timezone = timezone(tz_name)
        self.scheduler = AsyncIOScheduler(timezone=self.timezone)
        self.caches = caches
        self.db_provider = db_provider

        self.job_stats = {
            'purge_caches': {'last_run': None, 'status': 'idle', 'error': None, 'result': None},
            'refresh_monthly': {'last_run': None, 'status': 'idle', 'error': None, 'result': None},
        }

    def start(self):
        """
        Start all scheduled background jobs

        Jobs are only started if ENABLE_BACKGROUND_JOBS=true in environment.
        Must be called from inside a running event loop.
        """
        if not background_jobs_enabled():
            logger.info("Background jobs disabled via ENABLE_BACKGROUND_JOBS environment variable")
            return

        self.scheduler.add_job(
            func=self.purge_expired_caches,
            trigger=CronTrigger(minute='*/15', timezone=self.timezone),
            id='purge_caches',
            name='Purge expired cache entries',
            replace_existing=True,
            max_instances=1
        )
        logger.info("Scheduled: Purge expired cache entries (every 15 minutes)")

        self.scheduler.add_job(
            func=self.refresh_monthly_movies,
            trigger=CronTrigger(minute='*/5', timezone=self.timezone),
            id='refresh_monthly',
            name='Refresh monthly leaderboard',
            replace_existing=True,
            max_instances=1
        )
        logger.info("Scheduled: Refresh monthly leaderboard (every 5 minutes)")

        self.scheduler.start()
        logger.info(f"Background jobs started ({len(self.scheduler.get_jobs())} jobs, timezone {self.timezone})")

    def shutdown(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Background jobs stopped")

    def get_job_stats(self) -> Dict:
        """
        Get statistics for all jobs including next run times

        Returns:
            Dict with job information and execution history
        """
        jobs_info = []
        scheduled = {job.id: job for job in self.scheduler.get_jobs()}
        for job_id, stats in self.job_stats.items():
            job = scheduled.get(job_id)
            jobs_info.append({
                'id': job_id,
                'name': job.name if job else None,
                'next_run': job.next_run_time.isoformat() if job and job.next_run_time else None,
                'last_run': stats.get('last_run'),
                'status': stats.get('status', 'idle'),
                'error': stats.get('error'),
                'result': stats.get('result'),
            })

        return {
            'scheduler_running': self.scheduler.running,
            'timezone': str(self.timezone),
            'jobs': jobs_info
        }

    # ============================================
    # Job Methods
    # ============================================

    async def _run(self, job_id: str, job):
        self.job_stats[job_id]['status'] = 'running'
        self.job_stats[job_id]['error'] = None
        start_time = datetime.now()

        try:
            result = await job()
            elapsed = (datetime.now() - start_time).total_seconds()
            logger.info(f"[{job_id}] Completed in {elapsed:.2f}s - {result}")
            self.job_stats[job_id]['status'] = 'success'
            self.job_stats[job_id]['result'] = result

        except Exception as e:
            elapsed = (datetime.now() - start_time).total_seconds()
            logger.error(f"[{job_id}] Failed after {elapsed:.2f}s: {str(e)}")
            self.job_stats[job_id]['status'] = 'failed'
            self.job_stats[job_id]['error'] = str(e)

        finally:
            self.job_stats[job_id]['last_run'] = datetime.now().isoformat()

    async def purge_expired_caches(self):
        """Drop expired entries from every application cache."""
        async def purge():
            return f"purged {self.caches.purge_expired()} entries"

        await self._run('purge_caches', purge)

    async def refresh_monthly_movies(self):
        """Reload the default monthly leaderboard into its cache."""
        async def refresh():
            count = await MonthlyService.refresh(self.db_provider(), self.caches.monthly)
            return f"cached {count} movies"

        await self._run('refresh_monthly', refresh)
