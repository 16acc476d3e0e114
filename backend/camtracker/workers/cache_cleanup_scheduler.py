# backend/camtracker/workers/cache_cleanup_scheduler.py
"""
Periodic cache maintenance.

Wraps an APScheduler AsyncIOScheduler that enqueues a cleanup-cache job on
a fixed interval. The cleanup itself runs through the job queue so it gets
the same retry, timeout and introspection as every other job.
"""

from typing import Any, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from .base_worker import BaseWorker
from .job_queue import JobQueue

CLEANUP_JOB_ID = "cache_cleanup"


class CacheCleanupScheduler(BaseWorker):
    """Schedules cleanup-cache jobs every ``interval_hours``."""

    def __init__(
        self,
        job_queue: JobQueue,
        interval_hours: float = 24,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        super().__init__("CacheCleanupScheduler")
        self.job_queue = job_queue
        self.interval_hours = interval_hours
        self.scheduler = scheduler or AsyncIOScheduler()

    async def initialize(self) -> None:
        self.scheduler.add_job(
            self.enqueue_cleanup,
            "interval",
            hours=self.interval_hours,
            id=CLEANUP_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=30,
        )
        if not self.scheduler.running:
            self.scheduler.start()
        self.log_info(f"⏰ Cache cleanup scheduled every {self.interval_hours:g}h")

    async def cleanup(self) -> None:
        try:
            if self.scheduler.running:
                self.scheduler.shutdown(wait=False)
                self.log_info("Scheduler shut down")
        except Exception as e:
            self.log_error("Error shutting down scheduler", e)

    async def enqueue_cleanup(self) -> int:
        job = self.job_queue.schedule_cache_cleanup()
        self.log_debug(f"Enqueued cleanup-cache job {job.id}")
        return job.id

    def get_status(self) -> Dict[str, Any]:
        status = super().get_status()
        job = self.scheduler.get_job(CLEANUP_JOB_ID) if self.scheduler.running else None
        status["interval_hours"] = self.interval_hours
        status["next_run_time"] = (
            job.next_run_time.isoformat() if job and job.next_run_time else None
        )
        return status
