# backend/camtracker/workers/job_queue.py
"""
In-memory priority job queue with bounded concurrency.

State machine:
    pending -> running -> completed
                       -> pending (retry, after a fixed delay)
                       -> failed  (retries exhausted)

A single dispatcher task owns scheduling. It starts the highest-priority
eligible job (oldest first within a priority) whenever fewer than
``max_concurrency`` jobs are running; the running count is the size of the
active worker map, which only the event loop mutates. Each job runs under
its own wall-clock timeout and is cancelled when the budget runs out.

A job that always fails is attempted exactly ``max_retries + 1`` times.
Terminal jobs are garbage-collected once they are older than the retention
window. Jobs are not persisted; a restart loses the queue.
"""

import asyncio
import itertools
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from ..constants import (
    DEFAULT_JOB_PRIORITY,
    DEFAULT_JOB_TIMEOUT_SECONDS,
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY_SECONDS,
    JOB_CLEANUP_INTERVAL_SECONDS,
    JOB_LIST_DEFAULT_LIMIT,
    JOB_LIST_MAX_LIMIT,
    JOB_RETENTION_HOURS,
    JOB_TYPE_DESCRIPTIONS,
    JOB_TYPE_PRIORITIES,
    MAX_JOB_PRIORITY,
    MIN_JOB_PRIORITY,
    QUEUE_BUSY_POLL_SECONDS,
    QUEUE_IDLE_POLL_SECONDS,
)
from ..enums import JobClearTarget, JobEventType, JobStatus, JobType
from ..exceptions import JobTimeoutError, NotFoundError, ValidationError
from ..models.job_model import (
    CameraJobRequest,
    Job,
    JobError,
    JobListResponse,
    JobStats,
    JobTypeInfo,
    JobTypesResponse,
    PopulateOptions,
)
from ..services.default_image_populator import normalize_options
from ..services.image_cache_service import validate_url
from ..utils.conversion_utils import clamp, safe_int
from ..utils.time_utils import utc_now
from .base_worker import BaseWorker
from .job_events import JobEvent, JobEventBus

JobHandler = Callable[[Dict[str, Any]], Awaitable[Optional[Dict[str, Any]]]]


class JobQueue(BaseWorker):
    """
    Injectable background job scheduler.

    Construct one per application (or per test); nothing here is global.
    """

    def __init__(
        self,
        handlers: Optional[Dict[JobType, JobHandler]] = None,
        *,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS,
        job_timeout_seconds: float = DEFAULT_JOB_TIMEOUT_SECONDS,
        busy_poll_seconds: float = QUEUE_BUSY_POLL_SECONDS,
        idle_poll_seconds: float = QUEUE_IDLE_POLL_SECONDS,
        cleanup_interval_seconds: float = JOB_CLEANUP_INTERVAL_SECONDS,
        retention_hours: float = JOB_RETENTION_HOURS,
        event_bus: Optional[JobEventBus] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        super().__init__("JobQueue")
        self.max_concurrency = max(1, max_concurrency)
        self.max_retries = max(0, max_retries)
        self.retry_delay_seconds = retry_delay_seconds
        self.job_timeout_seconds = job_timeout_seconds
        self.busy_poll_seconds = busy_poll_seconds
        self.idle_poll_seconds = idle_poll_seconds
        self.cleanup_interval_seconds = cleanup_interval_seconds
        self.retention = timedelta(hours=retention_hours)
        self.events = event_bus or JobEventBus()
        self._clock = clock

        self._handlers: Dict[JobType, JobHandler] = dict(handlers or {})
        self._jobs: Dict[int, Job] = {}
        self._active: Dict[int, asyncio.Task] = {}
        self._ids = itertools.count(1)
        self._wake = asyncio.Event()
        self._dispatcher_task: Optional[asyncio.Task] = None
        self._gc_task: Optional[asyncio.Task] = None
        self.is_processing = False

    # ------------------------------------------------------------------
    # Worker lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        await self.start_processing()

    async def cleanup(self) -> None:
        await self.shutdown()

    def register_handler(self, job_type: JobType, handler: JobHandler) -> None:
        self._handlers[JobType(job_type)] = handler

    async def start_processing(self) -> None:
        """Start the dispatcher and garbage-collection loops."""
        if self.is_processing:
            return
        self.is_processing = True
        self._dispatcher_task = asyncio.create_task(
            self._dispatch_loop(), name="job-queue-dispatcher"
        )
        self._gc_task = asyncio.create_task(self._gc_loop(), name="job-queue-gc")
        self.log_info(
            f"▶️ Processing started (concurrency={self.max_concurrency}, "
            f"retries={self.max_retries}, timeout={self.job_timeout_seconds}s)"
        )
        self._emit(JobEventType.PROCESSING_STARTED)

    async def stop_processing(self) -> None:
        """Stop dispatching new jobs. Running jobs are allowed to finish."""
        if not self.is_processing:
            return
        self.is_processing = False
        self._wake.set()
        for task in (self._dispatcher_task, self._gc_task):
            if task is not None and not task.done():
                task.cancel()
        await asyncio.gather(
            *(t for t in (self._dispatcher_task, self._gc_task) if t is not None),
            return_exceptions=True,
        )
        self._dispatcher_task = None
        self._gc_task = None
        self.log_info("⏸️ Processing stopped")
        self._emit(JobEventType.PROCESSING_STOPPED)

    async def shutdown(self) -> None:
        """Stop dispatching and abandon running jobs."""
        await self.stop_processing()
        tasks = list(self._active.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            self.log_warning(f"Abandoned {len(tasks)} running job(s) on shutdown")

    # ------------------------------------------------------------------
    # Enqueueing
    # ------------------------------------------------------------------

    def add_job(
        self,
        job_type: Union[JobType, str],
        payload: Optional[Dict[str, Any]] = None,
        priority: Any = DEFAULT_JOB_PRIORITY,
        max_retries: Optional[int] = None,
    ) -> Job:
        """
        Enqueue a job and wake the dispatcher.

        Priority is clamped into 1-10; an unknown job type is rejected.

        Returns:
            Snapshot of the created job
        """
        try:
            job_type = JobType(job_type)
        except ValueError:
            raise ValidationError(f"Unknown job type: {job_type}")

        now = self._clock()
        job = Job(
            id=next(self._ids),
            type=job_type,
            payload=dict(payload or {}),
            priority=clamp(
                safe_int(priority, DEFAULT_JOB_PRIORITY), MIN_JOB_PRIORITY, MAX_JOB_PRIORITY
            ),
            max_retries=self.max_retries if max_retries is None else max(0, max_retries),
            created_at=now,
            updated_at=now,
        )
        self._jobs[job.id] = job
        self.log_debug(f"Added job {job.id} ({job.type.value}, priority {job.priority})")
        self._emit(JobEventType.JOB_ADDED, job)
        self._wake.set()
        return self._snapshot(job)

    def schedule_default_image_fetch(
        self, camera: Union[CameraJobRequest, Dict[str, Any]]
    ) -> Optional[Job]:
        """
        Camera-creation hook.

        Returns None (not scheduled) when the camera has user images or a
        blank brand/model.
        """
        if not isinstance(camera, CameraJobRequest):
            camera = CameraJobRequest.model_validate(camera or {})

        brand = (camera.brand or "").strip()
        model = (camera.model or "").strip()
        if camera.has_user_images or not brand or not model:
            self.log_debug(
                f"Default image fetch not scheduled for camera {camera.id} "
                f"(user images={camera.has_user_images}, brand={brand!r}, model={model!r})"
            )
            return None

        return self.add_job(
            JobType.FETCH_DEFAULT_IMAGE,
            {"camera_id": camera.id, "brand": brand, "model": model},
            priority=JOB_TYPE_PRIORITIES[JobType.FETCH_DEFAULT_IMAGE],
        )

    def schedule_cache_image(self, url: str, priority: Optional[int] = None) -> Job:
        validate_url(url)
        return self.add_job(
            JobType.CACHE_IMAGE,
            {"url": url},
            priority=priority if priority is not None else JOB_TYPE_PRIORITIES[JobType.CACHE_IMAGE],
        )

    def schedule_cache_cleanup(self) -> Job:
        return self.add_job(
            JobType.CLEANUP_CACHE,
            {},
            priority=JOB_TYPE_PRIORITIES[JobType.CLEANUP_CACHE],
        )

    def schedule_populate_default_images(
        self,
        options: Union[PopulateOptions, Dict[str, Any], None] = None,
        priority: Optional[int] = None,
    ) -> Job:
        if not isinstance(options, PopulateOptions):
            options = PopulateOptions.model_validate(options or {})
        normalized = normalize_options(options)
        return self.add_job(
            JobType.POPULATE_DEFAULT_IMAGES,
            normalized.model_dump(),
            priority=(
                priority
                if priority is not None
                else JOB_TYPE_PRIORITIES[JobType.POPULATE_DEFAULT_IMAGES]
            ),
        )

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _next_pending_job(self, now: datetime) -> Optional[Job]:
        eligible = [
            job
            for job in self._jobs.values()
            if job.status == JobStatus.PENDING
            and (job.not_before is None or job.not_before <= now)
        ]
        if not eligible:
            return None
        return min(eligible, key=lambda j: (-j.priority, j.created_at, j.id))

    def _idle_delay(self, now: datetime) -> float:
        """Idle poll, shortened when a retry becomes eligible sooner."""
        delay = self.idle_poll_seconds
        for job in self._jobs.values():
            if job.status == JobStatus.PENDING and job.not_before is not None:
                wait = (job.not_before - now).total_seconds()
                delay = min(delay, max(wait, 0.0))
        return delay

    async def _idle(self, seconds: float) -> None:
        """Sleep up to ``seconds``; enqueue or job completion wakes us early."""
        try:
            await asyncio.wait_for(self._wake.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
        self._wake.clear()

    async def _dispatch_loop(self) -> None:
        while self.is_processing:
            try:
                if len(self._active) >= self.max_concurrency:
                    await self._idle(self.busy_poll_seconds)
                    continue

                now = self._clock()
                job = self._next_pending_job(now)
                if job is None:
                    await self._idle(self._idle_delay(now))
                    continue

                self._start_job(job)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.log_error("Dispatch loop error", e)
                await asyncio.sleep(self.busy_poll_seconds)

    def _start_job(self, job: Job) -> None:
        now = self._clock()
        job.attempts += 1
        job.status = JobStatus.RUNNING
        job.started_at = now
        job.updated_at = now
        job.not_before = None
        self._active[job.id] = asyncio.create_task(
            self._run_job(job), name=f"job-{job.id}"
        )
        self.log_info(
            f"🚀 Started job {job.id} ({job.type.value}), attempt {job.attempts}/{job.max_retries + 1}"
        )
        self._emit(JobEventType.JOB_STARTED, job)

    async def _run_job(self, job: Job) -> None:
        handler = self._handlers.get(job.type)
        try:
            if handler is None:
                raise ValidationError(f"No handler registered for job type {job.type.value}")
            result = await asyncio.wait_for(
                handler(dict(job.payload)), timeout=self.job_timeout_seconds
            )
        except asyncio.TimeoutError:
            self._handle_failure(
                job,
                JobTimeoutError(
                    f"Job {job.id} timed out after {self.job_timeout_seconds:g}s"
                ),
            )
        except asyncio.CancelledError:
            # Queue shutdown; the job did not finish
            if job.status == JobStatus.RUNNING:
                job.status = JobStatus.PENDING
                job.updated_at = self._clock()
            raise
        except Exception as e:
            self._handle_failure(job, e)
        else:
            self._handle_success(job, result)
        finally:
            self._active.pop(job.id, None)
            self._wake.set()

    def _handle_success(self, job: Job, result: Any) -> None:
        now = self._clock()
        job.status = JobStatus.COMPLETED
        job.completed_at = now
        job.updated_at = now
        if result is None or isinstance(result, dict):
            job.result = result
        else:
            job.result = {"value": result}
        duration = (now - job.started_at).total_seconds() if job.started_at else 0
        self.log_info(f"✅ Job {job.id} ({job.type.value}) completed in {duration:.2f}s")
        self._emit(JobEventType.JOB_COMPLETED, job)

    def _handle_failure(self, job: Job, error: BaseException) -> None:
        now = self._clock()
        message = str(error) or error.__class__.__name__
        job.last_error = JobError(message=message, timestamp=now)
        job.updated_at = now

        if job.attempts <= job.max_retries:
            job.status = JobStatus.PENDING
            job.not_before = now + timedelta(seconds=self.retry_delay_seconds)
            self.log_warning(
                f"🔁 Job {job.id} ({job.type.value}) failed on attempt {job.attempts}, "
                f"retrying in {self.retry_delay_seconds:g}s: {message}"
            )
            self._emit(
                JobEventType.JOB_RETRY,
                job,
                {"error": message, "retry_in_seconds": self.retry_delay_seconds},
            )
        else:
            job.status = JobStatus.FAILED
            job.failed_at = now
            self.log_error(
                f"❌ Job {job.id} ({job.type.value}) failed after {job.attempts} attempts",
                error,
            )
            self._emit(JobEventType.JOB_FAILED, job, {"error": message})

    # ------------------------------------------------------------------
    # Garbage collection
    # ------------------------------------------------------------------

    async def _gc_loop(self) -> None:
        while self.is_processing:
            await asyncio.sleep(self.cleanup_interval_seconds)
            try:
                self.cleanup_old_jobs()
            except Exception as e:
                self.log_error("Job cleanup failed", e)

    def cleanup_old_jobs(self) -> int:
        """Remove terminal jobs whose last update is older than the retention window."""
        cutoff = self._clock() - self.retention
        stale = [
            job_id
            for job_id, job in self._jobs.items()
            if job.is_terminal and job.updated_at < cutoff
        ]
        for job_id in stale:
            del self._jobs[job_id]
        if stale:
            self.log_info(f"🧹 Cleaned up {len(stale)} old job(s)")
            self._emit(JobEventType.JOBS_CLEANED_UP, data={"count": len(stale)})
        return len(stale)

    def clear_jobs(self, target: Union[JobClearTarget, str] = JobClearTarget.ALL) -> int:
        """
        Drop jobs by status. ``all`` removes every job that is not running;
        running jobs are left to finish.
        """
        try:
            target = JobClearTarget(target)
        except ValueError:
            raise ValidationError(f"Invalid clear target: {target}")

        if target == JobClearTarget.ALL:
            doomed = [j.id for j in self._jobs.values() if j.status != JobStatus.RUNNING]
        else:
            status = JobStatus(target.value)
            doomed = [j.id for j in self._jobs.values() if j.status == status]

        for job_id in doomed:
            del self._jobs[job_id]
        self.log_info(f"Cleared {len(doomed)} job(s) ({target.value})")
        self._emit(JobEventType.JOBS_CLEARED, data={"count": len(doomed), "status": target.value})
        return len(doomed)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @staticmethod
    def _snapshot(job: Job) -> Job:
        return job.model_copy(deep=True)

    def _emit(
        self,
        event_type: JobEventType,
        job: Optional[Job] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.events.emit(
            JobEvent(
                type=event_type,
                job=self._snapshot(job) if job is not None else None,
                data=data or {},
                timestamp=self._clock(),
            )
        )

    def get_job(self, job_id: int) -> Job:
        job = self._jobs.get(job_id)
        if job is None:
            raise NotFoundError(f"Job {job_id} not found")
        return self._snapshot(job)

    def list_jobs(
        self,
        status: Optional[Union[JobStatus, str]] = None,
        job_type: Optional[Union[JobType, str]] = None,
        limit: int = JOB_LIST_DEFAULT_LIMIT,
        offset: int = 0,
    ) -> JobListResponse:
        """Newest first, with optional status/type filters and pagination."""
        try:
            status = JobStatus(status) if status else None
            job_type = JobType(job_type) if job_type else None
        except ValueError as e:
            raise ValidationError(str(e))

        limit = clamp(limit, 1, JOB_LIST_MAX_LIMIT)
        offset = max(0, offset)

        jobs = [
            job
            for job in self._jobs.values()
            if (status is None or job.status == status)
            and (job_type is None or job.type == job_type)
        ]
        jobs.sort(key=lambda j: (j.created_at, j.id), reverse=True)
        page = jobs[offset : offset + limit]

        return JobListResponse(
            jobs=[self._snapshot(job) for job in page],
            total=len(jobs),
            limit=limit,
            offset=offset,
            has_more=offset + limit < len(jobs),
        )

    def get_stats(self) -> JobStats:
        stats = JobStats(
            total=len(self._jobs),
            active_workers=len(self._active),
            max_concurrency=self.max_concurrency,
            is_processing=self.is_processing,
        )
        for job in self._jobs.values():
            setattr(stats, job.status.value, getattr(stats, job.status.value) + 1)
        return stats

    def get_job_types(self) -> JobTypesResponse:
        return JobTypesResponse(
            job_types=[
                JobTypeInfo(
                    type=job_type,
                    description=JOB_TYPE_DESCRIPTIONS[job_type],
                    default_priority=JOB_TYPE_PRIORITIES[job_type],
                )
                for job_type in JobType
            ],
            max_concurrency=self.max_concurrency,
            max_retries=self.max_retries,
            retry_delay_seconds=self.retry_delay_seconds,
            job_timeout_seconds=self.job_timeout_seconds,
        )

    @property
    def running_count(self) -> int:
        return len(self._active)

    async def wait_until_idle(self, timeout: float = 30.0, poll: float = 0.01) -> bool:
        """Wait until no job is pending or running. Returns False on timeout."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while loop.time() < deadline:
            if not self._active and not any(
                job.status == JobStatus.PENDING for job in self._jobs.values()
            ):
                return True
            await asyncio.sleep(poll)
        return False

    def get_status(self) -> Dict[str, Any]:
        status = super().get_status()
        status.update(self.get_stats().model_dump())
        return status
