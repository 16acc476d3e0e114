# backend/camtracker/routers/jobs_routers.py
"""
Job queue admin endpoints.

Scheduling, inspection and lifecycle control for the in-memory JobQueue.
"""

from typing import Optional

from fastapi import APIRouter, Query

from ..constants import JOB_LIST_DEFAULT_LIMIT, JOB_LIST_MAX_LIMIT
from ..dependencies import JobQueueDep
from ..enums import JobClearTarget, JobStatus, JobType
from ..models.job_model import (
    CacheImageRequest,
    CameraJobRequest,
    ClearJobsResponse,
    Job,
    JobListResponse,
    JobScheduledResponse,
    JobStats,
    JobTypesResponse,
    PopulateOptions,
)
from ..utils.response_helpers import ResponseFormatter
from ..utils.router_helpers import handle_exceptions

router = APIRouter(tags=["jobs"])


@router.get("/jobs/stats", response_model=JobStats)
@handle_exceptions("get job statistics")
async def get_job_stats(job_queue: JobQueueDep):
    return job_queue.get_stats()


@router.get("/jobs/types", response_model=JobTypesResponse)
@handle_exceptions("get job types")
async def get_job_types(job_queue: JobQueueDep):
    return job_queue.get_job_types()


@router.get("/jobs", response_model=JobListResponse)
@handle_exceptions("list jobs")
async def list_jobs(
    job_queue: JobQueueDep,
    status: Optional[JobStatus] = Query(None, description="Filter by status"),
    type: Optional[JobType] = Query(None, description="Filter by job type"),
    limit: int = Query(JOB_LIST_DEFAULT_LIMIT, ge=1, le=JOB_LIST_MAX_LIMIT),
    offset: int = Query(0, ge=0),
):
    """Jobs newest first."""
    return job_queue.list_jobs(status=status, job_type=type, limit=limit, offset=offset)


@router.get("/jobs/{job_id}", response_model=Job)
@handle_exceptions("get job")
async def get_job(job_id: int, job_queue: JobQueueDep):
    return job_queue.get_job(job_id)


@router.post("/jobs/fetch-default-image", response_model=JobScheduledResponse)
@handle_exceptions("schedule default image fetch")
async def schedule_default_image_fetch(camera: CameraJobRequest, job_queue: JobQueueDep):
    """
    Camera-creation hook.

    Cameras with user images, or without brand and model, are accepted but
    not scheduled; ``job_id`` is null in that case.
    """
    job = job_queue.schedule_default_image_fetch(camera)
    if job is None:
        return JobScheduledResponse(
            job_id=None,
            message="No default image fetch needed for this camera",
        )
    return JobScheduledResponse(
        job_id=job.id,
        message=f"Default image fetch scheduled for {job.payload['brand']} {job.payload['model']}",
    )


@router.post("/jobs/cache-image", response_model=JobScheduledResponse)
@handle_exceptions("schedule image caching")
async def schedule_cache_image(request: CacheImageRequest, job_queue: JobQueueDep):
    job = job_queue.schedule_cache_image(request.url)
    return JobScheduledResponse(job_id=job.id, message="Image caching scheduled")


@router.post("/jobs/cache-cleanup", response_model=JobScheduledResponse)
@handle_exceptions("schedule cache cleanup")
async def schedule_cache_cleanup(job_queue: JobQueueDep):
    job = job_queue.schedule_cache_cleanup()
    return JobScheduledResponse(job_id=job.id, message="Cache cleanup scheduled")


@router.post("/jobs/populate-default-images", response_model=JobScheduledResponse)
@handle_exceptions("schedule default image population")
async def schedule_populate_default_images(
    job_queue: JobQueueDep, options: Optional[PopulateOptions] = None
):
    job = job_queue.schedule_populate_default_images(options)
    mode = "dry run" if job.payload.get("dry_run") else "live"
    return JobScheduledResponse(
        job_id=job.id, message=f"Default image population scheduled ({mode})"
    )


@router.post("/jobs/start-processing")
@handle_exceptions("start job processing")
async def start_processing(job_queue: JobQueueDep):
    await job_queue.start_processing()
    return ResponseFormatter.success("Job processing started", data=job_queue.get_stats())


@router.post("/jobs/stop-processing")
@handle_exceptions("stop job processing")
async def stop_processing(job_queue: JobQueueDep):
    await job_queue.stop_processing()
    return ResponseFormatter.success("Job processing stopped", data=job_queue.get_stats())


@router.delete("/jobs/clear", response_model=ClearJobsResponse)
@handle_exceptions("clear jobs")
async def clear_jobs(
    job_queue: JobQueueDep,
    status: JobClearTarget = Query(JobClearTarget.COMPLETED),
):
    """Remove completed, failed or all non-running jobs."""
    cleared = job_queue.clear_jobs(status)
    return ClearJobsResponse(cleared=cleared, status=status.value)
