# backend/camtracker/models/job_model.py
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..constants import (
    DEFAULT_JOB_PRIORITY,
    MAX_JOB_PRIORITY,
    MIN_JOB_PRIORITY,
    POPULATE_DEFAULT_BATCH_SIZE,
    POPULATE_DEFAULT_MIN_QUALITY,
)
from ..enums import JobStatus, JobType


class JobError(BaseModel):
    """Last failure recorded on a job"""

    message: str
    timestamp: datetime


class Job(BaseModel):
    """
    Background job record.

    Owned by the JobQueue; anything handed out to callers is a deep copy.
    """

    id: int
    type: JobType
    payload: Dict[str, Any] = Field(default_factory=dict)
    status: JobStatus = JobStatus.PENDING
    priority: int = Field(
        default=DEFAULT_JOB_PRIORITY, ge=MIN_JOB_PRIORITY, le=MAX_JOB_PRIORITY
    )
    attempts: int = Field(default=0, ge=0)
    max_retries: int = Field(default=3, ge=0)
    created_at: datetime
    updated_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    not_before: Optional[datetime] = Field(
        None, description="Earliest time a retried job may be dispatched again"
    )
    last_error: Optional[JobError] = None
    result: Optional[Dict[str, Any]] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.FAILED)


class JobStats(BaseModel):
    total: int = 0
    pending: int = 0
    running: int = 0
    completed: int = 0
    failed: int = 0
    active_workers: int = 0
    max_concurrency: int
    is_processing: bool


class JobListResponse(BaseModel):
    jobs: List[Job]
    total: int
    limit: int
    offset: int
    has_more: bool


class JobTypeInfo(BaseModel):
    type: JobType
    description: str
    default_priority: int


class JobTypesResponse(BaseModel):
    job_types: List[JobTypeInfo]
    max_concurrency: int
    max_retries: int
    retry_delay_seconds: float
    job_timeout_seconds: float


class JobScheduledResponse(BaseModel):
    success: bool = True
    job_id: Optional[int] = None
    message: str


# Request bodies


class CameraJobRequest(BaseModel):
    """Camera fields needed to schedule a default image fetch"""

    id: Optional[int] = Field(None, description="Camera id")
    brand: Optional[str] = None
    model: Optional[str] = None
    has_user_images: bool = False


class CacheImageRequest(BaseModel):
    url: str = Field(..., min_length=1, description="External image URL to cache")


class PopulateOptions(BaseModel):
    """Options for populate-default-images. Out-of-range values are clamped."""

    batch_size: int = POPULATE_DEFAULT_BATCH_SIZE
    min_quality: int = POPULATE_DEFAULT_MIN_QUALITY
    skip_existing: bool = True
    enable_caching: bool = True
    dry_run: bool = False
    models: Optional[List[Dict[str, str]]] = Field(
        None,
        description="Explicit [{brand, model}] list; defaults to the camera inventory",
    )


class ClearJobsResponse(BaseModel):
    success: bool = True
    cleared: int
    status: str


class PopulateStats(BaseModel):
    """Counters produced by a populate-default-images run"""

    total_cameras: int = 0
    unique_models: int = 0
    processed: int = 0
    successful: int = 0
    skipped: int = 0
    failed: int = 0
    errors: List[Dict[str, str]] = Field(default_factory=list)
