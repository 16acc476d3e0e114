# backend/camtracker/enums.py
"""
Application Enums - Centralized enum definitions.

All enums live here so constants.py, models and services can import them
without circular dependencies.
"""

from enum import Enum


# =============================================================================
# JOB SYSTEM
# =============================================================================


class JobStatus(str, Enum):
    """Lifecycle states of a background job. Exactly one applies at a time."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class JobType(str, Enum):
    """Job types understood by the background queue."""

    FETCH_DEFAULT_IMAGE = "fetch-default-image"
    CACHE_IMAGE = "cache-image"
    CLEANUP_CACHE = "cleanup-cache"
    POPULATE_DEFAULT_IMAGES = "populate-default-images"


class JobEventType(str, Enum):
    """Lifecycle notifications emitted by the job queue."""

    JOB_ADDED = "job_added"
    JOB_STARTED = "job_started"
    JOB_RETRY = "job_retry"
    JOB_COMPLETED = "job_completed"
    JOB_FAILED = "job_failed"
    JOBS_CLEANED_UP = "jobs_cleaned_up"
    JOBS_CLEARED = "jobs_cleared"
    PROCESSING_STARTED = "processing_started"
    PROCESSING_STOPPED = "processing_stopped"


class JobClearTarget(str, Enum):
    """Which jobs a clear request removes."""

    COMPLETED = "completed"
    FAILED = "failed"
    ALL = "all"


# =============================================================================
# IMAGE SOURCES
# =============================================================================


class ImageSource(str, Enum):
    """Outcome of the camera image fallback chain."""

    USER = "user"
    DEFAULT_MODEL = "default_model"
    DEFAULT_BRAND = "default_brand"
    PLACEHOLDER = "placeholder"


class ImageProvenance(str, Enum):
    """Where a stored reference image came from."""

    WIKIPEDIA_COMMONS = "Wikipedia Commons"
    MANUAL = "Manual"
    USER_UPLOAD = "User Upload"
    SYSTEM = "System"


class ExportFormat(str, Enum):
    """Attribution export formats."""

    JSON = "json"
    CSV = "csv"


# =============================================================================
# PERFORMANCE
# =============================================================================


class PerformanceGrade(str, Enum):
    """Letter grade for image delivery health."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"


class SuggestionType(str, Enum):
    """Categories of optimisation suggestions."""

    CACHE = "cache"
    RESPONSE_TIME = "response_time"
    IMAGE_SIZE = "image_size"


class SuggestionPriority(str, Enum):
    """Urgency of an optimisation suggestion or recommendation."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# =============================================================================
# LOGGING
# =============================================================================


class LogLevel(str, Enum):
    """Log level constants for centralized logging system."""

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"
