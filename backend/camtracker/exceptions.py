# backend/camtracker/exceptions.py
"""
Custom exceptions for CamTracker.

Centralized location for all custom exception classes to avoid
duplicating exception definitions across modules.
"""

# Each exception type represents a distinct error domain with its own HTTP
# mapping in middleware/error_handler.py


class CamTrackerError(Exception):
    """Base exception for all CamTracker-specific errors."""

    pass


class NotFoundError(CamTrackerError):
    """Requested entity (job, image record, cache entry) does not exist."""

    pass


class ValidationError(CamTrackerError):
    """Malformed input: bad URL, unknown job type, invalid parameter."""

    pass


class DownloadError(CamTrackerError):
    """Network failure, non-2xx status, wrong content type or size cap exceeded."""

    pass


class ImageProcessingError(CamTrackerError):
    """Custom exception for image decode/transcode failures."""

    pass


class CompressionError(ImageProcessingError):
    """Image cannot be brought under the size budget at the minimum quality."""

    pass


class DuplicateError(CamTrackerError):
    """An active record already exists for the same brand/model."""

    pass


class JobTimeoutError(CamTrackerError):
    """A job exceeded its wall-clock budget."""

    pass


class DatabaseOperationError(CamTrackerError):
    """Custom exception for database operation failures."""

    pass


class ExternalServiceError(CamTrackerError):
    """An upstream API (Wikimedia Commons) returned an error object."""

    pass
