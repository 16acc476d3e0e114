# backend/camtracker/models/cache_model.py
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class CacheEntry(BaseModel):
    """A cached file on disk; derived from the filesystem, never stored"""

    cache_key: str
    cache_path: str
    size: int
    cached_at: datetime
    age_seconds: float
    url: str = Field(..., description="Serving URL under /cached-images")
    original_url: Optional[str] = None


class CacheStats(BaseModel):
    total_files: int = 0
    valid_files: int = 0
    expired_files: int = 0
    total_size: int = 0
    total_size_mb: float = 0.0
    cache_dir: str
    max_age_seconds: int
    max_age_hours: int


class CacheCleanupResult(BaseModel):
    deleted_count: int = 0
    error_count: int = 0
    total_files: int = 0


class BatchFetchResult(BaseModel):
    successful: int = 0
    failed: int = 0
    total: int = 0
    results: List[CacheEntry] = Field(default_factory=list)
    errors: List[Dict[str, Any]] = Field(default_factory=list)


class CacheValidationResult(BaseModel):
    valid: bool
    reason: Optional[str] = None
    size: Optional[int] = None
    modified: Optional[datetime] = None


class CacheUsageByAge(BaseModel):
    last_24h: int = 0
    last_7_days: int = 0
    last_30_days: int = 0
    older: int = 0


class CacheBatchRequest(BaseModel):
    urls: List[str] = Field(..., min_length=1)
    concurrency: int = Field(default=3, ge=1, le=10)
