# backend/camtracker/models/performance_model.py
from typing import List, Optional

from pydantic import BaseModel, Field

from ..enums import PerformanceGrade, SuggestionPriority, SuggestionType


class OptimizationSuggestion(BaseModel):
    type: SuggestionType
    priority: SuggestionPriority
    message: str
    action: str


class PerformanceStats(BaseModel):
    total_requests: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    cache_hit_rate: float = Field(0.0, description="Percentage, 0-100")
    average_response_time: float = Field(0.0, description="Milliseconds")
    large_image_warnings: int = 0
    samples: int = 0
    performance_grade: PerformanceGrade = PerformanceGrade.A
    optimization_suggestions: List[OptimizationSuggestion] = Field(
        default_factory=list
    )


class PerformanceReport(BaseModel):
    summary: PerformanceStats
    p95_response_time: Optional[float] = None
    p99_response_time: Optional[float] = None
    cache_status: str
    response_time_status: str
    next_actions: List[str] = Field(default_factory=list)
    cache: Optional[dict] = None


class LoadingOptimization(BaseModel):
    unused_cached_files: int = 0
    unused_cached_bytes: int = 0
    cache_valid_files: int = 0
    cache_expired_files: int = 0
    recommendations: List[str] = Field(default_factory=list)
