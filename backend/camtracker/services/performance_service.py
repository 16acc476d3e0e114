# backend/camtracker/services/performance_service.py
"""
Image delivery performance telemetry.

One PerformanceService instance lives on app.state and is fed by
PerformanceMiddleware. It keeps request counters, a rolling window of the
last 100 response times and derives a letter grade plus advisory
optimisation suggestions after every sample.
"""

import os
import time
from collections import deque
from typing import Deque, List, Optional

from loguru import logger

from ..constants import (
    GRADE_BUCKETS,
    GRADE_HIT_RATE_PENALTIES,
    GRADE_LARGE_IMAGE_PENALTIES,
    GRADE_RESPONSE_TIME_PENALTIES,
    LARGE_IMAGE_BYTES,
    RESPONSE_TIME_WINDOW,
    SUGGESTION_HIT_RATE_THRESHOLD,
    SUGGESTION_LARGE_IMAGE_COUNT,
    SUGGESTION_MIN_REQUESTS,
    SUGGESTION_SLOW_AVG_MS,
)
from ..enums import PerformanceGrade, SuggestionPriority, SuggestionType
from ..models.performance_model import (
    LoadingOptimization,
    OptimizationSuggestion,
    PerformanceReport,
    PerformanceStats,
)


def _penalty(value: float, thresholds, below: bool) -> int:
    """First matching (threshold, penalty) pair; ``below`` flips the comparison."""
    for threshold, penalty in thresholds:
        if (value < threshold) if below else (value > threshold):
            return penalty
    return 0


def calculate_grade(
    hit_rate: float, average_response_time: float, large_image_ratio: float
) -> PerformanceGrade:
    """
    Letter grade from a 100 point baseline.

    Hit rate costs up to 40 points, average response time up to 40 and the
    share of large (>2MB) images up to 20. Buckets at 90/80/70/60.
    """
    score = 100
    score -= _penalty(hit_rate, GRADE_HIT_RATE_PENALTIES, below=True)
    score -= _penalty(average_response_time, GRADE_RESPONSE_TIME_PENALTIES, below=False)
    score -= _penalty(large_image_ratio, GRADE_LARGE_IMAGE_PENALTIES, below=False)

    for cutoff, grade in GRADE_BUCKETS:
        if score >= cutoff:
            return PerformanceGrade(grade)
    return PerformanceGrade.F


def _percentile(samples: List[float], percentile: float) -> Optional[float]:
    if not samples:
        return None
    ordered = sorted(samples)
    index = min(len(ordered) - 1, max(0, int(round(percentile / 100 * len(ordered))) - 1))
    return round(ordered[index], 2)


class PerformanceService:
    """Process-lifetime image request statistics with explicit reset."""

    def __init__(self, window_size: int = RESPONSE_TIME_WINDOW):
        self.window_size = window_size
        self.reset_stats()

    def reset_stats(self) -> None:
        self.total_requests = 0
        self.cache_hits = 0
        self.cache_misses = 0
        self.large_image_warnings = 0
        self.response_times: Deque[float] = deque(maxlen=self.window_size)
        self.suggestions: List[OptimizationSuggestion] = []
        self.started_at = time.time()

    # Derived metrics

    @property
    def cache_hit_rate(self) -> float:
        """Percentage; 100 when nothing has been requested yet."""
        if self.total_requests == 0:
            return 100.0
        return self.cache_hits / self.total_requests * 100

    @property
    def average_response_time(self) -> float:
        if not self.response_times:
            return 0.0
        return sum(self.response_times) / len(self.response_times)

    @property
    def large_image_ratio(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.large_image_warnings / self.total_requests * 100

    def get_performance_grade(self) -> PerformanceGrade:
        return calculate_grade(
            self.cache_hit_rate, self.average_response_time, self.large_image_ratio
        )

    # Recording

    def track_image_request(
        self, elapsed_ms: float, was_cached: bool, image_size: Optional[int] = None
    ) -> None:
        """Record one image response and refresh suggestions."""
        self.total_requests += 1
        if was_cached:
            self.cache_hits += 1
        else:
            self.cache_misses += 1

        self.response_times.append(float(elapsed_ms))

        if image_size is not None and image_size > LARGE_IMAGE_BYTES:
            self.large_image_warnings += 1
            logger.warning(
                f"Large image served: {image_size / (1024 * 1024):.1f}MB"
            )

        self._update_suggestions()

    def _update_suggestions(self) -> None:
        suggestions = []
        if (
            self.total_requests > SUGGESTION_MIN_REQUESTS
            and self.cache_hit_rate < SUGGESTION_HIT_RATE_THRESHOLD
        ):
            suggestions.append(
                OptimizationSuggestion(
                    type=SuggestionType.CACHE,
                    priority=SuggestionPriority.HIGH,
                    message=f"Cache hit rate is {self.cache_hit_rate:.1f}%",
                    action="Preload frequently requested images into the cache",
                )
            )
        if self.average_response_time > SUGGESTION_SLOW_AVG_MS:
            suggestions.append(
                OptimizationSuggestion(
                    type=SuggestionType.RESPONSE_TIME,
                    priority=SuggestionPriority.HIGH,
                    message=f"Average response time is {self.average_response_time:.0f}ms",
                    action="Serve compressed images and check storage latency",
                )
            )
        if self.large_image_warnings > SUGGESTION_LARGE_IMAGE_COUNT:
            suggestions.append(
                OptimizationSuggestion(
                    type=SuggestionType.IMAGE_SIZE,
                    priority=SuggestionPriority.MEDIUM,
                    message=f"{self.large_image_warnings} images over 2MB were served",
                    action="Re-process large images through the download pipeline",
                )
            )
        self.suggestions = suggestions

    # Reporting

    def get_performance_stats(self) -> PerformanceStats:
        return PerformanceStats(
            total_requests=self.total_requests,
            cache_hits=self.cache_hits,
            cache_misses=self.cache_misses,
            cache_hit_rate=round(self.cache_hit_rate, 2),
            average_response_time=round(self.average_response_time, 2),
            large_image_warnings=self.large_image_warnings,
            samples=len(self.response_times),
            performance_grade=self.get_performance_grade(),
            optimization_suggestions=list(self.suggestions),
        )

    def generate_performance_report(self, cache_stats: Optional[dict] = None) -> PerformanceReport:
        """Summary plus percentiles, status labels and next actions."""
        stats = self.get_performance_stats()
        samples = list(self.response_times)

        hit_rate = stats.cache_hit_rate
        if hit_rate >= 90:
            cache_status = "excellent"
        elif hit_rate >= 70:
            cache_status = "good"
        else:
            cache_status = "needs_improvement"

        avg = stats.average_response_time
        if avg <= 500:
            response_time_status = "fast"
        elif avg <= 1000:
            response_time_status = "acceptable"
        else:
            response_time_status = "slow"

        next_actions = [suggestion.action for suggestion in stats.optimization_suggestions]
        if not next_actions:
            next_actions.append("No action needed; keep monitoring")

        return PerformanceReport(
            summary=stats,
            p95_response_time=_percentile(samples, 95),
            p99_response_time=_percentile(samples, 99),
            cache_status=cache_status,
            response_time_status=response_time_status,
            next_actions=next_actions,
            cache=cache_stats,
        )

    def optimize_image_loading(self, cache_service, unused_days: int = 7) -> LoadingOptimization:
        """Inspect the cache for files nobody has read recently."""
        cache_stats = cache_service.get_stats()
        cutoff = time.time() - unused_days * 24 * 60 * 60
        unused_files = 0
        unused_bytes = 0
        for entry in cache_service.list_entries():
            try:
                stat = os.stat(entry.cache_path)
            except FileNotFoundError:
                continue
            if stat.st_atime < cutoff:
                unused_files += 1
                unused_bytes += stat.st_size

        recommendations = []
        if cache_stats.expired_files:
            recommendations.append(
                f"Run cache cleanup to remove {cache_stats.expired_files} expired files"
            )
        if unused_files:
            recommendations.append(
                f"{unused_files} cached files were not read in {unused_days} days"
            )
        recommendations.extend(s.action for s in self.suggestions)

        return LoadingOptimization(
            unused_cached_files=unused_files,
            unused_cached_bytes=unused_bytes,
            cache_valid_files=cache_stats.valid_files,
            cache_expired_files=cache_stats.expired_files,
            recommendations=recommendations,
        )
