# backend/camtracker/routers/performance_routers.py
"""
Image delivery performance endpoints.
"""

import asyncio

from fastapi import APIRouter

from ..dependencies import CacheServiceDep, PerformanceServiceDep
from ..models.performance_model import PerformanceReport, PerformanceStats
from ..utils.response_helpers import ResponseFormatter
from ..utils.router_helpers import handle_exceptions

router = APIRouter(tags=["performance"])


@router.get("/performance/stats", response_model=PerformanceStats)
@handle_exceptions("get performance statistics")
async def get_performance_stats(performance_service: PerformanceServiceDep):
    return performance_service.get_performance_stats()


@router.get("/performance/report", response_model=PerformanceReport)
@handle_exceptions("generate performance report")
async def get_performance_report(
    performance_service: PerformanceServiceDep, cache_service: CacheServiceDep
):
    cache_stats = await asyncio.to_thread(cache_service.get_stats)
    return performance_service.generate_performance_report(cache_stats.model_dump())


@router.get("/performance/recommendations")
@handle_exceptions("get performance recommendations")
async def get_performance_recommendations(
    performance_service: PerformanceServiceDep, cache_service: CacheServiceDep
):
    optimization = await asyncio.to_thread(
        performance_service.optimize_image_loading, cache_service
    )
    return {
        "grade": performance_service.get_performance_grade(),
        "suggestions": performance_service.suggestions,
        "recommendations": optimization.recommendations,
        "cache": optimization,
    }


@router.post("/performance/reset")
@handle_exceptions("reset performance statistics")
async def reset_performance_stats(performance_service: PerformanceServiceDep):
    performance_service.reset_stats()
    return ResponseFormatter.success("Performance statistics reset")
