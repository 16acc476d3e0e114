# backend/camtracker/routers/health_routers.py
"""
Health check endpoint: database pool, default image store, job queue and
cleanup scheduler.
"""

from fastapi import APIRouter

from ..dependencies import ContainerDep
from ..utils.router_helpers import handle_exceptions
from ..utils.time_utils import utc_now

router = APIRouter(tags=["health"])


@router.get("/health")
@handle_exceptions("get health status")
async def get_health(container: ContainerDep):
    database = (
        await container.db.get_pool_stats()
        if container.db is not None
        else {"status": "not_configured"}
    )
    healthy = database.get("status") in ("healthy", "not_configured")
    # Skip the count query when the pool is already known to be down
    default_images = (
        {"active": await container.default_images.get_count(is_active=True)}
        if healthy
        else None
    )
    return {
        "status": "healthy" if healthy else "degraded",
        "timestamp": utc_now().isoformat(),
        "database": database,
        "default_images": default_images,
        "job_queue": container.job_queue.get_status(),
        "cache_cleanup": (
            container.cleanup_scheduler.get_status()
            if container.cleanup_scheduler is not None
            else None
        ),
    }
