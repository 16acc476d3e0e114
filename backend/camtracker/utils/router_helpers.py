# backend/camtracker/utils/router_helpers.py
"""
Router Helper Functions

Common decorators and helpers for FastAPI routers: standardized error
handling, entity validation and clamping of query parameters.
"""

from functools import wraps
from typing import Awaitable, Callable, Optional, TypeVar

from fastapi import HTTPException
from loguru import logger

from ..exceptions import CamTrackerError, NotFoundError

T = TypeVar("T")


def handle_exceptions(operation_name: str):
    """
    Decorator for standardized exception handling in router endpoints.

    HTTPExceptions and domain errors (CamTrackerError) pass through untouched
    so the application-level handlers can map them to status codes. Anything
    else is logged and turned into a generic 500.

    Usage:
        @handle_exceptions("fetch job statistics")
        async def get_job_stats():
            ...
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except (HTTPException, CamTrackerError):
                raise
            except Exception as e:
                logger.error(f"Error {operation_name}: {e}")
                raise HTTPException(
                    status_code=500, detail=f"Failed to {operation_name}"
                )

        return wrapper

    return decorator


async def validate_entity_exists(
    lookup: Callable[..., Awaitable[Optional[T]]],
    entity_id: int,
    entity_name: str = "entity",
) -> T:
    """
    Fetch an entity or raise NotFoundError.

    Usage:
        image = await validate_entity_exists(ops.get_by_id, image_id, "default image")
    """
    entity = await lookup(entity_id)
    if entity is None:
        raise NotFoundError(f"{entity_name.capitalize()} {entity_id} not found")
    return entity
