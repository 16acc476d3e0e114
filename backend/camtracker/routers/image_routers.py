# backend/camtracker/routers/image_routers.py
"""
Camera image resolution endpoints used by the camera read path.
"""

from typing import Any, Dict, List

from fastapi import APIRouter

from ..dependencies import ResolutionServiceDep
from ..models.resolution_model import (
    CameraImageInput,
    EnhanceRequest,
    ImageResolution,
    ImageStatistics,
)
from ..utils.router_helpers import handle_exceptions

router = APIRouter(tags=["images"])


@router.post("/images/resolve", response_model=ImageResolution)
@handle_exceptions("resolve camera image")
async def resolve_camera_image(
    camera: CameraImageInput, resolution_service: ResolutionServiceDep
):
    """Which image a camera shows: user, model default, brand default or placeholder."""
    return await resolution_service.resolve(camera)


@router.post("/images/enhance", response_model=List[Dict[str, Any]])
@handle_exceptions("enhance cameras with images")
async def enhance_cameras(request: EnhanceRequest, resolution_service: ResolutionServiceDep):
    return await resolution_service.enhance_cameras(request.cameras)


@router.post("/images/statistics", response_model=ImageStatistics)
@handle_exceptions("compute image statistics")
async def get_image_statistics(
    request: EnhanceRequest, resolution_service: ResolutionServiceDep
):
    return await resolution_service.get_image_statistics(request.cameras)
