# backend/camtracker/routers/image_search_routers.py
"""
Wikimedia Commons search endpoints.

Interactive counterparts to the background fetch jobs: search, pick the best
candidate, and assign it as a model's default image.
"""

from typing import Optional

from fastapi import APIRouter, Query

from ..constants import DEFAULT_SEARCH_LIMIT
from ..dependencies import DefaultImageOperationsDep, WikimediaClientDep
from ..exceptions import NotFoundError
from ..models.default_image_model import DefaultImageCreate
from ..models.image_search_model import (
    AutoAssignRequest,
    BestImageResult,
    FileInfo,
    SearchResponse,
    SuggestionsResponse,
)
from ..utils.response_helpers import ResponseFormatter
from ..utils.router_helpers import handle_exceptions

router = APIRouter(tags=["image-search"])


@router.get("/image-search/wikipedia", response_model=SearchResponse)
@handle_exceptions("search Wikimedia Commons")
async def search_wikipedia_images(
    wikimedia_client: WikimediaClientDep,
    brand: str = Query(..., min_length=1),
    model: str = Query(..., min_length=1),
    limit: int = Query(DEFAULT_SEARCH_LIMIT, ge=1, le=50),
):
    images = await wikimedia_client.search_camera_images(brand.strip(), model.strip(), limit)
    return SearchResponse(brand=brand, model=model, count=len(images), images=images)


@router.get("/image-search/find-best", response_model=BestImageResult)
@handle_exceptions("find best camera image")
async def find_best_image(
    wikimedia_client: WikimediaClientDep,
    brand: str = Query(..., min_length=1),
    model: str = Query(..., min_length=1),
    enable_download: bool = Query(False, description="Download and transcode the image"),
):
    best = await wikimedia_client.find_best_image_for_camera(
        brand.strip(), model.strip(), enable_download=enable_download
    )
    if best is None:
        raise NotFoundError(f"No suitable image found for {brand} {model}")
    return best


@router.post("/image-search/auto-assign")
@handle_exceptions("auto-assign default image")
async def auto_assign_default_image(
    request: AutoAssignRequest,
    wikimedia_client: WikimediaClientDep,
    default_images: DefaultImageOperationsDep,
):
    """
    Find the best Commons image for a model and store it as its default.

    An existing active default is kept unless ``overwrite`` is set.
    """
    brand, model = request.brand.strip(), request.model.strip()

    existing = await default_images.get_by_brand_and_model(brand, model)
    if existing is not None and not request.overwrite:
        return ResponseFormatter.success(
            f"Default image already exists for {brand} {model}",
            data=existing,
            action="skipped",
        )

    best = await wikimedia_client.find_best_image_for_camera(
        brand, model, enable_download=request.enable_download
    )
    if best is None:
        raise NotFoundError(f"No suitable image found for {brand} {model}")

    data = DefaultImageCreate(
        brand=brand,
        model=model,
        image_url=best.image_url,
        source=best.source,
        source_attribution=best.source_attribution,
        author=best.author,
        license=best.license,
        image_quality=best.image_quality,
    )
    if existing is not None:
        stored = await default_images.replace(data)
        action = "replaced"
    else:
        stored = await default_images.create(data)
        action = "created"

    return ResponseFormatter.success(
        f"Default image {action} for {brand} {model}",
        data=stored,
        action=action,
        downloaded=best.downloaded,
    )


@router.get("/image-search/suggestions/{brand}", response_model=SuggestionsResponse)
@handle_exceptions("get model suggestions")
async def get_model_suggestions(
    brand: str,
    wikimedia_client: WikimediaClientDep,
    partial: Optional[str] = Query("", description="Partial model name"),
):
    suggestions = await wikimedia_client.get_search_suggestions(brand, partial or "")
    return SuggestionsResponse(brand=brand, suggestions=suggestions)


@router.get("/image-search/file-info/{filename:path}", response_model=FileInfo)
@handle_exceptions("get Commons file info")
async def get_file_info(filename: str, wikimedia_client: WikimediaClientDep):
    info = await wikimedia_client.get_file_info(filename)
    if info is None:
        raise NotFoundError(f"Commons file {filename} not found")
    return info


@router.get("/image-search/validate-url")
@handle_exceptions("validate image URL")
async def validate_image_url(
    wikimedia_client: WikimediaClientDep, url: str = Query(..., min_length=1)
):
    return {"url": url, "valid": await wikimedia_client.validate_image_url(url)}
