# backend/camtracker/routers/default_image_routers.py
"""
Default image management.

CRUD for model-level defaults (``/default-images``) and brand-level
fallbacks (``/brand-default-images``).
"""

from typing import List, Optional

from fastapi import APIRouter, Query, status

from ..dependencies import BrandImageOperationsDep, DefaultImageOperationsDep
from ..exceptions import NotFoundError, ValidationError
from ..models.default_image_model import (
    BrandDefaultImage,
    BrandDefaultImageCreate,
    BrandDefaultImageUpdate,
    BrandModelsResponse,
    DefaultImage,
    DefaultImageCreate,
    DefaultImageUpdate,
)
from ..utils.response_helpers import ResponseFormatter
from ..utils.router_helpers import handle_exceptions, validate_entity_exists

router = APIRouter(tags=["default-images"])


@router.get("/default-images", response_model=List[DefaultImage])
@handle_exceptions("list default images")
async def list_default_images(
    default_images: DefaultImageOperationsDep,
    brand: Optional[str] = Query(None),
    model: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(True, description="Null lists every record"),
):
    return await default_images.get_all(brand=brand, model=model, is_active=is_active)


@router.get("/default-images/brands", response_model=List[str])
@handle_exceptions("list default image brands")
async def list_brands(default_images: DefaultImageOperationsDep):
    return await default_images.get_brands()


@router.get("/default-images/models/{brand}", response_model=BrandModelsResponse)
@handle_exceptions("list models for brand")
async def list_models_for_brand(brand: str, default_images: DefaultImageOperationsDep):
    models = await default_images.get_models_by_brand(brand)
    return BrandModelsResponse(brand=brand, models=models)


@router.get("/default-images/{image_id}", response_model=DefaultImage)
@handle_exceptions("get default image")
async def get_default_image(image_id: int, default_images: DefaultImageOperationsDep):
    return await validate_entity_exists(
        default_images.get_by_id, image_id, "default image"
    )


@router.post(
    "/default-images",
    response_model=DefaultImage,
    status_code=status.HTTP_201_CREATED,
)
@handle_exceptions("create default image")
async def create_default_image(
    data: DefaultImageCreate,
    default_images: DefaultImageOperationsDep,
    overwrite: bool = Query(False, description="Replace an existing active record"),
):
    """
    Create a default image for a brand/model.

    Returns 409 when an active record already exists, unless ``overwrite``
    is set, in which case the old record is deactivated.
    """
    if overwrite:
        return await default_images.replace(data)
    return await default_images.create(data)


@router.put("/default-images/{image_id}", response_model=DefaultImage)
@handle_exceptions("update default image")
async def update_default_image(
    image_id: int, data: DefaultImageUpdate, default_images: DefaultImageOperationsDep
):
    if not data.model_dump(exclude_unset=True):
        raise ValidationError("No fields to update")
    updated = await default_images.update(image_id, data)
    if updated is None:
        raise NotFoundError(f"Default image {image_id} not found")
    return updated


@router.delete("/default-images/{image_id}")
@handle_exceptions("delete default image")
async def delete_default_image(
    image_id: int,
    default_images: DefaultImageOperationsDep,
    hard: bool = Query(False, description="Remove the row instead of deactivating it"),
):
    deleted = await default_images.delete(image_id, hard=hard)
    if not deleted:
        raise NotFoundError(f"Default image {image_id} not found")
    action = "deleted" if hard else "deactivated"
    return ResponseFormatter.success(
        f"Default image {image_id} {action}", data={"id": image_id, "hard": hard}
    )


# Brand-level fallbacks


@router.get("/brand-default-images", response_model=List[BrandDefaultImage])
@handle_exceptions("list brand default images")
async def list_brand_default_images(
    brand_images: BrandImageOperationsDep,
    is_active: Optional[bool] = Query(True),
):
    return await brand_images.get_all(is_active=is_active)


@router.post(
    "/brand-default-images",
    response_model=BrandDefaultImage,
    status_code=status.HTTP_201_CREATED,
)
@handle_exceptions("create brand default image")
async def create_brand_default_image(
    data: BrandDefaultImageCreate, brand_images: BrandImageOperationsDep
):
    return await brand_images.create(data)


@router.put("/brand-default-images/{image_id}", response_model=BrandDefaultImage)
@handle_exceptions("update brand default image")
async def update_brand_default_image(
    image_id: int, data: BrandDefaultImageUpdate, brand_images: BrandImageOperationsDep
):
    updated = await brand_images.update(image_id, data)
    if updated is None:
        raise NotFoundError(f"Brand default image {image_id} not found")
    return updated
