# backend/camtracker/models/default_image_model.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ..enums import ImageProvenance


class DefaultImageBase(BaseModel):
    brand: str = Field(..., min_length=1, max_length=100)
    model: str = Field(..., min_length=1, max_length=200)
    image_url: str = Field(..., min_length=1, description="Local or remote image URL")
    source: str = Field(
        default=ImageProvenance.WIKIPEDIA_COMMONS.value,
        description="Provenance label (Wikipedia Commons, Manual, ...)",
    )
    source_attribution: Optional[str] = None
    author: Optional[str] = None
    license: Optional[str] = None
    image_quality: int = Field(default=5, ge=1, le=10)
    is_active: bool = True


class DefaultImageCreate(DefaultImageBase):
    """Model for creating a new default image record"""

    pass


class DefaultImageUpdate(BaseModel):
    """Partial update; only provided fields are written"""

    image_url: Optional[str] = None
    source: Optional[str] = None
    source_attribution: Optional[str] = None
    author: Optional[str] = None
    license: Optional[str] = None
    image_quality: Optional[int] = Field(None, ge=1, le=10)
    is_active: Optional[bool] = None


class DefaultImage(DefaultImageBase):
    """Full default image model with database fields"""

    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BrandDefaultImageBase(BaseModel):
    brand: str = Field(..., min_length=1, max_length=100)
    image_url: str = Field(..., min_length=1)
    source: str = ImageProvenance.WIKIPEDIA_COMMONS.value
    source_attribution: Optional[str] = None
    author: Optional[str] = None
    license: Optional[str] = None
    is_active: bool = True


class BrandDefaultImageCreate(BrandDefaultImageBase):
    pass


class BrandDefaultImageUpdate(BaseModel):
    image_url: Optional[str] = None
    source: Optional[str] = None
    source_attribution: Optional[str] = None
    author: Optional[str] = None
    license: Optional[str] = None
    is_active: Optional[bool] = None


class BrandDefaultImage(BrandDefaultImageBase):
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CameraModelRef(BaseModel):
    """A distinct (brand, model) pair from the camera inventory"""

    brand: str
    model: str


class BrandModelsResponse(BaseModel):
    brand: str
    models: List[str]
