# backend/camtracker/models/resolution_model.py
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..enums import ImageSource


class CameraImageInput(BaseModel):
    """Camera fields the fallback chain looks at. Extra camera fields are kept."""

    model_config = ConfigDict(extra="allow")

    id: Optional[int] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    image1_path: Optional[str] = None
    image2_path: Optional[str] = None


class DefaultImageInfo(BaseModel):
    """Provenance of a non-user image"""

    source: Optional[str] = None
    attribution: Optional[str] = None
    quality: Optional[int] = None
    type: ImageSource


class ImageResolution(BaseModel):
    """Exactly one fallback outcome for a camera"""

    primary_image: Optional[str] = None
    secondary_image: Optional[str] = None
    image_source: ImageSource
    has_user_images: bool = False
    default_image_info: Optional[DefaultImageInfo] = None


class ImageStatistics(BaseModel):
    total: int = 0
    user: int = 0
    default_model: int = 0
    default_brand: int = 0
    placeholder: int = 0
    coverage_percent: int = Field(
        0, description="Share of cameras showing a real (non-placeholder) image"
    )


class EnhanceRequest(BaseModel):
    cameras: List[CameraImageInput]
