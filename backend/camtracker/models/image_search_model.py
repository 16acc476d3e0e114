# backend/camtracker/models/image_search_model.py
from typing import List, Optional

from pydantic import BaseModel, Field

from .download_model import DownloadResult


class ImageCandidate(BaseModel):
    """A ranked Wikimedia Commons search hit"""

    title: str
    filename: str
    url: str
    width: int = 0
    height: int = 0
    mime: str = ""
    size: Optional[int] = None
    quality: int = Field(..., ge=1, le=10)
    license: Optional[str] = None
    author: Optional[str] = None
    attribution: Optional[str] = None
    source: str = "Wikipedia Commons"
    relevance_score: int = 0
    combined_score: int = 0


class BestImageResult(BaseModel):
    """Chosen image for a camera model, possibly downloaded locally"""

    image_url: str
    original_url: str
    source: str
    source_attribution: str
    image_quality: int
    width: int
    height: int
    license: Optional[str] = None
    author: Optional[str] = None
    downloaded: bool = False
    download_info: Optional[DownloadResult] = None


class FileInfo(BaseModel):
    """Metadata for a single Commons file"""

    title: str
    url: Optional[str] = None
    width: int = 0
    height: int = 0
    size: Optional[int] = None
    mime: Optional[str] = None
    license: Optional[str] = None
    author: Optional[str] = None
    attribution: Optional[str] = None
    description: Optional[str] = None


class SearchResponse(BaseModel):
    brand: str
    model: str
    count: int
    images: List[ImageCandidate]


class SuggestionsResponse(BaseModel):
    brand: str
    suggestions: List[str]


class AutoAssignRequest(BaseModel):
    brand: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    overwrite: bool = False
    enable_download: bool = True
