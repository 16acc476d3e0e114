# backend/camtracker/models/attribution_model.py
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ..enums import SuggestionPriority


class AttributionValidation(BaseModel):
    valid: bool
    issues: List[str] = Field(default_factory=list)


class IssueCount(BaseModel):
    issue: str
    count: int


class AttributionRecommendation(BaseModel):
    priority: SuggestionPriority
    message: str
    action: str


class ImageValidationEntry(BaseModel):
    id: Optional[int] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    valid: bool
    issues: List[str] = Field(default_factory=list)


class AttributionReport(BaseModel):
    total_images: int = 0
    valid_attributions: int = 0
    invalid_attributions: int = 0
    compliance_rate: int = 0
    common_issues: List[IssueCount] = Field(default_factory=list)
    source_breakdown: Dict[str, int] = Field(default_factory=dict)
    recommendations: List[AttributionRecommendation] = Field(default_factory=list)


class DetailedAttribution(BaseModel):
    id: Optional[int] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    source: Optional[str] = None
    attribution: str
    author: str
    license: Optional[str] = None
    source_url: Optional[str] = None
    usage_notes: str
    validation: AttributionValidation


class AttributionUpdate(BaseModel):
    source_attribution: Optional[str] = None
    author: Optional[str] = None
    license: Optional[str] = None
    source: Optional[str] = None


class BatchValidateRequest(BaseModel):
    image_ids: List[int] = Field(..., min_length=1)
