# backend/camtracker/services/attribution_service.py
"""
Attribution validation, rendering and compliance reporting for default images.
"""

import csv
import io
import json
import re
from collections import Counter
from typing import Any, Dict, List, Optional, Union

from loguru import logger

from ..constants import (
    ATTRIBUTION_HIGH_QUALITY_THRESHOLD,
    ATTRIBUTION_TOP_ISSUES,
    COMPLIANCE_WARNING_RATE,
    MISSING_ATTRIBUTION_WARNING_COUNT,
    WIKIMEDIA_REVIEW_COUNT,
)
from ..database.default_image_operations import DefaultImageOperations
from ..enums import ExportFormat, ImageProvenance, SuggestionPriority
from ..exceptions import NotFoundError, ValidationError
from ..models.attribution_model import (
    AttributionRecommendation,
    AttributionReport,
    AttributionUpdate,
    AttributionValidation,
    DetailedAttribution,
    ImageValidationEntry,
    IssueCount,
)
from ..models.default_image_model import DefaultImage, DefaultImageUpdate

ImageLike = Union[DefaultImage, Dict[str, Any], None]

TAG_RE = re.compile(r"<[^>]+>")
WIKI_LINK_RE = re.compile(r"\[\[([^\]|]+)(?:\|[^\]]*)?\]\]")
BRACKET_RE = re.compile(r"\[[^\]]*\]")

ISSUE_NO_DATA = "No image data provided"
ISSUE_MISSING_SOURCE = "Missing source information"
ISSUE_WIKI_AUTHOR = "Missing author information for Wikipedia Commons image"
ISSUE_WIKI_LICENSE = "Missing license information for Wikipedia Commons image"
ISSUE_MANUAL_ATTRIBUTION = "Manual images should include attribution information"

COMMONS_SEARCH_URL = "https://commons.wikimedia.org/w/index.php?search="


def _as_dict(image: ImageLike) -> Dict[str, Any]:
    if image is None:
        return {}
    if isinstance(image, dict):
        return image
    return image.model_dump()


def _present(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def clean_author_name(author: Optional[str]) -> str:
    """Strip markup from an author string; empty results become 'Unknown'."""
    if not author:
        return "Unknown"
    text = TAG_RE.sub("", author)
    text = WIKI_LINK_RE.sub(r"\1", text)
    text = BRACKET_RE.sub("", text)
    text = (
        text.replace("&lt;", "<")
        .replace("&gt;", ">")
        .replace("&quot;", '"')
        .replace("&#39;", "'")
        .replace("&amp;", "&")
    )
    text = " ".join(text.split())
    return text or "Unknown"


def validate_attribution(image: ImageLike) -> AttributionValidation:
    """
    Check licensing completeness.

    Wikipedia Commons images need author and license (each satisfiable by a
    pre-composed source_attribution); Manual images need source_attribution.
    Other sources are valid.
    """
    data = _as_dict(image)
    if not data:
        return AttributionValidation(valid=False, issues=[ISSUE_NO_DATA])

    issues: List[str] = []
    source = data.get("source")
    has_attribution = _present(data.get("source_attribution"))

    if not _present(source):
        issues.append(ISSUE_MISSING_SOURCE)
    elif source == ImageProvenance.WIKIPEDIA_COMMONS.value:
        if not (_present(data.get("author")) or has_attribution):
            issues.append(ISSUE_WIKI_AUTHOR)
        if not (_present(data.get("license")) or has_attribution):
            issues.append(ISSUE_WIKI_LICENSE)
    elif source == ImageProvenance.MANUAL.value and not has_attribution:
        issues.append(ISSUE_MANUAL_ATTRIBUTION)

    return AttributionValidation(valid=not issues, issues=issues)


def generate_attribution(image: ImageLike) -> str:
    """Human readable attribution line for display under an image."""
    data = _as_dict(image)
    source = data.get("source")
    stored = data.get("source_attribution")

    if source == ImageProvenance.WIKIPEDIA_COMMONS.value:
        parts = []
        if _present(data.get("author")):
            parts.append(f"Author: {clean_author_name(data['author'])}")
        if _present(data.get("license")):
            parts.append(f"License: {data['license']}")
        if not parts and _present(stored):
            parts.append(stored.strip())
        parts.append("Source: Wikimedia Commons")
        quality = data.get("image_quality")
        if isinstance(quality, int) and quality >= ATTRIBUTION_HIGH_QUALITY_THRESHOLD:
            parts.append("(High Quality)")
        return ", ".join(parts)

    if source == ImageProvenance.MANUAL.value:
        return stored if _present(stored) else "Manually curated reference image"
    if source == ImageProvenance.USER_UPLOAD.value:
        return "User uploaded image"
    if source == ImageProvenance.SYSTEM.value:
        return "System placeholder image"

    if _present(stored):
        return stored
    return f"Image from {source or 'unknown source'}"


def build_attribution_report(images: List[ImageLike]) -> AttributionReport:
    """Fleet-wide compliance: counts, rate, top issues, breakdown, recommendations."""
    report = AttributionReport(total_images=len(images))
    issue_counter: Counter = Counter()
    source_counter: Counter = Counter()

    for image in images:
        data = _as_dict(image)
        source_counter[data.get("source") or "Unknown"] += 1
        validation = validate_attribution(image)
        if validation.valid:
            report.valid_attributions += 1
        else:
            report.invalid_attributions += 1
            issue_counter.update(validation.issues)

    if report.total_images:
        report.compliance_rate = round(
            report.valid_attributions / report.total_images * 100
        )
    else:
        report.compliance_rate = 100

    report.common_issues = [
        IssueCount(issue=issue, count=count)
        for issue, count in issue_counter.most_common(ATTRIBUTION_TOP_ISSUES)
    ]
    report.source_breakdown = dict(source_counter)
    report.recommendations = _build_recommendations(report)
    return report


def _build_recommendations(report: AttributionReport) -> List[AttributionRecommendation]:
    recommendations = []
    if report.total_images and report.compliance_rate < COMPLIANCE_WARNING_RATE:
        recommendations.append(
            AttributionRecommendation(
                priority=SuggestionPriority.HIGH,
                message=f"Attribution compliance is {report.compliance_rate}%",
                action="Review and complete attribution for invalid images",
            )
        )
    if report.invalid_attributions > MISSING_ATTRIBUTION_WARNING_COUNT:
        recommendations.append(
            AttributionRecommendation(
                priority=SuggestionPriority.MEDIUM,
                message=f"{report.invalid_attributions} images have incomplete attribution",
                action="Run a batch validation and fix missing author/license fields",
            )
        )
    wikimedia_count = report.source_breakdown.get(
        ImageProvenance.WIKIPEDIA_COMMONS.value, 0
    )
    if wikimedia_count > WIKIMEDIA_REVIEW_COUNT:
        recommendations.append(
            AttributionRecommendation(
                priority=SuggestionPriority.MEDIUM,
                message=f"{wikimedia_count} images come from Wikimedia Commons",
                action="Periodically re-check Commons licenses for changes",
            )
        )
    return recommendations


def get_detailed_attribution(image: DefaultImage) -> DetailedAttribution:
    validation = validate_attribution(image)
    source_url = None
    if image.source == ImageProvenance.WIKIPEDIA_COMMONS.value:
        query = f"{image.brand} {image.model}".replace(" ", "+")
        source_url = f"{COMMONS_SEARCH_URL}{query}"

    if image.license:
        usage_notes = f"Use according to {image.license} terms; keep the attribution visible"
    elif image.source == ImageProvenance.MANUAL.value:
        usage_notes = "Manually curated image; verify usage rights before redistribution"
    else:
        usage_notes = "License unknown; verify usage rights before redistribution"

    return DetailedAttribution(
        id=image.id,
        brand=image.brand,
        model=image.model,
        source=image.source,
        attribution=generate_attribution(image),
        author=clean_author_name(image.author),
        license=image.license,
        source_url=source_url,
        usage_notes=usage_notes,
        validation=validation,
    )


EXPORT_FIELDS = [
    "id",
    "brand",
    "model",
    "source",
    "author",
    "license",
    "attribution",
    "valid",
    "issues",
]


def export_attributions(images: List[DefaultImage], export_format: ExportFormat) -> str:
    """Render attribution data as JSON or CSV text."""
    rows = []
    for image in images:
        validation = validate_attribution(image)
        rows.append(
            {
                "id": image.id,
                "brand": image.brand,
                "model": image.model,
                "source": image.source,
                "author": clean_author_name(image.author),
                "license": image.license or "",
                "attribution": generate_attribution(image),
                "valid": validation.valid,
                "issues": "; ".join(validation.issues),
            }
        )

    if export_format == ExportFormat.JSON:
        return json.dumps(rows, indent=2)

    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=EXPORT_FIELDS)
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue()


class AttributionService:
    """Attribution operations backed by the default image store."""

    def __init__(self, default_images: DefaultImageOperations):
        self.default_images = default_images

    async def _get_image(self, image_id: int) -> DefaultImage:
        image = await self.default_images.get_by_id(image_id)
        if image is None:
            raise NotFoundError(f"Default image {image_id} not found")
        return image

    async def get_report(self) -> AttributionReport:
        images = await self.default_images.get_all(is_active=True)
        return build_attribution_report(images)

    async def get_all_attributions(self) -> List[DetailedAttribution]:
        images = await self.default_images.get_all(is_active=True)
        return [get_detailed_attribution(image) for image in images]

    async def validate_image(self, image_id: int) -> ImageValidationEntry:
        image = await self._get_image(image_id)
        validation = validate_attribution(image)
        return ImageValidationEntry(
            id=image.id,
            brand=image.brand,
            model=image.model,
            valid=validation.valid,
            issues=validation.issues,
        )

    async def batch_validate(self, image_ids: List[int]) -> List[ImageValidationEntry]:
        """Validate several records; unknown ids are reported as invalid."""
        entries = []
        for image_id in image_ids:
            image = await self.default_images.get_by_id(image_id)
            if image is None:
                entries.append(
                    ImageValidationEntry(id=image_id, valid=False, issues=[ISSUE_NO_DATA])
                )
                continue
            validation = validate_attribution(image)
            entries.append(
                ImageValidationEntry(
                    id=image.id,
                    brand=image.brand,
                    model=image.model,
                    valid=validation.valid,
                    issues=validation.issues,
                )
            )
        return entries

    async def generate_for_image(self, image_id: int) -> DetailedAttribution:
        image = await self._get_image(image_id)
        return get_detailed_attribution(image)

    async def update_attribution(
        self, image_id: int, update: AttributionUpdate
    ) -> DetailedAttribution:
        """Update attribution fields; returns the new detailed attribution."""
        changes = update.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No attribution fields provided")

        await self._get_image(image_id)
        updated = await self.default_images.update(
            image_id, DefaultImageUpdate(**changes)
        )
        if updated is None:
            raise NotFoundError(f"Default image {image_id} not found")

        logger.info(f"Updated attribution for default image {image_id}")
        return get_detailed_attribution(updated)

    async def export(self, export_format: ExportFormat) -> str:
        images = await self.default_images.get_all(is_active=True)
        return export_attributions(images, export_format)
