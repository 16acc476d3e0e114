# backend/camtracker/routers/attribution_routers.py
"""
Attribution compliance endpoints for default images.
"""

from typing import List

from fastapi import APIRouter, Query, Response

from ..constants import COMPLIANCE_WARNING_RATE
from ..dependencies import AttributionServiceDep
from ..enums import ExportFormat
from ..models.attribution_model import (
    AttributionReport,
    AttributionUpdate,
    BatchValidateRequest,
    DetailedAttribution,
    ImageValidationEntry,
)
from ..utils.router_helpers import handle_exceptions

router = APIRouter(tags=["attribution"])

EXPORT_MEDIA_TYPES = {
    ExportFormat.JSON: "application/json",
    ExportFormat.CSV: "text/csv",
}


@router.get("/attribution/report", response_model=AttributionReport)
@handle_exceptions("generate attribution report")
async def get_attribution_report(attribution_service: AttributionServiceDep):
    return await attribution_service.get_report()


@router.get("/attribution/compliance")
@handle_exceptions("get attribution compliance")
async def get_attribution_compliance(attribution_service: AttributionServiceDep):
    """Condensed compliance status for dashboards."""
    report = await attribution_service.get_report()
    return {
        "compliance_rate": report.compliance_rate,
        "total_images": report.total_images,
        "valid_attributions": report.valid_attributions,
        "invalid_attributions": report.invalid_attributions,
        "compliant": report.compliance_rate >= COMPLIANCE_WARNING_RATE,
        "top_issues": report.common_issues,
    }


@router.get("/attribution/export")
@handle_exceptions("export attributions")
async def export_attributions(
    attribution_service: AttributionServiceDep,
    format: ExportFormat = Query(ExportFormat.JSON),
):
    content = await attribution_service.export(format)
    return Response(
        content=content,
        media_type=EXPORT_MEDIA_TYPES[format],
        headers={
            "Content-Disposition": f'attachment; filename="attributions.{format.value}"'
        },
    )


@router.get("/attribution/all", response_model=List[DetailedAttribution])
@handle_exceptions("list attributions")
async def get_all_attributions(attribution_service: AttributionServiceDep):
    return await attribution_service.get_all_attributions()


@router.get("/attribution/validate/{image_id}", response_model=ImageValidationEntry)
@handle_exceptions("validate attribution")
async def validate_image_attribution(
    image_id: int, attribution_service: AttributionServiceDep
):
    return await attribution_service.validate_image(image_id)


@router.put("/attribution/update/{image_id}", response_model=DetailedAttribution)
@handle_exceptions("update attribution")
async def update_image_attribution(
    image_id: int,
    update: AttributionUpdate,
    attribution_service: AttributionServiceDep,
):
    return await attribution_service.update_attribution(image_id, update)


@router.get("/attribution/generate/{image_id}", response_model=DetailedAttribution)
@handle_exceptions("generate attribution")
async def generate_image_attribution(
    image_id: int, attribution_service: AttributionServiceDep
):
    return await attribution_service.generate_for_image(image_id)


@router.post("/attribution/batch-validate", response_model=List[ImageValidationEntry])
@handle_exceptions("batch validate attributions")
async def batch_validate_attributions(
    request: BatchValidateRequest, attribution_service: AttributionServiceDep
):
    return await attribution_service.batch_validate(request.image_ids)
