"""
Compliance API — outfit checks, industry rules and check history.
"""

import base64
import binascii
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from dresscode.api.deps import get_orchestrator, get_record_store
from dresscode.errors import InvalidRequest, UnknownIndustry
from dresscode.rules import rules_for
from dresscode.schemas.schemas import (
    CheckComplianceRequest,
    ComplianceCheckListResponse,
    ComplianceCheckRecord,
    ComplianceResult,
    IndustryRulesResponse,
    IndustryType,
)
from dresscode.services.orchestrator import ComplianceOrchestrator, ComplianceRequest
from dresscode.services.record_store import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["compliance"])


def decode_image(value: str | None) -> bytes | None:
    """Decode a base64 image, accepting an optional data-URL prefix."""
    if not value:
        return None
    if value.startswith("data:") and "," in value:
        value = value.split(",", 1)[1]
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        raise InvalidRequest("Image data must be valid base64") from None


def _parse_industry(industry: str) -> IndustryType:
    try:
        return IndustryType(industry)
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail="Invalid industry. Must be 'healthcare' or 'construction'.",
        ) from None


# ── POST /api/check-compliance ───────────────────────────────────────────────

@router.post("/check-compliance", response_model=ComplianceResult)
async def check_compliance(
    body: CheckComplianceRequest,
    orchestrator: ComplianceOrchestrator = Depends(get_orchestrator),
):
    """Check an outfit photo and/or description against an industry's dress code."""
    request = ComplianceRequest(
        industry=body.industry,
        image=decode_image(body.image_base64),
        reference_images=tuple(
            img for img in (decode_image(v) for v in body.reference_images_base64 or []) if img
        ),
        description=body.description,
    )
    outcome = await orchestrator.run(request)
    return JSONResponse(
        content=outcome.result.to_wire(),
        headers={"X-Compliance-Source": outcome.source.value},
    )


# ── GET /api/compliance-rules/{industry} ─────────────────────────────────────

@router.get("/compliance-rules/{industry}", response_model=IndustryRulesResponse)
async def get_compliance_rules(industry: str):
    """Return the required and prohibited items for an industry."""
    key = _parse_industry(industry)
    try:
        rules = rules_for(key)
    except UnknownIndustry:
        raise HTTPException(
            status_code=404, detail=f"Compliance rules not found for industry: {industry}",
        ) from None
    return rules.as_dict()


# ── GET /api/compliance-checks ───────────────────────────────────────────────

@router.get("/compliance-checks", response_model=ComplianceCheckListResponse, response_model_by_alias=True)
async def list_compliance_checks(
    industry: str = Query(...),
    limit: int = Query(50, ge=1, le=200),
    store: RecordStore = Depends(get_record_store),
):
    """Return the most recent stored checks for an industry, newest first."""
    key = _parse_industry(industry)
    records = await store.list_by_industry(key, limit=limit)
    checks = [ComplianceCheckRecord.model_validate(r) for r in records]
    return ComplianceCheckListResponse(checks=checks, total=len(checks))


# ── GET /api/compliance-checks/{check_id} ────────────────────────────────────

@router.get("/compliance-checks/{check_id}", response_model=ComplianceCheckRecord, response_model_by_alias=True)
async def get_compliance_check(
    check_id: int,
    store: RecordStore = Depends(get_record_store),
):
    """Return one stored check."""
    record = await store.get(check_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Compliance check {check_id} not found")
    return ComplianceCheckRecord.model_validate(record)
