"""Pydantic schemas for request/response validation."""

from app.schemas.assessment import (
    AssessmentCompleteRequest,
    AssessmentRead,
    AssessmentResultRead,
    CatalogRead,
    DraftAdvanceRequest,
    DraftAdvanceResponse,
    DraftRead,
    DraftSaveRequest,
    PHQ2Request,
    PHQ2Response,
    ScorePreviewRequest,
    TrendsResponse,
)
from app.schemas.audit_event import AuditEventRead

__all__ = [
    "AssessmentCompleteRequest",
    "AssessmentRead",
    "AssessmentResultRead",
    "CatalogRead",
    "DraftAdvanceRequest",
    "DraftAdvanceResponse",
    "DraftRead",
    "DraftSaveRequest",
    "PHQ2Request",
    "PHQ2Response",
    "ScorePreviewRequest",
    "TrendsResponse",
    "AuditEventRead",
]
