"""Database models for the assessment engine."""

from app.models.assessment import (
    Assessment,
    AssessmentDomain,
    AssessmentStatus,
    RISK_SEVERITY,
    RiskLevel,
)
from app.models.audit_event import ActorType, AuditEvent

__all__ = [
    # Assessments
    "Assessment",
    "AssessmentDomain",
    "AssessmentStatus",
    "RiskLevel",
    "RISK_SEVERITY",
    # Audit
    "ActorType",
    "AuditEvent",
]
