"""Business logic services."""

from app.services.assessment_store import (
    AssessmentStore,
    DraftConflictError,
    DraftSnapshot,
)
from app.services.assessment_workflow import (
    AssessmentWorkflow,
    DraftSaveError,
    IncompleteAssessmentError,
    WorkflowState,
)
from app.services.audit import get_entity_history, write_audit_event

__all__ = [
    "AssessmentStore",
    "DraftConflictError",
    "DraftSnapshot",
    "AssessmentWorkflow",
    "DraftSaveError",
    "IncompleteAssessmentError",
    "WorkflowState",
    "get_entity_history",
    "write_audit_event",
]
