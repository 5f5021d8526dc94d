"""Assessment API endpoints.

Thin HTTP surface over the draft workflow. The client holds the session
state (step, answers, notes, draft id and version) between requests and
sends it with every step; the server validates, scores and persists.
"""

from collections.abc import Mapping
from typing import Any

from fastapi import APIRouter, HTTPException, Query, status

from app.api.deps import Catalog, CurrentAssessor, DbSession, Store
from app.core.config import settings
from app.models.assessment import Assessment
from app.schemas.assessment import (
    AssessmentCompleteRequest,
    AssessmentRead,
    AssessmentResultRead,
    DomainComparisonRead,
    DomainEntryIn,
    DomainResultRead,
    DraftAdvanceRequest,
    DraftAdvanceResponse,
    DraftRead,
    DraftSaveRequest,
    RadarPointRead,
    RecommendationRead,
    ScorePreviewRequest,
    SeriesPointRead,
    TrendsResponse,
)
from app.schemas.audit_event import AuditEventRead
from app.scoring.aggregate import AssessmentResult, calculate_assessment_result
from app.scoring.phq2 import requires_phq2
from app.scoring.trends import (
    build_domain_series,
    compare_latest,
    latest_vs_previous,
    summarize_comparison,
)
from app.services.assessment_store import (
    AssessmentAlreadyCompletedError,
    DraftConflictError,
    assessment_to_result,
)
from app.services.assessment_workflow import (
    AssessmentWorkflow,
    DraftSaveError,
    DraftSession,
    IncompleteAssessmentError,
    SubjectRef,
    WorkflowState,
)
from app.services.audit import get_entity_history
from app.utils.time import utc_now

router = APIRouter()


def _domain_data(entries: Mapping[str, DomainEntryIn]) -> dict[str, dict[str, Any]]:
    return {domain_id: entry.model_dump() for domain_id, entry in entries.items()}


def _result_read(result: AssessmentResult) -> AssessmentResultRead:
    now = utc_now()
    return AssessmentResultRead(
        overall_risk=result.overall_risk,
        total_score=result.total_score,
        max_total_score=result.max_total_score,
        domain_results=[
            DomainResultRead.model_validate(r, from_attributes=True)
            for r in result.domain_results
        ],
        recommendations=[
            RecommendationRead(
                id=rec.id,
                priority=rec.priority,
                category=rec.category,
                title=rec.title,
                description=rec.description,
                domain=rec.domain,
                timeframe=rec.timeframe,
                due_date=rec.due_date(now),
                is_actionable=rec.is_actionable,
            )
            for rec in result.recommendations
        ],
        flagged_domain_names=result.flagged_domain_names,
        summary_lines=result.summary_lines,
        risk_counts=result.risk_counts,
        requires_phq2=requires_phq2(result.domain_results),
    )


def _assessment_read(assessment: Assessment, result: AssessmentResult) -> AssessmentRead:
    return AssessmentRead(
        id=assessment.id,
        subject_id=assessment.subject_id,
        assessor_id=assessment.assessor_id,
        status=assessment.status,
        overall_risk=assessment.overall_risk,
        total_score=assessment.total_score,
        max_total_score=assessment.max_total_score,
        notes=assessment.notes,
        catalog_version=assessment.catalog_version,
        assessed_at=assessment.assessed_at,
        result=_result_read(result),
    )


def _conflict(e: DraftConflictError) -> HTTPException:
    current = e.current
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={
            "message": str(e),
            "draft_id": current.id if current is not None else None,
            "version": current.version if current is not None else None,
        },
    )


@router.post(
    "/assessments/preview",
    response_model=AssessmentResultRead,
    summary="Score answers without saving",
)
async def preview_assessment(
    request: ScorePreviewRequest,
    catalog: Catalog,
) -> AssessmentResultRead:
    """Score the supplied answers. Unanswered questions count as 0."""
    result = calculate_assessment_result(_domain_data(request.domain_data), catalog)
    return _result_read(result)


@router.get(
    "/subjects/{subject_id}/draft",
    response_model=DraftRead,
    summary="Get the subject's open draft",
)
async def get_open_draft(
    subject_id: str,
    store: Store,
    assessor_id: CurrentAssessor,
) -> DraftRead:
    draft = await store.get_open_draft(subject_id)
    if not draft:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No open draft for this subject",
        )
    return DraftRead.model_validate(draft)


@router.get(
    "/drafts",
    response_model=list[DraftRead],
    summary="List the current assessor's open drafts",
)
async def list_my_drafts(
    store: Store,
    assessor_id: CurrentAssessor,
) -> list[DraftRead]:
    """Open drafts last saved by the caller, newest first."""
    drafts = await store.list_drafts_for_assessor(assessor_id)
    return [DraftRead.model_validate(d) for d in drafts]


@router.put(
    "/subjects/{subject_id}/draft",
    response_model=DraftRead,
    summary="Save the draft at its current step",
)
async def save_draft(
    subject_id: str,
    request: DraftSaveRequest,
    store: Store,
    catalog: Catalog,
    assessor_id: CurrentAssessor,
) -> DraftRead:
    """Save the supplied answers without validating or moving the step.

    Resending an unchanged draft returns it as stored. Responds 409 when
    another session changed the draft and 503 when it could not be saved.
    """
    workflow = AssessmentWorkflow(store, assessor_id, catalog=catalog)
    workflow.resume_session(
        SubjectRef(id=subject_id, name=request.subject_name),
        DraftSession.from_data(
            catalog,
            current_step=request.current_step,
            domain_data=_domain_data(request.domain_data),
            notes=request.notes,
            draft_id=request.draft_id,
            version=request.expected_version,
        ),
    )

    try:
        await workflow.save()
    except DraftConflictError as e:
        raise _conflict(e)
    except DraftSaveError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        )

    draft = await store.get_assessment(workflow.draft_id)
    return DraftRead.model_validate(draft)


@router.post(
    "/subjects/{subject_id}/draft/advance",

    response_model=DraftAdvanceResponse,
    summary="Validate the current step, save the draft and advance",
)
async def advance_draft(
    subject_id: str,
    request: DraftAdvanceRequest,
    store: Store,
    catalog: Catalog,
    assessor_id: CurrentAssessor,
) -> DraftAdvanceResponse:
    """Move the draft one step forward.

    Responds 422 with the missing question ids when the current step is
    incomplete, 409 when another session changed the draft and 503 when
    the draft could not be saved. A 503 is safe to retry unchanged.
    """
    workflow = AssessmentWorkflow(store, assessor_id, catalog=catalog)
    workflow.resume_session(
        SubjectRef(id=subject_id, name=request.subject_name),
        DraftSession.from_data(
            catalog,
            current_step=request.current_step,
            domain_data=_domain_data(request.domain_data),
            notes=request.notes,
            draft_id=request.draft_id,
            version=request.expected_version,
        ),
    )

    if workflow.state != WorkflowState.DOMAIN_STEP:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Draft is at review; complete the assessment instead",
        )

    try:
        step = await workflow.next(allow_unsaved=request.allow_unsaved)
    except DraftConflictError as e:
        raise _conflict(e)
    except DraftSaveError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        )

    if not step.advanced:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "message": "Current step has unanswered questions",
                "missing_question_ids": step.missing_question_ids,
            },
        )

    return DraftAdvanceResponse(
        advanced=step.advanced,
        step=step.step,
        saved=step.saved,
        is_review=workflow.state == WorkflowState.REVIEW,
        draft_id=workflow.draft_id,
        version=workflow.draft_version,
        preview=_result_read(step.preview) if step.preview else None,
    )


@router.post(
    "/subjects/{subject_id}/assessments",
    response_model=AssessmentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Complete the subject's assessment",
)
async def complete_assessment(
    subject_id: str,
    request: AssessmentCompleteRequest,
    store: Store,
    catalog: Catalog,
    assessor_id: CurrentAssessor,
) -> AssessmentRead:
    """Commit a fully answered assessment from review.

    The open draft, if any, is promoted to the completed record.
    """
    workflow = AssessmentWorkflow(store, assessor_id, catalog=catalog)
    workflow.resume_session(
        SubjectRef(id=subject_id, name=request.subject_name),
        DraftSession.from_data(
            catalog,
            current_step=workflow.review_step,
            domain_data=_domain_data(request.domain_data),
            notes=request.notes,
            draft_id=request.draft_id,
            version=request.expected_version,
        ),
    )

    try:
        result = await workflow.complete()
    except IncompleteAssessmentError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "message": str(e),
                "missing_question_ids": e.missing_question_ids,
            },
        )
    except DraftConflictError as e:
        raise _conflict(e)
    except AssessmentAlreadyCompletedError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except DraftSaveError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        )

    assessment = await store.get_assessment(workflow.completed_assessment_id)
    return _assessment_read(assessment, result)


@router.get(
    "/assessments/{assessment_id}",
    response_model=AssessmentRead,
    summary="Get a completed assessment",
)
async def get_assessment(
    assessment_id: str,
    store: Store,
    assessor_id: CurrentAssessor,
) -> AssessmentRead:
    assessment = await store.get_assessment(assessment_id)
    if not assessment or assessment.is_draft:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Assessment not found",
        )
    return _assessment_read(assessment, assessment_to_result(assessment))


@router.get(
    "/assessments/{assessment_id}/history",
    response_model=list[AuditEventRead],
    summary="Get the audit history of an assessment",
)
async def get_assessment_history(
    assessment_id: str,
    session: DbSession,
    assessor_id: CurrentAssessor,
    limit: int = Query(default=100, ge=1, le=500),
) -> list[AuditEventRead]:
    events = await get_entity_history(session, "assessment", assessment_id, limit=limit)
    return [AuditEventRead.model_validate(event) for event in events]


@router.get(
    "/subjects/{subject_id}/trends",
    response_model=TrendsResponse,
    summary="Get score trends over the subject's completed assessments",
)
async def get_trends(
    subject_id: str,
    store: Store,
    assessor_id: CurrentAssessor,
    limit: int | None = Query(default=None, ge=2, le=50),
) -> TrendsResponse:
    history = await store.get_history(subject_id, limit or settings.trend_history_limit)
    comparison = compare_latest(history)

    return TrendsResponse(
        subject_id=subject_id,
        assessment_count=len(history),
        series=[SeriesPointRead.model_validate(p) for p in build_domain_series(history)],
        radar=[RadarPointRead.model_validate(p) for p in latest_vs_previous(history)],
        comparison=[DomainComparisonRead.model_validate(c) for c in comparison],
        trend_counts=summarize_comparison(comparison),
    )
