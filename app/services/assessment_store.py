"""Persistence for draft and completed assessments.

Implements the operations the draft workflow needs:
- fetch the open draft of a subject
- create / update a draft (upsert keyed by subject + draft status)
- promote a draft to a completed assessment
- fetch the latest N completed assessments of a subject

Concurrency policy is conflict rejection: an update carrying a stale
version raises ``DraftConflictError``. A replay of a snapshot that has
already been stored is recognised by its hash and returns the stored
row unchanged, so resubmitting an identical payload is always safe.
"""

import hashlib
import json
import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.catalog.models import DomainCatalog
from app.db.base import utc_now
from app.models.assessment import Assessment, AssessmentDomain, AssessmentStatus, RiskLevel
from app.models.audit_event import ActorType
from app.scoring.aggregate import AssessmentResult, build_assessment_result
from app.scoring.domain import DomainResult
from app.scoring.trends import DatedResult
from app.services.audit import write_audit_event
from app.utils.time import ensure_utc

logger = logging.getLogger(__name__)


class AssessmentNotFoundError(Exception):
    """Raised when an assessment is not found."""

    pass


class DraftConflictError(Exception):
    """Raised when a draft was changed by another session.

    Carries the stored draft so the caller can offer Continue / Start
    Over against it.
    """

    def __init__(self, message: str, current: Assessment | None = None) -> None:
        super().__init__(message)
        self.current = current


class AssessmentAlreadyCompletedError(Exception):
    """Raised when trying to modify a completed assessment."""

    pass


@dataclass
class DraftSnapshot:
    """Everything persisted for a draft at one workflow step."""
    subject_id: str
    assessor_id: str
    current_step: int
    domain_data: dict[str, dict[str, Any]]
    overall_risk: RiskLevel = RiskLevel.HEALTHY
    notes: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def content_hash(self) -> str:
        """SHA256 over the resumable content (step, answers, notes)."""
        content = {
            "subject_id": self.subject_id,
            "current_step": self.current_step,
            "domain_data": self.domain_data,
            "notes": self.notes,
        }
        content_str = json.dumps(content, sort_keys=True)
        return hashlib.sha256(content_str.encode()).hexdigest()


def assessment_to_result(assessment: Assessment) -> AssessmentResult:
    """Rebuild an AssessmentResult from stored domain rows.

    Risk levels and overall risk are re-derived from stored scores.
    """
    domain_results = [
        DomainResult.from_dict({
            "domain": row.domain,
            "domain_name": row.domain_name,
            "score": row.score,
            "max_score": row.max_score,
            "flagged": row.flagged,
            "trigger_action": row.trigger_action,
            "answers": row.answers,
            "notes": row.notes,
        })
        for row in assessment.domains
    ]
    return build_assessment_result(domain_results)


def assessment_to_dated_result(assessment: Assessment) -> DatedResult:
    assessed_at = assessment.assessed_at or assessment.created_at
    return DatedResult(
        assessed_at=ensure_utc(assessed_at),
        result=assessment_to_result(assessment),
        assessment_id=assessment.id,
    )


class AssessmentStore:
    """SQLAlchemy-backed assessment persistence."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_assessment(self, assessment_id: str) -> Assessment | None:
        result = await self.session.execute(
            select(Assessment).where(Assessment.id == assessment_id)
        )
        return result.scalar_one_or_none()

    async def get_open_draft(self, subject_id: str) -> Assessment | None:
        """Get the subject's open draft, if any."""
        result = await self.session.execute(
            select(Assessment)
            .where(Assessment.subject_id == subject_id)
            .where(Assessment.status == AssessmentStatus.DRAFT)
            .order_by(Assessment.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_drafts_for_assessor(self, assessor_id: str) -> list[Assessment]:
        """Open drafts started by an assessor, most recently touched first."""
        result = await self.session.execute(
            select(Assessment)
            .where(Assessment.assessor_id == assessor_id)
            .where(Assessment.status == AssessmentStatus.DRAFT)
            .order_by(Assessment.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_latest_completed(self, subject_id: str, limit: int) -> list[Assessment]:
        """Latest ``limit`` completed assessments, newest first."""
        result = await self.session.execute(
            select(Assessment)
            .where(Assessment.subject_id == subject_id)
            .where(Assessment.status == AssessmentStatus.COMPLETED)
            .order_by(Assessment.assessed_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def create_draft(self, snapshot: DraftSnapshot) -> Assessment:
        """Insert a new open draft.

        Raises:
            DraftConflictError: If the subject already has an open draft
                with different content.
        """
        draft = Assessment(
            subject_id=snapshot.subject_id,
            assessor_id=snapshot.assessor_id,
            status=AssessmentStatus.DRAFT,
            current_step=snapshot.current_step,
            overall_risk=snapshot.overall_risk,
            notes=snapshot.notes,
            domain_scores=snapshot.domain_data,
            snapshot_hash=snapshot.content_hash,
            catalog_version=snapshot.metadata.get("catalog_version"),
            catalog_hash=snapshot.metadata.get("catalog_hash"),
        )
        self.session.add(draft)

        try:
            # Flush first so the generated id is available to the audit event
            await self.session.flush()
            await write_audit_event(
                session=self.session,
                actor_type=ActorType.ASSESSOR,
                actor_id=snapshot.assessor_id,
                action="create_draft",
                entity_type="assessment",
                entity_id=draft.id,
                metadata={
                    "subject_id": snapshot.subject_id,
                    "current_step": snapshot.current_step,
                    "overall_risk": RiskLevel(snapshot.overall_risk).value,
                },
                commit=False,
            )
            await self.session.commit()
        except IntegrityError:
            # Another session opened a draft for this subject first
            await self.session.rollback()
            existing = await self.get_open_draft(snapshot.subject_id)
            if existing is not None and existing.snapshot_hash == snapshot.content_hash:
                return existing
            raise DraftConflictError(
                f"Subject {snapshot.subject_id} already has an open draft",
                current=existing,
            )

        logger.info(
            f"Draft created for subject {snapshot.subject_id} at step {snapshot.current_step}",
            extra={"subject_id": snapshot.subject_id, "assessment_id": draft.id},
        )
        return draft

    async def update_draft(
        self,
        draft: Assessment,
        snapshot: DraftSnapshot,
        expected_version: int | None,
    ) -> Assessment:
        """Overwrite an open draft with a new snapshot.

        Raises:
            AssessmentAlreadyCompletedError: If the row is no longer a draft.
            DraftConflictError: If ``expected_version`` is stale.
        """
        if draft.status != AssessmentStatus.DRAFT:
            raise AssessmentAlreadyCompletedError(f"Assessment {draft.id} is already completed")

        # Replay of a save that already landed
        if draft.snapshot_hash == snapshot.content_hash:
            logger.debug(f"Draft {draft.id[:8]} unchanged, skipping update")
            return draft

        if expected_version is None or draft.version != expected_version:
            logger.warning(
                f"Draft conflict for subject {snapshot.subject_id}: "
                f"expected version {expected_version}, stored {draft.version}",
                extra={"subject_id": snapshot.subject_id, "assessment_id": draft.id},
            )
            raise DraftConflictError(
                f"Draft {draft.id} was modified by another session",
                current=draft,
            )

        draft.assessor_id = snapshot.assessor_id
        draft.current_step = snapshot.current_step
        draft.overall_risk = snapshot.overall_risk
        draft.notes = snapshot.notes
        draft.domain_scores = snapshot.domain_data
        draft.snapshot_hash = snapshot.content_hash
        draft_id = draft.id

        try:
            # Flush first so the version bump is checked and readable
            await self.session.flush()
            await write_audit_event(
                session=self.session,
                actor_type=ActorType.ASSESSOR,
                actor_id=snapshot.assessor_id,
                action="update_draft",
                entity_type="assessment",
                entity_id=draft_id,
                metadata={
                    "current_step": snapshot.current_step,
                    "overall_risk": RiskLevel(snapshot.overall_risk).value,
                    "version": draft.version,
                },
                commit=False,
            )
            await self.session.commit()
        except StaleDataError:
            await self.session.rollback()
            raise DraftConflictError(
                f"Draft {draft_id} was modified by another session",
                current=await self.get_open_draft(snapshot.subject_id),
            )
        return draft

    async def save_draft(
        self,
        snapshot: DraftSnapshot,
        expected_version: int | None = None,
    ) -> Assessment:
        """Upsert the subject's open draft.

        Safe to resubmit with an identical snapshot after a failure.
        """
        try:
            existing = await self.get_open_draft(snapshot.subject_id)
            if existing is None:
                return await self.create_draft(snapshot)
            return await self.update_draft(existing, snapshot, expected_version)
        except SQLAlchemyError:
            # Leave the session usable for a retry
            await self.session.rollback()
            raise

    async def complete_assessment(
        self,
        snapshot: DraftSnapshot,
        result: AssessmentResult,
        draft_id: str | None = None,
        expected_version: int | None = None,
    ) -> Assessment:
        """Persist a committed assessment, promoting the open draft in place.

        Afterwards the subject has no open draft. Replaying a completion
        that already landed returns the completed record.

        Raises:
            DraftConflictError: If the open draft changed underneath us.
        """
        if draft_id is not None:
            previous = await self.get_assessment(draft_id)
            if previous is not None and previous.status == AssessmentStatus.COMPLETED:
                if previous.snapshot_hash == snapshot.content_hash:
                    return previous
                raise AssessmentAlreadyCompletedError(
                    f"Assessment {draft_id} is already completed"
                )

        assessment = await self.get_open_draft(snapshot.subject_id)
        if assessment is None:
            assessment = Assessment(
                subject_id=snapshot.subject_id,
                assessor_id=snapshot.assessor_id,
            )
            self.session.add(assessment)
        elif assessment.snapshot_hash != snapshot.content_hash and (
            assessment.id != draft_id or assessment.version != expected_version
        ):
            raise DraftConflictError(
                f"Draft {assessment.id} was modified by another session",
                current=assessment,
            )

        assessment.assessor_id = snapshot.assessor_id
        assessment.status = AssessmentStatus.COMPLETED
        assessment.current_step = snapshot.current_step
        assessment.overall_risk = result.overall_risk
        assessment.notes = snapshot.notes
        assessment.domain_scores = snapshot.domain_data
        assessment.snapshot_hash = snapshot.content_hash
        assessment.total_score = result.total_score
        assessment.max_total_score = result.max_total_score
        assessment.catalog_version = snapshot.metadata.get("catalog_version")
        assessment.catalog_hash = snapshot.metadata.get("catalog_hash")
        assessment.assessed_at = utc_now()
        assessment.domains = [
            _domain_row(position, domain_result)
            for position, domain_result in enumerate(result.domain_results)
        ]

        try:
            await self.session.flush()
            await write_audit_event(
                session=self.session,
                actor_type=ActorType.ASSESSOR,
                actor_id=snapshot.assessor_id,
                action="complete_assessment",
                entity_type="assessment",
                entity_id=assessment.id,
                metadata={
                    "subject_id": snapshot.subject_id,
                    "overall_risk": RiskLevel(result.overall_risk).value,
                    "flagged_domains": list(result.flagged_domain_names),
                },
                commit=False,
            )
            await self.session.commit()
        except StaleDataError:
            await self.session.rollback()
            raise DraftConflictError(
                f"Draft for subject {snapshot.subject_id} was modified by another session",
                current=await self.get_open_draft(snapshot.subject_id),
            )
        except SQLAlchemyError:
            await self.session.rollback()
            raise

        logger.info(
            f"Assessment completed for subject {snapshot.subject_id}: "
            f"{RiskLevel(result.overall_risk).value} ({result.total_score}/{result.max_total_score})",
            extra={"subject_id": snapshot.subject_id, "assessment_id": assessment.id},
        )
        return assessment

    async def get_history(self, subject_id: str, limit: int) -> list[DatedResult]:
        """Completed results of a subject, oldest first, for trends."""
        completed = await self.get_latest_completed(subject_id, limit)
        return [assessment_to_dated_result(a) for a in reversed(completed)]


def _domain_row(position: int, result: DomainResult) -> AssessmentDomain:
    return AssessmentDomain(
        domain=result.domain_id,
        domain_name=result.domain_name,
        position=position,
        score=result.score,
        max_score=result.max_score,
        risk_level=result.risk_level,
        flagged=result.flagged,
        trigger_action=result.trigger_action,
        answers=dict(result.answers),
        notes=result.notes,
    )


def catalog_metadata(catalog: DomainCatalog) -> dict[str, Any]:
    return {"catalog_version": catalog.version, "catalog_hash": catalog.content_hash}
