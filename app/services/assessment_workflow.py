"""Draft assessment workflow.

Steps are numbered:
- 0: subject selection (skipped when the subject is pre-bound)
- 1..N: one step per catalog domain group
- N+1: review

Moving forward is gated on the current step's questions being answered
and on the draft snapshot being saved. Moving back never validates and
never saves. Completing is only possible from review with every catalog
question answered.

When a subject with an open draft is selected, the workflow waits for an
explicit resume decision: ``continue_draft`` (saved step and answers),
``start_over`` (saved answers, first step) or ``reset`` (nothing kept).
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from app.catalog.loader import get_catalog
from app.catalog.models import DomainCatalog, DomainGroup
from app.core.config import settings
from app.models.assessment import Assessment, RiskLevel
from app.scoring.aggregate import AssessmentResult, calculate_assessment_result
from app.scoring.domain import validate_answer
from app.services.assessment_store import (
    AssessmentStore,
    DraftSnapshot,
    catalog_metadata,
)

logger = logging.getLogger(__name__)

SUBJECT_SELECTION_STEP = 0
FIRST_DOMAIN_STEP = 1


class WorkflowState(str, Enum):
    """Where the workflow currently is."""

    SUBJECT_SELECTION = "subject_selection"
    RESUME_DECISION = "resume_decision"
    DOMAIN_STEP = "domain_step"
    REVIEW = "review"
    COMMITTED = "committed"


class WorkflowError(Exception):
    """Base class for workflow errors."""

    pass


class InvalidTransitionError(WorkflowError):
    """Raised when an operation is not allowed in the current state."""

    pass


class ResumeDecisionRequiredError(InvalidTransitionError):
    """Raised when an open draft is waiting for Continue or Start Over."""

    pass


class DraftSaveError(WorkflowError):
    """Raised when the draft could not be persisted.

    Recoverable: the step did not change and in-memory answers are
    intact, so the same call can simply be retried.
    """

    pass


class IncompleteAssessmentError(WorkflowError):
    """Raised when completing with unanswered catalog questions."""

    def __init__(self, missing_question_ids: list[str]) -> None:
        super().__init__(
            f"Assessment has {len(missing_question_ids)} unanswered question(s)"
        )
        self.missing_question_ids = missing_question_ids


@dataclass
class SubjectRef:
    """Subject as provided by the directory service."""
    id: str
    name: str | None = None
    identifiers: dict[str, str] = field(default_factory=dict)


@dataclass
class DomainEntry:
    """Answers and notes entered for one domain."""
    answers: dict[str, int] = field(default_factory=dict)
    notes: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"answers": dict(self.answers), "notes": self.notes}


@dataclass
class DraftSession:
    """Resumable state of a draft: step, answers, notes and row version."""
    current_step: int
    domain_data: dict[str, DomainEntry] = field(default_factory=dict)
    notes: str | None = None
    draft_id: str | None = None
    version: int | None = None

    @classmethod
    def from_data(
        cls,
        catalog: DomainCatalog,
        current_step: int,
        domain_data: Mapping[str, Any] | None,
        notes: str | None = None,
        draft_id: str | None = None,
        version: int | None = None,
    ) -> "DraftSession":
        """Build a session from stored or client-held draft data.

        Unknown domains, unknown questions and invalid values are dropped
        and logged; the rest of the draft stays usable.
        """
        entries: dict[str, DomainEntry] = {}

        for domain_id, raw in (domain_data or {}).items():
            domain = catalog.get_domain(domain_id)
            if domain is None or not isinstance(raw, Mapping):
                logger.warning(f"Dropping unknown domain {domain_id!r} from draft {draft_id}")
                continue

            answers: dict[str, int] = {}
            for question_id, value in (raw.get("answers") or {}).items():
                if not domain.has_question(question_id):
                    logger.warning(
                        f"Dropping unknown question {question_id!r} of {domain_id} from draft {draft_id}"
                    )
                    continue
                try:
                    answers[question_id] = validate_answer(question_id, value)
                except ValueError:
                    logger.warning(
                        f"Dropping invalid answer {value!r} for {question_id} from draft {draft_id}"
                    )

            entries[domain_id] = DomainEntry(answers=answers, notes=raw.get("notes"))

        review_step = catalog.step_count + 1
        step = min(max(current_step, FIRST_DOMAIN_STEP), review_step)

        return cls(
            current_step=step,
            domain_data=entries,
            notes=notes,
            draft_id=draft_id,
            version=version,
        )

    @classmethod
    def from_record(cls, record: Assessment, catalog: DomainCatalog) -> "DraftSession":
        return cls.from_data(
            catalog,
            current_step=record.current_step,
            domain_data=record.domain_scores,
            notes=record.notes,
            draft_id=record.id,
            version=record.version,
        )


@dataclass
class StepResult:
    """Outcome of a forward transition."""
    advanced: bool
    step: int
    missing_question_ids: list[str] = field(default_factory=list)
    preview: AssessmentResult | None = None
    # False when the caller advanced without a confirmed save
    saved: bool = False


@dataclass
class ReviewSummary:
    """What the review step shows before completing."""
    result: AssessmentResult
    missing_question_ids: list[str]

    @property
    def is_complete(self) -> bool:
        return not self.missing_question_ids


class AssessmentWorkflow:
    """Stateful data-entry session for one subject's assessment."""

    def __init__(
        self,
        store: AssessmentStore,
        assessor_id: str,
        catalog: DomainCatalog | None = None,
        allow_unsaved: bool | None = None,
    ) -> None:
        self.store = store
        self.assessor_id = assessor_id
        self.catalog = catalog or get_catalog()
        self.allow_unsaved = (
            settings.allow_unsaved_advance if allow_unsaved is None else allow_unsaved
        )

        self.subject: SubjectRef | None = None
        self.step = SUBJECT_SELECTION_STEP
        self.domain_data: dict[str, DomainEntry] = {}
        self.notes: str | None = None
        self.draft_id: str | None = None
        self.draft_version: int | None = None
        self.pending_draft: DraftSession | None = None
        self.completed_assessment_id: str | None = None

        self._subject_locked = False
        self._committed = False

    # --- state ---------------------------------------------------------

    @property
    def review_step(self) -> int:
        return self.catalog.step_count + 1

    @property
    def first_reachable_step(self) -> int:
        if self._subject_locked:
            return FIRST_DOMAIN_STEP
        return SUBJECT_SELECTION_STEP

    @property
    def state(self) -> WorkflowState:
        if self._committed:
            return WorkflowState.COMMITTED
        if self.pending_draft is not None:
            return WorkflowState.RESUME_DECISION
        if self.subject is None or self.step == SUBJECT_SELECTION_STEP:
            return WorkflowState.SUBJECT_SELECTION
        if self.step >= self.review_step:
            return WorkflowState.REVIEW
        return WorkflowState.DOMAIN_STEP

    @property
    def current_group(self) -> DomainGroup | None:
        if self.state != WorkflowState.DOMAIN_STEP:
            return None
        return self.catalog.get_group(self.step - 1)

    def _require_state(self, *allowed: WorkflowState) -> None:
        state = self.state
        if state == WorkflowState.RESUME_DECISION and state not in allowed:
            raise ResumeDecisionRequiredError(
                "Subject has an open draft: choose Continue or Start Over"
            )
        if state not in allowed:
            raise InvalidTransitionError(f"Not allowed in state {state.value}")

    # --- subject selection and resume -----------------------------------

    async def select_subject(self, subject: SubjectRef, lock: bool = False) -> DraftSession | None:
        """Bind the workflow to a subject.

        If the subject has an open draft it is returned and the workflow
        waits in ``RESUME_DECISION``; nothing is loaded until the caller
        picks Continue, Start Over or Reset. Otherwise the workflow moves
        to the first domain step with empty answers.

        Re-selecting the subject already bound (after navigating back to
        subject selection) keeps everything entered so far.

        Args:
            subject: Subject to assess
            lock: Subject was pre-bound; subject selection is skipped and
                cannot be navigated back to.
        """
        self._require_state(WorkflowState.SUBJECT_SELECTION)

        if self.subject is not None and self.subject.id == subject.id:
            self.subject = subject
            self._subject_locked = lock
            self.step = FIRST_DOMAIN_STEP
            return None

        self.subject = subject
        self._subject_locked = lock
        self.domain_data = {}
        self.notes = None
        self.draft_id = None
        self.draft_version = None

        record = await self.store.get_open_draft(subject.id)
        if record is not None:
            self.pending_draft = DraftSession.from_record(record, self.catalog)
            logger.info(
                f"Open draft found for subject {subject.id} at step {record.current_step}",
                extra={"subject_id": subject.id, "assessment_id": record.id},
            )
            return self.pending_draft

        self.step = FIRST_DOMAIN_STEP
        return None

    def _take_pending(self) -> DraftSession:
        self._require_state(WorkflowState.RESUME_DECISION)
        pending = self.pending_draft
        self.pending_draft = None
        self._subject_locked = True
        self.draft_id = pending.draft_id
        self.draft_version = pending.version
        return pending

    def continue_draft(self) -> None:
        """Resume exactly where the draft left off."""
        pending = self._take_pending()
        self.domain_data = pending.domain_data
        self.notes = pending.notes
        self.step = pending.current_step

    def start_over(self) -> None:
        """Re-review from the first step with the saved answers prefilled."""
        pending = self._take_pending()
        self.domain_data = pending.domain_data
        self.notes = pending.notes
        self.step = FIRST_DOMAIN_STEP

    def reset(self) -> None:
        """Discard all answers and notes and go back to the first step.

        The open draft row, if any, is overwritten on the next save.
        """
        if self.state == WorkflowState.RESUME_DECISION:
            self._take_pending()
        else:
            self._require_state(WorkflowState.DOMAIN_STEP, WorkflowState.REVIEW)
        self.domain_data = {}
        self.notes = None
        self.step = FIRST_DOMAIN_STEP

    def resume_session(self, subject: SubjectRef, session: DraftSession) -> None:
        """Restore a session held by the caller between requests."""
        self._require_state(WorkflowState.SUBJECT_SELECTION)
        self.subject = subject
        self._subject_locked = True
        self.domain_data = session.domain_data
        self.notes = session.notes
        self.draft_id = session.draft_id
        self.draft_version = session.version
        self.step = session.current_step

    # --- data entry -------------------------------------------------------

    def set_answer(self, domain_id: str, question_id: str, value: int) -> None:
        """Record one answer, overwriting any previous value.

        Raises:
            ValueError: Unknown domain or question, or value outside 0-2.
        """
        self._require_state(WorkflowState.DOMAIN_STEP, WorkflowState.REVIEW)

        domain = self.catalog.get_domain(domain_id)
        if domain is None:
            raise ValueError(f"Unknown domain: {domain_id}")
        if not domain.has_question(question_id):
            raise ValueError(f"Unknown question {question_id} for domain {domain_id}")

        value = validate_answer(question_id, value)
        self.domain_data.setdefault(domain_id, DomainEntry()).answers[question_id] = value

    def set_domain_notes(self, domain_id: str, notes: str | None) -> None:
        self._require_state(WorkflowState.DOMAIN_STEP, WorkflowState.REVIEW)
        if self.catalog.get_domain(domain_id) is None:
            raise ValueError(f"Unknown domain: {domain_id}")
        self.domain_data.setdefault(domain_id, DomainEntry()).notes = notes

    def set_general_notes(self, notes: str | None) -> None:
        self._require_state(WorkflowState.DOMAIN_STEP, WorkflowState.REVIEW)
        self.notes = notes

    def answers_for(self, domain_id: str) -> dict[str, int]:
        entry = self.domain_data.get(domain_id)
        return dict(entry.answers) if entry else {}

    def domain_data_dict(self) -> dict[str, dict[str, Any]]:
        return {domain_id: entry.to_dict() for domain_id, entry in self.domain_data.items()}

    # --- validation and preview -------------------------------------------

    def missing_for_current_step(self) -> list[str]:
        """Unanswered question ids of the current step's domains."""
        group = self.current_group
        if group is None:
            return []
        missing: list[str] = []
        for domain in self.catalog.domains_for_group(group):
            missing.extend(domain.missing_question_ids(self.answers_for(domain.id)))
        return missing

    def missing_for_catalog(self) -> list[str]:
        """Unanswered question ids across every catalog domain."""
        missing: list[str] = []
        for domain in self.catalog.domains:
            missing.extend(domain.missing_question_ids(self.answers_for(domain.id)))
        return missing

    def preview(self) -> AssessmentResult:
        """Result over everything entered so far; unanswered count as 0."""
        return calculate_assessment_result(self.domain_data_dict(), self.catalog)

    def review_summary(self) -> ReviewSummary:
        return ReviewSummary(
            result=self.preview(),
            missing_question_ids=self.missing_for_catalog(),
        )

    def _snapshot(self, step: int, overall_risk: RiskLevel) -> DraftSnapshot:
        return DraftSnapshot(
            subject_id=self.subject.id,
            assessor_id=self.assessor_id,
            current_step=step,
            domain_data=self.domain_data_dict(),
            overall_risk=overall_risk,
            notes=self.notes,
            metadata=catalog_metadata(self.catalog),
        )

    # --- transitions --------------------------------------------------------

    async def next(self, allow_unsaved: bool | None = None) -> StepResult:
        """Validate the current step, save the draft, then advance.

        An incomplete step is not an error: the result carries the missing
        question ids and the step is unchanged.

        Raises:
            DraftSaveError: The snapshot could not be saved; nothing changed.
            DraftConflictError: Another session changed this subject's draft.
        """
        self._require_state(WorkflowState.DOMAIN_STEP)
        if allow_unsaved is None:
            allow_unsaved = self.allow_unsaved

        missing = self.missing_for_current_step()
        if missing:
            return StepResult(advanced=False, step=self.step, missing_question_ids=missing)

        preview = self.preview()
        new_step = self.step + 1
        snapshot = self._snapshot(new_step, preview.overall_risk)

        try:
            record = await self.store.save_draft(snapshot, expected_version=self.draft_version)
        except (SQLAlchemyError, OSError) as e:
            logger.error(
                f"Draft save failed for subject {self.subject.id} at step {self.step}: {e}",
                extra={"subject_id": self.subject.id},
            )
            if not allow_unsaved:
                raise DraftSaveError(f"Draft could not be saved: {e}") from e
            logger.warning(
                f"Advancing subject {self.subject.id} to step {new_step} without a saved draft",
                extra={"subject_id": self.subject.id},
            )
            self.step = new_step
            return StepResult(advanced=True, step=self.step, preview=preview, saved=False)

        self.draft_id = record.id
        self.draft_version = record.version
        self.step = new_step
        logger.info(
            f"Draft saved for subject {self.subject.id}, now at step {self.step}",
            extra={"subject_id": self.subject.id, "assessment_id": record.id},
        )
        return StepResult(advanced=True, step=self.step, preview=preview, saved=True)

    async def save(self) -> StepResult:
        """Save the draft at the current step without validating or moving.

        Same upsert as ``next()``: an unchanged draft is a no-op and a
        stale version raises ``DraftConflictError``.

        Raises:
            DraftSaveError: The snapshot could not be saved; nothing changed.
            DraftConflictError: Another session changed this subject's draft.
        """
        self._require_state(WorkflowState.DOMAIN_STEP, WorkflowState.REVIEW)

        preview = self.preview()
        snapshot = self._snapshot(self.step, preview.overall_risk)

        try:
            record = await self.store.save_draft(snapshot, expected_version=self.draft_version)
        except (SQLAlchemyError, OSError) as e:
            logger.error(
                f"Draft save failed for subject {self.subject.id} at step {self.step}: {e}",
                extra={"subject_id": self.subject.id},
            )
            raise DraftSaveError(f"Draft could not be saved: {e}") from e

        self.draft_id = record.id
        self.draft_version = record.version
        logger.info(
            f"Draft saved for subject {self.subject.id} at step {self.step}",
            extra={"subject_id": self.subject.id, "assessment_id": record.id},
        )
        return StepResult(advanced=False, step=self.step, preview=preview, saved=True)

    def previous(self) -> int:
        """Go back one step. No validation, no save."""
        self._require_state(WorkflowState.DOMAIN_STEP, WorkflowState.REVIEW)
        if self.step <= self.first_reachable_step:
            raise InvalidTransitionError("Already at the first step")
        self.step = min(self.step, self.review_step) - 1
        return self.step

    async def complete(self) -> AssessmentResult:
        """Commit the assessment from review.

        Raises:
            IncompleteAssessmentError: Some catalog question is unanswered.
            DraftSaveError: The assessment could not be saved; still in review.
            DraftConflictError: Another session changed this subject's draft.
        """
        self._require_state(WorkflowState.REVIEW)

        missing = self.missing_for_catalog()
        if missing:
            raise IncompleteAssessmentError(missing)

        result = self.preview()
        snapshot = self._snapshot(self.review_step, result.overall_risk)

        try:
            record = await self.store.complete_assessment(
                snapshot,
                result,
                draft_id=self.draft_id,
                expected_version=self.draft_version,
            )
        except (SQLAlchemyError, OSError) as e:
            logger.error(
                f"Completing assessment failed for subject {self.subject.id}: {e}",
                extra={"subject_id": self.subject.id},
            )
            raise DraftSaveError(f"Assessment could not be saved: {e}") from e

        self.completed_assessment_id = record.id
        self._committed = True
        return result
