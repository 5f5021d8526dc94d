"""Per-domain scoring.

Each question is answered 0-2:
- 0 = No difficulty
- 1 = Some difficulty
- 2 = Severe, needs intervention

Domain score is the sum of its answers, max = 2 x question count.

Risk bands:
- 0-1: Healthy
- 2-3: At risk
- 4+:  Intervention

Flags are evaluated separately from the risk band using the domain's
trigger strategy, so a domain may be flagged while still healthy.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from app.catalog.models import ANSWER_VALUES, Domain
from app.catalog.triggers import get_flag_trigger
from app.scoring.risk import RiskLevel


@dataclass
class DomainResult:
    """Result of scoring one domain."""
    domain_id: str
    domain_name: str
    score: int
    max_score: int
    risk_level: RiskLevel
    flagged: bool = False
    trigger_action: str | None = None
    answers: dict[str, int] = field(default_factory=dict)
    notes: str | None = None
    # False when unanswered questions were counted as 0 (preview only)
    is_complete: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "domain": self.domain_id,
            "domain_name": self.domain_name,
            "score": self.score,
            "max_score": self.max_score,
            "risk_level": self.risk_level.value,
            "flagged": self.flagged,
            "trigger_action": self.trigger_action,
            "answers": dict(self.answers),
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DomainResult":
        """Rebuild a stored domain result. Risk level is re-derived from score."""
        score = int(data["score"])
        return cls(
            domain_id=data["domain"],
            domain_name=data.get("domain_name", data["domain"]),
            score=score,
            max_score=int(data["max_score"]),
            risk_level=get_risk_level(score),
            flagged=bool(data.get("flagged", False)),
            trigger_action=data.get("trigger_action"),
            answers=dict(data.get("answers") or {}),
            notes=data.get("notes"),
        )


# Risk band thresholds (inclusive lower bound, highest first)
RISK_BANDS = [
    (4, RiskLevel.INTERVENTION),
    (2, RiskLevel.AT_RISK),
    (0, RiskLevel.HEALTHY),
]

RISK_LEVEL_DISPLAY: dict[RiskLevel, dict[str, str]] = {
    RiskLevel.HEALTHY: {
        "label": "Healthy",
        "description": "Continue current care plan",
    },
    RiskLevel.AT_RISK: {
        "label": "At Risk",
        "description": "Schedule follow-up within 2 weeks",
    },
    RiskLevel.INTERVENTION: {
        "label": "Needs Intervention",
        "description": "Immediate professional consultation required",
    },
}


def get_risk_level(score: int) -> RiskLevel:
    """Classify a domain score into its risk band.

    Raises:
        ValueError: If score is negative.
    """
    if score < 0:
        raise ValueError(f"Domain score cannot be negative, got {score}")
    for lower, level in RISK_BANDS:
        if score >= lower:
            return level
    return RiskLevel.HEALTHY


def validate_answer(question_id: str, value: Any) -> int:
    """Check a single answer value is on the 0-2 scale."""
    # bool is an int subclass; True/False are not valid answers
    if isinstance(value, bool) or not isinstance(value, int) or value not in ANSWER_VALUES:
        raise ValueError(f"Answer for {question_id} must be integer 0-2, got {value!r}")
    return value


def score_domain(
    domain: Domain,
    answers: Mapping[str, int] | None,
    notes: str | None = None,
) -> DomainResult:
    """Score a domain's answers.

    Only the domain's own question ids are counted. Missing answers
    contribute 0 so a partially answered domain can still be previewed;
    the result is then marked ``is_complete=False``. Completeness for
    workflow gating is checked separately via ``Domain.missing_question_ids``.

    The flag predicate sees only the answers supplied, never the
    zero-filled preview.

    Raises:
        ValueError: If an answer is outside 0-2.
    """
    answers = answers or {}
    scored: dict[str, int] = {}

    for question_id in domain.question_ids:
        if question_id in answers:
            scored[question_id] = validate_answer(question_id, answers[question_id])

    score = sum(scored.values())
    is_complete = len(scored) == len(domain.questions)

    flagged = False
    trigger_action = None
    trigger = get_flag_trigger(domain.id)
    if trigger is not None and scored and trigger(scored):
        flagged = True
        trigger_action = domain.trigger_action

    return DomainResult(
        domain_id=domain.id,
        domain_name=domain.name,
        score=score,
        max_score=domain.max_score,
        risk_level=get_risk_level(score),
        flagged=flagged,
        trigger_action=trigger_action,
        answers=scored,
        notes=notes,
        is_complete=is_complete,
    )
