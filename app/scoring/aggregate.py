"""Assessment-level aggregation.

Overall risk is the highest domain risk present
(intervention > at_risk > healthy). With no scored domains the
assessment is healthy; deciding whether such a result may be committed
is left to the workflow.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from app.catalog.models import DomainCatalog
from app.scoring.risk import RISK_SEVERITY, RiskLevel
from app.scoring.domain import DomainResult, score_domain
from app.scoring.recommendations import Recommendation, generate_recommendations


@dataclass
class AssessmentResult:
    """Complete scored assessment."""
    overall_risk: RiskLevel
    domain_results: list[DomainResult]
    total_score: int
    max_total_score: int
    recommendations: list[Recommendation] = field(default_factory=list)
    flagged_domain_names: list[str] = field(default_factory=list)
    # Free-text lines shown on the summary and printed report
    summary_lines: list[str] = field(default_factory=list)

    @property
    def risk_counts(self) -> dict[str, int]:
        """Number of domains in each risk band."""
        counts = {level.value: 0 for level in RiskLevel}
        for result in self.domain_results:
            counts[RiskLevel(result.risk_level).value] += 1
        return counts

    def get_domain(self, domain_id: str) -> DomainResult | None:
        for result in self.domain_results:
            if result.domain_id == domain_id:
                return result
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "overall_risk": self.overall_risk.value,
            "domain_results": [r.to_dict() for r in self.domain_results],
            "total_score": self.total_score,
            "max_total_score": self.max_total_score,
            "recommendations": [r.to_dict() for r in self.recommendations],
            "flagged_domain_names": list(self.flagged_domain_names),
            "summary_lines": list(self.summary_lines),
        }


def calculate_overall_risk(domain_results: Iterable[DomainResult]) -> RiskLevel:
    """Highest-severity risk level among the domain results."""
    overall = RiskLevel.HEALTHY
    for result in domain_results:
        level = RiskLevel(result.risk_level)
        if RISK_SEVERITY[level] > RISK_SEVERITY[overall]:
            overall = level
    return overall


def _summary_lines(overall_risk: RiskLevel, domain_results: Sequence[DomainResult]) -> list[str]:
    lines: list[str] = []
    for result in domain_results:
        if result.flagged and result.trigger_action:
            lines.append(f"{result.domain_name}: {result.trigger_action}")
        if result.risk_level == RiskLevel.INTERVENTION:
            lines.append(f"{result.domain_name}: Immediate professional consultation required")
        elif result.risk_level == RiskLevel.AT_RISK:
            lines.append(f"{result.domain_name}: Schedule follow-up within 2 weeks")

    if overall_risk == RiskLevel.INTERVENTION:
        lines.insert(0, "URGENT: Comprehensive geriatric assessment recommended")
    elif overall_risk == RiskLevel.AT_RISK:
        lines.insert(0, "Schedule comprehensive follow-up assessment within 2 weeks")
    else:
        lines.insert(0, "Continue current care plan. Annual reassessment recommended.")

    # Ordered de-duplication
    return list(dict.fromkeys(lines))


def build_assessment_result(domain_results: Sequence[DomainResult]) -> AssessmentResult:
    """Aggregate already-scored domains into an assessment result.

    Also used to rebuild a result from stored domain rows; the overall
    risk is re-derived rather than trusted from storage.
    """
    domain_results = list(domain_results)
    overall_risk = calculate_overall_risk(domain_results)

    return AssessmentResult(
        overall_risk=overall_risk,
        domain_results=domain_results,
        total_score=sum(r.score for r in domain_results),
        max_total_score=sum(r.max_score for r in domain_results),
        recommendations=generate_recommendations(overall_risk, domain_results),
        flagged_domain_names=[r.domain_name for r in domain_results if r.flagged],
        summary_lines=_summary_lines(overall_risk, domain_results),
    )


def calculate_assessment_result(
    domain_data: Mapping[str, Mapping[str, Any]],
    catalog: DomainCatalog,
) -> AssessmentResult:
    """Score every catalog domain present in ``domain_data``.

    Args:
        domain_data: domain_id -> {"answers": {question_id: 0-2}, "notes": str | None}
        catalog: Domain catalog, which also fixes result order

    Domains without an entry are skipped. Entries for unknown domain ids
    are ignored.
    """
    results: list[DomainResult] = []
    for domain in catalog.domains:
        entry = domain_data.get(domain.id)
        if entry is None:
            continue
        results.append(score_domain(domain, entry.get("answers") or {}, entry.get("notes")))

    return build_assessment_result(results)
