"""Scoring, aggregation, recommendation and trend logic.

Everything in this package is pure: no I/O and no shared mutable state.
"""

from app.scoring.aggregate import (
    AssessmentResult,
    build_assessment_result,
    calculate_assessment_result,
    calculate_overall_risk,
)
from app.scoring.domain import DomainResult, get_risk_level, score_domain
from app.scoring.phq2 import PHQ2Result, requires_phq2, score_phq2
from app.scoring.recommendations import (
    Recommendation,
    RecommendationCategory,
    RecommendationPriority,
    calculate_due_date,
    generate_recommendations,
    recommendations_to_interventions,
)
from app.scoring.risk import RISK_SEVERITY, RiskLevel
from app.scoring.trends import (
    DatedResult,
    DomainComparison,
    Trend,
    build_domain_series,
    compare_results,
    latest_vs_previous,
)

__all__ = [
    "AssessmentResult",
    "build_assessment_result",
    "calculate_assessment_result",
    "calculate_overall_risk",
    "DomainResult",
    "get_risk_level",
    "score_domain",
    "PHQ2Result",
    "requires_phq2",
    "score_phq2",
    "Recommendation",
    "RecommendationCategory",
    "RecommendationPriority",
    "calculate_due_date",
    "generate_recommendations",
    "recommendations_to_interventions",
    "RISK_SEVERITY",
    "RiskLevel",
    "DatedResult",
    "DomainComparison",
    "Trend",
    "build_domain_series",
    "compare_results",
    "latest_vs_previous",
]
