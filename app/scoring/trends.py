"""Trend and comparison over a subject's completed assessments.

Lower scores are healthier, so the delta is ``previous - current`` and a
positive delta means improvement.

A domain missing from one side of a comparison counts as a score of 0.
This is a known approximation: a domain that was simply not assessed
looks the same as a domain with no difficulty.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from app.scoring.risk import RiskLevel
from app.scoring.aggregate import AssessmentResult


class Trend(str, Enum):
    """Direction of change between two assessments."""

    IMPROVED = "improved"
    DECLINED = "declined"
    SAME = "same"


@dataclass
class DatedResult:
    """A completed assessment result with its assessment date."""
    assessed_at: datetime
    result: AssessmentResult
    assessment_id: str | None = None


@dataclass
class DomainComparison:
    """Score change for one domain between two assessments."""
    domain_id: str
    domain_name: str
    previous_score: int
    current_score: int
    delta: int
    trend: Trend
    previous_risk: RiskLevel | None = None
    current_risk: RiskLevel | None = None


@dataclass
class SeriesPoint:
    """Per-domain scores of one assessment, for line charts."""
    assessed_at: datetime
    scores: dict[str, int]
    total_score: int
    overall_risk: RiskLevel
    assessment_id: str | None = None


@dataclass
class RadarPoint:
    """Latest vs previous score of one domain, for radar charts."""
    domain_id: str
    domain_name: str
    latest: int
    previous: int


def classify_delta(delta: int) -> Trend:
    if delta > 0:
        return Trend.IMPROVED
    if delta < 0:
        return Trend.DECLINED
    return Trend.SAME


def _domain_ids(*results: AssessmentResult) -> list[str]:
    """Domain ids present in any result, first-seen order."""
    ids: list[str] = []
    for result in results:
        for domain in result.domain_results:
            if domain.domain_id not in ids:
                ids.append(domain.domain_id)
    return ids


def compare_results(previous: AssessmentResult, current: AssessmentResult) -> list[DomainComparison]:
    """Compare two sequential results domain by domain."""
    comparisons: list[DomainComparison] = []

    for domain_id in _domain_ids(previous, current):
        prev = previous.get_domain(domain_id)
        curr = current.get_domain(domain_id)
        previous_score = prev.score if prev else 0
        current_score = curr.score if curr else 0
        delta = previous_score - current_score

        comparisons.append(DomainComparison(
            domain_id=domain_id,
            domain_name=(curr or prev).domain_name,
            previous_score=previous_score,
            current_score=current_score,
            delta=delta,
            trend=classify_delta(delta),
            previous_risk=RiskLevel(prev.risk_level) if prev else None,
            current_risk=RiskLevel(curr.risk_level) if curr else None,
        ))

    return comparisons


def summarize_comparison(comparisons: Sequence[DomainComparison]) -> dict[str, int]:
    """Count of domains per trend."""
    counts = {trend.value: 0 for trend in Trend}
    for comparison in comparisons:
        counts[comparison.trend.value] += 1
    return counts


def _in_date_order(history: Sequence[DatedResult]) -> list[DatedResult]:
    return sorted(history, key=lambda item: item.assessed_at)


def build_domain_series(history: Sequence[DatedResult]) -> list[SeriesPoint]:
    """N-point per-domain score series, oldest first.

    Every point carries every domain seen anywhere in the history, with
    0 where that assessment lacks the domain.
    """
    ordered = _in_date_order(history)
    domain_ids = _domain_ids(*(item.result for item in ordered))

    series: list[SeriesPoint] = []
    for item in ordered:
        scores = {}
        for domain_id in domain_ids:
            domain = item.result.get_domain(domain_id)
            scores[domain_id] = domain.score if domain else 0
        series.append(SeriesPoint(
            assessed_at=item.assessed_at,
            scores=scores,
            total_score=item.result.total_score,
            overall_risk=RiskLevel(item.result.overall_risk),
            assessment_id=item.assessment_id,
        ))
    return series


def latest_vs_previous(history: Sequence[DatedResult]) -> list[RadarPoint]:
    """Two-point comparison of the two most recent assessments.

    With a single assessment, previous scores are all 0. With none,
    the result is empty.
    """
    ordered = _in_date_order(history)
    if not ordered:
        return []

    latest = ordered[-1].result
    previous = ordered[-2].result if len(ordered) > 1 else None

    points: list[RadarPoint] = []
    results = (latest, previous) if previous else (latest,)
    for domain_id in _domain_ids(*results):
        latest_domain = latest.get_domain(domain_id)
        previous_domain = previous.get_domain(domain_id) if previous else None
        points.append(RadarPoint(
            domain_id=domain_id,
            domain_name=(latest_domain or previous_domain).domain_name,
            latest=latest_domain.score if latest_domain else 0,
            previous=previous_domain.score if previous_domain else 0,
        ))
    return points


def compare_latest(history: Sequence[DatedResult]) -> list[DomainComparison]:
    """Domain comparison of the two most recent assessments, [] if fewer."""
    ordered = _in_date_order(history)
    if len(ordered) < 2:
        return []
    return compare_results(ordered[-2].result, ordered[-1].result)
