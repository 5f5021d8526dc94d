"""Tests for trend and comparison over completed assessments."""

from collections.abc import Callable
from datetime import datetime, timedelta

from app.scoring.aggregate import AssessmentResult, build_assessment_result
from app.scoring.domain import DomainResult, get_risk_level
from app.scoring.risk import RiskLevel
from app.scoring.trends import (
    DatedResult,
    Trend,
    build_domain_series,
    classify_delta,
    compare_latest,
    compare_results,
    latest_vs_previous,
    summarize_comparison,
)


def _scored(domain_id: str, score: int) -> DomainResult:
    return DomainResult(
        domain_id=domain_id,
        domain_name=domain_id.title(),
        score=score,
        max_score=6,
        risk_level=get_risk_level(score),
    )


class TestClassifyDelta:
    def test_positive_is_improved(self) -> None:
        assert classify_delta(3) == Trend.IMPROVED

    def test_negative_is_declined(self) -> None:
        assert classify_delta(-1) == Trend.DECLINED

    def test_zero_is_same(self) -> None:
        assert classify_delta(0) == Trend.SAME


class TestCompareResults:
    """Tests for domain-by-domain comparison of two results."""

    def test_lower_score_is_improvement(self, make_result: Callable[..., AssessmentResult]) -> None:
        previous = make_result({"vitality": {"vit_1": 2, "vit_2": 2}, "social": {"soc_1": 1, "soc_2": 0}})
        current = make_result({"vitality": {"vit_1": 1, "vit_2": 1}, "social": {"soc_1": 1, "soc_2": 1}})

        by_id = {c.domain_id: c for c in compare_results(previous, current)}

        assert by_id["vitality"].delta == 2
        assert by_id["vitality"].trend == Trend.IMPROVED
        assert by_id["vitality"].previous_risk == RiskLevel.INTERVENTION
        assert by_id["vitality"].current_risk == RiskLevel.AT_RISK
        assert by_id["social"].delta == -1
        assert by_id["social"].trend == Trend.DECLINED

    def test_previous_five_current_two(self) -> None:
        """Delta is previous minus current."""
        previous = build_assessment_result([_scored("social", 5)])
        current = build_assessment_result([_scored("social", 2)])

        [comparison] = compare_results(previous, current)

        assert comparison.delta == 3
        assert comparison.trend == Trend.IMPROVED

    def test_missing_domain_counts_as_zero(self, make_result: Callable[..., AssessmentResult]) -> None:
        previous = make_result({"mobility": {"mob_1": 2, "mob_2": 1}})
        current = make_result({"vision": {"vis_1": 1}})

        by_id = {c.domain_id: c for c in compare_results(previous, current)}

        assert by_id["mobility"].current_score == 0
        assert by_id["mobility"].delta == 3
        assert by_id["mobility"].current_risk is None
        assert by_id["vision"].previous_score == 0
        assert by_id["vision"].trend == Trend.DECLINED

    def test_summary_counts(self, make_result: Callable[..., AssessmentResult]) -> None:
        previous = make_result({"cognition": {"cog_1": 2}, "hearing": {"hear_1": 0}})
        current = make_result({"cognition": {"cog_1": 0}, "hearing": {"hear_1": 0}})

        counts = summarize_comparison(compare_results(previous, current))

        assert counts == {"improved": 1, "declined": 0, "same": 1}


class TestSeries:
    """Tests for N-point and 2-point series."""

    def _history(self, make_result, base_time: datetime) -> list[DatedResult]:
        return [
            DatedResult(base_time + timedelta(days=60), make_result({"cognition": {"cog_1": 0}}), "c"),
            DatedResult(base_time, make_result({"cognition": {"cog_1": 2}}), "a"),
            DatedResult(
                base_time + timedelta(days=30),
                make_result({"cognition": {"cog_1": 1}, "sleep": {"sleep_1": 2}}),
                "b",
            ),
        ]

    def test_series_oldest_first_with_zero_fill(self, make_result, base_time: datetime) -> None:
        series = build_domain_series(self._history(make_result, base_time))

        assert [p.assessment_id for p in series] == ["a", "b", "c"]
        assert [p.scores["cognition"] for p in series] == [2, 1, 0]
        assert [p.scores["sleep"] for p in series] == [0, 2, 0]
        assert series[1].total_score == 3
        assert series[1].overall_risk == RiskLevel.AT_RISK

    def test_latest_vs_previous(self, make_result, base_time: datetime) -> None:
        radar = {p.domain_id: p for p in latest_vs_previous(self._history(make_result, base_time))}

        assert radar["cognition"].latest == 0
        assert radar["cognition"].previous == 1
        assert radar["sleep"].latest == 0
        assert radar["sleep"].previous == 2

    def test_single_assessment_radar(self, make_result, base_time: datetime) -> None:
        history = [DatedResult(base_time, make_result({"hearing": {"hear_1": 1}}))]

        radar = latest_vs_previous(history)

        assert len(radar) == 1
        assert radar[0].latest == 1
        assert radar[0].previous == 0

    def test_empty_history(self) -> None:
        assert build_domain_series([]) == []
        assert latest_vs_previous([]) == []
        assert compare_latest([]) == []

    def test_compare_latest_uses_two_most_recent(self, make_result, base_time: datetime) -> None:
        comparison = {c.domain_id: c for c in compare_latest(self._history(make_result, base_time))}

        assert comparison["cognition"].previous_score == 1
        assert comparison["cognition"].current_score == 0
        assert comparison["cognition"].trend == Trend.IMPROVED
