"""Next-step recommendation generation.

Recommendations come from two tables:
- Generic recommendations keyed by overall risk, always listed first
- Domain-specific recommendations keyed by (domain, domain risk level)

The domain table is sparse. Any unmapped combination yields no
recommendations. The final list is sorted most urgent first and
deduplicated by id, keeping the first occurrence.
"""

from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum

from app.scoring.risk import RiskLevel
from app.scoring.domain import DomainResult
from app.utils.time import utc_now


class RecommendationPriority(str, Enum):
    """Recommendation priority, most urgent first."""

    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RecommendationCategory(str, Enum):
    """Kind of action a recommendation asks for."""

    FOLLOW_UP = "follow-up"
    REFERRAL = "referral"
    INTERVENTION = "intervention"
    MONITORING = "monitoring"
    LIFESTYLE = "lifestyle"


PRIORITY_ORDER = {
    RecommendationPriority.URGENT: 0,
    RecommendationPriority.HIGH: 1,
    RecommendationPriority.MEDIUM: 2,
    RecommendationPriority.LOW: 3,
}

# Only these priorities become intervention records; the rest are advisory
ACTIONABLE_PRIORITIES = (RecommendationPriority.URGENT, RecommendationPriority.HIGH)


@dataclass(frozen=True)
class Recommendation:
    """A single next-step recommendation."""
    id: str
    priority: RecommendationPriority
    category: RecommendationCategory
    title: str
    description: str
    domain: str | None = None
    timeframe: str | None = None

    @property
    def is_actionable(self) -> bool:
        return self.priority in ACTIONABLE_PRIORITIES

    def due_date(self, now: datetime | None = None) -> datetime | None:
        return calculate_due_date(self.timeframe, now)

    def to_dict(self, now: datetime | None = None) -> dict:
        due = self.due_date(now)
        return {
            "id": self.id,
            "priority": self.priority.value,
            "category": self.category.value,
            "title": self.title,
            "description": self.description,
            "domain": self.domain,
            "timeframe": self.timeframe,
            "due_date": due.isoformat() if due else None,
        }


def _rec(
    id: str,
    priority: RecommendationPriority,
    category: RecommendationCategory,
    title: str,
    description: str,
    timeframe: str | None = None,
) -> Recommendation:
    return Recommendation(
        id=id,
        priority=priority,
        category=category,
        title=title,
        description=description,
        timeframe=timeframe,
    )


P = RecommendationPriority
C = RecommendationCategory

OVERALL_RECOMMENDATIONS: dict[RiskLevel, list[Recommendation]] = {
    RiskLevel.HEALTHY: [
        _rec("overall_healthy", P.LOW, C.FOLLOW_UP, "Annual Reassessment",
             "Continue current care plan. Schedule annual comprehensive assessment.",
             "12 months"),
    ],
    RiskLevel.AT_RISK: [
        _rec("overall_atrisk", P.MEDIUM, C.FOLLOW_UP, "Follow-up Assessment",
             "Schedule follow-up assessment to monitor at-risk domains.",
             "Within 2 weeks"),
        _rec("overall_plan", P.MEDIUM, C.INTERVENTION, "Care Plan Review",
             "Review and update care plan based on assessment findings.",
             "Within 1 week"),
    ],
    RiskLevel.INTERVENTION: [
        _rec("overall_urgent", P.URGENT, C.REFERRAL, "Comprehensive Geriatric Assessment",
             "Urgent referral for comprehensive geriatric assessment.",
             "Within 48 hours"),
        _rec("overall_multidis", P.HIGH, C.INTERVENTION, "Multidisciplinary Team Review",
             "Convene multidisciplinary team to develop intervention plan.",
             "Within 1 week"),
    ],
}

# Healthy entries are intentionally empty
DOMAIN_RECOMMENDATIONS: dict[str, dict[RiskLevel, list[Recommendation]]] = {
    "cognition": {
        RiskLevel.HEALTHY: [],
        RiskLevel.AT_RISK: [
            _rec("cog_monitor", P.MEDIUM, C.MONITORING, "Cognitive Monitoring",
                 "Monitor for signs of memory decline. Consider cognitive exercises.",
                 "Monthly"),
        ],
        RiskLevel.INTERVENTION: [
            _rec("cog_referral", P.HIGH, C.REFERRAL, "Cognitive Specialist Referral",
                 "Refer to neurologist or geriatric psychiatrist for comprehensive evaluation.",
                 "Within 1 week"),
        ],
    },
    "mood": {
        RiskLevel.HEALTHY: [],
        RiskLevel.AT_RISK: [
            _rec("dep_phq9", P.MEDIUM, C.FOLLOW_UP, "PHQ-9 Screening",
                 "Administer PHQ-9 for detailed depression assessment.",
                 "Within 2 weeks"),
        ],
        RiskLevel.INTERVENTION: [
            _rec("dep_mental", P.URGENT, C.REFERRAL, "Mental Health Referral",
                 "Urgent referral to mental health professional. Assess for suicide risk.",
                 "Within 48 hours"),
        ],
    },
    "mobility": {
        RiskLevel.HEALTHY: [],
        RiskLevel.AT_RISK: [
            _rec("mob_exercise", P.MEDIUM, C.LIFESTYLE, "Mobility Exercises",
                 "Recommend light walking and balance exercises. Consider assistive devices.",
                 "Start immediately"),
            _rec("falls_home", P.HIGH, C.INTERVENTION, "Home Safety Assessment",
                 "Conduct home safety evaluation. Remove hazards, add grab bars.",
                 "Within 1 week"),
        ],
        RiskLevel.INTERVENTION: [
            _rec("mob_physio", P.HIGH, C.REFERRAL, "Physiotherapy Referral",
                 "Refer to physiotherapist for mobility assessment and rehabilitation.",
                 "Within 1 week"),
            _rec("falls_urgent", P.URGENT, C.INTERVENTION, "Falls Prevention Program",
                 "Enroll in falls prevention program. Consider 24/7 supervision.",
                 "Immediately"),
        ],
    },
    "vision": {
        RiskLevel.HEALTHY: [],
        RiskLevel.AT_RISK: [
            _rec("vis_screen", P.MEDIUM, C.FOLLOW_UP, "Vision Screening",
                 "Schedule comprehensive vision screening.",
                 "Within 1 month"),
        ],
        RiskLevel.INTERVENTION: [
            _rec("vis_ophth", P.HIGH, C.REFERRAL, "Ophthalmology Referral",
                 "Urgent referral to ophthalmologist for evaluation.",
                 "Within 1 week"),
        ],
    },
    "hearing": {
        RiskLevel.HEALTHY: [],
        RiskLevel.AT_RISK: [
            _rec("hear_screen", P.MEDIUM, C.FOLLOW_UP, "Hearing Assessment",
                 "Schedule hearing evaluation. Consider hearing aids if needed.",
                 "Within 1 month"),
        ],
        RiskLevel.INTERVENTION: [
            _rec("hear_audio", P.HIGH, C.REFERRAL, "Audiology Referral",
                 "Refer to audiologist for comprehensive hearing evaluation.",
                 "Within 2 weeks"),
        ],
    },
    "vitality": {
        RiskLevel.HEALTHY: [],
        RiskLevel.AT_RISK: [
            _rec("nut_counsel", P.MEDIUM, C.LIFESTYLE, "Nutritional Counseling",
                 "Provide dietary guidance. Monitor food intake.",
                 "Within 2 weeks"),
            _rec("wt_monitor", P.MEDIUM, C.MONITORING, "Weight Monitoring",
                 "Weekly weight monitoring. Track changes.",
                 "Weekly"),
        ],
        RiskLevel.INTERVENTION: [
            _rec("nut_diet", P.HIGH, C.REFERRAL, "Dietitian Referral",
                 "Refer to registered dietitian for nutritional assessment.",
                 "Within 1 week"),
            _rec("wt_assess", P.HIGH, C.REFERRAL, "Weight Loss Investigation",
                 "Investigate cause of unintentional weight loss. Rule out underlying conditions.",
                 "Within 1 week"),
        ],
    },
    "adl": {
        RiskLevel.HEALTHY: [],
        RiskLevel.AT_RISK: [
            _rec("adl_assist", P.MEDIUM, C.INTERVENTION, "ADL Support Assessment",
                 "Assess need for personal care assistance.",
                 "Within 2 weeks"),
        ],
        RiskLevel.INTERVENTION: [
            _rec("adl_care", P.HIGH, C.INTERVENTION, "Personal Care Support",
                 "Arrange personal care support services.",
                 "Within 1 week"),
        ],
    },
    "iadl": {
        RiskLevel.HEALTHY: [],
        RiskLevel.AT_RISK: [
            _rec("iadl_support", P.MEDIUM, C.INTERVENTION, "IADL Support Planning",
                 "Assess need for help with shopping, cooking, finances.",
                 "Within 2 weeks"),
        ],
        RiskLevel.INTERVENTION: [
            _rec("iadl_services", P.HIGH, C.INTERVENTION, "Community Support Services",
                 "Connect with community support services for daily living assistance.",
                 "Within 1 week"),
        ],
    },
    "social": {
        RiskLevel.HEALTHY: [],
        RiskLevel.AT_RISK: [
            _rec("lone_social", P.MEDIUM, C.LIFESTYLE, "Social Engagement",
                 "Connect with senior center or community programs.",
                 "Within 2 weeks"),
        ],
        RiskLevel.INTERVENTION: [
            _rec("lone_urgent", P.HIGH, C.INTERVENTION, "Social Support Intervention",
                 "Arrange regular visitor program. Assess for depression.",
                 "Within 1 week"),
        ],
    },
}

# Substring -> days until due. Checked in order.
DUE_DATE_OFFSETS = [
    ("48 hours", 2),
    ("1 week", 7),
    ("2 weeks", 14),
    ("1 month", 30),
]


def calculate_due_date(timeframe: str | None, now: datetime | None = None) -> datetime | None:
    """Derive a due date from a recommendation timeframe.

    "48 hours" / "Immediately" -> +2 days, "1 week" -> +7, "2 weeks" -> +14,
    "1 month" -> +30. Anything else has no due date.
    """
    if not timeframe:
        return None

    now = now or utc_now()

    if timeframe == "Immediately":
        return now + timedelta(days=2)

    for needle, days in DUE_DATE_OFFSETS:
        if needle in timeframe:
            return now + timedelta(days=days)

    return None


def get_overall_recommendations(overall_risk: RiskLevel) -> list[Recommendation]:
    return list(OVERALL_RECOMMENDATIONS.get(RiskLevel(overall_risk), []))


def get_domain_recommendations(domain_id: str, risk_level: RiskLevel) -> list[Recommendation]:
    """Domain-specific recommendations; unmapped combinations give []."""
    return list(DOMAIN_RECOMMENDATIONS.get(domain_id, {}).get(RiskLevel(risk_level), []))


def sort_and_dedupe(recommendations: Sequence[Recommendation]) -> list[Recommendation]:
    """Sort most urgent first (stable), then keep the first of each id."""
    ordered = sorted(recommendations, key=lambda r: PRIORITY_ORDER[r.priority])

    seen: set[str] = set()
    unique: list[Recommendation] = []
    for rec in ordered:
        if rec.id in seen:
            continue
        seen.add(rec.id)
        unique.append(rec)
    return unique


def generate_recommendations(
    overall_risk: RiskLevel,
    domain_results: Sequence[DomainResult],
) -> list[Recommendation]:
    """Generate prioritized recommendations for an assessment."""
    recommendations = get_overall_recommendations(overall_risk)

    for result in domain_results:
        for rec in get_domain_recommendations(result.domain_id, result.risk_level):
            recommendations.append(replace(rec, domain=result.domain_name))

    return sort_and_dedupe(recommendations)


@dataclass
class InterventionDraft:
    """Prefill for an intervention record created from a recommendation."""
    subject_id: str
    title: str
    description: str
    domain: str
    priority: RecommendationPriority
    assessment_id: str | None = None
    status: str = "pending"
    due_date: datetime | None = None


def recommendations_to_interventions(
    recommendations: Sequence[Recommendation],
    subject_id: str,
    assessment_id: str | None = None,
    now: datetime | None = None,
) -> list[InterventionDraft]:
    """Turn urgent/high recommendations into intervention prefills."""
    return [
        InterventionDraft(
            subject_id=subject_id,
            assessment_id=assessment_id,
            title=rec.title,
            description=rec.description,
            domain=rec.domain or "general",
            priority=rec.priority,
            due_date=rec.due_date(now),
        )
        for rec in recommendations
        if rec.is_actionable
    ]
