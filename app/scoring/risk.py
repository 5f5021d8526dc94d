"""Risk levels shared by domain scoring, aggregation and trends."""

from enum import Enum


class RiskLevel(str, Enum):
    """Risk classification for a domain or a whole assessment.

    Ordered by severity: HEALTHY < AT_RISK < INTERVENTION.
    """

    HEALTHY = "healthy"  # Continue current care plan
    AT_RISK = "at_risk"  # Follow-up within 2 weeks
    INTERVENTION = "intervention"  # Immediate professional consultation

    @property
    def severity(self) -> int:
        return RISK_SEVERITY[self]


RISK_SEVERITY = {
    RiskLevel.HEALTHY: 0,
    RiskLevel.AT_RISK: 1,
    RiskLevel.INTERVENTION: 2,
}
