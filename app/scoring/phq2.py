"""PHQ-2 follow-up screening for the mood domain.

When the mood domain flags, the assessor is prompted to administer the
PHQ-2: two items (little interest or pleasure, feeling down) each
scored 0-3:
- 0 = Not at all
- 1 = Several days
- 2 = More than half the days
- 3 = Nearly every day

Total score ranges 0-6. A score >= 3 is a positive screen.
"""

from dataclasses import dataclass

from app.scoring.domain import DomainResult

MOOD_DOMAIN_ID = "mood"

# Standard cutoff for positive screen
POSITIVE_CUTOFF = 3


@dataclass
class PHQ2Result:
    """Result of PHQ-2 scoring."""
    total: int
    screen_positive: bool
    interest_loss: int      # Item 1: Little interest or pleasure
    depressed_mood: int     # Item 2: Feeling down, depressed, hopeless
    recommendation: str


def score_phq2(interest_loss: int, depressed_mood: int) -> PHQ2Result:
    """Score the two PHQ-2 items.

    Raises:
        ValueError: If either item is not an integer 0-3.
    """
    for name, value in (("interest_loss", interest_loss), ("depressed_mood", depressed_mood)):
        if isinstance(value, bool) or not isinstance(value, int) or value < 0 or value > 3:
            raise ValueError(f"PHQ-2 {name} must be integer 0-3, got {value!r}")

    total = interest_loss + depressed_mood
    screen_positive = total >= POSITIVE_CUTOFF

    return PHQ2Result(
        total=total,
        screen_positive=screen_positive,
        interest_loss=interest_loss,
        depressed_mood=depressed_mood,
        recommendation=(
            "PHQ-2 positive. Consider PHQ-9 or professional mental health evaluation."
            if screen_positive
            else "PHQ-2 negative. Continue monitoring."
        ),
    )


def requires_phq2(domain_results: list[DomainResult]) -> bool:
    """Whether the mood domain flagged and a PHQ-2 should follow."""
    return any(r.domain_id == MOOD_DOMAIN_ID and r.flagged for r in domain_results)
