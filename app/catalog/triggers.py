"""Flag trigger strategies, keyed by domain id.

A flag marks a domain for clinical action independently of its numeric
risk level. For example a single reported fall flags mobility even though
a score of 1 is still classified healthy.

Predicates are only meaningful on a fully answered domain.
"""

from collections.abc import Callable, Mapping

FlagTrigger = Callable[[Mapping[str, int]], bool]


def any_severe(answers: Mapping[str, int]) -> bool:
    """Any answer at the most severe level."""
    return any(v == 2 for v in answers.values())


def fall_or_severe(answers: Mapping[str, int]) -> bool:
    """At least one fall in the past year, or any severe answer."""
    return answers.get("mob_2", 0) >= 1 or any_severe(answers)


def all_at_least_some(answers: Mapping[str, int]) -> bool:
    """Every answer shows at least some difficulty."""
    return bool(answers) and all(v >= 1 for v in answers.values())


FLAG_TRIGGERS: dict[str, FlagTrigger] = {
    "cognition": any_severe,
    "mood": any_severe,
    "mobility": fall_or_severe,
    "vision": any_severe,
    "hearing": any_severe,
    "vitality": any_severe,
    "adl": any_severe,
    "iadl": any_severe,
    "social": all_at_least_some,
}


def get_flag_trigger(domain_id: str) -> FlagTrigger | None:
    """Predicate for a domain, or None when the domain has no flag rule."""
    return FLAG_TRIGGERS.get(domain_id)
