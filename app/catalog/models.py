"""Domain catalog data models.

The catalog is pure data: domains, their questions and the ordered
workflow groups. Executable flag predicates live in
``app.catalog.triggers`` and are looked up by domain id, so a catalog
definition can be versioned and hashed on its own.
"""

from dataclasses import dataclass, field
from typing import Any

# Every question is answered on the same 3-point severity scale
ANSWER_VALUES = (0, 1, 2)
MAX_ANSWER_VALUE = 2


class CatalogError(ValueError):
    """Raised when a catalog definition is structurally invalid."""

    pass


@dataclass(frozen=True)
class QuestionOption:
    """One selectable answer for a question."""
    value: int
    label: str


@dataclass(frozen=True)
class Question:
    """A single screening question."""
    id: str
    prompt: str
    short_label: str
    options: tuple[QuestionOption, ...]
    description: str | None = None


@dataclass(frozen=True)
class Domain:
    """A health domain with its ordered questions."""
    id: str
    name: str
    description: str
    questions: tuple[Question, ...]
    trigger_action: str | None = None

    @property
    def max_score(self) -> int:
        return len(self.questions) * MAX_ANSWER_VALUE

    @property
    def question_ids(self) -> tuple[str, ...]:
        return tuple(q.id for q in self.questions)

    def has_question(self, question_id: str) -> bool:
        return question_id in self.question_ids

    def missing_question_ids(self, answers: dict[str, int] | None) -> list[str]:
        """Question ids with no answer, in catalog order."""
        answers = answers or {}
        return [qid for qid in self.question_ids if qid not in answers]

    def is_complete(self, answers: dict[str, int] | None) -> bool:
        return not self.missing_question_ids(answers)


@dataclass(frozen=True)
class DomainGroup:
    """A workflow step covering one or more domains."""
    id: str
    name: str
    domain_ids: tuple[str, ...]


@dataclass(frozen=True)
class DomainCatalog:
    """Ordered, immutable registry of domains and workflow groups."""
    id: str
    name: str
    version: str
    domains: tuple[Domain, ...]
    groups: tuple[DomainGroup, ...]
    description: str = ""
    content_hash: str = field(default="", compare=False)

    def get_domain(self, domain_id: str) -> Domain | None:
        """Look up a domain; unknown ids return None rather than raising."""
        for domain in self.domains:
            if domain.id == domain_id:
                return domain
        return None

    @property
    def domain_ids(self) -> tuple[str, ...]:
        return tuple(d.id for d in self.domains)

    @property
    def step_count(self) -> int:
        """Number of domain-group steps in the workflow."""
        return len(self.groups)

    def get_group(self, index: int) -> DomainGroup | None:
        """Get a group by 0-based position."""
        if 0 <= index < len(self.groups):
            return self.groups[index]
        return None

    def domains_for_group(self, group: DomainGroup) -> list[Domain]:
        """Domains of a group, in catalog order."""
        return [d for d in self.domains if d.id in group.domain_ids]

    @classmethod
    def from_dict(cls, data: dict[str, Any], content_hash: str = "") -> "DomainCatalog":
        """Build and validate a catalog from its parsed YAML definition.

        Raises:
            CatalogError: If the definition breaks a structural invariant.
        """
        domains: list[Domain] = []
        seen_domains: set[str] = set()

        for domain_data in data.get("domains", []):
            domain_id = domain_data["id"]
            if domain_id in seen_domains:
                raise CatalogError(f"Duplicate domain id: {domain_id}")
            seen_domains.add(domain_id)

            questions: list[Question] = []
            seen_questions: set[str] = set()
            for q in domain_data.get("questions", []):
                if q["id"] in seen_questions:
                    raise CatalogError(f"Duplicate question id {q['id']} in {domain_id}")
                seen_questions.add(q["id"])

                options = tuple(
                    QuestionOption(value=opt["value"], label=str(opt["label"]))
                    for opt in q.get("options", [])
                )
                if tuple(opt.value for opt in options) != ANSWER_VALUES:
                    raise CatalogError(
                        f"Question {q['id']} must have exactly 3 options valued 0, 1, 2"
                    )

                questions.append(Question(
                    id=q["id"],
                    prompt=q["prompt"],
                    short_label=q.get("short_label", q["id"]),
                    options=options,
                    description=q.get("description"),
                ))

            if not questions:
                raise CatalogError(f"Domain {domain_id} has no questions")

            domains.append(Domain(
                id=domain_id,
                name=domain_data["name"],
                description=domain_data.get("description", ""),
                questions=tuple(questions),
                trigger_action=domain_data.get("trigger_action"),
            ))

        groups: list[DomainGroup] = []
        grouped: list[str] = []
        for group_data in data.get("groups", []):
            domain_ids = tuple(group_data.get("domains", []))
            unknown = [d for d in domain_ids if d not in seen_domains]
            if unknown:
                raise CatalogError(f"Group {group_data['id']} references unknown domains: {unknown}")
            if not domain_ids:
                raise CatalogError(f"Group {group_data['id']} has no domains")
            grouped.extend(domain_ids)
            groups.append(DomainGroup(
                id=group_data["id"],
                name=group_data["name"],
                domain_ids=domain_ids,
            ))

        if sorted(grouped) != sorted(seen_domains):
            raise CatalogError("Every domain must belong to exactly one group")

        return cls(
            id=data["id"],
            name=data["name"],
            version=str(data["version"]),
            description=data.get("description", ""),
            domains=tuple(domains),
            groups=tuple(groups),
            content_hash=content_hash,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serializable representation (without predicates)."""
        return {
            "id": self.id,
            "name": self.name,
            "version": self.version,
            "description": self.description,
            "content_hash": self.content_hash,
            "domains": [
                {
                    "id": d.id,
                    "name": d.name,
                    "description": d.description,
                    "max_score": d.max_score,
                    "trigger_action": d.trigger_action,
                    "questions": [
                        {
                            "id": q.id,
                            "prompt": q.prompt,
                            "short_label": q.short_label,
                            "options": [{"value": o.value, "label": o.label} for o in q.options],
                        }
                        for q in d.questions
                    ],
                }
                for d in self.domains
            ],
            "groups": [
                {"id": g.id, "name": g.name, "domains": list(g.domain_ids)}
                for g in self.groups
            ],
        }
