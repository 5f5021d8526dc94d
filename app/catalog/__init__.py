"""Health domain catalog: versioned question data plus flag strategies."""

from app.catalog.loader import get_catalog, load_catalog
from app.catalog.models import (
    ANSWER_VALUES,
    CatalogError,
    Domain,
    DomainCatalog,
    DomainGroup,
    Question,
    QuestionOption,
)
from app.catalog.triggers import FLAG_TRIGGERS, get_flag_trigger

__all__ = [
    "ANSWER_VALUES",
    "CatalogError",
    "Domain",
    "DomainCatalog",
    "DomainGroup",
    "Question",
    "QuestionOption",
    "FLAG_TRIGGERS",
    "get_flag_trigger",
    "get_catalog",
    "load_catalog",
]
