"""Tests for the domain catalog and its loader."""

from pathlib import Path

import pytest

from app.catalog.loader import (
    CATALOGS_DIR,
    compute_catalog_hash,
    get_catalog,
    list_catalogs,
    load_catalog,
)
from app.catalog.models import CatalogError, DomainCatalog
from app.catalog.triggers import FLAG_TRIGGERS, get_flag_trigger


def _definition(**overrides) -> dict:
    definition = {
        "id": "mini",
        "name": "Mini Catalog",
        "version": "0.1.0",
        "domains": [
            {
                "id": "cognition",
                "name": "Memory",
                "questions": [
                    {
                        "id": "cog_1",
                        "prompt": "Memory problems?",
                        "options": [
                            {"value": 0, "label": "No"},
                            {"value": 1, "label": "Some"},
                            {"value": 2, "label": "Severe"},
                        ],
                    }
                ],
            }
        ],
        "groups": [{"id": "g1", "name": "Mind", "domains": ["cognition"]}],
    }
    definition.update(overrides)
    return definition


class TestBundledCatalog:
    """Tests for the shipped ICOPE screening catalog."""

    def test_loads_twelve_domains_in_order(self, catalog: DomainCatalog) -> None:
        assert catalog.domain_ids == (
            "cognition", "mood", "mobility", "vision", "hearing", "vitality",
            "sleep", "continence", "adl", "iadl", "social", "healthcare",
        )

    def test_fifteen_questions(self, catalog: DomainCatalog) -> None:
        assert sum(len(d.questions) for d in catalog.domains) == 15

    def test_max_score_is_twice_question_count(self, catalog: DomainCatalog) -> None:
        for domain in catalog.domains:
            assert domain.max_score == 2 * len(domain.questions)

    def test_every_domain_in_one_group(self, catalog: DomainCatalog) -> None:
        grouped = [d for group in catalog.groups for d in group.domain_ids]
        assert sorted(grouped) == sorted(catalog.domain_ids)
        assert catalog.step_count == 6

    def test_first_group_covers_cognition_and_mood(self, catalog: DomainCatalog) -> None:
        group = catalog.get_group(0)
        assert [d.id for d in catalog.domains_for_group(group)] == ["cognition", "mood"]

    def test_yes_no_labels_stay_strings(self, catalog: DomainCatalog) -> None:
        """Unquoted Yes/No would load as booleans."""
        mob_2 = catalog.get_domain("mobility").questions[1]
        assert [o.label for o in mob_2.options][:2] == ["No", "Yes, once"]

    def test_unknown_domain_is_absent(self, catalog: DomainCatalog) -> None:
        assert catalog.get_domain("depression") is None

    def test_get_group_out_of_range(self, catalog: DomainCatalog) -> None:
        assert catalog.get_group(-1) is None
        assert catalog.get_group(catalog.step_count) is None

    def test_content_hash_matches_file(self, catalog: DomainCatalog) -> None:
        content = (CATALOGS_DIR / "icope-screening-v1.0.0.yaml").read_text(encoding="utf-8")
        assert catalog.content_hash == compute_catalog_hash(content)
        assert len(catalog.content_hash) == 64

    def test_get_catalog_is_cached(self) -> None:
        assert get_catalog() is get_catalog()

    def test_listed(self) -> None:
        assert "icope-screening-v1.0.0.yaml" in list_catalogs()

    def test_to_dict_has_no_predicates(self, catalog: DomainCatalog) -> None:
        data = catalog.to_dict()
        assert data["version"] == "1.0.0"
        assert data["domains"][0]["id"] == "cognition"
        assert data["domains"][0]["max_score"] == 2


class TestCatalogValidation:
    """Tests for structural checks when building a catalog."""

    def test_valid_definition(self) -> None:
        catalog = DomainCatalog.from_dict(_definition())
        assert catalog.domain_ids == ("cognition",)

    def test_duplicate_domain_rejected(self) -> None:
        definition = _definition()
        definition["domains"] = definition["domains"] * 2
        with pytest.raises(CatalogError, match="Duplicate domain"):
            DomainCatalog.from_dict(definition)

    def test_option_values_must_be_0_1_2(self) -> None:
        definition = _definition()
        definition["domains"][0]["questions"][0]["options"][2]["value"] = 3
        with pytest.raises(CatalogError, match="0, 1, 2"):
            DomainCatalog.from_dict(definition)

    def test_group_with_unknown_domain_rejected(self) -> None:
        definition = _definition(groups=[{"id": "g1", "name": "X", "domains": ["cognition", "nope"]}])
        with pytest.raises(CatalogError, match="unknown domains"):
            DomainCatalog.from_dict(definition)

    def test_ungrouped_domain_rejected(self) -> None:
        definition = _definition(groups=[])
        with pytest.raises(CatalogError, match="exactly one group"):
            DomainCatalog.from_dict(definition)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_catalog("missing.yaml", catalogs_dir=tmp_path)


class TestFlagTriggers:
    """Tests for the per-domain flag strategy table."""

    def test_domains_without_rules(self) -> None:
        for domain_id in ("sleep", "continence", "healthcare"):
            assert get_flag_trigger(domain_id) is None

    def test_unknown_domain_has_no_rule(self) -> None:
        assert get_flag_trigger("unknown") is None

    def test_rules_only_reference_catalog_domains(self, catalog: DomainCatalog) -> None:
        for domain_id in FLAG_TRIGGERS:
            assert catalog.get_domain(domain_id) is not None

    def test_fall_fires_on_single_fall(self) -> None:
        trigger = get_flag_trigger("mobility")
        assert trigger({"mob_1": 0, "mob_2": 1}) is True
        assert trigger({"mob_1": 1, "mob_2": 0}) is False
        assert trigger({"mob_1": 2, "mob_2": 0}) is True

    def test_social_requires_every_answer(self) -> None:
        trigger = get_flag_trigger("social")
        assert trigger({"soc_1": 1, "soc_2": 1}) is True
        assert trigger({"soc_1": 2, "soc_2": 0}) is False
        assert trigger({}) is False
