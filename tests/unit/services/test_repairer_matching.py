"""Unit tests for repairer eligibility rules."""

from decimal import Decimal
from uuid import uuid4

from app.database.models import Repairer, RepairerSLA
from app.services.matching.repairer_matching import (
    build_repairer_context,
    filter_eligible_repairers,
    matches_coverage,
    matches_program_countries,
    matches_specialization,
    select_sla,
)


def make_repairer(**overrides) -> Repairer:
    fields = {
        "id": uuid4(),
        "company_name": "FixIt GmbH",
        "city": "Berlin",
        "postcode": "10115",
        "connectivity_type": "api",
        "specializations": ["Smartphones", "Tablets"],
        "coverage_areas": ["Berlin"],
        "country": "Germany",
        "is_active": True,
    }
    fields.update(overrides)
    return Repairer(**fields)


class TestSpecialization:
    def test_partial_match_either_way(self):
        assert matches_specialization(["Smart TVs"], "TV") is True
        assert matches_specialization(["TV"], "Smart TVs") is True

    def test_no_category_matches_everyone(self):
        assert matches_specialization([], None) is True

    def test_no_overlap(self):
        assert matches_specialization(["Laptops"], "Smartphones") is False


class TestCoverage:
    def test_exact_area(self):
        assert matches_coverage(["Hamburg"], "hamburg") is True

    def test_city_inside_region(self):
        assert matches_coverage(["South Germany"], "München") is True

    def test_nationwide_covers_everything(self):
        assert matches_coverage(["Nationwide"], "Rostock") is True

    def test_other_region(self):
        assert matches_coverage(["North Germany"], "Stuttgart") is False

    def test_unspecified_area(self):
        assert matches_coverage(["Berlin"], None) is True
        assert matches_coverage([], "Berlin") is True


class TestProgramCountries:
    def test_country_code_resolves_to_name(self):
        assert matches_program_countries(["DE"], "Germany") is True
        assert matches_program_countries(["ES"], "Germany") is False

    def test_unrestricted_program(self):
        assert matches_program_countries([], "Spain") is True

    def test_repairer_without_country(self):
        assert matches_program_countries(["DE"], None) is True
        assert matches_program_countries(["DE"], None, strict=True) is False


class TestFilterEligibleRepairers:
    def test_applies_every_rule(self):
        berlin_phones = make_repairer()
        munich_tvs = make_repairer(specializations=["TVs"], coverage_areas=["South Germany"])
        spanish_phones = make_repairer(country="Spain")

        eligible = filter_eligible_repairers(
            [berlin_phones, munich_tvs, spanish_phones],
            category="Smartphones",
            area="Berlin",
            program_countries=["DE"],
        )

        assert eligible == [berlin_phones]

    def test_strict_excludes_repairers_without_country(self):
        repairer = make_repairer(country=None)
        assert filter_eligible_repairers([repairer], None, None, ["DE"]) == [repairer]
        assert filter_eligible_repairers([repairer], None, None, ["DE"], strict=True) == []


class TestRepairerContext:
    def test_includes_matching_sla(self):
        repairer = make_repairer()
        sla = RepairerSLA(
            device_category="Smartphones",
            response_time_hours=4,
            repair_time_hours=48,
            availability_hours="Mon-Fri 8-18",
            quality_score=Decimal("4.50"),
            success_rate=Decimal("97.0"),
            notes="Express available",
        )

        selected = select_sla([sla], "smartphones")
        context = build_repairer_context(repairer, selected, "Smartphones")

        assert selected is sla
        assert "Company Name: FixIt GmbH" in context
        assert "Response time: 4h" in context
        assert "Notes: Express available" in context

    def test_without_sla(self):
        context = build_repairer_context(make_repairer(), None, "Laptops")
        assert "No SLA configured for this category" in context
