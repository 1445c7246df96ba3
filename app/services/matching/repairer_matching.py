"""Repairer eligibility rules.

A repairer is eligible for a claim when it is specialised in the device
category, covers the customer's area and operates in one of the program's
countries. Final ranking of eligible repairers is left to the AI advisor.
"""

from typing import Dict, Iterable, List, Optional, Sequence

from app.database.models import Repairer, RepairerSLA

GERMAN_REGIONS: Dict[str, List[str]] = {
    "east germany": [
        "berlin",
        "brandenburg",
        "sachsen",
        "saxony",
        "sachsen-anhalt",
        "thüringen",
        "thuringia",
        "mecklenburg",
        "leipzig",
        "dresden",
        "chemnitz",
        "potsdam",
        "magdeburg",
        "erfurt",
        "jena",
        "halle",
        "rostock",
    ],
    "west germany": [
        "nordrhein-westfalen",
        "nrw",
        "rheinland-pfalz",
        "saarland",
        "hessen",
        "köln",
        "düsseldorf",
        "dortmund",
        "essen",
        "frankfurt",
        "mainz",
        "wiesbaden",
        "bonn",
        "aachen",
        "ruhrgebiet",
    ],
    "south germany": [
        "bayern",
        "bavaria",
        "baden-württemberg",
        "münchen",
        "munich",
        "stuttgart",
        "nürnberg",
        "nuremberg",
        "augsburg",
        "freiburg",
        "karlsruhe",
        "mannheim",
        "regensburg",
        "ulm",
    ],
    "north germany": [
        "schleswig-holstein",
        "hamburg",
        "bremen",
        "niedersachsen",
        "lower saxony",
        "hannover",
        "hanover",
        "kiel",
        "lübeck",
        "braunschweig",
        "oldenburg",
        "osnabrück",
        "wolfsburg",
    ],
    "nationwide": ["germany", "deutschland", "all"],
    "germany": ["all"],
}

NATIONWIDE_AREAS = ("nationwide", "germany", "deutschland")

COUNTRY_NAMES: Dict[str, str] = {
    "DE": "Germany",
    "ES": "Spain",
    "FR": "France",
    "IT": "Italy",
    "NL": "Netherlands",
    "BE": "Belgium",
    "AT": "Austria",
    "CH": "Switzerland",
    "IE": "Ireland",
    "UK": "United Kingdom",
}


def _overlaps(a: str, b: str) -> bool:
    return a in b or b in a


def matches_specialization(specializations: Optional[Sequence[str]], category: Optional[str]) -> bool:
    """Either side may contain the other, so "TV" matches "Smart TVs"."""
    if not category:
        return True
    category_lower = category.lower()
    return any(_overlaps(spec.lower(), category_lower) for spec in specializations or [])


def _place_in_region(region: str, target: str) -> bool:
    return any(_overlaps(target, place) for place in GERMAN_REGIONS[region])


def matches_coverage(coverage_areas: Optional[Sequence[str]], target: Optional[str]) -> bool:
    if not target or not coverage_areas:
        return True

    target_lower = target.lower()
    if any(area.lower() == target_lower for area in coverage_areas):
        return True

    for area in coverage_areas:
        area_lower = area.lower()
        for region in GERMAN_REGIONS:
            if _overlaps(area_lower, region) and _place_in_region(region, target_lower):
                return True
        if _overlaps(area_lower, target_lower):
            return True

    return any(area.lower() in NATIONWIDE_AREAS for area in coverage_areas)


def matches_program_countries(
    program_countries: Optional[Sequence[str]],
    repairer_country: Optional[str],
    strict: bool = False,
) -> bool:
    """Check the repairer's country against the program's country codes.

    A repairer without a country is available to every program unless
    ``strict`` is set.
    """
    if not program_countries:
        return True
    if not repairer_country:
        return not strict

    country_lower = repairer_country.lower()
    return any(COUNTRY_NAMES.get(code, code).lower() == country_lower for code in program_countries)


def select_sla(slas: Optional[Iterable[RepairerSLA]], category: Optional[str]) -> Optional[RepairerSLA]:
    category_lower = (category or "").lower()
    for sla in slas or []:
        if _overlaps(sla.device_category.lower(), category_lower):
            return sla
    return None


def _fmt(value) -> str:
    return "None" if value is None else str(value)


def build_repairer_context(repairer: Repairer, sla: Optional[RepairerSLA], category: Optional[str]) -> str:
    """Plain-text description of one repairer for the recommendation prompt."""
    lines = [
        f"Repairer ID: {repairer.id}",
        f"Company Name: {repairer.company_name}",
        f"Location: {repairer.city}, {repairer.postcode}",
        f"Connectivity: {repairer.connectivity_type}",
        f"Specializations: {', '.join(repairer.specializations or []) or 'None'}",
        f"Coverage Areas: {', '.join(repairer.coverage_areas or []) or 'None'}",
    ]
    if sla is None:
        lines.append("No SLA configured for this category")
    else:
        lines.extend(
            [
                f"SLA for {category}:",
                f"  - Response time: {sla.response_time_hours}h",
                f"  - Repair time: {sla.repair_time_hours}h",
                f"  - Availability: {_fmt(sla.availability_hours)}",
                f"  - Quality score: {_fmt(sla.quality_score)}/5.00",
                f"  - Success rate: {_fmt(sla.success_rate)}%",
            ]
        )
        if sla.notes:
            lines.append(f"  - Notes: {sla.notes}")
    return "\n".join(lines)


def filter_eligible_repairers(
    repairers: Iterable[Repairer],
    category: Optional[str],
    area: Optional[str],
    program_countries: Optional[Sequence[str]],
    strict: bool = False,
) -> List[Repairer]:
    return [
        repairer
        for repairer in repairers
        if matches_specialization(repairer.specializations, category)
        and matches_coverage(repairer.coverage_areas, area)
        and matches_program_countries(program_countries, repairer.country, strict=strict)
    ]
