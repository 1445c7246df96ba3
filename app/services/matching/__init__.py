"""Device category and repairer matching rules."""

from app.services.matching.device_categories import (
    devices_match,
    find_category,
    fulfillment_category,
    requires_in_home_repair,
)
from app.services.matching.repairer_matching import (
    filter_eligible_repairers,
    matches_coverage,
    matches_program_countries,
    matches_specialization,
)

__all__ = [
    "devices_match",
    "find_category",
    "fulfillment_category",
    "requires_in_home_repair",
    "filter_eligible_repairers",
    "matches_coverage",
    "matches_program_countries",
    "matches_specialization",
]
