"""Retail counter lookup of a policy by number, name, email or phone."""

import re
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.database.models import Policy, Profile
from app.repositories.policy_repository import PolicyRepository
from app.repositories.user_repository import ProfileRepository
from app.utils.logging import get_logger
from app.utils.serialization import row_to_dict

LOGGER = get_logger(__name__)

MAX_SEARCH_TERM_LENGTH = 100

_DISALLOWED_CHARS_RE = re.compile(r"[^\w@.\-+]")

POLICY_FIELDS = (
    "id",
    "policy_number",
    "status",
    "start_date",
    "renewal_date",
    "user_id",
    "product_id",
    "customer_name",
    "customer_email",
    "customer_phone",
)
PRODUCT_FIELDS = ("name", "type", "monthly_premium", "excess_1", "excess_2", "coverage")
CUSTOMER_FIELDS = ("full_name", "email", "phone", "address_line1", "address_line2", "city", "postcode")
COVERED_ITEM_FIELDS = ("product_name", "model", "serial_number", "purchase_price")


def sanitize_search_term(term: str) -> str:
    """Keep word characters and the symbols found in emails and phone numbers."""
    return _DISALLOWED_CHARS_RE.sub("", term)


def _pick(row: Any, fields) -> Optional[Dict[str, Any]]:
    data = row_to_dict(row)
    if data is None:
        return None
    return {field: data.get(field) for field in fields}


class PolicyLookupService:
    def __init__(self, db_session: AsyncSession):
        self.policies = PolicyRepository(db_session)
        self.profiles = ProfileRepository(db_session)

    async def lookup_policy(self, term: Optional[str]) -> Dict[str, Any]:
        """Find the first policy matching ``term``.

        Args:
            term: Free text entered at the counter

        Returns:
            The policy with its product, customer profile and covered items

        Raises:
            ValidationError: If the term is empty or too long
            NotFoundError: If nothing matches
        """
        search_term = term.strip() if isinstance(term, str) else ""
        if not search_term:
            raise ValidationError("Search term is required")
        if len(search_term) > MAX_SEARCH_TERM_LENGTH:
            raise ValidationError("Search term too long")

        sanitized = sanitize_search_term(search_term)
        LOGGER.info("Looking up policy", extra={"search_length": len(search_term)})

        matches = await self.policies.search(sanitized, limit=1) if sanitized else []
        if not matches:
            LOGGER.info("No policy found for search term")
            raise NotFoundError("Policy not found")

        policy: Policy = matches[0]
        customer: Optional[Profile] = await self.profiles.get_by_id(policy.user_id)

        result = _pick(policy, POLICY_FIELDS)
        result["product"] = _pick(policy.product, PRODUCT_FIELDS)
        result["customer"] = _pick(customer, CUSTOMER_FIELDS)
        result["covered_items"] = [_pick(item, COVERED_ITEM_FIELDS) for item in policy.covered_items or []]

        LOGGER.info("Policy found", extra={"policy_number": policy.policy_number})
        return {"policy": result}
