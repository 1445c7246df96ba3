"""AI-assisted repairer recommendation for a claim."""

from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.ai_gateway import AIGatewayClient, tool_spec
from app.core.exceptions import AIGatewayError, NotFoundError, ValidationError
from app.repositories.claim_repository import ClaimRepository
from app.repositories.repairer_repository import RepairerRepository
from app.services.matching.repairer_matching import (
    build_repairer_context,
    filter_eligible_repairers,
    select_sla,
)
from app.utils.logging import get_logger
from app.utils.serialization import row_to_dict, rows_to_dicts

LOGGER = get_logger(__name__)

NO_REPAIRERS_ERROR = "No repairers available for this device category and coverage area"

SYSTEM_PROMPT = """You are a claims fulfillment advisor for an insurance program. Your role is to analyze repairer SLA data and recommend the best repairer for a given claim.

Consider:
1. Response time - faster is better for urgent claims
2. Repair time - total turnaround time
3. Quality score - higher is better
4. Success rate - higher is better
5. Geographic proximity and coverage
6. Specializations matching the device category
7. Availability hours

CRITICAL:
- Only recommend repairers from the provided list below
- Use the EXACT Repairer ID and Company Name as shown in the data
- Do not make up or suggest repairers not in the list
- Provide a ranked list of up to 3 repairers (or fewer if less are available)
- Score each repairer from 0-100 (percentage), where 100 is a perfect match
- DO NOT mention connectivity type (API/SFTP) in your key advantages or reasoning"""

RECOMMEND_REPAIRERS_TOOL = tool_spec(
    name="recommend_repairers",
    description=(
        "Return top 3 repairer recommendations with reasoning. IMPORTANT: Only recommend "
        "repairers from the provided list. Use exact company names and IDs."
    ),
    parameters={
        "type": "object",
        "properties": {
            "recommendations": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "repairer_id": {
                            "type": "string",
                            "description": "The exact UUID of the repairer from the provided list",
                        },
                        "repairer_name": {
                            "type": "string",
                            "description": "The exact company name of the repairer as provided",
                        },
                        "rank": {"type": "integer"},
                        "score": {"type": "number"},
                        "reasoning": {"type": "string"},
                        "key_advantages": {"type": "array", "items": {"type": "string"}},
                    },
                    "required": ["repairer_id", "repairer_name", "rank", "score", "reasoning", "key_advantages"],
                    "additionalProperties": False,
                },
            },
            "overall_analysis": {"type": "string"},
        },
        "required": ["recommendations", "overall_analysis"],
        "additionalProperties": False,
    },
)


class FulfillmentAdvisorService:
    """Filters repairers for a claim and asks the AI gateway to rank them."""

    def __init__(self, db_session: AsyncSession, ai_client: AIGatewayClient):
        self.claims = ClaimRepository(db_session)
        self.repairers = RepairerRepository(db_session)
        self.ai_client = ai_client

    async def recommend(
        self,
        claim_id: Optional[UUID],
        device_category: Optional[str] = None,
        coverage_area: Optional[str] = None,
    ) -> Dict[str, Any]:
        if not claim_id:
            raise ValidationError("claimId is required")

        claim = await self.claims.get_with_policy(claim_id)
        if claim is None:
            raise NotFoundError("Claim not found")

        program = claim.policy.program if claim.policy else None
        program_countries = ((program.settings or {}).get("countries") or []) if program else []

        active = await self.repairers.list_active_with_slas()
        eligible = filter_eligible_repairers(active, device_category, coverage_area, program_countries)

        LOGGER.info(
            "Eligible repairers filtered",
            extra={
                "claim_id": str(claim_id),
                "active": len(active),
                "eligible": len(eligible),
                "program_countries": program_countries,
            },
        )

        claim_data = row_to_dict(claim)
        claim_data["policy"] = row_to_dict(claim.policy, include=("product", "program"))

        if not eligible:
            return {
                "error": NO_REPAIRERS_ERROR,
                "claim": claim_data,
                "eligibleRepairers": [],
                "recommendations": {
                    "recommendations": [],
                    "overall_analysis": "No repairers found matching the criteria",
                },
            }

        repairer_context = "\n---\n".join(
            build_repairer_context(r, select_sla(r.slas, device_category), device_category) for r in eligible
        )
        claim_context = "\n".join(
            [
                "Claim Details:",
                f"- Claim Number: {claim.claim_number}",
                f"- Type: {claim.claim_type}",
                f"- Status: {claim.status}",
                f"- Description: {claim.description}",
                f"- Product Condition: {claim.product_condition or 'Not specified'}",
                f"- Device Category: {device_category or 'Not specified'}",
                f"- Coverage Area: {coverage_area or 'Not specified'}",
            ]
        )
        user_prompt = (
            f"{claim_context}\n\nAvailable Repairers (ONLY recommend from this list):\n{repairer_context}\n\n"
            "Please recommend the top 3 repairers (or fewer if less available) for this claim. "
            "You MUST use the exact Repairer ID and Company Name shown above. "
            "Do not recommend any repairers not in this list."
        )

        recommendations = await self.ai_client.call_tool(
            [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": user_prompt},
            ],
            RECOMMEND_REPAIRERS_TOOL,
        )
        if recommendations is None:
            raise AIGatewayError("No recommendations generated")

        ranked = sorted(recommendations.get("recommendations") or [], key=lambda item: item.get("rank", 0))
        recommendations["recommendations"] = ranked[:3]

        return {
            "claim": claim_data,
            "eligibleRepairers": [
                {
                    "id": str(r.id),
                    "name": r.company_name,
                    "connectivity_type": r.connectivity_type,
                    "slas": rows_to_dicts(r.slas),
                }
                for r in eligible
            ],
            "recommendations": recommendations,
        }
