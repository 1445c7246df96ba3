"""Automatic accept-or-refer decision once a claim has its photos and receipt.

The model may only accept or refer. Nothing is ever rejected automatically;
any other answer is treated as a referral.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.ai_gateway import AIGatewayClient, tool_spec
from app.core.exceptions import AIGatewayError, AppError, NotFoundError, ValidationError
from app.database.models import Claim, Document
from app.repositories.claim_repository import ClaimFulfillmentRepository, ClaimRepository
from app.repositories.document_repository import DocumentRepository
from app.services.communications.communication_service import CommunicationService
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

MAX_REASON_LENGTH = 200

SYSTEM_PROMPT = "You are an insurance claims assessor. Respond with a clear decision and brief reason."

PROCESS_CLAIM_DECISION_TOOL = tool_spec(
    name="process_claim_decision",
    description="Process the claim decision",
    parameters={
        "type": "object",
        "properties": {
            "decision": {
                "type": "string",
                "enum": ["accepted", "referred"],
                "description": "The claim decision - only accept or refer, never reject automatically",
            },
            "reason": {
                "type": "string",
                "description": "Brief reason for the decision (max 200 characters)",
            },
        },
        "required": ["decision", "reason"],
        "additionalProperties": False,
    },
)

FULFILLMENT_NOTE = "Claim automatically approved. Awaiting excess payment to proceed with fulfillment."


def _document_lines(documents: List[Document]) -> List[str]:
    lines = []
    for document in documents:
        analysis = (document.metadata_ or {}).get("ai_analysis")
        if analysis:
            lines.append(f"- {document.document_type}: {analysis.get('assessment', 'No assessment')}")
    return lines


def build_decision_prompt(claim: Claim, documents: List[Document]) -> str:
    policy = claim.policy
    product = policy.product
    item = policy.covered_items[0] if policy.covered_items else None
    has_photos = any(d.document_type == "photo" for d in documents)
    has_receipt = any(d.document_type == "receipt" for d in documents)

    sections = [
        "You are an insurance claims assessor. Analyze this claim and provide a decision.",
        "",
        "Claim Details:",
        f"- Claim Number: {claim.claim_number}",
        f"- Claim Type: {claim.claim_type}",
        f"- Product: {product.name if product else 'Unknown'}",
        f"- Coverage: {', '.join(product.coverage or []) if product else ''}",
        f"- Description: {claim.description or ''}",
    ]
    if item is not None:
        sections.append(f"- Insured Device: {item.product_name}" + (f" ({item.model})" if item.model else ""))

    sections += [
        "",
        "Documents Provided:",
        f"- Photos: {'Yes' if has_photos else 'No'}",
        f"- Receipt: {'Yes' if has_receipt else 'No'}",
    ]
    analysis_lines = _document_lines(documents)
    if analysis_lines:
        sections += ["", "Document Analysis:", *analysis_lines]

    sections += [
        "",
        "Based on the information provided, determine if the claim should be:",
        "1. ACCEPTED - All requirements met, claim is clearly valid and straightforward",
        "2. REFERRED - Needs manual review by claims team (use this for any uncertainty or missing information)",
        "",
        "IMPORTANT: Never reject a claim automatically. If there are any concerns, missing information, "
        "or uncertainty, always REFER the claim for manual review.",
        "",
        "Provide your decision and a brief reason (max 200 characters).",
    ]
    return "\n".join(sections)


def decision_email(claim: Claim, accepted: bool, reason: str, excess: Decimal) -> Dict[str, str]:
    customer_name = claim.policy.customer_name or "Customer"
    if accepted:
        if excess > 0:
            steps = (
                f"1. Pay the excess amount of €{excess}\n"
                "2. Once payment is received, we'll begin the fulfillment process\n"
                "3. You can track your claim progress in the customer portal"
            )
        else:
            steps = (
                "1. We'll begin the fulfillment process immediately\n"
                "2. You can track your claim progress in the customer portal"
            )
        body = (
            f"Dear {customer_name},\n\n"
            f"Good news! Your claim {claim.claim_number} has been approved.\n\n"
            f"Decision: {reason}\n\n"
            f"Next Steps:\n{steps}\n\n"
            "Log in to your customer portal to view details and track progress.\n\n"
            "Thank you for choosing our insurance service."
        )
        subject = f"Claim Approved - {claim.claim_number}"
    else:
        body = (
            f"Dear {customer_name},\n\n"
            f"Your claim {claim.claim_number} is currently under review by our claims team.\n\n"
            f"Reason: {reason}\n\n"
            "We'll notify you once a decision has been made. This typically takes 24-48 hours.\n\n"
            "Thank you for your patience."
        )
        subject = f"Claim Under Review - {claim.claim_number}"
    return {"subject": subject, "html": body.replace("\n", "<br>")}


class ClaimProcessingService:
    def __init__(
        self,
        db_session: AsyncSession,
        ai_client: AIGatewayClient,
        communications: CommunicationService,
    ):
        self.ai_client = ai_client
        self.communications = communications
        self.claims = ClaimRepository(db_session)
        self.fulfillments = ClaimFulfillmentRepository(db_session)
        self.documents = DocumentRepository(db_session)

    async def process_claim(self, claim_id: Optional[UUID]) -> Dict[str, Any]:
        """Decide a claim, record the outcome and notify the customer.

        Returns:
            success, decision, reason and newStatus
        """
        if not claim_id:
            raise ValidationError("claimId is required")

        claim = await self.claims.get_with_policy(claim_id)
        if claim is None or claim.policy is None:
            raise NotFoundError("Claim not found")

        documents = await self.documents.list_for_claim(claim_id)
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": build_decision_prompt(claim, documents)},
        ]
        args = await self.ai_client.call_tool(messages, PROCESS_CLAIM_DECISION_TOOL)
        if not args:
            raise AIGatewayError("No decision received from AI")

        decision = args.get("decision")
        reason = str(args.get("reason") or "")[:MAX_REASON_LENGTH]
        if decision not in ("accepted", "referred"):
            LOGGER.warning(f"Unexpected decision received, converting to referred: {decision}")
        accepted = decision == "accepted"
        new_status = "accepted" if accepted else "referred"

        LOGGER.info(
            "Automatic claim decision",
            extra={"claim_id": str(claim_id), "decision": decision, "new_status": new_status},
        )

        await self.claims.update_status(
            claim_id,
            new_status,
            decision="approved" if accepted else "pending_review",
            decision_reason=reason,
        )
        await self.claims.add_history(claim_id, new_status, f"Automatic decision: {reason}")

        product = claim.policy.product
        excess = product.excess_1 if product and product.excess_1 is not None else Decimal("0")
        if accepted:
            await self.fulfillments.create(
                claim_id=claim_id,
                status="pending_excess",
                excess_amount=excess,
                notes=FULFILLMENT_NOTE,
            )

        await self._notify(claim, accepted, reason, excess)

        return {
            "success": True,
            "decision": "accepted" if accepted else "referred",
            "reason": reason,
            "newStatus": new_status,
        }

    async def _notify(self, claim: Claim, accepted: bool, reason: str, excess: Decimal) -> None:
        if not claim.policy.customer_email:
            LOGGER.warning("No customer email for claim decision", extra={"claim_id": str(claim.id)})
            return

        email = decision_email(claim, accepted, reason, excess)
        try:
            await self.communications.send_email(
                to=claim.policy.customer_email,
                subject=email["subject"],
                html=email["html"],
                policy_id=claim.policy_id,
                claim_id=claim.id,
            )
        except (AppError, httpx.HTTPError) as e:
            # The decision is already stored
            LOGGER.error(f"Error sending decision email: {e}", extra={"claim_id": str(claim.id)})


async def process_claim_in_background(claim_id: UUID) -> None:
    """Run automatic processing outside the upload request with its own session."""
    # Imported here so the module does not pull in the engine at import time
    from app.core.ai_gateway import get_ai_gateway_client
    from app.core.database import async_session_maker
    from app.core.email_client import get_email_client

    async with async_session_maker() as session:
        service = ClaimProcessingService(
            session,
            get_ai_gateway_client(),
            CommunicationService(session, get_email_client()),
        )
        try:
            result = await service.process_claim(claim_id)
            LOGGER.info("Claim processed successfully", extra={"claim_id": str(claim_id), **result})
        except (AppError, SQLAlchemyError, httpx.HTTPError) as e:
            LOGGER.error(f"Error processing claim: {e}", extra={"claim_id": str(claim_id)}, exc_info=True)
