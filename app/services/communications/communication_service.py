"""Customer emails and the policy communications history."""

from datetime import date, datetime
from typing import Any, Dict, Optional, Union
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.email_client import EmailClient
from app.core.exceptions import NotFoundError, ValidationError
from app.database.models import Claim, Policy
from app.repositories.claim_repository import ClaimRepository
from app.repositories.communication_repository import CommunicationRepository, TemplateRepository
from app.repositories.policy_repository import PolicyRepository
from app.services.communications.email_template import strip_html, wrap_email_content
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


def portal_action_url(policy_id: Optional[UUID] = None, claim_id: Optional[UUID] = None) -> Optional[str]:
    """Customer-portal page an email button links to."""
    if claim_id:
        return f"{settings.portal_url}/customer/claims/{claim_id}"
    if policy_id:
        return f"{settings.portal_url}/customer/policies"
    return None


def format_date(value: Optional[Union[date, datetime]]) -> str:
    if not value:
        return ""
    return value.strftime("%d/%m/%Y")


def fill_placeholders(text: str, values: Dict[str, str]) -> str:
    for key, value in values.items():
        text = text.replace(f"{{{key}}}", value)
    return text


def template_values(policy: Policy, claim: Optional[Claim] = None, status: Optional[str] = None) -> Dict[str, str]:
    """Values for the {placeholders} of a communication template."""
    values = {
        "customer_name": policy.customer_name or "Customer",
        "policy_number": policy.policy_number or "",
        "product_name": policy.product.name if policy.product else "",
        "start_date": format_date(policy.start_date),
        "renewal_date": format_date(policy.renewal_date),
        "status": status or policy.status or "",
    }
    if claim is not None:
        values.update(
            {
                "claim_number": claim.claim_number or "",
                "claim_type": claim.claim_type or "",
                "claim_status": status or claim.status or "",
                "submitted_date": format_date(claim.submitted_date),
            }
        )
    return values


class CommunicationService:
    """Sends branded emails and records them against the policy."""

    def __init__(self, db_session: AsyncSession, email_client: EmailClient):
        self.email_client = email_client
        self.communications = CommunicationRepository(db_session)
        self.templates = TemplateRepository(db_session)
        self.policies = PolicyRepository(db_session)
        self.claims = ClaimRepository(db_session)

    async def send_email(
        self,
        to: str,
        subject: str,
        html: str,
        policy_id: Optional[UUID] = None,
        claim_id: Optional[UUID] = None,
        complaint_id: Optional[UUID] = None,
        communication_type: Optional[str] = None,
        action_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Wrap, send and record one email.

        The record is written only when a policy is given. A failure to
        write it is logged and does not fail the request since the email
        has already gone out.
        """
        if not to or not subject:
            raise ValidationError("Recipient and subject are required")

        action_url = action_url or portal_action_url(policy_id, claim_id)
        branded_html = wrap_email_content(html or "", subject, action_url)
        message_id = await self.email_client.send(to, subject, branded_html)

        if policy_id:
            try:
                await self.communications.create(
                    policy_id=policy_id,
                    claim_id=claim_id,
                    complaint_id=complaint_id,
                    communication_type=communication_type or "email",
                    subject=subject,
                    message_body=branded_html,
                    status="sent",
                    sent_at=datetime.now().astimezone(),
                )
            except SQLAlchemyError:
                LOGGER.error(
                    "Error storing communication record",
                    extra={"policy_id": str(policy_id), "subject": subject},
                )

        return {"success": True, "emailId": message_id, "message": "Email sent successfully"}

    async def send_templated_email(
        self,
        policy_id: UUID,
        template_id: UUID,
        claim_id: Optional[UUID] = None,
        status: Optional[str] = None,
    ) -> Dict[str, Any]:
        template = await self.templates.get_active(template_id)
        if template is None:
            raise NotFoundError(f"Template not found or inactive: {template_id}")

        policy = await self.policies.get_with_relations(policy_id)
        if policy is None:
            raise NotFoundError(f"Policy not found: {policy_id}")
        if not policy.customer_email:
            raise ValidationError("Policy has no customer email")

        claim = await self.claims.get_by_id(claim_id) if claim_id else None
        values = template_values(policy, claim, status)

        LOGGER.info(
            "Sending templated email",
            extra={"template_id": str(template_id), "policy_id": str(policy_id), "type": template.type},
        )
        result = await self.send_email(
            to=policy.customer_email,
            subject=fill_placeholders(template.subject, values),
            html=fill_placeholders(template.message_body, values),
            policy_id=policy_id,
            claim_id=claim_id,
            communication_type=template.type,
        )
        return {"success": True, "message": "Templated email sent successfully", "emailResult": result}

    async def resend_communication(self, communication_id: Optional[UUID]) -> Dict[str, Any]:
        """Send a stored communication again, unchanged, to the policy holder."""
        if not communication_id:
            raise ValidationError("communicationId is required")

        communication = await self.communications.get_by_id(communication_id)
        if communication is None:
            raise NotFoundError(f"Communication not found: {communication_id}")

        customer_email = communication.policy.customer_email if communication.policy else None
        if not customer_email:
            raise NotFoundError("Customer email not found for this communication")

        await self.email_client.send(customer_email, communication.subject, communication.message_body)
        LOGGER.info("Communication resent", extra={"communication_id": str(communication_id)})
        return {
            "success": True,
            "message": f'Email "{communication.subject}" resent to {customer_email}',
        }

    async def regenerate_communications(self) -> Dict[str, Any]:
        """Rebuild every stored message body with the current email layout."""
        communications = await self.communications.list_all()
        if not communications:
            return {"success": True, "message": "No communications to regenerate", "updated": 0, "errors": 0, "total": 0}

        updated = 0
        errors = 0
        for communication in communications:
            plain_text = strip_html(communication.message_body or "")
            action_url = portal_action_url(communication.policy_id, communication.claim_id)
            try:
                await self.communications.update(
                    communication.id,
                    message_body=wrap_email_content(plain_text, communication.subject, action_url),
                )
                updated += 1
            except SQLAlchemyError:
                errors += 1

        LOGGER.info("Regeneration complete", extra={"updated": updated, "errors": errors})
        return {
            "success": True,
            "message": f"Successfully regenerated {updated} communications",
            "updated": updated,
            "errors": errors,
            "total": len(communications),
        }
