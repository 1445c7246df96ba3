"""Plain-text policy documents issued with a new policy."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import NotFoundError, ValidationError
from app.database.models import Policy
from app.repositories.document_repository import DocumentRepository
from app.repositories.policy_repository import PolicyRepository
from app.services.communications.communication_service import format_date
from app.services.storage_service import StorageService
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass
class PolicyDocument:
    subtype: str
    path_prefix: str
    name_prefix: str
    content: str

    def path(self, policy: Policy) -> str:
        return f"{policy.id}/{self.path_prefix}_{policy.policy_number}.txt"

    def file_name(self, policy: Policy) -> str:
        return f"{self.name_prefix}_{policy.policy_number}.txt"


def _money(value: Optional[Decimal]) -> str:
    return "N/A" if value is None else f"{value}"


def _excess(policy: Policy) -> Decimal:
    if policy.product is None or policy.product.excess_1 is None:
        return Decimal("0")
    return policy.product.excess_1


def _premium(policy: Policy) -> Decimal:
    if policy.promotional_premium is not None:
        return policy.promotional_premium
    return policy.product.monthly_premium if policy.product else Decimal("0")


def _generated_at() -> str:
    return datetime.now().strftime("%d/%m/%Y %H:%M:%S")


def render_ipid(policy: Policy) -> str:
    """Insurance Product Information Document."""
    excess = _excess(policy)
    premium = _premium(policy)
    return f"""
INSURANCE PRODUCT INFORMATION DOCUMENT
=====================================

Policy Number: {policy.policy_number}
Product: {policy.product.name if policy.product else ""}

What is this type of insurance?
This is an extended warranty insurance policy that provides coverage for your electronic devices beyond the manufacturer's warranty.

What is insured?
✓ Accidental damage
✓ Mechanical breakdown
✓ Electrical failure
✓ Liquid damage
✓ Screen damage

What is not insured?
✗ Cosmetic damage that doesn't affect functionality
✗ Loss or theft
✗ Damage caused by unauthorized repairs
✗ Pre-existing faults

Are there any restrictions on cover?
! Excess of £{excess} applies to each claim
! Maximum 2 claims per year
! Device must be less than 12 months old at policy start

Where am I covered?
✓ Coverage applies in the United Kingdom

What are my obligations?
- Pay your monthly premium of £{premium}
- Report claims within 30 days of incident
- Provide proof of purchase when required

When and how do I pay?
Monthly premium: £{premium}
Payment starts: {format_date(policy.start_date)}

When does the cover start and end?
Start date: {format_date(policy.start_date)}
End date: {format_date(policy.renewal_date)}
(Automatically renews unless cancelled)

How do I cancel the contract?
You can cancel at any time by contacting us. If you cancel within 14 days, you'll receive a full refund.

Document generated: {_generated_at()}
"""


def render_terms_and_conditions(policy: Policy) -> str:
    excess = _excess(policy)
    premium = _premium(policy)
    return f"""
TERMS AND CONDITIONS
===================

Policy Number: {policy.policy_number}
Policyholder: {policy.customer_name or ""}

1. DEFINITIONS
1.1 "We", "us", "our" means the insurance provider
1.2 "You", "your" means the policyholder
1.3 "Device" means the covered electronic equipment listed in the policy schedule

2. COVERAGE
2.1 Subject to the terms and conditions, we will repair or replace your device if it suffers:
    a) Accidental damage
    b) Mechanical breakdown
    c) Electrical failure
    d) Liquid damage
    e) Screen damage

3. EXCLUSIONS
3.1 This policy does not cover:
    a) Loss or theft
    b) Cosmetic damage
    c) Pre-existing conditions
    d) Unauthorized repairs
    e) Intentional damage

4. CLAIMS PROCEDURE
4.1 You must notify us of any claim within 30 days
4.2 You must provide proof of purchase if requested
4.3 An excess of £{excess} applies to each claim
4.4 Maximum of 2 claims per policy year

5. PREMIUM
5.1 Monthly premium: £{premium}
5.2 Payment must be made on or before the due date
5.3 Failure to pay may result in policy cancellation

6. CANCELLATION
6.1 You may cancel at any time with 30 days notice
6.2 Cancellation within 14 days results in full refund
6.3 After 14 days, refunds are pro-rata

7. GENERAL CONDITIONS
7.1 You must take reasonable care of your device
7.2 All information provided must be accurate
7.3 Any changes must be notified to us within 14 days

8. COMPLAINTS
8.1 If you're unhappy, please contact our customer service team
8.2 We aim to resolve all complaints within 8 weeks

Effective Date: {format_date(policy.start_date)}
Document generated: {_generated_at()}
"""


def render_policy_schedule(policy: Policy) -> str:
    excess = _excess(policy)
    items = "\n\n".join(
        f"{index}. {item.product_name}\n"
        f"   Model: {item.model or 'N/A'}\n"
        f"   Serial Number: {item.serial_number or 'N/A'}\n"
        f"   Purchase Price: £{_money(item.purchase_price)}"
        for index, item in enumerate(policy.covered_items or [], start=1)
    )
    address_lines = [
        policy.customer_address_line1 or "",
        policy.customer_address_line2,
        policy.customer_city or "",
        policy.customer_postcode or "",
    ]
    address = "\n".join(line for line in address_lines if line is not None)

    return f"""
POLICY SCHEDULE
===============

Policy Number: {policy.policy_number}

POLICYHOLDER DETAILS
Name: {policy.customer_name or ""}
Email: {policy.customer_email or ""}
Address: {address}

POLICY DETAILS
Product: {policy.product.name if policy.product else ""}
Start Date: {format_date(policy.start_date)}
Renewal Date: {format_date(policy.renewal_date)}
Monthly Premium: £{_premium(policy)}
Excess: £{excess}

COVERED ITEMS
{items}

IMPORTANT INFORMATION
- This policy automatically renews annually unless cancelled
- Premium may be reviewed at renewal
- Claims must be reported within 30 days of incident
- Maximum 2 claims per policy year
- Excess of £{excess} applies to each claim

CONTACT INFORMATION
Email: support@insurance.example.com
Phone: 0800 123 4567
Hours: Monday-Friday, 9am-5pm

Document generated: {_generated_at()}
Policy issued by: MediaMarkt Insurance Services
"""


def build_policy_documents(policy: Policy) -> List[PolicyDocument]:
    return [
        PolicyDocument("ipid", "ipid", "IPID", render_ipid(policy)),
        PolicyDocument("terms_conditions", "terms", "Terms", render_terms_and_conditions(policy)),
        PolicyDocument("policy_schedule", "schedule", "Schedule", render_policy_schedule(policy)),
    ]


class PolicyDocumentsService:
    def __init__(self, db_session: AsyncSession, storage: StorageService):
        self.storage = storage
        self.policies = PolicyRepository(db_session)
        self.documents = DocumentRepository(db_session)

    async def generate_policy_documents(self, policy_id: Optional[UUID]) -> Dict[str, Any]:
        """Render, upload and record the IPID, terms and schedule of a policy.

        Returns:
            success, documents (type, path, name and public URL of each) and message

        Raises:
            NotFoundError: If the policy does not exist
            StorageError: If an upload fails
        """
        if not policy_id:
            raise ValidationError("policyId is required")

        policy = await self.policies.get_with_relations(policy_id)
        if policy is None:
            raise NotFoundError("Policy not found")

        LOGGER.info("Generating documents for policy", extra={"policy_number": policy.policy_number})
        bucket = settings.portal.policy_documents_bucket

        created = []
        for document in build_policy_documents(policy):
            content = document.content.encode("utf-8")
            path = document.path(policy)
            await self.storage.upload_file(content, bucket, path, content_type="text/plain", upsert=True)

            try:
                await self.documents.create(
                    policy_id=policy.id,
                    user_id=policy.user_id,
                    document_type="policy",
                    document_subtype=document.subtype,
                    file_name=document.file_name(policy),
                    file_path=path,
                    file_size=len(content),
                )
            except SQLAlchemyError:
                # The file is stored and stays downloadable by path
                LOGGER.error(
                    "Error storing document record",
                    extra={"policy_id": str(policy.id), "subtype": document.subtype},
                )
            created.append(
                {
                    "type": document.subtype,
                    "path": path,
                    "name": document.file_name(policy),
                    "url": self.storage.get_public_url(bucket, path),
                }
            )

        return {"success": True, "documents": created, "message": "Documents generated successfully"}
