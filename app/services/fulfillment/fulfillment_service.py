"""Claim fulfillment flow.

After a claim is accepted the customer pays the excess, the fulfillment
path is chosen from the device (in-home repair, collection repair or a
voucher for low-value devices) and a repair appointment is booked. Repair
quotes raised later by the repairer are approved or rejected here; a
rejected quote settles the claim as Beyond Economic Repair.
"""

import secrets
import string
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.database.models import Claim, ClaimFulfillment
from app.repositories.claim_repository import ClaimFulfillmentRepository, ClaimRepository
from app.repositories.policy_repository import PaymentRepository
from app.repositories.repairer_repository import DeviceRepository
from app.schemas.fulfillment import CardDetails
from app.services.matching.device_categories import (
    category_from_product_name,
    fulfillment_category,
    requires_in_home_repair,
)
from app.utils.logging import get_logger
from app.utils.serialization import row_to_dict

LOGGER = get_logger(__name__)

VOUCHER_THRESHOLD = Decimal("150")

TIME_SLOTS = [
    "09:00 - 11:00",
    "11:00 - 13:00",
    "13:00 - 15:00",
    "15:00 - 17:00",
    "17:00 - 19:00",
]

# (hash + day of month) % 4 -> slot indices that are taken
_TAKEN_SLOTS = {0: {0, 2}, 1: {1, 4}, 2: {3}, 3: set()}

BOOKING_WINDOW_DAYS = 30


def _id_hash(repairer_id: str) -> int:
    return sum(ord(char) for char in repairer_id)


def unavailable_dates(repairer_id: Optional[str], today: Optional[date] = None) -> List[date]:
    """Days in the next 30 on which the repairer takes no bookings."""
    if not repairer_id:
        return []

    today = today or date.today()
    pattern = _id_hash(repairer_id) % 5
    rules = {
        0: lambda i: i % 7 == 0,
        1: lambda i: i % 5 == 0,
        2: lambda i: i % 3 == 0 or i % 10 == 0,
        3: lambda i: i % 4 == 0,
        4: lambda i: i % 6 == 0 or i == 2,
    }
    is_unavailable = rules[pattern]
    return [today + timedelta(days=i) for i in range(1, BOOKING_WINDOW_DAYS + 1) if is_unavailable(i)]


def available_slots(repairer_id: Optional[str], day: date) -> List[str]:
    if not repairer_id:
        return list(TIME_SLOTS)
    taken = _TAKEN_SLOTS[(_id_hash(repairer_id) + day.day) % 4]
    return [slot for index, slot in enumerate(TIME_SLOTS) if index not in taken]


def booking_reference(in_home: bool) -> str:
    alphabet = string.ascii_uppercase + string.digits
    suffix = "".join(secrets.choice(alphabet) for _ in range(8))
    return f"{'ENG' if in_home else 'LOG'}-{suffix}"


def _long_date(value: date) -> str:
    """e.g. "October 17th, 2026"."""
    day = value.day
    suffix = "th" if 11 <= day % 100 <= 13 else {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    return f"{value:%B} {day}{suffix}, {value.year}"


def fulfillment_step(fulfillment: Optional[ClaimFulfillment]) -> int:
    """Step shown in the fulfillment flow: 1 excess, 4 appointment, 5 complete."""
    if fulfillment is None or not fulfillment.excess_paid:
        return 1
    if fulfillment.fulfillment_type == "voucher" or fulfillment.status == "scheduled":
        return 5
    return 4


def _is_voucher_value(value: Optional[Decimal]) -> bool:
    return value is not None and Decimal("0") < value < VOUCHER_THRESHOLD


class FulfillmentService:
    def __init__(self, db_session: AsyncSession):
        self.claims = ClaimRepository(db_session)
        self.fulfillments = ClaimFulfillmentRepository(db_session)
        self.payments = PaymentRepository(db_session)
        self.devices = DeviceRepository(db_session)

    async def _load_claim(self, claim_id: UUID) -> Claim:
        claim = await self.claims.get_with_policy(claim_id)
        if claim is None:
            raise NotFoundError("Claim not found")
        return claim

    async def detect_device_category(self, claim: Claim) -> Optional[str]:
        """Category of the insured device, from the catalogue or the product name."""
        covered_items = claim.policy.covered_items if claim.policy else []
        if not covered_items:
            return None

        product_name = covered_items[0].product_name
        device = await self.devices.find_by_model_name(product_name)
        if device is not None and device.device_category:
            return fulfillment_category(device.device_category)
        return category_from_product_name(product_name)

    async def get_fulfillment(self, claim_id: UUID) -> Dict[str, Any]:
        claim = await self._load_claim(claim_id)
        fulfillment = await self.fulfillments.get_for_claim(claim_id)
        category = await self.detect_device_category(claim)
        return {
            "fulfillment": row_to_dict(fulfillment),
            "step": fulfillment_step(fulfillment),
            "deviceCategory": category,
            "requiresInHomeRepair": requires_in_home_repair(category),
            "claimStatus": claim.status,
        }

    async def pay_excess(
        self,
        claim_id: UUID,
        use_payment_on_file: Optional[bool],
        payment_method: Optional[str] = None,
        card: Optional[CardDetails] = None,
    ) -> ClaimFulfillment:
        """Record the excess payment and choose the fulfillment path."""
        if use_payment_on_file is None:
            raise ValidationError("Please select a payment option")

        claim = await self._load_claim(claim_id)

        if use_payment_on_file:
            if not await self.payments.has_paid_payment(claim.policy_id):
                raise ValidationError("No payment method on file for this policy")
            method = "payment_on_file"
        else:
            if not payment_method:
                raise ValidationError("Please select a payment method")
            if payment_method == "credit_card":
                if not card or not all([card.card_number, card.expiry_date, card.cvv, card.cardholder_name]):
                    raise ValidationError("Please fill in all card details")
            method = payment_method

        product = claim.policy.product
        excess = product.excess_1 if product and product.excess_1 is not None else Decimal("0")
        covered_items = claim.policy.covered_items
        device_value = covered_items[0].purchase_price if covered_items else None

        category = await self.detect_device_category(claim)
        if requires_in_home_repair(category):
            fulfillment_type, status = "in_home_repair", "awaiting_appointment"
        elif _is_voucher_value(device_value):
            fulfillment_type, status = "voucher", "completed"
        else:
            fulfillment_type, status = "collection_repair", "awaiting_appointment"

        LOGGER.info(
            "Excess paid",
            extra={
                "claim_id": str(claim_id),
                "method": method,
                "device_category": category,
                "fulfillment_type": fulfillment_type,
            },
        )

        return await self.fulfillments.upsert_for_claim(
            claim_id,
            excess_paid=True,
            excess_payment_date=datetime.now(timezone.utc),
            excess_payment_method=method,
            excess_amount=excess,
            device_value=device_value or Decimal("0"),
            fulfillment_type=fulfillment_type,
            status=status,
        )

    async def set_device_value(self, claim_id: UUID, value: float) -> ClaimFulfillment:
        device_value = Decimal(str(value))
        voucher = _is_voucher_value(device_value)
        return await self.fulfillments.upsert_for_claim(
            claim_id,
            device_value=device_value,
            fulfillment_type="voucher" if voucher else None,
            status="completed" if voucher else "awaiting_appointment",
        )

    async def set_fulfillment_type(self, claim_id: UUID, fulfillment_type: str) -> ClaimFulfillment:
        return await self.fulfillments.upsert_for_claim(
            claim_id,
            fulfillment_type=fulfillment_type,
            status="awaiting_appointment",
        )

    async def schedule_appointment(
        self,
        claim_id: UUID,
        appointment_date: Optional[date],
        appointment_slot: Optional[str],
        repairer_id: Optional[UUID] = None,
    ) -> ClaimFulfillment:
        if not appointment_date or not appointment_slot:
            raise ValidationError("Please select a date and time slot")

        claim = await self._load_claim(claim_id)
        in_home = requires_in_home_repair(await self.detect_device_category(claim))
        reference = booking_reference(in_home)

        fields: Dict[str, Any] = {
            "appointment_date": datetime.combine(appointment_date, datetime.min.time(), tzinfo=timezone.utc),
            "appointment_slot": appointment_slot,
            "status": "scheduled",
            "repairer_id": repairer_id,
        }
        fields["engineer_reference" if in_home else "logistics_reference"] = reference

        fulfillment = await self.fulfillments.upsert_for_claim(claim_id, **fields)

        visit = "engineer visit" if in_home else "collection"
        await self.claims.update_status(claim_id, "pending_fulfillment")
        await self.claims.add_history(
            claim_id,
            "pending_fulfillment",
            f"Fulfillment {visit} scheduled for {_long_date(appointment_date)} at {appointment_slot}",
        )
        LOGGER.info("Appointment scheduled", extra={"claim_id": str(claim_id), "reference": reference})
        return fulfillment

    async def approve_quote(self, claim_id: UUID) -> ClaimFulfillment:
        """Approve the repairer's quote. Approving twice changes nothing."""
        fulfillment = await self.fulfillments.get_for_claim(claim_id)
        if fulfillment is None:
            raise NotFoundError("Fulfillment not found")

        if fulfillment.quote_status == "approved" and fulfillment.status == "quote_approved":
            LOGGER.info("Quote already approved", extra={"claim_id": str(claim_id)})
            return fulfillment

        updated, changed = await self.fulfillments.approve_quote(fulfillment.id)
        if not changed:
            LOGGER.info("Quote approved by a concurrent request", extra={"claim_id": str(claim_id)})
            return updated

        claim = await self.claims.get_by_id(claim_id)
        if claim is not None:
            await self.claims.add_history(claim_id, claim.status, "Repair quote approved")
        return updated

    async def reject_quote(
        self,
        claim_id: UUID,
        reason: Optional[str],
        ber_value: Optional[float],
        settlement_method: str = "cash",
    ) -> Dict[str, Any]:
        """Reject the quote and settle the claim as Beyond Economic Repair."""
        if not reason or not reason.strip():
            raise ValidationError("Please provide a rejection reason")
        if ber_value is None or ber_value <= 0:
            raise ValidationError("Please enter a valid settlement value")
        if settlement_method not in ("cash", "voucher"):
            raise ValidationError("Settlement method must be cash or voucher")

        fulfillment = await self.fulfillments.get_for_claim(claim_id)
        if fulfillment is None:
            raise NotFoundError("Fulfillment not found")

        method_label = "Cash" if settlement_method == "cash" else "Voucher"
        amount = f"€{ber_value:.2f}"

        updated = await self.fulfillments.update(
            fulfillment.id,
            quote_status="rejected",
            quote_rejection_reason=reason,
            fulfillment_type=f"ber_{settlement_method}",
            status="completed",
            ber_reason=f"Quote rejected - Settlement: {amount} via {method_label}",
        )

        decision_reason = f"BER Settlement: {amount} ({method_label}) - {reason}"
        claim = await self.claims.update_status(claim_id, "closed", decision="settled", decision_reason=decision_reason)
        if claim is None:
            raise NotFoundError("Claim not found")
        await self.claims.add_history(claim_id, "closed", decision_reason)

        LOGGER.info("Quote rejected, claim settled", extra={"claim_id": str(claim_id), "method": settlement_method})
        return {"fulfillment": row_to_dict(updated), "claim": row_to_dict(claim)}
