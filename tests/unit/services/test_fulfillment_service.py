"""Unit tests for the claim fulfillment flow."""

from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.exceptions import NotFoundError, ValidationError
from app.database.models import Device
from app.schemas.fulfillment import CardDetails
from app.services.fulfillment.fulfillment_service import (
    TIME_SLOTS,
    FulfillmentService,
    _long_date,
    available_slots,
    booking_reference,
    fulfillment_step,
    unavailable_dates,
)
from tests.factories import make_claim, make_fulfillment, make_policy


@pytest.fixture
def service() -> FulfillmentService:
    service = FulfillmentService(MagicMock())
    service.claims = AsyncMock()
    service.fulfillments = AsyncMock()
    service.payments = AsyncMock()
    service.devices = AsyncMock()
    service.devices.find_by_model_name.return_value = None
    service.fulfillments.upsert_for_claim.side_effect = lambda claim_id, **fields: make_fulfillment(claim_id, **fields)
    return service


class TestAvailability:
    def test_unavailable_dates_follow_repairer_pattern(self):
        # sum of code points of "a" is 97 -> pattern 2: every 3rd and every 10th day
        dates = unavailable_dates("a", today=date(2026, 1, 1))

        offsets = [(d - date(2026, 1, 1)).days for d in dates]
        assert offsets == [3, 6, 9, 10, 12, 15, 18, 20, 21, 24, 27, 30]

    def test_no_repairer_has_no_blocked_days(self):
        assert unavailable_dates(None) == []

    def test_slots_taken_by_hash_and_day(self):
        # (97 + 3) % 4 == 0 drops the first and third slot
        assert available_slots("a", date(2026, 1, 3)) == ["11:00 - 13:00", "15:00 - 17:00", "17:00 - 19:00"]
        # (97 + 2) % 4 == 3 keeps every slot
        assert available_slots("a", date(2026, 1, 2)) == TIME_SLOTS

    def test_all_slots_without_repairer(self):
        assert available_slots(None, date(2026, 1, 3)) == TIME_SLOTS


class TestHelpers:
    def test_booking_reference_format(self):
        engineer = booking_reference(True)
        logistics = booking_reference(False)

        assert engineer.startswith("ENG-") and len(engineer) == 12
        assert logistics.startswith("LOG-") and logistics[4:].isalnum() and logistics[4:].upper() == logistics[4:]

    @pytest.mark.parametrize(
        "day, expected",
        [
            (date(2026, 10, 1), "October 1st, 2026"),
            (date(2026, 10, 2), "October 2nd, 2026"),
            (date(2026, 10, 11), "October 11th, 2026"),
            (date(2026, 10, 23), "October 23rd, 2026"),
        ],
    )
    def test_long_date(self, day, expected):
        assert _long_date(day) == expected

    def test_fulfillment_step(self):
        assert fulfillment_step(None) == 1
        assert fulfillment_step(make_fulfillment(excess_paid=False)) == 1
        assert fulfillment_step(make_fulfillment()) == 4
        assert fulfillment_step(make_fulfillment(status="scheduled")) == 5
        assert fulfillment_step(make_fulfillment(fulfillment_type="voucher", status="completed")) == 5


class TestPayExcess:
    @pytest.mark.asyncio
    async def test_payment_option_required(self, service):
        with pytest.raises(ValidationError, match="Please select a payment option"):
            await service.pay_excess(make_claim().id, None)

    @pytest.mark.asyncio
    async def test_payment_on_file_needs_paid_payment(self, service):
        claim = make_claim()
        service.claims.get_with_policy.return_value = claim
        service.payments.has_paid_payment.return_value = False

        with pytest.raises(ValidationError, match="No payment method on file"):
            await service.pay_excess(claim.id, True)

    @pytest.mark.asyncio
    async def test_credit_card_needs_all_details(self, service):
        claim = make_claim()
        service.claims.get_with_policy.return_value = claim

        with pytest.raises(ValidationError, match="Please fill in all card details"):
            await service.pay_excess(
                claim.id,
                False,
                payment_method="credit_card",
                card=CardDetails(card_number="4111111111111111", cvv="123"),
            )

    @pytest.mark.asyncio
    async def test_missing_claim(self, service):
        service.claims.get_with_policy.return_value = None

        with pytest.raises(NotFoundError):
            await service.pay_excess(make_claim().id, False, payment_method="paypal")

    @pytest.mark.asyncio
    async def test_phone_goes_to_collection_repair(self, service):
        claim = make_claim()
        service.claims.get_with_policy.return_value = claim
        service.payments.has_paid_payment.return_value = True

        fulfillment = await service.pay_excess(claim.id, True)

        fields = service.fulfillments.upsert_for_claim.call_args.kwargs
        assert fields["excess_payment_method"] == "payment_on_file"
        assert fields["excess_amount"] == Decimal("50.00")
        assert fields["device_value"] == Decimal("899.00")
        assert fulfillment.fulfillment_type == "collection_repair"
        assert fulfillment.status == "awaiting_appointment"

    @pytest.mark.asyncio
    async def test_tv_from_catalogue_goes_to_in_home_repair(self, service):
        claim = make_claim(make_policy(product_name="Samsung QE55Q80C"))
        service.claims.get_with_policy.return_value = claim
        service.devices.find_by_model_name.return_value = Device(device_category="Brown Goods")

        fulfillment = await service.pay_excess(claim.id, False, payment_method="paypal")

        assert fulfillment.fulfillment_type == "in_home_repair"
        assert fulfillment.status == "awaiting_appointment"

    @pytest.mark.asyncio
    async def test_low_value_device_gets_voucher(self, service):
        claim = make_claim(make_policy(product_name="JBL Go 3", purchase_price="49.99"))
        service.claims.get_with_policy.return_value = claim

        fulfillment = await service.pay_excess(
            claim.id,
            False,
            payment_method="credit_card",
            card=CardDetails(card_number="4111", expiry_date="12/28", cvv="123", cardholder_name="Anna"),
        )

        assert fulfillment.fulfillment_type == "voucher"
        assert fulfillment.status == "completed"


class TestDeviceValueAndType:
    @pytest.mark.asyncio
    async def test_low_value_is_voucher(self, service):
        fulfillment = await service.set_device_value(make_claim().id, 120)

        assert fulfillment.fulfillment_type == "voucher"
        assert fulfillment.status == "completed"

    @pytest.mark.asyncio
    async def test_threshold_value_needs_appointment(self, service):
        fulfillment = await service.set_device_value(make_claim().id, 150)

        assert fulfillment.fulfillment_type is None
        assert fulfillment.status == "awaiting_appointment"

    @pytest.mark.asyncio
    async def test_set_type(self, service):
        fulfillment = await service.set_fulfillment_type(make_claim().id, "collection_repair")

        assert fulfillment.fulfillment_type == "collection_repair"
        assert fulfillment.status == "awaiting_appointment"


class TestScheduleAppointment:
    @pytest.mark.asyncio
    async def test_date_and_slot_required(self, service):
        with pytest.raises(ValidationError, match="Please select a date and time slot"):
            await service.schedule_appointment(make_claim().id, date(2026, 10, 20), None)

    @pytest.mark.asyncio
    async def test_collection_is_scheduled(self, service):
        claim = make_claim()
        service.claims.get_with_policy.return_value = claim

        fulfillment = await service.schedule_appointment(claim.id, date(2026, 10, 20), "09:00 - 11:00")

        assert fulfillment.status == "scheduled"
        assert fulfillment.logistics_reference.startswith("LOG-")
        assert fulfillment.engineer_reference is None
        service.claims.update_status.assert_awaited_once_with(claim.id, "pending_fulfillment")
        service.claims.add_history.assert_awaited_once_with(
            claim.id,
            "pending_fulfillment",
            "Fulfillment collection scheduled for October 20th, 2026 at 09:00 - 11:00",
        )

    @pytest.mark.asyncio
    async def test_in_home_visit_gets_engineer_reference(self, service):
        claim = make_claim(make_policy(product_name="LG OLED65C3 TV"))
        service.claims.get_with_policy.return_value = claim

        fulfillment = await service.schedule_appointment(claim.id, date(2026, 10, 21), "13:00 - 15:00")

        assert fulfillment.engineer_reference.startswith("ENG-")
        note = service.claims.add_history.call_args.args[2]
        assert note.startswith("Fulfillment engineer visit scheduled")


class TestQuotes:
    @pytest.mark.asyncio
    async def test_approve_quote(self, service):
        claim = make_claim(status="pending_fulfillment")
        fulfillment = make_fulfillment(claim.id, quote_status="pending", status="quote_pending")
        service.fulfillments.get_for_claim.return_value = fulfillment
        service.fulfillments.approve_quote.return_value = (
            make_fulfillment(claim.id, quote_status="approved", status="quote_approved"),
            True,
        )
        service.claims.get_by_id.return_value = claim

        updated = await service.approve_quote(claim.id)

        assert updated.quote_status == "approved"
        service.fulfillments.approve_quote.assert_awaited_once_with(fulfillment.id)
        service.claims.add_history.assert_awaited_once_with(claim.id, "pending_fulfillment", "Repair quote approved")

    @pytest.mark.asyncio
    async def test_approving_twice_changes_nothing(self, service):
        claim = make_claim()
        fulfillment = make_fulfillment(claim.id, quote_status="approved", status="quote_approved")
        service.fulfillments.get_for_claim.return_value = fulfillment

        assert await service.approve_quote(claim.id) is fulfillment
        service.fulfillments.approve_quote.assert_not_awaited()
        service.claims.add_history.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_concurrent_approval_writes_history_once(self, service):
        claim = make_claim()
        # Both requests read the quote as pending before either writes
        pending = make_fulfillment(claim.id, quote_status="pending", status="quote_pending")
        approved = make_fulfillment(claim.id, quote_status="approved", status="quote_approved")
        service.fulfillments.get_for_claim.return_value = pending
        service.fulfillments.approve_quote.side_effect = [(approved, True), (approved, False)]
        service.claims.get_by_id.return_value = claim

        first = await service.approve_quote(claim.id)
        second = await service.approve_quote(claim.id)

        assert first.quote_status == second.quote_status == "approved"
        service.claims.add_history.assert_awaited_once_with(claim.id, claim.status, "Repair quote approved")

    @pytest.mark.asyncio
    async def test_approve_without_fulfillment(self, service):
        service.fulfillments.get_for_claim.return_value = None

        with pytest.raises(NotFoundError):
            await service.approve_quote(make_claim().id)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "reason, ber_value, method, message",
        [
            ("", 100.0, "cash", "Please provide a rejection reason"),
            ("Too expensive", 0, "cash", "Please enter a valid settlement value"),
            ("Too expensive", None, "cash", "Please enter a valid settlement value"),
            ("Too expensive", 100.0, "cheque", "Settlement method must be cash or voucher"),
        ],
    )
    async def test_reject_quote_validation(self, service, reason, ber_value, method, message):
        with pytest.raises(ValidationError, match=message):
            await service.reject_quote(make_claim().id, reason, ber_value, method)

    @pytest.mark.asyncio
    async def test_reject_quote_settles_claim(self, service):
        claim = make_claim(status="pending_fulfillment")
        fulfillment = make_fulfillment(claim.id, quote_status="pending")
        service.fulfillments.get_for_claim.return_value = fulfillment
        service.fulfillments.update.return_value = make_fulfillment(claim.id, status="completed")
        service.claims.update_status.return_value = make_claim(id=claim.id, status="closed", decision="settled")

        result = await service.reject_quote(claim.id, "Repair too expensive", 250, "voucher")

        update_fields = service.fulfillments.update.call_args.kwargs
        assert update_fields["quote_status"] == "rejected"
        assert update_fields["fulfillment_type"] == "ber_voucher"
        assert update_fields["ber_reason"] == "Quote rejected - Settlement: €250.00 via Voucher"

        reason = "BER Settlement: €250.00 (Voucher) - Repair too expensive"
        service.claims.update_status.assert_awaited_once_with(
            claim.id, "closed", decision="settled", decision_reason=reason
        )
        service.claims.add_history.assert_awaited_once_with(claim.id, "closed", reason)
        assert result["claim"]["status"] == "closed"
