import asyncio
from decimal import Decimal

import pytest

from conftest import FakeEstimator
from negotiation_service import bridge, ledger, negotiation
from negotiation_service.errors import PriceOutOfRange
from negotiation_service.estimator import Estimate
from negotiation_service.models import BookingStatus

CUSTOMER_ID = 9001

pytestmark = pytest.mark.asyncio


async def _booking(db, make_technician, service="AC Repair", base_charge=1200, district="Patna"):
    technician = await make_technician(service=service, base_charge=base_charge, district=district)
    booking = await negotiation.create_booking(db, CUSTOMER_ID, technician.id)
    return booking, technician


async def test_end_to_end_counter_then_accept(db_session, make_technician):
    booking, technician = await _booking(db_session, make_technician)
    assert booking.negotiated_price == 1200
    assert booking.platform_fee == Decimal("120.00")

    outcome = await bridge.negotiate(db_session, booking.id, CUSTOMER_ID, 1000)
    assert outcome.booking.negotiated_price == 1100
    assert outcome.booking.platform_fee == Decimal("110")
    assert outcome.booking.status == BookingStatus.NEGOTIATING.value
    assert outcome.reply.sender_id == technician.user_id
    assert "₹1100" in outcome.reply.content
    assert "Patna" in outcome.reply.content

    booking = await negotiation.accept_current_price(db_session, booking.id)
    assert booking.negotiated_price == 1100
    assert booking.platform_fee == Decimal("110.00")
    assert booking.status == BookingStatus.CONFIRMED.value


async def test_small_counter_is_agreed_but_not_confirmed(db_session, make_technician):
    booking, _ = await _booking(db_session, make_technician, service="Electrician", base_charge=1000)

    outcome = await bridge.negotiate(db_session, booking.id, CUSTOMER_ID, 900)

    assert outcome.booking.negotiated_price == 900
    assert outcome.booking.platform_fee == Decimal("72")
    assert outcome.booking.status == BookingStatus.NEGOTIATING.value
    assert "I agree to ₹900" in outcome.reply.content


async def test_large_counter_meets_in_the_middle(db_session, make_technician):
    booking, _ = await _booking(db_session, make_technician, service="Electrician", base_charge=1000)

    outcome = await bridge.negotiate(db_session, booking.id, CUSTOMER_ID, 700)

    assert outcome.booking.negotiated_price == 850
    assert outcome.booking.platform_fee == Decimal("68")


async def test_counter_outside_range_is_rejected_without_reply(db_session, make_technician):
    booking, _ = await _booking(db_session, make_technician)

    with pytest.raises(PriceOutOfRange):
        await bridge.negotiate(db_session, booking.id, CUSTOMER_ID, 900)
    await db_session.rollback()

    messages = await ledger.list_by_booking(db_session, booking.id)
    assert len(messages) == 1  # greeting only
    fresh = await negotiation.get_booking(db_session, booking.id)
    await db_session.refresh(fresh)
    assert fresh.negotiated_price == 1200


async def test_customer_resubmitting_current_price_accepts(db_session, make_technician):
    booking, _ = await _booking(db_session, make_technician)

    outcome = await bridge.negotiate(db_session, booking.id, CUSTOMER_ID, 1200)

    assert outcome.booking.status == BookingStatus.CONFIRMED.value
    assert outcome.reply is None


async def test_explicit_confirm_flag_wins_over_price_equality(db_session, make_technician):
    booking, _ = await _booking(db_session, make_technician)

    outcome = await bridge.negotiate(db_session, booking.id, CUSTOMER_ID, 1200, confirm=False)

    assert outcome.booking.status == BookingStatus.NEGOTIATING.value


async def test_technician_lowering_price_is_a_plain_proposal(db_session, make_technician):
    booking, technician = await _booking(db_session, make_technician)

    outcome = await bridge.negotiate(db_session, booking.id, technician.user_id, 1050)

    assert outcome.reply is None
    assert outcome.booking.negotiated_price == 1050
    assert outcome.booking.status == BookingStatus.NEGOTIATING.value


async def test_technician_equal_price_without_flag_does_not_confirm(db_session, make_technician):
    booking, technician = await _booking(db_session, make_technician)

    outcome = await bridge.negotiate(db_session, booking.id, technician.user_id, 1200)

    assert outcome.booking.status == BookingStatus.NEGOTIATING.value


async def test_first_description_gets_estimated_quote(db_session, make_technician):
    booking, technician = await _booking(db_session, make_technician)
    estimator = FakeEstimator(Estimate("₹1,300 - ₹1,500", "Compressor check and gas top-up.", "Keep the area clear."))

    outcome = await bridge.send_message(db_session, booking.id, CUSTOMER_ID, estimator, content="AC is not cooling")

    assert estimator.calls == [("AC Repair", "AC is not cooling", "Patna")]
    assert outcome.message.sender_id == CUSTOMER_ID
    assert outcome.reply.sender_id == technician.user_id
    assert "₹1400" in outcome.reply.content
    assert "Compressor check" in outcome.reply.content

    fresh = await negotiation.get_booking(db_session, booking.id)
    assert fresh.negotiated_price == 1400
    assert fresh.platform_fee == Decimal("140")
    assert fresh.status == BookingStatus.NEGOTIATING.value
    assert fresh.seeded_price is False


async def test_estimate_is_clamped_into_range(db_session, make_technician):
    booking, _ = await _booking(db_session, make_technician, service="Maid", base_charge=600)
    estimator = FakeEstimator(Estimate("₹1,000 - ₹2,000", "Full house deep clean.", ""))

    await bridge.send_message(db_session, booking.id, CUSTOMER_ID, estimator, content="Deep clean 3BHK")

    fresh = await negotiation.get_booking(db_session, booking.id)
    assert fresh.negotiated_price == 800


async def test_estimator_failure_falls_back_to_range_minimum(db_session, make_technician, failing_estimator):
    booking, _ = await _booking(db_session, make_technician)

    outcome = await bridge.send_message(db_session, booking.id, CUSTOMER_ID, failing_estimator, content="Noisy AC")

    assert "Sorry" in outcome.reply.content
    fresh = await negotiation.get_booking(db_session, booking.id)
    assert fresh.negotiated_price == 1000
    assert fresh.platform_fee == Decimal("80")


async def test_unparseable_estimate_falls_back(db_session, make_technician):
    booking, _ = await _booking(db_session, make_technician)
    estimator = FakeEstimator(Estimate("Unable to estimate", "", ""))

    outcome = await bridge.send_message(db_session, booking.id, CUSTOMER_ID, estimator, content="Noisy AC")

    assert outcome.reply is not None
    assert (await negotiation.get_booking(db_session, booking.id)).negotiated_price == 1000


async def test_slow_estimator_times_out_into_fallback(db_session, make_technician):
    booking, _ = await _booking(db_session, make_technician)
    estimator = FakeEstimator(delay=1)

    reply = await bridge.reply_with_first_quote(db_session, booking.id, "Noisy AC", estimator, timeout=0.01)

    assert "Sorry" in reply.content
    assert (await negotiation.get_booking(db_session, booking.id)).negotiated_price == 1000


async def test_only_first_description_is_quoted(db_session, make_technician, estimator):
    booking, _ = await _booking(db_session, make_technician)

    first = await bridge.send_message(db_session, booking.id, CUSTOMER_ID, estimator, content="AC is leaking")
    second = await bridge.send_message(db_session, booking.id, CUSTOMER_ID, estimator, content="Also makes noise")

    assert first.reply is not None
    assert second.reply is None
    assert len(estimator.calls) == 1


async def test_no_quote_after_a_price_was_proposed(db_session, make_technician, estimator):
    booking, technician = await _booking(db_session, make_technician)
    await negotiation.propose_price(db_session, booking.id, 1250)

    outcome = await bridge.send_message(db_session, booking.id, CUSTOMER_ID, estimator, content="AC is leaking")

    assert outcome.reply is None
    assert estimator.calls == []


async def test_technician_messages_never_trigger_quotes(db_session, make_technician, estimator):
    booking, technician = await _booking(db_session, make_technician)

    outcome = await bridge.send_message(db_session, booking.id, technician.user_id, estimator, content="On my way")

    assert outcome.reply is None
    assert estimator.calls == []


async def test_attachment_only_message_is_not_a_description(db_session, make_technician, estimator):
    booking, _ = await _booking(db_session, make_technician)

    outcome = await bridge.send_message(
        db_session, booking.id, CUSTOMER_ID, estimator,
        attachment_url="https://cdn.example.com/ac.jpg", attachment_type="image",
    )

    assert outcome.reply is None
    assert outcome.message.attachment_type == "image"


async def test_quote_is_dropped_if_price_changed_meanwhile(db_session, make_technician):
    booking, _ = await _booking(db_session, make_technician)

    class RacingEstimator(FakeEstimator):
        async def estimate(self, service_type, description, district):
            await negotiation.propose_price(db_session, booking.id, 1300)
            await asyncio.sleep(0)
            return await super().estimate(service_type, description, district)

    reply = await bridge.reply_with_first_quote(db_session, booking.id, "Noisy AC", RacingEstimator())

    assert reply is None
    assert (await negotiation.get_booking(db_session, booking.id)).negotiated_price == 1300


async def test_counter_is_measured_against_latest_committed_price(session_factory, make_technician):
    technician = await make_technician(service="AC Repair", base_charge=1200)

    async with session_factory() as first, session_factory() as second:
        booking = await negotiation.create_booking(first, CUSTOMER_ID, technician.id)
        await negotiation.get_booking(first, booking.id)

        await negotiation.propose_price(second, booking.id, 1400)

        outcome = await bridge.reply_to_counter_offer(first, booking.id, 1000)

    assert outcome.booking.negotiated_price == 1200
    assert "₹1200" in outcome.reply.content


async def test_no_transaction_is_held_while_estimating(db_session, make_technician):
    booking, _ = await _booking(db_session, make_technician)
    seen = []

    class WatchingEstimator(FakeEstimator):
        async def estimate(self, service_type, description, district):
            seen.append(db_session.in_transaction())
            return await super().estimate(service_type, description, district)

    reply = await bridge.reply_with_first_quote(db_session, booking.id, "Noisy AC", WatchingEstimator())

    assert seen == [False]
    assert reply is not None
