"""Full checkout flow on a one-unit, one-crew fleet."""

from datetime import date, timedelta
from itertools import combinations
from unittest import mock

import pytest

from apps.bookings.application.command_handlers import PromoteHoldCommand
from apps.bookings.models import Booking
from apps.scheduling.exceptions import SlotLostError, UnavailableError
from apps.scheduling.models import BookingBlock
from apps.scheduling.services.availability import UNIT_BOOKED, check_availability
from apps.scheduling.services.holds import hold_for_checkout
from shared.application.message_bus import message_bus

EVENT_DATE = date(2031, 6, 10)


@pytest.mark.django_db
def test_abandoned_hold_expires_and_the_next_customer_books(product, crew, now):
    hold_for_checkout("customer-a", product, EVENT_DATE, now=now)

    blocked = check_availability(product, EVENT_DATE, now=now + timedelta(minutes=1))
    assert not blocked.available
    assert blocked.reason == UNIT_BOOKED

    after_expiry = now + timedelta(minutes=15)
    assert check_availability(product, EVENT_DATE, now=after_expiry).available

    hold_for_checkout("customer-b", product, EVENT_DATE, now=after_expiry)
    booking = message_bus.handle_command(PromoteHoldCommand(session_id="customer-b", now=after_expiry))
    assert booking.status == Booking.Status.CONFIRMED

    with mock.patch("apps.bookings.handlers.alert_staff.delay"), \
            mock.patch("apps.bookings.handlers.request_refund.delay"):
        with pytest.raises(SlotLostError):
            message_bus.handle_command(PromoteHoldCommand(
                session_id="customer-a",
                now=after_expiry,
                product_id=product.pk,
                event_date=EVENT_DATE,
            ))

    assert Booking.objects.count() == 1


@pytest.mark.django_db
def test_confirmed_bookings_never_overlap_per_resource(product, crew, now):
    for offset, session in enumerate(["s1", "s2", "s3", "s4"]):
        event_date = EVENT_DATE + timedelta(days=offset // 2)
        try:
            hold_for_checkout(session, product, event_date, now=now)
        except UnavailableError:
            continue
        message_bus.handle_command(PromoteHoldCommand(session_id=session, now=now))

    assert Booking.objects.count() == 2
    blocks = list(BookingBlock.objects.filter(booking__isnull=False))
    for first, second in combinations(blocks, 2):
        if (first.resource_type, first.resource_id) == (second.resource_type, second.resource_id):
            assert not first.interval.overlaps_with(second.interval)
