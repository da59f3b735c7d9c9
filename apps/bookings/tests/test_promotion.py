"""Promotion of paid checkout holds into bookings."""

from datetime import date, timedelta
from unittest import mock

import pytest

from apps.bookings.application.command_handlers import PromoteHoldCommand, ReleaseHoldCommand
from apps.bookings.models import Booking
from apps.scheduling.exceptions import SlotLostError
from apps.scheduling.models import BookingBlock, SoftHold
from apps.scheduling.services.availability import check_availability
from apps.scheduling.services.holds import hold_for_checkout
from shared.application.message_bus import message_bus

EVENT_DATE = date(2031, 6, 10)


def _promote(session_id, now, **extra):
    return message_bus.handle_command(
        PromoteHoldCommand(session_id=session_id, payment_reference=f"pay-{session_id}", now=now, **extra)
    )


@pytest.mark.django_db
def test_valid_hold_becomes_confirmed_booking(product, crew, now):
    hold = hold_for_checkout("session-a", product, EVENT_DATE, now=now)

    booking = _promote("session-a", now + timedelta(minutes=5), customer_email="a@example.com")

    assert booking.status == Booking.Status.CONFIRMED
    assert booking.source == Booking.Source.CHECKOUT
    assert booking.unit_id == hold.unit_id
    assert booking.service_start == hold.service_start
    assert not SoftHold.objects.exists()
    assert BookingBlock.objects.filter(booking=booking).count() == 3
    assert BookingBlock.objects.filter(hold__isnull=False).count() == 0


@pytest.mark.django_db
def test_webhook_retry_returns_the_same_booking(product, crew, now):
    hold_for_checkout("session-a", product, EVENT_DATE, now=now)

    first = _promote("session-a", now)
    second = _promote("session-a", now + timedelta(hours=1))

    assert first.pk == second.pk
    assert Booking.objects.count() == 1


@pytest.mark.django_db
def test_expired_hold_is_reclaimed_when_still_free(product, crew, now):
    hold_for_checkout("session-a", product, EVENT_DATE, now=now)

    booking = _promote("session-a", now + timedelta(minutes=30))

    assert booking.status == Booking.Status.CONFIRMED
    assert booking.event_date == EVENT_DATE
    assert not SoftHold.objects.exists()


@pytest.mark.django_db
def test_missing_hold_is_claimed_from_the_checkout_target(product, crew, now):
    booking = _promote("session-a", now, product_id=product.pk, event_date=EVENT_DATE)

    assert booking.event_date == EVENT_DATE
    assert not check_availability(product, EVENT_DATE, now=now).available


@pytest.mark.django_db
def test_slot_lost_when_window_was_taken_after_expiry(product, crew, now):
    hold_for_checkout("session-a", product, EVENT_DATE, now=now)
    later = now + timedelta(minutes=16)
    hold_for_checkout("session-b", product, EVENT_DATE, now=later)

    with mock.patch("apps.bookings.handlers.alert_staff.delay") as alert, \
            mock.patch("apps.bookings.handlers.request_refund.delay") as refund:
        with pytest.raises(SlotLostError) as excinfo:
            _promote("session-a", later, product_id=product.pk, event_date=EVENT_DATE)

    assert excinfo.value.reason == "unit_booked"
    assert not Booking.objects.exists()
    assert SoftHold.objects.get().session_id == "session-b"
    alert.assert_called_once()
    refund.assert_called_once_with(None, "pay-session-a", "slot lost: unit_booked")


@pytest.mark.django_db
def test_slot_lost_without_hold_or_target(product, crew, now):
    with mock.patch("apps.bookings.handlers.alert_staff.delay"), \
            mock.patch("apps.bookings.handlers.request_refund.delay"):
        with pytest.raises(SlotLostError) as excinfo:
            _promote("unknown-session", now)

    assert excinfo.value.reason == "hold_missing"


@pytest.mark.django_db
def test_confirmation_is_announced_after_commit(product, crew, now, django_capture_on_commit_callbacks):
    hold_for_checkout("session-a", product, EVENT_DATE, now=now)

    with mock.patch("apps.bookings.handlers.send_booking_notification.delay") as notify:
        with django_capture_on_commit_callbacks(execute=True):
            booking = _promote("session-a", now)

    notify.assert_called_once_with(booking.pk, "confirmed")


@pytest.mark.django_db
def test_failed_payment_releases_the_hold(product, crew, now):
    hold_for_checkout("session-a", product, EVENT_DATE, now=now)

    assert message_bus.handle_command(ReleaseHoldCommand(session_id="session-a")) is True
    assert message_bus.handle_command(ReleaseHoldCommand(session_id="session-a")) is False
    assert check_availability(product, EVENT_DATE, now=now).available
