"""Event handlers: fan domain events out to Celery tasks."""

from __future__ import annotations

import logging

from shared.application.message_bus import MessageBus

from .domain.events import (
    BookingCancelled,
    BookingConfirmed,
    BookingRescheduled,
    CancellationRequested,
    SlotLost,
)
from .tasks import alert_staff, request_refund, send_booking_notification

logger = logging.getLogger(__name__)


def notify_confirmed(event: BookingConfirmed):
    send_booking_notification.delay(event.booking_id, "confirmed")


def notify_rescheduled(event: BookingRescheduled):
    send_booking_notification.delay(event.booking_id, "rescheduled")


def refund_cancelled(event: BookingCancelled):
    request_refund.delay(event.booking_id, event.payment_reference, event.reason)
    send_booking_notification.delay(event.booking_id, "cancelled")


def escalate_slot_lost(event: SlotLost):
    alert_staff.delay(
        "Paid checkout lost its slot",
        {"session_id": event.session_id, "payment_reference": event.payment_reference, "reason": event.reason},
    )
    request_refund.delay(None, event.payment_reference, f"slot lost: {event.reason}")


def escalate_cancellation_request(event: CancellationRequested):
    alert_staff.delay("Cancellation request awaiting review", {"booking_id": event.booking_id})


def register_event_handlers(bus: MessageBus):
    bus.register_event_handler(BookingConfirmed, notify_confirmed)
    bus.register_event_handler(BookingRescheduled, notify_rescheduled)
    bus.register_event_handler(BookingCancelled, refund_cancelled)
    bus.register_event_handler(SlotLost, escalate_slot_lost)
    bus.register_event_handler(CancellationRequested, escalate_cancellation_request)
    logger.debug("Booking event handlers registered")
