"""Celery tasks for the booking domain.

Email delivery and refunds are handled by external services; these tasks
are the hand-off points and record what was handed off.
"""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore
from django.utils import timezone  # type: ignore

from apps.scheduling.exceptions import InvalidTransitionError
from shared.application.message_bus import message_bus

from .application.command_handlers import AdvanceBookingStatusCommand
from .domain import lifecycle
from .models import Booking

logger = logging.getLogger(__name__)


@shared_task(name="bookings.send_booking_notification")
def send_booking_notification(booking_id: int, kind: str) -> dict[str, str]:
    """Queue a customer notification (confirmation, cancellation, reschedule)."""
    try:
        booking = Booking.objects.get(pk=booking_id)
    except Booking.DoesNotExist:
        logger.warning(f"Notification {kind} skipped: booking {booking_id} no longer exists")
        return {"status": "missing"}

    if not booking.customer_email:
        logger.info(f"Notification {kind} for {booking.booking_number} skipped: no email on file")
        return {"status": "skipped"}

    logger.info(f"Notification {kind} for {booking.booking_number} handed to mailer ({booking.customer_email})")
    return {"status": "queued"}


@shared_task(name="bookings.request_refund")
def request_refund(booking_id: int | None, payment_reference: str, reason: str) -> dict[str, str]:
    """Hand a payment to the refund workflow."""
    if not payment_reference:
        logger.info(f"No payment on file for booking {booking_id}; nothing to refund")
        return {"status": "skipped"}
    logger.info(f"Refund requested for payment {payment_reference} (booking {booking_id}): {reason}")
    return {"status": "requested"}


@shared_task(name="bookings.alert_staff")
def alert_staff(subject: str, details: dict) -> dict[str, str]:
    """Operational alert for situations a human must resolve (lost slots, cancellation requests)."""
    logger.warning(f"Staff alert: {subject} {details}")
    return {"status": "sent"}


# ============================================================================
# PERIODIC TASKS (run by Celery Beat)
# ============================================================================

@shared_task(name="bookings.complete_finished_bookings")
def complete_finished_bookings() -> dict[str, int]:
    """
    Mark picked-up bookings completed once their service window is over.

    Runs hourly through Celery Beat.

    Returns:
        dict: {"completed": number of bookings updated}
    """
    now = timezone.now()
    completed = 0
    finished = Booking.objects.filter(status=lifecycle.PICKED_UP, service_end__lte=now)
    for booking_id in list(finished.values_list("pk", flat=True)):
        try:
            message_bus.handle_command(
                AdvanceBookingStatusCommand(booking_id=booking_id, status=lifecycle.COMPLETED)
            )
        except InvalidTransitionError as exc:
            # Changed by staff since the query ran
            logger.warning(f"Booking {booking_id} not completed: {exc}")
            continue
        completed += 1

    if completed:
        logger.info(f"Completed {completed} finished bookings")
    return {"completed": completed}
