"""Read-side booking services: reschedule options."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from django.utils import timezone  # type: ignore

from apps.scheduling.conf import business_tz, scheduling_setting
from apps.scheduling.services.availability import AvailabilityResult, check_availability

from .domain import lifecycle
from .models import Booking

logger = logging.getLogger(__name__)


def reschedule_options(
    booking: Booking,
    *,
    now: datetime | None = None,
    horizon_days: int | None = None,
    limit: int | None = None,
) -> list[AvailabilityResult]:
    """
    Windows the booking could move to

    Walks dates from tomorrow through the horizon (every active slot per
    date for slot products). The booking's own blocks are ignored, so its
    current date is offered again when nothing else is in the way.
    """
    if booking.status not in lifecycle.RESCHEDULABLE:
        return []
    now = now or timezone.now()
    horizon_days = horizon_days or scheduling_setting("RESCHEDULE_HORIZON_DAYS")
    limit = limit or scheduling_setting("RESCHEDULE_MAX_OPTIONS")
    product = booking.product
    slots = list(product.slots.filter(is_active=True)) if product.is_slot_based else [None]

    today = now.astimezone(business_tz()).date()
    options: list[AvailabilityResult] = []
    for offset in range(1, horizon_days + 1):
        candidate = today + timedelta(days=offset)
        for slot in slots:
            result = check_availability(
                product,
                candidate,
                slot=slot,
                now=now,
                exclude_booking_id=booking.pk,
                prefer_unit_id=booking.unit_id,
                prefer_delivery_crew_id=booking.delivery_crew_id,
                prefer_pickup_crew_id=booking.pickup_crew_id,
                original_booking_type=booking.booking_type,
            )
            if result.available:
                options.append(result)
                if len(options) >= limit:
                    return options
    logger.debug(f"{len(options)} reschedule options for booking {booking.booking_number}")
    return options
