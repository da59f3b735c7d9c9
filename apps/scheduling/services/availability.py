"""
Availability Query Engine

Answers "can this product be rented for this date (and slot)?" and, when it
can, which unit and crews would do the job. Reads are lock-free and
advisory: the answer may be stale by the time the customer pays, which is
why holds and bookings are written through the guarded insert in
``blocks.claim_blocks``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from django.utils import timezone  # type: ignore

from apps.catalog.models import BlackoutDate, Crew, Product, Slot, Unit

from ..conf import business_tz, granularity, window_setting
from ..domain.occupancy import CREW, UNIT, Occupancy, build_calendars
from ..domain.windows import (
    BOOKING_TYPES,
    ServiceWindow,
    day_rental_window,
    slot_window,
    suggest_booking_type,
)
from ..exceptions import NotFoundError, SchedulingValidationError
from ..models import BookingBlock

logger = logging.getLogger(__name__)

UNIT_BOOKED = "unit_booked"
NO_CREW = "no_crew"
BLACKOUT = "blackout"
LEAD_TIME = "lead_time"

MAX_RANGE_DAYS = 93


@dataclass
class AvailabilityResult:
    available: bool
    window: ServiceWindow
    reason: Optional[str] = None
    unit_id: Optional[int] = None
    delivery_crew_id: Optional[int] = None
    pickup_crew_id: Optional[int] = None

    @property
    def event_date(self) -> date:
        return self.window.event_date

    def to_dict(self) -> dict:
        return {
            "date": self.window.event_date.isoformat(),
            "available": self.available,
            "reason": self.reason,
            "unit_id": self.unit_id,
            "delivery_crew_id": self.delivery_crew_id,
            "pickup_crew_id": self.pickup_crew_id,
            "window": self.window.to_dict(),
        }


def get_product(product_id) -> Product:
    try:
        return Product.objects.get(pk=product_id, is_active=True)
    except (Product.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Product {product_id} not found.")


def get_slot(product: Product, slot_id) -> Slot:
    try:
        return Slot.objects.get(pk=slot_id, product=product, is_active=True)
    except (Slot.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Slot {slot_id} is not offered for {product.name}.")


def resolve_window(
    product: Product,
    event_date: date,
    *,
    booking_type: str | None = None,
    slot: Slot | None = None,
    original_booking_type: str = "",
) -> ServiceWindow:
    """Derive the window, rejecting requests that mix scheduling modes."""
    tz = business_tz()
    if product.is_slot_based:
        if booking_type:
            raise SchedulingValidationError(f"{product.name} is booked by time slot, not by booking type.")
        if slot is None:
            raise SchedulingValidationError(f"{product.name} requires a time slot.")
        if slot.product_id != product.pk:
            raise SchedulingValidationError("The slot does not belong to this product.")
        return slot_window(
            event_date,
            slot.start_time_local,
            slot.end_time_local,
            setup_minutes=product.setup_minutes,
            teardown_minutes=product.teardown_minutes,
            travel_minutes=product.travel_buffer_minutes,
            tz=tz,
            slot_id=slot.pk,
        )

    if slot is not None:
        raise SchedulingValidationError(f"{product.name} is a day rental and has no time slots.")
    booking_type = booking_type or suggest_booking_type(event_date, original_booking_type)
    if booking_type not in BOOKING_TYPES:
        raise SchedulingValidationError(f"Unknown booking type: {booking_type}.")
    return day_rental_window(
        event_date,
        booking_type,
        travel_minutes=product.travel_buffer_minutes,
        delivery_window=window_setting("DELIVERY_WINDOW"),
        same_day_pickup_window=window_setting("SAME_DAY_PICKUP_WINDOW"),
        next_day_pickup_window=window_setting("NEXT_DAY_PICKUP_WINDOW"),
        tz=tz,
    )


def _live_occupancies(
    resource_type: str,
    resource_ids: Iterable[int],
    span,
    now: datetime,
    exclude_booking_id=None,
    exclude_session_id=None,
):
    qs = (
        BookingBlock.objects.live(now)
        .for_resources(resource_type, resource_ids)
        .overlapping(span.expanded_to(granularity()))
    )
    if exclude_booking_id is not None:
        qs = qs.exclude(booking_id=exclude_booking_id)
    if exclude_session_id:
        qs = qs.exclude(hold__session_id=exclude_session_id)
    for block in qs:
        yield block.resource_id, Occupancy(
            interval=block.interval,
            block_type=block.block_type,
            booking_id=block.booking_id,
            hold_id=block.hold_id,
        )


def _shift_allows(crew: Crew, leg, tz) -> bool:
    """No template row for the weekday means the crew works that day."""
    local_start = leg.start.astimezone(tz)
    local_end = leg.end.astimezone(tz)
    shifts = {shift.day_of_week: shift for shift in crew.shifts.all()}
    shift = shifts.get(local_start.weekday())
    if shift is None:
        return True
    if local_end.date() != local_start.date():
        return False
    return shift.covers(local_start.time(), local_end.time())


def _preferred_first(items: list, preferred_id) -> list:
    if preferred_id is None:
        return items
    return sorted(items, key=lambda item: item.pk != preferred_id)


def check_availability(
    product: Product,
    event_date: date,
    *,
    booking_type: str | None = None,
    slot: Slot | None = None,
    now: datetime | None = None,
    lead_time_hours: int | None = None,
    exclude_booking_id=None,
    exclude_session_id: str | None = None,
    prefer_unit_id=None,
    prefer_delivery_crew_id=None,
    prefer_pickup_crew_id=None,
    original_booking_type: str = "",
) -> AvailabilityResult:
    """
    Availability of one product for one date (and slot)

    Order of checks: lead time, blackouts, a free unit for the whole service
    window, then a crew for each leg. The first failing check names the
    reason. Blocks of the excluded booking or session do not count, which
    is how rescheduling and re-validating one's own hold avoid colliding
    with themselves.
    """
    now = now or timezone.now()
    window = resolve_window(
        product,
        event_date,
        booking_type=booking_type,
        slot=slot,
        original_booking_type=original_booking_type,
    )

    lead_hours = product.lead_time_hours if lead_time_hours is None else lead_time_hours
    if now + timedelta(hours=lead_hours) > window.service.start:
        return AvailabilityResult(False, window, reason=LEAD_TIME)

    blackouts = list(BlackoutDate.objects.touching(window.delivery_date, window.pickup_date))
    for blackout in blackouts:
        if blackout.scope == BlackoutDate.Scope.GLOBAL:
            return AvailabilityResult(False, window, reason=BLACKOUT)
        if blackout.scope == BlackoutDate.Scope.PRODUCT and blackout.product_id == product.pk:
            return AvailabilityResult(False, window, reason=BLACKOUT)
    blacked_out_units = {b.unit_id for b in blackouts if b.scope == BlackoutDate.Scope.UNIT}

    units = list(product.units.filter(status=Unit.Status.AVAILABLE).order_by("unit_number"))
    candidates = [unit for unit in units if unit.pk not in blacked_out_units]
    if units and not candidates:
        return AvailabilityResult(False, window, reason=BLACKOUT)

    step = granularity()
    unit_calendars = build_calendars(
        UNIT,
        [unit.pk for unit in candidates],
        _live_occupancies(UNIT, [u.pk for u in candidates], window.service, now,
                          exclude_booking_id, exclude_session_id),
        step,
    )
    free_units = [unit for unit in candidates if unit_calendars[unit.pk].is_free(window.service)]
    if not free_units:
        return AvailabilityResult(False, window, reason=UNIT_BOOKED)
    unit = _preferred_first(free_units, prefer_unit_id)[0]

    crews = list(Crew.objects.filter(is_active=True).prefetch_related("shifts").order_by("name"))
    crew_calendars = build_calendars(
        CREW,
        [crew.pk for crew in crews],
        _live_occupancies(CREW, [c.pk for c in crews], window.service, now,
                          exclude_booking_id, exclude_session_id),
        step,
    )
    tz = business_tz()

    def crew_for(leg, preferred_id):
        eligible = [
            crew for crew in crews
            if _shift_allows(crew, leg, tz) and crew_calendars[crew.pk].is_free(leg)
        ]
        eligible = _preferred_first(eligible, preferred_id)
        return eligible[0] if eligible else None

    delivery_crew = crew_for(window.delivery_leg, prefer_delivery_crew_id)
    pickup_crew = crew_for(window.pickup_leg, prefer_pickup_crew_id)
    if delivery_crew is None or pickup_crew is None:
        return AvailabilityResult(False, window, reason=NO_CREW, unit_id=unit.pk)

    return AvailabilityResult(
        True,
        window,
        unit_id=unit.pk,
        delivery_crew_id=delivery_crew.pk,
        pickup_crew_id=pickup_crew.pk,
    )


def validate_before_checkout(
    product: Product,
    event_date: date,
    *,
    session_id: str | None = None,
    booking_type: str | None = None,
    slot: Slot | None = None,
    now: datetime | None = None,
) -> AvailabilityResult:
    """Re-run the query right before payment; the session's own hold is ignored."""
    return check_availability(
        product,
        event_date,
        booking_type=booking_type,
        slot=slot,
        now=now,
        exclude_session_id=session_id,
    )


def _date_span(start: date, end: date) -> list[date]:
    if end < start:
        raise SchedulingValidationError("End date must not be before start date.")
    if (end - start).days >= MAX_RANGE_DAYS:
        raise SchedulingValidationError(f"Date range is limited to {MAX_RANGE_DAYS} days.")
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]


def list_day_availability(
    product: Product,
    start: date,
    end: date,
    *,
    booking_type: str | None = None,
    now: datetime | None = None,
) -> list[AvailabilityResult]:
    """One result per date for a day-rental product."""
    if product.is_slot_based:
        raise SchedulingValidationError(f"{product.name} is booked by time slot; query its slots per date.")
    now = now or timezone.now()
    return [
        check_availability(product, day, booking_type=booking_type, now=now)
        for day in _date_span(start, end)
    ]


def list_slot_availability(
    product: Product,
    event_date: date,
    *,
    now: datetime | None = None,
) -> list[tuple[Slot, AvailabilityResult]]:
    """One result per active slot of a slot-based product on a date."""
    if not product.is_slot_based:
        raise SchedulingValidationError(f"{product.name} is a day rental and has no time slots.")
    now = now or timezone.now()
    slots = product.slots.filter(is_active=True).order_by("display_order", "start_time_local")
    return [(slot, check_availability(product, event_date, slot=slot, now=now)) for slot in slots]


def blocked_dates(
    product: Product,
    start: date,
    end: date,
    *,
    now: datetime | None = None,
) -> list[date]:
    """
    Dates a calendar widget should grey out

    A slot-based date is blocked only when every slot is unavailable.
    """
    now = now or timezone.now()
    blocked = []
    for day in _date_span(start, end):
        if product.is_slot_based:
            results = list_slot_availability(product, day, now=now)
            if not any(result.available for _, result in results):
                blocked.append(day)
        elif not check_availability(product, day, now=now).available:
            blocked.append(day)
    logger.debug(f"{len(blocked)} blocked dates for product {product.pk} between {start} and {end}")
    return blocked