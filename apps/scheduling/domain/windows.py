"""
Service Window Derivation

Turns a product, a date and either a booking type (day rental) or a slot
(slot mode) into the concrete intervals a rental occupies:

- the service window, during which the unit is away from the warehouse
- the delivery leg and pickup leg, during which a crew is busy

All wall-clock times are interpreted in the business time zone and the
resulting instants are timezone-aware.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from shared.domain.base import ValueObject
from shared.domain.value_objects import DateRange, TimeRange

DAILY = "daily"
WEEKEND = "weekend"
SUNDAY = "sunday"
BOOKING_TYPES = (DAILY, WEEKEND, SUNDAY)


@dataclass(frozen=True)
class ServiceWindow(ValueObject):
    """Everything a single rental occupies, derived once and passed around."""

    event_date: date
    delivery_date: date
    pickup_date: date
    service: TimeRange
    delivery_leg: TimeRange
    pickup_leg: TimeRange
    event: Optional[TimeRange] = None
    booking_type: str = ""
    slot_id: Optional[int] = None

    @property
    def dates(self) -> DateRange:
        """Local calendar dates the rental touches, delivery through pickup."""
        return DateRange.inclusive(self.delivery_date, self.pickup_date)

    def to_dict(self) -> dict:
        payload = {
            "event_date": self.event_date.isoformat(),
            "delivery_date": self.delivery_date.isoformat(),
            "pickup_date": self.pickup_date.isoformat(),
            "booking_type": self.booking_type or None,
            "slot_id": self.slot_id,
            "service_start": self.service.start.isoformat(),
            "service_end": self.service.end.isoformat(),
            "delivery_leg_start": self.delivery_leg.start.isoformat(),
            "delivery_leg_end": self.delivery_leg.end.isoformat(),
            "pickup_leg_start": self.pickup_leg.start.isoformat(),
            "pickup_leg_end": self.pickup_leg.end.isoformat(),
        }
        if self.event is not None:
            payload["event_start"] = self.event.start.isoformat()
            payload["event_end"] = self.event.end.isoformat()
        return payload


def local_datetime(day: date, wall_clock: time, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, wall_clock, tzinfo=tz)


def rental_dates(event_date: date, booking_type: str) -> tuple[date, date]:
    """
    Delivery and pickup dates for a day rental

    daily: same day both ends; weekend: pickup two days later;
    sunday: delivered the day before, picked up the day after.
    """
    if booking_type == DAILY:
        return event_date, event_date
    if booking_type == WEEKEND:
        return event_date, event_date + timedelta(days=2)
    if booking_type == SUNDAY:
        return event_date - timedelta(days=1), event_date + timedelta(days=1)
    raise ValueError(f"Unknown booking type: {booking_type!r}")


def suggest_booking_type(event_date: date, original_type: str = "") -> str:
    """Booking type for a date when the customer did not pick one."""
    weekday = event_date.weekday()
    if weekday == 6:
        return SUNDAY
    if weekday == 5 and original_type == WEEKEND:
        return WEEKEND
    return DAILY


def day_rental_window(
    event_date: date,
    booking_type: str,
    *,
    travel_minutes: int,
    delivery_window: tuple[time, time],
    same_day_pickup_window: tuple[time, time],
    next_day_pickup_window: tuple[time, time],
    tz: ZoneInfo,
) -> ServiceWindow:
    delivery_date, pickup_date = rental_dates(event_date, booking_type)
    travel = timedelta(minutes=travel_minutes)

    delivery_start = local_datetime(delivery_date, delivery_window[0], tz)
    delivery_end = local_datetime(delivery_date, delivery_window[1], tz)
    pickup_window = same_day_pickup_window if pickup_date == delivery_date else next_day_pickup_window
    pickup_start = local_datetime(pickup_date, pickup_window[0], tz)
    pickup_end = local_datetime(pickup_date, pickup_window[1], tz)

    delivery_leg = TimeRange(delivery_start - travel, delivery_end)
    pickup_leg = TimeRange(pickup_start, pickup_end + travel)
    return ServiceWindow(
        event_date=event_date,
        delivery_date=delivery_date,
        pickup_date=pickup_date,
        service=TimeRange(delivery_leg.start, pickup_leg.end),
        delivery_leg=delivery_leg,
        pickup_leg=pickup_leg,
        booking_type=booking_type,
    )


def slot_window(
    event_date: date,
    start_time_local: time,
    end_time_local: time,
    *,
    setup_minutes: int,
    teardown_minutes: int,
    travel_minutes: int,
    tz: ZoneInfo,
    slot_id: Optional[int] = None,
) -> ServiceWindow:
    """
    Window for a slot booking

    Slot 15:00-19:00 with setup 60, teardown 120 and travel 15 gives a
    service window of 13:45-21:15.
    """
    event = TimeRange(
        local_datetime(event_date, start_time_local, tz),
        local_datetime(event_date, end_time_local, tz),
    )
    service_start = event.start - timedelta(minutes=setup_minutes + travel_minutes)
    service_end = event.end + timedelta(minutes=teardown_minutes + travel_minutes)
    return ServiceWindow(
        event_date=event_date,
        delivery_date=event_date,
        pickup_date=event_date,
        service=TimeRange(service_start, service_end),
        delivery_leg=TimeRange(service_start, event.start),
        pickup_leg=TimeRange(event.end, service_end),
        event=event,
        slot_id=slot_id,
    )
