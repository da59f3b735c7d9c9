"""Service window derivation and interval arithmetic."""

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from apps.scheduling.domain.windows import (
    DAILY,
    SUNDAY,
    WEEKEND,
    day_rental_window,
    rental_dates,
    slot_window,
    suggest_booking_type,
)
from shared.domain.value_objects import DateRange, TimeRange

TZ = ZoneInfo("America/New_York")

SATURDAY = date(2031, 6, 14)
EVENT_SUNDAY = date(2031, 6, 15)
TUESDAY = date(2031, 6, 10)


def _day_window(event_date, booking_type):
    return day_rental_window(
        event_date,
        booking_type,
        travel_minutes=30,
        delivery_window=(time(8), time(11)),
        same_day_pickup_window=(time(18), time(20)),
        next_day_pickup_window=(time(8), time(10)),
        tz=TZ,
    )


def _local(day, hour, minute=0):
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=TZ)


def test_slot_window_includes_setup_teardown_and_travel():
    window = slot_window(
        SATURDAY,
        time(15),
        time(19),
        setup_minutes=60,
        teardown_minutes=120,
        travel_minutes=15,
        tz=TZ,
        slot_id=7,
    )

    assert window.service.start == _local(SATURDAY, 13, 45)
    assert window.service.end == _local(SATURDAY, 21, 15)
    assert window.delivery_leg == TimeRange(_local(SATURDAY, 13, 45), _local(SATURDAY, 15))
    assert window.pickup_leg == TimeRange(_local(SATURDAY, 19), _local(SATURDAY, 21, 15))
    assert window.delivery_date == window.pickup_date == SATURDAY
    assert window.slot_id == 7
    assert window.booking_type == ""


def test_daily_rental_uses_same_day_pickup_window():
    window = _day_window(TUESDAY, DAILY)

    assert window.delivery_date == window.pickup_date == TUESDAY
    assert window.delivery_leg == TimeRange(_local(TUESDAY, 7, 30), _local(TUESDAY, 11))
    assert window.pickup_leg == TimeRange(_local(TUESDAY, 18), _local(TUESDAY, 20, 30))
    assert window.service == TimeRange(_local(TUESDAY, 7, 30), _local(TUESDAY, 20, 30))


def test_weekend_rental_is_picked_up_two_days_later_in_the_morning():
    window = _day_window(SATURDAY, WEEKEND)
    monday = SATURDAY + timedelta(days=2)

    assert window.delivery_date == SATURDAY
    assert window.pickup_date == monday
    assert window.pickup_leg == TimeRange(_local(monday, 8), _local(monday, 10, 30))
    assert window.dates == DateRange.inclusive(SATURDAY, monday)


def test_sunday_rental_spans_the_day_before_and_after():
    window = _day_window(EVENT_SUNDAY, SUNDAY)

    assert window.delivery_date == EVENT_SUNDAY - timedelta(days=1)
    assert window.pickup_date == EVENT_SUNDAY + timedelta(days=1)
    assert window.service.start == _local(EVENT_SUNDAY - timedelta(days=1), 7, 30)


def test_rental_dates_rejects_unknown_type():
    with pytest.raises(ValueError):
        rental_dates(TUESDAY, "fortnight")


@pytest.mark.parametrize(
    "event_date, original, expected",
    [
        (EVENT_SUNDAY, "", SUNDAY),
        (SATURDAY, WEEKEND, WEEKEND),
        (SATURDAY, "", DAILY),
        (TUESDAY, SUNDAY, DAILY),
    ],
)
def test_suggest_booking_type(event_date, original, expected):
    assert suggest_booking_type(event_date, original) == expected


def test_touching_ranges_do_not_overlap():
    first = TimeRange(_local(TUESDAY, 8), _local(TUESDAY, 12, 15))
    second = TimeRange(_local(TUESDAY, 12, 15), _local(TUESDAY, 17))

    assert not first.overlaps_with(second)
    assert not set(first.slice_starts(timedelta(minutes=15))) & set(second.slice_starts(timedelta(minutes=15)))


def test_expanded_range_is_aligned_to_granularity():
    rng = TimeRange(
        datetime(2031, 6, 10, 12, 7, tzinfo=timezone.utc),
        datetime(2031, 6, 10, 12, 31, tzinfo=timezone.utc),
    )

    expanded = rng.expanded_to(timedelta(minutes=15))

    assert expanded.start == datetime(2031, 6, 10, 12, 0, tzinfo=timezone.utc)
    assert expanded.end == datetime(2031, 6, 10, 12, 45, tzinfo=timezone.utc)
    assert len(list(rng.slice_starts(timedelta(minutes=15)))) == 3


def test_time_range_requires_aware_ordered_datetimes():
    with pytest.raises(ValueError):
        TimeRange(datetime(2031, 6, 10, 12), datetime(2031, 6, 10, 13))
    with pytest.raises(ValueError):
        TimeRange(_local(TUESDAY, 13), _local(TUESDAY, 12))
