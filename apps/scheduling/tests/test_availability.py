"""Availability query engine: reasons, blackouts, crews and slot mode."""

from datetime import date, datetime, time, timedelta, timezone

import pytest

from apps.catalog.models import BlackoutDate, CrewShift, Unit
from apps.catalog.testing import make_crew, make_product, make_slot_product
from apps.scheduling.exceptions import NotFoundError, SchedulingValidationError
from apps.scheduling.services.availability import (
    BLACKOUT,
    LEAD_TIME,
    NO_CREW,
    UNIT_BOOKED,
    blocked_dates,
    check_availability,
    get_product,
    get_slot,
    list_day_availability,
    list_slot_availability,
    validate_before_checkout,
)
from apps.scheduling.services.holds import hold_for_checkout

EVENT_DATE = date(2031, 6, 10)


@pytest.mark.django_db
def test_free_day_assigns_unit_and_crews(product, crew, now):
    result = check_availability(product, EVENT_DATE, now=now)

    assert result.available
    assert result.reason is None
    assert result.unit_id == product.units.get().pk
    assert result.delivery_crew_id == crew.pk
    assert result.pickup_crew_id == crew.pk
    assert result.window.booking_type == "daily"


@pytest.mark.django_db
def test_lead_time_is_measured_to_the_start_of_delivery(product, crew):
    # Delivery leg starts 07:30 New York time, i.e. 11:30 UTC
    too_late = datetime(2031, 6, 9, 18, 0, tzinfo=timezone.utc)
    in_time = datetime(2031, 6, 9, 17, 0, tzinfo=timezone.utc)

    assert check_availability(product, EVENT_DATE, now=too_late).reason == LEAD_TIME
    assert check_availability(product, EVENT_DATE, now=in_time).available


@pytest.mark.django_db
def test_explicit_lead_time_overrides_product_setting(product, crew):
    now = datetime(2031, 6, 10, 10, 0, tzinfo=timezone.utc)

    assert check_availability(product, EVENT_DATE, now=now, lead_time_hours=0).available


@pytest.mark.django_db
def test_global_blackout_blocks_every_product(product, crew, now):
    BlackoutDate.objects.create(scope=BlackoutDate.Scope.GLOBAL, start_date=EVENT_DATE, end_date=EVENT_DATE)

    result = check_availability(product, EVENT_DATE, now=now)

    assert not result.available
    assert result.reason == BLACKOUT


@pytest.mark.django_db
def test_product_blackout_only_blocks_that_product(product, crew, now):
    other = make_product(units=1)
    BlackoutDate.objects.create(
        scope=BlackoutDate.Scope.PRODUCT,
        product=product,
        start_date=EVENT_DATE - timedelta(days=1),
        end_date=EVENT_DATE + timedelta(days=1),
    )

    assert check_availability(product, EVENT_DATE, now=now).reason == BLACKOUT
    assert check_availability(other, EVENT_DATE, now=now).available


@pytest.mark.django_db
def test_blackout_on_pickup_day_blocks_weekend_rental(product, crew, now):
    saturday = date(2031, 6, 14)
    BlackoutDate.objects.create(
        scope=BlackoutDate.Scope.GLOBAL,
        start_date=saturday + timedelta(days=2),
        end_date=saturday + timedelta(days=2),
    )

    assert check_availability(product, saturday, booking_type="weekend", now=now).reason == BLACKOUT
    assert check_availability(product, saturday, booking_type="daily", now=now).available


@pytest.mark.django_db
def test_unit_blackout_falls_back_to_other_units(crew, now):
    product = make_product(units=2)
    first, second = product.units.order_by("unit_number")
    BlackoutDate.objects.create(
        scope=BlackoutDate.Scope.UNIT, unit=first, start_date=EVENT_DATE, end_date=EVENT_DATE
    )

    result = check_availability(product, EVENT_DATE, now=now)
    assert result.available
    assert result.unit_id == second.pk

    BlackoutDate.objects.create(
        scope=BlackoutDate.Scope.UNIT, unit=second, start_date=EVENT_DATE, end_date=EVENT_DATE
    )
    assert check_availability(product, EVENT_DATE, now=now).reason == BLACKOUT


@pytest.mark.django_db
def test_units_out_of_service_are_never_offered(product, crew, now):
    product.units.update(status=Unit.Status.MAINTENANCE)

    assert check_availability(product, EVENT_DATE, now=now).reason == UNIT_BOOKED


@pytest.mark.django_db
def test_held_unit_is_reported_booked_except_to_its_own_session(product, crew, now):
    hold_for_checkout("session-a", product, EVENT_DATE, now=now)

    assert check_availability(product, EVENT_DATE, now=now).reason == UNIT_BOOKED
    assert check_availability(product, EVENT_DATE, now=now, exclude_session_id="session-a").available
    assert validate_before_checkout(product, EVENT_DATE, session_id="session-a", now=now).available


@pytest.mark.django_db
def test_busy_crew_reports_no_crew(crew, now):
    product = make_product(units=2)
    hold_for_checkout("session-a", product, EVENT_DATE, now=now)

    result = check_availability(product, EVENT_DATE, now=now)

    assert not result.available
    assert result.reason == NO_CREW


@pytest.mark.django_db
def test_without_active_crews_nothing_is_available(product, now):
    make_crew(is_active=False)

    assert check_availability(product, EVENT_DATE, now=now).reason == NO_CREW


@pytest.mark.django_db
def test_crew_shift_must_cover_each_leg(product, crew, now):
    shift = CrewShift.objects.create(
        crew=crew,
        day_of_week=EVENT_DATE.weekday(),
        start_time=time(12, 0),
        end_time=time(22, 0),
    )
    assert check_availability(product, EVENT_DATE, now=now).reason == NO_CREW

    shift.start_time = time(7, 0)
    shift.save()
    assert check_availability(product, EVENT_DATE, now=now).available

    shift.is_available = False
    shift.save()
    assert check_availability(product, EVENT_DATE, now=now).reason == NO_CREW


@pytest.mark.django_db
def test_crew_without_shift_for_the_weekday_counts_as_working(product, crew, now):
    CrewShift.objects.create(crew=crew, day_of_week=(EVENT_DATE.weekday() + 1) % 7, is_available=False)

    assert check_availability(product, EVENT_DATE, now=now).available


@pytest.mark.django_db
def test_slot_product_rejects_booking_type_and_requires_slot(slot_product, crew, now):
    with pytest.raises(SchedulingValidationError):
        check_availability(slot_product, EVENT_DATE, booking_type="daily", now=now)
    with pytest.raises(SchedulingValidationError):
        check_availability(slot_product, EVENT_DATE, now=now)


@pytest.mark.django_db
def test_day_product_rejects_slot(product, slot_product, crew, now):
    with pytest.raises(SchedulingValidationError):
        check_availability(product, EVENT_DATE, slot=slot_product.slots.get(), now=now)
    with pytest.raises(SchedulingValidationError):
        list_slot_availability(product, EVENT_DATE, now=now)
    with pytest.raises(SchedulingValidationError):
        list_day_availability(slot_product, EVENT_DATE, EVENT_DATE, now=now)


@pytest.mark.django_db
def test_overlapping_slots_share_the_single_unit(crew, now):
    product = make_slot_product(slots=[(time(10), time(14)), (time(15), time(19))])
    morning, afternoon = product.slots.order_by("display_order")

    hold_for_checkout("session-a", product, EVENT_DATE, slot=morning, now=now)
    results = dict(list_slot_availability(product, EVENT_DATE, now=now))

    assert results[morning].reason == UNIT_BOOKED
    assert results[afternoon].reason == UNIT_BOOKED


@pytest.mark.django_db
def test_touching_slot_windows_do_not_conflict(crew, now):
    # Service windows 06:45-12:15 and 12:15-17:15 meet without overlapping
    product = make_slot_product(slots=[(time(8), time(10)), (time(13, 30), time(15))])
    early, late = product.slots.order_by("display_order")

    hold_for_checkout("session-a", product, EVENT_DATE, slot=early, now=now)
    result = check_availability(product, EVENT_DATE, slot=late, now=now)

    assert result.available
    assert result.delivery_crew_id == crew.pk


@pytest.mark.django_db
def test_blocked_dates_lists_only_unavailable_days(product, crew, now):
    hold_for_checkout("session-a", product, EVENT_DATE, now=now)

    days = blocked_dates(product, EVENT_DATE - timedelta(days=1), EVENT_DATE + timedelta(days=1), now=now)

    assert days == [EVENT_DATE]


@pytest.mark.django_db
def test_blocked_dates_for_slot_product_needs_every_slot_taken(crew, now):
    product = make_slot_product(slots=[(time(8), time(10)), (time(13, 30), time(15))])
    early = product.slots.order_by("display_order").first()
    hold_for_checkout("session-a", product, EVENT_DATE, slot=early, now=now)

    assert blocked_dates(product, EVENT_DATE, EVENT_DATE, now=now) == []


@pytest.mark.django_db
def test_date_range_is_validated(product, now):
    with pytest.raises(SchedulingValidationError):
        list_day_availability(product, EVENT_DATE, EVENT_DATE - timedelta(days=1), now=now)
    with pytest.raises(SchedulingValidationError):
        list_day_availability(product, EVENT_DATE, EVENT_DATE + timedelta(days=120), now=now)


@pytest.mark.django_db
def test_unknown_product_and_foreign_slot_are_not_found(product, slot_product):
    product.is_active = False
    product.save()

    with pytest.raises(NotFoundError):
        get_product(product.pk)
    with pytest.raises(NotFoundError):
        get_product("abc")
    with pytest.raises(NotFoundError):
        get_slot(make_slot_product(), slot_product.slots.get().pk)
