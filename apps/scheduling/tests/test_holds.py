"""Soft holds: guarded claims, expiry, supersession and release."""

from datetime import date, timedelta

import pytest
from django.utils import timezone

from apps.catalog.testing import make_product
from apps.scheduling.exceptions import ResourceConflictError, SchedulingValidationError, UnavailableError
from apps.scheduling.models import BlockSlice, BookingBlock, SoftHold
from apps.scheduling.services.availability import UNIT_BOOKED, check_availability
from apps.scheduling.services.holds import create_hold, get_active_hold, hold_for_checkout, release_hold
from apps.scheduling.tasks import purge_expired_holds

EVENT_DATE = date(2031, 6, 10)


@pytest.mark.django_db
def test_hold_claims_unit_and_both_crew_legs(product, crew, now):
    hold = hold_for_checkout("session-a", product, EVENT_DATE, now=now)

    blocks = BookingBlock.objects.filter(hold=hold)
    assert sorted(blocks.values_list("block_type", flat=True)) == ["delivery_leg", "full_rental", "pickup_leg"]
    assert all(block.expires_at == hold.expires_at for block in blocks)
    assert hold.expires_at == now + timedelta(minutes=15)
    assert hold.remaining_seconds(now) == 15 * 60
    # 07:30-20:30 is 52 quarter hours for the unit, legs 14 + 10 for the crew
    assert BlockSlice.objects.filter(resource_type="unit").count() == 52
    assert BlockSlice.objects.filter(resource_type="crew").count() == 24


@pytest.mark.django_db
def test_second_claim_on_the_same_unit_conflicts(product, crew, now):
    first = hold_for_checkout("session-a", product, EVENT_DATE, now=now)

    with pytest.raises(ResourceConflictError) as excinfo:
        create_hold(
            "session-b",
            product=product,
            unit_id=first.unit_id,
            delivery_crew_id=first.delivery_crew_id,
            pickup_crew_id=first.pickup_crew_id,
            window=first.window,
            now=now,
        )

    assert excinfo.value.code == "conflict"
    assert SoftHold.objects.filter(session_id="session-b").count() == 0
    assert BookingBlock.objects.filter(hold=first).count() == 3


@pytest.mark.django_db
def test_checkout_hold_on_taken_day_is_unavailable(product, crew, now):
    hold_for_checkout("session-a", product, EVENT_DATE, now=now)

    with pytest.raises(UnavailableError) as excinfo:
        hold_for_checkout("session-b", product, EVENT_DATE, now=now)

    assert excinfo.value.reason == UNIT_BOOKED


@pytest.mark.django_db
def test_expired_hold_no_longer_blocks(product, crew, now):
    hold_for_checkout("session-a", product, EVENT_DATE, now=now)
    later = now + timedelta(minutes=16)

    assert check_availability(product, EVENT_DATE, now=later).available
    hold = hold_for_checkout("session-b", product, EVENT_DATE, now=later)

    assert hold.session_id == "session-b"
    assert not SoftHold.objects.filter(session_id="session-a").exists()
    assert get_active_hold("session-a", later) is None


@pytest.mark.django_db
def test_new_hold_supersedes_the_sessions_previous_hold(product, crew, now):
    hold_for_checkout("session-a", product, EVENT_DATE, now=now)
    replacement = hold_for_checkout("session-a", product, EVENT_DATE + timedelta(days=1), now=now)

    assert SoftHold.objects.filter(session_id="session-a").get() == replacement
    assert replacement.event_date == EVENT_DATE + timedelta(days=1)
    assert check_availability(product, EVENT_DATE, now=now).available


@pytest.mark.django_db
def test_failed_replacement_keeps_the_previous_hold(product, crew, now):
    other = make_product(units=1)
    hold_for_checkout("session-b", other, EVENT_DATE, now=now)
    first = hold_for_checkout("session-a", product, EVENT_DATE + timedelta(days=1), now=now)

    # The only crew is busy with session-b on EVENT_DATE
    with pytest.raises(UnavailableError):
        hold_for_checkout("session-a", product, EVENT_DATE, now=now)

    assert SoftHold.objects.get(session_id="session-a") == first


@pytest.mark.django_db
def test_release_is_idempotent(product, crew, now):
    hold_for_checkout("session-a", product, EVENT_DATE, now=now)

    assert release_hold("session-a") is True
    assert release_hold("session-a") is False
    assert release_hold("never-held") is False
    assert BookingBlock.objects.count() == 0
    assert BlockSlice.objects.count() == 0


@pytest.mark.django_db
def test_hold_requires_session_id(product, crew, now):
    result = check_availability(product, EVENT_DATE, now=now)

    with pytest.raises(SchedulingValidationError):
        create_hold(
            "",
            product=product,
            unit_id=result.unit_id,
            delivery_crew_id=result.delivery_crew_id,
            pickup_crew_id=result.pickup_crew_id,
            window=result.window,
            now=now,
        )


@pytest.mark.django_db
def test_reaper_task_purges_expired_holds(product, crew):
    hold_for_checkout("fresh", product, EVENT_DATE + timedelta(days=1))
    hold_for_checkout("stale", product, EVENT_DATE, now=timezone.now() - timedelta(minutes=20))

    assert purge_expired_holds() == {"purged": 1}
    assert list(SoftHold.objects.values_list("session_id", flat=True)) == ["fresh"]


@pytest.mark.django_db
def test_crew_leg_is_guarded_across_products(product, crew, now):
    first = hold_for_checkout("session-a", product, EVENT_DATE, now=now)
    other = make_product(units=1)

    with pytest.raises(ResourceConflictError):
        create_hold(
            "session-b",
            product=other,
            unit_id=other.units.get().pk,
            delivery_crew_id=crew.pk,
            pickup_crew_id=crew.pk,
            window=first.window,
            now=now,
        )

    assert not SoftHold.objects.filter(session_id="session-b").exists()
