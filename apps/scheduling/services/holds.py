"""
Soft Hold Manager

A soft hold reserves a window for one checkout session while the customer
pays. Holds expire lazily: nothing has to run at expiry time because every
read ignores expired blocks and every writer purges them first.
"""

from __future__ import annotations

import logging
from datetime import date, datetime

from django.db import IntegrityError, transaction  # type: ignore
from django.utils import timezone  # type: ignore

from apps.catalog.models import Product, Slot
from shared.application.uow import DjangoUnitOfWork

from ..conf import hold_duration
from ..domain.events import HoldCreated, HoldReleased
from ..domain.windows import ServiceWindow
from ..exceptions import ResourceConflictError, SchedulingValidationError, UnavailableError
from ..models import SoftHold
from .availability import check_availability
from .blocks import claim_blocks, lock_queryset_if_possible, purge_expired_holds

logger = logging.getLogger(__name__)


def create_hold(
    session_id: str,
    *,
    product: Product,
    unit_id: int,
    delivery_crew_id: int,
    pickup_crew_id: int,
    window: ServiceWindow,
    slot: Slot | None = None,
    now: datetime | None = None,
) -> SoftHold:
    """
    Reserve a window for a checkout session

    Supersedes any earlier hold of the same session. Either the new hold and
    all of its blocks exist afterwards, or ResourceConflictError is raised
    and the previous hold is left untouched.
    """
    if not session_id:
        raise SchedulingValidationError("A checkout session id is required.")
    now = now or timezone.now()

    with DjangoUnitOfWork() as uow:
        purge_expired_holds(now)

        previous = lock_queryset_if_possible(SoftHold.objects.filter(session_id=session_id)).first()
        superseded_id = None
        if previous is not None:
            superseded_id = previous.pk
            previous.delete()

        hold = SoftHold(
            session_id=session_id,
            product=product,
            unit_id=unit_id,
            delivery_crew_id=delivery_crew_id,
            pickup_crew_id=pickup_crew_id,
            slot=slot,
            created_at=now,
            expires_at=now + hold_duration(),
        )
        hold.apply_window(window)
        try:
            with transaction.atomic():
                hold.save()
        except IntegrityError as exc:
            # Same session racing itself from two tabs
            raise ResourceConflictError() from exc

        claim_blocks(
            window,
            unit_id=unit_id,
            delivery_crew_id=delivery_crew_id,
            pickup_crew_id=pickup_crew_id,
            hold=hold,
        )
        uow.record(HoldCreated(
            aggregate_id=hold.pk,
            session_id=session_id,
            unit_id=unit_id,
            delivery_crew_id=delivery_crew_id,
            pickup_crew_id=pickup_crew_id,
            expires_at=hold.expires_at,
            superseded_hold_id=superseded_id,
        ))

    logger.info(
        f"Hold {hold.pk} created for session {session_id}: unit {unit_id}, "
        f"window {window.service}, expires {hold.expires_at.isoformat()}"
    )
    return hold


def hold_for_checkout(
    session_id: str,
    product: Product,
    event_date: date,
    *,
    booking_type: str | None = None,
    slot: Slot | None = None,
    now: datetime | None = None,
) -> SoftHold:
    """Pick resources with the availability engine and hold them."""
    now = now or timezone.now()
    result = check_availability(
        product,
        event_date,
        booking_type=booking_type,
        slot=slot,
        now=now,
        exclude_session_id=session_id,
    )
    if not result.available:
        raise UnavailableError(reason=result.reason)
    return create_hold(
        session_id,
        product=product,
        unit_id=result.unit_id,
        delivery_crew_id=result.delivery_crew_id,
        pickup_crew_id=result.pickup_crew_id,
        window=result.window,
        slot=slot,
        now=now,
    )


def release_hold(session_id: str, reason: str = "released") -> bool:
    """
    Discard a session's hold and its blocks

    Idempotent: releasing a missing or already released hold returns False.
    """
    with DjangoUnitOfWork() as uow:
        deleted, _ = SoftHold.objects.filter(session_id=session_id).delete()
        if deleted:
            uow.record(HoldReleased(session_id=session_id, reason=reason))

    if deleted:
        logger.info(f"Hold for session {session_id} released ({reason})")
    return bool(deleted)


def get_active_hold(session_id: str, now: datetime | None = None) -> SoftHold | None:
    now = now or timezone.now()
    return SoftHold.objects.filter(session_id=session_id, expires_at__gt=now).first()
