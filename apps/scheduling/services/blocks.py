"""Guarded writes of booking blocks and their slices."""

from __future__ import annotations

import logging
from datetime import datetime

from django.db import IntegrityError, transaction  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore
from django.utils import timezone  # type: ignore

from ..conf import granularity
from ..domain.windows import ServiceWindow
from ..exceptions import ResourceConflictError
from ..models import BlockSlice, BookingBlock, SoftHold

logger = logging.getLogger(__name__)


def lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


def planned_blocks(
    window: ServiceWindow,
    unit_id: int,
    delivery_crew_id: int,
    pickup_crew_id: int,
) -> list[BookingBlock]:
    """Unsaved blocks for a rental: the unit for the whole window, crews per leg."""
    return [
        BookingBlock(
            resource_type=BookingBlock.ResourceType.UNIT,
            resource_id=unit_id,
            block_type=BookingBlock.BlockType.FULL_RENTAL,
            start=window.service.start,
            end=window.service.end,
        ),
        BookingBlock(
            resource_type=BookingBlock.ResourceType.CREW,
            resource_id=delivery_crew_id,
            block_type=BookingBlock.BlockType.DELIVERY_LEG,
            start=window.delivery_leg.start,
            end=window.delivery_leg.end,
        ),
        BookingBlock(
            resource_type=BookingBlock.ResourceType.CREW,
            resource_id=pickup_crew_id,
            block_type=BookingBlock.BlockType.PICKUP_LEG,
            start=window.pickup_leg.start,
            end=window.pickup_leg.end,
        ),
    ]


def claim_blocks(
    window: ServiceWindow,
    *,
    unit_id: int,
    delivery_crew_id: int,
    pickup_crew_id: int,
    booking=None,
    hold: SoftHold | None = None,
) -> list[BookingBlock]:
    """
    Insert the blocks for a rental and their slices

    Runs in a savepoint. A unique violation on the slices means another
    writer already owns part of the window; it surfaces as
    ResourceConflictError and leaves nothing behind.
    """
    step = granularity()
    blocks = planned_blocks(window, unit_id, delivery_crew_id, pickup_crew_id)
    for block in blocks:
        block.booking = booking
        block.hold = hold
        block.expires_at = hold.expires_at if hold is not None else None

    try:
        with transaction.atomic():
            for block in blocks:
                block.save()
            slices = []
            seen = set()
            for block in blocks:
                for slice_start in block.interval.slice_starts(step):
                    key = (block.resource_type, block.resource_id, slice_start)
                    if key in seen:
                        continue
                    seen.add(key)
                    slices.append(
                        BlockSlice(
                            block=block,
                            resource_type=block.resource_type,
                            resource_id=block.resource_id,
                            slice_start=slice_start,
                        )
                    )
            BlockSlice.objects.bulk_create(slices)
    except IntegrityError as exc:
        logger.info(
            f"Block claim rejected for unit {unit_id}, crews {delivery_crew_id}/{pickup_crew_id}, "
            f"window {window.service}: {exc}"
        )
        raise ResourceConflictError() from exc

    return blocks


def release_booking_blocks(booking) -> int:
    """Delete every block owned by a booking; returns the number removed."""
    _, per_model = BookingBlock.objects.filter(booking=booking).delete()
    return per_model.get(BookingBlock._meta.label, 0)


def purge_expired_holds(now: datetime | None = None) -> int:
    """
    Delete holds past their expiry together with their blocks

    Writers call this inside their own transaction before claiming, so
    expired slices never stand in the way of a new claim.
    """
    now = now or timezone.now()
    expired = SoftHold.objects.filter(expires_at__lte=now)
    count = expired.count()
    if count:
        expired.delete()
        logger.info(f"Purged {count} expired soft holds")
    return count
