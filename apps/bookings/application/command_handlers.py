"""
Booking Command Handlers

These are the use cases for the booking domain.
They orchestrate domain operations within transactions.

Commands:
- PromoteHoldCommand: Turn a paid checkout hold into a confirmed booking
- ReleaseHoldCommand: Drop a hold after a failed or abandoned payment
- CreateBookingCommand: Staff enters a booking by hand
- CancelBookingCommand: Cancel a booking and free its window
- AdvanceBookingStatusCommand: Record delivery, pickup and completion
- RequestCancellationCommand: Customer asks to cancel
- ReviewCancellationCommand: Staff approves or denies a cancellation request
- RescheduleBookingCommand: Move a booking to a new window
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional
import logging

from django.utils import timezone

from shared.application.message_bus import message_bus
from shared.application.uow import DjangoUnitOfWork
from apps.catalog.models import Product, Slot
from apps.scheduling.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    ResourceConflictError,
    SchedulingValidationError,
    SlotLostError,
    UnavailableError,
)
from apps.scheduling.models import SoftHold
from apps.scheduling.services.availability import check_availability, get_product, get_slot
from apps.scheduling.services.blocks import (
    claim_blocks,
    lock_queryset_if_possible,
    purge_expired_holds,
    release_booking_blocks,
)
from apps.scheduling.services.holds import release_hold
from apps.bookings.domain import lifecycle
from apps.bookings.domain.events import (
    BookingCancelled,
    BookingConfirmed,
    BookingCreatedByStaff,
    BookingRescheduled,
    BookingStatusChanged,
    CancellationRequested,
    SlotLost,
)
from apps.bookings.models import Booking, CancellationRequest

logger = logging.getLogger(__name__)


# ===== Commands =====

@dataclass
class PromoteHoldCommand:
    """
    Command issued by the payment webhook on success

    The target fields are only used when the hold is gone (expired and
    purged) and the window has to be claimed from scratch.
    """
    session_id: str
    payment_reference: str = ''
    customer_name: str = ''
    customer_email: str = ''
    customer_phone: str = ''
    event_address: str = ''
    product_id: Optional[int] = None
    event_date: Optional[date] = None
    booking_type: Optional[str] = None
    slot_id: Optional[int] = None
    now: Optional[datetime] = None


@dataclass
class ReleaseHoldCommand:
    """Command issued by the payment webhook on failure"""
    session_id: str
    reason: str = 'payment_failed'


@dataclass
class CreateBookingCommand:
    """Command for staff entering a phone or walk-in booking"""
    product_id: int
    event_date: date
    booking_type: Optional[str] = None
    slot_id: Optional[int] = None
    customer_name: str = ''
    customer_email: str = ''
    customer_phone: str = ''
    event_address: str = ''
    internal_notes: str = ''
    now: Optional[datetime] = None


@dataclass
class CancelBookingCommand:
    booking_id: int
    reason: str = ''


@dataclass
class AdvanceBookingStatusCommand:
    booking_id: int
    status: str


@dataclass
class RequestCancellationCommand:
    booking_id: int
    reason: str = ''


@dataclass
class ReviewCancellationCommand:
    request_id: int
    approve: bool
    notes: str = ''


@dataclass
class RescheduleBookingCommand:
    booking_id: int
    new_event_date: date
    booking_type: Optional[str] = None
    slot_id: Optional[int] = None
    now: Optional[datetime] = None


def _locked_booking(booking_id) -> Booking:
    booking = lock_queryset_if_possible(Booking.objects.filter(pk=booking_id)).first()
    if booking is None:
        raise NotFoundError(f"Booking {booking_id} not found.")
    return booking


def _change_status(booking: Booking, target: str):
    lifecycle.ensure_transition(booking.status, target)
    old_status = booking.status
    booking.status = target
    booking.add_event(BookingStatusChanged(
        aggregate_id=booking.pk,
        booking_id=booking.pk,
        old_status=old_status,
        new_status=target,
    ))


def _cancel(booking: Booking, reason: str, now: datetime):
    """Cancel inside the caller's unit of work; frees the window immediately."""
    old_status = booking.status
    lifecycle.ensure_transition(old_status, lifecycle.CANCELLED)
    freed = release_booking_blocks(booking)
    booking.status = lifecycle.CANCELLED
    booking.cancelled_at = now
    booking.cancellation_reason = reason
    booking.save(update_fields=['status', 'cancelled_at', 'cancellation_reason', 'updated_at'])
    booking.add_event(BookingCancelled(
        aggregate_id=booking.pk,
        booking_id=booking.pk,
        booking_number=booking.booking_number,
        payment_reference=booking.payment_reference,
        reason=reason,
        old_status=old_status,
    ))
    logger.info(f"Booking {booking.booking_number} cancelled from {old_status}, {freed} blocks freed")


# ===== Command Handlers =====

class PromoteHoldHandler:
    """
    Handler for PromoteHold command

    Strategy:
    1. A booking already exists for the session -> return it (webhook retry)
    2. Lock the session's hold. Still valid -> in one transaction delete the
       hold and insert the booking with blocks for the same resources
    3. Hold expired or missing -> re-run availability and claim the window
       for the booking in the same transaction
    4. Unavailable or the slice constraint fires -> SlotLostError. Never
       retried automatically and never double-books.
    """

    def handle(self, command: PromoteHoldCommand) -> Booking:
        existing = Booking.objects.filter(session_id=command.session_id).first()
        if existing is not None:
            logger.info(f"Session {command.session_id} already promoted to {existing.booking_number}")
            return existing

        now = command.now or timezone.now()
        try:
            with DjangoUnitOfWork() as uow:
                hold = lock_queryset_if_possible(
                    SoftHold.objects.filter(session_id=command.session_id)
                ).first()

                # A concurrent retry may have committed while we waited for the lock
                existing = Booking.objects.filter(session_id=command.session_id).first()
                if existing is not None:
                    return existing

                if hold is not None and not hold.is_expired(now):
                    booking = self._from_hold(command, hold)
                    promoted = True
                else:
                    booking = self._reclaim(command, hold, now)
                    promoted = False

                booking.add_event(BookingConfirmed(
                    aggregate_id=booking.pk,
                    booking_id=booking.pk,
                    booking_number=booking.booking_number,
                    session_id=booking.session_id,
                    unit_id=booking.unit_id,
                    event_date=booking.event_date,
                    promoted_from_hold=promoted,
                ))
                uow.collect_events(booking)
        except (SlotLostError, ResourceConflictError) as exc:
            self._report_slot_lost(command, exc)
            if isinstance(exc, SlotLostError):
                raise
            raise SlotLostError(reason=exc.code) from exc

        logger.info(
            f"Booking {booking.booking_number} confirmed for session {command.session_id} "
            f"({'from hold' if promoted else 're-claimed'})"
        )
        return booking

    def _new_booking(self, command: PromoteHoldCommand, product, slot, window, unit_id, delivery_crew_id, pickup_crew_id):
        booking = Booking(
            product=product,
            unit_id=unit_id,
            delivery_crew_id=delivery_crew_id,
            pickup_crew_id=pickup_crew_id,
            slot=slot,
            status=lifecycle.CONFIRMED,
            source=Booking.Source.CHECKOUT,
            session_id=command.session_id,
            payment_reference=command.payment_reference,
            customer_name=command.customer_name,
            customer_email=command.customer_email,
            customer_phone=command.customer_phone,
            event_address=command.event_address,
        )
        booking.apply_window(window)
        booking.save()
        claim_blocks(
            window,
            unit_id=unit_id,
            delivery_crew_id=delivery_crew_id,
            pickup_crew_id=pickup_crew_id,
            booking=booking,
        )
        return booking

    def _from_hold(self, command: PromoteHoldCommand, hold: SoftHold) -> Booking:
        window = hold.window
        product, slot = hold.product, hold.slot
        unit_id, delivery_crew_id, pickup_crew_id = hold.unit_id, hold.delivery_crew_id, hold.pickup_crew_id
        # Deleting first releases the hold's slices for the booking's own blocks
        hold.delete()
        return self._new_booking(command, product, slot, window, unit_id, delivery_crew_id, pickup_crew_id)

    def _reclaim(self, command: PromoteHoldCommand, hold: Optional[SoftHold], now: datetime) -> Booking:
        if hold is not None:
            product, slot = hold.product, hold.slot
            event_date, booking_type = hold.event_date, hold.booking_type or None
            hold.delete()
        else:
            if command.product_id is None or command.event_date is None:
                raise SlotLostError(reason='hold_missing')
            product = get_product(command.product_id)
            slot = get_slot(product, command.slot_id) if command.slot_id else None
            event_date, booking_type = command.event_date, command.booking_type

        purge_expired_holds(now)
        # Lead time was satisfied when the hold was taken; a slow payment must not fail on it
        result = check_availability(
            product,
            event_date,
            booking_type=booking_type,
            slot=slot,
            now=now,
            lead_time_hours=0,
            exclude_session_id=command.session_id,
        )
        if not result.available:
            raise SlotLostError(reason=result.reason)
        return self._new_booking(
            command,
            product,
            slot,
            result.window,
            result.unit_id,
            result.delivery_crew_id,
            result.pickup_crew_id,
        )

    def _report_slot_lost(self, command: PromoteHoldCommand, exc: Exception):
        reason = getattr(exc, 'reason', None) or getattr(exc, 'code', 'conflict')
        logger.error(
            f"Slot lost for session {command.session_id} after payment "
            f"{command.payment_reference or '-'}: {reason}"
        )
        message_bus.publish_events([SlotLost(
            session_id=command.session_id,
            payment_reference=command.payment_reference,
            reason=reason,
            product_id=command.product_id,
            event_date=command.event_date,
        )])


class ReleaseHoldHandler:
    def handle(self, command: ReleaseHoldCommand) -> bool:
        return release_hold(command.session_id, reason=command.reason)


class CreateBookingHandler:
    """
    Handler for staff-entered bookings

    Uses the same guarded insert as checkout, so a phone booking can never
    take a window an online customer is holding or has paid for. Staff are
    not bound by the customer lead time.
    """

    def handle(self, command: CreateBookingCommand) -> Booking:
        now = command.now or timezone.now()
        product = get_product(command.product_id)
        slot = get_slot(product, command.slot_id) if command.slot_id else None

        with DjangoUnitOfWork() as uow:
            purge_expired_holds(now)
            result = check_availability(
                product,
                command.event_date,
                booking_type=command.booking_type,
                slot=slot,
                now=now,
                lead_time_hours=0,
            )
            if not result.available:
                raise UnavailableError(reason=result.reason)

            booking = Booking(
                product=product,
                unit_id=result.unit_id,
                delivery_crew_id=result.delivery_crew_id,
                pickup_crew_id=result.pickup_crew_id,
                slot=slot,
                status=lifecycle.PENDING,
                source=Booking.Source.ADMIN,
                customer_name=command.customer_name,
                customer_email=command.customer_email,
                customer_phone=command.customer_phone,
                event_address=command.event_address,
                internal_notes=command.internal_notes,
            )
            booking.apply_window(result.window)
            booking.save()
            claim_blocks(
                result.window,
                unit_id=result.unit_id,
                delivery_crew_id=result.delivery_crew_id,
                pickup_crew_id=result.pickup_crew_id,
                booking=booking,
            )
            booking.add_event(BookingCreatedByStaff(
                aggregate_id=booking.pk,
                booking_id=booking.pk,
                booking_number=booking.booking_number,
                event_date=booking.event_date,
            ))
            uow.collect_events(booking)

        logger.info(f"Staff booking {booking.booking_number} created for {booking.event_date}")
        return booking


class CancelBookingHandler:
    """Cancel a booking; its blocks are deleted in the same transaction"""

    def handle(self, command: CancelBookingCommand) -> Booking:
        with DjangoUnitOfWork() as uow:
            booking = _locked_booking(command.booking_id)
            _cancel(booking, command.reason, timezone.now())
            booking.cancellation_requests.filter(
                status=CancellationRequest.Status.PENDING
            ).update(status=CancellationRequest.Status.APPROVED, reviewed_at=timezone.now())
            uow.collect_events(booking)
        return booking


class AdvanceBookingStatusHandler:
    ALLOWED_TARGETS = {lifecycle.CONFIRMED, lifecycle.DELIVERED, lifecycle.PICKED_UP, lifecycle.COMPLETED}

    def handle(self, command: AdvanceBookingStatusCommand) -> Booking:
        if command.status not in self.ALLOWED_TARGETS:
            raise SchedulingValidationError(
                f"Use the cancellation endpoints to move a booking to {command.status}."
            )
        with DjangoUnitOfWork() as uow:
            booking = _locked_booking(command.booking_id)
            if booking.status == lifecycle.PENDING_CANCELLATION:
                # Only the cancellation review may move it out of this state
                raise InvalidTransitionError(
                    f"Booking {booking.booking_number} has a cancellation request awaiting review."
                )
            _change_status(booking, command.status)
            booking.save(update_fields=['status', 'updated_at'])
            uow.collect_events(booking)
        logger.info(f"Booking {booking.booking_number} is now {booking.status}")
        return booking


class RequestCancellationHandler:
    def handle(self, command: RequestCancellationCommand) -> CancellationRequest:
        with DjangoUnitOfWork() as uow:
            booking = _locked_booking(command.booking_id)
            _change_status(booking, lifecycle.PENDING_CANCELLATION)
            booking.save(update_fields=['status', 'updated_at'])
            request = CancellationRequest.objects.create(booking=booking, reason=command.reason)
            booking.add_event(CancellationRequested(
                aggregate_id=booking.pk,
                booking_id=booking.pk,
                request_id=request.pk,
            ))
            uow.collect_events(booking)
        logger.info(f"Cancellation requested for booking {booking.booking_number}")
        return request


class ReviewCancellationHandler:
    """Approve -> booking cancelled and window freed; deny -> back to confirmed"""

    def handle(self, command: ReviewCancellationCommand) -> CancellationRequest:
        now = timezone.now()
        with DjangoUnitOfWork() as uow:
            request = lock_queryset_if_possible(
                CancellationRequest.objects.filter(pk=command.request_id)
            ).first()
            if request is None:
                raise NotFoundError(f"Cancellation request {command.request_id} not found.")
            if request.status != CancellationRequest.Status.PENDING:
                raise SchedulingValidationError("This cancellation request has already been reviewed.")

            booking = _locked_booking(request.booking_id)
            if command.approve:
                _cancel(booking, request.reason or 'Cancellation request approved', now)
                request.status = CancellationRequest.Status.APPROVED
            else:
                _change_status(booking, lifecycle.CONFIRMED)
                booking.save(update_fields=['status', 'updated_at'])
                request.status = CancellationRequest.Status.DENIED
            request.review_notes = command.notes
            request.reviewed_at = now
            request.save(update_fields=['status', 'review_notes', 'reviewed_at'])
            uow.collect_events(booking)

        logger.info(f"Cancellation request {request.pk} {request.status}")
        return request


class RescheduleBookingHandler:
    """
    Move a booking to a new window

    The booking's own blocks are ignored while searching, its current unit
    and crews are preferred, and the swap of old blocks for new ones happens
    in one transaction. Any failure leaves the original window in place.
    """

    def handle(self, command: RescheduleBookingCommand) -> Booking:
        now = command.now or timezone.now()
        with DjangoUnitOfWork() as uow:
            booking = _locked_booking(command.booking_id)
            if booking.status not in lifecycle.RESCHEDULABLE:
                raise InvalidTransitionError(
                    f"A {booking.status} booking cannot be rescheduled."
                )
            product: Product = booking.product
            slot: Optional[Slot] = get_slot(product, command.slot_id) if command.slot_id else None

            result = check_availability(
                product,
                command.new_event_date,
                booking_type=command.booking_type,
                slot=slot,
                now=now,
                exclude_booking_id=booking.pk,
                prefer_unit_id=booking.unit_id,
                prefer_delivery_crew_id=booking.delivery_crew_id,
                prefer_pickup_crew_id=booking.pickup_crew_id,
                original_booking_type=booking.booking_type,
            )
            if not result.available:
                raise ResourceConflictError(
                    "That date is not available. Please choose another time.",
                    reason=result.reason,
                )

            old_event_date = booking.event_date
            purge_expired_holds(now)
            release_booking_blocks(booking)
            claim_blocks(
                result.window,
                unit_id=result.unit_id,
                delivery_crew_id=result.delivery_crew_id,
                pickup_crew_id=result.pickup_crew_id,
                booking=booking,
            )
            booking.apply_window(result.window)
            booking.slot = slot
            booking.unit_id = result.unit_id
            booking.delivery_crew_id = result.delivery_crew_id
            booking.pickup_crew_id = result.pickup_crew_id
            if booking.status == lifecycle.PENDING_CANCELLATION:
                _change_status(booking, lifecycle.CONFIRMED)
            booking.save()
            booking.cancellation_requests.filter(
                status=CancellationRequest.Status.PENDING
            ).update(status=CancellationRequest.Status.RESOLVED, reviewed_at=now)

            booking.add_event(BookingRescheduled(
                aggregate_id=booking.pk,
                booking_id=booking.pk,
                booking_number=booking.booking_number,
                old_event_date=old_event_date,
                new_event_date=booking.event_date,
            ))
            uow.collect_events(booking)

        logger.info(
            f"Booking {booking.booking_number} rescheduled from {old_event_date} to {booking.event_date}"
        )
        return booking


# Single instances so the bus sees the same callables on every registration
HANDLERS = {
    PromoteHoldCommand: PromoteHoldHandler().handle,
    ReleaseHoldCommand: ReleaseHoldHandler().handle,
    CreateBookingCommand: CreateBookingHandler().handle,
    CancelBookingCommand: CancelBookingHandler().handle,
    AdvanceBookingStatusCommand: AdvanceBookingStatusHandler().handle,
    RequestCancellationCommand: RequestCancellationHandler().handle,
    ReviewCancellationCommand: ReviewCancellationHandler().handle,
    RescheduleBookingCommand: RescheduleBookingHandler().handle,
}
