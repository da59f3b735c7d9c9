"""
Booking Domain Events

Events that represent things that have happened in the booking domain.
These are published after successful transaction commits.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from shared.domain.base import DomainEvent


@dataclass(kw_only=True)
class BookingConfirmed(DomainEvent):
    """
    Event: A paid hold (or a freshly claimed window) became a booking

    Triggers:
    - Send booking confirmation to the customer
    - Notify the assigned crews
    """
    booking_id: int
    booking_number: str
    session_id: Optional[str]
    unit_id: int
    event_date: date
    promoted_from_hold: bool


@dataclass(kw_only=True)
class BookingCreatedByStaff(DomainEvent):
    """Event: Staff entered a booking by hand (status pending)"""
    booking_id: int
    booking_number: str
    event_date: date


@dataclass(kw_only=True)
class SlotLost(DomainEvent):
    """
    Event: Payment succeeded but the window was no longer available

    Triggers:
    - Alert staff to contact the customer
    - Hand the payment to the refund workflow
    """
    session_id: str
    payment_reference: str
    reason: str
    product_id: Optional[int] = None
    event_date: Optional[date] = None


@dataclass(kw_only=True)
class BookingCancelled(DomainEvent):
    """
    Event: Booking was cancelled and its window freed

    Triggers:
    - Refund workflow (external)
    - Notify the customer
    """
    booking_id: int
    booking_number: str
    payment_reference: str
    reason: str
    old_status: str


@dataclass(kw_only=True)
class BookingRescheduled(DomainEvent):
    """Event: Booking moved to a new window"""
    booking_id: int
    booking_number: str
    old_event_date: date
    new_event_date: date


@dataclass(kw_only=True)
class BookingStatusChanged(DomainEvent):
    """Event: Operational progress (delivered, picked up, completed...)"""
    booking_id: int
    old_status: str
    new_status: str


@dataclass(kw_only=True)
class CancellationRequested(DomainEvent):
    """Event: Customer asked to cancel; staff must review"""
    booking_id: int
    request_id: int
