"""
Booking Lifecycle

    pending -> confirmed -> delivered -> picked_up -> completed
    confirmed -> pending_cancellation -> confirmed | cancelled
    pending, confirmed, delivered -> cancelled

A completed booking can never be cancelled. Cancelled and completed are
terminal.
"""

from __future__ import annotations

from apps.scheduling.exceptions import InvalidTransitionError

PENDING = "pending"
CONFIRMED = "confirmed"
DELIVERED = "delivered"
PICKED_UP = "picked_up"
COMPLETED = "completed"
CANCELLED = "cancelled"
PENDING_CANCELLATION = "pending_cancellation"

TRANSITIONS: dict[str, frozenset[str]] = {
    PENDING: frozenset({CONFIRMED, CANCELLED}),
    CONFIRMED: frozenset({DELIVERED, CANCELLED, PENDING_CANCELLATION}),
    DELIVERED: frozenset({PICKED_UP, CANCELLED}),
    PICKED_UP: frozenset({COMPLETED}),
    PENDING_CANCELLATION: frozenset({CONFIRMED, CANCELLED}),
    COMPLETED: frozenset(),
    CANCELLED: frozenset(),
}

# Statuses whose blocks still occupy units and crews
OCCUPYING = frozenset({PENDING, CONFIRMED, DELIVERED, PICKED_UP, PENDING_CANCELLATION})

# Statuses a booking can be moved to a new date from
RESCHEDULABLE = frozenset({PENDING, CONFIRMED, PENDING_CANCELLATION})


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def ensure_transition(current: str, target: str) -> None:
    if not can_transition(current, target):
        raise InvalidTransitionError(f"A booking cannot move from {current} to {target}.")
