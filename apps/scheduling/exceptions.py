"""
Scheduling errors

Policy outcomes such as "unit booked" are returned as availability results,
not raised. These exceptions cover invalid requests and lost races, and
each carries the HTTP status and machine code the API responds with.
"""

from __future__ import annotations


class SchedulingError(Exception):
    """Base exception for the availability and booking engine."""

    code = "scheduling_error"
    http_status = 400
    default_message = "The request could not be processed."

    def __init__(self, message: str | None = None, *, reason: str | None = None):
        self.message = message or self.default_message
        self.reason = reason
        super().__init__(self.message)

    def as_dict(self) -> dict:
        payload = {"code": self.code, "detail": self.message}
        if self.reason:
            payload["reason"] = self.reason
        return payload


class SchedulingValidationError(SchedulingError):
    """Malformed or contradictory request (bad date, slot for a day-rental product...)."""

    code = "validation_error"
    http_status = 400


class NotFoundError(SchedulingError):
    """Unknown product, slot, hold or booking."""

    code = "not_found"
    http_status = 404
    default_message = "Not found."


class ResourceConflictError(SchedulingError):
    """The storage constraint rejected an overlapping claim."""

    code = "conflict"
    http_status = 409
    default_message = "Someone just booked this slot! Please choose another time."


class UnavailableError(SchedulingError):
    """The availability query found no unit or crew for the requested window."""

    code = "unavailable"
    http_status = 409
    default_message = "That time is no longer available. Please choose another time."


class SlotLostError(SchedulingError):
    """Payment succeeded but the hold expired and the window was taken meanwhile."""

    code = "slot_lost"
    http_status = 409
    default_message = (
        "Your payment went through but the time slot was taken while it was processing. "
        "Our team will contact you to reschedule or refund."
    )


class InvalidTransitionError(SchedulingError):
    """A booking status change not allowed by the lifecycle."""

    code = "invalid_transition"
    http_status = 400
