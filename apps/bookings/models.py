"""Booking domain models."""

from __future__ import annotations

import secrets

from django.db import models  # type: ignore
from django.db.models import Q  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from apps.scheduling.models import ServiceWindowFields
from shared.domain.base import EventRecorder


class Booking(EventRecorder, ServiceWindowFields):
    """A confirmed (or manually entered) rental of one unit."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        CONFIRMED = "confirmed", _("Confirmed")
        DELIVERED = "delivered", _("Delivered")
        PICKED_UP = "picked_up", _("Picked up")
        COMPLETED = "completed", _("Completed")
        CANCELLED = "cancelled", _("Cancelled")
        PENDING_CANCELLATION = "pending_cancellation", _("Cancellation requested")

    class Source(models.TextChoices):
        CHECKOUT = "checkout", _("Online checkout")
        ADMIN = "admin", _("Entered by staff")

    booking_number = models.CharField(max_length=16, unique=True, editable=False)
    product = models.ForeignKey("catalog.Product", on_delete=models.PROTECT, related_name="bookings")
    unit = models.ForeignKey("catalog.Unit", on_delete=models.PROTECT, related_name="bookings")
    delivery_crew = models.ForeignKey(
        "catalog.Crew",
        on_delete=models.PROTECT,
        related_name="delivery_bookings",
    )
    pickup_crew = models.ForeignKey(
        "catalog.Crew",
        on_delete=models.PROTECT,
        related_name="pickup_bookings",
    )
    slot = models.ForeignKey(
        "catalog.Slot",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="bookings",
    )
    status = models.CharField(max_length=32, choices=Status.choices, default=Status.PENDING)
    source = models.CharField(max_length=20, choices=Source.choices, default=Source.CHECKOUT)
    session_id = models.CharField(
        max_length=128,
        null=True,
        blank=True,
        help_text=_("Checkout session that produced the booking; makes payment webhooks idempotent."),
    )
    payment_reference = models.CharField(max_length=128, blank=True)
    customer_name = models.CharField(max_length=120, blank=True)
    customer_email = models.EmailField(blank=True)
    customer_phone = models.CharField(max_length=32, blank=True)
    event_address = models.CharField(max_length=255, blank=True)
    internal_notes = models.TextField(blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["session_id"],
                condition=Q(session_id__isnull=False),
                name="booking_unique_checkout_session",
            ),
            models.CheckConstraint(
                condition=Q(service_end__gt=models.F("service_start")),
                name="booking_valid_window",
            ),
        ]
        indexes = [
            models.Index(fields=["status"]),
            models.Index(fields=["event_date"]),
        ]

    def __str__(self) -> str:
        return f"Booking {self.booking_number} ({self.get_status_display()})"

    def save(self, *args, **kwargs):  # type: ignore
        if self._state.adding and not self.booking_number:
            self.booking_number = self.generate_booking_number()
        super().save(*args, **kwargs)

    @staticmethod
    def generate_booking_number() -> str:
        return f"BB{secrets.token_hex(4).upper()}"


class CancellationRequest(models.Model):
    """A customer's request to cancel, reviewed by staff."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending review")
        APPROVED = "approved", _("Approved")
        DENIED = "denied", _("Denied")
        RESOLVED = "resolved", _("Resolved by reschedule")

    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name="cancellation_requests")
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    reason = models.TextField(blank=True)
    review_notes = models.TextField(blank=True)
    reviewed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Cancellation request")
        verbose_name_plural = _("Cancellation requests")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Cancellation request for {self.booking.booking_number} ({self.status})"
