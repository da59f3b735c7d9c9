"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking, CancellationRequest


class CancellationRequestInline(admin.TabularInline):
    model = CancellationRequest
    extra = 0
    readonly_fields = ("status", "reason", "review_notes", "reviewed_at", "created_at")
    can_delete = False


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    """Read-mostly: windows and resources change through the API commands."""

    list_display = (
        "booking_number",
        "product",
        "unit",
        "event_date",
        "booking_type",
        "status",
        "source",
        "customer_name",
        "created_at",
    )
    list_filter = ("status", "source", "booking_type", "product")
    search_fields = ("booking_number", "customer_name", "customer_email", "session_id", "payment_reference")
    date_hierarchy = "event_date"
    inlines = [CancellationRequestInline]
    readonly_fields = (
        "booking_number",
        "product",
        "unit",
        "delivery_crew",
        "pickup_crew",
        "slot",
        "status",
        "session_id",
        "event_date",
        "delivery_date",
        "pickup_date",
        "booking_type",
        "service_start",
        "service_end",
        "delivery_leg_start",
        "delivery_leg_end",
        "pickup_leg_start",
        "pickup_leg_end",
        "cancelled_at",
        "created_at",
        "updated_at",
    )


@admin.register(CancellationRequest)
class CancellationRequestAdmin(admin.ModelAdmin):
    list_display = ("booking", "status", "created_at", "reviewed_at")
    list_filter = ("status",)
    search_fields = ("booking__booking_number",)
