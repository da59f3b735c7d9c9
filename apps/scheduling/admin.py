"""Admin registration for occupancy records (read-mostly)."""

from __future__ import annotations

from django.contrib import admin

from .models import BookingBlock, SoftHold


@admin.register(BookingBlock)
class BookingBlockAdmin(admin.ModelAdmin):
    list_display = ("resource_type", "resource_id", "block_type", "start", "end", "booking", "hold", "expires_at")
    list_filter = ("resource_type", "block_type")
    readonly_fields = ("created_at",)


@admin.register(SoftHold)
class SoftHoldAdmin(admin.ModelAdmin):
    list_display = ("session_id", "product", "unit", "event_date", "expires_at")
    search_fields = ("session_id",)
