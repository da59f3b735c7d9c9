"""Admin registration for the catalog."""

from __future__ import annotations

from django.contrib import admin

from .models import BlackoutDate, Crew, CrewShift, Product, Slot, Unit


class UnitInline(admin.TabularInline):
    model = Unit
    extra = 0


class SlotInline(admin.TabularInline):
    model = Slot
    extra = 0


class CrewShiftInline(admin.TabularInline):
    model = CrewShift
    extra = 0


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "scheduling_mode", "lead_time_hours", "is_active")
    list_filter = ("scheduling_mode", "is_active")
    search_fields = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}
    inlines = [UnitInline, SlotInline]


@admin.register(Crew)
class CrewAdmin(admin.ModelAdmin):
    list_display = ("name", "phone", "is_active")
    list_filter = ("is_active",)
    inlines = [CrewShiftInline]


@admin.register(BlackoutDate)
class BlackoutDateAdmin(admin.ModelAdmin):
    list_display = ("scope", "product", "unit", "start_date", "end_date", "reason")
    list_filter = ("scope",)
