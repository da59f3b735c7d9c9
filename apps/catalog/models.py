"""Catalog models: products, units, crews, slots and blackout dates."""

from __future__ import annotations

from datetime import date, time

from django.core.exceptions import ValidationError  # type: ignore
from django.db import models  # type: ignore
from django.db.models import Q  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Product(models.Model):
    """A rentable inflatable model; physical copies are tracked as units."""

    class SchedulingMode(models.TextChoices):
        DAY_RENTAL = "day_rental", _("Day rental")
        SLOT_BASED = "slot_based", _("Time slots")

    name = models.CharField(max_length=120)
    slug = models.SlugField(max_length=140, unique=True)
    description = models.TextField(blank=True)
    scheduling_mode = models.CharField(
        max_length=20,
        choices=SchedulingMode.choices,
        default=SchedulingMode.DAY_RENTAL,
    )
    lead_time_hours = models.PositiveSmallIntegerField(
        default=18,
        help_text=_("Minimum hours between now and the start of the delivery leg."),
    )
    setup_minutes = models.PositiveSmallIntegerField(default=60)
    teardown_minutes = models.PositiveSmallIntegerField(default=30)
    travel_buffer_minutes = models.PositiveSmallIntegerField(default=30)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Product")
        verbose_name_plural = _("Products")
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                condition=Q(travel_buffer_minutes__gt=0),
                name="product_positive_travel_buffer",
            ),
        ]

    def __str__(self) -> str:
        return self.name

    @property
    def is_slot_based(self) -> bool:
        return self.scheduling_mode == self.SchedulingMode.SLOT_BASED


class Unit(models.Model):
    """A physical copy of a product. Exactly one unit is assigned per booking."""

    class Status(models.TextChoices):
        AVAILABLE = "available", _("Available")
        MAINTENANCE = "maintenance", _("In maintenance")
        RETIRED = "retired", _("Retired")

    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name="units")
    unit_number = models.PositiveSmallIntegerField()
    nickname = models.CharField(max_length=80, blank=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.AVAILABLE)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Unit")
        verbose_name_plural = _("Units")
        ordering = ["product", "unit_number"]
        constraints = [
            models.UniqueConstraint(fields=["product", "unit_number"], name="unit_number_unique_per_product"),
        ]

    def __str__(self) -> str:
        return f"{self.product.name} #{self.unit_number}"


class Crew(models.Model):
    """A delivery/setup team. Crews are shared across all products."""

    name = models.CharField(max_length=80, unique=True)
    phone = models.CharField(max_length=32, blank=True)
    notes = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Crew")
        verbose_name_plural = _("Crews")
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class CrewShift(models.Model):
    """Weekly availability template for a crew (one row per weekday)."""

    class Weekday(models.IntegerChoices):
        MONDAY = 0, _("Monday")
        TUESDAY = 1, _("Tuesday")
        WEDNESDAY = 2, _("Wednesday")
        THURSDAY = 3, _("Thursday")
        FRIDAY = 4, _("Friday")
        SATURDAY = 5, _("Saturday")
        SUNDAY = 6, _("Sunday")

    crew = models.ForeignKey(Crew, on_delete=models.CASCADE, related_name="shifts")
    day_of_week = models.PositiveSmallIntegerField(choices=Weekday.choices)
    start_time = models.TimeField(default=time(7, 0))
    end_time = models.TimeField(default=time(22, 0))
    is_available = models.BooleanField(default=True)

    class Meta:
        verbose_name = _("Crew shift")
        verbose_name_plural = _("Crew shifts")
        ordering = ["crew", "day_of_week"]
        constraints = [
            models.UniqueConstraint(fields=["crew", "day_of_week"], name="crew_shift_unique_weekday"),
            models.CheckConstraint(
                condition=Q(end_time__gt=models.F("start_time")),
                name="crew_shift_valid_hours",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.crew} {self.get_day_of_week_display()} {self.start_time}-{self.end_time}"

    def covers(self, start: time, end: time) -> bool:
        """True if a leg between two local wall-clock times fits the shift."""
        return self.is_available and self.start_time <= start and end <= self.end_time


class Slot(models.Model):
    """A fixed local time window offered by a slot-based product."""

    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name="slots")
    label = models.CharField(max_length=60)
    start_time_local = models.TimeField()
    end_time_local = models.TimeField()
    display_order = models.PositiveSmallIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        verbose_name = _("Slot")
        verbose_name_plural = _("Slots")
        ordering = ["product", "display_order", "start_time_local"]
        constraints = [
            models.CheckConstraint(
                condition=Q(end_time_local__gt=models.F("start_time_local")),
                name="slot_valid_hours",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.label} ({self.start_time_local:%H:%M}-{self.end_time_local:%H:%M})"


class BlackoutDateQuerySet(models.QuerySet):
    def touching(self, first: date, last: date):
        """Blackouts intersecting the inclusive span [first, last]."""
        return self.filter(start_date__lte=last, end_date__gte=first)


class BlackoutDate(models.Model):
    """Dates on which rentals are refused, globally, per product or per unit."""

    class Scope(models.TextChoices):
        GLOBAL = "global", _("Whole business")
        PRODUCT = "product", _("Product")
        UNIT = "unit", _("Unit")

    scope = models.CharField(max_length=10, choices=Scope.choices, default=Scope.GLOBAL)
    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="blackout_dates",
    )
    unit = models.ForeignKey(
        Unit,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="blackout_dates",
    )
    start_date = models.DateField()
    end_date = models.DateField(help_text=_("Inclusive."))
    reason = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = BlackoutDateQuerySet.as_manager()

    class Meta:
        verbose_name = _("Blackout date")
        verbose_name_plural = _("Blackout dates")
        ordering = ["start_date"]
        constraints = [
            models.CheckConstraint(
                condition=Q(end_date__gte=models.F("start_date")),
                name="blackout_valid_dates",
            ),
            models.CheckConstraint(
                condition=(
                    Q(scope="global", product__isnull=True, unit__isnull=True)
                    | Q(scope="product", product__isnull=False, unit__isnull=True)
                    | Q(scope="unit", unit__isnull=False)
                ),
                name="blackout_scope_matches_target",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.get_scope_display()} blackout {self.start_date}..{self.end_date}"

    def clean(self) -> None:
        if self.end_date and self.start_date and self.end_date < self.start_date:
            raise ValidationError(_("End date must not be before start date."))
        if self.scope == self.Scope.PRODUCT and not self.product_id:
            raise ValidationError(_("Product blackouts need a product."))
        if self.scope == self.Scope.UNIT and not self.unit_id:
            raise ValidationError(_("Unit blackouts need a unit."))
