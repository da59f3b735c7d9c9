"""Occupancy models: booking blocks, their slices and soft holds."""

from __future__ import annotations

from datetime import datetime

from django.db import models  # type: ignore
from django.db.models import Q  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from shared.domain.value_objects import TimeRange

from .domain.windows import ServiceWindow


class BookingType(models.TextChoices):
    DAILY = "daily", _("Daily")
    WEEKEND = "weekend", _("Weekend")
    SUNDAY = "sunday", _("Sunday")


class ServiceWindowFields(models.Model):
    """Columns persisting a ServiceWindow; shared by holds and bookings."""

    event_date = models.DateField()
    delivery_date = models.DateField()
    pickup_date = models.DateField()
    booking_type = models.CharField(max_length=10, choices=BookingType.choices, blank=True)
    service_start = models.DateTimeField()
    service_end = models.DateTimeField()
    delivery_leg_start = models.DateTimeField()
    delivery_leg_end = models.DateTimeField()
    pickup_leg_start = models.DateTimeField()
    pickup_leg_end = models.DateTimeField()

    class Meta:
        abstract = True

    def apply_window(self, window: ServiceWindow) -> None:
        self.event_date = window.event_date
        self.delivery_date = window.delivery_date
        self.pickup_date = window.pickup_date
        self.booking_type = window.booking_type
        self.service_start = window.service.start
        self.service_end = window.service.end
        self.delivery_leg_start = window.delivery_leg.start
        self.delivery_leg_end = window.delivery_leg.end
        self.pickup_leg_start = window.pickup_leg.start
        self.pickup_leg_end = window.pickup_leg.end

    @property
    def window(self) -> ServiceWindow:
        event = None
        if self.booking_type == "":
            event = TimeRange(self.delivery_leg_end, self.pickup_leg_start)
        return ServiceWindow(
            event_date=self.event_date,
            delivery_date=self.delivery_date,
            pickup_date=self.pickup_date,
            service=TimeRange(self.service_start, self.service_end),
            delivery_leg=TimeRange(self.delivery_leg_start, self.delivery_leg_end),
            pickup_leg=TimeRange(self.pickup_leg_start, self.pickup_leg_end),
            event=event,
            booking_type=self.booking_type,
            slot_id=getattr(self, "slot_id", None),
        )


class BookingBlockQuerySet(models.QuerySet):
    def live(self, now: datetime | None = None):
        """Blocks of bookings plus blocks of holds that have not expired."""
        now = now or timezone.now()
        return self.filter(Q(expires_at__isnull=True) | Q(expires_at__gt=now))

    def overlapping(self, interval: TimeRange):
        return self.filter(start__lt=interval.end, end__gt=interval.start)

    def for_resources(self, resource_type: str, resource_ids):
        return self.filter(resource_type=resource_type, resource_id__in=list(resource_ids))


class BookingBlock(models.Model):
    """
    A half-open interval during which one unit or crew is committed.

    Owned by exactly one booking or one soft hold. Hold blocks carry the
    hold's expiry so that reads can ignore them without a join.
    """

    class ResourceType(models.TextChoices):
        UNIT = "unit", _("Unit")
        CREW = "crew", _("Crew")

    class BlockType(models.TextChoices):
        FULL_RENTAL = "full_rental", _("Full rental")
        DELIVERY_LEG = "delivery_leg", _("Delivery leg")
        PICKUP_LEG = "pickup_leg", _("Pickup leg")

    resource_type = models.CharField(max_length=10, choices=ResourceType.choices)
    resource_id = models.PositiveBigIntegerField()
    block_type = models.CharField(max_length=20, choices=BlockType.choices)
    start = models.DateTimeField()
    end = models.DateTimeField()
    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="blocks",
    )
    hold = models.ForeignKey(
        "scheduling.SoftHold",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="blocks",
    )
    expires_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = BookingBlockQuerySet.as_manager()

    class Meta:
        verbose_name = _("Booking block")
        verbose_name_plural = _("Booking blocks")
        ordering = ["start"]
        constraints = [
            models.CheckConstraint(condition=Q(end__gt=models.F("start")), name="block_valid_interval"),
            models.CheckConstraint(
                condition=(
                    Q(booking__isnull=False, hold__isnull=True)
                    | Q(booking__isnull=True, hold__isnull=False)
                ),
                name="block_single_owner",
            ),
        ]
        indexes = [
            models.Index(fields=["resource_type", "resource_id", "start", "end"]),
            models.Index(fields=["expires_at"]),
        ]

    def __str__(self) -> str:
        return f"{self.resource_type}:{self.resource_id} {self.block_type} {self.start:%Y-%m-%d %H:%M}"

    @property
    def interval(self) -> TimeRange:
        return TimeRange(self.start, self.end)


class BlockSlice(models.Model):
    """
    One granularity-sized quantum of a block.

    The unique index is the exclusion constraint: two blocks that overlap on
    the same resource always share at least one quantum, so the second
    insert fails in the database no matter how the callers interleave.
    """

    block = models.ForeignKey(BookingBlock, on_delete=models.CASCADE, related_name="slices")
    resource_type = models.CharField(max_length=10, choices=BookingBlock.ResourceType.choices)
    resource_id = models.PositiveBigIntegerField()
    slice_start = models.DateTimeField()

    class Meta:
        verbose_name = _("Block slice")
        verbose_name_plural = _("Block slices")
        constraints = [
            models.UniqueConstraint(
                fields=["resource_type", "resource_id", "slice_start"],
                name="block_slice_no_overlap",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.resource_type}:{self.resource_id} @ {self.slice_start:%Y-%m-%d %H:%M}"


class SoftHold(ServiceWindowFields):
    """
    A short-lived reservation for one checkout session.

    At most one per session. Expiry is lazy: reads ignore holds whose
    expires_at has passed and writers purge them before claiming.
    """

    session_id = models.CharField(max_length=128, unique=True)
    product = models.ForeignKey("catalog.Product", on_delete=models.CASCADE, related_name="holds")
    unit = models.ForeignKey("catalog.Unit", on_delete=models.CASCADE, related_name="holds")
    delivery_crew = models.ForeignKey("catalog.Crew", on_delete=models.CASCADE, related_name="+")
    pickup_crew = models.ForeignKey("catalog.Crew", on_delete=models.CASCADE, related_name="+")
    slot = models.ForeignKey(
        "catalog.Slot",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="holds",
    )
    created_at = models.DateTimeField()
    expires_at = models.DateTimeField(db_index=True)

    class Meta:
        verbose_name = _("Soft hold")
        verbose_name_plural = _("Soft holds")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Hold {self.session_id} on {self.unit_id} until {self.expires_at:%H:%M}"

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.expires_at <= (now or timezone.now())

    def remaining_seconds(self, now: datetime | None = None) -> int:
        remaining = (self.expires_at - (now or timezone.now())).total_seconds()
        return max(int(remaining), 0)
