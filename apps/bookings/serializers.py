"""Serializers for the booking domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.scheduling.models import BookingType

from .domain import lifecycle
from .models import Booking, CancellationRequest

DISPLAY_FIELDS = {"product_name", "unit_number", "delivery_crew_name", "pickup_crew_name"}


class BookingSerializer(serializers.ModelSerializer):
    product_name = serializers.ReadOnlyField(source="product.name")
    unit_number = serializers.ReadOnlyField(source="unit.unit_number")
    delivery_crew_name = serializers.ReadOnlyField(source="delivery_crew.name")
    pickup_crew_name = serializers.ReadOnlyField(source="pickup_crew.name")

    class Meta:
        model = Booking
        fields = [
            "id",
            "booking_number",
            "status",
            "source",
            "product",
            "product_name",
            "unit",
            "unit_number",
            "delivery_crew",
            "delivery_crew_name",
            "pickup_crew",
            "pickup_crew_name",
            "slot",
            "booking_type",
            "event_date",
            "delivery_date",
            "pickup_date",
            "service_start",
            "service_end",
            "delivery_leg_start",
            "delivery_leg_end",
            "pickup_leg_start",
            "pickup_leg_end",
            "customer_name",
            "customer_email",
            "customer_phone",
            "event_address",
            "payment_reference",
            "internal_notes",
            "cancelled_at",
            "cancellation_reason",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [name for name in fields if name not in DISPLAY_FIELDS]


class CustomerBookingSerializer(BookingSerializer):
    """What a customer sees of their own booking."""

    class Meta(BookingSerializer.Meta):
        fields = [
            name
            for name in BookingSerializer.Meta.fields
            if name not in ("internal_notes", "delivery_crew", "delivery_crew_name", "pickup_crew", "pickup_crew_name")
        ]
        read_only_fields = [name for name in fields if name not in DISPLAY_FIELDS]


class BookingCreateSerializer(serializers.Serializer):
    """Staff entry of a phone or walk-in booking."""

    product_id = serializers.IntegerField()
    event_date = serializers.DateField()
    booking_type = serializers.ChoiceField(choices=BookingType.choices, required=False, allow_blank=True)
    slot_id = serializers.IntegerField(required=False, allow_null=True)
    customer_name = serializers.CharField(max_length=120)
    customer_email = serializers.EmailField(required=False, allow_blank=True)
    customer_phone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    event_address = serializers.CharField(max_length=255, required=False, allow_blank=True)
    internal_notes = serializers.CharField(required=False, allow_blank=True)


class BookingStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[lifecycle.CONFIRMED, lifecycle.DELIVERED, lifecycle.PICKED_UP, lifecycle.COMPLETED]
    )


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class RescheduleSerializer(serializers.Serializer):
    event_date = serializers.DateField()
    booking_type = serializers.ChoiceField(choices=BookingType.choices, required=False, allow_blank=True)
    slot_id = serializers.IntegerField(required=False, allow_null=True)


class PaymentWebhookSerializer(serializers.Serializer):
    """
    Payment provider notification

    The checkout target fields are echoed back from the session metadata;
    they are only needed when the hold expired before payment completed.
    """

    SUCCEEDED = "succeeded"
    FAILED = "failed"

    event = serializers.ChoiceField(choices=[SUCCEEDED, FAILED])
    session_id = serializers.CharField(max_length=128)
    payment_reference = serializers.CharField(max_length=128, required=False, allow_blank=True, default="")
    customer_name = serializers.CharField(max_length=120, required=False, allow_blank=True, default="")
    customer_email = serializers.EmailField(required=False, allow_blank=True, default="")
    customer_phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    event_address = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    product_id = serializers.IntegerField(required=False, allow_null=True)
    event_date = serializers.DateField(required=False, allow_null=True)
    booking_type = serializers.ChoiceField(choices=BookingType.choices, required=False, allow_blank=True)
    slot_id = serializers.IntegerField(required=False, allow_null=True)


class CancellationRequestSerializer(serializers.ModelSerializer):
    booking_number = serializers.ReadOnlyField(source="booking.booking_number")

    class Meta:
        model = CancellationRequest
        fields = [
            "id",
            "booking",
            "booking_number",
            "status",
            "reason",
            "review_notes",
            "reviewed_at",
            "created_at",
        ]
        read_only_fields = [name for name in fields if name != "booking_number"]


class CancellationReviewSerializer(serializers.Serializer):
    approve = serializers.BooleanField()
    notes = serializers.CharField(required=False, allow_blank=True, default="")
