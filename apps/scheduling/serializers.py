"""Serializers for availability queries and soft holds."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import BookingType, SoftHold


class DateRangeQuerySerializer(serializers.Serializer):
    start = serializers.DateField()
    end = serializers.DateField()
    booking_type = serializers.ChoiceField(choices=BookingType.choices, required=False)

    def validate(self, attrs):  # type: ignore
        if attrs["end"] < attrs["start"]:
            raise serializers.ValidationError("end must not be before start.")
        return attrs


class SlotDateQuerySerializer(serializers.Serializer):
    date = serializers.DateField()


class CheckoutRequestSerializer(serializers.Serializer):
    """Body shared by the validate and hold endpoints."""

    product_id = serializers.IntegerField()
    event_date = serializers.DateField()
    booking_type = serializers.ChoiceField(choices=BookingType.choices, required=False, allow_blank=True)
    slot_id = serializers.IntegerField(required=False, allow_null=True)
    session_id = serializers.CharField(max_length=128, required=False, allow_blank=True)


class HoldRequestSerializer(CheckoutRequestSerializer):
    session_id = serializers.CharField(max_length=128)


class SoftHoldSerializer(serializers.ModelSerializer):
    product_id = serializers.ReadOnlyField(source="product.id")
    remaining_seconds = serializers.SerializerMethodField()

    class Meta:
        model = SoftHold
        fields = [
            "id",
            "session_id",
            "product_id",
            "unit",
            "delivery_crew",
            "pickup_crew",
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
            "created_at",
            "expires_at",
            "remaining_seconds",
        ]
        read_only_fields = [name for name in fields if name not in ("product_id", "remaining_seconds")]

    def get_remaining_seconds(self, obj: SoftHold) -> int:
        return obj.remaining_seconds(self.context.get("now"))
