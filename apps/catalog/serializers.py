"""Serializers for catalog administration."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import BlackoutDate, Crew, CrewShift, Product, Slot, Unit


class UnitSerializer(serializers.ModelSerializer):
    class Meta:
        model = Unit
        fields = ["id", "product", "unit_number", "nickname", "status", "created_at"]
        read_only_fields = ["id", "created_at"]


class SlotSerializer(serializers.ModelSerializer):
    class Meta:
        model = Slot
        fields = [
            "id",
            "product",
            "label",
            "start_time_local",
            "end_time_local",
            "display_order",
            "is_active",
        ]
        read_only_fields = ["id"]

    def validate(self, attrs):  # type: ignore
        start = attrs.get("start_time_local", getattr(self.instance, "start_time_local", None))
        end = attrs.get("end_time_local", getattr(self.instance, "end_time_local", None))
        if start and end and end <= start:
            raise serializers.ValidationError("Slot must end after it starts.")
        product = attrs.get("product", getattr(self.instance, "product", None))
        if product is not None and not product.is_slot_based:
            raise serializers.ValidationError("Slots can only be attached to slot-based products.")
        return attrs


class ProductSerializer(serializers.ModelSerializer):
    units = UnitSerializer(many=True, read_only=True)
    slots = SlotSerializer(many=True, read_only=True)

    class Meta:
        model = Product
        fields = [
            "id",
            "name",
            "slug",
            "description",
            "scheduling_mode",
            "lead_time_hours",
            "setup_minutes",
            "teardown_minutes",
            "travel_buffer_minutes",
            "is_active",
            "units",
            "slots",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "units", "slots", "created_at", "updated_at"]

    def validate_travel_buffer_minutes(self, value: int) -> int:
        if value <= 0:
            raise serializers.ValidationError("Every rental needs a positive travel buffer.")
        return value

    def validate_scheduling_mode(self, value: str) -> str:
        if self.instance is not None and value != self.instance.scheduling_mode and self.instance.bookings.exists():
            raise serializers.ValidationError("Scheduling mode cannot change once the product has bookings.")
        return value


class CrewShiftSerializer(serializers.ModelSerializer):
    class Meta:
        model = CrewShift
        fields = ["id", "crew", "day_of_week", "start_time", "end_time", "is_available"]
        read_only_fields = ["id", "crew"]

    def validate(self, attrs):  # type: ignore
        start = attrs.get("start_time", getattr(self.instance, "start_time", None))
        end = attrs.get("end_time", getattr(self.instance, "end_time", None))
        if start and end and end <= start:
            raise serializers.ValidationError("Shift must end after it starts.")
        return attrs


class CrewSerializer(serializers.ModelSerializer):
    shifts = CrewShiftSerializer(many=True, read_only=True)

    class Meta:
        model = Crew
        fields = ["id", "name", "phone", "notes", "is_active", "shifts", "created_at"]
        read_only_fields = ["id", "shifts", "created_at"]


class BlackoutDateSerializer(serializers.ModelSerializer):
    class Meta:
        model = BlackoutDate
        fields = ["id", "scope", "product", "unit", "start_date", "end_date", "reason", "created_at"]
        read_only_fields = ["id", "created_at"]

    def validate(self, attrs):  # type: ignore
        scope = attrs.get("scope", getattr(self.instance, "scope", BlackoutDate.Scope.GLOBAL))
        product = attrs.get("product", getattr(self.instance, "product", None))
        unit = attrs.get("unit", getattr(self.instance, "unit", None))
        start = attrs.get("start_date", getattr(self.instance, "start_date", None))
        end = attrs.get("end_date", getattr(self.instance, "end_date", None))
        if start and end and end < start:
            raise serializers.ValidationError("End date must not be before start date.")
        if scope == BlackoutDate.Scope.GLOBAL and (product or unit):
            raise serializers.ValidationError("Global blackouts cannot target a product or unit.")
        if scope == BlackoutDate.Scope.PRODUCT and (product is None or unit is not None):
            raise serializers.ValidationError("Product blackouts need a product and no unit.")
        if scope == BlackoutDate.Scope.UNIT and unit is None:
            raise serializers.ValidationError("Unit blackouts need a unit.")
        return attrs
