"""Public API views: availability, checkout validation and soft holds."""

from __future__ import annotations

import structlog
from rest_framework import status  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from .exceptions import NotFoundError, SchedulingError
from .serializers import (
    CheckoutRequestSerializer,
    DateRangeQuerySerializer,
    HoldRequestSerializer,
    SlotDateQuerySerializer,
    SoftHoldSerializer,
)
from .services.availability import (
    blocked_dates,
    get_product,
    get_slot,
    list_day_availability,
    list_slot_availability,
    validate_before_checkout,
)
from .services.holds import get_active_hold, hold_for_checkout, release_hold

logger = structlog.get_logger(__name__)


class SchedulingErrorMixin:
    """Render engine exceptions as {"code", "detail", "reason"} with their HTTP status."""

    def handle_exception(self, exc):  # type: ignore
        if isinstance(exc, SchedulingError):
            logger.info(
                "scheduling.request_rejected",
                view=self.__class__.__name__,
                code=exc.code,
                reason=exc.reason,
                detail=exc.message,
            )
            return Response(exc.as_dict(), status=exc.http_status)
        return super().handle_exception(exc)


def resolve_checkout_target(data: dict):
    """Product and optional slot named by a validated checkout payload."""
    product = get_product(data["product_id"])
    slot = get_slot(product, data["slot_id"]) if data.get("slot_id") else None
    return product, slot


class ProductDateAvailabilityView(SchedulingErrorMixin, APIView):
    """Per-date availability for a day-rental product."""

    def get(self, request, product_id):  # type: ignore
        product = get_product(product_id)
        query = DateRangeQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        results = list_day_availability(
            product,
            query.validated_data["start"],
            query.validated_data["end"],
            booking_type=query.validated_data.get("booking_type"),
        )
        return Response(
            {
                "product_id": product.id,
                "scheduling_mode": product.scheduling_mode,
                "dates": [result.to_dict() for result in results],
            }
        )


class ProductSlotAvailabilityView(SchedulingErrorMixin, APIView):
    """Per-slot availability for a slot-based product on one date."""

    def get(self, request, product_id):  # type: ignore
        product = get_product(product_id)
        query = SlotDateQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        event_date = query.validated_data["date"]
        slots = []
        for slot, result in list_slot_availability(product, event_date):
            payload = result.to_dict()
            payload.update(
                {
                    "slot_id": slot.id,
                    "label": slot.label,
                    "start_time_local": slot.start_time_local.strftime("%H:%M"),
                    "end_time_local": slot.end_time_local.strftime("%H:%M"),
                }
            )
            slots.append(payload)
        return Response({"product_id": product.id, "date": event_date.isoformat(), "slots": slots})


class ProductBlockedDatesView(SchedulingErrorMixin, APIView):
    """Dates to grey out on the public calendar."""

    def get(self, request, product_id):  # type: ignore
        product = get_product(product_id)
        query = DateRangeQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        days = blocked_dates(product, query.validated_data["start"], query.validated_data["end"])
        return Response({"product_id": product.id, "blocked_dates": [day.isoformat() for day in days]})


class ValidateCheckoutView(SchedulingErrorMixin, APIView):
    """Re-check availability right before sending the customer to payment."""

    def post(self, request):  # type: ignore
        serializer = CheckoutRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        product, slot = resolve_checkout_target(data)
        result = validate_before_checkout(
            product,
            data["event_date"],
            session_id=data.get("session_id") or None,
            booking_type=data.get("booking_type") or None,
            slot=slot,
        )
        return Response(result.to_dict())


class SoftHoldCreateView(SchedulingErrorMixin, APIView):
    """Reserve the requested window for a checkout session."""

    def post(self, request):  # type: ignore
        serializer = HoldRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        product, slot = resolve_checkout_target(data)
        hold = hold_for_checkout(
            data["session_id"],
            product,
            data["event_date"],
            booking_type=data.get("booking_type") or None,
            slot=slot,
        )
        logger.info("hold.created", session_id=hold.session_id, unit_id=hold.unit_id)
        return Response(SoftHoldSerializer(hold).data, status=status.HTTP_201_CREATED)


class SoftHoldDetailView(SchedulingErrorMixin, APIView):
    def get(self, request, session_id):  # type: ignore
        hold = get_active_hold(session_id)
        if hold is None:
            raise NotFoundError("No active hold for this session.")
        return Response(SoftHoldSerializer(hold).data)

    def delete(self, request, session_id):  # type: ignore
        released = release_hold(session_id, reason="abandoned")
        logger.info("hold.release_requested", session_id=session_id, released=released)
        return Response(status=status.HTTP_204_NO_CONTENT)
