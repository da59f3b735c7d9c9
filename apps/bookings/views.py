"""API views for the booking domain."""

from __future__ import annotations

import hmac

import structlog
from django.conf import settings  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.scheduling.exceptions import SlotLostError
from apps.scheduling.views import SchedulingErrorMixin
from shared.application.message_bus import message_bus

from .application.command_handlers import (
    AdvanceBookingStatusCommand,
    CancelBookingCommand,
    CreateBookingCommand,
    PromoteHoldCommand,
    ReleaseHoldCommand,
    RequestCancellationCommand,
    RescheduleBookingCommand,
    ReviewCancellationCommand,
)
from .domain import lifecycle
from .models import Booking, CancellationRequest
from .serializers import (
    BookingCreateSerializer,
    BookingSerializer,
    BookingStatusSerializer,
    CancellationRequestSerializer,
    CancellationReviewSerializer,
    CustomerBookingSerializer,
    PaymentWebhookSerializer,
    ReasonSerializer,
    RescheduleSerializer,
)
from .services import reschedule_options

logger = structlog.get_logger(__name__)

CUSTOMER_ACTIONS = {"reschedule_options", "reschedule", "cancellation_request"}


class IsStaffOrBookingCustomer(permissions.BasePermission):
    """
    Staff see every booking. Customers have no accounts: they prove
    ownership with the email the booking was made with.
    """

    def has_permission(self, request, view):  # type: ignore
        if request.user and request.user.is_staff:
            return True
        return view.action in CUSTOMER_ACTIONS

    def has_object_permission(self, request, view, obj: Booking):  # type: ignore
        if request.user and request.user.is_staff:
            return True
        email = request.query_params.get("email") or request.data.get("email") or ""
        return bool(obj.customer_email) and email.strip().lower() == obj.customer_email.lower()


class BookingViewSet(SchedulingErrorMixin, mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """Bookings are written only through commands, never by plain model updates."""

    queryset = Booking.objects.select_related("product", "unit", "delivery_crew", "pickup_crew", "slot").all()
    permission_classes = [IsStaffOrBookingCustomer]
    lookup_field = "booking_number"
    filterset_fields = ["status", "product", "event_date", "source"]

    def get_serializer_class(self):  # type: ignore
        if self.action == "create":
            return BookingCreateSerializer
        if self.request.user and self.request.user.is_staff:
            return BookingSerializer
        return CustomerBookingSerializer

    def _render(self, booking: Booking, status_code=status.HTTP_200_OK):
        serializer_class = self.get_serializer_class()
        if serializer_class is BookingCreateSerializer:
            serializer_class = BookingSerializer
        return Response(serializer_class(booking, context=self.get_serializer_context()).data, status=status_code)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        booking = message_bus.handle_command(CreateBookingCommand(
            product_id=data["product_id"],
            event_date=data["event_date"],
            booking_type=data.get("booking_type") or None,
            slot_id=data.get("slot_id"),
            customer_name=data["customer_name"],
            customer_email=data.get("customer_email", ""),
            customer_phone=data.get("customer_phone", ""),
            event_address=data.get("event_address", ""),
            internal_notes=data.get("internal_notes", ""),
        ))
        logger.info("booking.created_by_staff", booking_number=booking.booking_number, user_id=request.user.id)
        return self._render(booking, status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def cancel(self, request, booking_number=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = message_bus.handle_command(
            CancelBookingCommand(booking_id=booking.pk, reason=serializer.validated_data["reason"])
        )
        logger.info("booking.cancelled", booking_number=booking.booking_number, user_id=request.user.id)
        return self._render(booking)

    @action(detail=True, methods=["post"], url_path="status")
    def change_status(self, request, booking_number=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = BookingStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = message_bus.handle_command(
            AdvanceBookingStatusCommand(booking_id=booking.pk, status=serializer.validated_data["status"])
        )
        return self._render(booking)

    @action(detail=True, methods=["get"], url_path="reschedule-options")
    def reschedule_options(self, request, booking_number=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        options = reschedule_options(booking)
        return Response(
            {
                "booking_number": booking.booking_number,
                "current_event_date": booking.event_date.isoformat(),
                "options": [
                    {**option.to_dict(), "slot_id": option.window.slot_id, "booking_type": option.window.booking_type}
                    for option in options
                ],
            }
        )

    @action(detail=True, methods=["post"])
    def reschedule(self, request, booking_number=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = RescheduleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        booking = message_bus.handle_command(RescheduleBookingCommand(
            booking_id=booking.pk,
            new_event_date=data["event_date"],
            booking_type=data.get("booking_type") or None,
            slot_id=data.get("slot_id"),
        ))
        logger.info("booking.rescheduled", booking_number=booking.booking_number, event_date=str(booking.event_date))
        return self._render(booking)

    @action(detail=True, methods=["post"], url_path="cancellation-request")
    def cancellation_request(self, request, booking_number=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        cancellation = message_bus.handle_command(
            RequestCancellationCommand(booking_id=booking.pk, reason=serializer.validated_data["reason"])
        )
        return Response(CancellationRequestSerializer(cancellation).data, status=status.HTTP_201_CREATED)


class CancellationRequestViewSet(SchedulingErrorMixin, viewsets.ReadOnlyModelViewSet):
    queryset = CancellationRequest.objects.select_related("booking").all()
    serializer_class = CancellationRequestSerializer
    permission_classes = [permissions.IsAdminUser]
    filterset_fields = ["status"]

    @action(detail=True, methods=["post"])
    def review(self, request, pk=None):  # type: ignore
        cancellation: CancellationRequest = self.get_object()  # type: ignore
        serializer = CancellationReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        cancellation = message_bus.handle_command(ReviewCancellationCommand(
            request_id=cancellation.pk,
            approve=serializer.validated_data["approve"],
            notes=serializer.validated_data["notes"],
        ))
        logger.info("cancellation.reviewed", request_id=cancellation.pk, status=cancellation.status)
        return Response(self.get_serializer(cancellation).data)


class PaymentWebhookView(SchedulingErrorMixin, APIView):
    """
    Payment gateway notifications

    A lost slot is acknowledged with 200 so the gateway does not retry;
    staff are alerted and the refund workflow is started by event handlers.
    """

    authentication_classes: list = []
    permission_classes = [permissions.AllowAny]

    def _secret_matches(self, request) -> bool:
        secret = getattr(settings, "PAYMENT_WEBHOOK_SECRET", "")
        if not secret:
            return True
        provided = request.headers.get("X-Webhook-Secret", "")
        return hmac.compare_digest(provided.encode(), secret.encode())

    def post(self, request):  # type: ignore
        if not self._secret_matches(request):
            logger.warning("payment_webhook.bad_secret", remote_addr=request.META.get("REMOTE_ADDR"))
            return Response({"detail": "Invalid webhook secret."}, status=status.HTTP_403_FORBIDDEN)

        serializer = PaymentWebhookSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        session_id = data["session_id"]

        if data["event"] == PaymentWebhookSerializer.FAILED:
            released = message_bus.handle_command(ReleaseHoldCommand(session_id=session_id))
            logger.info("payment_webhook.failed", session_id=session_id, released=released)
            return Response({"status": "released", "released": released})

        try:
            booking = message_bus.handle_command(PromoteHoldCommand(
                session_id=session_id,
                payment_reference=data["payment_reference"],
                customer_name=data["customer_name"],
                customer_email=data["customer_email"],
                customer_phone=data["customer_phone"],
                event_address=data["event_address"],
                product_id=data.get("product_id"),
                event_date=data.get("event_date"),
                booking_type=data.get("booking_type") or None,
                slot_id=data.get("slot_id"),
            ))
        except SlotLostError as exc:
            logger.warning("payment_webhook.slot_lost", session_id=session_id, reason=exc.reason)
            return Response({"status": "slot_lost", **exc.as_dict()})

        # A retry after the booking moved on reports where it stands now
        outcome = "confirmed" if booking.status in lifecycle.OCCUPYING else "already_processed"
        logger.info(
            "payment_webhook.processed",
            session_id=session_id,
            booking_number=booking.booking_number,
            outcome=outcome,
        )
        return Response({"status": outcome, "booking": CustomerBookingSerializer(booking).data})
