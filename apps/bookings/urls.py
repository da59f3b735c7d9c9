"""URL routing for the booking domain."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import BookingViewSet, CancellationRequestViewSet, PaymentWebhookView

router = DefaultRouter()
router.register(r"cancellation-requests", CancellationRequestViewSet, basename="cancellation-request")
router.register(r"", BookingViewSet, basename="booking")

urlpatterns = [
    path("payments/webhook/", PaymentWebhookView.as_view(), name="payment-webhook"),
    path("", include(router.urls)),
]
