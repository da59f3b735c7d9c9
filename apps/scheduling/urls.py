"""URL routing for availability and holds."""

from __future__ import annotations

from django.urls import path  # type: ignore

from .views import (
    ProductBlockedDatesView,
    ProductDateAvailabilityView,
    ProductSlotAvailabilityView,
    SoftHoldCreateView,
    SoftHoldDetailView,
    ValidateCheckoutView,
)

urlpatterns = [
    path(
        "availability/products/<int:product_id>/dates/",
        ProductDateAvailabilityView.as_view(),
        name="availability-dates",
    ),
    path(
        "availability/products/<int:product_id>/slots/",
        ProductSlotAvailabilityView.as_view(),
        name="availability-slots",
    ),
    path(
        "availability/products/<int:product_id>/blocked-dates/",
        ProductBlockedDatesView.as_view(),
        name="availability-blocked-dates",
    ),
    path("availability/validate/", ValidateCheckoutView.as_view(), name="availability-validate"),
    path("holds/", SoftHoldCreateView.as_view(), name="hold-create"),
    path("holds/<str:session_id>/", SoftHoldDetailView.as_view(), name="hold-detail"),
]
