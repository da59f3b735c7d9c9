"""URL routing for the catalog domain."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import BlackoutDateViewSet, CrewViewSet, ProductViewSet, SlotViewSet, UnitViewSet

router = DefaultRouter()
router.register(r"products", ProductViewSet, basename="product")
router.register(r"units", UnitViewSet, basename="unit")
router.register(r"slots", SlotViewSet, basename="slot")
router.register(r"crews", CrewViewSet, basename="crew")
router.register(r"blackout-dates", BlackoutDateViewSet, basename="blackout-date")

urlpatterns = [
    path("", include(router.urls)),
]
