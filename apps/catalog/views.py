"""Admin API views for catalog reference data."""

from __future__ import annotations

from django.shortcuts import get_object_or_404  # type: ignore
from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from .models import BlackoutDate, Crew, CrewShift, Product, Slot, Unit
from .serializers import (
    BlackoutDateSerializer,
    CrewSerializer,
    CrewShiftSerializer,
    ProductSerializer,
    SlotSerializer,
    UnitSerializer,
)


class IsAdminOrReadOnly(permissions.BasePermission):
    """Anyone may browse the catalog; only staff may change it."""

    def has_permission(self, request, view):  # type: ignore
        if request.method in permissions.SAFE_METHODS:
            return True
        return bool(request.user and request.user.is_staff)


class ProductViewSet(viewsets.ModelViewSet):
    queryset = Product.objects.prefetch_related("units", "slots").all()
    serializer_class = ProductSerializer
    permission_classes = [IsAdminOrReadOnly]
    filterset_fields = ["scheduling_mode", "is_active"]

    def get_queryset(self):  # type: ignore
        qs = super().get_queryset()
        if not self.request.user.is_staff:
            qs = qs.filter(is_active=True)
        return qs


class UnitViewSet(viewsets.ModelViewSet):
    queryset = Unit.objects.select_related("product").all()
    serializer_class = UnitSerializer
    permission_classes = [permissions.IsAdminUser]
    filterset_fields = ["product", "status"]


class SlotViewSet(viewsets.ModelViewSet):
    queryset = Slot.objects.select_related("product").all()
    serializer_class = SlotSerializer
    permission_classes = [permissions.IsAdminUser]
    filterset_fields = ["product", "is_active"]


class CrewViewSet(viewsets.ModelViewSet):
    """Crews plus their weekly shift template."""

    queryset = Crew.objects.prefetch_related("shifts").all()
    serializer_class = CrewSerializer
    permission_classes = [permissions.IsAdminUser]
    filterset_fields = ["is_active"]

    @action(detail=True, methods=["put"], url_path="shifts")
    def set_shifts(self, request, pk=None):  # type: ignore
        """Replace the whole weekly template in one call."""
        crew = get_object_or_404(Crew, pk=pk)
        serializer = CrewShiftSerializer(data=request.data, many=True)
        serializer.is_valid(raise_exception=True)
        days = [row["day_of_week"] for row in serializer.validated_data]
        if len(days) != len(set(days)):
            return Response(
                {"detail": "Each weekday may appear only once."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        crew.shifts.all().delete()
        CrewShift.objects.bulk_create(
            CrewShift(crew=crew, **row) for row in serializer.validated_data
        )
        crew.refresh_from_db()
        return Response(CrewSerializer(crew).data)


class BlackoutDateViewSet(viewsets.ModelViewSet):
    queryset = BlackoutDate.objects.select_related("product", "unit").all()
    serializer_class = BlackoutDateSerializer
    permission_classes = [permissions.IsAdminUser]
    filterset_fields = ["scope", "product", "unit"]
