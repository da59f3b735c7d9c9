"""Integration tests for the public availability and hold endpoints."""

from __future__ import annotations

from datetime import date, timedelta

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.catalog.testing import make_crew, make_product, make_slot_product
from apps.scheduling.models import SoftHold

EVENT_DATE = date(2031, 6, 10)


class AvailabilityAPITests(APITestCase):
    def setUp(self) -> None:
        self.product = make_product(units=1)
        self.slot_product = make_slot_product(units=1)
        self.crew = make_crew("Alpha")

    def _hold(self, session_id: str, **overrides):
        payload = {"product_id": self.product.id, "event_date": str(EVENT_DATE), "session_id": session_id}
        payload.update(overrides)
        return self.client.post(reverse("hold-create"), payload, format="json")

    def test_date_range_availability(self) -> None:
        url = reverse("availability-dates", kwargs={"product_id": self.product.id})
        response = self.client.get(url, {"start": str(EVENT_DATE), "end": str(EVENT_DATE + timedelta(days=2))})

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(len(response.data["dates"]), 3)
        self.assertTrue(all(entry["available"] for entry in response.data["dates"]))
        self.assertEqual(response.data["scheduling_mode"], "day_rental")

    def test_date_range_rejects_inverted_range(self) -> None:
        url = reverse("availability-dates", kwargs={"product_id": self.product.id})
        response = self.client.get(url, {"start": str(EVENT_DATE), "end": str(EVENT_DATE - timedelta(days=1))})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_product_is_not_found(self) -> None:
        url = reverse("availability-dates", kwargs={"product_id": 999999})
        response = self.client.get(url, {"start": str(EVENT_DATE), "end": str(EVENT_DATE)})

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["code"], "not_found")

    def test_slot_listing_reports_service_window(self) -> None:
        url = reverse("availability-slots", kwargs={"product_id": self.slot_product.id})
        response = self.client.get(url, {"date": str(EVENT_DATE)})

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        slot = response.data["slots"][0]
        self.assertTrue(slot["available"])
        self.assertEqual(slot["start_time_local"], "15:00")
        self.assertTrue(slot["window"]["service_start"].startswith("2031-06-10T13:45"))
        self.assertTrue(slot["window"]["service_end"].startswith("2031-06-10T21:15"))

    def test_mixing_modes_is_a_validation_error(self) -> None:
        response = self.client.post(
            reverse("availability-validate"),
            {"product_id": self.slot_product.id, "event_date": str(EVENT_DATE), "booking_type": "daily"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "validation_error")

    def test_hold_then_competing_hold_is_rejected(self) -> None:
        first = self._hold("session-a")
        self.assertEqual(first.status_code, status.HTTP_201_CREATED, first.data)
        self.assertEqual(first.data["session_id"], "session-a")
        self.assertGreater(first.data["remaining_seconds"], 0)

        second = self._hold("session-b")
        self.assertEqual(second.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(second.data["reason"], "unit_booked")
        self.assertIn("another time", second.data["detail"])

    def test_validate_ignores_the_sessions_own_hold(self) -> None:
        self._hold("session-a")
        payload = {"product_id": self.product.id, "event_date": str(EVENT_DATE)}

        own = self.client.post(reverse("availability-validate"), {**payload, "session_id": "session-a"}, format="json")
        other = self.client.post(reverse("availability-validate"), {**payload, "session_id": "session-b"}, format="json")

        self.assertTrue(own.data["available"])
        self.assertFalse(other.data["available"])
        self.assertEqual(other.data["reason"], "unit_booked")

    def test_blocked_dates(self) -> None:
        self._hold("session-a")
        url = reverse("availability-blocked-dates", kwargs={"product_id": self.product.id})
        response = self.client.get(url, {"start": str(EVENT_DATE), "end": str(EVENT_DATE + timedelta(days=1))})

        self.assertEqual(response.data["blocked_dates"], [str(EVENT_DATE)])

    def test_hold_detail_and_release(self) -> None:
        self._hold("session-a")
        url = reverse("hold-detail", kwargs={"session_id": "session-a"})

        self.assertEqual(self.client.get(url).status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.delete(url).status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(self.client.delete(url).status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(self.client.get(url).status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(SoftHold.objects.exists())

    def test_hold_requires_session_id(self) -> None:
        response = self.client.post(
            reverse("hold-create"),
            {"product_id": self.product.id, "event_date": str(EVENT_DATE)},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
