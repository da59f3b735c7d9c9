"""Builders for catalog reference data used across the test suites."""

from __future__ import annotations

from datetime import time
from itertools import count

from .models import Crew, Product, Slot, Unit

_sequence = count(1)


def make_product(*, units: int = 1, **overrides) -> Product:
    n = next(_sequence)
    fields = {
        "name": f"Castle {n}",
        "slug": f"castle-{n}",
        "scheduling_mode": Product.SchedulingMode.DAY_RENTAL,
        "lead_time_hours": 18,
        "travel_buffer_minutes": 30,
    }
    fields.update(overrides)
    product = Product.objects.create(**fields)
    for number in range(1, units + 1):
        Unit.objects.create(product=product, unit_number=number)
    return product


def make_slot_product(*, units: int = 1, slots=((time(15, 0), time(19, 0)),), **overrides) -> Product:
    fields = {
        "scheduling_mode": Product.SchedulingMode.SLOT_BASED,
        "setup_minutes": 60,
        "teardown_minutes": 120,
        "travel_buffer_minutes": 15,
    }
    fields.update(overrides)
    product = make_product(units=units, **fields)
    for order, (start, end) in enumerate(slots):
        Slot.objects.create(
            product=product,
            label=f"{start:%H:%M}-{end:%H:%M}",
            start_time_local=start,
            end_time_local=end,
            display_order=order,
        )
    return product


def make_crew(name: str | None = None, **overrides) -> Crew:
    return Crew.objects.create(name=name or f"Crew {next(_sequence)}", **overrides)
