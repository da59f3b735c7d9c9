from datetime import datetime, timezone

import pytest

from apps.catalog.testing import make_crew, make_product, make_slot_product

# Far enough ahead of every event date used in the suites to satisfy lead time
NOW = datetime(2031, 6, 1, 16, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def product(db):
    return make_product(units=1)


@pytest.fixture
def slot_product(db):
    return make_slot_product(units=1)


@pytest.fixture
def crew(db):
    return make_crew("Alpha")
