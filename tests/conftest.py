# conftest.py
# Description: Shared fixtures for the ShopTrack Lite test-suite
#
"""
Shared Test Fixtures
====================

- A file-backed database in a temporary directory
- A repository wired to an event bus that dispatches inline and records
  every data-change notification
- Small factories for products and supplies
"""

import pytest

from shoptrack.database import Database
from shoptrack.event_bus import EventBus, EventType, inline_dispatch
from shoptrack.models import Product, Supply
from shoptrack.repository import ShopTrackRepository


# --- Database Fixtures ---

@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "data" / "shoptrack.db"


@pytest.fixture
def db(db_path):
    database = Database(db_path)
    yield database
    database.close()


# --- Repository Fixtures ---

@pytest.fixture
def changes():
    """Entity names announced through DATA_CHANGED, in order."""
    return []


@pytest.fixture
def event_bus(changes):
    bus = EventBus(dispatch=inline_dispatch)
    bus.subscribe(EventType.DATA_CHANGED, changes.append)
    return bus


@pytest.fixture
def repo(db, event_bus):
    return ShopTrackRepository.from_database(db, event_bus)


# --- Sample Data Fixtures ---

@pytest.fixture
def make_product(repo):
    def _make(name="Cola", cost=1.0, price=2.0, qty=10, ranges=None, **kwargs):
        product = Product(name=name, cost_price=cost, selling_price=price,
                          quantity_in_stock=qty, **kwargs)
        repo.save_product(product, ranges)
        return product
    return _make


@pytest.fixture
def make_supply(repo):
    def _make(name="Cups", quantity=100.0, unit="pcs", cost=0.1, **kwargs):
        supply = Supply(name=name, quantity=quantity, unit=unit,
                        cost_per_unit=cost, **kwargs)
        repo.save_supply(supply)
        return supply
    return _make
