"""
Pytest fixtures for inventory ledger tests.

Provides the Flask app on an in-memory database, a store handle built
straight from an engine (no app), and a ledger with seeded stock.
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from inventory_ledger import create_app
from inventory_ledger.extensions import db
from inventory_ledger.ledger import InventoryLedger, get_ledger
from inventory_ledger.services import LedgerStore


SEED_STOCK = {
    "water_250ml": {"kind": "count", "value": 10},
    "water_500ml": {"kind": "count", "value": 10},
    "label_rolls": {"kind": "count", "value": 4},
    "caps": {"kind": "carton", "cartons": 5},
    "preform_500ml": {"kind": "carton", "cartons": 2},
    "caustic_soda": {"kind": "measured", "value": 4, "unit": "Kg"},
    "antiscalant": {"kind": "measured", "value": 10, "unit": "Ltr"},
}


@pytest.fixture(scope='function')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'LEDGER_RETRY_BACKOFF': 0,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def app_ledger(app):
    return get_ledger()


@pytest.fixture(scope='function')
def store():
    """Store handle on a private in-memory engine, no Flask involved."""
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    store = LedgerStore.from_engine(engine)
    store.create_all()
    yield store
    engine.dispose()


@pytest.fixture(scope='function')
def ledger(store):
    """Ledger over seeded stock."""
    store.initialize_stock(SEED_STOCK)
    return InventoryLedger(store, backoff_base=0)


@pytest.fixture(scope='function')
def empty_ledger(store):
    """Ledger whose stock record was never initialized."""
    return InventoryLedger(store, backoff_base=0)
