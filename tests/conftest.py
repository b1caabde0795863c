"""
Pytest fixtures for the logistics kernel test suite.

Provides:
- An isolated in-memory SQLite Store per test (StaticPool, one connection)
- A DeterministicClock fixed at 2024-06-15 12:00 UTC
- Service fixtures sharing one session and clock
- Seeded reference data (vendor, product, two warehouses, client, agent)
- captured_logs for asserting on structured log events
"""

import json
import logging
from dataclasses import replace
from decimal import Decimal
from io import StringIO
from types import SimpleNamespace

import pytest

from logistics_config import load_config
from logistics_config.schema import SecurityConfig
from logistics_kernel.db.engine import Store
from logistics_kernel.domain.clock import DeterministicClock
from logistics_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from logistics_kernel.selectors import (
    AccountingSelector,
    DashboardSelector,
    InventorySelector,
    PerformanceSelector,
)
from logistics_kernel.services import (
    DirectoryService,
    ExpenseService,
    InventoryLedger,
    OrderService,
    RemittanceService,
    StockTransferService,
    UserService,
)
from logistics_services import LogisticsGateway


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture logistics_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, orders):
            orders.create_client_order(...)
            assert any(r["message"] == "order_created" for r in captured_logs())
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("logistics_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Store, session, clock
# =============================================================================


@pytest.fixture
def clock():
    return DeterministicClock()


@pytest.fixture
def store():
    store = Store.in_memory()
    yield store
    store.dispose()


@pytest.fixture
def session(store):
    """One open transaction for service-level tests; rolled back afterwards."""
    session = store.session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def app_config():
    """Bundled defaults with a cheap password hash for fast tests."""
    config = load_config(environ={})
    return replace(config, security=SecurityConfig(password_iterations=1_000))


@pytest.fixture
def gateway(store, app_config, clock):
    return LogisticsGateway(store, app_config, clock)


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def ledger(session, clock):
    return InventoryLedger(session, clock)


@pytest.fixture
def orders(session, clock, ledger):
    return OrderService(session, clock, ledger)


@pytest.fixture
def transfers(session, clock, ledger):
    return StockTransferService(session, clock, ledger)


@pytest.fixture
def remittances(session, clock):
    return RemittanceService(session, clock)


@pytest.fixture
def expenses(session, clock):
    return ExpenseService(session, clock)


@pytest.fixture
def directory(session, clock):
    return DirectoryService(session, clock)


@pytest.fixture
def users(session, clock):
    return UserService(session, clock, iterations=1_000)


@pytest.fixture
def accounting(session, clock):
    return AccountingSelector(session, clock)


@pytest.fixture
def performance(session, clock):
    return PerformanceSelector(session, clock)


@pytest.fixture
def inventory(session, clock):
    return InventorySelector(session, clock)


@pytest.fixture
def dashboard(session, clock):
    return DashboardSelector(session, clock)


# =============================================================================
# Seeded reference data
# =============================================================================


def seed_reference_data(directory: DirectoryService) -> SimpleNamespace:
    """Vendor V with products P and Q, warehouses W1/W2, a client and an agent."""
    w1 = directory.create_warehouse("Central", "Lagos", capacity=1_000)
    w2 = directory.create_warehouse("Annex", "Ibadan", capacity=1_000)
    vendor = directory.create_vendor("Acme Supplies", email="ops@acme.test")
    other_vendor = directory.create_vendor("Globex", email="ops@globex.test")
    product = directory.create_product(vendor.id, "Widget", Decimal("25.00"), sku="WID-1")
    product_b = directory.create_product(vendor.id, "Gadget", Decimal("40.00"), sku="GAD-1")
    foreign_product = directory.create_product(other_vendor.id, "Sprocket", Decimal("5.00"), sku="SPR-1")
    client = directory.create_client("Ada Obi", "+2348000000001")
    agent = directory.create_agent("Musa Bello", "musa@fleet.test", "+2348000000002", w1.id)
    return SimpleNamespace(
        w1=w1.id,
        w2=w2.id,
        vendor=vendor.id,
        other_vendor=other_vendor.id,
        product=product.id,
        product_b=product_b.id,
        foreign_product=foreign_product.id,
        client=client.id,
        agent=agent.id,
    )


@pytest.fixture
def seeded(directory):
    return seed_reference_data(directory)


@pytest.fixture
def stocked(seeded, ledger):
    """Seeded data plus 20 units of P and 10 units of Q at W1."""
    ledger.increment(seeded.vendor, seeded.w1, seeded.product, 20)
    ledger.increment(seeded.vendor, seeded.w1, seeded.product_b, 10)
    return seeded


@pytest.fixture
def gateway_seeded(store, clock):
    """Reference data committed to the store, for gateway tests."""
    with store.session_scope("seed") as session:
        directory = DirectoryService(session, clock)
        data = seed_reference_data(directory)
        InventoryLedger(session, clock).increment(data.vendor, data.w1, data.product, 20)
    return data
