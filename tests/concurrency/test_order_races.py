"""
Real multi-connection races against a file-backed SQLite store.

Each thread goes through LogisticsGateway with its own session.  BEGIN
IMMEDIATE serializes the writers, so the loser re-reads the committed
quantity and is rejected rather than overselling.
"""

from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest

from logistics_kernel.db.engine import Store
from logistics_kernel.domain.clock import DeterministicClock
from logistics_kernel.services import DirectoryService, InventoryLedger
from logistics_services import LogisticsGateway
from tests.conftest import seed_reference_data

pytestmark = pytest.mark.slow_locks


@pytest.fixture
def file_store(tmp_path):
    store = Store.from_url(f"sqlite:///{tmp_path / 'race.db'}", busy_timeout_seconds=15)
    store.create_tables()
    yield store
    store.dispose()


@pytest.fixture
def race_setup(file_store, app_config):
    clock = DeterministicClock()
    with file_store.session_scope("seed") as session:
        data = seed_reference_data(DirectoryService(session, clock))
        InventoryLedger(session, clock).increment(data.vendor, data.w1, data.product, 20)
    return LogisticsGateway(file_store, app_config, clock), data


def _race(gateway, data, quantities):
    barrier = Barrier(len(quantities))

    def place(quantity):
        barrier.wait()
        return gateway.create_vendor_order(
            {
                "vendor_id": data.vendor,
                "warehouse_id": data.w1,
                "product_id": data.product,
                "quantity": quantity,
                "cost": "100",
                "destination": "Yaba",
            }
        )

    with ThreadPoolExecutor(max_workers=len(quantities)) as pool:
        return list(pool.map(place, quantities))


def _stock(gateway, data):
    page = gateway.list_inventory(data.vendor, data.w1, data.product).data
    return page.items[0].quantity


class TestOrderRaces:
    def test_two_orders_for_fifteen_against_twenty(self, race_setup):
        gateway, data = race_setup

        results = _race(gateway, data, [15, 15])

        winners = [r for r in results if r.success]
        losers = [r for r in results if not r.success]
        assert len(winners) == 1
        assert losers[0].error_code == "INSUFFICIENT_STOCK"
        assert _stock(gateway, data) == 5

    def test_many_small_orders_never_oversell(self, race_setup):
        gateway, data = race_setup

        results = _race(gateway, data, [3] * 10)

        assert sum(1 for r in results if r.success) == 6
        assert _stock(gateway, data) == 2
        reconcile = gateway.reconcile_inventory(data.w1).data
        assert not reconcile[0].corrected
        assert reconcile[0].actual_items == 2
