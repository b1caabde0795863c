"""
Tests for DashboardSelector.

Verifies:
- Shipment, in-progress, active-agent and warehouse counts
- Per-warehouse order share, with client orders grouped without a warehouse
- Empty store gives zero counts and no locations
- Monthly shipment volume over the trailing twelve months
"""

from datetime import datetime
from decimal import Decimal

import pytest

from logistics_kernel.exceptions import ValidationError


def _vendor_order(orders, data, warehouse_id=None, **kwargs):
    return orders.create_vendor_order(
        data.vendor,
        warehouse_id or data.w1,
        data.product,
        1,
        Decimal("500"),
        "Yaba",
        **kwargs,
    )


class TestDashboardMetrics:
    def test_empty_store(self, dashboard):
        metrics = dashboard.dashboard_metrics()
        assert (
            metrics.total_shipments,
            metrics.deliveries_in_progress,
            metrics.active_agents,
            metrics.warehouses,
        ) == (0, 0, 0, 0)

    def test_counts(self, dashboard, orders, directory, stocked):
        second_agent = directory.create_agent("Ngozi Eze", "ngozi@fleet.test", "+2348000000003", stocked.w2)
        open_one = _vendor_order(orders, stocked, agent_id=stocked.agent)
        _vendor_order(orders, stocked, agent_id=stocked.agent)
        done = orders.create_client_order(stocked.client, "Lekki", Decimal("100"), agent_id=second_agent.id)
        orders.update_status(done.id, "COMPLETED")
        cancelled = orders.create_client_order(stocked.client, "Ikoyi", Decimal("100"))
        orders.update_status(cancelled.id, "CANCELLED")
        orders.create_client_order(stocked.client, "Ajah", Decimal("100"))
        orders.update_status(open_one.id, "IN_PROGRESS")

        metrics = dashboard.dashboard_metrics()

        assert metrics.total_shipments == 5
        assert metrics.deliveries_in_progress == 3
        # second_agent only holds a completed order
        assert metrics.active_agents == 1
        assert metrics.warehouses == 2

    def test_to_dict(self, dashboard, seeded):
        assert dashboard.dashboard_metrics().to_dict() == {
            "total_shipments": 0,
            "deliveries_in_progress": 0,
            "active_agents": 0,
            "warehouses": 2,
        }


class TestOrdersByLocation:
    def test_no_orders(self, dashboard, seeded):
        report = dashboard.orders_by_location()
        assert report.total_orders == 0
        assert report.locations == ()

    def test_shares(self, dashboard, orders, ledger, stocked):
        ledger.increment(stocked.vendor, stocked.w2, stocked.product, 5)
        for _ in range(2):
            _vendor_order(orders, stocked)
        _vendor_order(orders, stocked, warehouse_id=stocked.w2)

        report = dashboard.orders_by_location()

        assert report.total_orders == 3
        assert [(loc.warehouse_name, loc.order_count, loc.share) for loc in report.locations] == [
            ("Central", 2, Decimal("66.7")),
            ("Annex", 1, Decimal("33.3")),
        ]
        assert report.locations[0].warehouse_id == stocked.w1

    def test_client_orders_have_no_warehouse(self, dashboard, orders, stocked):
        _vendor_order(orders, stocked)
        orders.create_client_order(stocked.client, "Lekki", Decimal("100"))
        orders.create_client_order(stocked.client, "Ikoyi", Decimal("100"))
        orders.create_client_order(stocked.client, "Ajah", Decimal("100"))

        report = dashboard.orders_by_location()

        unplaced, central = report.locations
        assert (unplaced.warehouse_id, unplaced.warehouse_name) == (None, None)
        assert (unplaced.order_count, unplaced.share) == (3, Decimal("75.0"))
        assert central.share == Decimal("25.0")


class TestShipmentsByMonth:
    def test_trailing_months(self, dashboard, orders, clock, stocked):
        clock.set_time(datetime(2024, 2, 10, 9))
        delivered = orders.create_client_order(stocked.client, "Lekki", Decimal("100"))
        orders.update_status(delivered.id, "COMPLETED")
        orders.create_client_order(stocked.client, "Ikoyi", Decimal("100"))
        clock.set_time(datetime(2023, 6, 30, 9))  # before the window
        orders.create_client_order(stocked.client, "Ajah", Decimal("100"))
        clock.set_time(datetime(2024, 6, 15, 12))

        months = dashboard.shipments_by_month()

        assert len(months) == 12
        assert (months[0].period, months[-1].period) == ("Jul 2023", "Jun 2024")
        february = next(m for m in months if m.period == "Feb 2024")
        assert (february.shipments, february.delivered) == (2, 1)
        assert sum(m.shipments for m in months) == 2

    def test_window_must_be_positive(self, dashboard):
        with pytest.raises(ValidationError):
            dashboard.shipments_by_month(0)
