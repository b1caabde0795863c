"""
End-to-end tests through LogisticsGateway.

Each gateway call runs in its own committed transaction, so these tests
seed through ``gateway_seeded`` and never hold the ``session`` fixture
open alongside the gateway.
"""

import json
from decimal import Decimal
from uuid import uuid4

import pytest

from logistics_kernel.exceptions import ConflictError, ValidationError
from logistics_services import OperationResult, parse_uuid
from logistics_services.gateway import parse_moment


def _vendor_payload(data, quantity, **extra):
    payload = {
        "vendor_id": str(data.vendor),
        "warehouse_id": str(data.w1),
        "product_id": str(data.product),
        "quantity": quantity,
        "cost": "500",
        "destination": "12 Marina Road",
    }
    payload.update(extra)
    return payload


def _quantity(gateway, data, warehouse, product):
    page = gateway.list_inventory(data.vendor, warehouse, product).data
    return sum(item.quantity for item in page.items)


class TestOrderFlow:
    def test_oversell_rejected_after_commit(self, gateway, gateway_seeded):
        first = gateway.create_vendor_order(_vendor_payload(gateway_seeded, 15))
        second = gateway.create_vendor_order(_vendor_payload(gateway_seeded, 10))

        assert first.success
        assert not second.success
        assert second.error_code == "INSUFFICIENT_STOCK"
        assert second.details["available"] == 5
        assert _quantity(gateway, gateway_seeded, gateway_seeded.w1, gateway_seeded.product) == 5

    def test_cancel_then_delete(self, gateway, gateway_seeded):
        order = gateway.create_vendor_order(_vendor_payload(gateway_seeded, 4)).data

        assert gateway.update_order_status(str(order.id), "CANCELLED").success
        assert gateway.delete_order(str(order.id)).success
        assert _quantity(gateway, gateway_seeded, gateway_seeded.w1, gateway_seeded.product) == 20

    def test_contacts_from_payload(self, gateway, gateway_seeded):
        result = gateway.create_vendor_order(
            _vendor_payload(gateway_seeded, 1, delivery_contact_phone="+234700")
        )
        assert result.data.contacts["delivery_contact_phone"] == "+234700"

    def test_client_order_and_listing(self, gateway, gateway_seeded):
        created = gateway.create_client_order(
            {"client_id": str(gateway_seeded.client), "destination": "Lekki", "cost": "300"}
        )
        gateway.assign_agent(str(created.data.id), str(gateway_seeded.agent))

        listed = gateway.list_orders(agent_id=str(gateway_seeded.agent))

        assert [o.id for o in listed.data] == [created.data.id]

    def test_bad_id_is_validation_failure(self, gateway, gateway_seeded):
        result = gateway.create_vendor_order(_vendor_payload(gateway_seeded, 1, vendor_id="nope"))
        assert result.error_code == "VALIDATION_ERROR"
        assert result.details["field"] == "vendor_id"

    @pytest.mark.parametrize("cost", ["NaN", "Infinity", "1e40"])
    def test_unstorable_cost_is_validation_failure(self, gateway, gateway_seeded, captured_logs, cost):
        result = gateway.create_vendor_order(_vendor_payload(gateway_seeded, 3, cost=cost))

        assert result.error_code == "VALIDATION_ERROR"
        assert result.details["field"] == "cost"
        assert _quantity(gateway, gateway_seeded, gateway_seeded.w1, gateway_seeded.product) == 20
        assert not [r for r in captured_logs() if r["level"] == "ERROR"]

    def test_get_order(self, gateway, gateway_seeded):
        order = gateway.create_vendor_order(_vendor_payload(gateway_seeded, 2)).data

        assert gateway.get_order(str(order.id)).data.quantity == 2
        assert gateway.get_order(str(uuid4())).error_code == "NOT_FOUND"

    def test_invalid_transition(self, gateway, gateway_seeded):
        order = gateway.create_vendor_order(_vendor_payload(gateway_seeded, 1)).data
        gateway.update_order_status(order.id, "COMPLETED")

        result = gateway.update_order_status(order.id, "IN_PROGRESS")

        assert result.error_code == "INVALID_TRANSITION"


class TestTransfers:
    def test_transfer_between_warehouses(self, gateway, gateway_seeded):
        result = gateway.transfer_stock(
            {
                "vendor_id": str(gateway_seeded.vendor),
                "from_warehouse_id": str(gateway_seeded.w1),
                "to_warehouse_id": str(gateway_seeded.w2),
                "items": [{"product_id": str(gateway_seeded.product), "quantity": 5}],
            }
        )

        assert result.success
        assert _quantity(gateway, gateway_seeded, gateway_seeded.w2, gateway_seeded.product) == 5
        reconcile = gateway.reconcile_inventory()
        assert not any(r.corrected for r in reconcile.data)

    def test_partial_shortage_moves_nothing(self, gateway, gateway_seeded):
        gateway.register_stock(
            gateway_seeded.vendor, gateway_seeded.w1, gateway_seeded.product_b, 10
        )

        result = gateway.transfer_stock(
            {
                "vendor_id": str(gateway_seeded.vendor),
                "from_warehouse_id": str(gateway_seeded.w1),
                "to_warehouse_id": str(gateway_seeded.w2),
                "items": [
                    {"product_id": str(gateway_seeded.product), "quantity": 5},
                    {"product_id": str(gateway_seeded.product_b), "quantity": 999},
                ],
            }
        )

        assert result.error_code == "TRANSFER_REJECTED"
        assert len(result.details["failures"]) == 1
        assert _quantity(gateway, gateway_seeded, gateway_seeded.w1, gateway_seeded.product) == 20
        assert _quantity(gateway, gateway_seeded, gateway_seeded.w2, gateway_seeded.product) == 0
        assert gateway.list_transfers().data == []

    def test_transfer_history_and_warehouse_products(self, gateway, gateway_seeded):
        gateway.transfer_stock(
            {
                "vendor_id": str(gateway_seeded.vendor),
                "from_warehouse_id": str(gateway_seeded.w1),
                "to_warehouse_id": str(gateway_seeded.w2),
                "items": [{"product_id": str(gateway_seeded.product), "quantity": 6}],
            }
        )

        history = gateway.list_transfers(warehouse_id=str(gateway_seeded.w2)).data
        assert [t.total_quantity for t in history] == [6]
        assert gateway.list_transfers(vendor_id=str(gateway_seeded.other_vendor)).data == []

        page = gateway.warehouse_products(str(gateway_seeded.w2)).data
        assert [(item.product_id, item.quantity) for item in page.items] == [(gateway_seeded.product, 6)]
        assert gateway.warehouse_products(str(uuid4())).error_code == "NOT_FOUND"


class TestRemittanceAndReports:
    def test_remittance_lifecycle_with_iso_dates(self, gateway, gateway_seeded):
        order = gateway.create_vendor_order(_vendor_payload(gateway_seeded, 1)).data
        remittance = gateway.compute_remittance(
            {
                "party_id": str(gateway_seeded.vendor),
                "period_start": "2024-06-01",
                "period_end": "2024-06-30",
                "order_ids": [str(order.id)],
                "expected_amounts": ["500"],
            }
        )
        assert remittance.success

        paid = gateway.record_remittance_payment(
            {"remittance_id": str(remittance.data.id), "amount": "500", "method": "cash"}
        )

        assert paid.data.status == "PAID"
        assert gateway.list_remittances(status="PAID").data[0].id == remittance.data.id
        fetched = gateway.get_remittance(str(remittance.data.id)).data
        assert (fetched.total_received, len(fetched.payments)) == (Decimal("500.00"), 1)
        assert gateway.get_remittance(str(uuid4())).error_code == "NOT_FOUND"
        summary = gateway.accounting_summary("monthly").data
        assert summary.income_breakdown.vip.received == Decimal("500")

    def test_deleting_remitted_order_rejected(self, gateway, gateway_seeded):
        order = gateway.create_vendor_order(_vendor_payload(gateway_seeded, 1)).data
        gateway.compute_remittance(
            {
                "party_id": str(gateway_seeded.vendor),
                "period_start": "2024-06-01",
                "period_end": "2024-06-30",
                "order_ids": [str(order.id)],
                "expected_amounts": ["500"],
            }
        )

        result = gateway.delete_order(order.id)

        assert result.error_code == "VALIDATION_ERROR"

    def test_performance_scopes(self, gateway, gateway_seeded):
        assert gateway.performance_stats("client").success
        assert gateway.performance_stats("vendor", str(gateway_seeded.vendor)).success
        assert gateway.performance_stats("agent", str(gateway_seeded.agent)).success
        assert gateway.performance_stats("agent").error_code == "VALIDATION_ERROR"
        assert gateway.performance_stats("galaxy").details["field"] == "scope"

    def test_expenses_and_metrics(self, gateway, gateway_seeded):
        assert gateway.record_expense("Fuel", "75.50").success
        assert gateway.expense_records("daily").data[0].amount == Decimal("75.50")
        assert gateway.remittance_metrics().data.pending_balance == Decimal("0")
        assert gateway.income_records().data == []

    def test_dashboard(self, gateway, gateway_seeded):
        gateway.create_vendor_order(_vendor_payload(gateway_seeded, 1, agent_id=str(gateway_seeded.agent)))
        gateway.create_client_order(
            {"client_id": str(gateway_seeded.client), "destination": "Lekki", "cost": "300"}
        )

        metrics = gateway.dashboard_metrics().data
        assert (metrics.total_shipments, metrics.deliveries_in_progress) == (2, 2)
        assert (metrics.active_agents, metrics.warehouses) == (1, 2)

        shares = gateway.orders_by_location().data
        assert sorted(loc.share for loc in shares.locations) == [Decimal("50.0"), Decimal("50.0")]

        months = gateway.shipments_by_month(3).data
        assert [m.shipments for m in months] == [0, 0, 2]
        assert gateway.shipments_by_month(0).error_code == "VALIDATION_ERROR"

    def test_result_serializes_to_json(self, gateway, gateway_seeded):
        result = gateway.accounting_summary("weekly")
        payload = json.loads(json.dumps(result.to_dict()))
        assert payload["success"] is True
        assert payload["data"]["period"] == "weekly"


class TestDirectoryAndAccounts:
    def test_directory_round(self, gateway):
        warehouse = gateway.create_warehouse({"name": "Hub", "location": "Enugu", "capacity": 40})
        vendor = gateway.create_vendor({"company_name": "Initech", "email": "a@initech.test"})
        product = gateway.create_product(
            {"vendor_id": str(vendor.data.id), "name": "Stapler", "price": "9.99", "sku": "STP"}
        )
        link = gateway.link_vendor_to_warehouse(vendor.data.id, warehouse.data.id)
        client = gateway.create_client({"full_name": "Bola", "phone": "+234"})
        agent = gateway.create_agent(
            {"full_name": "Kay", "email": "kay@fleet.test", "phone": "+234",
             "warehouse_id": str(warehouse.data.id)}
        )

        assert all(r.success for r in (warehouse, vendor, product, link, client, agent))

    def test_warehouse_maintenance(self, gateway):
        hub = gateway.create_warehouse({"name": "Hub", "location": "Enugu", "capacity": 40}).data
        gateway.create_warehouse({"name": "Depot", "location": "Kano", "capacity": 10})

        updated = gateway.update_warehouse(str(hub.id), {"capacity": 80, "location": "Aba"})
        assert (updated.data.capacity, updated.data.location, updated.data.name) == (80, "Aba", "Hub")
        assert gateway.get_warehouse(str(hub.id)).data.capacity == 80

        assert gateway.delete_warehouse(str(hub.id)).success
        assert [w.name for w in gateway.list_warehouses().data] == ["Depot"]
        assert gateway.delete_warehouse(str(hub.id)).error_code == "NOT_FOUND"

    def test_stocked_warehouse_not_deleted(self, gateway, gateway_seeded):
        result = gateway.delete_warehouse(str(gateway_seeded.w1))

        assert result.error_code == "VALIDATION_ERROR"
        assert len(gateway.list_warehouses().data) == 2

    def test_get_vendor(self, gateway, gateway_seeded):
        assert gateway.get_vendor(str(gateway_seeded.vendor)).data.company_name == "Acme Supplies"
        assert gateway.get_vendor(str(uuid4())).error_code == "NOT_FOUND"

    def test_duplicate_is_not_retried(self, gateway, captured_logs):
        gateway.create_vendor({"company_name": "Initech", "email": "a@initech.test"})
        result = gateway.create_vendor({"company_name": "Initech 2", "email": "a@initech.test"})

        assert result.error_code == "DUPLICATE_RECORD"
        assert not any(r["message"] == "operation_conflict_retry" for r in captured_logs())

    def test_create_user_and_login(self, gateway):
        assert gateway.create_user("ops@example.com", "s3cretpass").success
        assert gateway.login("ops@example.com", "s3cretpass").success
        assert gateway.login("ops@example.com", "wrong").error_code == "INVALID_CREDENTIALS"


class TestRunSemantics:
    def test_conflict_retried_then_succeeds(self, gateway, captured_logs):
        calls = []

        def work(o):
            calls.append(1)
            if len(calls) < 3:
                raise ConflictError("inventory", "version mismatch")
            return "done"

        result = gateway._run("flaky_operation", work)

        assert result == OperationResult.ok("done")
        retries = [r for r in captured_logs() if r["message"] == "operation_conflict_retry"]
        assert [r["attempt"] for r in retries] == [1, 2]

    def test_conflict_retries_exhausted(self, gateway, app_config):
        calls = []

        def work(o):
            calls.append(1)
            raise ConflictError("inventory")

        result = gateway._run("flaky_operation", work)

        assert result.error_code == "CONFLICT"
        assert len(calls) == app_config.concurrency.max_conflict_retries + 1

    def test_unexpected_error_wrapped_and_logged(self, gateway, captured_logs):
        def work(o):
            raise RuntimeError("boom")

        result = gateway._run("flaky_operation", work)

        assert result.error_code == "PERSISTENCE_ERROR"
        assert "RuntimeError: boom" in result.error
        errors = [r for r in captured_logs() if r["level"] == "ERROR"]
        assert errors[0]["message"] == "operation_unexpected_failure"
        assert "traceback" in errors[0]

    def test_log_context_bound_per_operation(self, gateway, gateway_seeded, captured_logs):
        gateway.create_vendor_order(_vendor_payload(gateway_seeded, 1))

        created = [r for r in captured_logs() if r["message"] == "order_created"][0]
        assert created["operation"] == "create_vendor_order"
        assert created["correlation_id"]


class TestParsing:
    def test_parse_uuid(self):
        value = uuid4()
        assert parse_uuid(str(value), "id") == value
        assert parse_uuid(None, "id", required=False) is None
        with pytest.raises(ValidationError):
            parse_uuid("", "id")

    def test_parse_moment(self):
        assert str(parse_moment("2024-06-01", "d")) == "2024-06-01"
        assert parse_moment("2024-06-01T08:30:00", "d").hour == 8
        with pytest.raises(ValidationError):
            parse_moment("June", "d")
        with pytest.raises(ValidationError):
            parse_moment(None, "d")
