"""
Tests for RemittanceService.

Covers:
- Creation checks (party, ownership, period, duplicates, amount count)
- PENDING -> PAID once received reaches charged, and PAID staying put
- FIFO allocation of payments onto orders' amount_received
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

import pytest

from logistics_kernel.exceptions import (
    OrderNotFoundError,
    PartyNotFoundError,
    RemittanceNotFoundError,
    ValidationError,
)

JUNE_START = date(2024, 6, 1)
JUNE_END = date(2024, 6, 30)


@pytest.fixture
def vendor_orders(orders, stocked):
    first = orders.create_vendor_order(
        stocked.vendor, stocked.w1, stocked.product, 1, Decimal("600"), "Yaba"
    )
    second = orders.create_vendor_order(
        stocked.vendor, stocked.w1, stocked.product, 1, Decimal("400"), "Ikeja"
    )
    return first, second


def _remit(remittances, stocked, vendor_orders):
    first, second = vendor_orders
    return remittances.compute_remittance(
        stocked.vendor, JUNE_START, JUNE_END,
        [first.id, second.id], [Decimal("600"), Decimal("400")],
    )


class TestComputeRemittance:
    def test_creates_pending_remittance(self, remittances, stocked, vendor_orders):
        info = _remit(remittances, stocked, vendor_orders)

        assert info.status == "PENDING"
        assert info.party_type == "vendor"
        assert info.party_id == stocked.vendor
        assert info.total_charged == Decimal("1000.00")
        assert info.total_received == Decimal("0")
        assert info.balance == Decimal("1000.00")
        assert [o.order_id for o in info.orders] == [o.id for o in vendor_orders]

    def test_dates_cover_whole_days(self, remittances, stocked, vendor_orders):
        info = _remit(remittances, stocked, vendor_orders)
        assert info.period_start == datetime(2024, 6, 1)
        assert info.period_end.date() == JUNE_END
        assert info.period_end.hour == 23

    def test_client_party(self, remittances, orders, stocked):
        order = orders.create_client_order(stocked.client, "Lekki", Decimal("300"))
        info = remittances.compute_remittance(
            stocked.client, JUNE_START, JUNE_END, [order.id], [Decimal("300")]
        )
        assert info.party_type == "client"

    def test_unknown_party(self, remittances, stocked, vendor_orders):
        with pytest.raises(PartyNotFoundError):
            remittances.compute_remittance(
                uuid4(), JUNE_START, JUNE_END, [vendor_orders[0].id], [Decimal("1")]
            )

    def test_order_of_other_party_rejected(self, remittances, stocked, vendor_orders):
        with pytest.raises(ValidationError):
            remittances.compute_remittance(
                stocked.other_vendor, JUNE_START, JUNE_END,
                [vendor_orders[0].id], [Decimal("600")],
            )

    def test_order_outside_period_rejected(self, remittances, stocked, vendor_orders):
        with pytest.raises(ValidationError):
            remittances.compute_remittance(
                stocked.vendor, date(2024, 5, 1), date(2024, 5, 31),
                [vendor_orders[0].id], [Decimal("600")],
            )

    def test_order_on_two_remittances_rejected(self, remittances, stocked, vendor_orders):
        _remit(remittances, stocked, vendor_orders)
        with pytest.raises(ValidationError) as exc_info:
            remittances.compute_remittance(
                stocked.vendor, JUNE_START, JUNE_END,
                [vendor_orders[0].id], [Decimal("600")],
            )
        assert "already on remittance" in exc_info.value.reason

    def test_amount_count_mismatch(self, remittances, stocked, vendor_orders):
        with pytest.raises(ValidationError) as exc_info:
            remittances.compute_remittance(
                stocked.vendor, JUNE_START, JUNE_END,
                [o.id for o in vendor_orders], [Decimal("600")],
            )
        assert exc_info.value.field == "expected_amounts"

    def test_total_beyond_money_range(self, remittances, stocked, vendor_orders):
        big = Decimal("9000000000000000")
        with pytest.raises(ValidationError) as exc_info:
            remittances.compute_remittance(
                stocked.vendor, JUNE_START, JUNE_END,
                [o.id for o in vendor_orders], [big, big],
            )
        assert exc_info.value.field == "expected_amounts"

    def test_empty_order_list(self, remittances, stocked):
        with pytest.raises(ValidationError):
            remittances.compute_remittance(stocked.vendor, JUNE_START, JUNE_END, [], [])

    def test_reversed_period(self, remittances, stocked, vendor_orders):
        with pytest.raises(ValidationError):
            remittances.compute_remittance(
                stocked.vendor, JUNE_END, JUNE_START, [vendor_orders[0].id], [Decimal("1")]
            )

    def test_unknown_order(self, remittances, stocked):
        with pytest.raises(OrderNotFoundError):
            remittances.compute_remittance(
                stocked.vendor, JUNE_START, JUNE_END, [uuid4()], [Decimal("1")]
            )


class TestRecordPayment:
    def test_partial_payment_stays_pending(self, remittances, stocked, vendor_orders):
        remittance = _remit(remittances, stocked, vendor_orders)

        info = remittances.record_payment(remittance.id, Decimal("600"), method="transfer")

        assert info.status == "PENDING"
        assert info.total_received == Decimal("600.00")
        assert info.balance == Decimal("400.00")
        assert info.payments[0].method == "transfer"

    def test_paid_is_sticky(self, remittances, stocked, vendor_orders, captured_logs):
        remittance = _remit(remittances, stocked, vendor_orders)

        remittances.record_payment(remittance.id, Decimal("600"))
        paid = remittances.record_payment(remittance.id, Decimal("400"))
        later = remittances.record_payment(remittance.id, Decimal("100"))

        assert paid.status == "PAID"
        assert later.status == "PAID"
        assert later.total_received == Decimal("1100.00")
        assert later.balance == Decimal("0")
        assert len(later.payments) == 3
        assert sum(1 for r in captured_logs() if r["message"] == "remittance_paid") == 1

    def test_payments_allocated_oldest_first(self, remittances, orders, stocked, vendor_orders):
        first, second = vendor_orders
        remittance = _remit(remittances, stocked, vendor_orders)

        info = remittances.record_payment(remittance.id, Decimal("700"))

        allocated = {o.order_id: o.received_amount for o in info.orders}
        assert allocated[first.id] == Decimal("600.00")
        assert allocated[second.id] == Decimal("100.00")
        assert orders.get_order(first.id).amount_received == Decimal("600.00")
        assert orders.get_order(second.id).amount_received == Decimal("100.00")

    def test_surplus_left_unallocated(self, remittances, orders, stocked, vendor_orders):
        first, second = vendor_orders
        remittance = _remit(remittances, stocked, vendor_orders)

        info = remittances.record_payment(remittance.id, Decimal("1250"))

        assert info.total_received == Decimal("1250.00")
        assert sum(o.received_amount for o in info.orders) == Decimal("1000.00")
        assert orders.get_order(second.id).amount_received == Decimal("400.00")

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-10"), "n/a", "NaN", "Infinity"])
    def test_invalid_amount(self, remittances, stocked, vendor_orders, amount):
        remittance = _remit(remittances, stocked, vendor_orders)
        with pytest.raises(ValidationError):
            remittances.record_payment(remittance.id, amount)

    def test_unknown_remittance(self, remittances, stocked):
        with pytest.raises(RemittanceNotFoundError):
            remittances.record_payment(uuid4(), Decimal("10"))


class TestListRemittances:
    def test_filter_by_status_and_party(self, remittances, stocked, vendor_orders):
        remittance = _remit(remittances, stocked, vendor_orders)

        assert [r.id for r in remittances.list_remittances(status="pending")] == [remittance.id]
        assert remittances.list_remittances(status="PAID") == []
        assert [r.id for r in remittances.list_remittances(party_id=stocked.vendor)] == [remittance.id]
        assert remittances.list_remittances(party_id=stocked.client) == []
