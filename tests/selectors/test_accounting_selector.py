"""
Tests for AccountingSelector.

The clock sits at Saturday 2024-06-15 12:00; orders placed at other times
move the clock and put it back before querying.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from logistics_kernel.exceptions import ValidationError
from logistics_kernel.selectors import AccountingSelector
from logistics_kernel.selectors.accounting_selector import (
    CATEGORY_HIGH_VALUE,
    CATEGORY_STANDARD,
    SOURCE_REGULAR,
    SOURCE_VIP,
)

NOW = datetime(2024, 6, 15, 12, 0)


def _vendor_order(orders, data, cost, received=None):
    order = orders.create_vendor_order(
        data.vendor, data.w1, data.product, 1, Decimal(cost), "Yaba"
    )
    if received:
        orders.record_collection(order.id, Decimal(received))
    return order


def _client_order(orders, data, cost, received=None):
    order = orders.create_client_order(data.client, "Lekki", Decimal(cost))
    if received:
        orders.record_collection(order.id, Decimal(received))
    return order


def _at(clock, moment, fn, *args):
    clock.set_time(moment)
    try:
        return fn(*args)
    finally:
        clock.set_time(NOW)


@pytest.fixture
def june_books(orders, expenses, stocked):
    """Two vendor orders (charged 1000, received 800), one client order (300/300)."""
    _vendor_order(orders, stocked, "600", "600")
    _vendor_order(orders, stocked, "400", "200")
    _client_order(orders, stocked, "300", "300")
    expenses.record_expense("Fuel", Decimal("100"))
    expenses.record_expense("Rent", Decimal("50"))
    return stocked


class TestSummaryByPeriod:
    def test_monthly_income_partitioned_by_order_type(self, accounting, june_books):
        summary = accounting.summary_by_period("monthly")
        income = summary.income_breakdown

        assert income.vip.charged == Decimal("1000")
        assert income.vip.received == Decimal("800")
        assert income.vip.outstanding == Decimal("200")
        assert income.regular.received == Decimal("300")
        assert income.totals.received == Decimal("1100")
        assert income.totals.charged == Decimal("1300")
        assert income.totals.order_count == 3

    def test_profit_and_loss(self, accounting, june_books):
        pl = accounting.summary_by_period("monthly").profit_loss

        assert pl.total_expenses == Decimal("150")
        assert pl.profit == Decimal("1150")
        assert pl.outstanding_adjusted_profit == Decimal("950")
        assert pl.cash_profit == Decimal("950")

    def test_expenses_grouped_by_type(self, accounting, june_books):
        breakdown = accounting.summary_by_period("monthly").expense_breakdown
        assert breakdown.by_type == {"Fuel": Decimal("100"), "Rent": Decimal("50")}
        assert breakdown.total == Decimal("150")

    def test_cancelled_orders_are_not_income(self, accounting, orders, june_books):
        cancelled = _client_order(orders, june_books, "5000")
        orders.update_status(cancelled.id, "CANCELLED")

        summary = accounting.summary_by_period("monthly")

        assert summary.income_breakdown.regular.charged == Decimal("300")

    def test_period_windows(self, accounting, orders, clock, stocked):
        _at(clock, datetime(2024, 5, 20, 9), _client_order, orders, stocked, "10")
        _at(clock, datetime(2024, 6, 3, 9), _client_order, orders, stocked, "20")
        _at(clock, datetime(2024, 6, 10, 9), _client_order, orders, stocked, "40")
        _client_order(orders, stocked, "80")

        def charged(period):
            return accounting.summary_by_period(period).income_breakdown.regular.charged

        assert charged("daily") == Decimal("80")
        assert charged("weekly") == Decimal("120")
        assert charged("monthly") == Decimal("140")
        assert charged(None) == Decimal("150")
        assert charged("all") == Decimal("150")

    def test_all_time_has_no_lower_bound(self, accounting, june_books):
        summary = accounting.summary_by_period()
        assert summary.period is None
        assert summary.since is None

    def test_empty_store(self, accounting):
        summary = accounting.summary_by_period("daily")
        assert summary.income_breakdown.totals.charged == Decimal("0")
        assert summary.profit_loss.profit == Decimal("0")
        assert summary.since == datetime(2024, 6, 15)

    def test_unknown_period(self, accounting):
        with pytest.raises(ValidationError):
            accounting.summary_by_period("fortnightly")

    def test_to_dict_is_json_friendly(self, accounting, june_books):
        data = accounting.summary_by_period("monthly").to_dict()
        assert data["income_breakdown"]["vip"]["received"] == "800.00"
        assert data["since"] == "2024-06-01T00:00:00"


class TestIncomeRecords:
    def test_sources_and_party_names(self, accounting, june_books):
        records = accounting.income_records("monthly")

        assert len(records) == 3
        sources = {(r.source, r.party_name) for r in records}
        assert sources == {(SOURCE_VIP, "Acme Supplies"), (SOURCE_REGULAR, "Ada Obi")}

    def test_high_value_category(self, session, clock, orders, stocked):
        _client_order(orders, stocked, "99999.99")
        _client_order(orders, stocked, "100000")

        selector = AccountingSelector(session, clock)
        categories = sorted(r.category for r in selector.income_records())
        assert categories == [CATEGORY_HIGH_VALUE, CATEGORY_STANDARD]

    def test_threshold_is_configurable(self, session, clock, orders, stocked):
        _client_order(orders, stocked, "500")
        selector = AccountingSelector(session, clock, high_value_threshold=Decimal("500"))
        assert selector.income_records()[0].category == CATEGORY_HIGH_VALUE

    def test_newest_first(self, accounting, orders, clock, stocked):
        older = _at(clock, datetime(2024, 6, 1, 9), _client_order, orders, stocked, "10")
        newer = _client_order(orders, stocked, "20")
        assert [r.order_id for r in accounting.income_records()] == [newer.id, older.id]


class TestExpenseRecords:
    def test_window_applies(self, accounting, expenses, clock):
        _at(clock, datetime(2024, 5, 1), expenses.record_expense, "Rent", Decimal("500"))
        expenses.record_expense("Fuel", Decimal("20"))

        assert [e.expense_type for e in accounting.expense_records("monthly")] == ["Fuel"]
        assert [e.expense_type for e in accounting.expense_records()] == ["Fuel", "Rent"]


class TestRemittanceMetrics:
    def test_headline_figures(self, accounting, orders, clock, stocked):
        in_flight = _vendor_order(orders, stocked, "500", "100")
        done = _vendor_order(orders, stocked, "300")
        orders.update_status(done.id, "COMPLETED")
        old_done = _at(clock, datetime(2024, 4, 2), _vendor_order, orders, stocked, "200")
        orders.update_status(old_done.id, "COMPLETED")
        dropped = _vendor_order(orders, stocked, "900")
        orders.update_status(dropped.id, "CANCELLED")
        _client_order(orders, stocked, "1000")

        metrics = accounting.remittance_metrics()

        assert metrics.pending_balance == Decimal("400")
        assert metrics.completed_this_month == Decimal("300")
        assert metrics.service_fees == Decimal("500")
        assert in_flight.status == "PENDING"
