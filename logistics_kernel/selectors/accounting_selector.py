"""
Module: logistics_kernel.selectors.accounting_selector
Responsibility: Read-only income, expense and profit/loss rollups derived
    from committed orders and expense records.  There are no stored totals;
    every figure is recomputed from rows at query time.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Income is partitioned by order type: vendor orders are VIP income,
      client orders are regular income.
    - charged = cost + additional_charge; received = amount_received;
      outstanding = max(charged - received, 0) summed per order.
    - CANCELLED orders are not income and are excluded from every rollup.
    - profit = charged - expenses; outstanding_adjusted_profit =
      profit - outstanding; cash_profit = received - expenses.
    - Money is summed as Decimal in Python, never through SQL SUM (SQLite
      would hand back floats).

Failure modes:
    - ValidationError for an unknown period name.
"""

from collections import defaultdict
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from logistics_kernel.db.types import ZERO
from logistics_kernel.domain.clock import Clock
from logistics_kernel.domain.dtos import ExpenseInfo
from logistics_kernel.domain.order_workflow import OrderStatus
from logistics_kernel.domain.periods import parse_period, period_start, start_of_month
from logistics_kernel.domain.reports import (
    AccountingSummary,
    ExpenseBreakdown,
    IncomeBreakdown,
    IncomeBucket,
    IncomeRecord,
    ProfitLoss,
    RemittanceMetrics,
)
from logistics_kernel.models import Client, DeliveryOrder, Expense, OrderType, Vendor
from logistics_kernel.selectors.base import BaseSelector

DEFAULT_HIGH_VALUE_THRESHOLD = Decimal("100000")

SOURCE_VIP = "VIP"
SOURCE_REGULAR = "REGULAR"
CATEGORY_HIGH_VALUE = "High Value"
CATEGORY_STANDARD = "Standard"


class AccountingSelector(BaseSelector):
    """Income/expense summaries over a reporting window."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        *,
        high_value_threshold: Decimal = DEFAULT_HIGH_VALUE_THRESHOLD,
    ):
        super().__init__(session, clock)
        self.high_value_threshold = Decimal(high_value_threshold)

    def _since(self, period: str | None) -> datetime | None:
        return period_start(period, self.clock.timestamp())

    def _income_orders(self, since: datetime | None) -> Select:
        stmt = select(DeliveryOrder).where(
            DeliveryOrder.status != OrderStatus.CANCELLED.value
        )
        if since is not None:
            stmt = stmt.where(DeliveryOrder.created_at >= since)
        return stmt

    def _expenses(self, since: datetime | None) -> list[Expense]:
        stmt = select(Expense)
        if since is not None:
            stmt = stmt.where(Expense.created_at >= since)
        stmt = stmt.order_by(Expense.created_at.desc())
        return list(self.session.execute(stmt).scalars())

    def summary_by_period(self, period: str | None = None) -> AccountingSummary:
        """
        Income, expense and profit/loss breakdown for ``period``.

        ``period`` is daily, weekly, monthly, or None / "all" for all time.
        """
        parsed = parse_period(period)
        since = self._since(period)

        vip = IncomeBucket()
        regular = IncomeBucket()
        for order in self.session.execute(self._income_orders(since)).scalars():
            if order.order_type == OrderType.VENDOR.value:
                vip = vip.add(order.amount_charged, order.amount_received)
            else:
                regular = regular.add(order.amount_charged, order.amount_received)
        totals = vip + regular

        by_type: dict[str, Decimal] = defaultdict(lambda: ZERO)
        for expense in self._expenses(since):
            by_type[expense.expense_type] += expense.amount
        total_expenses = sum(by_type.values(), ZERO)

        return AccountingSummary(
            period=parsed.value if parsed else None,
            since=since,
            income_breakdown=IncomeBreakdown(vip=vip, regular=regular, totals=totals),
            expense_breakdown=ExpenseBreakdown(
                by_type=dict(sorted(by_type.items())),
                total=total_expenses,
            ),
            profit_loss=ProfitLoss.compute(totals, total_expenses),
        )

    def income_records(self, period: str | None = None) -> list[IncomeRecord]:
        """Per-order income rows, newest first."""
        since = self._since(period)
        stmt = (
            self._income_orders(since)
            .add_columns(Vendor.company_name, Client.full_name)
            .outerjoin(Vendor, Vendor.id == DeliveryOrder.vendor_id)
            .outerjoin(Client, Client.id == DeliveryOrder.client_id)
            .order_by(DeliveryOrder.created_at.desc())
        )

        records = []
        for order, vendor_name, client_name in self.session.execute(stmt):
            is_vip = order.order_type == OrderType.VENDOR.value
            charged = order.amount_charged
            records.append(
                IncomeRecord(
                    order_id=order.id,
                    source=SOURCE_VIP if is_vip else SOURCE_REGULAR,
                    party_name=vendor_name if is_vip else client_name,
                    charged=charged,
                    received=order.amount_received,
                    outstanding=order.outstanding,
                    category=(
                        CATEGORY_HIGH_VALUE
                        if charged >= self.high_value_threshold
                        else CATEGORY_STANDARD
                    ),
                    status=order.status,
                    created_at=order.created_at,
                )
            )
        return records

    def expense_records(self, period: str | None = None) -> list[ExpenseInfo]:
        return [ExpenseInfo.from_model(e) for e in self._expenses(self._since(period))]

    def remittance_metrics(self) -> RemittanceMetrics:
        """
        Headline figures for the vendor remittance screen.

        pending_balance: outstanding on vendor orders still in flight.
        completed_this_month: charged on vendor orders completed this month.
        service_fees: charged on all completed vendor orders.
        """
        month_start = start_of_month(self.clock.timestamp())
        terminal = (OrderStatus.COMPLETED.value, OrderStatus.CANCELLED.value)

        pending = ZERO
        this_month = ZERO
        fees = ZERO
        rows = self.session.execute(
            select(DeliveryOrder).where(DeliveryOrder.order_type == OrderType.VENDOR.value)
        ).scalars()
        for order in rows:
            if order.status not in terminal:
                pending += order.outstanding
            elif order.status == OrderStatus.COMPLETED.value:
                fees += order.amount_charged
                if order.created_at >= month_start:
                    this_month += order.amount_charged

        return RemittanceMetrics(
            pending_balance=pending,
            completed_this_month=this_month,
            service_fees=fees,
        )
