"""
Report values produced by the accounting, performance and dashboard selectors.

All frozen; ``to_dict()`` gives the nested, JSON-friendly shape the
interface layer renders (camelCase is the UI's concern, not ours).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from logistics_kernel.db.types import ZERO, percentage
from logistics_kernel.domain.dtos import _Serializable


@dataclass(frozen=True)
class IncomeBucket(_Serializable):
    """Charged / received / outstanding for one slice of orders."""

    charged: Decimal = ZERO
    received: Decimal = ZERO
    outstanding: Decimal = ZERO
    order_count: int = 0

    def add(self, charged: Decimal, received: Decimal) -> IncomeBucket:
        remaining = charged - received
        return IncomeBucket(
            charged=self.charged + charged,
            received=self.received + received,
            outstanding=self.outstanding + (remaining if remaining > 0 else ZERO),
            order_count=self.order_count + 1,
        )

    def __add__(self, other: IncomeBucket) -> IncomeBucket:
        return IncomeBucket(
            charged=self.charged + other.charged,
            received=self.received + other.received,
            outstanding=self.outstanding + other.outstanding,
            order_count=self.order_count + other.order_count,
        )


@dataclass(frozen=True)
class IncomeBreakdown(_Serializable):
    vip: IncomeBucket
    regular: IncomeBucket
    totals: IncomeBucket


@dataclass(frozen=True)
class ExpenseBreakdown(_Serializable):
    by_type: dict[str, Decimal]
    total: Decimal


@dataclass(frozen=True)
class ProfitLoss(_Serializable):
    """
    profit                      = total_charged - total_expenses
    outstanding_adjusted_profit = profit - outstanding
    cash_profit                 = total_received - total_expenses
    """

    total_charged: Decimal
    total_received: Decimal
    total_expenses: Decimal
    outstanding: Decimal
    profit: Decimal
    outstanding_adjusted_profit: Decimal
    cash_profit: Decimal

    @classmethod
    def compute(
        cls,
        income: IncomeBucket,
        total_expenses: Decimal,
    ) -> ProfitLoss:
        profit = income.charged - total_expenses
        return cls(
            total_charged=income.charged,
            total_received=income.received,
            total_expenses=total_expenses,
            outstanding=income.outstanding,
            profit=profit,
            outstanding_adjusted_profit=profit - income.outstanding,
            cash_profit=income.received - total_expenses,
        )


@dataclass(frozen=True)
class AccountingSummary(_Serializable):
    period: str | None
    since: datetime | None
    income_breakdown: IncomeBreakdown
    expense_breakdown: ExpenseBreakdown
    profit_loss: ProfitLoss


@dataclass(frozen=True)
class IncomeRecord(_Serializable):
    """One order's contribution to income."""

    order_id: UUID
    source: str  # VIP or REGULAR
    party_name: str | None
    charged: Decimal
    received: Decimal
    outstanding: Decimal
    category: str
    status: str
    created_at: datetime


@dataclass(frozen=True)
class RemittanceMetrics(_Serializable):
    pending_balance: Decimal
    completed_this_month: Decimal
    service_fees: Decimal


@dataclass(frozen=True)
class PerformanceBucket(_Serializable):
    period: str
    requested: int = 0
    delivered: int = 0
    failed: int = 0
    start: datetime | None = None
    end: datetime | None = None

    @property
    def success_rate(self) -> Decimal:
        return percentage(self.delivered, self.requested)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["success_rate"] = str(self.success_rate)
        return data


@dataclass(frozen=True)
class PerformanceTotals(_Serializable):
    requested: int
    delivered: int
    failed: int
    revenue: Decimal

    @property
    def success_rate(self) -> Decimal:
        return percentage(self.delivered, self.requested)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["success_rate"] = str(self.success_rate)
        return data


@dataclass(frozen=True)
class PerformanceStats(_Serializable):
    totals: PerformanceTotals
    weekly: tuple[PerformanceBucket, ...] = field(default_factory=tuple)
    monthly: tuple[PerformanceBucket, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "totals": self.totals.to_dict(),
            "weekly": [b.to_dict() for b in self.weekly],
            "monthly": [b.to_dict() for b in self.monthly],
        }


@dataclass(frozen=True)
class DashboardMetrics(_Serializable):
    total_shipments: int
    deliveries_in_progress: int
    active_agents: int
    warehouses: int


@dataclass(frozen=True)
class LocationShare(_Serializable):
    """Orders placed against one warehouse; client orders have no warehouse."""

    warehouse_id: UUID | None
    warehouse_name: str | None
    order_count: int
    share: Decimal  # percent of all orders, one decimal place


@dataclass(frozen=True)
class OrdersByLocation(_Serializable):
    total_orders: int
    locations: tuple[LocationShare, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ShipmentMonth(_Serializable):
    period: str
    shipments: int = 0
    delivered: int = 0
