"""
Module: logistics_kernel.selectors.performance_selector
Responsibility: Delivery performance statistics (requested / delivered /
    failed counts and success rate) for regular clients, vendors and agents,
    bucketed by calendar week and calendar month.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - delivered counts COMPLETED orders; failed counts CANCELLED orders;
      requested counts every order in the bucket.
    - success_rate = delivered / requested * 100 to one decimal place, 0 when
      nothing was requested.
    - Buckets are contiguous, oldest first; the last contains "now".
    - revenue sums charged amounts (cost + additional_charge) of orders that
      were not cancelled.
"""

from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from logistics_kernel.db.types import ZERO
from logistics_kernel.domain.clock import Clock
from logistics_kernel.domain.order_workflow import OrderStatus
from logistics_kernel.domain.periods import Bucket, month_buckets, week_buckets
from logistics_kernel.domain.reports import (
    PerformanceBucket,
    PerformanceStats,
    PerformanceTotals,
)
from logistics_kernel.exceptions import AgentNotFoundError, VendorNotFoundError
from logistics_kernel.models import Agent, DeliveryOrder, OrderType, Vendor
from logistics_kernel.selectors.base import BaseSelector

_Row = tuple[datetime, str, Decimal]


def _bucketize(rows: list[_Row], buckets: Iterable[Bucket]) -> tuple[PerformanceBucket, ...]:
    result = []
    for bucket in buckets:
        statuses = [status for created_at, status, _ in rows if bucket.contains(created_at)]
        result.append(
            PerformanceBucket(
                period=bucket.label,
                requested=len(statuses),
                delivered=statuses.count(OrderStatus.COMPLETED.value),
                failed=statuses.count(OrderStatus.CANCELLED.value),
                start=bucket.start,
                end=bucket.end,
            )
        )
    return tuple(result)


def _totals(rows: list[_Row]) -> PerformanceTotals:
    statuses = [status for _, status, _ in rows]
    revenue = sum(
        (charged for _, status, charged in rows if status != OrderStatus.CANCELLED.value),
        ZERO,
    )
    return PerformanceTotals(
        requested=len(rows),
        delivered=statuses.count(OrderStatus.COMPLETED.value),
        failed=statuses.count(OrderStatus.CANCELLED.value),
        revenue=revenue,
    )


class PerformanceSelector(BaseSelector):
    """Weekly and monthly delivery statistics."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        *,
        weekly_buckets: int = 4,
        monthly_buckets: int = 6,
        vendor_monthly_buckets: int = 12,
    ):
        super().__init__(session, clock)
        self.weekly_buckets = weekly_buckets
        self.monthly_buckets = monthly_buckets
        self.vendor_monthly_buckets = vendor_monthly_buckets

    def _rows(self, *criteria) -> list[_Row]:
        stmt = select(DeliveryOrder).where(*criteria).order_by(DeliveryOrder.created_at)
        return [
            (order.created_at, order.status, order.amount_charged)
            for order in self.session.execute(stmt).scalars()
        ]

    def _stats(self, rows: list[_Row], months: int) -> PerformanceStats:
        now = self.clock.timestamp()
        return PerformanceStats(
            totals=_totals(rows),
            weekly=_bucketize(rows, week_buckets(now, self.weekly_buckets)),
            monthly=_bucketize(rows, month_buckets(now, months)),
        )

    def client_performance_stats(self) -> PerformanceStats:
        """Statistics over all regular-client orders."""
        rows = self._rows(DeliveryOrder.order_type == OrderType.CLIENT.value)
        return self._stats(rows, self.monthly_buckets)

    def vendor_performance_stats(self, vendor_id: UUID | None = None) -> PerformanceStats:
        """Statistics over vendor orders, for one vendor or all of them."""
        criteria = [DeliveryOrder.order_type == OrderType.VENDOR.value]
        if vendor_id is not None:
            if self.session.get(Vendor, vendor_id) is None:
                raise VendorNotFoundError(vendor_id)
            criteria.append(DeliveryOrder.vendor_id == vendor_id)
        return self._stats(self._rows(*criteria), self.vendor_monthly_buckets)

    def agent_performance_stats(self, agent_id: UUID) -> PerformanceStats:
        """Statistics over the orders assigned to one agent."""
        if self.session.get(Agent, agent_id) is None:
            raise AgentNotFoundError(agent_id)
        rows = self._rows(DeliveryOrder.agent_id == agent_id)
        return self._stats(rows, self.monthly_buckets)
