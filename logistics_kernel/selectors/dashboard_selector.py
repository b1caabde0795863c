"""
Module: logistics_kernel.selectors.dashboard_selector
Responsibility: Headline counts and order distribution for the overview
    screen: shipments, open deliveries, busy agents, warehouses, each
    warehouse's share of orders, and monthly shipment volume.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Every order is a shipment, whatever its status.
    - An order is in progress until it reaches a terminal status
      (COMPLETED or CANCELLED).
    - active_agents counts distinct agents holding at least one order in
      progress; unassigned orders do not count.
    - Location shares are percentages of all orders to one decimal place.
      Client orders have no warehouse and are grouped under warehouse_id
      None.  With no orders there are no locations.
"""

from sqlalchemy import func, select

from logistics_kernel.db.types import percentage
from logistics_kernel.domain.order_workflow import ORDER_WORKFLOW, OrderStatus
from logistics_kernel.domain.periods import month_buckets
from logistics_kernel.domain.reports import (
    DashboardMetrics,
    LocationShare,
    OrdersByLocation,
    ShipmentMonth,
)
from logistics_kernel.exceptions import ValidationError
from logistics_kernel.models import DeliveryOrder, Warehouse
from logistics_kernel.selectors.base import BaseSelector

SHIPMENT_MONTHS = 12


class DashboardSelector(BaseSelector):
    """Overview counts recomputed from committed rows."""

    def _count(self, stmt) -> int:
        return self.session.execute(stmt).scalar_one() or 0

    def dashboard_metrics(self) -> DashboardMetrics:
        open_orders = DeliveryOrder.status.not_in(ORDER_WORKFLOW.terminal_states)
        return DashboardMetrics(
            total_shipments=self._count(select(func.count(DeliveryOrder.id))),
            deliveries_in_progress=self._count(
                select(func.count(DeliveryOrder.id)).where(open_orders)
            ),
            active_agents=self._count(
                select(func.count(func.distinct(DeliveryOrder.agent_id))).where(
                    open_orders, DeliveryOrder.agent_id.is_not(None)
                )
            ),
            warehouses=self._count(select(func.count(Warehouse.id))),
        )

    def orders_by_location(self) -> OrdersByLocation:
        """Order count and percentage share per warehouse, largest first."""
        rows = self.session.execute(
            select(DeliveryOrder.warehouse_id, Warehouse.name, func.count(DeliveryOrder.id))
            .outerjoin(Warehouse, Warehouse.id == DeliveryOrder.warehouse_id)
            .group_by(DeliveryOrder.warehouse_id, Warehouse.name)
        ).all()

        total = sum(count for _, _, count in rows)
        locations = sorted(
            (
                LocationShare(
                    warehouse_id=warehouse_id,
                    warehouse_name=name,
                    order_count=count,
                    share=percentage(count, total),
                )
                for warehouse_id, name, count in rows
            ),
            key=lambda loc: (-loc.order_count, loc.warehouse_name or ""),
        )
        return OrdersByLocation(total_orders=total, locations=tuple(locations))

    def shipments_by_month(self, months: int = SHIPMENT_MONTHS) -> list[ShipmentMonth]:
        """Orders created and orders completed per calendar month, oldest first."""
        if months < 1:
            raise ValidationError("months", "must be at least 1")
        buckets = month_buckets(self.clock.timestamp(), months)
        rows = self.session.execute(
            select(DeliveryOrder.created_at, DeliveryOrder.status).where(
                DeliveryOrder.created_at >= buckets[0].start
            )
        ).all()

        result = []
        for bucket in buckets:
            statuses = [status for created_at, status in rows if bucket.contains(created_at)]
            result.append(
                ShipmentMonth(
                    period=bucket.label,
                    shipments=len(statuses),
                    delivered=statuses.count(OrderStatus.COMPLETED.value),
                )
            )
        return result
