"""
Module: logistics_kernel.models.order
Responsibility: ORM persistence for delivery orders.  Vendor orders and
    client orders share one physical table with nullable foreign keys; the
    tagged variant lives in domain/orders.py and OrderService enforces it.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/order_workflow.py (status enum only).

Invariants enforced (service layer, not schema):
    - order_type == "vendor"  => vendor_id, warehouse_id, product_id set.
    - order_type == "client"  => client_id set; product_id and warehouse_id
      are NULL.
    - stock_restored flips False -> True at most once, so a cancelled and
      then deleted order never restores stock twice.

Failure modes:
    - IntegrityError if a referenced vendor/product/warehouse/client row is
      missing (FK enforced per connection).
"""

from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from logistics_kernel.db.base import TrackedBase
from logistics_kernel.domain.order_workflow import OrderStatus


class OrderType(str, Enum):
    VENDOR = "vendor"
    CLIENT = "client"


class DeliveryOrder(TrackedBase):
    """
    A delivery job for a vendor (stock-backed) or a client (service-only).

    Contract:
        ``cost`` is the service charge; ``additional_charge`` any extra fee.
        Income charged for reporting is cost + additional_charge.
        ``amount_received`` accumulates collections and remittance
        allocations.
    """

    __tablename__ = "delivery_orders"

    __table_args__ = (
        Index("idx_order_status", "status"),
        Index("idx_order_vendor", "vendor_id"),
        Index("idx_order_client", "client_id"),
        Index("idx_order_agent", "agent_id"),
        Index("idx_order_created", "created_at"),
    )

    order_type: Mapped[str] = mapped_column(String(10), nullable=False)

    vendor_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("vendors.id", ondelete="RESTRICT"),
        nullable=True,
    )

    warehouse_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("warehouses.id", ondelete="RESTRICT"),
        nullable=True,
    )

    product_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=True,
    )

    client_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=True,
    )

    agent_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("agents.id", ondelete="SET NULL"),
        nullable=True,
    )

    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    destination: Mapped[str] = mapped_column(String(500), nullable=False)

    cost: Mapped[Decimal] = mapped_column(nullable=False)

    additional_charge: Mapped[Decimal] = mapped_column(
        nullable=False, default=Decimal("0")
    )

    amount_received: Mapped[Decimal] = mapped_column(
        nullable=False, default=Decimal("0")
    )

    # Agent collects cash on delivery
    collect_payment: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    pickup_contact_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    pickup_contact_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    pickup_address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    delivery_contact_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    delivery_contact_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    instructions: Mapped[str | None] = mapped_column(String(2000), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=OrderStatus.PENDING.value,
    )

    stock_restored: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    @property
    def is_vendor_order(self) -> bool:
        return self.order_type == OrderType.VENDOR.value

    @property
    def amount_charged(self) -> Decimal:
        return (self.cost or Decimal("0")) + (self.additional_charge or Decimal("0"))

    @property
    def outstanding(self) -> Decimal:
        remaining = self.amount_charged - (self.amount_received or Decimal("0"))
        return remaining if remaining > 0 else Decimal("0")

    def __repr__(self) -> str:
        return f"<DeliveryOrder {self.id} {self.order_type} {self.status}>"
