"""
Module: logistics_kernel.models.remittance
Responsibility: ORM persistence for remittances -- date-bounded
    collections of orders billed to one vendor or client -- with their
    per-order allocations and append-only payment ledger.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - total_charged == sum(remittance_orders.amount_charged), fixed at
      creation.
    - total_received == sum(remittance_payments.amount).
    - status is PENDING until total_received >= total_charged, then PAID.
      PAID never reverts (payments are never removed).
    - An order sits on at most one remittance (uq_remittance_order_order).
    - Payments are append-only: RemittanceService never updates or deletes
      a RemittancePayment row.
    - Optimistic concurrency on the header via ``version``.

Failure modes:
    - IntegrityError if an order is added to a second remittance.
    - StaleDataError when two payments race on the same remittance.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from logistics_kernel.db.base import TrackedBase


class RemittanceStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"


class RemittancePartyType(str, Enum):
    VENDOR = "vendor"
    CLIENT = "client"


class Remittance(TrackedBase):
    """
    Periodic reconciliation of orders billed to a party against payments.

    Contract:
        Exactly one of vendor_id / client_id is set, matching party_type.
    """

    __tablename__ = "remittances"

    __table_args__ = (
        CheckConstraint("total_charged >= 0", name="ck_remittance_charged_non_negative"),
        CheckConstraint("total_received >= 0", name="ck_remittance_received_non_negative"),
        Index("idx_remittance_status", "status"),
        Index("idx_remittance_vendor", "vendor_id"),
        Index("idx_remittance_client", "client_id"),
    )

    party_type: Mapped[str] = mapped_column(String(10), nullable=False)

    vendor_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("vendors.id", ondelete="RESTRICT"),
        nullable=True,
    )

    client_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=True,
    )

    period_start: Mapped[datetime] = mapped_column(DateTime(), nullable=False)

    period_end: Mapped[datetime] = mapped_column(DateTime(), nullable=False)

    total_charged: Mapped[Decimal] = mapped_column(nullable=False)

    total_received: Mapped[Decimal] = mapped_column(
        nullable=False, default=Decimal("0")
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=RemittanceStatus.PENDING.value,
    )

    notes: Mapped[str | None] = mapped_column(String(2000), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    orders: Mapped[list["RemittanceOrder"]] = relationship(
        back_populates="remittance",
        order_by="RemittanceOrder.position",
        cascade="all, delete-orphan",
    )

    payments: Mapped[list["RemittancePayment"]] = relationship(
        back_populates="remittance",
        order_by="RemittancePayment.created_at",
    )

    @property
    def party_id(self) -> UUID | None:
        return self.vendor_id if self.party_type == RemittancePartyType.VENDOR.value else self.client_id

    @property
    def balance(self) -> Decimal:
        remaining = self.total_charged - self.total_received
        return remaining if remaining > 0 else Decimal("0")

    @property
    def is_paid(self) -> bool:
        return self.status == RemittanceStatus.PAID.value

    def __repr__(self) -> str:
        return f"<Remittance {self.id} {self.total_received}/{self.total_charged} {self.status}>"


class RemittanceOrder(TrackedBase):
    """One order's expected amount on a remittance, and what has been applied to it."""

    __tablename__ = "remittance_orders"

    __table_args__ = (
        UniqueConstraint("order_id", name="uq_remittance_order_order"),
        Index("idx_remittance_order_remittance", "remittance_id"),
    )

    remittance_id: Mapped[UUID] = mapped_column(
        ForeignKey("remittances.id", ondelete="CASCADE"),
        nullable=False,
    )

    order_id: Mapped[UUID] = mapped_column(
        ForeignKey("delivery_orders.id", ondelete="RESTRICT"),
        nullable=False,
    )

    # FIFO allocation order
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    amount_charged: Mapped[Decimal] = mapped_column(nullable=False)

    received_amount: Mapped[Decimal] = mapped_column(
        nullable=False, default=Decimal("0")
    )

    remittance: Mapped["Remittance"] = relationship(back_populates="orders")

    @property
    def remaining(self) -> Decimal:
        remaining = self.amount_charged - self.received_amount
        return remaining if remaining > 0 else Decimal("0")


class RemittancePayment(TrackedBase):
    """A recorded payment against a remittance.  Never edited or deleted."""

    __tablename__ = "remittance_payments"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_remittance_payment_positive"),
        Index("idx_remittance_payment_remittance", "remittance_id"),
    )

    remittance_id: Mapped[UUID] = mapped_column(
        ForeignKey("remittances.id", ondelete="RESTRICT"),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    method: Mapped[str | None] = mapped_column(String(50), nullable=True)

    reference: Mapped[str | None] = mapped_column(String(255), nullable=True)

    notes: Mapped[str | None] = mapped_column(String(2000), nullable=True)

    remittance: Mapped["Remittance"] = relationship(back_populates="payments")
