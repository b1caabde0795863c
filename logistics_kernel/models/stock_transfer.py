"""
Module: logistics_kernel.models.stock_transfer
Responsibility: Audit record of committed stock transfers.  One header per
    transfer, one line per product moved.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Rows are written only in the transaction that moved the stock, so a
      transfer record exists iff the quantities moved.
    - quantity > 0 per line (CHECK).
    - Immutable once written.
"""

from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from logistics_kernel.db.base import TrackedBase


class StockTransfer(TrackedBase):
    """Header: which vendor's stock moved from where to where."""

    __tablename__ = "stock_transfers"

    __table_args__ = (
        Index("idx_stock_transfer_vendor", "vendor_id"),
        Index("idx_stock_transfer_created", "created_at"),
    )

    vendor_id: Mapped[UUID] = mapped_column(
        ForeignKey("vendors.id", ondelete="RESTRICT"),
        nullable=False,
    )

    from_warehouse_id: Mapped[UUID] = mapped_column(
        ForeignKey("warehouses.id", ondelete="RESTRICT"),
        nullable=False,
    )

    to_warehouse_id: Mapped[UUID] = mapped_column(
        ForeignKey("warehouses.id", ondelete="RESTRICT"),
        nullable=False,
    )

    note: Mapped[str | None] = mapped_column(String(2000), nullable=True)

    lines: Mapped[list["StockTransferLine"]] = relationship(
        back_populates="transfer",
        cascade="all, delete-orphan",
    )

    @property
    def total_quantity(self) -> int:
        return sum(line.quantity for line in self.lines)


class StockTransferLine(TrackedBase):
    __tablename__ = "stock_transfer_lines"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_stock_transfer_line_positive"),
        Index("idx_stock_transfer_line_transfer", "transfer_id"),
    )

    transfer_id: Mapped[UUID] = mapped_column(
        ForeignKey("stock_transfers.id", ondelete="CASCADE"),
        nullable=False,
    )

    product_id: Mapped[UUID] = mapped_column(
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    transfer: Mapped["StockTransfer"] = relationship(back_populates="lines")
