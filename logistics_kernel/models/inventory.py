"""
Module: logistics_kernel.models.inventory
Responsibility: ORM persistence for stock quantities addressed by the
    (vendor, warehouse, product) triple.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - One row per (vendor_id, warehouse_id, product_id) (uq_inventory_triple).
      This is the last-resort backstop against duplicate rows; the ledger's
      locking is what prevents lost updates.
    - quantity >= 0 (CHECK constraint ck_inventory_quantity_non_negative).
    - Optimistic concurrency via ``version`` (version_id_col).
    - Only InventoryLedger mutates quantity.

Failure modes:
    - IntegrityError on duplicate triple or negative quantity.
    - StaleDataError on concurrent modification.
"""

from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from logistics_kernel.db.base import TrackedBase


class Inventory(TrackedBase):
    """
    Quantity of one vendor's product held at one warehouse.

    Contract:
        Absence of a row means zero stock.  Rows are created on first stock
        registration and are never deleted by the ledger (they may drop to
        zero).
    """

    __tablename__ = "inventory"

    __table_args__ = (
        UniqueConstraint(
            "vendor_id", "warehouse_id", "product_id",
            name="uq_inventory_triple",
        ),
        CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
        Index("idx_inventory_warehouse", "warehouse_id"),
        Index("idx_inventory_product", "product_id"),
        Index("idx_inventory_created", "created_at"),
    )

    vendor_id: Mapped[UUID] = mapped_column(
        ForeignKey("vendors.id", ondelete="RESTRICT"),
        nullable=False,
    )

    warehouse_id: Mapped[UUID] = mapped_column(
        ForeignKey("warehouses.id", ondelete="RESTRICT"),
        nullable=False,
    )

    product_id: Mapped[UUID] = mapped_column(
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    @property
    def triple(self) -> tuple[UUID, UUID, UUID]:
        return (self.vendor_id, self.warehouse_id, self.product_id)

    def __repr__(self) -> str:
        return f"<Inventory {self.product_id} @ {self.warehouse_id}: {self.quantity}>"
