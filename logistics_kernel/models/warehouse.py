"""
Module: logistics_kernel.models.warehouse
Responsibility: ORM persistence for warehouses, including the cached
    ``items`` aggregate and the ``status`` derived from it.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - items == sum(inventory.quantity) for the warehouse.  The column is a
      denormalized cache: only InventoryLedger writes it, always in the same
      transaction as the inventory change it mirrors.
    - status == "full" iff items >= capacity, otherwise "active".  Kept in
      step by apply_items_delta() / set_items().
    - items >= 0 and capacity >= 0 (CHECK constraints).
    - Optimistic concurrency: ``version`` is bumped on every UPDATE; a write
      based on a stale read raises StaleDataError (surfaced as ConflictError).

Failure modes:
    - IntegrityError if a delta would drive items negative.
    - StaleDataError on concurrent modification.
"""

from enum import Enum

from sqlalchemy import CheckConstraint, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from logistics_kernel.db.base import TrackedBase


class WarehouseStatus(str, Enum):
    """Warehouse fill status, derived from items vs capacity."""

    ACTIVE = "active"
    FULL = "full"


def derive_status(items: int, capacity: int) -> str:
    """Status a warehouse holding ``items`` units out of ``capacity`` should have."""
    if items >= capacity:
        return WarehouseStatus.FULL.value
    return WarehouseStatus.ACTIVE.value


class Warehouse(TrackedBase):
    """
    Physical storage location.

    Contract:
        ``items`` and ``status`` are derived data.  Callers outside the
        inventory ledger treat them as read-only.

    Guarantees:
        - apply_items_delta() and set_items() recompute status.
        - version_id_col makes every flush a compare-and-swap on version.

    Non-goals:
        - Capacity is not enforced here; see InventoryLedger.
    """

    __tablename__ = "warehouses"

    __table_args__ = (
        CheckConstraint("items >= 0", name="ck_warehouse_items_non_negative"),
        CheckConstraint("capacity >= 0", name="ck_warehouse_capacity_non_negative"),
        Index("idx_warehouse_status", "status"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    location: Mapped[str] = mapped_column(String(500), nullable=False)

    capacity: Mapped[int] = mapped_column(Integer, nullable=False)

    description: Mapped[str | None] = mapped_column(String(2000), nullable=True)

    # Cached total units stored (sum of inventory quantities)
    items: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=WarehouseStatus.ACTIVE.value,
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    def apply_items_delta(self, delta: int) -> None:
        """Adjust the cached item count by ``delta`` and recompute status."""
        self.items = (self.items or 0) + delta
        self.recompute_status()

    def set_items(self, items: int) -> None:
        """Overwrite the cached item count (reconciliation only)."""
        self.items = items
        self.recompute_status()

    def recompute_status(self) -> None:
        self.status = derive_status(self.items or 0, self.capacity)

    @property
    def is_full(self) -> bool:
        return self.status == WarehouseStatus.FULL.value

    def __repr__(self) -> str:
        return f"<Warehouse {self.name}: {self.items}/{self.capacity} ({self.status})>"
