"""
Module: logistics_kernel.models.vendor
Responsibility: ORM persistence for vendors (VIP clients) and their
    authorizations to stock warehouses.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One VendorOnWarehouse row per (vendor, warehouse) (uq_vendor_warehouse).
    - Deleting a vendor or warehouse removes its links (ON DELETE CASCADE).

Failure modes:
    - IntegrityError on duplicate vendor email or duplicate link.
"""

from datetime import date
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from logistics_kernel.db.base import TrackedBase


class VendorStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Vendor(TrackedBase):
    """
    Supplier that owns products and warehouse stock.

    Orders placed against a vendor decrement that vendor's inventory.
    """

    __tablename__ = "vendors"

    __table_args__ = (
        UniqueConstraint("email", name="uq_vendor_email"),
        Index("idx_vendor_status", "status"),
    )

    company_name: Mapped[str] = mapped_column(String(255), nullable=False)

    contact_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    address: Mapped[str | None] = mapped_column(String(500), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=VendorStatus.ACTIVE.value,
    )

    warehouse_links: Mapped[list["VendorOnWarehouse"]] = relationship(
        back_populates="vendor",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Vendor {self.company_name}>"


class VendorOnWarehouse(TrackedBase):
    """
    A vendor's authorization to stock a warehouse.

    Guarantees:
        - Unique per (vendor_id, warehouse_id).
        - contract_start <= contract_end when both are set (service layer).
    """

    __tablename__ = "vendor_warehouses"

    __table_args__ = (
        UniqueConstraint("vendor_id", "warehouse_id", name="uq_vendor_warehouse"),
        Index("idx_vendor_warehouse_warehouse", "warehouse_id"),
    )

    vendor_id: Mapped[UUID] = mapped_column(
        ForeignKey("vendors.id", ondelete="CASCADE"),
        nullable=False,
    )

    warehouse_id: Mapped[UUID] = mapped_column(
        ForeignKey("warehouses.id", ondelete="CASCADE"),
        nullable=False,
    )

    contract_start: Mapped[date | None] = mapped_column(Date, nullable=True)

    contract_end: Mapped[date | None] = mapped_column(Date, nullable=True)

    vendor: Mapped["Vendor"] = relationship(back_populates="warehouse_links")

    def __repr__(self) -> str:
        return f"<VendorOnWarehouse {self.vendor_id} @ {self.warehouse_id}>"
