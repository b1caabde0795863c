"""
Module: logistics_kernel.models.product
Responsibility: ORM persistence for products.  A product belongs to exactly
    one vendor.
Architecture position: Kernel > Models.  May import from db/base.py only.

Failure modes:
    - IntegrityError on duplicate SKU (uq_product_sku).  NULL SKUs do not
      collide.
    - IntegrityError when deleting a vendor that still owns products
      (ON DELETE RESTRICT).
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from logistics_kernel.db.base import TrackedBase


class Product(TrackedBase):
    """Sellable item owned by one vendor."""

    __tablename__ = "products"

    __table_args__ = (
        UniqueConstraint("sku", name="uq_product_sku"),
        Index("idx_product_vendor", "vendor_id"),
    )

    vendor_id: Mapped[UUID] = mapped_column(
        ForeignKey("vendors.id", ondelete="RESTRICT"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str | None] = mapped_column(String(2000), nullable=True)

    price: Mapped[Decimal] = mapped_column(nullable=False)

    sku: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def __repr__(self) -> str:
        return f"<Product {self.sku or self.id}: {self.name}>"
