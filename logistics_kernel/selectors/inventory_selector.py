"""
Module: logistics_kernel.selectors.inventory_selector
Responsibility: Inventory listings joined with vendor, product and
    warehouse display data.
Architecture position: Kernel > Selectors.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from logistics_kernel.domain.clock import Clock
from logistics_kernel.domain.dtos import InventoryListing, InventoryPage
from logistics_kernel.exceptions import WarehouseNotFoundError
from logistics_kernel.models import Inventory, Product, Vendor, Warehouse
from logistics_kernel.selectors.base import BaseSelector

DEFAULT_LOW_STOCK_THRESHOLD = 10


class InventorySelector(BaseSelector):
    """Read side of the inventory ledger."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        *,
        low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
    ):
        super().__init__(session, clock)
        self.low_stock_threshold = low_stock_threshold

    def list_inventory(
        self,
        vendor_id: UUID | None = None,
        warehouse_id: UUID | None = None,
        product_id: UUID | None = None,
    ) -> InventoryPage:
        """
        Inventory rows matching the optional filters, newest first.

        ``low_stock`` marks rows below the configured threshold.
        """
        stmt = (
            select(Inventory, Vendor, Product, Warehouse)
            .join(Vendor, Vendor.id == Inventory.vendor_id)
            .join(Product, Product.id == Inventory.product_id)
            .join(Warehouse, Warehouse.id == Inventory.warehouse_id)
        )
        if vendor_id is not None:
            stmt = stmt.where(Inventory.vendor_id == vendor_id)
        if warehouse_id is not None:
            stmt = stmt.where(Inventory.warehouse_id == warehouse_id)
        if product_id is not None:
            stmt = stmt.where(Inventory.product_id == product_id)
        stmt = stmt.order_by(Inventory.created_at.desc(), Inventory.id)

        items = tuple(
            InventoryListing(
                id=row.id,
                vendor_id=vendor.id,
                vendor_name=vendor.company_name,
                warehouse_id=warehouse.id,
                warehouse_name=warehouse.name,
                warehouse_location=warehouse.location,
                product_id=product.id,
                product_name=product.name,
                sku=product.sku,
                quantity=row.quantity,
                low_stock=row.quantity < self.low_stock_threshold,
                created_at=row.created_at,
                updated_at=row.updated_at,
            )
            for row, vendor, product, warehouse in self.session.execute(stmt)
        )
        return InventoryPage(
            items=items,
            total_units=sum(item.quantity for item in items),
            low_stock_count=sum(1 for item in items if item.low_stock),
        )

    def warehouse_products(self, warehouse_id: UUID) -> InventoryPage:
        """Stock held at one warehouse, across all vendors."""
        if self.session.get(Warehouse, warehouse_id) is None:
            raise WarehouseNotFoundError(warehouse_id)
        return self.list_inventory(warehouse_id=warehouse_id)
