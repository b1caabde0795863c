"""
InventoryLedger -- single writer of stock quantities and warehouse caches.

Responsibility:
    Answers "how much of product P from vendor V is available at warehouse
    W" and owns every mutation of ``inventory.quantity`` and
    ``warehouses.items``.  Orders, transfers, and administrative corrections
    all go through the operations here.

Architecture position:
    Kernel > Services -- imperative shell.  Used by OrderService,
    StockTransferService, and the gateway.  Flush-only; the caller owns the
    transaction.

Invariants enforced:
    - quantity >= 0 for every inventory row.  reserve_and_decrement checks
      the locked row before writing; the CHECK constraint is the backstop.
    - warehouse.items == sum(quantity) at that warehouse.  Every quantity
      change applies the same delta to the warehouse row in the same flush,
      and reconcile_warehouse_items() repairs drift from bypassed writes.
    - warehouse.status follows items vs capacity after every change.
    - Read-check-write on a row happens under a lock: ``FOR UPDATE`` where
      the dialect supports it, the BEGIN IMMEDIATE write lock on SQLite,
      and optimistic ``version`` columns underneath both.
    - A vendor holding stock at a warehouse is linked to it
      (VendorOnWarehouse); the link is created with the first row.

Failure modes:
    - ValidationError for non-integer or non-positive amounts.
    - InsufficientStockError when the row is missing or short (no mutation).
    - ProductVendorMismatchError when the product belongs to another vendor.
    - CapacityExceededError when capacity enforcement is on and an increase
      would overfill the warehouse.
    - Vendor/Warehouse/Product/InventoryNotFoundError for unknown ids.
    - StaleDataError (-> ConflictError at the store boundary) on a
      concurrent write to the same row.
"""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from logistics_kernel.domain.clock import Clock
from logistics_kernel.domain.dtos import InventoryInfo, ReconciliationResult
from logistics_kernel.exceptions import (
    CapacityExceededError,
    InsufficientStockError,
    InventoryNotFoundError,
    ProductNotFoundError,
    ProductVendorMismatchError,
    ValidationError,
    VendorNotFoundError,
    WarehouseNotFoundError,
)
from logistics_kernel.logging_config import get_logger
from logistics_kernel.models import Inventory, Product, Vendor, VendorOnWarehouse, Warehouse
from logistics_kernel.services.base import BaseService

logger = get_logger("services.inventory_ledger")


def _require_quantity(value, field: str = "amount", *, allow_zero: bool = False) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(field, "must be an integer")
    if allow_zero:
        if value < 0:
            raise ValidationError(field, "must not be negative")
    elif value <= 0:
        raise ValidationError(field, "must be greater than zero")
    return value


class InventoryLedger(BaseService[Inventory]):
    """
    Stock ledger keyed by (vendor, warehouse, product).

    Contract:
        Every mutation method flushes the inventory row and its warehouse
        row together and returns an InventoryInfo snapshot of both.

    Guarantees:
        - get_quantity never fails for a missing row; absence means zero.
        - A failed call leaves quantities and caches untouched.

    Non-goals:
        - Does not decide policy (restock on cancel, transfer atomicity);
          OrderService and StockTransferService do.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        *,
        enforce_capacity: bool = False,
    ):
        super().__init__(session, clock)
        self.enforce_capacity = enforce_capacity

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_quantity(self, vendor_id: UUID, warehouse_id: UUID, product_id: UUID) -> int:
        """Current quantity at the triple; 0 when no row exists."""
        quantity = self.session.execute(
            select(Inventory.quantity).where(
                Inventory.vendor_id == vendor_id,
                Inventory.warehouse_id == warehouse_id,
                Inventory.product_id == product_id,
            )
        ).scalar_one_or_none()
        return quantity or 0

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def reserve_and_decrement(
        self,
        vendor_id: UUID,
        warehouse_id: UUID,
        product_id: UUID,
        amount: int,
    ) -> InventoryInfo:
        """
        Take ``amount`` units out of the triple.

        Preconditions: amount is a positive integer.
        Postconditions: quantity and warehouse.items both drop by amount;
            warehouse.status is recomputed.

        Raises:
            InsufficientStockError: Row missing or quantity < amount.
        """
        _require_quantity(amount)

        row = self._lock_row(vendor_id, warehouse_id, product_id)
        available = row.quantity if row is not None else 0
        if row is None or available < amount:
            logger.info(
                "stock_insufficient",
                extra={
                    "vendor_id": vendor_id,
                    "warehouse_id": warehouse_id,
                    "product_id": product_id,
                    "requested": amount,
                    "available": available,
                },
            )
            raise InsufficientStockError(
                vendor_id=vendor_id,
                warehouse_id=warehouse_id,
                product_id=product_id,
                requested=amount,
                available=available,
            )

        warehouse = self._lock_warehouse(warehouse_id)

        # INVARIANT: quantity and cache move by the same delta in one flush
        row.quantity -= amount
        warehouse.apply_items_delta(-amount)
        self.session.flush()

        logger.info(
            "stock_decremented",
            extra={
                "inventory_id": row.id,
                "warehouse_id": warehouse_id,
                "amount": amount,
                "quantity": row.quantity,
                "warehouse_items": warehouse.items,
            },
        )
        return InventoryInfo.from_model(row, warehouse)

    def increment(
        self,
        vendor_id: UUID,
        warehouse_id: UUID,
        product_id: UUID,
        amount: int,
    ) -> InventoryInfo:
        """
        Add ``amount`` units to the triple, creating the row if absent.

        Postconditions: quantity and warehouse.items both rise by amount;
            the vendor is linked to the warehouse.

        Raises:
            ProductVendorMismatchError: Product owned by another vendor.
            CapacityExceededError: Capacity enforcement on and exceeded.
        """
        _require_quantity(amount)
        self._check_references(vendor_id, product_id)
        warehouse = self._lock_warehouse(warehouse_id)
        self._check_capacity(warehouse, amount)

        row = self._lock_row(vendor_id, warehouse_id, product_id)
        created = False
        if row is None:
            row, created = self._create_row(vendor_id, warehouse_id, product_id, amount)
        if not created:
            row.quantity += amount

        warehouse.apply_items_delta(amount)
        self.session.flush()

        logger.info(
            "stock_incremented",
            extra={
                "inventory_id": row.id,
                "warehouse_id": warehouse_id,
                "amount": amount,
                "quantity": row.quantity,
                "row_created": created,
                "warehouse_items": warehouse.items,
            },
        )
        return InventoryInfo.from_model(row, warehouse)

    def set_quantity(self, inventory_id: UUID, new_quantity: int) -> InventoryInfo:
        """
        Administrative override of one row's quantity.

        The warehouse cache moves by ``new_quantity - old_quantity``; it is
        not re-summed.  Use reconcile_warehouse_items() to repair drift.

        Raises:
            InventoryNotFoundError: Unknown inventory id.
            ValidationError: new_quantity negative or not an integer.
        """
        _require_quantity(new_quantity, "quantity", allow_zero=True)
        row = self._get_or_raise(Inventory, inventory_id, InventoryNotFoundError, lock=True)
        warehouse = self._lock_warehouse(row.warehouse_id)

        delta = new_quantity - row.quantity
        if delta > 0:
            self._check_capacity(warehouse, delta)

        row.quantity = new_quantity
        warehouse.apply_items_delta(delta)
        self.session.flush()

        logger.info(
            "stock_quantity_set",
            extra={
                "inventory_id": row.id,
                "warehouse_id": row.warehouse_id,
                "delta": delta,
                "quantity": new_quantity,
                "warehouse_items": warehouse.items,
            },
        )
        return InventoryInfo.from_model(row, warehouse)

    def register_stock(
        self,
        vendor_id: UUID,
        warehouse_id: UUID,
        product_id: UUID,
        quantity: int,
    ) -> InventoryInfo:
        """
        Set the triple's quantity absolutely, creating the row if absent.

        Stock-registration entry point for receiving goods: the UI states
        "there are N units here" rather than "add N".
        """
        _require_quantity(quantity, "quantity", allow_zero=True)
        row = self._lock_row(vendor_id, warehouse_id, product_id)
        if row is not None:
            return self.set_quantity(row.id, quantity)

        self._check_references(vendor_id, product_id)
        warehouse = self._lock_warehouse(warehouse_id)
        self._check_capacity(warehouse, quantity)

        row, created = self._create_row(vendor_id, warehouse_id, product_id, quantity)
        if not created:
            # Lost the creation race; fall back to an absolute set.
            return self.set_quantity(row.id, quantity)

        warehouse.apply_items_delta(quantity)
        self.session.flush()

        logger.info(
            "stock_registered",
            extra={
                "inventory_id": row.id,
                "warehouse_id": warehouse_id,
                "quantity": quantity,
                "warehouse_items": warehouse.items,
            },
        )
        return InventoryInfo.from_model(row, warehouse)

    def reconcile_warehouse_items(
        self,
        warehouse_id: UUID | None = None,
    ) -> list[ReconciliationResult]:
        """
        Recompute ``items`` from the true sum for one or all warehouses.

        Idempotent: a second run reports no corrections.  Every drift found
        is logged at WARNING before it is repaired.
        """
        if warehouse_id is not None:
            warehouses = [self._lock_warehouse(warehouse_id)]
        else:
            warehouses = list(
                self.session.execute(
                    select(Warehouse).order_by(Warehouse.name).with_for_update()
                ).scalars()
            )

        sums = dict(
            self.session.execute(
                select(Inventory.warehouse_id, func.coalesce(func.sum(Inventory.quantity), 0))
                .group_by(Inventory.warehouse_id)
            ).all()
        )

        results = []
        for warehouse in warehouses:
            actual = int(sums.get(warehouse.id, 0))
            cached = warehouse.items
            if cached != actual:
                logger.warning(
                    "warehouse_items_drift_corrected",
                    extra={
                        "warehouse_id": warehouse.id,
                        "cached_items": cached,
                        "actual_items": actual,
                    },
                )
            warehouse.set_items(actual)
            results.append(
                ReconciliationResult(
                    warehouse_id=warehouse.id,
                    cached_items=cached,
                    actual_items=actual,
                    status=warehouse.status,
                )
            )
        self.session.flush()

        logger.info(
            "warehouse_reconciliation_completed",
            extra={
                "warehouses": len(results),
                "corrected": sum(1 for r in results if r.corrected),
            },
        )
        return results

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lock_row(self, vendor_id: UUID, warehouse_id: UUID, product_id: UUID) -> Inventory | None:
        return self.session.execute(
            select(Inventory)
            .where(
                Inventory.vendor_id == vendor_id,
                Inventory.warehouse_id == warehouse_id,
                Inventory.product_id == product_id,
            )
            .with_for_update()  # Row-level lock
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _lock_warehouse(self, warehouse_id: UUID) -> Warehouse:
        return self._get_or_raise(Warehouse, warehouse_id, WarehouseNotFoundError, lock=True)

    def _check_references(self, vendor_id: UUID, product_id: UUID) -> None:
        self._get_or_raise(Vendor, vendor_id, VendorNotFoundError)
        product = self._get_or_raise(Product, product_id, ProductNotFoundError)
        if product.vendor_id != vendor_id:
            raise ProductVendorMismatchError(product_id=product_id, vendor_id=vendor_id)

    def _check_capacity(self, warehouse: Warehouse, increase: int) -> None:
        if not self.enforce_capacity:
            return
        resulting = warehouse.items + increase
        if resulting > warehouse.capacity:
            raise CapacityExceededError(
                warehouse_id=warehouse.id,
                capacity=warehouse.capacity,
                resulting_items=resulting,
            )

    def _create_row(
        self,
        vendor_id: UUID,
        warehouse_id: UUID,
        product_id: UUID,
        quantity: int,
    ) -> tuple[Inventory, bool]:
        """
        Insert a new inventory row holding ``quantity``.

        A concurrent writer may create the same triple first; the insert
        runs in a savepoint and, on the unique violation, the existing row
        is returned locked and unchanged so the caller can apply its delta.
        """
        self.ensure_vendor_link(vendor_id, warehouse_id)

        savepoint = self.session.begin_nested()
        try:
            row = Inventory(
                vendor_id=vendor_id,
                warehouse_id=warehouse_id,
                product_id=product_id,
                quantity=quantity,
                created_at=self.clock.timestamp(),
                updated_at=self.clock.timestamp(),
            )
            self.session.add(row)
            self.session.flush()
            savepoint.commit()
            return row, True
        except IntegrityError:
            logger.debug(
                "inventory_row_race_retry",
                extra={"warehouse_id": warehouse_id, "product_id": product_id},
            )
            savepoint.rollback()
            existing = self.session.execute(
                select(Inventory)
                .where(
                    Inventory.vendor_id == vendor_id,
                    Inventory.warehouse_id == warehouse_id,
                    Inventory.product_id == product_id,
                )
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalar_one()
            return existing, False

    def ensure_vendor_link(self, vendor_id: UUID, warehouse_id: UUID) -> VendorOnWarehouse:
        """Return the vendor-warehouse link, creating it if absent."""
        link = self.session.execute(
            select(VendorOnWarehouse).where(
                VendorOnWarehouse.vendor_id == vendor_id,
                VendorOnWarehouse.warehouse_id == warehouse_id,
            )
        ).scalar_one_or_none()
        if link is not None:
            return link

        now = self.clock.timestamp()
        link = VendorOnWarehouse(
            vendor_id=vendor_id,
            warehouse_id=warehouse_id,
            created_at=now,
            updated_at=now,
        )
        self.session.add(link)
        self.session.flush()
        logger.info(
            "vendor_warehouse_link_created",
            extra={"vendor_id": vendor_id, "warehouse_id": warehouse_id},
        )
        return link
