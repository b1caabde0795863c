"""
StockTransferService -- vendor-scoped moves between two warehouses.

Responsibility:
    Moves one or more products, each with its own quantity, from a source
    warehouse to a destination warehouse for one vendor's inventory, and
    writes the audit record of the move.

Architecture position:
    Kernel > Services -- imperative shell.  All quantity changes go through
    InventoryLedger.  Flush-only; the caller owns the transaction.

Invariants enforced:
    - All-or-nothing: every line is validated against the source before
      any write.  A single short line rejects the whole transfer and
      nothing is mutated.
    - Lines naming the same product are merged before validation, so two
      lines of 6 against 10 available are checked as 12.
    - Both warehouse caches move by the total quantity moved.
    - A StockTransfer record exists iff the stock moved (same transaction).
    - Destination rows are created on demand; the vendor-warehouse link is
      created with them.

Failure modes:
    - ValidationError: same source and destination, no lines, or a
      non-positive quantity.
    - TransferRejectedError: one or more lines short; ``failures`` lists
      every short line.
    - Vendor/Warehouse/ProductNotFoundError, ProductVendorMismatchError.
"""

from collections import OrderedDict
from typing import Iterable, Mapping
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload

from logistics_kernel.domain.clock import Clock
from logistics_kernel.domain.dtos import TransferInfo, TransferLine
from logistics_kernel.exceptions import (
    ProductNotFoundError,
    ProductVendorMismatchError,
    TransferRejectedError,
    ValidationError,
    VendorNotFoundError,
    WarehouseNotFoundError,
)
from logistics_kernel.logging_config import LogContext, get_logger
from logistics_kernel.models import Product, StockTransfer, StockTransferLine, Vendor, Warehouse
from logistics_kernel.services.base import BaseService
from logistics_kernel.services.inventory_ledger import InventoryLedger

logger = get_logger("services.transfer")


def _coerce_line(item) -> TransferLine:
    if isinstance(item, TransferLine):
        return item
    if isinstance(item, Mapping):
        try:
            return TransferLine(product_id=item["product_id"], quantity=item["quantity"])
        except KeyError as exc:
            raise ValidationError("items", f"line is missing {exc.args[0]}") from exc
    product_id, quantity = item
    return TransferLine(product_id=product_id, quantity=quantity)


def merge_lines(items: Iterable) -> list[TransferLine]:
    """
    Validate and merge transfer lines by product, keeping first-seen order.

    Raises:
        ValidationError: No lines, or a quantity that is not a positive integer.
    """
    merged: OrderedDict[UUID, int] = OrderedDict()
    for item in items or ():
        line = _coerce_line(item)
        quantity = line.quantity
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise ValidationError("quantity", "must be an integer")
        if quantity <= 0:
            raise ValidationError("quantity", "must be greater than zero")
        merged[line.product_id] = merged.get(line.product_id, 0) + quantity

    if not merged:
        raise ValidationError("items", "at least one line is required")
    return [TransferLine(product_id=p, quantity=q) for p, q in merged.items()]


class StockTransferService(BaseService[StockTransfer]):
    """
    Stock transfer engine.

    Contract:
        transfer() either moves every line and returns the recorded
        TransferInfo, or raises and leaves both warehouses untouched.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        ledger: InventoryLedger | None = None,
    ):
        super().__init__(session, clock)
        self.ledger = ledger or InventoryLedger(session, self.clock)

    def transfer(
        self,
        vendor_id: UUID,
        from_warehouse_id: UUID,
        to_warehouse_id: UUID,
        items: Iterable,
        note: str | None = None,
    ) -> TransferInfo:
        """
        Move ``items`` from one warehouse to another for ``vendor_id``.

        Args:
            items: TransferLine values, {"product_id", "quantity"} mappings,
                or (product_id, quantity) pairs.

        Postconditions: for each merged line, source quantity dropped and
            destination quantity rose by the line quantity; one
            StockTransfer with its lines is recorded.
        """
        if from_warehouse_id == to_warehouse_id:
            raise ValidationError(
                "to_warehouse_id", "source and destination warehouses must differ"
            )
        lines = merge_lines(items)

        self._get_or_raise(Vendor, vendor_id, VendorNotFoundError)
        self._get_or_raise(Warehouse, from_warehouse_id, WarehouseNotFoundError)
        self._get_or_raise(Warehouse, to_warehouse_id, WarehouseNotFoundError)
        for line in lines:
            product = self._get_or_raise(Product, line.product_id, ProductNotFoundError)
            if product.vendor_id != vendor_id:
                raise ProductVendorMismatchError(product_id=line.product_id, vendor_id=vendor_id)

        # Validate every line before the first write.
        failures = []
        for line in lines:
            available = self.ledger.get_quantity(vendor_id, from_warehouse_id, line.product_id)
            if available < line.quantity:
                failures.append(
                    {
                        "product_id": line.product_id,
                        "requested": line.quantity,
                        "available": available,
                    }
                )
        if failures:
            logger.info(
                "transfer_rejected",
                extra={
                    "vendor_id": vendor_id,
                    "from_warehouse_id": from_warehouse_id,
                    "to_warehouse_id": to_warehouse_id,
                    "failed_lines": len(failures),
                },
            )
            raise TransferRejectedError(
                vendor_id=vendor_id,
                from_warehouse_id=from_warehouse_id,
                failures=failures,
            )

        now = self.clock.timestamp()
        record = StockTransfer(
            vendor_id=vendor_id,
            from_warehouse_id=from_warehouse_id,
            to_warehouse_id=to_warehouse_id,
            note=note,
            created_at=now,
            updated_at=now,
        )
        self.session.add(record)
        self.session.flush()

        with LogContext.bind(transfer_id=str(record.id)):
            for line in lines:
                self.ledger.reserve_and_decrement(
                    vendor_id, from_warehouse_id, line.product_id, line.quantity
                )
                self.ledger.increment(
                    vendor_id, to_warehouse_id, line.product_id, line.quantity
                )
                record.lines.append(
                    StockTransferLine(
                        product_id=line.product_id,
                        quantity=line.quantity,
                        created_at=now,
                        updated_at=now,
                    )
                )
            self.session.flush()

            logger.info(
                "transfer_committed",
                extra={
                    "transfer_id": record.id,
                    "vendor_id": vendor_id,
                    "from_warehouse_id": from_warehouse_id,
                    "to_warehouse_id": to_warehouse_id,
                    "lines": len(lines),
                    "total_quantity": sum(line.quantity for line in lines),
                },
            )
        return TransferInfo.from_model(record)

    def list_transfers(
        self,
        vendor_id: UUID | None = None,
        warehouse_id: UUID | None = None,
    ) -> list[TransferInfo]:
        """Recorded transfers, newest first.  ``warehouse_id`` matches either end."""
        stmt = select(StockTransfer).options(selectinload(StockTransfer.lines))
        if vendor_id is not None:
            stmt = stmt.where(StockTransfer.vendor_id == vendor_id)
        if warehouse_id is not None:
            stmt = stmt.where(
                or_(
                    StockTransfer.from_warehouse_id == warehouse_id,
                    StockTransfer.to_warehouse_id == warehouse_id,
                )
            )
        stmt = stmt.order_by(StockTransfer.created_at.desc(), StockTransfer.id)
        return [TransferInfo.from_model(t) for t in self.session.execute(stmt).scalars()]
