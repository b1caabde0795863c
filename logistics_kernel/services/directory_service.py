"""
DirectoryService -- reference data: warehouses, vendors, products, clients, agents.

Responsibility:
    Creation and maintenance of the entities the ledger and order services
    reference.  Stock quantities and the warehouse ``items`` cache are not
    writable here; they belong to InventoryLedger.

Architecture position:
    Kernel > Services -- imperative shell.  Flush-only.

Invariants enforced:
    - Unique keys (vendor email, agent email, product SKU, vendor-warehouse
      pair) are inserted inside a savepoint; a violation surfaces as
      DuplicateRecordError without poisoning the caller's transaction.
    - A product's owning vendor exists.  An agent's home warehouse exists.
    - A capacity change recomputes warehouse status.
    - A warehouse holding stock, agents, or orders cannot be deleted.

Failure modes:
    - ValidationError, DuplicateRecordError, NotFoundError subclasses.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError

from logistics_kernel.db.types import round_money, to_money
from logistics_kernel.domain.dtos import (
    AgentInfo,
    ClientInfo,
    ProductInfo,
    VendorInfo,
    VendorWarehouseLinkInfo,
    WarehouseInfo,
)
from logistics_kernel.exceptions import (
    DuplicateRecordError,
    ValidationError,
    VendorNotFoundError,
    WarehouseNotFoundError,
)
from logistics_kernel.logging_config import get_logger
from logistics_kernel.models import (
    Agent,
    Client,
    DeliveryOrder,
    Inventory,
    Product,
    StockTransfer,
    Vendor,
    VendorOnWarehouse,
    Warehouse,
    derive_status,
)
from logistics_kernel.services.base import BaseService

logger = get_logger("services.directory")


def _required(value: str | None, field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(field, "is required")
    return str(value).strip()


def _capacity(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("capacity", "must be an integer")
    if value < 0:
        raise ValidationError("capacity", "must not be negative")
    return value


class DirectoryService(BaseService[Warehouse]):
    """Reference data writer."""

    def _insert_unique(self, row, resource: str, key: str):
        savepoint = self.session.begin_nested()
        try:
            self.session.add(row)
            self.session.flush()
            savepoint.commit()
        except IntegrityError as exc:
            savepoint.rollback()
            logger.info(
                "duplicate_record_rejected",
                extra={"resource": resource, "key": key},
            )
            raise DuplicateRecordError(resource, key) from exc
        return row

    def _stamp(self) -> dict:
        now = self.clock.timestamp()
        return {"created_at": now, "updated_at": now}

    # ------------------------------------------------------------------
    # Warehouses
    # ------------------------------------------------------------------

    def create_warehouse(
        self,
        name: str,
        location: str,
        capacity: int,
        description: str | None = None,
    ) -> WarehouseInfo:
        capacity = _capacity(capacity)
        warehouse = Warehouse(
            name=_required(name, "name"),
            location=_required(location, "location"),
            capacity=capacity,
            description=description,
            items=0,
            status=derive_status(0, capacity),
            **self._stamp(),
        )
        self.session.add(warehouse)
        self.session.flush()
        logger.info(
            "warehouse_created",
            extra={"warehouse_id": warehouse.id, "capacity": capacity},
        )
        return WarehouseInfo.from_model(warehouse)

    def update_warehouse(
        self,
        warehouse_id: UUID,
        *,
        name: str | None = None,
        location: str | None = None,
        capacity: int | None = None,
        description: str | None = None,
    ) -> WarehouseInfo:
        """Update descriptive fields and capacity.  ``items`` is not writable."""
        warehouse = self._get_or_raise(Warehouse, warehouse_id, WarehouseNotFoundError, lock=True)
        if name is not None:
            warehouse.name = _required(name, "name")
        if location is not None:
            warehouse.location = _required(location, "location")
        if description is not None:
            warehouse.description = description
        if capacity is not None:
            warehouse.capacity = _capacity(capacity)
            warehouse.recompute_status()
        self.session.flush()
        logger.info(
            "warehouse_updated",
            extra={"warehouse_id": warehouse.id, "status": warehouse.status},
        )
        return WarehouseInfo.from_model(warehouse)

    def get_warehouse(self, warehouse_id: UUID) -> WarehouseInfo:
        return WarehouseInfo.from_model(
            self._get_or_raise(Warehouse, warehouse_id, WarehouseNotFoundError)
        )

    def list_warehouses(self) -> list[WarehouseInfo]:
        rows = self.session.execute(select(Warehouse).order_by(Warehouse.name)).scalars()
        return [WarehouseInfo.from_model(w) for w in rows]

    def delete_warehouse(self, warehouse_id: UUID) -> None:
        """
        Delete an empty warehouse.

        Empty inventory rows and vendor links go with it.

        Raises:
            ValidationError: Stock, agents, or orders still reference it.
        """
        warehouse = self._get_or_raise(Warehouse, warehouse_id, WarehouseNotFoundError, lock=True)

        held = self.session.execute(
            select(func.coalesce(func.sum(Inventory.quantity), 0)).where(
                Inventory.warehouse_id == warehouse.id
            )
        ).scalar_one()
        if held:
            raise ValidationError("warehouse_id", f"warehouse still holds {held} units")

        for model, label in ((Agent, "agents"), (DeliveryOrder, "orders")):
            count = self.session.execute(
                select(func.count()).select_from(model).where(model.warehouse_id == warehouse.id)
            ).scalar_one()
            if count:
                raise ValidationError("warehouse_id", f"warehouse is referenced by {count} {label}")

        transfers = self.session.execute(
            select(func.count()).select_from(StockTransfer).where(
                or_(
                    StockTransfer.from_warehouse_id == warehouse.id,
                    StockTransfer.to_warehouse_id == warehouse.id,
                )
            )
        ).scalar_one()
        if transfers:
            raise ValidationError("warehouse_id", f"warehouse is referenced by {transfers} transfers")

        for row in self.session.execute(
            select(Inventory).where(Inventory.warehouse_id == warehouse.id)
        ).scalars():
            self.session.delete(row)
        self.session.delete(warehouse)
        self.session.flush()
        logger.info("warehouse_deleted", extra={"warehouse_id": warehouse_id})

    # ------------------------------------------------------------------
    # Vendors
    # ------------------------------------------------------------------

    def create_vendor(
        self,
        company_name: str,
        *,
        contact_name: str | None = None,
        phone: str | None = None,
        email: str | None = None,
        address: str | None = None,
    ) -> VendorInfo:
        vendor = Vendor(
            company_name=_required(company_name, "company_name"),
            contact_name=contact_name,
            phone=phone,
            email=email.strip().lower() if email else None,
            address=address,
            **self._stamp(),
        )
        self._insert_unique(vendor, "vendors", f"email={vendor.email}")
        logger.info("vendor_created", extra={"vendor_id": vendor.id})
        return VendorInfo.from_model(vendor)

    def get_vendor(self, vendor_id: UUID) -> VendorInfo:
        return VendorInfo.from_model(self._get_or_raise(Vendor, vendor_id, VendorNotFoundError))

    def link_vendor_to_warehouse(
        self,
        vendor_id: UUID,
        warehouse_id: UUID,
        contract_start: date | None = None,
        contract_end: date | None = None,
    ) -> VendorWarehouseLinkInfo:
        """
        Authorize a vendor to stock a warehouse.

        Idempotent: an existing link is returned with its contract window
        updated when one is given.
        """
        if contract_start and contract_end and contract_start > contract_end:
            raise ValidationError("contract_end", "must not be before contract_start")
        self._get_or_raise(Vendor, vendor_id, VendorNotFoundError)
        self._get_or_raise(Warehouse, warehouse_id, WarehouseNotFoundError)

        link = self.session.execute(
            select(VendorOnWarehouse).where(
                VendorOnWarehouse.vendor_id == vendor_id,
                VendorOnWarehouse.warehouse_id == warehouse_id,
            )
        ).scalar_one_or_none()
        if link is None:
            link = VendorOnWarehouse(
                vendor_id=vendor_id,
                warehouse_id=warehouse_id,
                contract_start=contract_start,
                contract_end=contract_end,
                **self._stamp(),
            )
            self._insert_unique(link, "vendor_warehouses", f"{vendor_id}/{warehouse_id}")
            logger.info(
                "vendor_warehouse_link_created",
                extra={"vendor_id": vendor_id, "warehouse_id": warehouse_id},
            )
        elif contract_start or contract_end:
            link.contract_start = contract_start or link.contract_start
            link.contract_end = contract_end or link.contract_end
            self.session.flush()
        return VendorWarehouseLinkInfo.from_model(link)

    # ------------------------------------------------------------------
    # Products, clients, agents
    # ------------------------------------------------------------------

    def create_product(
        self,
        vendor_id: UUID,
        name: str,
        price: Decimal,
        *,
        sku: str | None = None,
        description: str | None = None,
    ) -> ProductInfo:
        self._get_or_raise(Vendor, vendor_id, VendorNotFoundError)
        try:
            value = round_money(to_money(price))
        except ValueError as exc:
            raise ValidationError("price", str(exc)) from exc
        if value < 0:
            raise ValidationError("price", "must not be negative")

        product = Product(
            vendor_id=vendor_id,
            name=_required(name, "name"),
            price=value,
            sku=sku.strip() if sku else None,
            description=description,
            **self._stamp(),
        )
        self._insert_unique(product, "products", f"sku={product.sku}")
        logger.info(
            "product_created",
            extra={"product_id": product.id, "vendor_id": vendor_id, "sku": product.sku},
        )
        return ProductInfo.from_model(product)

    def create_client(
        self,
        full_name: str,
        phone: str,
        *,
        email: str | None = None,
        address: str | None = None,
    ) -> ClientInfo:
        client = Client(
            full_name=_required(full_name, "full_name"),
            phone=_required(phone, "phone"),
            email=email,
            address=address,
            **self._stamp(),
        )
        self.session.add(client)
        self.session.flush()
        logger.info("client_created", extra={"client_id": client.id})
        return ClientInfo.from_model(client)

    def create_agent(
        self,
        full_name: str,
        email: str,
        phone: str,
        warehouse_id: UUID,
    ) -> AgentInfo:
        self._get_or_raise(Warehouse, warehouse_id, WarehouseNotFoundError)
        agent = Agent(
            full_name=_required(full_name, "full_name"),
            email=_required(email, "email").lower(),
            phone=_required(phone, "phone"),
            warehouse_id=warehouse_id,
            **self._stamp(),
        )
        self._insert_unique(agent, "agents", f"email={agent.email}")
        logger.info(
            "agent_created",
            extra={"agent_id": agent.id, "warehouse_id": warehouse_id},
        )
        return AgentInfo.from_model(agent)
