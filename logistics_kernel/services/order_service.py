"""
OrderService -- delivery order lifecycle.

Responsibility:
    Creates vendor (stock-backed) and client (service-only) orders, drives
    status transitions through ORDER_WORKFLOW, reassigns agents, records
    cash collections, and deletes orders under the stock-restoration policy.

Architecture position:
    Kernel > Services -- imperative shell.  Depends on InventoryLedger for
    every stock movement.  Flush-only; the caller owns the transaction.

Invariants enforced:
    - Vendor order creation is one atomic unit: stock check, decrement, and
      order insert.  The insert runs in a savepoint; if it fails after the
      decrement, a compensating increment restores the stock before the
      error propagates.
    - Vendor orders name vendor, warehouse and product (product owned by
      the vendor); client orders name a client and no stock triple.
    - Status changes follow ORDER_WORKFLOW.  COMPLETED and CANCELLED are
      terminal.
    - Stock is restored at most once per order (``stock_restored``):
      on CANCELLED, and on delete unless the order was COMPLETED.
    - Orders on a remittance cannot be deleted.

Failure modes:
    - ValidationError, NotFoundError subclasses for bad input.
    - InsufficientStockError: no mutation was made.
    - InvalidTransitionError: disallowed status change.
    - PersistenceError: the order insert failed (stock compensated), or the
      compensation itself failed (logged at CRITICAL; inventory may be
      inconsistent until the surrounding transaction rolls back).
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from logistics_kernel.db.types import round_money, to_money
from logistics_kernel.domain.clock import Clock
from logistics_kernel.domain.dtos import OrderInfo
from logistics_kernel.domain.order_workflow import (
    AGENT_ASSIGNED,
    ORDER_WORKFLOW,
    OrderStatus,
)
from logistics_kernel.domain.orders import (
    ClientOrderRequest,
    OrderContacts,
    OrderRequest,
    VendorOrderRequest,
)
from logistics_kernel.exceptions import (
    AgentNotFoundError,
    ClientNotFoundError,
    InsufficientStockError,
    InvalidTransitionError,
    LogisticsError,
    OrderNotFoundError,
    PersistenceError,
    ProductNotFoundError,
    ProductVendorMismatchError,
    ValidationError,
    VendorNotFoundError,
    WarehouseNotFoundError,
)
from logistics_kernel.logging_config import LogContext, get_logger
from logistics_kernel.models import (
    Agent,
    Client,
    DeliveryOrder,
    OrderType,
    Product,
    RemittanceOrder,
    Vendor,
    Warehouse,
)
from logistics_kernel.services.base import BaseService
from logistics_kernel.services.inventory_ledger import InventoryLedger

logger = get_logger("services.order")


class OrderService(BaseService[DeliveryOrder]):
    """
    Order lifecycle manager.

    Contract:
        All mutations flush within the caller's transaction and return an
        OrderInfo snapshot.

    Guarantees:
        - A rejected order leaves inventory untouched.
        - Inventory is only touched through the injected InventoryLedger.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        ledger: InventoryLedger | None = None,
        *,
        restore_stock_on_cancel: bool = True,
        restore_stock_on_delete: bool = True,
    ):
        super().__init__(session, clock)
        self.ledger = ledger or InventoryLedger(session, self.clock)
        self.restore_stock_on_cancel = restore_stock_on_cancel
        self.restore_stock_on_delete = restore_stock_on_delete

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_vendor_order(
        self,
        vendor_id: UUID,
        warehouse_id: UUID,
        product_id: UUID,
        quantity: int,
        cost: Decimal,
        destination: str,
        client_id: UUID | None = None,
        *,
        agent_id: UUID | None = None,
        additional_charge: Decimal = Decimal("0"),
        collect_payment: bool = False,
        contacts: OrderContacts | None = None,
    ) -> OrderInfo:
        """Place a stock-backed order; see create_order()."""
        return self.create_order(
            VendorOrderRequest(
                vendor_id=vendor_id,
                warehouse_id=warehouse_id,
                product_id=product_id,
                quantity=quantity,
                cost=cost,
                destination=destination,
                client_id=client_id,
                agent_id=agent_id,
                additional_charge=additional_charge,
                collect_payment=collect_payment,
                contacts=contacts or OrderContacts(),
            )
        )

    def create_client_order(
        self,
        client_id: UUID,
        destination: str,
        cost: Decimal,
        *,
        quantity: int = 1,
        agent_id: UUID | None = None,
        additional_charge: Decimal = Decimal("0"),
        collect_payment: bool = False,
        contacts: OrderContacts | None = None,
    ) -> OrderInfo:
        """Place a service-only order; no inventory is consulted."""
        return self.create_order(
            ClientOrderRequest(
                client_id=client_id,
                destination=destination,
                cost=cost,
                quantity=quantity,
                agent_id=agent_id,
                additional_charge=additional_charge,
                collect_payment=collect_payment,
                contacts=contacts or OrderContacts(),
            )
        )

    def create_order(self, request: OrderRequest) -> OrderInfo:
        """
        Create an order from a tagged request.

        Preconditions: request.validate() passes.
        Postconditions: order row exists with status PENDING; for vendor
            orders the triple's quantity dropped by request.quantity.
        """
        request.validate()
        if request.agent_id is not None:
            self._get_or_raise(Agent, request.agent_id, AgentNotFoundError)

        if isinstance(request, VendorOrderRequest):
            return self._create_vendor_order(request)

        self._get_or_raise(Client, request.client_id, ClientNotFoundError)
        order = self._build_order(request)
        self.session.add(order)
        self.session.flush()

        logger.info(
            "order_created",
            extra={
                "order_id": order.id,
                "order_type": order.order_type,
                "client_id": order.client_id,
                "cost": order.cost,
            },
        )
        return OrderInfo.from_model(order)

    def _create_vendor_order(self, request: VendorOrderRequest) -> OrderInfo:
        self._get_or_raise(Vendor, request.vendor_id, VendorNotFoundError)
        self._get_or_raise(Warehouse, request.warehouse_id, WarehouseNotFoundError)
        product = self._get_or_raise(Product, request.product_id, ProductNotFoundError)
        if product.vendor_id != request.vendor_id:
            raise ProductVendorMismatchError(
                product_id=request.product_id, vendor_id=request.vendor_id
            )
        if request.client_id is not None:
            self._get_or_raise(Client, request.client_id, ClientNotFoundError)

        available = self.ledger.get_quantity(
            request.vendor_id, request.warehouse_id, request.product_id
        )
        if available < request.quantity:
            logger.info(
                "order_rejected_insufficient_stock",
                extra={
                    "vendor_id": request.vendor_id,
                    "product_id": request.product_id,
                    "requested": request.quantity,
                    "available": available,
                },
            )
            raise InsufficientStockError(
                vendor_id=request.vendor_id,
                warehouse_id=request.warehouse_id,
                product_id=request.product_id,
                requested=request.quantity,
                available=available,
            )

        # The locked re-check inside the ledger is authoritative; the read
        # above only avoids taking the lock for an obvious rejection.
        self.ledger.reserve_and_decrement(
            request.vendor_id, request.warehouse_id, request.product_id, request.quantity
        )

        savepoint = self.session.begin_nested()
        try:
            order = self._build_order(request)
            self.session.add(order)
            self.session.flush()
            savepoint.commit()
        except Exception as exc:
            savepoint.rollback()
            logger.error(
                "order_insert_failed",
                extra={
                    "vendor_id": request.vendor_id,
                    "product_id": request.product_id,
                    "quantity": request.quantity,
                    "error": str(exc),
                },
            )
            self._compensate_decrement(request)
            if isinstance(exc, LogisticsError):
                raise
            raise PersistenceError("create_vendor_order", str(exc)) from exc

        logger.info(
            "order_created",
            extra={
                "order_id": order.id,
                "order_type": order.order_type,
                "vendor_id": order.vendor_id,
                "warehouse_id": order.warehouse_id,
                "product_id": order.product_id,
                "quantity": order.quantity,
                "cost": order.cost,
            },
        )
        return OrderInfo.from_model(order)

    def _compensate_decrement(self, request: VendorOrderRequest) -> None:
        try:
            self.ledger.increment(
                request.vendor_id,
                request.warehouse_id,
                request.product_id,
                request.quantity,
            )
        except Exception as exc:
            logger.critical(
                "order_compensation_failed",
                extra={
                    "vendor_id": request.vendor_id,
                    "warehouse_id": request.warehouse_id,
                    "product_id": request.product_id,
                    "quantity": request.quantity,
                },
                exc_info=True,
            )
            raise PersistenceError("create_vendor_order.compensation", str(exc)) from exc

        logger.warning(
            "order_decrement_compensated",
            extra={
                "vendor_id": request.vendor_id,
                "product_id": request.product_id,
                "quantity": request.quantity,
            },
        )

    def _build_order(self, request: OrderRequest) -> DeliveryOrder:
        is_vendor = isinstance(request, VendorOrderRequest)
        contacts = request.contacts
        now = self.clock.timestamp()
        return DeliveryOrder(
            order_type=OrderType.VENDOR.value if is_vendor else OrderType.CLIENT.value,
            vendor_id=request.vendor_id if is_vendor else None,
            warehouse_id=request.warehouse_id if is_vendor else None,
            product_id=request.product_id if is_vendor else None,
            client_id=request.client_id,
            agent_id=request.agent_id,
            quantity=request.quantity,
            destination=request.destination.strip(),
            cost=round_money(to_money(request.cost)),
            additional_charge=round_money(to_money(request.additional_charge)),
            amount_received=Decimal("0"),
            collect_payment=request.collect_payment,
            pickup_contact_name=contacts.pickup_contact_name,
            pickup_contact_phone=contacts.pickup_contact_phone,
            pickup_address=contacts.pickup_address,
            delivery_contact_name=contacts.delivery_contact_name,
            delivery_contact_phone=contacts.delivery_contact_phone,
            instructions=contacts.instructions,
            status=OrderStatus.PENDING.value,
            stock_restored=False,
            created_at=now,
            updated_at=now,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def update_status(self, order_id: UUID, new_status: str) -> OrderInfo:
        """
        Move an order to ``new_status``.

        Setting the current status again is a no-op.  Moving a vendor
        order to CANCELLED restores its stock (once).

        Raises:
            ValidationError: Unknown status, or ASSIGNED without an agent.
            InvalidTransitionError: Not allowed by ORDER_WORKFLOW.
        """
        target = _parse_status(new_status)
        order = self._get_or_raise(DeliveryOrder, order_id, OrderNotFoundError, lock=True)

        with LogContext.bind(order_id=str(order.id)):
            if order.status == target:
                logger.debug("order_status_unchanged", extra={"status": target})
                return OrderInfo.from_model(order)

            transition = ORDER_WORKFLOW.find(order.status, target)
            if transition is None:
                raise InvalidTransitionError(
                    order_id=order.id, from_status=order.status, to_status=target
                )
            if transition.guard is AGENT_ASSIGNED and order.agent_id is None:
                raise ValidationError("agent_id", "an agent must be assigned first")

            restored = False
            if transition.restores_stock and self.restore_stock_on_cancel:
                restored = self._restore_stock(order)

            from_status = order.status
            order.status = target
            self.session.flush()

            logger.info(
                "order_status_changed",
                extra={
                    "from_status": from_status,
                    "to_status": target,
                    "action": transition.action,
                    "stock_restored": restored,
                },
            )
            return OrderInfo.from_model(order)

    def assign_agent(self, order_id: UUID, agent_id: UUID | None) -> OrderInfo:
        """Set or clear the order's agent.  No effect on status, stock, or cost."""
        order = self._get_or_raise(DeliveryOrder, order_id, OrderNotFoundError, lock=True)
        if agent_id is not None:
            self._get_or_raise(Agent, agent_id, AgentNotFoundError)

        previous = order.agent_id
        order.agent_id = agent_id
        self.session.flush()

        logger.info(
            "order_agent_assigned",
            extra={
                "order_id": order.id,
                "previous_agent_id": previous,
                "agent_id": agent_id,
            },
        )
        return OrderInfo.from_model(order)

    def record_collection(self, order_id: UUID, amount: Decimal) -> OrderInfo:
        """Add a collected cash amount to the order's ``amount_received``."""
        try:
            value = round_money(to_money(amount))
        except ValueError as exc:
            raise ValidationError("amount", str(exc)) from exc
        if value <= 0:
            raise ValidationError("amount", "must be greater than zero")

        order = self._get_or_raise(DeliveryOrder, order_id, OrderNotFoundError, lock=True)
        try:
            order.amount_received = round_money(order.amount_received + value)
        except ValueError as exc:
            raise ValidationError("amount", str(exc)) from exc
        self.session.flush()

        logger.info(
            "order_collection_recorded",
            extra={
                "order_id": order.id,
                "amount": value,
                "amount_received": order.amount_received,
            },
        )
        return OrderInfo.from_model(order)

    def delete_order(self, order_id: UUID) -> OrderInfo:
        """
        Delete an order.

        Vendor orders get their stock back unless the order was COMPLETED
        or its stock was already restored by a cancellation.

        Returns:
            Snapshot of the order as it was deleted.

        Raises:
            ValidationError: The order is part of a remittance.
        """
        order = self._get_or_raise(DeliveryOrder, order_id, OrderNotFoundError, lock=True)

        on_remittance = self.session.execute(
            select(RemittanceOrder.remittance_id).where(RemittanceOrder.order_id == order.id)
        ).scalar_one_or_none()
        if on_remittance is not None:
            raise ValidationError(
                "order_id", f"order is part of remittance {on_remittance}"
            )

        restored = False
        if (
            self.restore_stock_on_delete
            and order.status != OrderStatus.COMPLETED.value
        ):
            restored = self._restore_stock(order)

        snapshot = OrderInfo.from_model(order)
        self.session.delete(order)
        self.session.flush()

        logger.info(
            "order_deleted",
            extra={
                "order_id": snapshot.id,
                "status": snapshot.status,
                "stock_restored": restored,
            },
        )
        return snapshot

    def _restore_stock(self, order: DeliveryOrder) -> bool:
        if not order.is_vendor_order or order.stock_restored:
            return False
        self.ledger.increment(
            order.vendor_id, order.warehouse_id, order.product_id, order.quantity
        )
        order.stock_restored = True
        return True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_order(self, order_id: UUID) -> OrderInfo:
        return OrderInfo.from_model(
            self._get_or_raise(DeliveryOrder, order_id, OrderNotFoundError)
        )

    def list_orders(
        self,
        status: str | None = None,
        vendor_id: UUID | None = None,
        client_id: UUID | None = None,
        agent_id: UUID | None = None,
    ) -> list[OrderInfo]:
        """Orders matching every given filter, newest first."""
        stmt = select(DeliveryOrder)
        if status is not None:
            stmt = stmt.where(DeliveryOrder.status == _parse_status(status))
        if vendor_id is not None:
            stmt = stmt.where(DeliveryOrder.vendor_id == vendor_id)
        if client_id is not None:
            stmt = stmt.where(DeliveryOrder.client_id == client_id)
        if agent_id is not None:
            stmt = stmt.where(DeliveryOrder.agent_id == agent_id)
        stmt = stmt.order_by(DeliveryOrder.created_at.desc(), DeliveryOrder.id)
        return [OrderInfo.from_model(o) for o in self.session.execute(stmt).scalars()]


def _parse_status(value: str) -> str:
    try:
        return OrderStatus(str(getattr(value, "value", value)).upper()).value
    except ValueError as exc:
        raise ValidationError("status", f"unknown order status {value!r}") from exc
