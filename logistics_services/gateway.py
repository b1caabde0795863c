"""
LogisticsGateway -- the boundary the UI (or CLI) talks to.

Responsibility:
    Turns each intent or query into exactly one transaction against the
    Store and returns an ``OperationResult`` instead of raising.  Domain
    errors become typed failure results the interface can render.

Architecture position:
    Services layer, above the kernel.  Owns transaction boundaries, conflict
    retries and the per-operation log context.

Invariants enforced:
    - One operation, one transaction.  Nothing partially commits.
    - ConflictError re-runs the whole operation (re-check, re-attempt) up to
      ``concurrency.max_conflict_retries`` times; DuplicateRecordError is
      final.
    - PersistenceError, and any unexpected exception (wrapped as one), is
      logged at ERROR with traceback.  Other failures are logged at INFO.

Usage:
    gateway = LogisticsGateway.from_config(get_active_config())
    result = gateway.create_vendor_order({...})
    if not result.success:
        show(result.error_code, result.error)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Mapping
from uuid import UUID, uuid4

from logistics_config import AppConfig
from logistics_kernel.db.engine import Store
from logistics_kernel.domain.clock import Clock, SystemClock
from logistics_kernel.domain.dtos import _plain
from logistics_kernel.domain.orders import OrderContacts
from logistics_kernel.exceptions import (
    ConflictError,
    DuplicateRecordError,
    LogisticsError,
    PersistenceError,
    ValidationError,
)
from logistics_kernel.logging_config import LogContext, get_logger
from logistics_services.orchestrator import LogisticsOrchestrator

logger = get_logger("services.gateway")

_CONTACT_FIELDS = tuple(OrderContacts.__dataclass_fields__)


@dataclass(frozen=True)
class OperationResult:
    """
    Stable result type for interface callers.

    ``data`` is the operation's DTO (or list of DTOs) on success; on failure
    ``error_code`` is the exception's ``code`` and ``details`` its
    structured attributes.
    """

    success: bool
    data: Any = None
    error_code: str | None = None
    error: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, data: Any = None) -> OperationResult:
        return cls(success=True, data=data)

    @classmethod
    def failed(cls, exc: LogisticsError) -> OperationResult:
        return cls(
            success=False,
            error_code=exc.code,
            error=str(exc),
            details=exc.details(),
        )

    def to_dict(self) -> dict[str, Any]:
        data = self.data
        if hasattr(data, "to_dict"):
            data = data.to_dict()
        elif isinstance(data, (list, tuple)):
            data = [d.to_dict() if hasattr(d, "to_dict") else d for d in data]
        return {
            "success": self.success,
            "data": _plain(data),
            "error_code": self.error_code,
            "error": self.error,
            "details": _plain(self.details),
        }


def parse_uuid(value: Any, field_name: str, *, required: bool = True) -> UUID | None:
    """Accept a UUID or its string form; anything else is a ValidationError."""
    if value is None or value == "":
        if required:
            raise ValidationError(field_name, "is required")
        return None
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError as exc:
        raise ValidationError(field_name, f"not a valid id: {value!r}") from exc


def parse_moment(value: Any, field_name: str):
    """Accept a date, a datetime or an ISO-8601 string."""
    if isinstance(value, (date, datetime)):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            if len(text) == 10:
                return date.fromisoformat(text)
            return datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValidationError(field_name, f"not an ISO date: {value!r}") from exc
    raise ValidationError(field_name, "is required")


def _contacts(payload: Mapping[str, Any]) -> OrderContacts:
    return OrderContacts(**{k: payload.get(k) for k in _CONTACT_FIELDS})


class LogisticsGateway:
    """Request/response facade over the kernel."""

    def __init__(self, store: Store, config: AppConfig, clock: Clock | None = None):
        self.store = store
        self.config = config
        self.clock = clock or SystemClock()

    @classmethod
    def from_config(cls, config: AppConfig, clock: Clock | None = None) -> LogisticsGateway:
        store = Store.from_url(
            config.database.url,
            echo=config.database.echo,
            busy_timeout_seconds=config.database.busy_timeout_seconds,
        )
        store.create_tables()
        return cls(store, config, clock)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _run(
        self,
        operation: str,
        work: Callable[[LogisticsOrchestrator], Any],
        **context: str | None,
    ) -> OperationResult:
        attempts = self.config.concurrency.max_conflict_retries + 1
        attempt = 0
        with LogContext.bind(operation=operation, correlation_id=str(uuid4()), **context):
            while True:
                attempt += 1
                try:
                    with self.store.session_scope(operation) as session:
                        data = work(LogisticsOrchestrator(session, self.config, self.clock))
                    return OperationResult.ok(data)
                except DuplicateRecordError as exc:
                    logger.info("operation_rejected", extra={"error_code": exc.code})
                    return OperationResult.failed(exc)
                except ConflictError as exc:
                    if attempt < attempts:
                        logger.warning(
                            "operation_conflict_retry",
                            extra={"attempt": attempt, "resource": exc.resource},
                        )
                        continue
                    logger.warning(
                        "operation_conflict_exhausted",
                        extra={"attempts": attempt, "resource": exc.resource},
                    )
                    return OperationResult.failed(exc)
                except PersistenceError as exc:
                    logger.error(
                        "operation_persistence_failure",
                        extra={"error_code": exc.code, "cause": exc.cause},
                        exc_info=True,
                    )
                    return OperationResult.failed(exc)
                except LogisticsError as exc:
                    logger.info("operation_rejected", extra={"error_code": exc.code})
                    return OperationResult.failed(exc)
                except Exception as exc:
                    logger.exception("operation_unexpected_failure")
                    return OperationResult.failed(
                        PersistenceError(operation, f"{type(exc).__name__}: {exc}")
                    )

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def create_vendor_order(self, payload: Mapping[str, Any]) -> OperationResult:
        """
        Create-order intent for a vendor (stock-backed) order.

        Keys: vendor_id, warehouse_id, product_id, quantity, cost,
        destination, and optionally client_id, agent_id,
        additional_charge, collect_payment and the contact fields.
        """

        def work(o: LogisticsOrchestrator):
            return o.orders.create_vendor_order(
                vendor_id=parse_uuid(payload.get("vendor_id"), "vendor_id"),
                warehouse_id=parse_uuid(payload.get("warehouse_id"), "warehouse_id"),
                product_id=parse_uuid(payload.get("product_id"), "product_id"),
                quantity=payload.get("quantity"),
                cost=payload.get("cost"),
                destination=payload.get("destination"),
                client_id=parse_uuid(payload.get("client_id"), "client_id", required=False),
                agent_id=parse_uuid(payload.get("agent_id"), "agent_id", required=False),
                additional_charge=payload.get("additional_charge") or Decimal("0"),
                collect_payment=bool(payload.get("collect_payment", False)),
                contacts=_contacts(payload),
            )

        return self._run("create_vendor_order", work)

    def create_client_order(self, payload: Mapping[str, Any]) -> OperationResult:
        """Create-order intent for a service-only client order."""

        def work(o: LogisticsOrchestrator):
            return o.orders.create_client_order(
                client_id=parse_uuid(payload.get("client_id"), "client_id"),
                destination=payload.get("destination"),
                cost=payload.get("cost"),
                quantity=payload.get("quantity", 1),
                agent_id=parse_uuid(payload.get("agent_id"), "agent_id", required=False),
                additional_charge=payload.get("additional_charge") or Decimal("0"),
                collect_payment=bool(payload.get("collect_payment", False)),
                contacts=_contacts(payload),
            )

        return self._run("create_client_order", work)

    def update_order_status(self, order_id: Any, status: str) -> OperationResult:
        return self._run(
            "update_order_status",
            lambda o: o.orders.update_status(parse_uuid(order_id, "order_id"), status),
            order_id=str(order_id),
        )

    def assign_agent(self, order_id: Any, agent_id: Any) -> OperationResult:
        return self._run(
            "assign_agent",
            lambda o: o.orders.assign_agent(
                parse_uuid(order_id, "order_id"),
                parse_uuid(agent_id, "agent_id", required=False),
            ),
            order_id=str(order_id),
        )

    def record_collection(self, order_id: Any, amount: Any) -> OperationResult:
        return self._run(
            "record_collection",
            lambda o: o.orders.record_collection(parse_uuid(order_id, "order_id"), amount),
            order_id=str(order_id),
        )

    def delete_order(self, order_id: Any) -> OperationResult:
        return self._run(
            "delete_order",
            lambda o: o.orders.delete_order(parse_uuid(order_id, "order_id")),
            order_id=str(order_id),
        )

    def get_order(self, order_id: Any) -> OperationResult:
        return self._run(
            "get_order",
            lambda o: o.orders.get_order(parse_uuid(order_id, "order_id")),
            order_id=str(order_id),
        )

    def list_orders(self, **filters: Any) -> OperationResult:
        def work(o: LogisticsOrchestrator):
            return o.orders.list_orders(
                status=filters.get("status"),
                vendor_id=parse_uuid(filters.get("vendor_id"), "vendor_id", required=False),
                client_id=parse_uuid(filters.get("client_id"), "client_id", required=False),
                agent_id=parse_uuid(filters.get("agent_id"), "agent_id", required=False),
            )

        return self._run("list_orders", work)

    # ------------------------------------------------------------------
    # Inventory and transfers
    # ------------------------------------------------------------------

    def transfer_stock(self, payload: Mapping[str, Any]) -> OperationResult:
        """
        Transfer-stock intent.

        Keys: vendor_id, from_warehouse_id, to_warehouse_id,
        items ([{product_id, quantity}, ...]) and optionally note.  A
        rejected transfer reports every short line in ``details["failures"]``.
        """

        def work(o: LogisticsOrchestrator):
            items = [
                {
                    "product_id": parse_uuid(line.get("product_id"), "product_id"),
                    "quantity": line.get("quantity"),
                }
                for line in payload.get("items") or ()
            ]
            return o.transfers.transfer(
                vendor_id=parse_uuid(payload.get("vendor_id"), "vendor_id"),
                from_warehouse_id=parse_uuid(payload.get("from_warehouse_id"), "from_warehouse_id"),
                to_warehouse_id=parse_uuid(payload.get("to_warehouse_id"), "to_warehouse_id"),
                items=items,
                note=payload.get("note"),
            )

        return self._run("transfer_stock", work)

    def list_transfers(self, vendor_id: Any = None, warehouse_id: Any = None) -> OperationResult:
        return self._run(
            "list_transfers",
            lambda o: o.transfers.list_transfers(
                vendor_id=parse_uuid(vendor_id, "vendor_id", required=False),
                warehouse_id=parse_uuid(warehouse_id, "warehouse_id", required=False),
            ),
        )

    def list_inventory(
        self,
        vendor_id: Any = None,
        warehouse_id: Any = None,
        product_id: Any = None,
    ) -> OperationResult:
        return self._run(
            "list_inventory",
            lambda o: o.inventory.list_inventory(
                vendor_id=parse_uuid(vendor_id, "vendor_id", required=False),
                warehouse_id=parse_uuid(warehouse_id, "warehouse_id", required=False),
                product_id=parse_uuid(product_id, "product_id", required=False),
            ),
        )

    def warehouse_products(self, warehouse_id: Any) -> OperationResult:
        return self._run(
            "warehouse_products",
            lambda o: o.inventory.warehouse_products(parse_uuid(warehouse_id, "warehouse_id")),
        )

    def register_stock(
        self,
        vendor_id: Any,
        warehouse_id: Any,
        product_id: Any,
        quantity: int,
    ) -> OperationResult:
        return self._run(
            "register_stock",
            lambda o: o.ledger.register_stock(
                parse_uuid(vendor_id, "vendor_id"),
                parse_uuid(warehouse_id, "warehouse_id"),
                parse_uuid(product_id, "product_id"),
                quantity,
            ),
        )

    def set_inventory_quantity(self, inventory_id: Any, quantity: int) -> OperationResult:
        return self._run(
            "set_inventory_quantity",
            lambda o: o.ledger.set_quantity(parse_uuid(inventory_id, "inventory_id"), quantity),
        )

    def reconcile_inventory(self, warehouse_id: Any = None) -> OperationResult:
        return self._run(
            "reconcile_inventory",
            lambda o: o.ledger.reconcile_warehouse_items(
                parse_uuid(warehouse_id, "warehouse_id", required=False)
            ),
        )

    # ------------------------------------------------------------------
    # Remittances and accounting
    # ------------------------------------------------------------------

    def compute_remittance(self, payload: Mapping[str, Any]) -> OperationResult:
        """
        Keys: party_id, period_start, period_end, order_ids,
        expected_amounts and optionally notes.
        """

        def work(o: LogisticsOrchestrator):
            return o.remittances.compute_remittance(
                party_id=parse_uuid(payload.get("party_id"), "party_id"),
                period_start=parse_moment(payload.get("period_start"), "period_start"),
                period_end=parse_moment(payload.get("period_end"), "period_end"),
                order_ids=[parse_uuid(i, "order_ids") for i in payload.get("order_ids") or ()],
                expected_amounts=list(payload.get("expected_amounts") or ()),
                notes=payload.get("notes"),
            )

        return self._run("compute_remittance", work)

    def record_remittance_payment(self, payload: Mapping[str, Any]) -> OperationResult:
        """Keys: remittance_id, amount and optionally method, reference, notes."""
        remittance_id = payload.get("remittance_id")
        return self._run(
            "record_remittance_payment",
            lambda o: o.remittances.record_payment(
                parse_uuid(remittance_id, "remittance_id"),
                payload.get("amount"),
                method=payload.get("method"),
                reference=payload.get("reference"),
                notes=payload.get("notes"),
            ),
            remittance_id=str(remittance_id),
        )

    def get_remittance(self, remittance_id: Any) -> OperationResult:
        return self._run(
            "get_remittance",
            lambda o: o.remittances.get_remittance(parse_uuid(remittance_id, "remittance_id")),
            remittance_id=str(remittance_id),
        )

    def list_remittances(self, status: str | None = None, party_id: Any = None) -> OperationResult:
        return self._run(
            "list_remittances",
            lambda o: o.remittances.list_remittances(
                status=status,
                party_id=parse_uuid(party_id, "party_id", required=False),
            ),
        )

    def accounting_summary(self, period: str | None = None) -> OperationResult:
        return self._run("accounting_summary", lambda o: o.accounting.summary_by_period(period))

    def income_records(self, period: str | None = None) -> OperationResult:
        return self._run("income_records", lambda o: o.accounting.income_records(period))

    def expense_records(self, period: str | None = None) -> OperationResult:
        return self._run("expense_records", lambda o: o.accounting.expense_records(period))

    def remittance_metrics(self) -> OperationResult:
        return self._run("remittance_metrics", lambda o: o.accounting.remittance_metrics())

    def dashboard_metrics(self) -> OperationResult:
        return self._run("dashboard_metrics", lambda o: o.dashboard.dashboard_metrics())

    def orders_by_location(self) -> OperationResult:
        return self._run("orders_by_location", lambda o: o.dashboard.orders_by_location())

    def shipments_by_month(self, months: int | None = None) -> OperationResult:
        def work(o: LogisticsOrchestrator):
            if months is None:
                return o.dashboard.shipments_by_month()
            return o.dashboard.shipments_by_month(months)

        return self._run("shipments_by_month", work)

    def performance_stats(self, scope: str, party_id: Any = None) -> OperationResult:
        """
        Weekly/monthly delivery statistics.

        ``scope`` is "client", "vendor" (party_id optional) or "agent"
        (party_id required).
        """

        def work(o: LogisticsOrchestrator):
            if scope == "client":
                return o.performance.client_performance_stats()
            if scope == "vendor":
                return o.performance.vendor_performance_stats(
                    parse_uuid(party_id, "vendor_id", required=False)
                )
            if scope == "agent":
                return o.performance.agent_performance_stats(parse_uuid(party_id, "agent_id"))
            raise ValidationError("scope", f"must be client, vendor or agent; got {scope!r}")

        return self._run("performance_stats", work)

    def record_expense(
        self,
        expense_type: str,
        amount: Any,
        description: str | None = None,
    ) -> OperationResult:
        return self._run(
            "record_expense",
            lambda o: o.expenses.record_expense(expense_type, amount, description),
        )

    # ------------------------------------------------------------------
    # Directory and accounts
    # ------------------------------------------------------------------

    def create_warehouse(self, payload: Mapping[str, Any]) -> OperationResult:
        return self._run(
            "create_warehouse",
            lambda o: o.directory.create_warehouse(
                payload.get("name"),
                payload.get("location"),
                payload.get("capacity"),
                payload.get("description"),
            ),
        )

    def update_warehouse(self, warehouse_id: Any, payload: Mapping[str, Any]) -> OperationResult:
        """Keys: any of name, location, capacity, description; absent keys are unchanged."""
        return self._run(
            "update_warehouse",
            lambda o: o.directory.update_warehouse(
                parse_uuid(warehouse_id, "warehouse_id"),
                name=payload.get("name"),
                location=payload.get("location"),
                capacity=payload.get("capacity"),
                description=payload.get("description"),
            ),
        )

    def delete_warehouse(self, warehouse_id: Any) -> OperationResult:
        return self._run(
            "delete_warehouse",
            lambda o: o.directory.delete_warehouse(parse_uuid(warehouse_id, "warehouse_id")),
        )

    def get_warehouse(self, warehouse_id: Any) -> OperationResult:
        return self._run(
            "get_warehouse",
            lambda o: o.directory.get_warehouse(parse_uuid(warehouse_id, "warehouse_id")),
        )

    def list_warehouses(self) -> OperationResult:
        return self._run("list_warehouses", lambda o: o.directory.list_warehouses())

    def get_vendor(self, vendor_id: Any) -> OperationResult:
        return self._run(
            "get_vendor",
            lambda o: o.directory.get_vendor(parse_uuid(vendor_id, "vendor_id")),
        )

    def create_vendor(self, payload: Mapping[str, Any]) -> OperationResult:
        return self._run(
            "create_vendor",
            lambda o: o.directory.create_vendor(
                payload.get("company_name"),
                contact_name=payload.get("contact_name"),
                phone=payload.get("phone"),
                email=payload.get("email"),
                address=payload.get("address"),
            ),
        )

    def link_vendor_to_warehouse(
        self,
        vendor_id: Any,
        warehouse_id: Any,
        contract_start=None,
        contract_end=None,
    ) -> OperationResult:
        return self._run(
            "link_vendor_to_warehouse",
            lambda o: o.directory.link_vendor_to_warehouse(
                parse_uuid(vendor_id, "vendor_id"),
                parse_uuid(warehouse_id, "warehouse_id"),
                contract_start,
                contract_end,
            ),
        )

    def create_product(self, payload: Mapping[str, Any]) -> OperationResult:
        return self._run(
            "create_product",
            lambda o: o.directory.create_product(
                parse_uuid(payload.get("vendor_id"), "vendor_id"),
                payload.get("name"),
                payload.get("price"),
                sku=payload.get("sku"),
                description=payload.get("description"),
            ),
        )

    def create_client(self, payload: Mapping[str, Any]) -> OperationResult:
        return self._run(
            "create_client",
            lambda o: o.directory.create_client(
                payload.get("full_name"),
                payload.get("phone"),
                email=payload.get("email"),
                address=payload.get("address"),
            ),
        )

    def create_agent(self, payload: Mapping[str, Any]) -> OperationResult:
        return self._run(
            "create_agent",
            lambda o: o.directory.create_agent(
                payload.get("full_name"),
                payload.get("email"),
                payload.get("phone"),
                parse_uuid(payload.get("warehouse_id"), "warehouse_id"),
            ),
        )

    def create_user(self, email: str, password: str, full_name: str | None = None) -> OperationResult:
        return self._run("create_user", lambda o: o.users.create_user(email, password, full_name))

    def login(self, email: str, password: str) -> OperationResult:
        return self._run("login", lambda o: o.users.verify_credentials(email, password))
