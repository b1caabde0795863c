"""
Typed Exception Hierarchy for the Logistics Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

The gateway layer turns every domain failure into a result the interface can
render. That only works if failures are identified by TYPE and CODE, never
by parsing message text:

  1. Every error has a typed exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, UI-safe)
  3. Exceptions carry structured DATA (ids, requested vs available, ...)

Example - WRONG way to handle errors:
    try:
        orders.create_vendor_order(...)
    except Exception as e:
        if "stock" in str(e):  # FRAGILE - message might change
            show_stock_warning()

Example - RIGHT way:
    try:
        orders.create_vendor_order(...)
    except InsufficientStockError as e:
        show_stock_warning(requested=e.requested, available=e.available)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from LogisticsError:

    LogisticsError (base)
    |
    +-- ValidationError
    |   +-- ProductVendorMismatchError
    |   +-- CapacityExceededError
    |
    +-- InsufficientStockError
    |   +-- TransferRejectedError
    |
    +-- NotFoundError
    |   +-- WarehouseNotFoundError
    |   +-- VendorNotFoundError
    |   +-- ProductNotFoundError
    |   +-- InventoryNotFoundError
    |   +-- ClientNotFoundError
    |   +-- AgentNotFoundError
    |   +-- OrderNotFoundError
    |   +-- RemittanceNotFoundError
    |   +-- PartyNotFoundError
    |
    +-- InvalidTransitionError
    |
    +-- ConflictError
    |   +-- DuplicateRecordError
    |
    +-- PersistenceError
    |
    +-- AuthenticationError
        +-- InvalidCredentialsError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                  | When Raised
----------------|-----------------------|---------------------------------------
Validation      | VALIDATION_ERROR      | Missing/malformed input (qty <= 0, ...)
                | PRODUCT_VENDOR_MISMATCH | Product not owned by the vendor
                | CAPACITY_EXCEEDED     | Increment would overfill a warehouse
----------------|-----------------------|---------------------------------------
Stock           | INSUFFICIENT_STOCK    | Requested > available at the triple
                | TRANSFER_REJECTED     | One or more transfer lines short
----------------|-----------------------|---------------------------------------
Lookup          | NOT_FOUND             | Referenced id does not exist
----------------|-----------------------|---------------------------------------
Lifecycle       | INVALID_TRANSITION    | Order status move not allowed
----------------|-----------------------|---------------------------------------
Concurrency     | CONFLICT              | Concurrent write raced (retryable)
                | DUPLICATE_RECORD      | Unique key already taken
----------------|-----------------------|---------------------------------------
Store           | PERSISTENCE_ERROR     | Unexpected store failure (fatal)
----------------|-----------------------|---------------------------------------
Auth            | INVALID_CREDENTIALS   | Email/password do not match

===============================================================================
HANDLING PATTERNS
===============================================================================

1. ConflictError is the only retryable category. The gateway re-runs the
   whole operation (re-check quantity, re-attempt) a bounded number of times.

2. PersistenceError is fatal to the current operation and is always logged
   with its cause; it may mean an invariant was at risk.

3. Everything else is a user-correctable rejection with no side effects.
"""

from __future__ import annotations

from typing import Any


class LogisticsError(Exception):
    """
    Base exception for all logistics kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "LOGISTICS_ERROR"

    def details(self) -> dict[str, Any]:
        """Structured attributes of this error, safe to hand to a UI."""
        return {
            k: v for k, v in vars(self).items()
            if not k.startswith("_")
        }


# Validation


class ValidationError(LogisticsError):
    """Malformed or missing required input."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class ProductVendorMismatchError(ValidationError):
    """Product is owned by a different vendor than the one given."""

    code: str = "PRODUCT_VENDOR_MISMATCH"

    def __init__(self, product_id: str, vendor_id: str):
        self.product_id = product_id
        self.vendor_id = vendor_id
        super().__init__(
            "product_id",
            f"product {product_id} does not belong to vendor {vendor_id}",
        )


class CapacityExceededError(ValidationError):
    """Stocking would push a warehouse past its capacity."""

    code: str = "CAPACITY_EXCEEDED"

    def __init__(self, warehouse_id: str, capacity: int, resulting_items: int):
        self.warehouse_id = warehouse_id
        self.capacity = capacity
        self.resulting_items = resulting_items
        super().__init__(
            "quantity",
            f"warehouse {warehouse_id} would hold {resulting_items} "
            f"units, capacity is {capacity}",
        )


# Stock


class InsufficientStockError(LogisticsError):
    """Requested quantity exceeds what is available at the inventory triple."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        vendor_id: str,
        warehouse_id: str,
        product_id: str,
        requested: int,
        available: int,
    ):
        self.vendor_id = vendor_id
        self.warehouse_id = warehouse_id
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for product {product_id} at warehouse "
            f"{warehouse_id}: requested {requested}, available {available}"
        )


class TransferRejectedError(InsufficientStockError):
    """
    A stock transfer failed validation on one or more lines.

    `failures` lists every short line (not just the first) as dicts with
    product_id, requested and available.
    """

    code: str = "TRANSFER_REJECTED"

    def __init__(
        self,
        vendor_id: str,
        from_warehouse_id: str,
        failures: list[dict[str, Any]],
    ):
        self.from_warehouse_id = from_warehouse_id
        self.failures = failures
        first = failures[0]
        super().__init__(
            vendor_id=vendor_id,
            warehouse_id=from_warehouse_id,
            product_id=first["product_id"],
            requested=first["requested"],
            available=first["available"],
        )
        self.args = (
            f"Transfer rejected: {len(failures)} line(s) short at warehouse "
            f"{from_warehouse_id}",
        )


# Lookup


class NotFoundError(LogisticsError):
    """Referenced entity id does not exist."""

    code: str = "NOT_FOUND"
    entity: str = "Entity"

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"{self.entity} not found: {entity_id}")


class WarehouseNotFoundError(NotFoundError):
    entity = "Warehouse"


class VendorNotFoundError(NotFoundError):
    entity = "Vendor"


class ProductNotFoundError(NotFoundError):
    entity = "Product"


class InventoryNotFoundError(NotFoundError):
    entity = "Inventory"


class ClientNotFoundError(NotFoundError):
    entity = "Client"


class AgentNotFoundError(NotFoundError):
    entity = "Agent"


class OrderNotFoundError(NotFoundError):
    entity = "Order"


class RemittanceNotFoundError(NotFoundError):
    entity = "Remittance"


class PartyNotFoundError(NotFoundError):
    """Neither a vendor nor a client has this id."""

    entity = "Party"


# Lifecycle


class InvalidTransitionError(LogisticsError):
    """Order status change is not allowed by the order workflow."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, order_id: str, from_status: str, to_status: str):
        self.order_id = order_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Order {order_id} cannot move from {from_status} to {to_status}"
        )


# Concurrency


class ConflictError(LogisticsError):
    """
    A concurrent mutation raced on the same row.

    The caller should retry the whole operation.
    """

    code: str = "CONFLICT"

    def __init__(self, resource: str, detail: str = ""):
        self.resource = resource
        self.detail = detail
        message = f"Concurrent modification of {resource}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class DuplicateRecordError(ConflictError):
    """A unique key (email, sku, vendor/warehouse link) is already taken."""

    code: str = "DUPLICATE_RECORD"

    def __init__(self, resource: str, key: str):
        self.key = key
        super().__init__(resource, f"{key} already exists")


# Store


class PersistenceError(LogisticsError):
    """
    Unexpected store failure.

    Always fatal to the current operation and always logged: it can mean
    the atomicity guarantees were at risk.
    """

    code: str = "PERSISTENCE_ERROR"

    def __init__(self, operation: str, cause: str):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Persistence failure during {operation}: {cause}")


# Auth


class AuthenticationError(LogisticsError):
    """Base exception for credential verification failures."""

    code: str = "AUTHENTICATION_ERROR"


class InvalidCredentialsError(AuthenticationError):
    """Email unknown or password mismatch (deliberately indistinguishable)."""

    code: str = "INVALID_CREDENTIALS"

    def __init__(self):
        super().__init__("Invalid email or password")
