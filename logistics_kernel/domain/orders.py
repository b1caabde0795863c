"""
Order requests -- the tagged variant behind DeliveryOrder.

Responsibility:
    The delivery_orders table keeps vendor orders and client orders in one
    physical table with nullable foreign keys.  These frozen request types
    make the two shapes explicit so OrderService can enforce what the
    schema does not: a vendor order always names vendor, warehouse and
    product; a client order names a client and never touches inventory.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Failure modes:
    - ValidationError from validate() on missing ids, non-positive
      quantity, negative money, or empty destination.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from logistics_kernel.db.types import round_money, to_money
from logistics_kernel.exceptions import ValidationError


@dataclass(frozen=True)
class OrderContacts:
    """Pickup and delivery contact details carried on an order."""

    pickup_contact_name: str | None = None
    pickup_contact_phone: str | None = None
    pickup_address: str | None = None
    delivery_contact_name: str | None = None
    delivery_contact_phone: str | None = None
    instructions: str | None = None


def _validate_common(destination: str, cost, additional_charge) -> None:
    if not destination or not str(destination).strip():
        raise ValidationError("destination", "must not be empty")
    for name, value in (("cost", cost), ("additional_charge", additional_charge)):
        try:
            amount = round_money(to_money(value))
        except ValueError as exc:
            raise ValidationError(name, str(exc)) from exc
        if amount < 0:
            raise ValidationError(name, "must not be negative")


@dataclass(frozen=True)
class VendorOrderRequest:
    """
    Stock-backed order against a vendor's inventory at one warehouse.

    ``client_id`` optionally names the receiving client.
    """

    vendor_id: UUID
    warehouse_id: UUID
    product_id: UUID
    quantity: int
    cost: Decimal
    destination: str
    client_id: UUID | None = None
    agent_id: UUID | None = None
    additional_charge: Decimal = Decimal("0")
    collect_payment: bool = False
    contacts: OrderContacts = field(default_factory=OrderContacts)

    order_type = "vendor"

    def validate(self) -> None:
        for name in ("vendor_id", "warehouse_id", "product_id"):
            if getattr(self, name) is None:
                raise ValidationError(name, "is required for vendor orders")
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValidationError("quantity", "must be an integer")
        if self.quantity <= 0:
            raise ValidationError("quantity", "must be greater than zero")
        _validate_common(self.destination, self.cost, self.additional_charge)


@dataclass(frozen=True)
class ClientOrderRequest:
    """Service-only order (pickup/drop, errand) for a regular client."""

    client_id: UUID
    destination: str
    cost: Decimal
    quantity: int = 1
    agent_id: UUID | None = None
    additional_charge: Decimal = Decimal("0")
    collect_payment: bool = False
    contacts: OrderContacts = field(default_factory=OrderContacts)

    order_type = "client"

    def validate(self) -> None:
        if self.client_id is None:
            raise ValidationError("client_id", "is required for client orders")
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValidationError("quantity", "must be an integer")
        if self.quantity <= 0:
            raise ValidationError("quantity", "must be greater than zero")
        _validate_common(self.destination, self.cost, self.additional_charge)


OrderRequest = VendorOrderRequest | ClientOrderRequest
