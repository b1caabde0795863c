"""
DTOs -- Immutable results handed across the service/selector boundary.

Responsibility:
    Services and selectors never return ORM instances.  Each result is a
    frozen dataclass built through a ``from_model()`` converter at the
    service layer, so callers (the gateway, the CLI, tests) cannot reach
    back into the session or trigger lazy loads after it is closed.

Architecture position:
    Kernel > Domain -- free of database access.  from_model() converters
    take ORM instances as plain objects and only read attributes.

Invariants enforced:
    - Money fields are Decimal, never float.
    - to_dict() yields JSON-friendly values (str ids, ISO timestamps,
      string amounts) for the gateway and CLI.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID

if TYPE_CHECKING:
    from logistics_kernel.models import (
        Agent,
        Client,
        DeliveryOrder,
        Expense,
        Inventory,
        Product,
        Remittance,
        RemittanceOrder,
        RemittancePayment,
        StockTransfer,
        User,
        Vendor,
        VendorOnWarehouse,
        Warehouse,
    )


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


class _Serializable:
    def to_dict(self) -> dict[str, Any]:
        return _plain(asdict(self))


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InventoryInfo(_Serializable):
    """An inventory row after a ledger mutation, with its warehouse cache."""

    id: UUID
    vendor_id: UUID
    warehouse_id: UUID
    product_id: UUID
    quantity: int
    warehouse_items: int
    warehouse_status: str

    @classmethod
    def from_model(cls, row: Inventory, warehouse: Warehouse) -> InventoryInfo:
        return cls(
            id=row.id,
            vendor_id=row.vendor_id,
            warehouse_id=row.warehouse_id,
            product_id=row.product_id,
            quantity=row.quantity,
            warehouse_items=warehouse.items,
            warehouse_status=warehouse.status,
        )


@dataclass(frozen=True)
class InventoryListing(_Serializable):
    """Inventory row joined with vendor, product and warehouse display data."""

    id: UUID
    vendor_id: UUID
    vendor_name: str
    warehouse_id: UUID
    warehouse_name: str
    warehouse_location: str
    product_id: UUID
    product_name: str
    sku: str | None
    quantity: int
    low_stock: bool
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class InventoryPage(_Serializable):
    """Result of an inventory listing plus headline statistics."""

    items: tuple[InventoryListing, ...]
    total_units: int
    low_stock_count: int


@dataclass(frozen=True)
class ReconciliationResult(_Serializable):
    """Outcome of recomputing one warehouse's cached item count."""

    warehouse_id: UUID
    cached_items: int
    actual_items: int
    status: str

    @property
    def corrected(self) -> bool:
        return self.cached_items != self.actual_items

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["corrected"] = self.corrected
        return data


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OrderInfo(_Serializable):
    id: UUID
    order_type: str
    status: str
    vendor_id: UUID | None
    warehouse_id: UUID | None
    product_id: UUID | None
    client_id: UUID | None
    agent_id: UUID | None
    quantity: int
    destination: str
    cost: Decimal
    additional_charge: Decimal
    amount_charged: Decimal
    amount_received: Decimal
    outstanding: Decimal
    collect_payment: bool
    stock_restored: bool
    created_at: datetime
    contacts: dict[str, str | None] = field(default_factory=dict)

    @classmethod
    def from_model(cls, order: DeliveryOrder) -> OrderInfo:
        return cls(
            id=order.id,
            order_type=order.order_type,
            status=order.status,
            vendor_id=order.vendor_id,
            warehouse_id=order.warehouse_id,
            product_id=order.product_id,
            client_id=order.client_id,
            agent_id=order.agent_id,
            quantity=order.quantity,
            destination=order.destination,
            cost=order.cost,
            additional_charge=order.additional_charge,
            amount_charged=order.amount_charged,
            amount_received=order.amount_received,
            outstanding=order.outstanding,
            collect_payment=order.collect_payment,
            stock_restored=order.stock_restored,
            created_at=order.created_at,
            contacts={
                "pickup_contact_name": order.pickup_contact_name,
                "pickup_contact_phone": order.pickup_contact_phone,
                "pickup_address": order.pickup_address,
                "delivery_contact_name": order.delivery_contact_name,
                "delivery_contact_phone": order.delivery_contact_phone,
                "instructions": order.instructions,
            },
        )


# ---------------------------------------------------------------------------
# Transfers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TransferLine(_Serializable):
    """One product/quantity pair of a stock transfer."""

    product_id: UUID
    quantity: int


@dataclass(frozen=True)
class TransferInfo(_Serializable):
    id: UUID
    vendor_id: UUID
    from_warehouse_id: UUID
    to_warehouse_id: UUID
    note: str | None
    lines: tuple[TransferLine, ...]
    created_at: datetime

    @property
    def total_quantity(self) -> int:
        return sum(line.quantity for line in self.lines)

    @classmethod
    def from_model(cls, transfer: StockTransfer) -> TransferInfo:
        return cls(
            id=transfer.id,
            vendor_id=transfer.vendor_id,
            from_warehouse_id=transfer.from_warehouse_id,
            to_warehouse_id=transfer.to_warehouse_id,
            note=transfer.note,
            lines=tuple(
                TransferLine(product_id=line.product_id, quantity=line.quantity)
                for line in transfer.lines
            ),
            created_at=transfer.created_at,
        )


# ---------------------------------------------------------------------------
# Remittances
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RemittanceOrderInfo(_Serializable):
    order_id: UUID
    amount_charged: Decimal
    received_amount: Decimal

    @classmethod
    def from_model(cls, row: RemittanceOrder) -> RemittanceOrderInfo:
        return cls(
            order_id=row.order_id,
            amount_charged=row.amount_charged,
            received_amount=row.received_amount,
        )


@dataclass(frozen=True)
class PaymentInfo(_Serializable):
    id: UUID
    amount: Decimal
    method: str | None
    reference: str | None
    notes: str | None
    created_at: datetime

    @classmethod
    def from_model(cls, payment: RemittancePayment) -> PaymentInfo:
        return cls(
            id=payment.id,
            amount=payment.amount,
            method=payment.method,
            reference=payment.reference,
            notes=payment.notes,
            created_at=payment.created_at,
        )


@dataclass(frozen=True)
class RemittanceInfo(_Serializable):
    id: UUID
    party_type: str
    party_id: UUID
    period_start: datetime
    period_end: datetime
    total_charged: Decimal
    total_received: Decimal
    balance: Decimal
    status: str
    orders: tuple[RemittanceOrderInfo, ...]
    payments: tuple[PaymentInfo, ...]

    @classmethod
    def from_model(cls, remittance: Remittance) -> RemittanceInfo:
        return cls(
            id=remittance.id,
            party_type=remittance.party_type,
            party_id=remittance.party_id,
            period_start=remittance.period_start,
            period_end=remittance.period_end,
            total_charged=remittance.total_charged,
            total_received=remittance.total_received,
            balance=remittance.balance,
            status=remittance.status,
            orders=tuple(RemittanceOrderInfo.from_model(o) for o in remittance.orders),
            payments=tuple(PaymentInfo.from_model(p) for p in remittance.payments),
        )


@dataclass(frozen=True)
class ExpenseInfo(_Serializable):
    id: UUID
    expense_type: str
    description: str | None
    amount: Decimal
    created_at: datetime

    @classmethod
    def from_model(cls, expense: Expense) -> ExpenseInfo:
        return cls(
            id=expense.id,
            expense_type=expense.expense_type,
            description=expense.description,
            amount=expense.amount,
            created_at=expense.created_at,
        )


# ---------------------------------------------------------------------------
# Directory
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WarehouseInfo(_Serializable):
    id: UUID
    name: str
    location: str
    capacity: int
    items: int
    status: str
    description: str | None = None

    @classmethod
    def from_model(cls, warehouse: Warehouse) -> WarehouseInfo:
        return cls(
            id=warehouse.id,
            name=warehouse.name,
            location=warehouse.location,
            capacity=warehouse.capacity,
            items=warehouse.items,
            status=warehouse.status,
            description=warehouse.description,
        )


@dataclass(frozen=True)
class VendorInfo(_Serializable):
    id: UUID
    company_name: str
    contact_name: str | None
    phone: str | None
    email: str | None
    address: str | None
    status: str

    @classmethod
    def from_model(cls, vendor: Vendor) -> VendorInfo:
        return cls(
            id=vendor.id,
            company_name=vendor.company_name,
            contact_name=vendor.contact_name,
            phone=vendor.phone,
            email=vendor.email,
            address=vendor.address,
            status=vendor.status,
        )


@dataclass(frozen=True)
class VendorWarehouseLinkInfo(_Serializable):
    id: UUID
    vendor_id: UUID
    warehouse_id: UUID
    contract_start: date | None
    contract_end: date | None

    @classmethod
    def from_model(cls, link: VendorOnWarehouse) -> VendorWarehouseLinkInfo:
        return cls(
            id=link.id,
            vendor_id=link.vendor_id,
            warehouse_id=link.warehouse_id,
            contract_start=link.contract_start,
            contract_end=link.contract_end,
        )


@dataclass(frozen=True)
class ProductInfo(_Serializable):
    id: UUID
    vendor_id: UUID
    name: str
    price: Decimal
    sku: str | None
    description: str | None = None

    @classmethod
    def from_model(cls, product: Product) -> ProductInfo:
        return cls(
            id=product.id,
            vendor_id=product.vendor_id,
            name=product.name,
            price=product.price,
            sku=product.sku,
            description=product.description,
        )


@dataclass(frozen=True)
class ClientInfo(_Serializable):
    id: UUID
    full_name: str
    phone: str
    email: str | None
    address: str | None

    @classmethod
    def from_model(cls, client: Client) -> ClientInfo:
        return cls(
            id=client.id,
            full_name=client.full_name,
            phone=client.phone,
            email=client.email,
            address=client.address,
        )


@dataclass(frozen=True)
class AgentInfo(_Serializable):
    id: UUID
    full_name: str
    email: str
    phone: str
    status: str
    warehouse_id: UUID

    @classmethod
    def from_model(cls, agent: Agent) -> AgentInfo:
        return cls(
            id=agent.id,
            full_name=agent.full_name,
            email=agent.email,
            phone=agent.phone,
            status=agent.status,
            warehouse_id=agent.warehouse_id,
        )


@dataclass(frozen=True)
class UserInfo(_Serializable):
    """Never carries the password hash."""

    id: UUID
    email: str
    full_name: str | None

    @classmethod
    def from_model(cls, user: User) -> UserInfo:
        return cls(id=user.id, email=user.email, full_name=user.full_name)
