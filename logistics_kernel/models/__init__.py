"""Domain models for the logistics kernel."""

from logistics_kernel.domain.order_workflow import OrderStatus
from logistics_kernel.models.agent import Agent, AgentStatus
from logistics_kernel.models.client import Client
from logistics_kernel.models.expense import Expense
from logistics_kernel.models.inventory import Inventory
from logistics_kernel.models.order import DeliveryOrder, OrderType
from logistics_kernel.models.product import Product
from logistics_kernel.models.remittance import (
    Remittance,
    RemittanceOrder,
    RemittancePartyType,
    RemittancePayment,
    RemittanceStatus,
)
from logistics_kernel.models.stock_transfer import StockTransfer, StockTransferLine
from logistics_kernel.models.user import User
from logistics_kernel.models.vendor import Vendor, VendorOnWarehouse, VendorStatus
from logistics_kernel.models.warehouse import Warehouse, WarehouseStatus, derive_status

__all__ = [
    "Agent",
    "AgentStatus",
    "Client",
    "DeliveryOrder",
    "Expense",
    "Inventory",
    "OrderStatus",
    "OrderType",
    "Product",
    "Remittance",
    "RemittanceOrder",
    "RemittancePartyType",
    "RemittancePayment",
    "RemittanceStatus",
    "StockTransfer",
    "StockTransferLine",
    "User",
    "Vendor",
    "VendorOnWarehouse",
    "VendorStatus",
    "Warehouse",
    "WarehouseStatus",
    "derive_status",
]
