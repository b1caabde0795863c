"""Kernel services: the only writers of persistent state."""

from logistics_kernel.services.base import BaseService
from logistics_kernel.services.directory_service import DirectoryService
from logistics_kernel.services.expense_service import ExpenseService
from logistics_kernel.services.inventory_ledger import InventoryLedger
from logistics_kernel.services.order_service import OrderService
from logistics_kernel.services.remittance_service import RemittanceService
from logistics_kernel.services.transfer_service import StockTransferService
from logistics_kernel.services.user_service import UserService

__all__ = [
    "BaseService",
    "DirectoryService",
    "ExpenseService",
    "InventoryLedger",
    "OrderService",
    "RemittanceService",
    "StockTransferService",
    "UserService",
]
