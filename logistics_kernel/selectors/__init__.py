"""Read-only query selectors."""

from logistics_kernel.selectors.accounting_selector import AccountingSelector
from logistics_kernel.selectors.base import BaseSelector
from logistics_kernel.selectors.dashboard_selector import DashboardSelector
from logistics_kernel.selectors.inventory_selector import InventorySelector
from logistics_kernel.selectors.performance_selector import PerformanceSelector

__all__ = [
    "AccountingSelector",
    "BaseSelector",
    "DashboardSelector",
    "InventorySelector",
    "PerformanceSelector",
]
