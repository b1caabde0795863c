"""
Logistics Kernel

Consistency engine for a delivery operation's back office:
- Inventory ledger keyed by (vendor, warehouse, product)
- Order lifecycle with atomic stock reservation
- All-or-nothing warehouse-to-warehouse stock transfers
- Remittance, expense and performance rollups derived from order history
"""

__version__ = "0.1.0"
