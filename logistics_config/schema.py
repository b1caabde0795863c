"""
AppConfig schema.

Typed, frozen view of the runtime configuration.  The loader parses
``defaults.yaml`` plus any overlay into these types; nothing else in the
system reads YAML or environment variables.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class DatabaseConfig:
    url: str = "sqlite:///logistics.db"
    echo: bool = False
    busy_timeout_seconds: float = 30.0


@dataclass(frozen=True)
class InventoryConfig:
    enforce_capacity: bool = False
    low_stock_threshold: int = 10


@dataclass(frozen=True)
class OrdersConfig:
    restore_stock_on_cancel: bool = True
    restore_stock_on_delete: bool = True


@dataclass(frozen=True)
class AccountingConfig:
    high_value_threshold: Decimal = Decimal("100000")
    weekly_buckets: int = 4
    monthly_buckets: int = 6
    vendor_monthly_buckets: int = 12


@dataclass(frozen=True)
class ConcurrencyConfig:
    max_conflict_retries: int = 3


@dataclass(frozen=True)
class SecurityConfig:
    password_iterations: int = 600_000


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class AppConfig:
    """Root configuration object."""

    database: DatabaseConfig = DatabaseConfig()
    inventory: InventoryConfig = InventoryConfig()
    orders: OrdersConfig = OrdersConfig()
    accounting: AccountingConfig = AccountingConfig()
    concurrency: ConcurrencyConfig = ConcurrencyConfig()
    security: SecurityConfig = SecurityConfig()
    logging: LoggingConfig = LoggingConfig()
    checksum: str = ""
