"""
LogisticsOrchestrator -- per-transaction factory for kernel services.

Constructs every service and selector once for a given Session, wiring the
shared Clock, the shared InventoryLedger and the policy knobs from
AppConfig.  It does not manage transaction boundaries; the gateway owns
those.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from logistics_config import AppConfig
from logistics_kernel.domain.clock import Clock, SystemClock
from logistics_kernel.selectors import (
    AccountingSelector,
    DashboardSelector,
    InventorySelector,
    PerformanceSelector,
)
from logistics_kernel.services import (
    DirectoryService,
    ExpenseService,
    InventoryLedger,
    OrderService,
    RemittanceService,
    StockTransferService,
    UserService,
)


class LogisticsOrchestrator:
    """
    Central factory for kernel services.

    Guarantees:
        - All services share the same Session and Clock.
        - Orders and transfers use the same InventoryLedger instance, so
          capacity enforcement is configured in one place.
    """

    def __init__(
        self,
        session: Session,
        config: AppConfig,
        clock: Clock | None = None,
    ) -> None:
        self.session = session
        self.config = config
        self.clock = clock or SystemClock()

        self.ledger = InventoryLedger(
            session,
            self.clock,
            enforce_capacity=config.inventory.enforce_capacity,
        )
        self.orders = OrderService(
            session,
            self.clock,
            self.ledger,
            restore_stock_on_cancel=config.orders.restore_stock_on_cancel,
            restore_stock_on_delete=config.orders.restore_stock_on_delete,
        )
        self.transfers = StockTransferService(session, self.clock, self.ledger)
        self.remittances = RemittanceService(session, self.clock)
        self.expenses = ExpenseService(session, self.clock)
        self.directory = DirectoryService(session, self.clock)
        self.users = UserService(
            session,
            self.clock,
            iterations=config.security.password_iterations,
        )

        self.inventory = InventorySelector(
            session,
            self.clock,
            low_stock_threshold=config.inventory.low_stock_threshold,
        )
        self.accounting = AccountingSelector(
            session,
            self.clock,
            high_value_threshold=config.accounting.high_value_threshold,
        )
        self.performance = PerformanceSelector(
            session,
            self.clock,
            weekly_buckets=config.accounting.weekly_buckets,
            monthly_buckets=config.accounting.monthly_buckets,
            vendor_monthly_buckets=config.accounting.vendor_monthly_buckets,
        )
        self.dashboard = DashboardSelector(session, self.clock)
