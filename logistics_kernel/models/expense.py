"""
Module: logistics_kernel.models.expense
Responsibility: ORM persistence for ad hoc operating expenses, grouped by
    ``type`` in accounting summaries.
Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from decimal import Decimal

from sqlalchemy import CheckConstraint, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from logistics_kernel.db.base import TrackedBase


class Expense(TrackedBase):
    """Operating expense (fuel, salaries, rent, ...)."""

    __tablename__ = "expenses"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_expense_amount_positive"),
        Index("idx_expense_type", "type"),
        Index("idx_expense_created", "created_at"),
    )

    expense_type: Mapped[str] = mapped_column("type", String(100), nullable=False)

    description: Mapped[str | None] = mapped_column(String(2000), nullable=True)

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<Expense {self.expense_type}: {self.amount}>"
