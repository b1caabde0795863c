"""
ExpenseService -- records ad hoc operating expenses.

Expenses are grouped by ``type`` in the accounting summary and subtracted
from income to derive profit.  Amounts are strictly positive.
"""

from decimal import Decimal

from logistics_kernel.db.types import round_money, to_money
from logistics_kernel.domain.dtos import ExpenseInfo
from logistics_kernel.exceptions import ValidationError
from logistics_kernel.logging_config import get_logger
from logistics_kernel.models import Expense
from logistics_kernel.services.base import BaseService

logger = get_logger("services.expense")


class ExpenseService(BaseService[Expense]):
    """Writer for the expenses table."""

    def record_expense(
        self,
        expense_type: str,
        amount: Decimal,
        description: str | None = None,
    ) -> ExpenseInfo:
        """
        Record one expense.

        Raises:
            ValidationError: Empty type, or amount not greater than zero.
        """
        if not expense_type or not expense_type.strip():
            raise ValidationError("type", "must not be empty")
        try:
            value = round_money(to_money(amount))
        except ValueError as exc:
            raise ValidationError("amount", str(exc)) from exc
        if value <= 0:
            raise ValidationError("amount", "must be greater than zero")

        now = self.clock.timestamp()
        expense = Expense(
            expense_type=expense_type.strip(),
            description=description,
            amount=value,
            created_at=now,
            updated_at=now,
        )
        self.session.add(expense)
        self.session.flush()

        logger.info(
            "expense_recorded",
            extra={
                "expense_id": expense.id,
                "expense_type": expense.expense_type,
                "amount": value,
            },
        )
        return ExpenseInfo.from_model(expense)
