"""
RemittanceService -- remittances and their append-only payment ledger.

Responsibility:
    Builds a remittance from a party's orders in a period with the amount
    expected for each, and records payments against it.  Each payment is
    allocated oldest-order-first across the remittance's orders, raising
    both the per-remittance allocation and the order's amount_received.

Architecture position:
    Kernel > Services -- imperative shell.  Flush-only; the caller owns the
    transaction.

Invariants enforced:
    - total_charged == sum(expected amounts), fixed at creation.
    - total_received == sum(payments); payments are never updated or
      deleted.
    - PENDING -> PAID once total_received >= total_charged.  PAID is
      sticky: later payments keep accumulating and the status stays PAID.
    - An order sits on at most one remittance.
    - Payment + allocation + status flip happen in one flush under the
      remittance's optimistic version, so two racing payments cannot both
      read the same total_received.

Failure modes:
    - ValidationError: empty order list, mismatched amounts, negative
      amount, order outside the period or not owned by the party, order
      already remitted, non-positive payment.
    - PartyNotFoundError, OrderNotFoundError, RemittanceNotFoundError.
    - StaleDataError (-> ConflictError) on a concurrent payment.
"""

from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from logistics_kernel.db.types import ZERO, round_money, to_money
from logistics_kernel.domain.dtos import RemittanceInfo
from logistics_kernel.exceptions import (
    OrderNotFoundError,
    PartyNotFoundError,
    RemittanceNotFoundError,
    ValidationError,
)
from logistics_kernel.logging_config import LogContext, get_logger
from logistics_kernel.models import (
    Client,
    DeliveryOrder,
    Remittance,
    RemittanceOrder,
    RemittancePartyType,
    RemittancePayment,
    RemittanceStatus,
    Vendor,
)
from logistics_kernel.services.base import BaseService

logger = get_logger("services.remittance")


def _period_bound(value: date | datetime, *, end: bool) -> datetime:
    """Dates widen to the whole day; datetimes are taken as naive UTC."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.max if end else time.min)
    raise ValidationError("period_end" if end else "period_start", "must be a date")


def _positive_money(value, field: str, *, allow_zero: bool = False) -> Decimal:
    try:
        amount = round_money(to_money(value))
    except ValueError as exc:
        raise ValidationError(field, str(exc)) from exc
    if amount < 0:
        raise ValidationError(field, "must not be negative")
    if amount == 0 and not allow_zero:
        raise ValidationError(field, "must be greater than zero")
    return amount


class RemittanceService(BaseService[Remittance]):
    """Remittance writer: creation and payment recording."""

    def compute_remittance(
        self,
        party_id: UUID,
        period_start: date | datetime,
        period_end: date | datetime,
        order_ids: Sequence[UUID],
        expected_amounts: Sequence[Decimal],
        *,
        notes: str | None = None,
    ) -> RemittanceInfo:
        """
        Create a PENDING remittance for ``party_id``.

        Preconditions:
            - order_ids and expected_amounts have the same non-zero length.
            - Every order belongs to the party, was created within the
              period, and is not already on a remittance.

        Postconditions:
            total_charged = sum(expected_amounts), total_received = 0.
        """
        start = _period_bound(period_start, end=False)
        end = _period_bound(period_end, end=True)
        if start > end:
            raise ValidationError("period_end", "must not be before period_start")
        if not order_ids:
            raise ValidationError("order_ids", "at least one order is required")
        if len(order_ids) != len(expected_amounts):
            raise ValidationError(
                "expected_amounts", "must have one amount per order"
            )
        if len(set(order_ids)) != len(order_ids):
            raise ValidationError("order_ids", "an order may appear only once")

        party_type = self._resolve_party(party_id)
        amounts = [
            _positive_money(a, "expected_amounts", allow_zero=True) for a in expected_amounts
        ]
        total_charged = _positive_money(sum(amounts, ZERO), "expected_amounts", allow_zero=True)

        remitted = dict(
            self.session.execute(
                select(RemittanceOrder.order_id, RemittanceOrder.remittance_id).where(
                    RemittanceOrder.order_id.in_(list(order_ids))
                )
            ).all()
        )

        for order_id in order_ids:
            order = self._get_or_raise(DeliveryOrder, order_id, OrderNotFoundError)
            if party_type == RemittancePartyType.VENDOR.value:
                owner = order.vendor_id if order.is_vendor_order else None
            else:
                owner = order.client_id
            if owner != party_id:
                raise ValidationError("order_ids", f"order {order_id} does not belong to party {party_id}")
            if not (start <= order.created_at <= end):
                raise ValidationError("order_ids", f"order {order_id} is outside the remittance period")
            if order_id in remitted:
                raise ValidationError(
                    "order_ids", f"order {order_id} is already on remittance {remitted[order_id]}"
                )

        now = self.clock.timestamp()
        remittance = Remittance(
            party_type=party_type,
            vendor_id=party_id if party_type == RemittancePartyType.VENDOR.value else None,
            client_id=party_id if party_type == RemittancePartyType.CLIENT.value else None,
            period_start=start,
            period_end=end,
            total_charged=total_charged,
            total_received=ZERO,
            status=RemittanceStatus.PENDING.value,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        for position, (order_id, amount) in enumerate(zip(order_ids, amounts)):
            remittance.orders.append(
                RemittanceOrder(
                    order_id=order_id,
                    position=position,
                    amount_charged=amount,
                    received_amount=ZERO,
                    created_at=now,
                    updated_at=now,
                )
            )
        self.session.add(remittance)
        self.session.flush()

        logger.info(
            "remittance_created",
            extra={
                "remittance_id": remittance.id,
                "party_type": party_type,
                "party_id": party_id,
                "order_count": len(order_ids),
                "total_charged": remittance.total_charged,
            },
        )
        return RemittanceInfo.from_model(remittance)

    def record_payment(
        self,
        remittance_id: UUID,
        amount: Decimal,
        method: str | None = None,
        reference: str | None = None,
        notes: str | None = None,
    ) -> RemittanceInfo:
        """
        Append a payment and recompute the remittance status.

        The payment is applied to the remittance's orders in the order they
        were listed, each up to its expected amount.  Any surplus stays on
        the remittance's total_received without an order allocation.
        """
        value = _positive_money(amount, "amount")
        remittance = self._get_or_raise(
            Remittance, remittance_id, RemittanceNotFoundError, lock=True
        )

        total_received = _positive_money(remittance.total_received + value, "amount")

        with LogContext.bind(remittance_id=str(remittance.id)):
            now = self.clock.timestamp()
            remittance.payments.append(
                RemittancePayment(
                    amount=value,
                    method=method,
                    reference=reference,
                    notes=notes,
                    created_at=now,
                    updated_at=now,
                )
            )
            remittance.total_received = total_received

            unallocated = self._allocate(remittance, value)

            was_paid = remittance.is_paid
            if remittance.total_received >= remittance.total_charged:
                remittance.status = RemittanceStatus.PAID.value
            self.session.flush()

            logger.info(
                "remittance_payment_recorded",
                extra={
                    "amount": value,
                    "method": method,
                    "total_received": remittance.total_received,
                    "total_charged": remittance.total_charged,
                    "unallocated": unallocated,
                },
            )
            if remittance.is_paid and not was_paid:
                logger.info(
                    "remittance_paid",
                    extra={"total_received": remittance.total_received},
                )
            return RemittanceInfo.from_model(remittance)

    def _allocate(self, remittance: Remittance, amount: Decimal) -> Decimal:
        """FIFO allocation across the remittance's orders; returns the surplus."""
        left = amount
        for line in remittance.orders:
            if left <= 0:
                break
            applied = min(line.remaining, left)
            if applied <= 0:
                continue
            line.received_amount = line.received_amount + applied
            order = self.session.get(DeliveryOrder, line.order_id)
            if order is not None:
                order.amount_received = order.amount_received + applied
            left -= applied
        return left

    def _resolve_party(self, party_id: UUID) -> str:
        if self.session.get(Vendor, party_id) is not None:
            return RemittancePartyType.VENDOR.value
        if self.session.get(Client, party_id) is not None:
            return RemittancePartyType.CLIENT.value
        raise PartyNotFoundError(party_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_remittance(self, remittance_id: UUID) -> RemittanceInfo:
        return RemittanceInfo.from_model(
            self._get_or_raise(Remittance, remittance_id, RemittanceNotFoundError)
        )

    def list_remittances(
        self,
        status: str | None = None,
        party_id: UUID | None = None,
    ) -> list[RemittanceInfo]:
        stmt = select(Remittance).options(
            selectinload(Remittance.orders), selectinload(Remittance.payments)
        )
        if status is not None:
            stmt = stmt.where(Remittance.status == str(getattr(status, "value", status)).upper())
        if party_id is not None:
            stmt = stmt.where(
                (Remittance.vendor_id == party_id) | (Remittance.client_id == party_id)
            )
        stmt = stmt.order_by(Remittance.created_at.desc(), Remittance.id)
        return [RemittanceInfo.from_model(r) for r in self.session.execute(stmt).scalars()]
