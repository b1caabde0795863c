"""
BaseService -- shared plumbing for the kernel's writers.

Every service that mutates state (ledger, orders, transfers, remittances,
expenses, directory, users) takes a Session and a Clock and persists with
``session.flush()``.  None of them commits or rolls back: the caller
(LogisticsGateway, the CLI, or a test) owns the transaction through
``Store.session_scope()``.  That is what makes "stock check + decrement +
order insert" one unit; a service that committed midway would leave a
decrement behind when the order insert later failed.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from logistics_kernel.db.base import Base
from logistics_kernel.domain.clock import Clock, SystemClock

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """Session + clock holder.  Reports live in logistics_kernel/selectors/."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()

    def _get_or_raise(self, model: type, entity_id, error: type[Exception], *, lock: bool = False):
        """Load ``model`` by primary key or raise ``error(entity_id)``."""
        if entity_id is None:
            raise error(entity_id)
        row = self.session.get(
            model,
            entity_id,
            with_for_update=lock or None,
            populate_existing=lock,
        )
        if row is None:
            raise error(entity_id)
        return row
