"""
Module: logistics_kernel.models.agent
Responsibility: ORM persistence for delivery agents and their home
    warehouse.
Architecture position: Kernel > Models.  May import from db/base.py only.

Failure modes:
    - IntegrityError on duplicate email (uq_agent_email).
"""

from enum import Enum
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from logistics_kernel.db.base import TrackedBase


class AgentStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Agent(TrackedBase):
    """Delivery agent.  Assigned to zero or more orders."""

    __tablename__ = "agents"

    __table_args__ = (
        UniqueConstraint("email", name="uq_agent_email"),
        Index("idx_agent_warehouse", "warehouse_id"),
    )

    full_name: Mapped[str] = mapped_column(String(255), nullable=False)

    email: Mapped[str] = mapped_column(String(255), nullable=False)

    phone: Mapped[str] = mapped_column(String(50), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=AgentStatus.ACTIVE.value,
    )

    warehouse_id: Mapped[UUID] = mapped_column(
        ForeignKey("warehouses.id", ondelete="RESTRICT"),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Agent {self.full_name}>"
