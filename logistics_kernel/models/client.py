"""
Module: logistics_kernel.models.client
Responsibility: ORM persistence for regular (non-VIP) clients who place
    service-only orders with no inventory linkage.
Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from logistics_kernel.db.base import TrackedBase


class Client(TrackedBase):
    """Regular customer."""

    __tablename__ = "clients"

    full_name: Mapped[str] = mapped_column(String(255), nullable=False)

    phone: Mapped[str] = mapped_column(String(50), nullable=False)

    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    address: Mapped[str | None] = mapped_column(String(500), nullable=True)

    def __repr__(self) -> str:
        return f"<Client {self.full_name}>"
