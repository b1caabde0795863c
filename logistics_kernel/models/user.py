"""
Module: logistics_kernel.models.user
Responsibility: ORM persistence for operator accounts.  Only the salted
    password hash is stored; verification lives in UserService.
Architecture position: Kernel > Models.  May import from db/base.py only.

Failure modes:
    - IntegrityError on duplicate email (uq_user_email).
"""

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from logistics_kernel.db.base import TrackedBase


class User(TrackedBase):
    """Operator account identified by email."""

    __tablename__ = "users"

    __table_args__ = (UniqueConstraint("email", name="uq_user_email"),)

    email: Mapped[str] = mapped_column(String(255), nullable=False)

    # "pbkdf2_sha256$<iterations>$<salt hex>$<digest hex>"
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<User {self.email}>"
