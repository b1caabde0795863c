"""
Module: logistics_kernel.db.base
Responsibility: The declarative base every ORM model derives from, the
    portable UUID column type, and the timestamp mixin.
Architecture position: Kernel > DB.  Lowest import target in the kernel;
    must not import models/, services/, selectors/ or domain/.

Column conventions (via ``type_annotation_map``):
    Decimal  -> Numeric(18, 2)     money, never float
    datetime -> DateTime()         naive, always UTC (see Clock.timestamp())
    UUID     -> UUIDString         36-char text, works on SQLite and PostgreSQL
    int      -> BigInteger

Unnamed unique, foreign key and primary key constraints and indexes get
deterministic names from ``NAMING_CONVENTION``; CHECK constraints are
always named explicitly in the models.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, DateTime, MetaData, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_N_name)s",
    "uq": "uq_%(table_name)s_%(column_0_N_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class UUIDString(TypeDecorator):
    """UUID persisted as its canonical 36-character string."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    """Declarative base: uuid4 primary key plus the column conventions above."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(18, 2),
        datetime: DateTime(),
        UUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"


class TrackedBase(Base):
    """
    Adds ``created_at`` / ``updated_at``.

    Services pass both explicitly from their Clock so tests stay
    deterministic; the server defaults only cover rows inserted by hand.
    ``updated_at`` is refreshed by the ORM on update and, for writes that
    bypass the ORM, by the triggers in db/triggers.py.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now()
    )
