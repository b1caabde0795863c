"""Database infrastructure: declarative bases, column types, the Store handle, triggers."""

from logistics_kernel.db.base import Base, TrackedBase, UUIDString
from logistics_kernel.db.engine import Store, translate_db_error

__all__ = [
    "Base",
    "TrackedBase",
    "UUIDString",
    "Store",
    "translate_db_error",
]
