"""
Module: logistics_kernel.db.engine
Responsibility: The ``Store`` handle -- SQLAlchemy engine, session factory,
    transactional scope, idempotent schema creation, and translation of
    driver errors into the kernel's typed exceptions.
Architecture position: Kernel > DB.  May import from db/base.py,
    db/triggers.py and exceptions.  MUST NOT import from services/,
    selectors/, domain/, or outer layers (create_tables imports models/ to
    register the tables).

Invariants enforced:
    - No process-wide connection state.  One Store is constructed at startup
      and passed by reference to every component; tests build an isolated
      in-memory Store each.
    - Writers are serialized.  On SQLite every transaction opens with
      ``BEGIN IMMEDIATE`` so two read-check-write sequences can never both
      read the same pre-decrement quantity.  Services additionally issue
      ``SELECT ... FOR UPDATE`` (honoured by PostgreSQL, ignored by SQLite).
    - Referential integrity.  ``PRAGMA foreign_keys=ON`` on every connection.
    - session_scope() commits on success and rolls back on ANY exception.

Failure modes:
    - ConflictError for optimistic-version mismatches (StaleDataError) and
      lock timeouts ("database is locked"); the caller should retry.
    - DuplicateRecordError for UNIQUE violations that reach the scope.
    - PersistenceError for every other driver failure.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.pool import StaticPool

from logistics_kernel.exceptions import (
    ConflictError,
    DuplicateRecordError,
    LogisticsError,
    PersistenceError,
)
from logistics_kernel.logging_config import get_logger

logger = get_logger("db.engine")

MEMORY_URL = "sqlite://"


def translate_db_error(exc: SQLAlchemyError, operation: str) -> LogisticsError:
    """
    Map a SQLAlchemy/driver error onto the kernel taxonomy.

    Args:
        exc: The error raised by flush/commit/execute.
        operation: Name of the operation for the error record.

    Returns:
        ConflictError, DuplicateRecordError, or PersistenceError.
    """
    if isinstance(exc, StaleDataError):
        return ConflictError("row", str(exc))

    message = str(getattr(exc, "orig", None) or exc)
    if isinstance(exc, OperationalError) and "locked" in message.lower():
        return ConflictError("database", "lock wait timed out")
    if isinstance(exc, IntegrityError) and "UNIQUE constraint failed" in message:
        key = message.split("UNIQUE constraint failed:", 1)[1].strip()
        return DuplicateRecordError(key.split(".", 1)[0], key)
    return PersistenceError(operation, message)


def _install_sqlite_listeners(engine: Engine) -> None:
    """
    Take over transaction begin from pysqlite.

    pysqlite's implicit BEGIN is deferred, which lets two writers read the
    same row before either takes the write lock.  Disabling it and emitting
    BEGIN IMMEDIATE ourselves acquires the lock up front.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class Store:
    """
    Explicit handle on the persistent store.

    Contract:
        Owns one Engine and one session factory.  Components receive either
        the Store (gateway) or a Session produced by it (services,
        selectors).

    Guarantees:
        - session_scope() is the unit of atomicity: everything done inside
          it commits together or not at all.
        - create_tables() is idempotent and safe on every start.

    Usage:
        store = Store.from_url("sqlite:///data.db")
        store.create_tables()
        with store.session_scope() as session:
            ledger = InventoryLedger(session, clock)
            ledger.increment(vendor_id, warehouse_id, product_id, 10)
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    @classmethod
    def from_url(
        cls,
        database_url: str,
        *,
        echo: bool = False,
        busy_timeout_seconds: float = 30.0,
    ) -> "Store":
        """
        Build a Store for ``database_url``.

        SQLite URLs get the serialization listeners and a busy timeout;
        the in-memory URL is pinned to a single shared connection.

        Args:
            database_url: SQLAlchemy URL (e.g., sqlite:///data.db).
            echo: If True, log all SQL statements.
            busy_timeout_seconds: How long a writer waits for the file lock
                before the attempt surfaces as ConflictError.
        """
        is_sqlite = database_url.startswith("sqlite")
        kwargs: dict = {"echo": echo}
        if is_sqlite:
            kwargs["connect_args"] = {
                "check_same_thread": False,
                "timeout": busy_timeout_seconds,
            }
            if database_url in (MEMORY_URL, "sqlite:///:memory:"):
                kwargs["poolclass"] = StaticPool

        engine = create_engine(database_url, **kwargs)
        if is_sqlite:
            _install_sqlite_listeners(engine)

        logger.info(
            "engine_initialized",
            extra={"dialect": engine.dialect.name, "echo": echo},
        )
        return cls(engine)

    @classmethod
    def in_memory(cls) -> "Store":
        """Isolated in-memory store with the schema already created."""
        store = cls.from_url(MEMORY_URL)
        store.create_tables()
        return store

    def session(self) -> Session:
        """A new session bound to this store.  Caller owns commit/close."""
        return self._session_factory()

    @contextmanager
    def session_scope(self, operation: str = "session_scope") -> Generator[Session, None, None]:
        """
        Provide a transactional scope around a series of operations.

        Postconditions: On normal exit, session is committed and closed.
            On exception, session is rolled back and closed.  Driver errors
            are re-raised as ConflictError / DuplicateRecordError /
            PersistenceError; kernel errors are re-raised unchanged.
        """
        session = self.session()
        logger.debug("transaction_started", extra={"operation": operation})
        try:
            yield session
            session.commit()
            logger.debug("transaction_committed", extra={"operation": operation})
        except SQLAlchemyError as exc:
            session.rollback()
            logger.warning(
                "transaction_rolled_back",
                extra={"operation": operation, "reason": type(exc).__name__},
            )
            raise translate_db_error(exc, operation) from exc
        except Exception as exc:
            session.rollback()
            logger.debug(
                "transaction_rolled_back",
                extra={"operation": operation, "reason": type(exc).__name__},
            )
            raise
        finally:
            session.close()

    def create_tables(self) -> None:
        """
        Create all tables and install the updated_at triggers.

        Idempotent: existing tables are left untouched (checkfirst) and
        triggers use IF NOT EXISTS.
        """
        from logistics_kernel.db.base import Base
        from logistics_kernel.db.triggers import install_updated_at_triggers
        import logistics_kernel.models  # noqa: F401  (registers tables)

        Base.metadata.create_all(self.engine)
        install_updated_at_triggers(self.engine, Base.metadata.sorted_tables)
        logger.info(
            "schema_ready",
            extra={"tables": len(Base.metadata.sorted_tables)},
        )

    def drop_tables(self) -> None:
        """Drop all tables.  Use with caution - primarily for testing."""
        from logistics_kernel.db.base import Base
        from logistics_kernel.db.triggers import uninstall_updated_at_triggers

        uninstall_updated_at_triggers(self.engine, Base.metadata.sorted_tables)
        Base.metadata.drop_all(self.engine)

    def dispose(self) -> None:
        """Release all pooled connections."""
        self.engine.dispose()

    @property
    def is_sqlite(self) -> bool:
        return self.engine.dialect.name == "sqlite"
