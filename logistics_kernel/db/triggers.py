"""
Module: logistics_kernel.db.triggers
Responsibility: Installing, verifying and removing the database triggers that
    keep ``updated_at`` current on every tracked table.  This is the database
    level complement to TrackedBase's ORM ``onupdate``: raw SQL, bulk updates
    and operator edits made outside the ORM still refresh the timestamp.
Architecture position: Kernel > DB.  May import from db/ only.  MUST NOT
    import from models/, services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - Every table with an ``updated_at`` column has exactly one
      ``trg_<table>_touch_updated_at`` trigger.
    - Installation is idempotent (CREATE TRIGGER IF NOT EXISTS) so schema
      creation can run on every start.
    - The trigger only fires when the statement left ``updated_at`` unchanged,
      so timestamps written by the ORM are never overwritten.

Failure modes:
    - OperationalError if the dialect does not support the trigger syntax.
      Only SQLite is supported here; other dialects are skipped with a log line.
"""

from sqlalchemy import Table, text
from sqlalchemy.engine import Engine

from logistics_kernel.logging_config import get_logger

logger = get_logger("db.triggers")

TRIGGER_SUFFIX = "touch_updated_at"


def trigger_name(table_name: str) -> str:
    """Name of the updated_at trigger for ``table_name``."""
    return f"trg_{table_name}_{TRIGGER_SUFFIX}"


def _tracked_tables(tables: list[Table]) -> list[Table]:
    return [t for t in tables if "updated_at" in t.c and "id" in t.c]


def _create_sql(table_name: str) -> str:
    return f"""
        CREATE TRIGGER IF NOT EXISTS {trigger_name(table_name)}
        AFTER UPDATE ON "{table_name}"
        FOR EACH ROW
        WHEN NEW.updated_at IS OLD.updated_at
        BEGIN
            UPDATE "{table_name}" SET updated_at = CURRENT_TIMESTAMP
            WHERE id = OLD.id;
        END
    """


def install_updated_at_triggers(engine: Engine, tables: list[Table]) -> list[str]:
    """
    Install the updated_at trigger on every tracked table.

    Preconditions: tables exist in the database.
    Postconditions: each tracked table has its trigger.

    Returns:
        Names of the triggers that are now present.
    """
    if engine.dialect.name != "sqlite":
        logger.info(
            "updated_at_triggers_skipped",
            extra={"dialect": engine.dialect.name},
        )
        return []

    names = []
    with engine.begin() as conn:
        for table in _tracked_tables(tables):
            conn.execute(text(_create_sql(table.name)))
            names.append(trigger_name(table.name))

    logger.debug("updated_at_triggers_installed", extra={"count": len(names)})
    return names


def uninstall_updated_at_triggers(engine: Engine, tables: list[Table]) -> None:
    """Drop every updated_at trigger.  Primarily for tests."""
    if engine.dialect.name != "sqlite":
        return
    with engine.begin() as conn:
        for table in _tracked_tables(tables):
            conn.execute(text(f"DROP TRIGGER IF EXISTS {trigger_name(table.name)}"))


def installed_triggers(engine: Engine) -> set[str]:
    """Names of the updated_at triggers currently present in the database."""
    if engine.dialect.name != "sqlite":
        return set()
    with engine.connect() as conn:
        rows = conn.execute(
            text("SELECT name FROM sqlite_master WHERE type = 'trigger'")
        ).scalars()
        return {name for name in rows if name.endswith(TRIGGER_SUFFIX)}
