"""
Database-level guarantees of the schema.

The services check everything first; these tests go around them to prove
the store itself refuses bad rows and keeps updated_at current.
"""

from uuid import uuid4

import pytest
from sqlalchemy import select, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from logistics_kernel.db.base import Base
from logistics_kernel.db.engine import translate_db_error
from logistics_kernel.db.triggers import installed_triggers, trigger_name
from logistics_kernel.exceptions import ConflictError, DuplicateRecordError, PersistenceError
from logistics_kernel.models import Inventory, Warehouse


def _tracked_table_names():
    return {t.name for t in Base.metadata.sorted_tables if "updated_at" in t.c}


class TestSchemaCreation:
    def test_every_tracked_table_has_trigger(self, store):
        expected = {trigger_name(name) for name in _tracked_table_names()}
        assert installed_triggers(store.engine) == expected

    def test_create_tables_is_idempotent(self, store):
        store.create_tables()
        store.create_tables()
        assert len(installed_triggers(store.engine)) == len(_tracked_table_names())

    def test_drop_tables_removes_triggers(self, store):
        store.drop_tables()
        assert installed_triggers(store.engine) == set()

    def test_foreign_keys_enforced(self, store):
        with pytest.raises(PersistenceError) as exc_info:
            with store.session_scope("orphan_row") as session:
                session.add(
                    Inventory(
                        vendor_id=uuid4(), warehouse_id=uuid4(), product_id=uuid4(), quantity=1
                    )
                )
        assert "FOREIGN KEY" in exc_info.value.cause


class TestRowConstraints:
    def test_negative_quantity_refused(self, store, gateway_seeded):
        with pytest.raises(PersistenceError) as exc_info:
            with store.session_scope("negative_stock") as session:
                session.add(
                    Inventory(
                        vendor_id=gateway_seeded.vendor,
                        warehouse_id=gateway_seeded.w2,
                        product_id=gateway_seeded.product,
                        quantity=-1,
                    )
                )
        assert "CHECK" in exc_info.value.cause

    def test_duplicate_triple_refused(self, store, gateway_seeded):
        with pytest.raises(DuplicateRecordError):
            with store.session_scope("duplicate_triple") as session:
                session.add(
                    Inventory(
                        vendor_id=gateway_seeded.vendor,
                        warehouse_id=gateway_seeded.w1,
                        product_id=gateway_seeded.product,
                        quantity=1,
                    )
                )

    def test_negative_warehouse_items_refused(self, store, gateway_seeded):
        with pytest.raises(PersistenceError):
            with store.session_scope("negative_items") as session:
                session.execute(
                    text("UPDATE warehouses SET items = -1 WHERE id = :id"),
                    {"id": str(gateway_seeded.w2)},
                )


class TestUpdatedAtTrigger:
    def test_raw_update_refreshes_timestamp(self, store, gateway_seeded):
        with store.session_scope("read") as session:
            before = session.get(Warehouse, gateway_seeded.w2).updated_at

        with store.session_scope("raw_rename") as session:
            session.execute(
                text("UPDATE warehouses SET name = 'Renamed' WHERE id = :id"),
                {"id": str(gateway_seeded.w2)},
            )

        with store.session_scope("read") as session:
            after = session.execute(
                select(Warehouse.updated_at).where(Warehouse.id == gateway_seeded.w2)
            ).scalar_one()
        assert after != before


class TestErrorTranslation:
    def test_stale_data_is_conflict(self):
        error = translate_db_error(StaleDataError("version mismatch"), "op")
        assert type(error) is ConflictError

    def test_lock_timeout_is_conflict(self):
        exc = OperationalError("BEGIN IMMEDIATE", {}, Exception("database is locked"))
        assert type(translate_db_error(exc, "op")) is ConflictError

    def test_other_operational_error_is_persistence(self):
        exc = OperationalError("SELECT", {}, Exception("disk I/O error"))
        error = translate_db_error(exc, "op")
        assert isinstance(error, PersistenceError)
        assert error.operation == "op"
