"""
Tests for StockTransferService.

Covers:
- A single-line transfer creating the destination row
- All-or-nothing rejection listing every short line
- Merging of duplicate product lines
- Input validation and the transfer audit record
"""

from uuid import uuid4

import pytest

from logistics_kernel.domain.dtos import TransferLine
from logistics_kernel.exceptions import (
    ProductVendorMismatchError,
    TransferRejectedError,
    ValidationError,
    WarehouseNotFoundError,
)
from logistics_kernel.models import Warehouse
from logistics_kernel.services.transfer_service import merge_lines


def _items(session, warehouse_id) -> int:
    return session.get(Warehouse, warehouse_id, populate_existing=True).items


class TestTransfer:
    def test_moves_stock_and_creates_destination_row(self, session, transfers, ledger, stocked):
        info = transfers.transfer(
            stocked.vendor, stocked.w1, stocked.w2,
            [{"product_id": stocked.product, "quantity": 5}],
            note="rebalance",
        )

        assert ledger.get_quantity(stocked.vendor, stocked.w1, stocked.product) == 15
        assert ledger.get_quantity(stocked.vendor, stocked.w2, stocked.product) == 5
        assert _items(session, stocked.w1) == 25
        assert _items(session, stocked.w2) == 5
        assert info.total_quantity == 5
        assert info.note == "rebalance"

    def test_multi_line_transfer(self, session, transfers, ledger, stocked):
        info = transfers.transfer(
            stocked.vendor, stocked.w1, stocked.w2,
            [(stocked.product, 4), (stocked.product_b, 10)],
        )

        assert len(info.lines) == 2
        assert ledger.get_quantity(stocked.vendor, stocked.w1, stocked.product_b) == 0
        assert _items(session, stocked.w1) == 16
        assert _items(session, stocked.w2) == 14

    def test_one_short_line_rejects_everything(self, session, transfers, ledger, stocked):
        with pytest.raises(TransferRejectedError) as exc_info:
            transfers.transfer(
                stocked.vendor, stocked.w1, stocked.w2,
                [
                    {"product_id": stocked.product, "quantity": 5},
                    {"product_id": stocked.product_b, "quantity": 999},
                ],
            )

        failures = exc_info.value.failures
        assert len(failures) == 1
        assert failures[0]["product_id"] == stocked.product_b
        assert failures[0]["available"] == 10
        assert ledger.get_quantity(stocked.vendor, stocked.w1, stocked.product) == 20
        assert ledger.get_quantity(stocked.vendor, stocked.w2, stocked.product) == 0
        assert _items(session, stocked.w2) == 0
        assert transfers.list_transfers() == []

    def test_every_short_line_reported(self, transfers, stocked):
        with pytest.raises(TransferRejectedError) as exc_info:
            transfers.transfer(
                stocked.vendor, stocked.w1, stocked.w2,
                [(stocked.product, 21), (stocked.product_b, 11)],
            )
        assert len(exc_info.value.failures) == 2

    def test_duplicate_lines_checked_as_one(self, transfers, stocked):
        with pytest.raises(TransferRejectedError) as exc_info:
            transfers.transfer(
                stocked.vendor, stocked.w1, stocked.w2,
                [(stocked.product_b, 6), (stocked.product_b, 6)],
            )
        assert exc_info.value.failures[0]["requested"] == 12

    def test_same_warehouse_rejected(self, transfers, stocked):
        with pytest.raises(ValidationError) as exc_info:
            transfers.transfer(stocked.vendor, stocked.w1, stocked.w1, [(stocked.product, 1)])
        assert exc_info.value.field == "to_warehouse_id"

    def test_foreign_product_rejected(self, transfers, stocked):
        with pytest.raises(ProductVendorMismatchError):
            transfers.transfer(
                stocked.vendor, stocked.w1, stocked.w2, [(stocked.foreign_product, 1)]
            )

    def test_unknown_destination(self, transfers, stocked):
        with pytest.raises(WarehouseNotFoundError):
            transfers.transfer(stocked.vendor, stocked.w1, uuid4(), [(stocked.product, 1)])


class TestTransferHistory:
    def test_listed_for_either_end(self, transfers, stocked):
        info = transfers.transfer(stocked.vendor, stocked.w1, stocked.w2, [(stocked.product, 2)])

        assert [t.id for t in transfers.list_transfers(warehouse_id=stocked.w2)] == [info.id]
        assert [t.id for t in transfers.list_transfers(warehouse_id=stocked.w1)] == [info.id]
        assert transfers.list_transfers(vendor_id=stocked.other_vendor) == []


class TestMergeLines:
    def test_merges_in_first_seen_order(self):
        a, b = uuid4(), uuid4()
        merged = merge_lines([(a, 1), (b, 2), (a, 3)])
        assert merged == [TransferLine(a, 4), TransferLine(b, 2)]

    def test_empty_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            merge_lines([])
        assert exc_info.value.field == "items"

    @pytest.mark.parametrize("quantity", [0, -1, 1.5])
    def test_bad_quantity_rejected(self, quantity):
        with pytest.raises(ValidationError):
            merge_lines([(uuid4(), quantity)])

    def test_missing_key_rejected(self):
        with pytest.raises(ValidationError):
            merge_lines([{"product_id": uuid4()}])
