# Overview: Pytest coverage for the per-day stock ledger.

"""
Stock Ledger Tests

Covers:
- Upsert overwrites, never sums, and keeps one entry per (product, day)
- Every timestamp on one UTC day resolves to the same entry
- Receive adds to both totals
- Listing filters and pagination
- Debit refuses to overdraw
"""

from datetime import date
from decimal import Decimal

import pytest
from stockbook.models import StockEntry
from stockbook.services import stock_service
from stockbook.services.products_service import ProductNotFoundError
from stockbook.services.stock_service import (
    DuplicateStockDayError,
    InsufficientStockError,
    NoStockForDateError,
)
from stockbook.validation import NotFoundError, ValidationError


class TestUpsertForDay:
    def test_create_then_overwrite(self, db_session, wheat):
        entry, created = stock_service.upsert_for_day(
            product_code="WHT", day="2024-01-01", total_stock=Decimal("100"), remain_stock=Decimal("100"),
        )
        assert created is True

        entry, created = stock_service.upsert_for_day(
            product_code="WHT", day="2024-01-01", total_stock=Decimal("40"), remain_stock=Decimal("25"),
        )
        assert created is False
        assert entry.total_stock == Decimal("40")
        assert entry.remain_stock == Decimal("25")
        assert db_session.query(StockEntry).count() == 1

    def test_timestamps_on_same_day_share_entry(self, db_session, wheat):
        for day in ("2024-01-01", "2024-01-01T00:00:00Z", "2024-01-01T18:00:00+00:00"):
            stock_service.upsert_for_day(
                product_code="WHT", day=day, total_stock=Decimal("10"), remain_stock=Decimal("10"),
            )

        entries = db_session.query(StockEntry).all()
        assert len(entries) == 1
        assert entries[0].date == date(2024, 1, 1)

    def test_offset_moves_to_next_utc_day(self, db_session, wheat):
        entry, _ = stock_service.upsert_for_day(
            product_code="WHT", day="2024-01-01T23:30:00-05:00",
            total_stock=Decimal("10"), remain_stock=Decimal("10"),
        )
        assert entry.date == date(2024, 1, 2)

    def test_found_by_any_same_day_timestamp(self, db_session, wheat, wheat_stock):
        found = stock_service.find_for_day(wheat.id, "2024-01-01T18:00:00+00:00")
        assert found is not None
        assert found.id == wheat_stock.id

    def test_remain_above_total_rejected(self, db_session, wheat):
        with pytest.raises(ValidationError):
            stock_service.upsert_for_day(
                product_code="WHT", day="2024-01-01", total_stock=Decimal("10"), remain_stock=Decimal("11"),
            )
        assert db_session.query(StockEntry).count() == 0

    def test_unknown_product(self, db_session):
        with pytest.raises(ProductNotFoundError):
            stock_service.upsert_for_day(
                product_code="NOPE", day="2024-01-01", total_stock=Decimal("1"), remain_stock=Decimal("1"),
            )

    def test_overwrite_round_trip(self, db_session, wheat):
        stock_service.upsert_for_day(product_code="WHT", day="2024-01-01", total_stock=Decimal("50"), remain_stock=Decimal("50"))
        stock_service.upsert_for_day(product_code="WHT", day="2024-01-01", total_stock=Decimal("80"), remain_stock=Decimal("80"))

        (entry,) = db_session.query(StockEntry).all()
        assert entry.total_stock == Decimal("80")
        assert entry.remain_stock == Decimal("80")


class TestReceiveStock:
    def test_receive_creates_entry(self, db_session, wheat):
        entry, created = stock_service.receive_stock(product_code="WHT", quantity_kg=Decimal("12.5"), day="2024-01-03")
        assert created is True
        assert entry.total_stock == Decimal("12.5")
        assert entry.remain_stock == Decimal("12.5")

    def test_receive_adds_to_existing(self, db_session, wheat, wheat_stock):
        entry, created = stock_service.receive_stock(product_code="WHT", quantity_kg=Decimal("20"), day="2024-01-01")
        assert created is False
        assert entry.total_stock == Decimal("120")
        assert entry.remain_stock == Decimal("120")
        assert db_session.query(StockEntry).count() == 1


class TestListStock:
    def _seed(self):
        for day, qty in (("2024-01-01", "10"), ("2024-01-02", "20"), ("2024-01-03", "30")):
            stock_service.upsert_for_day(product_code="WHT", day=day, total_stock=Decimal(qty), remain_stock=Decimal(qty))
        stock_service.upsert_for_day(product_code="RCE", day="2024-01-02", total_stock=Decimal("5"), remain_stock=Decimal("5"))

    def test_newest_first(self, db_session, wheat, rice):
        self._seed()
        result = stock_service.list_stock(product_code="WHT")
        assert [e.date.isoformat() for e in result["items"]] == ["2024-01-03", "2024-01-02", "2024-01-01"]

    def test_inclusive_date_range(self, db_session, wheat, rice):
        self._seed()
        result = stock_service.list_stock(start_date="2024-01-02", end_date="2024-01-02")
        assert result["total"] == 2

    def test_name_filter(self, db_session, wheat, rice):
        self._seed()
        result = stock_service.list_stock(product_name="ric")
        assert result["total"] == 1
        assert result["items"][0].to_dict()["product_code"] == "RCE"

    def test_name_without_match_is_empty_page(self, db_session, wheat, rice):
        self._seed()
        result = stock_service.list_stock(product_name="barley")
        assert result["items"] == []
        assert result["total"] == 0
        assert result["total_pages"] == 0

    def test_unknown_code_raises(self, db_session, wheat):
        with pytest.raises(ProductNotFoundError):
            stock_service.list_stock(product_code="NOPE")

    def test_pages(self, db_session, wheat, rice):
        self._seed()
        result = stock_service.list_stock(page=2, page_size=3)
        assert result["total"] == 4
        assert result["total_pages"] == 2
        assert len(result["items"]) == 1


class TestUpdateDeleteStock:
    def test_update_overwrites(self, db_session, wheat, wheat_stock):
        entry = stock_service.update_stock(
            entry_id=wheat_stock.id, total_stock=Decimal("50"), remain_stock=Decimal("10"),
        )
        assert entry.total_stock == Decimal("50")
        assert entry.remain_stock == Decimal("10")
        assert entry.date == date(2024, 1, 1)

    def test_move_onto_taken_day(self, db_session, wheat, wheat_stock):
        other, _ = stock_service.upsert_for_day(
            product_code="WHT", day="2024-01-02", total_stock=Decimal("1"), remain_stock=Decimal("1"),
        )
        with pytest.raises(DuplicateStockDayError):
            stock_service.update_stock(
                entry_id=other.id, total_stock=Decimal("1"), remain_stock=Decimal("1"), day="2024-01-01",
            )

    def test_update_missing(self, db_session):
        with pytest.raises(NotFoundError):
            stock_service.update_stock(entry_id=999, total_stock=Decimal("1"), remain_stock=Decimal("1"))

    def test_delete(self, db_session, wheat, wheat_stock):
        stock_service.delete_stock(entry_id=wheat_stock.id)
        assert db_session.query(StockEntry).count() == 0
        with pytest.raises(NotFoundError):
            stock_service.delete_stock(entry_id=wheat_stock.id)


class TestDebitForSale:
    def test_debit_reduces_remaining(self, db_session, wheat, wheat_stock):
        entry = stock_service.debit_for_sale(product=wheat, day=date(2024, 1, 1), quantity_kg=Decimal("30"))
        db_session.commit()
        assert entry.remain_stock == Decimal("70")
        assert entry.total_stock == Decimal("100")

    def test_debit_exact_remaining(self, db_session, wheat, wheat_stock):
        entry = stock_service.debit_for_sale(product=wheat, day=date(2024, 1, 1), quantity_kg=Decimal("100"))
        db_session.commit()
        assert entry.remain_stock == Decimal("0")

    def test_overdraw_refused(self, db_session, wheat, wheat_stock):
        with pytest.raises(InsufficientStockError) as exc:
            stock_service.debit_for_sale(product=wheat, day=date(2024, 1, 1), quantity_kg=Decimal("100.5"))
        db_session.rollback()

        assert "Only 100 kg remaining" in str(exc.value)
        assert exc.value.details["remaining_kg"] == 100.0
        assert db_session.get(StockEntry, wheat_stock.id).remain_stock == Decimal("100")

    def test_no_entry_for_day(self, db_session, wheat, wheat_stock):
        with pytest.raises(NoStockForDateError):
            stock_service.debit_for_sale(product=wheat, day=date(2024, 1, 2), quantity_kg=Decimal("1"))
