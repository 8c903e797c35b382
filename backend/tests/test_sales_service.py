# Overview: Pytest coverage for recording, editing and deleting sales.

"""
Sale Recorder Tests

The Wheat scenario: 100 kg declared for 2024-01-01, Alice buys 30 kg at
20.00/kg. The sale is worth 600.00 and 70 kg remain; an 80 kg sale on the
same day is then refused and leaves the entry untouched.
"""

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError
from stockbook.models import Sale, StockEntry
from stockbook.services import reporting_service, sales_service, stock_service
from stockbook.services.products_service import ProductNotFoundError
from stockbook.services.sales_service import compute_total_value
from stockbook.services.reporting_service import SaleFilters
from stockbook.services.stock_service import InsufficientStockError, NoStockForDateError
from stockbook.validation import NotFoundError


def _sell(quantity, *, date="2024-01-01T10:00:00Z", code="WHT", customer="Alice", price="20.00",
          mode="cash", status="paid"):
    return sales_service.record_sale(
        customer_name=customer,
        product_code=code,
        quantity_kg=Decimal(quantity),
        price_per_kg=Decimal(price),
        payment_mode=mode,
        payment_status=status,
        date=date,
    )


class TestComputeTotal:
    def test_rounds_half_up_to_cents(self):
        assert compute_total_value(Decimal("1.005"), Decimal("1.00")) == Decimal("1.01")
        assert compute_total_value(Decimal("30"), Decimal("20.00")) == Decimal("600.00")


class TestRecordSale:
    def test_wheat_scenario(self, db_session, wheat, wheat_stock):
        sale = _sell("30")

        assert sale.total_value == Decimal("600.00")
        assert sale.product_code == "WHT"
        assert sale.product_name == "Wheat"
        assert sale.date == datetime(2024, 1, 1, 10, 0)
        assert db_session.get(StockEntry, wheat_stock.id).remain_stock == Decimal("70")

        with pytest.raises(InsufficientStockError, match="Only 70 kg remaining"):
            _sell("80", date="2024-01-01T15:00:00Z")

        entry = db_session.get(StockEntry, wheat_stock.id)
        assert entry.remain_stock == Decimal("70")
        assert entry.total_stock == Decimal("100")
        assert db_session.query(Sale).count() == 1

    def test_no_stock_no_sale(self, db_session, wheat, wheat_stock):
        with pytest.raises(NoStockForDateError):
            _sell("1", date="2024-01-02T10:00:00Z")
        assert db_session.query(Sale).count() == 0

    def test_unknown_product(self, db_session):
        with pytest.raises(ProductNotFoundError):
            _sell("1", code="NOPE")

    def test_late_evening_offset_uses_utc_day(self, db_session, wheat, wheat_stock):
        # 2023-12-31 20:00 at -05:00 is 2024-01-01 01:00 UTC
        _sell("10", date="2023-12-31T20:00:00-05:00")
        assert db_session.get(StockEntry, wheat_stock.id).remain_stock == Decimal("90")

    def test_sell_out_then_refuse(self, db_session, wheat, wheat_stock):
        _sell("100")
        with pytest.raises(InsufficientStockError):
            _sell("0.001")
        assert db_session.get(StockEntry, wheat_stock.id).remain_stock == Decimal("0")


class TestEditDeleteSale:
    def test_update_recomputes_total_without_touching_stock(self, db_session, wheat, wheat_stock):
        sale = _sell("30")

        updated = sales_service.update_sale(
            sale_id=sale.id,
            patch={"quantity_kg": Decimal("50"), "payment_status": "unpaid"},
        )

        assert updated.total_value == Decimal("1000.00")
        assert updated.payment_status == "unpaid"
        # Edits are not reconciled against the ledger
        assert db_session.get(StockEntry, wheat_stock.id).remain_stock == Decimal("70")

    def test_update_refreshes_product_snapshot(self, db_session, wheat, rice, wheat_stock):
        sale = _sell("30")

        updated = sales_service.update_sale(sale_id=sale.id, product_code="RCE", patch={})

        assert updated.product_code == "RCE"
        assert updated.product_name == "Rice"
        assert updated.product_id == rice.id

    def test_update_unknown_product(self, db_session, wheat, wheat_stock):
        sale = _sell("30")
        with pytest.raises(ProductNotFoundError):
            sales_service.update_sale(sale_id=sale.id, product_code="NOPE", patch={})

    def test_delete_does_not_restore_stock(self, db_session, wheat, wheat_stock):
        sale_id = _sell("30").id

        sales_service.delete_sale(sale_id=sale_id)

        assert sales_service.get_sale(sale_id) is None
        assert db_session.get(StockEntry, wheat_stock.id).remain_stock == Decimal("70")

    def test_missing_sale(self, db_session):
        with pytest.raises(NotFoundError):
            sales_service.update_sale(sale_id=999, patch={})
        with pytest.raises(NotFoundError):
            sales_service.delete_sale(sale_id=999)


class TestDateOnlySale:
    def test_date_only_sale_debits_that_day(self, db_session, wheat, wheat_stock):
        sale = _sell("30", date="2024-01-01")

        assert sale.date == datetime(2024, 1, 1, 0, 0)
        assert sale.total_value == Decimal("600.00")
        assert db_session.get(StockEntry, wheat_stock.id).remain_stock == Decimal("70")


class TestAtomicity:
    def test_failed_insert_rolls_back_debit(self, db_session, wheat, wheat_stock):
        """A sale row that cannot be written leaves the day's stock untouched."""
        with pytest.raises(IntegrityError):
            _sell("30", customer=None)

        assert db_session.get(StockEntry, wheat_stock.id).remain_stock == Decimal("100")
        assert db_session.query(Sale).count() == 0


class TestFractionalQuantities:
    def _declare(self, kg):
        stock_service.upsert_for_day(
            product_code="WHT", day="2024-01-01", total_stock=Decimal(kg), remain_stock=Decimal(kg),
        )

    def test_exact_fit_tenths(self, db_session, wheat):
        self._declare("0.3")

        for _ in range(3):
            _sell("0.1")

        entry = stock_service.find_for_day(wheat.id, "2024-01-01")
        assert entry.remain_stock == Decimal("0")
        assert entry.remain_stock_grams == 0
        assert db_session.query(Sale).count() == 3

        with pytest.raises(InsufficientStockError, match="Only 0 kg remaining"):
            _sell("0.001")

    def test_remaining_message_is_exact(self, db_session, wheat):
        self._declare("0.3")
        _sell("0.1")
        _sell("0.1")

        with pytest.raises(InsufficientStockError, match=r"Only 0\.1 kg remaining"):
            _sell("0.101")
        _sell("0.1")

    def test_received_tenths_add_exactly(self, db_session, wheat):
        stock_service.receive_stock(product_code="WHT", quantity_kg=Decimal("0.1"), day="2024-01-01")
        entry, _ = stock_service.receive_stock(product_code="WHT", quantity_kg=Decimal("0.2"), day="2024-01-01")

        assert entry.total_stock == Decimal("0.3")
        _sell("0.3")

    def test_report_totals_are_exact(self, db_session, wheat):
        self._declare("1")
        _sell("0.1", price="0.10")
        _sell("0.2", price="0.10")

        report = reporting_service.build_sales_report(SaleFilters())

        assert report["total_quantity_kg"] == 0.3
        assert report["product_aggregates"][0]["total_sold_kg"] == 0.3
        assert report["product_aggregates"][0]["remaining_kg"] == 0.7
        assert report["total_value"] == 0.03
