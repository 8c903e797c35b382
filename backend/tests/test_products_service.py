# Overview: Pytest coverage for the product registry service.

from decimal import Decimal

import pytest
from stockbook.models import Product, Sale, StockEntry
from stockbook.services import products_service, stock_service
from stockbook.services.products_service import DuplicateCodeError, ProductNotFoundError
from stockbook.validation import NotFoundError


class TestCreateProduct:
    def test_create(self, db_session):
        p = products_service.create_product(name="Wheat", code="WHT")
        assert p.id is not None
        assert products_service.get_product_by_code("WHT").name == "Wheat"

    def test_duplicate_code_rejected(self, db_session, wheat):
        with pytest.raises(DuplicateCodeError) as exc:
            products_service.create_product(name="Other wheat", code="WHT")
        assert exc.value.details == {"code": "WHT"}
        assert db_session.query(Product).count() == 1

    def test_codes_are_case_sensitive(self, db_session, wheat):
        p = products_service.create_product(name="Lower wheat", code="wht")
        assert p.code == "wht"
        assert db_session.query(Product).count() == 2

    def test_require_unknown_code(self, db_session):
        with pytest.raises(ProductNotFoundError, match="Product not found: NOPE"):
            products_service.require_product_by_code("NOPE")


class TestFindProducts:
    def test_search_name_or_code(self, db_session, wheat, rice):
        by_name = products_service.find_products(search="whe")
        assert [p.code for p in by_name["items"]] == ["WHT"]

        by_code = products_service.find_products(search="rce")
        assert [p.code for p in by_code["items"]] == ["RCE"]

    def test_search_escapes_wildcards(self, db_session, wheat):
        assert products_service.find_products(search="%")["total"] == 0

    def test_pagination(self, db_session):
        for i in range(12):
            products_service.create_product(name=f"Product {i:02d}", code=f"P{i:02d}")

        first = products_service.find_products(page=1, page_size=5)
        last = products_service.find_products(page=3, page_size=5)

        assert first["total"] == 12
        assert first["total_pages"] == 3
        assert len(first["items"]) == 5
        assert len(last["items"]) == 2

    def test_empty_result_has_zero_pages(self, db_session):
        result = products_service.find_products(search="nothing")
        assert result["total"] == 0
        assert result["total_pages"] == 0
        assert result["items"] == []

    def test_page_size_capped(self, app, db_session, wheat):
        result = products_service.find_products(page_size=10_000)
        assert result["page_size"] == app.config["MAX_PAGE_SIZE"]


class TestUpdateDeleteProduct:
    def test_update_name(self, db_session, wheat):
        p = products_service.update_product(product_id=wheat.id, patch={"name": "Durum wheat"})
        assert p.name == "Durum wheat"
        assert p.code == "WHT"

    def test_update_to_taken_code(self, db_session, wheat, rice):
        with pytest.raises(DuplicateCodeError):
            products_service.update_product(product_id=rice.id, patch={"code": "WHT"})

    def test_update_same_code_is_not_a_clash(self, db_session, wheat):
        p = products_service.update_product(product_id=wheat.id, patch={"code": "WHT", "name": "Wheat"})
        assert p.code == "WHT"

    def test_update_missing(self, db_session):
        with pytest.raises(NotFoundError):
            products_service.update_product(product_id=999, patch={"name": "x"})

    def test_delete_leaves_references(self, db_session, wheat, wheat_stock):
        """Stock entries and sales that point at a deleted product stay in place."""
        from stockbook.services import sales_service

        sale = sales_service.record_sale(
            customer_name="Alice",
            product_code="WHT",
            quantity_kg=Decimal("5"),
            price_per_kg=Decimal("10"),
            payment_mode="cash",
            payment_status="paid",
            date="2024-01-01T09:00:00Z",
        )
        wheat_id = wheat.id

        products_service.delete_product(product_id=wheat_id)

        assert products_service.get_product(wheat_id) is None
        entry = db_session.query(StockEntry).filter_by(product_id=wheat_id).one()
        assert entry.to_dict()["product_code"] is None
        kept = db_session.get(Sale, sale.id)
        assert kept.product_code == "WHT"
        assert kept.product_name == "Wheat"

    def test_delete_missing(self, db_session):
        with pytest.raises(NotFoundError):
            products_service.delete_product(product_id=999)


class TestInStockForDay:
    def test_only_products_with_stock_left(self, db_session, wheat, rice):
        stock_service.upsert_for_day(product_code="WHT", day="2024-01-01", total_stock=Decimal("10"), remain_stock=Decimal("4"))
        stock_service.upsert_for_day(product_code="RCE", day="2024-01-01", total_stock=Decimal("10"), remain_stock=Decimal("0"))

        items = products_service.products_in_stock_for_day("2024-01-01")

        assert [i["code"] for i in items] == ["WHT"]
        assert items[0]["remain_stock"] == 4.0
        assert items[0]["date"] == "2024-01-01"

    def test_other_day_is_empty(self, db_session, wheat, wheat_stock):
        assert products_service.products_in_stock_for_day("2024-01-02") == []
