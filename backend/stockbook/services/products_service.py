# backend/stockbook/services/products_service.py
"""
Product Registry.

Products are the referenced root: stock entries and sales point at them by
id but never own them. Codes are unique and case-sensitive.

Deletion does not cascade and is not blocked by existing stock or sales;
those rows keep a dangling product_id (sales also keep their code/name
snapshots).
"""
from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product, StockEntry
from ..validation import ConflictError, NotFoundError
from .query_utils import contains_pattern, paginate
from stockbook.time_utils import business_day

PRODUCT_MUTABLE_FIELDS = {"code", "name"}


class DuplicateCodeError(ConflictError):
    """Another product already owns this code."""

    def __init__(self, code: str):
        super().__init__("Product code already exists", details={"code": code})
        self.code = code


class ProductNotFoundError(NotFoundError):
    """A stock entry or sale referenced a product code that does not exist."""

    def __init__(self, code: str):
        super().__init__(f"Product not found: {code}")
        self.code = code


def get_product(product_id: int) -> Product | None:
    return db.session.query(Product).filter(Product.id == product_id).first()


def get_product_by_code(code: str) -> Product | None:
    return db.session.query(Product).filter(Product.code == code).first()


def require_product_by_code(code: str) -> Product:
    """Resolve a product code or raise ProductNotFoundError."""
    product = get_product_by_code(code)
    if product is None:
        raise ProductNotFoundError(code)
    return product


def _code_taken(code: str, *, exclude_id: int | None = None) -> bool:
    q = db.session.query(Product.id).filter(Product.code == code)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    return q.first() is not None


def find_products(search: str = "", page: int | None = None, page_size: int | None = None) -> dict:
    """
    Case-insensitive substring search over name and code, paginated.
    """
    query = db.session.query(Product)

    search = (search or "").strip()
    if search:
        pattern = contains_pattern(search)
        query = query.filter(
            or_(
                Product.name.ilike(pattern, escape="\\"),
                Product.code.ilike(pattern, escape="\\"),
            )
        )

    query = query.order_by(Product.name.asc(), Product.id.asc())
    return paginate(query, page=page, page_size=page_size)


def create_product(*, name: str, code: str) -> Product:
    """
    Create a product.

    Raises:
        DuplicateCodeError: If any product already uses the code
    """
    if _code_taken(code):
        raise DuplicateCodeError(code)

    p = Product(name=name, code=code)
    db.session.add(p)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race with a concurrent create of the same code
        db.session.rollback()
        raise DuplicateCodeError(code)

    current_app.logger.info("Created product code=%s id=%s", p.code, p.id)
    return p


def update_product(*, product_id: int, patch: dict) -> Product:
    """
    Update a product's name and/or code in place.

    Raises:
        NotFoundError: If the product does not exist
        DuplicateCodeError: If a different product already owns the new code
    """
    p = get_product(product_id)
    if p is None:
        raise NotFoundError("Product not found")

    if "code" in patch and patch["code"] != p.code:
        if _code_taken(patch["code"], exclude_id=p.id):
            raise DuplicateCodeError(patch["code"])

    for k, v in patch.items():
        if k in PRODUCT_MUTABLE_FIELDS:
            setattr(p, k, v)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise DuplicateCodeError(patch.get("code", p.code))
    return p


def delete_product(*, product_id: int) -> None:
    """
    Hard-delete a product. Stock entries and sales that reference it are
    left in place.

    Raises:
        NotFoundError: If the product does not exist
    """
    p = get_product(product_id)
    if p is None:
        raise NotFoundError("Product not found")

    db.session.delete(p)
    db.session.commit()
    current_app.logger.info("Deleted product id=%s code=%s", product_id, p.code)


def products_in_stock_for_day(day: date | str | None = None) -> list[dict]:
    """
    Products that have declared stock with something left on the given day
    (default: today, UTC), with that day's quantities.
    """
    stock_day = business_day(day)
    rows = (
        db.session.query(Product, StockEntry)
        .join(StockEntry, StockEntry.product_id == Product.id)
        .filter(StockEntry.date == stock_day, StockEntry.remain_stock_grams > 0)
        .order_by(Product.name.asc(), Product.id.asc())
        .all()
    )
    return [
        {
            **product.to_dict(),
            "date": stock_day.isoformat(),
            "stock_entry_id": entry.id,
            "total_stock": float(entry.total_stock),
            "remain_stock": float(entry.remain_stock),
        }
        for product, entry in rows
    ]
