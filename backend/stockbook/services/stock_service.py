# Overview: Stock Ledger; per-product, per-day declared and remaining stock.

# backend/stockbook/services/stock_service.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from ..extensions import db
from ..models import Product, StockEntry
from ..quantities import to_grams
from ..validation import ConflictError, NotFoundError, enforce_rules_stock
from stockbook.time_utils import business_day, utcnow
from .concurrency import lock_for_update, run_in_write_transaction
from .products_service import require_product_by_code
from .query_utils import contains_pattern, empty_page, paginate
"""
Stock Ledger Invariants & Time Semantics (authoritative)

Keys:
- A stock entry is keyed by (product_id, date) where date is the UTC
  calendar day from time_utils.business_day(). Every path that reads or
  writes a key goes through that one function, so "2024-01-01",
  "2024-01-01T00:00:00Z" and "2024-01-01T18:00:00+00:00" are the same key.
- The unique constraint uq_stock_entries_product_date backs the key; an
  insert that loses a race is retried as an update.

Quantities:
- Stored as integer grams (quantities.to_grams); every SQL comparison and
  increment below works on the _grams columns, so it is exact.
- upsert_for_day() OVERWRITES total_stock / remain_stock. Callers that want
  to add stock either compute the new totals themselves or use
  receive_stock(), which increments both atomically in SQL.
- Direct writes keep 0 <= remain_stock <= total_stock.
- debit_for_sale() is the only way stock goes down. It is a conditional
  UPDATE (remain_stock >= qty) so concurrent sales cannot overdraw.

Ownership:
- The Sale Recorder never mutates StockEntry fields itself; it calls
  debit_for_sale() inside its own transaction.
"""


class NoStockForDateError(ConflictError):
    """A sale was attempted on a day with no declared stock."""

    def __init__(self, product_code: str, day: date):
        super().__init__(
            f"No stock declared for product {product_code} on {day.isoformat()}",
            details={"product_code": product_code, "date": day.isoformat()},
        )


class InsufficientStockError(ConflictError):
    """Requested quantity exceeds what remains for the day."""

    def __init__(self, *, remaining_kg: Decimal, requested_kg: Decimal):
        super().__init__(
            f"Insufficient stock. Only {remaining_kg.normalize():f} kg remaining",
            details={
                "remaining_kg": float(remaining_kg),
                "requested_kg": float(requested_kg),
            },
        )
        self.remaining_kg = remaining_kg
        self.requested_kg = requested_kg


class DuplicateStockDayError(ConflictError):
    """Another entry already holds this (product, day) key."""


def get_stock_entry(entry_id: int) -> StockEntry | None:
    return db.session.query(StockEntry).filter(StockEntry.id == entry_id).first()


def find_for_day(product_id: int, day: date | str | None, *, lock: bool = False) -> StockEntry | None:
    """Exact-key lookup on (product_id, business_day(day))."""
    query = db.session.query(StockEntry).filter(
        StockEntry.product_id == product_id,
        StockEntry.date == business_day(day),
    )
    if lock:
        query = lock_for_update(query)
    return query.first()


def find_for_product(product_code: str) -> list[StockEntry]:
    """All entries for a product, newest day first."""
    product = require_product_by_code(product_code)
    return (
        db.session.query(StockEntry)
        .filter(StockEntry.product_id == product.id)
        .order_by(StockEntry.date.desc(), StockEntry.id.desc())
        .all()
    )


def upsert_for_day(
    *,
    product_code: str,
    total_stock: Decimal,
    remain_stock: Decimal,
    day: date | str | None = None,
) -> tuple[StockEntry, bool]:
    """
    Set the stock for one product on one day.

    Returns (entry, created). Existing entries are overwritten with the
    supplied values, never summed.

    Raises:
        ProductNotFoundError: If product_code is unknown
        ValidationError: If the quantities break 0 <= remain <= total
    """
    enforce_rules_stock({"total_stock": total_stock, "remain_stock": remain_stock})
    product = require_product_by_code(product_code)
    stock_day = business_day(day)

    def _op():
        entry = find_for_day(product.id, stock_day, lock=True)
        if entry is not None:
            entry.total_stock = total_stock
            entry.remain_stock = remain_stock
            db.session.flush()
            return entry, False

        entry = StockEntry(
            product_id=product.id,
            date=stock_day,
            total_stock=total_stock,
            remain_stock=remain_stock,
        )
        db.session.add(entry)
        db.session.flush()
        return entry, True

    try:
        entry, created = run_in_write_transaction(_op)
    except IntegrityError:
        # A concurrent upsert inserted the same key first; now it is an update
        entry, created = run_in_write_transaction(_op)

    current_app.logger.info(
        "Stock %s product=%s date=%s total=%s remain=%s",
        "created" if created else "updated", product_code, stock_day, total_stock, remain_stock,
    )
    return entry, created


def receive_stock(
    *,
    product_code: str,
    quantity_kg: Decimal,
    day: date | str | None = None,
) -> tuple[StockEntry, bool]:
    """
    Add quantity_kg to both total_stock and remain_stock for the day,
    creating the entry when it does not exist yet.

    Returns (entry, created).
    """
    product = require_product_by_code(product_code)
    stock_day = business_day(day)
    grams = to_grams(quantity_kg)

    def _op():
        updated = (
            db.session.query(StockEntry)
            .filter(StockEntry.product_id == product.id, StockEntry.date == stock_day)
            .update(
                {
                    StockEntry.total_stock_grams: StockEntry.total_stock_grams + grams,
                    StockEntry.remain_stock_grams: StockEntry.remain_stock_grams + grams,
                    StockEntry.version_id: StockEntry.version_id + 1,
                    StockEntry.updated_at: utcnow(),
                },
                synchronize_session=False,
            )
        )
        if updated:
            return find_for_day(product.id, stock_day), False

        entry = StockEntry(
            product_id=product.id,
            date=stock_day,
            total_stock=quantity_kg,
            remain_stock=quantity_kg,
        )
        db.session.add(entry)
        db.session.flush()
        return entry, True

    try:
        entry, created = run_in_write_transaction(_op)
    except IntegrityError:
        entry, created = run_in_write_transaction(_op)

    db.session.refresh(entry)
    current_app.logger.info(
        "Stock received product=%s date=%s qty=%s total=%s",
        product_code, stock_day, quantity_kg, entry.total_stock,
    )
    return entry, created


def list_stock(
    *,
    start_date: date | str | None = None,
    end_date: date | str | None = None,
    product_code: str | None = None,
    product_name: str | None = None,
    page: int | None = None,
    page_size: int | None = None,
) -> dict:
    """
    Filtered, paginated stock listing, newest day first.

    Date bounds are inclusive calendar days. An unknown product_code is an
    error; a product_name that matches nothing yields an empty page.
    """
    query = db.session.query(StockEntry).options(joinedload(StockEntry.product))

    if start_date:
        query = query.filter(StockEntry.date >= business_day(start_date))
    if end_date:
        query = query.filter(StockEntry.date <= business_day(end_date))

    if product_code:
        product = require_product_by_code(product_code)
        query = query.filter(StockEntry.product_id == product.id)

    if product_name:
        ids = [
            row.id
            for row in db.session.query(Product.id).filter(
                Product.name.ilike(contains_pattern(product_name.strip()), escape="\\")
            )
        ]
        if not ids:
            return empty_page(page=page, page_size=page_size)
        query = query.filter(StockEntry.product_id.in_(ids))

    query = query.order_by(StockEntry.date.desc(), StockEntry.id.desc())
    return paginate(query, page=page, page_size=page_size)


def update_stock(
    *,
    entry_id: int,
    total_stock: Decimal,
    remain_stock: Decimal,
    day: date | str | None = None,
) -> StockEntry:
    """
    Overwrite an entry by id, optionally moving it to another day.

    Raises:
        NotFoundError: If the entry does not exist
        DuplicateStockDayError: If the target day is already taken
    """
    enforce_rules_stock({"total_stock": total_stock, "remain_stock": remain_stock})

    def _op():
        entry = lock_for_update(
            db.session.query(StockEntry).filter(StockEntry.id == entry_id)
        ).first()
        if entry is None:
            raise NotFoundError("Stock entry not found")

        if day is not None:
            new_day = business_day(day)
            if new_day != entry.date:
                clash = find_for_day(entry.product_id, new_day)
                if clash is not None:
                    raise DuplicateStockDayError(
                        "A stock entry already exists for this product and date",
                        details={"date": new_day.isoformat(), "stock_entry_id": clash.id},
                    )
                entry.date = new_day

        entry.total_stock = total_stock
        entry.remain_stock = remain_stock
        db.session.flush()
        return entry

    try:
        return run_in_write_transaction(_op)
    except IntegrityError:
        raise DuplicateStockDayError("A stock entry already exists for this product and date")


def delete_stock(*, entry_id: int) -> None:
    """
    Remove an entry by id. Sales recorded against that day are untouched.

    Raises:
        NotFoundError: If the entry does not exist
    """
    entry = get_stock_entry(entry_id)
    if entry is None:
        raise NotFoundError("Stock entry not found")
    db.session.delete(entry)
    db.session.commit()


def debit_for_sale(*, product: Product, day: date, quantity_kg: Decimal) -> StockEntry:
    """
    Take quantity_kg off the day's remaining stock.

    Must run inside the caller's write transaction; does not commit. The
    decrement is a single conditional UPDATE, so two debits racing for the
    last kilograms cannot both succeed.

    Raises:
        NoStockForDateError: If no entry exists for (product, day)
        InsufficientStockError: If remain_stock < quantity_kg at write time
    """
    entry = find_for_day(product.id, day, lock=True)
    if entry is None:
        raise NoStockForDateError(product.code, day)

    grams = to_grams(quantity_kg)
    updated = (
        db.session.query(StockEntry)
        .filter(StockEntry.id == entry.id, StockEntry.remain_stock_grams >= grams)
        .update(
            {
                StockEntry.remain_stock_grams: StockEntry.remain_stock_grams - grams,
                StockEntry.version_id: StockEntry.version_id + 1,
                StockEntry.updated_at: utcnow(),
            },
            synchronize_session=False,
        )
    )
    db.session.refresh(entry)

    if not updated:
        raise InsufficientStockError(
            remaining_kg=entry.remain_stock,
            requested_kg=quantity_kg,
        )
    return entry
