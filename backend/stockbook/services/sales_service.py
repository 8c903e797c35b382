"""
Sale Recorder - record a sale and debit the day's stock as one unit.

ONE TRANSACTION: the stock debit and the sale insert either both land
or neither does. A failed insert rolls the debit back, and the debit itself
is a conditional UPDATE so concurrent sales on the same (product, day)
cannot overdraw.

KNOWN GAP: editing or deleting a sale does NOT touch the
stock ledger. Changing quantity_kg on an existing sale, or deleting it,
leaves remain_stock as it was when the sale was first recorded.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app

from ..extensions import db
from ..models import Sale
from ..validation import NotFoundError
from stockbook.time_utils import business_day, normalize_datetime
from .concurrency import run_in_write_transaction
from .products_service import require_product_by_code
from .stock_service import InsufficientStockError, NoStockForDateError, debit_for_sale

SALE_MUTABLE_FIELDS = {
    "customer_name",
    "quantity_kg",
    "price_per_kg",
    "payment_mode",
    "payment_status",
    "date",
}

CENTS = Decimal("0.01")


def compute_total_value(quantity_kg: Decimal, price_per_kg: Decimal) -> Decimal:
    """quantity x price, rounded half-up to the cent."""
    return (Decimal(quantity_kg) * Decimal(price_per_kg)).quantize(CENTS, rounding=ROUND_HALF_UP)


def get_sale(sale_id: int) -> Sale | None:
    return db.session.query(Sale).filter(Sale.id == sale_id).first()


def record_sale(
    *,
    customer_name: str,
    product_code: str,
    quantity_kg: Decimal,
    price_per_kg: Decimal,
    payment_mode: str,
    payment_status: str,
    date: datetime | str | None = None,
) -> Sale:
    """
    Record a sale against the stock declared for its calendar day.

    The sale keeps its full timestamp; only the stock key is truncated.

    Raises:
        ProductNotFoundError: If product_code is unknown
        NoStockForDateError: If no stock was declared for that day
        InsufficientStockError: If the day has less than quantity_kg left
    """
    product = require_product_by_code(product_code)
    total_value = compute_total_value(quantity_kg, price_per_kg)
    sold_at = normalize_datetime(date)
    stock_day = business_day(sold_at)

    def _op():
        entry = debit_for_sale(product=product, day=stock_day, quantity_kg=quantity_kg)

        sale = Sale(
            product_id=product.id,
            product_code=product.code,
            product_name=product.name,
            quantity_kg=quantity_kg,
            price_per_kg=price_per_kg,
            total_value=total_value,
            customer_name=customer_name,
            payment_mode=payment_mode,
            payment_status=payment_status,
            date=sold_at,
        )
        db.session.add(sale)
        db.session.flush()
        return sale, entry

    try:
        sale, entry = run_in_write_transaction(_op)
    except (NoStockForDateError, InsufficientStockError) as exc:
        current_app.logger.warning(
            "Sale rejected product=%s date=%s qty=%s: %s",
            product_code, stock_day, quantity_kg, exc,
        )
        raise

    current_app.logger.info(
        "Recorded sale id=%s product=%s qty=%s total=%s remain=%s",
        sale.id, product.code, quantity_kg, total_value, entry.remain_stock,
    )
    return sale


def update_sale(*, sale_id: int, product_code: str | None = None, patch: dict) -> Sale:
    """
    Edit a sale in place.

    Re-resolves the product (refreshing the code/name snapshots) and
    recomputes total_value. Stock is NOT reconciled.

    Raises:
        NotFoundError: If the sale does not exist
        ProductNotFoundError: If product_code is given and unknown
    """
    sale = get_sale(sale_id)
    if sale is None:
        raise NotFoundError("Sale not found")

    product = require_product_by_code(product_code or sale.product_code)
    sale.product_id = product.id
    sale.product_code = product.code
    sale.product_name = product.name

    for k, v in patch.items():
        if k not in SALE_MUTABLE_FIELDS:
            continue
        if k == "date":
            v = normalize_datetime(v)
        setattr(sale, k, v)

    sale.total_value = compute_total_value(sale.quantity_kg, sale.price_per_kg)
    db.session.commit()
    return sale


def delete_sale(*, sale_id: int) -> None:
    """
    Delete a sale. Stock is NOT restored.

    Raises:
        NotFoundError: If the sale does not exist
    """
    sale = get_sale(sale_id)
    if sale is None:
        raise NotFoundError("Sale not found")
    db.session.delete(sale)
    db.session.commit()
    current_app.logger.info("Deleted sale id=%s (stock not restored)", sale_id)
