# Overview: Read-only sale listings, aggregates and the combined sales report.

from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import case, func

from stockbook.extensions import db
from stockbook.models import Product, Sale, StockEntry
from stockbook.quantities import from_cents, from_grams
from stockbook.time_utils import business_day, day_bounds, is_date_only, parse_iso_datetime
from stockbook.validation import ValidationError
from .query_utils import contains_pattern, paginate

CENTS = Decimal("0.01")


@dataclass(frozen=True)
class SaleFilters:
    """
    Filters shared by the sale list, the PDF download and the report.

    start_date / end_date accept "YYYY-MM-DD" (whole day, inclusive) or a
    full ISO-8601 datetime (exact bound, inclusive).
    """
    start_date: str | None = None
    end_date: str | None = None
    customer_name: str | None = None
    payment_mode: str | None = None
    payment_status: str | None = None
    product_code: str | None = None

    @classmethod
    def from_args(cls, args) -> "SaleFilters":
        def _arg(name):
            value = args.get(name)
            return value.strip() if value and value.strip() else None

        return cls(
            start_date=_arg("start_date"),
            end_date=_arg("end_date"),
            customer_name=_arg("customer_name"),
            payment_mode=_arg("payment_mode"),
            payment_status=_arg("payment_status"),
            product_code=_arg("product_code"),
        )

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}


def _start_bound(value: str) -> datetime:
    if is_date_only(value):
        return day_bounds(business_day(value))[0]
    return parse_iso_datetime(value)


def _end_condition(value: str):
    if is_date_only(value):
        return Sale.date < day_bounds(business_day(value))[1]
    return Sale.date <= parse_iso_datetime(value)


def _sale_conditions(filters: SaleFilters) -> list:
    conditions = []
    try:
        if filters.start_date:
            conditions.append(Sale.date >= _start_bound(filters.start_date))
        if filters.end_date:
            conditions.append(_end_condition(filters.end_date))
    except ValueError:
        raise ValidationError("start_date/end_date must be ISO-8601 dates")

    if filters.customer_name:
        conditions.append(Sale.customer_name.ilike(contains_pattern(filters.customer_name), escape="\\"))
    if filters.payment_mode:
        conditions.append(Sale.payment_mode == filters.payment_mode)
    if filters.payment_status:
        conditions.append(Sale.payment_status == filters.payment_status)
    if filters.product_code:
        conditions.append(Sale.product_code == filters.product_code)
    return conditions


def _ordered_sales(conditions: list):
    return (
        db.session.query(Sale)
        .filter(*conditions)
        .order_by(Sale.date.desc(), Sale.id.desc())
    )


def _kg(grams) -> float:
    return float(from_grams(grams))


def _money(cents) -> float:
    return float(from_cents(cents))


def list_sales(filters: SaleFilters, page: int | None = None, page_size: int | None = None) -> dict:
    """
    Filtered sales, newest first, one page at a time.

    total_quantity_kg / total_value cover the whole filtered set, not just
    the returned page.
    """
    conditions = _sale_conditions(filters)
    result = paginate(_ordered_sales(conditions), page=page, page_size=page_size)

    totals = db.session.query(
        func.coalesce(func.sum(Sale.quantity_grams), 0).label("qty"),
        func.coalesce(func.sum(Sale.total_value_cents), 0).label("value"),
    ).filter(*conditions).one()

    result["total_quantity_kg"] = _kg(totals.qty)
    result["total_value"] = _money(totals.value)
    return result


def _stock_by_code(codes: list[str], filters: SaleFilters) -> dict[str, tuple[float, float]]:
    """Sum of total/remaining stock per product code over the filtered day range."""
    if not codes:
        return {}
    q = db.session.query(
        Product.code.label("code"),
        func.coalesce(func.sum(StockEntry.total_stock_grams), 0).label("stock"),
        func.coalesce(func.sum(StockEntry.remain_stock_grams), 0).label("remaining"),
    ).join(StockEntry, StockEntry.product_id == Product.id).filter(Product.code.in_(codes))

    if filters.start_date:
        q = q.filter(StockEntry.date >= business_day(filters.start_date))
    if filters.end_date:
        q = q.filter(StockEntry.date <= business_day(filters.end_date))

    return {row.code: (_kg(row.stock), _kg(row.remaining)) for row in q.group_by(Product.code)}


def build_sales_report(filters: SaleFilters) -> dict:
    """
    Everything the printable report needs in one payload: the full
    filtered sale list split by payment status, headline totals, and
    per-product aggregates alongside the declared stock for the range.
    """
    conditions = _sale_conditions(filters)
    sales = [s.to_dict() for s in _ordered_sales(conditions).all()]

    totals = db.session.query(
        func.coalesce(func.sum(Sale.quantity_grams), 0).label("qty"),
        func.coalesce(func.sum(Sale.total_value_cents), 0).label("value"),
        func.coalesce(func.sum(case((Sale.payment_status == "paid", Sale.total_value_cents), else_=0)), 0).label("paid"),
        func.coalesce(func.sum(case((Sale.payment_status == "unpaid", Sale.total_value_cents), else_=0)), 0).label("unpaid"),
        func.coalesce(func.sum(case((Sale.payment_mode == "cash", Sale.total_value_cents), else_=0)), 0).label("cash"),
        func.coalesce(func.sum(case((Sale.payment_mode == "online", Sale.total_value_cents), else_=0)), 0).label("online"),
    ).filter(*conditions).one()

    rows = (
        db.session.query(
            Sale.product_code.label("product_code"),
            func.max(Sale.product_name).label("product_name"),
            func.coalesce(func.sum(Sale.quantity_grams), 0).label("sold"),
            func.coalesce(func.sum(Sale.total_value_cents), 0).label("value"),
        )
        .filter(*conditions)
        .group_by(Sale.product_code)
        .order_by(Sale.product_code.asc())
        .all()
    )
    stock = _stock_by_code([row.product_code for row in rows], filters)

    product_aggregates = []
    for row in rows:
        sold = from_grams(row.sold)
        value = from_cents(row.value)
        stock_kg, remaining_kg = stock.get(row.product_code, (0.0, 0.0))
        product_aggregates.append({
            "product_code": row.product_code,
            "product_name": row.product_name,
            "total_sold_kg": float(sold),
            "total_product_value": float(value),
            # Weighted by quantity, not a mean of per-sale prices
            "avg_price_per_kg": float((value / sold).quantize(CENTS, rounding=ROUND_HALF_UP)) if sold else 0.0,
            "stock_kg": stock_kg,
            "remaining_kg": remaining_kg,
        })

    return {
        "filters": filters.to_dict(),
        "sales": sales,
        "paid_sales": [s for s in sales if s["payment_status"] == "paid"],
        "unpaid_sales": [s for s in sales if s["payment_status"] == "unpaid"],
        "sale_count": len(sales),
        "total_quantity_kg": _kg(totals.qty),
        "total_value": _money(totals.value),
        "total_paid_value": _money(totals.paid),
        "total_unpaid_value": _money(totals.unpaid),
        "total_cash_value": _money(totals.cash),
        "total_online_value": _money(totals.online),
        "product_aggregates": product_aggregates,
    }
