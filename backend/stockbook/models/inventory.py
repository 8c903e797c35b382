from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from stockbook.quantities import from_grams, to_grams
from stockbook.time_utils import to_utc_z


def _kg_or_none(grams) -> Decimal | None:
    return from_grams(grams) if grams is not None else None


def _kg(value) -> float | None:
    return float(value) if value is not None else None


class Product(db.Model):
    """
    Product master data.

    CODE DESIGN DECISION:
    Product.code is globally unique and matched case-sensitively. The service
    layer pre-checks for collisions so callers get a clean 409; the unique
    constraint is the backstop for concurrent creates.

    Stock entries and sales hold a plain product_id (no FK constraint), so a
    product can be deleted while references to it remain.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_products_code"),
        db.Index("ix_products_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} code={self.code!r} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockEntry(db.Model):
    """
    Declared stock for one product on one calendar day.

    INVARIANTS:
    - At most one row per (product_id, date): uq_stock_entries_product_date.
    - 0 <= remain_stock <= total_stock on every direct write; sale debits
      go through a conditional UPDATE that can never take remain_stock
      below zero.

    date is a DATE column holding the UTC calendar day produced by
    time_utils.business_day(); it is never a timestamp.
    """
    __tablename__ = "stock_entries"
    __table_args__ = (
        db.UniqueConstraint("product_id", "date", name="uq_stock_entries_product_date"),
        db.Index("ix_stock_entries_date", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, nullable=False, index=True)
    date = db.Column(db.Date, nullable=False)

    # Integer grams; total_stock / remain_stock expose them as Decimal kg
    total_stock_grams = db.Column(db.BigInteger, nullable=False)
    remain_stock_grams = db.Column(db.BigInteger, nullable=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship(
        "Product",
        primaryjoin="foreign(StockEntry.product_id) == Product.id",
        viewonly=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def total_stock(self) -> Decimal | None:
        return _kg_or_none(self.total_stock_grams)

    @total_stock.setter
    def total_stock(self, value) -> None:
        self.total_stock_grams = to_grams(value)

    @property
    def remain_stock(self) -> Decimal | None:
        return _kg_or_none(self.remain_stock_grams)

    @remain_stock.setter
    def remain_stock(self, value) -> None:
        self.remain_stock_grams = to_grams(value)

    def __repr__(self) -> str:
        return (
            f"<StockEntry id={self.id} product_id={self.product_id} date={self.date} "
            f"total={self.total_stock} remain={self.remain_stock}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            # Product may have been deleted since the entry was written
            "product_code": self.product.code if self.product else None,
            "product_name": self.product.name if self.product else None,
            "date": self.date.isoformat() if self.date else None,
            "total_stock": _kg(self.total_stock),
            "remain_stock": _kg(self.remain_stock),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
