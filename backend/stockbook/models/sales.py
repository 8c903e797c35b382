from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from stockbook.quantities import from_cents, from_grams, to_cents, to_grams
from stockbook.time_utils import to_utc_z

PAYMENT_MODES = ("online", "cash")
PAYMENT_STATUSES = ("paid", "unpaid")


class Sale(db.Model):
    """
    A recorded sale of a product by weight.

    SNAPSHOT DESIGN DECISION:
    product_code / product_name are value copies taken when the sale is
    recorded or edited. Reports read them directly instead of joining back
    to products, so they go stale if the product is renamed and survive if
    it is deleted. product_id is kept alongside as a weak reference.

    total_value = quantity_kg * price_per_kg, stored in cents for reporting.
    date keeps full timestamp precision; only the stock lookup is truncated
    to the calendar day.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_date", "date"),
        db.Index("ix_sales_product_code_date", "product_code", "date"),
        db.Index("ix_sales_payment", "payment_mode", "payment_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, nullable=False, index=True)

    # Denormalized snapshots
    product_code = db.Column(db.String(64), nullable=False)
    product_name = db.Column(db.String(255), nullable=False)

    # Integer grams and cents; exposed as Decimal kg / currency below
    quantity_grams = db.Column(db.BigInteger, nullable=False)
    price_per_kg_cents = db.Column(db.BigInteger, nullable=False)
    total_value_cents = db.Column(db.BigInteger, nullable=False)

    customer_name = db.Column(db.String(255), nullable=False)
    payment_mode = db.Column(db.String(16), nullable=False)  # online, cash
    payment_status = db.Column(db.String(16), nullable=False, index=True)  # paid, unpaid

    date = db.Column(db.DateTime, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    @property
    def quantity_kg(self) -> Decimal | None:
        return from_grams(self.quantity_grams) if self.quantity_grams is not None else None

    @quantity_kg.setter
    def quantity_kg(self, value) -> None:
        self.quantity_grams = to_grams(value)

    @property
    def price_per_kg(self) -> Decimal | None:
        return from_cents(self.price_per_kg_cents) if self.price_per_kg_cents is not None else None

    @price_per_kg.setter
    def price_per_kg(self, value) -> None:
        self.price_per_kg_cents = to_cents(value)

    @property
    def total_value(self) -> Decimal | None:
        return from_cents(self.total_value_cents) if self.total_value_cents is not None else None

    @total_value.setter
    def total_value(self, value) -> None:
        self.total_value_cents = to_cents(value)

    def __repr__(self) -> str:
        return (
            f"<Sale id={self.id} product_code={self.product_code!r} "
            f"qty={self.quantity_kg} total={self.total_value}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_code": self.product_code,
            "product_name": self.product_name,
            "quantity_kg": float(self.quantity_kg),
            "price_per_kg": float(self.price_per_kg),
            "total_value": float(self.total_value),
            "customer_name": self.customer_name,
            "payment_mode": self.payment_mode,
            "payment_status": self.payment_status,
            "date": to_utc_z(self.date),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
