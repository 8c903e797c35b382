# Overview: Flask API routes for the stock ledger; parses input and returns JSON responses.

# backend/stockbook/routes/stock.py
"""
Stock ledger routes.

Time semantics:
- date accepts "YYYY-MM-DD" or any ISO-8601 datetime; it is truncated to
  the UTC calendar day before it is used as a key.
- Omitted date means today (UTC).
"""
from flask import Blueprint, request, jsonify
from sqlalchemy import Column, String

from ..models import StockEntry
from ..services import stock_service
from ..services.products_service import ProductNotFoundError
from ..services.stock_service import DuplicateStockDayError
from ..validation import (
    ModelValidationPolicy,
    QUANTITY_KG,
    REMAIN_STOCK,
    TOTAL_STOCK,
    validate_payload,
    enforce_rules_stock,
    enforce_rules_stock_receive,
    ValidationError,
    NotFoundError,
)


stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")

_PRODUCT_CODE = Column("product_code", String(64), nullable=False)

STOCK_UPSERT_POLICY = ModelValidationPolicy(
    writable_fields={"product_code", "date", "total_stock", "remain_stock"},
    required_on_create={"product_code", "total_stock", "remain_stock"},
    virtual_fields=(_PRODUCT_CODE, TOTAL_STOCK, REMAIN_STOCK),
)

STOCK_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"date", "total_stock", "remain_stock"},
    required_on_create={"total_stock", "remain_stock"},
    virtual_fields=(TOTAL_STOCK, REMAIN_STOCK),
)

STOCK_RECEIVE_POLICY = ModelValidationPolicy(
    writable_fields={"product_code", "date", "quantity_kg"},
    required_on_create={"product_code", "quantity_kg"},
    virtual_fields=(_PRODUCT_CODE, QUANTITY_KG),
)


@stock_bp.get("")
def list_stock_route():
    """
    List stock entries, newest day first.

    Query params:
    - start_date, end_date: inclusive calendar days (optional)
    - product_code: exact code (optional; 404 if unknown)
    - product_name: case-insensitive substring (optional)
    - page, page_size: pagination
    """
    try:
        result = stock_service.list_stock(
            start_date=request.args.get("start_date") or None,
            end_date=request.args.get("end_date") or None,
            product_code=request.args.get("product_code") or None,
            product_name=request.args.get("product_name") or None,
            page=request.args.get("page", type=int),
            page_size=request.args.get("page_size", type=int),
        )
    except ProductNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValueError:
        return jsonify({"error": "start_date/end_date must be ISO-8601 dates"}), 400

    result["items"] = [entry.to_dict() for entry in result["items"]]
    return jsonify(result), 200


@stock_bp.get("/<product_code>")
def stock_for_product_route(product_code: str):
    try:
        entries = stock_service.find_for_product(product_code)
    except ProductNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"items": [entry.to_dict() for entry in entries]}), 200


@stock_bp.post("")
def upsert_stock_route():
    """
    Set a product's stock for a day.

    Overwrites total_stock / remain_stock when the (product, day) entry
    exists (200), otherwise creates it (201).
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=StockEntry, payload=payload, policy=STOCK_UPSERT_POLICY, partial=False)
        enforce_rules_stock(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        entry, created = stock_service.upsert_for_day(
            product_code=patch["product_code"],
            day=patch.get("date"),
            total_stock=patch["total_stock"],
            remain_stock=patch["remain_stock"],
        )
    except ProductNotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify(entry.to_dict()), 201 if created else 200


@stock_bp.post("/receive")
def receive_stock_route():
    """
    Add quantity_kg to a day's total and remaining stock in one step.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=StockEntry, payload=payload, policy=STOCK_RECEIVE_POLICY, partial=False)
        enforce_rules_stock_receive(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        entry, created = stock_service.receive_stock(
            product_code=patch["product_code"],
            quantity_kg=patch["quantity_kg"],
            day=patch.get("date"),
        )
    except ProductNotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify(entry.to_dict()), 201 if created else 200


@stock_bp.put("/<int:entry_id>")
def update_stock_route(entry_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=StockEntry, payload=payload, policy=STOCK_UPDATE_POLICY, partial=False)
        enforce_rules_stock(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        entry = stock_service.update_stock(
            entry_id=entry_id,
            total_stock=patch["total_stock"],
            remain_stock=patch["remain_stock"],
            day=patch.get("date"),
        )
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except DuplicateStockDayError as e:
        return jsonify({"error": str(e), "details": e.details}), 409

    return jsonify(entry.to_dict()), 200


@stock_bp.delete("/<int:entry_id>")
def delete_stock_route(entry_id: int):
    try:
        stock_service.delete_stock(entry_id=entry_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"ok": True}), 200
