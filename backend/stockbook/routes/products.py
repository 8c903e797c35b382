# Overview: Flask API routes for the product registry; parses input and returns JSON responses.

# backend/stockbook/routes/products.py
from flask import Blueprint, request, jsonify

from ..models import Product
from ..services import products_service
from ..services.products_service import DuplicateCodeError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    NotFoundError,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"code", "name"},
    required_on_create={"code", "name"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products():
    """
    Search products with pagination.

    Query params:
    - search: str (optional) - case-insensitive substring of name or code
    - page: int (optional) - page number (1-indexed), default 1
    - page_size: int (optional) - items per page (default 10, max 100)
    """
    result = products_service.find_products(
        search=request.args.get("search", ""),
        page=request.args.get("page", type=int),
        page_size=request.args.get("page_size", type=int),
    )
    result["items"] = [p.to_dict() for p in result["items"]]
    return jsonify(result), 200


@products_bp.get("/in-stock-today")
def products_in_stock_today():
    """
    Products with stock left today (or on ?date=YYYY-MM-DD).
    """
    try:
        items = products_service.products_in_stock_for_day(request.args.get("date"))
    except ValueError:
        return jsonify({"error": "date must be an ISO-8601 date"}), 400
    return jsonify({"items": items, "count": len(items)}), 200


@products_bp.post("")
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        product = products_service.create_product(name=patch["name"], code=patch["code"])
    except DuplicateCodeError as e:
        return jsonify({"error": str(e), "details": e.details}), 409

    return jsonify(product.to_dict()), 201


@products_bp.put("/<int:product_id>")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        product = products_service.update_product(product_id=product_id, patch=patch)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except DuplicateCodeError as e:
        return jsonify({"error": str(e), "details": e.details}), 409

    return jsonify(product.to_dict()), 200


@products_bp.delete("/<int:product_id>")
def delete_product_route(product_id: int):
    """
    Delete a product. Stock entries and sales that reference it are kept.
    """
    try:
        products_service.delete_product(product_id=product_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify({"ok": True}), 200
