# Overview: Flask API routes for sales and sales reports; parses input and returns JSON responses.

# backend/stockbook/routes/sales.py
"""Sales API routes: record/edit/delete sales, list with totals, reports."""

from flask import Blueprint, Response, current_app, jsonify, request

from ..models import Sale
from ..services import reporting_service, sales_service
from ..services.products_service import ProductNotFoundError
from ..services.report_renderers import PdfReportRenderer, get_renderer
from ..services.reporting_service import SaleFilters
from ..services.stock_service import InsufficientStockError, NoStockForDateError
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    PRICE_PER_KG,
    QUANTITY_KG,
    ValidationError,
    enforce_rules_sale,
    validate_payload,
)


SALE_POLICY = ModelValidationPolicy(
    writable_fields={
        "customer_name",
        "product_code",
        "quantity_kg",
        "price_per_kg",
        "payment_mode",
        "payment_status",
        "date",
    },
    required_on_create={
        "customer_name",
        "product_code",
        "quantity_kg",
        "price_per_kg",
        "payment_mode",
        "payment_status",
    },
    virtual_fields=(QUANTITY_KG, PRICE_PER_KG),
)

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _attachment(body, media_type: str, filename: str) -> Response:
    return Response(
        body,
        mimetype=media_type,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@sales_bp.get("")
def list_sales_route():
    """
    List sales, newest first, with totals over the whole filtered set.

    Query params: start_date, end_date, customer_name, payment_mode,
    payment_status, product_code, page, page_size.
    """
    try:
        result = reporting_service.list_sales(
            SaleFilters.from_args(request.args),
            page=request.args.get("page", type=int),
            page_size=request.args.get("page_size", type=int),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    result["items"] = [sale.to_dict() for sale in result["items"]]
    return jsonify(result), 200


@sales_bp.get("/download-pdf")
def download_sales_pdf_route():
    """Filtered sales as a PDF attachment."""
    try:
        report = reporting_service.build_sales_report(SaleFilters.from_args(request.args))
        body = PdfReportRenderer().render(report)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to render sales PDF")
        return jsonify({"error": "Internal server error"}), 500

    return _attachment(body, PdfReportRenderer.media_type, "sales_report.pdf")


@sales_bp.get("/download-report")
def download_sales_report_route():
    """
    Combined sales report.

    ?format=json (default) returns the payload for client-side rendering;
    ?format=html returns a printable page; ?format=pdf returns a PDF.
    """
    fmt = request.args.get("format", "json").lower()
    if fmt not in ("json", "html", "pdf"):
        return jsonify({"error": "format must be json, html, or pdf"}), 400

    try:
        report = reporting_service.build_sales_report(SaleFilters.from_args(request.args))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    if fmt == "json":
        return jsonify(report), 200

    renderer = get_renderer(fmt)
    try:
        body = renderer.render(report)
    except Exception:
        current_app.logger.exception("Failed to render sales report as %s", fmt)
        return jsonify({"error": "Internal server error"}), 500

    if fmt == "html":
        return Response(body, mimetype=renderer.media_type)
    return _attachment(body, renderer.media_type, f"sales_report.{renderer.extension}")


@sales_bp.post("")
def record_sale_route():
    """
    Record a sale and debit the day's stock.

    409 when the day has no declared stock or not enough left.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Sale, payload=payload, policy=SALE_POLICY, partial=False)
        enforce_rules_sale(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        sale = sales_service.record_sale(
            customer_name=patch["customer_name"],
            product_code=patch["product_code"],
            quantity_kg=patch["quantity_kg"],
            price_per_kg=patch["price_per_kg"],
            payment_mode=patch["payment_mode"],
            payment_status=patch["payment_status"],
            date=patch.get("date"),
        )
    except ProductNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except (NoStockForDateError, InsufficientStockError) as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(sale.to_dict()), 201


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    sale = sales_service.get_sale(sale_id)
    if not sale:
        return jsonify({"error": "Sale not found"}), 404
    return jsonify(sale.to_dict()), 200


@sales_bp.put("/<int:sale_id>")
def update_sale_route(sale_id: int):
    """
    Edit a sale. Does not adjust stock; see sales_service.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Sale, payload=payload, policy=SALE_POLICY, partial=True)
        enforce_rules_sale(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        sale = sales_service.update_sale(
            sale_id=sale_id,
            product_code=patch.pop("product_code", None),
            patch=patch,
        )
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update sale")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(sale.to_dict()), 200


@sales_bp.delete("/<int:sale_id>")
def delete_sale_route(sale_id: int):
    """
    Delete a sale. Does not restore stock; see sales_service.
    """
    try:
        sales_service.delete_sale(sale_id=sale_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify({"ok": True}), 200
