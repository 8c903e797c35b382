# Overview: Interchangeable sinks that turn a sales report payload into PDF bytes or printable HTML.

"""
Both renderers take the dict produced by reporting_service.build_sales_report()
and nothing else. PdfReportRenderer draws the document directly (monospace
text on landscape A4 pages); HtmlReportRenderer produces a printable page that
the browser turns into PDF. They differ in fidelity only, not in data.
"""

from __future__ import annotations

from io import BytesIO
from textwrap import wrap

from flask import render_template


PAGE_WIDTH = 842
PAGE_HEIGHT = 595
MARGIN_X = 28
MARGIN_Y = 40
LINE_HEIGHT = 12
FONT_SIZE = 8
MAX_CHARS = 160

SALE_COLUMNS = (
    ("Date", 11, "date"),
    ("Customer", 24, "customer_name"),
    ("Product", 26, "product"),
    ("Qty (Kg)", 12, "quantity_kg"),
    ("Price/Kg", 12, "price_per_kg"),
    ("Total", 14, "total_value"),
    ("Mode", 8, "payment_mode"),
    ("Status", 8, "payment_status"),
)


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def _ascii(text: str) -> str:
    # Base-14 Courier has no glyphs outside Latin-1
    return text.replace("→", "->").encode("latin-1", "replace").decode("latin-1")


def _money(value) -> str:
    return f"{float(value or 0):,.2f}"


def _cell(text, width: int, *, right: bool = False) -> str:
    text = str(text)
    if len(text) > width - 1:
        text = text[: width - 2] + "~"
    return text.rjust(width - 1) + " " if right else text.ljust(width)


class PdfReportRenderer:
    media_type = "application/pdf"
    extension = "pdf"

    def render(self, report: dict) -> bytes:
        return build_pdf(self.report_lines(report))

    def report_lines(self, report: dict) -> list[str]:
        lines = ["SALES REPORT", ""]

        filters = report.get("filters") or {}
        if filters:
            lines.append("Filters Applied")
            if filters.get("start_date") or filters.get("end_date"):
                lines.append(f"  Date: {filters.get('start_date', '...')} -> {filters.get('end_date', '...')}")
            for key, label in (
                ("customer_name", "Customer"),
                ("payment_mode", "Mode"),
                ("payment_status", "Status"),
                ("product_code", "Product Code"),
            ):
                if filters.get(key):
                    lines.append(f"  {label}: {filters[key]}")
            lines.append("")

        lines += [
            "Summary",
            f"  Total Sold: {report.get('sale_count', len(report.get('sales', [])))} transactions",
            f"  Total Quantity (Kg): {float(report.get('total_quantity_kg', 0)):.2f}",
            f"  Total Value: {_money(report.get('total_value'))}",
            f"  Paid: {_money(report.get('total_paid_value'))}    Unpaid: {_money(report.get('total_unpaid_value'))}",
            f"  Cash: {_money(report.get('total_cash_value'))}    Online: {_money(report.get('total_online_value'))}",
            "",
        ]

        aggregates = report.get("product_aggregates") or []
        if aggregates:
            lines.append("Per Product")
            lines.append(
                _cell("Product", 34) + _cell("Sold (Kg)", 12, right=True) + _cell("Stock (Kg)", 12, right=True)
                + _cell("Remain (Kg)", 12, right=True) + _cell("Value", 14, right=True)
                + _cell("Avg/Kg", 12, right=True)
            )
            for pa in aggregates:
                lines.append(
                    _cell(f"{pa['product_name']} - {pa['product_code']}", 34)
                    + _cell(f"{pa['total_sold_kg']:.2f}", 12, right=True)
                    + _cell(f"{pa['stock_kg']:.2f}", 12, right=True)
                    + _cell(f"{pa['remaining_kg']:.2f}", 12, right=True)
                    + _cell(_money(pa["total_product_value"]), 14, right=True)
                    + _cell(_money(pa["avg_price_per_kg"]), 12, right=True)
                )
            lines.append("")

        lines.append("Sales Data")
        lines.append("".join(_cell(title, width) for title, width, _ in SALE_COLUMNS))
        for sale in report.get("sales", []):
            row = {
                "date": (sale.get("date") or "")[:10],
                "customer_name": sale["customer_name"],
                "product": f"{sale['product_name']} - {sale['product_code']}",
                "quantity_kg": f"{sale['quantity_kg']:.2f}",
                "price_per_kg": _money(sale["price_per_kg"]),
                "total_value": _money(sale["total_value"]),
                "payment_mode": sale["payment_mode"],
                "payment_status": sale["payment_status"],
            }
            lines.append("".join(
                _cell(row[key], width, right=key in ("quantity_kg", "price_per_kg", "total_value"))
                for _, width, key in SALE_COLUMNS
            ))
        return lines


class HtmlReportRenderer:
    media_type = "text/html"
    extension = "html"

    def render(self, report: dict) -> str:
        return render_template("sales_report.html", report=report)


RENDERERS = {
    "pdf": PdfReportRenderer,
    "html": HtmlReportRenderer,
}


def get_renderer(fmt: str):
    try:
        return RENDERERS[fmt]()
    except KeyError:
        raise ValueError(f"Unknown report format: {fmt}")


def _split_lines(lines):
    for line in lines:
        line = _ascii(line)
        if not line:
            yield ""
            continue
        for part in wrap(line, MAX_CHARS, replace_whitespace=False, drop_whitespace=False):
            yield part


def _paginate(lines):
    max_lines = int((PAGE_HEIGHT - (2 * MARGIN_Y)) / LINE_HEIGHT)
    pages = []
    current = []
    for line in _split_lines(lines):
        if len(current) >= max_lines:
            pages.append(current)
            current = []
        current.append(line)
    if current:
        pages.append(current)
    return pages


def _build_page_stream(lines):
    y_start = PAGE_HEIGHT - MARGIN_Y
    parts = [
        "BT",
        f"/F1 {FONT_SIZE} Tf",
        f"{MARGIN_X} {y_start} Td",
    ]
    for line in lines:
        parts.append(f"({_escape(line)}) Tj")
        parts.append(f"0 -{LINE_HEIGHT} Td")
    parts.append("ET")
    return "\n".join(parts)


def build_pdf(lines) -> bytes:
    """Assemble a minimal multi-page PDF 1.4 document from text lines."""
    pages = _paginate(lines) or [[""]]
    page_count = len(pages)
    pages_obj_num = (2 * page_count) + 2
    font_obj_num = 1

    objects = ["<< /Type /Font /Subtype /Type1 /BaseFont /Courier /Encoding /WinAnsiEncoding >>"]

    # 2..: content + page pairs
    for idx, page_lines in enumerate(pages, start=1):
        content_obj_num = 2 * idx
        stream = _build_page_stream(page_lines)
        stream_bytes = stream.encode("latin-1")
        objects.append(f"<< /Length {len(stream_bytes)} >>\nstream\n{stream}\nendstream")
        objects.append(
            "<< /Type /Page "
            f"/Parent {pages_obj_num} 0 R "
            f"/Resources << /Font << /F1 {font_obj_num} 0 R >> >> "
            f"/MediaBox [0 0 {PAGE_WIDTH} {PAGE_HEIGHT}] "
            f"/Contents {content_obj_num} 0 R >>"
        )

    kids = " ".join(f"{2 * i + 1} 0 R" for i in range(1, page_count + 1))
    objects.append(f"<< /Type /Pages /Kids [{kids}] /Count {page_count} >>")
    objects.append(f"<< /Type /Catalog /Pages {pages_obj_num} 0 R >>")

    buffer = BytesIO()
    buffer.write(b"%PDF-1.4\n")
    offsets = [0]
    for i, obj in enumerate(objects, start=1):
        offsets.append(buffer.tell())
        buffer.write(f"{i} 0 obj\n".encode("latin-1"))
        buffer.write(obj.encode("latin-1"))
        buffer.write(b"\nendobj\n")

    xref_start = buffer.tell()
    buffer.write(f"xref\n0 {len(offsets)}\n".encode("latin-1"))
    buffer.write(b"0000000000 65535 f \n")
    for offset in offsets[1:]:
        buffer.write(f"{offset:010d} 00000 n \n".encode("latin-1"))
    buffer.write(b"trailer\n")
    buffer.write(f"<< /Size {len(offsets)} /Root {len(objects)} 0 R >>\n".encode("latin-1"))
    buffer.write(f"startxref\n{xref_start}\n%%EOF".encode("latin-1"))
    return buffer.getvalue()
