# Overview: Shared skip+limit pagination and substring-filter helpers for list endpoints.

from __future__ import annotations

import math

from flask import current_app


def contains_pattern(term: str) -> str:
    """LIKE pattern matching term anywhere, with LIKE wildcards escaped (escape char '\\')."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def resolve_page_args(page: int | None, page_size: int | None) -> tuple[int, int]:
    """Clamp page (1-indexed) and page_size to the configured defaults and ceiling."""
    default_size = current_app.config.get("DEFAULT_PAGE_SIZE", 10)
    max_size = current_app.config.get("MAX_PAGE_SIZE", 100)
    page_size = min(page_size or default_size, max_size)
    page_size = max(page_size, 1)
    page = max(page or 1, 1)
    return page, page_size


def paginate(query, *, page: int | None, page_size: int | None) -> dict:
    """
    Run a skip+limit page over an ordered query.

    Returns {"items": [model...], "total", "total_pages", "page", "page_size"}
    with total_pages = ceil(total / page_size) (0 when nothing matches).
    """
    page, page_size = resolve_page_args(page, page_size)

    total = query.order_by(None).count()
    total_pages = math.ceil(total / page_size)
    items = query.offset((page - 1) * page_size).limit(page_size).all()

    return {
        "items": items,
        "total": total,
        "total_pages": total_pages,
        "page": page,
        "page_size": page_size,
    }


def empty_page(*, page: int | None, page_size: int | None) -> dict:
    page, page_size = resolve_page_args(page, page_size)
    return {"items": [], "total": 0, "total_pages": 0, "page": page, "page_size": page_size}
