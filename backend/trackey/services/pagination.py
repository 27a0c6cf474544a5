# Overview: List pagination shared by the debt and product listings.

from __future__ import annotations

from typing import Callable, Sequence

from flask import current_app


def paginate(
    items: Sequence,
    page: int | None,
    per_page: int | None,
    serialize: Callable = lambda x: x,
) -> dict:
    """
    Slice an already-ordered list.

    page=None returns every item without pagination metadata. per_page falls
    back to DEFAULT_PAGE_SIZE and is capped at MAX_PAGE_SIZE.
    """
    if page is None:
        return {
            "items": [serialize(i) for i in items],
            "count": len(items),
        }

    default_size = current_app.config.get("DEFAULT_PAGE_SIZE", 10)
    max_size = current_app.config.get("MAX_PAGE_SIZE", 100)
    per_page = min(max(per_page or default_size, 1), max_size)
    page = max(page, 1)

    total = len(items)
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1
    start = (page - 1) * per_page
    window = items[start:start + per_page]

    return {
        "items": [serialize(i) for i in window],
        "count": len(window),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }
