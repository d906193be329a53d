from math import ceil

DEFAULT_LIMIT = 10
MAX_LIMIT = 100

def _as_int(value, default):
    """
    Convert any value to int, falling back to ``default`` if conversion
    fails or the value is ``None``.
    """
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def pagination_meta(page, limit, total):
    """
    Build the pagination block for a result set of ``total`` rows.

    ``total_pages`` is ``ceil(total / limit)`` (0 for an empty set), so
    ``has_next`` is false on the last page and on any page past it.
    """
    total_pages = ceil(total / limit) if total else 0

    pagination = {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": total_pages,
        "has_prev": page > 1,
        "has_next": page < total_pages,
    }
    if pagination["has_prev"]:
        pagination["prev_page"] = page - 1
    if pagination["has_next"]:
        pagination["next_page"] = page + 1

    return pagination


def paginate(query, page, limit, schema):
    """
    Apply pagination to a SQLAlchemy *query* and return a dictionary
    containing serialized items plus pagination metadata.

    Args:
        query: SQLAlchemy query object, already filtered and ordered.
        page (int | None): Current page number (1-based). If ``None`` or not
            numeric, defaults to 1.
        limit (int | None): Items per page. Defaults to 10, with a hard
            upper limit of 100.
        schema: Marshmallow schema (``many=True``) used to serialize items.

    Returns:
        dict: ``{"data": [...], "pagination": {...}}``
    """
    # Sanitize parameters -----------------------------------------------------
    page = max(1, _as_int(page, 1))
    limit = min(MAX_LIMIT, max(1, _as_int(limit, DEFAULT_LIMIT)))

    # -------------------------------------------------------------------------
    total = query.order_by(None).count()

    items = (
        query.limit(limit)
        .offset((page - 1) * limit)
        .all()
    )

    return {"data": schema.dump(items), "pagination": pagination_meta(page, limit, total)}
