"""Small helpers for composing list-endpoint queries."""
from datetime import date, datetime

from sqlalchemy import or_


def parse_date(value):
    """
    Parse ``YYYY-MM-DD`` or a full ISO-8601 datetime into a ``date``.

    Returns ``None`` for empty input and raises ``ValueError`` for anything
    that is not a date.
    """
    if value in (None, ''):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        return date.fromisoformat(text)
    except ValueError:
        return datetime.fromisoformat(text).date()


def search_filter(term, *columns):
    """Case-insensitive ``%term%`` match across any of ``columns``."""
    pattern = f"%{term}%"
    return or_(*[column.ilike(pattern) for column in columns])


def date_range_filter(column, date_from=None, date_to=None):
    """Inclusive range on ``column``; either bound may be omitted."""
    if date_from and date_to:
        return column.between(date_from, date_to)
    if date_from:
        return column >= date_from
    if date_to:
        return column <= date_to
    return None


def apply_sort(query, column, sort_order='asc'):
    if sort_order == 'desc':
        return query.order_by(column.desc())
    return query.order_by(column.asc())


def parse_date_args(args, *names):
    """
    Parse the named query-string arguments as dates.

    Returns ``(values, error)``; ``error`` is a ready-made 400 body naming
    the first argument that failed to parse.
    """
    values = []
    for name in names:
        try:
            values.append(parse_date(args.get(name)))
        except ValueError:
            return [None] * len(names), {'error': f'Invalid {name} format. Use YYYY-MM-DD'}
    return values, None
