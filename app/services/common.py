import calendar
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Sequence

from sqlalchemy import func, or_
from sqlalchemy.orm import Query

MAX_PAGE_SIZE = 100


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def pagination_info(total: int, page: int, limit: int) -> dict[str, Any]:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }


def paginate(query: Query, page: int = 1, limit: int = 10) -> tuple[list, dict[str, Any]]:
    """Applies offset/limit to an ordered query and returns (items, pagination)."""
    page = max(1, page)
    limit = min(MAX_PAGE_SIZE, max(1, limit))
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, pagination_info(total, page, limit)


def search_filter(search: str | None, columns: Sequence):
    """Case-insensitive substring match over any of the columns, or None."""
    if not search:
        return None
    pattern = f"%{search.strip()}%"
    return or_(*[col.ilike(pattern) for col in columns])


def top_counts(values, limit: int) -> list[str]:
    """Most frequent values first; ties keep first-seen order."""
    counts: dict[str, int] = {}
    for value in values:
        if value:
            counts[value] = counts.get(value, 0) + 1
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [value for value, _ in ranked[:limit]]


def count_by(db, column, *criteria) -> list[dict[str, Any]]:
    """Row counts grouped by column, most frequent first, nulls skipped."""
    count = func.count()
    query = db.query(column, count).filter(column.isnot(None), *criteria)
    rows = query.group_by(column).order_by(count.desc(), column).all()
    return [{"value": value, "count": n} for value, n in rows]


def window_start(window: str | None, now: datetime | None = None) -> datetime | None:
    """Start of a named time window: today, week (7 days) or month (30 days)."""
    now = now or utcnow()
    if window == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if window == "week":
        return now - timedelta(days=7)
    if window == "month":
        return now - timedelta(days=30)
    return None


def add_months(value: datetime, months: int = 1) -> datetime:
    """Same day N months later, clamped to the target month's last day."""
    index = value.month - 1 + months
    year = value.year + index // 12
    month = index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)
