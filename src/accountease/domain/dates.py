from __future__ import annotations

import calendar
from datetime import date, datetime, time
from typing import Callable, Mapping, Optional

_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%d/%m/%Y",
)


def naive_local(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone().replace(tzinfo=None)


def parse_timestamp(value: object) -> Optional[datetime]:
    """Best-effort conversion of a stored timestamp into a naive local datetime.

    Accepts datetimes, dates, ISO-8601 strings (with or without ``Z``), a few
    common date layouts, epoch seconds, and ``{"seconds": ...}`` mappings as
    serialized by hosted document stores. Returns ``None`` when nothing fits.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return naive_local(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(float(value))
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, Mapping):
        seconds = value.get("seconds", value.get("_seconds"))
        if seconds is None:
            return None
        return parse_timestamp(seconds)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    try:
        return naive_local(datetime.fromisoformat(text))
    except ValueError:
        pass
    for fmt in _FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def resolve_date(
    doc: Mapping[str, object],
    fields: tuple[str, ...],
    now: Callable[[], datetime] = datetime.now,
) -> datetime:
    # first parseable field wins, current time as last resort
    for field in fields:
        parsed = parse_timestamp(doc.get(field))
        if parsed is not None:
            return parsed
    return now()


def to_iso(dt: datetime) -> str:
    return dt.replace(microsecond=0).isoformat(sep=" ")


def start_of_day(dt: datetime) -> datetime:
    return datetime.combine(dt.date(), time.min)


def end_of_day(dt: datetime) -> datetime:
    return datetime.combine(dt.date(), time.max)


def shift_months(dt: datetime, months: int) -> datetime:
    """Move ``dt`` by whole months, clamping the day to the target month's length."""
    index = dt.year * 12 + (dt.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)
