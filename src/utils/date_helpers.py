import calendar
from datetime import datetime, timezone

YEAR_MONTH_FORMAT = "%Y-%m"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive timestamps coming back from the store as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def add_months(
    value: datetime, months: int, anchor_day: int | None = None
) -> datetime:
    """Shift by calendar months, clamping to the last day of the target month.

    ``anchor_day`` pins the day-of-month of a recurring schedule so a clamp in
    a short month does not carry into the months after it.
    """
    year, month_index = divmod(value.year * 12 + value.month - 1 + months, 12)
    month = month_index + 1
    last_day = calendar.monthrange(year, month)[1]
    day = min(anchor_day or value.day, last_day)
    return value.replace(year=year, month=month, day=day)


def year_month(value: datetime) -> str:
    """Return the UTC ``YYYY-MM`` token of a timestamp."""
    return ensure_utc(value).strftime(YEAR_MONTH_FORMAT)
