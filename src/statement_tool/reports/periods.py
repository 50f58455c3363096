"""
Period keys for revenue reporting: YYYY-MM, YYYY-Qn and YYYY.
"""
import re
from datetime import date, datetime
from typing import Iterable, Optional, Union

_QUARTER_KEY = re.compile(r'^(\d{4})-Q(\d)$')

DateLike = Union[str, date, datetime]


def _to_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def month_key(value: DateLike) -> str:
    d = _to_date(value)
    return f"{d.year}-{d.month:02d}"


def quarter_key(value: DateLike) -> str:
    d = _to_date(value)
    return f"{d.year}-Q{(d.month - 1) // 3 + 1}"


def year_key(value: DateLike) -> str:
    return str(_to_date(value).year)


def quarter_months(quarter: int, year: int) -> list[str]:
    """Month keys of a quarter, e.g. (2, 2024) -> ['2024-04', '2024-05', '2024-06']."""
    start = (quarter - 1) * 3 + 1
    return [f"{year}-{month:02d}" for month in range(start, start + 3)]


def parse_quarter_key(key: str) -> tuple[int, int]:
    """Split 'YYYY-Qn' into (year, quarter). Raises ValueError for anything else."""
    match = _QUARTER_KEY.match(key or '')
    if not match or not 1 <= int(match.group(2)) <= 4:
        raise ValueError(f"Invalid quarter key format: {key}")
    return int(match.group(1)), int(match.group(2))


def previous_quarter(year: int, quarter: int) -> tuple[int, int]:
    if quarter == 1:
        return year - 1, 4
    return year, quarter - 1


def previous_month_key(key: str) -> str:
    year, month = (int(part) for part in key.split('-'))
    if month == 1:
        return f"{year - 1}-12"
    return f"{year}-{month - 1:02d}"


def growth_rate(current: float, previous: float) -> Optional[float]:
    """
    Percentage change from previous to current.

    With no previous revenue: 100 when there is current revenue, else None.
    """
    if previous == 0:
        return 100.0 if current > 0 else None
    return (current - previous) / previous * 100


def format_growth_rate(rate: Optional[float]) -> str:
    if rate is None:
        return '-'
    sign = '+' if rate >= 0 else ''
    arrow = '↑' if rate >= 0 else '↓'
    return f"{sign}{rate:.1f}% {arrow}"


def _dates_of(invoices: Iterable) -> list[str]:
    return [inv['date'] if isinstance(inv, dict) else inv.date for inv in invoices]


def available_quarters(invoices: Iterable) -> list[str]:
    """Quarter keys with at least one invoice, newest first."""
    return sorted({quarter_key(d) for d in _dates_of(invoices)}, reverse=True)


def available_years(invoices: Iterable) -> list[str]:
    """Year keys with at least one invoice, newest first."""
    return sorted({year_key(d) for d in _dates_of(invoices)}, reverse=True)
