"""
B2B vendor revenue import.

Accepts pasted or uploaded CSV text with `date, vendor, amount` columns and
an optional header row.
"""
import csv
import io
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional

import pandas as pd

logger = logging.getLogger(__name__)

HEADER_MARKERS = ('date', '日期')
DATE_FORMATS = ('%Y-%m-%d', '%Y/%m/%d')


@dataclass
class RevenueRecord:
    """One vendor reconciliation amount."""
    date: date
    vendor_name: str
    amount: float

    @property
    def year(self) -> int:
        return self.date.year

    @property
    def month(self) -> int:
        return self.date.month


def _parse_date(value: str) -> Optional[date]:
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


def parse_revenue_csv(text: str) -> list[RevenueRecord]:
    """
    Parse CSV text into revenue records.

    Rows with fewer than three columns, a blank vendor, an unreadable date
    or a non-numeric amount are skipped.
    """
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        return []

    if any(marker in lines[0] for marker in HEADER_MARKERS):
        lines = lines[1:]

    records = []
    skipped = 0
    for row in csv.reader(io.StringIO("\n".join(lines))):
        columns = [c.strip() for c in row]
        if len(columns) < 3:
            skipped += 1
            continue

        raw_date, vendor, raw_amount = columns[:3]
        parsed_date = _parse_date(raw_date)
        try:
            amount = float(raw_amount)
        except ValueError:
            amount = None

        if parsed_date is None or not vendor or amount is None:
            skipped += 1
            continue
        records.append(RevenueRecord(date=parsed_date, vendor_name=vendor, amount=amount))

    if skipped:
        logger.info("Revenue import skipped %d unreadable rows", skipped)
    return records


def vendor_monthly_summary(records: Iterable[RevenueRecord]) -> pd.DataFrame:
    """Vendors as rows, YYYY-MM months as columns, summed amounts as values."""
    df = pd.DataFrame(
        [
            {'vendor_name': r.vendor_name, 'month': f"{r.year}-{r.month:02d}", 'amount': r.amount}
            for r in records
        ],
        columns=['vendor_name', 'month', 'amount'],
    )
    if df.empty:
        return pd.DataFrame()
    return df.pivot_table(
        index='vendor_name', columns='month', values='amount', aggfunc='sum', fill_value=0.0
    )
