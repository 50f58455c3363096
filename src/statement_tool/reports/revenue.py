"""
Revenue reporting over statements.

Builds pandas frames of invoices and invoice lines once, then slices them
by month / quarter / year for totals, breakdowns, rankings and exports.
"""
import io
import logging
from typing import Iterable, Optional

import pandas as pd

from ..engine.models import Invoice, RevenueTarget
from .periods import (
    growth_rate, parse_quarter_key, previous_month_key, previous_quarter, quarter_months,
)

logger = logging.getLogger(__name__)

PERIOD_KINDS = ('month', 'quarter', 'year')
UNKNOWN_CUSTOMER = 'Unknown Customer'

INVOICE_COLUMNS = [
    'id', 'serial_number', 'customer_name', 'customer_id', 'date',
    'total_amount', 'status', 'signed',
]
ITEM_COLUMNS = ['invoice_id', 'date', 'description', 'specification', 'quantity', 'unit_price', 'amount']


def _add_period_columns(df: pd.DataFrame) -> pd.DataFrame:
    df['date'] = pd.to_datetime(df['date'].astype(str).str.slice(0, 10), format='%Y-%m-%d', errors='coerce')
    bad = df['date'].isna()
    if bad.any():
        logger.warning("Skipping %d rows with unreadable dates", int(bad.sum()))
        df = df[~bad].copy()
    df['month'] = df['date'].dt.strftime('%Y-%m')
    df['year'] = df['date'].dt.year.astype(str)
    df['quarter'] = df['year'] + '-Q' + df['date'].dt.quarter.astype(str)
    return df


class RevenueReport:
    """
    Revenue figures for a snapshot of invoices.

    Periods are addressed by kind ('month', 'quarter', 'year') and key
    ('2024-03', '2024-Q1', '2024').
    """

    def __init__(self, invoices: Iterable[Invoice]):
        invoices = list(invoices)

        self.invoices = _add_period_columns(pd.DataFrame(
            [
                {
                    'id': inv.id,
                    'serial_number': inv.serial_number,
                    'customer_name': inv.customer_name or UNKNOWN_CUSTOMER,
                    'customer_id': inv.customer_id,
                    'date': inv.date,
                    'total_amount': float(inv.total_amount),
                    'status': inv.status,
                    'signed': inv.signature_base64 is not None,
                }
                for inv in invoices
            ],
            columns=INVOICE_COLUMNS,
        ))

        self.items = _add_period_columns(pd.DataFrame(
            [
                {
                    'invoice_id': inv.id,
                    'date': inv.date,
                    'description': item.description,
                    'specification': item.specification,
                    'quantity': item.quantity,
                    'unit_price': item.unit_price,
                    'amount': item.amount,
                }
                for inv in invoices
                for item in inv.items
                if item.description
            ],
            columns=ITEM_COLUMNS,
        ))

    # ------------------------------------------------------------------
    # Period selection
    # ------------------------------------------------------------------

    @staticmethod
    def _mask(df: pd.DataFrame, kind: str, key: str) -> pd.Series:
        if kind == 'month':
            return df['month'] == key
        if kind == 'quarter':
            year, quarter = parse_quarter_key(key)
            return df['month'].isin(quarter_months(quarter, year))
        if kind == 'year':
            return df['year'] == str(key)
        raise ValueError(f"Unknown report period '{kind}', expected one of {PERIOD_KINDS}")

    def filter_period(self, kind: str, key: str) -> pd.DataFrame:
        """Invoices falling in a period."""
        return self.invoices[self._mask(self.invoices, kind, key)]

    def total(self, kind: str, key: str) -> float:
        return float(self.filter_period(kind, key)['total_amount'].sum())

    def previous_key(self, kind: str, key: str) -> str:
        if kind == 'month':
            return previous_month_key(key)
        if kind == 'quarter':
            year, quarter = previous_quarter(*parse_quarter_key(key))
            return f"{year}-Q{quarter}"
        if kind == 'year':
            return str(int(key) - 1)
        raise ValueError(f"Unknown report period '{kind}', expected one of {PERIOD_KINDS}")

    def growth(self, kind: str, key: str) -> dict:
        """Revenue of a period against the period before it."""
        current = self.total(kind, key)
        previous_key = self.previous_key(kind, key)
        previous = self.total(kind, previous_key)
        return {
            'period': key,
            'previous_period': previous_key,
            'current': current,
            'previous': previous,
            'rate': growth_rate(current, previous),
        }

    # ------------------------------------------------------------------
    # Breakdowns
    # ------------------------------------------------------------------

    def customer_stats(self, kind: str, key: str) -> pd.DataFrame:
        """Revenue and invoice count per customer, highest revenue first."""
        frame = self.filter_period(kind, key)
        stats = (
            frame.groupby('customer_name', sort=False)
            .agg(total_amount=('total_amount', 'sum'), invoice_count=('id', 'count'))
            .reset_index()
            .rename(columns={'customer_name': 'name'})
        )
        total = stats['total_amount'].sum()
        stats['share_pct'] = (stats['total_amount'] / total * 100).round(2) if total else 0.0
        return stats.sort_values('total_amount', ascending=False, kind='stable').reset_index(drop=True)

    def monthly_breakdown(self, kind: str, key: str, customer: Optional[str] = None) -> pd.DataFrame:
        """Revenue per month of a quarter or year, optionally for one customer."""
        if kind == 'quarter':
            year, quarter = parse_quarter_key(key)
            months = quarter_months(quarter, year)
        elif kind == 'year':
            months = [f"{int(key)}-{m:02d}" for m in range(1, 13)]
        else:
            raise ValueError("Monthly breakdown needs a quarter or year period")

        frame = self.invoices
        if customer:
            frame = frame[frame['customer_name'] == customer]

        rows = []
        for month in months:
            month_frame = frame[frame['month'] == month]
            rows.append({
                'month': month,
                'revenue': float(month_frame['total_amount'].sum()),
                'count': len(month_frame),
            })
        return pd.DataFrame(rows, columns=['month', 'revenue', 'count'])

    def daily_breakdown(self, month: str) -> pd.DataFrame:
        """Revenue per day of a month, days without invoices included."""
        start = pd.Timestamp(f"{month}-01")
        days = pd.date_range(start, start + pd.offsets.MonthEnd(0), freq='D')
        frame = self.filter_period('month', month)
        daily = frame.groupby(frame['date'].dt.normalize())['total_amount'].agg(['sum', 'count'])
        daily = daily.reindex(days, fill_value=0)
        return pd.DataFrame({
            'date': days.strftime('%Y-%m-%d'),
            'revenue': daily['sum'].astype(float).values,
            'count': daily['count'].astype(int).values,
        })

    def quarterly_breakdown(self, year: str) -> pd.DataFrame:
        rows = []
        for quarter in range(1, 5):
            frame = self.filter_period('quarter', f"{int(year)}-Q{quarter}")
            rows.append({
                'quarter': f"Q{quarter}",
                'revenue': float(frame['total_amount'].sum()),
                'count': len(frame),
            })
        return pd.DataFrame(rows, columns=['quarter', 'revenue', 'count'])

    def product_stats(self, kind: str, key: str) -> pd.DataFrame:
        """Quantity and revenue per product line, highest revenue first."""
        frame = self.items[self._mask(self.items, kind, key)]
        stats = (
            frame.groupby('description', sort=False)
            .agg(
                total_quantity=('quantity', 'sum'),
                total_revenue=('amount', 'sum'),
                total_invoices=('invoice_id', 'nunique'),
            )
            .reset_index()
            .rename(columns={'description': 'product'})
        )
        qty = stats['total_quantity'].where(stats['total_quantity'] != 0)
        stats['average_price'] = (stats['total_revenue'] / qty).fillna(0.0)
        stats['average_quantity_per_order'] = stats['total_quantity'] / stats['total_invoices']
        return stats.sort_values('total_revenue', ascending=False, kind='stable').reset_index(drop=True)

    def unsigned(self) -> pd.DataFrame:
        """Pending invoices still waiting for a signature."""
        frame = self.invoices
        return frame[(frame['status'] == 'pending') & ~frame['signed'].astype(bool)].sort_values('date')

    def target_progress(self, targets: Iterable[RevenueTarget], year: int, quarter: Optional[int] = None) -> dict:
        """
        Actual revenue against the company-wide target for a year or quarter.

        progress_pct is None when no target is set.
        """
        target = next(
            (t for t in targets if t.year == year and t.quarter == quarter and t.customer_id is None and t.month is None),
            None,
        )
        if quarter is None:
            actual = self.total('year', str(year))
        else:
            actual = self.total('quarter', f"{year}-Q{quarter}")

        target_amount = target.target_amount if target else None
        progress = actual / target_amount * 100 if target_amount else None
        return {
            'year': year,
            'quarter': quarter,
            'target': target_amount,
            'actual': actual,
            'progress_pct': progress,
        }


def to_csv(df: pd.DataFrame) -> bytes:
    """CSV bytes with a BOM so spreadsheet apps read the Chinese text."""
    return df.to_csv(index=False).encode('utf-8-sig')


def to_excel(sheets) -> bytes:
    """Excel workbook bytes from a DataFrame or a {sheet name: DataFrame} dict."""
    if isinstance(sheets, pd.DataFrame):
        sheets = {'Report': sheets}
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
        for name, frame in sheets.items():
            frame.to_excel(writer, sheet_name=name[:31], index=False)
    return buffer.getvalue()
