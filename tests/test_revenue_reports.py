"""
Tests for period keys, revenue reports, exports and the vendor revenue import.
"""
import pytest
import sys
import os
from datetime import date, datetime

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from statement_tool.engine.models import Invoice, InvoiceItem, RevenueTarget
from statement_tool.reports.periods import (
    available_quarters, available_years, format_growth_rate, growth_rate, month_key,
    parse_quarter_key, previous_month_key, previous_quarter, quarter_key, quarter_months, year_key,
)
from statement_tool.reports.revenue import RevenueReport, to_csv, to_excel
from statement_tool.reports.revenue_import import parse_revenue_csv, vendor_monthly_summary


@pytest.fixture
def invoices():
    return [
        Invoice(id='a', serial_number='CPABCD00001', date='2024-01-10', customer_name='晴天設計',
                total_amount=1000, status='pending',
                items=[InvoiceItem(description='小卡', quantity=200, unit_price=5, amount=1000)]),
        Invoice(id='b', serial_number='TCIND700001', date='2024-02-05', customer_name='同業印刷社',
                total_amount=3000, status='completed', signature_base64='sig',
                items=[
                    InvoiceItem(description='小卡', quantity=500, unit_price=3.5, amount=1750),
                    InvoiceItem(description='大圖', quantity=2, unit_price=625, amount=1250),
                ]),
        Invoice(id='c', serial_number='CPABCD00002', date='2024-04-20', customer_name='晴天設計',
                total_amount=500, status='pending',
                items=[InvoiceItem(description='大圖', quantity=1, unit_price=500, amount=500), InvoiceItem()]),
        Invoice(id='d', serial_number='CPKST000001', date='2023-11-11', customer_name='康士藤',
                total_amount=2000, status='completed', signature_base64='sig'),
        Invoice(id='e', serial_number='CPBAD000001', date='not-a-date', customer_name='',
                total_amount=999, status='pending'),
    ]


@pytest.fixture
def report(invoices):
    return RevenueReport(invoices)


# ----------------------------------------------------------------------------
# Period keys
# ----------------------------------------------------------------------------

def test_period_keys():
    assert month_key('2024-05-17') == '2024-05'
    assert quarter_key('2024-05-17') == '2024-Q2'
    assert quarter_key(date(2024, 12, 31)) == '2024-Q4'
    assert year_key(datetime(2023, 1, 1, 8, 30)) == '2023'


def test_quarter_months():
    assert quarter_months(2, 2024) == ['2024-04', '2024-05', '2024-06']
    assert quarter_months(4, 2023) == ['2023-10', '2023-11', '2023-12']


def test_parse_quarter_key():
    assert parse_quarter_key('2024-Q3') == (2024, 3)
    for bad in ('2024-Q5', '2024-Q0', '2024Q1', '2024-03', ''):
        with pytest.raises(ValueError):
            parse_quarter_key(bad)


def test_previous_periods():
    assert previous_quarter(2024, 1) == (2023, 4)
    assert previous_quarter(2024, 3) == (2024, 2)
    assert previous_month_key('2024-01') == '2023-12'
    assert previous_month_key('2024-10') == '2024-09'


def test_growth_rate():
    assert growth_rate(150, 100) == 50.0
    assert growth_rate(50, 100) == -50.0
    assert growth_rate(10, 0) == 100.0
    assert growth_rate(0, 0) is None


def test_format_growth_rate():
    assert format_growth_rate(12.5) == '+12.5% ↑'
    assert format_growth_rate(-10) == '-10.0% ↓'
    assert format_growth_rate(None) == '-'


def test_available_periods_newest_first():
    docs = [{'date': '2023-02-01'}, {'date': '2024-07-01'}, {'date': '2024-08-01'}]
    assert available_quarters(docs) == ['2024-Q3', '2023-Q1']
    assert available_years(docs) == ['2024', '2023']


# ----------------------------------------------------------------------------
# Revenue report
# ----------------------------------------------------------------------------

def test_unreadable_dates_are_skipped(report):
    assert 'e' not in set(report.invoices['id'])
    assert len(report.invoices) == 4


def test_totals_by_period(report):
    assert report.total('month', '2024-02') == 3000
    assert report.total('quarter', '2024-Q1') == 4000
    assert report.total('year', '2024') == 4500
    assert report.total('year', '2022') == 0


def test_unknown_period_kind(report):
    with pytest.raises(ValueError):
        report.filter_period('week', '2024-01')
    with pytest.raises(ValueError):
        report.total('quarter', '2024-Q5')


def test_growth_against_previous_period(report):
    quarter = report.growth('quarter', '2024-Q1')
    assert quarter['previous_period'] == '2023-Q4'
    assert quarter['current'] == 4000
    assert quarter['previous'] == 2000
    assert quarter['rate'] == 100.0

    year = report.growth('year', '2024')
    assert year['rate'] == 125.0

    month = report.growth('month', '2024-01')
    assert month['previous_period'] == '2023-12'
    assert month['rate'] == 100.0


def test_customer_stats(report):
    stats = report.customer_stats('quarter', '2024-Q1')
    assert list(stats['name']) == ['同業印刷社', '晴天設計']
    assert list(stats['invoice_count']) == [1, 1]
    assert list(stats['share_pct']) == [75.0, 25.0]


def test_customer_stats_empty_period(report):
    stats = report.customer_stats('month', '2022-01')
    assert stats.empty


def test_monthly_breakdown(report):
    quarter = report.monthly_breakdown('quarter', '2024-Q1')
    assert list(quarter['month']) == ['2024-01', '2024-02', '2024-03']
    assert list(quarter['revenue']) == [1000, 3000, 0]

    year = report.monthly_breakdown('year', '2024', customer='晴天設計')
    assert len(year) == 12
    assert year['revenue'].sum() == 1500
    assert year.loc[year['month'] == '2024-04', 'revenue'].iloc[0] == 500

    with pytest.raises(ValueError):
        report.monthly_breakdown('month', '2024-01')


def test_daily_breakdown_includes_empty_days(report):
    daily = report.daily_breakdown('2024-02')
    assert len(daily) == 29
    row = daily[daily['date'] == '2024-02-05'].iloc[0]
    assert row['revenue'] == 3000
    assert row['count'] == 1
    assert daily['revenue'].sum() == 3000


def test_quarterly_breakdown(report):
    quarters = report.quarterly_breakdown('2024')
    assert list(quarters['quarter']) == ['Q1', 'Q2', 'Q3', 'Q4']
    assert list(quarters['revenue']) == [4000, 500, 0, 0]


def test_product_stats(report):
    stats = report.product_stats('year', '2024')
    assert list(stats['product']) == ['小卡', '大圖']

    card = stats.iloc[0]
    assert card['total_quantity'] == 700
    assert card['total_revenue'] == 2750
    assert card['total_invoices'] == 2
    assert card['average_price'] == pytest.approx(2750 / 700)
    assert card['average_quantity_per_order'] == 350


def test_unsigned_pending_invoices(report):
    assert list(report.unsigned()['id']) == ['a', 'c']


def test_target_progress(report):
    targets = [
        RevenueTarget(id='t1', year=2024, target_amount=9000),
        RevenueTarget(id='t2', year=2024, quarter=1, target_amount=8000),
        RevenueTarget(id='t3', year=2024, quarter=1, target_amount=1, customer_id='abcd-01'),
    ]
    assert report.target_progress(targets, 2024)['progress_pct'] == 50.0
    assert report.target_progress(targets, 2024, 1)['progress_pct'] == 50.0

    missing = report.target_progress(targets, 2024, 2)
    assert missing['target'] is None
    assert missing['actual'] == 500
    assert missing['progress_pct'] is None


def test_empty_report():
    report = RevenueReport([])
    assert report.total('year', '2024') == 0
    assert report.growth('month', '2024-01')['rate'] is None
    assert report.customer_stats('year', '2024').empty


# ----------------------------------------------------------------------------
# Exports
# ----------------------------------------------------------------------------

def test_csv_export_has_bom(report):
    data = to_csv(report.customer_stats('year', '2024'))
    assert data.startswith(b'\xef\xbb\xbf')
    assert '晴天設計' in data.decode('utf-8-sig')


def test_excel_export(report):
    data = to_excel({
        'Customers': report.customer_stats('year', '2024'),
        'Products': report.product_stats('year', '2024'),
    })
    assert data[:2] == b'PK'
    assert to_excel(report.quarterly_breakdown('2024'))[:2] == b'PK'


# ----------------------------------------------------------------------------
# Vendor revenue import
# ----------------------------------------------------------------------------

CSV_TEXT = """日期,廠商,金額
2024-01-05,甲廠,1200
2024/02/01,乙廠,300.5

bad,丙廠,1
2024-03-01,,5
2024-03-02,丁廠,abc
2024-03-03,戊廠
2024-02-20,甲廠,800
"""


def test_parse_revenue_csv_skips_bad_rows():
    records = parse_revenue_csv(CSV_TEXT)
    assert [r.vendor_name for r in records] == ['甲廠', '乙廠', '甲廠']
    assert records[1].date == date(2024, 2, 1)
    assert records[1].amount == 300.5
    assert (records[0].year, records[0].month) == (2024, 1)


def test_parse_revenue_csv_without_header():
    records = parse_revenue_csv("2024-01-05,甲廠,1200\n")
    assert len(records) == 1
    assert parse_revenue_csv("") == []


def test_vendor_monthly_summary():
    summary = vendor_monthly_summary(parse_revenue_csv(CSV_TEXT))
    assert list(summary.columns) == ['2024-01', '2024-02']
    assert summary.loc['甲廠', '2024-01'] == 1200
    assert summary.loc['甲廠', '2024-02'] == 800
    assert summary.loc['乙廠', '2024-01'] == 0
    assert vendor_monthly_summary([]).empty
