"""Reports subpackage - revenue aggregation, exports and imports."""
from .revenue import RevenueReport, to_csv, to_excel
from .revenue_import import RevenueRecord, parse_revenue_csv

__all__ = ['RevenueReport', 'to_csv', 'to_excel', 'RevenueRecord', 'parse_revenue_csv']
