"""Engine subpackage - price resolution, serial numbers and statement logic."""
from .models import (
    Customer, Invoice, InvoiceItem, PricingRule, PricingTier, Product, effective_tier,
)
from .price_resolver import find_price_in_tiers, resolve_price, resolve_price_with_trace
from .serial_numbers import next_serial
from .invoice_engine import InvoiceEngine, InvoiceStateError

__all__ = [
    'Customer', 'Invoice', 'InvoiceItem', 'PricingRule', 'PricingTier', 'Product',
    'effective_tier', 'find_price_in_tiers', 'resolve_price', 'resolve_price_with_trace',
    'next_serial', 'InvoiceEngine', 'InvoiceStateError',
]
