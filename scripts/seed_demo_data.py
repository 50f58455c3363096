#!/usr/bin/env python
"""
Seed the data directory with a small demo catalog, customers and pricing rules.

Usage:
    python scripts/seed_demo_data.py [--import-revenue revenue.csv]
"""
import argparse
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from statement_tool.config.settings import get_settings
from statement_tool.engine.models import Customer, InvoiceItem, PricingRule, PricingTier, Product
from statement_tool.reports.revenue_import import parse_revenue_csv, vendor_monthly_summary
from statement_tool.services import InvoiceService, JsonDocumentStore, PricingRulesService


PRODUCTS = [
    Product(id='P-POSTER', name='大圖', price=600, category='輸出', specification='A1',
            size_options=['A0', 'A1', 'A2']),
    Product(id='P-CARD', name='小卡', price=5, category='印刷', specification='名片尺寸'),
    Product(id='P-BANNER', name='布條', price=1200, category='輸出', specification='90x300cm'),
]

CUSTOMERS = [
    Customer(id='cust-abcd-01', name='晴天設計', address='台北市中山區', phone='02-2500-0000',
             contact_persons=['王小姐'], customer_tier='general'),
    Customer(id='ind-7788', name='同業印刷社', address='桃園市龜山區', phone='03-3500-000',
             contact_persons=['李先生'], customer_tier='industry'),
    Customer(id='kst-0001', name='康士藤', address='新北市板橋區', phone='02-2900-0000',
             price_category='kangshiting'),
]

RULES = [
    PricingRule(id='R-CARD-GEN', product_id='P-CARD', base_price=5, tiers=[
        PricingTier(id='t1', min_quantity=1, max_quantity=499, price=5),
        PricingTier(id='t2', min_quantity=500, max_quantity=1999, price=3.5),
        PricingTier(id='t3', min_quantity=2000, price=2.8),
    ]),
    PricingRule(id='R-CARD-IND', product_id='P-CARD', price_category='industry', base_price=4, tiers=[
        PricingTier(id='t1', min_quantity=500, price=2.5),
    ]),
    PricingRule(id='R-POSTER-A0', product_id='P-POSTER', specification='A0', base_price=900),
    PricingRule(id='R-POSTER-ABCD', product_id='P-POSTER', customer_id='cust-abcd-01', base_price=550),
]


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument('--import-revenue', type=Path, help="B2B revenue CSV to summarize")
    args = parser.parse_args()

    settings = get_settings()
    store = JsonDocumentStore(settings.data_dir)

    print("=" * 60)
    print("STATEMENT TOOL DEMO DATA")
    print("=" * 60)
    print(f"Data directory: {settings.data_dir}")

    store.upsert_many('products', [p.to_document() for p in PRODUCTS])
    store.upsert_many('customers', [c.to_document() for c in CUSTOMERS])
    print(f"  Products: {len(PRODUCTS)}")
    print(f"  Customers: {len(CUSTOMERS)}")

    rules_service = PricingRulesService(store, max_tiers=settings.max_tiers_per_rule)
    created = 0
    for rule in RULES:
        if store.get('pricingRules', rule.id) is None:
            rules_service.create_rule(rule)
            created += 1
    print(f"  Pricing rules created: {created}")

    invoices = InvoiceService(store, default_notes=settings.default_notes)
    if not invoices.load_invoices():
        invoice = invoices.create_invoice('晴天設計', [
            InvoiceItem(description='小卡', specification='名片尺寸', quantity=600),
            InvoiceItem(description='大圖', specification='A1', quantity=2),
        ])
        print(f"  Sample statement: {invoice.serial_number} (NT${invoice.total_amount:,.0f})")

    if args.import_revenue:
        records = parse_revenue_csv(args.import_revenue.read_text(encoding='utf-8'))
        print()
        print(f"Imported {len(records)} revenue records")
        summary = vendor_monthly_summary(records)
        if not summary.empty:
            print(summary.to_string())

    print()
    print("✅ DONE")


if __name__ == "__main__":
    main()
