"""
Streamlit UI for the Statement Tool.

Features:
- Statement editor with rule-based line pricing and serial preview
- Pricing rule browser with resolution trace
- Monthly / quarterly / yearly revenue reports
- Export to Excel/CSV
"""
import streamlit as st
import pandas as pd
import sys
from pathlib import Path
from datetime import date

# Add src to path for imports
src_path = Path(__file__).parent.parent.parent
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from statement_tool.config.settings import get_settings
from statement_tool.config.logging import configure_logging
from statement_tool.engine import effective_tier, next_serial
from statement_tool.reports.periods import (
    available_quarters, available_years, format_growth_rate, month_key, parse_quarter_key,
)
from statement_tool.reports.revenue import RevenueReport, to_csv, to_excel
from statement_tool.services import InvoiceService, JsonDocumentStore, PricingRulesService
from statement_tool.ui.editor import items_from_editor


st.set_page_config(
    page_title="Statement Tool",
    layout="wide",
    initial_sidebar_state="expanded"
)


@st.cache_resource
def get_services():
    """Get cached service instances."""
    configure_logging()
    settings = get_settings()
    store = JsonDocumentStore(settings.data_dir)
    return (
        settings,
        InvoiceService(store, default_notes=settings.default_notes),
        PricingRulesService(store, max_tiers=settings.max_tiers_per_rule),
    )


try:
    settings, invoice_service, rules_service = get_services()
    engine = invoice_service.engine()
except Exception as e:
    st.error(f"System Error: {e}")
    st.stop()


# ============================================================================
# SIDEBAR: Customer Context
# ============================================================================
with st.sidebar:
    st.header("👤 Customer")

    customer_names = sorted(c.name for c in engine.customers)
    if not customer_names:
        st.warning("No customers in the data directory")
        customer = None
    else:
        selected_name = st.selectbox("Customer", customer_names, key="customer_select")
        customer = engine.find_customer(selected_name)

    if customer:
        tier = effective_tier(customer)
        st.markdown(f"**Tier:** `{tier}`")
        if tier not in settings.customer_tiers:
            st.warning(f"Tier '{tier}' is not one of {', '.join(settings.customer_tiers)}")
        prior = engine.customer_invoices(customer)
        st.markdown(f"**Statements on file:** {len(prior)}")
        st.markdown(f"**Next serial:** `{next_serial(customer.id, tier, prior)}`")

    st.divider()
    stats = rules_service.get_stats()
    st.caption(f"🔧 {stats['active']} active pricing rules / {stats['products']} products")


st.title(settings.company_name)
st.caption(f"Statement Tool | {date.today().isoformat()}")

tab1, tab2, tab3 = st.tabs(["📝 Statement", "🔧 Pricing Rules", "📊 Reports"])


# ============================================================================
# TAB 1: STATEMENT EDITOR
# ============================================================================
with tab1:
    product_names = [p.name for p in engine.products]

    if 'lines' not in st.session_state:
        st.session_state.lines = pd.DataFrame(
            [{'description': '', 'specification': '', 'quantity': 1}] * 3
        )

    edited = st.data_editor(
        st.session_state.lines,
        use_container_width=True,
        num_rows="dynamic",
        column_config={
            "description": st.column_config.SelectboxColumn("Product", options=product_names),
            "specification": st.column_config.TextColumn("Specification"),
            "quantity": st.column_config.NumberColumn("Quantity", min_value=1, step=1),
        },
        hide_index=True,
        key="line_editor"
    )

    priced = [engine.price_line(item, customer) for item in items_from_editor(edited)]

    if priced:
        lines_df = pd.DataFrame([{
            'Product': i.description,
            'Specification': i.specification,
            'Qty': i.quantity,
            'Unit Price': i.unit_price,
            'Amount': i.amount,
        } for i in priced])
        st.dataframe(lines_df, use_container_width=True, hide_index=True)
        st.metric("Total", f"NT${sum(i.amount for i in priced):,.0f}")

        if customer and st.button("💾 Save Statement", type="primary"):
            invoice = invoice_service.create_invoice(customer.name, priced)
            st.success(f"Saved {invoice.serial_number}")
            st.session_state.pop('lines')
            st.rerun()
    else:
        st.info("Pick a product to start a statement.")


# ============================================================================
# TAB 2: PRICING RULES
# ============================================================================
with tab2:
    st.subheader("🔧 Pricing Rules")
    rules = rules_service.list_rules()
    if rules:
        products_by_id = {p.id: p.name for p in engine.products}
        rules_data = [{
            'ID': r.id,
            'Product': products_by_id.get(r.product_id, r.product_id),
            'Customer': r.customer_id or '',
            'Category': r.price_category or '',
            'Specification': r.specification or '',
            'Base Price': r.base_price,
            'Tiers': ", ".join(
                f"{t.min_quantity}-{t.max_quantity if t.max_quantity is not None else '∞'}: {t.price:g}"
                for t in sorted(r.tiers, key=lambda t: t.min_quantity)
            ),
            'Active': r.is_active,
        } for r in rules]
        st.dataframe(pd.DataFrame(rules_data), use_container_width=True, hide_index=True)
    else:
        st.info("No pricing rules.")

    with st.expander("🔍 Resolution Details"):
        if engine.products:
            product = st.selectbox("Product", engine.products, format_func=lambda p: p.name, key="trace_product")
            c1, c2 = st.columns(2)
            qty = c1.number_input("Qty", min_value=1, value=1, step=1, key="trace_qty")
            spec = c2.text_input("Specification", value=product.specification, key="trace_spec")
            resolution = engine.resolve(product, int(qty), spec, customer)
            for t in resolution.trace:
                if t.value:
                    st.caption(f"**{t.step}**: {t.description} = `{t.value}`")
                else:
                    st.caption(f"**{t.step}**: {t.description}")
            if not resolution.found:
                st.caption(f"Catalog price: `{product.price:g}`")


# ============================================================================
# TAB 3: REPORTS
# ============================================================================
with tab3:
    invoices = list(engine.invoices)
    report = RevenueReport(invoices)

    kind = st.radio("Period", ["month", "quarter", "year"], horizontal=True)
    if kind == 'month':
        months = sorted({month_key(inv.date) for inv in invoices} | {month_key(date.today())}, reverse=True)
        key = st.selectbox("Month", months)
    elif kind == 'quarter':
        key = st.selectbox("Quarter", available_quarters(invoices) or [])
    else:
        key = st.selectbox("Year", available_years(invoices) or [])

    if key:
        growth = report.growth(kind, key)
        m1, m2, m3 = st.columns(3)
        m1.metric("Revenue", f"NT${growth['current']:,.0f}")
        m2.metric("Statements", len(report.filter_period(kind, key)))
        m3.metric(f"vs {growth['previous_period']}", format_growth_rate(growth['rate']))

        if kind != 'month':
            if kind == 'quarter':
                year, quarter = parse_quarter_key(key)
            else:
                year, quarter = int(key), None
            progress = report.target_progress(invoice_service.load_targets(), year, quarter)
            if progress['target']:
                st.progress(
                    min(progress['progress_pct'] / 100, 1.0),
                    text=f"Target NT${progress['target']:,.0f} ({progress['progress_pct']:.1f}%)"
                )

        customers_df = report.customer_stats(kind, key)
        st.markdown("##### Customers")
        st.dataframe(customers_df, use_container_width=True, hide_index=True)

        if kind == 'month':
            st.bar_chart(report.daily_breakdown(key).set_index('date')['revenue'])
        else:
            st.bar_chart(report.monthly_breakdown(kind, key).set_index('month')['revenue'])

        c1, c2 = st.columns(2)
        c1.download_button(
            "📥 CSV",
            data=to_csv(customers_df),
            file_name=f"revenue_{key}.csv",
            mime="text/csv",
            use_container_width=True
        )
        c2.download_button(
            "📥 Excel",
            data=to_excel({'Customers': customers_df, 'Products': report.product_stats(kind, key)}),
            file_name=f"revenue_{key}.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            use_container_width=True
        )
    else:
        st.info("No statements yet.")

    unsigned = report.unsigned()
    if not unsigned.empty:
        with st.expander(f"✍️ Awaiting signature ({len(unsigned)})"):
            st.dataframe(
                unsigned[['serial_number', 'customer_name', 'month', 'total_amount']],
                use_container_width=True,
                hide_index=True
            )
