"""
Conversion of the line-item editor grid into statement items.

Rows added through the dynamic editor start with NaN/None cells, so every
cell is checked with pd.isna before use.
"""
import pandas as pd

from ..engine.models import InvoiceItem


def _cell_text(value) -> str:
    if value is None or pd.isna(value):
        return ''
    return str(value)


def _cell_quantity(value) -> int:
    if value is None or pd.isna(value):
        return 1
    quantity = int(value)
    return quantity if quantity >= 1 else 1


def items_from_editor(df: pd.DataFrame) -> list[InvoiceItem]:
    """Build unpriced items from editor rows, skipping rows with no product."""
    items = []
    for _, row in df.iterrows():
        description = _cell_text(row.get('description'))
        if not description:
            continue
        items.append(InvoiceItem(
            description=description,
            specification=_cell_text(row.get('specification')),
            quantity=_cell_quantity(row.get('quantity')),
        ))
    return items
