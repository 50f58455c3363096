import sys
import os

import pandas as pd

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from statement_tool.ui.editor import items_from_editor


def test_rows_added_in_the_editor_have_defaults():
    df = pd.DataFrame([
        {'description': '小卡', 'specification': 'A1', 'quantity': 20},
        {'description': '馬克杯', 'specification': None, 'quantity': float('nan')},
    ])
    items = items_from_editor(df)
    assert [(i.description, i.specification, i.quantity) for i in items] == [
        ('小卡', 'A1', 20),
        ('馬克杯', '', 1),
    ]


def test_nan_specification_becomes_empty():
    df = pd.DataFrame({'description': ['小卡'], 'specification': [float('nan')], 'quantity': [3.0]})
    item = items_from_editor(df)[0]
    assert item.specification == ''
    assert item.quantity == 3


def test_rows_without_product_are_skipped():
    df = pd.DataFrame({
        'description': ['', None, float('nan'), '小卡'],
        'specification': ['', '', '', ''],
        'quantity': [1, 2, 3, 4],
    })
    items = items_from_editor(df)
    assert len(items) == 1
    assert items[0].quantity == 4


def test_empty_editor():
    df = pd.DataFrame(columns=['description', 'specification', 'quantity'])
    assert items_from_editor(df) == []
