"""
Tests for settings loading and logging setup.
"""
import logging
import sys
import os

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from statement_tool.config.logging import configure_logging
from statement_tool.config.settings import Settings
from statement_tool.engine.invoice_engine import DEFAULT_NOTES


def test_defaults(tmp_path, monkeypatch):
    for name in ('STATEMENT_TOOL_DATA_DIR', 'STATEMENT_TOOL_MAX_TIERS',
                 'STATEMENT_TOOL_COMPANY', 'STATEMENT_TOOL_LOG_LEVEL'):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.load(project_root=tmp_path)
    assert settings.data_dir == tmp_path / 'data'
    assert settings.max_tiers_per_rule == 5
    assert settings.default_notes == DEFAULT_NOTES
    assert settings.log_level == 'INFO'
    assert 'industry' in settings.customer_tiers


def test_environment_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv('STATEMENT_TOOL_DATA_DIR', str(tmp_path / 'elsewhere'))
    monkeypatch.setenv('STATEMENT_TOOL_MAX_TIERS', '8')
    monkeypatch.setenv('STATEMENT_TOOL_COMPANY', 'Test Print Co.')
    monkeypatch.setenv('STATEMENT_TOOL_LOG_LEVEL', 'debug')

    settings = Settings.load(project_root=tmp_path)
    assert settings.data_dir == tmp_path / 'elsewhere'
    assert settings.max_tiers_per_rule == 8
    assert settings.company_name == 'Test Print Co.'
    assert settings.log_level == 'DEBUG'


def test_configure_logging_sets_level():
    root = logging.getLogger()
    previous = root.level
    try:
        logger = configure_logging('warning')
        assert logger.name == 'statement_tool'
        assert root.level == logging.WARNING
    finally:
        root.setLevel(previous)
