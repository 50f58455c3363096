"""
Centralized settings and path configuration for the statement tool.
"""
import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional

from ..engine.invoice_engine import DEFAULT_NOTES


def get_project_root() -> Path:
    """Get the project root directory (where pyproject.toml lives)."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'pyproject.toml').exists():
            return parent
    # Fallback to 3 levels up from this file
    return Path(__file__).resolve().parent.parent.parent.parent


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    # Project paths
    project_root: Path

    # Directory holding one JSON file per document collection
    data_dir: Path

    # Rule editor limit (the resolver itself has no limit)
    max_tiers_per_rule: int = 5

    customer_tiers: tuple = ('general', 'industry', 'kangshiting')

    company_name: str = "影城數位印刷"
    default_notes: str = DEFAULT_NOTES
    log_level: str = "INFO"

    @classmethod
    def load(cls, project_root: Optional[Path] = None) -> 'Settings':
        """Load settings from the project structure and environment."""
        root = project_root or get_project_root()

        data_dir = os.getenv('STATEMENT_TOOL_DATA_DIR')

        return cls(
            project_root=root,
            data_dir=Path(data_dir) if data_dir else root / 'data',
            max_tiers_per_rule=int(os.getenv('STATEMENT_TOOL_MAX_TIERS', '5')),
            company_name=os.getenv('STATEMENT_TOOL_COMPANY', cls.company_name),
            log_level=os.getenv('STATEMENT_TOOL_LOG_LEVEL', 'INFO').upper(),
        )


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings
