"""
Shared service instances for the API, built from settings on first use.
"""
from typing import Optional

from ..config.settings import get_settings
from ..services.catalog_service import CatalogService
from ..services.document_store import JsonDocumentStore
from ..services.invoice_service import InvoiceService
from ..services.rules_service import PricingRulesService

_store: Optional[JsonDocumentStore] = None


def get_store() -> JsonDocumentStore:
    global _store
    if _store is None:
        _store = JsonDocumentStore(get_settings().data_dir)
    return _store


def get_rules_service() -> PricingRulesService:
    return PricingRulesService(get_store(), max_tiers=get_settings().max_tiers_per_rule)


def get_invoice_service() -> InvoiceService:
    return InvoiceService(get_store(), default_notes=get_settings().default_notes)


def get_catalog_service() -> CatalogService:
    return CatalogService(get_store(), customer_tiers=get_settings().customer_tiers)
