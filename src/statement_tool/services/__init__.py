"""Services subpackage - document store and store-backed workflows."""
from .document_store import JsonDocumentStore
from .rules_service import PricingRulesService, ValidationResult
from .invoice_service import InvoiceService
from .catalog_service import CatalogService

__all__ = ['JsonDocumentStore', 'PricingRulesService', 'ValidationResult', 'InvoiceService', 'CatalogService']
