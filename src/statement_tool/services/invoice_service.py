"""
Invoice Service - Store-backed statement workflow.

Loads fresh snapshots for every operation, lets the InvoiceEngine compute the
result and writes it back. Two creations racing on the same customer can
compute the same serial; callers serialize writes if that matters.
"""
import logging
from dataclasses import replace
from datetime import date as date_cls
from typing import Iterable, Optional

from ..engine.invoice_engine import InvoiceEngine
from ..engine.models import Customer, Invoice, InvoiceItem, PricingRule, Product, RevenueTarget
from .document_store import JsonDocumentStore

logger = logging.getLogger(__name__)

INVOICES = 'invoices'


class InvoiceService:
    """Service for creating, saving and signing statements."""

    def __init__(self, store: JsonDocumentStore, default_notes: Optional[str] = None):
        self.store = store
        self.default_notes = default_notes

    def load_invoices(self) -> list[Invoice]:
        return [Invoice.from_document(d) for d in self.store.all(INVOICES)]

    def load_customers(self) -> list[Customer]:
        return [Customer.from_document(d) for d in self.store.all('customers')]

    def load_products(self) -> list[Product]:
        return [Product.from_document(d) for d in self.store.all('products')]

    def load_rules(self) -> list[PricingRule]:
        return [PricingRule.from_document(d) for d in self.store.all('pricingRules')]

    def load_targets(self) -> list[RevenueTarget]:
        return [RevenueTarget.from_document(d) for d in self.store.all('revenueTargets')]

    def engine(self) -> InvoiceEngine:
        """An engine over the current state of the store."""
        kwargs = {}
        if self.default_notes:
            kwargs['default_notes'] = self.default_notes
        return InvoiceEngine(
            products=self.load_products(),
            customers=self.load_customers(),
            rules=self.load_rules(),
            invoices=self.load_invoices(),
            **kwargs,
        )

    def get_invoice(self, invoice_id: str) -> Invoice:
        doc = self.store.get(INVOICES, invoice_id)
        if doc is None:
            raise KeyError(f"Invoice '{invoice_id}' not found")
        return Invoice.from_document(doc)

    def create_invoice(
        self,
        customer_name: str,
        items: Iterable[InvoiceItem] = (),
        today: Optional[date_cls] = None,
    ) -> Invoice:
        """
        Create and save a statement for a customer.

        Lines are priced from the rules; the statement is stored as pending.
        """
        engine = self.engine()
        invoice = engine.new_draft(today=today)
        items = list(items)
        if items:
            invoice.items = [item if item.id else replace(item, id=f"{invoice.id}-{i}")
                             for i, item in enumerate(items, start=1)]
        invoice = engine.assign_customer(invoice, customer_name)
        return self.save_invoice(invoice)

    def save_invoice(self, invoice: Invoice) -> Invoice:
        saved = self.engine().save(invoice)
        self.store.upsert(INVOICES, saved.to_document())
        logger.info("Saved invoice %s (%s)", saved.serial_number, saved.status)
        return saved

    def sign_invoice(self, invoice_id: str, signature_base64: str) -> Invoice:
        engine = self.engine()
        signed = engine.sign(engine.find_invoice(invoice_id), signature_base64)
        self.store.upsert(INVOICES, signed.to_document())
        logger.info("Signed invoice %s", signed.serial_number)
        return signed

    def batch_sign(self, invoice_ids: Iterable[str], signature_base64: str) -> list[Invoice]:
        signed = self.engine().batch_sign(invoice_ids, signature_base64)
        if signed:
            self.store.upsert_many(INVOICES, [inv.to_document() for inv in signed])
        logger.info("Batch signed %d invoices", len(signed))
        return signed

    def delete_invoice(self, invoice_id: str) -> bool:
        if not self.store.delete(INVOICES, invoice_id):
            raise KeyError(f"Invoice '{invoice_id}' not found")
        logger.info("Deleted invoice %s", invoice_id)
        return True
