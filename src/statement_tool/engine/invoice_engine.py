"""
Invoice Engine - Line pricing and statement lifecycle over data snapshots.

Drives the statement editor:
- Product selection fills in the default specification and price
- Quantity / specification changes re-run the price resolver
- Catalog price fallback when no pricing rule applies
- Serial assignment when a customer is chosen
- draft → pending → completed status transitions

The engine never writes anything; every operation returns new objects.
"""
import logging
import uuid
from dataclasses import replace
from datetime import date as date_cls, datetime
from typing import Iterable, Optional

from .models import Customer, Invoice, InvoiceItem, PricingRule, Product, effective_tier
from .price_resolver import PriceResolution, resolve_price_with_trace
from .serial_numbers import PLACEHOLDER_SERIAL, is_placeholder_serial, next_serial

logger = logging.getLogger(__name__)

DEFAULT_NOTES = "本單據經簽收後即視為正式驗收憑證。"
BLANK_LINES = 3

EDITABLE_ITEM_FIELDS = ('description', 'specification', 'quantity', 'unit_price', 'remark')


class InvoiceStateError(ValueError):
    """Raised for an operation the invoice's status does not allow."""


def generate_id() -> str:
    return uuid.uuid4().hex[:12]


def now_millis() -> int:
    return int(datetime.now().timestamp() * 1000)


def calculate_total(items: Iterable[InvoiceItem]) -> float:
    """Sum of line amounts."""
    return sum(item.amount for item in items)


class InvoiceEngine:
    """
    Prices statement lines and moves statements through their lifecycle.

    Resolution order for a line's unit price:
    1. Pricing rules for the product (see price_resolver)
    2. The product's catalog price
    """

    def __init__(
        self,
        products: Iterable[Product] = (),
        customers: Iterable[Customer] = (),
        rules: Iterable[PricingRule] = (),
        invoices: Iterable[Invoice] = (),
        default_notes: str = DEFAULT_NOTES,
    ):
        """Take snapshots of the collections."""
        self.products = tuple(products)
        self.customers = tuple(customers)
        self.rules = tuple(rules)
        self.invoices = tuple(invoices)
        self.default_notes = default_notes

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_customer(self, name_or_id: Optional[str]) -> Optional[Customer]:
        """Find a customer by id, then by name."""
        if not name_or_id:
            return None
        for customer in self.customers:
            if customer.id == name_or_id:
                return customer
        for customer in self.customers:
            if customer.name == name_or_id:
                return customer
        return None

    def find_product(self, name: Optional[str]) -> Optional[Product]:
        """Line descriptions hold the product name."""
        if not name:
            return None
        for product in self.products:
            if product.name == name:
                return product
        return None

    def find_invoice(self, invoice_id: str) -> Invoice:
        for invoice in self.invoices:
            if invoice.id == invoice_id:
                return invoice
        raise KeyError(f"Invoice '{invoice_id}' not found")

    def customer_for_invoice(self, invoice: Invoice) -> Optional[Customer]:
        return self.find_customer(invoice.customer_id) or self.find_customer(invoice.customer_name)

    def customer_invoices(self, customer: Customer, exclude_id: Optional[str] = None) -> list[Invoice]:
        """Prior invoices for a customer, matched by id when recorded, else by name."""
        matched = []
        for invoice in self.invoices:
            if exclude_id and invoice.id == exclude_id:
                continue
            if invoice.customer_id:
                if invoice.customer_id == customer.id:
                    matched.append(invoice)
            elif invoice.customer_name == customer.name:
                matched.append(invoice)
        return matched

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------

    def resolve(
        self,
        product: Product,
        quantity: int,
        specification: Optional[str],
        customer: Optional[Customer],
    ) -> PriceResolution:
        """Run the resolver with the customer's normalized tier as price category."""
        return resolve_price_with_trace(
            product_id=product.id,
            quantity=quantity,
            specification=specification,
            customer_id=customer.id if customer else None,
            customer_price_category=effective_tier(customer) if customer else None,
            rules=self.rules,
        )

    def price_for(
        self,
        product: Product,
        quantity: int,
        specification: Optional[str] = None,
        customer: Optional[Customer] = None,
    ) -> float:
        """Rule price, or the product's catalog price when no rule applies."""
        resolution = self.resolve(product, quantity, specification, customer)
        if resolution.found:
            return resolution.price
        logger.debug("No pricing rule for %s, using catalog price %s", product.name, product.price)
        return product.price

    def price_line(self, item: InvoiceItem, customer: Optional[Customer] = None) -> InvoiceItem:
        """Reprice a line from the rules; unknown products keep their typed price."""
        product = self.find_product(item.description)
        if product is None:
            return replace(item, amount=item.quantity * item.unit_price)

        unit_price = self.price_for(product, item.quantity or 1, item.specification, customer)
        return replace(item, unit_price=unit_price, amount=item.quantity * unit_price)

    def update_item(self, invoice: Invoice, item_id: str, field_name: str, value) -> Invoice:
        """
        Apply one edit from the line editor and return the updated invoice.

        Args:
            invoice: Invoice being edited
            item_id: id of the line to change
            field_name: one of EDITABLE_ITEM_FIELDS
            value: new value for the field

        Returns:
            New Invoice with the line repriced and the total recomputed
        """
        if invoice.is_completed:
            raise InvoiceStateError(f"Invoice {invoice.serial_number} is completed and cannot be edited")
        if field_name not in EDITABLE_ITEM_FIELDS:
            raise ValueError(f"Field '{field_name}' is not editable")

        customer = self.customer_for_invoice(invoice)
        new_items = []
        found = False

        for item in invoice.items:
            if item.id != item_id:
                new_items.append(item)
                continue
            found = True
            new_items.append(self._apply_item_edit(item, field_name, value, customer))

        if not found:
            raise KeyError(f"Line '{item_id}' not found on invoice {invoice.serial_number}")

        return replace(invoice, items=new_items, total_amount=calculate_total(new_items))

    def _apply_item_edit(self, item: InvoiceItem, field_name: str, value, customer: Optional[Customer]) -> InvoiceItem:
        if field_name == 'quantity':
            value = int(value)
        elif field_name == 'unit_price':
            value = float(value)
        updated = replace(item, **{field_name: value})

        # Product selection fills in specification and price
        if field_name == 'description' and self.products:
            product = self.find_product(value)
            if product is not None:
                if not product.size_options:
                    updated = replace(updated, specification=product.specification or '')
                qty = item.quantity or 1
                unit_price = self.price_for(product, qty, updated.specification, customer)
                updated = replace(updated, unit_price=unit_price, amount=qty * unit_price)

        # Specification and quantity changes only reprice when a rule applies
        if field_name in ('specification', 'quantity') and self.rules:
            product = self.find_product(item.description)
            if product is not None:
                qty = updated.quantity or 1
                resolution = self.resolve(product, qty, updated.specification, customer)
                if resolution.found:
                    updated = replace(updated, unit_price=resolution.price, amount=qty * resolution.price)

        if field_name in ('quantity', 'unit_price'):
            updated = replace(updated, amount=updated.quantity * updated.unit_price)

        return updated

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def new_draft(self, today: Optional[date_cls] = None) -> Invoice:
        """A blank draft with a placeholder serial and three empty lines."""
        today = today or date_cls.today()
        return Invoice(
            id=generate_id(),
            serial_number=PLACEHOLDER_SERIAL,
            date=today.isoformat(),
            items=[InvoiceItem(id=generate_id()) for _ in range(BLANK_LINES)],
            notes=self.default_notes,
            created_at=now_millis(),
            status='draft',
        )

    def assign_customer(self, invoice: Invoice, customer_name: str) -> Invoice:
        """
        Attach a customer to an invoice.

        Copies contact details and, while the serial is still a placeholder,
        assigns the customer's next serial. Lines are repriced for the customer.
        """
        if invoice.is_completed:
            raise InvoiceStateError(f"Invoice {invoice.serial_number} is completed and cannot be edited")

        updated = replace(invoice, customer_name=customer_name)
        customer = self.find_customer(customer_name)
        if customer is None:
            return self._reprice(updated, None)

        updated = replace(
            updated,
            customer_id=customer.id,
            customer_address=customer.address or updated.customer_address,
            customer_phone=customer.phone or updated.customer_phone,
            customer_tax_id=customer.tax_id or updated.customer_tax_id,
        )

        if is_placeholder_serial(invoice.serial_number):
            prior = self.customer_invoices(customer, exclude_id=invoice.id)
            serial = next_serial(customer.id, effective_tier(customer), prior,
                                 start_serial_number=customer.start_serial_number)
            logger.info("Assigned serial %s to invoice %s", serial, invoice.id)
            updated = replace(updated, serial_number=serial)

        return self._reprice(updated, customer)

    def _reprice(self, invoice: Invoice, customer: Optional[Customer]) -> Invoice:
        items = [self.price_line(item, customer) if item.description else item for item in invoice.items]
        return replace(invoice, items=items, total_amount=calculate_total(items))

    def save(self, invoice: Invoice) -> Invoice:
        """Saving moves a draft to pending; completed invoices stay completed."""
        status = 'completed' if invoice.is_completed else 'pending'
        return replace(invoice, status=status, total_amount=calculate_total(invoice.items))

    def sign(self, invoice: Invoice, signature_base64: str) -> Invoice:
        """Attach a signature. Re-signing a completed invoice is allowed."""
        if not signature_base64:
            raise InvoiceStateError("A signature is required to complete an invoice")
        return replace(invoice, signature_base64=signature_base64, status='completed')

    def batch_sign(self, invoice_ids: Iterable[str], signature_base64: str) -> list[Invoice]:
        """Sign every listed invoice that is not yet completed."""
        if not signature_base64:
            raise InvoiceStateError("A signature is required to complete an invoice")
        wanted = set(invoice_ids)
        to_sign = [inv for inv in self.invoices if inv.id in wanted and not inv.is_completed]
        if not to_sign:
            logger.info("Batch sign: all %d selected invoices already completed", len(wanted))
        return [self.sign(inv, signature_base64) for inv in to_sign]
