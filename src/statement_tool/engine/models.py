"""
Data models for the statement engine.

Uses dataclasses for structured, type-safe data representation. Each model
converts to and from the camelCase document shape kept in the collections.
"""
from dataclasses import dataclass, field
from typing import Optional


INVOICE_STATUSES = ('draft', 'pending', 'completed')


def _optional_str(value) -> Optional[str]:
    """Empty strings are stored by the editors for 'not set'. Anything else is kept verbatim."""
    if value is None or value == '':
        return None
    return str(value)


def _optional_int(value) -> Optional[int]:
    if value is None or value == '':
        return None
    return int(value)


@dataclass
class TraceStep:
    """A single step in a resolution trace."""
    step: str
    description: str
    value: Optional[str] = None


@dataclass
class PricingTier:
    """A quantity range inside a pricing rule carrying its own unit price."""
    min_quantity: int
    price: float
    max_quantity: Optional[int] = None
    id: str = ""

    def contains(self, quantity: int) -> bool:
        """True when quantity falls inside [min_quantity, max_quantity]."""
        if quantity < self.min_quantity:
            return False
        return self.max_quantity is None or quantity <= self.max_quantity

    def to_document(self) -> dict:
        doc = {
            'id': self.id,
            'minQuantity': self.min_quantity,
            'price': self.price,
        }
        if self.max_quantity is not None:
            doc['maxQuantity'] = self.max_quantity
        return doc

    @classmethod
    def from_document(cls, doc: dict) -> 'PricingTier':
        return cls(
            id=doc.get('id', ''),
            min_quantity=int(doc.get('minQuantity', 0) or 0),
            max_quantity=_optional_int(doc.get('maxQuantity')),
            price=float(doc.get('price', 0) or 0),
        )


@dataclass
class PricingRule:
    """
    A named scope of pricing applicability.

    Specificity comes from which of customer_id / price_category /
    specification are populated; there is no explicit priority field.
    """
    product_id: str
    base_price: float
    tiers: list[PricingTier] = field(default_factory=list)
    customer_id: Optional[str] = None
    price_category: Optional[str] = None
    specification: Optional[str] = None
    is_active: bool = True
    id: str = ""
    created_at: Optional[int] = None
    updated_at: Optional[int] = None

    def __post_init__(self):
        # Editors write "" for cleared fields; those are wildcards
        self.customer_id = _optional_str(self.customer_id)
        self.price_category = _optional_str(self.price_category)
        self.specification = _optional_str(self.specification)

    @property
    def scope(self) -> tuple:
        """The fields that decide which line items the rule applies to."""
        return (self.product_id, self.customer_id, self.price_category, self.specification)

    def to_document(self) -> dict:
        """Convert to the stored document shape."""
        return {
            'id': self.id,
            'productId': self.product_id,
            'customerId': self.customer_id,
            'priceCategory': self.price_category,
            'specification': self.specification,
            'basePrice': self.base_price,
            'tiers': [t.to_document() for t in self.tiers],
            'isActive': self.is_active,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }

    @classmethod
    def from_document(cls, doc: dict) -> 'PricingRule':
        """Create a PricingRule from a stored document."""
        return cls(
            id=doc.get('id', ''),
            product_id=str(doc.get('productId', '')),
            customer_id=doc.get('customerId'),
            price_category=doc.get('priceCategory'),
            specification=doc.get('specification'),
            base_price=float(doc.get('basePrice', 0) or 0),
            tiers=[PricingTier.from_document(t) for t in doc.get('tiers') or []],
            # Documents without the flag are not live
            is_active=bool(doc.get('isActive', False)),
            created_at=doc.get('createdAt'),
            updated_at=doc.get('updatedAt'),
        )


@dataclass
class Product:
    """A catalog product. `price` is the list price used when no rule applies."""
    id: str
    name: str
    price: float = 0.0
    category: str = ""
    specification: str = ""
    size_options: list[str] = field(default_factory=list)

    def to_document(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'category': self.category,
            'specification': self.specification,
            'price': self.price,
            'sizeOptions': list(self.size_options),
        }

    @classmethod
    def from_document(cls, doc: dict) -> 'Product':
        return cls(
            id=doc.get('id', ''),
            name=doc.get('name', ''),
            category=doc.get('category', '') or '',
            specification=doc.get('specification', '') or '',
            price=float(doc.get('price', 0) or 0),
            size_options=list(doc.get('sizeOptions') or []),
        )


@dataclass
class Customer:
    """A customer record."""
    id: str
    name: str
    address: str = ""
    phone: str = ""
    tax_id: Optional[str] = None
    contact_persons: list[str] = field(default_factory=list)
    customer_tier: Optional[str] = None
    price_category: Optional[str] = None  # deprecated, use customer_tier
    start_serial_number: Optional[int] = None  # legacy, no longer used

    def to_document(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'address': self.address,
            'phone': self.phone,
            'taxId': self.tax_id,
            'contactPersons': list(self.contact_persons),
            'customerTier': self.customer_tier,
            'priceCategory': self.price_category,
            'startSerialNumber': self.start_serial_number,
        }

    @classmethod
    def from_document(cls, doc: dict) -> 'Customer':
        return cls(
            id=doc.get('id', ''),
            name=doc.get('name', ''),
            address=doc.get('address', '') or '',
            phone=doc.get('phone', '') or '',
            tax_id=doc.get('taxId'),
            contact_persons=list(doc.get('contactPersons') or []),
            customer_tier=_optional_str(doc.get('customerTier')),
            price_category=_optional_str(doc.get('priceCategory')),
            start_serial_number=_optional_int(doc.get('startSerialNumber')),
        )


def effective_tier(customer: Optional[Customer]) -> str:
    """
    Resolve a customer's tier, honouring the deprecated price_category field.

    This is the only place the customer_tier / price_category fallback lives.
    """
    if customer is None:
        return 'general'
    return customer.customer_tier or customer.price_category or 'general'


@dataclass
class InvoiceItem:
    """A single line on a statement."""
    description: str = ""
    specification: str = ""
    quantity: int = 1
    unit_price: float = 0.0
    amount: float = 0.0
    remark: str = ""
    id: str = ""

    def to_document(self) -> dict:
        return {
            'id': self.id,
            'description': self.description,
            'specification': self.specification,
            'quantity': self.quantity,
            'unitPrice': self.unit_price,
            'amount': self.amount,
            'remark': self.remark,
        }

    @classmethod
    def from_document(cls, doc: dict) -> 'InvoiceItem':
        return cls(
            id=doc.get('id', ''),
            description=doc.get('description', '') or '',
            specification=doc.get('specification', '') or '',
            quantity=int(doc.get('quantity', 1) or 0),
            unit_price=float(doc.get('unitPrice', 0) or 0),
            amount=float(doc.get('amount', 0) or 0),
            remark=doc.get('remark', '') or '',
        )


@dataclass
class Invoice:
    """A statement of account."""
    id: str
    serial_number: str
    date: str  # ISO date string YYYY-MM-DD
    customer_name: str = ""
    customer_id: Optional[str] = None
    customer_address: str = ""
    customer_phone: str = ""
    customer_tax_id: Optional[str] = None
    contact_person: str = ""
    items: list[InvoiceItem] = field(default_factory=list)
    total_amount: float = 0.0
    signature_base64: Optional[str] = None
    notes: str = ""
    remarks: str = ""
    created_at: Optional[int] = None
    status: str = "draft"

    @property
    def is_completed(self) -> bool:
        return self.status == 'completed'

    def to_document(self) -> dict:
        """Convert to the stored document shape."""
        return {
            'id': self.id,
            'serialNumber': self.serial_number,
            'customerName': self.customer_name,
            'customerId': self.customer_id,
            'customerAddress': self.customer_address,
            'customerPhone': self.customer_phone,
            'customerTaxId': self.customer_tax_id,
            'contactPerson': self.contact_person,
            'date': self.date,
            'items': [item.to_document() for item in self.items],
            'totalAmount': self.total_amount,
            'signatureBase64': self.signature_base64,
            'notes': self.notes,
            'remarks': self.remarks,
            'createdAt': self.created_at,
            'status': self.status,
        }

    @classmethod
    def from_document(cls, doc: dict) -> 'Invoice':
        """Create an Invoice from a stored document."""
        status = doc.get('status', 'draft')
        if status not in INVOICE_STATUSES:
            raise ValueError(f"Unknown invoice status '{status}'")
        return cls(
            id=doc.get('id', ''),
            serial_number=doc.get('serialNumber', '') or '',
            customer_name=doc.get('customerName', '') or '',
            customer_id=_optional_str(doc.get('customerId')),
            customer_address=doc.get('customerAddress', '') or '',
            customer_phone=doc.get('customerPhone', '') or '',
            customer_tax_id=doc.get('customerTaxId'),
            contact_person=doc.get('contactPerson', '') or '',
            date=doc.get('date', ''),
            items=[InvoiceItem.from_document(i) for i in doc.get('items') or []],
            total_amount=float(doc.get('totalAmount', 0) or 0),
            signature_base64=doc.get('signatureBase64'),
            notes=doc.get('notes', '') or '',
            remarks=doc.get('remarks', '') or '',
            created_at=doc.get('createdAt'),
            status=status,
        )


@dataclass
class PricingRuleHistory:
    """An audit record for a pricing rule mutation."""
    id: str
    pricing_rule_id: str
    action: str  # created / updated / deleted / activated / deactivated
    timestamp: int
    changes: dict = field(default_factory=dict)

    def to_document(self) -> dict:
        return {
            'id': self.id,
            'pricingRuleId': self.pricing_rule_id,
            'action': self.action,
            'changes': self.changes,
            'timestamp': self.timestamp,
        }

    @classmethod
    def from_document(cls, doc: dict) -> 'PricingRuleHistory':
        return cls(
            id=doc.get('id', ''),
            pricing_rule_id=doc.get('pricingRuleId', ''),
            action=doc.get('action', ''),
            changes=doc.get('changes') or {},
            timestamp=int(doc.get('timestamp', 0) or 0),
        )


@dataclass
class RevenueTarget:
    """Annual (quarter=None) or quarterly revenue target."""
    id: str
    year: int
    target_amount: float
    quarter: Optional[int] = None
    month: Optional[int] = None
    customer_id: Optional[str] = None
    actual_amount: Optional[float] = None

    @classmethod
    def from_document(cls, doc: dict) -> 'RevenueTarget':
        actual = doc.get('actualAmount')
        return cls(
            id=doc.get('id', ''),
            year=int(doc['year']),
            quarter=_optional_int(doc.get('quarter')),
            month=_optional_int(doc.get('month')),
            customer_id=_optional_str(doc.get('customerId')),
            target_amount=float(doc.get('targetAmount', 0) or 0),
            actual_amount=float(actual) if actual is not None else None,
        )

    def to_document(self) -> dict:
        return {
            'id': self.id,
            'year': self.year,
            'quarter': self.quarter,
            'month': self.month,
            'customerId': self.customer_id,
            'targetAmount': self.target_amount,
            'actualAmount': self.actual_amount,
        }
