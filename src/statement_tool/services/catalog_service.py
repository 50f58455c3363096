"""
Catalog Service - customers, products and revenue targets.

Saving replaces the whole document (create or overwrite by id); deleting an
unknown id is a KeyError.
"""
import logging
import uuid
from dataclasses import replace
from typing import Optional

from ..engine.models import Customer, Product, RevenueTarget
from .document_store import JsonDocumentStore

logger = logging.getLogger(__name__)

CUSTOMERS = 'customers'
PRODUCTS = 'products'
TARGETS = 'revenueTargets'


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


class CatalogService:
    """Store-backed maintenance of the reference data statements are built from."""

    def __init__(self, store: JsonDocumentStore, customer_tiers: tuple = ('general', 'industry', 'kangshiting')):
        self.store = store
        self.customer_tiers = tuple(customer_tiers)

    def _check_new(self, collection: str, doc_id: str, create: bool):
        if create and doc_id and self.store.get(collection, doc_id) is not None:
            raise ValueError(f"ID '{doc_id}' already exists in {collection}")

    # ------------------------------------------------------------------
    # Customers
    # ------------------------------------------------------------------

    def list_customers(self) -> list[Customer]:
        return [Customer.from_document(d) for d in self.store.all(CUSTOMERS)]

    def get_customer(self, customer_id: str) -> Customer:
        doc = self.store.get(CUSTOMERS, customer_id)
        if doc is None:
            raise KeyError(f"Customer '{customer_id}' not found")
        return Customer.from_document(doc)

    def save_customer(self, customer: Customer, create: bool = False) -> Customer:
        """Create or replace a customer. With create=True an existing id is an error."""
        self._check_new(CUSTOMERS, customer.id, create)
        if not customer.name.strip():
            raise ValueError("Customer name is required")
        if customer.customer_tier and customer.customer_tier not in self.customer_tiers:
            raise ValueError(
                f"Unknown customer tier '{customer.customer_tier}' "
                f"(expected one of {', '.join(self.customer_tiers)})"
            )
        if not customer.id:
            customer = replace(customer, id=_new_id())
        self.store.upsert(CUSTOMERS, customer.to_document())
        logger.info("Saved customer %s (%s)", customer.id, customer.name)
        return customer

    def delete_customer(self, customer_id: str) -> bool:
        if not self.store.delete(CUSTOMERS, customer_id):
            raise KeyError(f"Customer '{customer_id}' not found")
        logger.info("Deleted customer %s", customer_id)
        return True

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def list_products(self, category: Optional[str] = None) -> list[Product]:
        products = [Product.from_document(d) for d in self.store.all(PRODUCTS)]
        if category:
            products = [p for p in products if p.category == category]
        return products

    def get_product(self, product_id: str) -> Product:
        doc = self.store.get(PRODUCTS, product_id)
        if doc is None:
            raise KeyError(f"Product '{product_id}' not found")
        return Product.from_document(doc)

    def save_product(self, product: Product, create: bool = False) -> Product:
        """Create or replace a product."""
        self._check_new(PRODUCTS, product.id, create)
        if not product.name.strip():
            raise ValueError("Product name is required")
        if product.price < 0:
            raise ValueError("Product price cannot be negative")
        if not product.id:
            product = replace(product, id=_new_id())
        self.store.upsert(PRODUCTS, product.to_document())
        logger.info("Saved product %s (%s)", product.id, product.name)
        return product

    def delete_product(self, product_id: str) -> bool:
        """Delete a product. Rules that point at it are left in place."""
        if not self.store.delete(PRODUCTS, product_id):
            raise KeyError(f"Product '{product_id}' not found")
        logger.info("Deleted product %s", product_id)
        return True

    # ------------------------------------------------------------------
    # Revenue targets
    # ------------------------------------------------------------------

    def list_targets(self, year: Optional[int] = None) -> list[RevenueTarget]:
        targets = [RevenueTarget.from_document(d) for d in self.store.all(TARGETS)]
        if year is not None:
            targets = [t for t in targets if t.year == year]
        return targets

    def get_target(self, target_id: str) -> RevenueTarget:
        doc = self.store.get(TARGETS, target_id)
        if doc is None:
            raise KeyError(f"Revenue target '{target_id}' not found")
        return RevenueTarget.from_document(doc)

    def save_target(self, target: RevenueTarget, create: bool = False) -> RevenueTarget:
        """Create or replace an annual, quarterly or monthly target."""
        self._check_new(TARGETS, target.id, create)
        if target.year < 1:
            raise ValueError(f"Invalid target year {target.year}")
        if target.quarter is not None and not 1 <= target.quarter <= 4:
            raise ValueError(f"Quarter must be 1-4 (got {target.quarter})")
        if target.month is not None and not 1 <= target.month <= 12:
            raise ValueError(f"Month must be 1-12 (got {target.month})")
        if target.target_amount < 0:
            raise ValueError("Target amount cannot be negative")
        if not target.id:
            target = replace(target, id=_new_id())
        self.store.upsert(TARGETS, target.to_document())
        logger.info("Saved revenue target %s for %s", target.id, target.year)
        return target

    def delete_target(self, target_id: str) -> bool:
        if not self.store.delete(TARGETS, target_id):
            raise KeyError(f"Revenue target '{target_id}' not found")
        logger.info("Deleted revenue target %s", target_id)
        return True
