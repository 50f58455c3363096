"""
Rules Service - CRUD operations for pricing rules.
Handles reading/writing the pricingRules collection and its change history.
"""
import logging
import uuid
from dataclasses import dataclass, field, replace
from typing import Optional

from ..engine.models import PricingRule, PricingRuleHistory, PricingTier, Product
from ..engine.invoice_engine import now_millis
from .document_store import JsonDocumentStore

logger = logging.getLogger(__name__)

RULES = 'pricingRules'
HISTORY = 'pricingHistory'

UPDATABLE_FIELDS = (
    'product_id', 'customer_id', 'price_category', 'specification',
    'base_price', 'tiers', 'is_active',
)
# Scope fields may be set to None to widen a rule; these may not
REQUIRED_FIELDS = ('product_id', 'base_price', 'tiers', 'is_active')


@dataclass
class ValidationResult:
    """Result of rule validation."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_error(self, message: str):
        self.errors.append(message)
        self.valid = False


class PricingRulesService:
    """Service for managing pricing rules."""

    def __init__(self, store: JsonDocumentStore, max_tiers: int = 5):
        self.store = store
        self.max_tiers = max_tiers

    def _known_products(self) -> dict[str, Product]:
        return {p.id: p for p in (Product.from_document(d) for d in self.store.all('products'))}

    def list_rules(self, product_id: Optional[str] = None, include_inactive: bool = True) -> list[PricingRule]:
        """List rules, optionally for one product."""
        rules = []
        for doc in self.store.all(RULES):
            rule = PricingRule.from_document(doc)
            if product_id and rule.product_id != product_id:
                continue
            if include_inactive or rule.is_active:
                rules.append(rule)
        return rules

    def get_rule(self, rule_id: str) -> PricingRule:
        """Get a single rule by ID."""
        doc = self.store.get(RULES, rule_id)
        if doc is None:
            raise KeyError(f"Rule '{rule_id}' not found")
        return PricingRule.from_document(doc)

    def create_rule(self, rule: PricingRule) -> PricingRule:
        """Validate and store a new rule."""
        if not rule.id:
            rule = replace(rule, id=uuid.uuid4().hex[:12])
        elif self.store.get(RULES, rule.id) is not None:
            raise ValueError(f"Rule with ID '{rule.id}' already exists")

        validation = self.validate_rule(rule)
        if not validation.valid:
            raise ValueError("; ".join(validation.errors))

        now = now_millis()
        rule = replace(rule, created_at=now, updated_at=now)
        self.store.upsert(RULES, rule.to_document())
        self._record(rule.id, 'created', {'rule': rule.to_document()})
        logger.info("Created pricing rule %s for product %s", rule.id, rule.product_id)
        return rule

    def update_rule(self, rule_id: str, updates: dict) -> PricingRule:
        """Apply field updates to an existing rule."""
        rule = self.get_rule(rule_id)
        updates = dict(updates)

        for key, value in updates.items():
            if key not in UPDATABLE_FIELDS:
                raise ValueError(f"Field '{key}' cannot be updated")
            if value is None and key in REQUIRED_FIELDS:
                raise ValueError(f"Field '{key}' cannot be cleared")
        if 'tiers' in updates:
            updates['tiers'] = [
                t if isinstance(t, PricingTier) else PricingTier.from_document(t) for t in updates['tiers']
            ]
        updated = replace(rule, **updates)

        changes = {}
        for key in updates:
            old, new = getattr(rule, key), getattr(updated, key)
            if old != new:
                if key == 'tiers':
                    old, new = [t.to_document() for t in old], [t.to_document() for t in new]
                changes[key] = {'from': old, 'to': new}

        validation = self.validate_rule(updated)
        if not validation.valid:
            raise ValueError("; ".join(validation.errors))

        updated = replace(updated, updated_at=now_millis())
        self.store.upsert(RULES, updated.to_document())

        if list(changes) == ['is_active']:
            self._record(rule_id, 'activated' if updated.is_active else 'deactivated', changes)
        elif changes:
            self._record(rule_id, 'updated', changes)
        logger.info("Updated pricing rule %s (%s)", rule_id, ", ".join(changes) or "no changes")
        return updated

    def set_active(self, rule_id: str, active: bool) -> PricingRule:
        return self.update_rule(rule_id, {'is_active': active})

    def delete_rule(self, rule_id: str) -> bool:
        """Delete a rule."""
        rule = self.get_rule(rule_id)
        self.store.delete(RULES, rule_id)
        self._record(rule_id, 'deleted', {'rule': rule.to_document()})
        logger.info("Deleted pricing rule %s", rule_id)
        return True

    def history(self, rule_id: Optional[str] = None) -> list[PricingRuleHistory]:
        """Change history, newest first."""
        entries = [PricingRuleHistory.from_document(d) for d in self.store.all(HISTORY)]
        if rule_id:
            entries = [e for e in entries if e.pricing_rule_id == rule_id]
        # Stored order breaks ties between entries written in the same millisecond
        return sorted(reversed(entries), key=lambda e: e.timestamp, reverse=True)

    def _record(self, rule_id: str, action: str, changes: dict):
        entry = PricingRuleHistory(
            id=uuid.uuid4().hex[:12],
            pricing_rule_id=rule_id,
            action=action,
            changes=changes,
            timestamp=now_millis(),
        )
        self.store.upsert(HISTORY, entry.to_document())

    def validate_rule(self, rule: PricingRule) -> ValidationResult:
        """Validate a rule before saving."""
        result = ValidationResult(valid=True)

        if not rule.product_id:
            result.add_error("Product is required")

        if rule.base_price < 0:
            result.add_error("Base price cannot be negative")

        if len(rule.tiers) > self.max_tiers:
            result.add_error(f"A rule can have at most {self.max_tiers} tiers")

        for tier in rule.tiers:
            if tier.min_quantity < 1:
                result.add_error(f"Tier minimum quantity must be at least 1 (got {tier.min_quantity})")
            if tier.max_quantity is not None and tier.max_quantity < tier.min_quantity:
                result.add_error(
                    f"Tier {tier.min_quantity}-{tier.max_quantity}: maximum is below minimum"
                )
            if tier.price < 0:
                result.add_error(f"Tier starting at {tier.min_quantity} has a negative price")

        ordered = sorted(rule.tiers, key=lambda t: t.min_quantity)
        for current, following in zip(ordered, ordered[1:]):
            if current.max_quantity is None:
                result.add_error(f"Open-ended tier starting at {current.min_quantity} must be the last tier")
            elif current.max_quantity >= following.min_quantity:
                result.add_error(
                    f"Tiers overlap: {current.min_quantity}-{current.max_quantity} "
                    f"and tier starting at {following.min_quantity}"
                )
            elif following.min_quantity > current.max_quantity + 1:
                result.warnings.append(
                    f"Quantities {current.max_quantity + 1}-{following.min_quantity - 1} "
                    "fall between tiers and will use the base price"
                )

        if rule.customer_id and rule.price_category:
            result.warnings.append(
                "Rule has both a customer and a price category; the category is ignored"
            )

        products = self._known_products()
        if rule.product_id and products and rule.product_id not in products:
            result.warnings.append(f"Product '{rule.product_id}' not found in catalog")

        if result.valid and rule.is_active:
            result.warnings.extend(self._check_conflicts(rule))

        return result

    def _check_conflicts(self, rule: PricingRule) -> list[str]:
        """Active rules with an identical scope shadow each other."""
        warnings = []
        for existing in self.list_rules(product_id=rule.product_id, include_inactive=False):
            if existing.id == rule.id:
                continue
            if existing.scope == rule.scope:
                warnings.append(
                    f"Rule '{existing.id}' has the same scope; only the first stored rule is used"
                )
        return warnings

    def get_stats(self) -> dict:
        """Get statistics about rules."""
        rules = self.list_rules()
        active = [r for r in rules if r.is_active]
        by_scope = {'customer': 0, 'category': 0, 'general': 0}
        for r in rules:
            if r.customer_id:
                by_scope['customer'] += 1
            elif r.price_category:
                by_scope['category'] += 1
            else:
                by_scope['general'] += 1

        return {
            'total': len(rules),
            'active': len(active),
            'inactive': len(rules) - len(active),
            'products': len({r.product_id for r in rules}),
            'by_scope': by_scope,
        }
