"""
Price Resolver - Finds the unit price for a product line.

Rules are scoped by customer, price category and specification. The most
specific scope wins; within a rule the quantity picks the tier price.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional, Union

from .models import PricingRule, PricingTier, TraceStep

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchContext:
    """Buyer context for one lookup. Blank values count as not supplied."""
    customer_id: Optional[str] = None
    price_category: Optional[str] = None
    specification: Optional[str] = None

    @classmethod
    def build(
        cls,
        customer_id: Optional[str] = None,
        price_category: Optional[str] = None,
        specification: Optional[str] = None,
    ) -> 'MatchContext':
        return cls(
            customer_id=customer_id or None,
            price_category=price_category or None,
            specification=specification or None,
        )


@dataclass(frozen=True)
class MatchLevel:
    """One step of the priority cascade."""
    name: str
    description: str
    requires: tuple[str, ...]
    predicate: Callable[[PricingRule, MatchContext], bool]

    def applies_to(self, ctx: MatchContext) -> bool:
        """A level only runs when the caller supplied the context it needs."""
        return all(getattr(ctx, attr) for attr in self.requires)

    def first_match(self, rules: Iterable[PricingRule], ctx: MatchContext) -> Optional[PricingRule]:
        for rule in rules:
            if self.predicate(rule, ctx):
                return rule
        return None


def _customer_and_spec(rule: PricingRule, ctx: MatchContext) -> bool:
    return rule.customer_id == ctx.customer_id and rule.specification == ctx.specification


def _customer_any_spec(rule: PricingRule, ctx: MatchContext) -> bool:
    return rule.customer_id == ctx.customer_id and rule.specification is None


def _category_and_spec(rule: PricingRule, ctx: MatchContext) -> bool:
    return (
        rule.price_category == ctx.price_category
        and rule.customer_id is None
        and rule.specification == ctx.specification
    )


def _category_any_spec(rule: PricingRule, ctx: MatchContext) -> bool:
    return (
        rule.price_category == ctx.price_category
        and rule.customer_id is None
        and rule.specification is None
    )


def _general_and_spec(rule: PricingRule, ctx: MatchContext) -> bool:
    return (
        rule.price_category is None
        and rule.customer_id is None
        and rule.specification == ctx.specification
    )


def _general_any_spec(rule: PricingRule, ctx: MatchContext) -> bool:
    return rule.price_category is None and rule.customer_id is None and rule.specification is None


# Most specific first
PRIORITY_LEVELS: tuple[MatchLevel, ...] = (
    MatchLevel('customer_spec', "Customer rule for this specification",
               ('customer_id', 'specification'), _customer_and_spec),
    MatchLevel('customer', "Customer rule for any specification",
               ('customer_id',), _customer_any_spec),
    MatchLevel('category_spec', "Price category rule for this specification",
               ('price_category', 'specification'), _category_and_spec),
    MatchLevel('category', "Price category rule for any specification",
               ('price_category',), _category_any_spec),
    MatchLevel('general_spec', "General rule for this specification",
               ('specification',), _general_and_spec),
    MatchLevel('general', "General rule", (), _general_any_spec),
)

FALLBACK_LEVEL = 'fallback'


@dataclass
class PriceResolution:
    """Result of a traced price lookup. price is None when no rule exists."""
    price: Optional[float]
    rule_id: Optional[str] = None
    level: Optional[str] = None
    trace: list[TraceStep] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.price is not None

    def add_trace(self, step: str, description: str, value: str = None):
        self.trace.append(TraceStep(step=step, description=description, value=value))

    def get_trace_text(self) -> str:
        """Get human-readable trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"→ {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"→ {t.step}: {t.description}")
        return "\n".join(lines)


def find_price_in_tiers(tiers: Iterable[PricingTier], quantity: int, base_price: float) -> float:
    """
    Pick the unit price for a quantity from a rule's tiers.

    Quantities below the first tier get base_price. Quantities above a
    bounded top tier keep the top tier's price.
    """
    ordered = sorted(tiers, key=lambda t: t.min_quantity)
    if not ordered:
        return base_price

    for tier in reversed(ordered):
        if tier.contains(quantity):
            return tier.price

    if quantity < ordered[0].min_quantity:
        return base_price

    last = ordered[-1]
    if last.max_quantity is not None and quantity > last.max_quantity:
        return last.price

    # Quantity sits in a gap between two tiers
    return base_price


def _as_rule(rule: Union[PricingRule, dict]) -> PricingRule:
    if isinstance(rule, PricingRule):
        return rule
    return PricingRule.from_document(rule)


def resolve_price_with_trace(
    product_id: str,
    quantity: int,
    specification: Optional[str] = None,
    customer_id: Optional[str] = None,
    customer_price_category: Optional[str] = None,
    rules: Iterable[Union[PricingRule, dict]] = (),
) -> PriceResolution:
    """
    Resolve a unit price and record how it was found.

    Each level rescans every active rule for the product; the first rule
    satisfying the level's predicate wins.
    """
    ctx = MatchContext.build(customer_id, customer_price_category, specification)
    candidates = [
        r for r in (_as_rule(rule) for rule in rules or ())
        if r.product_id == product_id and r.is_active
    ]

    result = PriceResolution(price=None)
    result.add_trace("Rule Lookup", f"Active rules for product {product_id}", str(len(candidates)))

    if not candidates:
        result.add_trace("Not Found", "No active rule, use catalog price")
        return result

    for level in PRIORITY_LEVELS:
        if not level.applies_to(ctx):
            result.add_trace(level.name, f"{level.description} (skipped, no context)")
            continue

        rule = level.first_match(candidates, ctx)
        if rule is None:
            result.add_trace(level.name, f"{level.description} (no match)")
            continue

        result.price = find_price_in_tiers(rule.tiers, quantity, rule.base_price)
        result.rule_id = rule.id
        result.level = level.name
        result.add_trace(level.name, f"{level.description} matched rule {rule.id or '?'}",
                         f"{result.price:g}")
        logger.debug("product=%s qty=%s resolved at %s -> %s", product_id, quantity, level.name, result.price)
        return result

    rule = candidates[0]
    result.price = find_price_in_tiers(rule.tiers, quantity, rule.base_price)
    result.rule_id = rule.id
    result.level = FALLBACK_LEVEL
    result.add_trace("Fallback", f"No scope matched, using first active rule {rule.id or '?'}",
                     f"{result.price:g}")
    logger.debug("product=%s qty=%s fell back to rule %s", product_id, quantity, rule.id)
    return result


def resolve_price(
    product_id: str,
    quantity: int,
    specification: Optional[str] = None,
    customer_id: Optional[str] = None,
    customer_price_category: Optional[str] = None,
    rules: Iterable[Union[PricingRule, dict]] = (),
) -> Optional[float]:
    """
    Return the applicable unit price, or None when the product has no active rule.

    Never raises for missing data; callers fall back to the catalog price.
    """
    return resolve_price_with_trace(
        product_id, quantity, specification, customer_id, customer_price_category, rules
    ).price
