"""
Rules API - FastAPI router for pricing rule management.
"""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from typing import Optional

from ..engine.models import PricingRule, PricingTier
from ..services.rules_service import PricingRulesService
from .state import get_rules_service

router = APIRouter(prefix="/api/rules", tags=["rules"])


# Pydantic models for API
class TierModel(BaseModel):
    """One quantity tier."""
    id: str = ""
    min_quantity: int = Field(ge=0)
    max_quantity: Optional[int] = None
    price: float


class RuleCreate(BaseModel):
    """Request model for creating a rule."""
    id: Optional[str] = None
    product_id: str
    customer_id: Optional[str] = None
    price_category: Optional[str] = None
    specification: Optional[str] = None
    base_price: float
    tiers: list[TierModel] = []
    is_active: bool = True

    def to_rule(self) -> PricingRule:
        return PricingRule(
            id=self.id or "",
            product_id=self.product_id,
            customer_id=self.customer_id,
            price_category=self.price_category,
            specification=self.specification,
            base_price=self.base_price,
            tiers=[PricingTier(**t.model_dump()) for t in self.tiers],
            is_active=self.is_active,
        )


class RuleUpdate(BaseModel):
    """Request model for updating a rule."""
    product_id: Optional[str] = None
    customer_id: Optional[str] = None
    price_category: Optional[str] = None
    specification: Optional[str] = None
    base_price: Optional[float] = None
    tiers: Optional[list[TierModel]] = None
    is_active: Optional[bool] = None


class RuleResponse(BaseModel):
    """Response model for a rule."""
    id: str
    product_id: str
    customer_id: Optional[str]
    price_category: Optional[str]
    specification: Optional[str]
    base_price: float
    tiers: list[TierModel]
    is_active: bool
    created_at: Optional[int]
    updated_at: Optional[int]

    @classmethod
    def from_rule(cls, rule: PricingRule) -> 'RuleResponse':
        return cls(
            id=rule.id,
            product_id=rule.product_id,
            customer_id=rule.customer_id,
            price_category=rule.price_category,
            specification=rule.specification,
            base_price=rule.base_price,
            tiers=[TierModel(id=t.id, min_quantity=t.min_quantity, max_quantity=t.max_quantity, price=t.price)
                   for t in rule.tiers],
            is_active=rule.is_active,
            created_at=rule.created_at,
            updated_at=rule.updated_at,
        )


class ValidationResponse(BaseModel):
    """Response model for validation."""
    valid: bool
    errors: list[str]
    warnings: list[str]


class HistoryResponse(BaseModel):
    id: str
    pricing_rule_id: str
    action: str
    changes: dict
    timestamp: int


# Endpoints

@router.get("", response_model=list[RuleResponse])
async def list_rules(
    product_id: Optional[str] = None,
    include_inactive: bool = True,
    service: PricingRulesService = Depends(get_rules_service),
):
    """List pricing rules."""
    rules = service.list_rules(product_id=product_id, include_inactive=include_inactive)
    return [RuleResponse.from_rule(rule) for rule in rules]


@router.get("/stats")
async def get_stats(service: PricingRulesService = Depends(get_rules_service)):
    """Get rule statistics."""
    return service.get_stats()


@router.post("/validate", response_model=ValidationResponse)
async def validate_rule(rule_data: RuleCreate, service: PricingRulesService = Depends(get_rules_service)):
    """Validate a rule without saving."""
    result = service.validate_rule(rule_data.to_rule())
    return ValidationResponse(valid=result.valid, errors=result.errors, warnings=result.warnings)


@router.get("/{rule_id}", response_model=RuleResponse)
async def get_rule(rule_id: str, service: PricingRulesService = Depends(get_rules_service)):
    """Get a single rule by ID."""
    try:
        return RuleResponse.from_rule(service.get_rule(rule_id))
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Rule '{rule_id}' not found")


@router.get("/{rule_id}/history", response_model=list[HistoryResponse])
async def get_history(rule_id: str, service: PricingRulesService = Depends(get_rules_service)):
    """Change history of one rule, newest first."""
    return [HistoryResponse(**entry.__dict__) for entry in service.history(rule_id)]


@router.post("", response_model=RuleResponse, status_code=201)
async def create_rule(rule_data: RuleCreate, service: PricingRulesService = Depends(get_rules_service)):
    """Create a new pricing rule."""
    try:
        return RuleResponse.from_rule(service.create_rule(rule_data.to_rule()))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.put("/{rule_id}", response_model=RuleResponse)
async def update_rule(rule_id: str, updates: RuleUpdate, service: PricingRulesService = Depends(get_rules_service)):
    """Update an existing rule."""
    # Only fields present in the request body are applied
    update_dict = updates.model_dump(exclude_unset=True)
    if update_dict.get('tiers') is not None:
        update_dict['tiers'] = [PricingTier(**t) for t in update_dict['tiers']]

    try:
        updated = service.update_rule(rule_id, update_dict)
        return RuleResponse.from_rule(updated)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Rule '{rule_id}' not found")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{rule_id}")
async def delete_rule(rule_id: str, service: PricingRulesService = Depends(get_rules_service)):
    """Delete a rule."""
    try:
        service.delete_rule(rule_id)
        return {"success": True, "message": f"Rule '{rule_id}' deleted"}
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Rule '{rule_id}' not found")
