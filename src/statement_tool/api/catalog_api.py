"""
Catalog API - FastAPI routers for customers, products and revenue targets.
"""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from typing import Optional

from ..engine.models import Customer, Product, RevenueTarget
from ..services.catalog_service import CatalogService
from .state import get_catalog_service

customers_router = APIRouter(prefix="/api/customers", tags=["customers"])
products_router = APIRouter(prefix="/api/products", tags=["products"])
targets_router = APIRouter(prefix="/api/targets", tags=["targets"])


class CustomerModel(BaseModel):
    """A customer as sent and returned by the API."""
    id: str = ""
    name: str
    address: str = ""
    phone: str = ""
    tax_id: Optional[str] = None
    contact_persons: list[str] = []
    customer_tier: Optional[str] = None
    price_category: Optional[str] = None

    def to_customer(self, customer_id: Optional[str] = None) -> Customer:
        return Customer(**{**self.model_dump(), 'id': customer_id or self.id})

    @classmethod
    def from_customer(cls, customer: Customer) -> 'CustomerModel':
        return cls(
            id=customer.id,
            name=customer.name,
            address=customer.address,
            phone=customer.phone,
            tax_id=customer.tax_id,
            contact_persons=customer.contact_persons,
            customer_tier=customer.customer_tier,
            price_category=customer.price_category,
        )


class ProductModel(BaseModel):
    """A catalog product."""
    id: str = ""
    name: str
    price: float = 0.0
    category: str = ""
    specification: str = ""
    size_options: list[str] = []

    def to_product(self, product_id: Optional[str] = None) -> Product:
        return Product(**{**self.model_dump(), 'id': product_id or self.id})


class TargetModel(BaseModel):
    """A revenue target; quarter and month are left out for an annual target."""
    id: str = ""
    year: int
    target_amount: float
    quarter: Optional[int] = Field(default=None, ge=1, le=4)
    month: Optional[int] = Field(default=None, ge=1, le=12)
    customer_id: Optional[str] = None
    actual_amount: Optional[float] = None

    def to_target(self, target_id: Optional[str] = None) -> RevenueTarget:
        return RevenueTarget(**{**self.model_dump(), 'id': target_id or self.id})


def _save(save, item, **kwargs):
    try:
        return save(item, **kwargs)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _found(fetch, item_id: str):
    try:
        return fetch(item_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=e.args[0])


# Customers

@customers_router.get("", response_model=list[CustomerModel])
async def list_customers(service: CatalogService = Depends(get_catalog_service)):
    return [CustomerModel.from_customer(c) for c in service.list_customers()]


@customers_router.get("/{customer_id}", response_model=CustomerModel)
async def get_customer(customer_id: str, service: CatalogService = Depends(get_catalog_service)):
    return CustomerModel.from_customer(_found(service.get_customer, customer_id))


@customers_router.post("", response_model=CustomerModel, status_code=201)
async def create_customer(body: CustomerModel, service: CatalogService = Depends(get_catalog_service)):
    """Create a customer; an id is generated when none is given."""
    return CustomerModel.from_customer(_save(service.save_customer, body.to_customer(), create=True))


@customers_router.put("/{customer_id}", response_model=CustomerModel)
async def save_customer(customer_id: str, body: CustomerModel, service: CatalogService = Depends(get_catalog_service)):
    """Create or replace the customer stored under this id."""
    return CustomerModel.from_customer(_save(service.save_customer, body.to_customer(customer_id)))


@customers_router.delete("/{customer_id}")
async def delete_customer(customer_id: str, service: CatalogService = Depends(get_catalog_service)):
    _found(service.delete_customer, customer_id)
    return {"success": True, "message": f"Customer '{customer_id}' deleted"}


# Products

@products_router.get("", response_model=list[ProductModel])
async def list_products(category: Optional[str] = None, service: CatalogService = Depends(get_catalog_service)):
    return [ProductModel(**p.__dict__) for p in service.list_products(category)]


@products_router.get("/{product_id}", response_model=ProductModel)
async def get_product(product_id: str, service: CatalogService = Depends(get_catalog_service)):
    return ProductModel(**_found(service.get_product, product_id).__dict__)


@products_router.post("", response_model=ProductModel, status_code=201)
async def create_product(body: ProductModel, service: CatalogService = Depends(get_catalog_service)):
    return ProductModel(**_save(service.save_product, body.to_product(), create=True).__dict__)


@products_router.put("/{product_id}", response_model=ProductModel)
async def save_product(product_id: str, body: ProductModel, service: CatalogService = Depends(get_catalog_service)):
    return ProductModel(**_save(service.save_product, body.to_product(product_id)).__dict__)


@products_router.delete("/{product_id}")
async def delete_product(product_id: str, service: CatalogService = Depends(get_catalog_service)):
    _found(service.delete_product, product_id)
    return {"success": True, "message": f"Product '{product_id}' deleted"}


# Revenue targets

@targets_router.get("", response_model=list[TargetModel])
async def list_targets(year: Optional[int] = None, service: CatalogService = Depends(get_catalog_service)):
    return [TargetModel(**t.__dict__) for t in service.list_targets(year)]


@targets_router.get("/{target_id}", response_model=TargetModel)
async def get_target(target_id: str, service: CatalogService = Depends(get_catalog_service)):
    return TargetModel(**_found(service.get_target, target_id).__dict__)


@targets_router.post("", response_model=TargetModel, status_code=201)
async def create_target(body: TargetModel, service: CatalogService = Depends(get_catalog_service)):
    return TargetModel(**_save(service.save_target, body.to_target(), create=True).__dict__)


@targets_router.put("/{target_id}", response_model=TargetModel)
async def save_target(target_id: str, body: TargetModel, service: CatalogService = Depends(get_catalog_service)):
    return TargetModel(**_save(service.save_target, body.to_target(target_id)).__dict__)


@targets_router.delete("/{target_id}")
async def delete_target(target_id: str, service: CatalogService = Depends(get_catalog_service)):
    _found(service.delete_target, target_id)
    return {"success": True, "message": f"Revenue target '{target_id}' deleted"}
