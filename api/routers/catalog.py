"""
Catalog API Endpoints.

Customers and products, as far as sales depend on them.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends

from api.dependencies import Container, get_container, get_tenant_id
from api.models import (
    CustomerCreateRequest,
    CustomerResponse,
    ProductCreateRequest,
    ProductResponse,
    ProductUpdateRequest,
    SaleResponse,
)
from services import catalog_service, sale_service
from services.catalog_service import CreateCustomerRequest, CreateProductRequest, UpdateProductRequest

router = APIRouter()


@router.post("/customers", response_model=CustomerResponse, status_code=201, summary="Create Customer")
def create_customer(
    body: CustomerCreateRequest,
    tenant_id: str = Depends(get_tenant_id),
    container: Container = Depends(get_container),
):
    """Register a customer. Emails are unique per tenant."""
    return catalog_service.create_customer(
        CreateCustomerRequest(
            tenant_id=tenant_id,
            name=body.name,
            email=body.email,
            phone=body.phone,
            document=body.document,
        ),
        customer_store=container.customer_store,
    )


@router.get("/customers/{customer_id}", response_model=CustomerResponse, summary="Get Customer")
def get_customer(
    customer_id: str,
    tenant_id: str = Depends(get_tenant_id),
    container: Container = Depends(get_container),
):
    return catalog_service.get_customer(customer_id, tenant_id, customer_store=container.customer_store)


@router.get("/customers/{customer_id}/sales", response_model=List[SaleResponse], summary="Customer Sales")
def list_customer_sales(
    customer_id: str,
    tenant_id: str = Depends(get_tenant_id),
    container: Container = Depends(get_container),
):
    """Purchase history of a customer, oldest first."""
    return sale_service.list_customer_sales(
        customer_id,
        tenant_id,
        customer_store=container.customer_store,
        sale_store=container.sale_store,
    )


@router.post("/customers/{customer_id}/deactivate", response_model=CustomerResponse, summary="Deactivate Customer")
def deactivate_customer(
    customer_id: str,
    tenant_id: str = Depends(get_tenant_id),
    container: Container = Depends(get_container),
):
    return catalog_service.deactivate_customer(customer_id, tenant_id, customer_store=container.customer_store)


@router.post("/products", response_model=ProductResponse, status_code=201, summary="Create Product")
def create_product(
    body: ProductCreateRequest,
    tenant_id: str = Depends(get_tenant_id),
    container: Container = Depends(get_container),
):
    """Add a product to the catalog. SKUs are unique per tenant."""
    return catalog_service.create_product(
        CreateProductRequest(
            tenant_id=tenant_id,
            name=body.name,
            sku=body.sku,
            price=body.price,
            currency=body.currency or container.currency,
            cost_price=body.cost_price,
            description=body.description,
        ),
        product_store=container.product_store,
    )


@router.get("/products", response_model=List[ProductResponse], summary="List Products")
def list_products(
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
    tenant_id: str = Depends(get_tenant_id),
    container: Container = Depends(get_container),
):
    return catalog_service.list_products(
        tenant_id,
        product_store=container.product_store,
        is_active=is_active,
        search=search,
    )


@router.get("/products/{product_id}", response_model=ProductResponse, summary="Get Product")
def get_product(
    product_id: str,
    tenant_id: str = Depends(get_tenant_id),
    container: Container = Depends(get_container),
):
    return catalog_service.get_product(product_id, tenant_id, product_store=container.product_store)


@router.patch("/products/{product_id}", response_model=ProductResponse, summary="Update Product")
def update_product(
    product_id: str,
    body: ProductUpdateRequest,
    tenant_id: str = Depends(get_tenant_id),
    container: Container = Depends(get_container),
):
    """Rename or reprice a product. Items already in sales keep their snapshot."""
    return catalog_service.update_product(
        UpdateProductRequest(
            product_id=product_id,
            tenant_id=tenant_id,
            name=body.name,
            description=body.description,
            price=body.price,
        ),
        product_store=container.product_store,
    )


@router.post("/products/{product_id}/deactivate", response_model=ProductResponse, summary="Deactivate Product")
def deactivate_product(
    product_id: str,
    tenant_id: str = Depends(get_tenant_id),
    container: Container = Depends(get_container),
):
    """Take a product off sale. Items already in sales keep their snapshot."""
    return catalog_service.deactivate_product(product_id, tenant_id, product_store=container.product_store)
