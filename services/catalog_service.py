"""
Catalog service: customers and products as sale preconditions.

Only the parts a sale depends on are managed here: identity, active status,
and the name / SKU / price snapshot copied onto sale items.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from domain.customer import Customer
from domain.errors import NotFoundError, ValidationError
from domain.money import DEFAULT_CURRENCY, AmountLike
from domain.product import Product
from repositories.ports import CustomerStore, ProductStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CreateCustomerRequest:
    tenant_id: str
    name: str
    email: str
    phone: Optional[str] = None
    document: Optional[str] = None


@dataclass(frozen=True, slots=True)
class CreateProductRequest:
    tenant_id: str
    name: str
    sku: str
    price: AmountLike
    currency: str = DEFAULT_CURRENCY
    cost_price: Optional[AmountLike] = None
    description: Optional[str] = None


@dataclass(frozen=True, slots=True)
class UpdateProductRequest:
    """Fields left as None are not changed. At least one must be set."""
    product_id: str
    tenant_id: str
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[AmountLike] = None


@dataclass(frozen=True, slots=True)
class CustomerOutput:
    customer_id: str
    name: str
    email: str
    status: str
    is_active: bool
    phone: Optional[str]
    document: Optional[str]
    created_at: Optional[datetime]


@dataclass(frozen=True, slots=True)
class ProductOutput:
    product_id: str
    name: str
    sku: str
    price: Decimal
    currency: str
    is_active: bool
    cost_price: Optional[Decimal]
    profit_margin: Optional[Decimal]
    description: Optional[str]


def to_customer_output(customer: Customer) -> CustomerOutput:
    return CustomerOutput(
        customer_id=customer.customer_id,
        name=customer.name,
        email=customer.email,
        status=customer.status.value,
        is_active=customer.is_active(),
        phone=customer.phone,
        document=customer.document,
        created_at=customer.created_at,
    )


def to_product_output(product: Product) -> ProductOutput:
    return ProductOutput(
        product_id=product.product_id,
        name=product.name,
        sku=product.sku,
        price=product.price.amount,
        currency=product.price.currency,
        is_active=product.is_active,
        cost_price=product.cost_price.amount if product.cost_price is not None else None,
        profit_margin=product.profit_margin(),
        description=product.description,
    )


def create_customer(request: CreateCustomerRequest, *, customer_store: CustomerStore) -> CustomerOutput:
    """
    Register a customer.

    Raises:
        ValidationError: Malformed fields, or the email is already used in the tenant
    """
    if customer_store.find_by_email(request.email, request.tenant_id) is not None:
        raise ValidationError("Customer with this email already exists")

    customer = Customer.create(
        tenant_id=request.tenant_id,
        name=request.name,
        email=request.email,
        phone=request.phone,
        document=request.document,
    )
    customer_store.save(customer)
    logger.info("Customer created", extra={"customer_id": customer.customer_id, "tenant_id": customer.tenant_id})
    return to_customer_output(customer)


def get_customer(customer_id: str, tenant_id: str, *, customer_store: CustomerStore) -> CustomerOutput:
    customer = customer_store.find_by_id(customer_id, tenant_id)
    if customer is None:
        raise NotFoundError("Customer", customer_id)
    return to_customer_output(customer)


def deactivate_customer(customer_id: str, tenant_id: str, *, customer_store: CustomerStore) -> CustomerOutput:
    customer = customer_store.find_by_id(customer_id, tenant_id)
    if customer is None:
        raise NotFoundError("Customer", customer_id)
    customer = customer.deactivated()
    customer_store.save(customer)
    logger.info("Customer deactivated", extra={"customer_id": customer_id, "tenant_id": tenant_id})
    return to_customer_output(customer)


def create_product(request: CreateProductRequest, *, product_store: ProductStore) -> ProductOutput:
    """
    Add a product to the tenant's catalog.

    Raises:
        ValidationError: Price <= 0, blank name/SKU, or SKU already used in the tenant
    """
    if not isinstance(request.sku, str) or not request.sku.strip():
        raise ValidationError("Product SKU is required")
    if product_store.find_by_sku(request.sku, request.tenant_id) is not None:
        raise ValidationError("Product with SKU already exists")

    product = Product.create(
        tenant_id=request.tenant_id,
        name=request.name,
        sku=request.sku,
        price=request.price,
        currency=request.currency,
        cost_price=request.cost_price,
        description=request.description,
    )
    product_store.save(product)
    logger.info(
        "Product created",
        extra={"product_id": product.product_id, "sku": product.sku, "tenant_id": product.tenant_id},
    )
    return to_product_output(product)


def get_product(product_id: str, tenant_id: str, *, product_store: ProductStore) -> ProductOutput:
    product = product_store.find_by_id(product_id, tenant_id)
    if product is None:
        raise NotFoundError("Product", product_id)
    return to_product_output(product)


def update_product(request: UpdateProductRequest, *, product_store: ProductStore) -> ProductOutput:
    """
    Rename, redescribe or reprice a product.

    Sale items already holding the product keep the name, SKU and price they
    were added with.

    Raises:
        NotFoundError: Product does not exist in the tenant
        ValidationError: No field supplied, or price <= 0
        BusinessRuleError: Price change on an inactive product
    """
    if request.name is None and request.description is None and request.price is None:
        raise ValidationError("At least one field must be provided to update")

    product = product_store.find_by_id(request.product_id, request.tenant_id)
    if product is None:
        raise NotFoundError("Product", request.product_id)

    previous_price = product.price.amount
    if request.name is not None or request.description is not None:
        product = product.with_details(name=request.name, description=request.description)
    if request.price is not None:
        product = product.with_price(request.price)
    product_store.save(product)

    if product.price.amount != previous_price:
        logger.info(
            "Product price changed",
            extra={
                "product_id": product.product_id,
                "tenant_id": product.tenant_id,
                "old_price": str(previous_price),
                "new_price": str(product.price.amount),
            },
        )
    return to_product_output(product)


def list_products(
    tenant_id: str,
    *,
    product_store: ProductStore,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
) -> List[ProductOutput]:
    """Tenant's products by name; `search` matches name or SKU, case-insensitively."""
    products = product_store.list_all(tenant_id, is_active=is_active)
    if search and search.strip():
        needle = search.strip().lower()
        products = [p for p in products if needle in p.name.lower() or needle in p.sku.lower()]
    return [to_product_output(p) for p in products]


def deactivate_product(product_id: str, tenant_id: str, *, product_store: ProductStore) -> ProductOutput:
    """Take a product off sale. Existing sale items keep their snapshot."""
    product = product_store.find_by_id(product_id, tenant_id)
    if product is None:
        raise NotFoundError("Product", product_id)
    product = product.deactivated()
    product_store.save(product)
    logger.info("Product deactivated", extra={"product_id": product_id, "tenant_id": tenant_id})
    return to_product_output(product)


__all__ = [
    "CreateCustomerRequest",
    "CreateProductRequest",
    "UpdateProductRequest",
    "CustomerOutput",
    "ProductOutput",
    "to_customer_output",
    "to_product_output",
    "create_customer",
    "get_customer",
    "deactivate_customer",
    "create_product",
    "get_product",
    "update_product",
    "list_products",
    "deactivate_product",
]
