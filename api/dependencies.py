"""
Dependency wiring for the API.

The backend (in-memory or Supabase) is chosen once from settings. Tests swap
the whole container through `app.dependency_overrides[get_container]`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache

from fastapi import Header, HTTPException

from config.settings import get_settings
from repositories.memory import (
    InMemoryCustomerStore,
    InMemoryProductStore,
    InMemorySaleStore,
    InMemoryStockStore,
)
from repositories.ports import CustomerStore, EventPublisher, ProductStore, SaleStore, StockStore
from services.event_publisher import LoggingEventPublisher


@dataclass
class Container:
    customer_store: CustomerStore
    product_store: ProductStore
    stock_store: StockStore
    sale_store: SaleStore
    publisher: EventPublisher = field(default_factory=LoggingEventPublisher)
    currency: str = "BRL"


def build_memory_container(currency: str = "BRL") -> Container:
    return Container(
        customer_store=InMemoryCustomerStore(),
        product_store=InMemoryProductStore(),
        stock_store=InMemoryStockStore(),
        sale_store=InMemorySaleStore(),
        currency=currency,
    )


def build_supabase_container(currency: str = "BRL") -> Container:
    from repositories.client import get_supabase_client
    from repositories.customer_repository import SupabaseCustomerRepository
    from repositories.product_repository import SupabaseProductRepository
    from repositories.sale_repository import SupabaseSaleRepository
    from repositories.stock_repository import SupabaseStockRepository

    client = get_supabase_client()
    return Container(
        customer_store=SupabaseCustomerRepository(client),
        product_store=SupabaseProductRepository(client),
        stock_store=SupabaseStockRepository(client),
        sale_store=SupabaseSaleRepository(client),
        currency=currency,
    )


@lru_cache(maxsize=1)
def get_container() -> Container:
    settings = get_settings()
    if settings.backend == "supabase":
        return build_supabase_container(settings.default_currency)
    return build_memory_container(settings.default_currency)


def get_tenant_id(x_tenant_id: str = Header(default="")) -> str:
    if not x_tenant_id.strip():
        raise HTTPException(status_code=400, detail="X-Tenant-ID header is required")
    return x_tenant_id.strip()


def get_user_id(x_user_id: str = Header(default="")) -> str:
    if not x_user_id.strip():
        raise HTTPException(status_code=400, detail="X-User-ID header is required")
    return x_user_id.strip()
