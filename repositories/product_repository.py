"""
Product repository (persistence).

Catalog snapshots only. Price changes and activation rules live in
domain.product; this module just reads and writes rows.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from domain.money import DEFAULT_CURRENCY, Money
from domain.product import Product
from repositories.client import get_supabase_client
from repositories.rows import (
    execute_rows,
    parse_optional_utc_datetime,
    to_optional_iso_utc,
)

_PRODUCTS_TABLE: str = "products"


def _row_to_product(row: Mapping[str, Any]) -> Product:
    currency = str(row.get("currency") or DEFAULT_CURRENCY)
    cost_price = row.get("cost_price")
    return Product(
        product_id=str(row["product_id"]),
        tenant_id=str(row["tenant_id"]),
        name=str(row["name"]),
        sku=str(row["sku"]),
        price=Money.of(str(row["price"]), currency),
        is_active=bool(row.get("is_active", True)),
        cost_price=Money.of(str(cost_price), currency) if cost_price is not None else None,
        description=row.get("description"),
        created_at=parse_optional_utc_datetime(row.get("created_at_utc")),
        updated_at=parse_optional_utc_datetime(row.get("updated_at_utc")),
    )


def _product_to_row(product: Product) -> Dict[str, Any]:
    return {
        "product_id": product.product_id,
        "tenant_id": product.tenant_id,
        "name": product.name,
        "sku": product.sku,
        "price": str(product.price.amount),
        "currency": product.price.currency,
        "cost_price": str(product.cost_price.amount) if product.cost_price is not None else None,
        "is_active": product.is_active,
        "description": product.description,
        "created_at_utc": to_optional_iso_utc(product.created_at, name="created_at"),
        "updated_at_utc": to_optional_iso_utc(product.updated_at, name="updated_at"),
    }


class SupabaseProductRepository:
    def __init__(self, client: Any = None) -> None:
        self._client = client if client is not None else get_supabase_client()

    def find_by_id(self, product_id: str, tenant_id: str) -> Optional[Product]:
        query = (
            self._client.table(_PRODUCTS_TABLE)
            .select("*")
            .eq("product_id", product_id)
            .eq("tenant_id", tenant_id)
            .limit(1)
        )
        rows = execute_rows(query, "fetch product")
        return _row_to_product(rows[0]) if rows else None

    def find_by_sku(self, sku: str, tenant_id: str) -> Optional[Product]:
        query = (
            self._client.table(_PRODUCTS_TABLE)
            .select("*")
            .eq("sku", sku.strip().upper())
            .eq("tenant_id", tenant_id)
            .limit(1)
        )
        rows = execute_rows(query, "fetch product")
        return _row_to_product(rows[0]) if rows else None

    def list_all(self, tenant_id: str, *, is_active: Optional[bool] = None) -> List[Product]:
        query = self._client.table(_PRODUCTS_TABLE).select("*").eq("tenant_id", tenant_id)
        if is_active is not None:
            query = query.eq("is_active", is_active)
        return [_row_to_product(row) for row in execute_rows(query.order("name"), "list products")]

    def save(self, product: Product) -> None:
        query = (
            self._client.table(_PRODUCTS_TABLE)
            .upsert(_product_to_row(product), on_conflict="product_id")
        )
        execute_rows(query, "save product")


__all__ = ["SupabaseProductRepository"]
