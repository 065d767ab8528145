"""
Customer repository for managing buyer accounts.

Provides tenant-scoped lookups and upserts of Customer snapshots in Supabase.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from domain.customer import Customer, CustomerStatus
from repositories.client import get_supabase_client
from repositories.rows import (
    execute_rows,
    parse_optional_utc_datetime,
    to_optional_iso_utc,
)

_CUSTOMERS_TABLE: str = "customers"


def _row_to_customer(row: Mapping[str, Any]) -> Customer:
    """Convert a Supabase row into a Customer."""

    return Customer(
        customer_id=str(row["customer_id"]),
        tenant_id=str(row["tenant_id"]),
        name=str(row["name"]),
        email=str(row["email"]),
        status=CustomerStatus(str(row.get("status", "active"))),
        phone=row.get("phone"),
        document=row.get("document"),
        created_at=parse_optional_utc_datetime(row.get("created_at_utc")),
        updated_at=parse_optional_utc_datetime(row.get("updated_at_utc")),
    )


def _customer_to_row(customer: Customer) -> Dict[str, Any]:
    return {
        "customer_id": customer.customer_id,
        "tenant_id": customer.tenant_id,
        "name": customer.name,
        "email": customer.email,
        "status": customer.status.value,
        "phone": customer.phone,
        "document": customer.document,
        "created_at_utc": to_optional_iso_utc(customer.created_at, name="created_at"),
        "updated_at_utc": to_optional_iso_utc(customer.updated_at, name="updated_at"),
    }


class SupabaseCustomerRepository:
    def __init__(self, client: Any = None) -> None:
        self._client = client if client is not None else get_supabase_client()

    def find_by_id(self, customer_id: str, tenant_id: str) -> Optional[Customer]:
        """
        Get a customer by id within a tenant.

        Returns:
            Customer domain model or None if not found
        """
        query = (
            self._client.table(_CUSTOMERS_TABLE)
            .select("*")
            .eq("customer_id", customer_id)
            .eq("tenant_id", tenant_id)
            .limit(1)
        )
        rows = execute_rows(query, "fetch customer")
        return _row_to_customer(rows[0]) if rows else None

    def find_by_email(self, email: str, tenant_id: str) -> Optional[Customer]:
        query = (
            self._client.table(_CUSTOMERS_TABLE)
            .select("*")
            .eq("email", email.strip().lower())
            .eq("tenant_id", tenant_id)
            .limit(1)
        )
        rows = execute_rows(query, "fetch customer")
        return _row_to_customer(rows[0]) if rows else None

    def save(self, customer: Customer) -> None:
        query = (
            self._client.table(_CUSTOMERS_TABLE)
            .upsert(_customer_to_row(customer), on_conflict="customer_id")
        )
        execute_rows(query, "save customer")


__all__ = ["SupabaseCustomerRepository"]
