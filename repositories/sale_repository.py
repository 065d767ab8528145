"""
Sale repository (persistence).

This module provides *only* persistence operations for the Sale aggregate. It
does not enforce business rules (status transitions, payment limits); those
live in domain.sale. A sale is written together with its items and payments
by the `save_sale_aggregate` PostgreSQL function and read back through
`Sale.restore`, which recomputes every derived total.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from domain.discount import Discount, DiscountType
from domain.money import DEFAULT_CURRENCY
from domain.payment import Payment, PaymentMethod, PaymentStatus
from domain.sale import Sale, SaleStatus
from domain.sale_item import SaleItem
from repositories.client import get_supabase_client
from repositories.rows import (
    execute_rows,
    parse_optional_utc_datetime,
    parse_utc_datetime,
    to_iso_utc,
    to_optional_iso_utc,
)

# Supabase table names. Keep these aligned with your database schema.
_SALES_TABLE: str = "sales"
_ITEMS_TABLE: str = "sale_items"
_PAYMENTS_TABLE: str = "sale_payments"
_SAVE_SALE_RPC: str = "save_sale_aggregate"


def _row_to_discount(row: Mapping[str, Any]) -> Optional[Discount]:
    discount_type = row.get("discount_type")
    if not discount_type:
        return None
    return Discount(value=str(row["discount_value"]), type=DiscountType(str(discount_type)))


def _discount_columns(discount: Optional[Discount]) -> Dict[str, Any]:
    if discount is None:
        return {"discount_type": None, "discount_value": None}
    return {"discount_type": discount.type.value, "discount_value": str(discount.value)}


def _row_to_item(row: Mapping[str, Any], currency: str) -> SaleItem:
    return SaleItem.restore(
        item_id=str(row["item_id"]),
        product_id=str(row["product_id"]),
        product_name=str(row["product_name"]),
        product_sku=str(row["product_sku"]),
        quantity=int(row["quantity"]),
        unit_price=str(row["unit_price"]),
        subtotal=str(row["subtotal"]),
        total=str(row["total"]),
        discount=_row_to_discount(row),
        currency=currency,
    )


def _row_to_payment(row: Mapping[str, Any], currency: str) -> Payment:
    return Payment.restore(
        payment_id=str(row["payment_id"]),
        method=PaymentMethod(str(row["method"])),
        amount=str(row["amount"]),
        status=PaymentStatus(str(row["status"])),
        created_at=parse_utc_datetime(row["created_at_utc"]),
        currency=currency,
        paid_at=parse_optional_utc_datetime(row.get("paid_at_utc")),
        transaction_id=row.get("transaction_id"),
        notes=row.get("notes"),
    )


def _row_to_sale(
    row: Mapping[str, Any],
    item_rows: List[Mapping[str, Any]],
    payment_rows: List[Mapping[str, Any]],
) -> Sale:
    """Convert a Supabase sale row plus its child rows into a Sale."""

    currency = str(row.get("currency") or DEFAULT_CURRENCY)
    return Sale.restore(
        sale_id=str(row["sale_id"]),
        customer_id=str(row["customer_id"]),
        customer_name=str(row.get("customer_name") or ""),
        user_id=str(row["user_id"]),
        tenant_id=str(row["tenant_id"]),
        status=SaleStatus(str(row["status"])),
        created_at=parse_utc_datetime(row["created_at_utc"]),
        updated_at=parse_utc_datetime(row["updated_at_utc"]),
        currency=currency,
        items=[_row_to_item(item, currency) for item in item_rows],
        payments=[_row_to_payment(payment, currency) for payment in payment_rows],
        discount=_row_to_discount(row),
        notes=row.get("notes"),
        confirmed_at=parse_optional_utc_datetime(row.get("confirmed_at_utc")),
        paid_at=parse_optional_utc_datetime(row.get("paid_at_utc")),
        cancelled_at=parse_optional_utc_datetime(row.get("cancelled_at_utc")),
        cancellation_reason=row.get("cancellation_reason"),
    )


def _sale_to_payload(sale: Sale) -> Dict[str, Any]:
    sale_row: Dict[str, Any] = {
        "sale_id": sale.sale_id,
        "customer_id": sale.customer_id,
        "customer_name": sale.customer_name,
        "user_id": sale.user_id,
        "tenant_id": sale.tenant_id,
        "status": sale.status.value,
        "currency": sale.currency,
        "subtotal": str(sale.subtotal),
        "discount_amount": str(sale.discount_amount),
        "total": str(sale.total),
        "notes": sale.notes,
        "cancellation_reason": sale.cancellation_reason,
        "created_at_utc": to_iso_utc(sale.created_at, name="created_at"),
        "updated_at_utc": to_iso_utc(sale.updated_at, name="updated_at"),
        "confirmed_at_utc": to_optional_iso_utc(sale.confirmed_at, name="confirmed_at"),
        "paid_at_utc": to_optional_iso_utc(sale.paid_at, name="paid_at"),
        "cancelled_at_utc": to_optional_iso_utc(sale.cancelled_at, name="cancelled_at"),
        **_discount_columns(sale.discount),
    }

    item_rows = [
        {
            "item_id": item.item_id,
            "sale_id": sale.sale_id,
            "tenant_id": sale.tenant_id,
            "position": position,
            "product_id": item.product_id,
            "product_name": item.product_name,
            "product_sku": item.product_sku,
            "quantity": item.quantity.value,
            "unit_price": str(item.unit_price.amount),
            "subtotal": str(item.subtotal.amount),
            "total": str(item.total.amount),
            **_discount_columns(item.discount),
        }
        for position, item in enumerate(sale.items)
    ]

    payment_rows = [
        {
            "payment_id": payment.payment_id,
            "sale_id": sale.sale_id,
            "tenant_id": sale.tenant_id,
            "position": position,
            "method": payment.method.value,
            "amount": str(payment.amount.amount),
            "status": payment.status.value,
            "transaction_id": payment.transaction_id,
            "notes": payment.notes,
            "created_at_utc": to_iso_utc(payment.created_at, name="created_at"),
            "paid_at_utc": to_optional_iso_utc(payment.paid_at, name="paid_at"),
        }
        for position, payment in enumerate(sale.payments)
    ]

    return {"p_sale": sale_row, "p_items": item_rows, "p_payments": payment_rows}


class SupabaseSaleRepository:
    def __init__(self, client: Any = None) -> None:
        self._client = client if client is not None else get_supabase_client()

    def _children(self, table: str, sale_id: str, tenant_id: str) -> List[Mapping[str, Any]]:
        # Lines and payments keep the order they were added in.
        query = (
            self._client.table(table)
            .select("*")
            .eq("sale_id", sale_id)
            .eq("tenant_id", tenant_id)
            .order("position")
        )
        return execute_rows(query, f"fetch {table}")

    def _hydrate(self, row: Mapping[str, Any]) -> Sale:
        sale_id = str(row["sale_id"])
        tenant_id = str(row["tenant_id"])
        return _row_to_sale(
            row,
            self._children(_ITEMS_TABLE, sale_id, tenant_id),
            self._children(_PAYMENTS_TABLE, sale_id, tenant_id),
        )

    def find_by_id(self, sale_id: str, tenant_id: str) -> Optional[Sale]:
        """
        Retrieve a single sale by its ID.

        Returns:
            Sale or None if not found
        """
        query = (
            self._client.table(_SALES_TABLE)
            .select("*")
            .eq("sale_id", sale_id)
            .eq("tenant_id", tenant_id)
            .limit(1)
        )
        rows = execute_rows(query, "get sale")
        return self._hydrate(rows[0]) if rows else None

    def list_by_customer(self, customer_id: str, tenant_id: str) -> List[Sale]:
        """Retrieve all sales for a customer (purchase history)."""
        query = (
            self._client.table(_SALES_TABLE)
            .select("*")
            .eq("customer_id", customer_id)
            .eq("tenant_id", tenant_id)
            .order("created_at_utc")
        )
        return [self._hydrate(row) for row in execute_rows(query, "list sales")]

    def save(self, sale: Sale) -> None:
        query = self._client.rpc(_SAVE_SALE_RPC, _sale_to_payload(sale))
        execute_rows(query, "save sale")


__all__ = ["SupabaseSaleRepository"]
