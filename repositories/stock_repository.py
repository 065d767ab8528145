"""
Stock repository (persistence).

Reads and writes Stock rows and their append-only StockMovement ledger.
A stock row and the movements produced by one operation are written together
by the `save_stock_with_movements` PostgreSQL function, so the ledger never
drifts from the row it describes.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

from domain.location import LocationType
from domain.stock import Stock
from domain.stock_movement import MovementReason, MovementType, StockMovement
from repositories.client import get_supabase_client
from repositories.rows import (
    execute_rows,
    parse_utc_datetime,
    to_iso_utc,
)

_STOCKS_TABLE: str = "stocks"
_MOVEMENTS_TABLE: str = "stock_movements"
_SAVE_STOCK_RPC: str = "save_stock_with_movements"


def _row_to_stock(row: Mapping[str, Any]) -> Stock:
    maximum = row.get("maximum_quantity")
    return Stock.restore(
        stock_id=str(row["stock_id"]),
        product_id=str(row["product_id"]),
        location_name=str(row["location_name"]),
        location_code=str(row["location_code"]),
        location_type=LocationType(str(row.get("location_type") or "OTHER")),
        quantity=int(row["quantity"]),
        minimum_quantity=int(row.get("minimum_quantity") or 0),
        maximum_quantity=int(maximum) if maximum is not None else None,
        reserved_quantity=int(row.get("reserved_quantity") or 0),
        tenant_id=str(row["tenant_id"]),
        created_at=parse_utc_datetime(row["created_at_utc"]),
        updated_at=parse_utc_datetime(row["updated_at_utc"]),
    )


def _stock_to_row(stock: Stock) -> Dict[str, Any]:
    return {
        "stock_id": stock.stock_id,
        "product_id": stock.product_id,
        "tenant_id": stock.tenant_id,
        "location_name": stock.location_name,
        "location_code": stock.location_code,
        "location_type": stock.location_type.value,
        "quantity": stock.quantity,
        "minimum_quantity": stock.minimum_quantity,
        "maximum_quantity": stock.maximum_quantity,
        "reserved_quantity": stock.reserved_quantity,
        "created_at_utc": to_iso_utc(stock.created_at, name="created_at"),
        "updated_at_utc": to_iso_utc(stock.updated_at, name="updated_at"),
    }


def _row_to_movement(row: Mapping[str, Any]) -> StockMovement:
    return StockMovement.restore(
        movement_id=str(row["movement_id"]),
        stock_id=str(row["stock_id"]),
        product_id=str(row["product_id"]),
        type=MovementType(str(row["type"])),
        reason=MovementReason(str(row["reason"])),
        quantity=int(row["quantity"]),
        previous_quantity=int(row["previous_quantity"]),
        current_quantity=int(row["current_quantity"]),
        user_id=str(row["user_id"]),
        tenant_id=str(row["tenant_id"]),
        created_at=parse_utc_datetime(row["created_at_utc"]),
        reference_id=row.get("reference_id"),
        notes=row.get("notes"),
    )


def _movement_to_row(movement: StockMovement) -> Dict[str, Any]:
    return {
        "movement_id": movement.movement_id,
        "stock_id": movement.stock_id,
        "product_id": movement.product_id,
        "tenant_id": movement.tenant_id,
        "type": movement.type.value,
        "reason": movement.reason.value,
        "quantity": movement.quantity.value,
        "previous_quantity": movement.previous_quantity.value,
        "current_quantity": movement.current_quantity.value,
        "user_id": movement.user_id,
        "reference_id": movement.reference_id,
        "notes": movement.notes,
        "created_at_utc": to_iso_utc(movement.created_at, name="created_at"),
    }


class SupabaseStockRepository:
    def __init__(self, client: Any = None) -> None:
        self._client = client if client is not None else get_supabase_client()

    def _select_stocks(self, tenant_id: str, **filters: str) -> List[Stock]:
        query = self._client.table(_STOCKS_TABLE).select("*").eq("tenant_id", tenant_id)
        for column, value in filters.items():
            query = query.eq(column, value)
        rows = execute_rows(query, "fetch stocks")
        return [_row_to_stock(row) for row in rows]

    def find_by_id(self, stock_id: str, tenant_id: str) -> Optional[Stock]:
        stocks = self._select_stocks(tenant_id, stock_id=stock_id)
        return stocks[0] if stocks else None

    def find_by_product_and_location(
        self, product_id: str, location_code: str, tenant_id: str
    ) -> Optional[Stock]:
        stocks = self._select_stocks(
            tenant_id,
            product_id=product_id,
            location_code=location_code.strip().upper(),
        )
        return stocks[0] if stocks else None

    def find_by_product(self, product_id: str, tenant_id: str) -> List[Stock]:
        return self._select_stocks(tenant_id, product_id=product_id)

    def find_low_level(self, tenant_id: str) -> List[Stock]:
        # PostgREST cannot compare two columns, so the threshold is applied here.
        return [stock for stock in self._select_stocks(tenant_id) if stock.is_low_level()]

    def get_total_stock_by_product(self, product_id: str, tenant_id: str) -> int:
        query = (
            self._client.table(_STOCKS_TABLE)
            .select("quantity, reserved_quantity")
            .eq("product_id", product_id)
            .eq("tenant_id", tenant_id)
        )
        rows = execute_rows(query, "sum stock")
        return sum(int(row["quantity"]) - int(row.get("reserved_quantity") or 0) for row in rows)

    def save(self, stock: Stock, movements: Sequence[StockMovement] = ()) -> None:
        for movement in movements:
            if movement.stock_id != stock.stock_id or movement.tenant_id != stock.tenant_id:
                raise ValueError("Movement does not belong to the stock being saved")

        query = self._client.rpc(
            _SAVE_STOCK_RPC,
            {
                "p_stock": _stock_to_row(stock),
                "p_movements": [_movement_to_row(m) for m in movements],
            },
        )
        execute_rows(query, "save stock")

    def list_movements(self, stock_id: str, tenant_id: str) -> List[StockMovement]:
        query = (
            self._client.table(_MOVEMENTS_TABLE)
            .select("*")
            .eq("stock_id", stock_id)
            .eq("tenant_id", tenant_id)
            .order("created_at_utc")
        )
        return [_row_to_movement(row) for row in execute_rows(query, "list movements")]

    def list_movements_by_reference(self, reference_id: str, tenant_id: str) -> List[StockMovement]:
        query = (
            self._client.table(_MOVEMENTS_TABLE)
            .select("*")
            .eq("reference_id", reference_id)
            .eq("tenant_id", tenant_id)
            .order("created_at_utc")
        )
        return [_row_to_movement(row) for row in execute_rows(query, "list movements")]


__all__ = ["SupabaseStockRepository"]
