"""
Stock allocation service.

Decides which Stock rows (locations) a sale's quantities are taken from when
the sale is confirmed.

Key Features:
- All-or-nothing: every request is planned before any stock is touched
- Largest available location first, ties broken by location code
- Availability is on-hand minus reserved, never on-hand alone
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence

from domain.errors import InsufficientStockError, ValidationError
from domain.stock import Stock
from repositories.ports import StockStore


@dataclass(frozen=True, slots=True)
class AllocationRequest:
    """Units of one product that must be taken from stock."""
    product_id: str
    quantity: int


@dataclass(frozen=True, slots=True)
class StockAllocation:
    """A slice of a request served by one stock location."""
    stock: Stock
    quantity: int


@dataclass(frozen=True, slots=True)
class AllocationResult:
    """Result of planning one allocation request."""
    request: AllocationRequest
    allocations: List[StockAllocation]
    allocated_quantity: int


def plan_allocation(stocks: Sequence[Stock], request: AllocationRequest) -> AllocationResult:
    """
    Split a request across the given stocks without mutating them.

    Raises:
        InsufficientStockError: If the stocks together cannot cover the request
    """
    if request.quantity <= 0:
        raise ValidationError("Allocation quantity must be greater than zero")

    candidates = sorted(
        (s for s in stocks if s.product_id == request.product_id and s.available_quantity > 0),
        key=lambda s: (-s.available_quantity, s.location_code),
    )
    available = sum(s.available_quantity for s in candidates)
    if available < request.quantity:
        raise InsufficientStockError(
            requested=request.quantity,
            available=available,
            product_id=request.product_id,
        )

    remaining = request.quantity
    allocations: List[StockAllocation] = []
    for stock in candidates:
        if remaining == 0:
            break
        take = min(stock.available_quantity, remaining)
        allocations.append(StockAllocation(stock=stock, quantity=take))
        remaining -= take

    return AllocationResult(
        request=request,
        allocations=allocations,
        allocated_quantity=request.quantity,
    )


def allocate_stock_for_requests(
    requests: Sequence[AllocationRequest],
    *,
    stock_store: StockStore,
    tenant_id: str,
) -> List[AllocationResult]:
    """
    Plan allocations for every request against the tenant's current stock.

    This function does NOT decrease any stock. The caller applies the plan
    once every request has been planned successfully.

    Raises:
        InsufficientStockError: If any request cannot be fulfilled
        ValidationError: If requests is empty

    Example:
        results = allocate_stock_for_requests(
            [AllocationRequest(product_id="p-1", quantity=3)],
            stock_store=store,
            tenant_id="t-1",
        )
        for result in results:
            for allocation in result.allocations:
                allocation.stock.decrease_stock(allocation.quantity, user_id)
    """
    if not requests:
        raise ValidationError("Allocation requests cannot be empty")

    merged: Dict[str, int] = {}
    for request in requests:
        merged[request.product_id] = merged.get(request.product_id, 0) + request.quantity

    results = []
    for product_id, quantity in merged.items():
        stocks = stock_store.find_by_product(product_id, tenant_id)
        results.append(plan_allocation(stocks, AllocationRequest(product_id, quantity)))
    return results


def check_stock_availability(
    requests: Sequence[AllocationRequest],
    *,
    stock_store: StockStore,
    tenant_id: str,
) -> Dict[str, int]:
    """
    Available units per requested product WITHOUT allocating anything.

    Example:
        check_stock_availability([AllocationRequest("p-1", 3)], stock_store=store, tenant_id="t-1")
        # {'p-1': 12}
    """
    return {
        request.product_id: stock_store.get_total_stock_by_product(request.product_id, tenant_id)
        for request in requests
    }


__all__ = [
    "AllocationRequest",
    "AllocationResult",
    "StockAllocation",
    "allocate_stock_for_requests",
    "check_stock_availability",
    "plan_allocation",
]
