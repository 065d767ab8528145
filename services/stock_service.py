"""
Stock service: use cases over the Stock ledger.

Each mutating use case changes one or two Stock aggregates through their own
methods and persists every stock together with the movements it produced.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
from uuid import uuid4

from domain.errors import BusinessRuleError, NotFoundError, ValidationError
from domain.location import LocationType
from domain.product import Product
from domain.stock import Stock
from domain.stock_movement import MovementReason, StockMovement
from repositories.ports import EventPublisher, ProductStore, StockStore
from services.event_publisher import LoggingEventPublisher

logger = logging.getLogger(__name__)

_default_publisher = LoggingEventPublisher()


@dataclass(frozen=True, slots=True)
class CreateStockRequest:
    product_id: str
    location_name: str
    location_code: str
    initial_quantity: int
    minimum_quantity: int
    tenant_id: str
    location_type: str = LocationType.OTHER.value
    maximum_quantity: Optional[int] = None


@dataclass(frozen=True, slots=True)
class AddStockRequest:
    stock_id: str
    product_id: str
    quantity: int
    user_id: str
    tenant_id: str
    reason: str = MovementReason.PURCHASE.value
    reference_id: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True, slots=True)
class RemoveStockRequest:
    stock_id: str
    product_id: str
    quantity: int
    user_id: str
    tenant_id: str
    reason: str = MovementReason.SALE.value
    reference_id: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True, slots=True)
class AdjustStockRequest:
    stock_id: str
    new_quantity: int
    user_id: str
    tenant_id: str
    notes: Optional[str] = None


@dataclass(frozen=True, slots=True)
class TransferStockRequest:
    product_id: str
    from_location_code: str
    to_location_code: str
    quantity: int
    user_id: str
    tenant_id: str


@dataclass(frozen=True, slots=True)
class StockOutput:
    stock_id: str
    product_id: str
    location_name: str
    location_code: str
    location_type: str
    quantity: int
    available_quantity: int
    reserved_quantity: int
    minimum_quantity: int
    maximum_quantity: Optional[int]
    is_low_level: bool


@dataclass(frozen=True, slots=True)
class StockMovementOutput:
    movement_id: str
    stock_id: str
    product_id: str
    type: str
    reason: str
    quantity: int
    previous_quantity: int
    current_quantity: int
    user_id: str
    reference_id: Optional[str]
    notes: Optional[str]
    created_at: datetime


@dataclass(frozen=True, slots=True)
class TransferOutput:
    transfer_id: str
    source: StockOutput
    destination: StockOutput


def to_stock_output(stock: Stock) -> StockOutput:
    return StockOutput(
        stock_id=stock.stock_id,
        product_id=stock.product_id,
        location_name=stock.location_name,
        location_code=stock.location_code,
        location_type=stock.location_type.value,
        quantity=stock.quantity,
        available_quantity=stock.available_quantity,
        reserved_quantity=stock.reserved_quantity,
        minimum_quantity=stock.minimum_quantity,
        maximum_quantity=stock.maximum_quantity,
        is_low_level=stock.is_low_level(),
    )


def to_movement_output(movement: StockMovement) -> StockMovementOutput:
    return StockMovementOutput(
        movement_id=movement.movement_id,
        stock_id=movement.stock_id,
        product_id=movement.product_id,
        type=movement.type.value,
        reason=movement.reason.value,
        quantity=movement.quantity.value,
        previous_quantity=movement.previous_quantity.value,
        current_quantity=movement.current_quantity.value,
        user_id=movement.user_id,
        reference_id=movement.reference_id,
        notes=movement.notes,
        created_at=movement.created_at,
    )


def _require_positive_quantity(quantity: object) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("Quantity must be greater than zero")


def _require_active_product(product_store: ProductStore, product_id: str, tenant_id: str) -> Product:
    product = product_store.find_by_id(product_id, tenant_id)
    if product is None:
        raise NotFoundError("Product", product_id)
    if not product.is_active:
        raise ValidationError("Cannot move stock of an inactive product")
    return product


def _load_stock(stock_store: StockStore, stock_id: str, tenant_id: str) -> Stock:
    stock = stock_store.find_by_id(stock_id, tenant_id)
    if stock is None:
        raise NotFoundError("Stock", stock_id)
    return stock


def _load_product_stock(stock_store: StockStore, stock_id: str, product_id: str, tenant_id: str) -> Stock:
    stock = _load_stock(stock_store, stock_id, tenant_id)
    if stock.product_id != product_id:
        raise ValidationError(f"Stock {stock_id} does not hold product {product_id}")
    return stock


def _coerce_reason(reason: str) -> MovementReason:
    try:
        return MovementReason(reason)
    except ValueError as exc:
        raise ValidationError(f"Unknown movement reason: {reason!r}") from exc


def _persist(
    stock: Stock,
    movements: List[StockMovement],
    stock_store: StockStore,
    publisher: Optional[EventPublisher],
) -> StockOutput:
    stock_store.save(stock, movements)
    events = stock.pull_domain_events()
    (publisher or _default_publisher).publish(events)
    if stock.is_low_level():
        logger.warning(
            "Stock at or below minimum level",
            extra={
                "stock_id": stock.stock_id,
                "product_id": stock.product_id,
                "location_code": stock.location_code,
                "quantity": stock.quantity,
                "minimum_quantity": stock.minimum_quantity,
            },
        )
    return to_stock_output(stock)


def create_stock(
    request: CreateStockRequest,
    *,
    product_store: ProductStore,
    stock_store: StockStore,
    publisher: Optional[EventPublisher] = None,
) -> StockOutput:
    """
    Open a stock location for a product.

    Raises:
        NotFoundError: Product does not exist in the tenant
        ValidationError: Product inactive, or malformed quantities/location
        BusinessRuleError: The product already has stock at this location code
    """
    _require_active_product(product_store, request.product_id, request.tenant_id)
    try:
        location_type = LocationType(request.location_type)
    except ValueError as exc:
        raise ValidationError(f"Unknown location type: {request.location_type!r}") from exc

    existing = stock_store.find_by_product_and_location(
        request.product_id, request.location_code, request.tenant_id
    )
    if existing is not None:
        raise BusinessRuleError(
            f"Product {request.product_id} already has stock at location {existing.location_code}"
        )

    stock = Stock.create(
        product_id=request.product_id,
        location_name=request.location_name,
        location_code=request.location_code,
        location_type=location_type,
        initial_quantity=request.initial_quantity,
        minimum_quantity=request.minimum_quantity,
        maximum_quantity=request.maximum_quantity,
        tenant_id=request.tenant_id,
    )
    output = _persist(stock, [], stock_store, publisher)
    logger.info(
        "Stock created",
        extra={"stock_id": stock.stock_id, "product_id": stock.product_id, "location_code": stock.location_code},
    )
    return output


def add_stock(
    request: AddStockRequest,
    *,
    product_store: ProductStore,
    stock_store: StockStore,
    publisher: Optional[EventPublisher] = None,
) -> StockOutput:
    """Receive units into a stock location (PURCHASE by default, or RETURN)."""
    _require_positive_quantity(request.quantity)
    _require_active_product(product_store, request.product_id, request.tenant_id)
    stock = _load_product_stock(stock_store, request.stock_id, request.product_id, request.tenant_id)

    movement = stock.increase_stock(
        request.quantity,
        request.user_id,
        _coerce_reason(request.reason),
        reference_id=request.reference_id,
        notes=request.notes,
    )
    output = _persist(stock, [movement], stock_store, publisher)
    logger.info(
        "Stock increased",
        extra={"stock_id": stock.stock_id, "quantity": request.quantity, "reason": movement.reason.value},
    )
    return output


def remove_stock(
    request: RemoveStockRequest,
    *,
    product_store: ProductStore,
    stock_store: StockStore,
    publisher: Optional[EventPublisher] = None,
) -> StockOutput:
    """
    Take units out of a stock location (SALE by default, or LOSS / DAMAGED).

    Raises:
        InsufficientStockError: More than the available quantity requested
    """
    _require_positive_quantity(request.quantity)
    _require_active_product(product_store, request.product_id, request.tenant_id)
    stock = _load_product_stock(stock_store, request.stock_id, request.product_id, request.tenant_id)

    reason = _coerce_reason(request.reason)
    if not stock.has_available_quantity(request.quantity):
        logger.warning(
            "Rejected stock removal: insufficient stock",
            extra={
                "stock_id": stock.stock_id,
                "requested": request.quantity,
                "available": stock.available_quantity,
            },
        )
    movement = stock.decrease_stock(
        request.quantity,
        request.user_id,
        reason,
        reference_id=request.reference_id,
        notes=request.notes,
    )
    output = _persist(stock, [movement], stock_store, publisher)
    logger.info(
        "Stock decreased",
        extra={"stock_id": stock.stock_id, "quantity": request.quantity, "reason": reason.value},
    )
    return output


def adjust_stock(
    request: AdjustStockRequest,
    *,
    stock_store: StockStore,
    publisher: Optional[EventPublisher] = None,
) -> StockOutput:
    """Set the on-hand quantity after a stock-take."""
    stock = _load_stock(stock_store, request.stock_id, request.tenant_id)
    movement = stock.adjust_stock(request.new_quantity, request.user_id, request.notes)
    output = _persist(stock, [movement], stock_store, publisher)
    logger.info(
        "Stock adjusted",
        extra={
            "stock_id": stock.stock_id,
            "previous_quantity": movement.previous_quantity.value,
            "current_quantity": movement.current_quantity.value,
        },
    )
    return output


def transfer_stock(
    request: TransferStockRequest,
    *,
    product_store: ProductStore,
    stock_store: StockStore,
    publisher: Optional[EventPublisher] = None,
) -> TransferOutput:
    """
    Move units of one product between two of its locations.

    Both movements share a transfer id as reference_id. The source is checked
    before either stock changes.
    """
    _require_positive_quantity(request.quantity)
    _require_active_product(product_store, request.product_id, request.tenant_id)

    source = stock_store.find_by_product_and_location(
        request.product_id, request.from_location_code, request.tenant_id
    )
    if source is None:
        raise NotFoundError("Stock", f"{request.product_id}@{request.from_location_code}")
    destination = stock_store.find_by_product_and_location(
        request.product_id, request.to_location_code, request.tenant_id
    )
    if destination is None:
        raise NotFoundError("Stock", f"{request.product_id}@{request.to_location_code}")
    if source.stock_id == destination.stock_id:
        raise ValidationError("Cannot transfer stock to the same location")

    transfer_id = str(uuid4())
    out_movement = source.transfer_out(request.quantity, request.user_id, reference_id=transfer_id)
    in_movement = destination.transfer_in(request.quantity, request.user_id, reference_id=transfer_id)

    source_output = _persist(source, [out_movement], stock_store, publisher)
    destination_output = _persist(destination, [in_movement], stock_store, publisher)
    logger.info(
        "Stock transferred",
        extra={
            "transfer_id": transfer_id,
            "product_id": request.product_id,
            "from_location": source.location_code,
            "to_location": destination.location_code,
            "quantity": request.quantity,
        },
    )
    return TransferOutput(transfer_id=transfer_id, source=source_output, destination=destination_output)


def list_low_stock(tenant_id: str, *, stock_store: StockStore) -> List[StockOutput]:
    stocks = stock_store.find_low_level(tenant_id)
    if stocks:
        logger.warning(
            "Low stock levels found",
            extra={"tenant_id": tenant_id, "low_stock_count": len(stocks)},
        )
    return [to_stock_output(stock) for stock in sorted(stocks, key=lambda s: (s.product_id, s.location_code))]


def get_movement_history(stock_id: str, tenant_id: str, *, stock_store: StockStore) -> List[StockMovementOutput]:
    """Ledger of one stock location, oldest first."""
    _load_stock(stock_store, stock_id, tenant_id)
    movements = stock_store.list_movements(stock_id, tenant_id)
    return [to_movement_output(m) for m in sorted(movements, key=lambda m: m.created_at)]


__all__ = [
    "CreateStockRequest",
    "AddStockRequest",
    "RemoveStockRequest",
    "AdjustStockRequest",
    "TransferStockRequest",
    "StockOutput",
    "StockMovementOutput",
    "TransferOutput",
    "to_stock_output",
    "to_movement_output",
    "create_stock",
    "add_stock",
    "remove_stock",
    "adjust_stock",
    "transfer_stock",
    "list_low_stock",
    "get_movement_history",
]
