"""
Sale service: use cases that drive a Sale through its lifecycle.

Handles:
- Customer / product preconditions before a sale or item is accepted
- Point-in-time stock availability checks when items are added or resized
- Stock decrement at confirmation (all-or-nothing across locations)
- Re-stocking when a confirmed sale is cancelled

Every use case loads aggregates through the ports, mutates them only through
their own methods, saves them, and only then drains their outboxes to the
event publisher.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from domain.discount import Discount
from domain.errors import BusinessRuleError, InsufficientStockError, NotFoundError, ValidationError
from domain.money import AmountLike
from domain.payment import PaymentMethod
from domain.sale import Sale
from domain.stock import Stock
from domain.stock_movement import MovementReason, StockMovement
from repositories.ports import CustomerStore, EventPublisher, ProductStore, SaleStore, StockStore
from services.event_publisher import LoggingEventPublisher
from services.stock_allocation_service import (
    AllocationRequest,
    allocate_stock_for_requests,
    check_stock_availability,
)

logger = logging.getLogger(__name__)

_default_publisher = LoggingEventPublisher()


# --- Requests ---------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CreateSaleRequest:
    customer_id: str
    user_id: str
    tenant_id: str
    notes: Optional[str] = None


@dataclass(frozen=True, slots=True)
class AddSaleItemRequest:
    """
    Add a product to a draft sale.

    discount_fixed takes precedence over discount_percentage when both are set;
    a zero discount_fixed is treated as not set.
    """
    sale_id: str
    product_id: str
    quantity: int
    tenant_id: str
    discount_percentage: Optional[AmountLike] = None
    discount_fixed: Optional[AmountLike] = None


@dataclass(frozen=True, slots=True)
class RemoveSaleItemRequest:
    sale_id: str
    item_id: str
    tenant_id: str


@dataclass(frozen=True, slots=True)
class UpdateSaleItemQuantityRequest:
    sale_id: str
    item_id: str
    quantity: int
    tenant_id: str


@dataclass(frozen=True, slots=True)
class ApplyItemDiscountRequest:
    sale_id: str
    item_id: str
    tenant_id: str
    discount_percentage: Optional[AmountLike] = None
    discount_fixed: Optional[AmountLike] = None


@dataclass(frozen=True, slots=True)
class ApplySaleDiscountRequest:
    sale_id: str
    tenant_id: str
    discount_percentage: Optional[AmountLike] = None
    discount_fixed: Optional[AmountLike] = None


@dataclass(frozen=True, slots=True)
class ConfirmSaleRequest:
    sale_id: str
    tenant_id: str
    # Recorded on the stock movements; defaults to the sale's own user.
    user_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class AddPaymentRequest:
    sale_id: str
    method: str
    amount: AmountLike
    tenant_id: str
    transaction_id: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True, slots=True)
class CancelSaleRequest:
    sale_id: str
    tenant_id: str
    reason: Optional[str] = None
    user_id: Optional[str] = None


# --- Outputs ----------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SaleItemOutput:
    item_id: str
    product_id: str
    product_name: str
    product_sku: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    discount: Decimal
    total: Decimal


@dataclass(frozen=True, slots=True)
class PaymentOutput:
    payment_id: str
    method: str
    amount: Decimal
    status: str
    paid_at: Optional[datetime]
    transaction_id: Optional[str]


@dataclass(frozen=True, slots=True)
class SaleOutput:
    """Read-only projection of a Sale returned by every sale use case."""
    sale_id: str
    customer_id: str
    customer_name: str
    status: str
    currency: str
    items: List[SaleItemOutput]
    payments: List[PaymentOutput]
    subtotal: Decimal
    discount_amount: Decimal
    total: Decimal
    total_paid: Decimal
    remaining_amount: Decimal
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime
    confirmed_at: Optional[datetime]
    paid_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    cancellation_reason: Optional[str]


def to_sale_output(sale: Sale) -> SaleOutput:
    return SaleOutput(
        sale_id=sale.sale_id,
        customer_id=sale.customer_id,
        customer_name=sale.customer_name,
        status=sale.status.value,
        currency=sale.currency,
        items=[
            SaleItemOutput(
                item_id=item.item_id,
                product_id=item.product_id,
                product_name=item.product_name,
                product_sku=item.product_sku,
                quantity=item.quantity.value,
                unit_price=item.unit_price.amount,
                subtotal=item.subtotal.amount,
                discount=item.discount_amount,
                total=item.total.amount,
            )
            for item in sale.items
        ],
        payments=[
            PaymentOutput(
                payment_id=payment.payment_id,
                method=payment.method.value,
                amount=payment.amount.amount,
                status=payment.status.value,
                paid_at=payment.paid_at,
                transaction_id=payment.transaction_id,
            )
            for payment in sale.payments
        ],
        subtotal=sale.subtotal,
        discount_amount=sale.discount_amount,
        total=sale.total,
        total_paid=sale.total_paid,
        remaining_amount=sale.remaining_amount,
        notes=sale.notes,
        created_at=sale.created_at,
        updated_at=sale.updated_at,
        confirmed_at=sale.confirmed_at,
        paid_at=sale.paid_at,
        cancelled_at=sale.cancelled_at,
        cancellation_reason=sale.cancellation_reason,
    )


# --- Helpers ----------------------------------------------------------------------


def build_discount(
    percentage: Optional[AmountLike],
    fixed: Optional[AmountLike],
) -> Optional[Discount]:
    """
    Fixed wins over percentage when both are supplied; None when neither is.

    A zero value counts as not supplied, so `fixed=0` never hides a percentage.
    """
    if _supplied(fixed):
        return Discount.fixed(fixed)
    if _supplied(percentage):
        return Discount.percentage(percentage)
    return None


def _supplied(value: Optional[AmountLike]) -> bool:
    if value is None:
        return False
    try:
        return Decimal(str(value)) != 0
    except ArithmeticError as exc:
        raise ValidationError(f"Invalid discount value: {value!r}") from exc


def _require_positive_quantity(quantity: object) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("Quantity must be greater than zero")


def _load_sale(sale_store: SaleStore, sale_id: str, tenant_id: str) -> Sale:
    sale = sale_store.find_by_id(sale_id, tenant_id)
    if sale is None:
        raise NotFoundError("Sale", sale_id)
    return sale


def _require_available(stock_store: StockStore, product_id: str, quantity: int, tenant_id: str) -> None:
    available = check_stock_availability(
        [AllocationRequest(product_id, quantity)],
        stock_store=stock_store,
        tenant_id=tenant_id,
    )[product_id]
    if available < quantity:
        logger.warning(
            "Rejected sale quantity: insufficient stock",
            extra={
                "product_id": product_id,
                "tenant_id": tenant_id,
                "requested": quantity,
                "available": available,
            },
        )
        raise InsufficientStockError(requested=quantity, available=available, product_id=product_id)


def _units_still_out(stock_store: StockStore, sale_id: str, tenant_id: str) -> Dict[Tuple[str, str], int]:
    """
    Units a sale has taken out of stock and not yet returned.

    Keyed by (stock_id, product_id). SALE movements referencing the sale count
    up and RETURN movements count down, so a retried confirm or cancel never
    applies the same units twice.
    """
    outstanding: Dict[Tuple[str, str], int] = defaultdict(int)
    for movement in stock_store.list_movements_by_reference(sale_id, tenant_id):
        key = (movement.stock_id, movement.product_id)
        if movement.reason is MovementReason.SALE:
            outstanding[key] += movement.quantity.value
        elif movement.reason is MovementReason.RETURN:
            outstanding[key] -= movement.quantity.value
    return {key: quantity for key, quantity in outstanding.items() if quantity > 0}


def _save_sale(
    sale: Sale,
    sale_store: SaleStore,
    publisher: Optional[EventPublisher],
) -> SaleOutput:
    sale_store.save(sale)
    (publisher or _default_publisher).publish(sale.pull_domain_events())
    return to_sale_output(sale)


# --- Use cases --------------------------------------------------------------------


def create_sale(
    request: CreateSaleRequest,
    *,
    customer_store: CustomerStore,
    sale_store: SaleStore,
    publisher: Optional[EventPublisher] = None,
    currency: Optional[str] = None,
) -> SaleOutput:
    """
    Open a DRAFT sale for an active customer.

    Raises:
        NotFoundError: Customer does not exist in the tenant
        ValidationError: Customer is inactive
    """
    customer = customer_store.find_by_id(request.customer_id, request.tenant_id)
    if customer is None:
        raise NotFoundError("Customer", request.customer_id)
    if not customer.is_active():
        raise ValidationError("Cannot create a sale for an inactive customer")

    kwargs = {"currency": currency} if currency else {}
    sale = Sale.create(
        customer_id=customer.customer_id,
        customer_name=customer.name,
        user_id=request.user_id,
        tenant_id=request.tenant_id,
        notes=request.notes,
        **kwargs,
    )
    output = _save_sale(sale, sale_store, publisher)
    logger.info(
        "Sale created",
        extra={"sale_id": sale.sale_id, "tenant_id": sale.tenant_id, "customer_id": customer.customer_id},
    )
    return output


def get_sale(sale_id: str, tenant_id: str, *, sale_store: SaleStore) -> SaleOutput:
    return to_sale_output(_load_sale(sale_store, sale_id, tenant_id))


def list_customer_sales(
    customer_id: str,
    tenant_id: str,
    *,
    customer_store: CustomerStore,
    sale_store: SaleStore,
) -> List[SaleOutput]:
    """Purchase history of a customer, oldest first."""
    if customer_store.find_by_id(customer_id, tenant_id) is None:
        raise NotFoundError("Customer", customer_id)
    sales = sorted(sale_store.list_by_customer(customer_id, tenant_id), key=lambda s: s.created_at)
    return [to_sale_output(sale) for sale in sales]


def add_sale_item(
    request: AddSaleItemRequest,
    *,
    sale_store: SaleStore,
    product_store: ProductStore,
    stock_store: StockStore,
    publisher: Optional[EventPublisher] = None,
) -> SaleOutput:
    """
    Add a product line to a draft sale.

    The product's name, SKU and price are snapshotted onto the item. Stock is
    checked, not held: the units are taken when the sale is confirmed.

    Raises:
        ValidationError: quantity <= 0, or the product is inactive
        NotFoundError: Sale or product does not exist in the tenant
        BusinessRuleError: Sale is not DRAFT, product already in the sale,
            or not enough stock available across all locations
    """
    _require_positive_quantity(request.quantity)

    sale = _load_sale(sale_store, request.sale_id, request.tenant_id)
    if not sale.is_draft:
        raise BusinessRuleError("Cannot add items to a sale that is not a draft")

    product = product_store.find_by_id(request.product_id, request.tenant_id)
    if product is None:
        raise NotFoundError("Product", request.product_id)
    if not product.is_active:
        raise ValidationError("Cannot add an inactive product to a sale")

    _require_available(stock_store, product.product_id, request.quantity, request.tenant_id)

    sale.add_item(
        product_id=product.product_id,
        product_name=product.name,
        product_sku=product.sku,
        quantity=request.quantity,
        unit_price=product.price,
        discount=build_discount(request.discount_percentage, request.discount_fixed),
    )
    return _save_sale(sale, sale_store, publisher)


def remove_sale_item(
    request: RemoveSaleItemRequest,
    *,
    sale_store: SaleStore,
    publisher: Optional[EventPublisher] = None,
) -> SaleOutput:
    sale = _load_sale(sale_store, request.sale_id, request.tenant_id)
    sale.remove_item(request.item_id)
    return _save_sale(sale, sale_store, publisher)


def update_sale_item_quantity(
    request: UpdateSaleItemQuantityRequest,
    *,
    sale_store: SaleStore,
    stock_store: StockStore,
    publisher: Optional[EventPublisher] = None,
) -> SaleOutput:
    """Resize an item; the new quantity must be available across all locations."""
    _require_positive_quantity(request.quantity)
    sale = _load_sale(sale_store, request.sale_id, request.tenant_id)
    item = sale.find_item(request.item_id)
    if sale.is_draft:
        _require_available(stock_store, item.product_id, request.quantity, request.tenant_id)
    sale.update_item_quantity(request.item_id, request.quantity)
    return _save_sale(sale, sale_store, publisher)


def apply_item_discount(
    request: ApplyItemDiscountRequest,
    *,
    sale_store: SaleStore,
    publisher: Optional[EventPublisher] = None,
) -> SaleOutput:
    """Set (or, with neither value supplied, clear) the discount of one item."""
    sale = _load_sale(sale_store, request.sale_id, request.tenant_id)
    discount = build_discount(request.discount_percentage, request.discount_fixed)
    if discount is None:
        sale.remove_item_discount(request.item_id)
    else:
        sale.apply_item_discount(request.item_id, discount)
    return _save_sale(sale, sale_store, publisher)


def apply_sale_discount(
    request: ApplySaleDiscountRequest,
    *,
    sale_store: SaleStore,
    publisher: Optional[EventPublisher] = None,
) -> SaleOutput:
    """Set (or, with neither value supplied, clear) the sale-level discount."""
    sale = _load_sale(sale_store, request.sale_id, request.tenant_id)
    discount = build_discount(request.discount_percentage, request.discount_fixed)
    if discount is None:
        sale.remove_sale_discount()
    else:
        sale.apply_sale_discount(discount)
    return _save_sale(sale, sale_store, publisher)


def confirm_sale(
    request: ConfirmSaleRequest,
    *,
    sale_store: SaleStore,
    stock_store: StockStore,
    publisher: Optional[EventPublisher] = None,
) -> SaleOutput:
    """
    Confirm a draft sale and take its units out of stock.

    Every item is allocated across the product's locations before any stock is
    decreased. If one item cannot be covered, nothing is saved. Units already
    taken by an earlier attempt for this sale are not taken again.

    Raises:
        NotFoundError: Sale does not exist in the tenant
        BusinessRuleError: Sale is not DRAFT or has no items
        InsufficientStockError: An item can no longer be covered by stock
    """
    sale = _load_sale(sale_store, request.sale_id, request.tenant_id)
    sale.confirm()

    # Units already taken by an earlier attempt whose sale save failed.
    taken: Dict[str, int] = defaultdict(int)
    for (_, product_id), quantity in _units_still_out(stock_store, sale.sale_id, request.tenant_id).items():
        taken[product_id] += quantity

    requests = [
        AllocationRequest(item.product_id, item.quantity.value - taken[item.product_id])
        for item in sale.items
        if item.quantity.value > taken[item.product_id]
    ]
    plan = (
        allocate_stock_for_requests(requests, stock_store=stock_store, tenant_id=request.tenant_id)
        if requests
        else []
    )

    user_id = request.user_id or sale.user_id
    touched: Dict[str, Stock] = {}
    movements: Dict[str, List[StockMovement]] = defaultdict(list)
    for result in plan:
        for allocation in result.allocations:
            stock = allocation.stock
            movements[stock.stock_id].append(
                stock.decrease_stock(
                    allocation.quantity,
                    user_id,
                    MovementReason.SALE,
                    reference_id=sale.sale_id,
                    notes=f"Sale {sale.sale_id}",
                )
            )
            touched[stock.stock_id] = stock

    for stock_id, stock in touched.items():
        stock_store.save(stock, movements[stock_id])
    output = _save_sale(sale, sale_store, publisher)

    for stock in touched.values():
        (publisher or _default_publisher).publish(stock.pull_domain_events())

    logger.info(
        "Sale confirmed",
        extra={
            "sale_id": sale.sale_id,
            "tenant_id": sale.tenant_id,
            "total": str(sale.total),
            "stocks_touched": len(touched),
        },
    )
    return output


def add_payment(
    request: AddPaymentRequest,
    *,
    sale_store: SaleStore,
    publisher: Optional[EventPublisher] = None,
) -> SaleOutput:
    """
    Register a payment against a confirmed sale.

    Raises:
        ValidationError: Unknown payment method or malformed amount
        BusinessRuleError: Sale not confirmed, amount <= 0, or overpayment
    """
    try:
        method = PaymentMethod(request.method)
    except ValueError as exc:
        raise ValidationError(f"Unknown payment method: {request.method!r}") from exc

    sale = _load_sale(sale_store, request.sale_id, request.tenant_id)
    sale.add_payment(
        method=method,
        amount=request.amount,
        transaction_id=request.transaction_id,
        notes=request.notes,
    )
    output = _save_sale(sale, sale_store, publisher)
    if sale.is_paid:
        logger.info(
            "Sale paid",
            extra={"sale_id": sale.sale_id, "tenant_id": sale.tenant_id, "total_paid": str(sale.total_paid)},
        )
    return output


def cancel_sale(
    request: CancelSaleRequest,
    *,
    sale_store: SaleStore,
    stock_store: StockStore,
    publisher: Optional[EventPublisher] = None,
) -> SaleOutput:
    """
    Cancel a DRAFT or CONFIRMED sale.

    A confirmed sale already took its units out of stock; every SALE movement
    referencing it is reversed with a RETURN movement on the same stock. Units
    returned by an earlier attempt are not returned again.
    """
    sale = _load_sale(sale_store, request.sale_id, request.tenant_id)
    sale.cancel(request.reason)

    # A draft holds no units unless an earlier confirm failed after taking them.
    restocked: List[Stock] = []
    user_id = request.user_id or sale.user_id
    outstanding = _units_still_out(stock_store, sale.sale_id, request.tenant_id)
    for (stock_id, _), quantity in outstanding.items():
        stock = stock_store.find_by_id(stock_id, request.tenant_id)
        if stock is None:
            raise NotFoundError("Stock", stock_id)
        movement = stock.increase_stock(
            quantity,
            user_id,
            MovementReason.RETURN,
            reference_id=sale.sale_id,
            notes=f"Cancelled sale {sale.sale_id}",
        )
        stock_store.save(stock, [movement])
        restocked.append(stock)

    output = _save_sale(sale, sale_store, publisher)
    for stock in restocked:
        (publisher or _default_publisher).publish(stock.pull_domain_events())

    logger.info(
        "Sale cancelled",
        extra={
            "sale_id": sale.sale_id,
            "tenant_id": sale.tenant_id,
            "reason": request.reason,
            "stocks_restocked": len(restocked),
        },
    )
    return output


__all__ = [
    "CreateSaleRequest",
    "AddSaleItemRequest",
    "RemoveSaleItemRequest",
    "UpdateSaleItemQuantityRequest",
    "ApplyItemDiscountRequest",
    "ApplySaleDiscountRequest",
    "ConfirmSaleRequest",
    "AddPaymentRequest",
    "CancelSaleRequest",
    "SaleItemOutput",
    "PaymentOutput",
    "SaleOutput",
    "build_discount",
    "to_sale_output",
    "create_sale",
    "get_sale",
    "list_customer_sales",
    "add_sale_item",
    "remove_sale_item",
    "update_sale_item_quantity",
    "apply_item_discount",
    "apply_sale_discount",
    "confirm_sale",
    "add_payment",
    "cancel_sale",
]
