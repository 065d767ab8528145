"""
Domain: Sale aggregate.

State machine:

    DRAFT --confirm--> CONFIRMED --payments reach total--> PAID
      |                    |
      +------cancel--------+--> CANCELLED

PAID and CANCELLED are terminal. A sale with a confirmed payment cannot be
cancelled.

Contract:
- Items, item discounts and the sale-level discount can only change in DRAFT.
- At most one SaleItem per product_id ("use update, not add").
- subtotal, discount_amount and total are derived. Every mutation that changes
  the monetary shape ends by recomputing them from the current items and
  discount; they are never assigned directly.
- add_payment never lets total_paid exceed total. The payment that makes
  total_paid reach total moves the sale to PAID exactly once.
- Every public mutator validates first and mutates last, so a failed call
  leaves the sale untouched.

Two named constructors exist: `create` (new sale, records SaleCreated) and
`restore` (rehydration from persisted fields, records nothing).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Optional, Tuple
from uuid import uuid4

from .discount import Discount
from .errors import BusinessRuleError, NotFoundError, ValidationError
from .events import (
    EventRecorder,
    PaymentAdded,
    SaleCancelled,
    SaleConfirmed,
    SaleCreated,
    SaleDiscountApplied,
    SaleItemAdded,
    SaleItemRemoved,
    SaleItemUpdated,
    SalePaid,
)
from .money import DEFAULT_CURRENCY, AmountLike, Money
from .payment import Payment, PaymentMethod
from .sale_item import SaleItem
from .time import require_optional_utc_timestamp, require_utc_timestamp, utc_now


class SaleStatus(str, Enum):
    DRAFT = "DRAFT"
    CONFIRMED = "CONFIRMED"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class Sale(EventRecorder):
    def __init__(
        self,
        *,
        sale_id: str,
        customer_id: str,
        customer_name: str,
        user_id: str,
        tenant_id: str,
        status: SaleStatus,
        created_at: datetime,
        updated_at: datetime,
        currency: str = DEFAULT_CURRENCY,
        items: Iterable[SaleItem] = (),
        payments: Iterable[Payment] = (),
        discount: Optional[Discount] = None,
        notes: Optional[str] = None,
        confirmed_at: Optional[datetime] = None,
        paid_at: Optional[datetime] = None,
        cancelled_at: Optional[datetime] = None,
        cancellation_reason: Optional[str] = None,
    ) -> None:
        super().__init__()
        for name, value in (
            ("sale_id", sale_id),
            ("customer_id", customer_id),
            ("user_id", user_id),
            ("tenant_id", tenant_id),
        ):
            if not value:
                raise ValidationError(f"Sale {name} is required")
        try:
            status = SaleStatus(status)
        except ValueError as exc:
            raise ValidationError(f"Unknown sale status: {status!r}") from exc
        require_utc_timestamp("created_at", created_at)
        require_utc_timestamp("updated_at", updated_at)
        require_optional_utc_timestamp("confirmed_at", confirmed_at)
        require_optional_utc_timestamp("paid_at", paid_at)
        require_optional_utc_timestamp("cancelled_at", cancelled_at)

        self._sale_id = sale_id
        self._customer_id = customer_id
        self._customer_name = customer_name
        self._user_id = user_id
        self._tenant_id = tenant_id
        self._status = status
        self._currency = Money.zero(currency).currency
        self._items: List[SaleItem] = list(items)
        self._payments: List[Payment] = list(payments)
        self._discount = discount
        self._notes = notes
        self._created_at = created_at
        self._updated_at = updated_at
        self._confirmed_at = confirmed_at
        self._paid_at = paid_at
        self._cancelled_at = cancelled_at
        self._cancellation_reason = cancellation_reason

        seen = set()
        for item in self._items:
            if item.currency != self._currency:
                raise ValidationError(
                    f"SaleItem currency {item.currency} does not match sale currency {self._currency}"
                )
            if item.product_id in seen:
                raise ValidationError(f"Duplicate product {item.product_id} in sale items")
            seen.add(item.product_id)

        self._subtotal, self._discount_amount, self._total = self._compute_totals(
            self._items, self._discount
        )

    # --- Named constructors ---------------------------------------------------

    @classmethod
    def create(
        cls,
        *,
        customer_id: str,
        customer_name: str,
        user_id: str,
        tenant_id: str,
        notes: Optional[str] = None,
        currency: str = DEFAULT_CURRENCY,
        sale_id: Optional[str] = None,
    ) -> "Sale":
        now = utc_now()
        sale = cls(
            sale_id=sale_id or str(uuid4()),
            customer_id=customer_id,
            customer_name=customer_name,
            user_id=user_id,
            tenant_id=tenant_id,
            status=SaleStatus.DRAFT,
            created_at=now,
            updated_at=now,
            currency=currency,
            notes=notes,
        )
        sale._record(
            SaleCreated(
                aggregate_id=sale.sale_id,
                customer_id=customer_id,
                total_amount=Decimal("0.00"),
                items_count=0,
            )
        )
        return sale

    @classmethod
    def restore(
        cls,
        *,
        sale_id: str,
        customer_id: str,
        customer_name: str,
        user_id: str,
        tenant_id: str,
        status: SaleStatus,
        created_at: datetime,
        updated_at: datetime,
        currency: str = DEFAULT_CURRENCY,
        items: Iterable[SaleItem] = (),
        payments: Iterable[Payment] = (),
        discount: Optional[Discount] = None,
        notes: Optional[str] = None,
        confirmed_at: Optional[datetime] = None,
        paid_at: Optional[datetime] = None,
        cancelled_at: Optional[datetime] = None,
        cancellation_reason: Optional[str] = None,
    ) -> "Sale":
        """Rehydrate a persisted sale. Totals are recomputed, never read back."""

        return cls(
            sale_id=sale_id,
            customer_id=customer_id,
            customer_name=customer_name,
            user_id=user_id,
            tenant_id=tenant_id,
            status=status,
            created_at=created_at,
            updated_at=updated_at,
            currency=currency,
            items=items,
            payments=payments,
            discount=discount,
            notes=notes,
            confirmed_at=confirmed_at,
            paid_at=paid_at,
            cancelled_at=cancelled_at,
            cancellation_reason=cancellation_reason,
        )

    # --- Read side ------------------------------------------------------------

    @property
    def sale_id(self) -> str:
        return self._sale_id

    @property
    def customer_id(self) -> str:
        return self._customer_id

    @property
    def customer_name(self) -> str:
        return self._customer_name

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def tenant_id(self) -> str:
        return self._tenant_id

    @property
    def currency(self) -> str:
        return self._currency

    @property
    def status(self) -> SaleStatus:
        return self._status

    @property
    def items(self) -> Tuple[SaleItem, ...]:
        return tuple(self._items)

    @property
    def items_count(self) -> int:
        return len(self._items)

    @property
    def payments(self) -> Tuple[Payment, ...]:
        return tuple(self._payments)

    @property
    def discount(self) -> Optional[Discount]:
        return self._discount

    @property
    def notes(self) -> Optional[str]:
        return self._notes

    @property
    def subtotal(self) -> Decimal:
        return self._subtotal.amount

    @property
    def discount_amount(self) -> Decimal:
        return self._discount_amount.amount

    @property
    def total(self) -> Decimal:
        return self._total.amount

    @property
    def total_paid(self) -> Decimal:
        paid = Money.zero(self._currency)
        for payment in self._payments:
            if payment.is_confirmed:
                paid = paid + payment.amount
        return paid.amount

    @property
    def remaining_amount(self) -> Decimal:
        return max(Decimal("0.00"), self.total - self.total_paid)

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def updated_at(self) -> datetime:
        return self._updated_at

    @property
    def confirmed_at(self) -> Optional[datetime]:
        return self._confirmed_at

    @property
    def paid_at(self) -> Optional[datetime]:
        return self._paid_at

    @property
    def cancelled_at(self) -> Optional[datetime]:
        return self._cancelled_at

    @property
    def cancellation_reason(self) -> Optional[str]:
        return self._cancellation_reason

    @property
    def is_draft(self) -> bool:
        return self._status is SaleStatus.DRAFT

    @property
    def is_confirmed(self) -> bool:
        return self._status is SaleStatus.CONFIRMED

    @property
    def is_paid(self) -> bool:
        return self._status is SaleStatus.PAID

    @property
    def is_cancelled(self) -> bool:
        return self._status is SaleStatus.CANCELLED

    @property
    def is_fully_paid(self) -> bool:
        return self.total_paid >= self.total

    def find_item(self, item_id: str) -> SaleItem:
        return self._items[self._index_of(item_id)]

    def find_item_by_product(self, product_id: str) -> Optional[SaleItem]:
        for item in self._items:
            if item.product_id == product_id:
                return item
        return None

    # --- Item mutations (DRAFT only) ------------------------------------------

    def add_item(
        self,
        *,
        product_id: str,
        product_name: str,
        product_sku: str,
        quantity: int,
        unit_price: AmountLike,
        discount: Optional[Discount] = None,
        item_id: Optional[str] = None,
    ) -> SaleItem:
        self._require_draft("add items to")
        if self.find_item_by_product(product_id) is not None:
            raise BusinessRuleError(
                f"Product {product_id} already exists in the sale. Update the item quantity instead"
            )

        item = SaleItem.create(
            item_id=item_id,
            product_id=product_id,
            product_name=product_name,
            product_sku=product_sku,
            quantity=quantity,
            unit_price=unit_price,
            discount=discount,
            currency=self._currency,
        )
        if item.currency != self._currency:
            raise ValidationError(
                f"Item price currency {item.currency} does not match sale currency {self._currency}"
            )

        self._replace_items(self._items + [item])
        self._record(
            SaleItemAdded(
                aggregate_id=self._sale_id,
                item_id=item.item_id,
                product_id=product_id,
                quantity=item.quantity.value,
            )
        )
        return item

    def remove_item(self, item_id: str) -> None:
        self._require_draft("remove items from")
        index = self._index_of(item_id)

        items = list(self._items)
        del items[index]
        self._replace_items(items)
        self._record(SaleItemRemoved(aggregate_id=self._sale_id, item_id=item_id))

    def update_item_quantity(self, item_id: str, quantity: int) -> SaleItem:
        self._require_draft("update items of")
        index = self._index_of(item_id)
        return self._replace_item(index, self._items[index].with_quantity(quantity))

    def apply_item_discount(self, item_id: str, discount: Discount) -> SaleItem:
        self._require_draft("update items of")
        index = self._index_of(item_id)
        return self._replace_item(index, self._items[index].with_discount(discount))

    def remove_item_discount(self, item_id: str) -> SaleItem:
        self._require_draft("update items of")
        index = self._index_of(item_id)
        return self._replace_item(index, self._items[index].without_discount())

    def apply_sale_discount(self, discount: Discount) -> None:
        self._require_draft("apply a discount to")
        self._discount = discount
        self._recalculate_totals()
        self._touch()
        self._record(
            SaleDiscountApplied(aggregate_id=self._sale_id, discount_amount=self.discount_amount)
        )

    def remove_sale_discount(self) -> None:
        self._require_draft("remove the discount from")
        self._discount = None
        self._recalculate_totals()
        self._touch()

    # --- Lifecycle --------------------------------------------------------------

    def confirm(self) -> None:
        if not self.is_draft:
            raise BusinessRuleError(
                f"Only draft sales can be confirmed (status: {self._status.value})"
            )
        if not self._items:
            raise BusinessRuleError("Cannot confirm a sale without items")

        now = utc_now()
        self._status = SaleStatus.CONFIRMED
        self._confirmed_at = now
        self._updated_at = now
        self._record(
            SaleConfirmed(
                aggregate_id=self._sale_id,
                customer_id=self._customer_id,
                total_amount=self.total,
            )
        )

    def add_payment(
        self,
        *,
        method: PaymentMethod,
        amount: AmountLike,
        transaction_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Payment:
        if self.is_cancelled:
            raise BusinessRuleError("Cannot add a payment to a cancelled sale")
        if not (self.is_confirmed or self.is_paid):
            raise BusinessRuleError("Sale must be confirmed to receive payments")

        payment_amount = amount if isinstance(amount, Money) else Money.of(amount, self._currency)
        if payment_amount.currency != self._currency:
            raise ValidationError(
                f"Payment currency {payment_amount.currency} does not match sale currency {self._currency}"
            )
        if payment_amount.is_zero():
            raise BusinessRuleError("Payment amount must be greater than zero")
        if self.total_paid + payment_amount.amount > self.total:
            raise BusinessRuleError(
                f"Total payments exceed the sale amount "
                f"(total: {self.total}, paid: {self.total_paid}, payment: {payment_amount.amount})"
            )

        payment = Payment.create(
            method=method,
            amount=payment_amount,
            transaction_id=transaction_id,
            notes=notes,
        )
        payment.confirm()
        self._payments.append(payment)
        self._touch()
        self._record(
            PaymentAdded(
                aggregate_id=self._sale_id,
                payment_id=payment.payment_id,
                method=payment.method.value,
                amount=payment.amount.amount,
            )
        )

        if not self.is_paid and self.is_fully_paid:
            self._status = SaleStatus.PAID
            self._paid_at = self._updated_at
            self._record(SalePaid(aggregate_id=self._sale_id, total_paid=self.total_paid))
        return payment

    def cancel(self, reason: Optional[str] = None) -> None:
        if self.is_cancelled:
            raise BusinessRuleError("Sale is already cancelled")
        if self.is_paid:
            raise BusinessRuleError("Cannot cancel a sale that has already been paid")
        if any(p.is_confirmed for p in self._payments):
            raise BusinessRuleError("Cannot cancel a sale with confirmed payments")

        now = utc_now()
        self._status = SaleStatus.CANCELLED
        self._cancelled_at = now
        self._cancellation_reason = reason
        self._updated_at = now
        self._record(SaleCancelled(aggregate_id=self._sale_id, reason=reason))

    # --- Internals --------------------------------------------------------------

    def _require_draft(self, action: str) -> None:
        if not self.is_draft:
            raise BusinessRuleError(
                f"Can only {action} draft sales (status: {self._status.value})"
            )

    def _index_of(self, item_id: str) -> int:
        for index, item in enumerate(self._items):
            if item.item_id == item_id:
                return index
        raise NotFoundError("Sale item", item_id)

    def _replace_item(self, index: int, item: SaleItem) -> SaleItem:
        items = list(self._items)
        items[index] = item
        self._replace_items(items)
        self._record(
            SaleItemUpdated(
                aggregate_id=self._sale_id,
                item_id=item.item_id,
                quantity=item.quantity.value,
                total=item.total.amount,
            )
        )
        return item

    def _replace_items(self, items: List[SaleItem]) -> None:
        self._items = items
        self._recalculate_totals()
        self._touch()

    def _recalculate_totals(self) -> None:
        self._subtotal, self._discount_amount, self._total = self._compute_totals(
            self._items, self._discount
        )

    def _compute_totals(
        self, items: List[SaleItem], discount: Optional[Discount]
    ) -> Tuple[Money, Money, Money]:
        subtotal = Money.zero(self._currency)
        for item in items:
            subtotal = subtotal + item.total
        discount_amount = Money.zero(self._currency)
        if discount is not None:
            discount_amount = Money(discount.calculate(subtotal.amount), self._currency)
        return subtotal, discount_amount, subtotal - discount_amount

    def _touch(self) -> None:
        self._updated_at = utc_now()

    def __repr__(self) -> str:
        return (
            f"Sale(sale_id={self._sale_id!r}, status={self._status.value}, "
            f"items={len(self._items)}, total={self.total})"
        )
