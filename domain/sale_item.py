"""
Domain: SaleItem value object.

A SaleItem is one line of a Sale. Product name, SKU and unit price are
snapshotted when the item is added, so later catalog changes never rewrite a
historical sale.

Contract:
- subtotal = unit_price * quantity
- total = subtotal - discount.calculate(subtotal)   (or subtotal without discount)
- Items are immutable. Changing quantity or discount produces a new SaleItem
  with the same item_id; the owning Sale replaces the slot.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
from uuid import uuid4

from .discount import Discount
from .errors import ValidationError
from .money import DEFAULT_CURRENCY, AmountLike, Money
from .quantity import Quantity


@dataclass(frozen=True, slots=True)
class SaleItem:
    item_id: str
    product_id: str
    product_name: str
    product_sku: str
    quantity: Quantity
    unit_price: Money
    subtotal: Money
    total: Money
    discount: Optional[Discount] = None

    def __post_init__(self) -> None:
        for name in ("item_id", "product_id", "product_name", "product_sku"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(f"SaleItem {name} cannot be empty")
        if self.quantity.value == 0:
            raise ValidationError("SaleItem quantity must be greater than zero")

        expected_subtotal, expected_total = _compute(self.unit_price, self.quantity, self.discount)
        if self.subtotal != expected_subtotal:
            raise ValidationError(
                f"SaleItem subtotal {self.subtotal.amount} does not match "
                f"unit_price x quantity ({expected_subtotal.amount})"
            )
        if self.total != expected_total:
            raise ValidationError(
                f"SaleItem total {self.total.amount} does not match "
                f"subtotal - discount ({expected_total.amount})"
            )

    @staticmethod
    def create(
        *,
        product_id: str,
        product_name: str,
        product_sku: str,
        quantity: int,
        unit_price: AmountLike,
        discount: Optional[Discount] = None,
        currency: str = DEFAULT_CURRENCY,
        item_id: Optional[str] = None,
    ) -> "SaleItem":
        """Build a new line, computing subtotal and total from the inputs."""

        qty = Quantity.positive(quantity)
        price = unit_price if isinstance(unit_price, Money) else Money.of(unit_price, currency)
        subtotal, total = _compute(price, qty, discount)
        return SaleItem(
            item_id=item_id or str(uuid4()),
            product_id=product_id,
            product_name=product_name,
            product_sku=product_sku,
            quantity=qty,
            unit_price=price,
            subtotal=subtotal,
            total=total,
            discount=discount,
        )

    @staticmethod
    def restore(
        *,
        item_id: str,
        product_id: str,
        product_name: str,
        product_sku: str,
        quantity: int,
        unit_price: AmountLike,
        subtotal: AmountLike,
        total: AmountLike,
        discount: Optional[Discount] = None,
        currency: str = DEFAULT_CURRENCY,
    ) -> "SaleItem":
        """Rehydrate a persisted line. Inconsistent monetary fields are rejected."""

        return SaleItem(
            item_id=item_id,
            product_id=product_id,
            product_name=product_name,
            product_sku=product_sku,
            quantity=Quantity(quantity),
            unit_price=Money.of(unit_price, currency),
            subtotal=Money.of(subtotal, currency),
            total=Money.of(total, currency),
            discount=discount,
        )

    @property
    def currency(self) -> str:
        return self.unit_price.currency

    @property
    def discount_amount(self) -> Decimal:
        return self.subtotal.amount - self.total.amount

    def with_quantity(self, quantity: int) -> "SaleItem":
        return self._replace(quantity=quantity, discount=self.discount)

    def with_discount(self, discount: Discount) -> "SaleItem":
        return self._replace(quantity=self.quantity.value, discount=discount)

    def without_discount(self) -> "SaleItem":
        return self._replace(quantity=self.quantity.value, discount=None)

    def _replace(self, *, quantity: int, discount: Optional[Discount]) -> "SaleItem":
        return SaleItem.create(
            item_id=self.item_id,
            product_id=self.product_id,
            product_name=self.product_name,
            product_sku=self.product_sku,
            quantity=quantity,
            unit_price=self.unit_price,
            discount=discount,
        )


def _compute(unit_price: Money, quantity: Quantity, discount: Optional[Discount]) -> tuple[Money, Money]:
    subtotal = unit_price * quantity.value
    if discount is None:
        return subtotal, subtotal
    discount_amount = Money(discount.calculate(subtotal.amount), subtotal.currency)
    return subtotal, subtotal - discount_amount
