"""
Domain: Discount value object.

A discount is either:
- PERCENTAGE: value in [0, 100]; calculate(base) = base * value / 100
- FIXED: value >= 0; calculate(base) = min(value, base)

A discount can never make a line (or a sale) negative: the computed amount is
always capped at the base it is applied to.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from .errors import ValidationError
from .money import AmountLike, quantize_cents, to_decimal


class DiscountType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"


@dataclass(frozen=True, slots=True)
class Discount:
    value: Decimal
    type: DiscountType

    def __post_init__(self) -> None:
        value = to_decimal(self.value, name="discount")
        try:
            discount_type = DiscountType(self.type)
        except ValueError as exc:
            raise ValidationError(f"Unknown discount type: {self.type!r}") from exc
        if value < 0:
            raise ValidationError("Discount cannot be negative")
        if discount_type is DiscountType.PERCENTAGE and value > 100:
            raise ValidationError("Percentage discount cannot be greater than 100")
        object.__setattr__(self, "value", value)
        object.__setattr__(self, "type", discount_type)

    @staticmethod
    def percentage(value: AmountLike) -> "Discount":
        return Discount(to_decimal(value, name="discount"), DiscountType.PERCENTAGE)

    @staticmethod
    def fixed(value: AmountLike) -> "Discount":
        return Discount(to_decimal(value, name="discount"), DiscountType.FIXED)

    @property
    def is_percentage(self) -> bool:
        return self.type is DiscountType.PERCENTAGE

    def calculate(self, base: Decimal) -> Decimal:
        """Discount amount for `base`, rounded to cents and capped at `base`."""

        if base < 0:
            raise ValidationError("Discount base cannot be negative")
        if self.type is DiscountType.PERCENTAGE:
            amount = quantize_cents(base * self.value / Decimal(100))
        else:
            amount = quantize_cents(min(self.value, base))
        return min(amount, base)
