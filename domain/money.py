"""
Domain: Money value object.

Contract:
- Amount is a non-negative Decimal, always quantized to cents.
- Currency is a 3-letter upper-case code.
- Arithmetic between different currencies fails.

Money never holds an invalid amount: construction either succeeds with a
validated value or raises ValidationError.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from .errors import CurrencyMismatchError, ValidationError

DEFAULT_CURRENCY = "BRL"

_CENTS = Decimal("0.01")

AmountLike = Union[Decimal, int, float, str]


def to_decimal(value: AmountLike, *, name: str = "amount") -> Decimal:
    """Coerce a numeric input into a finite Decimal (floats go through str)."""

    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number, got bool")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError) as exc:
            raise ValidationError(f"Invalid {name}: {value!r}") from exc
    if not result.is_finite():
        raise ValidationError(f"{name} must be a finite number, got {value!r}")
    return result


def quantize_cents(value: Decimal) -> Decimal:
    return value.quantize(_CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True, slots=True)
class Money:
    """Non-negative monetary amount with currency."""

    amount: Decimal
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        amount = quantize_cents(to_decimal(self.amount))
        if amount < 0:
            raise ValidationError(f"Amount cannot be negative, got {amount}")
        if not isinstance(self.currency, str) or len(self.currency.strip()) != 3:
            raise ValidationError(f"Currency must be a 3-letter code, got {self.currency!r}")
        object.__setattr__(self, "amount", amount)
        object.__setattr__(self, "currency", self.currency.strip().upper())

    @staticmethod
    def of(amount: AmountLike, currency: str = DEFAULT_CURRENCY) -> "Money":
        return Money(to_decimal(amount), currency)

    @staticmethod
    def zero(currency: str = DEFAULT_CURRENCY) -> "Money":
        return Money(Decimal("0"), currency)

    def is_zero(self) -> bool:
        return self.amount == 0

    def __add__(self, other: "Money") -> "Money":
        self._require_same_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: "Money") -> "Money":
        self._require_same_currency(other)
        result = self.amount - other.amount
        if result < 0:
            raise ValidationError("Money subtraction would result in a negative amount")
        return Money(result, self.currency)

    def __mul__(self, factor: int) -> "Money":
        if isinstance(factor, bool) or not isinstance(factor, int):
            raise TypeError(f"Can only multiply Money by int, got {type(factor).__name__}")
        return Money(self.amount * factor, self.currency)

    def __lt__(self, other: "Money") -> bool:
        self._require_same_currency(other)
        return self.amount < other.amount

    def __le__(self, other: "Money") -> bool:
        self._require_same_currency(other)
        return self.amount <= other.amount

    def __gt__(self, other: "Money") -> bool:
        self._require_same_currency(other)
        return self.amount > other.amount

    def __ge__(self, other: "Money") -> bool:
        self._require_same_currency(other)
        return self.amount >= other.amount

    def __str__(self) -> str:
        return f"{self.amount:.2f} {self.currency}"

    def _require_same_currency(self, other: "Money") -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(self.currency, other.currency)
