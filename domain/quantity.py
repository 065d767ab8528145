"""
Domain: Quantity value object.

A Quantity is a non-negative whole number of units. Subtraction below zero is
rejected rather than clamped.
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import ValidationError


def to_whole_number(value: object, *, name: str = "quantity") -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a whole number, got bool")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise ValidationError(f"{name} must be a whole number, got {value!r}")


@dataclass(frozen=True, slots=True, order=True)
class Quantity:
    value: int

    def __post_init__(self) -> None:
        value = to_whole_number(self.value)
        if value < 0:
            raise ValidationError(f"Quantity cannot be negative, got {value}")
        object.__setattr__(self, "value", value)

    @staticmethod
    def positive(value: object, *, name: str = "quantity") -> "Quantity":
        """Build a Quantity that must also be strictly greater than zero."""

        qty = Quantity(to_whole_number(value, name=name))
        if qty.value == 0:
            raise ValidationError(f"{name} must be greater than zero")
        return qty

    def __add__(self, other: "Quantity") -> "Quantity":
        return Quantity(self.value + other.value)

    def __sub__(self, other: "Quantity") -> "Quantity":
        result = self.value - other.value
        if result < 0:
            raise ValidationError(
                f"Quantity subtraction would be negative ({self.value} - {other.value})"
            )
        return Quantity(result)

    def __int__(self) -> int:
        return self.value

    def __str__(self) -> str:
        return str(self.value)
