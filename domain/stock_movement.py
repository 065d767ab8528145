"""
Domain: StockMovement ledger entry.

A StockMovement is the audit record of exactly one quantity change on a Stock
aggregate. It is created once, when the change happens, and is never updated
or deleted.

`quantity` is always the magnitude of the change; the direction is given by
`type` together with `previous_quantity` and `current_quantity`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from .errors import ValidationError
from .quantity import Quantity
from .time import require_utc_timestamp, utc_now


class MovementType(str, Enum):
    IN = "IN"
    OUT = "OUT"
    ADJUSTMENT = "ADJUSTMENT"
    TRANSFER = "TRANSFER"


class MovementReason(str, Enum):
    PURCHASE = "PURCHASE"
    SALE = "SALE"
    RETURN = "RETURN"
    ADJUSTMENT = "ADJUSTMENT"
    TRANSFER_IN = "TRANSFER_IN"
    TRANSFER_OUT = "TRANSFER_OUT"
    LOSS = "LOSS"
    DAMAGED = "DAMAGED"


@dataclass(frozen=True, slots=True)
class StockMovement:
    movement_id: str
    stock_id: str
    product_id: str
    type: MovementType
    reason: MovementReason
    quantity: Quantity
    previous_quantity: Quantity
    current_quantity: Quantity
    user_id: str
    tenant_id: str
    created_at: datetime = field(default_factory=utc_now)
    reference_id: Optional[str] = None
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "type", MovementType(self.type))
            object.__setattr__(self, "reason", MovementReason(self.reason))
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        if not self.user_id:
            raise ValidationError("StockMovement user_id is required")
        require_utc_timestamp("created_at", self.created_at)

        delta = abs(self.current_quantity.value - self.previous_quantity.value)
        if delta != self.quantity.value:
            raise ValidationError(
                f"StockMovement quantity {self.quantity.value} does not match "
                f"the change {self.previous_quantity.value} -> {self.current_quantity.value}"
            )

    @staticmethod
    def create(
        *,
        stock_id: str,
        product_id: str,
        type: MovementType,
        reason: MovementReason,
        quantity: int,
        previous_quantity: int,
        current_quantity: int,
        user_id: str,
        tenant_id: str,
        reference_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> "StockMovement":
        return StockMovement(
            movement_id=str(uuid4()),
            stock_id=stock_id,
            product_id=product_id,
            type=type,
            reason=reason,
            quantity=Quantity(quantity),
            previous_quantity=Quantity(previous_quantity),
            current_quantity=Quantity(current_quantity),
            user_id=user_id,
            tenant_id=tenant_id,
            reference_id=reference_id,
            notes=notes,
        )

    @staticmethod
    def restore(
        *,
        movement_id: str,
        stock_id: str,
        product_id: str,
        type: MovementType,
        reason: MovementReason,
        quantity: int,
        previous_quantity: int,
        current_quantity: int,
        user_id: str,
        tenant_id: str,
        created_at: datetime,
        reference_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> "StockMovement":
        return StockMovement(
            movement_id=movement_id,
            stock_id=stock_id,
            product_id=product_id,
            type=type,
            reason=reason,
            quantity=Quantity(quantity),
            previous_quantity=Quantity(previous_quantity),
            current_quantity=Quantity(current_quantity),
            user_id=user_id,
            tenant_id=tenant_id,
            created_at=created_at,
            reference_id=reference_id,
            notes=notes,
        )

    @property
    def signed_quantity(self) -> int:
        return self.current_quantity.value - self.previous_quantity.value
