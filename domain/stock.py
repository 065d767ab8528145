"""
Domain: Stock aggregate.

One Stock holds the on-hand and reserved quantity of a product at a location,
for one tenant.

Contract:
- quantity >= 0 and reserved_quantity <= quantity, always.
- available_quantity = quantity - reserved_quantity.
- A decrease or reservation requires available_quantity >= requested.
- Low level means quantity <= minimum_quantity.
- increase / decrease / adjust / transfer each return exactly one
  StockMovement. reserve / release are soft holds and return none.
- A failed operation leaves the aggregate untouched.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import uuid4

from .errors import BusinessRuleError, InsufficientStockError, ValidationError
from .events import (
    EventRecorder,
    StockAdjusted,
    StockCreated,
    StockDecreased,
    StockIncreased,
    StockLowLevel,
)
from .location import Location, LocationType
from .quantity import Quantity
from .stock_movement import MovementReason, MovementType, StockMovement
from .time import require_utc_timestamp, utc_now

_INBOUND_REASONS = {MovementReason.PURCHASE, MovementReason.RETURN}
_OUTBOUND_REASONS = {
    MovementReason.SALE,
    MovementReason.LOSS,
    MovementReason.DAMAGED,
}


def _coerce_reason(reason: object) -> MovementReason:
    try:
        return MovementReason(reason)
    except ValueError as exc:
        raise ValidationError(f"Unknown movement reason: {reason!r}") from exc


class Stock(EventRecorder):
    def __init__(
        self,
        *,
        stock_id: str,
        product_id: str,
        location: Location,
        quantity: Quantity,
        minimum_quantity: Quantity,
        reserved_quantity: Quantity,
        tenant_id: str,
        created_at: datetime,
        updated_at: datetime,
        maximum_quantity: Optional[Quantity] = None,
    ) -> None:
        super().__init__()
        if not stock_id or not product_id or not tenant_id:
            raise ValidationError("Stock requires stock_id, product_id and tenant_id")
        if reserved_quantity > quantity:
            raise ValidationError(
                f"Reserved quantity {reserved_quantity} exceeds on-hand quantity {quantity}"
            )
        if maximum_quantity is not None and maximum_quantity < minimum_quantity:
            raise ValidationError("Maximum quantity cannot be lower than minimum quantity")
        require_utc_timestamp("created_at", created_at)
        require_utc_timestamp("updated_at", updated_at)

        self._stock_id = stock_id
        self._product_id = product_id
        self._location = location
        self._quantity = quantity
        self._minimum_quantity = minimum_quantity
        self._maximum_quantity = maximum_quantity
        self._reserved_quantity = reserved_quantity
        self._tenant_id = tenant_id
        self._created_at = created_at
        self._updated_at = updated_at

    @classmethod
    def create(
        cls,
        *,
        product_id: str,
        location_name: str,
        location_code: str,
        location_type: LocationType,
        initial_quantity: int,
        minimum_quantity: int,
        tenant_id: str,
        maximum_quantity: Optional[int] = None,
        stock_id: Optional[str] = None,
    ) -> "Stock":
        now = utc_now()
        stock = cls(
            stock_id=stock_id or str(uuid4()),
            product_id=product_id,
            location=Location(location_name, location_code, location_type),
            quantity=Quantity(initial_quantity),
            minimum_quantity=Quantity(minimum_quantity),
            maximum_quantity=Quantity(maximum_quantity) if maximum_quantity is not None else None,
            reserved_quantity=Quantity(0),
            tenant_id=tenant_id,
            created_at=now,
            updated_at=now,
        )
        stock._record(
            StockCreated(
                aggregate_id=stock.stock_id,
                product_id=product_id,
                location_code=stock.location_code,
                initial_quantity=stock.quantity,
            )
        )
        return stock

    @classmethod
    def restore(
        cls,
        *,
        stock_id: str,
        product_id: str,
        location_name: str,
        location_code: str,
        location_type: LocationType,
        quantity: int,
        minimum_quantity: int,
        reserved_quantity: int,
        tenant_id: str,
        created_at: datetime,
        updated_at: datetime,
        maximum_quantity: Optional[int] = None,
    ) -> "Stock":
        return cls(
            stock_id=stock_id,
            product_id=product_id,
            location=Location(location_name, location_code, location_type),
            quantity=Quantity(quantity),
            minimum_quantity=Quantity(minimum_quantity),
            maximum_quantity=Quantity(maximum_quantity) if maximum_quantity is not None else None,
            reserved_quantity=Quantity(reserved_quantity),
            tenant_id=tenant_id,
            created_at=created_at,
            updated_at=updated_at,
        )

    @property
    def stock_id(self) -> str:
        return self._stock_id

    @property
    def product_id(self) -> str:
        return self._product_id

    @property
    def location(self) -> Location:
        return self._location

    @property
    def location_name(self) -> str:
        return self._location.name

    @property
    def location_code(self) -> str:
        return self._location.code

    @property
    def location_type(self) -> LocationType:
        return self._location.type

    @property
    def quantity(self) -> int:
        return self._quantity.value

    @property
    def minimum_quantity(self) -> int:
        return self._minimum_quantity.value

    @property
    def maximum_quantity(self) -> Optional[int]:
        if self._maximum_quantity is None:
            return None
        return self._maximum_quantity.value

    @property
    def reserved_quantity(self) -> int:
        return self._reserved_quantity.value

    @property
    def available_quantity(self) -> int:
        return self._quantity.value - self._reserved_quantity.value

    @property
    def tenant_id(self) -> str:
        return self._tenant_id

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def updated_at(self) -> datetime:
        return self._updated_at

    def has_available_quantity(self, quantity: int) -> bool:
        return self.available_quantity >= quantity

    def is_low_level(self) -> bool:
        return self._quantity <= self._minimum_quantity

    def is_over_maximum(self) -> bool:
        if self._maximum_quantity is None:
            return False
        return self._quantity > self._maximum_quantity

    # --- Ledger operations ------------------------------------------------------

    def increase_stock(
        self,
        quantity: int,
        user_id: str,
        reason: MovementReason = MovementReason.PURCHASE,
        *,
        reference_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> StockMovement:
        amount = Quantity.positive(quantity)
        reason = _coerce_reason(reason)
        if reason not in _INBOUND_REASONS:
            raise ValidationError(f"{reason.value} is not a valid reason for a stock increase")

        movement = self._move(
            self._quantity + amount,
            MovementType.IN,
            reason,
            user_id,
            reference_id=reference_id,
            notes=notes,
        )
        self._record(
            StockIncreased(
                aggregate_id=self._stock_id,
                product_id=self._product_id,
                quantity=amount.value,
                location_code=self.location_code,
            )
        )
        return movement

    def decrease_stock(
        self,
        quantity: int,
        user_id: str,
        reason: MovementReason = MovementReason.SALE,
        *,
        reference_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> StockMovement:
        amount = Quantity.positive(quantity)
        reason = _coerce_reason(reason)
        if reason not in _OUTBOUND_REASONS:
            raise ValidationError(f"{reason.value} is not a valid reason for a stock decrease")
        self._require_available(amount)

        movement = self._move(
            self._quantity - amount,
            MovementType.OUT,
            reason,
            user_id,
            reference_id=reference_id,
            notes=notes,
        )
        self._record(
            StockDecreased(
                aggregate_id=self._stock_id,
                product_id=self._product_id,
                quantity=amount.value,
                location_code=self.location_code,
            )
        )
        self._record_if_low_level()
        return movement

    def adjust_stock(self, new_quantity: int, user_id: str, notes: Optional[str] = None) -> StockMovement:
        """Set an absolute on-hand quantity (stock-take)."""

        target = Quantity(new_quantity)
        if target < self._reserved_quantity:
            raise BusinessRuleError(
                f"Cannot adjust stock to {target.value}: {self.reserved_quantity} units are reserved"
            )

        previous = self.quantity
        movement = self._move(
            target,
            MovementType.ADJUSTMENT,
            MovementReason.ADJUSTMENT,
            user_id,
            notes=notes,
        )
        self._record(
            StockAdjusted(
                aggregate_id=self._stock_id,
                product_id=self._product_id,
                previous_quantity=previous,
                current_quantity=self.quantity,
                location_code=self.location_code,
            )
        )
        self._record_if_low_level()
        return movement

    def transfer_out(self, quantity: int, user_id: str, *, reference_id: Optional[str] = None) -> StockMovement:
        amount = Quantity.positive(quantity)
        self._require_available(amount)
        movement = self._move(
            self._quantity - amount,
            MovementType.TRANSFER,
            MovementReason.TRANSFER_OUT,
            user_id,
            reference_id=reference_id,
        )
        self._record(
            StockDecreased(
                aggregate_id=self._stock_id,
                product_id=self._product_id,
                quantity=amount.value,
                location_code=self.location_code,
            )
        )
        self._record_if_low_level()
        return movement

    def transfer_in(self, quantity: int, user_id: str, *, reference_id: Optional[str] = None) -> StockMovement:
        amount = Quantity.positive(quantity)
        movement = self._move(
            self._quantity + amount,
            MovementType.TRANSFER,
            MovementReason.TRANSFER_IN,
            user_id,
            reference_id=reference_id,
        )
        self._record(
            StockIncreased(
                aggregate_id=self._stock_id,
                product_id=self._product_id,
                quantity=amount.value,
                location_code=self.location_code,
            )
        )
        return movement

    # --- Soft holds -------------------------------------------------------------

    def reserve_stock(self, quantity: int) -> None:
        amount = Quantity.positive(quantity)
        self._require_available(amount)
        self._reserved_quantity = self._reserved_quantity + amount
        self._updated_at = utc_now()

    def release_reserved_stock(self, quantity: int) -> None:
        amount = Quantity.positive(quantity)
        if amount > self._reserved_quantity:
            raise BusinessRuleError(
                f"Cannot release {amount.value} units: only {self.reserved_quantity} reserved"
            )
        self._reserved_quantity = self._reserved_quantity - amount
        self._updated_at = utc_now()

    # --- Thresholds ---------------------------------------------------------------

    def update_minimum_quantity(self, quantity: int) -> None:
        minimum = Quantity(quantity)
        if self._maximum_quantity is not None and self._maximum_quantity < minimum:
            raise ValidationError("Minimum quantity cannot exceed maximum quantity")
        self._minimum_quantity = minimum
        self._updated_at = utc_now()

    def update_maximum_quantity(self, quantity: Optional[int]) -> None:
        maximum = Quantity(quantity) if quantity is not None else None
        if maximum is not None and maximum < self._minimum_quantity:
            raise ValidationError("Maximum quantity cannot be lower than minimum quantity")
        self._maximum_quantity = maximum
        self._updated_at = utc_now()

    # --- Internals ----------------------------------------------------------------

    def _require_available(self, amount: Quantity) -> None:
        if not self.has_available_quantity(amount.value):
            raise InsufficientStockError(
                requested=amount.value,
                available=self.available_quantity,
                product_id=self._product_id,
            )

    def _move(
        self,
        target: Quantity,
        movement_type: MovementType,
        reason: MovementReason,
        user_id: str,
        *,
        reference_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> StockMovement:
        previous = self._quantity
        movement = StockMovement.create(
            stock_id=self._stock_id,
            product_id=self._product_id,
            type=movement_type,
            reason=reason,
            quantity=abs(target.value - previous.value),
            previous_quantity=previous.value,
            current_quantity=target.value,
            user_id=user_id,
            tenant_id=self._tenant_id,
            reference_id=reference_id,
            notes=notes,
        )
        self._quantity = target
        self._updated_at = movement.created_at
        return movement

    def _record_if_low_level(self) -> None:
        if self.is_low_level():
            self._record(
                StockLowLevel(
                    aggregate_id=self._stock_id,
                    product_id=self._product_id,
                    current_quantity=self.quantity,
                    minimum_quantity=self.minimum_quantity,
                    location_code=self.location_code,
                )
            )

    def __repr__(self) -> str:
        return (
            f"Stock(stock_id={self._stock_id!r}, product_id={self._product_id!r}, "
            f"location={self.location_code}, quantity={self.quantity}, reserved={self.reserved_quantity})"
        )
