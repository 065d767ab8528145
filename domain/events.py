"""
Domain: events recorded by aggregates.

Events are immutable facts named in the past tense. Aggregates append them to
their own outbox (`EventRecorder`); the orchestration layer drains the outbox
after a successful save and hands the events to a publisher. There is no global
event bus in the domain.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from .time import utc_now


@dataclass(frozen=True, slots=True, kw_only=True)
class DomainEvent:
    aggregate_id: str
    occurred_at: datetime = field(default_factory=utc_now)

    @property
    def event_type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly payload (Decimals and datetimes as strings)."""

        payload: Dict[str, Any] = {"event_type": self.event_type}
        for key, value in asdict(self).items():
            if isinstance(value, datetime):
                value = value.isoformat()
            elif isinstance(value, Decimal):
                value = str(value)
            elif isinstance(value, Enum):
                value = value.value
            payload[key] = value
        return payload


class EventRecorder:
    """Outbox owned by an aggregate instance."""

    def __init__(self) -> None:
        self._domain_events: List[DomainEvent] = []

    def _record(self, event: DomainEvent) -> None:
        self._domain_events.append(event)

    def get_domain_events(self) -> List[DomainEvent]:
        return list(self._domain_events)

    def clear_domain_events(self) -> None:
        self._domain_events = []

    def pull_domain_events(self) -> List[DomainEvent]:
        """Return the pending events and empty the outbox."""

        events = self.get_domain_events()
        self.clear_domain_events()
        return events


# --- Sale --------------------------------------------------------------------


@dataclass(frozen=True, slots=True, kw_only=True)
class SaleCreated(DomainEvent):
    customer_id: str
    total_amount: Decimal
    items_count: int


@dataclass(frozen=True, slots=True, kw_only=True)
class SaleItemAdded(DomainEvent):
    item_id: str
    product_id: str
    quantity: int


@dataclass(frozen=True, slots=True, kw_only=True)
class SaleItemRemoved(DomainEvent):
    item_id: str


@dataclass(frozen=True, slots=True, kw_only=True)
class SaleItemUpdated(DomainEvent):
    item_id: str
    quantity: int
    total: Decimal


@dataclass(frozen=True, slots=True, kw_only=True)
class SaleDiscountApplied(DomainEvent):
    discount_amount: Decimal


@dataclass(frozen=True, slots=True, kw_only=True)
class SaleConfirmed(DomainEvent):
    customer_id: str
    total_amount: Decimal


@dataclass(frozen=True, slots=True, kw_only=True)
class PaymentAdded(DomainEvent):
    payment_id: str
    method: str
    amount: Decimal


@dataclass(frozen=True, slots=True, kw_only=True)
class SalePaid(DomainEvent):
    total_paid: Decimal


@dataclass(frozen=True, slots=True, kw_only=True)
class SaleCancelled(DomainEvent):
    reason: Optional[str] = None


# --- Stock -------------------------------------------------------------------


@dataclass(frozen=True, slots=True, kw_only=True)
class StockCreated(DomainEvent):
    product_id: str
    location_code: str
    initial_quantity: int


@dataclass(frozen=True, slots=True, kw_only=True)
class StockIncreased(DomainEvent):
    product_id: str
    quantity: int
    location_code: str


@dataclass(frozen=True, slots=True, kw_only=True)
class StockDecreased(DomainEvent):
    product_id: str
    quantity: int
    location_code: str


@dataclass(frozen=True, slots=True, kw_only=True)
class StockAdjusted(DomainEvent):
    product_id: str
    previous_quantity: int
    current_quantity: int
    location_code: str


@dataclass(frozen=True, slots=True, kw_only=True)
class StockLowLevel(DomainEvent):
    product_id: str
    current_quantity: int
    minimum_quantity: int
    location_code: str
