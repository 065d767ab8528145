"""
Domain event publishers.

Use cases drain an aggregate's outbox only after the aggregate has been saved
and hand the events to a publisher. Delivery to an external bus is out of
scope; the default publisher writes each event to the application log.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from domain.events import DomainEvent

logger = logging.getLogger(__name__)


class LoggingEventPublisher:
    """Log every published event at INFO with its payload as structured fields."""

    def publish(self, events: Sequence[DomainEvent]) -> None:
        for event in events:
            logger.info(
                "Domain event %s",
                event.event_type,
                extra={
                    "event_type": event.event_type,
                    "aggregate_id": event.aggregate_id,
                    "event_payload": event.to_dict(),
                },
            )


class InMemoryEventPublisher:
    """Collect published events in order. Used by tests."""

    def __init__(self) -> None:
        self.events: List[DomainEvent] = []

    def publish(self, events: Sequence[DomainEvent]) -> None:
        self.events.extend(events)

    def event_types(self) -> List[str]:
        return [event.event_type for event in self.events]

    def clear(self) -> None:
        self.events = []


__all__ = ["LoggingEventPublisher", "InMemoryEventPublisher"]
