"""
Domain building blocks

- ValueObject: immutable, compared by value (windows, time ranges)
- Aggregate: in-memory consistency boundary with an identity
- EventRecorder: lets a Django model act as an aggregate root
- DomainEvent: a fact published after the transaction that produced it
"""

from abc import ABC
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List
from uuid import UUID, uuid4


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ValueObject(ABC):
    """Immutable; two value objects with equal attributes are equal."""
    pass


class _PendingEvents:
    """add_event / clear_events / events over a per-instance list."""

    def _event_queue(self) -> List['DomainEvent']:
        raise NotImplementedError

    def add_event(self, event: 'DomainEvent'):
        self._event_queue().append(event)

    def clear_events(self):
        self._event_queue().clear()

    @property
    def events(self) -> List['DomainEvent']:
        return list(self._event_queue())


class EventRecorder(_PendingEvents):
    """
    Event queue for Django models

    Kept in the instance __dict__ rather than as a field so the model's
    columns and __init__ are untouched.
    """

    def _event_queue(self) -> List['DomainEvent']:
        return self.__dict__.setdefault('_pending_events', [])


@dataclass(eq=False)
class Aggregate(_PendingEvents):
    """Dataclass aggregate root; identity by id, events queued until collected."""
    id: UUID = field(default_factory=uuid4)
    _events: List['DomainEvent'] = field(default_factory=list, repr=False, init=False)

    def _event_queue(self) -> List['DomainEvent']:
        return self._events

    def __eq__(self, other):
        return isinstance(other, self.__class__) and self.id == other.id

    def __hash__(self):
        return hash(self.id)


@dataclass(kw_only=True)
class DomainEvent:
    """Base for domain events; subclasses are keyword-only dataclasses."""
    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=_utcnow)
    aggregate_id: Any = None

    def to_dict(self) -> dict:
        return {
            'event_id': str(self.event_id),
            'event_type': self.__class__.__name__,
            'occurred_at': self.occurred_at.isoformat(),
            'aggregate_id': str(self.aggregate_id) if self.aggregate_id is not None else None,
        }
