"""
Unit of Work

One database transaction per command. Domain events gathered while the
transaction is open are handed to the message bus only once the outermost
transaction has committed; a rollback drops them.
"""

from typing import List
import logging

from django.db import transaction

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


class DjangoUnitOfWork:
    """
    transaction.atomic() plus post-commit event publishing

    Nested use (a unit of work inside another, or inside a test's
    transaction) becomes a savepoint; publishing still waits for the real
    commit.

    Usage:
        with DjangoUnitOfWork() as uow:
            booking = Booking(...)
            booking.save()
            booking.add_event(BookingConfirmed(...))
            uow.collect_events(booking)
    """

    def __init__(self):
        self._pending: List[DomainEvent] = []
        self._atomic = None

    def __enter__(self):
        self._atomic = transaction.atomic()
        self._atomic.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is None:
                self._schedule_publish()
            elif self._pending:
                logger.warning(
                    f"Unit of work failed with {exc_type.__name__}; "
                    f"dropping {len(self._pending)} unpublished events"
                )
        finally:
            self._pending = []
            self._atomic.__exit__(exc_type, exc_val, exc_tb)

    def collect_events(self, *aggregates):
        """Drain pending events from dataclass aggregates or EventRecorder models"""
        for aggregate in aggregates:
            drained = aggregate.events
            if not drained:
                continue
            self._pending.extend(drained)
            aggregate.clear_events()
            logger.debug(f"Collected {len(drained)} events from {aggregate.__class__.__name__}")

    def record(self, event: DomainEvent):
        """Queue an event with no aggregate to live on (a released hold, for one)"""
        self._pending.append(event)

    def _schedule_publish(self):
        if not self._pending:
            return
        events = list(self._pending)
        transaction.on_commit(lambda: _publish(events))


def _publish(events: List[DomainEvent]):
    from shared.application.message_bus import message_bus

    logger.info(f"Publishing {len(events)} domain events after commit")
    try:
        message_bus.publish_events(events)
    except Exception as e:
        # Already committed; a failed fan-out must not turn into a failed request
        logger.error(f"Error publishing events: {e}", exc_info=True)
