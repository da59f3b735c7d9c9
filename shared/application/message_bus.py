"""
Message Bus

Commands go to exactly one handler and their result (or exception) comes
straight back to the caller. Events fan out to any number of handlers;
a failing event handler is logged and skipped.

Booking command handlers and event handlers are registered from
BookingsConfig.ready().
"""

from collections import defaultdict
from typing import Any, Callable, Dict, List, Type
import logging

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], None]


class MessageBus:
    def __init__(self):
        self._subscribers: Dict[Type[DomainEvent], List[EventHandler]] = defaultdict(list)
        self._commands: Dict[Type, Callable[[Any], Any]] = {}

    def register_event_handler(self, event_type: Type[DomainEvent], handler: EventHandler):
        """Subscribe a handler; subscribing the same callable again changes nothing"""
        subscribers = self._subscribers[event_type]
        if handler not in subscribers:
            subscribers.append(handler)
            logger.debug(f"{handler.__name__} subscribed to {event_type.__name__}")

    def register_command_handler(self, command_type: Type, handler: Callable[[Any], Any]):
        """
        Bind the handler for a command type

        Re-binding the very same callable is allowed (apps can be set up more
        than once in tests); binding a different one is a programming error.
        """
        current = self._commands.get(command_type)
        if current is not None and current is not handler:
            raise ValueError(f"{command_type.__name__} already has a handler")
        self._commands[command_type] = handler

    def handle_command(self, command: Any) -> Any:
        name = type(command).__name__
        handler = self._commands.get(type(command))
        if handler is None:
            raise ValueError(f"No handler registered for command {name}")

        logger.info(f"Handling command: {name}")
        try:
            return handler(command)
        except Exception as e:
            logger.info(f"Command {name} failed: {e.__class__.__name__}: {e}")
            raise

    def publish_events(self, events: List[DomainEvent]):
        for event in events:
            event_type = type(event)
            subscribers = self._subscribers.get(event_type, [])
            if not subscribers:
                logger.debug(f"No handlers registered for event {event_type.__name__}")
                continue

            logger.info(f"Publishing event: {event.to_dict()}")
            for handler in subscribers:
                try:
                    handler(event)
                except Exception as e:
                    logger.error(
                        f"Event handler {handler.__name__} failed for {event_type.__name__}: {e}",
                        exc_info=True,
                    )


message_bus = MessageBus()
