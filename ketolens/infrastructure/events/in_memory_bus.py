"""In-memory event bus implementation.

Provides an in-memory implementation of the IEventBus port.
Handlers are stored in memory and awaited in subscription order.
"""

from typing import Any, Awaitable, Callable, Dict, List, Type, TypeVar

import structlog

from ketolens.domain.shared.events import DomainEvent

logger = structlog.get_logger(__name__)

TEvent = TypeVar("TEvent", bound=DomainEvent)


def _handler_name(handler: Callable[..., Any]) -> str:
    return getattr(handler, "__name__", type(handler).__name__)


class InMemoryEventBus:
    """
    In-memory implementation of IEventBus port.

    Persistence: Handlers lost on process restart (in-memory only)
    Error handling: Failed handlers log errors but don't prevent other handlers

    Example:
        >>> bus = InMemoryEventBus()
        >>>
        >>> async def on_refined(event: ProductRefined) -> None:
        ...     print(f"Refined: {event.barcode}")
        >>>
        >>> bus.subscribe(ProductRefined, on_refined)
        >>> await bus.publish(ProductRefined.create(...))
    """

    def __init__(self) -> None:
        """Initialize event bus with empty handler registry."""
        self._handlers: Dict[Type[DomainEvent], List[Callable[[Any], Awaitable[None]]]] = {}

    def subscribe(
        self,
        event_type: Type[TEvent],
        handler: Callable[[TEvent], Awaitable[None]],
    ) -> None:
        """
        Subscribe a handler to an event type.

        Note:
            - Same handler can be subscribed multiple times (will be called multiple times)
            - Handlers are called in subscription order
        """
        self._handlers.setdefault(event_type, []).append(handler)

        logger.debug(
            "Handler subscribed",
            event_type=event_type.__name__,
            handler=_handler_name(handler),
        )

    async def publish(self, event: DomainEvent) -> None:
        """
        Publish an event to all subscribed handlers.

        If a handler fails, the error is logged and the remaining
        handlers still run.
        """
        event_type = type(event)
        handlers = list(self._handlers.get(event_type, []))

        if not handlers:
            logger.debug("No handlers for event", event_type=event_type.__name__)
            return

        logger.info(
            "Publishing event",
            event_type=event_type.__name__,
            event_id=str(event.event_id),
            handler_count=len(handlers),
        )

        for handler in handlers:
            try:
                await handler(event)
            except Exception as e:
                logger.error(
                    "Event handler failed",
                    event_type=event_type.__name__,
                    event_id=str(event.event_id),
                    handler=_handler_name(handler),
                    error=str(e),
                    exc_info=True,
                )

    def unsubscribe(
        self,
        event_type: Type[TEvent],
        handler: Callable[[TEvent], Awaitable[None]],
    ) -> bool:
        """
        Unsubscribe a handler from an event type.

        Returns:
            True if handler was found and removed, False otherwise
        """
        handlers = self._handlers.get(event_type)
        if not handlers or handler not in handlers:
            return False

        handlers.remove(handler)
        logger.debug(
            "Handler unsubscribed",
            event_type=event_type.__name__,
            handler=_handler_name(handler),
        )
        return True

    def clear(self) -> None:
        """Clear all event subscriptions."""
        self._handlers.clear()
        logger.debug("All event handlers cleared")

    def get_handler_count(self, event_type: Type[DomainEvent]) -> int:
        """Number of handlers subscribed to an event type."""
        return len(self._handlers.get(event_type, []))
