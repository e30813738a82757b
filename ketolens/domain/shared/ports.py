"""Event bus port (interface).

Defines contract for event publishing and subscription.
The domain defines the port, infrastructure provides the implementation.
"""

from typing import Awaitable, Callable, Protocol, Type, TypeVar

from ketolens.domain.shared.events import DomainEvent

TEvent = TypeVar("TEvent", bound=DomainEvent)

# Event handler type: async function that takes an event and returns None
EventHandler = Callable[[TEvent], Awaitable[None]]


class IEventBus(Protocol):
    """
    Interface for event publishing and subscription.

    Example usage (application layer):
        >>> async def on_refined(event: ProductRefined) -> None:
        ...     print(f"Product {event.barcode} refined")
        ...
        >>> event_bus.subscribe(ProductRefined, on_refined)
        >>> await event_bus.publish(ProductRefined.create(...))
    """

    def subscribe(
        self,
        event_type: Type[TEvent],
        handler: EventHandler[TEvent],
    ) -> None:
        """
        Subscribe a handler to an event type.

        Args:
            event_type: Type of event to listen for (e.g., ProductRefined)
            handler: Async function to call when event is published
        """
        ...

    async def publish(self, event: TEvent) -> None:
        """
        Publish an event to all subscribed handlers.

        Note:
            - Handlers are called in subscription order
            - If a handler fails, other handlers still execute
            - Failed handlers are logged and never raise to the publisher
        """
        ...

    def unsubscribe(
        self,
        event_type: Type[TEvent],
        handler: EventHandler[TEvent],
    ) -> bool:
        """
        Unsubscribe a handler from an event type.

        Returns:
            True if handler was found and removed, False otherwise
        """
        ...

    def clear(self) -> None:
        """Clear all event subscriptions."""
        ...
