"""
Typed publish/subscribe bus for cross-component notifications.

Each event is a frozen pydantic model; handlers subscribe to an event
class and receive instances of exactly that class. Publishing is
synchronous: by the time publish() returns every handler has run.
"""

import logging
from typing import Callable, TypeVar

from pydantic import BaseModel, Field

from .models import AddressRecord, UserRecord

logger = logging.getLogger(__name__)


class Event(BaseModel):
    """Base class for all bus events."""

    model_config = {"frozen": True}


class SessionEstablished(Event):
    """A user logged in or finished OTP verification."""

    user: UserRecord


class SessionEnded(Event):
    """The session was torn down (logout, failed refresh, 401)."""

    reason: str = Field(default="logout", description="Why the session ended")


class ProfileUpdated(Event):
    """The server confirmed a profile change."""

    user: UserRecord


class AddressAdded(Event):
    address: AddressRecord


class AddressUpdated(Event):
    address: AddressRecord


class AddressDeleted(Event):
    address_id: str


E = TypeVar("E", bound=Event)
Handler = Callable[[E], None]


class EventBus:
    """
    In-process event bus.

    A handler that raises is logged and skipped; the remaining handlers
    still receive the event.
    """

    def __init__(self) -> None:
        self._handlers: dict[type[Event], list[Callable[[Event], None]]] = {}

    def subscribe(self, event_type: type[E], handler: Handler) -> None:
        """Register a handler for one event class."""
        self._handlers.setdefault(event_type, []).append(handler)

    def unsubscribe(self, event_type: type[E], handler: Handler) -> None:
        """Remove every registration of a handler. Unknown handlers are ignored."""
        handlers = self._handlers.get(event_type)
        if not handlers:
            return
        self._handlers[event_type] = [h for h in handlers if h != handler]

    def handler_count(self, event_type: type[Event]) -> int:
        return len(self._handlers.get(event_type, []))

    def publish(self, event: Event) -> None:
        """Deliver an event to every handler subscribed to its class."""
        # Copy so handlers may (un)subscribe while we iterate
        for handler in list(self._handlers.get(type(event), [])):
            try:
                handler(event)
            except Exception:
                logger.exception(
                    f"Handler {getattr(handler, '__qualname__', handler)!r} "
                    f"failed for {type(event).__name__}"
                )
