"""
Fire-and-forget event emission for server lifecycle changes.
"""

import asyncio
import inspect
from typing import Any, Callable, Dict, List, Set

from mcpmux.utils.logging import get_logger

logger = get_logger(__name__)

SERVER_STARTED = "server-started"
SERVER_STOPPED = "server-stopped"
SERVER_ERROR = "server-error"

EventHandler = Callable[[Dict[str, Any]], Any]


class EventEmitter:
    """
    Dispatches events to registered handlers.

    Plain functions are called inline; coroutine functions are scheduled as
    tasks and not awaited. A failing handler is logged and never reaches the
    emitter's caller.
    """

    def __init__(self):
        self._handlers: Dict[str, List[EventHandler]] = {}
        self._pending: Set[asyncio.Future] = set()

    def on(self, event_type: str, handler: EventHandler) -> None:
        """
        Register an event handler for a specific event type.

        Args:
            event_type: Type of event to handle.
            handler: Function to call when the event occurs.
        """
        self._handlers.setdefault(event_type, []).append(handler)

    def off(self, event_type: str, handler: EventHandler) -> None:
        """Remove a previously registered handler. Unknown handlers are ignored."""
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event_type: str, event_data: Dict[str, Any]) -> None:
        """
        Emit an event to all registered handlers.

        Args:
            event_type: Type of event to emit.
            event_data: Data associated with the event.
        """
        for handler in list(self._handlers.get(event_type, [])):
            try:
                result = handler(event_data)
            except Exception as e:
                logger.error(f"Error in event handler for {event_type}: {e}")
                continue

            if inspect.isawaitable(result):
                future = asyncio.ensure_future(result)
                self._pending.add(future)
                future.add_done_callback(
                    lambda done, event_type=event_type: self._handler_done(event_type, done)
                )

    def _handler_done(self, event_type: str, future: asyncio.Future) -> None:
        self._pending.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error(f"Error in event handler for {event_type}: {exc}")
