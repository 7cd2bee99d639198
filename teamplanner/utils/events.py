"""
Minimal synchronous event emitter.

Handlers run immediately inside ``emit`` in subscription order. A failing
handler is logged and does not stop delivery to the remaining handlers.
"""

import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)


class EventEmitter:
    """Named-event subscription registry."""

    def __init__(self):
        self._handlers: Dict[str, List[Callable[..., Any]]] = {}

    def subscribe(self, event: str, handler: Callable[..., Any]) -> Callable[[], None]:
        """
        Register a handler for an event.

        Returns:
            A function that removes the subscription
        """
        self._handlers.setdefault(event, []).append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(event, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def emit(self, event: str, *args: Any) -> None:
        for handler in list(self._handlers.get(event, [])):
            try:
                handler(*args)
            except Exception as e:
                logger.error(f"Error in {event!r} handler: {e}", exc_info=True)
