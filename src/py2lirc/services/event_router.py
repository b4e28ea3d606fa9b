"""
Dispatch of broadcast button events to registered handlers.

Handlers are keyed by (remote, button). Either part may be None to match any
remote or any button, so a handler can follow a whole remote or one key on
every remote.
"""

import logging
import threading
from typing import Callable, Dict, List, Optional, Tuple

from py2lirc.core.protocol import Event

logger = logging.getLogger(__name__)

Handler = Callable[[Event], None]
HandlerKey = Tuple[Optional[str], Optional[str]]


class EventRouter:
    """
    Routes Events from a LircClient to handler callables.

    Example:
        >>> router = EventRouter()
        >>> router.register("TV", "KEY_POWER", lambda event: print("power"))
        >>> router.run(client)  # returns when the connection closes
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._handlers: Dict[HandlerKey, List[Handler]] = {}

        self._stats = {
            'events_dispatched': 0,
            'events_unhandled': 0,
            'handler_errors': 0,
        }

    def register(self, remote: Optional[str], button: Optional[str], handler: Handler) -> None:
        """
        Register a handler for a remote/button pair.

        Args:
            remote: Remote name, or None for any remote
            button: Button name, or None for any button
            handler: Callable taking the Event
        """
        with self._lock:
            self._handlers.setdefault((remote, button), []).append(handler)
        logger.info(f"Registered handler for {remote or '*'} {button or '*'}")

    def unregister(self, remote: Optional[str], button: Optional[str], handler: Handler) -> None:
        """Remove a handler; unknown handlers are ignored."""
        with self._lock:
            handlers = self._handlers.get((remote, button))
            if handlers and handler in handlers:
                handlers.remove(handler)
                if not handlers:
                    del self._handlers[(remote, button)]

    def handlers_for(self, event: Event) -> List[Handler]:
        """Handlers matching an event, most specific key first."""
        keys = [
            (event.remote, event.button),
            (event.remote, None),
            (None, event.button),
            (None, None),
        ]
        with self._lock:
            matched = []
            for key in keys:
                matched.extend(self._handlers.get(key, ()))
        return matched

    def dispatch(self, event: Event) -> int:
        """
        Call every handler matching ``event``.

        Handler exceptions are logged and do not stop the other handlers.

        Returns:
            Number of handlers that ran without raising
        """
        handlers = self.handlers_for(event)
        if not handlers:
            self._stats['events_unhandled'] += 1
            logger.debug(f"No handler for {event.remote} {event.button}")
            return 0

        succeeded = 0
        for handler in handlers:
            try:
                handler(event)
                succeeded += 1
            except Exception as e:
                self._stats['handler_errors'] += 1
                logger.error(f"Handler error for {event.remote} {event.button}: {e}", exc_info=True)

        self._stats['events_dispatched'] += 1
        return succeeded

    def run(self, client) -> None:
        """Dispatch events from ``client`` until its event channel closes."""
        for event in client.iter_events():
            self.dispatch(event)
        logger.info("Event channel closed, router stopping")

    def get_stats(self) -> Dict[str, int]:
        """Get dispatch statistics."""
        return self._stats.copy()
