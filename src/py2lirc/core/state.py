"""
Connection lifecycle shared by the reader thread and the close path.
"""

import threading
from enum import Enum


class ConnectionState(Enum):
    """
    Lifecycle of one lircd connection.

    States:
        OPEN: Reader running, commands accepted
        CLOSING: close() has started; stream errors are expected from here on
        CLOSED: Socket closed and both channels terminated
    """

    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class ConnectionLifecycle:
    """
    Thread-safe holder for the ConnectionState.

    Exactly one caller wins the OPEN -> CLOSING transition, so close() can be
    invoked from user code and from the reader's failure path without running
    twice.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._state = ConnectionState.OPEN

    @property
    def state(self) -> ConnectionState:
        with self._lock:
            return self._state

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.OPEN

    def begin_close(self) -> bool:
        """
        Move OPEN -> CLOSING.

        Returns:
            True if this call performed the transition, False if the
            connection was already closing or closed
        """
        with self._lock:
            if self._state is not ConnectionState.OPEN:
                return False
            self._state = ConnectionState.CLOSING
            return True

    def mark_closed(self) -> None:
        with self._lock:
            self._state = ConnectionState.CLOSED
