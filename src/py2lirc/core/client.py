"""
Command session for the lircd client.

LircClient owns one connected socket. A LineReader thread owns the read
side; all writes go through ``command()``, which sends one line and then
blocks for its Reply from the reader. lircd answers commands strictly
in the order they were sent and echoes each command in its reply; replies
that echo something else (the SIGHUP notice) are skipped. ``command()``
holds a lock across the write and the wait, so concurrent callers queue up
instead of receiving each other's replies.

Closing the connection terminates both queues with a ``None`` marker. A
caller blocked in ``command()`` then raises LircConnectionError. A caller
whose reply was discarded for bad framing stays blocked; there is no
timeout in ``command()``.
"""

import logging
import queue
import socket
import threading
import time
from typing import Any, Dict, Iterator, Optional

from .connection import DEFAULT_SOCKET_PATH, connect_tcp, connect_unix
from .errors import (
    CommandError,
    ErrorCodes,
    LircConnectionError,
    ValidationError,
    wrap_external_error,
)
from .line_reader import LineReader
from .protocol import Event, LineParser, Reply
from .state import ConnectionLifecycle, ConnectionState

logger = logging.getLogger(__name__)


class LircClient:
    """
    Client for one lircd connection.

    Example:
        >>> with LircClient.open_unix("/var/run/lirc/lircd") as client:
        ...     client.send("TV KEY_POWER")
        ...     event = client.next_event(timeout=5.0)
    """

    def __init__(self, lirc_socket: socket.socket, event_queue_size: int = 100):
        """
        Take ownership of a connected socket and start the reader thread.

        Args:
            lirc_socket: Connected stream socket to lircd
            event_queue_size: Events buffered before new ones are dropped
                (0 means unbounded). Each dropped event logs a warning, so
                a caller that only sends commands should either drain
                ``events`` or pass 0.
        """
        self._socket = lirc_socket
        self._lifecycle = ConnectionLifecycle()
        self._command_lock = threading.Lock()

        self._events: "queue.Queue[Optional[Event]]" = queue.Queue(maxsize=event_queue_size)
        self._replies: "queue.Queue[Optional[Reply]]" = queue.Queue()

        self._reader = LineReader(
            lirc_socket,
            LineParser(),
            self._events,
            self._replies,
            self._lifecycle,
            on_stream_end=self.close
        )
        self._reader.start()

    @classmethod
    def open_unix(cls, path: str = DEFAULT_SOCKET_PATH, timeout: float = 2.0,
                  **kwargs) -> "LircClient":
        """Connect to lircd's Unix domain socket."""
        return cls(connect_unix(path, timeout=timeout), **kwargs)

    @classmethod
    def open_tcp(cls, address: str, timeout: float = 2.0, **kwargs) -> "LircClient":
        """Connect to lircd over TCP (``host`` or ``host:port``)."""
        return cls(connect_tcp(address, timeout=timeout), **kwargs)

    @classmethod
    def from_config(cls, config) -> "LircClient":
        """Connect using a ClientConfig (TCP when a host is set)."""
        if config.use_tcp:
            return cls.open_tcp(config.address, timeout=config.connect_timeout,
                                event_queue_size=config.event_queue_size)
        return cls.open_unix(config.socket_path, timeout=config.connect_timeout,
                             event_queue_size=config.event_queue_size)

    def __enter__(self) -> "LircClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def state(self) -> ConnectionState:
        return self._lifecycle.state

    @property
    def is_open(self) -> bool:
        return self._lifecycle.is_open

    @property
    def events(self) -> "queue.Queue[Optional[Event]]":
        """Queue of broadcast Events; ``None`` marks the closed channel."""
        return self._events

    @property
    def replies(self) -> "queue.Queue[Optional[Reply]]":
        """
        Queue of Replies; ``None`` marks the closed channel.

        ``command()`` consumes from this queue. Reading it directly while
        commands are in flight steals their replies.
        """
        return self._replies

    def command(self, text: str) -> Reply:
        """
        Send one command line and wait for its reply.

        Args:
            text: Command without the trailing newline, e.g. "VERSION"

        Returns:
            The Reply for this command. ``success`` is False when lircd
            answered ERROR; no exception is raised for that.

        Raises:
            ValidationError: If the text is empty or contains a newline
            LircConnectionError: If the connection is closed before or while
                waiting for the reply
        """
        if not isinstance(text, str) or not text or "\n" in text or "\r" in text:
            raise ValidationError(
                f"Command must be a single non-empty line, got {text!r}",
                field_name="command",
                error_code=ErrorCodes.INVALID_COMMAND
            )

        with self._command_lock:
            if not self._lifecycle.is_open:
                raise LircConnectionError(
                    "lircd connection is closed",
                    error_code=ErrorCodes.CONNECTION_CLOSED
                )

            try:
                self._socket.sendall((text + "\n").encode("utf-8"))
            except OSError as e:
                logger.error(f"Failed to send command {text!r}: {e}")
                raise wrap_external_error(
                    e, f"Failed to send command {text!r}", LircConnectionError,
                    error_code=ErrorCodes.SOCKET_ERROR
                ) from e
            logger.debug(f"Sent command {text!r}")

            return self._await_reply(text)

    def _await_reply(self, text: str) -> Reply:
        while True:
            reply = self._replies.get()
            if reply is None:
                # Leave the marker for any other waiter
                self._replies.put(None)
                raise LircConnectionError(
                    f"lircd connection closed while waiting for reply to {text!r}",
                    error_code=ErrorCodes.CONNECTION_LOST
                )
            if reply.command == text:
                return reply
            # Unrequested reply, e.g. the SIGHUP notice lircd pushes on reload
            logger.warning(f"Discarding lircd reply to {reply.command!r} while waiting for {text!r}")

    def send(self, command: str) -> None:
        """
        Send an IR code once (``SEND_ONCE <remote> <button> [count]``).

        Raises:
            CommandError: If lircd reports failure; the message is the
                reply's data lines joined with spaces
        """
        self._check(self.command(f"SEND_ONCE {command}"))

    def send_long(self, command: str, duration: float) -> None:
        """
        Hold a button: SEND_START, wait ``duration`` seconds, SEND_STOP.

        SEND_STOP is not sent when SEND_START fails.

        Raises:
            ValidationError: If ``duration`` is negative; nothing is sent
            CommandError: If either command fails
        """
        if duration < 0:
            raise ValidationError(
                f"Duration must be non-negative, got {duration}",
                field_name="duration",
                error_code=ErrorCodes.OUT_OF_RANGE
            )
        self._check(self.command(f"SEND_START {command}"))
        time.sleep(duration)
        self._check(self.command(f"SEND_STOP {command}"))

    @staticmethod
    def _check(reply: Reply) -> None:
        if not reply.success:
            raise CommandError(reply.message, command=reply.command, reply=reply)

    def next_event(self, timeout: Optional[float] = None) -> Optional[Event]:
        """
        Take the next broadcast Event.

        Args:
            timeout: Seconds to wait; None blocks until an event arrives or
                the connection closes

        Returns:
            The Event, or None on timeout or once the channel is closed
        """
        try:
            event = self._events.get(timeout=timeout)
        except queue.Empty:
            return None

        if event is None:
            self._events.put(None)
        return event

    def iter_events(self) -> Iterator[Event]:
        """Yield broadcast Events until the connection closes."""
        while True:
            event = self.next_event()
            if event is None:
                return
            yield event

    def close(self) -> None:
        """
        Close the connection and terminate the event and reply channels.

        Safe to call more than once and from the reader thread.
        """
        if not self._lifecycle.begin_close():
            return

        logger.info("Closing lircd connection")
        try:
            self._socket.shutdown(socket.SHUT_RDWR)
        except OSError as e:
            # Already disconnected by the peer
            logger.debug(f"Socket shutdown: {e}")
        self._socket.close()

        self._reader.stop()

        self._terminate(self._events)
        self._terminate(self._replies)
        self._lifecycle.mark_closed()

    @staticmethod
    def _terminate(channel: queue.Queue) -> None:
        """Put the ``None`` end marker, discarding the oldest item if full."""
        while True:
            try:
                channel.put_nowait(None)
                return
            except queue.Full:
                try:
                    channel.get_nowait()
                except queue.Empty:
                    pass

    def get_stats(self) -> Dict[str, Any]:
        """Get reader statistics plus the connection state."""
        stats: Dict[str, Any] = self._reader.get_stats()
        stats['state'] = self.state.value
        return stats
