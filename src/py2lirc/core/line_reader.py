"""
Background reader for the lircd socket.

This module provides a continuous background reader that drains the socket,
splits the byte stream into lines and runs them through the LineParser.
Completed records are routed to one of two queues:

Architecture:
    LineReader (background thread)
        └── select()s on the socket with a short poll interval
        └── Splits received bytes on newlines
        └── Feeds each line to LineParser

    LineParser
        └── Event  -> event queue (unsolicited button presses)
        └── Reply  -> reply queue (answers to commands, in command order)

When the read loop ends, for any reason, the ``on_stream_end`` callback is
invoked so the owner can close the connection and terminate both queues.
"""

import logging
import queue
import select
import socket
import threading
from typing import Callable, Dict, List, Optional

from .protocol import Event, LineParser, Reply
from .state import ConnectionLifecycle

logger = logging.getLogger(__name__)


class LineReader:
    """
    Background thread that continuously reads lines from the lircd socket.

    The reader is the only consumer of the socket's receive side, so no
    locking is needed against the command path, which only writes.
    """

    POLL_INTERVAL = 0.5  # seconds between shutdown checks
    RECV_SIZE = 4096

    def __init__(
        self,
        lirc_socket: socket.socket,
        parser: LineParser,
        events: "queue.Queue[Optional[Event]]",
        replies: "queue.Queue[Optional[Reply]]",
        lifecycle: ConnectionLifecycle,
        on_stream_end: Optional[Callable[[], None]] = None
    ):
        """
        Initialize the line reader.

        Args:
            lirc_socket: Connected socket to read from
            parser: Parser that classifies each line
            events: Queue receiving decoded Events
            replies: Queue receiving completed Replies
            lifecycle: Shared connection state, read to tell a deliberate
                close from an unexpected stream failure
            on_stream_end: Called from the reader thread once the loop exits
        """
        self._socket = lirc_socket
        self._parser = parser
        self._events = events
        self._replies = replies
        self._lifecycle = lifecycle
        self._on_stream_end = on_stream_end
        self._thread: Optional[threading.Thread] = None
        self._buffer = bytearray()

        self._stats = {
            'bytes_read': 0,
            'lines_read': 0,
            'events_dropped': 0,
            'socket_errors': 0,
        }

    def start(self) -> None:
        """Start the background reader thread."""
        if self._thread and self._thread.is_alive():
            logger.warning("LineReader already running")
            return

        self._thread = threading.Thread(
            target=self._read_loop,
            name="LircLineReader",
            daemon=True
        )
        self._thread.start()
        logger.debug("LineReader background thread started")

    def stop(self, timeout: float = 2.0) -> None:
        """
        Wait for the reader thread to exit.

        The loop exits on its own once the lifecycle leaves OPEN or the socket
        is closed; this only joins it. Safe to call from the reader thread.
        """
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return

        if thread.is_alive():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning("LineReader thread did not stop cleanly")

    def is_running(self) -> bool:
        """Check if the reader thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def _read_loop(self) -> None:
        """Main read loop - runs in background thread."""
        try:
            while self._lifecycle.is_open:
                try:
                    readable, _, _ = select.select([self._socket], [], [], self.POLL_INTERVAL)
                    if not readable:
                        continue
                    chunk = self._socket.recv(self.RECV_SIZE)
                except (OSError, ValueError) as e:
                    # ValueError: select() on a socket closed under us
                    if self._lifecycle.is_open:
                        logger.error(f"Error reading from lircd socket: {e}")
                        self._stats['socket_errors'] += 1
                    break

                if not chunk:
                    if self._lifecycle.is_open:
                        logger.error("lircd connection closed by peer")
                    break

                self._stats['bytes_read'] += len(chunk)
                for line in self._split_lines(chunk):
                    self._handle_line(line)

        finally:
            logger.debug(f"LineReader loop exiting. Stats: {self.get_stats()}")
            if self._on_stream_end is not None:
                self._on_stream_end()

    def _split_lines(self, chunk: bytes) -> List[str]:
        """Append ``chunk`` to the buffer and return every complete line."""
        self._buffer.extend(chunk)
        lines = []
        while True:
            idx = self._buffer.find(b"\n")
            if idx < 0:
                break
            raw = bytes(self._buffer[:idx])
            del self._buffer[:idx + 1]
            if raw.endswith(b"\r"):
                raw = raw[:-1]
            lines.append(raw.decode("utf-8", errors="replace"))
        return lines

    def _handle_line(self, line: str) -> None:
        self._stats['lines_read'] += 1
        message = self._parser.feed(line)

        if message is None or not self._lifecycle.is_open:
            return

        if isinstance(message, Reply):
            self._replies.put(message)
            logger.debug(f"Reply received for {message.command!r} (success={message.success})")
            return

        try:
            self._events.put_nowait(message)
        except queue.Full:
            self._stats['events_dropped'] += 1
            logger.warning(f"Event queue full, dropping {message.remote} {message.button}")

    def get_stats(self) -> Dict[str, int]:
        """Get reader and parser statistics."""
        stats = self._stats.copy()
        stats.update({f"parser_{k}": v for k, v in self._parser.get_stats().items()})
        return stats
