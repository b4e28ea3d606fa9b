# Mock lircd daemon for testing
import os
import socket
import tempfile
import threading
import time
import logging
from typing import Dict, List, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

# A canned answer: (success, data lines), raw text written verbatim, or None
# for "never answer".
Response = Union[Tuple[bool, Sequence[str]], str, None]


def format_reply(command: str, success: bool = True, data: Optional[Sequence[str]] = None) -> str:
    """Render one reply record the way lircd frames it."""
    lines = ["BEGIN", command, "SUCCESS" if success else "ERROR"]
    if data is not None:
        lines += ["DATA", str(len(data))] + list(data)
    lines.append("END")
    return "\n".join(lines) + "\n"


class MockLircd:
    """
    Fake lircd speaking the line protocol on one stream connection.

    Every command line received is recorded in ``received`` together with
    the time it arrived. Answers come from ``responses`` (exact command
    first, then the first word); unknown commands get a bare SUCCESS.
    """

    def __init__(self, responses: Optional[Dict[str, Response]] = None):
        self.responses: Dict[str, Response] = dict(responses or {})
        self.received: List[Tuple[float, str]] = []
        self._received_cond = threading.Condition()
        self._conn: Optional[socket.socket] = None
        self._server: Optional[socket.socket] = None
        self._unix_dir: Optional[str] = None
        self._thread: Optional[threading.Thread] = None
        self.running = False

    # ---------- transports ----------

    @classmethod
    def socketpair(cls, responses=None) -> Tuple["MockLircd", socket.socket]:
        """Return (daemon, client_socket) joined by an in-process socket pair."""
        daemon = cls(responses)
        server_side, client_side = socket.socketpair()
        daemon._attach(server_side)
        return daemon, client_side

    def serve_tcp(self, host: str = "127.0.0.1") -> Tuple[str, int]:
        """Listen on an ephemeral TCP port; returns (host, port)."""
        self._server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._server.bind((host, 0))
        self._server.listen(1)
        self._start_accept()
        return self._server.getsockname()[:2]

    def serve_unix(self) -> str:
        """Listen on a Unix socket in a temp directory; returns its path."""
        self._unix_dir = tempfile.mkdtemp(prefix="mock-lircd-")
        path = os.path.join(self._unix_dir, "lircd")
        self._server = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        self._server.bind(path)
        self._server.listen(1)
        self._start_accept()
        return path

    def _start_accept(self):
        self.running = True

        def accept():
            try:
                conn, _ = self._server.accept()
            except OSError:
                return
            self._attach(conn)

        threading.Thread(target=accept, daemon=True).start()

    def _attach(self, conn: socket.socket):
        self._conn = conn
        self.running = True
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    # ---------- protocol ----------

    def _serve(self):
        buffer = b""
        while self.running:
            try:
                data = self._conn.recv(1024)
            except OSError:
                break
            if not data:
                break
            buffer += data
            while b"\n" in buffer:
                raw, buffer = buffer.split(b"\n", 1)
                self._handle(raw.decode("utf-8"))

    def _handle(self, command: str):
        with self._received_cond:
            self.received.append((time.monotonic(), command))
            self._received_cond.notify_all()

        if command in self.responses:
            response = self.responses[command]
        else:
            response = self.responses.get(command.split(" ")[0], (True, None))

        if response is None:
            return
        if isinstance(response, str):
            self.write(response)
        else:
            success, data = response
            self.write(format_reply(command, success, data))

    def write(self, text: str):
        """Write raw protocol text to the client."""
        self._conn.sendall(text.encode("utf-8"))

    def broadcast(self, code: str, repeat: str, button: str, remote: str):
        self.write(f"{code} {repeat} {button} {remote}\n")

    @property
    def commands(self) -> List[str]:
        with self._received_cond:
            return [line for _, line in self.received]

    def wait_for_commands(self, count: int, timeout: float = 2.0) -> bool:
        """Block until ``count`` commands have been received."""
        with self._received_cond:
            return self._received_cond.wait_for(lambda: len(self.received) >= count, timeout)

    def disconnect(self):
        """Drop the client connection, as a crashing daemon would."""
        if self._conn:
            try:
                self._conn.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            self._conn.close()

    def stop(self):
        """Stop the mock daemon."""
        self.running = False
        self.disconnect()
        if self._server:
            self._server.close()
        if self._unix_dir:
            try:
                os.unlink(os.path.join(self._unix_dir, "lircd"))
                os.rmdir(self._unix_dir)
            except OSError:
                pass
        logger.info("Mock lircd stopped")
