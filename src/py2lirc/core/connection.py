"""
Socket dialing for the lircd client.

lircd listens on a Unix domain socket (usually /var/run/lirc/lircd) and,
when started with --listen, on a TCP port (8765 by default). Both give the
same newline-delimited protocol, so these helpers only differ in how they
open the stream; the returned socket is handed to LircClient as-is.
"""

import logging
import socket
from typing import Tuple

from .errors import ErrorCodes, LircConnectionError, ValidationError, wrap_external_error

logger = logging.getLogger(__name__)

DEFAULT_SOCKET_PATH = "/var/run/lirc/lircd"
DEFAULT_TCP_PORT = 8765


def parse_address(address: str) -> Tuple[str, int]:
    """
    Split a ``host[:port]`` string.

    Args:
        address: "host", "host:port" or "[ipv6]:port"

    Returns:
        Tuple of (host, port)

    Raises:
        ValidationError: If the host is empty or the port is not 1-65535

    Example:
        >>> parse_address("192.168.1.10:8765")
        ('192.168.1.10', 8765)
        >>> parse_address("pi.local")
        ('pi.local', 8765)
    """
    if not isinstance(address, str) or not address.strip():
        raise ValidationError(f"Invalid lircd address: {address!r}", field_name="address")

    address = address.strip()
    port_text = None

    if address.startswith("["):
        host, sep, rest = address[1:].partition("]")
        if not sep:
            raise ValidationError(f"Unterminated IPv6 address: {address}", field_name="address")
        if rest:
            if not rest.startswith(":"):
                raise ValidationError(f"Invalid lircd address: {address}", field_name="address")
            port_text = rest[1:]
    elif address.count(":") == 1:
        host, port_text = address.split(":")
    else:
        host = address

    if not host:
        raise ValidationError(f"Missing host in address: {address}", field_name="address")

    if port_text is None:
        return host, DEFAULT_TCP_PORT

    try:
        port = int(port_text)
    except ValueError:
        raise ValidationError(f"Port must be an integer, got {port_text!r}", field_name="port")

    validate_port(port)
    return host, port


def validate_port(port: int) -> None:
    """
    Validate port number.

    Raises:
        ValidationError: If port is not an integer in 1-65535
    """
    if not isinstance(port, int) or isinstance(port, bool):
        raise ValidationError(f"Port must be an integer, got {type(port)}", field_name="port")

    if port < 1 or port > 65535:
        raise ValidationError(
            f"Port must be 1-65535, got {port}",
            field_name="port",
            error_code=ErrorCodes.OUT_OF_RANGE
        )


def connect_unix(path: str = DEFAULT_SOCKET_PATH, timeout: float = 2.0) -> socket.socket:
    """
    Open a stream connection to lircd's Unix domain socket.

    Args:
        path: Filesystem path of the lircd socket
        timeout: Connect timeout in seconds

    Returns:
        Connected socket in blocking mode

    Raises:
        ValidationError: If the path is empty
        LircConnectionError: If the socket cannot be reached
    """
    if not isinstance(path, str) or not path:
        raise ValidationError(f"Invalid socket path: {path!r}", field_name="path")

    if not hasattr(socket, "AF_UNIX"):
        raise LircConnectionError(
            "Unix domain sockets are not supported on this platform",
            address=path,
            suggestions=["Connect over TCP with lircd --listen"]
        )

    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    return _dial(sock, path, path, timeout)


def connect_tcp(address: str, timeout: float = 2.0) -> socket.socket:
    """
    Open a TCP connection to a lircd started with ``--listen``.

    Args:
        address: "host" or "host:port" (port defaults to 8765)
        timeout: Connect timeout in seconds

    Returns:
        Connected socket in blocking mode

    Raises:
        ValidationError: If the address is malformed
        LircConnectionError: If the host cannot be reached
    """
    host, port = parse_address(address)

    try:
        infos = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    except socket.gaierror as e:
        raise wrap_external_error(
            e, f"Cannot resolve lircd host {host}", LircConnectionError,
            address=f"{host}:{port}",
            error_code=ErrorCodes.CONNECTION_REFUSED
        ) from e

    family, socktype, proto, _, sockaddr = infos[0]
    sock = socket.socket(family, socktype, proto)
    return _dial(sock, sockaddr, f"{host}:{port}", timeout)


def _dial(sock: socket.socket, target, label: str, timeout: float) -> socket.socket:
    logger.info(f"Connecting to lircd at {label}")
    try:
        sock.settimeout(timeout)
        sock.connect(target)
        sock.settimeout(None)  # Clear timeout after connection
    except socket.timeout as e:
        sock.close()
        raise wrap_external_error(
            e, f"Timed out connecting to lircd at {label}", LircConnectionError,
            address=label,
            error_code=ErrorCodes.CONNECTION_TIMEOUT
        ) from e
    except OSError as e:
        sock.close()
        raise wrap_external_error(
            e, f"Cannot connect to lircd at {label}: {e}", LircConnectionError,
            address=label,
            error_code=ErrorCodes.CONNECTION_REFUSED,
            suggestions=["Check that lircd is running", "Check the socket path or address"]
        ) from e

    logger.info(f"Connected to lircd at {label}")
    return sock
