"""
Core layer for lircd communication.

This package contains the line protocol parser, the background socket
reader and the command session for talking to the lircd daemon.
"""

from .protocol import Event, Reply, LineParser, ParserState
from .state import ConnectionState
from .line_reader import LineReader
from .client import LircClient
from .connection import connect_unix, connect_tcp
from .errors import (
    LircError,
    LircConnectionError,
    CommandError,
    ProtocolError,
    ConfigurationError,
    ValidationError,
    ErrorCodes,
)

__all__ = [
    'Event',
    'Reply',
    'LineParser',
    'ParserState',
    'ConnectionState',
    'LineReader',
    'LircClient',
    'connect_unix',
    'connect_tcp',
    'LircError',
    'LircConnectionError',
    'CommandError',
    'ProtocolError',
    'ConfigurationError',
    'ValidationError',
    'ErrorCodes',
]
