# py2lirc package
"""Client for the lircd infrared remote daemon."""

__version__ = "0.1.0"

from .core import (
    LircClient,
    Event,
    Reply,
    LircError,
    LircConnectionError,
    CommandError,
)

__all__ = [
    "LircClient",
    "Event",
    "Reply",
    "LircError",
    "LircConnectionError",
    "CommandError",
]
