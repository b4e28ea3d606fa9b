"""
Services layered on top of the lircd client.
"""

from .event_router import EventRouter

__all__ = ['EventRouter']
