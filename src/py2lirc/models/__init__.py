"""
Data models for py2lirc.
"""

from .config import ClientConfig, load_config

__all__ = ['ClientConfig', 'load_config']
