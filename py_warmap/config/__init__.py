"""
Configuration for the war map service.
"""

from .config import Settings, settings

__all__ = ['Settings', 'settings']
