"""
SkinScan Core
=============

Core configuration and settings.
"""

from .config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
