"""
Core module initialization.
Exports configuration and logging utilities.
"""

from app.core.config import get_settings, Settings, EnvironmentMode, setup_logging

__all__ = ["get_settings", "Settings", "EnvironmentMode", "setup_logging"]
