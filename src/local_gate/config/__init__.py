"""
Configuration module for Local Gate.

This module exports all configuration-related objects.
"""

from local_gate.config.settings import Settings, settings

__all__ = [
    "Settings",
    "settings",
]
