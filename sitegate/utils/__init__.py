"""Utility modules for Sitegate."""

from .config import Settings, get_settings, parse_csv

__all__ = [
    "Settings",
    "get_settings",
    "parse_csv",
]
