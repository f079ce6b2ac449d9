from __future__ import annotations

from .base import BaseSessionSettings, get_settings, lazy_settings
from .cli import CliSettings, settings

__all__ = [
    'BaseSessionSettings',
    'CliSettings',
    'get_settings',
    'lazy_settings',
    'settings',
]
