"""
CLI configuration.

Settings that only the csm command line reads, layered over the shared base.
"""

from __future__ import annotations

import pydantic

from session_manager.config.base import BaseSessionSettings, lazy_settings
from session_manager.services.listing import DEFAULT_SORT_KEY, SORT_KEYS


class CliSettings(BaseSessionSettings):
    """CLI-specific configuration."""

    # Sort key for `csm list` when --sort is not given
    CSM_DEFAULT_SORT: str = DEFAULT_SORT_KEY

    @pydantic.field_validator('CSM_DEFAULT_SORT')
    @classmethod
    def check_sort_key(cls, v: str) -> str:
        if v not in SORT_KEYS:
            raise ValueError(f'Unknown sort key {v!r}, expected one of: {", ".join(SORT_KEYS)}')
        return v


# Module-level singleton (lazy-loaded)
settings = lazy_settings(CliSettings)
