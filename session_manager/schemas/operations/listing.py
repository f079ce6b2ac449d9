"""
Listing operation schemas.
"""

from __future__ import annotations

from session_manager.schemas.types import StrictModel


class SessionTotals(StrictModel):
    """Aggregate figures over a session list."""

    session_count: int
    total_size_bytes: int
    total_tokens: int
    total_duration_minutes: float
