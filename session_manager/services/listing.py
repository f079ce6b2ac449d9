"""
Listing helpers - sorting, filtering and totals over enriched sessions.

Side-car values are preferred; figures computed from the raw log are the
fallback when the side-car is absent (or reports zero tokens).
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from datetime import UTC, datetime, timedelta

from session_manager.schemas.operations.listing import SessionTotals
from session_manager.schemas.session import EnrichedSession

__all__ = [
    'DEFAULT_SORT_KEY',
    'SORT_KEYS',
    'filter_by_project',
    'filter_larger_than',
    'filter_older_than',
    'parse_size_string',
    'session_duration',
    'session_tokens',
    'sort_sessions',
    'summarize_sessions',
]

_EPOCH = datetime.min.replace(tzinfo=UTC)

_SIZE_UNITS = {
    'B': 1,
    'KB': 1024,
    'MB': 1024**2,
    'GB': 1024**3,
}
_SIZE_PATTERN = re.compile(r'^(\d+(?:\.\d+)?)\s*(B|KB|MB|GB)?$', re.IGNORECASE)


def session_tokens(session: EnrichedSession) -> int:
    """Input plus output tokens: side-car totals, else totals computed from the log."""
    meta = session.meta
    if meta is not None:
        total = meta.input_tokens + meta.output_tokens
        if total:
            return total
    return (session.computed_input_tokens or 0) + (session.computed_output_tokens or 0)


def session_duration(session: EnrichedSession) -> float | None:
    """Duration in minutes: side-car value, else computed from first/last activity."""
    if session.meta is not None:
        return session.meta.duration_minutes
    return session.computed_duration_minutes


def _modified(session: EnrichedSession) -> datetime:
    return session.entry.modified or _EPOCH


SORT_KEYS: dict[str, Callable[[EnrichedSession], float | datetime]] = {
    'date': _modified,
    'size': lambda s: s.total_size_bytes,
    'tokens': session_tokens,
    'duration': lambda s: session_duration(s) or 0,
    'messages': lambda s: s.entry.messageCount,
    'files-changed': lambda s: s.meta.files_modified if s.meta else 0,
    'commits': lambda s: (s.meta.git_commits or 0) if s.meta else 0,
}
DEFAULT_SORT_KEY = 'date'


def sort_sessions(sessions: Sequence[EnrichedSession], key: str = DEFAULT_SORT_KEY) -> list[EnrichedSession]:
    """Sessions sorted descending by key. Unknown keys sort by date."""
    sort_key = SORT_KEYS.get(key, SORT_KEYS[DEFAULT_SORT_KEY])
    return sorted(sessions, key=sort_key, reverse=True)


def filter_by_project(sessions: Sequence[EnrichedSession], text: str) -> list[EnrichedSession]:
    """Sessions whose project path contains text (case-insensitive)."""
    needle = text.lower()
    return [s for s in sessions if needle in s.entry.projectPath.lower()]


def filter_older_than(
    sessions: Sequence[EnrichedSession],
    days: float,
    now: datetime | None = None,
) -> list[EnrichedSession]:
    """Sessions last modified more than `days` ago. Undated sessions are excluded."""
    cutoff = (now or datetime.now(UTC)) - timedelta(days=days)
    return [s for s in sessions if s.entry.modified is not None and s.entry.modified < cutoff]


def filter_larger_than(sessions: Sequence[EnrichedSession], size_bytes: int) -> list[EnrichedSession]:
    return [s for s in sessions if s.total_size_bytes > size_bytes]


def parse_size_string(value: str) -> int | None:
    """
    Parse a human size such as '500KB' or '1.5mb' (1024-based units).

    Returns:
        Size in bytes, or None if value is not a size
    """
    match = _SIZE_PATTERN.match(value.strip())
    if match is None:
        return None
    number, unit = match.groups()
    return int(float(number) * _SIZE_UNITS[(unit or 'B').upper()])


def summarize_sessions(sessions: Sequence[EnrichedSession]) -> SessionTotals:
    return SessionTotals(
        session_count=len(sessions),
        total_size_bytes=sum(s.total_size_bytes for s in sessions),
        total_tokens=sum(session_tokens(s) for s in sessions),
        total_duration_minutes=float(sum(session_duration(s) or 0 for s in sessions)),
    )
