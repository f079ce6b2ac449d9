"""
Session schema models.

- records: raw session log records (tagged union)
- models: index entries, side-car documents and the enriched session
"""

from __future__ import annotations

from session_manager.schemas.session.models import (
    NO_PROMPT,
    EnrichedSession,
    SessionCandidate,
    SessionEntry,
    SessionFacets,
    SessionIndex,
    SessionMeta,
)
from session_manager.schemas.session.records import (
    AssistantRecord,
    CustomTitleRecord,
    LogMessage,
    LogRecord,
    LogRecordAdapter,
    TokenUsage,
    UnknownRecord,
    UserRecord,
    record_kind,
)

__all__ = [
    # models
    'NO_PROMPT',
    'EnrichedSession',
    'SessionCandidate',
    'SessionEntry',
    'SessionFacets',
    'SessionIndex',
    'SessionMeta',
    # records
    'AssistantRecord',
    'CustomTitleRecord',
    'LogMessage',
    'LogRecord',
    'LogRecordAdapter',
    'TokenUsage',
    'UnknownRecord',
    'UserRecord',
    'record_kind',
]
