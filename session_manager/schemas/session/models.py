"""
Session summary and side-car document models.

SessionEntry mirrors one entry of a project's sessions-index.json (camelCase
keys as written by Claude Code). SessionMeta and SessionFacets mirror the
optional side-car documents under usage-data/. EnrichedSession is the unit
the discovery engine returns.

Key mapping for SessionEntry:
- fullPath: absolute path of the raw session log
- fileMtime: log modification time, milliseconds since the epoch
- created / modified: earliest / latest timestamp seen in the log
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Annotated, Any

from session_manager.schemas.types import JsonDatetime, PermissiveModel, StrictModel, Tolerant, fallback_to

__all__ = [
    'NO_PROMPT',
    'EnrichedSession',
    'SessionCandidate',
    'SessionEntry',
    'SessionFacets',
    'SessionIndex',
    'SessionMeta',
]

# Sentinel first prompt for sessions whose log held no user text
NO_PROMPT = 'No prompt'


# ==============================================================================
# Index
# ==============================================================================


class SessionEntry(PermissiveModel):
    """
    Identity and summary facts for one session.

    Only sessionId is load-bearing. Any other field that is null or holds a
    value of the wrong type reads as its default, so an entry written by a
    different Claude Code version is never discarded over a summary field.
    """

    sessionId: str
    fullPath: Tolerant[str] = None
    fileMtime: Tolerant[float] = None
    firstPrompt: Annotated[str, fallback_to(NO_PROMPT)] = NO_PROMPT
    summary: Tolerant[str] = None
    customTitle: Tolerant[str] = None
    messageCount: Annotated[int, fallback_to(0)] = 0
    created: Tolerant[JsonDatetime] = None
    modified: Tolerant[JsonDatetime] = None
    gitBranch: Tolerant[str] = None
    projectPath: Annotated[str, fallback_to('')] = ''  # Filled in by discovery when empty
    isSidechain: Annotated[bool, fallback_to(False)] = False


class SessionIndex(PermissiveModel):
    """A project's sessions-index.json.

    Entries are kept raw and validated one at a time so a single malformed
    entry does not discard the rest of the index.
    """

    version: Tolerant[int] = None
    originalPath: Tolerant[str] = None
    entries: Annotated[Sequence[Any], fallback_to(())] = ()


# ==============================================================================
# Side-car Documents
# ==============================================================================


class SessionMeta(PermissiveModel):
    """Derived usage statistics (usage-data/session-meta/<id>.json)."""

    session_id: str | None = None
    project_path: str | None = None
    start_time: str | None = None
    duration_minutes: float = 0
    user_message_count: int = 0
    assistant_message_count: int = 0
    tool_counts: Mapping[str, int] = {}
    languages: Mapping[str, int] = {}
    input_tokens: int = 0
    output_tokens: int = 0
    lines_added: int = 0
    lines_removed: int = 0
    files_modified: int = 0
    git_commits: int | None = None
    git_pushes: int | None = None
    first_prompt: str | None = None
    summary: str | None = None
    user_interruptions: int | None = None
    tool_errors: int | None = None
    tool_error_categories: Mapping[str, int] | None = None
    uses_task_agent: bool | None = None
    uses_mcp: bool | None = None
    uses_web_search: bool | None = None
    uses_web_fetch: bool | None = None
    user_response_times: Sequence[float] | None = None
    message_hours: Sequence[int] | None = None


class SessionFacets(PermissiveModel):
    """Qualitative, possibly model-generated labels (usage-data/facets/<id>.json)."""

    underlying_goal: str | None = None
    outcome: str | None = None
    session_type: str | None = None
    brief_summary: str | None = None
    claude_helpfulness: str | None = None
    goal_categories: Mapping[str, int] | None = None
    friction_counts: Mapping[str, int] | None = None
    friction_detail: str | None = None
    primary_success: str | None = None
    user_satisfaction_counts: Mapping[str, int] | None = None


# ==============================================================================
# Engine Output
# ==============================================================================


class SessionCandidate(StrictModel):
    """A session before enrichment, from an index entry or a parsed raw log."""

    entry: SessionEntry
    project_dir_name: str
    indexed: bool  # Taken from sessions-index.json rather than parsed from the log
    computed_input_tokens: int | None = None
    computed_output_tokens: int | None = None


class EnrichedSession(StrictModel):
    """One discovered session with side-car data and on-disk footprint.

    computed_* fields are fallbacks derived from the log itself and are only
    meaningful when the corresponding side-car value is absent.
    """

    entry: SessionEntry
    meta: SessionMeta | None = None
    facets: SessionFacets | None = None
    total_size_bytes: int = 0
    project_dir_name: str
    computed_duration_minutes: int | None = None
    computed_input_tokens: int | None = None
    computed_output_tokens: int | None = None
