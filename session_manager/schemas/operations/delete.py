"""
Delete operation schemas.

Models for session deletion with explicit target enumeration.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Literal

from session_manager.schemas.types import StrictModel
from session_manager.schemas.types import PathStr

DeletionTargetKind = Literal[
    'session_log',  # <root>/projects/<enc>/{session_id}.jsonl
    'debug_log',  # <root>/debug/{session_id}.txt
    'file_history',  # <root>/file-history/{session_id}/
    'tasks',  # <root>/tasks/{session_id}/
    'session_env',  # <root>/session-env/{session_id}/
    'session_meta',  # <root>/usage-data/session-meta/{session_id}.json
    'facets',  # <root>/usage-data/facets/{session_id}.json
    'todo',  # <root>/todos/{session_id}[-*|.*]
]


class DeletionTarget(StrictModel):
    """Single path to remove. Missing paths count as already removed."""

    path: PathStr
    kind: DeletionTargetKind
    recursive: bool  # True for per-session directories


class RemovalFailure(StrictModel):
    """A target that could not be removed (or enumerated)."""

    path: PathStr
    kind: DeletionTargetKind
    error: str


class DeletionPlan(StrictModel):
    """Everything associated with one session, enumerated before removal.

    enumeration_failures holds areas that could not be listed (e.g. an
    unreadable todos directory). They block the index update like any other
    failed removal.
    """

    session_id: str
    targets: Sequence[DeletionTarget]
    enumeration_failures: Sequence[RemovalFailure]


class DeleteResult(StrictModel):
    """Execution result."""

    session_id: str
    was_dry_run: bool

    targets: Sequence[DeletionTarget]  # Everything attempted (or that would be, on dry run)
    removed_paths: Sequence[PathStr]  # Targets that existed and were removed
    index_updated: bool  # Entry removed from the project's sessions-index.json
    size_freed_bytes: int

    duration_ms: float
    deleted_at: datetime
