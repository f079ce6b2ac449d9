"""
Session enrichment - side-car documents and on-disk footprint.

For each candidate session, three independent fetches run concurrently:
- usage metadata (usage-data/session-meta/<id>.json)
- qualitative facets (usage-data/facets/<id>.json)
- total size across every file associated with the session id

Each fetch fails on its own: a missing or malformed side-car is None, an
unreadable path contributes 0 to the size. Nothing here raises for per-session
problems.
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from typing import TypeVar

import pydantic

from session_manager.paths import ClaudePaths
from session_manager.protocols import LoggerProtocol, NullLogger, ProgressCallback
from session_manager.schemas.session import (
    NO_PROMPT,
    EnrichedSession,
    SessionCandidate,
    SessionEntry,
    SessionFacets,
    SessionMeta,
)
from session_manager.services.concurrency import run_blocking, settle_all, value_or

__all__ = [
    'SessionEnrichService',
    'computed_duration_minutes',
    'directory_size',
    'file_size',
]

DocT = TypeVar('DocT', bound=pydantic.BaseModel)


def file_size(path: Path) -> int:
    """Size of a regular file. Raises FileNotFoundError if absent."""
    return path.stat().st_size


def directory_size(path: Path) -> int:
    """
    Recursive size of every regular file under a directory.

    Symlinks are not followed. Entries that vanish or cannot be stat'ed
    during the walk are skipped.

    Raises:
        FileNotFoundError: If the directory itself is absent
    """
    if not path.is_dir():
        if path.exists():
            raise NotADirectoryError(str(path))
        raise FileNotFoundError(str(path))

    total = 0
    for dirpath, _dirnames, filenames in os.walk(path):
        for name in filenames:
            file_path = os.path.join(dirpath, name)
            try:
                if os.path.islink(file_path):
                    continue
                total += os.path.getsize(file_path)
            except OSError:
                continue
    return total


def computed_duration_minutes(created: datetime | None, modified: datetime | None) -> int | None:
    """Whole minutes between first and last activity, or None if either is unknown."""
    if created is None or modified is None:
        return None
    return round((modified - created).total_seconds() / 60)


class SessionEnrichService:
    """
    Attaches side-car data and size to candidate sessions.

    Usage:
        service = SessionEnrichService(ClaudePaths.resolve(), logger)
        sessions = await service.enrich_all(candidates, on_progress)
    """

    def __init__(self, paths: ClaudePaths, logger: LoggerProtocol | None = None) -> None:
        self.paths = paths
        self.logger = logger or NullLogger()

    # ==========================================================================
    # Side-car Documents
    # ==========================================================================

    async def read_side_car(self, path: Path, model: type[DocT]) -> DocT | None:
        """
        Read and validate one optional side-car document.

        Returns:
            Validated document, or None when absent or malformed
        """
        try:
            raw = await run_blocking(path.read_bytes)
        except FileNotFoundError:
            return None
        except OSError as e:
            await self.logger.info(f'Failed reading {path}: {e}')
            return None

        try:
            return model.model_validate_json(raw)
        except pydantic.ValidationError as e:
            await self.logger.info(f'Malformed {path.name} ({model.__name__}): {e.error_count()} error(s)')
            return None

    async def load_meta(self, session_id: str) -> SessionMeta | None:
        return await self.read_side_car(self.paths.session_meta(session_id), SessionMeta)

    async def load_facets(self, session_id: str) -> SessionFacets | None:
        return await self.read_side_car(self.paths.facets(session_id), SessionFacets)

    # ==========================================================================
    # Size
    # ==========================================================================

    async def calculate_session_size(self, session_id: str, log_path: Path) -> int:
        """
        Total bytes across every file associated with a session.

        Sums the raw log, debug transcript, file-history directory, tasks
        directory and both side-car documents. Each measurement is independent;
        an absent path contributes 0 silently, an unreadable one contributes
        0 with a diagnostic.
        """
        measurements = [
            (log_path, file_size),
            (self.paths.debug_log(session_id), file_size),
            (self.paths.file_history(session_id), directory_size),
            (self.paths.task_dir(session_id), directory_size),
            (self.paths.session_meta(session_id), file_size),
            (self.paths.facets(session_id), file_size),
        ]
        outcomes = await settle_all(run_blocking(measure, path) for path, measure in measurements)

        total = 0
        for (path, _measure), outcome in zip(measurements, outcomes, strict=True):
            if isinstance(outcome, FileNotFoundError):
                continue
            if isinstance(outcome, BaseException):
                await self.logger.info(f'Failed measuring {path}: {outcome}')
                continue
            total += outcome
        return total

    # ==========================================================================
    # Enrichment
    # ==========================================================================

    async def enrich(
        self,
        entry: SessionEntry,
        project_dir_name: str,
        computed_input_tokens: int | None = None,
        computed_output_tokens: int | None = None,
    ) -> EnrichedSession:
        """
        Enrich one candidate session.

        Args:
            entry: Candidate entry from an index or the log parser
            project_dir_name: Encoded project directory owning the session
            computed_input_tokens: Input token total parsed from the log, if any
            computed_output_tokens: Output token total parsed from the log, if any

        Returns:
            EnrichedSession (never raises for missing or corrupt side-cars)
        """
        session_id = entry.sessionId
        log_path = (
            Path(entry.fullPath) if entry.fullPath else self.paths.session_log(project_dir_name, session_id)
        )

        meta_outcome, facets_outcome, size_outcome = await settle_all(
            [
                self.load_meta(session_id),
                self.load_facets(session_id),
                self.calculate_session_size(session_id, log_path),
            ]
        )
        meta = value_or(meta_outcome, None)
        facets = value_or(facets_outcome, None)
        total_size = value_or(size_outcome, 0)
        for outcome in (meta_outcome, facets_outcome, size_outcome):
            if isinstance(outcome, BaseException):
                await self.logger.info(f'Session {session_id}: enrichment step failed: {outcome!r}')

        if meta is not None and meta.first_prompt and entry.firstPrompt == NO_PROMPT:
            entry = entry.model_copy(update={'firstPrompt': meta.first_prompt})

        return EnrichedSession(
            entry=entry,
            meta=meta,
            facets=facets,
            total_size_bytes=total_size,
            project_dir_name=project_dir_name,
            computed_duration_minutes=computed_duration_minutes(entry.created, entry.modified),
            computed_input_tokens=computed_input_tokens,
            computed_output_tokens=computed_output_tokens,
        )

    async def enrich_all(
        self,
        candidates: Sequence[SessionCandidate],
        on_progress: ProgressCallback | None = None,
    ) -> list[EnrichedSession]:
        """
        Enrich every candidate in one concurrent batch.

        on_progress is invoked as (completed, total) after each individual
        session finishes, in completion order. An exception raised by the
        callback is logged and does not affect the session. A session whose
        enrichment fails unexpectedly is dropped with a diagnostic.

        Returns:
            Enriched sessions in candidate order
        """
        total = len(candidates)
        completed = 0

        async def report_progress() -> None:
            if on_progress is None:
                return
            try:
                on_progress(completed, total)
            except Exception as e:
                await self.logger.warning(f'Progress callback failed: {e}')

        async def enrich_one(candidate: SessionCandidate) -> EnrichedSession:
            nonlocal completed
            try:
                return await self.enrich(
                    candidate.entry,
                    candidate.project_dir_name,
                    candidate.computed_input_tokens,
                    candidate.computed_output_tokens,
                )
            finally:
                completed += 1
                await report_progress()

        outcomes = await settle_all(enrich_one(c) for c in candidates)

        sessions: list[EnrichedSession] = []
        for candidate, outcome in zip(candidates, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                await self.logger.warning(f'Failed to enrich session {candidate.entry.sessionId}: {outcome}')
                continue
            sessions.append(outcome)
        return sessions

