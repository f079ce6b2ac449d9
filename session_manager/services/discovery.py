"""
Session discovery service - finds sessions across all Claude Code projects.

Reconciles each project's sessions-index.json against the raw logs actually
on disk, producing exactly one candidate per session id, then enriches every
candidate in a single concurrent batch.

Precedence:
- an index entry wins over its raw log (the log is not re-parsed)
- logs missing from the index are parsed with SessionLogParserService
- across project directories, indexed candidates win over parsed ones and
  otherwise the first directory in sorted order wins
"""

from __future__ import annotations

import os
from collections.abc import Mapping, Sequence
from pathlib import Path

import pydantic

from session_manager.exceptions import AmbiguousSessionError, SessionNotFoundError
from session_manager.paths import LOG_SUFFIX, ClaudePaths, decode_project_dir
from session_manager.protocols import LoggerProtocol, NullLogger, ProgressCallback
from session_manager.schemas.session import (
    EnrichedSession,
    SessionCandidate,
    SessionEntry,
    SessionIndex,
)
from session_manager.services.concurrency import run_blocking, settle_all
from session_manager.services.enrich import SessionEnrichService
from session_manager.services.parser import SessionLogParserService

__all__ = [
    'SessionDiscoveryService',
    'list_subdirectories',
    'resolve_session',
]


def list_subdirectories(path: Path) -> list[str]:
    """Names of the immediate subdirectories of path, sorted."""
    with os.scandir(path) as it:
        return sorted(entry.name for entry in it if entry.is_dir())


def resolve_session(sessions: Sequence[EnrichedSession], id_or_prefix: str) -> EnrichedSession:
    """
    Resolve a full session ID or unique prefix against a session list.

    Raises:
        SessionNotFoundError: If nothing matches
        AmbiguousSessionError: If a prefix matches several sessions
    """
    for session in sessions:
        if session.entry.sessionId == id_or_prefix:
            return session

    matches = [s for s in sessions if id_or_prefix and s.entry.sessionId.startswith(id_or_prefix)]
    if not matches:
        raise SessionNotFoundError(id_or_prefix)
    if len(matches) > 1:
        raise AmbiguousSessionError(id_or_prefix, [m.entry.sessionId for m in matches])
    return matches[0]


class SessionDiscoveryService:
    """
    Service for discovering Claude Code sessions across all projects.

    Walks <root>/projects/, reconciles every project directory concurrently
    and returns enriched sessions. Never raises for per-session or
    per-directory problems; those become diagnostics on the logger.
    """

    def __init__(
        self,
        paths: ClaudePaths,
        logger: LoggerProtocol | None = None,
        parser: SessionLogParserService | None = None,
        enricher: SessionEnrichService | None = None,
    ) -> None:
        self.paths = paths
        self.logger = logger or NullLogger()
        self.parser = parser or SessionLogParserService(self.logger)
        self.enricher = enricher or SessionEnrichService(paths, self.logger)

    async def get_all_sessions(self, on_progress: ProgressCallback | None = None) -> list[EnrichedSession]:
        """
        Discover and enrich every session under the data root.

        Args:
            on_progress: Called as (completed, total) after each session is enriched

        Returns:
            Enriched sessions, one per distinct session id (empty if the root
            cannot be enumerated)
        """
        candidates = await self.collect_candidates()
        return await self.enricher.enrich_all(candidates, on_progress)

    async def find_session(self, id_or_prefix: str) -> EnrichedSession:
        """
        Find one session by full ID or unique prefix.

        Raises:
            SessionNotFoundError: If no session matches
            AmbiguousSessionError: If the prefix matches several sessions
        """
        sessions = await self.get_all_sessions()
        return resolve_session(sessions, id_or_prefix)

    # ==========================================================================
    # Reconciliation
    # ==========================================================================

    async def collect_candidates(self) -> list[SessionCandidate]:
        """One candidate per distinct session id across all project directories."""
        projects_dir = self.paths.projects_dir
        try:
            dir_names = await run_blocking(list_subdirectories, projects_dir)
        except OSError as e:
            await self.logger.warning(f'Cannot read sessions directory {projects_dir}: {e}')
            return []

        outcomes = await settle_all(self.reconcile_project_dir(name) for name in dir_names)

        by_id: dict[str, SessionCandidate] = {}
        for name, outcome in zip(dir_names, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                await self.logger.warning(f'Skipping project directory {name}: {outcome}')
                continue
            for candidate in outcome:
                session_id = candidate.entry.sessionId
                existing = by_id.get(session_id)
                if existing is None or (candidate.indexed and not existing.indexed):
                    by_id[session_id] = candidate
        return list(by_id.values())

    async def reconcile_project_dir(self, project_dir_name: str) -> list[SessionCandidate]:
        """
        Candidates for one project directory.

        Index entries are taken as is; raw logs whose id is not in the index
        are parsed concurrently. An unlistable directory yields only its
        index candidates, with a warning.
        """
        project_dir = self.paths.project_dir(project_dir_name)

        candidates: list[SessionCandidate] = []
        seen: set[str] = set()
        for entry in await self.load_index(project_dir_name):
            if entry.sessionId in seen:
                continue
            seen.add(entry.sessionId)
            candidates.append(SessionCandidate(entry=entry, project_dir_name=project_dir_name, indexed=True))

        try:
            names = await run_blocking(os.listdir, project_dir)
        except OSError as e:
            await self.logger.warning(f'Cannot list project directory {project_dir}: {e}')
            return candidates

        unindexed = [
            project_dir / name
            for name in sorted(names)
            if name.endswith(LOG_SUFFIX) and name != LOG_SUFFIX and name.removesuffix(LOG_SUFFIX) not in seen
        ]
        outcomes = await settle_all(self.parser.parse(path, project_dir_name) for path in unindexed)

        for path, outcome in zip(unindexed, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                await self.logger.info(f'Failed parsing {path}: {outcome!r}')
                continue
            if outcome is None:
                continue
            candidates.append(
                SessionCandidate(
                    entry=outcome.entry,
                    project_dir_name=project_dir_name,
                    indexed=False,
                    computed_input_tokens=outcome.input_tokens or None,
                    computed_output_tokens=outcome.output_tokens or None,
                )
            )
        return candidates

    async def load_index(self, project_dir_name: str) -> list[SessionEntry]:
        """
        Entries of a project's sessions-index.json.

        A missing index is an empty list. An index that is not a JSON object
        is skipped with a diagnostic, as is an entry without a usable
        sessionId; every other entry is kept whatever its remaining fields
        hold. Entries lacking fullPath or projectPath get them filled in from
        the directory layout.
        """
        index_path = self.paths.index_path(project_dir_name)
        try:
            raw = await run_blocking(index_path.read_bytes)
        except FileNotFoundError:
            return []
        except OSError as e:
            await self.logger.info(f'Failed reading {index_path}: {e}')
            return []

        try:
            index = SessionIndex.model_validate_json(raw)
        except pydantic.ValidationError as e:
            await self.logger.info(f'Malformed {index_path}: {e.error_count()} error(s)')
            return []

        default_project_path = index.originalPath or decode_project_dir(project_dir_name)
        entries: list[SessionEntry] = []
        for position, raw_entry in enumerate(index.entries):
            entry = self._validate_entry(raw_entry)
            if entry is None:
                await self.logger.info(f'Skipping malformed entry #{position} in {index_path}')
                continue

            fill: dict[str, object] = {}
            if not entry.fullPath:
                fill['fullPath'] = str(self.paths.session_log(project_dir_name, entry.sessionId))
            if not entry.projectPath:
                fill['projectPath'] = default_project_path
            entries.append(entry.model_copy(update=fill) if fill else entry)
        return entries

    @staticmethod
    def _validate_entry(raw_entry: object) -> SessionEntry | None:
        if not isinstance(raw_entry, Mapping):
            return None
        try:
            entry = SessionEntry.model_validate(raw_entry)
        except pydantic.ValidationError:
            return None
        if not entry.sessionId.strip():
            return None
        return entry
