"""
Session delete service - removes every file of a session, then its index entry.

Deletion protocol:
- Enumerate every target up front (plan_deletion): raw log, debug transcript,
  file-history, tasks and session-env directories, both side-car documents,
  and todo files named <id>, <id>-* or <id>.*
- Remove all targets concurrently; a missing target counts as removed and one
  failed removal never cancels the others
- If ANY removal failed, the project index is left untouched and
  PartialDeletionError is raised. The session stays indexed and visible for
  retry instead of pointing at files that may still exist.
- Otherwise the entry is dropped from sessions-index.json via a temporary
  file that is atomically renamed over the original

Not safe against concurrent deletions targeting the same project index.
Callers serialize deletions per project (delete_sessions does).
"""

from __future__ import annotations

import contextlib
import json
import os
import shutil
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from pathlib import Path

from session_manager.exceptions import IndexUpdateError, PartialDeletionError, SessionDeletionError
from session_manager.paths import ClaudePaths
from session_manager.protocols import LoggerProtocol, NullLogger
from session_manager.schemas.operations.delete import (
    DeleteResult,
    DeletionPlan,
    DeletionTarget,
    RemovalFailure,
)
from session_manager.schemas.session import EnrichedSession
from session_manager.services.concurrency import run_blocking, settle_all
from session_manager.services.enrich import directory_size, file_size

__all__ = [
    'SessionDeleteService',
    'is_todo_for_session',
    'remove_target',
]


def is_todo_for_session(file_name: str, session_id: str) -> bool:
    """Exact-prefix match: `abc1234-x` does not belong to session `abc123`."""
    return file_name == session_id or file_name.startswith((f'{session_id}-', f'{session_id}.'))


def remove_target(path: Path, recursive: bool) -> int | None:
    """
    Remove one target, tolerating its absence.

    Args:
        path: File or directory to remove
        recursive: Remove a directory tree (per-session directories only)

    Returns:
        Bytes freed, or None if the target did not exist

    Raises:
        OSError: If the target exists but could not be removed
    """
    if recursive and path.is_dir() and not path.is_symlink():
        size = directory_size(path)
        try:
            shutil.rmtree(path)
        except FileNotFoundError:
            return None
        return size

    try:
        size = path.lstat().st_size
        path.unlink()
    except FileNotFoundError:
        return None
    return size


class SessionDeleteService:
    """
    Service for deleting sessions and keeping project indexes consistent.

    Usage:
        service = SessionDeleteService(ClaudePaths.resolve(), logger)
        result = await service.delete_session(session)
    """

    def __init__(self, paths: ClaudePaths, logger: LoggerProtocol | None = None) -> None:
        self.paths = paths
        self.logger = logger or NullLogger()

    # ==========================================================================
    # Enumeration
    # ==========================================================================

    async def plan_deletion(self, session: EnrichedSession) -> DeletionPlan:
        """
        Enumerate every path associated with a session without touching it.

        An unreadable todos directory is recorded as an enumeration failure,
        which blocks the index update like a failed removal.
        """
        session_id = session.entry.sessionId
        log_path = session.entry.fullPath or str(self.paths.session_log(session.project_dir_name, session_id))

        targets = [
            DeletionTarget(path=log_path, kind='session_log', recursive=False),
            DeletionTarget(path=str(self.paths.debug_log(session_id)), kind='debug_log', recursive=False),
            DeletionTarget(path=str(self.paths.file_history(session_id)), kind='file_history', recursive=True),
            DeletionTarget(path=str(self.paths.task_dir(session_id)), kind='tasks', recursive=True),
            DeletionTarget(path=str(self.paths.session_env(session_id)), kind='session_env', recursive=True),
            DeletionTarget(path=str(self.paths.session_meta(session_id)), kind='session_meta', recursive=False),
            DeletionTarget(path=str(self.paths.facets(session_id)), kind='facets', recursive=False),
        ]

        enumeration_failures: list[RemovalFailure] = []
        todos_dir = self.paths.todos_dir
        try:
            todo_names = await run_blocking(os.listdir, todos_dir)
        except FileNotFoundError:
            todo_names = []
        except OSError as e:
            await self.logger.warning(f'Could not read todos directory {todos_dir}: {e}')
            enumeration_failures.append(RemovalFailure(path=str(todos_dir), kind='todo', error=str(e)))
            todo_names = []

        for name in sorted(todo_names):
            if is_todo_for_session(name, session_id):
                targets.append(DeletionTarget(path=str(todos_dir / name), kind='todo', recursive=False))

        return DeletionPlan(session_id=session_id, targets=targets, enumeration_failures=enumeration_failures)

    # ==========================================================================
    # Deletion
    # ==========================================================================

    async def delete_session(self, session: EnrichedSession, dry_run: bool = False) -> DeleteResult:
        """
        Delete every file of a session, then remove it from its project index.

        Args:
            session: Session to delete
            dry_run: Only enumerate targets, remove nothing

        Returns:
            DeleteResult with removed paths and index status

        Raises:
            PartialDeletionError: If any target could not be removed (index untouched)
            IndexUpdateError: If the index rewrite failed after every removal succeeded
        """
        start_time = datetime.now(UTC)
        session_id = session.entry.sessionId
        plan = await self.plan_deletion(session)

        if dry_run:
            await self.logger.info(f'Dry run - {len(plan.targets)} target(s) for session {session_id}')
            return DeleteResult(
                session_id=session_id,
                was_dry_run=True,
                targets=plan.targets,
                removed_paths=[],
                index_updated=False,
                size_freed_bytes=0,
                duration_ms=(datetime.now(UTC) - start_time).total_seconds() * 1000,
                deleted_at=datetime.now(UTC),
            )

        outcomes = await settle_all(
            run_blocking(remove_target, Path(target.path), target.recursive) for target in plan.targets
        )

        failures = list(plan.enumeration_failures)
        removed_paths: list[str] = []
        size_freed = 0
        for target, outcome in zip(plan.targets, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                await self.logger.warning(f'Deletion failed for session {session_id}: {target.path}: {outcome}')
                failures.append(RemovalFailure(path=target.path, kind=target.kind, error=str(outcome)))
                continue
            if outcome is not None:
                removed_paths.append(target.path)
                size_freed += outcome
                await self.logger.info(f'Deleted: {target.path}')

        if failures:
            await self.logger.warning(
                f'Session {session_id}: {len(failures)} file(s) could not be deleted; skipping index update'
            )
            raise PartialDeletionError(session_id, failures)

        index_updated = await self.remove_from_index(session)

        return DeleteResult(
            session_id=session_id,
            was_dry_run=False,
            targets=plan.targets,
            removed_paths=removed_paths,
            index_updated=index_updated,
            size_freed_bytes=size_freed,
            duration_ms=(datetime.now(UTC) - start_time).total_seconds() * 1000,
            deleted_at=datetime.now(UTC),
        )

    async def delete_sessions(
        self,
        sessions: Sequence[EnrichedSession],
        dry_run: bool = False,
    ) -> list[DeleteResult | SessionDeletionError]:
        """
        Delete several sessions one after another.

        Sequential so that no two index rewrites for one project overlap.
        A failed session does not stop the remaining ones.

        Returns:
            One DeleteResult or SessionDeletionError per session, in input order
        """
        results: list[DeleteResult | SessionDeletionError] = []
        for session in sessions:
            try:
                results.append(await self.delete_session(session, dry_run=dry_run))
            except SessionDeletionError as e:
                results.append(e)
        return results

    # ==========================================================================
    # Index
    # ==========================================================================

    async def remove_from_index(self, session: EnrichedSession) -> bool:
        """
        Drop a session's entry from its project's sessions-index.json.

        The index is rewritten through <index>.tmp and os.replace(), so a
        crash mid-write leaves the original intact. Unknown keys are kept.

        Returns:
            True if the index was rewritten, False if it was absent, unreadable
            or held no entry for the session

        Raises:
            IndexUpdateError: If writing or renaming the temporary file failed
        """
        session_id = session.entry.sessionId
        index_path = self.paths.index_path(session.project_dir_name)

        try:
            raw = await run_blocking(index_path.read_bytes)
        except FileNotFoundError:
            return False
        except OSError as e:
            await self.logger.warning(f'Could not read {index_path}; index not updated: {e}')
            return False

        try:
            index = json.loads(raw)
        except ValueError as e:
            await self.logger.warning(f'Malformed {index_path}; index not updated: {e}')
            return False
        if not isinstance(index, dict) or not isinstance(index.get('entries'), list):
            await self.logger.warning(f'Unexpected layout in {index_path}; index not updated')
            return False

        entries = index['entries']
        kept = [e for e in entries if not (isinstance(e, Mapping) and e.get('sessionId') == session_id)]
        if len(kept) == len(entries):
            return False
        index['entries'] = kept

        tmp_path = index_path.with_name(index_path.name + '.tmp')
        try:
            await run_blocking(self._write_atomic, index_path, tmp_path, json.dumps(index, indent=2))
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp_path.unlink(missing_ok=True)
            await self.logger.error(f'Failed to update session index for {session_id}: {e}')
            raise IndexUpdateError(session_id, index_path, str(e)) from e

        await self.logger.info(f'Removed {session_id} from {index_path}')
        return True

    @staticmethod
    def _write_atomic(index_path: Path, tmp_path: Path, content: str) -> None:
        with tmp_path.open('w', encoding='utf-8') as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, index_path)
