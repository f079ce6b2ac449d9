"""
Shared exceptions for claude-session-manager.

Domain-specific exceptions used across services. Discovery never raises for
ordinary absence or corruption of individual files; these exceptions cover
lookup failures and the deletion protocol.

Exception Hierarchy:
    SessionManagerError (base)
    ├── SessionResolutionError (lookup/resolution failures)
    │   ├── SessionNotFoundError (no session matches)
    │   └── AmbiguousSessionError (prefix matches multiple sessions)
    └── SessionDeletionError (deletion failures)
        ├── PartialDeletionError (some files could not be removed, index untouched)
        └── IndexUpdateError (index rewrite failed after every file was removed)
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from session_manager.schemas.operations.delete import RemovalFailure


class SessionManagerError(Exception):
    """Base exception for all claude-session-manager errors."""


class SessionResolutionError(SessionManagerError):
    """Base exception for session lookup and resolution failures."""


class SessionNotFoundError(SessionResolutionError):
    """Raised when no session matches an ID or ID prefix."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f'Session not found: {session_id}')


class AmbiguousSessionError(SessionResolutionError):
    """Raised when a session ID prefix matches multiple sessions."""

    def __init__(self, prefix: str, matches: list[str]) -> None:
        self.prefix = prefix
        self.matches = matches
        matches_str = '\n  '.join(matches[:10])
        if len(matches) > 10:
            matches_str += f'\n  ... and {len(matches) - 10} more'
        super().__init__(
            f"Session ID prefix '{prefix}' is ambiguous. Matches {len(matches)} sessions:\n  {matches_str}\n\n"
            f'Please provide a more specific session ID prefix.'
        )


class SessionDeletionError(SessionManagerError):
    """Base exception for deletion failures."""

    def __init__(self, session_id: str, message: str) -> None:
        self.session_id = session_id
        super().__init__(message)


class PartialDeletionError(SessionDeletionError):
    """Raised when one or more files of a session could not be removed.

    The session stays in its project index so it remains visible for retry.
    """

    def __init__(self, session_id: str, failures: Sequence[RemovalFailure]) -> None:
        self.failures = list(failures)
        lines = '\n'.join(f'  - {f.path}: {f.error}' for f in self.failures)
        super().__init__(
            session_id,
            f'Session {session_id}: {len(self.failures)} file(s) could not be deleted; '
            f'index left unchanged:\n{lines}',
        )


class IndexUpdateError(SessionDeletionError):
    """Raised when the project index could not be rewritten after a successful deletion."""

    def __init__(self, session_id: str, index_path: Path, reason: str) -> None:
        self.index_path = index_path
        self.reason = reason
        super().__init__(session_id, f'Failed to update session index {index_path} for {session_id}: {reason}')
