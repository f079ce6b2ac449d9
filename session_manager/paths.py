"""
Path layout of the Claude Code data directory.

Every well-known area is derived from a single root (default ``~/.claude``,
overridable with the ``CLAUDE_DIR`` environment variable or an explicit path):

    <root>/projects/<encoded-project-path>/sessions-index.json
    <root>/projects/<encoded-project-path>/<session-id>.jsonl
    <root>/debug/<session-id>.txt
    <root>/file-history/<session-id>/
    <root>/tasks/<session-id>/
    <root>/session-env/<session-id>/
    <root>/usage-data/session-meta/<session-id>.json
    <root>/usage-data/facets/<session-id>.json
    <root>/todos/<session-id>[-suffix][.suffix]

Claude Code encodes project paths for directory names by replacing:
- `/` -> `-`
- `.` -> `-`
- ` ` -> `-`
- `~` -> `-`

WARNING: This encoding is LOSSY. decode_project_dir() only reverses the
separator and is a fallback for logs that never recorded a `cwd` field.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from session_manager.config.base import BaseSessionSettings

__all__ = [
    'INDEX_FILENAME',
    'LOG_SUFFIX',
    'ClaudePaths',
    'decode_project_dir',
]

INDEX_FILENAME = 'sessions-index.json'
LOG_SUFFIX = '.jsonl'


def decode_project_dir(encoded: str) -> str:
    """
    Best-effort reconstruction of a project path from its directory name.

    Strips the leading separator and expands every remaining `-` to `/`.
    Paths that originally contained `-`, `.`, ` ` or `~` decode incorrectly.

    Examples:
        >>> decode_project_dir('-Users-chris-project')
        '/Users/chris/project'
    """
    return '/' + encoded.removeprefix('-').replace('-', '/')


@dataclass(frozen=True)
class ClaudePaths:
    """Resolved locations of every well-known area under one data root."""

    root: Path

    @classmethod
    def resolve(
        cls,
        override: Path | str | None = None,
        settings: BaseSessionSettings | None = None,
    ) -> ClaudePaths:
        """
        Resolve the data root.

        Precedence: explicit override, then CLAUDE_DIR from settings, then ~/.claude.

        Args:
            override: Explicit root directory (e.g. from --claude-dir)
            settings: Settings to consult (default: lazily loaded CLI settings)
        """
        if override is not None and str(override).strip():
            return cls(Path(override).expanduser())

        if settings is None:
            from session_manager.config.cli import settings as cli_settings

            settings = cli_settings

        if settings.CLAUDE_DIR is not None:
            return cls(settings.CLAUDE_DIR)
        return cls(Path.home() / '.claude')

    # Areas

    @property
    def projects_dir(self) -> Path:
        return self.root / 'projects'

    @property
    def debug_dir(self) -> Path:
        return self.root / 'debug'

    @property
    def file_history_dir(self) -> Path:
        return self.root / 'file-history'

    @property
    def tasks_dir(self) -> Path:
        return self.root / 'tasks'

    @property
    def todos_dir(self) -> Path:
        return self.root / 'todos'

    @property
    def session_env_dir(self) -> Path:
        return self.root / 'session-env'

    @property
    def session_meta_dir(self) -> Path:
        return self.root / 'usage-data' / 'session-meta'

    @property
    def facets_dir(self) -> Path:
        return self.root / 'usage-data' / 'facets'

    # Per-project files

    def project_dir(self, project_dir_name: str) -> Path:
        return self.projects_dir / project_dir_name

    def index_path(self, project_dir_name: str) -> Path:
        return self.project_dir(project_dir_name) / INDEX_FILENAME

    def session_log(self, project_dir_name: str, session_id: str) -> Path:
        return self.project_dir(project_dir_name) / f'{session_id}{LOG_SUFFIX}'

    # Per-session files

    def debug_log(self, session_id: str) -> Path:
        return self.debug_dir / f'{session_id}.txt'

    def file_history(self, session_id: str) -> Path:
        return self.file_history_dir / session_id

    def task_dir(self, session_id: str) -> Path:
        return self.tasks_dir / session_id

    def session_env(self, session_id: str) -> Path:
        return self.session_env_dir / session_id

    def session_meta(self, session_id: str) -> Path:
        return self.session_meta_dir / f'{session_id}.json'

    def facets(self, session_id: str) -> Path:
        return self.facets_dir / f'{session_id}.json'
