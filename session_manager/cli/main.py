#!/usr/bin/env python3
"""
Command-line interface for claude-session-manager.

Provides commands to list, search, inspect and clean up Claude Code sessions.
Command output goes to stdout; diagnostics go to stderr.
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

import pydantic
import typer

from session_manager.cli.logger import CLILogger
from session_manager.config.cli import settings
from session_manager.exceptions import SessionDeletionError, SessionResolutionError
from session_manager.paths import ClaudePaths
from session_manager.protocols import ProgressCallback
from session_manager.schemas.session import EnrichedSession
from session_manager.services.delete import SessionDeleteService
from session_manager.services.discovery import SessionDiscoveryService
from session_manager.services.labels import get_session_label
from session_manager.services.listing import (
    SORT_KEYS,
    filter_by_project,
    filter_larger_than,
    filter_older_than,
    parse_size_string,
    session_duration,
    session_tokens,
    sort_sessions,
    summarize_sessions,
)
from session_manager.services.search import search_sessions

app = typer.Typer(
    name='csm',
    help='List, search and clean up Claude Code sessions',
    add_completion=False,
)

SessionListAdapter = pydantic.TypeAdapter(list[EnrichedSession])

OUTPUT_FORMATS = ('text', 'json')


def _validate_output_format(value: str) -> str:
    """Validate output format for typer callback."""
    if value not in OUTPUT_FORMATS:
        raise typer.BadParameter("Must be 'text' or 'json'")
    return value


def _validate_sort_key(value: str | None) -> str | None:
    if value is not None and value not in SORT_KEYS:
        raise typer.BadParameter(f'Must be one of: {", ".join(SORT_KEYS)}')
    return value


# ==============================================================================
# Helpers
# ==============================================================================


def _build_services(verbose: bool, claude_dir: Path | None) -> tuple[SessionDiscoveryService, CLILogger]:
    logger = CLILogger(verbose=verbose or settings.CSM_DEBUG)
    paths = ClaudePaths.resolve(claude_dir, settings)
    return SessionDiscoveryService(paths, logger), logger


def _progress_reporter() -> ProgressCallback | None:
    """Progress line on an interactive stderr, nothing otherwise."""
    if not sys.stderr.isatty():
        return None

    def report(completed: int, total: int) -> None:
        typer.echo(f'\rLoading sessions {completed}/{total}', err=True, nl=completed == total)

    return report


def format_bytes(size: int) -> str:
    """Human-readable byte count (1024-based)."""
    if size < 1024:
        return f'{size} B'
    value = float(size)
    for unit in ('KB', 'MB'):
        value /= 1024
        if value < 1024:
            return f'{value:.1f} {unit}'
    return f'{value / 1024:.1f} GB'


def _format_date(value: datetime | None) -> str:
    return value.astimezone().strftime('%Y-%m-%d %H:%M') if value else '-'


def _format_duration(minutes: float | None) -> str:
    if not minutes:
        return '-'
    hours, mins = divmod(round(minutes), 60)
    return f'{hours}h{mins:02d}m' if hours else f'{mins}m'


def _session_line(session: EnrichedSession) -> str:
    entry = session.entry
    tokens = session_tokens(session)
    return '  '.join(
        [
            entry.sessionId[:8],
            _format_date(entry.modified),
            get_session_label(session),
            f'[{entry.gitBranch}]' if entry.gitBranch else '-',
            f'{entry.messageCount} msgs',
            _format_duration(session_duration(session)),
            f'{tokens:,} tok' if tokens else '-',
            format_bytes(session.total_size_bytes),
        ]
    )


def _echo_sessions(sessions: Sequence[EnrichedSession], output_format: str) -> None:
    if output_format == 'json':
        typer.echo(SessionListAdapter.dump_json(list(sessions), indent=2).decode())
        return
    for session in sessions:
        typer.echo(_session_line(session))


# ==============================================================================
# Commands
# ==============================================================================


@app.command('list')
def list_sessions(
    project: str | None = typer.Option(None, '--project', '-p', help='Only sessions whose project path contains this'),
    sort: str | None = typer.Option(
        None, '--sort', '-s', help='Sort key (default: $CSM_DEFAULT_SORT or date)', callback=_validate_sort_key
    ),
    limit: int | None = typer.Option(None, '--limit', '-n', min=1, help='Show at most this many sessions'),
    output_format: str = typer.Option(
        'text', '--format', '-f', help='Output format: text or json', callback=_validate_output_format
    ),
    claude_dir: Path | None = typer.Option(None, '--claude-dir', help='Data root (default: $CLAUDE_DIR or ~/.claude)'),
    verbose: bool = typer.Option(False, '--verbose', '-v', help='Show debug diagnostics on stderr'),
) -> None:
    """List sessions across all projects, newest first."""
    asyncio.run(_list_async(project, sort, limit, output_format, claude_dir, verbose))


async def _list_async(
    project: str | None,
    sort: str | None,
    limit: int | None,
    output_format: str,
    claude_dir: Path | None,
    verbose: bool,
) -> None:
    """Async implementation of list command."""
    discovery, _logger = _build_services(verbose, claude_dir)
    sessions = await discovery.get_all_sessions(_progress_reporter())

    if project:
        sessions = filter_by_project(sessions, project)
    sessions = sort_sessions(sessions, sort or settings.CSM_DEFAULT_SORT)
    if limit is not None:
        sessions = sessions[:limit]

    if output_format == 'text' and not sessions:
        typer.echo('No sessions found.')
        return
    _echo_sessions(sessions, output_format)

    if output_format == 'text':
        totals = summarize_sessions(sessions)
        typer.echo()
        typer.echo(
            f'{totals.session_count} session(s), {format_bytes(totals.total_size_bytes)}, '
            f'{totals.total_tokens:,} tokens, {_format_duration(totals.total_duration_minutes)}'
        )


@app.command()
def find(
    query: str = typer.Argument(..., help='Search terms'),
    limit: int | None = typer.Option(None, '--limit', '-n', min=1, help='Show at most this many matches'),
    output_format: str = typer.Option(
        'text', '--format', '-f', help='Output format: text or json', callback=_validate_output_format
    ),
    claude_dir: Path | None = typer.Option(None, '--claude-dir', help='Data root (default: $CLAUDE_DIR or ~/.claude)'),
    verbose: bool = typer.Option(False, '--verbose', '-v', help='Show debug diagnostics on stderr'),
) -> None:
    """Search sessions by title, summary, prompt, goal, project and branch."""
    asyncio.run(_find_async(query, limit, output_format, claude_dir, verbose))


async def _find_async(
    query: str,
    limit: int | None,
    output_format: str,
    claude_dir: Path | None,
    verbose: bool,
) -> None:
    """Async implementation of find command."""
    discovery, _logger = _build_services(verbose, claude_dir)
    sessions = await discovery.get_all_sessions(_progress_reporter())

    matches = search_sessions(sessions, query)
    if limit is not None:
        matches = matches[:limit]

    if output_format == 'text' and not matches:
        typer.echo(f'No sessions match: {query}')
        return
    _echo_sessions(matches, output_format)


@app.command()
def info(
    session_id: str = typer.Argument(..., help='Session ID (full or prefix)'),
    output_format: str = typer.Option(
        'text', '--format', '-f', help='Output format: text or json', callback=_validate_output_format
    ),
    claude_dir: Path | None = typer.Option(None, '--claude-dir', help='Data root (default: $CLAUDE_DIR or ~/.claude)'),
    verbose: bool = typer.Option(False, '--verbose', '-v', help='Show debug diagnostics on stderr'),
) -> None:
    """Show details of one session."""
    asyncio.run(_info_async(session_id, output_format, claude_dir, verbose))


async def _info_async(
    session_id: str,
    output_format: str,
    claude_dir: Path | None,
    verbose: bool,
) -> None:
    """Async implementation of info command."""
    discovery, _logger = _build_services(verbose, claude_dir)

    try:
        session = await discovery.find_session(session_id)
    except SessionResolutionError as e:
        typer.secho(f'Error: {e}', fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    if output_format == 'json':
        typer.echo(session.model_dump_json(indent=2))
        return

    entry = session.entry
    typer.echo(f'Session ID: {entry.sessionId}')
    typer.echo(f'Label:      {get_session_label(session)}')
    typer.echo(f'Project:    {entry.projectPath or "-"}')
    typer.echo(f'Branch:     {entry.gitBranch or "-"}')
    typer.echo(f'Created:    {_format_date(entry.created)}')
    typer.echo(f'Modified:   {_format_date(entry.modified)}')
    typer.echo(f'Messages:   {entry.messageCount}')
    typer.echo(f'Duration:   {_format_duration(session_duration(session))}')
    typer.echo(f'Tokens:     {session_tokens(session):,}')
    typer.echo(f'Size:       {format_bytes(session.total_size_bytes)}')
    typer.echo(f'Log:        {entry.fullPath or "-"}')

    if session.meta is not None:
        meta = session.meta
        typer.echo()
        typer.echo(f'Lines:      +{meta.lines_added} -{meta.lines_removed} ({meta.files_modified} files)')
        if meta.git_commits is not None:
            typer.echo(f'Commits:    {meta.git_commits}')
        if meta.tool_counts:
            tools = ', '.join(f'{name} {count}' for name, count in sorted(meta.tool_counts.items()))
            typer.echo(f'Tools:      {tools}')

    if session.facets is not None:
        facets = session.facets
        typer.echo()
        if facets.underlying_goal:
            typer.echo(f'Goal:       {facets.underlying_goal}')
        if facets.outcome:
            typer.echo(f'Outcome:    {facets.outcome}')
        if facets.brief_summary:
            typer.echo(f'Summary:    {facets.brief_summary}')


@app.command()
def clean(
    older_than: float | None = typer.Option(None, '--older-than', min=0, help='Sessions not modified for DAYS'),
    larger_than: str | None = typer.Option(None, '--larger-than', help='Sessions bigger than SIZE (e.g. 50MB)'),
    project: str | None = typer.Option(None, '--project', '-p', help='Only sessions whose project path contains this'),
    dry_run: bool = typer.Option(False, '--dry-run', help='Preview what would be deleted'),
    yes: bool = typer.Option(False, '--yes', '-y', help='Do not ask for confirmation'),
    claude_dir: Path | None = typer.Option(None, '--claude-dir', help='Data root (default: $CLAUDE_DIR or ~/.claude)'),
    verbose: bool = typer.Option(False, '--verbose', '-v', help='Show debug diagnostics on stderr'),
) -> None:
    """Delete sessions, with every associated file, matching the given filters.

    A session whose files could not all be removed stays in its project index
    so it remains visible for a retry.
    """
    if older_than is None and larger_than is None:
        typer.secho('Error: Specify --older-than and/or --larger-than.', fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    size_threshold = None
    if larger_than is not None:
        size_threshold = parse_size_string(larger_than)
        if size_threshold is None:
            typer.secho(f'Error: Invalid size: {larger_than}', fg=typer.colors.RED, err=True)
            raise typer.Exit(1)

    asyncio.run(_clean_async(older_than, size_threshold, project, dry_run, yes, claude_dir, verbose))


async def _clean_async(
    older_than: float | None,
    size_threshold: int | None,
    project: str | None,
    dry_run: bool,
    yes: bool,
    claude_dir: Path | None,
    verbose: bool,
) -> None:
    """Async implementation of clean command."""
    discovery, logger = _build_services(verbose, claude_dir)
    sessions = await discovery.get_all_sessions(_progress_reporter())

    if project:
        sessions = filter_by_project(sessions, project)
    if older_than is not None:
        sessions = filter_older_than(sessions, older_than)
    if size_threshold is not None:
        sessions = filter_larger_than(sessions, size_threshold)
    sessions = sort_sessions(sessions, 'date')

    if not sessions:
        typer.echo('No sessions match.')
        return

    for session in sessions:
        typer.echo(_session_line(session))
    totals = summarize_sessions(sessions)
    typer.echo()
    typer.echo(f'{totals.session_count} session(s), {format_bytes(totals.total_size_bytes)}')

    delete_service = SessionDeleteService(discovery.paths, logger)

    if dry_run:
        typer.secho('Dry run - would delete:', fg=typer.colors.YELLOW)
        for result in await delete_service.delete_sessions(sessions, dry_run=True):
            if isinstance(result, SessionDeletionError):
                continue
            typer.echo(f'  {result.session_id}: {len(result.targets)} target(s)')
            if verbose:
                for target in result.targets:
                    typer.echo(f'    - {target.path}')
        return

    if not yes:
        typer.confirm(f'Delete {totals.session_count} session(s)?', abort=True)

    results = await delete_service.delete_sessions(sessions)
    failures = [r for r in results if isinstance(r, SessionDeletionError)]
    deleted = [r for r in results if not isinstance(r, SessionDeletionError)]
    freed = sum(r.size_freed_bytes for r in deleted)

    typer.secho(f'Deleted {len(deleted)} session(s), freed {format_bytes(freed)}', fg=typer.colors.GREEN)
    if failures:
        for failure in failures:
            typer.secho(f'Error: {failure}', fg=typer.colors.RED, err=True)
        raise typer.Exit(1)


def main() -> None:
    """Entry point for the console script."""
    app()


if __name__ == '__main__':
    main()
