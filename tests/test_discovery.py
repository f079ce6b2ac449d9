"""Tests for index/log reconciliation and top-level discovery."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

import pytest
from helpers import (
    T0,
    RecordingLogger,
    assistant_record,
    index_entry,
    make_session,
    user_record,
    write_json,
    write_jsonl,
)

from session_manager.exceptions import AmbiguousSessionError, SessionNotFoundError
from session_manager.paths import ClaudePaths
from session_manager.services.discovery import SessionDiscoveryService, resolve_session

PROJECT = '-work-app'
OTHER_PROJECT = '-work-lib'


def discover(paths: ClaudePaths, logger: RecordingLogger | None = None):
    return asyncio.run(SessionDiscoveryService(paths, logger).get_all_sessions())


def write_log(paths: ClaudePaths, project: str, session_id: str, prompt: str = 'from the log') -> Path:
    return write_jsonl(
        paths.session_log(project, session_id),
        [user_record(prompt, T0, cwd='/work/app'), assistant_record(T0, input_tokens=7, output_tokens=2)],
    )


def write_index(paths: ClaudePaths, project: str, entries: list[object], **extra: object) -> Path:
    return write_json(
        paths.index_path(project),
        {'version': 1, 'originalPath': '/work/app', 'entries': entries, **extra},
    )


def test_index_entry_wins_over_raw_log(claude_paths: ClaudePaths) -> None:
    write_log(claude_paths, PROJECT, 'sess-a', prompt='log prompt')
    write_index(claude_paths, PROJECT, [index_entry('sess-a', firstPrompt='index prompt')])

    sessions = discover(claude_paths)

    assert len(sessions) == 1
    assert sessions[0].entry.firstPrompt == 'index prompt'
    assert sessions[0].entry.messageCount == 3
    assert sessions[0].computed_input_tokens is None


def test_unindexed_log_is_parsed(claude_paths: ClaudePaths) -> None:
    write_log(claude_paths, PROJECT, 'sess-b')
    write_index(claude_paths, PROJECT, [index_entry('sess-a')])

    sessions = {s.entry.sessionId: s for s in discover(claude_paths)}

    assert set(sessions) == {'sess-a', 'sess-b'}
    parsed = sessions['sess-b']
    assert parsed.entry.firstPrompt == 'from the log'
    assert parsed.computed_input_tokens == 7
    assert parsed.computed_output_tokens == 2
    assert parsed.project_dir_name == PROJECT


def test_log_only_directory_without_index(claude_paths: ClaudePaths) -> None:
    write_log(claude_paths, PROJECT, 'sess-c')

    sessions = discover(claude_paths)

    assert [s.entry.sessionId for s in sessions] == ['sess-c']


def test_index_defaults_are_filled_in(claude_paths: ClaudePaths) -> None:
    write_index(claude_paths, PROJECT, [{'sessionId': 'sess-a'}])

    (session,) = discover(claude_paths)

    assert session.entry.fullPath == str(claude_paths.session_log(PROJECT, 'sess-a'))
    assert session.entry.projectPath == '/work/app'
    assert session.entry.firstPrompt == 'No prompt'


def test_index_unknown_keys_are_kept(claude_paths: ClaudePaths) -> None:
    write_index(claude_paths, PROJECT, [index_entry('sess-a', futureField={'x': 1})])

    (session,) = discover(claude_paths)

    assert session.entry.model_extra == {'futureField': {'x': 1}}


def test_malformed_index_entries_are_skipped(claude_paths: ClaudePaths) -> None:
    write_index(
        claude_paths,
        PROJECT,
        [index_entry('sess-a'), {'firstPrompt': 'no id'}, 'not an object', {'sessionId': ''}, index_entry('sess-b')],
    )
    logger = RecordingLogger()

    sessions = discover(claude_paths, logger)

    assert sorted(s.entry.sessionId for s in sessions) == ['sess-a', 'sess-b']
    assert sum('Skipping malformed entry' in m for m in logger.infos) == 3


def test_malformed_index_falls_back_to_logs(claude_paths: ClaudePaths) -> None:
    write_log(claude_paths, PROJECT, 'sess-a')
    claude_paths.index_path(PROJECT).write_text('{"entries": [', encoding='utf-8')
    logger = RecordingLogger()

    sessions = discover(claude_paths, logger)

    assert [s.entry.sessionId for s in sessions] == ['sess-a']
    assert sessions[0].entry.firstPrompt == 'from the log'
    assert any('Malformed' in m for m in logger.infos)


def test_duplicate_ids_inside_one_index_keep_first(claude_paths: ClaudePaths) -> None:
    write_index(
        claude_paths,
        PROJECT,
        [index_entry('sess-a', summary='first'), index_entry('sess-a', summary='second')],
    )

    (session,) = discover(claude_paths)

    assert session.entry.summary == 'first'


def test_session_ids_are_unique_across_directories(claude_paths: ClaudePaths) -> None:
    write_log(claude_paths, PROJECT, 'shared')
    write_log(claude_paths, OTHER_PROJECT, 'shared')
    write_index(claude_paths, OTHER_PROJECT, [index_entry('shared', summary='indexed copy')])

    sessions = discover(claude_paths)

    assert len(sessions) == 1
    assert sessions[0].entry.summary == 'indexed copy'
    assert sessions[0].project_dir_name == OTHER_PROJECT


def test_non_directories_in_projects_are_ignored(claude_paths: ClaudePaths) -> None:
    (claude_paths.projects_dir / 'stray.jsonl').write_text('{}', encoding='utf-8')
    write_log(claude_paths, PROJECT, 'sess-a')

    assert [s.entry.sessionId for s in discover(claude_paths)] == ['sess-a']


def test_missing_root_returns_empty_with_warning(tmp_path: Path) -> None:
    logger = RecordingLogger()

    assert discover(ClaudePaths(tmp_path / 'nowhere'), logger) == []
    assert len(logger.warnings) == 1


def test_unlistable_directory_is_skipped(claude_paths: ClaudePaths, monkeypatch: pytest.MonkeyPatch) -> None:
    write_log(claude_paths, PROJECT, 'sess-a')
    write_log(claude_paths, OTHER_PROJECT, 'sess-b')
    blocked = claude_paths.project_dir(PROJECT)
    real_listdir = os.listdir

    def listdir(path: os.PathLike[str] | str = '.') -> list[str]:
        if Path(path) == blocked:
            raise PermissionError(13, 'Permission denied', str(path))
        return real_listdir(path)

    monkeypatch.setattr(os, 'listdir', listdir)
    logger = RecordingLogger()

    sessions = discover(claude_paths, logger)

    assert [s.entry.sessionId for s in sessions] == ['sess-b']
    assert any('Cannot list project directory' in m for m in logger.warnings)


def test_progress_is_reported_per_session(claude_paths: ClaudePaths) -> None:
    for i in range(3):
        write_log(claude_paths, PROJECT, f'sess-{i}')
    calls: list[tuple[int, int]] = []

    service = SessionDiscoveryService(claude_paths)
    sessions = asyncio.run(service.get_all_sessions(lambda done, total: calls.append((done, total))))

    assert len(sessions) == 3
    assert calls == [(1, 3), (2, 3), (3, 3)]


def test_find_session_by_prefix(claude_paths: ClaudePaths) -> None:
    write_index(claude_paths, PROJECT, [index_entry('aaaa-1111'), index_entry('bbbb-2222')])
    service = SessionDiscoveryService(claude_paths)

    assert asyncio.run(service.find_session('bbbb')).entry.sessionId == 'bbbb-2222'


class TestResolveSession:
    sessions = [make_session('abc'), make_session('abcdef'), make_session('xyz-1')]

    def test_exact_match_wins_over_prefix(self) -> None:
        assert resolve_session(self.sessions, 'abc').entry.sessionId == 'abc'

    def test_unique_prefix(self) -> None:
        assert resolve_session(self.sessions, 'xy').entry.sessionId == 'xyz-1'

    def test_ambiguous_prefix(self) -> None:
        with pytest.raises(AmbiguousSessionError) as exc_info:
            resolve_session(self.sessions, 'ab')
        assert exc_info.value.matches == ['abc', 'abcdef']

    def test_not_found(self) -> None:
        with pytest.raises(SessionNotFoundError):
            resolve_session(self.sessions, 'zzz')

    def test_empty_prefix_matches_nothing(self) -> None:
        with pytest.raises(SessionNotFoundError):
            resolve_session(self.sessions, '')


def test_index_entries_with_odd_fields_are_kept(claude_paths: ClaudePaths) -> None:
    write_index(
        claude_paths,
        PROJECT,
        [
            index_entry('good'),
            {'sessionId': 'null-prompt', 'firstPrompt': None},
            {'sessionId': 'null-project', 'projectPath': None},
            {'sessionId': 'bad-created', 'created': 'yesterday', 'modified': 'not a date'},
            {'sessionId': 'odd-types', 'messageCount': None, 'isSidechain': None, 'summary': 5, 'gitBranch': []},
        ],
    )
    logger = RecordingLogger()

    sessions = {s.entry.sessionId: s.entry for s in discover(claude_paths, logger)}

    assert set(sessions) == {'good', 'null-prompt', 'null-project', 'bad-created', 'odd-types'}
    assert sessions['null-prompt'].firstPrompt == 'No prompt'
    assert sessions['null-project'].projectPath == '/work/app'
    assert sessions['bad-created'].created is None
    assert sessions['bad-created'].modified is None
    odd = sessions['odd-types']
    assert odd.messageCount == 0
    assert odd.isSidechain is False
    assert odd.summary is None
    assert odd.gitBranch is None
    assert not any('Skipping malformed entry' in m for m in logger.infos)


def test_index_with_odd_top_level_fields_is_read(claude_paths: ClaudePaths) -> None:
    write_json(
        claude_paths.index_path(PROJECT),
        {'version': 'two', 'originalPath': None, 'entries': [index_entry('sess-a')]},
    )

    (session,) = discover(claude_paths)

    assert session.entry.sessionId == 'sess-a'
    assert session.entry.projectPath == '/work/app'
