"""Tests for deriving session entries from raw JSONL logs."""

from __future__ import annotations

import asyncio
import os
from datetime import UTC, datetime, timedelta
from pathlib import Path

from helpers import T0, RecordingLogger, assistant_record, iso, user_record, write_jsonl

from session_manager.schemas.session import NO_PROMPT
from session_manager.services.parser import (
    FIRST_PROMPT_MAX_LENGTH,
    SessionLogParserService,
    parse_session_log,
    parse_timestamp,
)

PROJECT_DIR = '-Users-dev-project'
SESSION_ID = '11111111-2222-3333-4444-555555555555'


def log_path(tmp_path: Path) -> Path:
    return tmp_path / PROJECT_DIR / f'{SESSION_ID}.jsonl'


def test_user_and_assistant_records(tmp_path: Path) -> None:
    path = write_jsonl(
        log_path(tmp_path),
        [
            user_record('hello', T0),
            assistant_record(T0 + timedelta(seconds=5), input_tokens=10, output_tokens=5),
        ],
    )

    parsed = parse_session_log(path, PROJECT_DIR)

    assert parsed is not None
    entry = parsed.entry
    assert entry.sessionId == SESSION_ID
    assert entry.messageCount == 1
    assert entry.firstPrompt == 'hello'
    assert entry.created == T0
    assert entry.modified == T0 + timedelta(seconds=5)
    assert entry.fullPath == str(path)
    assert entry.isSidechain is False
    assert parsed.input_tokens == 10
    assert parsed.output_tokens == 5
    assert parsed.used_filesystem_times is False


def test_message_count_and_first_prompt_from_first_user_turn(tmp_path: Path) -> None:
    path = write_jsonl(
        log_path(tmp_path),
        [user_record(f'prompt {i}', T0 + timedelta(minutes=i)) for i in range(4)],
    )

    parsed = parse_session_log(path, PROJECT_DIR)

    assert parsed is not None
    assert parsed.entry.messageCount == 4
    assert parsed.entry.firstPrompt == 'prompt 0'


def test_first_prompt_is_truncated(tmp_path: Path) -> None:
    path = write_jsonl(log_path(tmp_path), [user_record('x' * 1000, T0)])

    parsed = parse_session_log(path, PROJECT_DIR)

    assert parsed is not None
    assert parsed.entry.firstPrompt == 'x' * FIRST_PROMPT_MAX_LENGTH


def test_first_prompt_from_multi_part_content(tmp_path: Path) -> None:
    content = [
        {'type': 'image', 'source': {'type': 'base64', 'data': ''}},
        {'type': 'text', 'text': 'describe this'},
        {'type': 'text', 'text': 'second part'},
    ]
    path = write_jsonl(log_path(tmp_path), [user_record(content, T0)])

    parsed = parse_session_log(path, PROJECT_DIR)

    assert parsed is not None
    assert parsed.entry.firstPrompt == 'describe this'


def test_first_user_turn_without_text_keeps_sentinel(tmp_path: Path) -> None:
    tool_result = [{'type': 'tool_result', 'tool_use_id': 't1', 'content': 'done'}]
    path = write_jsonl(
        log_path(tmp_path),
        [user_record(tool_result, T0), user_record('later text', T0 + timedelta(seconds=1))],
    )

    parsed = parse_session_log(path, PROJECT_DIR)

    assert parsed is not None
    assert parsed.entry.firstPrompt == NO_PROMPT
    assert parsed.entry.messageCount == 2


def test_role_user_without_type_counts_as_user_turn(tmp_path: Path) -> None:
    path = write_jsonl(
        log_path(tmp_path),
        [{'role': 'user', 'content': 'top-level content', 'timestamp': iso(T0)}],
    )

    parsed = parse_session_log(path, PROJECT_DIR)

    assert parsed is not None
    assert parsed.entry.messageCount == 1
    assert parsed.entry.firstPrompt == 'top-level content'


def test_custom_title_last_one_wins_and_contributes_nothing_else(tmp_path: Path) -> None:
    path = write_jsonl(
        log_path(tmp_path),
        [
            {'type': 'custom-title', 'customTitle': 'first name', 'sessionId': SESSION_ID},
            user_record('hi', T0, cwd='/srv/app'),
            {
                'type': 'custom-title',
                'customTitle': 'renamed',
                'cwd': '/ignored',
                'timestamp': iso(T0 + timedelta(days=9)),
            },
        ],
    )

    parsed = parse_session_log(path, PROJECT_DIR)

    assert parsed is not None
    assert parsed.entry.customTitle == 'renamed'
    assert parsed.entry.projectPath == '/srv/app'
    assert parsed.entry.modified == T0
    assert parsed.entry.messageCount == 1


def test_cwd_and_branch_come_from_first_record_carrying_them(tmp_path: Path) -> None:
    path = write_jsonl(
        log_path(tmp_path),
        [
            {'type': 'system', 'timestamp': iso(T0)},
            user_record('a', T0, cwd='/first', gitBranch='main'),
            user_record('b', T0, cwd='/second', gitBranch='feature'),
        ],
    )

    parsed = parse_session_log(path, PROJECT_DIR)

    assert parsed is not None
    assert parsed.entry.projectPath == '/first'
    assert parsed.entry.gitBranch == 'main'


def test_project_path_decoded_from_directory_name(tmp_path: Path) -> None:
    path = write_jsonl(log_path(tmp_path), [user_record('hi', T0)])

    parsed = parse_session_log(path, PROJECT_DIR)

    assert parsed is not None
    assert parsed.entry.projectPath == '/Users/dev/project'


def test_corrupt_lines_are_skipped_and_counted(tmp_path: Path) -> None:
    path = write_jsonl(
        log_path(tmp_path),
        [
            user_record('hello', T0),
            '{"type": "user", "message": ',
            '',
            '[1, 2, 3]',
            'not json at all',
            assistant_record(T0 + timedelta(seconds=1), input_tokens=3, output_tokens=4),
        ],
    )

    parsed = parse_session_log(path, PROJECT_DIR)

    assert parsed is not None
    assert parsed.skipped_lines == 3
    assert parsed.parsed_lines == 2
    assert parsed.entry.messageCount == 1
    assert parsed.input_tokens == 3


def test_zero_parseable_lines_yields_none(tmp_path: Path) -> None:
    path = write_jsonl(log_path(tmp_path), ['garbage', '{broken', ''])

    assert parse_session_log(path, PROJECT_DIR) is None


def test_empty_file_yields_none(tmp_path: Path) -> None:
    path = log_path(tmp_path)
    path.parent.mkdir(parents=True)
    path.touch()

    assert parse_session_log(path, PROJECT_DIR) is None


def test_cache_tokens_count_as_input(tmp_path: Path) -> None:
    path = write_jsonl(
        log_path(tmp_path),
        [
            user_record('hi', T0),
            assistant_record(
                T0,
                input_tokens=100,
                output_tokens=20,
                cache_creation_input_tokens=300,
                cache_read_input_tokens=100,
            ),
            assistant_record(T0, output_tokens=5),
        ],
    )

    parsed = parse_session_log(path, PROJECT_DIR)

    assert parsed is not None
    assert parsed.input_tokens == 500
    assert parsed.output_tokens == 25


def test_timestamp_nested_in_message(tmp_path: Path) -> None:
    later = T0 + timedelta(hours=1)
    path = write_jsonl(
        log_path(tmp_path),
        [
            user_record('hi', T0),
            {'type': 'assistant', 'message': {'role': 'assistant', 'timestamp': iso(later)}},
        ],
    )

    parsed = parse_session_log(path, PROJECT_DIR)

    assert parsed is not None
    assert parsed.entry.modified == later


def test_timestamps_out_of_order_use_min_and_max(tmp_path: Path) -> None:
    path = write_jsonl(
        log_path(tmp_path),
        [
            user_record('b', T0 + timedelta(minutes=10)),
            user_record('a', T0),
            user_record('c', T0 + timedelta(minutes=5)),
        ],
    )

    parsed = parse_session_log(path, PROJECT_DIR)

    assert parsed is not None
    assert parsed.entry.created == T0
    assert parsed.entry.modified == T0 + timedelta(minutes=10)


def test_no_timestamps_falls_back_to_filesystem_times(tmp_path: Path) -> None:
    path = write_jsonl(log_path(tmp_path), [user_record('hi')])
    mtime = datetime(2024, 6, 1, tzinfo=UTC).timestamp()
    os.utime(path, (mtime, mtime))

    parsed = parse_session_log(path, PROJECT_DIR)

    assert parsed is not None
    assert parsed.used_filesystem_times is True
    assert parsed.entry.modified == datetime.fromtimestamp(mtime, tz=UTC)
    assert parsed.entry.created is not None
    assert parsed.entry.created <= parsed.entry.modified
    assert parsed.entry.fileMtime == mtime * 1000


def test_records_with_unexpected_field_shapes_still_count(tmp_path: Path) -> None:
    path = write_jsonl(
        log_path(tmp_path),
        [
            user_record('hello', T0),
            {
                'type': 'user',
                'message': 'plain string message',
                'timestamp': iso(T0 + timedelta(minutes=1)),
                'cwd': '/srv/app',
            },
            {'type': 'user', 'content': {'unexpected': 'object'}, 'gitBranch': 7},
            {
                'type': 'assistant',
                'timestamp': iso(T0 + timedelta(minutes=2)),
                'message': {'role': 'assistant', 'usage': {'input_tokens': 10.5, 'output_tokens': 'n/a'}},
            },
        ],
    )

    parsed = parse_session_log(path, PROJECT_DIR)

    assert parsed is not None
    assert parsed.skipped_lines == 0
    assert parsed.parsed_lines == 4
    assert parsed.entry.messageCount == 3
    assert parsed.entry.firstPrompt == 'hello'
    assert parsed.entry.projectPath == '/srv/app'
    assert parsed.entry.gitBranch is None
    assert parsed.entry.modified == T0 + timedelta(minutes=2)
    assert parsed.input_tokens == 10
    assert parsed.output_tokens == 0


def test_string_message_is_the_prompt(tmp_path: Path) -> None:
    path = write_jsonl(
        log_path(tmp_path),
        [{'type': 'user', 'message': 'run the migrations', 'timestamp': iso(T0)}],
    )

    parsed = parse_session_log(path, PROJECT_DIR)

    assert parsed is not None
    assert parsed.entry.firstPrompt == 'run the migrations'


def test_parse_timestamp() -> None:
    assert parse_timestamp('2025-03-01T12:00:00.000Z') == T0
    assert parse_timestamp('2025-03-01T12:00:00') == T0
    assert parse_timestamp('yesterday') is None


class TestSessionLogParserService:
    def test_missing_file_is_silent(self, tmp_path: Path) -> None:
        logger = RecordingLogger()
        service = SessionLogParserService(logger)

        assert asyncio.run(service.parse(log_path(tmp_path), PROJECT_DIR)) is None
        assert logger.infos == []
        assert logger.warnings == []

    def test_unparseable_file_is_reported(self, tmp_path: Path) -> None:
        path = write_jsonl(log_path(tmp_path), ['garbage'])
        logger = RecordingLogger()

        assert asyncio.run(SessionLogParserService(logger).parse(path, PROJECT_DIR)) is None
        assert any('No parseable records' in m for m in logger.infos)

    def test_skipped_lines_and_time_fallback_are_reported(self, tmp_path: Path) -> None:
        path = write_jsonl(log_path(tmp_path), ['garbage', user_record('hi')])
        logger = RecordingLogger()

        parsed = asyncio.run(SessionLogParserService(logger).parse(path, PROJECT_DIR))

        assert parsed is not None
        assert any('Skipped 1 unparseable line' in m for m in logger.infos)
        assert len(logger.warnings) == 1
        assert SESSION_ID in logger.warnings[0]
