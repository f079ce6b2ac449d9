"""Builders for fake Claude data directories used across tests."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from session_manager.schemas.session import EnrichedSession, SessionEntry, SessionFacets, SessionMeta

T0 = datetime(2025, 3, 1, 12, 0, 0, tzinfo=UTC)


def iso(value: datetime) -> str:
    return value.isoformat().replace('+00:00', 'Z')


def write_jsonl(path: Path, lines: Iterable[Mapping[str, Any] | str]) -> Path:
    """Write records (dicts) or raw lines (str) as a JSONL file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open('w', encoding='utf-8') as f:
        for line in lines:
            f.write(line if isinstance(line, str) else json.dumps(line))
            f.write('\n')
    return path


def write_json(path: Path, document: object) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(document), encoding='utf-8')
    return path


def user_record(content: object, timestamp: datetime | None = None, **extra: Any) -> dict[str, Any]:
    record: dict[str, Any] = {'type': 'user', 'message': {'role': 'user', 'content': content}, **extra}
    if timestamp is not None:
        record['timestamp'] = iso(timestamp)
    return record


def assistant_record(
    timestamp: datetime | None = None,
    input_tokens: int = 0,
    output_tokens: int = 0,
    **usage: int,
) -> dict[str, Any]:
    record: dict[str, Any] = {
        'type': 'assistant',
        'message': {
            'role': 'assistant',
            'content': [{'type': 'text', 'text': 'ok'}],
            'usage': {'input_tokens': input_tokens, 'output_tokens': output_tokens, **usage},
        },
    }
    if timestamp is not None:
        record['timestamp'] = iso(timestamp)
    return record


def index_entry(session_id: str, **fields: Any) -> dict[str, Any]:
    return {'sessionId': session_id, 'firstPrompt': 'indexed prompt', 'messageCount': 3, **fields}


def make_session(
    session_id: str = 'abc12345-0000-0000-0000-000000000000',
    project_dir_name: str = '-work-app',
    meta: Mapping[str, Any] | None = None,
    facets: Mapping[str, Any] | None = None,
    total_size_bytes: int = 0,
    computed_duration_minutes: int | None = None,
    computed_input_tokens: int | None = None,
    computed_output_tokens: int | None = None,
    **entry_fields: Any,
) -> EnrichedSession:
    """An in-memory enriched session with only the given facts set."""
    return EnrichedSession(
        entry=SessionEntry(sessionId=session_id, **entry_fields),
        meta=SessionMeta.model_validate(meta) if meta is not None else None,
        facets=SessionFacets.model_validate(facets) if facets is not None else None,
        total_size_bytes=total_size_bytes,
        project_dir_name=project_dir_name,
        computed_duration_minutes=computed_duration_minutes,
        computed_input_tokens=computed_input_tokens,
        computed_output_tokens=computed_output_tokens,
    )


class RecordingLogger:
    """LoggerProtocol implementation that keeps every message for assertions."""

    def __init__(self) -> None:
        self.infos: list[str] = []
        self.warnings: list[str] = []
        self.errors: list[str] = []

    async def info(self, message: str) -> None:
        self.infos.append(message)

    async def warning(self, message: str) -> None:
        self.warnings.append(message)

    async def error(self, message: str) -> None:
        self.errors.append(message)
