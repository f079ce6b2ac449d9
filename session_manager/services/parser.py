"""
Session log parser - derives a SessionEntry from a raw JSONL log.

Used for sessions that exist on disk but are missing from their project's
sessions-index.json. The log is streamed line by line, so memory use does not
grow with file size.

Extracted facts:
- customTitle: last custom-title record
- projectPath: first record with a cwd (fallback: decoded directory name)
- gitBranch: first record with a gitBranch
- created / modified: earliest / latest record timestamp (own or message.timestamp)
  (fallback: filesystem birth / modification time)
- messageCount: number of user-authored records
- firstPrompt: text of the first user-authored record, truncated
- token totals: summed over assistant records (input includes cache tokens)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

import pydantic

from session_manager.paths import LOG_SUFFIX, decode_project_dir
from session_manager.protocols import LoggerProtocol, NullLogger
from session_manager.schemas.session import (
    NO_PROMPT,
    AssistantRecord,
    CustomTitleRecord,
    LogRecordAdapter,
    SessionEntry,
    UserRecord,
)
from session_manager.services.concurrency import run_blocking

__all__ = [
    'FIRST_PROMPT_MAX_LENGTH',
    'ParsedSessionLog',
    'SessionLogParserService',
    'parse_session_log',
    'parse_timestamp',
]

FIRST_PROMPT_MAX_LENGTH = 231


@dataclass(frozen=True)
class ParsedSessionLog:
    """Facts derived from one session log."""

    entry: SessionEntry
    input_tokens: int
    output_tokens: int
    parsed_lines: int
    skipped_lines: int  # Non-blank lines that were not JSON objects
    used_filesystem_times: bool  # No record carried a timestamp


def parse_timestamp(value: str) -> datetime | None:
    """Parse an ISO-8601 record timestamp. Naive values are taken as UTC."""
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def parse_session_log(log_path: Path, project_dir_name: str) -> ParsedSessionLog | None:
    """
    Parse a session log into a SessionEntry plus token totals.

    Lines that are not valid records are skipped and counted; a corrupt line
    never aborts parsing of the rest of the file.

    Args:
        log_path: Path to <session-id>.jsonl
        project_dir_name: Encoded project directory the log lives in

    Returns:
        ParsedSessionLog, or None if the file holds no parseable record

    Raises:
        OSError: If the file cannot be opened, read or stat'ed
    """
    session_id = log_path.name.removesuffix(LOG_SUFFIX)

    project_path = ''
    git_branch: str | None = None
    custom_title: str | None = None
    first_seen: datetime | None = None
    last_seen: datetime | None = None
    first_prompt = NO_PROMPT
    message_count = 0
    input_tokens = 0
    output_tokens = 0
    parsed_lines = 0
    skipped_lines = 0

    with log_path.open('r', encoding='utf-8', errors='replace') as f:
        for line in f:
            line = line.strip()
            if not line:
                continue

            try:
                record = LogRecordAdapter.validate_json(line)
            except pydantic.ValidationError:
                skipped_lines += 1
                continue
            parsed_lines += 1

            if isinstance(record, CustomTitleRecord):
                if record.customTitle is not None:
                    custom_title = record.customTitle
                continue

            if not project_path and record.cwd:
                project_path = record.cwd
            if git_branch is None and record.gitBranch:
                git_branch = record.gitBranch

            raw_timestamp = record.event_timestamp
            if raw_timestamp:
                timestamp = parse_timestamp(raw_timestamp)
                if timestamp is not None:
                    if first_seen is None or timestamp < first_seen:
                        first_seen = timestamp
                    if last_seen is None or timestamp > last_seen:
                        last_seen = timestamp

            if isinstance(record, AssistantRecord):
                input_tokens += record.usage.total_input_tokens
                output_tokens += record.usage.total_output_tokens
            elif isinstance(record, UserRecord):
                message_count += 1
                if message_count == 1:
                    text = record.prompt_text()
                    if text is not None:
                        first_prompt = text[:FIRST_PROMPT_MAX_LENGTH]

    if parsed_lines == 0:
        return None

    if not project_path:
        project_path = decode_project_dir(project_dir_name)

    stat = log_path.stat()
    modified_fallback = datetime.fromtimestamp(stat.st_mtime, tz=UTC)
    used_filesystem_times = first_seen is None or last_seen is None
    if used_filesystem_times:
        # st_birthtime is missing on most Linux filesystems; st_ctime is the closest stand-in
        birth = getattr(stat, 'st_birthtime', None) or stat.st_ctime
        created = min(datetime.fromtimestamp(birth, tz=UTC), modified_fallback)
        modified = modified_fallback
    else:
        created = first_seen
        modified = last_seen

    entry = SessionEntry(
        sessionId=session_id,
        fullPath=str(log_path),
        fileMtime=stat.st_mtime * 1000,
        firstPrompt=first_prompt,
        customTitle=custom_title,
        messageCount=message_count,
        created=created,
        modified=modified,
        gitBranch=git_branch,
        projectPath=project_path,
        isSidechain=False,
    )

    return ParsedSessionLog(
        entry=entry,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        parsed_lines=parsed_lines,
        skipped_lines=skipped_lines,
        used_filesystem_times=used_filesystem_times,
    )


class SessionLogParserService:
    """
    Async front-end for parse_session_log().

    Runs the blocking parse on the default executor and turns every
    per-file problem into a diagnostic instead of an exception.
    """

    def __init__(self, logger: LoggerProtocol | None = None) -> None:
        self.logger = logger or NullLogger()

    async def parse(self, log_path: Path, project_dir_name: str) -> ParsedSessionLog | None:
        """
        Parse one session log.

        Args:
            log_path: Path to <session-id>.jsonl
            project_dir_name: Encoded project directory the log lives in

        Returns:
            ParsedSessionLog, or None if the file is absent, empty or unreadable
        """
        try:
            parsed = await run_blocking(parse_session_log, log_path, project_dir_name)
        except FileNotFoundError:
            return None
        except OSError as e:
            await self.logger.info(f'Failed reading {log_path}: {e}')
            return None

        if parsed is None:
            await self.logger.info(f'No parseable records in {log_path}')
            return None

        if parsed.skipped_lines:
            await self.logger.info(f'Skipped {parsed.skipped_lines} unparseable line(s) in {log_path}')
        if parsed.used_filesystem_times:
            await self.logger.warning(
                f'Session {parsed.entry.sessionId}: no timestamps in log, '
                f'using file birth/modification time (may be unreliable)'
            )
        return parsed
