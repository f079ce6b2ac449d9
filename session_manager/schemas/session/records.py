"""
Pydantic models for raw session log records.

A session log is an append-only JSONL stream written by Claude Code. Records
are heterogeneous and their schema drifts between Claude Code versions, so
only the handful of record kinds the engine extracts facts from are modeled:

- user: a user-authored turn (type 'user', or any record with role 'user')
- assistant: a model turn carrying token usage
- custom-title: a user-assigned session name
- unknown: every other record kind (summary, system, progress, snapshots...)

Selection is an explicit tagged union driven by a callable discriminator, so
the parser never inspects fields of a record it has not classified. Every field
is Tolerant: a value of an unexpected shape reads as None rather than failing
the record, so any JSON object validates into its variant and still counts.
Only a line that is not JSON, or not an object, fails validation.

Field names mirror the JSON keys Claude Code writes.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Annotated, Any, Literal

import pydantic

from session_manager.schemas.types import PermissiveModel, Tolerant

__all__ = [
    'AssistantRecord',
    'CustomTitleRecord',
    'LogMessage',
    'LogRecord',
    'LogRecordAdapter',
    'TokenUsage',
    'UnknownRecord',
    'UserRecord',
    'record_kind',
]


# ==============================================================================
# Nested Structures
# ==============================================================================


def _whole_tokens(value: Any) -> Any:
    """Truncate finite fractional token counts; other values pass through."""
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    return value


TokenCount = Annotated[Tolerant[int], pydantic.BeforeValidator(_whole_tokens)]


class TokenUsage(PermissiveModel):
    """Token usage reported on an assistant message."""

    input_tokens: TokenCount = None
    output_tokens: TokenCount = None
    cache_creation_input_tokens: TokenCount = None
    cache_read_input_tokens: TokenCount = None

    @property
    def total_input_tokens(self) -> int:
        """Base input tokens plus cache creation and cache read tokens."""
        return (
            (self.input_tokens or 0)
            + (self.cache_creation_input_tokens or 0)
            + (self.cache_read_input_tokens or 0)
        )

    @property
    def total_output_tokens(self) -> int:
        return self.output_tokens or 0


class LogMessage(PermissiveModel):
    """API message payload nested under a record's `message` key."""

    role: Tolerant[str] = None
    content: Tolerant[str | Sequence[Any]] = None
    usage: Tolerant[TokenUsage] = None
    timestamp: Tolerant[str] = None


# ==============================================================================
# Records
# ==============================================================================


class BaseLogRecord(PermissiveModel):
    """Fields any record kind may carry."""

    type: Tolerant[str] = None
    cwd: Tolerant[str] = None
    gitBranch: Tolerant[str] = None
    timestamp: Tolerant[str] = None
    message: Any = None

    @property
    def event_timestamp(self) -> str | None:
        """The record's own timestamp, else one nested in its message payload."""
        if self.timestamp:
            return self.timestamp
        message = self.message
        if isinstance(message, LogMessage):
            return message.timestamp or None
        if isinstance(message, Mapping):
            nested = message.get('timestamp')
            if isinstance(nested, str) and nested:
                return nested
        return None


class UserRecord(BaseLogRecord):
    """
    User-authored turn.

    Content lives at the top level or under `message`, which some writers
    store as a bare string instead of a message object.
    """

    role: Tolerant[str] = None
    content: Tolerant[str | Sequence[Any]] = None
    message: Tolerant[LogMessage | str] = None

    def prompt_text(self) -> str | None:
        """
        Text of this turn.

        Plain-string content is returned as is. For multi-part content the
        first text-typed segment wins. Returns None when the turn carries no
        text (e.g. it only holds tool results).
        """
        content = self.content
        if content is None:
            if isinstance(self.message, str):
                content = self.message
            elif self.message is not None:
                content = self.message.content

        if isinstance(content, str):
            return content
        if isinstance(content, Sequence):
            for part in content:
                if isinstance(part, Mapping) and part.get('type') == 'text':
                    text = part.get('text')
                    if isinstance(text, str):
                        return text
        return None


class AssistantRecord(BaseLogRecord):
    """Model turn. Token usage is read from message.usage."""

    type: Literal['assistant']
    message: Tolerant[LogMessage] = None

    @property
    def usage(self) -> TokenUsage:
        if self.message is not None and self.message.usage is not None:
            return self.message.usage
        return TokenUsage()


class CustomTitleRecord(BaseLogRecord):
    """User-defined session name (minimal schema, no uuid/timestamp)."""

    type: Literal['custom-title']
    customTitle: Tolerant[str] = None


class UnknownRecord(BaseLogRecord):
    """Any record kind the engine does not extract kind-specific facts from."""


# ==============================================================================
# Log Record (Tagged Union)
# ==============================================================================


def record_kind(value: Any) -> str:
    """
    Discriminator for LogRecord.

    Returns one of 'custom-title', 'user', 'assistant' or 'unknown'. Works on
    raw dicts (validation) and on model instances (serialization).
    """
    if isinstance(value, Mapping):
        kind = value.get('type')
        role = value.get('role')
    else:
        kind = getattr(value, 'type', None)
        role = getattr(value, 'role', None)

    if kind == 'custom-title':
        return 'custom-title'
    if kind == 'user' or role == 'user':
        return 'user'
    if kind == 'assistant':
        return 'assistant'
    return 'unknown'


LogRecord = Annotated[
    Annotated[UserRecord, pydantic.Tag('user')]
    | Annotated[AssistantRecord, pydantic.Tag('assistant')]
    | Annotated[CustomTitleRecord, pydantic.Tag('custom-title')]
    | Annotated[UnknownRecord, pydantic.Tag('unknown')],
    pydantic.Discriminator(record_kind),
]

# Type adapter for validating log records (required for union types)
LogRecordAdapter: pydantic.TypeAdapter[LogRecord] = pydantic.TypeAdapter(LogRecord)
