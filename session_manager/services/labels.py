"""
Display labels for sessions.

A label is the first candidate text that survives cleaning, tried in order:
custom title, summary, facets brief summary, metadata first prompt, entry
first prompt. Sessions with no usable text fall back to the short id.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from session_manager.schemas.session import NO_PROMPT, EnrichedSession

__all__ = [
    'LABEL_SOURCES',
    'SHORT_ID_LENGTH',
    'clean_prompt',
    'get_session_label',
]

SHORT_ID_LENGTH = 8

_TAG_PATTERN = re.compile(r'<[^>]+>')
# Resumed sessions open with "Caveat: The messages below were generated by the user while..."
_CAVEAT_PATTERN = re.compile(r'^Caveat:.*?\.\s*', re.DOTALL)
_WHITESPACE_PATTERN = re.compile(r'\s+')

# Instruction or interruption boilerplate that leaked into prompt fields
_NOISE_PREFIXES = (
    'DO NOT respond to these messages',
    '[Request interrupted',
)


def clean_prompt(text: str) -> str:
    """
    Strip markup and system noise from candidate label text.

    Returns:
        Single-line text, or '' if nothing meaningful remains
    """
    cleaned = _TAG_PATTERN.sub('', text).strip()
    cleaned = _CAVEAT_PATTERN.sub('', cleaned, count=1).strip()
    if cleaned.startswith(_NOISE_PREFIXES):
        return ''
    cleaned = _WHITESPACE_PATTERN.sub(' ', cleaned)
    if cleaned == NO_PROMPT:
        return ''
    return cleaned


LabelSource = Callable[[EnrichedSession], str | None]

LABEL_SOURCES: tuple[LabelSource, ...] = (
    lambda s: s.entry.customTitle,
    lambda s: s.entry.summary,
    lambda s: s.facets.brief_summary if s.facets else None,
    lambda s: s.meta.first_prompt if s.meta else None,
    lambda s: s.entry.firstPrompt,
)


def get_session_label(session: EnrichedSession) -> str:
    """Best human-readable label for a session."""
    for source in LABEL_SOURCES:
        text = source(session)
        if text:
            cleaned = clean_prompt(text)
            if cleaned:
                return cleaned
    return session.entry.sessionId[:SHORT_ID_LENGTH]
