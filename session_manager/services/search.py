"""
Free-text search over enriched sessions.

Each query term found as a substring of a session's searchable text scores
1.0, plus a 0.5 bonus when it also appears as a whole word. Sessions scoring
0 are dropped; the rest are ordered by descending score.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from session_manager.schemas.session import EnrichedSession

__all__ = [
    'SUBSTRING_SCORE',
    'WORD_BOUNDARY_BONUS',
    'score_session',
    'search_sessions',
    'searchable_text',
]

SUBSTRING_SCORE = 1.0
WORD_BOUNDARY_BONUS = 0.5


def searchable_text(session: EnrichedSession) -> str:
    """Lower-cased concatenation of every searchable field."""
    entry = session.entry
    facets = session.facets
    fields = [
        entry.customTitle,
        entry.summary,
        entry.firstPrompt,
        facets.brief_summary if facets else None,
        facets.underlying_goal if facets else None,
        facets.session_type if facets else None,
        entry.projectPath,
        entry.gitBranch,
    ]
    return ' '.join(field or '' for field in fields).lower()


def score_session(text: str, terms: Sequence[str]) -> float:
    """Relevance of lower-cased searchable text for lower-cased query terms."""
    score = 0.0
    for term in terms:
        if term not in text:
            continue
        score += SUBSTRING_SCORE
        if re.search(rf'(?<!\w){re.escape(term)}(?!\w)', text):
            score += WORD_BOUNDARY_BONUS
    return score


def search_sessions(sessions: Sequence[EnrichedSession], query: str) -> list[EnrichedSession]:
    """
    Sessions matching a free-text query, best match first.

    Args:
        sessions: Sessions to search
        query: Whitespace-separated terms (case-insensitive)

    Returns:
        Sessions with a nonzero score, sorted by descending score
    """
    terms = query.lower().split()
    if not terms:
        return []

    scored = [(score_session(searchable_text(s), terms), s) for s in sessions]
    matches = [(score, s) for score, s in scored if score > 0]
    matches.sort(key=lambda pair: pair[0], reverse=True)
    return [s for _score, s in matches]
