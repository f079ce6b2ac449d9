"""
Schema definitions for claude-session-manager.

This package contains Pydantic models for various data schemas:
- session: Claude Code session log records, index entries and side-car documents
- operations: Service operation result schemas (delete, listing)
"""

from __future__ import annotations

from session_manager.schemas.types import JsonDatetime, PermissiveModel, StrictModel, Tolerant, fallback_to

__all__ = [
    'JsonDatetime',
    'PermissiveModel',
    'StrictModel',
    'Tolerant',
    'fallback_to',
]
