"""
Shared type definitions for schemas.

Centralizes common type annotations used across session schemas.

Layering:
- StrictModel for results the engine produces (candidates, enriched sessions, deletion results)
- PermissiveModel for documents the engine reads but does not own
- Tolerant / fallback_to for individual fields of those documents whose value may be
  null or of an unexpected type without invalidating the rest of the document
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Annotated, Any, TypeVar

import pydantic

__all__ = [
    'JsonDatetime',
    'PathStr',
    'PermissiveModel',
    'StrictModel',
    'Tolerant',
    'fallback_to',
]

T = TypeVar('T')

# ==============================================================================
# Base Models
# ==============================================================================


class StrictModel(pydantic.BaseModel):
    """Engine-owned results: unknown fields rejected, no coercion, immutable."""

    model_config = pydantic.ConfigDict(
        extra='forbid',
        strict=True,
        frozen=True,
    )


class PermissiveModel(pydantic.BaseModel):
    """
    Foundation permissive model for documents written by other programs.

    Symmetry with StrictModel:
    - StrictModel: extra='forbid', strict=True (rejects unknown fields)
    - PermissiveModel: extra='allow', strict=False (accepts unknown fields)

    Index entries, side-car documents and raw log records are produced by
    Claude Code and evolve independently of this package. Unknown keys are
    kept in model_extra so documents round-trip, and lax coercion tolerates
    ints written as floats and similar drift.
    """

    model_config = pydantic.ConfigDict(
        extra='allow',  # Accept unknown fields (graceful fallback)
        strict=False,  # Lax coercion for fields written by other tools
        frozen=True,  # Immutable after creation
    )


# ==============================================================================
# Field Tolerance
# ==============================================================================


def fallback_to(default: Any) -> pydantic.WrapValidator:
    """
    Field validator that substitutes default for null or invalid values.

    Usage:
        messageCount: Annotated[int, fallback_to(0)] = 0
    """

    def validate(value: Any, handler: Callable[[Any], Any]) -> Any:
        if value is None:
            return default
        try:
            return handler(value)
        except pydantic.ValidationError:
            return default

    return pydantic.WrapValidator(validate)


Tolerant = Annotated[T | None, fallback_to(None)]
"""Optional field that reads as None when the stored value does not fit its type."""


# ==============================================================================
# Primitive Types
# ==============================================================================


def _ensure_aware(value: datetime) -> datetime:
    """Naive timestamps are treated as UTC so every datetime compares."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


JsonDatetime = Annotated[datetime, pydantic.Field(strict=False), pydantic.AfterValidator(_ensure_aware)]
"""Pydantic-enhanced datetime for JSON serialization (allows string->datetime conversion)."""

PathStr = str
"""Absolute filesystem path serialized as a string."""
