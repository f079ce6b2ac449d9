"""
Shared protocols for session services.

Diagnostics and progress are routed through these seams so the engine never
writes to stdout or reads process-wide debug state itself.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

__all__ = ['LoggerProtocol', 'NullLogger', 'ProgressCallback']

# Invoked as (completed, total) after each session finishes enrichment
ProgressCallback = Callable[[int, int], None]


class LoggerProtocol(Protocol):
    """
    Async diagnostics sink accepted by every session service.

    Services emit verbose diagnostics through info(); warning() and error() are
    always surfaced by implementations.

    Implementations:
    - CLILogger (cli/logger.py): stderr, info() only when verbose
    - NullLogger (below): discards everything
    """

    async def info(self, message: str) -> None: ...
    async def warning(self, message: str) -> None: ...
    async def error(self, message: str) -> None: ...


class NullLogger:
    """Discards every message. Default for services constructed without a logger."""

    async def info(self, message: str) -> None:
        pass

    async def warning(self, message: str) -> None:
        pass

    async def error(self, message: str) -> None:
        pass
