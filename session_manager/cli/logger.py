"""
stderr logger for the csm command line.

Diagnostics go to stderr so `csm list --format json` stays pipeable.
"""

from __future__ import annotations

import typer


class CLILogger:
    """
    LoggerProtocol implementation used by the CLI commands.

    info() carries the engine's per-file diagnostics (skipped index entries,
    unreadable side-cars) and is muted unless verbose. Warnings and errors
    always print.
    """

    def __init__(self, verbose: bool = False) -> None:
        self.verbose = verbose

    async def info(self, message: str) -> None:
        if self.verbose:
            typer.echo(f'[debug] {message}', err=True)

    async def warning(self, message: str) -> None:
        typer.echo(f'[warn] {message}', err=True)

    async def error(self, message: str) -> None:
        typer.echo(f'[error] {message}', err=True)
