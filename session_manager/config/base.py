"""
Base configuration for claude-session-manager.

Shared settings and helper functions for all entry points.
"""

from __future__ import annotations

import os
import pathlib
from typing import TypeVar

import lazy_object_proxy
import pydantic
import pydantic_settings

T = TypeVar('T', bound='BaseSessionSettings')


class BaseSessionSettings(pydantic_settings.BaseSettings):
    """Shared configuration across all entry points."""

    model_config = pydantic_settings.SettingsConfigDict(
        env_file_encoding='utf-8',
        case_sensitive=True,  # Fail fast on misconfiguration
        extra='forbid',  # Reject unknown keys in a loaded .env file
    )

    # Data root override (default: ~/.claude)
    CLAUDE_DIR: pathlib.Path | None = None

    # Verbose diagnostics on stderr
    CSM_DEBUG: bool = False

    @pydantic.field_validator('CLAUDE_DIR', mode='before')
    @classmethod
    def expand_claude_dir(cls, v: object) -> object:
        """Treat an empty override as unset and expand a leading ~."""
        if isinstance(v, str):
            if not v.strip():
                return None
            return pathlib.Path(v).expanduser()
        if isinstance(v, pathlib.Path):
            return v.expanduser()
        return v


ENV_FILE_VARIABLE = 'CSM_ENV_FILE'


def get_settings(settings_class: type[T], env_file: str | None = None) -> T:
    """
    Build settings from the environment, optionally layered over a .env file.

    The file comes from ``env_file`` or, failing that, the CSM_ENV_FILE
    environment variable.

    Args:
        settings_class: BaseSessionSettings subclass to build
        env_file: Explicit .env path, takes precedence over CSM_ENV_FILE

    Returns:
        Populated settings object

    Raises:
        FileNotFoundError: The named .env file does not exist
    """
    source = env_file or os.environ.get(ENV_FILE_VARIABLE)
    if not source:
        return settings_class()

    env_path = pathlib.Path(source).expanduser().resolve()
    if not env_path.is_file():
        raise FileNotFoundError(f'Settings file not found: {env_path}')

    return settings_class(_env_file=env_path)


def lazy_settings(settings_class: type[T]) -> T:
    """Return a proxy that builds ``settings_class`` the first time it is touched."""
    return lazy_object_proxy.Proxy(lambda: get_settings(settings_class))
