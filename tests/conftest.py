from __future__ import annotations

from pathlib import Path

import pytest

from session_manager.paths import ClaudePaths


@pytest.fixture
def claude_paths(tmp_path: Path) -> ClaudePaths:
    """Empty data root with a projects directory, standing in for ~/.claude."""
    paths = ClaudePaths(tmp_path / '.claude')
    paths.projects_dir.mkdir(parents=True)
    return paths
