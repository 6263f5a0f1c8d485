"""Utility functions for gwtt."""

from __future__ import annotations

from pathlib import Path


def find_project_root(start_path: Path | None = None, markers: tuple[str, ...] = (".git",)) -> Path:
    """
    Find the repository root by looking for project markers.

    Searches upward from the start path for any of ``markers``. A ``.git`` file
    (as found in linked worktrees) counts the same as a ``.git`` directory.

    Args:
        start_path: Starting path to search from. Defaults to the current directory.
        markers: Entry names that identify a project root.

    Returns:
        Path to project root directory.

    Raises:
        RuntimeError: If project root cannot be found.
    """
    if start_path is None:
        start_path = Path.cwd()

    current = start_path.resolve()
    if current.is_file():
        current = current.parent

    while True:
        for marker in markers:
            if (current / marker).exists():
                return current
        if current == current.parent:
            break
        current = current.parent

    raise RuntimeError(f"Could not find project root from {start_path}")
