"""Lookup of Codex-provisioned worktrees under ``$CODEX_HOME/worktrees``."""

from __future__ import annotations

import os
from pathlib import Path

from gwtt.exceptions import ConfigError

from .git import GitRunner, list_worktrees

CODEX_HOME_ENV = "CODEX_HOME"
CODEX_HOME_DISPLAY = "$CODEX_HOME"


def codex_home_dir() -> Path:
    """Resolve the Codex home directory (``$CODEX_HOME`` or ``~/.codex``)."""
    raw = os.environ.get(CODEX_HOME_ENV, "").strip()
    try:
        if raw:
            return Path(os.path.abspath(os.path.expanduser(raw)))
        return Path.home() / ".codex"
    except RuntimeError as exc:
        raise ConfigError(f"resolve {CODEX_HOME_ENV}: {exc}") from exc


def codex_worktrees_root(codex_home: Path) -> Path:
    return codex_home / "worktrees"


def codex_worktree_info(root: Path, path: Path) -> tuple[str, Path] | None:
    """
    Split a worktree path below ``root`` into its opaque id and relative path.

    Codex lays out worktrees as ``<root>/<opaque-id>/<repo>``; the root itself and
    paths outside it are rejected.
    """
    try:
        rel = Path(os.path.normpath(path)).relative_to(os.path.normpath(root))
    except ValueError:
        return None
    if not rel.parts or rel.parts[0] in {".", ".."}:
        return None
    return rel.parts[0], rel


def resolve_codex_worktree_path(
    runner: GitRunner, repo: Path, worktrees_root: Path, opaque_id: str
) -> Path | None:
    """Return the registered worktree whose Codex id matches ``opaque_id``."""
    for info in list_worktrees(runner, repo):
        if not info.has_working_copy:
            continue
        candidate = info.path if info.path.is_absolute() else repo / info.path
        candidate = Path(os.path.normpath(candidate))
        found = codex_worktree_info(worktrees_root, candidate)
        if found is None or found[0] != opaque_id:
            continue
        return candidate
    return None
