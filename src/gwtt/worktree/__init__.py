"""
Git plumbing and worktree lookup for gwtt.

This package wraps the `git` executable behind a small runner protocol and
resolves Codex-provisioned worktrees registered with the local repository.
"""

from .codex import (
    codex_home_dir,
    codex_worktree_info,
    codex_worktrees_root,
    resolve_codex_worktree_path,
)
from .git import (
    ExecRunner,
    GitRunner,
    current_branch,
    list_worktrees,
    parse_porcelain_z,
    repo_root,
)
from .types import WorktreeInfo

__all__ = [
    "ExecRunner",
    "GitRunner",
    "WorktreeInfo",
    "codex_home_dir",
    "codex_worktree_info",
    "codex_worktrees_root",
    "current_branch",
    "list_worktrees",
    "parse_porcelain_z",
    "repo_root",
    "resolve_codex_worktree_path",
]
