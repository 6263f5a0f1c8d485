"""Typed structures representing Git worktree state."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(slots=True)
class WorktreeInfo:
    """Machine-friendly representation of `git worktree list --porcelain -z` output."""

    path: Path
    is_bare: bool = False
    prunable: bool = False

    @property
    def has_working_copy(self) -> bool:
        """Return True when the entry can receive or provide file changes."""
        return not self.is_bare and not self.prunable
