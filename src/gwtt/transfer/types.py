"""Value types flowing through the transfer engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class TransferDirection(str, Enum):
    """Which checkout receives the changes."""

    LOCAL = "local"
    WORKTREE = "worktree"


class HandoffMode(str, Enum):
    """Non-destructive apply versus destructive overwrite."""

    APPLY = "apply"
    OVERWRITE = "overwrite"

    @property
    def destructive(self) -> bool:
        return self is HandoffMode.OVERWRITE


class ChangeStatus(str, Enum):
    """Status letters emitted by `git diff --name-status`."""

    ADDED = "A"
    MODIFIED = "M"
    DELETED = "D"
    RENAMED = "R"
    COPIED = "C"
    TYPE_CHANGED = "T"

    @property
    def has_old_path(self) -> bool:
        return self in (ChangeStatus.RENAMED, ChangeStatus.COPIED)


@dataclass(frozen=True, slots=True)
class TransferPlan:
    """Resolved source/destination pair for one handoff."""

    to: TransferDirection
    source_root: Path
    source_name: str
    destination_root: Path
    destination_name: str


@dataclass(frozen=True, slots=True)
class TransferPreflight:
    """Read-only snapshot of both checkouts taken before a transfer."""

    destination_dirty: bool = False
    overlapping_files: int = 0
    tracked_patch: bool = False
    untracked_files: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class TrackedChange:
    """One row of `git diff --name-status HEAD`."""

    status: ChangeStatus
    new_path: str
    old_path: str | None = None

    def __post_init__(self) -> None:
        if self.status.has_old_path and not self.old_path:
            raise ValueError(f"{self.status.name} change requires an old path")
        if not self.status.has_old_path and self.old_path is not None:
            raise ValueError(f"{self.status.name} change cannot carry an old path")


@dataclass(slots=True)
class TransferResult:
    """Outcome of :func:`gwtt.transfer.executor.transfer_changes`."""

    applied_patch: bool = False
    used_fallback: bool = False
    copied_files: list[str] = field(default_factory=list)
    dry_run: bool = False
