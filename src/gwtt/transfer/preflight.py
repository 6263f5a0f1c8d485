"""Read-only inspection of both checkouts before a transfer."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import AbstractSet

from gwtt.worktree.git import GitRunner, stdout_fields, stdout_text

from .types import TransferPreflight

logger = logging.getLogger(__name__)


def is_dirty(runner: GitRunner, root: Path) -> bool:
    """Return True when ``root`` has any tracked or untracked change."""
    result = runner.run(["-C", str(root), "status", "--porcelain"])
    return bool(stdout_text(result).strip())


def changeset(runner: GitRunner, root: Path) -> bytes:
    """Binary-safe diff of the working copy at ``root`` against its HEAD."""
    result = runner.run(["-C", str(root), "diff", "--binary", "HEAD"])
    return result.stdout or b""


def list_untracked(runner: GitRunner, root: Path) -> list[str]:
    """Untracked, non-ignored files relative to ``root``, in git's order."""
    result = runner.run(["-C", str(root), "ls-files", "-z", "--others", "--exclude-standard"])
    return stdout_fields(result)


def modified_files(runner: GitRunner, root: Path) -> set[str]:
    """Paths changed relative to HEAD plus untracked files."""
    result = runner.run(["-C", str(root), "diff", "--name-only", "-z", "HEAD"])
    files = set(stdout_fields(result))
    files.update(list_untracked(runner, root))
    return files


def intersect_count(left: AbstractSet[str], right: AbstractSet[str]) -> int:
    if not left or not right:
        return 0
    if len(left) > len(right):
        left, right = right, left
    return sum(1 for key in left if key in right)


def collect_preflight(
    runner: GitRunner,
    source_root: Path,
    destination_root: Path,
    *,
    include_detail: bool = False,
) -> TransferPreflight:
    """
    Snapshot the state needed to decide whether a transfer is safe.

    Args:
        runner: Git runner used for every query.
        source_root: Checkout whose uncommitted work is transferred.
        destination_root: Checkout receiving the work.
        include_detail: Also compute changeset presence and the source's
            untracked files (needed for dry-run action lists).

    Raises:
        GitCommandError: Any underlying git query failed.
    """
    destination_dirty = is_dirty(runner, destination_root)
    source_modified = modified_files(runner, source_root)
    destination_modified = modified_files(runner, destination_root)
    overlapping = intersect_count(source_modified, destination_modified)

    tracked_patch = False
    untracked: tuple[str, ...] = ()
    if include_detail:
        tracked_patch = bool(changeset(runner, source_root))
        untracked = tuple(list_untracked(runner, source_root))

    logger.debug(
        "preflight: destination_dirty=%s overlapping_files=%d tracked_patch=%s untracked=%d",
        destination_dirty,
        overlapping,
        tracked_patch,
        len(untracked),
    )
    return TransferPreflight(
        destination_dirty=destination_dirty,
        overlapping_files=overlapping,
        tracked_patch=tracked_patch,
        untracked_files=untracked,
    )
