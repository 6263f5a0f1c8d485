"""Conflict gate and dry-run plan rendering."""

from __future__ import annotations

import os
from pathlib import Path

from gwtt.worktree.git import GitRunner

from .path_mask import PathMaskContext, format_git_command, mask_home_path
from .preflight import collect_preflight
from .types import HandoffMode, TransferPlan, TransferPreflight

TEMP_PATCH_PLACEHOLDER = "<temp-patch>"
NO_CHANGES_ACTION = "no tracked or untracked changes detected"
DESTRUCTIVE_PREFIX = "[destructive] "


def conflict_reasons(preflight: TransferPreflight, destination_name: str) -> list[str]:
    """Reasons a non-destructive transfer must stop; empty means safe."""
    reasons: list[str] = []
    if preflight.destination_dirty:
        reasons.append(f"{destination_name} has uncommitted changes")
    if preflight.overlapping_files > 0:
        reasons.append(
            f"both sides modified {preflight.overlapping_files} overlapping file(s)"
        )
    return reasons


def detect_apply_conflicts(
    runner: GitRunner,
    destination_root: Path,
    destination_name: str,
    source_root: Path,
) -> list[str]:
    preflight = collect_preflight(runner, source_root, destination_root)
    return conflict_reasons(preflight, destination_name)


def reset_args(destination_root: Path) -> list[str]:
    return ["-C", str(destination_root), "reset", "--hard"]


def clean_args(destination_root: Path) -> list[str]:
    return ["-C", str(destination_root), "clean", "-fd"]


def apply_check_args(destination_root: Path, patch: str) -> list[str]:
    return ["-C", str(destination_root), "apply", "--check", patch]


def apply_args(destination_root: Path, patch: str) -> list[str]:
    return ["-C", str(destination_root), "apply", patch]


def copy_action(source: Path, destination: Path, mask: PathMaskContext) -> str:
    return f"copy {mask_home_path(source, mask)} -> {mask_home_path(destination, mask)}"


def symlink_action(source: Path, destination: Path, target: str, mask: PathMaskContext) -> str:
    return (
        f"symlink {mask_home_path(source, mask)} -> "
        f"{mask_home_path(destination, mask)} ({mask_home_path(target, mask)})"
    )


def untracked_action(source: Path, destination: Path, mask: PathMaskContext) -> str:
    """Describe the copy of one untracked file the way the executor performs it."""
    try:
        target = os.readlink(source)
    except OSError:
        # not a symlink, or not present yet
        return copy_action(source, destination, mask)
    return symlink_action(source, destination, target, mask)


def dry_run_actions(
    mode: HandoffMode,
    plan: TransferPlan,
    preflight: TransferPreflight,
    mask: PathMaskContext,
) -> list[str]:
    """Describe, in order, every mutating step the executor would take."""
    actions: list[str] = []
    destination = plan.destination_root

    if mode.destructive:
        actions.append(DESTRUCTIVE_PREFIX + format_git_command(reset_args(destination), mask))
        actions.append(DESTRUCTIVE_PREFIX + format_git_command(clean_args(destination), mask))

    if preflight.tracked_patch:
        # overwrite discards the destination first, so verification is pointless
        if not mode.destructive:
            actions.append(
                format_git_command(apply_check_args(destination, TEMP_PATCH_PLACEHOLDER), mask)
            )
        actions.append(format_git_command(apply_args(destination, TEMP_PATCH_PLACEHOLDER), mask))

    for rel in preflight.untracked_files:
        actions.append(untracked_action(plan.source_root / rel, destination / rel, mask))

    if not actions:
        actions.append(NO_CHANGES_ACTION)
    return actions


def render_dry_run_plan(
    mode: HandoffMode,
    plan: TransferPlan,
    preflight: TransferPreflight,
    mask: PathMaskContext,
) -> str:
    """Render the plan header, preflight summary and numbered actions."""
    lines = [
        f"{mode.value} plan",
        f"  to: {plan.to.value}",
        f"  source: {mask_home_path(plan.source_root, mask)}",
        f"  destination: {mask_home_path(plan.destination_root, mask)}",
        f"  overwrite: {_bool(mode.destructive)}",
        "",
        "preflight",
        f"  destination_dirty: {_bool(preflight.destination_dirty)}",
        f"  overlapping_files: {preflight.overlapping_files}",
        f"  tracked_patch: {'present' if preflight.tracked_patch else 'none'}",
        f"  untracked_files: {len(preflight.untracked_files)}",
        "",
        "actions",
    ]
    for idx, action in enumerate(dry_run_actions(mode, plan, preflight, mask), start=1):
        lines.append(f"  {idx}. {action}")
    return "\n".join(lines) + "\n"


def _bool(value: bool) -> str:
    return "true" if value else "false"
