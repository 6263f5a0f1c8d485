"""Moving uncommitted work between two checkouts of one repository."""

from .executor import copy_file, sync_tracked_changes_fallback, transfer_changes
from .handoff import HandoffOptions, resolve_codex_handoff_plan, resolve_transfer_plan, run_handoff
from .path_mask import PathMaskContext, format_git_command, mask_home_path, resolve_path_mask_context
from .planner import conflict_reasons, detect_apply_conflicts, dry_run_actions, render_dry_run_plan
from .preflight import collect_preflight
from .types import (
    ChangeStatus,
    HandoffMode,
    TrackedChange,
    TransferDirection,
    TransferPlan,
    TransferPreflight,
    TransferResult,
)

__all__ = [
    "ChangeStatus",
    "HandoffMode",
    "HandoffOptions",
    "PathMaskContext",
    "TrackedChange",
    "TransferDirection",
    "TransferPlan",
    "TransferPreflight",
    "TransferResult",
    "collect_preflight",
    "conflict_reasons",
    "copy_file",
    "detect_apply_conflicts",
    "dry_run_actions",
    "format_git_command",
    "mask_home_path",
    "render_dry_run_plan",
    "resolve_codex_handoff_plan",
    "resolve_path_mask_context",
    "resolve_transfer_plan",
    "run_handoff",
    "sync_tracked_changes_fallback",
    "transfer_changes",
]
