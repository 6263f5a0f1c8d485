"""Command flow shared by `gwtt apply` and `gwtt overwrite`."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from gwtt.exceptions import (
    GwttError,
    HandoffCanceledError,
    InvalidTransferTargetError,
    ModeError,
    TransferBlockedError,
    TransferConflictError,
    WorktreeNotFoundError,
)
from gwtt.worktree.codex import (
    CODEX_HOME_DISPLAY,
    codex_home_dir,
    codex_worktrees_root,
    resolve_codex_worktree_path,
)
from gwtt.worktree.git import GitRunner, current_branch, repo_root

from .executor import transfer_changes
from .path_mask import DISABLED, PathMaskContext
from .planner import conflict_reasons, render_dry_run_plan
from .preflight import collect_preflight
from .types import HandoffMode, TransferDirection, TransferPlan, TransferPreflight, TransferResult

logger = logging.getLogger(__name__)

LOCAL_CHECKOUT_NAME = "local checkout"
CODEX_WORKTREE_NAME = "Codex worktree"

Echo = Callable[[str], None]
Confirm = Callable[[str], bool]


@dataclass(slots=True)
class HandoffOptions:
    """Per-invocation switches of a handoff command."""

    to: str = TransferDirection.LOCAL.value
    dry_run: bool = False
    yes: bool = False


def resolve_transfer_plan(repo_root: Path, worktree_path: Path, to: str) -> TransferPlan:
    """Pick source and destination for ``to`` (``local`` or ``worktree``)."""
    try:
        direction = TransferDirection(to.strip())
    except ValueError:
        raise InvalidTransferTargetError(
            f"invalid --to value {to!r} (expected local or worktree)"
        ) from None

    if direction is TransferDirection.LOCAL:
        return TransferPlan(
            to=direction,
            source_root=worktree_path,
            source_name=CODEX_WORKTREE_NAME,
            destination_root=repo_root,
            destination_name=LOCAL_CHECKOUT_NAME,
        )
    return TransferPlan(
        to=direction,
        source_root=repo_root,
        source_name=LOCAL_CHECKOUT_NAME,
        destination_root=worktree_path,
        destination_name=CODEX_WORKTREE_NAME,
    )


def resolve_codex_handoff_plan(
    runner: GitRunner,
    worktrees_root: Path,
    opaque_id: str,
    to: str,
    *,
    cwd: Path | None = None,
) -> TransferPlan:
    """
    Locate the Codex worktree for ``opaque_id`` and build the transfer plan.

    Raises:
        GwttError: ``opaque_id`` is blank.
        NotARepositoryError: Not running inside a repository.
        WorktreeNotFoundError: No registered worktree carries that id.
        InvalidTransferTargetError: ``to`` is not a known direction.
    """
    if not opaque_id.strip():
        raise GwttError("task query cannot be empty")

    root = repo_root(runner, cwd)
    branch = current_branch(runner, cwd)
    logger.debug("repository %s on %s", root, branch)

    worktree_path = resolve_codex_worktree_path(runner, root, worktrees_root, opaque_id)
    if worktree_path is None:
        raise WorktreeNotFoundError(
            f"no Codex worktree found for {opaque_id!r} under {CODEX_HOME_DISPLAY}/worktrees"
        )
    return resolve_transfer_plan(root, worktree_path, to)


def report_blocked(echo: Echo, reasons: list[str], to: TransferDirection, opaque_id: str) -> None:
    echo("apply blocked (non-destructive mode):")
    for reason in reasons:
        echo(f"- {reason}")
    echo(f"next step: gwtt overwrite --to {to.value} {opaque_id}")
    echo("add --yes to skip overwrite confirmation prompts")


def confirm_overwrite(confirm: Confirm, plan: TransferPlan) -> None:
    """Ask both overwrite questions; any refusal cancels the handoff."""
    if not confirm(f"Overwrite the {plan.destination_name} from the {plan.source_name}?"):
        raise HandoffCanceledError()
    if not confirm(f"This will discard {plan.destination_name} changes. Continue?"):
        raise HandoffCanceledError()


def run_handoff(
    runner: GitRunner,
    opaque_id: str,
    options: HandoffOptions,
    mode: HandoffMode,
    *,
    codex_mode: bool,
    echo: Echo,
    confirm: Confirm,
    mask: PathMaskContext = DISABLED,
    worktrees_root: Path | None = None,
    cwd: Path | None = None,
) -> TransferResult:
    """
    Move uncommitted work between the local checkout and a Codex worktree.

    Apply mode refuses to touch a dirty or overlapping destination and points the
    operator at overwrite instead. Overwrite mode asks twice before discarding
    the destination unless ``options.yes`` is set. Dry runs print the plan and
    the individual steps without changing either checkout.

    Raises:
        ModeError: Not running in codex mode.
        TransferBlockedError: Apply mode found conflicts.
        HandoffCanceledError: A confirmation prompt was declined.
    """
    if not codex_mode:
        raise ModeError(f"{mode.value} is only supported in --mode=codex")

    if worktrees_root is None:
        worktrees_root = codex_worktrees_root(codex_home_dir())

    plan = resolve_codex_handoff_plan(runner, worktrees_root, opaque_id, options.to, cwd=cwd)

    preflight = TransferPreflight()
    if options.dry_run or mode is HandoffMode.APPLY:
        preflight = collect_preflight(
            runner,
            plan.source_root,
            plan.destination_root,
            include_detail=options.dry_run,
        )

    if options.dry_run:
        echo(render_dry_run_plan(mode, plan, preflight, mask).rstrip("\n"))

    if mode is HandoffMode.APPLY:
        reasons = conflict_reasons(preflight, plan.destination_name)
        if reasons:
            report_blocked(echo, reasons, plan.to, opaque_id)
            raise TransferBlockedError(reasons)

    if mode is HandoffMode.OVERWRITE and not options.dry_run and not options.yes:
        confirm_overwrite(confirm, plan)

    try:
        result = transfer_changes(
            runner,
            plan.source_root,
            plan.destination_root,
            dry_run=options.dry_run,
            reset_destination=mode.destructive,
            mask=mask,
            emit=echo,
        )
    except TransferConflictError as exc:
        if mode is not HandoffMode.APPLY:
            raise
        report_blocked(echo, [exc.reason], plan.to, opaque_id)
        raise TransferBlockedError([exc.reason]) from exc

    echo(f"{mode.value} complete")
    return result
