"""Apply uncommitted work from one checkout onto another."""

from __future__ import annotations

import logging
import os
import shutil
import stat
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Sequence

from gwtt.exceptions import (
    FallbackSyncError,
    GitCommandError,
    GitTimeoutError,
    GwttError,
    InvalidChangeLineError,
    PatchApplyError,
    TransferConflictError,
    TransferIOError,
    UnsupportedChangeStatusError,
    UnsupportedFileTypeError,
)
from gwtt.worktree.git import GitRunner, stdout_text

from .path_mask import DISABLED, PathMaskContext, format_git_command, mask_home_path
from .planner import (
    DESTRUCTIVE_PREFIX,
    TEMP_PATCH_PLACEHOLDER,
    apply_args,
    apply_check_args,
    clean_args,
    copy_action,
    reset_args,
    symlink_action,
)
from .preflight import changeset, list_untracked
from .types import ChangeStatus, TrackedChange, TransferResult

logger = logging.getLogger(__name__)

Emit = Callable[[str], None]

TEMP_PATCH_PREFIX = "gwtt-apply-"
TEMP_PATCH_SUFFIX = ".patch"


def _discard(_: str) -> None:
    return None


def transfer_changes(
    runner: GitRunner,
    source_root: Path,
    destination_root: Path,
    *,
    dry_run: bool = False,
    reset_destination: bool = False,
    mask: PathMaskContext = DISABLED,
    emit: Emit | None = None,
) -> TransferResult:
    """
    Move the uncommitted work of ``source_root`` onto ``destination_root``.

    Steps, in order: optional reset/clean of the destination, changeset
    verification and apply, then a copy of every untracked source file. With
    ``dry_run`` every mutating step is handed to ``emit`` as a description and
    nothing is written, including the temporary patch file.

    Args:
        runner: Git runner used for every git invocation.
        source_root: Checkout providing the changes.
        destination_root: Checkout receiving the changes.
        dry_run: Describe instead of execute.
        reset_destination: Destructive mode; discard destination state first and
            fall back to per-file sync if the patch does not apply.
        mask: Redaction context for anything displayed.
        emit: Receives dry-run descriptions.

    Raises:
        TransferConflictError: Non-destructive verification failed.
        PatchApplyError: Non-destructive apply failed after verification passed.
        FallbackSyncError: Destructive apply and the per-file fallback both failed.
        GitCommandError: Any other git invocation failed.
        TransferIOError: A filesystem operation failed.
    """
    out = emit or _discard
    result = TransferResult(dry_run=dry_run)

    if reset_destination:
        _git_step(runner, reset_args(destination_root), dry_run, mask, out, destructive=True)
        _git_step(runner, clean_args(destination_root), dry_run, mask, out, destructive=True)

    patch = changeset(runner, source_root)

    if dry_run:
        if patch:
            out(format_git_command(apply_args(destination_root, TEMP_PATCH_PLACEHOLDER), mask))
            result.applied_patch = True
    else:
        with temporary_patch(patch, mask) as patch_file:
            if patch:
                result.used_fallback = _apply_patch(
                    runner,
                    source_root,
                    destination_root,
                    patch_file,
                    destructive=reset_destination,
                    mask=mask,
                )
                result.applied_patch = True

    for rel in list_untracked(runner, source_root):
        copy_file(source_root, destination_root, rel, dry_run=dry_run, emit=out, mask=mask)
        result.copied_files.append(rel)

    return result


def _git_step(
    runner: GitRunner,
    args: Sequence[str],
    dry_run: bool,
    mask: PathMaskContext,
    out: Emit,
    *,
    destructive: bool = False,
) -> None:
    if dry_run:
        prefix = DESTRUCTIVE_PREFIX if destructive else ""
        out(prefix + format_git_command(args, mask))
        return
    logger.debug("%s", format_git_command(args, mask))
    runner.run(args)


def _apply_patch(
    runner: GitRunner,
    source_root: Path,
    destination_root: Path,
    patch_file: Path,
    *,
    destructive: bool,
    mask: PathMaskContext,
) -> bool:
    """Verify, apply, and on destructive failure reconcile per file. Returns True on fallback."""
    if not destructive:
        try:
            runner.run(apply_check_args(destination_root, str(patch_file)))
        except GitCommandError as exc:
            raise TransferConflictError("apply patch check failed", exc) from exc

    apply_error = _attempt(runner, apply_args(destination_root, str(patch_file)))
    if apply_error is None:
        return False
    if not destructive:
        raise PatchApplyError(apply_error) from apply_error

    try:
        sync_tracked_changes_fallback(runner, source_root, destination_root)
    except GitTimeoutError:
        raise
    except GwttError as fallback_error:
        raise FallbackSyncError(apply_error, fallback_error) from fallback_error

    logger.warning(
        "overwrite apply patch failed; used tracked-file fallback sync for %s: %s",
        mask_home_path(destination_root, mask),
        apply_error,
    )
    return True


def _attempt(runner: GitRunner, args: Sequence[str]) -> GitCommandError | None:
    try:
        runner.run(args)
    except GitCommandError as exc:
        return exc
    return None


@contextmanager
def temporary_patch(contents: bytes, mask: PathMaskContext = DISABLED) -> Iterator[Path]:
    """Write ``contents`` to a temp file that is removed on every exit path."""
    try:
        fd, name = tempfile.mkstemp(prefix=TEMP_PATCH_PREFIX, suffix=TEMP_PATCH_SUFFIX)
    except OSError as exc:
        raise TransferIOError("create temp patch", None, None, exc) from exc
    path = Path(name)
    try:
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(contents)
        except OSError as exc:
            raise TransferIOError("write temp patch", None, str(path), exc) from exc
        yield path
    finally:
        remove_temporary_patch(path, mask)


def remove_temporary_patch(path: Path, mask: PathMaskContext = DISABLED) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        return
    except OSError as exc:
        logger.warning(
            "failed to remove temp patch %s: %s", mask_home_path(path, mask), exc
        )


# ----------------------------------------------------------------------
# Fallback reconciliation


def parse_tracked_change(fields: Sequence[str]) -> TrackedChange:
    """Build a change from one record: ``(status, path)`` or ``(status, old, new)``."""
    record = "\t".join(fields)
    if len(fields) < 2:
        raise InvalidChangeLineError(record)
    status_text = fields[0].strip()
    if not status_text:
        raise InvalidChangeLineError(record, "missing tracked change status")

    letter = status_text[0]
    try:
        status = ChangeStatus(letter)
    except ValueError:
        raise UnsupportedChangeStatusError(letter, fields[-1]) from None

    if status.has_old_path:
        if len(fields) < 3:
            raise InvalidChangeLineError(record, "invalid rename/copy tracked change line")
        return TrackedChange(status, new_path=fields[2], old_path=fields[1])
    return TrackedChange(status, new_path=fields[1])


def parse_name_status_z(payload: str) -> list[TrackedChange]:
    """
    Parse `git diff --name-status -z` output.

    Each record is a status field followed by one path, or two paths for renames
    and copies, all NUL-terminated. Paths are taken verbatim.
    """
    fields = payload.split("\0")
    if fields and fields[-1] == "":
        fields.pop()

    changes: list[TrackedChange] = []
    idx = 0
    while idx < len(fields):
        width = 3 if fields[idx][:1] in ("R", "C") else 2
        changes.append(parse_tracked_change(fields[idx : idx + width]))
        idx += width
    return changes


def list_tracked_changes(runner: GitRunner, root: Path) -> list[TrackedChange]:
    result = runner.run(["-C", str(root), "diff", "--name-status", "-z", "HEAD"])
    return parse_name_status_z(stdout_text(result))


def sync_tracked_changes_fallback(
    runner: GitRunner, source_root: Path, destination_root: Path
) -> list[TrackedChange]:
    """Reproduce the source's tracked changes by copying and deleting files."""
    changes = list_tracked_changes(runner, source_root)
    for change in changes:
        apply_tracked_change(change, source_root, destination_root)
    return changes


def apply_tracked_change(change: TrackedChange, source_root: Path, destination_root: Path) -> None:
    if change.status is ChangeStatus.DELETED:
        remove_tracked_path(destination_root, change.new_path)
    elif change.status is ChangeStatus.RENAMED:
        assert change.old_path is not None
        remove_tracked_path(destination_root, change.old_path)
        copy_file(source_root, destination_root, change.new_path)
    elif change.status in (
        ChangeStatus.ADDED,
        ChangeStatus.MODIFIED,
        ChangeStatus.TYPE_CHANGED,
        ChangeStatus.COPIED,
    ):
        # copies keep their origin in place
        copy_file(source_root, destination_root, change.new_path)
    else:
        raise UnsupportedChangeStatusError(change.status.value, change.new_path)


def remove_tracked_path(root: Path, rel: str) -> None:
    path = root / rel
    try:
        path.unlink()
    except FileNotFoundError:
        return
    except OSError as exc:
        raise TransferIOError("remove", None, str(path), exc) from exc


# ----------------------------------------------------------------------
# File copy


def copy_file(
    source_root: Path,
    destination_root: Path,
    rel: str,
    *,
    dry_run: bool = False,
    emit: Emit | None = None,
    mask: PathMaskContext = DISABLED,
) -> None:
    """Copy ``rel`` between roots, preserving mode and recreating symlinks."""
    out = emit or _discard
    source = source_root / rel
    destination = destination_root / rel

    try:
        info = source.lstat()
    except OSError as exc:
        raise TransferIOError("stat", str(source), None, exc) from exc

    if stat.S_ISLNK(info.st_mode):
        _copy_symlink(source, destination, dry_run=dry_run, out=out, mask=mask)
        return

    if not stat.S_ISREG(info.st_mode):
        raise UnsupportedFileTypeError(str(source))

    if dry_run:
        out(copy_action(source, destination, mask))
        return

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        fd, staged_name = tempfile.mkstemp(
            prefix=f".{destination.name}.", suffix=".gwtt", dir=destination.parent
        )
    except OSError as exc:
        raise TransferIOError("copy", str(source), str(destination), exc) from exc

    # the rename replaces whatever sits at the destination, symlinks included
    staged = Path(staged_name)
    try:
        os.close(fd)
        shutil.copyfile(source, staged)
        os.chmod(staged, stat.S_IMODE(info.st_mode))
        os.replace(staged, destination)
    except OSError as exc:
        staged.unlink(missing_ok=True)
        raise TransferIOError("copy", str(source), str(destination), exc) from exc


def _copy_symlink(
    source: Path,
    destination: Path,
    *,
    dry_run: bool,
    out: Emit,
    mask: PathMaskContext,
) -> None:
    try:
        target = os.readlink(source)
    except OSError as exc:
        raise TransferIOError("readlink", str(source), None, exc) from exc

    if dry_run:
        out(symlink_action(source, destination, target, mask))
        return

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        try:
            destination.unlink()
        except FileNotFoundError:
            pass
        os.symlink(target, destination)
    except OSError as exc:
        raise TransferIOError("symlink", str(source), str(destination), exc) from exc
