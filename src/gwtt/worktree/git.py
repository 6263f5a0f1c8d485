"""Low-level Git helpers shared by worktree and transfer operations."""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Protocol, Sequence

from gwtt.exceptions import (
    GitCommandError,
    GitTimeoutError,
    GwttError,
    NoCommitsError,
    NotARepositoryError,
)

from .types import WorktreeInfo

logger = logging.getLogger(__name__)


class GitRunner(Protocol):
    """Anything able to execute `git <args>` and return the completed process."""

    def run(
        self, args: Sequence[str], *, check: bool = True
    ) -> subprocess.CompletedProcess[bytes]: ...


def run(
    args: Sequence[str],
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    check: bool = True,
    timeout: float | None = None,
) -> subprocess.CompletedProcess[bytes]:
    """
    Execute a Git command returning the completed process.

    Args:
        args: Sequence of arguments that follow the `git` executable.
        cwd: Directory to execute the command from (defaults to the process cwd).
        env: Optional environment overrides.
        check: When True, raise :class:`GitCommandError` on non-zero exit.
        timeout: Optional deadline in seconds; the process is killed when it expires.

    Returns:
        CompletedProcess with stdout/stderr captured as bytes.
    """
    command = ["git", *args]
    merged_env = os.environ.copy()
    if env:
        merged_env.update(env)

    logger.debug("running %s", " ".join(command))
    try:
        result = subprocess.run(
            command,
            cwd=str(cwd) if cwd is not None else None,
            env=merged_env,
            capture_output=True,
            check=False,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        raise GitTimeoutError(command, timeout) from exc
    except FileNotFoundError as exc:
        raise GwttError("git executable not found on PATH") from exc

    if check and result.returncode != 0:
        raise GitCommandError(command, result)

    return result


@dataclass(slots=True)
class ExecRunner:
    """Runner that shells out to the `git` executable."""

    timeout: float | None = None
    env: Mapping[str, str] | None = None

    def run(
        self, args: Sequence[str], *, check: bool = True
    ) -> subprocess.CompletedProcess[bytes]:
        return run(args, env=self.env, check=check, timeout=self.timeout)


def stdout_text(result: subprocess.CompletedProcess[bytes]) -> str:
    """Decode stdout without trimming, so patches keep their trailing newline."""
    return (result.stdout or b"").decode("utf-8", errors="surrogateescape")


def stdout_fields(result: subprocess.CompletedProcess[bytes]) -> list[str]:
    """Split ``-z`` output on NUL, keeping path text verbatim."""
    return [field for field in stdout_text(result).split("\0") if field]


def classify_error(exc: GitCommandError) -> GwttError | None:
    """Map well-known git failures onto dedicated exceptions."""
    lower = exc.stderr.lower()
    if "not a git repository" in lower or "bad git dir" in lower:
        return NotARepositoryError("not a git repository (run inside a git repository)")
    if "unknown revision" in lower or "needed a single revision" in lower:
        return NoCommitsError("no commits yet (empty history)")
    return None


def _rev_parse(runner: GitRunner, args: Sequence[str], label: str) -> str:
    try:
        result = runner.run(args)
    except GitCommandError as exc:
        classified = classify_error(exc)
        if classified is not None:
            raise classified from exc
        raise
    value = stdout_text(result).strip()
    if not value:
        raise GwttError(f"{label}: git returned no output")
    return value


def repo_root(runner: GitRunner, cwd: Path | None = None) -> Path:
    """Return the top-level directory of the current repository."""
    args = ["rev-parse", "--show-toplevel"]
    if cwd is not None:
        args = ["-C", str(cwd), *args]
    return Path(_rev_parse(runner, args, "repo root"))


def current_branch(runner: GitRunner, cwd: Path | None = None) -> str:
    """Return the abbreviated name of HEAD (``HEAD`` when detached)."""
    args = ["rev-parse", "--abbrev-ref", "HEAD"]
    if cwd is not None:
        args = ["-C", str(cwd), *args]
    return _rev_parse(runner, args, "current branch")


def list_worktrees(runner: GitRunner, repo: Path) -> list[WorktreeInfo]:
    """List worktrees registered with the repository at ``repo``."""
    result = runner.run(["-C", str(repo), "worktree", "list", "--porcelain", "-z"])
    return parse_porcelain_z(result.stdout or b"")


def parse_porcelain_z(payload: bytes) -> list[WorktreeInfo]:
    """
    Parse `git worktree list --porcelain -z` output into structured records.

    Git emits NUL-separated key/value pairs with optional flag-only lines.
    """
    if not payload:
        return []

    items: list[WorktreeInfo] = []
    data: dict[str, object] = {}

    for raw in payload.split(b"\0"):
        if not raw:
            continue
        entry = raw.decode("utf-8", errors="surrogateescape")

        if entry.startswith("worktree "):
            if data:
                items.append(_to_info(data))
            data = {"path": Path(entry.split(" ", 1)[1])}
        elif entry == "bare":
            data["is_bare"] = True
        elif entry == "prunable" or entry.startswith("prunable "):
            data["prunable"] = True

    if data:
        items.append(_to_info(data))

    return items


def _to_info(data: Mapping[str, object]) -> WorktreeInfo:
    """Convert a parsed record into a WorktreeInfo dataclass."""
    if "path" not in data:
        raise ValueError("Missing worktree path in porcelain output")

    return WorktreeInfo(
        path=Path(data["path"]),  # type: ignore[arg-type]
        is_bare=bool(data.get("is_bare", False)),
        prunable=bool(data.get("prunable", False)),
    )
