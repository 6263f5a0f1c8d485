"""Custom exceptions for worktree and transfer operations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from subprocess import CompletedProcess
from typing import ClassVar, Sequence


class ErrorKind(str, Enum):
    """Discriminator shared by every gwtt exception."""

    GENERIC = "generic"
    GIT_COMMAND = "git_command"
    GIT_TIMEOUT = "git_timeout"
    NOT_A_REPOSITORY = "not_a_repository"
    NO_COMMITS = "no_commits"
    NOT_FOUND = "not_found"
    INVALID_TARGET = "invalid_target"
    MODE = "mode"
    CONFIG = "config"
    CONFLICT = "conflict"
    APPLY_FAILED = "apply_failed"
    FALLBACK_FAILED = "fallback_failed"
    UNSUPPORTED_STATUS = "unsupported_status"
    INVALID_CHANGE_LINE = "invalid_change_line"
    UNSUPPORTED_FILE_TYPE = "unsupported_file_type"
    IO = "io"
    BLOCKED = "blocked"
    CANCELED = "canceled"


class GwttError(RuntimeError):
    """Base exception for gwtt failures."""

    kind: ClassVar[ErrorKind] = ErrorKind.GENERIC


class NotARepositoryError(GwttError):
    """Raised when git reports the working directory is not a repository."""

    kind = ErrorKind.NOT_A_REPOSITORY


class NoCommitsError(GwttError):
    """Raised when the repository has no commits to diff against."""

    kind = ErrorKind.NO_COMMITS


class WorktreeNotFoundError(GwttError):
    """Raised when a requested worktree cannot be located."""

    kind = ErrorKind.NOT_FOUND


class InvalidTransferTargetError(GwttError):
    """Raised when a transfer direction is not one of the supported values."""

    kind = ErrorKind.INVALID_TARGET


class ModeError(GwttError):
    """Raised when a command is used outside its supported mode."""

    kind = ErrorKind.MODE


class ConfigError(GwttError):
    """Raised when configuration files or environment values are invalid."""

    kind = ErrorKind.CONFIG


def _decode(payload: bytes | str | None) -> str:
    if payload is None:
        return ""
    if isinstance(payload, str):
        return payload.strip()
    return payload.decode("utf-8", errors="replace").strip()


@dataclass(slots=True)
class GitCommandError(GwttError):
    """Raised when an underlying Git command fails."""

    kind: ClassVar[ErrorKind] = ErrorKind.GIT_COMMAND

    argv: Sequence[str]
    result: CompletedProcess[bytes]

    @property
    def stderr(self) -> str:
        return _decode(self.result.stderr)

    @property
    def stdout(self) -> str:
        return _decode(self.result.stdout)

    def __str__(self) -> str:
        details = self.stderr or self.stdout
        suffix = f": {details}" if details else ""
        return (
            f"git command failed ({' '.join(self.argv)}; exit {self.result.returncode}){suffix}"
        )


@dataclass(slots=True)
class GitTimeoutError(GwttError):
    """Raised when a Git command exceeds its deadline and is killed."""

    kind: ClassVar[ErrorKind] = ErrorKind.GIT_TIMEOUT

    argv: Sequence[str]
    timeout: float | None

    def __str__(self) -> str:
        return f"git command canceled after {self.timeout}s ({' '.join(self.argv)})"


@dataclass(slots=True)
class TransferConflictError(GwttError):
    """Raised when the changeset does not apply cleanly to a non-destructive destination."""

    kind: ClassVar[ErrorKind] = ErrorKind.CONFLICT

    reason: str
    cause: BaseException | None = None

    def __str__(self) -> str:
        if self.cause is None:
            return self.reason
        return f"{self.reason}: {self.cause}"


@dataclass(slots=True)
class PatchApplyError(GwttError):
    """Raised when the changeset fails to apply and no fallback is permitted."""

    kind: ClassVar[ErrorKind] = ErrorKind.APPLY_FAILED

    cause: BaseException

    def __str__(self) -> str:
        return f"apply patch: {self.cause}"


@dataclass(slots=True)
class FallbackSyncError(GwttError):
    """Raised when both the changeset apply and the per-file fallback failed."""

    kind: ClassVar[ErrorKind] = ErrorKind.FALLBACK_FAILED

    apply_error: BaseException
    fallback_error: BaseException

    def __str__(self) -> str:
        return (
            f"overwrite apply patch: {self.apply_error} "
            f"(fallback sync failed: {self.fallback_error})"
        )


@dataclass(slots=True)
class UnsupportedChangeStatusError(GwttError):
    """Raised when the fallback meets a change status it does not handle."""

    kind: ClassVar[ErrorKind] = ErrorKind.UNSUPPORTED_STATUS

    status: str
    path: str

    def __str__(self) -> str:
        return f"unsupported tracked change status {self.status!r} for {self.path}"


@dataclass(slots=True)
class InvalidChangeLineError(GwttError):
    """Raised when a `git diff --name-status` line cannot be parsed."""

    kind: ClassVar[ErrorKind] = ErrorKind.INVALID_CHANGE_LINE

    line: str
    detail: str = "invalid tracked change line"

    def __str__(self) -> str:
        return f"{self.detail}: {self.line!r}"


@dataclass(slots=True)
class UnsupportedFileTypeError(GwttError):
    """Raised when asked to copy something that is neither a file nor a symlink."""

    kind: ClassVar[ErrorKind] = ErrorKind.UNSUPPORTED_FILE_TYPE

    path: str

    def __str__(self) -> str:
        return f"unsupported file type for copy: {self.path}"


@dataclass(slots=True)
class TransferIOError(GwttError):
    """Raised when a filesystem operation of a transfer fails."""

    kind: ClassVar[ErrorKind] = ErrorKind.IO

    operation: str
    source: str | None
    destination: str | None
    cause: OSError

    def __str__(self) -> str:
        parts = [self.operation]
        if self.source:
            parts.append(self.source)
        if self.destination:
            parts.append(f"-> {self.destination}")
        return f"{' '.join(parts)}: {self.cause}"


@dataclass(slots=True)
class TransferBlockedError(GwttError):
    """Raised when a non-destructive transfer stops because of conflicts."""

    kind: ClassVar[ErrorKind] = ErrorKind.BLOCKED

    reasons: Sequence[str]

    def __str__(self) -> str:
        return "apply blocked: " + "; ".join(self.reasons)


class HandoffCanceledError(GwttError):
    """Raised when the operator declines a confirmation prompt."""

    kind = ErrorKind.CANCELED

    def __init__(self, message: str = "git worktree task process canceled") -> None:
        super().__init__(message)
