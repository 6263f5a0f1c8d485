"""
Display-only redaction of home-directory paths.

Everything here formats text shown to a human. None of these helpers may be
used to build a path or argument that is actually executed.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

POSIX_HOME_TOKEN = "$HOME"
WINDOWS_HOME_TOKEN = "%USERPROFILE%"

PATH_VALUE_FLAGS = frozenset({"-C", "--git-dir", "--work-tree"})

_WINDOWS_DRIVE_ABS = re.compile(r"^[A-Za-z]:[\\/]")
_WINDOWS_DRIVE_ROOT = re.compile(r"^[A-Za-z]:\\$")
_SHELL_SPECIAL = frozenset(" \t\n\r\v\f\"'\\$`")


@dataclass(frozen=True, slots=True)
class PathMaskContext:
    """Whether to mask, the home directory to mask, and which path convention applies."""

    enabled: bool = False
    home: str = ""
    windows: bool = False


DISABLED = PathMaskContext()


def resolve_path_mask_context(
    enabled: bool,
    *,
    home: str | None = None,
    windows: bool | None = None,
) -> PathMaskContext:
    """Build a mask context, falling back to a disabled one when no home is known."""
    if not enabled:
        return DISABLED
    if home is None:
        try:
            home = str(Path.home())
        except RuntimeError:
            return DISABLED
    if not home.strip():
        return DISABLED
    if windows is None:
        windows = os.name == "nt"
    return PathMaskContext(enabled=True, home=home, windows=windows)


def mask_home_path(path: str | os.PathLike[str], ctx: PathMaskContext) -> str:
    """Mask ``path`` according to ``ctx``; disabled contexts return it unchanged."""
    text = os.fspath(path)
    if not ctx.enabled:
        return text
    return mask_home_path_with(text, ctx.home, ctx.windows)


def mask_home_path_with(path: str, home: str, windows: bool) -> str:
    """Replace a ``home`` prefix of ``path`` by the platform's home token."""
    if not home.strip():
        return path
    normalized_path = _normalize(path, windows)
    normalized_home = _normalize(home, windows)
    if not normalized_path or not normalized_home:
        return path

    token, separator = (WINDOWS_HOME_TOKEN, "\\") if windows else (POSIX_HOME_TOKEN, "/")

    if _equals(normalized_path, normalized_home, windows):
        return token
    if not _has_prefix(normalized_path, normalized_home, windows):
        return path

    relative = _trim_leading_separators(normalized_path[len(normalized_home) :], windows)
    if not relative:
        return token
    return token + separator + relative


def looks_like_absolute_path(value: str, windows: bool) -> bool:
    if windows:
        return (
            bool(_WINDOWS_DRIVE_ABS.match(value))
            or value.startswith("\\\\")
            or value.startswith("//")
            or value.startswith("\\")
        )
    return value.startswith("/")


def mask_git_args(args: Sequence[str], ctx: PathMaskContext) -> list[str]:
    """Mask path-valued arguments of a git invocation."""
    masked: list[str] = []
    path_value = False
    for arg in args:
        if path_value or looks_like_absolute_path(arg, ctx.windows):
            masked.append(mask_home_path(arg, ctx))
        else:
            masked.append(arg)
        path_value = arg in PATH_VALUE_FLAGS
    return masked


def format_git_command(args: Sequence[str], ctx: PathMaskContext = DISABLED) -> str:
    """Render ``git <args>`` for display, masking home paths when enabled."""
    if not ctx.enabled:
        return "git " + format_args(args)
    return "git " + " ".join(_quote_masked(arg, ctx) for arg in mask_git_args(args, ctx))


def format_args(args: Iterable[str]) -> str:
    return " ".join(shell_quote(arg) for arg in args)


def shell_quote(value: str) -> str:
    """POSIX single-quote ``value`` when it contains shell-significant characters."""
    if value == "":
        return "''"
    if not any(ch in _SHELL_SPECIAL for ch in value):
        return value
    return "'" + value.replace("'", "'\\''") + "'"


def quote_posix_home_arg(value: str) -> str:
    """Double-quote a ``$HOME``-prefixed argument so the token stays expandable."""
    rest = value[len(POSIX_HOME_TOKEN) :]
    escaped = (
        rest.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("`", "\\`")
        .replace("$", "\\$")
    )
    return f'"{POSIX_HOME_TOKEN}{escaped}"'


def _quote_masked(arg: str, ctx: PathMaskContext) -> str:
    if not ctx.windows and arg.startswith(POSIX_HOME_TOKEN):
        return quote_posix_home_arg(arg)
    return shell_quote(arg)


def _normalize(path: str, windows: bool) -> str:
    normalized = path.strip()
    if not normalized:
        return ""
    if windows:
        normalized = normalized.replace("/", "\\")
        while normalized.endswith("\\") and not _WINDOWS_DRIVE_ROOT.match(normalized):
            normalized = normalized[:-1]
        return normalized
    if normalized != "/":
        normalized = normalized.rstrip("/") or "/"
    return normalized


def _equals(left: str, right: str, windows: bool) -> bool:
    if windows:
        return left.lower() == right.lower()
    return left == right


def _has_prefix(path: str, prefix: str, windows: bool) -> bool:
    separator = "\\" if windows else "/"
    if windows:
        path = path.lower()
        prefix = prefix.lower()
    if path == prefix:
        return True
    if not prefix.endswith(separator):
        prefix += separator
    return path.startswith(prefix)


def _trim_leading_separators(value: str, windows: bool) -> str:
    return value.lstrip("/\\" if windows else "/")
