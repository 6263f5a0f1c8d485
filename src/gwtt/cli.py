from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import typer

from gwtt.config import GwttConfig, Mode, load_config, normalize_mode
from gwtt.exceptions import ErrorKind, GwttError, HandoffCanceledError
from gwtt.transfer.handoff import HandoffOptions, run_handoff
from gwtt.transfer.path_mask import PathMaskContext, resolve_path_mask_context
from gwtt.transfer.types import HandoffMode, TransferDirection
from gwtt.worktree.git import ExecRunner, GitRunner

app = typer.Typer(
    no_args_is_help=True,
    help="Move uncommitted work between the local checkout and Codex worktrees.",
)

EXIT_ERROR = 1
EXIT_CANCELED = 3
EXIT_BLOCKED = 4

WARNING_FORMAT = "warning: %(message)s"
VERBOSE_FORMAT = "%(levelname)s %(name)s: %(message)s"


@dataclass(slots=True)
class CLIState:
    config: GwttConfig
    mask: PathMaskContext
    runner: GitRunner


class EchoHandler(logging.Handler):
    """Logging handler writing through typer so output follows the active stderr."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            typer.echo(self.format(record), err=True)
        except Exception:
            self.handleError(record)


def configure_logging(verbose: bool) -> None:
    logger = logging.getLogger("gwtt")
    handler = next((h for h in logger.handlers if isinstance(h, EchoHandler)), None)
    if handler is None:
        handler = EchoHandler()
        logger.addHandler(handler)
    handler.setFormatter(logging.Formatter(VERBOSE_FORMAT if verbose else WARNING_FORMAT))
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def exit_code_for(exc: GwttError) -> int:
    if exc.kind is ErrorKind.CANCELED:
        return EXIT_CANCELED
    if exc.kind is ErrorKind.BLOCKED:
        return EXIT_BLOCKED
    return EXIT_ERROR


def prompt_confirm(message: str) -> bool:
    """Ask ``message``; only an explicit ``yes`` confirms."""
    try:
        answer = typer.prompt(
            f"{message} Type 'yes' to confirm:", default="", show_default=False
        )
    except typer.Abort:
        return False
    return answer.strip().lower() == "yes"


@app.callback()
def main(
    ctx: typer.Context,
    mode: Optional[str] = typer.Option(
        None, "--mode", help="Worktree mode: classic or codex (overrides config)."
    ),
    mask_sensitive_paths: bool = typer.Option(
        False, "--mask-sensitive-paths", help="Mask home paths in dry-run output."
    ),
    no_mask_sensitive_paths: bool = typer.Option(
        False, "--no-mask-sensitive-paths", help="Show home paths verbatim in dry-run output."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", min=0.0, help="Kill any git command running longer than this (seconds)."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every git invocation."),
) -> None:
    """gwtt: hand work off between a local checkout and its Codex worktrees."""
    configure_logging(verbose)

    if mask_sensitive_paths and no_mask_sensitive_paths:
        raise typer.BadParameter(
            "cannot use both --mask-sensitive-paths and --no-mask-sensitive-paths"
        )

    try:
        config = load_config()
    except GwttError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(EXIT_ERROR) from exc

    if mode is not None:
        try:
            selected = Mode(normalize_mode(mode))
        except ValueError:
            raise typer.BadParameter(
                f"invalid --mode value {mode!r} (expected classic or codex)"
            ) from None
        config = config.model_copy(update={"mode": selected})

    mask_enabled = config.dry_run.mask_sensitive_paths
    if mask_sensitive_paths:
        mask_enabled = True
    elif no_mask_sensitive_paths:
        mask_enabled = False

    ctx.obj = CLIState(
        config=config,
        mask=resolve_path_mask_context(mask_enabled),
        runner=ExecRunner(timeout=timeout or None),
    )


def _handoff(ctx: typer.Context, task: str, options: HandoffOptions, mode: HandoffMode) -> None:
    state: CLIState = ctx.obj
    if not options.yes:
        options.yes = not state.config.cleanup.confirm

    try:
        run_handoff(
            state.runner,
            task.strip(),
            options,
            mode,
            codex_mode=state.config.mode is Mode.CODEX,
            echo=typer.echo,
            confirm=prompt_confirm,
            mask=state.mask,
        )
    except KeyboardInterrupt:
        exc = HandoffCanceledError()
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(EXIT_CANCELED) from None
    except GwttError as exc:
        if exc.kind is not ErrorKind.BLOCKED:
            typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(exit_code_for(exc)) from exc


@app.command("apply")
def apply_command(
    ctx: typer.Context,
    task: str = typer.Argument(..., help="Codex worktree id"),
    to: str = typer.Option(
        TransferDirection.LOCAL.value, "--to", help="Transfer destination: local or worktree."
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show git commands without executing."),
    yes: bool = typer.Option(False, "--yes", help="Skip confirmation prompts."),
    force: bool = typer.Option(False, "--force", help="Compatibility alias for overwrite behavior."),
) -> None:
    """Apply changes without discarding anything in the destination."""
    mode = HandoffMode.OVERWRITE if force else HandoffMode.APPLY
    _handoff(ctx, task, HandoffOptions(to=to, dry_run=dry_run, yes=yes), mode)


@app.command("overwrite")
def overwrite_command(
    ctx: typer.Context,
    task: str = typer.Argument(..., help="Codex worktree id"),
    to: str = typer.Option(
        TransferDirection.LOCAL.value, "--to", help="Transfer destination: local or worktree."
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show git commands without executing."),
    yes: bool = typer.Option(False, "--yes", help="Skip confirmation prompts."),
) -> None:
    """Reset the destination, then replay the source's changes onto it."""
    _handoff(ctx, task, HandoffOptions(to=to, dry_run=dry_run, yes=yes), HandoffMode.OVERWRITE)


if __name__ == "__main__":
    app()
