"""
Layered gwtt configuration.

Values are resolved from, lowest to highest precedence: built-in defaults, the
user config file, the project config file, ``GWTT_*`` environment variables.
Command-line flags are applied on top by the CLI.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from gwtt.exceptions import ConfigError
from gwtt.utils import find_project_root

logger = logging.getLogger(__name__)

USER_CONFIG_PATH = Path(".config") / "gwtt" / "config.yaml"
PROJECT_CONFIG_NAMES = ("gwtt.yaml", ".gwtt.yaml")


class Mode(str, Enum):
    """How gwtt locates the worktrees it operates on."""

    CLASSIC = "classic"
    CODEX = "codex"


def normalize_mode(value: Any) -> Any:
    if isinstance(value, str):
        cleaned = value.strip().lower()
        return cleaned or Mode.CLASSIC.value
    return value


class DryRunConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    mask_sensitive_paths: bool = True


class CleanupConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    confirm: bool = True


class GwttConfig(BaseModel):
    """Resolved configuration tree."""

    model_config = ConfigDict(extra="ignore")

    mode: Mode = Mode.CLASSIC
    dry_run: DryRunConfig = Field(default_factory=DryRunConfig)
    cleanup: CleanupConfig = Field(default_factory=CleanupConfig)

    @field_validator("mode", mode="before")
    @classmethod
    def _normalize_mode(cls, value: Any) -> Any:
        return normalize_mode(value)


class EnvOverrides(BaseSettings):
    """``GWTT_*`` environment overrides; unset or empty variables are ignored."""

    model_config = SettingsConfigDict(
        env_prefix="GWTT_",
        env_ignore_empty=True,
        extra="ignore",
    )

    mode: Mode | None = Field(default=None, description="classic or codex")
    dry_run_mask_sensitive_paths: bool | None = Field(
        default=None, description="Mask home paths in dry-run output"
    )
    cleanup_confirm: bool | None = Field(
        default=None, description="Ask before destructive operations"
    )

    @field_validator("mode", mode="before")
    @classmethod
    def _normalize_mode(cls, value: Any) -> Any:
        return normalize_mode(value)

    def as_patch(self) -> dict[str, Any]:
        patch: dict[str, Any] = {}
        if self.mode is not None:
            patch["mode"] = self.mode.value
        if self.dry_run_mask_sensitive_paths is not None:
            patch["dry_run"] = {"mask_sensitive_paths": self.dry_run_mask_sensitive_paths}
        if self.cleanup_confirm is not None:
            patch["cleanup"] = {"confirm": self.cleanup_confirm}
        return patch


def project_config_root(cwd: Path | None = None) -> Path:
    """Repository root containing ``cwd``, or ``cwd`` itself outside a repository."""
    start = cwd or Path.cwd()
    try:
        return find_project_root(start)
    except RuntimeError:
        return start


def user_config_path(home: Path | None = None) -> Path | None:
    if home is None:
        try:
            home = Path.home()
        except RuntimeError:
            return None
    return home / USER_CONFIG_PATH


def project_config_path(root: Path) -> Path | None:
    for name in PROJECT_CONFIG_NAMES:
        candidate = root / name
        if candidate.is_file():
            return candidate
    return None


def read_config_file(path: Path) -> dict[str, Any]:
    """Load one YAML config file; a missing file yields an empty mapping."""
    try:
        with path.open(encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except FileNotFoundError:
        return {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"parse config {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"read config {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config {path} must contain a mapping at the top level")
    logger.debug("loaded config %s", path)
    return data


def merge_config(base: dict[str, Any], patch: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively overlay ``patch`` onto ``base`` and return ``base``."""
    for key, value in patch.items():
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            merge_config(current, value)
        elif isinstance(value, Mapping):
            base[key] = merge_config({}, value)
        else:
            base[key] = value
    return base


def load_config(cwd: Path | None = None, home: Path | None = None) -> GwttConfig:
    """
    Resolve the effective configuration.

    Args:
        cwd: Directory used to locate the project config. Defaults to the process cwd.
        home: Home directory holding the user config. Defaults to ``Path.home()``.

    Raises:
        ConfigError: A file could not be parsed or a value failed validation.
    """
    data: dict[str, Any] = {}

    user_path = user_config_path(home)
    if user_path is not None:
        merge_config(data, read_config_file(user_path))

    project_path = project_config_path(project_config_root(cwd))
    if project_path is not None:
        merge_config(data, read_config_file(project_path))

    try:
        env = EnvOverrides()
    except ValidationError as exc:
        raise ConfigError(f"invalid GWTT_* environment value: {exc}") from exc
    merge_config(data, env.as_patch())

    try:
        return GwttConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"invalid configuration: {exc}") from exc
