"""Unit tests for layered configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from gwtt.config import GwttConfig, Mode, load_config, merge_config, project_config_root
from gwtt.exceptions import ConfigError


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    (root / ".git").mkdir(parents=True)
    (root / "pkg" / "sub").mkdir(parents=True)
    return root


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def test_defaults(project: Path, tmp_path: Path) -> None:
    config = load_config(cwd=project, home=tmp_path / "home")

    assert config == GwttConfig()
    assert config.mode is Mode.CLASSIC
    assert config.dry_run.mask_sensitive_paths is True
    assert config.cleanup.confirm is True


def test_project_overrides_user(project: Path, tmp_path: Path) -> None:
    home = tmp_path / "home"
    _write(
        home / ".config" / "gwtt" / "config.yaml",
        "mode: codex\ndry_run:\n  mask_sensitive_paths: false\ncleanup:\n  confirm: false\n",
    )
    _write(project / "gwtt.yaml", "cleanup:\n  confirm: true\n")

    config = load_config(cwd=project / "pkg" / "sub", home=home)

    assert config.mode is Mode.CODEX
    assert config.dry_run.mask_sensitive_paths is False
    assert config.cleanup.confirm is True


def test_hidden_project_file_is_a_fallback(project: Path, tmp_path: Path) -> None:
    _write(project / ".gwtt.yaml", "mode: codex\n")
    assert load_config(cwd=project, home=tmp_path / "home").mode is Mode.CODEX

    _write(project / "gwtt.yaml", "mode: classic\n")
    assert load_config(cwd=project, home=tmp_path / "home").mode is Mode.CLASSIC


def test_environment_overrides_files(
    project: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    _write(project / "gwtt.yaml", "mode: classic\ncleanup:\n  confirm: true\n")
    monkeypatch.setenv("GWTT_MODE", " Codex ")
    monkeypatch.setenv("GWTT_CLEANUP_CONFIRM", "false")
    monkeypatch.setenv("GWTT_DRY_RUN_MASK_SENSITIVE_PATHS", "")

    config = load_config(cwd=project, home=tmp_path / "home")

    assert config.mode is Mode.CODEX
    assert config.cleanup.confirm is False
    assert config.dry_run.mask_sensitive_paths is True


def test_invalid_environment_value(
    project: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("GWTT_MODE", "turbo")

    with pytest.raises(ConfigError, match="GWTT_"):
        load_config(cwd=project, home=tmp_path / "home")


def test_invalid_yaml_raises_config_error(project: Path, tmp_path: Path) -> None:
    _write(project / "gwtt.yaml", "mode: [unclosed\n")

    with pytest.raises(ConfigError, match="parse config"):
        load_config(cwd=project, home=tmp_path / "home")


def test_non_mapping_yaml_raises_config_error(project: Path, tmp_path: Path) -> None:
    _write(project / "gwtt.yaml", "- codex\n")

    with pytest.raises(ConfigError, match="mapping"):
        load_config(cwd=project, home=tmp_path / "home")


def test_invalid_mode_in_file(project: Path, tmp_path: Path) -> None:
    _write(project / "gwtt.yaml", "mode: sideways\n")

    with pytest.raises(ConfigError, match="invalid configuration"):
        load_config(cwd=project, home=tmp_path / "home")


def test_empty_file_and_unknown_keys_are_ignored(project: Path, tmp_path: Path) -> None:
    _write(project / "gwtt.yaml", "")
    assert load_config(cwd=project, home=tmp_path / "home") == GwttConfig()

    _write(project / "gwtt.yaml", "theme:\n  name: nord\nmode: ''\n")
    assert load_config(cwd=project, home=tmp_path / "home").mode is Mode.CLASSIC


def test_project_root_falls_back_to_cwd(tmp_path: Path) -> None:
    loose = tmp_path / "loose"
    loose.mkdir()
    assert project_config_root(loose) in {loose, *loose.resolve().parents}


def test_project_root_accepts_git_file(tmp_path: Path) -> None:
    linked = tmp_path / "linked"
    linked.mkdir()
    (linked / ".git").write_text("gitdir: /elsewhere/.git/worktrees/linked\n")
    (linked / "deep").mkdir()

    assert project_config_root(linked / "deep") == linked.resolve()


def test_merge_config_is_recursive() -> None:
    base = {"mode": "classic", "cleanup": {"confirm": True}}

    merged = merge_config(base, {"cleanup": {"confirm": False}, "dry_run": {"x": 1}})

    assert merged == {
        "mode": "classic",
        "cleanup": {"confirm": False},
        "dry_run": {"x": 1},
    }
