"""Pytest configuration helpers."""

from __future__ import annotations

import os
import shutil
import subprocess
from pathlib import Path
from typing import Callable, Iterator, Mapping, Sequence

import pytest

from gwtt.exceptions import GitCommandError

PATCH_PLACEHOLDER = "<patch>"


def completed(
    args: Sequence[str], returncode: int = 0, stdout: bytes = b"", stderr: bytes = b""
) -> subprocess.CompletedProcess[bytes]:
    return subprocess.CompletedProcess(["git", *args], returncode, stdout, stderr)


class FakeRunner:
    """Scripted git runner recording every invocation.

    Responses are keyed by the argument tuple. Temporary patch paths are keyed
    as ``<patch>`` so tests do not need to know the generated file name.
    Unscripted commands succeed with empty output.
    """

    def __init__(self, responses: Mapping[tuple[str, ...], object] | None = None) -> None:
        self.responses: dict[tuple[str, ...], object] = dict(responses or {})
        self.calls: list[list[str]] = []
        self.patch_contents: list[bytes] = []

    def on(self, *args: str, stdout: bytes = b"", returncode: int = 0, stderr: bytes = b"") -> None:
        self.responses[tuple(args)] = completed(args, returncode, stdout, stderr)

    def fail(self, *args: str, stderr: bytes = b"boom") -> None:
        self.on(*args, returncode=1, stderr=stderr)

    def run(
        self, args: Sequence[str], *, check: bool = True
    ) -> subprocess.CompletedProcess[bytes]:
        argv = list(args)
        self.calls.append(argv)
        key = tuple(self._normalize(arg) for arg in argv)
        response = self.responses.get(key, b"")

        if isinstance(response, BaseException):
            raise response
        if isinstance(response, bytes):
            return completed(argv, stdout=response)

        assert isinstance(response, subprocess.CompletedProcess)
        if check and response.returncode != 0:
            raise GitCommandError(["git", *argv], response)
        return response

    def _normalize(self, arg: str) -> str:
        if _is_temp_patch(arg):
            if os.path.exists(arg):
                self.patch_contents.append(Path(arg).read_bytes())
            return PATCH_PLACEHOLDER
        return arg

    def commands(self) -> list[str]:
        return [
            " ".join(PATCH_PLACEHOLDER if _is_temp_patch(a) else a for a in call)
            for call in self.calls
        ]


def _is_temp_patch(arg: str) -> bool:
    name = os.path.basename(arg)
    return name.startswith("gwtt-apply-") and name.endswith(".patch")


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture(autouse=True)
def isolated_environment(
    tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch
) -> Path:
    """Point HOME and CODEX_HOME at scratch directories and drop GWTT_* overrides."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("CODEX_HOME", str(home / ".codex"))
    for key in list(os.environ):
        if key.startswith("GWTT_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("GIT_AUTHOR_NAME", "gwtt tests")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "tests@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "gwtt tests")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "tests@example.com")
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    return home


requires_git = pytest.mark.skipif(
    shutil.which("git") is None, reason="git executable not available"
)


def git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args], cwd=cwd, capture_output=True, text=True, check=True
    )
    return result.stdout


@pytest.fixture
def make_repo(tmp_path: Path) -> Iterator[Callable[..., Path]]:
    """Factory for a committed repository with the given files."""

    def _make(name: str = "repo", files: Mapping[str, str] | None = None) -> Path:
        root = tmp_path / name
        root.mkdir()
        git(root, "init", "-q", "-b", "main")
        for rel, content in (files or {"README.md": "hello\n"}).items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        git(root, "add", "-A")
        git(root, "commit", "-q", "-m", "initial")
        return root

    yield _make
