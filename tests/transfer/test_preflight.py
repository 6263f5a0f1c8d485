from __future__ import annotations

from pathlib import Path

import pytest
from conftest import FakeRunner

from gwtt.exceptions import GitCommandError
from gwtt.transfer.planner import conflict_reasons, detect_apply_conflicts
from gwtt.transfer.preflight import collect_preflight, intersect_count, modified_files
from gwtt.transfer.types import TransferPreflight

SRC = Path("/work/src")
DST = Path("/work/dst")


def _script(
    runner: FakeRunner,
    root: Path,
    *,
    status: bytes = b"",
    diff_names: bytes = b"",
    untracked: bytes = b"",
    patch: bytes = b"",
) -> None:
    runner.on("-C", str(root), "status", "--porcelain", stdout=status)
    runner.on("-C", str(root), "diff", "--name-only", "-z", "HEAD", stdout=diff_names)
    runner.on("-C", str(root), "ls-files", "-z", "--others", "--exclude-standard", stdout=untracked)
    runner.on("-C", str(root), "diff", "--binary", "HEAD", stdout=patch)


def test_modified_files_unions_tracked_and_untracked(fake_runner: FakeRunner) -> None:
    _script(fake_runner, SRC, diff_names=b"a.txt\0shared.txt\0", untracked=b"new.txt\0")
    assert modified_files(fake_runner, SRC) == {"a.txt", "shared.txt", "new.txt"}


def test_modified_files_keep_unusual_names_verbatim(fake_runner: FakeRunner) -> None:
    _script(fake_runner, SRC, diff_names=b" padded.txt \0", untracked=b"caf\xc3\xa9.txt\0")
    assert modified_files(fake_runner, SRC) == {" padded.txt ", "café.txt"}


def test_intersect_count() -> None:
    assert intersect_count(set(), {"a"}) == 0
    assert intersect_count({"a", "b", "c"}, {"b", "c", "d"}) == 2


def test_disjoint_changes_produce_no_reasons(fake_runner: FakeRunner) -> None:
    _script(fake_runner, SRC, diff_names=b"a.txt\0", untracked=b"b.txt\0")
    _script(fake_runner, DST)

    preflight = collect_preflight(fake_runner, SRC, DST)

    assert preflight == TransferPreflight()
    assert conflict_reasons(preflight, "local checkout") == []


def test_dirty_overlapping_destination_lists_reasons_in_order(fake_runner: FakeRunner) -> None:
    _script(fake_runner, SRC, diff_names=b"shared.txt\0other.txt\0")
    _script(
        fake_runner,
        DST,
        status=b" M shared.txt\n M other.txt\n",
        diff_names=b"shared.txt\0other.txt\0",
    )

    reasons = detect_apply_conflicts(fake_runner, DST, "local checkout", SRC)

    assert reasons == [
        "local checkout has uncommitted changes",
        "both sides modified 2 overlapping file(s)",
    ]


@pytest.mark.parametrize("overlap", [1, 3, 7])
def test_overlap_reason_reports_exact_count(overlap: int) -> None:
    preflight = TransferPreflight(overlapping_files=overlap)
    assert conflict_reasons(preflight, "Codex worktree") == [
        f"both sides modified {overlap} overlapping file(s)"
    ]


def test_detail_is_collected_only_on_request(fake_runner: FakeRunner) -> None:
    _script(fake_runner, SRC, untracked=b"b.txt\0c.txt\0", patch=b"diff --git a/a.txt b/a.txt\n")
    _script(fake_runner, DST)

    plain = collect_preflight(fake_runner, SRC, DST)
    assert plain.tracked_patch is False
    assert plain.untracked_files == ()
    assert "-C /work/src diff --binary HEAD" not in fake_runner.commands()

    detailed = collect_preflight(fake_runner, SRC, DST, include_detail=True)
    assert detailed.tracked_patch is True
    assert detailed.untracked_files == ("b.txt", "c.txt")


def test_preflight_propagates_git_failure(fake_runner: FakeRunner) -> None:
    fake_runner.fail("-C", str(DST), "status", "--porcelain", stderr=b"fatal: not a git repository")

    with pytest.raises(GitCommandError) as exc_info:
        collect_preflight(fake_runner, SRC, DST)

    assert "not a git repository" in str(exc_info.value)
