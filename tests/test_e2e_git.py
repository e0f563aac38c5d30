from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from git_undo.engine import UndoEngine
from git_undo.runtime import RuntimeSettings

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git executable not available")


def _git(repo: Path, *args: str) -> str:
    completed = subprocess.run(
        ["git", *args],
        cwd=repo,
        capture_output=True,
        text=True,
        check=True,
    )
    return completed.stdout.strip()


@pytest.fixture()
def repo(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    for prefix in ("GIT_AUTHOR", "GIT_COMMITTER"):
        monkeypatch.setenv(f"{prefix}_NAME", "Test User")
        monkeypatch.setenv(f"{prefix}_EMAIL", "test@example.invalid")

    repo_dir = tmp_path / "repo"
    repo_dir.mkdir()
    _git(repo_dir, "init", "-q")
    _git(repo_dir, "symbolic-ref", "HEAD", "refs/heads/main")
    (repo_dir / "readme.txt").write_text("hello\n", encoding="utf-8")
    _git(repo_dir, "add", "readme.txt")
    _git(repo_dir, "commit", "-q", "-m", "initial")
    return repo_dir


@pytest.fixture()
def engine(repo: Path) -> UndoEngine:
    return UndoEngine(repo_dir=repo, settings=RuntimeSettings())


def test_commit_undo_and_redo(repo: Path, engine: UndoEngine) -> None:
    initial = _git(repo, "rev-parse", "HEAD")
    (repo / "readme.txt").write_text("hello\nworld\n", encoding="utf-8")
    _git(repo, "add", "readme.txt")
    _git(repo, "commit", "-q", "-m", "second")
    engine.log_command('git commit -m "second"')

    engine.undo()

    assert _git(repo, "rev-parse", "HEAD") == initial
    assert _git(repo, "diff", "--cached", "--name-only") == "readme.txt"

    engine.redo()

    assert _git(repo, "log", "-1", "--format=%s") == "second"
    assert _git(repo, "rev-parse", "HEAD~1") == initial
    assert _git(repo, "diff", "--cached", "--name-only") == ""


def test_add_undo_unstages_files(repo: Path, engine: UndoEngine) -> None:
    for name in ("a.txt", "b.txt"):
        (repo / name).write_text(name, encoding="utf-8")
    _git(repo, "add", "a.txt", "b.txt")
    engine.log_command("git add a.txt b.txt")

    engine.undo()

    assert _git(repo, "diff", "--cached", "--name-only") == ""
    assert (repo / "a.txt").exists()


def test_checkout_create_undo_removes_branch(repo: Path, engine: UndoEngine) -> None:
    _git(repo, "checkout", "-q", "-b", "feature")
    engine.log_command("git checkout -b feature")

    engine.undo()

    assert _git(repo, "symbolic-ref", "--short", "HEAD") == "main"
    assert _git(repo, "branch", "--list", "feature") == ""


def test_back_alternates_branches(repo: Path, engine: UndoEngine) -> None:
    _git(repo, "branch", "feature")
    _git(repo, "checkout", "-q", "feature")
    engine.log_command("git checkout feature")

    engine.back()
    assert _git(repo, "symbolic-ref", "--short", "HEAD") == "main"

    engine.back()
    assert _git(repo, "symbolic-ref", "--short", "HEAD") == "feature"


def test_stash_undo_restores_changes(repo: Path, engine: UndoEngine) -> None:
    (repo / "readme.txt").write_text("changed\n", encoding="utf-8")
    _git(repo, "stash", "-q")
    engine.log_command("git stash")

    engine.undo()

    assert (repo / "readme.txt").read_text(encoding="utf-8") == "changed\n"
    assert _git(repo, "stash", "list") == ""


def test_log_lives_in_git_dir(repo: Path, engine: UndoEngine) -> None:
    _git(repo, "tag", "v1")
    engine.log_command("git tag v1")

    response = engine.show_log()

    assert Path(response.log_path).resolve() == (repo / ".git" / "git-undo" / "commands").resolve()
    assert response.lines[0].endswith("[main] git tag v1")


def _branch(repo: Path) -> str:
    return _git(repo, "symbolic-ref", "--short", "HEAD")


def _tracked(repo: Path) -> list[str]:
    return _git(repo, "ls-files").splitlines()


@pytest.mark.parametrize("create", [("checkout", "-b"), ("switch", "-c")])
def test_create_and_switch_round_trips(repo: Path, engine: UndoEngine, create: tuple[str, str]) -> None:
    _git(repo, *create, "feat")
    engine.log_command(f"git {create[0]} {create[1]} feat")

    engine.undo()
    assert _branch(repo) == "main"
    assert _git(repo, "branch", "--list", "feat") == ""

    response = engine.redo()
    assert response.command == f"git {create[0]} {create[1]} feat"
    assert _branch(repo) == "feat"


def test_branch_rename_of_current_branch_round_trips(repo: Path, engine: UndoEngine) -> None:
    _git(repo, "branch", "-m", "main", "trunk")
    engine.log_command("git branch -m main trunk")

    engine.undo()
    assert _branch(repo) == "main"

    engine.redo()
    assert _branch(repo) == "trunk"
    assert _git(repo, "branch", "--list", "main") == ""


def test_branch_create_round_trips(repo: Path, engine: UndoEngine) -> None:
    _git(repo, "branch", "feature")
    engine.log_command("git branch feature")

    engine.undo()
    assert _git(repo, "branch", "--list", "feature") == ""

    engine.redo()
    assert _git(repo, "branch", "--list", "feature").strip() == "feature"


def test_add_round_trips(repo: Path, engine: UndoEngine) -> None:
    (repo / "a.txt").write_text("a\n", encoding="utf-8")
    _git(repo, "add", "a.txt")
    engine.log_command("git add a.txt")

    engine.undo()
    assert _git(repo, "diff", "--cached", "--name-only") == ""

    engine.redo()
    assert _git(repo, "diff", "--cached", "--name-only") == "a.txt"


def test_tag_round_trips(repo: Path, engine: UndoEngine) -> None:
    _git(repo, "tag", "v1")
    engine.log_command("git tag v1")

    engine.undo()
    assert _git(repo, "tag", "--list") == ""

    engine.redo()
    assert _git(repo, "tag", "--list") == "v1"


def test_mv_rename_round_trips(repo: Path, engine: UndoEngine) -> None:
    _git(repo, "mv", "readme.txt", "notes.txt")
    engine.log_command("git mv readme.txt notes.txt")

    engine.undo()
    assert _tracked(repo) == ["readme.txt"]

    engine.redo()
    assert _tracked(repo) == ["notes.txt"]


def test_mv_into_existing_directory_round_trips(repo: Path, engine: UndoEngine) -> None:
    (repo / "docs").mkdir()
    (repo / "docs" / "keep.txt").write_text("keep\n", encoding="utf-8")
    (repo / "a.txt").write_text("a\n", encoding="utf-8")
    _git(repo, "add", "docs/keep.txt", "a.txt")
    _git(repo, "commit", "-q", "-m", "layout")
    _git(repo, "mv", "a.txt", "docs/")
    engine.log_command("git mv a.txt docs/")

    response = engine.undo()
    assert [command.command for command in response.undo_commands] == ["git mv docs/a.txt a.txt"]
    assert _tracked(repo) == ["a.txt", "docs/keep.txt", "readme.txt"]

    engine.redo()
    assert _tracked(repo) == ["docs/a.txt", "docs/keep.txt", "readme.txt"]


def test_rm_round_trips(repo: Path, engine: UndoEngine) -> None:
    _git(repo, "rm", "-q", "readme.txt")
    engine.log_command("git rm readme.txt")

    engine.undo()
    assert _tracked(repo) == ["readme.txt"]
    assert (repo / "readme.txt").read_text(encoding="utf-8") == "hello\n"

    engine.redo()
    assert _tracked(repo) == []
    assert not (repo / "readme.txt").exists()


def test_stash_round_trips(repo: Path, engine: UndoEngine) -> None:
    (repo / "readme.txt").write_text("changed\n", encoding="utf-8")
    _git(repo, "stash", "-q")
    engine.log_command("git stash")

    engine.undo()
    assert (repo / "readme.txt").read_text(encoding="utf-8") == "changed\n"

    engine.redo()
    assert (repo / "readme.txt").read_text(encoding="utf-8") == "hello\n"
    assert len(_git(repo, "stash", "list").splitlines()) == 1


def test_hard_reset_round_trips(repo: Path, engine: UndoEngine) -> None:
    initial = _git(repo, "rev-parse", "HEAD")
    (repo / "readme.txt").write_text("second\n", encoding="utf-8")
    _git(repo, "commit", "-q", "-am", "second")
    second = _git(repo, "rev-parse", "HEAD")
    _git(repo, "reset", "-q", "--hard", "HEAD~1")
    engine.log_command("git reset --hard HEAD~1")

    engine.undo()
    assert _git(repo, "rev-parse", "HEAD") == second
    assert (repo / "readme.txt").read_text(encoding="utf-8") == "second\n"

    engine.redo()
    assert _git(repo, "rev-parse", "HEAD") == initial
    assert (repo / "readme.txt").read_text(encoding="utf-8") == "hello\n"
