from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from git_undo.engine import UndoEngine
from git_undo.errors import GitCommandError
from git_undo.runtime import RuntimeSettings
from git_undo.strategies import git_command

HEAD_HASH = "1111111111111111111111111111111111111111"
PARENT_HASH = "0000000000000000000000000000000000000000"


class FakeGit:
    """Scriptable stand-in for GitInspector.

    `rev-parse` resolves only names listed in `refs`; every other unscripted
    call succeeds with empty output. Explicit responses win over both rules.
    """

    def __init__(self, git_dir: Path | None = None, branch: str | None = "main", refs: dict | None = None) -> None:
        self.git_dir = git_dir
        self.branch = branch
        self.refs = dict(refs or {})
        self.responses: dict[tuple[str, ...], str | GitCommandError] = {}
        self.calls: list[tuple[str, ...]] = []
        self.executed: list[str] = []

    def script(self, *argv: str, output: str = "") -> None:
        self.responses[argv] = output

    def fail(self, *argv: str, stderr: str = "fatal: scripted failure") -> None:
        self.responses[argv] = GitCommandError(argv[0], argv[1:], 1, stderr)

    def run(self, subcommand: str, *args: str) -> None:
        self.executed.append(git_command(subcommand, *args))
        self._respond(subcommand, args)

    def output(self, subcommand: str, *args: str) -> str:
        return self._respond(subcommand, args)

    def _respond(self, subcommand: str, args: tuple[str, ...]) -> str:
        key = (subcommand, *args)
        self.calls.append(key)
        if key in self.responses:
            response = self.responses[key]
            if isinstance(response, GitCommandError):
                raise response
            return response
        if subcommand == "symbolic-ref":
            if self.branch:
                return self.branch
            raise GitCommandError(subcommand, args, 128, "fatal: ref HEAD is not a symbolic ref")
        if subcommand == "rev-parse":
            if args == ("--absolute-git-dir",):
                if self.git_dir is None:
                    raise GitCommandError(subcommand, args, 128, "fatal: not a git repository")
                return str(self.git_dir)
            if args and args[-1] in self.refs:
                return self.refs[args[-1]]
            raise GitCommandError(subcommand, args, 128, "fatal: unknown revision")
        return ""


class TickingClock:
    """Returns a new second on every call so log lines never collide."""

    def __init__(self, start: datetime = datetime(2024, 5, 1, 9, 30, 0)) -> None:
        self.current = start

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture()
def fake_git(tmp_path: Path) -> FakeGit:
    git_dir = tmp_path / ".git"
    git_dir.mkdir()
    return FakeGit(git_dir=git_dir, refs={"HEAD": HEAD_HASH, "HEAD^": PARENT_HASH, "HEAD~1": PARENT_HASH})


@pytest.fixture()
def engine(tmp_path: Path, fake_git: FakeGit) -> UndoEngine:
    return UndoEngine(repo_dir=tmp_path, git=fake_git, settings=RuntimeSettings(), clock=TickingClock())
