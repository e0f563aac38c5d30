"""The single I/O boundary to the git binary."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Protocol

from .constants import PROGRAM_NAME
from .errors import ErrorCode, GitCommandError, GitUndoError

logger = logging.getLogger(__name__)


class GitExec(Protocol):
    """Capability handed to strategies: run git for effect or for its output."""

    def run(self, subcommand: str, *args: str) -> None: ...

    def output(self, subcommand: str, *args: str) -> str: ...


class GitInspector:
    """Runs git sub-commands inside one working directory."""

    def __init__(self, repo_dir: str | Path = ".") -> None:
        self.repo_dir = Path(repo_dir)

    def run(self, subcommand: str, *args: str) -> None:
        """Run `git <subcommand> <args>`; raise GitCommandError on non-zero exit."""
        completed = self._invoke(subcommand, args)
        if completed.stdout.strip():
            logger.debug("git %s: %s", subcommand, completed.stdout.strip())

    def output(self, subcommand: str, *args: str) -> str:
        """Run `git <subcommand> <args>` and return its stripped stdout."""
        return self._invoke(subcommand, args).stdout.strip()

    def _invoke(self, subcommand: str, args: tuple[str, ...]) -> subprocess.CompletedProcess[str]:
        argv = [PROGRAM_NAME, subcommand, *args]
        try:
            completed = subprocess.run(
                argv,
                cwd=self.repo_dir,
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as exc:
            raise GitCommandError(subcommand, args, 127, "git executable not found") from exc
        if completed.returncode != 0:
            raise GitCommandError(subcommand, args, completed.returncode, completed.stderr)
        return completed


def succeeds(git: GitExec, subcommand: str, *args: str) -> bool:
    """Return whether a git invocation exits zero."""
    try:
        git.run(subcommand, *args)
    except GitCommandError:
        return False
    return True


def output_or_empty(git: GitExec, subcommand: str, *args: str) -> str:
    try:
        return git.output(subcommand, *args)
    except GitCommandError:
        return ""


def current_ref(git: GitExec) -> str:
    """Return the current branch, else an exact tag, else the short HEAD hash."""
    for args in (
        ("symbolic-ref", "--short", "HEAD"),
        ("describe", "--tags", "--exact-match"),
        ("rev-parse", "--short", "HEAD"),
    ):
        ref = output_or_empty(git, *args)
        if ref:
            return ref
    raise GitUndoError(
        ErrorCode.STATE_INCONSISTENCY,
        "Failed to resolve the current ref",
        "Check that HEAD points at a branch or commit.",
    )


def repo_git_dir(git: GitExec, repo_dir: str | Path = ".") -> Path:
    """Return the absolute path of the repository's git directory."""
    try:
        git_dir = Path(git.output("rev-parse", "--absolute-git-dir"))
    except GitCommandError as exc:
        raise GitUndoError(
            ErrorCode.NOT_A_REPOSITORY,
            "Not in a git repository",
            "Run the command inside a git working tree.",
            {"directory": str(repo_dir)},
        ) from exc
    if not git_dir.is_absolute():
        git_dir = Path(repo_dir).resolve() / git_dir
    return git_dir
