"""Undo strategies: one per mutating git verb, plus navigation undo for `git back`.

Each strategy receives the logged command and the git capability and returns the
ordered list of inverse commands. Refusals are raised as ``GitUndoError`` with
``UNSUPPORTED_OPERATION`` when no safe inverse exists for the verb/flags, and
``STATE_INCONSISTENCY`` when the repository does not look the way the logged
command should have left it.
"""

from __future__ import annotations

import logging
import posixpath
import shlex
from typing import ClassVar

from .constants import PROGRAM_NAME, SHORT_HASH_LENGTH
from .errors import ErrorCode, GitCommandError, GitUndoError
from .git import GitExec, output_or_empty, succeeds
from .models import CommandDetails, UndoCommand
from .parser import parse_command

logger = logging.getLogger(__name__)

STAGED_DISCARD_WARNING = "This will discard all staged changes"
UNSTAGED_DISCARD_WARNING = "This will discard all unstaged changes"
SHELL_SPECIAL = frozenset(" \t\n'\"\\$`;&|<>()*?!#")


def _quote(token: str) -> str:
    if token and not SHELL_SPECIAL.intersection(token):
        return token
    return shlex.quote(token)


def git_command(*argv: str) -> str:
    """Render a git invocation as a command string that `shlex.split` reverses."""
    return " ".join(_quote(token) for token in (PROGRAM_NAME, *argv))


def short_hash(value: str) -> str:
    return value[:SHORT_HASH_LENGTH]


def _short_flags(arg: str) -> str:
    """Return the letters of a combined short-flag token such as `-rf`."""
    if arg.startswith("-") and not arg.startswith("--") and len(arg) > 1:
        return arg[1:]
    return ""


class UndoStrategy:
    """Base class for per-verb undo algorithms."""

    verb: ClassVar[str] = ""

    def __init__(self, details: CommandDetails, git: GitExec) -> None:
        self.details = details
        self.git = git

    def check_supported(self) -> None:
        """Reject flag combinations that can never be undone, without touching git."""

    def undo_commands(self) -> list[UndoCommand]:
        self.check_supported()
        return self._build()

    def _build(self) -> list[UndoCommand]:
        raise NotImplementedError

    def _unsupported(self, message: str, suggestion: str = "") -> GitUndoError:
        return GitUndoError(
            ErrorCode.UNSUPPORTED_OPERATION,
            message,
            suggestion or None,
            {"command": self.details.full_command},
        )

    def _inconsistent(self, message: str, suggestion: str = "") -> GitUndoError:
        return GitUndoError(
            ErrorCode.STATE_INCONSISTENCY,
            message,
            suggestion or None,
            {"command": self.details.full_command},
        )

    def _require_output(self, failure: str, subcommand: str, *args: str) -> str:
        try:
            return self.git.output(subcommand, *args)
        except GitCommandError as exc:
            raise self._inconsistent(f"{failure}: {exc}") from exc

    def _head_exists(self) -> bool:
        return succeeds(self.git, "rev-parse", "-q", "--verify", "HEAD")

    def _discard_warnings(self) -> list[str]:
        warnings = []
        if output_or_empty(self.git, "diff", "--cached", "--name-only"):
            warnings.append(STAGED_DISCARD_WARNING)
        if output_or_empty(self.git, "diff", "--name-only"):
            warnings.append(UNSTAGED_DISCARD_WARNING)
        return warnings


class UnsupportedStrategy(UndoStrategy):
    """Fallback for verbs with no inverse, and for unparseable log entries."""

    def __init__(self, details: CommandDetails, git: GitExec, reason: str = "") -> None:
        super().__init__(details, git)
        self.reason = reason

    def check_supported(self) -> None:
        message = f"Undo is not supported for: {self.details.full_command}"
        if self.reason:
            message = f"{message} ({self.reason})"
        raise self._unsupported(message, "Reverse this operation manually.")


class CommitStrategy(UndoStrategy):
    verb = "commit"

    def _build(self) -> list[UndoCommand]:
        if not succeeds(self.git, "rev-parse", "-q", "--verify", "HEAD^"):
            raise self._unsupported(
                "This appears to be the initial commit and cannot be undone this way",
                "Use `git update-ref -d HEAD` to drop the initial commit and keep the index.",
            )

        if succeeds(self.git, "rev-parse", "-q", "--verify", "HEAD^2"):
            return [
                UndoCommand(
                    command=git_command("reset", "--merge", "ORIG_HEAD"),
                    description="Undo merge commit by resetting to ORIG_HEAD",
                )
            ]

        if self._was_amend():
            return [
                UndoCommand(
                    command=git_command("reset", "--soft", "HEAD@{1}"),
                    description="Undo amended commit by resetting to the previous HEAD",
                )
            ]

        warnings = []
        tags = output_or_empty(self.git, "tag", "--points-at", "HEAD").split()
        if tags:
            warnings.append(
                f"The commit being undone has the following tags: {', '.join(tags)}. "
                "These tags will now point to the parent commit."
            )
        return [
            UndoCommand(
                command=git_command("reset", "--soft", "HEAD~1"),
                description="Undo commit while keeping changes staged",
                warnings=warnings,
            )
        ]

    def _was_amend(self) -> bool:
        if self.details.has_flag("--amend"):
            return True
        return output_or_empty(self.git, "reflog", "-1", "--format=%gs").startswith("commit (amend)")


class AddStrategy(UndoStrategy):
    verb = "add"

    STAGE_ALL_FLAGS = ("-A", "--all", "--no-ignore-removal")

    def check_supported(self) -> None:
        if self.details.has_flag("-n", "--dry-run"):
            raise self._unsupported("Dry-run add did not stage anything; nothing to undo")

    def _build(self) -> list[UndoCommand]:
        files = self.details.non_flag_args()
        stage_all = self.details.has_flag(*self.STAGE_ALL_FLAGS) or not files

        if not self._head_exists():
            if stage_all:
                return [UndoCommand(command=git_command("reset"), description="Unstage all files")]
            return [
                UndoCommand(
                    command=git_command("reset", "--", *files),
                    description=f"Unstage specific files: {', '.join(files)}",
                )
            ]

        if stage_all:
            return [
                UndoCommand(
                    command=git_command("restore", "--staged", "."),
                    description="Unstage all files",
                )
            ]
        return [
            UndoCommand(
                command=git_command("restore", "--staged", *files),
                description=f"Unstage specific files: {', '.join(files)}",
            )
        ]


class BranchStrategy(UndoStrategy):
    verb = "branch"

    DELETE_FLAGS = ("-d", "-D", "--delete")
    RENAME_FLAGS = ("-m", "-M", "--move")
    COPY_FLAGS = ("-c", "-C", "--copy")
    UPSTREAM_FLAGS = ("-u", "--unset-upstream", "--edit-description")

    def check_supported(self) -> None:
        if self.details.has_flag(*self.DELETE_FLAGS):
            raise self._unsupported(
                "Undo is not supported for branch deletion",
                "Recreate the branch from `git reflog` if you still know its commit.",
            )
        if self.details.has_flag(*self.UPSTREAM_FLAGS) or any(
            arg.startswith("--set-upstream-to") for arg in self.details.args
        ):
            raise self._unsupported("Undo is not supported for upstream/description changes")
        if self.details.has_flag(*self.RENAME_FLAGS) and len(self.details.non_flag_args()) != 2:
            raise self._unsupported(
                "Undo of a branch rename requires both old and new names in the command"
            )
        if not self.details.first_non_flag_arg():
            raise self._unsupported(f"No branch name found in command: {self.details.full_command}")

    def _build(self) -> list[UndoCommand]:
        operands = self.details.non_flag_args()

        if self.details.has_flag(*self.RENAME_FLAGS):
            old_name, new_name = operands
            return [
                UndoCommand(
                    command=git_command("branch", "-m", new_name, old_name),
                    description=f"Rename branch '{new_name}' back to '{old_name}'",
                )
            ]

        branch_name = operands[-1] if self.details.has_flag(*self.COPY_FLAGS) else operands[0]
        return [
            UndoCommand(
                command=git_command("branch", "-D", branch_name),
                description=f"Delete branch '{branch_name}'",
            )
        ]


class CreateAndSwitchStrategy(UndoStrategy):
    """`checkout -b` / `switch -c`: go back to the previous ref, then delete the new branch."""

    CREATE_FLAGS: ClassVar[tuple[str, ...]] = ()
    FORCE_FLAGS: ClassVar[tuple[str, ...]] = ()
    ORPHAN_FLAG = "--orphan"

    def check_supported(self) -> None:
        if not self._created_branch()[0]:
            raise self._unsupported(
                f"`git {self.verb}` to an existing ref is a navigation",
                "Use `git back` to return to the previous ref.",
            )

    def _created_branch(self) -> tuple[str, str]:
        args = self.details.args
        for index, arg in enumerate(args):
            if arg in self.CREATE_FLAGS and index + 1 < len(args):
                return args[index + 1], arg
        return "", ""

    def _build(self) -> list[UndoCommand]:
        branch_name, flag = self._created_branch()
        switch_back = UndoCommand(
            command=git_command(self.verb, "-"),
            description="Switch back to the previous ref",
        )
        branch_exists = succeeds(self.git, "rev-parse", "-q", "--verify", f"refs/heads/{branch_name}")
        if flag == self.ORPHAN_FLAG and not branch_exists:
            return [switch_back]
        if not branch_exists:
            raise self._inconsistent(
                f"Branch '{branch_name}' does not exist, cannot undo its creation"
            )

        warnings = []
        if flag in self.FORCE_FLAGS:
            warnings.append(
                f"{self.verb} {flag} may have overwritten an existing branch that cannot be restored"
            )
        return [
            switch_back,
            UndoCommand(
                command=git_command("branch", "-D", branch_name),
                description=f"Delete branch '{branch_name}' created by {self.verb} {flag}",
                warnings=warnings,
            ),
        ]


class CheckoutStrategy(CreateAndSwitchStrategy):
    verb = "checkout"
    CREATE_FLAGS = ("-b", "-B", "--orphan")
    FORCE_FLAGS = ("-B",)


class SwitchStrategy(CreateAndSwitchStrategy):
    verb = "switch"
    CREATE_FLAGS = ("-c", "--create", "-C", "--force-create", "--orphan")
    FORCE_FLAGS = ("-C", "--force-create")


class MoveStrategy(UndoStrategy):
    verb = "mv"

    def check_supported(self) -> None:
        if self.details.has_flag("-n", "--dry-run"):
            raise self._unsupported("Dry-run mv did not move anything; nothing to undo")
        if len(self.details.non_flag_args()) < 2:
            raise self._unsupported(f"Insufficient arguments for git mv: {self.details.full_command}")

    def _build(self) -> list[UndoCommand]:
        operands = self.details.non_flag_args()

        if len(operands) == 2 and not self._moved_into_directory(*operands):
            source, dest = operands
            self._require_indexed(dest, f"Destination '{dest}' does not exist in git index, cannot undo move")
            return [
                UndoCommand(
                    command=git_command("mv", dest, source),
                    description=f"Move '{dest}' back to '{source}'",
                )
            ]

        dest_dir = operands[-1].rstrip("/")
        commands = []
        for source in operands[:-1]:
            current = posixpath.join(dest_dir, posixpath.basename(source.rstrip("/")))
            self._require_indexed(
                current,
                f"Moved file '{current}' does not exist in destination, cannot undo move",
            )
            commands.append(
                UndoCommand(
                    command=git_command("mv", current, source),
                    description=f"Move '{current}' back to '{source}'",
                )
            )
        return commands

    def _moved_into_directory(self, source: str, dest: str) -> bool:
        """Whether `git mv source dest` placed source inside an existing directory `dest`."""
        moved = posixpath.join(dest.rstrip("/"), posixpath.basename(source.rstrip("/")))
        indexed = output_or_empty(self.git, "ls-files", "--", dest).splitlines()
        return any(path == moved or path.startswith(f"{moved}/") for path in indexed)

    def _require_indexed(self, path: str, failure: str) -> None:
        if not succeeds(self.git, "ls-files", "--error-unmatch", "--", path):
            raise self._inconsistent(failure)


class TagStrategy(UndoStrategy):
    verb = "tag"

    DELETE_FLAGS = ("-d", "--delete")
    VALUE_FLAGS = ("-m", "--message", "-F", "--file", "-u", "--local-user", "--cleanup")

    def check_supported(self) -> None:
        if self.details.has_flag(*self.DELETE_FLAGS):
            raise self._unsupported(
                "Undo is not supported for tag deletion",
                "Recreate the tag manually if you still know its target.",
            )
        if not self.tag_name():
            raise self._unsupported(f"No tag name found in command: {self.details.full_command}")

    def tag_name(self) -> str:
        skip_next = False
        for arg in self.details.args:
            if skip_next:
                skip_next = False
                continue
            if arg.startswith("-") and "=" in arg:
                continue
            if arg in self.VALUE_FLAGS:
                skip_next = True
                continue
            if arg.startswith("-"):
                continue
            return arg
        return ""

    def _build(self) -> list[UndoCommand]:
        tag_name = self.tag_name()
        if not succeeds(self.git, "rev-parse", "-q", "--verify", f"refs/tags/{tag_name}"):
            raise self._inconsistent(f"Tag '{tag_name}' does not exist, cannot undo tag creation")

        warnings = []
        if self.details.has_flag("-f", "--force"):
            warnings.append(f"Tag '{tag_name}' was force-created; its previous target cannot be restored")
        return [
            UndoCommand(
                command=git_command("tag", "-d", tag_name),
                description=f"Delete tag '{tag_name}'",
                warnings=warnings,
            )
        ]


class ResetStrategy(UndoStrategy):
    verb = "reset"

    MODES = {"--soft": "soft", "--mixed": "mixed", "--hard": "hard"}
    UNSUPPORTED_MODES = ("--keep", "--merge")

    def check_supported(self) -> None:
        if self.details.has_flag(*self.UNSUPPORTED_MODES):
            raise self._unsupported("Undo is not supported for reset --keep/--merge")
        if self.details.has_flag("--", "-p", "--patch") or any(
            arg.startswith("--pathspec-from-file") for arg in self.details.args
        ):
            raise self._unsupported(
                "Undo is not supported for path-limited reset",
                "Re-stage the paths with `git add`.",
            )

    def reset_mode(self) -> str:
        """Return the mode flag of the original reset, or "" for the implicit mixed default."""
        for arg in self.details.args:
            if arg in self.MODES:
                return self.MODES[arg]
        return ""

    def _build(self) -> list[UndoCommand]:
        reflog = self._require_output(
            "Cannot access reflog to find previous state",
            "reflog", "-n", "2", "--format=%H",
        )
        lines = [line.strip() for line in reflog.splitlines() if line.strip()]
        if len(lines) < 2:
            raise self._inconsistent("Insufficient reflog history to undo reset")
        previous_head = lines[1].split()[0]
        short = short_hash(previous_head)

        mode = self.reset_mode()
        if mode == "soft":
            return [
                UndoCommand(
                    command=git_command("reset", "--soft", previous_head),
                    description=f"Reset HEAD back to {short} (preserving index and working tree)",
                )
            ]
        if mode == "hard":
            return [
                UndoCommand(
                    command=git_command("reset", "--hard", previous_head),
                    description=f"Reset HEAD, index and working tree back to {short}",
                    warnings=self._discard_warnings(),
                )
            ]
        argv = ["reset", "--mixed", previous_head] if mode == "mixed" else ["reset", previous_head]
        return [
            UndoCommand(
                command=git_command(*argv),
                description=f"Reset HEAD and index back to {short} (preserving working tree)",
            )
        ]


class SyntheticCommitStrategy(UndoStrategy):
    """Shared logic for verbs that create commits from other commits (revert, cherry-pick)."""

    NO_COMMIT_FLAGS = ("-n", "--no-commit")
    SEQUENCER_FLAGS = ("--abort", "--continue", "--skip", "--quit")
    VALUE_FLAGS = ("-m", "--mainline", "-s", "--strategy", "-X", "--strategy-option")
    IN_PROGRESS_REF = ""

    def check_supported(self) -> None:
        if self.details.has_flag(*self.SEQUENCER_FLAGS):
            raise self._unsupported(f"Undo is not supported for `git {self.verb}` sequencer control")
        if any(".." in commit for commit in self.commits()):
            raise self._unsupported(
                f"Undo is not supported for `git {self.verb}` with a commit range",
                "Reset to the commit before the range manually.",
            )

    def commits(self) -> list[str]:
        commits = []
        skip_next = False
        for arg in self.details.args:
            if skip_next:
                skip_next = False
                continue
            if arg in self.VALUE_FLAGS:
                skip_next = True
                continue
            if not arg.startswith("-"):
                commits.append(arg)
        return commits

    def _build(self) -> list[UndoCommand]:
        if self.details.has_flag(*self.NO_COMMIT_FLAGS):
            return [
                UndoCommand(
                    command=git_command("reset", "--mixed", "HEAD"),
                    description=f"Unstage {self.verb} changes",
                    warnings=[f"The {self.verb} changes remain in the working tree"],
                )
            ]

        if succeeds(self.git, "rev-parse", "-q", "--verify", self.IN_PROGRESS_REF):
            return [
                UndoCommand(
                    command=git_command(self.verb, "--abort"),
                    description=f"Abort ongoing {self.verb} operation",
                )
            ]

        current_head = self._require_output("Cannot determine current HEAD", "rev-parse", "HEAD")
        if not self._head_matches():
            raise self._inconsistent(
                f"Current HEAD does not appear to be a {self.verb} commit, cannot safely undo",
                "Inspect `git log` and reset manually.",
            )

        depth = max(1, len(self.commits()))
        parent = self._require_output("Cannot find parent commit", "rev-parse", f"HEAD~{depth}")
        return [
            UndoCommand(
                command=git_command("reset", "--hard", parent),
                description=f"Remove {self.verb} commit {short_hash(current_head)}",
                warnings=self._discard_warnings(),
            )
        ]

    def _head_matches(self) -> bool:
        raise NotImplementedError


class RevertStrategy(SyntheticCommitStrategy):
    verb = "revert"
    IN_PROGRESS_REF = "REVERT_HEAD"

    def _head_matches(self) -> bool:
        subject = output_or_empty(self.git, "log", "-1", "--format=%s", "HEAD")
        if subject.startswith("Revert"):
            return True
        return "revert" in output_or_empty(self.git, "reflog", "-1", "--format=%gs")


class CherryPickStrategy(SyntheticCommitStrategy):
    verb = "cherry-pick"
    IN_PROGRESS_REF = "CHERRY_PICK_HEAD"

    def _head_matches(self) -> bool:
        if "cherry-pick" in output_or_empty(self.git, "reflog", "-1", "--format=%gs"):
            return True
        body = output_or_empty(self.git, "log", "-1", "--format=%B", "HEAD")
        return "cherry picked from commit" in body


class RestoreStrategy(UndoStrategy):
    verb = "restore"

    def _parse(self) -> tuple[bool, bool, str, list[str]]:
        staged = worktree = False
        source = ""
        files: list[str] = []
        args = self.details.args
        index = 0
        while index < len(args):
            arg = args[index]
            if arg in ("--staged", "-S"):
                staged = True
            elif arg in ("--worktree", "-W"):
                worktree = True
            elif arg in ("--source", "-s"):
                index += 1
                source = args[index] if index < len(args) else ""
            elif arg.startswith("--source="):
                source = arg.split("=", 1)[1]
            elif arg.startswith("-s") and len(arg) > 2:
                source = arg[2:].lstrip("=")
            elif arg == "--" or arg.startswith("-"):
                pass
            else:
                files.append(arg)
            index += 1
        if not staged and not worktree:
            worktree = True
        return staged, worktree, source, files

    def check_supported(self) -> None:
        _, worktree, source, files = self._parse()
        if not files:
            raise self._unsupported(f"No files found in restore command: {self.details.full_command}")
        if source:
            raise self._unsupported(
                "Cannot undo git restore --source (previous state unknown)",
                "Recover content from `git reflog` or your editor history.",
            )
        if worktree:
            raise self._unsupported(
                "Cannot undo git restore --worktree (previous working tree state unknown)",
                "Consider `git stash` before `git restore` in the future.",
            )

    def _build(self) -> list[UndoCommand]:
        _, _, _, files = self._parse()
        return [
            UndoCommand(
                command=git_command("add", *files),
                description=f"Re-stage files: {', '.join(files)}",
            )
        ]


class RemoveStrategy(UndoStrategy):
    verb = "rm"

    def _parse(self) -> tuple[bool, bool, bool, list[str]]:
        cached = recursive = dry_run = False
        files: list[str] = []
        for arg in self.details.args:
            if arg == "--cached":
                cached = True
            elif arg in ("-r", "--recursive"):
                recursive = True
            elif arg == "--dry-run":
                dry_run = True
            elif arg.startswith("-"):
                letters = _short_flags(arg)
                recursive = recursive or "r" in letters
                dry_run = dry_run or "n" in letters
            else:
                files.append(arg)
        return cached, recursive, dry_run, files

    def check_supported(self) -> None:
        _, _, dry_run, files = self._parse()
        if dry_run:
            raise self._unsupported("Undo is not supported for dry-run rm operation")
        if not files:
            raise self._unsupported(f"No files found in rm command: {self.details.full_command}")

    def _build(self) -> list[UndoCommand]:
        cached, recursive, _, files = self._parse()
        if cached:
            return [
                UndoCommand(
                    command=git_command("add", *files),
                    description=f"Re-add files to index: {', '.join(files)}",
                )
            ]

        if not self._head_exists():
            raise self._inconsistent("Cannot undo git rm: no HEAD commit exists to restore files from")

        warnings = []
        if recursive:
            warnings.append("This was a recursive removal; all files and subdirectories will be restored")
        return [
            UndoCommand(
                command=git_command("restore", "--source=HEAD", "--staged", "--worktree", *files),
                description=f"Restore removed files: {', '.join(files)}",
                warnings=warnings,
            )
        ]


class StashStrategy(UndoStrategy):
    verb = "stash"

    CREATE_ACTIONS = ("push", "save")
    UNSUPPORTED_ACTIONS = ("pop", "apply", "drop", "clear", "branch", "list", "show", "create", "store")

    def check_supported(self) -> None:
        action = self.details.first_non_flag_arg()
        if action in self.UNSUPPORTED_ACTIONS:
            raise self._unsupported(f"Undo is not supported for stash {action}")

    def _build(self) -> list[UndoCommand]:
        if not output_or_empty(self.git, "stash", "list"):
            raise self._inconsistent("No stashes found to undo")
        return [
            UndoCommand(
                command=git_command("stash", "apply", "--index", "stash@{0}"),
                description="Re-apply the most recent stash",
            ),
            UndoCommand(
                command=git_command("stash", "drop", "stash@{0}"),
                description="Drop the re-applied stash",
            ),
        ]


class MergeStrategy(UndoStrategy):
    verb = "merge"

    def check_supported(self) -> None:
        if self.details.has_flag("--abort", "--continue", "--quit"):
            raise self._unsupported("Undo is not supported for merge sequencer control")

    def _build(self) -> list[UndoCommand]:
        if succeeds(self.git, "rev-parse", "-q", "--verify", "MERGE_HEAD"):
            return [
                UndoCommand(
                    command=git_command("merge", "--abort"),
                    description="Abort merge and restore state before merging",
                )
            ]

        if not succeeds(self.git, "rev-parse", "-q", "--verify", "ORIG_HEAD"):
            raise self._inconsistent("ORIG_HEAD not found, cannot safely undo merge")

        if not succeeds(self.git, "rev-parse", "-q", "--verify", "HEAD^2"):
            return [
                UndoCommand(
                    command=git_command("reset", "--hard", "ORIG_HEAD"),
                    description="Undo fast-forward merge by resetting to ORIG_HEAD",
                    warnings=self._discard_warnings(),
                )
            ]

        return [
            UndoCommand(
                command=git_command("reset", "--merge", "ORIG_HEAD"),
                description="Undo merge commit by resetting to ORIG_HEAD",
                warnings=["This undoes the merge entirely and restores the state before merging"],
            )
        ]


class CleanStrategy(UndoStrategy):
    verb = "clean"

    def check_supported(self) -> None:
        dry_run = any(
            arg == "--dry-run" or "n" in _short_flags(arg) for arg in self.details.args
        )
        if dry_run:
            raise self._unsupported("Dry-run clean operations don't modify files; nothing to undo")
        raise self._unsupported(
            "git clean permanently removes untracked files that cannot be recovered",
            "Run `git clean -n` first to preview what would be deleted.",
        )

    def _build(self) -> list[UndoCommand]:
        return []


class BackStrategy(UndoStrategy):
    """Undo a navigation by returning to the previous ref."""

    def _build(self) -> list[UndoCommand]:
        previous = output_or_empty(self.git, "rev-parse", "--symbolic-full-name", "@{-1}")
        if not previous:
            previous = output_or_empty(self.git, "rev-parse", "-q", "--verify", "@{-1}")
        if not previous:
            raise self._inconsistent("No previous branch to return to")
        previous = previous.removeprefix("refs/heads/")

        warnings = []
        if output_or_empty(self.git, "diff", "--cached", "--name-only"):
            warnings.append("You have staged changes that may conflict with branch switching")
        if output_or_empty(self.git, "diff", "--name-only"):
            warnings.append("You have unstaged changes that may conflict with branch switching")
        if output_or_empty(self.git, "ls-files", "--others", "--exclude-standard"):
            warnings.append("You have untracked files (these usually don't conflict)")
        if warnings:
            warnings.append("If git back fails, try: 'git stash' first, then 'git back', then 'git stash pop'")
            warnings.append("Or commit your changes first with 'git commit -m \"WIP\"'")

        return [
            UndoCommand(
                command=git_command("checkout", "-"),
                description=f"Switch back to previous branch/commit ({previous})",
                warnings=warnings,
            )
        ]


STRATEGIES: dict[str, type[UndoStrategy]] = {
    strategy.verb: strategy
    for strategy in (
        CommitStrategy,
        AddStrategy,
        BranchStrategy,
        CheckoutStrategy,
        SwitchStrategy,
        MoveStrategy,
        TagStrategy,
        ResetStrategy,
        RevertStrategy,
        CherryPickStrategy,
        RestoreStrategy,
        RemoveStrategy,
        StashStrategy,
        MergeStrategy,
        CleanStrategy,
    )
}
NAVIGATION_VERBS = ("checkout", "switch")


def strategy_for(raw: str, git: GitExec, navigation: bool = False) -> UndoStrategy:
    """Return the strategy that undoes `raw`; `navigation` selects `git back` semantics."""
    try:
        parsed = parse_command(raw)
    except GitUndoError as exc:
        details = CommandDetails(full_command=raw, verb="")
        return UnsupportedStrategy(details, git, reason=exc.message)

    details = CommandDetails.from_parsed(raw, parsed)
    if not parsed.supported:
        return UnsupportedStrategy(details, git, reason="unknown git command")
    if navigation:
        if parsed.name in NAVIGATION_VERBS:
            return BackStrategy(details, git)
        return UnsupportedStrategy(details, git, reason="not a branch switch")

    strategy_cls = STRATEGIES.get(parsed.name)
    if strategy_cls is None:
        logger.debug("No undo strategy registered for verb %r", parsed.name)
        return UnsupportedStrategy(details, git)
    return strategy_cls(details, git)


def is_undoable(raw: str, git: GitExec) -> bool:
    """Return whether a command has an inverse, judged from its verb and flags alone."""
    try:
        strategy_for(raw, git).check_supported()
    except GitUndoError:
        return False
    return True
