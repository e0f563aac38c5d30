"""Tokenize raw git command lines and classify their effect on repository state."""

from __future__ import annotations

import shlex
from enum import Enum

from .constants import PROGRAM_NAME
from .errors import ErrorCode, GitUndoError
from .models import Behavior, ParsedCommand, SyntaxClass

SELF_COMMANDS = ("undo", "back")
PREVIOUS_REF_MARKER = "-"


class VerbRule(Enum):
    """How a verb's behavior is decided. Every verb maps to exactly one rule."""

    ALWAYS_MUTATING = "always-mutating"
    ALWAYS_READ_ONLY = "always-read-only"
    CHECKOUT = "checkout"
    SWITCH = "switch"
    BRANCH = "branch"
    TAG = "tag"
    REMOTE = "remote"
    CONFIG = "config"
    RESTORE = "restore"
    SELF = "self"


ALWAYS_MUTATING = frozenset(
    {
        "add",
        "am",
        "cherry-pick",
        "clean",
        "clone",
        "commit",
        "fetch",
        "init",
        "merge",
        "mv",
        "pull",
        "push",
        "rebase",
        "reset",
        "revert",
        "rm",
        "stash",
        "submodule",
        "worktree",
    }
)

ALWAYS_READ_ONLY = frozenset(
    {
        "archive",
        "blame",
        "cat-file",
        "describe",
        "diff",
        "grep",
        "help",
        "log",
        "ls-files",
        "ls-remote",
        "name-rev",
        "reflog",
        "rev-parse",
        "shortlog",
        "show",
        "status",
        "whatchanged",
    }
)

VERB_RULES: dict[str, VerbRule] = {
    **{verb: VerbRule.ALWAYS_MUTATING for verb in ALWAYS_MUTATING},
    **{verb: VerbRule.ALWAYS_READ_ONLY for verb in ALWAYS_READ_ONLY},
    "checkout": VerbRule.CHECKOUT,
    "switch": VerbRule.SWITCH,
    "branch": VerbRule.BRANCH,
    "tag": VerbRule.TAG,
    "remote": VerbRule.REMOTE,
    "config": VerbRule.CONFIG,
    "restore": VerbRule.RESTORE,
    **{verb: VerbRule.SELF for verb in SELF_COMMANDS},
}

PORCELAIN_COMMANDS = frozenset(
    {
        "add", "am", "archive", "bisect", "blame", "branch", "bundle", "checkout",
        "cherry", "cherry-pick", "citool", "clean", "clone", "commit", "config",
        "describe", "diff", "fetch", "format-patch", "gc", "grep", "gui", "help",
        "init", "log", "merge", "mv", "notes", "pull", "push", "rebase", "reflog",
        "remote", "reset", "restore", "revert", "rm", "shortlog", "show", "stash",
        "status", "submodule", "switch", "tag", "whatchanged", "worktree",
    }
)

PLUMBING_COMMANDS = frozenset(
    {
        "apply-mailbox", "apply-patch", "cat-file", "check-attr", "check-ignore",
        "check-mailmap", "check-ref-format", "checkout-index", "commit-tree",
        "diff-files", "diff-index", "diff-tree", "fast-export", "fast-import",
        "fmt-merge-msg", "for-each-ref", "hash-object", "http-backend", "index-pack",
        "init-db", "log-tree", "ls-files", "ls-remote", "ls-tree", "merge-base",
        "merge-index", "merge-tree", "mktag", "mktree", "name-rev", "pack-objects",
        "pack-redundant", "pack-refs", "patch-id", "prune", "receive-pack",
        "remote-ext", "replace", "rev-list", "rev-parse", "send-pack", "show-index",
        "show-ref", "symbolic-ref", "unpack-file", "unpack-objects", "update-index",
        "update-ref", "verify-commit", "verify-pack", "verify-tag", "write-tree",
    }
)

CUSTOM_COMMANDS = frozenset(SELF_COMMANDS)

CHECKOUT_CREATE_FLAGS = ("-b", "-B", "--orphan")
SWITCH_CREATE_FLAGS = ("-c", "--create", "-C", "--force-create", "--orphan")
DELETE_FLAGS = ("-d", "-D", "--delete")
BRANCH_RENAME_FLAGS = ("-m", "-M", "--move")
BRANCH_LISTING_FLAGS = frozenset(
    {
        "-l", "--list", "-a", "--all", "-r", "--remotes", "-v", "-vv", "--verbose",
        "--show-current", "--contains", "--no-contains", "--merged", "--no-merged",
        "--points-at",
    }
)
TAG_LISTING_FLAGS = frozenset(
    {
        "-l", "--list", "-n", "--contains", "--no-contains", "--points-at",
        "--merged", "--no-merged", "-v", "--verify",
    }
)
REMOTE_READ_ONLY_ACTIONS = frozenset({"show", "get-url"})
CONFIG_READ_ONLY_FLAGS = frozenset(
    {
        "--get", "--get-all", "--get-regexp", "--get-urlmatch", "--get-color",
        "--get-colorbool", "--list", "-l",
    }
)
CONFIG_READ_ONLY_ACTIONS = frozenset({"get", "list"})


def parse_command(raw: str) -> ParsedCommand:
    """Parse a raw `git ...` line into a ParsedCommand."""
    try:
        parts = shlex.split(raw)
    except ValueError as exc:
        raise GitUndoError(
            ErrorCode.PARSE_ERROR,
            f"Not a shell command line: {raw}",
            "Check quoting in the command.",
        ) from exc
    if len(parts) < 2 or parts[0] != PROGRAM_NAME:
        raise GitUndoError(
            ErrorCode.PARSE_ERROR,
            f"Not a git command: {raw}",
            "Commands must start with `git <verb>`.",
        )

    name, args = parts[1], tuple(parts[2:])
    syntax_class = syntax_class_for(name)
    return ParsedCommand(
        name=name,
        args=args,
        supported=syntax_class != SyntaxClass.UNKNOWN,
        syntax_class=syntax_class,
        behavior=classify(name, args),
    )


def syntax_class_for(name: str) -> SyntaxClass:
    if name in CUSTOM_COMMANDS:
        return SyntaxClass.CUSTOM
    if name in PORCELAIN_COMMANDS:
        return SyntaxClass.PORCELAIN
    if name in PLUMBING_COMMANDS:
        return SyntaxClass.PLUMBING
    return SyntaxClass.UNKNOWN


def classify(name: str, args: tuple[str, ...] | list[str]) -> Behavior:
    """Return the behavior of `git <name> <args>`; unknown verbs are read-only."""
    rule = VERB_RULES.get(name)
    if rule is None:
        return Behavior.READ_ONLY
    args = tuple(args)

    if rule is VerbRule.ALWAYS_MUTATING:
        return Behavior.MUTATING
    if rule is VerbRule.ALWAYS_READ_ONLY:
        return Behavior.READ_ONLY
    if rule is VerbRule.CHECKOUT:
        return _ref_switch_behavior(args, CHECKOUT_CREATE_FLAGS)
    if rule is VerbRule.SWITCH:
        return _ref_switch_behavior(args, SWITCH_CREATE_FLAGS)
    if rule is VerbRule.BRANCH:
        return _ref_naming_behavior(args, BRANCH_LISTING_FLAGS)
    if rule is VerbRule.TAG:
        return _ref_naming_behavior(args, TAG_LISTING_FLAGS)
    if rule is VerbRule.REMOTE:
        return _sub_action_behavior(args, REMOTE_READ_ONLY_ACTIONS, frozenset())
    if rule is VerbRule.CONFIG:
        return _sub_action_behavior(args, CONFIG_READ_ONLY_ACTIONS, CONFIG_READ_ONLY_FLAGS)
    if rule is VerbRule.RESTORE:
        return Behavior.MUTATING if _operands(args) else Behavior.READ_ONLY
    if rule is VerbRule.SELF:
        return Behavior.READ_ONLY
    raise AssertionError(f"unhandled verb rule: {rule}")


def is_self_command(parsed: ParsedCommand) -> bool:
    return parsed.name in SELF_COMMANDS


def changes_current_ref(parsed: ParsedCommand) -> bool:
    """Whether undoing the command leaves HEAD on a different ref than the one it was logged on."""
    flags = {
        "checkout": CHECKOUT_CREATE_FLAGS,
        "switch": SWITCH_CREATE_FLAGS,
        "branch": BRANCH_RENAME_FLAGS,
    }.get(parsed.name, ())
    return any(arg in flags for arg in parsed.args)


def _operands(args: tuple[str, ...]) -> list[str]:
    return [arg for arg in args if arg == PREVIOUS_REF_MARKER or not arg.startswith("-")]


def _ref_switch_behavior(args: tuple[str, ...], create_flags: tuple[str, ...]) -> Behavior:
    for index, arg in enumerate(args):
        if arg in create_flags and index + 1 < len(args):
            return Behavior.MUTATING
    if _operands(args):
        return Behavior.NAVIGATING
    return Behavior.READ_ONLY


def _ref_naming_behavior(args: tuple[str, ...], listing_flags: frozenset[str]) -> Behavior:
    if any(arg in listing_flags for arg in args):
        return Behavior.READ_ONLY
    if any(arg in DELETE_FLAGS for arg in args):
        return Behavior.MUTATING
    if _operands(args):
        return Behavior.MUTATING
    return Behavior.READ_ONLY


def _sub_action_behavior(
    args: tuple[str, ...],
    read_only_actions: frozenset[str],
    read_only_flags: frozenset[str],
) -> Behavior:
    if any(arg in read_only_flags for arg in args):
        return Behavior.READ_ONLY
    operands = _operands(args)
    if not operands or operands[0] in read_only_actions:
        return Behavior.READ_ONLY
    return Behavior.MUTATING


def normalize(parsed: ParsedCommand) -> ParsedCommand:
    """Reduce a command to a canonical form for display and comparison."""
    normalizer = _NORMALIZERS.get(parsed.name)
    if not parsed.supported or normalizer is None:
        raise GitUndoError(
            ErrorCode.UNSUPPORTED_OPERATION,
            f"Normalization is not implemented for `git {parsed.name}`",
            f"Normalizable verbs: {', '.join(sorted(_NORMALIZERS))}.",
        )
    return parsed.model_copy(update={"args": tuple(normalizer(list(parsed.args)))})


def _normalize_commit_args(args: list[str]) -> list[str]:
    if "--amend" in args:
        return ["--amend"]
    message_parts: list[str] = []
    index = 0
    while index < len(args):
        arg = args[index]
        if arg in ("-m", "--message"):
            index += 1
            while index < len(args) and not args[index].startswith("-"):
                message_parts.append(args[index].strip("\"'"))
                index += 1
            continue
        if arg.startswith("--message="):
            message_parts.append(arg.split("=", 1)[1].strip("\"'"))
        elif arg.startswith("-m") and len(arg) > 2:
            message_parts.append(arg[2:].strip("\"'"))
        index += 1
    if message_parts:
        return ["-m", " ".join(message_parts)]
    return []


def _normalize_merge_args(args: list[str]) -> list[str]:
    result: list[str] = []
    if "--squash" in args:
        result.append("--squash")
    elif "--no-ff" in args:
        result.append("--no-ff")
    elif "--ff" in args or "--ff-only" in args:
        result.append("--ff")
    branch = next((arg for arg in args if not arg.startswith("-")), "")
    if branch:
        result.append(branch)
    return result


def _normalize_rebase_args(args: list[str]) -> list[str]:
    result = ["-i"] if ("-i" in args or "--interactive" in args) else []
    branch = next((arg for arg in args if not arg.startswith("-")), "")
    if branch:
        result.append(branch)
    return result


def _normalize_cherry_pick_args(args: list[str]) -> list[str]:
    commit = next((arg for arg in args if not arg.startswith("-")), "")
    return [commit] if commit else []


_NORMALIZERS = {
    "commit": _normalize_commit_args,
    "merge": _normalize_merge_args,
    "rebase": _normalize_rebase_args,
    "cherry-pick": _normalize_cherry_pick_args,
}

NORMALIZABLE_VERBS = frozenset(_NORMALIZERS)
