"""Undo/redo orchestrator: ties the parser, strategy registry, git inspector and command log together."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from .constants import UNKNOWN_REF
from .errors import ErrorCode, GitCommandError, GitUndoError
from .file_manager import FileManager
from .git import GitExec, GitInspector, current_ref, repo_git_dir
from .history import CommandLog
from .models import EntryKind, HookResponse, LogEntry, LogResponse, UndoCommand, UndoResponse
from .parser import NORMALIZABLE_VERBS, is_self_command, normalize, parse_command
from .runtime import RuntimeSettings, load_settings
from .strategies import git_command, is_undoable, strategy_for

logger = logging.getLogger(__name__)

NAVIGATION_HINT = "Last operation can't be undone. Use git back instead."


class UndoEngine:
    """Main service implementing hook logging, undo, redo and back."""

    def __init__(
        self,
        repo_dir: str | Path = ".",
        git: GitExec | None = None,
        file_manager: FileManager | None = None,
        settings: RuntimeSettings | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.repo_dir = Path(repo_dir)
        self.git = git or GitInspector(self.repo_dir)
        self.file_manager = file_manager or FileManager()
        self._settings = settings
        self._clock = clock

    def git_dir(self) -> Path:
        return repo_git_dir(self.git, self.repo_dir)

    def settings(self, git_dir: Path | None = None) -> RuntimeSettings:
        if self._settings is not None:
            return self._settings
        try:
            return load_settings(git_dir=git_dir, file_manager=self.file_manager)
        except ValueError as exc:
            raise GitUndoError(
                ErrorCode.INVALID_INPUT,
                str(exc),
                "Fix the git-undo config file or environment variables.",
            ) from exc

    def command_log(self) -> CommandLog:
        return CommandLog(self.git_dir(), self.file_manager, clock=self._clock)

    def log_command(self, raw: str) -> HookResponse:
        """Record a command observed by a hook, if it changes repository state."""
        raw = raw.strip()
        parsed = parse_command(raw)
        logger.debug("Classified %r as %s (%s)", raw, parsed.behavior.value, parsed.syntax_class.value)

        skip_reason = ""
        if is_self_command(parsed):
            skip_reason = "git-undo's own commands are not logged"
        elif not parsed.supported:
            skip_reason = f"Unknown git command '{parsed.name}' is not logged"
        elif parsed.is_read_only:
            skip_reason = "Read-only command is not logged"
        if skip_reason:
            logger.debug("Skipping %r: %s", raw, skip_reason)
            return HookResponse(status="success", message=skip_reason, command=raw, behavior=parsed.behavior)

        git_dir = self.git_dir()
        settings = self.settings(git_dir)
        kind = EntryKind.NAVIGATION if parsed.is_navigating else EntryKind.REGULAR
        entry = CommandLog(git_dir, self.file_manager, clock=self._clock).append(
            raw,
            self._ref_or_unknown(),
            kind,
            truncate=settings.truncate_on_diverge,
        )

        undoable = kind == EntryKind.NAVIGATION or is_undoable(raw, self.git)
        message = f"Logged: {raw}"
        if not undoable:
            message = f"Logged: {raw} (git undo cannot reverse this command)"
        details = {"ref": entry.ref, "kind": entry.kind.value}
        if parsed.name in NORMALIZABLE_VERBS:
            canonical = normalize(parsed)
            details["normalized"] = git_command(canonical.name, *canonical.args)
        return HookResponse(
            status="success",
            message=message,
            command=raw,
            behavior=parsed.behavior,
            logged=True,
            undoable=undoable,
            details=details,
        )

    def undo(self, dry_run: bool = False) -> UndoResponse:
        """Reverse the most recent not-undone entry on the current ref."""
        git_dir = self.git_dir()
        command_log = CommandLog(git_dir, self.file_manager, clock=self._clock)
        ref = self._scope_ref(self.settings(git_dir))

        entry = command_log.last_active_entry(ref)
        if entry is None:
            return UndoResponse(status="success", message="Nothing to undo", ref=ref or "", dry_run=dry_run)
        if entry.kind == EntryKind.NAVIGATION:
            return UndoResponse(
                status="success",
                message=NAVIGATION_HINT,
                command=entry.command,
                ref=entry.ref,
                dry_run=dry_run,
            )

        commands = self._synthesize(entry.command, navigation=False)
        return self._apply(command_log, entry, commands, "undo", dry_run)

    def redo(self, dry_run: bool = False) -> UndoResponse:
        """Re-run the most recently undone command verbatim."""
        git_dir = self.git_dir()
        command_log = CommandLog(git_dir, self.file_manager, clock=self._clock)
        ref = self._scope_ref(self.settings(git_dir))

        entry = command_log.redo_target(ref)
        if entry is None:
            return UndoResponse(
                status="success",
                operation="redo",
                message="Nothing to redo",
                ref=ref or "",
                dry_run=dry_run,
            )

        replay = UndoCommand(command=entry.command, description=f"Re-run: {entry.command}")
        return self._apply(command_log, entry, [replay], "redo", dry_run)

    def back(self, dry_run: bool = False) -> UndoResponse:
        """Return to the ref that was checked out before the last branch switch."""
        command_log = self.command_log()
        entry = command_log.last_navigation_entry()
        if entry is None:
            return UndoResponse(
                status="success",
                operation="back",
                message="No branch switch to go back from",
                dry_run=dry_run,
            )

        commands = self._synthesize(entry.command, navigation=True)
        return self._apply(command_log, entry, commands, "back", dry_run)

    def show_log(self, limit: int | None = None) -> LogResponse:
        git_dir = self.git_dir()
        command_log = CommandLog(git_dir, self.file_manager, clock=self._clock)
        lines = command_log.dump(limit if limit is not None else self.settings(git_dir).log_limit)
        return LogResponse(
            status="success",
            message="Command log is empty" if not lines else f"{len(lines)} log entries",
            log_path=str(command_log.path),
            count=len(lines),
            lines=lines,
        )

    def _synthesize(self, command: str, navigation: bool) -> list[UndoCommand]:
        strategy = strategy_for(command, self.git, navigation=navigation)
        logger.debug("Using %s for %r", type(strategy).__name__, command)
        try:
            return strategy.undo_commands()
        except GitCommandError as exc:
            raise GitUndoError(
                ErrorCode.STATE_INCONSISTENCY,
                f"Failed to inspect repository state: {exc}",
                "Check the repository state with `git status` and retry.",
                {"command": command},
            ) from exc

    def _apply(
        self,
        command_log: CommandLog,
        entry: LogEntry,
        commands: list[UndoCommand],
        operation: str,
        dry_run: bool,
    ) -> UndoResponse:
        warnings = [warning for command in commands for warning in command.warnings]
        verb = {"undo": "Undo", "redo": "Redo", "back": "Back"}[operation]

        if dry_run:
            return UndoResponse(
                status="success",
                operation=operation,
                message=f"Would {operation}: {entry.command}",
                command=entry.command,
                ref=entry.ref,
                dry_run=True,
                undo_commands=commands,
                warnings=warnings,
            )

        executed = self._execute(commands)
        command_log.toggle(entry)
        logger.debug("Toggled log entry %r", entry.identifier)
        return UndoResponse(
            status="success",
            operation=operation,
            message=f"{verb} complete: {entry.command}",
            command=entry.command,
            ref=entry.ref,
            undo_commands=commands,
            warnings=warnings,
            executed=executed,
        )

    def _execute(self, commands: list[UndoCommand]) -> int:
        total = len(commands)
        for index, command in enumerate(commands, start=1):
            argv = command.argv()
            logger.debug("Executing %d/%d: %s", index, total, command.command)
            try:
                self.git.run(argv[1], *argv[2:])
            except GitCommandError as exc:
                raise GitUndoError(
                    ErrorCode.EXECUTION_FAILURE,
                    f"Failed to execute `{command.command}` ({index - 1} of {total} commands applied)",
                    "Finish the operation manually; the log entry was left unchanged.",
                    {
                        "completed": index - 1,
                        "total": total,
                        "failed_command": command.command,
                        "stderr": exc.stderr,
                    },
                ) from exc
        return total

    def _scope_ref(self, settings: RuntimeSettings) -> str | None:
        if not settings.ref_scoped:
            return None
        return current_ref(self.git)

    def _ref_or_unknown(self) -> str:
        try:
            return current_ref(self.git)
        except GitUndoError:
            logger.debug("Could not resolve current ref; logging as %s", UNKNOWN_REF)
            return UNKNOWN_REF
