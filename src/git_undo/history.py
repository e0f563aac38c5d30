"""Persistent, newest-first command log stored inside the repository's git directory."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from .constants import LOG_DIR_NAME, LOG_FILE_NAME, LOG_TIMESTAMP_FORMAT, UNDONE_MARKER
from .errors import ErrorCode, GitUndoError
from .file_manager import FileManager
from .models import EntryKind, LogEntry
from .parser import changes_current_ref, parse_command

logger = logging.getLogger(__name__)

LINE_PATTERN = re.compile(
    r"^(?P<timestamp>\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}) \[(?P<ref>.*?)\] (?P<command>git .+)$"
)


def log_path(git_dir: Path) -> Path:
    return git_dir / LOG_DIR_NAME / LOG_FILE_NAME


def parse_log_line(line: str) -> LogEntry | None:
    """Parse one log line; return None for lines that are not valid entries."""
    text = line.strip()
    undone = text.startswith(UNDONE_MARKER)
    if undone:
        text = text[len(UNDONE_MARKER):]

    match = LINE_PATTERN.match(text)
    if match is None:
        return None
    try:
        timestamp = datetime.strptime(match.group("timestamp"), LOG_TIMESTAMP_FORMAT)
        parsed = parse_command(match.group("command"))
    except (ValueError, GitUndoError):
        return None

    kind = EntryKind.NAVIGATION if parsed.is_navigating else EntryKind.REGULAR
    return LogEntry(
        timestamp=timestamp,
        ref=match.group("ref"),
        command=match.group("command"),
        undone=undone,
        kind=kind,
    )


class CommandLog:
    """Reads and rewrites the command log; every write replaces the file atomically."""

    def __init__(
        self,
        git_dir: Path,
        file_manager: FileManager | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.path = log_path(git_dir)
        self.file_manager = file_manager or FileManager()
        self._clock = clock

    def entries(self) -> list[LogEntry]:
        """Return parsed entries, newest first; corrupt lines are skipped."""
        return [entry for _, entry in self._parsed_lines()]

    def append(self, command: str, ref: str, kind: EntryKind, truncate: bool = False) -> LogEntry:
        """Prepend a new entry.

        With `truncate`, undone regular entries of the same ref sitting above the
        newest still-active regular entry of that ref are dropped, so history
        diverges the way a linear undo/redo stack does.
        """
        timestamp = self._clock().replace(microsecond=0)
        entry = LogEntry(timestamp=timestamp, ref=ref, command=command, kind=kind)
        lines = self.file_manager.read_lines(self.path)

        if truncate and kind == EntryKind.REGULAR:
            dropped = self._diverged_indices(lines, ref)
            if dropped:
                logger.debug("Dropping %d undone entries on %s", len(dropped), ref)
                lines = [line for index, line in enumerate(lines) if index not in dropped]

        self._write([entry.to_line(), *lines])
        return entry

    def toggle(self, entry: LogEntry) -> LogEntry:
        """Flip the undone marker on the newest line matching `entry`."""
        lines = self.file_manager.read_lines(self.path)
        for index, line in enumerate(lines):
            if line.removeprefix(UNDONE_MARKER) == entry.identifier:
                toggled = entry.toggled()
                lines[index] = toggled.to_line()
                self._write(lines)
                return toggled
        raise GitUndoError(
            ErrorCode.STATE_INCONSISTENCY,
            f"Log entry not found: {entry.identifier}",
            "The command log changed concurrently; re-run the command.",
            {"log_path": str(self.path)},
        )

    def last_active_entry(self, ref: str | None) -> LogEntry | None:
        """Return the newest not-undone entry on `ref` (any ref when None)."""
        for entry in self.entries():
            if not entry.undone and _on_ref(entry, ref):
                return entry
        return None

    def last_navigation_entry(self) -> LogEntry | None:
        """Return the newest navigation entry on any ref, undone or not."""
        for entry in self.entries():
            if entry.kind == EntryKind.NAVIGATION:
                return entry
        return None

    def redo_target(self, ref: str | None) -> LogEntry | None:
        """Return the entry a redo should re-apply, or None when nothing was undone.

        Only the contiguous run of undone regular entries at the top of the ref's
        history is redoable; its deepest member was undone last. Undoing a
        create-and-switch or a rename of the current branch leaves HEAD on another
        ref, so when `ref` has nothing to redo, such entries newer than any regular
        entry of `ref` are looked up on the ref they were logged on.
        """
        target = self._redo_target_on(ref)
        if target is not None or ref is None:
            return target
        for entry in self.entries():
            if entry.kind != EntryKind.REGULAR:
                continue
            if entry.ref == ref:
                break
            if not entry.undone:
                continue
            if not changes_current_ref(parse_command(entry.command)):
                continue
            try:
                candidate = self._redo_target_on(entry.ref)
            except GitUndoError:
                logger.debug("Undone entries on %s are buried; not redoing %r", entry.ref, entry.command)
                continue
            if candidate == entry:
                return entry
        return None

    def _redo_target_on(self, ref: str | None) -> LogEntry | None:
        regular = [
            entry for entry in self.entries() if entry.kind == EntryKind.REGULAR and _on_ref(entry, ref)
        ]
        undone_prefix = []
        for entry in regular:
            if not entry.undone:
                break
            undone_prefix.append(entry)
        if undone_prefix:
            return undone_prefix[-1]
        if any(entry.undone for entry in regular):
            raise GitUndoError(
                ErrorCode.STATE_INCONSISTENCY,
                "Undone commands are buried under newer commands and cannot be redone",
                "Undo the newer commands first, or re-run the command manually.",
            )
        return None

    def dump(self, limit: int | None = None) -> list[str]:
        lines = self.file_manager.read_lines(self.path)
        if limit is not None:
            return lines[:limit]
        return lines

    def _parsed_lines(self) -> list[tuple[int, LogEntry]]:
        parsed = []
        for index, line in enumerate(self.file_manager.read_lines(self.path)):
            entry = parse_log_line(line)
            if entry is None:
                logger.debug("Skipping malformed log line %d: %r", index, line)
                continue
            parsed.append((index, entry))
        return parsed

    def _diverged_indices(self, lines: list[str], ref: str) -> set[int]:
        dropped: set[int] = set()
        for index, line in enumerate(lines):
            entry = parse_log_line(line)
            if entry is None or entry.kind != EntryKind.REGULAR or entry.ref != ref:
                continue
            if not entry.undone:
                break
            dropped.add(index)
        return dropped

    def _write(self, lines: list[str]) -> None:
        self.file_manager.write_text_atomic(self.path, "".join(f"{line}\n" for line in lines))


def _on_ref(entry: LogEntry, ref: str | None) -> bool:
    return ref is None or entry.ref == ref
