"""Pydantic models for parsed commands, log entries and undo responses."""

from __future__ import annotations

import shlex
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .constants import LOG_TIMESTAMP_FORMAT, PROGRAM_NAME, UNDONE_MARKER


class SyntaxClass(str, Enum):
    PORCELAIN = "porcelain"
    PLUMBING = "plumbing"
    CUSTOM = "custom"
    UNKNOWN = "unknown"


class Behavior(str, Enum):
    READ_ONLY = "read-only"
    NAVIGATING = "navigating"
    MUTATING = "mutating"


class EntryKind(str, Enum):
    REGULAR = "regular"
    NAVIGATION = "navigation"


class ParsedCommand(BaseModel):
    """A tokenized `git <verb> ...` invocation with its derived behavior."""

    model_config = ConfigDict(frozen=True)

    name: str
    args: tuple[str, ...] = ()
    supported: bool = False
    syntax_class: SyntaxClass = SyntaxClass.UNKNOWN
    behavior: Behavior = Behavior.READ_ONLY

    @property
    def is_read_only(self) -> bool:
        return self.behavior == Behavior.READ_ONLY

    @property
    def is_mutating(self) -> bool:
        return self.behavior == Behavior.MUTATING

    @property
    def is_navigating(self) -> bool:
        return self.behavior == Behavior.NAVIGATING

    def __str__(self) -> str:
        return shlex.join([PROGRAM_NAME, self.name, *self.args])


class CommandDetails(BaseModel):
    """Verb and operands handed to an undo strategy."""

    model_config = ConfigDict(frozen=True)

    full_command: str
    verb: str
    args: tuple[str, ...] = ()

    @classmethod
    def from_parsed(cls, raw: str, parsed: ParsedCommand) -> CommandDetails:
        return cls(full_command=raw, verb=parsed.name, args=parsed.args)

    def has_flag(self, *flags: str) -> bool:
        return any(arg in flags for arg in self.args)

    def non_flag_args(self) -> list[str]:
        return [arg for arg in self.args if not arg.startswith("-")]

    def first_non_flag_arg(self) -> str:
        operands = self.non_flag_args()
        return operands[0] if operands else ""


class UndoCommand(BaseModel):
    """One git invocation that reverses (part of) a logged command."""

    command: str
    description: str = ""
    warnings: list[str] = Field(default_factory=list)

    def argv(self) -> list[str]:
        return shlex.split(self.command)


class LogEntry(BaseModel):
    """One line of the command log."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    ref: str
    command: str
    undone: bool = False
    kind: EntryKind = EntryKind.REGULAR

    @property
    def identifier(self) -> str:
        """Line text without the undone marker; used to target toggles."""
        return f"{self.timestamp.strftime(LOG_TIMESTAMP_FORMAT)} [{self.ref}] {self.command}"

    def to_line(self) -> str:
        if self.undone:
            return UNDONE_MARKER + self.identifier
        return self.identifier

    def toggled(self) -> LogEntry:
        return self.model_copy(update={"undone": not self.undone})


class BaseUndoResponse(BaseModel):
    status: Literal["success", "error"]
    message: str = ""
    error_code: str = ""
    suggestion: str = ""
    details: dict[str, Any] = Field(default_factory=dict)


class UndoResponse(BaseUndoResponse):
    operation: Literal["undo", "redo", "back"] = "undo"
    command: str = ""
    ref: str = ""
    dry_run: bool = False
    undo_commands: list[UndoCommand] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    executed: int = 0


class HookResponse(BaseUndoResponse):
    command: str = ""
    behavior: Behavior | None = None
    logged: bool = False
    undoable: bool = False


class LogResponse(BaseUndoResponse):
    log_path: str = ""
    count: int = 0
    lines: list[str] = Field(default_factory=list)
