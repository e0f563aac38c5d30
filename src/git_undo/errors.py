"""Domain-specific error types for git-undo operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Supported error codes surfaced by git-undo."""

    PARSE_ERROR = "PARSE_ERROR"
    UNSUPPORTED_OPERATION = "UNSUPPORTED_OPERATION"
    STATE_INCONSISTENCY = "STATE_INCONSISTENCY"
    EXECUTION_FAILURE = "EXECUTION_FAILURE"
    NOT_A_REPOSITORY = "NOT_A_REPOSITORY"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    INVALID_INPUT = "INVALID_INPUT"
    INTERNAL_ERROR = "INTERNAL_ERROR"


@dataclass
class GitUndoError(Exception):
    """Structured exception carrying a stable error contract."""

    code: ErrorCode
    message: str
    suggestion: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message

    def to_payload(self) -> dict[str, Any]:
        return {
            "status": "error",
            "error_code": self.code.value,
            "message": self.message,
            "suggestion": self.suggestion or "",
            "details": self.details,
        }


class GitCommandError(Exception):
    """Raised by the git inspector when a git invocation exits non-zero."""

    def __init__(self, subcommand: str, args: tuple[str, ...], returncode: int, stderr: str = "") -> None:
        self.subcommand = subcommand
        self.command_args = args
        self.returncode = returncode
        self.stderr = stderr.strip()
        command = " ".join(["git", subcommand, *args])
        message = f"`{command}` exited with status {returncode}"
        if self.stderr:
            message = f"{message}: {self.stderr}"
        super().__init__(message)
