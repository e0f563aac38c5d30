"""Command line entry points for `git undo` and `git back`."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

from pydantic import ValidationError

from .constants import BACK_APP_NAME, UNDO_APP_NAME
from .engine import UndoEngine
from .errors import ErrorCode, GitUndoError
from .runtime import load_settings

logger = logging.getLogger(__name__)


def _print_payload(payload: dict[str, Any], as_json: bool) -> None:
    if as_json:
        print(json.dumps(payload, indent=2))
        return

    if payload.get("status") == "error":
        print(f"git-undo: {payload.get('message', '')}", file=sys.stderr)
        suggestion = payload.get("suggestion", "")
        if suggestion:
            print(f"hint: {suggestion}", file=sys.stderr)
        return

    if "lines" in payload:
        for line in payload["lines"]:
            print(line)
        return

    for command in payload.get("undo_commands", []):
        if payload.get("dry_run"):
            print(f"Would run: {command.get('command', '')}")
        else:
            print(f"Ran: {command.get('command', '')}")
    for warning in payload.get("warnings", []):
        print(f"warning: {warning}", file=sys.stderr)

    message = payload.get("message", "")
    if message:
        print(message)


def _error_payload(exc: Exception) -> dict[str, Any]:
    if isinstance(exc, GitUndoError):
        return exc.to_payload()
    if isinstance(exc, ValidationError):
        return {
            "status": "error",
            "error_code": ErrorCode.INVALID_INPUT.value,
            "message": "Input validation failed",
            "suggestion": "Check command arguments and constraints.",
            "details": {"errors": exc.errors(include_context=False, include_input=False)},
        }
    if isinstance(exc, ValueError):
        return {
            "status": "error",
            "error_code": ErrorCode.INVALID_INPUT.value,
            "message": str(exc),
            "suggestion": "Fix the git-undo environment variables.",
            "details": {},
        }
    return {
        "status": "error",
        "error_code": ErrorCode.INTERNAL_ERROR.value,
        "message": str(exc),
        "suggestion": "Retry with --verbose for diagnostics.",
        "details": {},
    }


def _add_common_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-v", "--verbose", action="store_true", help="Log diagnostics to stderr")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show the commands that would run without executing them",
    )
    parser.add_argument("--json", action="store_true", help="Output machine-readable JSON")


def _build_undo_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=UNDO_APP_NAME,
        description="Undo the last git command. Run `git undo undo` to redo it.",
    )
    parser.add_argument(
        "action",
        nargs="?",
        choices=["undo"],
        help="`undo` redoes the last undone command",
    )
    parser.add_argument("--hook", metavar="COMMAND", help=argparse.SUPPRESS)
    parser.add_argument("--log", action="store_true", help="Print the command log, newest first")
    _add_common_flags(parser)
    return parser


def _build_back_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=BACK_APP_NAME,
        description="Go back to the branch or commit checked out before the last switch.",
    )
    _add_common_flags(parser)
    return parser


def _configure_logging(verbose: bool) -> None:
    package_logger = logging.getLogger("git_undo")
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _run(args: argparse.Namespace, operation: str, engine: UndoEngine | None = None) -> int:
    as_json = bool(args.json)
    try:
        settings = load_settings()
        _configure_logging(args.verbose or settings.verbose)
        engine = engine or UndoEngine()

        if operation == "hook":
            if not settings.internal_hook:
                raise GitUndoError(
                    ErrorCode.INVALID_INPUT,
                    "--hook is reserved for the git-undo shell integration",
                    "Set GIT_UNDO_INTERNAL_HOOK=1 when calling from a hook script.",
                )
            response = engine.log_command(args.hook).model_dump(mode="json")
            if not as_json:
                return 0
        elif operation == "log":
            response = engine.show_log().model_dump(mode="json")
        elif operation == "redo":
            response = engine.redo(dry_run=args.dry_run).model_dump(mode="json")
        elif operation == "back":
            response = engine.back(dry_run=args.dry_run).model_dump(mode="json")
        else:
            response = engine.undo(dry_run=args.dry_run).model_dump(mode="json")

        _print_payload(response, as_json=as_json)
        return 0
    except GitUndoError as exc:
        if exc.code == ErrorCode.NOT_A_REPOSITORY and not as_json:
            logger.debug("Not inside a git repository; nothing to do")
            return 0
        _print_payload(exc.to_payload(), as_json=as_json)
        return 1
    except Exception as exc:  # noqa: BLE001
        _print_payload(_error_payload(exc), as_json=as_json)
        return 1


def main(argv: list[str] | None = None, engine: UndoEngine | None = None) -> int:
    args = _build_undo_parser().parse_args(argv)
    if args.hook is not None:
        operation = "hook"
    elif args.log:
        operation = "log"
    elif args.action == "undo":
        operation = "redo"
    else:
        operation = "undo"
    return _run(args, operation, engine)


def main_back(argv: list[str] | None = None, engine: UndoEngine | None = None) -> int:
    args = _build_back_parser().parse_args(argv)
    return _run(args, "back", engine)


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
