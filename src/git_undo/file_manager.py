"""Low-level file system helpers used by the command log and settings loader."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

from .errors import ErrorCode, GitUndoError


class FileManager:
    """Wrapper around text/YAML file operations with atomic replacement."""

    def write_text_atomic(self, path: Path, content: str) -> None:
        """Write content to a sibling temp file, then rename it over `path`."""
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(content)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except PermissionError as exc:
            raise GitUndoError(
                ErrorCode.PERMISSION_DENIED,
                f"Permission denied while writing {path}",
                "Check directory permissions and try again.",
            ) from exc

    def read_text(self, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""
        except PermissionError as exc:
            raise GitUndoError(
                ErrorCode.PERMISSION_DENIED,
                f"Permission denied while reading {path}",
                "Check directory permissions and try again.",
            ) from exc

    def read_lines(self, path: Path) -> list[str]:
        """Return non-empty, stripped lines of a text file."""
        return [line.strip() for line in self.read_text(path).splitlines() if line.strip()]

    def write_yaml(self, path: Path, payload: dict[str, Any]) -> None:
        self.write_text_atomic(
            path,
            yaml.safe_dump(payload, sort_keys=False, allow_unicode=False),
        )

    def read_yaml(self, path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        try:
            with path.open("r", encoding="utf-8") as handle:
                loaded = yaml.safe_load(handle)
        except PermissionError as exc:
            raise GitUndoError(
                ErrorCode.PERMISSION_DENIED,
                f"Permission denied while reading {path}",
                "Check directory permissions and try again.",
            ) from exc
        except yaml.YAMLError as exc:
            raise GitUndoError(
                ErrorCode.INVALID_INPUT,
                f"Invalid YAML in {path}",
                "Fix or remove the file to fall back to defaults.",
            ) from exc
        if isinstance(loaded, dict):
            return loaded
        return {}
