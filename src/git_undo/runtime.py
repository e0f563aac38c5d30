"""Runtime configuration helpers."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .constants import CONFIG_FILE_NAME, DEFAULT_LOG_LIMIT, LOG_DIR_NAME
from .file_manager import FileManager

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}
CONFIG_KEYS = {"log_limit", "ref_scoped", "truncate_on_diverge"}


@dataclass(frozen=True)
class RuntimeSettings:
    """Settings merged from the per-repository config file and environment."""

    verbose: bool = False
    log_limit: int = DEFAULT_LOG_LIMIT
    ref_scoped: bool = True
    truncate_on_diverge: bool = True
    internal_hook: bool = False


def config_path(git_dir: Path) -> Path:
    return git_dir / LOG_DIR_NAME / CONFIG_FILE_NAME


def load_settings(
    git_dir: Path | None = None,
    env: Mapping[str, str] | None = None,
    file_manager: FileManager | None = None,
) -> RuntimeSettings:
    """Return validated settings; environment variables override the config file."""
    source = os.environ if env is None else env
    file_values: dict[str, Any] = {}
    if git_dir is not None:
        file_values = (file_manager or FileManager()).read_yaml(config_path(git_dir))
    unknown = sorted(set(file_values) - CONFIG_KEYS)
    if unknown:
        raise ValueError(f"Unknown config keys in {CONFIG_FILE_NAME}: {', '.join(unknown)}.")

    log_limit = _coerce_int(file_values.get("log_limit", DEFAULT_LOG_LIMIT), "log_limit", min_value=1)
    ref_scoped = _coerce_bool(file_values.get("ref_scoped", True), "ref_scoped")
    truncate_on_diverge = _coerce_bool(
        file_values.get("truncate_on_diverge", True),
        "truncate_on_diverge",
    )

    return RuntimeSettings(
        verbose=_parse_bool_env(source, "GIT_UNDO_VERBOSE", default=False),
        log_limit=_parse_int_env(source, "GIT_UNDO_LOG_LIMIT", default=log_limit, min_value=1),
        ref_scoped=_parse_bool_env(source, "GIT_UNDO_REF_SCOPED", default=ref_scoped),
        truncate_on_diverge=_parse_bool_env(
            source,
            "GIT_UNDO_TRUNCATE_ON_DIVERGE",
            default=truncate_on_diverge,
        ),
        internal_hook=_parse_bool_env(source, "GIT_UNDO_INTERNAL_HOOK", default=False),
    )


def _coerce_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    raise ValueError(f"{key} must be a boolean value (true/false).")


def _coerce_int(value: Any, key: str, min_value: int | None = None) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{key} must be an integer.")
    try:
        parsed = int(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"{key} must be an integer.") from exc
    if min_value is not None and parsed < min_value:
        raise ValueError(f"{key} must be >= {min_value}.")
    return parsed


def _parse_bool_env(source: Mapping[str, str], key: str, default: bool) -> bool:
    raw = source.get(key)
    if raw is None or not str(raw).strip():
        return default
    return _coerce_bool(raw, key)


def _parse_int_env(
    source: Mapping[str, str],
    key: str,
    default: int,
    min_value: int | None = None,
) -> int:
    raw = source.get(key)
    if raw is None or not str(raw).strip():
        return default
    return _coerce_int(raw, key, min_value=min_value)
