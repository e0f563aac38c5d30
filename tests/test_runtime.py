from __future__ import annotations

from pathlib import Path

import pytest

from git_undo.errors import ErrorCode, GitUndoError
from git_undo.file_manager import FileManager
from git_undo.runtime import RuntimeSettings, config_path, load_settings


def test_defaults_without_config_or_env(tmp_path: Path) -> None:
    assert load_settings(git_dir=tmp_path, env={}) == RuntimeSettings()


def test_config_file_values_are_used(tmp_path: Path) -> None:
    FileManager().write_yaml(
        config_path(tmp_path),
        {"log_limit": 5, "ref_scoped": False, "truncate_on_diverge": "no"},
    )

    settings = load_settings(git_dir=tmp_path, env={})

    assert settings.log_limit == 5
    assert settings.ref_scoped is False
    assert settings.truncate_on_diverge is False


def test_environment_overrides_config(tmp_path: Path) -> None:
    FileManager().write_yaml(config_path(tmp_path), {"log_limit": 5, "ref_scoped": False})

    settings = load_settings(
        git_dir=tmp_path,
        env={
            "GIT_UNDO_LOG_LIMIT": "7",
            "GIT_UNDO_REF_SCOPED": "yes",
            "GIT_UNDO_VERBOSE": "1",
            "GIT_UNDO_INTERNAL_HOOK": "true",
        },
    )

    assert settings.log_limit == 7
    assert settings.ref_scoped is True
    assert settings.verbose is True
    assert settings.internal_hook is True


def test_blank_environment_values_fall_back(tmp_path: Path) -> None:
    settings = load_settings(git_dir=tmp_path, env={"GIT_UNDO_LOG_LIMIT": "  ", "GIT_UNDO_VERBOSE": ""})

    assert settings.log_limit == RuntimeSettings().log_limit
    assert settings.verbose is False


@pytest.mark.parametrize(
    ("env", "key"),
    [
        ({"GIT_UNDO_VERBOSE": "maybe"}, "GIT_UNDO_VERBOSE"),
        ({"GIT_UNDO_LOG_LIMIT": "ten"}, "GIT_UNDO_LOG_LIMIT"),
        ({"GIT_UNDO_LOG_LIMIT": "0"}, "GIT_UNDO_LOG_LIMIT"),
    ],
)
def test_invalid_environment_values(tmp_path: Path, env: dict[str, str], key: str) -> None:
    with pytest.raises(ValueError, match=key):
        load_settings(git_dir=tmp_path, env=env)


def test_invalid_config_values(tmp_path: Path) -> None:
    FileManager().write_yaml(config_path(tmp_path), {"log_limit": True})
    with pytest.raises(ValueError, match="log_limit"):
        load_settings(git_dir=tmp_path, env={})

    FileManager().write_yaml(config_path(tmp_path), {"colour": "blue"})
    with pytest.raises(ValueError, match="colour"):
        load_settings(git_dir=tmp_path, env={})


def test_malformed_yaml_is_invalid_input(tmp_path: Path) -> None:
    path = config_path(tmp_path)
    path.parent.mkdir(parents=True)
    path.write_text("log_limit: [unclosed\n", encoding="utf-8")

    with pytest.raises(GitUndoError) as exc_info:
        load_settings(git_dir=tmp_path, env={})

    assert exc_info.value.code == ErrorCode.INVALID_INPUT


def test_non_mapping_yaml_uses_defaults(tmp_path: Path) -> None:
    path = config_path(tmp_path)
    path.parent.mkdir(parents=True)
    path.write_text("- just\n- a list\n", encoding="utf-8")

    assert load_settings(git_dir=tmp_path, env={}) == RuntimeSettings()


def test_atomic_write_replaces_content_and_leaves_no_temp_files(tmp_path: Path) -> None:
    manager = FileManager()
    target = tmp_path / "nested" / "commands"

    manager.write_text_atomic(target, "one\n")
    manager.write_text_atomic(target, "two\n\n  three  \n")

    assert manager.read_text(target) == "two\n\n  three  \n"
    assert manager.read_lines(target) == ["two", "three"]
    assert [path.name for path in target.parent.iterdir()] == ["commands"]


def test_missing_files_read_as_empty(tmp_path: Path) -> None:
    manager = FileManager()

    assert manager.read_text(tmp_path / "absent") == ""
    assert manager.read_lines(tmp_path / "absent") == []
    assert manager.read_yaml(tmp_path / "absent.yaml") == {}
