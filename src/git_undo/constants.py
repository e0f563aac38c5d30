"""Project-wide constants for git-undo."""

PROGRAM_NAME = "git"
UNDO_APP_NAME = "git-undo"
BACK_APP_NAME = "git-back"

LOG_DIR_NAME = "git-undo"
LOG_FILE_NAME = "commands"
CONFIG_FILE_NAME = "config.yaml"

LOG_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
UNDONE_MARKER = "#"
UNKNOWN_REF = "unknown"

DEFAULT_LOG_LIMIT = 100
SHORT_HASH_LENGTH = 8
