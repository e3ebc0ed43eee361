"""Shared constants for git-worktree-keeper."""

from dataclasses import dataclass
from typing import List


@dataclass
class ColumnDefinition:
    """Definition of a table column."""

    key: str
    label: str
    width: int = 0  # 0 means auto-width


COLUMNS: List[ColumnDefinition] = [
    ColumnDefinition("branch", "Branch", 30),
    ColumnDefinition("path", "Path", 0),
    ColumnDefinition("status", "Status", 10),
    ColumnDefinition("commit", "Commit", 9),
    ColumnDefinition("notes", "Notes", 20),
]


# Process exit codes
EXIT_OK = 0
EXIT_ERROR = 1
EXIT_USAGE = 2
EXIT_PARTIAL = 3
EXIT_INTERRUPTED = 130


# Per-user state directory (config file and debug log)
APP_DIR_NAME = ".git-worktree-keeper"
CONFIG_FILE_NAME = "config.json"
LOG_FILE_NAME = "git-worktree-keeper.log"

# Suffix of the sibling directory holding a repository's worktrees
WORKTREE_BASE_SUFFIX = ".worktrees"

DEFAULT_REMOTE = "origin"


# Style types for worktree rows
class WorktreeStyleType:
    """Style types for worktrees."""

    ACTIVE = "active"
    ARCHIVED = "archived"
    ORPHANED = "orphaned"
    UNMANAGED = "unmanaged"


CLI_COLORS = {
    WorktreeStyleType.ACTIVE: None,  # Default color
    WorktreeStyleType.ARCHIVED: "dim",
    WorktreeStyleType.ORPHANED: "yellow",  # Directory missing
    WorktreeStyleType.UNMANAGED: "cyan",  # Lives outside the worktree base
}


NOTE_ORPHANED = "[ORPHANED]"
NOTE_LOCKED = "[LOCKED]"
NOTE_DETACHED = "[DETACHED]"
NOTE_UNMANAGED = "[EXTERNAL]"
