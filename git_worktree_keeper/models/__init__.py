"""Data models for git-worktree-keeper."""

from .repository import Repository, sanitize_branch_name
from .worktree import DirtyState, FetchResult, UpdateResult, Worktree, WorktreeStatus

__all__ = [
    "Repository",
    "sanitize_branch_name",
    "DirtyState",
    "FetchResult",
    "UpdateResult",
    "Worktree",
    "WorktreeStatus",
]
