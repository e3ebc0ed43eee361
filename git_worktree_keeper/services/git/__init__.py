"""Git-related services for git-worktree-keeper."""

from .engine import GitWorktreeEngine, WorktreeEngine, parse_worktree_porcelain

__all__ = [
    "GitWorktreeEngine",
    "WorktreeEngine",
    "parse_worktree_porcelain",
]
