"""Worktree data models."""

from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional


class WorktreeStatus(Enum):
    """Lifecycle status of a worktree."""
    ACTIVE = "active"
    ARCHIVED = "archived"


@dataclass(frozen=True)
class Worktree:
    """A checkout of one branch, as reported by git."""

    branch: str  # Empty for a detached HEAD
    path: str
    status: WorktreeStatus = WorktreeStatus.ACTIVE
    commit_sha: str = ""
    is_main: bool = False  # Is this the main working tree?
    is_orphaned: bool = False  # Directory missing?
    is_locked: bool = False

    @property
    def is_detached(self) -> bool:
        return not self.branch

    def archived(self) -> "Worktree":
        """Return a copy of this worktree marked as archived."""
        return replace(self, status=WorktreeStatus.ARCHIVED)

    def __str__(self) -> str:
        """String representation of worktree."""
        main_marker = " (main)" if self.is_main else ""
        orphan_marker = " orphaned" if self.is_orphaned else ""
        name = self.branch or "(detached)"
        return f"{name} @ {self.path}{main_marker} [{self.status.value}{orphan_marker}]"


@dataclass
class DirtyState:
    """Local state that would be lost by removing a worktree."""

    modified: bool = False
    staged: bool = False
    untracked: bool = False
    unpushed: int = 0  # Commits ahead of upstream

    @property
    def is_dirty(self) -> bool:
        return self.modified or self.staged or self.untracked or self.unpushed > 0

    def reasons(self) -> List[str]:
        """Human-readable list of what makes the worktree dirty."""
        reasons = []
        if self.modified:
            reasons.append("modified files")
        if self.staged:
            reasons.append("staged files")
        if self.untracked:
            reasons.append("untracked files")
        if self.unpushed:
            noun = "commit" if self.unpushed == 1 else "commits"
            reasons.append(f"{self.unpushed} unpushed {noun}")
        return reasons


@dataclass
class FetchResult:
    """Outcome of fetching and fast-forwarding a branch."""

    branch: str
    upstream: str
    old_sha: str
    new_sha: str
    commits: int = 0

    @property
    def changed(self) -> bool:
        return self.old_sha != self.new_sha


@dataclass
class UpdateResult:
    """Outcome of an Update operation."""

    worktree: Worktree
    fetch: Optional[FetchResult] = None  # None in dry-run mode
