"""Repository data model."""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Repository:
    """The git repository whose worktrees are managed.

    Produced once by the repository locator and handed to everything that
    needs to know which repository it is working on.
    """

    root: Path  # Main checkout
    worktree_base: Path  # Directory holding managed worktrees
    git_dir: Path  # Common git directory shared by all worktrees

    def worktree_path(self, branch: str) -> Path:
        """Path a managed worktree for ``branch`` lives at."""
        return self.worktree_base / sanitize_branch_name(branch)

    def is_managed_path(self, path: str) -> bool:
        """True if ``path`` lies directly under the worktree base."""
        return Path(path).resolve().parent == self.worktree_base.resolve()


def sanitize_branch_name(branch: str) -> str:
    """Turn a branch name into a single directory name.

    Slashes in branch names (e.g. feat/branch-name) would otherwise create
    nested directories.
    """
    return branch.replace("/", "-")
