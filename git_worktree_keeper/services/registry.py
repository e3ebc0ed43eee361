"""Read-through view of git's worktree list."""

from pathlib import Path
from typing import Iterator, Optional

from git_worktree_keeper.exceptions import EngineUnavailableError
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.models.worktree import Worktree
from git_worktree_keeper.services.git.engine import WorktreeEngine

logger = get_logger(__name__)


class WorktreeListing:
    """Lazy, restartable sequence of linked worktrees.

    Every iteration asks git again, so two iterations only differ if the
    repository changed in between.
    """

    def __init__(self, engine: WorktreeEngine):
        self._engine = engine

    def __iter__(self) -> Iterator[Worktree]:
        for worktree in self._engine.list_worktrees():
            if not worktree.is_main:
                yield worktree


class WorktreeRegistry:
    """Normalized view over git's own worktree bookkeeping.

    Nothing is cached: git's list is the single source of truth.
    """

    def __init__(self, engine: WorktreeEngine):
        """Initialize the registry.

        Args:
            engine: Engine to read worktrees from
        """
        self.engine = engine

    def list(self) -> WorktreeListing:
        """All linked worktrees (main checkout excluded) in git's order."""
        return WorktreeListing(self.engine)

    def main(self) -> Worktree:
        """The main checkout."""
        for worktree in self.engine.list_worktrees():
            if worktree.is_main:
                return worktree
        raise EngineUnavailableError("worktree list", "git did not report a main worktree")

    def find(self, branch: str) -> Optional[Worktree]:
        """Find the linked worktree that has ``branch`` checked out."""
        if not branch:
            return None
        worktree = next((wt for wt in self.list() if wt.branch == branch), None)
        if worktree is None:
            logger.debug(f"No linked worktree has {branch} checked out")
        return worktree

    def find_checkout(self, branch: str) -> Optional[Worktree]:
        """Find any checkout of ``branch``, including the main checkout."""
        if not branch:
            return None
        return next((wt for wt in self.engine.list_worktrees() if wt.branch == branch), None)

    def find_path(self, path: str) -> Optional[Worktree]:
        """Find the worktree registered at ``path``."""
        target = Path(path).resolve()
        return next(
            (wt for wt in self.engine.list_worktrees() if Path(wt.path).resolve() == target),
            None,
        )
