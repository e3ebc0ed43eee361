"""Repository discovery for git-worktree-keeper."""

import os
from pathlib import Path
from typing import Optional, Union

import git

from git_worktree_keeper.constants import WORKTREE_BASE_SUFFIX
from git_worktree_keeper.exceptions import EngineUnavailableError, NotARepositoryError
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.models.repository import Repository

logger = get_logger(__name__)


class RepositoryLocator:
    """Finds the enclosing repository and where its worktrees live."""

    def __init__(self, base_path: Optional[str] = None):
        """Initialize the locator.

        Args:
            base_path: Worktree base directory override. Relative paths are
                resolved against the main checkout.
        """
        self.base_path = base_path

    def locate(self, start: Optional[Union[str, Path]] = None) -> Repository:
        """Determine the repository enclosing ``start``.

        Works from the main checkout, a subdirectory, or inside any linked
        worktree; the returned root is always the main checkout.

        Args:
            start: Directory to search from (default: current directory)

        Returns:
            Repository for the main checkout

        Raises:
            NotARepositoryError: If no repository encloses ``start``
        """
        start_path = Path(start) if start is not None else Path(os.getcwd())

        try:
            repo = git.Repo(start_path, search_parent_directories=True)
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as e:
            raise NotARepositoryError(str(start_path)) from e

        try:
            if repo.bare:
                raise NotARepositoryError(str(start_path), "bare repositories have no main checkout")

            root = self._main_checkout(repo)
            git_dir = Path(repo.common_dir).resolve()
        finally:
            repo.close()

        worktree_base = self._worktree_base(root)
        logger.debug(f"Repository root {root}, worktree base {worktree_base}")
        return Repository(root=root, worktree_base=worktree_base, git_dir=git_dir)

    def _main_checkout(self, repo: git.Repo) -> Path:
        """Return the main working tree, which git always lists first."""
        try:
            output = repo.git.worktree("list", "--porcelain")
        except git.exc.GitCommandError as e:
            stderr = (e.stderr if hasattr(e, "stderr") else str(e)).strip()
            raise EngineUnavailableError("worktree list", stderr) from e

        # Only the first block matters; it ends at the first blank line
        main_path = None
        for line in output.split("\n"):
            line = line.strip()
            if not line:
                break
            if line == "bare":
                # Linked worktree of a bare repository
                raise NotARepositoryError(repo.git_dir, "bare repositories have no main checkout")
            if line.startswith("worktree "):
                main_path = line.split(" ", 1)[1]

        if main_path is None:
            return Path(repo.working_tree_dir).resolve()
        return Path(main_path).resolve()

    def _worktree_base(self, root: Path) -> Path:
        """Compute the directory managed worktrees are created in."""
        if self.base_path:
            base = Path(self.base_path).expanduser()
            if not base.is_absolute():
                base = root / base
            return base.resolve()
        return root.parent / f"{root.name}{WORKTREE_BASE_SUFFIX}"
