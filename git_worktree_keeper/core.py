"""Core functionality for git-worktree-keeper"""

import os
import shutil
from pathlib import Path
from typing import List, Optional, Union

from git_worktree_keeper.config import Config
from git_worktree_keeper.exceptions import (
    DetachedHeadError,
    DirtyWorktreeError,
    DuplicateWorktreeError,
    GitOperationError,
    InvalidBranchNameError,
    OrphanedMetadataClearedError,
    PathCollisionError,
    WorktreeNotFoundError,
)
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.models.repository import Repository
from git_worktree_keeper.models.worktree import UpdateResult, Worktree
from git_worktree_keeper.services.git.engine import GitWorktreeEngine, WorktreeEngine
from git_worktree_keeper.services.registry import WorktreeRegistry
from git_worktree_keeper.services.transaction import Step, Transaction, TransactionResult

logger = get_logger(__name__)


class WorktreeKeeper:
    """Lifecycle manager for the worktrees of one repository.

    Every operation re-reads git's worktree list; nothing is remembered
    between calls except the result of the last transaction, which is kept
    for reporting.
    """

    def __init__(
        self,
        repository: Repository,
        config: Union[Config, dict, None] = None,
        engine: Optional[WorktreeEngine] = None,
    ):
        """Initialize WorktreeKeeper.

        Args:
            repository: Repository produced by the RepositoryLocator
            config: Configuration dict or Config object
            engine: Engine to drive (default: git through GitPython)
        """
        self.repository = repository
        if config is None:
            self.config = Config()
        elif isinstance(config, dict):
            self.config = Config.from_dict(config)
        else:
            self.config = config

        self.dry_run = self.config.dry_run
        self.engine = engine or GitWorktreeEngine(repository, self.config.remote_name)
        self.registry = WorktreeRegistry(self.engine)
        self.last_result: Optional[TransactionResult] = None

    # ------------------------------------------------------------------ list
    def list(self) -> List[Worktree]:
        """Return all linked worktrees as git currently reports them."""
        return list(self.registry.list())

    # ------------------------------------------------------------------ create
    def create(self, branch: str, start_point: Optional[str] = None) -> Worktree:
        """Check out ``branch`` into a new worktree under the worktree base.

        Args:
            branch: Branch to check out; created if it does not exist
            start_point: Commit-ish a new branch starts from (default: the
                same-named remote branch, else the configured base branch,
                else HEAD of the main checkout)

        Returns:
            The new worktree

        Raises:
            InvalidBranchNameError: If ``branch`` is not a legal branch name
            DuplicateWorktreeError: If ``branch`` is already checked out
            PathCollisionError: If the target path is already taken
            GitOperationError: If git fails to create the worktree
        """
        branch = branch.strip() if branch else branch
        if not self.engine.is_valid_branch_name(branch):
            raise InvalidBranchNameError(branch)

        existing = self.registry.find_checkout(branch)
        if existing is not None:
            raise DuplicateWorktreeError(branch, existing.path)

        path = self.repository.worktree_path(branch)
        self._check_path_free(branch, path)

        base = self.repository.worktree_base
        base_existed = base.exists()

        # Each step claims one resource; only that step's undo releases it
        steps = [
            Step(
                name=f"create worktree base {base}",
                action=lambda: base.mkdir(parents=True, exist_ok=True),
                undo=None if base_existed else lambda: self._remove_empty_dir(base),
            ),
            Step(
                name=f"claim directory {path}",
                action=lambda: self._claim_directory(branch, path),
                undo=lambda: self._release_directory(path),
            ),
        ]

        if self.engine.branch_exists(branch):
            if start_point:
                logger.warning(f"Branch {branch} already exists; ignoring start point {start_point}")
        else:
            new_start, track = self._resolve_start_point(branch, start_point)
            steps.append(
                Step(
                    name=f"create branch {branch} from {new_start or 'HEAD'}",
                    action=lambda: self.engine.create_branch(branch, new_start, track),
                    undo=lambda: self.engine.delete_branch(branch),
                )
            )

        steps.append(
            Step(
                name=f"add worktree for {branch} at {path}",
                action=lambda: self.engine.create_worktree(str(path), branch),
            )
        )
        result = self._run("create", steps)

        if result.error is not None:
            raise result.error

        if self.dry_run:
            return Worktree(branch=branch, path=str(path))

        created = self.registry.find(branch)
        if created is None:
            # Another process removed it between our two git calls
            raise GitOperationError("worktree add", branch, "worktree disappeared right after creation")
        logger.info(f"Created worktree {created}")
        return created

    def _check_path_free(self, branch: str, path: Path) -> None:
        """Raise PathCollisionError if anything occupies ``path``."""
        if path.resolve() == self.repository.root.resolve():
            raise PathCollisionError(branch, str(path))
        if path.exists() or path.is_symlink():
            raise PathCollisionError(branch, str(path))
        # A worktree whose directory went missing still holds the path in git
        if self.registry.find_path(str(path)) is not None:
            raise PathCollisionError(branch, str(path))

    def _resolve_start_point(self, branch: str, start_point: Optional[str]):
        """Pick where a new branch starts and whether it tracks the remote.

        An explicit start point wins, then a same-named remote branch, then
        the configured base branch, then HEAD.
        """
        if start_point:
            return start_point, False
        if self.engine.remote_branch_exists(branch):
            return f"{self.config.remote_name}/{branch}", True
        return self.config.base_branch, False

    @staticmethod
    def _claim_directory(branch: str, path: Path) -> None:
        """Create the worktree directory, failing if anyone else already has."""
        try:
            path.mkdir()
        except FileExistsError as e:
            raise PathCollisionError(branch, str(path)) from e

    def _release_directory(self, path: Path) -> None:
        """Delete a directory claimed by this create unless git now owns it."""
        if not path.is_dir():
            return
        if self.registry.find_path(str(path)) is not None:
            logger.warning(f"Leaving {path} in place; another worktree is registered there")
            return
        logger.info(f"Removing half-created worktree directory {path}")
        shutil.rmtree(path)

    @staticmethod
    def _remove_empty_dir(path: Path) -> None:
        if path.is_dir() and not any(path.iterdir()):
            path.rmdir()

    # ------------------------------------------------------------------ archive
    def archive(self, branch: str, force: Optional[bool] = None) -> Worktree:
        """Remove the worktree for ``branch``, keeping the branch itself.

        The worktree directory is deleted. Because the branch is kept,
        ``create(branch)`` brings the worktree back.

        Args:
            branch: Branch whose worktree to archive
            force: Archive even with local changes (default: config.force)

        Returns:
            The archived worktree

        Raises:
            WorktreeNotFoundError: If no linked worktree has ``branch``
            DirtyWorktreeError: If there are local changes and not forced
            GitOperationError: If git refuses to remove the worktree
            OrphanedMetadataClearedError: If git forgot the worktree but its
                directory could not be deleted
        """
        if force is None:
            force = self.config.force

        worktree = self.registry.find(branch)
        if worktree is None:
            raise WorktreeNotFoundError(branch)

        if not force and not worktree.is_orphaned:
            state = self.engine.is_dirty(worktree.path)
            if state.is_dirty:
                raise DirtyWorktreeError(branch, state.reasons())

        path = Path(worktree.path)
        if worktree.is_orphaned:
            # remove --force accepts a missing directory and, unlike prune,
            # leaves other stale entries alone
            detach = Step(
                name=f"drop metadata of missing worktree {path}",
                action=lambda: self.engine.remove_worktree(str(path), force=True),
            )
        else:
            detach = Step(
                name=f"detach worktree {path} from git",
                action=lambda: self.engine.remove_worktree(str(path), force=force),
            )

        steps = [
            detach,
            Step(
                name=f"delete directory {path}",
                action=lambda: self._delete_directory(path),
                critical=False,
            ),
        ]
        result = self._run("archive", steps)
        archived = worktree.archived()

        if result.partial:
            raise OrphanedMetadataClearedError(archived, str(result.error)) from result.error
        if result.error is not None:
            raise result.error

        logger.info(f"Archived worktree {archived}")
        return archived

    @staticmethod
    def _delete_directory(path: Path) -> None:
        """Delete whatever git left of a worktree directory."""
        if path.is_symlink():
            path.unlink()
        elif path.exists():
            shutil.rmtree(path)

    # ------------------------------------------------------------------ update
    def update(self, branch: Optional[str] = None) -> UpdateResult:
        """Fast-forward a checkout to its upstream.

        Args:
            branch: Branch whose checkout to update (default: main checkout)

        Returns:
            UpdateResult describing the fast-forward

        Raises:
            WorktreeNotFoundError: If ``branch`` is not checked out anywhere
            DetachedHeadError: If the target checkout has no branch
            NoUpstreamError: If the branch has no upstream
            NonFastForwardError: If local and upstream history diverged
        """
        main = self.registry.main()
        if not branch or branch == main.branch:
            target = main
        else:
            target = self.registry.find(branch)
            if target is None:
                raise WorktreeNotFoundError(branch)

        if target.is_detached:
            raise DetachedHeadError(target.path)
        if target.is_orphaned or not os.path.isdir(target.path):
            raise GitOperationError("update", target.branch, f"worktree directory {target.path} is missing")

        if self.dry_run:
            logger.info(f"[dry-run] update: would fetch and fast-forward {target.branch} at {target.path}")
            return UpdateResult(worktree=target)

        fetch = self.engine.fetch_branch(target.path, target.branch)
        refreshed = self.registry.find_path(target.path) or target
        return UpdateResult(worktree=refreshed, fetch=fetch)

    # ------------------------------------------------------------------ helpers
    def _run(self, name: str, steps: List[Step]) -> TransactionResult:
        transaction = Transaction(name, steps, dry_run=self.dry_run)
        self.last_result = transaction.run()
        return self.last_result
