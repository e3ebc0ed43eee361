"""Worktree engine: the git primitives the lifecycle manager is built on."""

import os
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import git

from git_worktree_keeper.constants import DEFAULT_REMOTE
from git_worktree_keeper.exceptions import (
    EngineUnavailableError,
    GitOperationError,
    NonFastForwardError,
    NoUpstreamError,
)
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.models.repository import Repository
from git_worktree_keeper.models.worktree import DirtyState, FetchResult, Worktree

logger = get_logger(__name__)


class WorktreeEngine(ABC):
    """Capability interface over the version-control engine.

    The lifecycle manager only talks to git through this interface so that
    it can be exercised against a fake without a repository on disk.
    """

    @abstractmethod
    def list_worktrees(self) -> List[Worktree]:
        """List all worktrees, main checkout first, in git's order."""
        ...

    @abstractmethod
    def create_worktree(self, path: str, branch: str, start_point: Optional[str] = None) -> None:
        """Check out ``branch`` into a new worktree at ``path``.

        Creates the branch (from ``start_point`` if given) when it does not
        exist yet.
        """
        ...

    @abstractmethod
    def remove_worktree(self, path: str, force: bool = False) -> None:
        """Detach the worktree at ``path`` from git's bookkeeping."""
        ...

    @abstractmethod
    def fetch_branch(self, path: str, branch: str) -> FetchResult:
        """Fetch ``branch``'s upstream and fast-forward the checkout at ``path``."""
        ...

    @abstractmethod
    def is_dirty(self, path: str) -> DirtyState:
        """Report local changes and unpushed commits in the checkout at ``path``."""
        ...

    @abstractmethod
    def is_valid_branch_name(self, branch: str) -> bool:
        ...

    @abstractmethod
    def branch_exists(self, branch: str) -> bool:
        ...

    @abstractmethod
    def remote_branch_exists(self, branch: str) -> bool:
        """True if the configured remote has ``branch``."""
        ...

    @abstractmethod
    def create_branch(self, branch: str, start_point: Optional[str] = None, track: bool = False) -> None:
        """Create local ``branch`` at ``start_point`` (default: HEAD).

        Fails if the branch already exists.
        """
        ...

    @abstractmethod
    def delete_branch(self, branch: str) -> None:
        ...

    @abstractmethod
    def prune_worktrees(self) -> None:
        """Drop git metadata for worktrees whose directories are gone."""
        ...


def _describe_git_error(e: git.exc.GitCommandError, action: str) -> str:
    """Build a readable message from a GitCommandError."""
    stderr = (e.stderr if hasattr(e, "stderr") else str(e)).strip()
    status = e.status if hasattr(e, "status") else "unknown"

    # GitPython wraps stderr as "stderr: '...'"
    if stderr.startswith("stderr:"):
        stderr = stderr[len("stderr:"):].strip().strip("'").strip()

    if stderr:
        return f"{action} failed (exit {status}): {stderr}"
    return f"{action} failed with exit code {status}"


def parse_worktree_porcelain(output: str) -> List[Worktree]:
    """Parse ``git worktree list --porcelain`` output.

    Format:
        worktree /path/to/worktree
        HEAD commit_sha
        branch refs/heads/branch-name
        (blank line between worktrees)
    """
    worktrees: List[Worktree] = []
    current: Dict[str, Any] = {}

    def flush():
        path = current.get("path", "")
        if not path:
            return
        is_orphaned = current.get("prunable", False) or not os.path.exists(path)
        worktrees.append(
            Worktree(
                branch=current.get("branch", ""),
                path=path,
                commit_sha=current.get("HEAD", ""),
                # First worktree in list is always the main one
                is_main=not worktrees,
                is_orphaned=is_orphaned,
                is_locked=current.get("locked", False),
            )
        )

    for line in output.split("\n"):
        # Paths may start or end with spaces, so only the line ending goes
        line = line.rstrip("\r")

        if not line.strip():
            flush()
            current = {}
            continue

        if line.startswith("worktree "):
            current["path"] = line[len("worktree "):]
        elif line.startswith("HEAD "):
            current["HEAD"] = line.split(" ", 1)[1]
        elif line.startswith("branch "):
            branch_ref = line.split(" ", 1)[1]
            if branch_ref.startswith("refs/heads/"):
                current["branch"] = branch_ref[len("refs/heads/"):]
            else:
                current["branch"] = ""
        elif line == "detached":
            current["branch"] = ""
        elif line == "locked" or line.startswith("locked "):
            current["locked"] = True
        elif line == "prunable" or line.startswith("prunable "):
            current["prunable"] = True

    # Handle last entry if no trailing blank line
    flush()
    return worktrees


class GitWorktreeEngine(WorktreeEngine):
    """WorktreeEngine backed by the git command line through GitPython."""

    def __init__(self, repository: Repository, remote_name: str = DEFAULT_REMOTE):
        """Initialize the engine.

        Args:
            repository: Repository to operate on
            remote_name: Remote new branches are looked up on
        """
        self.repository = repository
        self.repo_path = str(repository.root)
        self.remote_name = remote_name

    def _get_repo(self):
        """Get a fresh git.Repo instance for the main checkout.

        GitPython repos are lightweight - they don't clone, just open the existing repo.
        """
        try:
            return git.Repo(self.repo_path)
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as e:
            raise EngineUnavailableError("open repository", str(e)) from e

    def _run_in(self, path: str, *args: str) -> str:
        """Run a git command inside another checkout."""
        repo = self._get_repo()
        try:
            return repo.git.execute(["git", "-C", path, *args])
        finally:
            repo.close()

    def _ref_exists(self, ref: str) -> bool:
        repo = self._get_repo()
        try:
            repo.git.show_ref("--verify", "--quiet", ref)
            return True
        except git.exc.GitCommandError:
            return False
        finally:
            repo.close()

    def _is_ancestor(self, path: str, ancestor: str, descendant: str) -> bool:
        """Check ancestry with merge-base, which exits 1 for "no"."""
        try:
            self._run_in(path, "merge-base", "--is-ancestor", ancestor, descendant)
            return True
        except git.exc.GitCommandError as e:
            if getattr(e, "status", None) == 1:
                return False
            raise EngineUnavailableError("merge-base", _describe_git_error(e, "git merge-base")) from e

    def list_worktrees(self) -> List[Worktree]:
        repo = self._get_repo()
        try:
            output = repo.git.worktree("list", "--porcelain")
        except git.exc.GitCommandError as e:
            raise EngineUnavailableError("worktree list", _describe_git_error(e, "git worktree list")) from e
        finally:
            repo.close()

        worktrees = parse_worktree_porcelain(output)
        logger.debug(f"Found {len(worktrees)} worktrees")
        for wt in worktrees:
            logger.debug(f"  {wt}")
        return worktrees

    def create_worktree(self, path: str, branch: str, start_point: Optional[str] = None) -> None:
        if self.branch_exists(branch):
            if start_point:
                logger.warning(f"Branch {branch} already exists; ignoring start point {start_point}")
            args = ["add", path, branch]
        elif start_point:
            args = ["add", "-b", branch, path, start_point]
        elif self.remote_branch_exists(branch):
            args = ["add", "--track", "-b", branch, path, f"{self.remote_name}/{branch}"]
        else:
            args = ["add", "-b", branch, path]

        repo = self._get_repo()
        try:
            logger.debug(f"git worktree {' '.join(args)}")
            repo.git.worktree(*args)
        except git.exc.GitCommandError as e:
            error_msg = _describe_git_error(e, "git worktree add")
            logger.error(f"Failed to create worktree at {path}: {error_msg}")
            raise GitOperationError("worktree add", branch, error_msg) from e
        finally:
            repo.close()
        logger.info(f"Created worktree at {path} for branch {branch}")

    def remove_worktree(self, path: str, force: bool = False) -> None:
        args = ["remove", path]
        if force:
            args.append("--force")

        repo = self._get_repo()
        try:
            repo.git.worktree(*args)
        except git.exc.GitCommandError as e:
            error_msg = _describe_git_error(e, "git worktree remove")
            logger.error(f"Failed to remove worktree at {path}: {error_msg}")
            raise GitOperationError("worktree remove", message=error_msg) from e
        finally:
            repo.close()
        logger.info(f"Removed worktree at {path}")

    def prune_worktrees(self) -> None:
        repo = self._get_repo()
        try:
            repo.git.worktree("prune")
        except git.exc.GitCommandError as e:
            error_msg = _describe_git_error(e, "git worktree prune")
            logger.error(f"Failed to prune worktrees: {error_msg}")
            raise GitOperationError("worktree prune", message=error_msg) from e
        finally:
            repo.close()
        logger.info("Pruned orphaned worktree metadata")

    def is_valid_branch_name(self, branch: str) -> bool:
        if not branch or branch.startswith("-"):
            return False
        repo = self._get_repo()
        try:
            # --branch expands shorthands like @{-1}; only accept literal names
            return repo.git.check_ref_format("--branch", branch) == branch
        except git.exc.GitCommandError:
            return False
        finally:
            repo.close()

    def branch_exists(self, branch: str) -> bool:
        return self._ref_exists(f"refs/heads/{branch}")

    def remote_branch_exists(self, branch: str) -> bool:
        return self._ref_exists(f"refs/remotes/{self.remote_name}/{branch}")

    def create_branch(self, branch: str, start_point: Optional[str] = None, track: bool = False) -> None:
        args = ["--track", branch] if track else [branch]
        if start_point:
            args.append(start_point)

        repo = self._get_repo()
        try:
            logger.debug(f"git branch {' '.join(args)}")
            repo.git.branch(*args)
        except git.exc.GitCommandError as e:
            error_msg = _describe_git_error(e, "git branch")
            logger.error(f"Failed to create branch {branch}: {error_msg}")
            raise GitOperationError("create_branch", branch, error_msg) from e
        finally:
            repo.close()
        logger.info(f"Created branch {branch} from {start_point or 'HEAD'}")

    def delete_branch(self, branch: str) -> None:
        repo = self._get_repo()
        try:
            repo.git.branch("-D", branch)
        except git.exc.GitCommandError as e:
            raise GitOperationError("delete_branch", branch, _describe_git_error(e, "git branch -D")) from e
        finally:
            repo.close()
        logger.info(f"Deleted branch {branch}")

    def is_dirty(self, path: str) -> DirtyState:
        if not os.path.exists(path):
            logger.debug(f"Worktree path {path} doesn't exist (orphaned)")
            return DirtyState()

        try:
            status = self._run_in(path, "status", "--porcelain")
        except git.exc.GitCommandError as e:
            raise EngineUnavailableError("status", _describe_git_error(e, "git status")) from e

        # Parse porcelain format: XY filename
        # X = index status (first char), Y = working tree status (second char)
        state = DirtyState()
        for line in status.split("\n"):
            if len(line) < 2:
                continue
            if line.startswith("??"):
                state.untracked = True
                continue
            if line[0] != " ":
                state.staged = True
            if line[1] != " ":
                state.modified = True

        try:
            ahead = self._run_in(path, "rev-list", "--count", "@{upstream}..HEAD")
            state.unpushed = int(ahead.strip() or 0)
        except git.exc.GitCommandError:
            # No upstream configured; nothing can be unpushed relative to it
            state.unpushed = 0

        return state

    def head_commit(self, path: str) -> str:
        try:
            return self._run_in(path, "rev-parse", "HEAD").strip()
        except git.exc.GitCommandError as e:
            raise EngineUnavailableError("rev-parse", _describe_git_error(e, "git rev-parse")) from e

    def fetch_branch(self, path: str, branch: str) -> FetchResult:
        try:
            upstream = self._run_in(
                path, "rev-parse", "--abbrev-ref", "--symbolic-full-name", f"{branch}@{{upstream}}"
            ).strip()
        except git.exc.GitCommandError as e:
            raise NoUpstreamError(branch) from e

        try:
            remote = self._run_in(path, "config", "--get", f"branch.{branch}.remote").strip()
        except git.exc.GitCommandError:
            remote = ""

        # "." means the upstream is a local branch; nothing to fetch
        if remote and remote != ".":
            try:
                logger.info(f"Fetching {remote} for {branch}")
                self._run_in(path, "fetch", remote)
            except git.exc.GitCommandError as e:
                raise GitOperationError("fetch", branch, _describe_git_error(e, "git fetch")) from e

        old_sha = self.head_commit(path)
        try:
            upstream_sha = self._run_in(path, "rev-parse", upstream).strip()
        except git.exc.GitCommandError as e:
            raise EngineUnavailableError("rev-parse", _describe_git_error(e, "git rev-parse")) from e

        if old_sha == upstream_sha or self._is_ancestor(path, upstream_sha, old_sha):
            logger.info(f"{branch} is up to date with {upstream}")
            return FetchResult(branch=branch, upstream=upstream, old_sha=old_sha, new_sha=old_sha)

        if not self._is_ancestor(path, old_sha, upstream_sha):
            raise NonFastForwardError(branch, upstream)

        try:
            commits = int(self._run_in(path, "rev-list", "--count", f"{old_sha}..{upstream_sha}").strip() or 0)
            self._run_in(path, "merge", "--ff-only", upstream_sha)
        except git.exc.GitCommandError as e:
            raise GitOperationError("fast-forward", branch, _describe_git_error(e, "git merge --ff-only")) from e

        logger.info(f"Fast-forwarded {branch} by {commits} commit(s) to {upstream_sha[:7]}")
        return FetchResult(
            branch=branch,
            upstream=upstream,
            old_sha=old_sha,
            new_sha=upstream_sha,
            commits=commits,
        )
