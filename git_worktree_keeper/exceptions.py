"""Custom exceptions for git-worktree-keeper"""

from typing import List, Optional, TYPE_CHECKING

from git_worktree_keeper.constants import EXIT_ERROR, EXIT_PARTIAL

if TYPE_CHECKING:
    from git_worktree_keeper.models.worktree import Worktree


class WorktreeKeeperError(Exception):
    """Base exception for all git-worktree-keeper errors."""

    exit_code = EXIT_ERROR


class ConfigError(WorktreeKeeperError):
    """Exception raised for invalid configuration or config files."""
    pass


class NotARepositoryError(WorktreeKeeperError):
    """Exception raised when no enclosing git repository can be found."""

    def __init__(self, path: str, message: Optional[str] = None):
        self.path = path
        error_msg = f"Not inside a git repository: {path}"
        if message:
            error_msg += f" ({message})"
        super().__init__(error_msg)


class EngineUnavailableError(WorktreeKeeperError):
    """Exception raised when git cannot be queried or invoked."""

    def __init__(self, operation: str, message: Optional[str] = None):
        self.operation = operation
        self.message = message

        error_msg = f"Unable to query git for '{operation}'"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class GitOperationError(WorktreeKeeperError):
    """Exception raised for errors in Git operations."""

    def __init__(self, operation: str, branch: Optional[str] = None, message: Optional[str] = None):
        self.operation = operation
        self.branch = branch
        self.message = message

        error_msg = f"Git operation '{operation}' failed"
        if branch:
            error_msg += f" for branch '{branch}'"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class DetachedHeadError(GitOperationError):
    """Exception raised when a checkout to update is in detached HEAD state."""

    def __init__(self, path: Optional[str] = None):
        self.path = path
        message = "Checkout is in detached HEAD state"
        if path:
            message += f" at {path}"
        super().__init__("update", message=message)


class InvalidBranchNameError(WorktreeKeeperError):
    """Exception raised when a branch name is not a legal git ref name."""

    def __init__(self, branch: str):
        self.branch = branch
        super().__init__(f"'{branch}' is not a valid branch name")


class DuplicateWorktreeError(WorktreeKeeperError):
    """Exception raised when a branch is already checked out somewhere."""

    def __init__(self, branch: str, path: str):
        self.branch = branch
        self.path = path
        super().__init__(f"Branch '{branch}' is already checked out at {path}")


class PathCollisionError(WorktreeKeeperError):
    """Exception raised when the target worktree path is already occupied."""

    def __init__(self, branch: str, path: str):
        self.branch = branch
        self.path = path
        super().__init__(
            f"Cannot create worktree for '{branch}': {path} already exists"
        )


class WorktreeNotFoundError(WorktreeKeeperError):
    """Exception raised when no worktree is checked out for a branch."""

    def __init__(self, branch: str):
        self.branch = branch
        super().__init__(f"No worktree found for branch '{branch}'")


class DirtyWorktreeError(WorktreeKeeperError):
    """Exception raised when archiving a worktree with local changes."""

    def __init__(self, branch: str, reasons: List[str]):
        self.branch = branch
        self.reasons = reasons
        super().__init__(
            f"Worktree for '{branch}' has {', '.join(reasons)}; "
            "commit or push them first, or use --force"
        )


class NonFastForwardError(WorktreeKeeperError):
    """Exception raised when an update would need a merge or rebase."""

    def __init__(self, branch: str, upstream: str):
        self.branch = branch
        self.upstream = upstream
        super().__init__(
            f"Branch '{branch}' has diverged from '{upstream}' and cannot be fast-forwarded"
        )


class NoUpstreamError(WorktreeKeeperError):
    """Exception raised when updating a branch without an upstream."""

    def __init__(self, branch: str):
        self.branch = branch
        super().__init__(f"Branch '{branch}' has no upstream branch to update from")


class OrphanedMetadataClearedError(WorktreeKeeperError):
    """Exception raised when git forgot a worktree but its directory is left behind.

    The worktree is already unusable from git's point of view, so this is a
    partial success rather than a failure.
    """

    exit_code = EXIT_PARTIAL

    def __init__(self, worktree: "Worktree", message: Optional[str] = None):
        self.worktree = worktree
        self.message = message

        error_msg = (
            f"Worktree for '{worktree.branch}' was archived, but {worktree.path} "
            "could not be removed; delete it manually"
        )
        if message:
            error_msg += f" ({message})"

        super().__init__(error_msg)
