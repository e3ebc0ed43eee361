"""Pytest fixtures for git-worktree-keeper tests"""
import shutil
import tempfile
from pathlib import Path
from typing import Dict, List, Optional

import git
import pytest

from git_worktree_keeper.exceptions import (
    EngineUnavailableError,
    GitOperationError,
    NonFastForwardError,
)
from git_worktree_keeper.models.repository import Repository
from git_worktree_keeper.models.worktree import DirtyState, FetchResult, Worktree
from git_worktree_keeper.services.git.engine import WorktreeEngine
from git_worktree_keeper.services.locator import RepositoryLocator


def configure_user(repo: git.Repo) -> None:
    """Configure git user for commits."""
    with repo.config_writer() as writer:
        writer.set_value("user", "name", "Test User")
        writer.set_value("user", "email", "test@example.com")


def commit_file(checkout: Path, name: str, content: str, message: str) -> str:
    """Write a file in a checkout, commit it and return the new HEAD sha."""
    (checkout / name).write_text(content)
    repo = git.Repo(checkout)
    try:
        repo.git.add(name)
        repo.git.commit("-m", message)
        return repo.git.rev_parse("HEAD")
    finally:
        repo.close()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture(autouse=True)
def isolated_home(temp_dir, monkeypatch):
    """Keep the per-user config file and log out of the real home directory."""
    home = temp_dir / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture
def git_repo(temp_dir):
    """Create a real Git repository with one commit on main."""
    repo_path = temp_dir / "test_repo"
    repo_path.mkdir()

    repo = git.Repo.init(repo_path)
    configure_user(repo)

    (repo_path / "README.md").write_text("# Test Repository\n")
    repo.git.add("README.md")
    repo.git.commit("-m", "Initial commit")
    repo.git.branch("-M", "main")

    yield repo

    repo.close()


@pytest.fixture
def git_repo_with_remote(git_repo, temp_dir):
    """Repository whose main branch tracks a bare 'origin' remote."""
    origin_path = temp_dir / "origin.git"
    git.Repo.init(origin_path, bare=True).close()

    git_repo.create_remote("origin", str(origin_path))
    git_repo.git.push("-u", "origin", "main")

    yield git_repo


@pytest.fixture
def other_clone(git_repo_with_remote, temp_dir):
    """A second clone of origin, used to push commits 'from someone else'."""
    clone_path = temp_dir / "other_clone"
    clone = git.Repo.clone_from(str(temp_dir / "origin.git"), str(clone_path), branch="main")
    configure_user(clone)

    yield clone

    clone.close()


@pytest.fixture
def repository(git_repo):
    """Repository value for the test repo, as the locator produces it."""
    return RepositoryLocator().locate(git_repo.working_dir)


@pytest.fixture
def mock_config():
    """Create a configuration dictionary."""
    return {
        "verbose": False,
        "debug": False,
        "dry_run": False,
        "force": False,
        "base_branch": None,
        "base_path": None,
    }


class FakeWorktreeEngine(WorktreeEngine):
    """In-memory engine that still creates and deletes real directories.

    Failure switches let tests drive the lifecycle manager through each
    partial-failure path without a real repository.
    """

    def __init__(self, root: Path):
        self.root = root
        self.worktrees: List[Worktree] = [Worktree(branch="main", path=str(root), commit_sha="a" * 40, is_main=True)]
        self.branches = {"main"}
        self.remote_branches: set = set()
        self.dirty: Dict[str, DirtyState] = {}
        self.fetch_results: Dict[str, FetchResult] = {}
        self.diverged: set = set()
        self.calls: List[tuple] = []

        self.fail_create = False
        self.fail_create_branch = False
        self.half_create_on_failure = False
        self.fail_remove = False
        self.leave_directory_on_remove = False
        self.unavailable = False

    def list_worktrees(self) -> List[Worktree]:
        self.calls.append(("list",))
        if self.unavailable:
            raise EngineUnavailableError("worktree list", "fatal: not a git repository")
        return list(self.worktrees)

    def create_worktree(self, path: str, branch: str, start_point: Optional[str] = None) -> None:
        self.calls.append(("create", path, branch, start_point))
        if self.fail_create:
            if self.half_create_on_failure:
                Path(path).mkdir(parents=True, exist_ok=True)
                (Path(path) / "README.md").write_text("partial checkout\n")
            raise GitOperationError("worktree add", branch, "simulated failure")
        self.branches.add(branch)
        Path(path).mkdir(parents=True, exist_ok=True)
        self.worktrees.append(Worktree(branch=branch, path=path, commit_sha="b" * 40))

    def remove_worktree(self, path: str, force: bool = False) -> None:
        self.calls.append(("remove", path, force))
        if self.fail_remove:
            raise GitOperationError("worktree remove", message="simulated failure")
        self.worktrees = [wt for wt in self.worktrees if wt.path != path]
        if not self.leave_directory_on_remove:
            shutil.rmtree(path, ignore_errors=True)

    def fetch_branch(self, path: str, branch: str) -> FetchResult:
        self.calls.append(("fetch", path, branch))
        if branch in self.diverged:
            raise NonFastForwardError(branch, f"origin/{branch}")
        return self.fetch_results.get(
            branch,
            FetchResult(branch=branch, upstream=f"origin/{branch}", old_sha="a" * 40, new_sha="a" * 40),
        )

    def is_dirty(self, path: str) -> DirtyState:
        self.calls.append(("is_dirty", path))
        return self.dirty.get(path, DirtyState())

    def is_valid_branch_name(self, branch: str) -> bool:
        return bool(branch) and " " not in branch and ".." not in branch and not branch.startswith("-")

    def branch_exists(self, branch: str) -> bool:
        return branch in self.branches

    def remote_branch_exists(self, branch: str) -> bool:
        return branch in self.remote_branches

    def create_branch(self, branch: str, start_point: Optional[str] = None, track: bool = False) -> None:
        self.calls.append(("create_branch", branch, start_point, track))
        if self.fail_create_branch or branch in self.branches:
            raise GitOperationError("create_branch", branch, "simulated failure")
        self.branches.add(branch)

    def delete_branch(self, branch: str) -> None:
        self.calls.append(("delete_branch", branch))
        self.branches.discard(branch)

    def prune_worktrees(self) -> None:
        self.calls.append(("prune",))
        self.worktrees = [wt for wt in self.worktrees if wt.is_main or Path(wt.path).exists()]


@pytest.fixture
def fake_repository(temp_dir):
    """Repository value pointing at a plain directory (no git needed)."""
    root = temp_dir / "fake_repo"
    root.mkdir()
    return Repository(root=root, worktree_base=temp_dir / "fake_repo.worktrees", git_dir=root / ".git")


@pytest.fixture
def fake_engine(fake_repository):
    """FakeWorktreeEngine bound to the fake repository."""
    return FakeWorktreeEngine(fake_repository.root)
