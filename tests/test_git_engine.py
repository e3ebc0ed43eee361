"""Tests for the git worktree engine"""
import shutil
from pathlib import Path
from unittest.mock import patch

import git
import pytest

from git_worktree_keeper.exceptions import EngineUnavailableError, GitOperationError
from git_worktree_keeper.services.git.engine import GitWorktreeEngine, parse_worktree_porcelain


PORCELAIN = """worktree /repo
HEAD 1111111111111111111111111111111111111111
branch refs/heads/main

worktree /repo.worktrees/feature-x
HEAD 2222222222222222222222222222222222222222
branch refs/heads/feature-x
locked reason here

worktree /repo.worktrees/detached
HEAD 3333333333333333333333333333333333333333
detached
prunable gitdir file points to non-existent location
"""


class TestParsePorcelain:
    """Test parsing of `git worktree list --porcelain`."""

    def test_parses_entries_in_order(self):
        worktrees = parse_worktree_porcelain(PORCELAIN)

        assert [wt.path for wt in worktrees] == [
            "/repo",
            "/repo.worktrees/feature-x",
            "/repo.worktrees/detached",
        ]
        assert [wt.is_main for wt in worktrees] == [True, False, False]

    def test_branch_and_flags(self):
        main, feature, detached = parse_worktree_porcelain(PORCELAIN)

        assert main.branch == "main"
        assert feature.branch == "feature-x"
        assert feature.is_locked
        assert feature.commit_sha.startswith("2222")
        assert detached.branch == ""
        assert detached.is_detached
        assert detached.is_orphaned

    def test_last_entry_without_trailing_blank_line(self):
        worktrees = parse_worktree_porcelain("worktree /repo\nHEAD abc\nbranch refs/heads/main")
        assert len(worktrees) == 1
        assert worktrees[0].branch == "main"

    def test_path_with_surrounding_spaces(self):
        output = "worktree /repo\nHEAD abc\nbranch refs/heads/main\n\nworktree /trees/ odd name \nHEAD def\ndetached\n"
        worktrees = parse_worktree_porcelain(output)
        assert worktrees[1].path == "/trees/ odd name "

    def test_empty_output(self):
        assert parse_worktree_porcelain("") == []


@pytest.fixture
def engine(repository):
    return GitWorktreeEngine(repository)


class TestGitWorktreeEngine:
    """Test the engine against a real repository."""

    def test_list_worktrees_main_only(self, engine, repository):
        worktrees = engine.list_worktrees()

        assert len(worktrees) == 1
        assert worktrees[0].is_main
        assert Path(worktrees[0].path).resolve() == repository.root
        assert worktrees[0].branch == "main"

    def test_create_and_remove(self, engine, repository):
        path = str(repository.worktree_base / "feature-x")

        engine.create_worktree(path, "feature-x")
        assert engine.branch_exists("feature-x")
        assert [wt.branch for wt in engine.list_worktrees()] == ["main", "feature-x"]

        engine.remove_worktree(path)
        assert [wt.branch for wt in engine.list_worktrees()] == ["main"]
        assert not Path(path).exists()

    def test_create_failure_raises_git_operation_error(self, engine, repository):
        with pytest.raises(GitOperationError, match="worktree add"):
            engine.create_worktree(str(repository.worktree_base / "x"), "x", "no-such-ref")

    def test_remove_unknown_path(self, engine, repository):
        with pytest.raises(GitOperationError):
            engine.remove_worktree(str(repository.worktree_base / "missing"))

    @pytest.mark.parametrize("name,valid", [
        ("feature-x", True),
        ("feature/login", True),
        ("bad..name", False),
        ("with space", False),
        ("-leading-dash", False),
        ("@{-1}", False),
        ("", False),
    ])
    def test_is_valid_branch_name(self, engine, name, valid):
        assert engine.is_valid_branch_name(name) is valid

    def test_create_branch(self, engine, git_repo):
        engine.create_branch("from-head")
        assert engine.branch_exists("from-head")
        assert git_repo.heads["from-head"].commit == git_repo.head.commit

        with pytest.raises(GitOperationError):
            engine.create_branch("from-head")

    def test_remote_branch_exists(self, engine):
        assert not engine.remote_branch_exists("main")

    def test_remove_missing_worktree_by_path(self, engine, repository):
        """remove --force drops a worktree whose directory is gone, leaving others."""
        kept = repository.worktree_base / "kept"
        gone = repository.worktree_base / "gone"
        engine.create_worktree(str(kept), "kept")
        engine.create_worktree(str(gone), "gone")
        shutil.rmtree(kept)
        shutil.rmtree(gone)

        engine.remove_worktree(str(gone), force=True)

        assert [wt.branch for wt in engine.list_worktrees()] == ["main", "kept"]

    def test_delete_branch(self, engine, git_repo):
        git_repo.git.branch("doomed")
        engine.delete_branch("doomed")
        assert not engine.branch_exists("doomed")

    def test_is_dirty(self, engine, repository):
        root = repository.root
        assert not engine.is_dirty(str(root)).is_dirty

        (root / "new.txt").write_text("new\n")
        state = engine.is_dirty(str(root))
        assert state.untracked and not state.modified

        (root / "README.md").write_text("changed\n")
        state = engine.is_dirty(str(root))
        assert state.modified

        git.Repo(root).git.add("README.md")
        state = engine.is_dirty(str(root))
        assert state.staged

    def test_is_dirty_missing_path(self, engine, repository):
        assert not engine.is_dirty(str(repository.worktree_base / "missing")).is_dirty

    def test_list_failure_is_engine_unavailable(self, engine):
        with patch.object(engine, "_get_repo") as mock_get_repo:
            mock_get_repo.return_value.git.worktree.side_effect = git.exc.GitCommandError(
                "worktree", status=128, stderr="fatal: not a git repository"
            )
            with pytest.raises(EngineUnavailableError, match="not a git repository"):
                engine.list_worktrees()

    def test_prune_clears_missing_worktree(self, engine, repository):
        path = repository.worktree_base / "feature-x"
        engine.create_worktree(str(path), "feature-x")
        shutil.rmtree(path)

        engine.prune_worktrees()

        assert [wt.branch for wt in engine.list_worktrees()] == ["main"]
