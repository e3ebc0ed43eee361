"""
git-worktree-keeper - One git worktree per branch, managed side by side
"""

from .__version__ import __version__
from .core import WorktreeKeeper
from .cli.main import main

__all__ = ["WorktreeKeeper", "main", "__version__"]
