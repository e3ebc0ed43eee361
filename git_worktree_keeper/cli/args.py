"""Command-line argument parsing for git-worktree-keeper."""

import argparse
from typing import List, Optional

from git_worktree_keeper.__version__ import __version__


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subcommand per lifecycle operation."""
    parser = argparse.ArgumentParser(
        prog="git-worktree-keeper",
        description="Keep one git worktree per branch, side by side with your main checkout",
        epilog="Worktrees live in '<repo>.worktrees' next to the repository unless --path "
        "or 'base_path' in ~/.git-worktree-keeper/config.json says otherwise.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument("--version", action="version", version=f"git-worktree-keeper {__version__}")
    parser.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="Preview mode - show what would be done without changing anything",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Show debug information for troubleshooting"
    )
    parser.add_argument(
        "-b", "--base", dest="base_branch", metavar="BRANCH", help="Branch new worktrees start from"
    )
    parser.add_argument(
        "-p", "--path", dest="base_path", metavar="DIR", help="Directory worktrees are created in"
    )
    parser.add_argument("-c", "--config", metavar="FILE", help="Config file to use")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    list_parser = subparsers.add_parser("list", help="List all the worktrees")
    list_parser.add_argument(
        "--plain", action="store_true", help="Print one tab-separated line per worktree"
    )

    create = subparsers.add_parser("create", help="Create a new worktree")
    create.add_argument("branch", help="Branch to check out (created if missing)")
    create.add_argument(
        "--from", dest="start_point", metavar="START_POINT", help="Commit a new branch starts from"
    )

    archive = subparsers.add_parser(
        "archive",
        aliases=["delete"],
        help="Archive a worktree (deletes its directory, keeps the branch)",
    )
    archive.add_argument("branch", help="Branch whose worktree to archive")
    archive.add_argument(
        "--force", action="store_true", help="Archive even with uncommitted or unpushed changes"
    )

    update = subparsers.add_parser("update", help="Fast-forward a worktree from its upstream")
    update.add_argument("branch", nargs="?", help="Branch to update (default: main checkout)")

    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    args = build_parser().parse_args(argv)
    if args.command == "delete":
        args.command = "archive"
    return args
