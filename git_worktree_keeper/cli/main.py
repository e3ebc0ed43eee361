"""Main entry point for git-worktree-keeper"""

import sys
from typing import List, Optional

from rich.console import Console

from git_worktree_keeper.cli.args import parse_args
from git_worktree_keeper.config import build_config, load_config_file
from git_worktree_keeper.constants import EXIT_ERROR, EXIT_INTERRUPTED, EXIT_OK
from git_worktree_keeper.core import WorktreeKeeper
from git_worktree_keeper.exceptions import OrphanedMetadataClearedError, WorktreeKeeperError
from git_worktree_keeper.logging_config import get_logger, setup_logging
from git_worktree_keeper.services.display_service import DisplayService
from git_worktree_keeper.services.locator import RepositoryLocator

console = Console()
logger = get_logger(__name__)


def run_command(keeper: WorktreeKeeper, args, display: DisplayService) -> int:
    """Invoke the lifecycle operation named by ``args.command`` and render it."""
    dry_run = keeper.dry_run

    if args.command == "list":
        display.display_worktree_table(keeper.list(), keeper.repository)
    elif args.command == "create":
        worktree = keeper.create(args.branch, args.start_point)
        display.display_steps(keeper.last_result)
        display.display_created(worktree, dry_run=dry_run)
    elif args.command == "archive":
        worktree = keeper.archive(args.branch, force=args.force or None)
        display.display_steps(keeper.last_result)
        display.display_archived(worktree, dry_run=dry_run)
    elif args.command == "update":
        result = keeper.update(args.branch)
        display.display_update(result, dry_run=dry_run)
    else:
        raise WorktreeKeeperError(f"Unknown command: {args.command}")

    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    parsed_args = parse_args(argv)
    debug = parsed_args.debug
    display = DisplayService(
        verbose=parsed_args.verbose,
        debug=debug,
        plain=getattr(parsed_args, "plain", False),
    )
    keeper: Optional[WorktreeKeeper] = None

    try:
        setup_logging(verbose=parsed_args.verbose, debug=debug)

        repository = RepositoryLocator().locate()
        file_settings = load_config_file(parsed_args.config, repository.root)
        config = build_config(
            file_settings,
            base_branch=parsed_args.base_branch,
            base_path=parsed_args.base_path,
            dry_run=parsed_args.dry_run or None,
            verbose=parsed_args.verbose or None,
            debug=debug or None,
        )
        if config.base_path:
            repository = RepositoryLocator(config.base_path).locate(repository.root)

        if debug:
            console.print("[yellow]Debug mode enabled[/yellow]")
            console.print("[yellow]Configuration:[/yellow]")
            for key, value in config.to_dict().items():
                console.print(f"  {key}: {value}")
            console.print(f"  repository: {repository.root}")
            console.print(f"  worktree_base: {repository.worktree_base}")

        keeper = WorktreeKeeper(repository, config)
        return run_command(keeper, parsed_args, display)
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return EXIT_INTERRUPTED
    except OrphanedMetadataClearedError as e:
        display.display_steps(keeper.last_result if keeper else None)
        display.display_warning(str(e))
        return e.exit_code
    except WorktreeKeeperError as e:
        if keeper is not None:
            display.display_steps(keeper.last_result)
        display.display_error(e)
        if debug:
            console.print_exception()
        return e.exit_code
    except Exception as e:
        logger.debug(f"Unexpected error: {e}")
        display.display_error(e)
        if debug:
            console.print_exception()
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
