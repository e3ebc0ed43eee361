"""Display and formatting service for worktree information"""
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from git_worktree_keeper.constants import (
    CLI_COLORS,
    COLUMNS,
    NOTE_DETACHED,
    NOTE_LOCKED,
    NOTE_ORPHANED,
    NOTE_UNMANAGED,
    WorktreeStyleType,
)
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.models.repository import Repository
from git_worktree_keeper.models.worktree import UpdateResult, Worktree, WorktreeStatus
from git_worktree_keeper.services.transaction import StepState, TransactionResult

console = Console()
logger = get_logger(__name__)


def format_notes(worktree: Worktree, repository: Optional[Repository] = None) -> str:
    """Collect the markers shown in the Notes column."""
    notes = []
    if worktree.is_orphaned:
        notes.append(NOTE_ORPHANED)
    if worktree.is_locked:
        notes.append(NOTE_LOCKED)
    if worktree.is_detached:
        notes.append(NOTE_DETACHED)
    if repository is not None and not worktree.is_main and not repository.is_managed_path(worktree.path):
        notes.append(NOTE_UNMANAGED)
    return " ".join(notes)


def get_worktree_style_type(worktree: Worktree, repository: Optional[Repository] = None) -> str:
    """Pick the row style for a worktree."""
    if worktree.status == WorktreeStatus.ARCHIVED:
        return WorktreeStyleType.ARCHIVED
    if worktree.is_orphaned:
        return WorktreeStyleType.ORPHANED
    if repository is not None and not repository.is_managed_path(worktree.path):
        return WorktreeStyleType.UNMANAGED
    return WorktreeStyleType.ACTIVE


def format_worktree_line(worktree: Worktree) -> str:
    """Plain one-line rendering: branch, path, status."""
    name = worktree.branch or "(detached)"
    return f"{name}\t{worktree.path}\t{worktree.status.value.capitalize()}"


class DisplayService:
    def __init__(self, verbose: bool = False, debug: bool = False, plain: bool = False):
        self.verbose = verbose
        self.debug_mode = debug
        self.plain = plain  # One tab-separated line per worktree instead of a table

    def display_worktree_table(self, worktrees: List[Worktree], repository: Optional[Repository] = None) -> None:
        """Display a table of worktree information."""
        if self.plain:
            # Machine-readable; bypass rich so tabs and long paths survive
            for worktree in worktrees:
                print(format_worktree_line(worktree))
            return

        if not worktrees:
            console.print("No worktrees")
            if repository is not None and self.verbose:
                console.print(f"[dim]Worktree base: {escape(str(repository.worktree_base))}[/dim]")
            return

        table = Table()
        for col in COLUMNS:
            if col.width:
                table.add_column(col.label, max_width=col.width, overflow="fold")
            else:
                table.add_column(col.label, overflow="fold")

        for worktree in worktrees:
            row_style = CLI_COLORS.get(get_worktree_style_type(worktree, repository))
            # Match COLUMNS order: Branch, Path, Status, Commit, Notes
            table.add_row(
                Text(worktree.branch or "(detached)"),
                Text(worktree.path),
                worktree.status.value.capitalize(),
                worktree.commit_sha[:7],
                Text(format_notes(worktree, repository)),
                style=row_style,
            )

        console.print(table)

        if self.verbose and repository is not None:
            console.print(f"\nWorktree base: {escape(str(repository.worktree_base))}")
            console.print(f"Total worktrees: {len(worktrees)}")

    def display_created(self, worktree: Worktree, dry_run: bool = False) -> None:
        if dry_run:
            console.print(f"Would create worktree for [bold]{escape(worktree.branch)}[/bold] at {escape(worktree.path)}")
        else:
            console.print(f"[green]Created worktree for [bold]{escape(worktree.branch)}[/bold] at {escape(worktree.path)}[/green]")

    def display_archived(self, worktree: Worktree, dry_run: bool = False) -> None:
        if dry_run:
            console.print(f"Would archive worktree for [bold]{escape(worktree.branch)}[/bold] and delete {escape(worktree.path)}")
        else:
            console.print(
                f"[green]Archived worktree for [bold]{escape(worktree.branch)}[/bold][/green] "
                f"(directory {escape(worktree.path)} deleted, branch kept)"
            )

    def display_update(self, result: UpdateResult, dry_run: bool = False) -> None:
        name = escape(result.worktree.branch)
        if dry_run or result.fetch is None:
            console.print(f"Would fetch and fast-forward [bold]{name}[/bold] at {escape(result.worktree.path)}")
            return
        fetch = result.fetch
        if fetch.changed:
            noun = "commit" if fetch.commits == 1 else "commits"
            console.print(
                f"[green]Fast-forwarded [bold]{name}[/bold] by {fetch.commits} {noun} "
                f"({fetch.old_sha[:7]}..{fetch.new_sha[:7]})[/green]"
            )
        else:
            console.print(f"[bold]{name}[/bold] is already up to date with {escape(fetch.upstream)}")

    def display_steps(self, result: Optional[TransactionResult]) -> None:
        """Show each step of a transaction (verbose or dry-run output)."""
        if result is None:
            return
        if not (self.verbose or result.dry_run or result.error is not None):
            return
        for outcome in result.outcomes:
            if outcome.state == StepState.PLANNED:
                console.print(f"  [dim]would[/dim] {escape(outcome.name)}")
            elif outcome.state == StepState.DONE:
                console.print(f"  [green]✓[/green] {escape(outcome.name)}")
            elif outcome.state == StepState.SKIPPED:
                console.print(f"  [dim]- {escape(outcome.name)} (skipped)[/dim]")
            else:
                console.print(f"  [yellow]✗ {escape(outcome.name)} ({outcome.state.value})[/yellow]")

    def display_error(self, error: Exception) -> None:
        console.print(f"[red]Error: {escape(str(error))}[/red]")

    def display_warning(self, message: str) -> None:
        console.print(f"[yellow]Warning: {escape(message)}[/yellow]")
