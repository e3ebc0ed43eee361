"""Ordered step lists with per-step cleanup for multi-resource operations.

Create and Archive touch two resources that cannot be changed atomically
together: git's worktree metadata and the directory tree. Each operation is
spelled out as a list of steps. A step that fails runs its own cleanup; steps
that already completed run their undo, newest first.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from git_worktree_keeper.logging_config import get_logger

logger = get_logger(__name__)


class StepState(Enum):
    """What happened to a step."""
    PENDING = "pending"
    PLANNED = "planned"  # Dry run: would have run
    DONE = "done"
    FAILED = "failed"
    CLEANED = "cleaned"  # Failed, and its cleanup ran
    CLEANUP_FAILED = "cleanup-failed"
    UNDONE = "undone"  # Completed, then reverted after a later failure
    UNDO_FAILED = "undo-failed"
    SKIPPED = "skipped"  # Not reached because an earlier step failed


FAILED_STATES = (StepState.FAILED, StepState.CLEANED, StepState.CLEANUP_FAILED)


@dataclass
class Step:
    """One action in a transaction.

    ``cleanup`` removes whatever a failed ``action`` left behind; ``undo``
    reverts a completed action when a later critical step fails.

    A critical step failing aborts the transaction. A non-critical step
    runs after the point of no return: its failure makes the result partial
    instead of failed, and nothing is undone.
    """

    name: str
    action: Callable[[], None]
    cleanup: Optional[Callable[[], None]] = None
    undo: Optional[Callable[[], None]] = None
    critical: bool = True


@dataclass
class StepOutcome:
    """Record of a step's execution."""

    name: str
    state: StepState = StepState.PENDING
    error: Optional[Exception] = None
    cleanup_error: Optional[Exception] = None


@dataclass
class TransactionResult:
    """Outcome of running a transaction."""

    name: str
    outcomes: List[StepOutcome] = field(default_factory=list)
    error: Optional[Exception] = None
    partial: bool = False
    dry_run: bool = False

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def failed_step(self) -> Optional[StepOutcome]:
        return next((o for o in self.outcomes if o.state in FAILED_STATES), None)

    def states(self) -> List[StepState]:
        return [o.state for o in self.outcomes]


class Transaction:
    """Runs steps in order, cleaning up after the first critical failure."""

    def __init__(self, name: str, steps: List[Step], dry_run: bool = False):
        self.name = name
        self.steps = steps
        self.dry_run = dry_run

    def describe(self) -> List[str]:
        """Step names in execution order."""
        return [step.name for step in self.steps]

    def run(self) -> TransactionResult:
        """Execute the steps.

        Never raises for a step failure; the error is returned in the result
        so the caller decides how to surface it.
        """
        result = TransactionResult(
            name=self.name,
            outcomes=[StepOutcome(step.name) for step in self.steps],
            dry_run=self.dry_run,
        )

        for index, (step, outcome) in enumerate(zip(self.steps, result.outcomes)):
            if self.dry_run:
                logger.info(f"[dry-run] {self.name}: would {step.name}")
                outcome.state = StepState.PLANNED
                continue

            logger.debug(f"{self.name}: {step.name}")
            try:
                step.action()
            except Exception as e:
                outcome.error = e
                outcome.state = StepState.FAILED
                logger.debug(f"{self.name}: step '{step.name}' failed: {e}")

                if step.cleanup is not None:
                    self._run_cleanup(step, outcome)

                if not step.critical:
                    result.partial = True
                    if result.error is None:
                        result.error = e
                    continue

                result.error = e
                for skipped in result.outcomes[index + 1:]:
                    skipped.state = StepState.SKIPPED
                self._undo_completed(index, result)
                return result

            outcome.state = StepState.DONE

        return result

    def _run_cleanup(self, step: Step, outcome: StepOutcome) -> None:
        """Run a failed step's cleanup; its own failure never hides the original error."""
        try:
            step.cleanup()
            outcome.state = StepState.CLEANED
            logger.debug(f"{self.name}: cleaned up after '{step.name}'")
        except Exception as cleanup_error:
            outcome.cleanup_error = cleanup_error
            outcome.state = StepState.CLEANUP_FAILED
            logger.warning(f"{self.name}: cleanup after '{step.name}' failed: {cleanup_error}")

    def _undo_completed(self, failed_index: int, result: TransactionResult) -> None:
        """Revert completed steps before ``failed_index``, newest first."""
        for step, outcome in reversed(list(zip(self.steps[:failed_index], result.outcomes[:failed_index]))):
            if outcome.state != StepState.DONE or step.undo is None:
                continue
            try:
                step.undo()
                outcome.state = StepState.UNDONE
                logger.debug(f"{self.name}: undid '{step.name}'")
            except Exception as undo_error:
                outcome.cleanup_error = undo_error
                outcome.state = StepState.UNDO_FAILED
                logger.warning(f"{self.name}: undoing '{step.name}' failed: {undo_error}")
