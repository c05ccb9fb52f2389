from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Iterable, Optional, TypeVar

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pass_context import PassContext


C = TypeVar("C")
P = TypeVar("P")


@dataclass
class PassStepResult:
    """Describes the outcome of applying a single pass plan."""

    applied: bool
    stop: bool = False


class CandidateFinder(Generic[C, P]):
    """Locate the cells (or pairs of cells) a pass has to work on."""

    def find_candidates(self, context: PassContext) -> Iterable[C]:
        raise NotImplementedError

    def on_success(self, context: PassContext, candidate: C, plan: P) -> None:
        """Hook called when a plan for the candidate is successfully applied."""
        return None


class Planner(Generic[C, P]):
    """Decide what to do with a candidate; None means nothing to do."""

    def plan(self, context: PassContext, candidate: C) -> Optional[P]:
        raise NotImplementedError


class PassApplier(Generic[C, P]):
    """Commit a plan to the rooms and cells."""

    def apply(self, context: PassContext, candidate: C, plan: P) -> PassStepResult:
        raise NotImplementedError

    def finalize(self, context: PassContext) -> int:
        """Perform any final bookkeeping; return the pass's reported result."""
        return 0


class RandomizerPass(Generic[C, P]):
    """Coordinates finder, planner, and applier to execute a pass."""

    def __init__(
        self,
        name: str,
        candidate_finder: CandidateFinder[C, P],
        planner: Planner[C, P],
        applier: PassApplier[C, P],
    ) -> None:
        self.name = name
        self.candidate_finder = candidate_finder
        self.planner = planner
        self.applier = applier

    def run(self, context: PassContext) -> int:
        """Execute the pass pipeline and return the aggregate result."""
        for candidate in self.candidate_finder.find_candidates(context):
            plan = self.planner.plan(context, candidate)
            if plan is None:
                continue
            result = self.applier.apply(context, candidate, plan)
            if result.applied:
                self.candidate_finder.on_success(context, candidate, plan)
            if result.stop:
                break
        return self.applier.finalize(context)
