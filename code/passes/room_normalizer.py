from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, TYPE_CHECKING

from dungeon_shape import CellType, ShapeCell
from models import Interactable
from passes.base import CandidateFinder, PassApplier, PassStepResult, Planner, RandomizerPass

if TYPE_CHECKING:
    from pass_context import PassContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StripPlan:
    doomed: List[Interactable]
    clear_entrance: bool


class StaircaseFreeCellFinder(CandidateFinder[ShapeCell, StripPlan]):
    def find_candidates(self, context: PassContext) -> Iterable[ShapeCell]:
        return [cell for cell in context.shape.valid_cells() if not cell.requires_staircase]


class UnusedStaircasePlanner(Planner[ShapeCell, StripPlan]):
    """Staircases, and the objects revealing them, that no cell needs any more."""

    def plan(self, context: PassContext, candidate: ShapeCell) -> Optional[StripPlan]:
        room = candidate.demand_room()
        doomed: List[Interactable] = []
        for staircase in room.staircases():
            doomed.append(staircase)
            if staircase.revealed_by is not None:
                doomed.append(staircase.revealed_by)
        clear_entrance = room.settings.is_entrance and candidate.type is not CellType.ENTRANCE
        if not doomed and not clear_entrance:
            return None
        return StripPlan(doomed=doomed, clear_entrance=clear_entrance)


class StaircaseStripApplier(PassApplier[ShapeCell, StripPlan]):
    def __init__(self) -> None:
        self._stripped = 0

    def apply(self, context: PassContext, candidate: ShapeCell, plan: StripPlan) -> PassStepResult:
        room = candidate.demand_room()
        if plan.doomed:
            room.remove_interactables(plan.doomed)
        if plan.clear_entrance:
            room.settings.is_entrance = False
        context.analyzer.invalidate(room)
        self._stripped += 1
        logger.debug("Normalized %s", room.unique_id)
        return PassStepResult(applied=True)

    def finalize(self, context: PassContext) -> int:
        return self._stripped


def run_room_normalizer_pass(context: PassContext) -> int:
    randomizer_pass = RandomizerPass(
        name="room_normalizer",
        candidate_finder=StaircaseFreeCellFinder(),
        planner=UnusedStaircasePlanner(),
        applier=StaircaseStripApplier(),
    )
    return randomizer_pass.run(context)
