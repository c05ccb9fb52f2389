from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, TYPE_CHECKING

from dungeon_shape import ShapeCell
from models import Monster
from passes.base import CandidateFinder, PassApplier, PassStepResult, Planner, RandomizerPass

if TYPE_CHECKING:
    from pass_context import PassContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MonsterPlan:
    monsters: List[Monster]


class MonsterCellFinder(CandidateFinder[ShapeCell, MonsterPlan]):
    def find_candidates(self, context: PassContext) -> Iterable[ShapeCell]:
        for cell in context.shape.valid_cells():
            if not cell.allows_monsters:
                continue
            # Rooms with a cave dweller keep their own occupants.
            if cell.demand_room().cave_person is not None:
                continue
            yield cell


class MonsterPoolPlanner(Planner[ShapeCell, MonsterPlan]):
    def plan(self, context: PassContext, candidate: ShapeCell) -> Optional[MonsterPlan]:
        return MonsterPlan(monsters=context.state.room_monsters(candidate.demand_room()))


class MonsterApplier(PassApplier[ShapeCell, MonsterPlan]):
    def __init__(self) -> None:
        self._rooms = 0

    def apply(self, context: PassContext, candidate: ShapeCell, plan: MonsterPlan) -> PassStepResult:
        room = candidate.demand_room()
        room.monsters = plan.monsters
        self._rooms += 1
        logger.debug("%s gets %s", room.unique_id, [monster.kind.name for monster in plan.monsters])
        return PassStepResult(applied=True)

    def finalize(self, context: PassContext) -> int:
        return self._rooms


def run_monster_fitter_pass(context: PassContext) -> int:
    randomizer_pass = RandomizerPass(
        name="monster_fitter",
        candidate_finder=MonsterCellFinder(),
        planner=MonsterPoolPlanner(),
        applier=MonsterApplier(),
    )
    return randomizer_pass.run(context)
