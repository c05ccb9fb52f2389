from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, TYPE_CHECKING

from dungeon_geometry import RoomEntrances
from dungeon_shape import CellType, ShapeCell
from errors import PoolExhaustedError
from models import Room
from passes.base import CandidateFinder, PassApplier, PassStepResult, Planner, RandomizerPass
from room_requirements import RoomRequirements

if TYPE_CHECKING:
    from pass_context import PassContext

logger = logging.getLogger(__name__)

CellFilter = Callable[[ShapeCell], bool]


@dataclass(frozen=True)
class FitCandidate:
    cell: ShapeCell
    required: RoomEntrances


@dataclass(frozen=True)
class FitPlan:
    room: Room


def special_flags_match(cell: ShapeCell, room: Room, requirements: RoomRequirements) -> bool:
    if cell.type is CellType.FLOOR_DROP:
        return requirements.has_floor_drop
    if cell.type in (CellType.ITEM_STAIRCASE, CellType.TRANSPORT_STAIRCASE):
        return requirements.has_staircase
    if cell.type is CellType.ENTRANCE:
        return requirements.is_entrance
    return not room.is_special


class UnfitCellFinder(CandidateFinder[FitCandidate, FitPlan]):
    def __init__(self, should_fit: CellFilter) -> None:
        self.should_fit = should_fit

    def find_candidates(self, context: PassContext) -> Iterable[FitCandidate]:
        shape = context.shape
        # Generated lazily so each cell sees the pool as the previous cells left it.
        for cell in shape.valid_cells():
            if cell.room is not None or not self.should_fit(cell):
                continue
            required = shape.neighbor_mask(cell.pos)
            if cell.type is CellType.ENTRANCE:
                # The way in from outside.
                required |= RoomEntrances.SOUTH
            yield FitCandidate(cell=cell, required=required)


class PoolRoomPlanner(Planner[FitCandidate, FitPlan]):
    """First room in pool order whose usable sides and special flags suit the cell."""

    def plan(self, context: PassContext, candidate: FitCandidate) -> Optional[FitPlan]:
        cell = candidate.cell
        for room in context.state.room_pool:
            requirements = context.requirements(room)
            if candidate.required and not requirements.connectable_entrances.has(candidate.required):
                logger.debug(
                    "Cannot fit %s to %s: needs %s, usable %s",
                    room.unique_id,
                    cell,
                    candidate.required,
                    requirements.connectable_entrances,
                )
                continue
            if special_flags_match(cell, room, requirements):
                return FitPlan(room=room)

        raise PoolExhaustedError(
            f"{context.shape.name}: exhausted rooms without being able to fit {cell}."
        )


class PoolRoomApplier(PassApplier[FitCandidate, FitPlan]):
    def __init__(self) -> None:
        self._fit: List[Room] = []

    def apply(self, context: PassContext, candidate: FitCandidate, plan: FitPlan) -> PassStepResult:
        room = context.state.room_pool.take(plan.room)
        room.settings.is_entrance = candidate.cell.type is CellType.ENTRANCE
        room.settings.level_number = context.shape.world.level_number
        context.analyzer.invalidate(room)
        candidate.cell.room = room
        self._fit.append(room)
        logger.debug("Fit %s into %s", room.unique_id, candidate.cell)
        return PassStepResult(applied=True)

    def finalize(self, context: PassContext) -> int:
        return len(self._fit)


def _run_fit(context: PassContext, name: str, should_fit: CellFilter) -> int:
    randomizer_pass = RandomizerPass(
        name=name,
        candidate_finder=UnfitCellFinder(should_fit),
        planner=PoolRoomPlanner(),
        applier=PoolRoomApplier(),
    )
    return randomizer_pass.run(context)


def run_fit_special_rooms_pass(context: PassContext) -> int:
    return _run_fit(context, "fit_special_rooms", lambda cell: cell.is_special)


def run_fit_normal_rooms_pass(context: PassContext) -> int:
    return _run_fit(context, "fit_normal_rooms", lambda cell: not cell.is_special)
