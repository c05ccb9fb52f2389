from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, TYPE_CHECKING

from dungeon_shape import CellType, ShapeCell
from errors import RandomizerError, TransportPairingError
from models import Entrance, Interactable
from passes.base import CandidateFinder, PassApplier, PassStepResult, Planner, RandomizerPass

if TYPE_CHECKING:
    from pass_context import PassContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransportPair:
    left: ShapeCell
    right: ShapeCell


@dataclass(frozen=True)
class TransportPlan:
    left_stairs: Interactable
    right_stairs: Interactable


class TransportPairFinder(CandidateFinder[TransportPair, TransportPlan]):
    """Shuffles the transport cells and pairs them off consecutively."""

    def find_candidates(self, context: PassContext) -> Iterable[TransportPair]:
        cells = context.shape.cells_of_type(CellType.TRANSPORT_STAIRCASE)
        if len(cells) % 2 != 0:
            raise TransportPairingError(
                f"{context.shape.name}: transport staircase count {len(cells)} is not even."
            )
        context.state.shape_rng.shuffle(cells)
        pairs: List[TransportPair] = []
        while cells:
            left = cells.pop()
            right = cells.pop()
            pairs.append(TransportPair(left=left, right=right))
        return pairs


class TransportStairsPlanner(Planner[TransportPair, TransportPlan]):
    def plan(self, context: PassContext, candidate: TransportPair) -> Optional[TransportPlan]:
        stairs = []
        for cell in (candidate.left, candidate.right):
            staircase = cell.demand_room().first_staircase()
            if staircase is None:
                raise RandomizerError(f"No staircase found in room for transport cell {cell}.")
            stairs.append(staircase)
        return TransportPlan(left_stairs=stairs[0], right_stairs=stairs[1])


class TransportLinkApplier(PassApplier[TransportPair, TransportPlan]):
    def __init__(self) -> None:
        self._linked = 0

    def apply(self, context: PassContext, candidate: TransportPair, plan: TransportPlan) -> PassStepResult:
        left = candidate.left.pos
        right = candidate.right.pos
        plan.left_stairs.entrance = Entrance.transport(left, right, is_left=True)
        plan.right_stairs.entrance = Entrance.transport(left, right, is_left=False)
        for cell in (candidate.left, candidate.right):
            context.analyzer.invalidate(cell.demand_room())
        self._linked += 1
        logger.debug("Attached transport %s -> %s", candidate.left, candidate.right)
        return PassStepResult(applied=True)

    def finalize(self, context: PassContext) -> int:
        context.shape.has_transports_attached = True
        return self._linked


def run_transport_linker_pass(context: PassContext) -> int:
    if not context.shape.has_ids_updated:
        raise RandomizerError("Cannot attach transport hallways prior to updating room ids.")
    randomizer_pass = RandomizerPass(
        name="transport_linker",
        candidate_finder=TransportPairFinder(),
        planner=TransportStairsPlanner(),
        applier=TransportLinkApplier(),
    )
    return randomizer_pass.run(context)
