from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, TYPE_CHECKING

from dungeon_shape import CellType, ShapeCell
from dungeon_stats import ALL_DUNGEON_ITEMS
from errors import RandomizerError, RecoverableRandomizerError
from models import Entrance, ItemId, ItemOptions
from pass_context import PlacedItem
from passes.base import CandidateFinder, PassApplier, PassStepResult, Planner, RandomizerPass
from room_requirements import PathRequirements, item_causes_requirement, path_requirements_allow

if TYPE_CHECKING:
    from pass_context import PassContext

logger = logging.getLogger(__name__)

FLOOR_ITEM_OPTIONS = ItemOptions.IS_ROOM_ITEM | ItemOptions.MAKE_ITEM_SOUND


@dataclass(frozen=True)
class ItemPlan:
    item: ItemId
    from_pool: bool


class ItemCellFinder(CandidateFinder[ShapeCell, ItemPlan]):
    """Item staircases first, then floor drops, each in grid order."""

    def find_candidates(self, context: PassContext) -> Iterable[ShapeCell]:
        shape = context.shape
        return shape.cells_of_type(CellType.ITEM_STAIRCASE) + shape.cells_of_type(CellType.FLOOR_DROP)


class ItemPoolPlanner(Planner[ShapeCell, ItemPlan]):
    def plan(self, context: PassContext, candidate: ShapeCell) -> Optional[ItemPlan]:
        if not candidate.is_fit_item:
            return ItemPlan(item=candidate.item, from_pool=False)
        return ItemPlan(item=context.state.pop_item(), from_pool=True)


class ItemApplier(PassApplier[ShapeCell, ItemPlan]):
    def __init__(self) -> None:
        self._placed = 0

    def apply(self, context: PassContext, candidate: ShapeCell, plan: ItemPlan) -> PassStepResult:
        room = candidate.demand_room()
        if candidate.type is CellType.ITEM_STAIRCASE:
            staircase = room.first_staircase()
            if staircase is None:
                raise RandomizerError(f"No item staircase found in room for cell {candidate}.")
            staircase.entrance = Entrance.item_cellar(plan.item, candidate.pos)
        else:
            room.set_floor_item(plan.item, FLOOR_ITEM_OPTIONS)
        context.analyzer.invalidate(room)

        context.placed_items.append(PlacedItem(plan.item, candidate.pos, from_pool=plan.from_pool))
        self._placed += 1
        logger.debug("Placed %s in %s", plan.item.name, candidate)
        return PassStepResult(applied=True)

    def finalize(self, context: PassContext) -> int:
        return self._placed


def run_item_placement_pass(context: PassContext) -> int:
    randomizer_pass = RandomizerPass(
        name="item_placement",
        candidate_finder=ItemCellFinder(),
        planner=ItemPoolPlanner(),
        applier=ItemApplier(),
    )
    return randomizer_pass.run(context)


def find_self_gated_items(context: PassContext) -> List[PlacedItem]:
    """Pool items whose every route needs the item itself."""
    gated = []
    for placed in context.placed_items:
        if not placed.from_pool:
            continue
        requirement_sets = context.walker.requirement_sets(placed.location)
        if not any(path_requirements_allow(requirements, placed.item) for requirements in requirement_sets):
            logger.debug("%s is only reachable with %s", placed, requirement_sets)
            gated.append(placed)
    return gated


def run_item_check_pass(context: PassContext) -> int:
    """Re-deal the dungeon's pool items until none is locked behind itself.

    Returns the number of re-deals it took.
    """
    for attempt in range(context.flags.max_item_attempts):
        gated = find_self_gated_items(context)
        if not gated:
            return attempt

        logger.debug(
            "%s: item attempt %d failed: %s",
            context.shape.name,
            attempt,
            ", ".join(str(placed) for placed in gated),
        )
        pool_items = [placed.item for placed in context.placed_items if placed.from_pool]
        context.state.return_items(pool_items)
        context.state.rerandomize_item_list()
        context.placed_items.clear()
        run_item_placement_pass(context)

    raise RecoverableRandomizerError(
        f"{context.shape.name}: exceeded {context.flags.max_item_attempts} item fitting attempts."
    )


def _gates_open_from_start() -> PathRequirements:
    """Gates no dungeon item opens, such as food for a Grumble."""
    dungeon_gates = PathRequirements.NONE
    for item in ALL_DUNGEON_ITEMS:
        dungeon_gates |= item_causes_requirement(item)
    held = PathRequirements.NONE
    for gate in PathRequirements:
        if gate is PathRequirements.IMPOSSIBLE or gate & dungeon_gates:
            continue
        held |= gate
    return held


def find_uncollectable_items(contexts: Sequence[PassContext]) -> List[PlacedItem]:
    """Items still out of reach after collecting everything reachable, over and over.

    Every dungeon of the run takes part, since an item found in one dungeon opens
    gates in the others. Items left in the pool never count as collected.
    """
    held = _gates_open_from_start()
    pending = [
        (placed, context.walker.requirement_sets(placed.location))
        for context in contexts
        for placed in context.placed_items
    ]
    progress = True
    while progress and pending:
        progress = False
        remaining = []
        for placed, requirement_sets in pending:
            if any((requirements | held) == held for requirements in requirement_sets):
                held |= item_causes_requirement(placed.item)
                progress = True
            else:
                remaining.append((placed, requirement_sets))
        pending = remaining
    return [placed for placed, _ in pending]


def run_completability_check(contexts: Sequence[PassContext]) -> int:
    """Fails the attempt when some placed item can never be picked up.

    Returns the number of items checked.
    """
    uncollectable = find_uncollectable_items(contexts)
    if uncollectable:
        raise RecoverableRandomizerError(
            f"Items out of reach with the items placed: {', '.join(map(str, uncollectable))}."
        )
    checked = sum(len(context.placed_items) for context in contexts)
    logger.debug("All %d placed items can be collected", checked)
    return checked
