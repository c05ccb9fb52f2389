"""Door assignment: decide which neighboring cells get a door, then roll each lock type."""

from __future__ import annotations

import logging
import random
from typing import Dict, List, TYPE_CHECKING

from dungeon_geometry import DOOR_DIRECTION_ORDER, Direction, GridPos
from dungeon_shape import CellType, DungeonShape
from errors import RandomizerError, RecoverableRandomizerError
from models import DoorType, InteractionEffect, RoomInteraction, Trigger

if TYPE_CHECKING:
    from pass_context import PassContext

logger = logging.getLogger(__name__)

DoorGrid = Dict[GridPos, Dict[Direction, DoorType]]


def door_permitted(context: PassContext, pos: GridPos, direction: Direction) -> bool:
    """Both rooms must be able to hold a door on the shared wall."""
    shape = context.shape
    here = context.requirements(shape[pos].demand_room())
    there = context.requirements(shape[pos.offset(direction)].demand_room())
    return here.can_connect(direction.entrance) and there.can_connect(direction.opposite().entrance)


def _shuffled_adjoining(shape: DungeonShape, pos: GridPos, rng: random.Random):
    adjoining = shape.adjoining(pos)
    rng.shuffle(adjoining)
    return adjoining


def clear_door_states(context: PassContext) -> None:
    context.shape.clear_required_doors()
    for room in context.shape.rooms():
        room.doors.clear()


def discover_required_doors(context: PassContext, rng: random.Random) -> int:
    """Depth-first walk from the entrance adding the doors connectivity needs.

    A neighbor that is already reachable only gets a door with the bonus probability.
    """
    shape = context.shape
    walker = context.walker
    bonus_probability = context.flags.bonus_door_probability
    added = 0

    visited = set()
    stack = [shape.entrance]
    while stack:
        pos = stack.pop()
        if pos in visited:
            continue
        visited.add(pos)
        cell = shape[pos]

        for nxt, direction in _shuffled_adjoining(shape, pos, rng):
            stack.append(nxt)
            if cell.required_doors.has(direction.entrance):
                continue
            if not door_permitted(context, pos, direction):
                logger.debug("%s: no door possible %s of %s", shape.name, direction.name, pos)
                continue
            if walker.can_walk_to(nxt):
                if rng.random() >= bonus_probability:
                    logger.debug("%s: could walk to %s, randomized no door", shape.name, nxt)
                    continue
            shape.add_required_door(pos, direction)
            added += 1
            logger.debug("%s: added door %s of %s", shape.name, direction.name, pos)
    return added


def add_door_at_random(context: PassContext, rng: random.Random) -> bool:
    shape = context.shape
    cells = shape.valid_cells()
    rng.shuffle(cells)
    for cell in cells:
        for _, direction in _shuffled_adjoining(shape, cell.pos, rng):
            if cell.required_doors.has(direction.entrance):
                continue
            if not door_permitted(context, cell.pos, direction):
                continue
            shape.add_required_door(cell.pos, direction)
            logger.debug("%s: randomly added door %s of %s", shape.name, direction.name, cell.pos)
            return True
    return False


def refit_doors_until_walkable(context: PassContext, rng: random.Random) -> int:
    """Add one random permitted door at a time until every cell is reachable."""
    walker = context.walker
    added = 0
    while True:
        unreachable = walker.unreachable_cells()
        if not unreachable:
            logger.debug("%s: walkable after %d extra doors", context.shape.name, added)
            return added
        if added >= context.flags.max_refit_doors or not add_door_at_random(context, rng):
            raise RecoverableRandomizerError(
                f"{context.shape.name}: unable to add more doors to reach "
                f"{', '.join(map(str, unreachable))}."
            )
        added += 1


def assign_lock_types(context: PassContext, rng: random.Random) -> DoorGrid:
    """Roll a lock type for every required door and write it symmetrically."""
    shape = context.shape
    grid: DoorGrid = {cell.pos: {} for cell in shape.valid_cells()}

    for cell in shape.valid_cells():
        doors = grid[cell.pos]
        if cell.type is CellType.ENTRANCE:
            # The player always comes in from below.
            doors[Direction.SOUTH] = DoorType.OPEN
        for direction in DOOR_DIRECTION_ORDER:
            if direction in doors:
                continue
            if not cell.required_doors.has(direction.entrance):
                continue
            door_type = shape.stats.random_door_type(rng)
            doors[direction] = door_type
            grid[cell.pos.offset(direction)][direction.opposite()] = door_type

    for cell in shape.valid_cells():
        room = cell.demand_room()
        doors = grid[cell.pos]
        for direction in DOOR_DIRECTION_ORDER:
            room.doors[direction] = doors.get(direction, DoorType.WALL)
    return grid


def reconcile_shutter_triggers(context: PassContext) -> None:
    """Shutter rooms keep a way to open them; rooms without shutters lose it."""
    for room in context.shape.rooms():
        requirements = context.requirements(room)
        has_shutters = any(door is DoorType.SHUTTER for door in room.doors.values())
        opens_on_clear = [
            interaction
            for interaction in room.room_interactions
            if interaction.effect is InteractionEffect.OPEN_SHUTTER_DOORS
            and interaction.trigger is Trigger.ROOM_CLEARED
        ]
        if has_shutters:
            if not requirements.has_shutter_push_block and not opens_on_clear:
                room.room_interactions.append(RoomInteraction.open_shutter_doors())
            continue

        if opens_on_clear:
            room.room_interactions = [
                interaction for interaction in room.room_interactions if interaction not in opens_on_clear
            ]
        if requirements.has_shutter_push_block:
            room.remove_interactables([requirements.push_block])
            context.analyzer.invalidate(room)


def shuffle_normal_rooms(context: PassContext, rng: random.Random) -> bool:
    """Deal the rooms of the normal cells out again in a random order.

    Each cell takes the first remaining room usable toward all of its neighbors.
    When some cell is left without one, the current arrangement is kept.
    """
    shape = context.shape
    cells = shape.cells_of_type(CellType.NORMAL)
    rooms = [cell.demand_room() for cell in cells]
    rng.shuffle(rooms)

    arrangement = []
    for cell in cells:
        mask = shape.neighbor_mask(cell.pos)
        index = next(
            (
                index
                for index, room in enumerate(rooms)
                if not mask or context.requirements(room).connectable_entrances.has(mask)
            ),
            None,
        )
        if index is None:
            logger.debug("%s: no room fits %s after shuffling, rooms stay put", shape.name, cell.pos)
            return False
        arrangement.append((cell, rooms.pop(index)))

    for cell, room in arrangement:
        cell.room = room
    shape.update_room_ids()
    shape.update_room_coordinates()
    return True


def fit_doors_once(context: PassContext, rng: random.Random) -> int:
    clear_door_states(context)
    discover_required_doors(context, rng)
    refit_doors_until_walkable(context, rng)
    grid = assign_lock_types(context, rng)
    reconcile_shutter_triggers(context)
    return sum(len(doors) for doors in grid.values())


def run_door_solver_pass(context: PassContext) -> int:
    """Returns the number of door sides written."""
    if not context.shape.has_transports_attached:
        raise RandomizerError("Cannot fit doors prior to attaching transports.")

    rng = context.door_rng
    attempts = context.flags.max_door_attempts
    failures: List[str] = []
    for attempt in range(attempts):
        try:
            return fit_doors_once(context, rng)
        except RecoverableRandomizerError as exc:
            failures.append(str(exc))
            logger.debug("%s: door attempt %d failed: %s", context.shape.name, attempt, exc)
            shuffle_normal_rooms(context, rng)

    logger.debug("%s", context.shape.get_debug_display())
    raise RecoverableRandomizerError(
        f"{context.shape.name}: exhausted {attempts} door fitting attempts; last error: {failures[-1]}"
    )
