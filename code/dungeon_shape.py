"""Abstract dungeon shape: which grid cells hold a room and what kind of room they need."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple

from dungeon_constants import GRID_HEIGHT, GRID_WIDTH, ROOM_PIXEL_HEIGHT, ROOM_PIXEL_WIDTH
from dungeon_geometry import DOOR_DIRECTION_ORDER, Direction, GridPos, RoomEntrances
from dungeon_stats import DungeonStats, has_item_staircase, has_transport_stairs, is_dungeon_item
from errors import PoolExhaustedError, RandomizerError
from models import DungeonWorld, ItemId, Room
from randomizer_state import RandomizerState
from shape_renderer import ShapeRendererMixin

logger = logging.getLogger(__name__)


class CellType(Enum):
    """Classification of a grid cell; the value is its debug display character."""

    NONE = " "
    NORMAL = "N"
    ENTRANCE = "E"
    FLOOR_DROP = "F"
    ITEM_STAIRCASE = "I"
    TRANSPORT_STAIRCASE = "T"


_SPECIAL_TYPES = frozenset(
    (CellType.ENTRANCE, CellType.FLOOR_DROP, CellType.ITEM_STAIRCASE, CellType.TRANSPORT_STAIRCASE)
)
# Items written straight into a cell by the shape, never drawn from the pool.
PINNED_ITEMS = frozenset((ItemId.COMPASS, ItemId.MAP, ItemId.TRIFORCE_PIECE))


@dataclass
class ShapeCell:
    pos: GridPos
    type: CellType = CellType.NONE
    room: Optional[Room] = None
    required_doors: RoomEntrances = RoomEntrances.NONE
    item: ItemId = ItemId.NONE

    @property
    def is_occupied(self) -> bool:
        return self.type is not CellType.NONE

    @property
    def is_special(self) -> bool:
        return self.type in _SPECIAL_TYPES

    @property
    def requires_staircase(self) -> bool:
        return self.type in (CellType.ITEM_STAIRCASE, CellType.TRANSPORT_STAIRCASE)

    @property
    def allows_monsters(self) -> bool:
        return self.type is not CellType.ENTRANCE

    @property
    def is_fit_item(self) -> bool:
        """True when the cell's item comes from the pool rather than being pinned."""
        return self.item not in PINNED_ITEMS

    def demand_room(self) -> Room:
        if self.room is None:
            raise RandomizerError(f"Room at {self} not fit.")
        return self.room

    def __str__(self) -> str:
        room = self.room.unique_id if self.room is not None else "No room"
        return f"{room} (point: {self.pos}, type: {self.type.name})"


def is_valid_point(pos: GridPos) -> bool:
    return 0 <= pos.x < GRID_WIDTH and 0 <= pos.y < GRID_HEIGHT


def each_point() -> Iterator[GridPos]:
    for y in range(GRID_HEIGHT):
        for x in range(GRID_WIDTH):
            yield GridPos(x, y)


class DungeonShape(ShapeRendererMixin):
    """Grid of cells for one dungeon, plus the statistics it was sized from."""

    def __init__(self, world: DungeonWorld, stats: DungeonStats, entrance: GridPos) -> None:
        self.world = world
        self.name = world.name
        self.stats = stats
        self.entrance = entrance
        self._cells: Dict[GridPos, ShapeCell] = {pos: ShapeCell(pos) for pos in each_point()}
        self.target_size = 0
        self.restarts = 0
        self.iterations = 0
        self.has_transports_attached = False
        self.has_ids_updated = False

    def cell(self, pos: GridPos) -> ShapeCell:
        return self._cells[pos]

    def __getitem__(self, pos: GridPos) -> ShapeCell:
        return self._cells[pos]

    def valid_cells(self) -> List[ShapeCell]:
        """Occupied cells in grid order."""
        return [self._cells[pos] for pos in each_point() if self._cells[pos].is_occupied]

    def cells_of_type(self, cell_type: CellType) -> List[ShapeCell]:
        return [cell for cell in self.valid_cells() if cell.type is cell_type]

    def rooms(self) -> List[Room]:
        return [cell.room for cell in self.valid_cells() if cell.room is not None]

    @property
    def room_count(self) -> int:
        return len(self.valid_cells())

    @property
    def entrance_cell(self) -> ShapeCell:
        return self._cells[self.entrance]

    def adjoining(self, pos: GridPos) -> List[Tuple[GridPos, Direction]]:
        """Occupied neighbors of ``pos`` in the stable door order."""
        result = []
        for direction in DOOR_DIRECTION_ORDER:
            nxt = pos.offset(direction)
            if is_valid_point(nxt) and self._cells[nxt].is_occupied:
                result.append((nxt, direction))
        return result

    def neighbor_mask(self, pos: GridPos) -> RoomEntrances:
        mask = RoomEntrances.NONE
        for _, direction in self.adjoining(pos):
            mask |= direction.entrance
        return mask

    def add_required_door(self, pos: GridPos, direction: Direction) -> None:
        """Mark a door on ``pos`` and mirror it onto the neighbor."""
        neighbor = pos.offset(direction)
        if not is_valid_point(neighbor) or not self._cells[neighbor].is_occupied:
            raise RandomizerError(f"Cannot add a door {direction.name} of {pos}: no room there.")
        cell = self._cells[pos]
        cell.required_doors |= direction.entrance
        other = self._cells[neighbor]
        other.required_doors |= direction.opposite().entrance

    def clear_required_doors(self) -> None:
        for cell in self._cells.values():
            cell.required_doors = RoomEntrances.NONE

    def ensure_all_rooms_fit(self) -> None:
        for cell in self.valid_cells():
            cell.demand_room()

    def update_room_ids(self) -> None:
        self.has_ids_updated = True
        for cell in self.valid_cells():
            room = cell.demand_room()
            room.id = f"{self.name}/{cell.pos} ({room.unique_id})"

    def update_room_coordinates(self) -> None:
        """World-entry coordinates follow the room's grid cell."""
        for cell in self.valid_cells():
            room = cell.demand_room()
            room.world_entry = (cell.pos.x * ROOM_PIXEL_WIDTH, cell.pos.y * ROOM_PIXEL_HEIGHT)

    @classmethod
    def create(cls, world: DungeonWorld, state: RandomizerState) -> DungeonShape:
        """Random depth-first flood fill from the entrance, then special-cell reclassification."""
        flags = state.flags.dungeon
        rng = state.shape_rng
        stats = DungeonStats.create(world, allow_false_walls=flags.allow_false_walls)

        has_compass = flags.always_have_compass or rng.random() < 0.5
        has_map = flags.always_have_map or rng.random() < 0.5
        floor_item_count = stats.floor_item_count + int(has_compass) + int(has_map)

        special_count = 1 + stats.staircase_item_count + floor_item_count + stats.transport_stairs_count
        variance = flags.shapes_size_variance
        target = len(world.rooms) + rng.randint(-variance, variance)
        target = clamp_target(target, special_count, state.unclaimed_room_budget, world.name)

        entrance = GridPos(GRID_WIDTH // 2, GRID_HEIGHT - 1)
        shape = cls(world, stats, entrance)
        shape.target_size = target
        normal_cells = shape._walk(rng, target)

        shape._set_types_randomly(normal_cells, stats.staircase_item_count, CellType.ITEM_STAIRCASE, rng)
        shape._set_types_randomly(normal_cells, floor_item_count, CellType.FLOOR_DROP, rng)
        shape._set_types_randomly(normal_cells, stats.transport_stairs_count, CellType.TRANSPORT_STAIRCASE, rng)

        if has_compass:
            shape._set_item_randomly(CellType.FLOOR_DROP, ItemId.COMPASS, rng)
        if has_map:
            shape._set_item_randomly(CellType.FLOOR_DROP, ItemId.MAP, rng)

        state.reserve_rooms(target)
        logger.info(
            "%s: shape of %d rooms (original %d) after %d walks",
            world.name,
            target,
            len(world.rooms),
            shape.restarts,
        )
        logger.debug("%s", shape.get_debug_display())
        return shape

    @classmethod
    def from_world(cls, world: DungeonWorld, state: RandomizerState) -> DungeonShape:
        """Keep the original layout; only which room sits in which cell changes."""
        flags = state.flags.dungeon
        stats = DungeonStats.create(world, allow_false_walls=flags.allow_false_walls)

        cells: Dict[GridPos, Tuple[CellType, ItemId]] = {}
        entrance: Optional[GridPos] = None
        for room in world.rooms:
            pos = GridPos(room.world_entry[0] // ROOM_PIXEL_WIDTH, room.world_entry[1] // ROOM_PIXEL_HEIGHT)
            if not is_valid_point(pos):
                raise RandomizerError(f"Room {room.unique_id} sits outside the grid at {pos}.")
            if pos in cells:
                raise RandomizerError(f"{world.name}: two rooms share cell {pos}.")
            cells[pos] = _classify_room(room)
            if cells[pos][0] is CellType.ENTRANCE:
                entrance = pos

        if entrance is None:
            raise RandomizerError(f"{world.name} has no entrance room.")

        shape = cls(world, stats, entrance)
        for pos, (cell_type, item) in cells.items():
            shape._cells[pos].type = cell_type
            shape._cells[pos].item = item
        shape.target_size = len(cells)
        state.reserve_rooms(shape.target_size)
        logger.info("%s: keeping the original %d room layout", world.name, shape.target_size)
        return shape

    def _walk(self, rng: random.Random, target: int) -> List[GridPos]:
        directions = list(DOOR_DIRECTION_ORDER)
        normal_cells: List[GridPos] = []
        cell_type = CellType.ENTRANCE
        count = 0

        # The walk can die out early; each restart keeps the cells already claimed.
        while count < target:
            self.restarts += 1
            logger.debug(
                "%s: walk %d, target %d, claimed %d", self.name, self.restarts, target, count
            )
            stack = [self.entrance]
            while stack and count < target:
                current = stack.pop()
                cell = self._cells[current]
                if cell.type is CellType.NONE:
                    if cell_type is CellType.NORMAL:
                        normal_cells.append(current)
                    cell.type = cell_type
                    cell_type = CellType.NORMAL
                    count += 1

                rng.shuffle(directions)
                for direction in directions:
                    nxt = current.offset(direction)
                    if not is_valid_point(nxt):
                        continue
                    if rng.random() < 0.5:
                        stack.append(nxt)
                self.iterations += 1
        return normal_cells

    def _set_types_randomly(
        self,
        normal_cells: List[GridPos],
        count: int,
        cell_type: CellType,
        rng: random.Random,
    ) -> None:
        for _ in range(count):
            if not normal_cells:
                raise RandomizerError(f"{self.name}: no normal cell left to turn into {cell_type.name}.")
            pos = normal_cells.pop(rng.randrange(len(normal_cells)))
            self._cells[pos].type = cell_type

    def _set_item_randomly(self, cell_type: CellType, item: ItemId, rng: random.Random) -> None:
        empty = [cell for cell in self.cells_of_type(cell_type) if cell.item is ItemId.NONE]
        if not empty:
            raise RandomizerError(f"{self.name}: no {cell_type.name} cell left for {item.name}.")
        cell = empty[rng.randrange(len(empty))]
        cell.item = item
        logger.debug("%s: pinned %s in room at %s", self.name, item.name, cell.pos)


def _classify_room(room: Room) -> Tuple[CellType, ItemId]:
    if room.settings.is_entrance:
        return CellType.ENTRANCE, ItemId.NONE
    if has_transport_stairs(room):
        return CellType.TRANSPORT_STAIRCASE, ItemId.NONE
    if has_item_staircase(room):
        return CellType.ITEM_STAIRCASE, ItemId.NONE
    for obj in room.floor_items():
        if obj.item.item in PINNED_ITEMS:
            return CellType.FLOOR_DROP, obj.item.item
        if is_dungeon_item(obj.item.item):
            return CellType.FLOOR_DROP, ItemId.NONE
    return CellType.NORMAL, ItemId.NONE


def clamp_target(target: int, special_count: int, budget: int, name: str = "") -> int:
    """Keep a shape target within what the grid and the room pool can serve."""
    lower = special_count + 1
    upper = min(GRID_WIDTH * GRID_HEIGHT, budget)
    if upper < lower:
        raise PoolExhaustedError(
            f"{name}: needs at least {lower} rooms but only {upper} are left in the pool."
        )
    return max(lower, min(target, upper))
