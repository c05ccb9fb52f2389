"""Per-room analysis: which sides can hold a door and which sides connect internally."""

from __future__ import annotations

import heapq
import itertools
import logging
from dataclasses import dataclass
from enum import IntFlag
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from dungeon_constants import DOOR_PROBE_BLOCKS, TILES_PER_BLOCK
from dungeon_geometry import DoorPair, ENTRANCE_ORDER, RoomEntrances
from errors import UnsolvableRoomError
from models import (
    DoorType,
    Interactable,
    InteractionEffect,
    ItemId,
    MonsterKind,
    PersonType,
    Room,
    TileBehavior,
    Trigger,
)

logger = logging.getLogger(__name__)


class RoomRequirementFlags(IntFlag):
    NONE = 0
    HAS_STAIRCASE = 1 << 0
    HAS_FLOOR_DROP = 1 << 1
    HAS_PUSH_BLOCK = 1 << 2
    IS_ENTRANCE = 1 << 3


class PathRequirements(IntFlag):
    """Items needed to walk a path."""

    NONE = 0
    LADDER = 1 << 0
    RECORDER = 1 << 1
    ARROW = 1 << 2
    FOOD = 1 << 3
    RAFT = 1 << 4
    BRACELET = 1 << 5

    IMPOSSIBLE = 1 << 30


_ITEM_REQUIREMENTS: Mapping[ItemId, PathRequirements] = {
    ItemId.LADDER: PathRequirements.LADDER,
    ItemId.RECORDER: PathRequirements.RECORDER,
    ItemId.WOOD_ARROW: PathRequirements.ARROW,
    ItemId.SILVER_ARROW: PathRequirements.ARROW,
    ItemId.FOOD: PathRequirements.FOOD,
    ItemId.RAFT: PathRequirements.RAFT,
    ItemId.BRACELET: PathRequirements.BRACELET,
}

_MONSTER_REQUIREMENTS: Mapping[MonsterKind, PathRequirements] = {
    MonsterKind.BLUE_GOHMA: PathRequirements.ARROW,
    MonsterKind.RED_GOHMA: PathRequirements.ARROW,
    MonsterKind.GRUMBLE: PathRequirements.FOOD,
    MonsterKind.DIGDOGGER: PathRequirements.RECORDER,
}


def item_causes_requirement(item: ItemId) -> PathRequirements:
    return _ITEM_REQUIREMENTS.get(item, PathRequirements.NONE)


def path_requirements_allow(requirements: PathRequirements, item: ItemId) -> bool:
    """True when a path with these requirements can be walked without ``item``."""
    needed = item_causes_requirement(item)
    if needed == PathRequirements.NONE:
        return True
    return not (requirements & needed)


def monster_requirements(room: Room) -> PathRequirements:
    requirements = PathRequirements.NONE
    for monster in room.monsters:
        requirements |= _MONSTER_REQUIREMENTS.get(monster.kind, PathRequirements.NONE)
    return requirements


def shutter_requirements(room: Room) -> PathRequirements:
    """Shutters open when the room is cleared, so its monsters gate every exit."""
    if not any(door is DoorType.SHUTTER for door in room.doors.values()):
        return PathRequirements.NONE
    return monster_requirements(room)


def stair_requirements(room: Room) -> PathRequirements:
    """Requirements to use a room's staircase when it first has to be revealed."""
    staircase = room.first_staircase()
    if staircase is None or staircase.revealed_by is None:
        return PathRequirements.NONE
    revealer = staircase.revealed_by
    if revealer.trigger in (Trigger.PUSH, Trigger.ROOM_CLEARED):
        return monster_requirements(room)
    return PathRequirements.NONE


@dataclass(frozen=True)
class RoomRequirements:
    # Sides where nothing hard-blocks a door; it does not mean a door is there.
    connectable_entrances: RoomEntrances
    paths: Mapping[DoorPair, PathRequirements]
    flags: RoomRequirementFlags
    push_block: Optional[Interactable] = None
    staircase: Optional[Interactable] = None

    @property
    def has_staircase(self) -> bool:
        return bool(self.flags & RoomRequirementFlags.HAS_STAIRCASE)

    @property
    def has_floor_drop(self) -> bool:
        return bool(self.flags & RoomRequirementFlags.HAS_FLOOR_DROP)

    @property
    def has_push_block(self) -> bool:
        return bool(self.flags & RoomRequirementFlags.HAS_PUSH_BLOCK)

    @property
    def is_entrance(self) -> bool:
        return bool(self.flags & RoomRequirementFlags.IS_ENTRANCE)

    @property
    def has_shutter_push_block(self) -> bool:
        return self.push_block is not None and self.push_block.opens_shutters

    def can_connect(self, entrance: RoomEntrances) -> bool:
        return self.connectable_entrances.has(entrance)

    def path(self, a: RoomEntrances, b: RoomEntrances) -> Optional[PathRequirements]:
        if a == b:
            return None
        return self.paths.get(DoorPair.create(a, b))


@dataclass(frozen=True)
class RoomPaths:
    paths: Mapping[DoorPair, PathRequirements]
    valid_entrances: RoomEntrances


Point = Tuple[int, int]


class PathBehaviorMap:
    """Requirement to step onto each block of a room (top-left tile of each block)."""

    def __init__(self, room: Room) -> None:
        self.width = room.room_map.width
        self.height = room.room_map.height
        water_requirement = PathRequirements.LADDER
        for obj in room.interactables:
            if obj.effect is InteractionEffect.DRYOUT_WATER and obj.trigger is Trigger.RECORDER:
                water_requirement = PathRequirements.RECORDER
                break

        blocked_by: Dict[Point, Interactable] = {
            (obj.x * TILES_PER_BLOCK, obj.y * TILES_PER_BLOCK): obj for obj in room.interactables
        }
        self._requirements: Dict[Point, PathRequirements] = {}
        for y in range(0, self.height, TILES_PER_BLOCK):
            for x in range(0, self.width, TILES_PER_BLOCK):
                behavior = room.behavior(x, y)
                if behavior is TileBehavior.WATER:
                    self._requirements[(x, y)] = water_requirement
                elif behavior.can_walk() or behavior is TileBehavior.DOOR:
                    self._requirements[(x, y)] = PathRequirements.NONE
                else:
                    self._requirements[(x, y)] = self._blocked_requirement(blocked_by.get((x, y)))

    @staticmethod
    def _blocked_requirement(obj: Optional[Interactable]) -> PathRequirements:
        if obj is None:
            return PathRequirements.IMPOSSIBLE
        if obj.is_push_block:
            if obj.item_requirement is None:
                return PathRequirements.NONE
            return item_causes_requirement(obj.item_requirement)
        # Hidden staircases and touch-once objects are walkable once revealed or removed.
        if obj.is_entrance or obj.trigger is Trigger.TOUCH_ONCE:
            return PathRequirements.NONE
        return PathRequirements.IMPOSSIBLE

    def is_valid(self, point: Point) -> bool:
        return 0 <= point[0] < self.width and 0 <= point[1] < self.height

    def __getitem__(self, point: Point) -> PathRequirements:
        return self._requirements[point]

    def to_debug_string(self) -> str:
        symbols = {
            PathRequirements.IMPOSSIBLE: "X",
            PathRequirements.NONE: ".",
            PathRequirements.LADDER: "~",
            PathRequirements.RECORDER: "R",
            PathRequirements.BRACELET: "B",
        }
        lines = []
        for y in range(0, self.height, TILES_PER_BLOCK):
            lines.append(
                "".join(symbols.get(self[(x, y)], "?") for x in range(0, self.width, TILES_PER_BLOCK))
            )
        return "\n".join(lines)


def _entrance_points(room: Room, entrance: RoomEntrances) -> List[Point]:
    """Tile the player has to reach to use ``entrance``; empty when unusable."""
    if entrance == RoomEntrances.STAIRS:
        staircase = room.first_staircase()
        if staircase is None:
            return []
        return [(staircase.x * TILES_PER_BLOCK, staircase.y * TILES_PER_BLOCK)]

    # Every cave dweller except the grumble (which can be fed away) blocks the way up.
    if (
        entrance == RoomEntrances.NORTH
        and room.cave_person is not None
        and room.cave_person is not PersonType.GRUMBLE
    ):
        return []

    block_x, block_y = DOOR_PROBE_BLOCKS[entrance]
    point = (block_x * TILES_PER_BLOCK, block_y * TILES_PER_BLOCK)
    if not room.room_map.is_valid(*point):
        return []
    # Stairs are walkable but cannot stand in front of a door.
    behavior = room.behavior(*point)
    if behavior in (TileBehavior.GENERIC_WALKABLE, TileBehavior.SAND):
        return [point]
    return []


def _search_path(
    behavior_map: PathBehaviorMap,
    start: Point,
    goal: Point,
) -> Optional[PathRequirements]:
    """Best-first search in block steps.

    Returns NONE as soon as a dry path is found, LADDER when only a laddered path
    exists, and None when there is no path at all.
    """
    step = TILES_PER_BLOCK
    counter = itertools.count()
    queue: List[Tuple[int, int, Point, PathRequirements]] = [
        (0, next(counter), start, PathRequirements.NONE)
    ]
    visited: Set[Tuple[Point, PathRequirements]] = set()
    has_laddered_path = False

    while queue:
        _, _, current, requirements = heapq.heappop(queue)
        if (current, requirements) in visited:
            continue
        visited.add((current, requirements))

        if current == goal:
            if not requirements & PathRequirements.LADDER:
                return requirements
            has_laddered_path = True
            continue

        for dx, dy in ((-step, 0), (step, 0), (0, -step), (0, step)):
            nxt = (current[0] + dx, current[1] + dy)
            if not behavior_map.is_valid(nxt):
                continue
            next_requirement = behavior_map[nxt]
            if next_requirement == PathRequirements.IMPOSSIBLE:
                continue
            if next_requirement == PathRequirements.LADDER:
                # The ladder spans a single water block, never two in a row.
                if behavior_map[current] == PathRequirements.LADDER:
                    continue
                if has_laddered_path:
                    continue
            next_requirements = requirements | next_requirement
            if (nxt, next_requirements) in visited:
                continue
            distance = abs(goal[0] - nxt[0]) + abs(goal[1] - nxt[1])
            heapq.heappush(queue, (distance, next(counter), nxt, next_requirements))

    if has_laddered_path:
        return PathRequirements.LADDER
    return None


class RoomRequirementsAnalyzer:
    """Computes and caches RoomRequirements.

    Internal paths depend only on a room's layout, so they are cached by the
    room's stable original identity. Flags and object handles are cached by
    unique id and must be invalidated when a room's objects change.
    """

    def __init__(self) -> None:
        self._path_cache: Dict[str, RoomPaths] = {}
        self._requirements_cache: Dict[str, RoomRequirements] = {}

    def get_requirements(self, room: Room) -> RoomRequirements:
        cached = self._requirements_cache.get(room.unique_id)
        if cached is not None:
            return cached

        flags = RoomRequirementFlags.NONE
        push_block: Optional[Interactable] = None
        staircase: Optional[Interactable] = None
        for obj in room.interactables:
            if obj.is_entrance:
                flags |= RoomRequirementFlags.HAS_STAIRCASE
                staircase = obj
            elif obj.is_floor_item:
                flags |= RoomRequirementFlags.HAS_FLOOR_DROP
            elif obj.is_push_block:
                flags |= RoomRequirementFlags.HAS_PUSH_BLOCK
                push_block = obj
        if room.settings.is_entrance:
            flags |= RoomRequirementFlags.IS_ENTRANCE

        paths = self.room_paths(room)
        requirements = RoomRequirements(
            connectable_entrances=paths.valid_entrances,
            paths=paths.paths,
            flags=flags,
            push_block=push_block,
            staircase=staircase,
        )
        self._requirements_cache[room.unique_id] = requirements
        return requirements

    def room_paths(self, room: Room) -> RoomPaths:
        cache_key = f"{room.world_name}/{room.original_unique_id}"
        cached = self._path_cache.get(cache_key)
        if cached is not None:
            return cached

        behavior_map = PathBehaviorMap(room)
        entrances: List[RoomEntrances] = list(ENTRANCE_ORDER)
        if room.has_stairs():
            entrances.append(RoomEntrances.STAIRS)

        points = {entrance: _entrance_points(room, entrance) for entrance in entrances}
        valid_entrances = RoomEntrances.NONE
        for entrance, entrance_points in points.items():
            if entrance_points and entrance != RoomEntrances.STAIRS:
                valid_entrances |= entrance

        paths: Dict[DoorPair, PathRequirements] = {}
        for pair in DoorPair.all_pairs(entrances):
            from_points = points[pair.first]
            to_points = points[pair.second]
            if not from_points or not to_points:
                logger.debug("%s: skipping %s, one side is unusable", room.unique_id, pair)
                continue
            result = _search_path(behavior_map, from_points[0], to_points[0])
            if result is None:
                logger.debug("%s: no path for %s", room.unique_id, pair)
                continue
            paths[pair] = result
            logger.debug("%s: path for %s requires %s", room.unique_id, pair, result)

        self._check_solvable(room, valid_entrances, paths, behavior_map)
        if valid_entrances.count() == 1:
            logger.warning("Room %s can only be entered from %s", room.unique_id, valid_entrances.direction.name)
        entry = RoomPaths(paths=paths, valid_entrances=valid_entrances)
        self._path_cache[cache_key] = entry
        return entry

    @staticmethod
    def _check_solvable(
        room: Room,
        valid_entrances: RoomEntrances,
        paths: Mapping[DoorPair, PathRequirements],
        behavior_map: PathBehaviorMap,
    ) -> None:
        if valid_entrances == RoomEntrances.NONE:
            logger.error("Room %s has no usable door:\n%s", room.unique_id, behavior_map.to_debug_string())
            raise UnsolvableRoomError(f"Room {room.unique_id} does not have any valid entrances.")
        # A single-exit room (the prize room at the end of a level) has nothing to connect internally.
        if not paths and valid_entrances.count() > 1:
            logger.error("Room %s has no internal path:\n%s", room.unique_id, behavior_map.to_debug_string())
            raise UnsolvableRoomError(f"Room {room.unique_id} has no path between any of its entrances.")

    def invalidate(self, room: Room) -> None:
        """Forget flags and object handles after a room's objects were changed."""
        self._requirements_cache.pop(room.unique_id, None)

    def clear(self) -> None:
        self._path_cache.clear()
        self._requirements_cache.clear()

    def cached_room_ids(self) -> Iterable[str]:
        return tuple(self._requirements_cache)
