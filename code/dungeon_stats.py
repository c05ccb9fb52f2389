"""Aggregate statistics of an original dungeon, used to size and lock its replacement."""

from __future__ import annotations

import bisect
import logging
import random
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

from errors import RandomizerError, TransportPairingError
from models import DoorType, DungeonWorld, ItemId, Room

logger = logging.getLogger(__name__)

ALL_DUNGEON_ITEMS: Tuple[ItemId, ...] = (
    ItemId.RECORDER,
    ItemId.BLUE_CANDLE,
    ItemId.RED_CANDLE,
    ItemId.SILVER_ARROW,
    ItemId.BOW,
    ItemId.MAGIC_KEY,
    ItemId.RAFT,
    ItemId.LADDER,
    ItemId.ROD,
    ItemId.BOOK,
    ItemId.RED_RING,
    ItemId.BRACELET,
    ItemId.WOOD_BOOMERANG,
    ItemId.MAGIC_BOOMERANG,
)

# Lock types that get re-rolled, in the order used to build the cumulative table.
REROLLABLE_DOOR_TYPES: Tuple[DoorType, ...] = (
    DoorType.OPEN,
    DoorType.KEY,
    DoorType.BOMBABLE,
    DoorType.FALSE_WALL,
    DoorType.SHUTTER,
)


def is_dungeon_item(item: Optional[ItemId]) -> bool:
    return item is not None and item in ALL_DUNGEON_ITEMS


def has_item_staircase(room: Room) -> bool:
    return any(is_dungeon_item(obj.entrance.item_id) for obj in room.staircases())


def has_floor_item(room: Room) -> bool:
    return any(is_dungeon_item(obj.item.item) for obj in room.floor_items())


def has_transport_stairs(room: Room) -> bool:
    return room.transport_staircase() is not None


@dataclass
class DungeonStats:
    staircase_item_count: int
    floor_item_count: int
    door_type_counts: Dict[DoorType, int]
    transport_stairs_count: int
    allow_false_walls: bool = True
    _bounds: Tuple[int, ...] = field(init=False, repr=False)
    _types: Tuple[DoorType, ...] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.transport_stairs_count % 2 != 0:
            raise TransportPairingError(
                f"Transport staircase count must be even, got {self.transport_stairs_count}."
            )

        bounds = []
        types = []
        running = 0
        for door_type in REROLLABLE_DOOR_TYPES:
            if door_type is DoorType.FALSE_WALL and not self.allow_false_walls:
                continue
            count = self.door_type_counts.get(door_type, 0)
            if count <= 0:
                continue
            running += count
            bounds.append(running)
            types.append(door_type)

        if running == 0:
            raise RandomizerError("The dungeon has no doors.")
        self._bounds = tuple(bounds)
        self._types = tuple(types)

    @property
    def total_door_count(self) -> int:
        return self._bounds[-1]

    def door_weights(self) -> Mapping[DoorType, int]:
        previous = 0
        weights = {}
        for bound, door_type in zip(self._bounds, self._types):
            weights[door_type] = bound - previous
            previous = bound
        return weights

    def random_door_type(self, rng: random.Random) -> DoorType:
        """Frequency-weighted draw over the re-rollable lock types."""
        draw = rng.randrange(self.total_door_count)
        # First cumulative bound strictly above the draw, so each type gets exactly its count.
        index = bisect.bisect_right(self._bounds, draw)
        return self._types[index]

    @classmethod
    def create(cls, world: DungeonWorld, allow_false_walls: bool = True) -> DungeonStats:
        staircase_item_count = sum(1 for room in world.rooms if has_item_staircase(room))
        floor_item_count = sum(1 for room in world.rooms if has_floor_item(room))
        transport_stairs_count = sum(1 for room in world.rooms if has_transport_stairs(room))

        door_type_counts: Dict[DoorType, int] = {}
        for room in world.rooms:
            for door_type in room.doors.values():
                door_type_counts[door_type] = door_type_counts.get(door_type, 0) + 1

        logger.debug(
            "%s: staircase items %d, floor items %d, transport stairs %d, doors %s",
            world.name,
            staircase_item_count,
            floor_item_count,
            transport_stairs_count,
            {door_type.name: count for door_type, count in door_type_counts.items()},
        )
        return cls(
            staircase_item_count=staircase_item_count,
            floor_item_count=floor_item_count,
            door_type_counts=door_type_counts,
            transport_stairs_count=transport_stairs_count,
            allow_false_walls=allow_false_walls,
        )
