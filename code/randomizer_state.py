"""Per-run mutable state shared by every randomization pass."""

from __future__ import annotations

import logging
import random
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from dungeon_stats import ALL_DUNGEON_ITEMS
from errors import PoolExhaustedError
from models import DungeonWorld, Interactable, ItemId, Monster, Room
from randomizer_config import RandomizerFlags
from room_requirements import RoomRequirementsAnalyzer

logger = logging.getLogger(__name__)

ROOM_LIST_STREAM = "room-list"
MONSTER_STREAM = "monsters"
SHAPE_STREAM = "shapes"
ITEM_STREAM = "items"

# Dungeons up to this level share one monster pool, later dungeons another.
EARLY_DUNGEON_MAX_LEVEL = 4


def make_rng(seed: int, purpose: str) -> random.Random:
    """An independent stream for one purpose; draws never shift another stream."""
    return random.Random(f"{seed}/{purpose}")


def add_randomly(target: List, values: Iterable, rng: random.Random) -> None:
    """Insert each value at a random position of ``target``."""
    for value in values:
        target.insert(rng.randint(0, len(target)), value)


class RoomPool:
    """Shuffled cross-dungeon room pool; a taken room can never come back."""

    def __init__(self) -> None:
        self._rooms: List[Room] = []
        self._taken: set = set()

    def add_randomly(self, rooms: Iterable[Room], rng: random.Random) -> None:
        add_randomly(self._rooms, rooms, rng)

    def take(self, room: Room) -> Room:
        if room.unique_id in self._taken:
            raise ValueError(f"Room {room.unique_id} was already assigned")
        self._rooms.remove(room)
        self._taken.add(room.unique_id)
        return room

    def was_taken(self, room: Room) -> bool:
        return room.unique_id in self._taken

    def __iter__(self) -> Iterator[Room]:
        # Iterate a snapshot so a room can be taken mid-scan.
        return iter(tuple(self._rooms))

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, room: Room) -> bool:
        return room in self._rooms


class RandomizerState:
    """Root of per-run mutable state: RNG streams and the room, item and monster pools."""

    def __init__(self, seed: int, flags: Optional[RandomizerFlags] = None) -> None:
        self.seed = seed
        self.flags = flags or RandomizerFlags()
        self.flags.check_integrity()

        self.room_list_rng = make_rng(seed, ROOM_LIST_STREAM)
        self.monster_rng = make_rng(seed, MONSTER_STREAM)
        self.shape_rng = make_rng(seed, SHAPE_STREAM)
        self.item_rng = make_rng(seed, ITEM_STREAM)

        self.room_pool = RoomPool()
        self.analyzer = RoomRequirementsAnalyzer()

        self.dungeon_items: List[ItemId] = list(ALL_DUNGEON_ITEMS)
        self.item_rng.shuffle(self.dungeon_items)

        self._monsters_early: List[List[Monster]] = []
        self._monsters_late: List[List[Monster]] = []
        self._monsters_all: List[List[Monster]] = []
        self._monsters_shuffled = False
        self._reserved_rooms = 0
        self._initialized = False

    def initialize(self, dungeons: Sequence[DungeonWorld]) -> None:
        """Fill the cross-dungeon room pool and collect monster lists."""
        if self._initialized:
            raise RuntimeError("RandomizerState.initialize may only run once per state")
        self._initialized = True

        for dungeon in dungeons:
            self.room_pool.add_randomly(dungeon.rooms, self.room_list_rng)
            target = (
                self._monsters_early
                if dungeon.level_number <= EARLY_DUNGEON_MAX_LEVEL
                else self._monsters_late
            )
            for room in dungeon.rooms:
                if room.monsters:
                    target.append(list(room.monsters))
                    self._monsters_all.append(list(room.monsters))

        logger.debug("Room pool holds %d rooms from %d dungeons", len(self.room_pool), len(dungeons))

    def door_rng(self, level_number: int) -> random.Random:
        """Door stream, recreated per dungeon so other passes do not shift it."""
        return make_rng(self.seed, f"doors/{level_number}")

    def reserve_rooms(self, count: int) -> None:
        self._reserved_rooms += count

    @property
    def unclaimed_room_budget(self) -> int:
        """Pool rooms able to fill any cell that no shape created so far has claimed.

        Rooms with a blocked side are left out; they are extras that may or may not find a cell.
        """
        flexible = sum(
            1 for room in self.room_pool if self.analyzer.get_requirements(room).connectable_entrances.count() == 4
        )
        return flexible - self._reserved_rooms

    def normalize_remaining_rooms(self) -> None:
        """Strip everything that makes the remaining pool rooms special."""
        for room in self.room_pool:
            doomed: List[Interactable] = []
            for obj in room.interactables:
                if obj.is_entrance:
                    doomed.append(obj)
                    if obj.revealed_by is not None:
                        doomed.append(obj.revealed_by)
                elif obj.is_floor_item:
                    doomed.append(obj)
            if doomed:
                room.remove_interactables(doomed)
            room.settings.is_entrance = False
            self.analyzer.invalidate(room)

    def pop_item(self) -> ItemId:
        if not self.dungeon_items:
            raise PoolExhaustedError("No more dungeon items left in the pool.")
        return self.dungeon_items.pop()

    def return_items(self, items: Iterable[ItemId]) -> None:
        self.dungeon_items.extend(items)

    def rerandomize_item_list(self) -> None:
        self.item_rng.shuffle(self.dungeon_items)

    def _shuffle_monster_pools(self) -> None:
        for pool in (self._monsters_early, self._monsters_late, self._monsters_all):
            self.monster_rng.shuffle(pool)
        self._monsters_shuffled = True

    def room_monsters(self, room: Room) -> List[Monster]:
        """Next monster list for ``room`` from its level's pool, or the shared pool."""
        if not self._monsters_shuffled:
            self._shuffle_monster_pools()

        level_pool = (
            self._monsters_early
            if room.settings.level_number <= EARLY_DUNGEON_MAX_LEVEL
            else self._monsters_late
        )
        for pool in (level_pool, self._monsters_all):
            if pool:
                return list(pool.pop())
        raise PoolExhaustedError(f"No monster lists left for room {room.unique_id}.")

    def monster_pool_sizes(self) -> Dict[str, int]:
        return {
            "early": len(self._monsters_early),
            "late": len(self._monsters_late),
            "all": len(self._monsters_all),
        }
