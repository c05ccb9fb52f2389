import sys
from pathlib import Path
from typing import Callable, Optional, Sequence

import pytest

ROOT_DIR = Path(__file__).resolve().parent.parent
CODE_DIR = ROOT_DIR / "code"
if str(CODE_DIR) not in sys.path:
    sys.path.insert(0, str(CODE_DIR))

from dungeon_geometry import Direction, GridPos
from dungeon_shape import CellType, DungeonShape
from dungeon_stats import DungeonStats
from models import (
    DoorType,
    DungeonSettings,
    DungeonWorld,
    Entrance,
    EntranceArguments,
    EntranceDestination,
    Interactable,
    InteractableKind,
    ItemId,
    ItemOptions,
    Room,
    RoomItem,
    RoomMap,
    RoomSettings,
    WorldRegistry,
)
from pass_context import PassContext
from randomizer_config import RandomizerDungeonFlags, RandomizerFlags
from randomizer_state import RandomizerState
from room_catalog import PLAIN, STAIRWELL, STAIRS_BLOCK, FLOOR_ITEM_BLOCK, build_catalog


@pytest.fixture
def catalog() -> WorldRegistry:
    return build_catalog()


@pytest.fixture
def flags() -> RandomizerFlags:
    return RandomizerFlags()


@pytest.fixture
def make_room() -> Callable[..., Room]:
    counter = {"value": 0}

    def _make_room(
        template: Sequence[str] = PLAIN,
        *,
        name: Optional[str] = None,
        stairs_item: Optional[ItemId] = None,
        transport: bool = False,
        floor_item: Optional[ItemId] = None,
        entrance: bool = False,
        level: int = 1,
        world_name: str = "Test",
    ) -> Room:
        counter["value"] += 1
        unique_id = name or f"room-{counter['value']:02d}"
        interactables = []
        if stairs_item is not None or transport:
            destination = EntranceDestination.TRANSPORT if transport else EntranceDestination.CELLAR
            interactables.append(
                Interactable(
                    InteractableKind.ENTRANCE,
                    *STAIRS_BLOCK,
                    entrance=Entrance(destination, EntranceArguments(item_id=stairs_item or ItemId.NONE)),
                )
            )
        if floor_item is not None:
            interactables.append(
                Interactable(
                    InteractableKind.FLOOR_ITEM,
                    *FLOOR_ITEM_BLOCK,
                    item=RoomItem(floor_item, ItemOptions.IS_ROOM_ITEM),
                )
            )
        return Room(
            unique_id=unique_id,
            original_unique_id=unique_id,
            room_map=RoomMap.from_blocks(template),
            interactables=interactables,
            doors={direction: DoorType.WALL for direction in Direction},
            settings=RoomSettings(is_entrance=entrance, level_number=level),
            world_name=world_name,
        )

    return _make_room


@pytest.fixture
def make_context(make_room) -> Callable[..., PassContext]:
    """Hand-laid shapes for pass tests: ``layout`` maps (x, y) to a cell type."""

    def _make_context(
        layout,
        *,
        seed: int = 0,
        dungeon_flags: Optional[RandomizerDungeonFlags] = None,
        door_counts=None,
        bind_rooms: bool = True,
    ) -> PassContext:
        flags = RandomizerFlags(dungeon=dungeon_flags or RandomizerDungeonFlags())
        state = RandomizerState(seed, flags)
        rooms = []
        for (x, y), cell_type in layout.items():
            if cell_type is CellType.ENTRANCE:
                rooms.append(make_room(entrance=True))
            elif cell_type is CellType.ITEM_STAIRCASE:
                rooms.append(make_room(STAIRWELL, stairs_item=ItemId.BOW))
            elif cell_type is CellType.TRANSPORT_STAIRCASE:
                rooms.append(make_room(STAIRWELL, transport=True))
            elif cell_type is CellType.FLOOR_DROP:
                rooms.append(make_room(floor_item=ItemId.BOOK))
            else:
                rooms.append(make_room())
        world = DungeonWorld("Test", rooms, DungeonSettings(level_number=1))
        stats = DungeonStats(
            staircase_item_count=0,
            floor_item_count=0,
            door_type_counts=door_counts or {DoorType.OPEN: 1},
            transport_stairs_count=0,
        )
        entrance = next(GridPos(x, y) for (x, y), t in layout.items() if t is CellType.ENTRANCE)
        shape = DungeonShape(world, stats, entrance)
        for ((x, y), cell_type), room in zip(layout.items(), rooms):
            cell = shape[GridPos(x, y)]
            cell.type = cell_type
            if bind_rooms:
                cell.room = room
        if not bind_rooms:
            state.initialize([world])
        return PassContext(state=state, shape=shape)

    return _make_context
