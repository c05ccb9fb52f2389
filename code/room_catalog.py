"""Static room definitions for two sample dungeon levels.

Every call to build_catalog() builds fresh Room objects, so a failed
randomization attempt can be retried against untouched input.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from dungeon_constants import ROOM_PIXEL_HEIGHT, ROOM_PIXEL_WIDTH
from dungeon_geometry import Direction, GridPos
from models import (
    DoorType,
    DungeonSettings,
    DungeonWorld,
    Entrance,
    EntranceArguments,
    EntranceDestination,
    Interactable,
    InteractableKind,
    InteractionEffect,
    ItemId,
    ItemOptions,
    Monster,
    MonsterKind,
    PersonType,
    Room,
    RoomInteraction,
    RoomItem,
    RoomMap,
    RoomSettings,
    Trigger,
    WorldRegistry,
)

PLAIN = (
    "#######DD#######",
    "#######DD#######",
    "##............##",
    "##............##",
    "##............##",
    "DD............DD",
    "##............##",
    "##............##",
    "##............##",
    "#######DD#######",
    "#######DD#######",
)

PILLARS = (
    "#######DD#######",
    "#######DD#######",
    "##............##",
    "##.BB......BB.##",
    "##............##",
    "DD............DD",
    "##............##",
    "##.BB......BB.##",
    "##............##",
    "#######DD#######",
    "#######DD#######",
)

SAND = (
    "#######DD#######",
    "#######DD#######",
    "##..::::::::..##",
    "##..::::::::..##",
    "##............##",
    "DD............DD",
    "##............##",
    "##..::::::::..##",
    "##..::::::::..##",
    "#######DD#######",
    "#######DD#######",
)

# A one block wide channel cuts the east door off from the rest of the room.
WATER_CHANNEL = (
    "#######DD#######",
    "#######DD#######",
    "##.......~....##",
    "##.......~....##",
    "##.......~....##",
    "DD.......~....DD",
    "##.......~....##",
    "##.......~....##",
    "##.......~....##",
    "#######DD#######",
    "#######DD#######",
)

STAIRWELL = (
    "#######DD#######",
    "#######DD#######",
    "##............##",
    "##............##",
    "##........S...##",
    "DD............DD",
    "##............##",
    "##............##",
    "##............##",
    "#######DD#######",
    "#######DD#######",
)

HIDDEN_STAIRWELL = (
    "#######DD#######",
    "#######DD#######",
    "##............##",
    "##............##",
    "##...B....S...##",
    "DD............DD",
    "##............##",
    "##............##",
    "##............##",
    "#######DD#######",
    "#######DD#######",
)

BLOCK_PUZZLE = (
    "#######DD#######",
    "#######DD#######",
    "##............##",
    "##.B........B.##",
    "##............##",
    "DD............DD",
    "##...B........##",
    "##.B........B.##",
    "##............##",
    "#######DD#######",
    "#######DD#######",
)

# Only the south door leads anywhere.
PRIZE_ALCOVE = (
    "################",
    "################",
    "################",
    "######...#######",
    "######...#######",
    "######...#######",
    "######...#######",
    "######...#######",
    "######...#######",
    "#######DD#######",
    "#######DD#######",
)

STAIRS_BLOCK = (10, 4)
FLOOR_ITEM_BLOCK = (7, 5)
HIDDEN_PUSH_BLOCK = (5, 4)
SHUTTER_PUSH_BLOCK = (5, 6)

_DOOR_NAMES = {
    "open": DoorType.OPEN,
    "key": DoorType.KEY,
    "bomb": DoorType.BOMBABLE,
    "false": DoorType.FALSE_WALL,
    "shutter": DoorType.SHUTTER,
}
_SIDE_NAMES = {"N": Direction.NORTH, "E": Direction.EAST, "S": Direction.SOUTH, "W": Direction.WEST}


@dataclass(frozen=True)
class RoomDef:
    """Declarative description of one original room."""

    pos: Tuple[int, int]
    template: Sequence[str] = PLAIN
    doors: str = ""
    monsters: Tuple[Tuple[MonsterKind, int], ...] = ()
    entrance: bool = False
    stairs_item: Optional[ItemId] = None
    hidden_stairs: bool = False
    transport_to: Optional[Tuple[int, int]] = None
    floor_item: Optional[ItemId] = None
    shutter_block: bool = False
    cave_person: Optional[PersonType] = None
    opens_on_clear: bool = False


@dataclass(frozen=True)
class DungeonDef:
    name: str
    level_number: int
    rooms: Tuple[RoomDef, ...] = field(default_factory=tuple)


def parse_doors(text: str) -> Dict[Direction, DoorType]:
    """``"S=open N=key"`` -> door map; every side not named is a wall."""
    doors = {direction: DoorType.WALL for direction in Direction}
    for token in text.split():
        side, _, name = token.partition("=")
        try:
            doors[_SIDE_NAMES[side]] = _DOOR_NAMES[name]
        except KeyError as exc:
            raise ValueError(f"Bad door token {token!r}") from exc
    return doors


def _staircase(definition: RoomDef) -> Interactable:
    x, y = STAIRS_BLOCK
    if definition.transport_to is not None:
        here = GridPos(*definition.pos)
        there = GridPos(*definition.transport_to)
        is_left = here < there
        left, right = (here, there) if is_left else (there, here)
        entrance = Entrance.transport(left, right, is_left=is_left)
    else:
        entrance = Entrance(
            destination=EntranceDestination.CELLAR,
            arguments=EntranceArguments(item_id=definition.stairs_item or ItemId.NONE),
        )
    staircase = Interactable(InteractableKind.ENTRANCE, x, y, entrance=entrance)
    if definition.hidden_stairs:
        staircase.trigger = Trigger.REVEALED
        staircase.revealed_by = Interactable(
            InteractableKind.PUSH_BLOCK, *HIDDEN_PUSH_BLOCK, trigger=Trigger.PUSH
        )
    return staircase


def build_room(dungeon: DungeonDef, index: int, definition: RoomDef) -> Room:
    unique_id = f"{dungeon.name}-{index:02d}"
    interactables: List[Interactable] = []
    if definition.stairs_item is not None or definition.transport_to is not None:
        staircase = _staircase(definition)
        interactables.append(staircase)
        if staircase.revealed_by is not None:
            interactables.append(staircase.revealed_by)
    if definition.floor_item is not None:
        interactables.append(
            Interactable(
                InteractableKind.FLOOR_ITEM,
                *FLOOR_ITEM_BLOCK,
                item=RoomItem(definition.floor_item, ItemOptions.IS_ROOM_ITEM),
                trigger=Trigger.ROOM_CLEARED,
            )
        )
    if definition.shutter_block:
        interactables.append(
            Interactable(
                InteractableKind.PUSH_BLOCK,
                *SHUTTER_PUSH_BLOCK,
                trigger=Trigger.PUSH,
                effect=InteractionEffect.OPEN_SHUTTER_DOORS,
            )
        )

    x, y = definition.pos
    return Room(
        unique_id=unique_id,
        original_unique_id=unique_id,
        room_map=RoomMap.from_blocks(definition.template),
        interactables=interactables,
        monsters=[Monster(kind, count) for kind, count in definition.monsters],
        doors=parse_doors(definition.doors),
        settings=RoomSettings(is_entrance=definition.entrance, level_number=dungeon.level_number),
        room_interactions=[RoomInteraction.open_shutter_doors()] if definition.opens_on_clear else [],
        cave_person=definition.cave_person,
        world_name=dungeon.name,
        world_entry=(x * ROOM_PIXEL_WIDTH, y * ROOM_PIXEL_HEIGHT),
    )


def build_dungeon(dungeon: DungeonDef) -> DungeonWorld:
    rooms = [build_room(dungeon, index, definition) for index, definition in enumerate(dungeon.rooms)]
    return DungeonWorld(dungeon.name, rooms, DungeonSettings(level_number=dungeon.level_number))


K = MonsterKind

LEVEL_1 = DungeonDef(
    name="Level1",
    level_number=1,
    rooms=(
        RoomDef((4, 7), doors="S=open N=open", entrance=True),
        RoomDef((3, 7), SAND, doors="E=open", monsters=((K.KEESE, 3),)),
        RoomDef((5, 7), doors="W=open", monsters=((K.STALFOS, 3),), floor_item=ItemId.COMPASS),
        RoomDef((4, 6), STAIRWELL, doors="S=open N=key", monsters=((K.GEL, 5),), stairs_item=ItemId.BOW),
        RoomDef((3, 6), doors="E=bomb", monsters=((K.STALFOS, 5),), floor_item=ItemId.MAGIC_BOOMERANG),
        RoomDef(
            (5, 6),
            STAIRWELL,
            doors="W=shutter",
            monsters=((K.KEESE, 4),),
            transport_to=(2, 3),
            opens_on_clear=True,
        ),
        RoomDef((4, 5), WATER_CHANNEL, doors="S=key N=open", monsters=((K.GEL, 3),)),
        RoomDef((3, 5), doors="E=open", monsters=((K.STALFOS, 2),), floor_item=ItemId.MAP),
        RoomDef((2, 5), BLOCK_PUZZLE, doors="E=shutter", monsters=((K.KEESE, 6),), shutter_block=True),
        RoomDef((5, 5), PILLARS, doors="W=open", monsters=((K.GORIYA, 2),)),
        RoomDef(
            (6, 5),
            HIDDEN_STAIRWELL,
            doors="W=false",
            monsters=((K.STALFOS, 4),),
            stairs_item=ItemId.RAFT,
            hidden_stairs=True,
        ),
        RoomDef((2, 4), SAND, doors="S=key", monsters=((K.GEL, 6),)),
        RoomDef((4, 4), doors="S=open", monsters=((K.GORIYA, 3),), floor_item=ItemId.WOOD_BOOMERANG),
        RoomDef((6, 4), PILLARS, doors="S=bomb", monsters=((K.WALLMASTER, 2),)),
        RoomDef((2, 3), STAIRWELL, doors="S=open", monsters=((K.KEESE, 5),), transport_to=(5, 6)),
        RoomDef((4, 3), doors="S=shutter", monsters=((K.RED_GOHMA, 1),), opens_on_clear=True),
        RoomDef((6, 3), SAND, monsters=((K.ROPE, 4),)),
        RoomDef((4, 2), STAIRWELL, doors="N=key", monsters=((K.GORIYA, 4),), stairs_item=ItemId.LADDER),
        RoomDef((5, 2), PILLARS, monsters=((K.STALFOS, 6),)),
        RoomDef((4, 1), monsters=((K.AQUAMENTUS, 1),)),
    ),
)

LEVEL_2 = DungeonDef(
    name="Level2",
    level_number=2,
    rooms=(
        RoomDef((4, 7), doors="S=open N=open", entrance=True),
        RoomDef((4, 6), doors="S=open E=key W=open", monsters=((K.ROPE, 4),)),
        RoomDef((3, 6), SAND, doors="E=open", monsters=((K.ZOL, 3),), floor_item=ItemId.MAP),
        RoomDef((5, 6), PILLARS, doors="W=key", monsters=((K.ROPE, 5),)),
        RoomDef((4, 5), doors="S=open N=bomb", monsters=((K.ZOL, 4),), floor_item=ItemId.COMPASS),
        RoomDef((3, 5), BLOCK_PUZZLE, doors="E=shutter", monsters=((K.KEESE, 5),), shutter_block=True),
        RoomDef((5, 5), STAIRWELL, doors="W=open", monsters=((K.GORIYA, 3),), stairs_item=ItemId.RECORDER),
        RoomDef((4, 4), doors="S=bomb N=open", monsters=((K.LIKE_LIKE, 2),)),
        RoomDef((3, 4), doors="E=key", monsters=((K.ZOL, 6),), floor_item=ItemId.BOOK),
        RoomDef((5, 4), SAND, doors="W=open", monsters=((K.WALLMASTER, 3),)),
        RoomDef((4, 3), doors="S=open W=open N=shutter", monsters=((K.ROPE, 6),), opens_on_clear=True),
        RoomDef((3, 3), doors="E=open", cave_person=PersonType.OLD_MAN),
        RoomDef((4, 2), PILLARS, doors="N=open", monsters=((K.DIGDOGGER, 1),)),
        RoomDef((4, 1), PRIZE_ALCOVE, doors="S=open"),
    ),
)

SAMPLE_DUNGEONS: Tuple[DungeonDef, ...] = (LEVEL_1, LEVEL_2)


def build_catalog(dungeons: Sequence[DungeonDef] = SAMPLE_DUNGEONS) -> WorldRegistry:
    return WorldRegistry([build_dungeon(dungeon) for dungeon in dungeons])
