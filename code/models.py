"""Core dataclasses describing dungeon rooms and the worlds that hold them."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntFlag
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from dungeon_constants import TILES_PER_BLOCK
from dungeon_geometry import Direction, GridPos


class TileBehavior(Enum):
    """Per-tile behavior as reported by the tile engine."""

    WALL = 0
    GENERIC_WALKABLE = 1
    SAND = 2
    WATER = 3
    DOOR = 4
    STAIRS = 5
    SLOW_STAIRS = 6
    BLOCK = 7

    def can_walk(self) -> bool:
        return self in _WALKABLE_BEHAVIORS


_WALKABLE_BEHAVIORS = frozenset(
    (TileBehavior.GENERIC_WALKABLE, TileBehavior.SAND, TileBehavior.STAIRS, TileBehavior.SLOW_STAIRS)
)

# Characters accepted by RoomMap.from_blocks.
BLOCK_LEGEND: Mapping[str, TileBehavior] = {
    "#": TileBehavior.WALL,
    ".": TileBehavior.GENERIC_WALKABLE,
    ":": TileBehavior.SAND,
    "~": TileBehavior.WATER,
    "D": TileBehavior.DOOR,
    "S": TileBehavior.STAIRS,
    "s": TileBehavior.SLOW_STAIRS,
    "B": TileBehavior.BLOCK,
}


class DoorType(Enum):
    """A door's traversal requirement."""

    NONE = 0
    WALL = 1
    OPEN = 2
    KEY = 3
    BOMBABLE = 4
    FALSE_WALL = 5
    SHUTTER = 6


class ItemId(Enum):
    NONE = 0
    RECORDER = 1
    BLUE_CANDLE = 2
    RED_CANDLE = 3
    SILVER_ARROW = 4
    BOW = 5
    MAGIC_KEY = 6
    RAFT = 7
    LADDER = 8
    ROD = 9
    BOOK = 10
    RED_RING = 11
    BRACELET = 12
    WOOD_BOOMERANG = 13
    MAGIC_BOOMERANG = 14
    WOOD_ARROW = 15
    FOOD = 16
    COMPASS = 17
    MAP = 18
    TRIFORCE_PIECE = 19


class PersonType(Enum):
    """Cave dwellers that can stand in a dungeon room."""

    OLD_MAN = 0
    GRUMBLE = 1
    MERCHANT = 2


class MonsterKind(Enum):
    STALFOS = 0
    KEESE = 1
    GEL = 2
    ZOL = 3
    GORIYA = 4
    ROPE = 5
    WALLMASTER = 6
    DARKNUT = 7
    WIZZROBE = 8
    LIKE_LIKE = 9
    GIBDO = 10
    POLS_VOICE = 11
    VIRE = 12
    LANMOLA = 13
    AQUAMENTUS = 14
    DODONGO = 15
    MANHANDLA = 16
    GLEEOK = 17
    BLUE_GOHMA = 18
    RED_GOHMA = 19
    DIGDOGGER = 20
    GRUMBLE = 21


@dataclass(frozen=True)
class Monster:
    kind: MonsterKind
    count: int = 1


class InteractionEffect(Enum):
    NONE = 0
    OPEN_SHUTTER_DOORS = 1
    DRYOUT_WATER = 2


class Trigger(Enum):
    """What the player does to activate an interactable."""

    NONE = 0
    PUSH = 1
    REVEALED = 2
    ROOM_CLEARED = 3
    RECORDER = 4
    TOUCH_ONCE = 5


class EntranceDestination(Enum):
    CELLAR = 0
    TRANSPORT = 1
    OTHER = 2


@dataclass
class EntranceArguments:
    item_id: ItemId = ItemId.NONE
    exit_left: Optional[GridPos] = None
    exit_right: Optional[GridPos] = None


@dataclass
class Entrance:
    """Metadata of a staircase: where it leads and what waits there."""

    destination: EntranceDestination
    arguments: Optional[EntranceArguments] = None
    is_left: bool = False

    @classmethod
    def item_cellar(cls, item: ItemId, location: GridPos) -> Entrance:
        return cls(
            destination=EntranceDestination.CELLAR,
            arguments=EntranceArguments(item_id=item, exit_left=location, exit_right=location),
        )

    @classmethod
    def transport(cls, left: GridPos, right: GridPos, is_left: bool) -> Entrance:
        return cls(
            destination=EntranceDestination.TRANSPORT,
            arguments=EntranceArguments(exit_left=left, exit_right=right),
            is_left=is_left,
        )

    @property
    def is_transport(self) -> bool:
        return self.destination is EntranceDestination.TRANSPORT

    @property
    def item_id(self) -> ItemId:
        return self.arguments.item_id if self.arguments is not None else ItemId.NONE

    def partner_exit(self) -> Optional[GridPos]:
        """The far end of a linked transport staircase."""
        if not self.is_transport or self.arguments is None:
            return None
        return self.arguments.exit_right if self.is_left else self.arguments.exit_left


class ItemOptions(IntFlag):
    NONE = 0
    IS_ROOM_ITEM = 1
    MAKE_ITEM_SOUND = 2


@dataclass
class RoomItem:
    item: ItemId
    options: ItemOptions = ItemOptions.NONE


class InteractableKind(Enum):
    ENTRANCE = 0
    FLOOR_ITEM = 1
    PUSH_BLOCK = 2


@dataclass(eq=False)
class Interactable:
    """An object placed in a room, inspected through its capability queries."""

    kind: InteractableKind
    x: int
    y: int
    entrance: Optional[Entrance] = None
    item: Optional[RoomItem] = None
    trigger: Trigger = Trigger.NONE
    effect: InteractionEffect = InteractionEffect.NONE
    item_requirement: Optional[ItemId] = None
    revealed_by: Optional[Interactable] = None

    @property
    def is_entrance(self) -> bool:
        return self.kind is InteractableKind.ENTRANCE and self.entrance is not None

    @property
    def is_floor_item(self) -> bool:
        return self.kind is InteractableKind.FLOOR_ITEM and self.item is not None

    @property
    def is_push_block(self) -> bool:
        return self.kind is InteractableKind.PUSH_BLOCK

    @property
    def opens_shutters(self) -> bool:
        return self.effect is InteractionEffect.OPEN_SHUTTER_DOORS

    @property
    def block_pos(self) -> Tuple[int, int]:
        return self.x, self.y


@dataclass(frozen=True)
class RoomInteraction:
    """A room-wide trigger, e.g. opening shutters once every monster is defeated."""

    trigger: Trigger
    effect: InteractionEffect

    @classmethod
    def open_shutter_doors(cls) -> RoomInteraction:
        return cls(trigger=Trigger.ROOM_CLEARED, effect=InteractionEffect.OPEN_SHUTTER_DOORS)


@dataclass
class RoomSettings:
    is_entrance: bool = False
    level_number: int = 0


class RoomMap:
    """Tile behaviors of a room, stored at tile resolution."""

    def __init__(self, behaviors: Sequence[Sequence[TileBehavior]]) -> None:
        if not behaviors or not behaviors[0]:
            raise ValueError("RoomMap requires at least one tile")
        width = len(behaviors[0])
        if any(len(row) != width for row in behaviors):
            raise ValueError("RoomMap rows must all have the same width")
        self._rows: Tuple[Tuple[TileBehavior, ...], ...] = tuple(tuple(row) for row in behaviors)
        self.width = width
        self.height = len(self._rows)

    @classmethod
    def from_blocks(cls, rows: Sequence[str], tiles_per_block: int = TILES_PER_BLOCK) -> RoomMap:
        """Expand block-level ASCII rows (see BLOCK_LEGEND) to a tile map."""
        tiles: List[List[TileBehavior]] = []
        for row in rows:
            try:
                block_row = [BLOCK_LEGEND[char] for char in row]
            except KeyError as exc:
                raise ValueError(f"Unknown block character {exc.args[0]!r} in row {row!r}") from exc
            tile_row = [behavior for behavior in block_row for _ in range(tiles_per_block)]
            for _ in range(tiles_per_block):
                tiles.append(list(tile_row))
        return cls(tiles)

    def is_valid(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def behavior(self, x: int, y: int) -> TileBehavior:
        if not self.is_valid(x, y):
            raise IndexError(f"Tile {(x, y)} outside {self.width}x{self.height} room")
        return self._rows[y][x]


@dataclass(eq=False)
class Room:
    """A dungeon room; mutated in place while it is moved into a new grid slot."""

    unique_id: str
    original_unique_id: str
    room_map: RoomMap
    interactables: List[Interactable] = field(default_factory=list)
    monsters: List[Monster] = field(default_factory=list)
    doors: Dict[Direction, DoorType] = field(default_factory=dict)
    settings: RoomSettings = field(default_factory=RoomSettings)
    room_interactions: List[RoomInteraction] = field(default_factory=list)
    cave_person: Optional[PersonType] = None
    world_name: str = ""
    id: str = ""
    world_entry: Tuple[int, int] = (0, 0)

    def __post_init__(self) -> None:
        if not self.id:
            self.id = self.unique_id

    def behavior(self, x: int, y: int) -> TileBehavior:
        return self.room_map.behavior(x, y)

    def floor_items(self) -> Iterator[Interactable]:
        return (obj for obj in self.interactables if obj.is_floor_item)

    def staircases(self) -> Iterator[Interactable]:
        return (obj for obj in self.interactables if obj.is_entrance)

    def push_blocks(self) -> Iterator[Interactable]:
        return (obj for obj in self.interactables if obj.is_push_block)

    def has_floor_item(self) -> bool:
        return next(self.floor_items(), None) is not None

    def has_stairs(self) -> bool:
        return next(self.staircases(), None) is not None

    def first_staircase(self) -> Optional[Interactable]:
        return next(self.staircases(), None)

    def transport_staircase(self) -> Optional[Interactable]:
        return next((obj for obj in self.staircases() if obj.entrance.is_transport), None)

    @property
    def is_special(self) -> bool:
        return self.settings.is_entrance or self.has_stairs() or self.has_floor_item()

    def set_floor_item(self, item: ItemId, options: ItemOptions = ItemOptions.NONE) -> None:
        block = next(self.floor_items(), None)
        if block is None:
            raise ValueError(f"Room {self.unique_id} has no floor item to set")
        block.item = RoomItem(item=item, options=options)

    def remove_interactables(self, objects: Sequence[Interactable]) -> None:
        doomed = {id(obj) for obj in objects}
        self.interactables = [obj for obj in self.interactables if id(obj) not in doomed]

    def door_mask(self) -> int:
        """Bitmask of sides that carry a real door (anything but wall/none)."""
        mask = 0
        for direction, door in self.doors.items():
            if door not in (DoorType.WALL, DoorType.NONE):
                mask |= int(direction.entrance)
        return mask

    def __repr__(self) -> str:
        return f"Room({self.unique_id!r})"


@dataclass(frozen=True)
class DungeonSettings:
    level_number: int


class DungeonWorld:
    """A dungeon level: its settings and the rooms that make it up."""

    def __init__(self, name: str, rooms: Sequence[Room], settings: DungeonSettings) -> None:
        self.name = name
        self.rooms: Tuple[Room, ...] = tuple(rooms)
        self.settings = settings

    @property
    def level_number(self) -> int:
        return self.settings.level_number

    def get_room_by_id(self, room_id: str) -> Room:
        for room in self.rooms:
            if room.id == room_id or room.unique_id == room_id:
                return room
        raise KeyError(f"No room {room_id!r} in {self.name}")

    def __repr__(self) -> str:
        return f"DungeonWorld({self.name!r}, rooms={len(self.rooms)})"


class WorldRegistry:
    """Live registry of dungeon worlds, addressed by dungeon name."""

    def __init__(self, worlds: Sequence[DungeonWorld] = ()) -> None:
        self._worlds: Dict[str, DungeonWorld] = {}
        for world in worlds:
            self.set_world(world, world.name)

    def get_world(self, name: str) -> DungeonWorld:
        try:
            return self._worlds[name]
        except KeyError as exc:
            raise KeyError(f"Unknown dungeon {name!r}") from exc

    def set_world(self, world: DungeonWorld, name: str) -> None:
        self._worlds[name] = world

    def dungeons(self) -> List[DungeonWorld]:
        return sorted(self._worlds.values(), key=lambda world: world.level_number)

    def __iter__(self) -> Iterator[DungeonWorld]:
        return iter(self.dungeons())

    def __len__(self) -> int:
        return len(self._worlds)
