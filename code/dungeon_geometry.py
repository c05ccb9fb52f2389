"""Geometry helpers for the dungeon grid: directions, door sides and grid positions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntFlag
from typing import Iterable, Iterator, Tuple


class Direction(Enum):
    """Cardinal directions with unit vectors on the dungeon grid."""

    NORTH = (0, -1)
    EAST = (1, 0)
    SOUTH = (0, 1)
    WEST = (-1, 0)

    @property
    def dx(self) -> int:
        return self.value[0]

    @property
    def dy(self) -> int:
        return self.value[1]

    @property
    def vector(self) -> Tuple[int, int]:
        return self.value

    def opposite(self) -> Direction:
        return Direction.from_tuple((-self.dx, -self.dy))

    @property
    def entrance(self) -> RoomEntrances:
        return _DIRECTION_TO_ENTRANCE[self]

    @classmethod
    def from_tuple(cls, value: Tuple[int, int]) -> Direction:
        try:
            return cls(value)
        except ValueError as exc:
            raise ValueError(f"Unsupported direction {value}") from exc


# Doors are always visited in this order when the order must be stable.
DOOR_DIRECTION_ORDER: Tuple[Direction, ...] = (
    Direction.EAST,
    Direction.WEST,
    Direction.SOUTH,
    Direction.NORTH,
)


class RoomEntrances(IntFlag):
    """Bitmask of the sides a room can be entered from.

    STAIRS is a pseudo-side for transport staircases; it has no grid offset.
    """

    NONE = 0
    EAST = 1
    WEST = 2
    SOUTH = 4
    NORTH = 8
    STAIRS = 16

    @property
    def direction(self) -> Direction:
        try:
            return _ENTRANCE_TO_DIRECTION[self]
        except KeyError as exc:
            raise ValueError(f"{self!r} is not a single cardinal entrance") from exc

    def opposite(self) -> RoomEntrances:
        return self.direction.opposite().entrance

    def has(self, other: RoomEntrances) -> bool:
        return other != RoomEntrances.NONE and (self & other) == other

    def count(self) -> int:
        return bin(int(self)).count("1")

    def sides(self) -> Tuple[RoomEntrances, ...]:
        """Single-side members of this mask, in the stable entrance order."""
        return tuple(entrance for entrance in ENTRANCE_ORDER_WITH_STAIRS if self.has(entrance))


_DIRECTION_TO_ENTRANCE = {
    Direction.EAST: RoomEntrances.EAST,
    Direction.WEST: RoomEntrances.WEST,
    Direction.SOUTH: RoomEntrances.SOUTH,
    Direction.NORTH: RoomEntrances.NORTH,
}
_ENTRANCE_TO_DIRECTION = {entrance: direction for direction, entrance in _DIRECTION_TO_ENTRANCE.items()}

ENTRANCE_ORDER: Tuple[RoomEntrances, ...] = tuple(d.entrance for d in DOOR_DIRECTION_ORDER)
ENTRANCE_ORDER_WITH_STAIRS: Tuple[RoomEntrances, ...] = ENTRANCE_ORDER + (RoomEntrances.STAIRS,)


@dataclass(frozen=True, order=True)
class GridPos:
    """Integer coordinate of a cell on the dungeon grid."""

    x: int
    y: int

    def __iter__(self) -> Iterator[int]:
        yield self.x
        yield self.y

    def offset(self, direction: Direction) -> GridPos:
        return GridPos(self.x + direction.dx, self.y + direction.dy)

    def manhattan(self, other: GridPos) -> int:
        return abs(self.x - other.x) + abs(self.y - other.y)

    def to_tuple(self) -> Tuple[int, int]:
        return self.x, self.y

    @classmethod
    def from_tuple(cls, value: Tuple[int, int]) -> GridPos:
        return cls(*value)

    def __str__(self) -> str:
        return f"{self.x},{self.y}"


@dataclass(frozen=True)
class DoorPair:
    """Unordered pair of room sides; the key of a room's internal path table."""

    first: RoomEntrances
    second: RoomEntrances

    @classmethod
    def create(cls, a: RoomEntrances, b: RoomEntrances) -> DoorPair:
        if a == b:
            raise ValueError(f"Cannot pair entrance {a!r} with itself")
        if a.count() != 1 or b.count() != 1:
            raise ValueError(f"Door pairs need single entrances, got {a!r} and {b!r}")
        return cls(a, b) if int(a) < int(b) else cls(b, a)

    @classmethod
    def all_pairs(cls, entrances: Iterable[RoomEntrances]) -> Tuple[DoorPair, ...]:
        ordered = list(entrances)
        pairs = []
        for i, start in enumerate(ordered):
            for end in ordered[i + 1:]:
                pairs.append(cls.create(start, end))
        return tuple(pairs)

    def contains(self, entrance: RoomEntrances) -> bool:
        return entrance in (self.first, self.second)

    def __str__(self) -> str:
        return f"{self.first.name}->{self.second.name}"
