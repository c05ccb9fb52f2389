import pytest

from dungeon_geometry import (
    DOOR_DIRECTION_ORDER,
    Direction,
    DoorPair,
    ENTRANCE_ORDER,
    GridPos,
    RoomEntrances,
)


@pytest.mark.parametrize(
    "direction,expected",
    [
        (Direction.NORTH, Direction.SOUTH),
        (Direction.SOUTH, Direction.NORTH),
        (Direction.EAST, Direction.WEST),
        (Direction.WEST, Direction.EAST),
    ],
)
def test_direction_opposite(direction, expected):
    assert direction.opposite() is expected
    assert direction.entrance.opposite() is expected.entrance


def test_from_tuple_rejects_diagonals():
    assert Direction.from_tuple((0, -1)) is Direction.NORTH
    with pytest.raises(ValueError):
        Direction.from_tuple((1, 1))


def test_door_order_is_east_west_south_north():
    assert DOOR_DIRECTION_ORDER == (Direction.EAST, Direction.WEST, Direction.SOUTH, Direction.NORTH)
    assert ENTRANCE_ORDER == (
        RoomEntrances.EAST,
        RoomEntrances.WEST,
        RoomEntrances.SOUTH,
        RoomEntrances.NORTH,
    )


def test_room_entrances_has_requires_every_bit():
    mask = RoomEntrances.EAST | RoomEntrances.SOUTH

    assert mask.has(RoomEntrances.EAST)
    assert mask.has(RoomEntrances.EAST | RoomEntrances.SOUTH)
    assert not mask.has(RoomEntrances.EAST | RoomEntrances.NORTH)
    assert not mask.has(RoomEntrances.NONE)
    assert mask.count() == 2
    assert mask.sides() == (RoomEntrances.EAST, RoomEntrances.SOUTH)


def test_stairs_has_no_direction():
    with pytest.raises(ValueError):
        RoomEntrances.STAIRS.direction


def test_grid_pos_offset_and_distance():
    pos = GridPos(4, 7)

    assert pos.offset(Direction.NORTH) == GridPos(4, 6)
    assert pos.offset(Direction.EAST) == GridPos(5, 7)
    assert pos.manhattan(GridPos(1, 3)) == 7
    assert str(pos) == "4,7"
    assert tuple(pos) == (4, 7)


def test_door_pair_is_unordered():
    a = DoorPair.create(RoomEntrances.NORTH, RoomEntrances.EAST)
    b = DoorPair.create(RoomEntrances.EAST, RoomEntrances.NORTH)

    assert a == b
    assert hash(a) == hash(b)
    assert a.contains(RoomEntrances.NORTH)
    assert not a.contains(RoomEntrances.WEST)


def test_door_pair_rejects_same_side_and_masks():
    with pytest.raises(ValueError):
        DoorPair.create(RoomEntrances.NORTH, RoomEntrances.NORTH)
    with pytest.raises(ValueError):
        DoorPair.create(RoomEntrances.NORTH | RoomEntrances.EAST, RoomEntrances.WEST)


def test_all_pairs_includes_stairs():
    entrances = list(ENTRANCE_ORDER) + [RoomEntrances.STAIRS]

    pairs = DoorPair.all_pairs(entrances)

    assert len(pairs) == 10
    assert DoorPair.create(RoomEntrances.STAIRS, RoomEntrances.WEST) in pairs
