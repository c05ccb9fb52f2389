import random
from collections import Counter

import pytest

from dungeon_stats import ALL_DUNGEON_ITEMS, DungeonStats, is_dungeon_item
from errors import RandomizerError, TransportPairingError
from models import DoorType, ItemId

SCENARIO_DOORS = {
    DoorType.OPEN: 10,
    DoorType.KEY: 4,
    DoorType.BOMBABLE: 2,
    DoorType.SHUTTER: 3,
    DoorType.FALSE_WALL: 1,
}


def _stats(door_counts, transports=0, allow_false_walls=True):
    return DungeonStats(
        staircase_item_count=0,
        floor_item_count=0,
        door_type_counts=door_counts,
        transport_stairs_count=transports,
        allow_false_walls=allow_false_walls,
    )


def test_level_one_statistics(catalog):
    stats = DungeonStats.create(catalog.get_world("Level1"))

    assert stats.staircase_item_count == 3
    assert stats.floor_item_count == 2
    assert stats.transport_stairs_count == 2
    assert stats.door_weights() == SCENARIO_DOORS
    assert stats.total_door_count == 20


def test_compass_and_map_are_not_dungeon_items():
    assert len(ALL_DUNGEON_ITEMS) == 14
    assert is_dungeon_item(ItemId.LADDER)
    assert not is_dungeon_item(ItemId.COMPASS)
    assert not is_dungeon_item(ItemId.MAP)
    assert not is_dungeon_item(None)


def test_walls_do_not_count():
    stats = _stats({DoorType.WALL: 50, DoorType.KEY: 1})

    assert stats.door_weights() == {DoorType.KEY: 1}
    assert stats.random_door_type(random.Random(1)) is DoorType.KEY


def test_odd_transport_count_is_fatal():
    with pytest.raises(TransportPairingError):
        _stats({DoorType.OPEN: 1}, transports=3)


def test_dungeon_without_doors_is_fatal():
    with pytest.raises(RandomizerError):
        _stats({DoorType.WALL: 4})


def test_false_walls_can_be_disallowed():
    stats = _stats(SCENARIO_DOORS, allow_false_walls=False)

    assert DoorType.FALSE_WALL not in stats.door_weights()
    assert stats.total_door_count == 19


@pytest.mark.parametrize(
    "draw,expected",
    [
        (0, DoorType.OPEN),
        (9, DoorType.OPEN),
        (10, DoorType.KEY),
        (13, DoorType.KEY),
        (14, DoorType.BOMBABLE),
        (16, DoorType.FALSE_WALL),
        (17, DoorType.SHUTTER),
        (19, DoorType.SHUTTER),
    ],
)
def test_cumulative_table_boundaries(monkeypatch, draw, expected):
    stats = _stats(SCENARIO_DOORS)
    rng = random.Random(0)
    monkeypatch.setattr(rng, "randrange", lambda total: draw)

    assert stats.random_door_type(rng) is expected


def test_draws_follow_the_weights():
    stats = _stats(SCENARIO_DOORS)
    rng = random.Random(42)

    counts = Counter(stats.random_door_type(rng) for _ in range(20000))

    for door_type, weight in SCENARIO_DOORS.items():
        assert counts[door_type] / 20000 == pytest.approx(weight / 20, abs=0.015)
