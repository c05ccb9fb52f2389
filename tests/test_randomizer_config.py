import pytest

from randomizer_config import RandomizerDungeonFlags, RandomizerFlags


def test_defaults():
    flags = RandomizerFlags()

    assert flags.dungeon.rooms
    assert flags.dungeon.shapes
    assert flags.dungeon.shapes_size_variance == 2
    assert flags.dungeon.bonus_door_probability == 0.5
    assert not flags.collect_metrics
    flags.check_integrity()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"shapes_size_variance": -1},
        {"bonus_door_probability": 1.5},
        {"bonus_door_probability": -0.1},
        {"max_door_attempts": 0},
        {"max_refit_doors": 0},
        {"max_item_attempts": -3},
    ],
)
def test_invalid_dungeon_flags(kwargs):
    with pytest.raises(ValueError):
        RandomizerDungeonFlags(**kwargs)


def test_shapes_require_rooms():
    flags = RandomizerFlags(dungeon=RandomizerDungeonFlags(rooms=False, shapes=True))

    with pytest.raises(ValueError):
        flags.check_integrity()


def test_from_mapping():
    flags = RandomizerFlags.from_mapping(
        {"dungeon": {"shapes_size_variance": 0, "always_have_map": False}, "collect_metrics": True}
    )

    assert flags.dungeon.shapes_size_variance == 0
    assert not flags.dungeon.always_have_map
    assert flags.dungeon.always_have_compass
    assert flags.collect_metrics


@pytest.mark.parametrize(
    "data",
    [
        {"colour": "red"},
        {"dungeon": {"size": 3}},
        {"dungeon": {"rooms": False}},
    ],
)
def test_from_mapping_rejects_bad_documents(data):
    with pytest.raises(ValueError):
        RandomizerFlags.from_mapping(data)
