import pytest

from dungeon_geometry import DoorPair, RoomEntrances
from errors import UnsolvableRoomError
from models import (
    DoorType,
    Interactable,
    InteractableKind,
    InteractionEffect,
    ItemId,
    Monster,
    MonsterKind,
    PersonType,
    Trigger,
)
from room_catalog import PILLARS, PRIZE_ALCOVE, SAND, STAIRWELL, WATER_CHANNEL
from room_requirements import (
    PathBehaviorMap,
    PathRequirements,
    RoomRequirementsAnalyzer,
    item_causes_requirement,
    monster_requirements,
    path_requirements_allow,
    shutter_requirements,
    stair_requirements,
)

ALL_SIDES = RoomEntrances.EAST | RoomEntrances.WEST | RoomEntrances.SOUTH | RoomEntrances.NORTH

WALLED_OFF = (
    "################",
    "################",
    "##....####....##",
    "##....####....##",
    "##....####....##",
    "DD....####....DD",
    "##....####....##",
    "##....####....##",
    "##....####....##",
    "################",
    "################",
)

SEALED = ("#" * 16,) * 11


@pytest.fixture
def analyzer():
    return RoomRequirementsAnalyzer()


@pytest.mark.parametrize("template", [None, PILLARS, SAND])
def test_open_rooms_connect_everything(analyzer, make_room, template):
    room = make_room(template) if template is not None else make_room()

    requirements = analyzer.get_requirements(room)

    assert requirements.connectable_entrances == ALL_SIDES
    assert len(requirements.paths) == 6
    assert all(value == PathRequirements.NONE for value in requirements.paths.values())


def test_water_channel_needs_ladder_to_reach_east(analyzer, make_room):
    requirements = analyzer.get_requirements(make_room(WATER_CHANNEL))

    assert requirements.path(RoomEntrances.WEST, RoomEntrances.EAST) == PathRequirements.LADDER
    assert requirements.path(RoomEntrances.NORTH, RoomEntrances.EAST) == PathRequirements.LADDER
    assert requirements.path(RoomEntrances.NORTH, RoomEntrances.SOUTH) == PathRequirements.NONE
    assert requirements.path(RoomEntrances.WEST, RoomEntrances.SOUTH) == PathRequirements.NONE


def test_recorder_dries_the_water_instead(analyzer, make_room):
    room = make_room(WATER_CHANNEL)
    room.interactables.append(
        Interactable(
            InteractableKind.PUSH_BLOCK,
            0,
            0,
            trigger=Trigger.RECORDER,
            effect=InteractionEffect.DRYOUT_WATER,
        )
    )

    requirements = analyzer.get_requirements(room)

    assert requirements.path(RoomEntrances.WEST, RoomEntrances.EAST) == PathRequirements.RECORDER


def test_two_water_blocks_in_a_row_cannot_be_laddered(make_room):
    template = tuple(row.replace(".~", "~~") for row in WATER_CHANNEL)
    analyzer = RoomRequirementsAnalyzer()

    requirements = analyzer.get_requirements(make_room(template))

    assert requirements.path(RoomEntrances.WEST, RoomEntrances.EAST) is None
    assert requirements.path(RoomEntrances.WEST, RoomEntrances.NORTH) == PathRequirements.NONE


def test_old_man_blocks_the_north_side(analyzer, make_room):
    room = make_room()
    room.cave_person = PersonType.OLD_MAN

    requirements = analyzer.get_requirements(room)

    assert not requirements.can_connect(RoomEntrances.NORTH)
    assert requirements.connectable_entrances.count() == 3


def test_grumble_does_not_block(analyzer, make_room):
    room = make_room()
    room.cave_person = PersonType.GRUMBLE

    assert analyzer.get_requirements(room).can_connect(RoomEntrances.NORTH)


def test_single_exit_room_is_allowed(analyzer, make_room):
    requirements = analyzer.get_requirements(make_room(PRIZE_ALCOVE))

    assert requirements.connectable_entrances == RoomEntrances.SOUTH
    assert requirements.paths == {}


def test_room_without_doors_is_unsolvable(analyzer, make_room):
    with pytest.raises(UnsolvableRoomError):
        analyzer.get_requirements(make_room(SEALED))


def test_room_without_internal_path_is_unsolvable(analyzer, make_room):
    with pytest.raises(UnsolvableRoomError):
        analyzer.get_requirements(make_room(WALLED_OFF))


def test_staircase_adds_stairs_paths_and_flags(analyzer, make_room):
    room = make_room(STAIRWELL, stairs_item=ItemId.BOW)

    requirements = analyzer.get_requirements(room)

    assert requirements.has_staircase
    assert requirements.staircase is room.first_staircase()
    assert requirements.path(RoomEntrances.SOUTH, RoomEntrances.STAIRS) == PathRequirements.NONE
    assert len(requirements.paths) == 10
    assert not requirements.connectable_entrances.has(RoomEntrances.STAIRS)


def test_flags_follow_room_contents(analyzer, make_room):
    requirements = analyzer.get_requirements(make_room(floor_item=ItemId.BOOK, entrance=True))

    assert requirements.has_floor_drop
    assert requirements.is_entrance
    assert not requirements.has_staircase
    assert not requirements.has_push_block


def test_paths_are_cached_by_original_id(analyzer, make_room):
    first = make_room(name="a")
    analyzer.get_requirements(first)
    copy = make_room(WATER_CHANNEL, name="b")
    copy.original_unique_id = "a"

    # Same layout identity, so the cached (plain) paths are reused.
    assert analyzer.get_requirements(copy).path(RoomEntrances.WEST, RoomEntrances.EAST) == PathRequirements.NONE


def test_invalidate_refreshes_flags(analyzer, make_room):
    room = make_room(floor_item=ItemId.BOOK)
    assert analyzer.get_requirements(room).has_floor_drop

    room.remove_interactables(list(room.floor_items()))
    assert analyzer.get_requirements(room).has_floor_drop

    analyzer.invalidate(room)
    assert not analyzer.get_requirements(room).has_floor_drop
    assert room.unique_id in analyzer.cached_room_ids()


def test_push_block_requirement_comes_from_its_item(make_room):
    room = make_room(PILLARS)
    room.interactables.append(
        Interactable(InteractableKind.PUSH_BLOCK, 3, 3, trigger=Trigger.PUSH, item_requirement=ItemId.BRACELET)
    )

    behavior_map = PathBehaviorMap(room)

    assert behavior_map[(6, 6)] == PathRequirements.BRACELET
    assert behavior_map[(22, 6)] == PathRequirements.IMPOSSIBLE
    assert "B" in behavior_map.to_debug_string()


def test_item_requirements():
    assert item_causes_requirement(ItemId.LADDER) == PathRequirements.LADDER
    assert item_causes_requirement(ItemId.SILVER_ARROW) == PathRequirements.ARROW
    assert item_causes_requirement(ItemId.BOOK) == PathRequirements.NONE

    assert path_requirements_allow(PathRequirements.LADDER, ItemId.RAFT)
    assert not path_requirements_allow(PathRequirements.LADDER | PathRequirements.ARROW, ItemId.LADDER)
    assert path_requirements_allow(PathRequirements.LADDER, ItemId.BOOK)


def test_monster_requirements_only_gate_shutters(make_room):
    room = make_room()
    room.monsters = [Monster(MonsterKind.RED_GOHMA), Monster(MonsterKind.DIGDOGGER)]

    assert monster_requirements(room) == PathRequirements.ARROW | PathRequirements.RECORDER
    assert shutter_requirements(room) == PathRequirements.NONE

    room.doors[next(iter(room.doors))] = DoorType.SHUTTER
    assert shutter_requirements(room) == PathRequirements.ARROW | PathRequirements.RECORDER


def test_hidden_staircase_needs_the_room_cleared(make_room):
    room = make_room(STAIRWELL, stairs_item=ItemId.BOW)
    room.monsters = [Monster(MonsterKind.BLUE_GOHMA)]
    assert stair_requirements(room) == PathRequirements.NONE

    room.first_staircase().revealed_by = Interactable(InteractableKind.PUSH_BLOCK, 5, 4, trigger=Trigger.PUSH)
    assert stair_requirements(room) == PathRequirements.ARROW


def test_door_pair_keys_are_shared(analyzer, make_room):
    requirements = analyzer.get_requirements(make_room())

    assert DoorPair.create(RoomEntrances.SOUTH, RoomEntrances.NORTH) in requirements.paths
    assert requirements.path(RoomEntrances.NORTH, RoomEntrances.NORTH) is None
