import random

import pytest

from dungeon_geometry import DOOR_DIRECTION_ORDER, Direction, GridPos, RoomEntrances
from dungeon_shape import CellType, is_valid_point
from errors import RandomizerError, RecoverableRandomizerError
from models import DoorType, Interactable, InteractableKind, InteractionEffect, Trigger
from passes import door_solver, run_door_solver_pass
from passes.door_solver import door_permitted, shuffle_normal_rooms
from randomizer_config import RandomizerDungeonFlags
from room_catalog import PRIZE_ALCOVE, SHUTTER_PUSH_BLOCK

SQUARE = {
    (3, 6): CellType.NORMAL,
    (4, 6): CellType.NORMAL,
    (3, 7): CellType.NORMAL,
    (4, 7): CellType.ENTRANCE,
}

CROSS = {
    (4, 7): CellType.ENTRANCE,
    (4, 6): CellType.NORMAL,
    (3, 6): CellType.NORMAL,
    (5, 6): CellType.NORMAL,
    (4, 5): CellType.NORMAL,
    (4, 4): CellType.NORMAL,
    (5, 5): CellType.NORMAL,
}


def _ready(context):
    context.shape.update_room_ids()
    context.shape.has_transports_attached = True
    return context


def _assert_symmetric(shape):
    for cell in shape.valid_cells():
        for direction in DOOR_DIRECTION_ORDER:
            nxt = cell.pos.offset(direction)
            door = cell.room.doors[direction]
            if is_valid_point(nxt) and shape[nxt].is_occupied:
                assert shape[nxt].room.doors[direction.opposite()] is door


def test_solver_requires_linked_transports(make_context):
    context = make_context(SQUARE)

    with pytest.raises(RandomizerError):
        run_door_solver_pass(context)


@pytest.mark.parametrize("seed", [0, 3, 42])
def test_every_cell_is_reachable_and_doors_are_symmetric(make_context, seed):
    counts = {
        DoorType.OPEN: 10,
        DoorType.KEY: 4,
        DoorType.BOMBABLE: 2,
        DoorType.SHUTTER: 3,
        DoorType.FALSE_WALL: 1,
    }
    context = _ready(make_context(CROSS, seed=seed, door_counts=counts))

    run_door_solver_pass(context)

    shape = context.shape
    assert context.walker.unreachable_cells() == []
    assert shape.entrance_cell.room.doors[Direction.SOUTH] is DoorType.OPEN
    _assert_symmetric(shape)
    for cell in shape.valid_cells():
        assert int(cell.required_doors) & ~cell.room.door_mask() == 0
        for direction in DOOR_DIRECTION_ORDER:
            if not cell.required_doors.has(direction.entrance) and not (
                cell.type is CellType.ENTRANCE and direction is Direction.SOUTH
            ):
                assert cell.room.doors[direction] is DoorType.WALL


def test_without_bonus_doors_the_layout_is_a_tree(make_context):
    flags = RandomizerDungeonFlags(bonus_door_probability=0.0)
    context = _ready(make_context(SQUARE, dungeon_flags=flags))

    # Three shared walls plus the way in from outside.
    assert run_door_solver_pass(context) == 2 * 3 + 1


def test_with_certain_bonus_doors_every_wall_gets_one(make_context):
    flags = RandomizerDungeonFlags(bonus_door_probability=1.0)
    context = _ready(make_context(SQUARE, dungeon_flags=flags))

    assert run_door_solver_pass(context) == 2 * 4 + 1


def test_same_seed_same_doors(make_context):
    maps = []
    for _ in range(2):
        context = _ready(make_context(CROSS, seed=8, door_counts={DoorType.OPEN: 1, DoorType.KEY: 1}))
        run_door_solver_pass(context)
        maps.append({cell.pos: dict(cell.room.doors) for cell in context.shape.valid_cells()})

    assert maps[0] == maps[1]


def test_unreachable_cell_is_recoverable(make_context, make_room):
    layout = {(4, 7): CellType.ENTRANCE, (5, 7): CellType.NORMAL}
    flags = RandomizerDungeonFlags(max_door_attempts=2)
    context = _ready(make_context(layout, dungeon_flags=flags))
    context.shape[GridPos(5, 7)].room = make_room(PRIZE_ALCOVE)

    assert not door_permitted(context, GridPos(4, 7), Direction.EAST)
    with pytest.raises(RecoverableRandomizerError):
        run_door_solver_pass(context)


def test_shutter_rooms_get_a_way_to_open(make_context):
    context = _ready(make_context(SQUARE, door_counts={DoorType.SHUTTER: 1}))

    run_door_solver_pass(context)

    for room in context.shape.rooms():
        assert any(
            interaction.effect is InteractionEffect.OPEN_SHUTTER_DOORS for interaction in room.room_interactions
        )


def test_shutter_push_block_counts_as_a_trigger(make_context):
    context = _ready(make_context(SQUARE, door_counts={DoorType.SHUTTER: 1}))
    room = context.shape[GridPos(3, 6)].room
    room.interactables.append(
        Interactable(
            InteractableKind.PUSH_BLOCK,
            *SHUTTER_PUSH_BLOCK,
            trigger=Trigger.PUSH,
            effect=InteractionEffect.OPEN_SHUTTER_DOORS,
        )
    )

    run_door_solver_pass(context)

    assert room.room_interactions == []
    assert list(room.push_blocks())


def test_unused_shutter_triggers_are_removed(make_context):
    context = _ready(make_context(SQUARE, door_counts={DoorType.OPEN: 1}))
    room = context.shape[GridPos(3, 6)].room
    room.interactables.append(
        Interactable(
            InteractableKind.PUSH_BLOCK,
            *SHUTTER_PUSH_BLOCK,
            trigger=Trigger.PUSH,
            effect=InteractionEffect.OPEN_SHUTTER_DOORS,
        )
    )

    run_door_solver_pass(context)

    assert not list(room.push_blocks())
    assert not context.requirements(room).has_push_block
    assert room.room_interactions == []


def test_required_doors_never_exceed_usable_sides(make_context):
    context = _ready(make_context(CROSS, seed=11))

    run_door_solver_pass(context)

    for cell in context.shape.valid_cells():
        usable = context.requirements(cell.room).connectable_entrances
        assert usable.has(cell.required_doors) or cell.required_doors == RoomEntrances.NONE


def test_failed_attempt_moves_the_normal_rooms(make_context, monkeypatch):
    context = _ready(make_context(CROSS, seed=2))
    shape = context.shape
    normal = [cell.pos for cell in shape.cells_of_type(CellType.NORMAL)]
    before = sorted(shape[pos].room.unique_id for pos in normal)
    entrance_room = shape.entrance_cell.room

    real_refit = door_solver.refit_doors_until_walkable
    calls = []

    def stuck_once(ctx, rng):
        calls.append(ctx)
        if len(calls) == 1:
            raise RecoverableRandomizerError("stuck")
        return real_refit(ctx, rng)

    monkeypatch.setattr(door_solver, "refit_doors_until_walkable", stuck_once)

    run_door_solver_pass(context)

    assert len(calls) == 2
    assert shape.entrance_cell.room is entrance_room
    assert sorted(shape[pos].room.unique_id for pos in normal) == before
    for pos in normal:
        room = shape[pos].room
        assert room.id.startswith(f"Test/{pos} ")
        assert room.world_entry == (pos.x * 256, pos.y * 176)
    assert context.walker.unreachable_cells() == []


def test_rooms_stay_put_when_a_shuffle_cannot_fit(make_context, make_room):
    layout = {(4, 7): CellType.ENTRANCE, (4, 6): CellType.NORMAL, (3, 6): CellType.NORMAL}
    context = _ready(make_context(layout))
    alcove = make_room(PRIZE_ALCOVE)
    context.shape[GridPos(3, 6)].room = alcove
    plain = context.shape[GridPos(4, 6)].room

    assert not shuffle_normal_rooms(context, random.Random(0))

    assert context.shape[GridPos(3, 6)].room is alcove
    assert context.shape[GridPos(4, 6)].room is plain
