import pytest

from dungeon_geometry import Direction, GridPos
from dungeon_lint import build_door_graph, dungeon_items_in, lint
from dungeon_shape import CellType
from errors import RandomizerError
from models import DoorType, ItemId
from passes import run_door_solver_pass, run_item_placement_pass, run_transport_linker_pass
from randomizer_config import RandomizerDungeonFlags

LAYOUT = {
    (4, 7): CellType.ENTRANCE,
    (3, 7): CellType.TRANSPORT_STAIRCASE,
    (4, 6): CellType.NORMAL,
    (5, 6): CellType.FLOOR_DROP,
    (4, 5): CellType.ITEM_STAIRCASE,
    (3, 5): CellType.TRANSPORT_STAIRCASE,
}


@pytest.fixture
def solved(make_context):
    context = make_context(LAYOUT, seed=4)
    context.shape.update_room_ids()
    run_transport_linker_pass(context)
    run_item_placement_pass(context)
    run_door_solver_pass(context)
    return context


def test_solved_layout_passes(solved):
    (summary,) = lint([solved.shape])

    assert summary.name == "Test"
    assert summary.rooms == 6
    assert summary.transport_links == 1
    assert summary.doors + summary.transport_links >= summary.rooms - 1
    assert summary.diameter >= 1


def test_door_graph_contains_transport_edge(solved):
    graph = build_door_graph(solved.shape)

    assert graph.has_edge(GridPos(3, 7), GridPos(3, 5))
    assert graph.edges[GridPos(3, 7), GridPos(3, 5)]["kind"] == "transport"


def test_asymmetric_door_is_reported(solved):
    shape = solved.shape
    room = shape[GridPos(4, 7)].room
    other = shape[GridPos(4, 6)].room
    room.doors[Direction.NORTH] = DoorType.KEY
    other.doors[Direction.SOUTH] = DoorType.BOMBABLE

    with pytest.raises(RandomizerError):
        lint([shape])


def test_door_into_nothing_is_reported(solved):
    shape = solved.shape
    shape[GridPos(5, 6)].room.doors[Direction.EAST] = DoorType.OPEN

    with pytest.raises(RandomizerError):
        lint([shape])


def test_missing_required_door_is_reported(solved):
    shape = solved.shape
    cell = next(cell for cell in shape.valid_cells() if cell.required_doors)
    for direction in Direction:
        if cell.required_doors.has(direction.entrance):
            cell.room.doors[direction] = DoorType.WALL
            break

    with pytest.raises(RandomizerError):
        lint([shape])


def test_duplicate_room_is_reported(solved):
    shape = solved.shape
    shape[GridPos(4, 6)].room = shape[GridPos(4, 7)].room

    with pytest.raises(RandomizerError):
        lint([shape])


def test_disconnected_layout_is_reported(make_context):
    flags = RandomizerDungeonFlags(bonus_door_probability=0.0)
    context = make_context({(4, 7): CellType.ENTRANCE, (4, 6): CellType.NORMAL}, dungeon_flags=flags)
    context.shape.update_room_ids()
    context.shape.has_transports_attached = True
    run_door_solver_pass(context)
    context.shape[GridPos(4, 7)].room.doors[Direction.NORTH] = DoorType.WALL
    context.shape[GridPos(4, 6)].room.doors[Direction.SOUTH] = DoorType.WALL
    context.shape.clear_required_doors()

    with pytest.raises(RandomizerError, match="disconnected"):
        lint([context.shape])


def test_dungeon_items_in_ignores_compass(make_room):
    assert dungeon_items_in(make_room(floor_item=ItemId.COMPASS)) == []
    assert dungeon_items_in(make_room(floor_item=ItemId.LADDER)) == [ItemId.LADDER]
