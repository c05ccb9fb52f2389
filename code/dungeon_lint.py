"""Consistency checks run once every regenerated dungeon has been committed."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Set

import networkx as nx

from dungeon_geometry import DOOR_DIRECTION_ORDER, Direction
from dungeon_shape import CellType, DungeonShape, is_valid_point
from dungeon_stats import is_dungeon_item
from errors import RandomizerError
from models import DoorType, ItemId, Room

logger = logging.getLogger(__name__)

_NO_DOOR = (DoorType.WALL, DoorType.NONE)


@dataclass(frozen=True)
class LayoutSummary:
    name: str
    rooms: int
    doors: int
    transport_links: int
    cycle_count: int
    diameter: int


def build_door_graph(shape: DungeonShape) -> nx.Graph:
    """Cells joined by a real door on both sides, or by a transport staircase."""
    graph = nx.Graph()
    for cell in shape.valid_cells():
        graph.add_node(cell.pos)

    for cell in shape.valid_cells():
        room = cell.demand_room()
        for direction in DOOR_DIRECTION_ORDER:
            neighbor = cell.pos.offset(direction)
            if not is_valid_point(neighbor) or not shape[neighbor].is_occupied:
                continue
            if room.doors.get(direction, DoorType.WALL) in _NO_DOOR:
                continue
            graph.add_edge(cell.pos, neighbor, kind="door")

        staircase = room.transport_staircase()
        if staircase is not None:
            partner = staircase.entrance.partner_exit()
            if partner is not None and partner in graph:
                graph.add_edge(cell.pos, partner, kind="transport")
    return graph


def dungeon_items_in(room: Room) -> List[ItemId]:
    items = [obj.entrance.item_id for obj in room.staircases()]
    items.extend(obj.item.item for obj in room.floor_items())
    return [item for item in items if is_dungeon_item(item)]


def _lint_doors(shape: DungeonShape) -> None:
    for cell in shape.valid_cells():
        room = cell.demand_room()
        missing = int(cell.required_doors) & ~room.door_mask()
        if missing:
            raise RandomizerError(f"Room {room.unique_id} is missing required doors {missing:#x} for cell {cell}.")

        for direction in DOOR_DIRECTION_ORDER:
            door = room.doors.get(direction, DoorType.WALL)
            neighbor = cell.pos.offset(direction)
            if not is_valid_point(neighbor) or not shape[neighbor].is_occupied:
                outside_entrance = cell.type is CellType.ENTRANCE and direction is Direction.SOUTH
                if door not in _NO_DOOR and not outside_entrance:
                    raise RandomizerError(f"Room {room.unique_id} has a {door.name} door {direction.name} into nothing.")
                continue
            other = shape[neighbor].demand_room().doors.get(direction.opposite(), DoorType.WALL)
            if door is not other:
                raise RandomizerError(
                    f"Door mismatch between {cell.pos} {direction.name} ({door.name}) and {neighbor} ({other.name})."
                )


def _lint_transports(shape: DungeonShape) -> None:
    for cell in shape.cells_of_type(CellType.TRANSPORT_STAIRCASE):
        staircase = cell.demand_room().transport_staircase()
        if staircase is None:
            raise RandomizerError(f"Transport cell {cell} has no linked staircase.")
        partner_pos = staircase.entrance.partner_exit()
        if partner_pos is None or not is_valid_point(partner_pos):
            raise RandomizerError(f"Transport cell {cell} links nowhere.")
        partner = shape[partner_pos]
        partner_stairs = partner.room.transport_staircase() if partner.room is not None else None
        if partner_stairs is None or partner_stairs.entrance.partner_exit() != cell.pos:
            raise RandomizerError(f"Transport cell {cell} is not linked back from {partner_pos}.")


def lint(shapes: Iterable[DungeonShape]) -> List[LayoutSummary]:
    """Raise RandomizerError on the first inconsistency; otherwise summarize each layout."""
    seen_rooms: Set[str] = set()
    seen_items: Dict[ItemId, str] = {}
    summaries: List[LayoutSummary] = []

    for shape in sorted(shapes, key=lambda s: s.world.level_number):
        for cell in shape.valid_cells():
            room = cell.demand_room()
            if room.unique_id in seen_rooms:
                raise RandomizerError(f"Room {room.unique_id} appears multiple times.")
            seen_rooms.add(room.unique_id)
            for item in dungeon_items_in(room):
                if item in seen_items:
                    raise RandomizerError(f"Item {item.name} appears in {seen_items[item]} and {shape.name}.")
                seen_items[item] = shape.name

        _lint_doors(shape)
        _lint_transports(shape)

        graph = build_door_graph(shape)
        if not nx.is_connected(graph):
            components = sorted(nx.connected_components(graph), key=len, reverse=True)
            stranded = sorted(pos for component in components[1:] for pos in component)
            raise RandomizerError(
                f"{shape.name}: {len(components)} disconnected parts, stranded cells "
                f"{', '.join(str(pos) for pos in stranded)}."
            )
        summaries.append(summarize(shape, graph))
    return summaries


def summarize(shape: DungeonShape, graph: nx.Graph) -> LayoutSummary:
    door_edges = sum(1 for _, _, kind in graph.edges(data="kind") if kind == "door")
    transport_edges = graph.number_of_edges() - door_edges
    diameter = int(nx.diameter(graph)) if graph.number_of_nodes() > 1 else 0
    return LayoutSummary(
        name=shape.name,
        rooms=graph.number_of_nodes(),
        doors=door_edges,
        transport_links=transport_edges,
        cycle_count=len(nx.cycle_basis(graph)),
        diameter=diameter,
    )
