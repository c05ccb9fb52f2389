"""Walks a fitted dungeon shape room by room, collecting the items each route needs."""

from __future__ import annotations

import heapq
import itertools
import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional, Set, Tuple

from dungeon_geometry import ENTRANCE_ORDER, GridPos, RoomEntrances
from dungeon_shape import DungeonShape, is_valid_point
from room_requirements import (
    PathRequirements,
    RoomRequirementsAnalyzer,
    shutter_requirements,
    stair_requirements,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WalkStep:
    pos: GridPos
    requirements: PathRequirements
    entry: RoomEntrances


def walk_priority(pos: GridPos, destination: GridPos, requirements: PathRequirements) -> int:
    """Manhattan distance, pushed back hard for every requirement the route carries."""
    shift = bin(int(requirements)).count("1")
    return pos.manhattan(destination) << shift


class DungeonWalker:
    def __init__(self, shape: DungeonShape, analyzer: RoomRequirementsAnalyzer) -> None:
        self.shape = shape
        self.analyzer = analyzer

    def _transport_exit(self, pos: GridPos) -> Optional[GridPos]:
        room = self.shape[pos].demand_room()
        staircase = room.transport_staircase()
        if staircase is None:
            return None
        return staircase.entrance.partner_exit()

    def _next_steps(self, step: WalkStep, ignore_doors: bool) -> Iterator[WalkStep]:
        cell = self.shape[step.pos]
        room = cell.demand_room()
        requirements = self.analyzer.get_requirements(room)

        exit_pos = self._transport_exit(step.pos)
        if exit_pos is not None and is_valid_point(exit_pos) and step.entry != RoomEntrances.STAIRS:
            to_stairs = requirements.path(step.entry, RoomEntrances.STAIRS)
            if to_stairs is not None:
                yield WalkStep(
                    exit_pos,
                    step.requirements | to_stairs | stair_requirements(room),
                    RoomEntrances.STAIRS,
                )

        shutters = shutter_requirements(room)
        for entrance in ENTRANCE_ORDER:
            if entrance == step.entry:
                continue
            direction = entrance.direction
            nxt = step.pos.offset(direction)
            if not is_valid_point(nxt) or not self.shape[nxt].is_occupied:
                continue
            if not ignore_doors and not cell.required_doors.has(entrance):
                continue
            if not requirements.can_connect(entrance):
                continue
            neighbor_requirements = self.analyzer.get_requirements(self.shape[nxt].demand_room())
            if not neighbor_requirements.can_connect(entrance.opposite()):
                continue
            path = requirements.path(step.entry, entrance)
            if path is None:
                # e.g. the entry side opens onto water that cannot be crossed.
                continue
            yield WalkStep(nxt, step.requirements | shutters | path, entrance.opposite())

    def walk(
        self,
        start: GridPos,
        destination: GridPos,
        ignore_doors: bool = False,
    ) -> Iterator[PathRequirements]:
        """Yield each distinct requirement set with which ``destination`` can be reached."""
        counter = itertools.count()
        queue: List[Tuple[int, int, WalkStep]] = [
            (0, next(counter), WalkStep(start, PathRequirements.NONE, RoomEntrances.SOUTH))
        ]
        visited: Set[WalkStep] = set()
        seen_requirements: Set[PathRequirements] = set()

        while queue:
            _, _, step = heapq.heappop(queue)
            if step.pos == destination:
                if step.requirements not in seen_requirements:
                    seen_requirements.add(step.requirements)
                    yield step.requirements
                    if step.requirements == PathRequirements.NONE:
                        return
                continue

            if step in visited:
                continue
            visited.add(step)

            for nxt in self._next_steps(step, ignore_doors):
                if nxt in visited:
                    continue
                heapq.heappush(
                    queue,
                    (walk_priority(nxt.pos, destination, nxt.requirements), next(counter), nxt),
                )

    def can_walk_to(self, destination: GridPos, ignore_doors: bool = False) -> bool:
        return next(self.walk(self.shape.entrance, destination, ignore_doors), None) is not None

    def requirement_sets(self, destination: GridPos) -> List[PathRequirements]:
        return list(self.walk(self.shape.entrance, destination))

    def reachable_points(self, ignore_doors: bool = False) -> Set[GridPos]:
        """Cells reachable from the entrance, ignoring item gating."""
        start = WalkStep(self.shape.entrance, PathRequirements.NONE, RoomEntrances.SOUTH)
        seen: Set[Tuple[GridPos, RoomEntrances]] = {(start.pos, start.entry)}
        stack = [start]
        reached = {start.pos}
        while stack:
            step = stack.pop()
            for nxt in self._next_steps(step, ignore_doors):
                key = (nxt.pos, nxt.entry)
                if key in seen:
                    continue
                seen.add(key)
                reached.add(nxt.pos)
                stack.append(WalkStep(nxt.pos, PathRequirements.NONE, nxt.entry))
        return reached

    def unreachable_cells(self, ignore_doors: bool = False) -> List[GridPos]:
        reached = self.reachable_points(ignore_doors)
        return [cell.pos for cell in self.shape.valid_cells() if cell.pos not in reached]
