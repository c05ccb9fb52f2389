"""Context object providing shared state and helpers to the randomization passes."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import List, Optional

from dungeon_geometry import GridPos
from dungeon_shape import DungeonShape
from dungeon_walker import DungeonWalker
from models import ItemId, Room
from randomizer_config import RandomizerDungeonFlags
from randomizer_state import RandomizerState
from room_requirements import RoomRequirements, RoomRequirementsAnalyzer


@dataclass(frozen=True)
class PlacedItem:
    """An item written into a cell; pinned compass and map have from_pool False."""

    item: ItemId
    location: GridPos
    from_pool: bool = True

    def __str__(self) -> str:
        return f"{self.item.name} at ({self.location})"


@dataclass
class PassContext:
    """Encapsulates the per-dungeon state every pass works on."""

    state: RandomizerState
    shape: DungeonShape
    placed_items: List[PlacedItem] = field(default_factory=list)
    _walker: Optional[DungeonWalker] = field(default=None, init=False, repr=False)
    _door_rng: Optional[random.Random] = field(default=None, init=False, repr=False)

    @property
    def flags(self) -> RandomizerDungeonFlags:
        return self.state.flags.dungeon

    @property
    def analyzer(self) -> RoomRequirementsAnalyzer:
        return self.state.analyzer

    @property
    def walker(self) -> DungeonWalker:
        if self._walker is None:
            self._walker = DungeonWalker(self.shape, self.analyzer)
        return self._walker

    @property
    def door_rng(self) -> random.Random:
        """Door stream for this dungeon, shared by every solver attempt."""
        if self._door_rng is None:
            self._door_rng = self.state.door_rng(self.shape.world.level_number)
        return self._door_rng

    def requirements(self, room: Room) -> RoomRequirements:
        return self.analyzer.get_requirements(room)
