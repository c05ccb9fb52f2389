"""Configuration container for dungeon regeneration."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Mapping

from dungeon_constants import (
    BONUS_DOOR_PROBABILITY,
    DEFAULT_SIZE_VARIANCE,
    MAX_DOOR_ATTEMPTS,
    MAX_ITEM_ATTEMPTS,
    MAX_REFIT_DOORS,
)


@dataclass
class RandomizerDungeonFlags:
    """Toggles and tunables for the dungeon passes."""

    rooms: bool = True
    shapes: bool = True
    # New room count is the original count plus a uniform draw in [-variance, variance].
    shapes_size_variance: int = DEFAULT_SIZE_VARIANCE
    randomize_monsters: bool = True
    always_have_compass: bool = True
    always_have_map: bool = True
    allow_false_walls: bool = True
    # Chance of adding a door between cells that are already connected.
    bonus_door_probability: float = BONUS_DOOR_PROBABILITY
    max_door_attempts: int = MAX_DOOR_ATTEMPTS
    # Doors added one at a time after the walk before an attempt is abandoned.
    max_refit_doors: int = MAX_REFIT_DOORS
    max_item_attempts: int = MAX_ITEM_ATTEMPTS

    def __post_init__(self) -> None:
        if self.shapes_size_variance < 0:
            raise ValueError("RandomizerDungeonFlags shapes_size_variance cannot be negative")
        if not 0.0 <= self.bonus_door_probability <= 1.0:
            raise ValueError("RandomizerDungeonFlags bonus_door_probability must lie within [0, 1]")
        if self.max_door_attempts <= 0:
            raise ValueError("RandomizerDungeonFlags max_door_attempts must be positive")
        if self.max_refit_doors <= 0:
            raise ValueError("RandomizerDungeonFlags max_refit_doors must be positive")
        if self.max_item_attempts <= 0:
            raise ValueError("RandomizerDungeonFlags max_item_attempts must be positive")
        self.bonus_door_probability = float(self.bonus_door_probability)


@dataclass
class RandomizerFlags:
    """Aggregates every flag that shapes a regeneration run."""

    dungeon: RandomizerDungeonFlags = field(default_factory=RandomizerDungeonFlags)
    collect_metrics: bool = False

    def check_integrity(self) -> None:
        if self.dungeon.shapes and not self.dungeon.rooms:
            raise ValueError("Cannot randomize dungeon shapes without randomizing rooms.")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> RandomizerFlags:
        """Build flags from a plain mapping such as a loaded JSON document."""
        known = {"dungeon", "collect_metrics"}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown randomizer flags: {sorted(unknown)}")

        dungeon_data = dict(data.get("dungeon", {}))
        dungeon_fields = {f.name for f in fields(RandomizerDungeonFlags)}
        unknown_dungeon = set(dungeon_data) - dungeon_fields
        if unknown_dungeon:
            raise ValueError(f"Unknown dungeon flags: {sorted(unknown_dungeon)}")

        flags = cls(
            dungeon=RandomizerDungeonFlags(**dungeon_data),
            collect_metrics=bool(data.get("collect_metrics", False)),
        )
        flags.check_integrity()
        return flags
