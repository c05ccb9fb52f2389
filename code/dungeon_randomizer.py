"""DungeonRandomizer orchestrates the passes that regenerate every dungeon of a run."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from time import perf_counter
from typing import Callable, Dict, List, Optional, Sequence

from dungeon_lint import LayoutSummary, lint
from dungeon_shape import DungeonShape
from errors import RandomizerError, RecoverableRandomizerError
from metrics import RandomizerMetrics
from models import DungeonWorld, ItemId, WorldRegistry
from pass_context import PassContext, PlacedItem
from passes import (
    run_completability_check,
    run_door_solver_pass,
    run_fit_normal_rooms_pass,
    run_fit_special_rooms_pass,
    run_item_check_pass,
    run_item_placement_pass,
    run_monster_fitter_pass,
    run_room_normalizer_pass,
    run_transport_linker_pass,
)
from randomizer_config import RandomizerFlags
from randomizer_state import RandomizerState

logger = logging.getLogger(__name__)


@dataclass
class RandomizerResult:
    seed: int
    registry: WorldRegistry
    shapes: List[DungeonShape]
    placed_items: Dict[str, List[PlacedItem]]
    summaries: List[LayoutSummary]
    leftover_items: List[ItemId] = field(default_factory=list)
    metrics: Optional[Dict[str, Dict[str, float | int]]] = None
    attempts: int = 1


class DungeonRandomizer:
    """Manages the overall process of regenerating the dungeons of a world registry."""

    def __init__(
        self,
        registry: WorldRegistry,
        state: RandomizerState,
        levels: Optional[Sequence[int]] = None,
    ) -> None:
        self.registry = registry
        self.state = state
        self.levels = tuple(levels) if levels is not None else None
        self.metrics = RandomizerMetrics() if state.flags.collect_metrics else None
        self.shapes: List[DungeonShape] = []
        self.contexts: Dict[str, PassContext] = {}

    def _run_pass(
        self,
        name: str,
        func: Callable[..., int],
        *args,
        **kwargs,
    ) -> int:
        if self.metrics is None:
            return func(*args, **kwargs)

        start = perf_counter()
        changes = 0
        failed = True
        try:
            changes = func(*args, **kwargs)
            failed = False
            return changes
        finally:
            self.metrics.record_pass_run(name, perf_counter() - start, changes or 0, failed)

    def dungeons(self) -> List[DungeonWorld]:
        dungeons = self.registry.dungeons()
        if self.levels is None:
            return dungeons
        selected = [dungeon for dungeon in dungeons if dungeon.level_number in self.levels]
        missing = set(self.levels) - {dungeon.level_number for dungeon in selected}
        if missing:
            raise ValueError(f"Unknown dungeon levels: {sorted(missing)}")
        return selected

    def randomize(self) -> RandomizerResult:
        """Regenerates every selected dungeon and installs the results into the registry."""
        start = perf_counter()
        logger.info("Starting dungeon randomization %s.", self.state.seed)
        try:
            self._randomize_core()
        except RandomizerError as exc:
            logger.error("Dungeon randomization failed for seed %s: %s", self.state.seed, exc)
            raise
        logger.info(
            "Finished dungeon randomization %s in %.3fs.", self.state.seed, perf_counter() - start
        )

        summaries = lint(self.shapes)
        self._log_spoiler()
        leftover = list(self.state.dungeon_items)
        if leftover:
            logger.warning(
                "%d dungeon items were not placed: %s",
                len(leftover),
                ", ".join(item.name for item in leftover),
            )
        return RandomizerResult(
            seed=self.state.seed,
            registry=self.registry,
            shapes=list(self.shapes),
            placed_items={name: list(context.placed_items) for name, context in self.contexts.items()},
            summaries=summaries,
            leftover_items=leftover,
            metrics=self.metrics.snapshot() if self.metrics else None,
        )

    def _create_shape(self, dungeon: DungeonWorld) -> DungeonShape:
        if self.state.flags.dungeon.shapes:
            return DungeonShape.create(dungeon, self.state)
        return DungeonShape.from_world(dungeon, self.state)

    def _randomize_core(self) -> None:
        flags = self.state.flags.dungeon
        dungeons = self.dungeons()
        if not flags.rooms:
            logger.info("Room randomization is disabled; dungeons are left untouched.")
            return

        self.state.initialize(dungeons)

        # 1. A shape for every dungeon before anything is fit.
        self.shapes = [self._create_shape(dungeon) for dungeon in dungeons]
        self.contexts = {shape.name: PassContext(state=self.state, shape=shape) for shape in self.shapes}

        # 2. Special rooms for every dungeon first, so early dungeons cannot use them up.
        for shape in self.shapes:
            self._run_pass("fit_special_rooms", run_fit_special_rooms_pass, self.contexts[shape.name])
        self.state.normalize_remaining_rooms()

        for shape in self.shapes:
            context = self.contexts[shape.name]
            logger.info("Randomizing dungeon %s.", shape.name)

            self._run_pass("fit_normal_rooms", run_fit_normal_rooms_pass, context)
            shape.ensure_all_rooms_fit()
            shape.update_room_ids()

            # Transports can make doors elsewhere unneeded, so they are linked first.
            self._run_pass("transport_linker", run_transport_linker_pass, context)
            shape.update_room_coordinates()

            # Shutter requirements depend on monsters, so they are dealt before doors.
            if flags.randomize_monsters:
                self._run_pass("monster_fitter", run_monster_fitter_pass, context)

            self._run_pass("item_placement", run_item_placement_pass, context)
            self._run_pass("door_solver", run_door_solver_pass, context)
            self._run_pass("item_check", run_item_check_pass, context)

            self._commit(shape)

        # Gates in one dungeon can be opened by items placed in another.
        self._run_pass("completability_check", run_completability_check, list(self.contexts.values()))

        for shape in self.shapes:
            self._run_pass("room_normalizer", run_room_normalizer_pass, self.contexts[shape.name])

    def _commit(self, shape: DungeonShape) -> None:
        randomized = DungeonWorld(shape.name, shape.rooms(), shape.world.settings)
        self.registry.set_world(randomized, shape.name)
        logger.debug("Installed %r", randomized)

    def _log_spoiler(self) -> None:
        for shape in sorted(self.shapes, key=lambda s: s.world.level_number):
            logger.info("Dungeon spoilers for %s.\n%s", shape.name, shape.get_debug_display())
            for placed in self.contexts[shape.name].placed_items:
                logger.info("%s: %s", shape.name, placed)


def randomize_dungeons(
    registry: WorldRegistry,
    seed: int,
    flags: Optional[RandomizerFlags] = None,
    levels: Optional[Sequence[int]] = None,
) -> RandomizerResult:
    state = RandomizerState(seed, flags)
    return DungeonRandomizer(registry, state, levels).randomize()


def randomize_with_retries(
    build_registry: Callable[[], WorldRegistry],
    seed: int,
    flags: Optional[RandomizerFlags] = None,
    levels: Optional[Sequence[int]] = None,
    attempts: int = 1,
) -> RandomizerResult:
    """Retry recoverable failures with the next seed on a freshly built registry.

    A failed attempt leaves its rooms half mutated, so every attempt starts from
    the static definitions again.
    """
    if attempts <= 0:
        raise ValueError("attempts must be positive")

    last_error: Optional[RecoverableRandomizerError] = None
    for attempt in range(attempts):
        attempt_seed = seed + attempt
        try:
            result = randomize_dungeons(build_registry(), attempt_seed, flags, levels)
        except RecoverableRandomizerError as exc:
            logger.warning("Seed %s is unsatisfiable (%s); trying %s.", attempt_seed, exc, attempt_seed + 1)
            last_error = exc
            continue
        result.attempts = attempt + 1
        return result

    assert last_error is not None
    raise last_error
