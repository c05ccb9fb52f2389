#!/usr/bin/env python3

from __future__ import annotations

import argparse
import json
import logging
import random
from pathlib import Path
from typing import List, Optional, Sequence

from dungeon_randomizer import randomize_with_retries
from randomizer_config import RandomizerFlags
from room_catalog import build_catalog


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Regenerate the layout of the sample dungeons.")
    parser.add_argument("--seed", type=int, default=None, help="Seed to use; a random one is picked if omitted.")
    parser.add_argument(
        "--levels",
        type=int,
        nargs="+",
        default=None,
        help="Level numbers to regenerate (default: every level).",
    )
    parser.add_argument("--config", type=Path, default=None, help="JSON file with randomizer flags.")
    parser.add_argument(
        "--attempts",
        type=int,
        default=10,
        help="Seeds to try, counting up from --seed, before giving up.",
    )
    parser.add_argument("--log-level", default="WARNING", help="Logging level (DEBUG, INFO, ...).")
    return parser.parse_args(argv)


def load_flags(path: Optional[Path]) -> RandomizerFlags:
    if path is None:
        return RandomizerFlags()
    with path.open("r", encoding="utf-8") as handle:
        return RandomizerFlags.from_mapping(json.load(handle))


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")

    flags = load_flags(args.config)

    seed = args.seed
    if seed is None:
        # Pick a seed and print it, so a run can be reproduced with --seed.
        seed = random.randint(0, 1000000)
    print(f"Using random seed {seed}")

    result = randomize_with_retries(build_catalog, seed, flags, args.levels, args.attempts)
    if result.seed != seed:
        print(f"Seed {seed} was unsatisfiable; used {result.seed} after {result.attempts} attempts")

    lines: List[str] = []
    for shape in result.shapes:
        lines.append(shape.get_debug_display())
        for placed in result.placed_items[shape.name]:
            lines.append(f"  {placed}")
        lines.append("")
    for summary in result.summaries:
        lines.append(
            f"{summary.name}: {summary.rooms} rooms, {summary.doors} doors, "
            f"{summary.transport_links} transport links, {summary.cycle_count} loops, "
            f"diameter {summary.diameter}"
        )
    if result.metrics:
        lines.append(json.dumps(result.metrics, indent=2))
    print("\n".join(lines))


if __name__ == "__main__":
    main()
