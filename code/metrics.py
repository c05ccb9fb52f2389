"""Per-pass timings and change counts for a regeneration run."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Union

Number = Union[int, float]


@dataclass
class PassMetrics:
    """Every run of one pass, across all dungeons of the attempt."""

    name: str
    durations: List[float] = field(default_factory=list)
    changes: int = 0
    failures: int = 0

    @property
    def invocations(self) -> int:
        return len(self.durations)

    def record(self, duration: float, changes: int, failed: bool) -> None:
        self.durations.append(duration)
        self.changes += changes
        if failed:
            self.failures += 1

    def to_dict(self) -> Dict[str, Number]:
        total = sum(self.durations)
        return {
            "invocations": self.invocations,
            "total_time": total,
            "slowest_time": max(self.durations, default=0.0),
            "changes": self.changes,
            # A pass that raised is counted here, and its changes are not.
            "failures": self.failures,
        }


@dataclass
class RandomizerMetrics:
    passes: Dict[str, PassMetrics] = field(default_factory=dict)

    def record_pass_run(self, name: str, duration: float, changes: int, failed: bool = False) -> None:
        self.passes.setdefault(name, PassMetrics(name)).record(duration, changes, failed)

    def snapshot(self) -> Dict[str, Dict[str, Number]]:
        """Plain dicts in the order the passes first ran, ready for ``json.dumps``."""
        return {name: metrics.to_dict() for name, metrics in self.passes.items()}
