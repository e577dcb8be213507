from __future__ import annotations

import random
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from fabplan.core.occupation import MonthlyOccupation

DEFAULT_WORKLOAD_CEILING = 0.95


def simulate_workload(
    stage_names: Iterable[str],
    *,
    rng: random.Random | None = None,
    seed: int | None = None,
    ceiling: float = DEFAULT_WORKLOAD_CEILING,
) -> dict[str, float]:
    """Placeholder shop-floor load: uniform in [0, ceiling) per stage.

    Pass a seed (or an rng) for reproducible snapshots.
    """
    rng = rng or random.Random(seed)
    out: dict[str, float] = {}
    for name in stage_names:
        if name in out:
            continue
        out[name] = rng.random() * ceiling
    return out


def workload_from_occupation(
    month: "MonthlyOccupation",
    *,
    ceiling: float = DEFAULT_WORKLOAD_CEILING,
) -> dict[str, float]:
    """Derive load fractions from one month of planned stage occupation."""
    return {
        name: max(0.0, min(ceiling, occ.percent_occupation / 100.0))
        for name, occ in month.stages.items()
    }
