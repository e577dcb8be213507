from __future__ import annotations

import math
from typing import TYPE_CHECKING, Iterable, Sequence

from fabplan.core.errors import EmptyLineItemListError

if TYPE_CHECKING:
    from fabplan.core.models import CalculatorLineItem, ProductionStage


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 going up (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def calculate_lead_time(stages: Iterable["ProductionStage"]) -> int:
    """Total nominal days of a stage list; missing durations count as 0."""
    total = 0.0
    for stage in stages:
        total += float(stage.nominal_duration_days or 0)
    return round_half_up(total)


def select_critical_item(line_items: Sequence["CalculatorLineItem"]) -> "CalculatorLineItem":
    """Pick the line item with the longest nominal lead time.

    Quantities are ignored and ties keep the first item in input order. The
    longest single stage chain stands in for the whole order; stages shared
    between items are not modelled.
    """
    if not line_items:
        raise EmptyLineItemListError()

    critical = line_items[0]
    best = critical.nominal_lead_time_days
    for item in line_items[1:]:
        days = item.nominal_lead_time_days
        if days > best:
            critical, best = item, days
    return critical
