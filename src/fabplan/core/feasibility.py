from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta
from typing import Sequence

from fabplan.core.errors import EmptyLineItemListError, NoStagesOnCriticalItemError
from fabplan.core.leadtime import round_half_up, select_critical_item
from fabplan.core.models import CalculatorLineItem, FeasibilityResult, StageAnalysis, WorkloadSnapshot

CONFIDENCE_START = 90.0
CONFIDENCE_MIN = 5
CONFIDENCE_MAX = 95


def adjustment_factor(workload: float) -> tuple[float, bool]:
    """Return (duration multiplier, bottleneck flag) for a stage load fraction.

    Piecewise linear and continuous at 0.50, 0.70, 0.80 and 0.90. Values
    outside [0, 1) are not clamped: they extrapolate the outer segments.
    """
    w = float(workload)
    if w >= 0.90:
        return 2.5 + (w - 0.90) * 10, True
    if w >= 0.80:
        return 1.8 + (w - 0.80) * 7, True
    if w >= 0.70:
        return 1.3 + (w - 0.70) * 5, w >= 0.75
    if w >= 0.50:
        return 1.0 + (w - 0.50) * 1.5, False
    return 0.8 + w * 0.4, False


def days_until(requested_date: date | datetime, today: date | datetime) -> int:
    """Whole days from today to the requested date, rounded up."""
    if isinstance(requested_date, datetime) or isinstance(today, datetime):
        start = today if isinstance(today, datetime) else datetime.combine(today, time())
        end = requested_date if isinstance(requested_date, datetime) else datetime.combine(requested_date, time())
        return int(math.ceil((end - start).total_seconds() / 86400))
    return (requested_date - today).days


def score_confidence(
    *,
    analysis: Sequence[StageAnalysis],
    days_until_requested: int,
    total_adjusted_days: int,
) -> int:
    """Heuristic confidence (5..95) in the viability verdict.

    Starts at 90 and applies, in order: average workload, bottleneck count and
    time margin penalties/bonus.
    """
    score = CONFIDENCE_START

    avg_workload = sum(a.workload for a in analysis) / len(analysis) if analysis else 0.0
    score -= avg_workload * 60

    bottleneck_count = sum(1 for a in analysis if a.bottleneck)
    score -= bottleneck_count * 25

    if total_adjusted_days == 0:
        margin = math.inf
    else:
        margin = (days_until_requested - total_adjusted_days) / total_adjusted_days

    if margin < 0:
        score -= 30
    elif margin < 0.2:
        score -= 20
    elif margin > 0.5:
        score += 10

    return max(CONFIDENCE_MIN, min(CONFIDENCE_MAX, round_half_up(score)))


def analyze_stages(item: CalculatorLineItem, workload: WorkloadSnapshot) -> list[StageAnalysis]:
    rows: list[StageAnalysis] = []
    for stage in item.stages:
        w = float(workload.get(stage.name, 0) or 0)
        factor, bottleneck = adjustment_factor(w)
        original = stage.duration_or_zero
        rows.append(
            StageAnalysis(
                stage_name=stage.name,
                original_duration=original,
                adjusted_duration=int(math.ceil(original * factor)),
                workload=w,
                bottleneck=bottleneck,
                adjustment_factor=factor,
            )
        )
    return rows


def estimate(
    critical_item: CalculatorLineItem,
    workload: WorkloadSnapshot,
    requested_date: date | datetime,
    *,
    today: date | None = None,
) -> FeasibilityResult:
    """Estimate whether the critical item can be delivered by requested_date.

    Each stage is stretched independently by its workload; stage sequencing
    is not modelled. Raises NoStagesOnCriticalItemError when the item has no
    production plan.
    """
    if not critical_item.stages:
        raise NoStagesOnCriticalItemError(critical_item.product_id)

    today = today or date.today()
    analysis = analyze_stages(critical_item, workload)
    total = sum(a.adjusted_duration for a in analysis)
    remaining = days_until(requested_date, today)

    return FeasibilityResult(
        is_viable=remaining >= total,
        suggested_date=today + timedelta(days=total),
        analysis=tuple(analysis),
        total_adjusted_lead_time_days=total,
        confidence=score_confidence(
            analysis=analysis,
            days_until_requested=remaining,
            total_adjusted_days=total,
        ),
        days_until_requested=remaining,
        average_workload=sum(a.workload for a in analysis) / len(analysis),
        bottleneck_count=sum(1 for a in analysis if a.bottleneck),
        critical_product_id=critical_item.product_id,
    )


def estimate_order(
    line_items: Sequence[CalculatorLineItem],
    workload: WorkloadSnapshot,
    requested_date: date | datetime,
    *,
    today: date | None = None,
) -> FeasibilityResult:
    """Run the estimator over the order's critical item (longest nominal lead time)."""
    if not line_items:
        raise EmptyLineItemListError()
    critical = select_critical_item(line_items)
    return estimate(critical, workload, requested_date, today=today)
