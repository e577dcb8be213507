from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable

from fabplan.core.leadtime import round_half_up
from fabplan.core.workdays import business_days_between

DEFAULT_MONTHLY_CAPACITY_KG = 80_000.0
DEFAULT_WARNING_THRESHOLD_PCT = 70.0
LOW_OCCUPATION_PCT = 30


@dataclass(frozen=True)
class StagePlanning:
    """Planned execution window of one stage of an existing order item."""

    order_number: str
    item_code: str
    stage: str
    start_date: date
    end_date: date
    weight_kg: float
    customer: str | None = None


@dataclass
class StageOccupation:
    stage: str
    total_weight_kg: float = 0.0
    percent_occupation: int = 0
    status: str = "normal"
    items: list[dict] = field(default_factory=list)


@dataclass
class MonthlyOccupation:
    month: str  # MM/YYYY
    month_start: date
    stages: dict[str, StageOccupation] = field(default_factory=dict)

    def count_by_status(self, status: str) -> int:
        return sum(1 for s in self.stages.values() if s.status == status)


@dataclass(frozen=True)
class DeadlineCheck:
    is_plausible: bool
    current_workload_kg: float
    available_capacity_kg: float
    total_load_kg: float

    @property
    def overload_kg(self) -> float:
        return max(0.0, self.total_load_kg - self.available_capacity_kg)


def _add_months(d: date, months: int) -> date:
    idx = d.month - 1 + months
    return date(d.year + idx // 12, idx % 12 + 1, 1)


def overlap_days(start1: date, end1: date, start2: date, end2: date) -> int:
    """Days shared by two ranges, end dates exclusive."""
    latest_start = max(start1, start2)
    earliest_end = min(end1, end2)
    return max(0, (earliest_end - latest_start).days)


def _overlaps(start1: date, end1: date, start2: date, end2: date) -> bool:
    return start1 <= end2 and start2 <= end1


def occupation_status(percent: float, *, warning_threshold_pct: float = DEFAULT_WARNING_THRESHOLD_PCT) -> str:
    if percent > 100:
        return "critical"
    if percent >= warning_threshold_pct:
        return "warning"
    if percent < LOW_OCCUPATION_PCT:
        return "low"
    return "normal"


def calculate_monthly_occupation(
    plannings: Iterable[StagePlanning],
    *,
    today: date | None = None,
    months_ahead: int = 5,
    capacity_ton: float = DEFAULT_MONTHLY_CAPACITY_KG / 1000,
    warning_threshold_pct: float = DEFAULT_WARNING_THRESHOLD_PCT,
) -> list[MonthlyOccupation]:
    """Spread each planned stage's weight over the months it spans.

    Covers the current month plus `months_ahead`. A stage contributes
    weight * overlap_days / duration_days to each month it touches.
    """
    if capacity_ton <= 0:
        raise ValueError("capacidad mensual debe ser > 0")

    today = today or date.today()
    first = today.replace(day=1)
    plannings = list(plannings)
    stage_names = sorted({p.stage for p in plannings})

    months: list[MonthlyOccupation] = []
    for i in range(months_ahead + 1):
        start = _add_months(first, i)
        month = MonthlyOccupation(month=start.strftime("%m/%Y"), month_start=start)
        for name in stage_names:
            month.stages[name] = StageOccupation(stage=name)
        months.append(month)

    for p in plannings:
        duration = max(1, (p.end_date - p.start_date).days)
        for month in months:
            # next month's first day: the month's last day counts in full
            month_end = _add_months(month.month_start, 1) - timedelta(days=1)
            if not _overlaps(p.start_date, p.end_date, month.month_start, month_end):
                continue
            days = overlap_days(p.start_date, p.end_date, month.month_start, month_end + timedelta(days=1))
            contribution = float(p.weight_kg) * days / duration
            occ = month.stages[p.stage]
            occ.total_weight_kg += contribution
            occ.items.append(
                {
                    "order_number": p.order_number,
                    "customer": p.customer,
                    "item_code": p.item_code,
                    "weight_kg": contribution,
                }
            )

    for month in months:
        for occ in month.stages.values():
            occ.percent_occupation = round_half_up(occ.total_weight_kg / 1000 / capacity_ton * 100)
            occ.status = occupation_status(occ.percent_occupation, warning_threshold_pct=warning_threshold_pct)

    return months


def check_deadline_capacity(
    plannings: Iterable[StagePlanning],
    *,
    new_order_weight_kg: float,
    delivery_date: date,
    today: date | None = None,
    monthly_capacity_kg: float = DEFAULT_MONTHLY_CAPACITY_KG,
    business_days_per_month: int = 20,
) -> DeadlineCheck:
    """Rough check: does existing load plus the new order fit the shop capacity
    available between today and the delivery date?"""
    today = today or date.today()
    weight = float(new_order_weight_kg)
    if weight <= 0:
        raise ValueError("Peso del pedido inválido (debe ser > 0 kg)")
    if delivery_date < today:
        raise ValueError("La fecha de entrega debe ser futura")

    current = 0.0
    for p in plannings:
        if not _overlaps(p.start_date, p.end_date, today, delivery_date):
            continue
        planned_days = max(1, business_days_between(p.start_date, p.end_date))
        days = overlap_days(p.start_date, p.end_date, today, delivery_date)
        current += float(p.weight_kg) * days / planned_days

    daily_capacity = monthly_capacity_kg / business_days_per_month
    available = daily_capacity * business_days_between(today, delivery_date)
    total = current + weight
    return DeadlineCheck(
        is_plausible=total <= available,
        current_workload_kg=current,
        available_capacity_kg=available,
        total_load_kg=total,
    )
