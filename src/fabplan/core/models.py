from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from typing import Mapping

from fabplan.core.leadtime import calculate_lead_time

# stage name -> load fraction, expected in [0, 0.95)
WorkloadSnapshot = Mapping[str, float]


@dataclass(frozen=True)
class ProductionStage:
    name: str
    nominal_duration_days: float | None = None

    @property
    def duration_or_zero(self) -> float:
        return float(self.nominal_duration_days or 0)


@dataclass(frozen=True)
class ProductPlanTemplate:
    product_id: str
    stages: tuple[ProductionStage, ...] = ()
    description: str | None = None
    unit_weight_kg: float | None = None

    @property
    def stage_names(self) -> list[str]:
        return [s.name for s in self.stages]


@dataclass(frozen=True)
class CalculatorLineItem:
    """One product + quantity in the feasibility calculator (never persisted)."""

    product_id: str
    quantity: int
    stages: tuple[ProductionStage, ...] = ()

    def __post_init__(self) -> None:
        if int(self.quantity) < 1:
            raise ValueError(f"cantidad debe ser >= 1 (recibido {self.quantity!r})")
        # Snapshot copy; lists from callers must not leak in.
        object.__setattr__(self, "stages", tuple(self.stages))

    @classmethod
    def from_template(cls, template: ProductPlanTemplate, quantity: int = 1) -> "CalculatorLineItem":
        return cls(product_id=template.product_id, quantity=quantity, stages=tuple(template.stages))

    @property
    def nominal_lead_time_days(self) -> int:
        return calculate_lead_time(self.stages)


@dataclass(frozen=True)
class StageAnalysis:
    stage_name: str
    original_duration: float
    adjusted_duration: int
    workload: float
    bottleneck: bool
    adjustment_factor: float = 1.0


@dataclass(frozen=True)
class FeasibilityResult:
    is_viable: bool
    suggested_date: date
    analysis: tuple[StageAnalysis, ...]
    total_adjusted_lead_time_days: int
    confidence: int

    # Informational, derived while scoring
    days_until_requested: int = 0
    average_workload: float = 0.0
    bottleneck_count: int = 0
    critical_product_id: str | None = None

    @property
    def bottlenecks(self) -> list[str]:
        return [a.stage_name for a in self.analysis if a.bottleneck]

    def as_dict(self) -> dict:
        """UI/export friendly representation (dates as ISO strings)."""
        return {
            "is_viable": self.is_viable,
            "suggested_date": self.suggested_date.isoformat(),
            "analysis": [asdict(a) for a in self.analysis],
            "total_adjusted_lead_time_days": self.total_adjusted_lead_time_days,
            "confidence": self.confidence,
            "days_until_requested": self.days_until_requested,
            "average_workload": self.average_workload,
            "bottleneck_count": self.bottleneck_count,
            "critical_product_id": self.critical_product_id,
            "bottlenecks": self.bottlenecks,
        }
