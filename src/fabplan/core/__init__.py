from __future__ import annotations

from fabplan.core.errors import EmptyInputError, EmptyLineItemListError, NoStagesOnCriticalItemError
from fabplan.core.feasibility import adjustment_factor, estimate, estimate_order, score_confidence
from fabplan.core.leadtime import calculate_lead_time, round_half_up, select_critical_item
from fabplan.core.models import (
    CalculatorLineItem,
    FeasibilityResult,
    ProductPlanTemplate,
    ProductionStage,
    StageAnalysis,
    WorkloadSnapshot,
)
from fabplan.core.workload import simulate_workload, workload_from_occupation

__all__ = [
	"EmptyInputError",
	"EmptyLineItemListError",
	"NoStagesOnCriticalItemError",
	"adjustment_factor",
	"estimate",
	"estimate_order",
	"score_confidence",
	"calculate_lead_time",
	"round_half_up",
	"select_critical_item",
	"CalculatorLineItem",
	"FeasibilityResult",
	"ProductPlanTemplate",
	"ProductionStage",
	"StageAnalysis",
	"WorkloadSnapshot",
	"simulate_workload",
	"workload_from_occupation",
]
