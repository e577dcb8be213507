from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from fabplan.core.errors import EmptyLineItemListError, NoStagesOnCriticalItemError
from fabplan.core.feasibility import adjustment_factor, days_until, estimate, estimate_order
from fabplan.core.models import CalculatorLineItem, ProductionStage

TODAY = date(2026, 1, 5)


def item(product_id: str, *pairs, quantity: int = 1) -> CalculatorLineItem:
    return CalculatorLineItem(
        product_id,
        quantity,
        tuple(ProductionStage(name=n, nominal_duration_days=d) for n, d in pairs),
    )


@pytest.mark.parametrize("boundary", [0.50, 0.70, 0.80, 0.90])
def test_adjustment_factor_is_continuous_at_thresholds(boundary):
    left, _ = adjustment_factor(boundary - 1e-9)
    right, _ = adjustment_factor(boundary)
    assert left == pytest.approx(right, abs=1e-6)


@pytest.mark.parametrize(
    "w, expected",
    [(0.0, 0.8), (0.3, 0.92), (0.5, 1.0), (0.6, 1.15), (0.7, 1.3), (0.8, 1.8), (0.9, 2.5), (0.95, 3.0)],
)
def test_adjustment_factor_values(w, expected):
    factor, _ = adjustment_factor(w)
    assert factor == pytest.approx(expected)


@pytest.mark.parametrize("w", [0.75, 0.76, 0.8, 0.85, 0.9, 0.94, 0.99])
def test_high_workload_is_bottleneck(w):
    assert adjustment_factor(w)[1] is True


@pytest.mark.parametrize("w", [0.0, 0.3, 0.5, 0.69, 0.7, 0.72, 0.749])
def test_low_workload_is_not_bottleneck(w):
    assert adjustment_factor(w)[1] is False


def test_workload_above_one_extrapolates():
    factor, bottleneck = adjustment_factor(1.2)
    assert factor == pytest.approx(5.5)
    assert bottleneck is True


def test_scenario_cut_weld_paint():
    critical = item("P1", ("Cut", 2), ("Weld", 3), ("Paint", 1))
    workload = {"Cut": 0.3, "Weld": 0.95, "Paint": 0.1}

    result = estimate(critical, workload, TODAY + timedelta(days=30), today=TODAY)

    assert [a.stage_name for a in result.analysis] == ["Cut", "Weld", "Paint"]
    assert [a.adjusted_duration for a in result.analysis] == [2, 9, 1]
    assert [a.bottleneck for a in result.analysis] == [False, True, False]
    assert result.analysis[1].adjustment_factor == pytest.approx(3.0)
    assert result.total_adjusted_lead_time_days == 12
    assert result.bottlenecks == ["Weld"]
    assert result.suggested_date == date(2026, 1, 17)
    assert result.is_viable is True
    # 90 - 0.45*60 - 25 + 10
    assert result.confidence == 48


def test_scenario_single_idle_stage():
    critical = item("P1", ("Assembly", 5))
    workload = {"Assembly": 0}

    result = estimate(critical, workload, TODAY + timedelta(days=4), today=TODAY)

    assert result.analysis[0].adjusted_duration == 4
    assert result.total_adjusted_lead_time_days == 4
    assert result.average_workload == 0
    assert result.bottleneck_count == 0
    # margin 0 -> -20
    assert result.confidence == 70


@pytest.mark.parametrize(
    "days, confidence, viable",
    [
        (2, 60, False),  # margin -0.5 -> -30
        (4, 70, True),  # margin 0 -> -20
        (5, 90, True),  # margin 0.25 -> no change
        (6, 90, True),  # margin 0.5 -> no change
        (10, 95, True),  # margin 1.5 -> +10, clamped
    ],
)
def test_time_margin_bands(days, confidence, viable):
    result = estimate(item("P1", ("Assembly", 5)), {}, TODAY + timedelta(days=days), today=TODAY)
    assert result.confidence == confidence
    assert result.is_viable is viable


def test_empty_line_item_list_fails():
    with pytest.raises(EmptyLineItemListError):
        estimate_order([], {}, TODAY + timedelta(days=10), today=TODAY)


def test_critical_item_without_stages_fails():
    with pytest.raises(NoStagesOnCriticalItemError) as exc_info:
        estimate(item("SIN-PLAN"), {}, TODAY, today=TODAY)
    assert exc_info.value.product_id == "SIN-PLAN"


def test_all_zero_durations_is_valid():
    critical = item("P1", ("A", 0), ("B", 0))

    result = estimate(critical, {}, TODAY, today=TODAY)

    assert result.total_adjusted_lead_time_days == 0
    assert result.is_viable is True
    assert result.suggested_date == TODAY
    # margin treated as > 0.5: 90 + 10, clamped
    assert result.confidence == 95


def test_all_zero_durations_under_full_load_hits_floor():
    critical = item("P1", ("A", 0), ("B", None))
    result = estimate(critical, {"A": 0.95, "B": 0.95}, TODAY, today=TODAY)
    assert result.total_adjusted_lead_time_days == 0
    assert result.analysis[1].original_duration == 0
    assert result.bottleneck_count == 2
    assert result.confidence == 5


def test_missing_workload_defaults_to_zero():
    result = estimate(item("P1", ("Corte", 10)), {"Otra": 0.9}, TODAY + timedelta(days=30), today=TODAY)
    assert result.analysis[0].workload == 0
    assert result.analysis[0].adjusted_duration == 8


def test_estimate_order_uses_only_the_critical_item():
    short = item("CORTO", ("Corte", 1), quantity=500)
    long = item("LARGO", ("Corte", 2), ("Soldadura", 3), ("Pintura", 1))

    result = estimate_order([short, long], {"Soldadura": 0.95}, TODAY + timedelta(days=30), today=TODAY)

    assert result.critical_product_id == "LARGO"
    assert len(result.analysis) == 3


def test_estimate_order_with_stageless_critical_item_fails():
    with pytest.raises(NoStagesOnCriticalItemError):
        estimate_order([item("P1")], {}, TODAY, today=TODAY)


@pytest.mark.parametrize("w", [0.0, 0.2, 0.5, 0.7, 0.75, 0.85, 0.94])
@pytest.mark.parametrize("days", [-5, 0, 3, 10, 60])
def test_confidence_bounds_and_viability_rule(w, days):
    critical = item("P1", ("Corte", 2), ("Soldadura", 4.5), ("Pintura", 0))
    workload = {"Corte": w, "Soldadura": w, "Pintura": w}

    result = estimate(critical, workload, TODAY + timedelta(days=days), today=TODAY)

    assert isinstance(result.confidence, int)
    assert 5 <= result.confidence <= 95
    assert result.is_viable == (result.days_until_requested >= result.total_adjusted_lead_time_days)
    assert result.total_adjusted_lead_time_days == sum(a.adjusted_duration for a in result.analysis)


def test_days_until_ceils_partial_days():
    assert days_until(date(2026, 1, 9), TODAY) == 4
    assert days_until(datetime(2026, 1, 9, 12, 0), TODAY) == 5
    assert days_until(date(2026, 1, 1), TODAY) == -4


def test_result_as_dict():
    result = estimate(item("P1", ("Corte", 2)), {"Corte": 0.95}, TODAY + timedelta(days=30), today=TODAY)
    data = result.as_dict()
    assert data["suggested_date"] == "2026-01-11"
    assert data["bottlenecks"] == ["Corte"]
    assert data["analysis"][0]["adjusted_duration"] == 6
