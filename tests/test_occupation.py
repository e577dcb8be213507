from datetime import date

import pytest

from fabplan.core.occupation import (
    StagePlanning,
    calculate_monthly_occupation,
    check_deadline_capacity,
    occupation_status,
)

TODAY = date(2026, 3, 10)


def planning(stage, start, end, weight, order="OP-1"):
    return StagePlanning(
        order_number=order,
        item_code=f"{order}-01",
        stage=stage,
        start_date=start,
        end_date=end,
        weight_kg=weight,
    )


def test_months_cover_current_plus_five():
    months = calculate_monthly_occupation([], today=TODAY)
    assert [m.month for m in months] == ["03/2026", "04/2026", "05/2026", "06/2026", "07/2026", "08/2026"]


def test_months_roll_over_year_end():
    months = calculate_monthly_occupation([], today=date(2026, 11, 20), months_ahead=3)
    assert [m.month for m in months] == ["11/2026", "12/2026", "01/2027", "02/2027"]


def test_stage_within_one_month_counts_fully():
    months = calculate_monthly_occupation(
        [planning("Soldadura", date(2026, 3, 1), date(2026, 3, 11), 8000)], today=TODAY
    )
    occ = months[0].stages["Soldadura"]
    assert occ.total_weight_kg == pytest.approx(8000)
    assert occ.percent_occupation == 10
    assert occ.status == "low"
    assert months[1].stages["Soldadura"].total_weight_kg == 0


def test_stage_spanning_months_is_prorated():
    months = calculate_monthly_occupation(
        [planning("Soldadura", date(2026, 3, 21), date(2026, 4, 10), 160000)], today=TODAY
    )
    march = months[0].stages["Soldadura"]
    april = months[1].stages["Soldadura"]

    assert march.total_weight_kg == pytest.approx(88000)
    assert april.total_weight_kg == pytest.approx(72000)
    assert march.status == "critical"
    assert april.status == "warning"
    assert months[0].count_by_status("critical") == 1


def test_last_day_of_month_counts():
    months = calculate_monthly_occupation(
        [planning("Pintura", date(2026, 3, 30), date(2026, 3, 31), 4000)], today=TODAY
    )
    assert months[0].stages["Pintura"].total_weight_kg == pytest.approx(4000)
    assert months[1].stages["Pintura"].items == []


def test_every_stage_appears_in_every_month():
    months = calculate_monthly_occupation(
        [
            planning("Corte", date(2026, 3, 1), date(2026, 3, 5), 1000),
            planning("Pintura", date(2026, 5, 1), date(2026, 5, 5), 1000, order="OP-2"),
        ],
        today=TODAY,
    )
    for month in months:
        assert sorted(month.stages) == ["Corte", "Pintura"]
    assert months[0].stages["Corte"].items[0]["order_number"] == "OP-1"


@pytest.mark.parametrize(
    "percent, status",
    [(101, "critical"), (100, "warning"), (70, "warning"), (69, "normal"), (30, "normal"), (29, "low")],
)
def test_occupation_status(percent, status):
    assert occupation_status(percent) == status


def test_occupation_status_custom_warning_threshold():
    assert occupation_status(75, warning_threshold_pct=80) == "normal"


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        calculate_monthly_occupation([], today=TODAY, capacity_ton=0)


def test_deadline_fits_capacity_without_existing_load():
    # Mon 2026-03-02 -> Mon 2026-03-16: 10 business days * 4000 kg
    check = check_deadline_capacity(
        [], new_order_weight_kg=30000, delivery_date=date(2026, 3, 16), today=date(2026, 3, 2)
    )
    assert check.available_capacity_kg == pytest.approx(40000)
    assert check.is_plausible is True
    assert check.overload_kg == 0


def test_deadline_overload_is_reported():
    check = check_deadline_capacity(
        [], new_order_weight_kg=50000, delivery_date=date(2026, 3, 16), today=date(2026, 3, 2)
    )
    assert check.is_plausible is False
    assert check.overload_kg == pytest.approx(10000)


def test_deadline_counts_overlapping_existing_load():
    plannings = [
        # 10 business days planned, 7 calendar days inside the window
        planning("Soldadura", date(2026, 3, 9), date(2026, 3, 23), 10000),
        planning("Pintura", date(2026, 4, 1), date(2026, 4, 10), 99999, order="OP-2"),
    ]
    check = check_deadline_capacity(
        plannings, new_order_weight_kg=1000, delivery_date=date(2026, 3, 16), today=date(2026, 3, 2)
    )
    assert check.current_workload_kg == pytest.approx(7000)
    assert check.total_load_kg == pytest.approx(8000)


def test_deadline_rejects_invalid_input():
    with pytest.raises(ValueError, match="Peso"):
        check_deadline_capacity([], new_order_weight_kg=0, delivery_date=date(2026, 4, 1), today=TODAY)
    with pytest.raises(ValueError, match="futura"):
        check_deadline_capacity([], new_order_weight_kg=100, delivery_date=date(2026, 3, 1), today=TODAY)
