import random
from datetime import date

from fabplan.core.occupation import MonthlyOccupation, StageOccupation
from fabplan.core.workload import simulate_workload, workload_from_occupation


def test_simulated_workload_is_reproducible_with_seed():
    names = ["Corte", "Soldadura", "Pintura"]
    assert simulate_workload(names, seed=42) == simulate_workload(names, seed=42)
    assert simulate_workload(names, rng=random.Random(7)) == simulate_workload(names, seed=7)


def test_simulated_workload_stays_below_ceiling():
    names = [f"Etapa {i}" for i in range(200)]
    snapshot = simulate_workload(names, seed=1)
    assert set(snapshot) == set(names)
    assert all(0 <= w < 0.95 for w in snapshot.values())


def test_simulated_workload_repeated_stage_gets_one_value():
    snapshot = simulate_workload(["Corte", "Corte", "Pintura"], seed=3)
    assert list(snapshot) == ["Corte", "Pintura"]


def test_workload_from_occupation_clamps_to_ceiling():
    month = MonthlyOccupation(month="03/2026", month_start=date(2026, 3, 1))
    month.stages["Corte"] = StageOccupation(stage="Corte", percent_occupation=50)
    month.stages["Soldadura"] = StageOccupation(stage="Soldadura", percent_occupation=120)
    month.stages["Pintura"] = StageOccupation(stage="Pintura", percent_occupation=0)

    snapshot = workload_from_occupation(month)

    assert snapshot == {"Corte": 0.5, "Soldadura": 0.95, "Pintura": 0.0}
