from datetime import date, datetime

import pandas as pd
import pytest

from fabplan.data.excel_io import coerce_date, coerce_float, coerce_str, is_blank, normalize_col_name


def test_normalize_col_name():
    assert normalize_col_name("Peso unitario (kg)") == "peso_unitario_kg"
    assert normalize_col_name("Código ") == "codigo"
    assert normalize_col_name("  Días\t") == "dias"


def test_coerce_float():
    assert coerce_float("1.234,56") == pytest.approx(1234.56)
    assert coerce_float("1,5") == 1.5
    assert coerce_float(3) == 3.0
    assert coerce_float("") is None
    assert coerce_float(float("nan")) is None
    assert coerce_float("abc") is None


def test_coerce_str():
    assert coerce_str(1001.0) == "1001"
    assert coerce_str("  P1 ") == "P1"
    assert coerce_str(None) is None
    assert coerce_str(float("nan")) is None


def test_coerce_date():
    assert coerce_date("2026-10-18") == date(2026, 10, 18)
    assert coerce_date("18/10/2026") == date(2026, 10, 18)
    assert coerce_date(datetime(2026, 10, 18, 8, 30)) == date(2026, 10, 18)
    assert coerce_date(pd.Timestamp("2026-10-18")) == date(2026, 10, 18)
    with pytest.raises(ValueError):
        coerce_date("mañana")
    with pytest.raises(ValueError):
        coerce_date(None)
    with pytest.raises(ValueError, match="fin vacía"):
        coerce_date(pd.NaT, field="fin")


def test_is_blank():
    assert is_blank(None)
    assert is_blank(float("nan"))
    assert is_blank(pd.NaT)
    assert is_blank("  ")
    assert not is_blank(0)
    assert not is_blank(date(2026, 1, 1))
