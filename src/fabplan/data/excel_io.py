from __future__ import annotations

import io
import re
import unicodedata
from datetime import date, datetime

import pandas as pd


def read_excel_bytes(content: bytes) -> pd.DataFrame:
    """Read .xlsx bytes into a DataFrame (first sheet)."""
    bio = io.BytesIO(content)
    df = pd.read_excel(bio)
    df.columns = [str(c).strip() for c in df.columns]
    return df


def normalize_col_name(name: str) -> str:
    """Normalize Excel column names to an ASCII-ish snake_case token.

    Handles accents, non-breaking spaces, tabs, and punctuation.
    """

    s = str(name or "").strip().lower()
    s = unicodedata.normalize("NFKD", s)
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    s = s.replace("\u00a0", " ")
    s = re.sub(r"[\s\t]+", " ", s)
    # keep alnum + spaces, turn the rest into spaces
    s = re.sub(r"[^a-z0-9 ]+", " ", s)
    s = re.sub(r"\s+", "_", s).strip("_")
    return s


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df.columns = [normalize_col_name(c) for c in df.columns]
    return df


def is_blank(value) -> bool:
    if value is None or value is pd.NaT:
        return True
    if isinstance(value, float) and pd.isna(value):
        return True
    return str(value).strip() == "" or str(value).strip().lower() == "nan"


def coerce_str(value) -> str | None:
    """Cell -> stripped string; codes read as 123.0 come back as '123'."""
    if is_blank(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def coerce_float(value) -> float | None:
    """Coerce common Excel/Pandas numeric representations to float.

    Returns None when value is empty/NaN.
    Accepts numbers and strings (handles ',' as decimal separator).
    """
    if is_blank(value):
        return None

    if isinstance(value, (int, float)):
        return float(value)

    s = str(value).strip()

    # 1.234,56 -> 1234.56
    if "," in s and "." in s:
        s = s.replace(".", "").replace(",", ".")
    elif "," in s:
        s = s.replace(",", ".")

    try:
        return float(s)
    except ValueError:
        return None


def coerce_date(value, *, field: str = "fecha") -> date:
    """Coerce common Excel/Pandas date representations to a date."""
    if is_blank(value):
        raise ValueError(f"{field} vacía")

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    # pandas Timestamp
    if hasattr(value, "to_pydatetime"):
        return value.to_pydatetime().date()

    s = str(value).strip()
    try:
        return datetime.fromisoformat(s).date()
    except ValueError:
        pass

    for fmt in ("%d-%m-%Y", "%d/%m/%Y", "%Y/%m/%d"):
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue

    raise ValueError(f"{field} inválida: {value!r}")
