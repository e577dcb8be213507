from __future__ import annotations

import json
import logging
import random
from datetime import date

from fabplan.core.models import CalculatorLineItem, ProductPlanTemplate, ProductionStage, WorkloadSnapshot
from fabplan.core.occupation import StagePlanning, calculate_monthly_occupation
from fabplan.core.workdays import DEFAULT_CALENDAR, WEEKDAYS, CompanyCalendar, has_working_days
from fabplan.core.workload import simulate_workload, workload_from_occupation
from fabplan.data.db import Db
from fabplan.data.excel_io import coerce_date, coerce_float, coerce_str, normalize_columns, read_excel_bytes


logger = logging.getLogger(__name__)

WORKLOAD_SOURCES = ("simulado", "ocupacion")


class Repository:
    def __init__(self, db: Db):
        self.db = db

    # ---------- Config ----------
    def get_config(self, *, key: str, default: str | None = None) -> str | None:
        key = str(key).strip()
        if not key:
            raise ValueError("config key vacío")
        with self.db.connect() as con:
            row = con.execute("SELECT value FROM app_config WHERE key = ?", (key,)).fetchone()
        if row is None:
            return default
        return str(row[0])

    def set_config(self, *, key: str, value: str) -> None:
        key = str(key).strip()
        if not key:
            raise ValueError("config key vacío")
        value = str(value).strip()
        if key == "workload_source" and value not in WORKLOAD_SOURCES:
            raise ValueError(f"workload_source no soportado: {value!r}")
        if key == "workload_seed" and value and not value.lstrip("-").isdigit():
            raise ValueError(f"workload_seed debe ser entero: {value!r}")
        if key == "company_calendar":
            self._validate_calendar(value)
        with self.db.connect() as con:
            con.execute(
                "INSERT INTO app_config(key, value) VALUES(?, ?) ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                (key, value),
            )
        logger.info("Config updated: %s=%s", key, value)

    @staticmethod
    def _validate_calendar(value: str) -> None:
        try:
            data = json.loads(value)
        except json.JSONDecodeError as ex:
            raise ValueError(f"company_calendar no es JSON válido: {ex}") from ex
        if not isinstance(data, dict):
            raise ValueError("company_calendar debe ser un objeto día -> bool")
        if not has_working_days({day: bool(data.get(day, False)) for day in WEEKDAYS}):
            raise ValueError("El calendario no tiene días hábiles")

    def get_float_config(self, *, key: str, default: float) -> float:
        raw = self.get_config(key=key, default=None)
        value = coerce_float(raw)
        return default if value is None else value

    def get_company_calendar(self) -> CompanyCalendar:
        raw = self.get_config(key="company_calendar", default="") or ""
        if not raw.strip():
            return dict(DEFAULT_CALENDAR)
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Invalid company_calendar config, using default")
            return dict(DEFAULT_CALENDAR)
        calendar = {day: bool(data.get(day, False)) for day in WEEKDAYS} if isinstance(data, dict) else {}
        if not has_working_days(calendar):
            logger.warning("company_calendar has no working days, using default")
            return dict(DEFAULT_CALENDAR)
        return calendar

    # ---------- Stage catalog ----------
    def list_stages(self) -> list[str]:
        with self.db.connect() as con:
            rows = con.execute("SELECT name FROM stages ORDER BY name").fetchall()
        return [str(r[0]) for r in rows]

    def add_stage(self, *, name: str) -> None:
        name = str(name).strip()
        if not name:
            raise ValueError("nombre de etapa vacío")
        with self.db.connect() as con:
            con.execute("INSERT OR IGNORE INTO stages(name) VALUES(?)", (name,))

    def delete_stage(self, *, name: str) -> None:
        name = str(name).strip()
        with self.db.connect() as con:
            used = int(
                con.execute("SELECT COUNT(*) FROM product_stage WHERE stage_name = ?", (name,)).fetchone()[0]
            )
            if used:
                raise ValueError(f"La etapa {name!r} está en uso por {used} producto(s)")
            con.execute("DELETE FROM stages WHERE name = ?", (name,))

    # ---------- Products / plan templates ----------
    def upsert_product(
        self,
        *,
        code: str,
        description: str | None = None,
        unit_weight_kg: float | None = None,
        stages: list[tuple[str, float | None]] | None = None,
    ) -> None:
        """Create or replace a product and its ordered stage template."""
        code = str(code).strip()
        if not code:
            raise ValueError("código de producto vacío")

        if unit_weight_kg is not None and float(unit_weight_kg) < 0:
            raise ValueError("peso unitario no puede ser negativo")

        rows: list[tuple[str, int, str, float | None]] = []
        seen: set[str] = set()
        for seq, (stage_name, days) in enumerate(stages or []):
            stage_name = str(stage_name).strip()
            if not stage_name:
                raise ValueError("nombre de etapa vacío")
            if stage_name in seen:
                raise ValueError(f"etapa repetida en {code}: {stage_name!r}")
            seen.add(stage_name)
            if days is not None and float(days) < 0:
                raise ValueError(f"duración de {stage_name!r} no puede ser negativa")
            rows.append((code, seq, stage_name, None if days is None else float(days)))

        with self.db.connect() as con:
            con.execute(
                "INSERT INTO products(code, description, unit_weight_kg) VALUES(?, ?, ?) "
                "ON CONFLICT(code) DO UPDATE SET description=excluded.description, unit_weight_kg=excluded.unit_weight_kg",
                (code, description, None if unit_weight_kg is None else float(unit_weight_kg)),
            )
            con.execute("DELETE FROM product_stage WHERE product_code = ?", (code,))
            con.executemany("INSERT OR IGNORE INTO stages(name) VALUES(?)", [(r[2],) for r in rows])
            con.executemany(
                "INSERT INTO product_stage(product_code, seq, stage_name, duration_days) VALUES(?, ?, ?, ?)",
                rows,
            )

    def delete_product(self, *, code: str) -> None:
        with self.db.connect() as con:
            con.execute("DELETE FROM products WHERE code = ?", (str(code).strip(),))

    def get_products_rows(self) -> list[dict]:
        """Products with their stage chain and nominal lead time, for UI tables."""
        out: list[dict] = []
        for template in self.get_plan_templates():
            item = CalculatorLineItem.from_template(template)
            out.append(
                {
                    "code": template.product_id,
                    "description": template.description or "",
                    "unit_weight_kg": template.unit_weight_kg,
                    "stages": " → ".join(template.stage_names),
                    "lead_time_days": item.nominal_lead_time_days,
                }
            )
        return out

    def get_plan_templates(self) -> list[ProductPlanTemplate]:
        with self.db.connect() as con:
            products = con.execute("SELECT code, description, unit_weight_kg FROM products ORDER BY code").fetchall()
            stage_rows = con.execute(
                "SELECT product_code, stage_name, duration_days FROM product_stage ORDER BY product_code, seq"
            ).fetchall()

        by_code: dict[str, list[ProductionStage]] = {}
        for r in stage_rows:
            by_code.setdefault(str(r["product_code"]), []).append(
                ProductionStage(name=str(r["stage_name"]), nominal_duration_days=r["duration_days"])
            )
        return [
            ProductPlanTemplate(
                product_id=str(p["code"]),
                stages=tuple(by_code.get(str(p["code"]), [])),
                description=p["description"],
                unit_weight_kg=p["unit_weight_kg"],
            )
            for p in products
        ]

    def get_plan_template(self, *, code: str) -> ProductPlanTemplate:
        code = str(code).strip()
        with self.db.connect() as con:
            p = con.execute("SELECT code, description, unit_weight_kg FROM products WHERE code = ?", (code,)).fetchone()
            if p is None:
                raise ValueError(f"No existe el producto {code!r}")
            rows = con.execute(
                "SELECT stage_name, duration_days FROM product_stage WHERE product_code = ? ORDER BY seq",
                (code,),
            ).fetchall()
        return ProductPlanTemplate(
            product_id=str(p["code"]),
            stages=tuple(ProductionStage(name=str(r["stage_name"]), nominal_duration_days=r["duration_days"]) for r in rows),
            description=p["description"],
            unit_weight_kg=p["unit_weight_kg"],
        )

    def make_line_item(self, *, code: str, quantity: int = 1) -> CalculatorLineItem:
        return CalculatorLineItem.from_template(self.get_plan_template(code=code), int(quantity))

    def import_products_excel_bytes(self, *, content: bytes) -> int:
        """Import plan templates: one row per (product, stage), row order = stage order.

        Columns: codigo, etapa, and optionally descripcion, peso_unitario_kg, dias.
        """
        df = normalize_columns(read_excel_bytes(content))
        required = {"codigo", "etapa"}
        missing = required - set(df.columns)
        if missing:
            raise ValueError(f"Faltan columnas {sorted(missing)}. Columnas encontradas: {list(df.columns)}")

        products: dict[str, dict] = {}
        for _, row in df.iterrows():
            code = coerce_str(row.get("codigo"))
            stage = coerce_str(row.get("etapa"))
            if not code or not stage:
                continue
            entry = products.setdefault(code, {"description": None, "unit_weight_kg": None, "stages": []})
            entry["description"] = entry["description"] or coerce_str(row.get("descripcion"))
            if entry["unit_weight_kg"] is None:
                entry["unit_weight_kg"] = coerce_float(row.get("peso_unitario_kg"))
            entry["stages"].append((stage, coerce_float(row.get("dias"))))

        for code, entry in products.items():
            self.upsert_product(code=code, **entry)

        logger.info("Imported %d product plan templates from Excel", len(products))
        return len(products)

    # ---------- Stage planning of existing orders ----------
    def add_stage_planning(self, planning: StagePlanning) -> None:
        if planning.end_date < planning.start_date:
            raise ValueError("fecha de término anterior a fecha de inicio")
        with self.db.connect() as con:
            con.execute(
                """
                INSERT INTO stage_planning(order_number, item_code, customer, stage_name, start_date, end_date, weight_kg)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    planning.order_number,
                    planning.item_code,
                    planning.customer,
                    planning.stage,
                    planning.start_date.isoformat(),
                    planning.end_date.isoformat(),
                    float(planning.weight_kg),
                ),
            )

    def clear_stage_planning(self) -> None:
        with self.db.connect() as con:
            con.execute("DELETE FROM stage_planning")

    def import_stage_planning_excel_bytes(self, *, content: bytes, mode: str = "replace") -> int:
        """Import stage planning of existing orders, one row per (order item, stage).

        Columns: pedido, etapa, inicio, fin, peso_kg, and optionally item, cliente.

        Modes:
        - replace: clears the whole stage_planning table, then inserts rows
        - append: keeps existing rows
        """
        mode = str(mode or "replace").strip().lower()
        if mode not in {"replace", "append"}:
            raise ValueError(f"mode no soportado: {mode}")

        df = normalize_columns(read_excel_bytes(content))
        required = {"pedido", "etapa", "inicio", "fin", "peso_kg"}
        missing = required - set(df.columns)
        if missing:
            raise ValueError(f"Faltan columnas {sorted(missing)}. Columnas encontradas: {list(df.columns)}")

        plannings: list[StagePlanning] = []
        for idx, row in df.iterrows():
            order_number = coerce_str(row.get("pedido"))
            stage = coerce_str(row.get("etapa"))
            if not order_number or not stage:
                continue
            line = int(idx) + 2  # header is row 1
            try:
                start = coerce_date(row.get("inicio"), field="inicio")
                end = coerce_date(row.get("fin"), field="fin")
            except ValueError as ex:
                raise ValueError(f"Fila {line}: {ex}") from ex
            if end < start:
                raise ValueError(f"Fila {line}: fecha de término anterior a fecha de inicio")
            weight = coerce_float(row.get("peso_kg"))
            if weight is None or weight < 0:
                raise ValueError(f"Fila {line}: peso_kg inválido")
            plannings.append(
                StagePlanning(
                    order_number=order_number,
                    item_code=coerce_str(row.get("item")) or order_number,
                    stage=stage,
                    start_date=start,
                    end_date=end,
                    weight_kg=weight,
                    customer=coerce_str(row.get("cliente")),
                )
            )

        with self.db.connect() as con:
            if mode == "replace":
                con.execute("DELETE FROM stage_planning")
            con.executemany(
                """
                INSERT INTO stage_planning(order_number, item_code, customer, stage_name, start_date, end_date, weight_kg)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        p.order_number,
                        p.item_code,
                        p.customer,
                        p.stage,
                        p.start_date.isoformat(),
                        p.end_date.isoformat(),
                        float(p.weight_kg),
                    )
                    for p in plannings
                ],
            )

        logger.info("Imported %d stage planning rows from Excel (mode=%s)", len(plannings), mode)
        return len(plannings)

    def get_stage_plannings(self) -> list[StagePlanning]:
        with self.db.connect() as con:
            rows = con.execute("SELECT * FROM stage_planning ORDER BY id").fetchall()
        return [
            StagePlanning(
                order_number=str(r["order_number"]),
                item_code=str(r["item_code"]),
                stage=str(r["stage_name"]),
                start_date=date.fromisoformat(r["start_date"]),
                end_date=date.fromisoformat(r["end_date"]),
                weight_kg=float(r["weight_kg"] or 0),
                customer=r["customer"],
            )
            for r in rows
        ]

    # ---------- Workload ----------
    def get_workload_snapshot(self, *, stage_names: list[str], today: date | None = None) -> WorkloadSnapshot:
        """Workload for the estimator, from the configured source.

        'simulado': seeded random placeholder. 'ocupacion': current month of
        planned stage occupation; stages without planning load count as 0.
        """
        source = (self.get_config(key="workload_source", default="simulado") or "simulado").strip()
        if source == "ocupacion":
            months = calculate_monthly_occupation(
                self.get_stage_plannings(),
                today=today,
                months_ahead=0,
                capacity_ton=self.get_float_config(key="monthly_capacity_kg", default=80000.0) / 1000,
                warning_threshold_pct=self.get_float_config(key="warning_threshold_pct", default=70.0),
            )
            derived = workload_from_occupation(months[0])
            return {name: derived.get(name, 0.0) for name in stage_names}

        seed_raw = (self.get_config(key="workload_seed", default="") or "").strip()
        seed = int(seed_raw) if seed_raw else None
        return simulate_workload(stage_names, rng=random.Random(seed))
