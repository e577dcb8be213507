from __future__ import annotations

import json
import sqlite3
from pathlib import Path

from fabplan.core.workdays import DEFAULT_CALENDAR


DEFAULT_CONFIG: dict[str, str] = {
    "planta": "Planta Metalúrgica",
    "workload_source": "simulado",
    "workload_seed": "",
    "monthly_capacity_kg": "80000",
    "warning_threshold_pct": "70",
    "company_calendar": json.dumps(DEFAULT_CALENDAR),
}


class Db:
    def __init__(self, path: Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def connect(self) -> sqlite3.Connection:
        con = sqlite3.connect(self.path)
        con.row_factory = sqlite3.Row
        con.execute("PRAGMA foreign_keys=ON;")
        return con

    def ensure_schema(self) -> None:
        with self.connect() as con:
            con.execute("PRAGMA journal_mode=WAL;")

            con.executescript(
                """
                CREATE TABLE IF NOT EXISTS app_config (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS stages (
                    name TEXT PRIMARY KEY
                );

                CREATE TABLE IF NOT EXISTS products (
                    code TEXT PRIMARY KEY,
                    description TEXT,
                    unit_weight_kg REAL
                );

                CREATE TABLE IF NOT EXISTS product_stage (
                    product_code TEXT NOT NULL REFERENCES products(code) ON DELETE CASCADE,
                    seq INTEGER NOT NULL,
                    stage_name TEXT NOT NULL,
                    duration_days REAL,
                    PRIMARY KEY (product_code, seq),
                    UNIQUE (product_code, stage_name)
                );

                CREATE TABLE IF NOT EXISTS stage_planning (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    order_number TEXT NOT NULL,
                    item_code TEXT NOT NULL,
                    customer TEXT,
                    stage_name TEXT NOT NULL,
                    start_date TEXT NOT NULL,
                    end_date TEXT NOT NULL,
                    weight_kg REAL NOT NULL DEFAULT 0
                );
                """
            )

            # Seed defaults only when missing so user edits survive restarts.
            con.executemany(
                "INSERT OR IGNORE INTO app_config(key, value) VALUES(?, ?)",
                list(DEFAULT_CONFIG.items()),
            )

            stages_count = int(con.execute("SELECT COUNT(*) FROM stages").fetchone()[0])
            if stages_count == 0:
                con.executemany(
                    "INSERT OR IGNORE INTO stages(name) VALUES(?)",
                    [("Corte",), ("Soldadura",), ("Mecanizado",), ("Pintura",), ("Montaje",)],
                )
