from __future__ import annotations

from contextlib import contextmanager

from nicegui import ui

from fabplan.core.models import FeasibilityResult


_THEME_APPLIED = False


def apply_theme() -> None:
    """Apply a lightweight global theme."""
    ui.colors(
        primary="#2563eb",  # blue-600
        secondary="#0ea5e9",  # sky-500
        positive="#16a34a",  # green-600
        negative="#dc2626",  # red-600
        warning="#f59e0b",  # amber-500
    )

    ui.add_css(
        """
        body { background: #f8fafc; }
        .fp-container { max-width: 1200px; margin: 0 auto; padding: 16px; }
        .fp-subtitle { color: #475569; }
        .fp-header { border-bottom: 1px solid rgba(15, 23, 42, 0.08); }
        .fp-table table { width: 100%; table-layout: fixed; }
        .fp-table .q-table th, .fp-table .q-table td { padding: 6px 8px; }
        """
    )


def ensure_theme() -> None:
    """Apply theme once, but only when called from within a page context."""
    global _THEME_APPLIED
    if _THEME_APPLIED:
        return
    apply_theme()
    _THEME_APPLIED = True


@contextmanager
def page_container():
    with ui.element("div").classes("fp-container"):
        yield


def render_nav(active: str | None = None, *, title: str = "Planificación de Producción") -> None:
    ensure_theme()
    active_key = active or "factibilidad"
    sections: list[tuple[str, str, str]] = [
        ("factibilidad", "Factibilidad", "/"),
        ("ocupacion", "Ocupación", "/ocupacion"),
        ("productos", "Productos", "/productos"),
        ("config", "Config", "/config"),
    ]

    with ui.header().classes("fp-header bg-white text-slate-900"):
        with ui.row().classes("w-full items-center justify-between gap-4 px-4 py-2"):
            ui.label(title).classes("text-xl md:text-2xl font-semibold leading-none")
            with ui.row().classes("items-center gap-1"):
                for key, label, path in sections:
                    props = "dense no-caps color=primary" + (" unelevated" if key == active_key else " flat")
                    ui.button(label, on_click=lambda p=path: ui.navigate.to(p)).props(props)


def render_feasibility_result(result: FeasibilityResult, *, working_date: str | None = None) -> None:
    color = "text-green-700" if result.is_viable else "text-red-700"
    verdict = "Plazo viable" if result.is_viable else "Plazo inviable"
    with ui.card().classes("w-full"):
        with ui.row().classes("w-full items-center justify-between"):
            ui.label(verdict).classes(f"text-xl font-semibold {color}")
            ui.label(f"Confianza: {result.confidence}%").classes("text-lg")
        ui.label(
            f"Producto crítico: {result.critical_product_id} | "
            f"Plazo ajustado: {result.total_adjusted_lead_time_days} días | "
            f"Días hasta la fecha solicitada: {result.days_until_requested}"
        ).classes("fp-subtitle")
        suggested = f"Fecha sugerida: {result.suggested_date.strftime('%d/%m/%Y')}"
        if working_date:
            suggested += f" (días hábiles: {working_date})"
        ui.label(suggested).classes("text-sm")
        if result.bottlenecks:
            ui.label(f"Cuellos de botella: {', '.join(result.bottlenecks)}").classes("text-sm text-red-700")

        rows = [
            {
                "stage_name": a.stage_name,
                "original_duration": f"{a.original_duration:g}",
                "workload": f"{a.workload * 100:.0f}%",
                "adjustment_factor": f"{a.adjustment_factor:.2f}",
                "adjusted_duration": a.adjusted_duration,
                "bottleneck": "Sí" if a.bottleneck else "",
            }
            for a in result.analysis
        ]
        ui.table(
            columns=[
                {"name": "stage_name", "label": "Etapa", "field": "stage_name", "align": "left"},
                {"name": "original_duration", "label": "Días nominales", "field": "original_duration"},
                {"name": "workload", "label": "Carga", "field": "workload"},
                {"name": "adjustment_factor", "label": "Factor", "field": "adjustment_factor"},
                {"name": "adjusted_duration", "label": "Días ajustados", "field": "adjusted_duration"},
                {"name": "bottleneck", "label": "Cuello de botella", "field": "bottleneck"},
            ],
            rows=rows,
            row_key="stage_name",
        ).classes("w-full fp-table").props("dense flat bordered")
