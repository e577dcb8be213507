from __future__ import annotations

import json
import logging
from datetime import date

from nicegui import ui

from fabplan.core.errors import EmptyInputError
from fabplan.core.feasibility import estimate_order
from fabplan.core.leadtime import select_critical_item
from fabplan.core.models import CalculatorLineItem
from fabplan.core.occupation import calculate_monthly_occupation, check_deadline_capacity
from fabplan.core.workdays import WORKING_WEEKDAYS, add_working_days
from fabplan.data.repository import WORKLOAD_SOURCES, Repository
from fabplan.ui.widgets import page_container, render_feasibility_result, render_nav


logger = logging.getLogger(__name__)

STATUS_LABELS = {"critical": "Crítico", "warning": "Alerta", "normal": "Normal", "low": "Bajo"}
DAY_LABELS = {"monday": "Lunes", "tuesday": "Martes", "wednesday": "Miércoles", "thursday": "Jueves", "friday": "Viernes"}


def register_pages(repo: Repository) -> None:
    def title() -> str:
        return repo.get_config(key="planta", default="Planificación de Producción") or "Planificación de Producción"

    @ui.page("/")
    def feasibility_page() -> None:
        render_nav(active="factibilidad", title=title())
        # Per-client state: line items live only in this page session.
        line_items: list[CalculatorLineItem] = []

        with page_container():
            ui.label("Calculadora de factibilidad").classes("text-2xl font-semibold")
            ui.label(
                "Agrega productos al pedido. Se analiza el producto de mayor plazo nominal contra la carga actual de cada etapa."
            ).classes("fp-subtitle")
            ui.separator()

            codes = [r["code"] for r in repo.get_products_rows()]
            with ui.row().classes("items-end gap-3"):
                product_sel = ui.select(codes, label="Producto").classes("w-64")
                qty_in = ui.number("Cantidad", value=1, min=1, step=1).classes("w-32")
                ui.button("Agregar", on_click=lambda: add_item()).props("unelevated color=primary")

            items_table = ui.table(
                columns=[
                    {"name": "product_id", "label": "Producto", "field": "product_id", "align": "left"},
                    {"name": "quantity", "label": "Cantidad", "field": "quantity"},
                    {"name": "stages", "label": "Etapas", "field": "stages", "align": "left"},
                    {"name": "lead_time", "label": "Plazo nominal (d)", "field": "lead_time"},
                ],
                rows=[],
                row_key="_row_id",
            ).classes("w-full fp-table").props("dense flat bordered")

            with ui.row().classes("items-end gap-3"):
                date_in = ui.input("Fecha solicitada (AAAA-MM-DD)", value=date.today().isoformat()).classes("w-64")
                ui.button("Calcular", on_click=lambda: run_estimate()).props("unelevated color=primary")
                ui.button("Limpiar", on_click=lambda: clear_items()).props("flat")

            result_box = ui.column().classes("w-full")

            def refresh_items() -> None:
                critical = select_critical_item(line_items) if line_items else None
                items_table.rows = [
                    {
                        "_row_id": f"{i}|{it.product_id}",
                        "product_id": it.product_id + (" ★" if it is critical else ""),
                        "quantity": it.quantity,
                        "stages": " → ".join(s.name for s in it.stages) or "(sin etapas)",
                        "lead_time": it.nominal_lead_time_days,
                    }
                    for i, it in enumerate(line_items)
                ]
                items_table.update()

            def add_item() -> None:
                try:
                    if not product_sel.value:
                        ui.notify("Selecciona un producto", color="warning")
                        return
                    line_items.append(repo.make_line_item(code=product_sel.value, quantity=int(qty_in.value or 1)))
                    refresh_items()
                except ValueError as ex:
                    ui.notify(str(ex), color="negative")

            def clear_items() -> None:
                line_items.clear()
                result_box.clear()
                refresh_items()

            def run_estimate() -> None:
                result_box.clear()
                try:
                    requested = date.fromisoformat(str(date_in.value or "").strip())
                except ValueError:
                    ui.notify("Fecha solicitada inválida", color="negative")
                    return
                try:
                    stage_names = [s.name for it in line_items for s in it.stages]
                    workload = repo.get_workload_snapshot(stage_names=stage_names)
                    result = estimate_order(line_items, workload, requested)
                    working = add_working_days(
                        date.today(), result.total_adjusted_lead_time_days, repo.get_company_calendar()
                    )
                except EmptyInputError as ex:
                    ui.notify(str(ex), color="warning")
                    return
                except Exception as ex:
                    logger.exception("Feasibility estimate failed")
                    ui.notify(f"Error calculando factibilidad: {ex}", color="negative")
                    return

                with result_box:
                    render_feasibility_result(result, working_date=working.strftime("%d/%m/%Y"))

    @ui.page("/ocupacion")
    def occupation_page() -> None:
        render_nav(active="ocupacion", title=title())
        capacity_kg = repo.get_float_config(key="monthly_capacity_kg", default=80000.0)
        warning_pct = repo.get_float_config(key="warning_threshold_pct", default=70.0)
        plannings = repo.get_stage_plannings()

        with page_container():
            ui.label("Tasa de ocupación por etapa").classes("text-2xl font-semibold")
            ui.label(
                f"Capacidad mensual: {capacity_kg / 1000:,.1f} t | Umbral de alerta: {warning_pct:g}%"
            ).classes("fp-subtitle")
            ui.separator()

            months = calculate_monthly_occupation(
                plannings, capacity_ton=capacity_kg / 1000, warning_threshold_pct=warning_pct
            )

            async def handle_upload(e):
                try:
                    content = await e.file.read()
                    n = repo.import_stage_planning_excel_bytes(content=content)
                    ui.notify(f"Importadas {n} filas de planificación")
                    ui.navigate.to("/ocupacion")
                except Exception as ex:
                    logger.exception("Stage planning import failed")
                    ui.notify(f"Error importando planificación: {ex}", color="negative")

            ui.label(
                "Importar planificación desde Excel (columnas: pedido, etapa, inicio, fin, peso_kg, item, cliente). Reemplaza la existente."
            ).classes("text-sm text-slate-600")
            ui.upload(label="Subir planificación (.xlsx)", on_upload=handle_upload).props("accept=.xlsx max-files=1")

            if not plannings:
                ui.label("Sin planificación de etapas cargada.").classes("text-gray-500")

            for month in months:
                with ui.expansion(
                    f"{month.month} - críticas: {month.count_by_status('critical')}, alertas: {month.count_by_status('warning')}",
                    value=month is months[0],
                ).classes("w-full"):
                    rows = [
                        {
                            "stage": occ.stage,
                            "tons": f"{occ.total_weight_kg / 1000:,.2f}",
                            "percent": f"{occ.percent_occupation}%",
                            "status": STATUS_LABELS.get(occ.status, occ.status),
                            "items": len(occ.items),
                        }
                        for occ in month.stages.values()
                    ]
                    ui.table(
                        columns=[
                            {"name": "stage", "label": "Etapa", "field": "stage", "align": "left"},
                            {"name": "tons", "label": "Toneladas", "field": "tons"},
                            {"name": "percent", "label": "Ocupación", "field": "percent"},
                            {"name": "status", "label": "Estado", "field": "status"},
                            {"name": "items", "label": "Ítems", "field": "items"},
                        ],
                        rows=rows,
                        row_key="stage",
                    ).classes("w-full fp-table").props("dense flat bordered")

            ui.separator()
            ui.label("Verificación rápida de plazo por capacidad").classes("text-lg font-semibold")
            with ui.row().classes("items-end gap-3"):
                weight_in = ui.number("Peso del pedido (kg)", value=None, min=0).classes("w-48")
                delivery_in = ui.input("Fecha de entrega (AAAA-MM-DD)").classes("w-64")
                out_label = ui.label("")

                def check() -> None:
                    try:
                        res = check_deadline_capacity(
                            plannings,
                            new_order_weight_kg=float(weight_in.value or 0),
                            delivery_date=date.fromisoformat(str(delivery_in.value or "").strip()),
                            monthly_capacity_kg=capacity_kg,
                        )
                    except ValueError as ex:
                        ui.notify(str(ex), color="negative")
                        return
                    if res.is_plausible:
                        out_label.text = "Plazo parece plausible dentro de la capacidad estimada."
                    else:
                        out_label.text = (
                            f"Plazo ajustado o inviable. Sobrecarga estimada de {res.overload_kg / 1000:,.2f} t en el período."
                        )

                ui.button("Verificar", on_click=check).props("unelevated color=primary")

    @ui.page("/productos")
    def products_page() -> None:
        render_nav(active="productos", title=title())
        with page_container():
            ui.label("Productos y plan de fabricación").classes("text-2xl font-semibold")
            ui.label("Cada producto tiene una secuencia de etapas con su duración nominal en días.").classes(
                "fp-subtitle"
            )
            ui.separator()

            ui.table(
                columns=[
                    {"name": "code", "label": "Código", "field": "code", "align": "left"},
                    {"name": "description", "label": "Descripción", "field": "description", "align": "left"},
                    {"name": "unit_weight_kg", "label": "Peso (kg)", "field": "unit_weight_kg"},
                    {"name": "stages", "label": "Etapas", "field": "stages", "align": "left"},
                    {"name": "lead_time_days", "label": "Plazo nominal (d)", "field": "lead_time_days"},
                ],
                rows=repo.get_products_rows(),
                row_key="code",
            ).classes("w-full fp-table").props("dense flat bordered")

            async def handle_upload(e):
                try:
                    content = await e.file.read()
                    n = repo.import_products_excel_bytes(content=content)
                    ui.notify(f"Importados {n} productos")
                    ui.navigate.to("/productos")
                except Exception as ex:
                    logger.exception("Product import failed")
                    ui.notify(f"Error importando productos: {ex}", color="negative")

            ui.label("Importar desde Excel (columnas: codigo, etapa, dias, descripcion, peso_unitario_kg)").classes(
                "text-sm text-slate-600"
            )
            ui.upload(label="Subir productos (.xlsx)", on_upload=handle_upload).props("accept=.xlsx max-files=1")

            ui.separator()
            ui.label("Etapas de fabricación").classes("text-lg font-semibold")
            with ui.row().classes("items-end gap-3"):
                stage_in = ui.input("Nueva etapa").classes("w-64")

                def add_stage() -> None:
                    try:
                        repo.add_stage(name=str(stage_in.value or ""))
                        ui.navigate.to("/productos")
                    except ValueError as ex:
                        ui.notify(str(ex), color="negative")

                ui.button("Agregar etapa", on_click=add_stage).props("unelevated color=primary")

            for name in repo.list_stages():
                with ui.row().classes("items-center gap-2"):
                    ui.label(name).classes("w-64")

                    def delete_stage(n: str = name) -> None:
                        try:
                            repo.delete_stage(name=n)
                            ui.navigate.to("/productos")
                        except ValueError as ex:
                            ui.notify(str(ex), color="negative")

                    ui.button(icon="delete", on_click=delete_stage).props("flat dense color=negative")

    @ui.page("/config")
    def config_page() -> None:
        render_nav(active="config", title=title())
        with page_container():
            ui.label("Parámetros").classes("text-2xl font-semibold")
            ui.separator()

            with ui.row().classes("items-end w-full gap-3"):
                planta_in = ui.input("Nombre de la planta", value=title()).classes("w-64")
                source_sel = ui.select(
                    list(WORKLOAD_SOURCES),
                    label="Fuente de carga",
                    value=repo.get_config(key="workload_source", default="simulado") or "simulado",
                ).classes("w-48")
                seed_in = ui.input("Semilla simulación", value=repo.get_config(key="workload_seed", default="") or "").classes(
                    "w-40"
                )
            with ui.row().classes("items-end w-full gap-3"):
                capacity_in = ui.number(
                    "Capacidad mensual (kg)", value=repo.get_float_config(key="monthly_capacity_kg", default=80000.0), min=1
                ).classes("w-56")
                warning_in = ui.number(
                    "Umbral de alerta (%)", value=repo.get_float_config(key="warning_threshold_pct", default=70.0), min=0
                ).classes("w-48")

            ui.label("Días hábiles").classes("text-lg font-semibold")
            ui.label("Sábado y domingo nunca son hábiles.").classes("text-sm text-slate-600")
            calendar = repo.get_company_calendar()
            with ui.row().classes("gap-3"):
                day_checks = {
                    day: ui.checkbox(DAY_LABELS[day], value=calendar.get(day, False)) for day in WORKING_WEEKDAYS
                }

            def save() -> None:
                try:
                    repo.set_config(key="planta", value=str(planta_in.value or ""))
                    repo.set_config(key="workload_source", value=str(source_sel.value or "simulado"))
                    repo.set_config(key="workload_seed", value=str(seed_in.value or ""))
                    repo.set_config(key="monthly_capacity_kg", value=str(capacity_in.value or 80000))
                    repo.set_config(key="warning_threshold_pct", value=str(warning_in.value or 70))
                    repo.set_config(
                        key="company_calendar",
                        value=json.dumps({day: bool(chk.value) for day, chk in day_checks.items()}),
                    )
                    ui.notify("Parámetros guardados")
                except ValueError as ex:
                    ui.notify(str(ex), color="negative")

            ui.button("Guardar", on_click=save).props("unelevated color=primary")
