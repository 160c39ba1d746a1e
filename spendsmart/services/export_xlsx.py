# spendsmart/services/export_xlsx.py
from __future__ import annotations
from datetime import date
from typing import Iterable
import os
import tempfile

import openpyxl
from openpyxl.utils import get_column_letter
from openpyxl.styles import Alignment, Font, numbers

from spendsmart.models.obligation import Kind, Obligation
from spendsmart.services.recurrence import classify, is_exhausted
from spendsmart.services.store import ObligationStore

_STATE_LABELS = {
    "overdue": "Просрочено",
    "due_today": "Сегодня",
    "due_soon": "На неделе",
    "upcoming": "В течение месяца",
    "future": "Позже",
}


def _auto_width(ws) -> None:
    widths = {}
    for row in ws.iter_rows():
        for cell in row:
            val = "" if cell.value is None else str(cell.value)
            widths[cell.column] = max(widths.get(cell.column, 0), len(val) + 1)
    for col, w in widths.items():
        ws.column_dimensions[get_column_letter(col)].width = min(w, 60)


def _format_money(cell) -> None:
    cell.number_format = numbers.FORMAT_NUMBER_00


def _title(ws, text: str, columns: int) -> None:
    ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=columns)
    c = ws.cell(row=1, column=1, value=text)
    c.font = Font(bold=True, size=14)
    c.alignment = Alignment(horizontal="center")


def _header(ws, headers: list[str]) -> None:
    ws.append(headers)
    for i in range(1, len(headers) + 1):
        ws.cell(row=2, column=i).font = Font(bold=True)


def _state_label(ob: Obligation, today: date) -> str:
    if not ob.is_active:
        return "Пауза"
    if is_exhausted(ob):
        return "Завершено"
    return _STATE_LABELS[classify(ob.next_occurrence, today).value]


def build_obligations_xlsx(obligations: Iterable[Obligation], today: date, user_label: str = "") -> str:
    obligations = list(obligations)
    wb = openpyxl.Workbook()
    ws1 = wb.active
    ws1.title = "Обязательства"

    headers = ["#", "Название", "Тип", "Сумма", "Категория", "Частота",
               "Следующая дата", "Статус", "Проведено раз"]
    _title(ws1, f"Регулярные платежи на {today.isoformat()} {user_label}".strip(), len(headers))
    _header(ws1, headers)

    for row_idx, o in enumerate(obligations, 3):
        ws1.cell(row=row_idx, column=1, value=o.id)
        ws1.cell(row=row_idx, column=2, value=o.name)
        ws1.cell(row=row_idx, column=3, value=("Расход" if o.kind is Kind.EXPENSE else "Доход"))
        _format_money(ws1.cell(row=row_idx, column=4, value=float(o.amount)))
        ws1.cell(row=row_idx, column=5, value=o.category)
        ws1.cell(row=row_idx, column=6, value=o.frequency.value)
        ws1.cell(row=row_idx, column=7, value=o.next_occurrence.isoformat())
        ws1.cell(row=row_idx, column=8, value=_state_label(o, today))
        ws1.cell(row=row_idx, column=9, value=o.execution_count)

    _auto_width(ws1)

    # Сводка: месячный эквивалент по категориям, знак: + доход, - расход
    ws2 = wb.create_sheet(title="Сводка")
    _title(ws2, "В месяц по категориям", 2)
    _header(ws2, ["Категория", "Сумма в месяц"])

    store = ObligationStore(obligations)
    row_idx = 3
    for kind, sign in ((Kind.INCOME, 1), (Kind.EXPENSE, -1)):
        for cat, val in store.by_category(kind).items():
            ws2.cell(row=row_idx, column=1, value=cat)
            _format_money(ws2.cell(row=row_idx, column=2, value=float(sign * val)))
            row_idx += 1

    _auto_width(ws2)

    # Сохраняем во временный файл
    fd, path = tempfile.mkstemp(prefix="recurring_export_", suffix=".xlsx")
    os.close(fd)
    wb.save(path)
    return path
