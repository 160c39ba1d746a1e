# -*- coding: utf-8 -*-
from __future__ import annotations
from datetime import date
from decimal import Decimal
import html

from spendsmart.models.obligation import Kind, Obligation
from spendsmart.services.due import DueRunResult
from spendsmart.services.errors import PartialCompositeFailure, SchedulerError
from spendsmart.services.recurrence import DueState, classify, days_until, is_exhausted, needs_reminder
from spendsmart.services.store import StoreSummary

FREQ_LABELS = {
    "weekly": "раз в неделю",
    "monthly": "раз в месяц",
    "quarterly": "раз в квартал",
    "yearly": "раз в год",
}


def money(amount: Decimal, kind: Kind) -> str:
    sign = "+" if kind is Kind.INCOME else "-"
    return f"{sign}{amount:.2f}"


def due_badge(ob: Obligation, today: date) -> str:
    if not ob.is_active:
        return "⏸ пауза"
    if is_exhausted(ob):
        return "🏁 завершено"
    n = days_until(ob.next_occurrence, today)
    state = classify(ob.next_occurrence, today)
    if state is DueState.OVERDUE:
        return f"🔴 просрочено на {-n} дн."
    if state is DueState.DUE_TODAY:
        return "🟠 сегодня"
    if state is DueState.DUE_SOON:
        return f"🟡 через {n} дн."
    return f"через {n} дн."


def obligation_line(ob: Obligation, today: date) -> str:
    bell = " 🔔" if needs_reminder(ob, today) else ""
    return (
        f"#{ob.id} <b>{html.escape(ob.name)}</b> | {money(ob.amount, ob.kind)} {html.escape(ob.category)}"
        f" | {ob.next_occurrence.isoformat()} ({due_badge(ob, today)}){bell}"
    )


def obligation_card(ob: Obligation, today: date) -> str:
    lines = [
        f"♻️ <b>{html.escape(ob.name)}</b> #{ob.id}",
        f"Сумма: {money(ob.amount, ob.kind)} ({html.escape(ob.category)})",
        f"Частота: {FREQ_LABELS.get(ob.frequency.value, ob.frequency.value)}",
        f"Следующая дата: {ob.next_occurrence.isoformat()} — {due_badge(ob, today)}",
        f"Период: с {ob.start_date.isoformat()}" + (f" по {ob.end_date.isoformat()}" if ob.end_date else ""),
        f"Проведено раз: {ob.execution_count}"
        + (f", последний {ob.last_executed.isoformat()}" if ob.last_executed else ""),
    ]
    if ob.description:
        lines.append(html.escape(ob.description))
    return "\n".join(lines)


def summary_text(s: StoreSummary) -> str:
    return (
        f"Активных: <b>{s.active}</b> (на паузе {s.inactive}) | к оплате: <b>{s.due}</b>\n"
        f"В месяц: доходы +{s.monthly_income:.2f}, расходы -{s.monthly_expense:.2f}"
    )


def error_text(e: SchedulerError) -> str:
    # в тексте ошибок бывают названия от пользователя
    text = html.escape(str(e))
    if isinstance(e, PartialCompositeFailure):
        return f"❗ {text}. Проверь проводку #{e.posting_id} вручную."
    return f"⚠️ {text}"


def due_run_text(run: DueRunResult) -> str:
    lines = [f"✅ Проведено: <b>{run.executed_count}</b>"]
    if run.skipped_count:
        lines.append(f"⏭ Пропущено: {run.skipped_count}")
    for r in run.failures:
        lines.append(f"• #{r.obligation_id} {html.escape(r.name)}: {error_text(r.error)}")
    return "\n".join(lines)
