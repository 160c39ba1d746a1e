# spendsmart/services/recurrence.py
# Календарная арифметика и классификация "когда платить". Только чистые функции.

from __future__ import annotations

import calendar
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum

from spendsmart.models.obligation import Frequency, Kind, Obligation
from spendsmart.services.errors import ValidationError

DUE_SOON_DAYS = 7
UPCOMING_DAYS = 30

_MONTHS = {
    Frequency.MONTHLY: 1,
    Frequency.QUARTERLY: 3,
    Frequency.YEARLY: 12,
}


class DueState(str, Enum):
    OVERDUE = "overdue"
    DUE_TODAY = "due_today"
    DUE_SOON = "due_soon"
    UPCOMING = "upcoming"
    FUTURE = "future"


def _resolve_dom(target_day: int, y: int, m: int) -> int:
    """День месяца, прижатый к длине месяца (31 -> 28/29/30)."""
    return min(target_day, calendar.monthrange(y, m)[1])


def add_months(d: date, n: int, anchor_day: int | None = None) -> date:
    month = d.month - 1 + n
    year = d.year + month // 12
    month = month % 12 + 1
    day = _resolve_dom(anchor_day or d.day, year, month)
    return date(year, month, day)


def advance(d: date, frequency: Frequency | str, anchor_day: int | None = None) -> date:
    """
    Следующая дата по частоте. Месяцы прижимаются к концу месяца:
    2024-01-31 + месяц = 2024-02-29. anchor_day (обычно start_date.day)
    возвращает исходный день, когда месяц позволяет: 2024-02-29 (31) -> 2024-03-31.
    """
    try:
        frequency = Frequency(frequency)
    except ValueError:
        raise ValidationError(f"Неизвестная частота: {frequency}")

    if frequency is Frequency.WEEKLY:
        return d + timedelta(days=7)
    return add_months(d, _MONTHS[frequency], anchor_day)


def days_until(next_occurrence: date, today: date) -> int:
    return (next_occurrence - today).days


def classify(next_occurrence: date, today: date) -> DueState:
    n = days_until(next_occurrence, today)
    if n < 0:
        return DueState.OVERDUE
    if n == 0:
        return DueState.DUE_TODAY
    if n <= DUE_SOON_DAYS:
        return DueState.DUE_SOON
    if n <= UPCOMING_DAYS:
        return DueState.UPCOMING
    return DueState.FUTURE


def is_due(state: DueState) -> bool:
    return state in (DueState.OVERDUE, DueState.DUE_TODAY)


def is_exhausted(ob: Obligation) -> bool:
    # после end_date обязательство больше не планируется
    return ob.end_date is not None and ob.next_occurrence > ob.end_date


def next_for(ob: Obligation) -> date:
    return advance(ob.next_occurrence, ob.frequency, anchor_day=ob.start_date.day)


def needs_reminder(ob: Obligation, today: date) -> bool:
    if ob.kind is not Kind.EXPENSE or ob.reminder_days is None:
        return False
    if not ob.is_active or is_exhausted(ob):
        return False
    return 0 <= days_until(ob.next_occurrence, today) <= ob.reminder_days


_PER_MONTH = {
    Frequency.WEEKLY: Decimal(52) / Decimal(12),
    Frequency.MONTHLY: Decimal(1),
    Frequency.QUARTERLY: Decimal(1) / Decimal(3),
    Frequency.YEARLY: Decimal(1) / Decimal(12),
}


def monthly_equivalent(amount: Decimal, frequency: Frequency) -> Decimal:
    return (amount * _PER_MONTH[Frequency(frequency)]).quantize(Decimal("0.01"))
