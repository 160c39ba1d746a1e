# spendsmart/services/parser.py
# Разбор команды /recurring_add в черновик обязательства.

from __future__ import annotations

import re

from spendsmart.models.obligation import Obligation
from spendsmart.services.errors import ValidationError
from spendsmart.services.validation import validate_new

_SUM_RE = re.compile(r"^(?P<sign>[+\-])(?P<num>\d+(?:[.,]\d{1,2})?)$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_OPT_RE = re.compile(r"^(?P<key>end|remind)=(?P<val>\S+)$", re.IGNORECASE)

USAGE = (
    "/recurring_add <weekly|monthly|quarterly|yearly> <YYYY-MM-DD> <+|-><сумма> <Категория> <название> "
    "[end=YYYY-MM-DD] [remind=N]"
)


def parse_recurring_args(text: str) -> Obligation:
    """
    Формат (после команды):
      monthly 2024-01-31 -1200 Rent Квартира end=2024-12-31 remind=3
    Знак суммы определяет тип: + доход, - расход.
    """
    parts = (text or "").split()
    if parts and parts[0].startswith("/"):
        parts = parts[1:]

    opts: dict[str, str] = {}
    rest: list[str] = []
    for p in parts:
        m = _OPT_RE.match(p)
        if m:
            opts[m.group("key").lower()] = m.group("val")
        else:
            rest.append(p)

    if len(rest) < 5:
        raise ValidationError(f"Формат: {USAGE}")

    frequency, start, sum_token, category = rest[:4]
    name = " ".join(rest[4:])

    if not _DATE_RE.match(start):
        raise ValidationError("Дата начала в формате YYYY-MM-DD")
    m = _SUM_RE.match(sum_token)
    if not m:
        raise ValidationError("Сумма со знаком: +100 или -5.50")
    kind = "income" if m.group("sign") == "+" else "expense"

    remind = opts.get("remind")
    if remind is not None and not remind.isdigit():
        raise ValidationError("remind=N, где N целое число дней")

    return validate_new(
        name=name,
        kind=kind,
        category=category,
        amount=m.group("num"),
        frequency=frequency.lower(),
        start_date=start,
        end_date=opts.get("end"),
        reminder_days=int(remind) if remind is not None else None,
    )
