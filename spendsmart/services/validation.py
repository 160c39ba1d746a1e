# spendsmart/services/validation.py
# Проверка формы создания/редактирования обязательства. Всё, что не прошло, в хранилище не попадает.

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from spendsmart.models.obligation import Frequency, Kind, Obligation
from spendsmart.services.errors import ValidationError

OTHER = "Other"

CATEGORIES: dict[Kind, tuple[str, ...]] = {
    Kind.EXPENSE: (
        "Rent", "Groceries", "Shopping", "Dining", "Transportation",
        "Entertainment", "Utilities", "Healthcare", OTHER,
    ),
    Kind.INCOME: ("Salary", "Freelance", "Investment", "Bonus", "Gift", OTHER),
}

# поля, которые можно менять редактированием
EDITABLE = frozenset({
    "name", "kind", "category", "amount", "description", "frequency",
    "start_date", "end_date", "next_occurrence", "is_active", "reminder_days",
})


def category_bucket(kind: Kind | str, category: str) -> str:
    """Известная категория как есть (без учёта регистра), иначе "Other". Никогда не отвергаем."""
    known = CATEGORIES.get(Kind(kind), ())
    needle = (category or "").strip().lower()
    for c in known:
        if c.lower() == needle:
            return c
    return OTHER


def parse_amount(raw: Any) -> Decimal:
    if isinstance(raw, bool):
        raise ValidationError("Сумма должна быть числом")
    try:
        value = Decimal(str(raw).strip().replace(",", "."))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Сумма должна быть числом: {raw!r}")
    if not value.is_finite() or value <= 0:
        raise ValidationError("Сумма должна быть больше нуля")
    return value.quantize(Decimal("0.01"))


def parse_day(raw: Any, field: str) -> date:
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    try:
        return date.fromisoformat(str(raw).strip())
    except ValueError:
        raise ValidationError(f"{field}: дата в формате YYYY-MM-DD")


def _days(raw: Any) -> int | None:
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError("Дни напоминания: целое число")


def _kind(raw: Any) -> Kind:
    try:
        return Kind(raw)
    except ValueError:
        raise ValidationError("Тип должен быть income или expense")


def _frequency(raw: Any) -> Frequency:
    try:
        return Frequency(raw)
    except ValueError:
        raise ValidationError("Частота: weekly, monthly, quarterly или yearly")


def _check(ob: Obligation) -> Obligation:
    if not ob.name.strip():
        raise ValidationError("Название не может быть пустым")
    if not ob.category.strip():
        raise ValidationError("Категория обязательна")
    if ob.amount <= 0:
        raise ValidationError("Сумма должна быть больше нуля")
    if ob.end_date is not None and ob.end_date < ob.start_date:
        raise ValidationError("Дата окончания раньше даты начала")
    if ob.next_occurrence < ob.start_date:
        raise ValidationError("Следующая дата не может быть раньше даты начала")
    if ob.reminder_days is not None:
        if ob.kind is not Kind.EXPENSE:
            raise ValidationError("Напоминание бывает только у расходов")
        if ob.reminder_days < 0:
            raise ValidationError("Дней до напоминания не может быть меньше нуля")
    return ob


def validate_new(
    *,
    name: str,
    kind: Kind | str,
    category: str,
    amount: Any,
    frequency: Frequency | str,
    start_date: Any,
    end_date: Any = None,
    description: str = "",
    reminder_days: int | None = None,
) -> Obligation:
    """Черновик для создания: id=0, next_occurrence = start_date. Id выдаёт движок."""
    start = parse_day(start_date, "start_date")
    ob = Obligation(
        id=0,
        name=(name or "").strip(),
        kind=_kind(kind),
        category=(category or "").strip(),
        amount=parse_amount(amount),
        frequency=_frequency(frequency),
        start_date=start,
        next_occurrence=start,
        end_date=parse_day(end_date, "end_date") if end_date not in (None, "") else None,
        description=(description or "").strip(),
        reminder_days=_days(reminder_days),
    )
    return _check(ob)


def apply_changes(current: Obligation, changes: Mapping[str, Any]) -> tuple[Obligation, dict[str, Any]]:
    """
    Возвращает (новая запись, нормализованные изменения). id менять нельзя.
    Если start_date сдвинули, а платежей ещё не было, курсор идёт следом.
    """
    if "id" in changes:
        raise ValidationError("id менять нельзя")
    unknown = set(changes) - EDITABLE
    if unknown:
        raise ValidationError(f"Неизвестные поля: {', '.join(sorted(unknown))}")

    norm: dict[str, Any] = {}
    for key, raw in changes.items():
        if key == "kind":
            norm[key] = _kind(raw)
        elif key == "frequency":
            norm[key] = _frequency(raw)
        elif key == "amount":
            norm[key] = parse_amount(raw)
        elif key in ("start_date", "next_occurrence"):
            norm[key] = parse_day(raw, key)
        elif key == "end_date":
            norm[key] = parse_day(raw, key) if raw not in (None, "") else None
        elif key in ("name", "category", "description"):
            norm[key] = (raw or "").strip()
        elif key == "is_active":
            norm[key] = bool(raw)
        elif key == "reminder_days":
            norm[key] = _days(raw)

    if (
        "start_date" in norm
        and "next_occurrence" not in norm
        and current.execution_count == 0
    ):
        norm["next_occurrence"] = norm["start_date"]

    return _check(current.with_changes(**norm)), norm
