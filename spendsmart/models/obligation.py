# spendsmart/models/obligation.py
# Доменные записи обязательств. Записи неизменяемые: любое изменение = новая запись
# через dataclasses.replace, поэтому снимок для отката это просто старый объект.

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping


class Kind(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class Frequency(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


@dataclass(frozen=True)
class Obligation:
    id: int
    name: str
    kind: Kind
    category: str
    amount: Decimal
    frequency: Frequency
    start_date: date
    next_occurrence: date
    end_date: date | None = None
    is_active: bool = True
    description: str = ""
    last_executed: date | None = None
    execution_count: int = 0
    reminder_days: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def with_changes(self, **changes: Any) -> "Obligation":
        return replace(self, **changes)


@dataclass(frozen=True)
class Contribution:
    """Локальная запись о проводке, сделанной по обязательству."""
    posting_id: int
    obligation_id: int
    amount: Decimal
    day: date


@dataclass(frozen=True)
class PostingView:
    id: int
    kind: Kind
    category: str
    amount: Decimal
    note: str
    day: date


# ── wire-формат (поля как в REST API бэкенда) ────────────────────────────────

WIRE_FIELDS = (
    "id", "name", "type", "category", "amount", "description", "frequency",
    "start_date", "end_date", "next_execution", "is_active", "last_executed",
    "created_at", "updated_at", "execution_count", "reminder_days",
)

# доменное имя -> имя в wire
_RENAMED = {
    "kind": "type",
    "next_occurrence": "next_execution",
}


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_date(raw: Any) -> date | None:
    if raw in (None, ""):
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    return date.fromisoformat(str(raw)[:10])


def _parse_datetime(raw: Any) -> datetime | None:
    if raw in (None, ""):
        return None
    if isinstance(raw, datetime):
        return raw
    return datetime.fromisoformat(str(raw))


def wire_name(field: str) -> str:
    return _RENAMED.get(field, field)


def wire_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def to_wire(ob: Obligation) -> dict[str, Any]:
    return {
        "id": ob.id,
        "name": ob.name,
        "type": ob.kind.value,
        "category": ob.category,
        "amount": str(ob.amount),
        "description": ob.description,
        "frequency": ob.frequency.value,
        "start_date": _iso(ob.start_date),
        "end_date": _iso(ob.end_date),
        "next_execution": _iso(ob.next_occurrence),
        "is_active": ob.is_active,
        "last_executed": _iso(ob.last_executed),
        "created_at": _iso(ob.created_at),
        "updated_at": _iso(ob.updated_at),
        "execution_count": ob.execution_count,
        "reminder_days": ob.reminder_days,
    }


def partial_to_wire(changes: Mapping[str, Any]) -> dict[str, Any]:
    """Частичное обновление в wire-именах: {"next_occurrence": d} -> {"next_execution": "..."}."""
    return {wire_name(k): wire_value(v) for k, v in changes.items()}


def from_wire(data: Mapping[str, Any]) -> Obligation:
    start = _parse_date(data["start_date"])
    return Obligation(
        id=int(data["id"]),
        name=str(data["name"]),
        kind=Kind(data["type"]),
        category=str(data.get("category") or ""),
        amount=Decimal(str(data["amount"])),
        frequency=Frequency(data["frequency"]),
        start_date=start,
        next_occurrence=_parse_date(data.get("next_execution")) or start,
        end_date=_parse_date(data.get("end_date")),
        is_active=bool(data.get("is_active", True)),
        description=str(data.get("description") or ""),
        last_executed=_parse_date(data.get("last_executed")),
        execution_count=int(data.get("execution_count") or 0),
        reminder_days=(int(data["reminder_days"]) if data.get("reminder_days") is not None else None),
        created_at=_parse_datetime(data.get("created_at")),
        updated_at=_parse_datetime(data.get("updated_at")),
    )
