# spendsmart/services/persistence.py
# SQL-реализации внешних участников поверх async SQLAlchemy.
# Каждый вызов = своя транзакция (session_scope), всё привязано к одному пользователю.

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from spendsmart.core.db import session_scope
from spendsmart.models.obligation import Frequency, Kind, Obligation, PostingView, wire_name
from spendsmart.models.posting import Posting
from spendsmart.models.recurring import ObligationRow
from spendsmart.repo import records, recurring_ops
from spendsmart.services.errors import NotFoundError

# колонки, которые можно менять через update_obligation
_COLUMNS = frozenset({
    "name", "type", "category", "amount", "description", "frequency",
    "start_date", "end_date", "next_execution", "is_active", "last_executed",
    "execution_count", "reminder_days",
})


def row_to_obligation(row: ObligationRow) -> Obligation:
    return Obligation(
        id=row.id,
        name=row.name,
        kind=Kind(row.type),
        category=row.category,
        amount=Decimal(row.amount),
        frequency=Frequency(row.frequency),
        start_date=row.start_date,
        next_occurrence=row.next_execution,
        end_date=row.end_date,
        is_active=bool(row.is_active),
        description=row.description or "",
        last_executed=row.last_executed,
        execution_count=row.execution_count or 0,
        reminder_days=row.reminder_days,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _column_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def obligation_values(ob: Obligation) -> dict[str, Any]:
    return {
        "name": ob.name,
        "type": ob.kind.value,
        "category": ob.category,
        "amount": ob.amount,
        "description": ob.description,
        "frequency": ob.frequency.value,
        "start_date": ob.start_date,
        "end_date": ob.end_date,
        "next_execution": ob.next_occurrence,
        "is_active": ob.is_active,
        "last_executed": ob.last_executed,
        "execution_count": ob.execution_count,
        "reminder_days": ob.reminder_days,
    }


def partial_values(partial: Mapping[str, Any]) -> dict[str, Any]:
    out = {}
    for key, value in partial.items():
        col = wire_name(key)
        if col not in _COLUMNS:
            raise ValueError(f"unknown column: {key}")
        out[col] = _column_value(value)
    return out


class SqlObligationPersistence:
    def __init__(self, user_id: int, factory: async_sessionmaker[AsyncSession] | None = None):
        self.user_id = user_id
        self._factory = factory

    async def create_obligation(self, record: Obligation) -> int:
        async with session_scope(self._factory) as s:
            row = await recurring_ops.create_recurring(s, self.user_id, obligation_values(record))
            return row.id

    async def update_obligation(self, obligation_id: int, partial: Mapping[str, Any]) -> None:
        values = partial_values(partial)
        async with session_scope(self._factory) as s:
            if not await recurring_ops.update_recurring(s, obligation_id, self.user_id, values):
                raise NotFoundError(obligation_id)

    async def delete_obligation(self, obligation_id: int) -> None:
        async with session_scope(self._factory) as s:
            if not await recurring_ops.delete_recurring(s, obligation_id, self.user_id):
                raise NotFoundError(obligation_id)

    async def toggle_obligation(self, obligation_id: int) -> None:
        async with session_scope(self._factory) as s:
            if await recurring_ops.toggle_recurring(s, obligation_id, self.user_id) is None:
                raise NotFoundError(obligation_id)

    async def list_obligations(self) -> list[Obligation]:
        async with session_scope(self._factory) as s:
            rows = await recurring_ops.list_all_for_user(s, self.user_id)
            return [row_to_obligation(r) for r in rows]


def posting_view(p: Posting) -> PostingView:
    return PostingView(
        id=p.id,
        kind=Kind(p.type),
        category=p.category,
        amount=Decimal(p.amount),
        note=p.note or "",
        day=p.date,
    )


class SqlLedgerStore:
    def __init__(self, user_id: int, factory: async_sessionmaker[AsyncSession] | None = None):
        self.user_id = user_id
        self._factory = factory

    async def create_posting(
        self, kind: Kind, category: str, amount: Decimal, note: str, day: date
    ) -> int:
        async with session_scope(self._factory) as s:
            p = await records.add_posting(
                s, self.user_id, amount, category, note, Kind(kind).value, day
            )
            return p.id

    async def delete_posting(self, posting_id: int) -> None:
        async with session_scope(self._factory) as s:
            if not await records.delete_posting(s, self.user_id, posting_id):
                raise NotFoundError(posting_id)

    async def list_postings(self) -> list[PostingView]:
        async with session_scope(self._factory) as s:
            return [posting_view(p) for p in await records.list_postings(s, self.user_id)]
