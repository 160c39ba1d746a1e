# spendsmart/services/store.py
# In-memory хранилище обязательств одной пользовательской сессии.
# Все мутаторы синхронные (без await), поэтому внутри одного event loop
# никто не увидит запись в промежуточном состоянии.

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable

from spendsmart.models.obligation import Contribution, Kind, Obligation
from spendsmart.services.errors import DuplicateError, NotFoundError
from spendsmart.services.recurrence import (
    days_until,
    is_exhausted,
    monthly_equivalent,
)
from spendsmart.services.validation import category_bucket


@dataclass(frozen=True)
class StoreSummary:
    active: int
    inactive: int
    due: int
    monthly_income: Decimal
    monthly_expense: Decimal


class ObligationStore:
    def __init__(self, records: Iterable[Obligation] = ()):
        self._items: dict[int, Obligation] = {}
        self._contributions: dict[int, list[Contribution]] = defaultdict(list)
        self.load(records)

    def load(self, records: Iterable[Obligation]) -> None:
        self._items = {r.id: r for r in records}
        self._contributions.clear()

    # ── представления ────────────────────────────────────────────────────────

    def all(self) -> list[Obligation]:
        return list(self._items.values())

    def by_id(self, obligation_id: int) -> Obligation | None:
        return self._items.get(obligation_id)

    def get(self, obligation_id: int) -> Obligation:
        ob = self._items.get(obligation_id)
        if ob is None:
            raise NotFoundError(obligation_id)
        return ob

    def __contains__(self, obligation_id: int) -> bool:
        return obligation_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def active(self) -> list[Obligation]:
        return [o for o in self._items.values() if o.is_active]

    def inactive(self) -> list[Obligation]:
        return [o for o in self._items.values() if not o.is_active]

    def of_kind(self, kind: Kind | str) -> list[Obligation]:
        kind = Kind(kind)
        return [o for o in self._items.values() if o.kind is kind]

    def due_on_or_before(self, day: date) -> list[Obligation]:
        due = [
            o for o in self.active()
            if not is_exhausted(o) and o.next_occurrence <= day
        ]
        return sorted(due, key=lambda o: (o.next_occurrence, o.id))

    def upcoming(self, today: date, days: int = 30, overdue_grace: int = 7) -> list[Obligation]:
        """Дашборд "ближайшие 30 дней": плюс до overdue_grace дней просрочки."""
        out = [
            o for o in self.active()
            if not is_exhausted(o)
            and -overdue_grace <= days_until(o.next_occurrence, today) <= days
        ]
        return sorted(out, key=lambda o: (o.next_occurrence, o.id))

    def by_category(self, kind: Kind | str) -> dict[str, Decimal]:
        """Месячный эквивалент по категориям; незнакомые категории идут в "Other"."""
        agg: dict[str, Decimal] = defaultdict(Decimal)
        for o in self.of_kind(kind):
            if o.is_active and not is_exhausted(o):
                agg[category_bucket(o.kind, o.category)] += monthly_equivalent(o.amount, o.frequency)
        return dict(sorted(agg.items()))

    def summary(self, today: date) -> StoreSummary:
        active = [o for o in self.active() if not is_exhausted(o)]
        inc = sum((monthly_equivalent(o.amount, o.frequency) for o in active if o.kind is Kind.INCOME), Decimal("0"))
        exp = sum((monthly_equivalent(o.amount, o.frequency) for o in active if o.kind is Kind.EXPENSE), Decimal("0"))
        return StoreSummary(
            active=len(self.active()),
            inactive=len(self.inactive()),
            due=len(self.due_on_or_before(today)),
            monthly_income=inc,
            monthly_expense=exp,
        )

    def contributions_for(self, obligation_id: int) -> list[Contribution]:
        return list(self._contributions.get(obligation_id, ()))

    def next_local_id(self) -> int:
        # временные id отрицательные: не пересекаются с id из базы
        return min(min(self._items, default=0), 0) - 1

    # ── мутаторы ─────────────────────────────────────────────────────────────

    def insert(self, ob: Obligation) -> None:
        if ob.id in self._items:
            raise DuplicateError(ob.id)
        self._items[ob.id] = ob

    def replace(self, ob: Obligation) -> Obligation:
        """Подменяет запись, возвращает предыдущую."""
        prev = self.get(ob.id)
        self._items[ob.id] = ob
        return prev

    def set_active(self, obligation_id: int, is_active: bool) -> Obligation:
        prev = self.get(obligation_id)
        self._items[obligation_id] = prev.with_changes(is_active=is_active)
        return prev

    def remove(self, obligation_id: int) -> tuple[Obligation, list[Contribution]]:
        """Удаляет запись вместе с её вкладами; возвращает всё удалённое для undo."""
        ob = self.get(obligation_id)
        del self._items[obligation_id]
        contribs = self._contributions.pop(obligation_id, [])
        return ob, list(contribs)

    def restore(self, ob: Obligation, contributions: Iterable[Contribution] = ()) -> None:
        self.insert(ob)
        contribs = list(contributions)
        if contribs:
            self._contributions[ob.id] = contribs

    def rekey(self, old_id: int, new_id: int) -> Obligation:
        """Локальный id -> id из хранилища. Порядок записей сохраняется."""
        if old_id == new_id:
            return self.get(old_id)
        if new_id in self._items:
            raise DuplicateError(new_id)
        ob = self.get(old_id)
        moved = ob.with_changes(id=new_id)
        self._items = {
            (new_id if k == old_id else k): (moved if k == old_id else v)
            for k, v in self._items.items()
        }
        if old_id in self._contributions:
            self._contributions[new_id] = [
                Contribution(c.posting_id, new_id, c.amount, c.day)
                for c in self._contributions.pop(old_id)
            ]
        return moved

    def add_contribution(self, contribution: Contribution) -> None:
        self.get(contribution.obligation_id)
        self._contributions[contribution.obligation_id].append(contribution)

