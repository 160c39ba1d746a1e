# spendsmart/services/mutations.py
# Оптимистичные изменения: сначала меняем локальное хранилище, потом пишем наружу.
# Упало сохранение -> откатываем снимок и поднимаем ошибку.
#
# Каждая операция это команда Mutation{apply, rollback, commit}. Движок держит
# множество id "в полёте": пока по id идёт операция, вторую не пускаем.

from __future__ import annotations

import asyncio
import logging
from functools import partial
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Mapping

from spendsmart.models.obligation import Contribution, Obligation
from spendsmart.services.errors import (
    ConfirmationRequired,
    ObligationBusy,
    PartialCompositeFailure,
    PersistenceFailure,
    SchedulerError,
    ValidationError,
)
from spendsmart.services.ports import LedgerStore, ObligationPersistence, TaskScheduler
from spendsmart.services.recurrence import is_exhausted, next_for
from spendsmart.services.store import ObligationStore
from spendsmart.services.validation import apply_changes

log = logging.getLogger(__name__)

ErrorCallback = Callable[[SchedulerError, Obligation], Awaitable[None]]


def posting_note(ob: Obligation) -> str:
    # как в бэкенде: "<заметка> (Auto: <название>)"
    return f"{ob.description} (Auto: {ob.name})".strip()


class Mutation:
    """Команда над одним обязательством."""

    stage = "update"

    def __init__(self, obligation_id: int):
        self.obligation_id = obligation_id

    def apply(self, store: ObligationStore) -> None:
        raise NotImplementedError

    def rollback(self, store: ObligationStore) -> None:
        raise NotImplementedError

    async def commit(self) -> None:
        raise NotImplementedError


class CreateMutation(Mutation):
    stage = "create"

    def __init__(self, record: Obligation, persistence: ObligationPersistence):
        super().__init__(record.id)
        self.record = record
        self.durable_id: int | None = None
        self._store: ObligationStore | None = None
        self._persistence = persistence

    def apply(self, store: ObligationStore) -> None:
        store.insert(self.record)
        self._store = store

    def rollback(self, store: ObligationStore) -> None:
        if self.obligation_id in store:
            store.remove(self.obligation_id)

    async def commit(self) -> None:
        new_id = await self._persistence.create_obligation(self.record)
        self.durable_id = int(new_id)
        self.record = self._store.rekey(self.obligation_id, self.durable_id)


class ReplaceMutation(Mutation):
    """Подмена записи целиком с частичным сохранением наружу."""

    def __init__(
        self,
        new: Obligation,
        changes: Mapping[str, Any],
        persistence: ObligationPersistence,
    ):
        super().__init__(new.id)
        self.new = new
        self.changes = dict(changes)
        self.snapshot: Obligation | None = None
        self._persistence = persistence

    def apply(self, store: ObligationStore) -> None:
        self.snapshot = store.replace(self.new)

    def rollback(self, store: ObligationStore) -> None:
        if self.snapshot is not None:
            store.replace(self.snapshot)

    async def commit(self) -> None:
        await self._persistence.update_obligation(self.obligation_id, self.changes)


class ToggleMutation(Mutation):
    stage = "toggle"

    def __init__(self, obligation_id: int, persistence: ObligationPersistence):
        super().__init__(obligation_id)
        self.snapshot: Obligation | None = None
        self.new: Obligation | None = None
        self._persistence = persistence

    def apply(self, store: ObligationStore) -> None:
        current = store.get(self.obligation_id)
        self.snapshot = store.set_active(self.obligation_id, not current.is_active)
        self.new = store.get(self.obligation_id)

    def rollback(self, store: ObligationStore) -> None:
        if self.snapshot is not None:
            store.replace(self.snapshot)

    async def commit(self) -> None:
        await self._persistence.toggle_obligation(self.obligation_id)


class SkipMutation(ReplaceMutation):
    stage = "schedule"


class PayMutation(ReplaceMutation):
    """
    Двухфазная оплата с компенсацией:
      1) проводка в журнале; 2) сдвиг расписания.
    Если (2) упала, удаляем проводку из (1). Не удалось удалить -> PartialCompositeFailure.
    """

    stage = "posting"

    def __init__(
        self,
        current: Obligation,
        new: Obligation,
        changes: Mapping[str, Any],
        persistence: ObligationPersistence,
        ledger: LedgerStore,
    ):
        super().__init__(new, changes, persistence)
        self.current = current
        self.posting_id: int | None = None
        self._ledger = ledger
        self._store: ObligationStore | None = None

    def apply(self, store: ObligationStore) -> None:
        super().apply(store)
        self._store = store

    async def commit(self) -> None:
        ob = self.current
        try:
            posting_id = await self._ledger.create_posting(
                ob.kind, ob.category, ob.amount, posting_note(ob), ob.next_occurrence
            )
        except Exception as e:
            raise PersistenceFailure("posting", e) from e

        try:
            await self._persistence.update_obligation(self.obligation_id, self.changes)
        except Exception as e:
            try:
                await self._ledger.delete_posting(posting_id)
            except Exception:
                log.exception(
                    'pay_compensation_failed obligation=%s posting=%s',
                    self.obligation_id, posting_id,
                )
                raise PartialCompositeFailure(self.obligation_id, posting_id, e) from e
            raise PersistenceFailure("schedule", e) from e

        self.posting_id = int(posting_id)
        self._store.add_contribution(
            Contribution(self.posting_id, self.obligation_id, ob.amount, ob.next_occurrence)
        )


@dataclass
class PendingDelete:
    record: Obligation
    contributions: list[Contribution] = field(default_factory=list)
    opened_at: datetime = field(default_factory=datetime.utcnow)


@dataclass(frozen=True)
class PayResult:
    obligation: Obligation
    posting_id: int


class MutationEngine:
    def __init__(
        self,
        store: ObligationStore,
        persistence: ObligationPersistence,
        ledger: LedgerStore,
        scheduler: TaskScheduler,
        *,
        undo_seconds: float = 5.0,
        on_error: ErrorCallback | None = None,
        today: Callable[[], date] = date.today,
        scope: str = "",
    ):
        self.store = store
        self._persistence = persistence
        self._ledger = ledger
        self._scheduler = scheduler
        self.undo_seconds = undo_seconds
        self.on_error = on_error
        self._today = today
        self._scope = scope
        self._in_flight: set[int] = set()
        self._pending: dict[int, PendingDelete] = {}

    # ── состояние ────────────────────────────────────────────────────────────

    @property
    def in_flight(self) -> frozenset[int]:
        return frozenset(self._in_flight)

    def is_busy(self, obligation_id: int) -> bool:
        return obligation_id in self._in_flight

    def pending_delete(self, obligation_id: int) -> PendingDelete | None:
        return self._pending.get(obligation_id)

    def today(self) -> date:
        return self._today()

    # ── ядро ─────────────────────────────────────────────────────────────────

    def _claim(self, obligation_id: int) -> None:
        if obligation_id in self._in_flight:
            raise ObligationBusy(obligation_id)

    async def run(self, mutation: Mutation) -> None:
        oid = mutation.obligation_id
        self._claim(oid)
        mutation.apply(self.store)
        self._in_flight.add(oid)
        try:
            await mutation.commit()
        except asyncio.CancelledError:
            mutation.rollback(self.store)
            raise
        except SchedulerError as e:
            mutation.rollback(self.store)
            log.warning('mutation_rolled_back id=%s stage=%s err="%s"', oid, mutation.stage, e)
            raise
        except Exception as e:
            mutation.rollback(self.store)
            log.warning('mutation_rolled_back id=%s stage=%s err="%s"', oid, mutation.stage, e)
            raise PersistenceFailure(mutation.stage, e) from e
        finally:
            self._in_flight.discard(oid)
        log.info('mutation_committed id=%s stage=%s', oid, mutation.stage)

    # ── операции ─────────────────────────────────────────────────────────────

    async def create(self, draft: Obligation) -> Obligation:
        """draft из validation.validate_new; id выдаём локальный, потом берём из хранилища."""
        now = datetime.utcnow().replace(microsecond=0)
        record = draft.with_changes(
            id=self.store.next_local_id(),
            next_occurrence=draft.start_date,
            execution_count=0,
            last_executed=None,
            created_at=now,
            updated_at=now,
        )
        m = CreateMutation(record, self._persistence)
        await self.run(m)
        return m.record

    async def update(self, obligation_id: int, **changes: Any) -> Obligation:
        self._claim(obligation_id)
        current = self.store.get(obligation_id)
        new, norm = apply_changes(current, changes)
        new = new.with_changes(updated_at=datetime.utcnow().replace(microsecond=0))
        await self.run(ReplaceMutation(new, norm, self._persistence))
        return new

    async def toggle(self, obligation_id: int) -> Obligation:
        self._claim(obligation_id)
        m = ToggleMutation(obligation_id, self._persistence)
        await self.run(m)
        return m.new

    def _advanceable(self, obligation_id: int) -> Obligation:
        self._claim(obligation_id)
        current = self.store.get(obligation_id)
        if not current.is_active:
            raise ValidationError(f"«{current.name}» на паузе")
        if is_exhausted(current):
            raise ValidationError(f"«{current.name}»: расписание закончилось")
        return current

    async def pay(self, obligation_id: int, today: date | None = None) -> PayResult:
        current = self._advanceable(obligation_id)
        today = today or self.today()
        changes = {
            "next_occurrence": next_for(current),
            "execution_count": current.execution_count + 1,
            "last_executed": today,
        }
        new = current.with_changes(**changes)
        m = PayMutation(current, new, changes, self._persistence, self._ledger)
        await self.run(m)
        return PayResult(obligation=new, posting_id=m.posting_id)

    async def skip(self, obligation_id: int, *, confirm: bool = False) -> Obligation:
        current = self._advanceable(obligation_id)
        if not confirm:
            raise ConfirmationRequired(f"Пропустить платёж «{current.name}» от {current.next_occurrence}?")
        changes = {"next_occurrence": next_for(current)}
        new = current.with_changes(**changes)
        await self.run(SkipMutation(new, changes, self._persistence))
        return new

    # ── удаление с окном undo ────────────────────────────────────────────────

    def _undo_key(self, obligation_id: int) -> str:
        return f"undo:{self._scope}:{obligation_id}"

    async def delete(self, obligation_id: int) -> PendingDelete:
        """
        Запись сразу пропадает из хранилища; удаление наружу уходит, когда окно undo
        закрылось. Пока окно открыто, id считается "в полёте".
        """
        self._claim(obligation_id)
        record, contribs = self.store.remove(obligation_id)
        pending = PendingDelete(record, contribs)
        self._pending[obligation_id] = pending
        self._in_flight.add(obligation_id)
        self._scheduler.schedule(
            self._undo_key(obligation_id),
            self.undo_seconds,
            partial(self._finalize_delete, obligation_id),
        )
        log.info('delete_pending id=%s undo_seconds=%s', obligation_id, self.undo_seconds)
        return pending

    def undo(self, obligation_id: int) -> bool:
        """True, если успели в окно. После окна ничего не делает."""
        pending = self._pending.pop(obligation_id, None)
        if pending is None:
            return False
        self._scheduler.cancel(self._undo_key(obligation_id))
        self.store.restore(pending.record, pending.contributions)
        self._in_flight.discard(obligation_id)
        log.info('delete_undone id=%s', obligation_id)
        return True

    async def _finalize_delete(self, obligation_id: int) -> None:
        pending = self._pending.pop(obligation_id, None)
        if pending is None:
            return
        try:
            await self._persistence.delete_obligation(obligation_id)
        except Exception as e:
            self.store.restore(pending.record, pending.contributions)
            err = PersistenceFailure("delete", e)
            log.warning('delete_rolled_back id=%s err="%s"', obligation_id, e)
            await self._report(err, pending.record)
        else:
            log.info('delete_committed id=%s', obligation_id)
        finally:
            self._in_flight.discard(obligation_id)

    async def flush(self) -> None:
        """Закрыть все открытые окна прямо сейчас (остановка бота)."""
        for oid in list(self._pending):
            self._scheduler.cancel(self._undo_key(oid))
            await self._finalize_delete(oid)

    async def _report(self, err: SchedulerError, ob: Obligation) -> None:
        if self.on_error is None:
            return
        try:
            await self.on_error(err, ob)
        except Exception:
            log.exception('error_callback_failed id=%s', ob.id)
