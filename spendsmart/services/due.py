# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date

from spendsmart.services.errors import SchedulerError
from spendsmart.services.mutations import MutationEngine
from spendsmart.services.recurrence import classify, is_due, is_exhausted

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class DueItemResult:
    obligation_id: int
    name: str
    ok: bool
    posting_id: int | None = None
    error: SchedulerError | None = None


@dataclass
class DueRunResult:
    executed_count: int = 0
    skipped_count: int = 0
    results: list[DueItemResult] = field(default_factory=list)

    @property
    def failures(self) -> list[DueItemResult]:
        return [r for r in self.results if not r.ok]


class DueProcessor:
    """
    Проходит по просроченным/сегодняшним активным обязательствам и оплачивает каждое.
    За один вызов каждое обязательство сдвигается максимум на один шаг: если платёж
    висел три месяца, догонять будем тремя запусками, а не одним циклом.
    """

    def __init__(self, engine: MutationEngine):
        self._engine = engine

    async def process_due(self, today: date | None = None) -> DueRunResult:
        today = today or self._engine.today()
        store = self._engine.store
        # список снимаем один раз: новые даты после оплаты в этом проходе уже не смотрим
        due = [
            o for o in store.due_on_or_before(today)
            if is_due(classify(o.next_occurrence, today))
        ]
        result = DueRunResult()

        for ob in due:
            if self._engine.is_busy(ob.id):
                result.skipped_count += 1
                log.info("recurring_skip_busy id=%s", ob.id)
                continue
            # пока ждали предыдущий платёж, запись могли оплатить, удалить или поставить на паузу
            current = store.by_id(ob.id)
            if (
                current is None
                or not current.is_active
                or is_exhausted(current)
                or not is_due(classify(current.next_occurrence, today))
            ):
                result.skipped_count += 1
                log.info("recurring_skip_stale id=%s", ob.id)
                continue
            try:
                paid = await self._engine.pay(ob.id, today)
            except SchedulerError as e:
                result.skipped_count += 1
                result.results.append(DueItemResult(ob.id, ob.name, False, error=e))
                log.warning('recurring_failed id=%s err="%s"', ob.id, e)
                continue
            result.executed_count += 1
            result.results.append(DueItemResult(ob.id, ob.name, True, posting_id=paid.posting_id))
            log.info("recurring_paid id=%s posting=%s next=%s", ob.id, paid.posting_id,
                     paid.obligation.next_occurrence)

        if result.executed_count:
            log.info("Successfully processed %s recurring obligations", result.executed_count)
        return result

    async def execute_due(self, today: date | None = None) -> dict:
        """Тонкий прокси в форме REST-ответа бэкенда: {executed_count, message}."""
        run = await self.process_due(today)
        return {
            "executed_count": run.executed_count,
            "message": f"Processed {run.executed_count} recurring transactions",
        }
