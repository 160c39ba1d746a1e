# spendsmart/services/sessions.py
# Сессия пользователя = хранилище + движок + обработчик "к оплате".
# Данные грузим из базы один раз при открытии, дальше все изменения идут через движок.

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Awaitable, Callable
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from spendsmart.core.config import settings
from spendsmart.core.db import session_scope
from spendsmart.models.obligation import Obligation
from spendsmart.repo.users import get_or_create_user, list_telegram_ids
from spendsmart.services.due import DueProcessor
from spendsmart.services.errors import SchedulerError
from spendsmart.services.mutations import MutationEngine
from spendsmart.services.persistence import SqlLedgerStore, SqlObligationPersistence
from spendsmart.services.ports import LedgerStore, ObligationPersistence, TaskScheduler
from spendsmart.services.store import ObligationStore

log = logging.getLogger(__name__)

Notifier = Callable[[int, str], Awaitable[None]]


def local_today() -> date:
    return datetime.now(ZoneInfo(settings.tz)).date()


@dataclass
class ObligationSession:
    tg_id: int
    store: ObligationStore
    engine: MutationEngine
    processor: DueProcessor

    @classmethod
    async def open(
        cls,
        tg_id: int,
        persistence: ObligationPersistence,
        ledger: LedgerStore,
        scheduler: TaskScheduler,
        *,
        undo_seconds: float = 5.0,
        today: Callable[[], date] = local_today,
        on_error=None,
    ) -> "ObligationSession":
        store = ObligationStore(await persistence.list_obligations())
        engine = MutationEngine(
            store, persistence, ledger, scheduler,
            undo_seconds=undo_seconds, today=today, on_error=on_error, scope=str(tg_id),
        )
        return cls(tg_id=tg_id, store=store, engine=engine, processor=DueProcessor(engine))


class SessionRegistry:
    def __init__(
        self,
        scheduler: TaskScheduler,
        factory: async_sessionmaker[AsyncSession] | None = None,
        *,
        undo_seconds: float | None = None,
        today: Callable[[], date] = local_today,
        notify: Notifier | None = None,
    ):
        self._scheduler = scheduler
        self._factory = factory
        self._undo_seconds = settings.undo_seconds if undo_seconds is None else undo_seconds
        self._today = today
        self.notify = notify
        self._sessions: dict[int, ObligationSession] = {}
        self._lock = asyncio.Lock()

    async def get(self, tg_id: int, username: str | None = None) -> ObligationSession:
        sess = self._sessions.get(tg_id)
        if sess is not None:
            return sess
        async with self._lock:
            sess = self._sessions.get(tg_id)
            if sess is None:
                async with session_scope(self._factory) as s:
                    user = await get_or_create_user(s, tg_id, username)
                    user_id = user.id
                sess = await ObligationSession.open(
                    tg_id,
                    SqlObligationPersistence(user_id, self._factory),
                    SqlLedgerStore(user_id, self._factory),
                    self._scheduler,
                    undo_seconds=self._undo_seconds,
                    today=self._today,
                    on_error=self._error_reporter(tg_id),
                )
                self._sessions[tg_id] = sess
                log.info('session_opened tg_id=%s obligations=%s', tg_id, len(sess.store))
        return sess

    async def open_all(self) -> int:
        """Открыть сессии всех известных пользователей, чтобы плановый проход видел всех."""
        async with session_scope(self._factory) as s:
            tg_ids = await list_telegram_ids(s)
        for tg_id in tg_ids:
            await self.get(tg_id)
        return len(tg_ids)

    def _error_reporter(self, tg_id: int):
        async def report(err: SchedulerError, ob: Obligation) -> None:
            await self._notify(tg_id, f"⚠️ «{ob.name}»: {err}. Запись возвращена.")
        return report

    async def _notify(self, tg_id: int, text: str) -> None:
        if self.notify is None:
            return
        try:
            await self.notify(tg_id, text)
        except Exception:
            log.exception("notify_failed tg_id=%s", tg_id)

    async def process_all_due(self) -> int:
        total = 0
        for sess in list(self._sessions.values()):
            run = await sess.processor.process_due()
            total += run.executed_count
            if run.executed_count:
                await self._notify(sess.tg_id, f"♻️ Проведено по расписанию: {run.executed_count}")
        return total

    async def close(self) -> None:
        for sess in self._sessions.values():
            await sess.engine.flush()
