# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Awaitable, Callable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from spendsmart.core.config import settings

if TYPE_CHECKING:
    from spendsmart.services.sessions import SessionRegistry

log = logging.getLogger(__name__)


class UndoScheduler:
    """
    Окно undo как отменяемая date-задача APScheduler.
    key = id задачи, поэтому явный undo снимает её детерминированно.
    """

    def __init__(self, scheduler: AsyncIOScheduler):
        self._scheduler = scheduler

    def schedule(self, key: str, delay: float, func: Callable[[], Awaitable[None]]) -> None:
        run_at = datetime.now(self._scheduler.timezone) + timedelta(seconds=delay)
        self._scheduler.add_job(
            func,
            "date",
            run_date=run_at,
            id=key,
            replace_existing=True,
            misfire_grace_time=None,  # опоздали, всё равно выполняем
        )

    def cancel(self, key: str) -> bool:
        try:
            self._scheduler.remove_job(key)
        except JobLookupError:
            return False
        return True


def build_scheduler() -> AsyncIOScheduler:
    return AsyncIOScheduler(timezone=settings.tz)


def start_scheduler(scheduler: AsyncIOScheduler, sessions: "SessionRegistry") -> AsyncIOScheduler:
    @scheduler.scheduled_job("interval", minutes=settings.due_scan_minutes, id="recurring_tick")
    async def tick_recurring() -> None:
        executed = await sessions.process_all_due()
        if executed:
            log.info("recurring executed=%s", executed)

    scheduler.start()
    log.info("Scheduler started")
    return scheduler
