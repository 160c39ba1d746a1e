# spendsmart/services/ports.py
# Внешние участники: журнал проводок, хранилище обязательств, отложенные задачи.
# Любое исключение из них движок считает сбоем сохранения.

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Awaitable, Callable, Mapping, Protocol

from spendsmart.models.obligation import Kind, Obligation, PostingView


class LedgerStore(Protocol):
    async def create_posting(
        self, kind: Kind, category: str, amount: Decimal, note: str, day: date
    ) -> int: ...

    async def delete_posting(self, posting_id: int) -> None: ...

    async def list_postings(self) -> list[PostingView]: ...


class ObligationPersistence(Protocol):
    async def create_obligation(self, record: Obligation) -> int: ...

    async def update_obligation(self, obligation_id: int, partial: Mapping[str, Any]) -> None: ...

    async def delete_obligation(self, obligation_id: int) -> None: ...

    async def toggle_obligation(self, obligation_id: int) -> None: ...

    async def list_obligations(self) -> list[Obligation]: ...


class TaskScheduler(Protocol):
    """Отменяемая отложенная задача (окно undo)."""

    def schedule(self, key: str, delay: float, func: Callable[[], Awaitable[None]]) -> None: ...

    def cancel(self, key: str) -> bool: ...
