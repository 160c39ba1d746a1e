# -*- coding: utf-8 -*-
from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Sequence

from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from spendsmart.models.recurring import ObligationRow


async def list_all_for_user(session: AsyncSession, user_id: int) -> Sequence[ObligationRow]:
    stmt = (
        select(ObligationRow)
        .where(ObligationRow.user_id == user_id)
        .order_by(ObligationRow.next_execution.asc(), ObligationRow.id.asc())
    )
    res = await session.execute(stmt)
    return list(res.scalars().all())


async def get_recurring(session: AsyncSession, rec_id: int, user_id: int) -> ObligationRow | None:
    q = await session.execute(
        select(ObligationRow).where(ObligationRow.id == rec_id, ObligationRow.user_id == user_id)
    )
    return q.scalar_one_or_none()


async def create_recurring(session: AsyncSession, user_id: int, values: Mapping[str, Any]) -> ObligationRow:
    row = ObligationRow(user_id=user_id, **values)
    session.add(row)
    await session.flush()
    return row


async def update_recurring(
    session: AsyncSession, rec_id: int, user_id: int, values: Mapping[str, Any]
) -> bool:
    stmt = (
        update(ObligationRow)
        .where(ObligationRow.id == rec_id, ObligationRow.user_id == user_id)
        .values(**values, updated_at=datetime.utcnow())
    )
    res = await session.execute(stmt)
    return res.rowcount > 0


async def toggle_recurring(session: AsyncSession, rec_id: int, user_id: int) -> bool | None:
    """Возвращает новое значение is_active или None, если записи нет."""
    row = await get_recurring(session, rec_id, user_id)
    if row is None:
        return None
    row.is_active = not row.is_active
    row.updated_at = datetime.utcnow()
    await session.flush()
    return row.is_active


async def delete_recurring(session: AsyncSession, rec_id: int, user_id: int) -> bool:
    res = await session.execute(
        delete(ObligationRow).where(ObligationRow.id == rec_id, ObligationRow.user_id == user_id)
    )
    return res.rowcount > 0
