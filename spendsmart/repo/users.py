from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from spendsmart.models.user import User


async def get_or_create_user(session: AsyncSession, tg_id: int, username: str | None = None) -> User:
    q = await session.execute(select(User).where(User.telegram_id == tg_id))
    user = q.scalar_one_or_none()
    if user:
        if username and user.username != username:
            user.username = username
        return user
    user = User(telegram_id=tg_id, username=username)
    session.add(user)
    await session.flush()
    return user


async def list_telegram_ids(session: AsyncSession) -> list[int]:
    q = await session.execute(select(User.telegram_id).order_by(User.id))
    return [int(x) for x in q.scalars().all()]
