# spendsmart/repo/records.py
from __future__ import annotations
from datetime import date
from decimal import Decimal

from sqlalchemy import select, and_, asc
from sqlalchemy.ext.asyncio import AsyncSession
from spendsmart.models.posting import Posting


async def add_posting(
    session: AsyncSession,
    user_id: int,
    amount: Decimal,
    category: str,
    note: str | None,
    op_type: str,  # "income" | "expense"
    day: date,
) -> Posting:
    p = Posting(
        user_id=user_id,
        amount=amount,
        category=category,
        note=note,
        type=op_type,
        date=day,
    )
    session.add(p)
    await session.flush()
    return p


async def delete_posting(session: AsyncSession, user_id: int, posting_id: int) -> bool:
    q = await session.execute(select(Posting).where(
        and_(Posting.id == posting_id, Posting.user_id == user_id)
    ))
    p = q.scalar_one_or_none()
    if not p:
        return False
    await session.delete(p)
    return True


async def list_postings(session: AsyncSession, user_id: int) -> list[Posting]:
    q = await session.execute(select(Posting)
                              .where(Posting.user_id == user_id)
                              .order_by(asc(Posting.date), asc(Posting.id)))
    return list(q.scalars().all())
