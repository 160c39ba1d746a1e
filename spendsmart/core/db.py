# spendsmart/core/db.py
# Async SQLAlchemy + session factory + инициализация схемы

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from spendsmart.core.config import settings


def make_engine(url: str, **kwargs) -> AsyncEngine:
    kwargs.setdefault("echo", False)
    if not url.startswith("sqlite"):
        kwargs.setdefault("pool_pre_ping", True)
    return create_async_engine(url, **kwargs)


def make_sessionmaker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=bind, class_=AsyncSession, expire_on_commit=False)


# Один движок на приложение
engine = make_engine(settings.database_url)

# Фабрика сессий
Session: async_sessionmaker[AsyncSession] = make_sessionmaker(engine)


@asynccontextmanager
async def session_scope(
    factory: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncIterator[AsyncSession]:
    """
    Контекст для работы с БД:
    >>> async with session_scope() as s:
    ...     await s.execute(...)
    """
    session: AsyncSession = (factory or Session)()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def init_db(bind: AsyncEngine | None = None) -> None:
    """
    Создание таблиц для старта без Alembic.
    Все модели используют общий Base из spendsmart.models.user.
    """
    from spendsmart.models import Base  # импорт пакета регистрирует все таблицы
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
