# spendsmart/models/user.py
# Объявляем Base и модель User. Обязательства и проводки привязаны к пользователю.

from __future__ import annotations

from sqlalchemy import Column, Integer, BigInteger, String
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    telegram_id = Column(BigInteger, unique=True, index=True, nullable=False)
    username = Column(String(100), nullable=True)

    obligations = relationship("ObligationRow", back_populates="user", cascade="all, delete-orphan")
    postings = relationship("Posting", back_populates="user", cascade="all, delete-orphan")
