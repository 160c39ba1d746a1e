# spendsmart/models/posting.py
# Проводка в журнале: конкретная операция, созданная при оплате обязательства.

from __future__ import annotations

from datetime import datetime
from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, Date, DateTime
from sqlalchemy.orm import relationship

from spendsmart.models.user import Base


class Posting(Base):
    __tablename__ = "postings"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    category = Column(String(100), nullable=False)
    note = Column(String(255), nullable=True)
    type = Column(String(10), nullable=False)  # 'income' | 'expense'
    date = Column(Date, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # связи
    user = relationship("User", back_populates="postings")
