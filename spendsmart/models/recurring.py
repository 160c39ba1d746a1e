# spendsmart/models/recurring.py
from __future__ import annotations

from datetime import datetime
from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, Date, DateTime, Boolean
from sqlalchemy.orm import relationship

from spendsmart.models.user import Base


class ObligationRow(Base):
    __tablename__ = "recurring_obligations"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)

    # параметры операции
    name = Column(String(100), nullable=False)
    type = Column(String(10), nullable=False)            # "income" | "expense"
    category = Column(String(100), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)      # всегда положительная
    description = Column(String(255), nullable=False, default="")

    # расписание: только календарные даты, без времени и таймзон
    frequency = Column(String(10), nullable=False)       # weekly | monthly | quarterly | yearly
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    next_execution = Column(Date, nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    last_executed = Column(Date, nullable=True)
    execution_count = Column(Integer, nullable=False, default=0)
    reminder_days = Column(Integer, nullable=True)       # только для расходов

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="obligations")
