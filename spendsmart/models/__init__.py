# spendsmart/models/__init__.py
# Единый Base для User, ObligationRow, Posting: импорт пакета регистрирует все таблицы.
from __future__ import annotations

from spendsmart.models.user import Base, User
from spendsmart.models.recurring import ObligationRow
from spendsmart.models.posting import Posting

__all__ = ["Base", "User", "ObligationRow", "Posting"]
