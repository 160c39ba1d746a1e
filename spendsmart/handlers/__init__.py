# spendsmart/handlers/__init__.py
from __future__ import annotations

from typing import Iterable
from aiogram import Dispatcher, Router
import logging


def _module_names() -> Iterable[str]:
    return (
        "start",
        "recurring",
    )


def setup(dp: Dispatcher) -> list[str]:
    """Подключает роутеры; возвращает имена загруженных модулей."""
    loaded: list[str] = []
    for name in _module_names():
        try:
            mod = __import__(f"spendsmart.handlers.{name}", fromlist=["router"])
            router: Router = getattr(mod, "router")
        except (ImportError, AttributeError):
            # бот поднимается без сломанного модуля, трейс уходит в лог
            logging.exception('handler_failed name="%s"', name)
            continue
        dp.include_router(router)
        loaded.append(name)
        logging.info('handler_loaded name="%s"', name)
    return loaded
