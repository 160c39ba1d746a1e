# spendsmart/core/logging.py
# Простая JSON-логировка в stdout + уровни

from __future__ import annotations
import logging
import sys

_JSON_FMT = (
    '{"level":"%(levelname)s","ts":"%(asctime)s",'
    '"name":"%(name)s","msg":"%(message)s"}'
)

# шумные библиотеки держим на WARNING, иначе каждый тик планировщика попадает в лог
_QUIET = ("apscheduler", "aiogram.event", "sqlalchemy.engine")


def setup_logging(level: str = "INFO") -> None:
    logger = logging.getLogger()
    logger.handlers.clear()
    logger.setLevel(level.upper())

    h = logging.StreamHandler(sys.stdout)
    h.setFormatter(logging.Formatter(_JSON_FMT))
    logger.addHandler(h)

    for name in _QUIET:
        logging.getLogger(name).setLevel(logging.WARNING)
