# spendsmart/ui/keyboards.py
from __future__ import annotations
from typing import List, Tuple
from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton

from spendsmart.models.obligation import Obligation

# callback_data: rec:<action>:<id>
PREFIX = "rec"


def cb(action: str, obligation_id: int | str) -> str:
    return f"{PREFIX}:{action}:{obligation_id}"


def parse_cb(data: str | None) -> tuple[str, int] | None:
    parts = (data or "").split(":")
    if len(parts) != 3 or parts[0] != PREFIX:
        return None
    try:
        return parts[1], int(parts[2])
    except ValueError:
        return None


def list_keyboard(pairs: List[Tuple[str, int]]) -> InlineKeyboardMarkup:
    """
    pairs: [(label, obligation_id), ...]
    по 2 в ряд, кнопка открывает карточку
    """
    buttons = []
    row = []
    for label, ob_id in pairs:
        row.append(InlineKeyboardButton(text=label, callback_data=cb("card", ob_id)))
        if len(row) == 2:
            buttons.append(row); row = []
    if row:
        buttons.append(row)
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def card_keyboard(ob: Obligation) -> InlineKeyboardMarkup:
    rows = []
    if ob.is_active:
        rows.append([
            InlineKeyboardButton(text="✅ Оплачено", callback_data=cb("pay", ob.id)),
            InlineKeyboardButton(text="⏭ Пропустить", callback_data=cb("skip", ob.id)),
        ])
    rows.append([
        InlineKeyboardButton(
            text="⏸ Пауза" if ob.is_active else "▶️ Включить",
            callback_data=cb("toggle", ob.id),
        ),
        InlineKeyboardButton(text="🗑 Удалить", callback_data=cb("del", ob.id)),
    ])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def skip_confirm_keyboard(obligation_id: int) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[[
        InlineKeyboardButton(text="Да, пропустить", callback_data=cb("skipok", obligation_id)),
        InlineKeyboardButton(text="Отмена", callback_data=cb("card", obligation_id)),
    ]])


def undo_keyboard(obligation_id: int) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[[
        InlineKeyboardButton(text="↩️ Вернуть", callback_data=cb("undo", obligation_id)),
    ]])
