# spendsmart/handlers/start.py
# Онбординг (/start) и справка (/help, /cancel)

from __future__ import annotations

from aiogram import Router, F
from aiogram.filters import Command, CommandStart
from aiogram.types import Message

from spendsmart.services.sessions import SessionRegistry

router = Router(name=__name__)


@router.message(CommandStart())
async def cmd_start(m: Message, sessions: SessionRegistry) -> None:
    # открываем сессию сразу: пользователь попадёт в плановый проход
    await sessions.get(m.from_user.id, m.from_user.username)
    text = (
        "👋 Привет! Я слежу за регулярными платежами и доходами.\n\n"
        "<b>Как пользоваться:</b>\n"
        "• Добавь правило: <code>/recurring_add monthly 2024-01-31 -1200 Rent Квартира</code>\n"
        "• Я покажу, что просрочено, что сегодня и что на этой неделе.\n"
        "• Оплатить, пропустить, поставить на паузу или удалить можно кнопками.\n\n"
        "<b>Команды:</b>\n"
        "/recurring_list — все правила\n"
        "/recurring_due — ближайшие 30 дней\n"
        "/recurring_process — провести всё, что к оплате\n"
        "/recurring_help — справка по формату"
    )
    await m.answer(text, parse_mode="HTML")


@router.message(Command("help"))
async def cmd_help(m: Message) -> None:
    text = (
        "📘 <b>Справка</b>\n\n"
        "Статусы:\n"
        "• 🔴 просрочено, 🟠 сегодня, 🟡 в течение недели\n"
        "• 🔔 пора напомнить (remind=N у расхода)\n\n"
        "Удаление можно отменить кнопкой «Вернуть» в течение нескольких секунд.\n\n"
        "Команды:\n"
        "/recurring_add, /recurring_list, /recurring_due, /recurring_process, /recurring_export, /cancel, /help"
    )
    await m.answer(text, parse_mode="HTML")


@router.message(Command("cancel"))
@router.message(F.text.lower() == "отмена")
async def cmd_cancel(m: Message) -> None:
    await m.answer("Ок, отменил. Продолжаем.", parse_mode="HTML")
